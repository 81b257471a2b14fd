from __future__ import annotations

import sys
from pathlib import Path
from typing import Optional

import click
import yaml
from pydantic import ValidationError
from rich import console as rich_console

from . import FileSystemPatchFileOps, apply_patch, build_commit
from .errors import DiffError
from .logger import configure_logging, logger
from .render import render_commit, render_patch_text, render_result
from .settings import LogLevel, Settings, load_settings


def _read_patch(source: str) -> str:
    if source == "-":
        return sys.stdin.read()
    return Path(source).read_text(encoding="utf-8")


@click.group()
def main() -> None:
    """Apply '*** Begin Patch' style patches to a working tree."""


@main.command("apply")
@click.argument(
    "patch_file",
    default="-",
    type=click.Path(exists=True, dir_okay=False, allow_dash=True),
)
@click.option(
    "--root",
    "root",
    type=click.Path(exists=True, file_okay=False, path_type=Path),
    default=Path("."),
    show_default=True,
    help="Directory the patch paths are relative to.",
)
@click.option("--dry-run", is_flag=True, help="Show the changes without writing.")
@click.option(
    "--config",
    "config_path",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    default=None,
    help="YAML/JSON5 settings file.",
)
@click.option(
    "--log-level",
    type=click.Choice([lvl.value for lvl in LogLevel]),
    default=None,
    help="Override the configured log level.",
)
def apply_cmd(
    patch_file: str,
    root: Path,
    dry_run: bool,
    config_path: Optional[Path],
    log_level: Optional[str],
) -> None:
    try:
        settings = load_settings(config_path) if config_path else Settings()
    except (ValueError, ValidationError, yaml.YAMLError) as e:
        raise click.ClickException(f"Invalid config {config_path}: {e}") from e
    if log_level:
        settings = settings.model_copy(update={"log_level": LogLevel(log_level)})
    configure_logging(settings.log_level.value, settings.log_file)

    console = rich_console.Console()
    text = _read_patch(patch_file)
    logger.debug("Read patch", source=patch_file, size=len(text))

    if dry_run:
        ops = FileSystemPatchFileOps(root, encoding=settings.encoding)
        try:
            commit, fuzz = build_commit(text, ops, settings)
        except (DiffError, OSError) as e:
            console.print("Patch is invalid:", style="red")
            console.print(str(e), markup=False, highlight=False)
            sys.exit(1)
        console.print(render_patch_text(text))
        console.print(render_commit(commit, show_diff=settings.show_diff))
        console.print(f"Dry run: {len(commit.changes)} file(s), fuzz {fuzz}.")
        return

    result = apply_patch(text, root, settings=settings)
    console.print(render_result(result, show_diff=settings.show_diff))
    if not result.ok:
        sys.exit(1)


if __name__ == "__main__":
    main()
