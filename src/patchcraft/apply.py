from __future__ import annotations

import os
import pathlib
from typing import Callable, Dict, Iterable

from .commit import patch_to_commit
from .errors import DiffError, PatchErrorKind
from .logger import logger
from .markers import BEGIN_MARKER
from .models import ActionType, Commit
from .parser import identify_files_needed, text_to_patch

OpenFn = Callable[[str], str]
WriteFn = Callable[[str, str], None]
RemoveFn = Callable[[str], None]


def load_files(paths: Iterable[str], open_fn: OpenFn) -> Dict[str, str]:
    """
    Read every path through ``open_fn``.
    Any read failure aborts the whole load with a "file not found" DiffError.
    """
    orig: Dict[str, str] = {}
    for path in paths:
        try:
            orig[path] = open_fn(path)
        except Exception as e:
            raise DiffError(
                f"File not found: {path}",
                kind=PatchErrorKind.FILE_NOT_FOUND,
                path=path,
            ) from e
    logger.debug("Loaded files", paths=sorted(orig))
    return orig


def apply_commit(commit: Commit, write_fn: WriteFn, remove_fn: RemoveFn) -> None:
    # Not transactional: the first failing write/remove propagates and
    # entries applied before it stay applied.
    for path, change in commit.changes.items():
        if change.type == ActionType.DELETE:
            remove_fn(path)
        elif change.type == ActionType.ADD:
            write_fn(path, change.new_content or "")
        elif change.type == ActionType.UPDATE:
            if change.move_path:
                write_fn(change.move_path, change.new_content or "")
                remove_fn(path)
            else:
                write_fn(path, change.new_content or "")


def process_patch(
    text: str, open_fn: OpenFn, write_fn: WriteFn, remove_fn: RemoveFn
) -> str:
    if not text.startswith(BEGIN_MARKER):
        raise DiffError(
            f"Patch must start with {BEGIN_MARKER}",
            kind=PatchErrorKind.INVALID_PATCH_TEXT,
        )
    paths = sorted(identify_files_needed(text))
    orig = load_files(paths, open_fn)
    patch, fuzz = text_to_patch(text, orig)
    commit = patch_to_commit(patch, orig)
    apply_commit(commit, write_fn, remove_fn)
    logger.info("Applied patch", files=len(commit.changes), fuzz=fuzz)
    return "Done!"


def open_file(path: str) -> str:
    with open(path, "rt", encoding="utf-8", newline="") as fh:
        return fh.read()


def write_file(path: str, content: str) -> None:
    if os.path.isabs(path):
        raise DiffError(
            "We do not support absolute paths.",
            kind=PatchErrorKind.ABSOLUTE_PATH,
            path=path,
        )
    parent = pathlib.Path(path).parent
    if str(parent) != ".":
        parent.mkdir(parents=True, exist_ok=True)
    with open(path, "wt", encoding="utf-8", newline="") as fh:
        fh.write(content)


def remove_file(path: str) -> None:
    pathlib.Path(path).unlink()
