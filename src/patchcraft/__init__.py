from __future__ import annotations

import pathlib
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Dict, List, Optional

from .apply import apply_commit, load_files, process_patch
from .commit import get_updated_file, patch_to_commit
from .errors import DiffError, PatchErrorKind
from .instructions import DIFF_SYSTEM_INSTRUCTION
from .logger import logger
from .markers import BEGIN_MARKER
from .matcher import ContextMatch, find_context
from .models import ActionType, Chunk, Commit, FileChange, Patch, PatchAction
from .parser import (
    identify_files_added,
    identify_files_needed,
    parse_patch,
    text_to_patch,
)
from .settings import Settings

__all__ = [
    "ActionType",
    "Chunk",
    "Commit",
    "ContextMatch",
    "DIFF_SYSTEM_INSTRUCTION",
    "DiffError",
    "FileChange",
    "FileSystemPatchFileOps",
    "Patch",
    "PatchAction",
    "PatchErrorKind",
    "PatchFileOps",
    "PatchResult",
    "apply_commit",
    "apply_patch",
    "build_commit",
    "find_context",
    "get_updated_file",
    "identify_files_added",
    "identify_files_needed",
    "load_files",
    "parse_patch",
    "patch_to_commit",
    "process_patch",
    "text_to_patch",
]


class PatchFileOps(ABC):
    """
    Abstract contract for file operations used by the patch applier.
    Implementations must handle path safety and track changes map.
    """

    @abstractmethod
    def open(self, rel: str) -> str: ...

    @abstractmethod
    def write(self, rel: str, content: str) -> None: ...

    @abstractmethod
    def remove(self, rel: str) -> None: ...

    @property
    @abstractmethod
    def changes_map(self) -> Dict[str, str]:
        """
        A map of relative file paths to change kind: 'created' | 'updated' | 'deleted'.
        """
        ...


class FileSystemPatchFileOps(PatchFileOps):
    """
    File-backed implementation that enforces path safety under base_path and
    records change kinds in application order.
    """

    def __init__(self, base_path: pathlib.Path, encoding: str = "utf-8"):
        self._base_path = pathlib.Path(base_path)
        self._encoding = encoding
        self._changes: Dict[str, str] = {}

    def _resolve_safe_path(self, rel: str) -> pathlib.Path:
        if (
            rel.startswith("/")
            or rel.startswith("~")
            or pathlib.Path(rel).is_absolute()
        ):
            raise DiffError(
                f"Absolute paths are not allowed: {rel}",
                kind=PatchErrorKind.ABSOLUTE_PATH,
                path=rel,
            )
        abs_path = (self._base_path / rel).resolve()
        base_resolved = self._base_path.resolve()
        if abs_path == base_resolved or base_resolved in abs_path.parents:
            return abs_path
        raise DiffError(
            f"Path escapes project root: {rel}",
            kind=PatchErrorKind.PATH_ESCAPE,
            path=rel,
        )

    def _record(self, rel: str, change: str) -> None:
        # Net effect relative to the tree before this run.
        prev = self._changes.get(rel)
        if prev == "created" and change == "updated":
            return
        if prev == "deleted" and change == "created":
            change = "updated"
        self._changes[rel] = change

    def open(self, rel: str) -> str:
        path = self._resolve_safe_path(rel)
        with path.open("rt", encoding=self._encoding, newline="") as fh:
            return fh.read()

    def write(self, rel: str, content: str) -> None:
        path = self._resolve_safe_path(rel)
        existed = path.exists()
        path.parent.mkdir(parents=True, exist_ok=True)
        with path.open("wt", encoding=self._encoding, newline="") as fh:
            fh.write(content)
        self._record(rel, "updated" if existed else "created")

    def remove(self, rel: str) -> None:
        path = self._resolve_safe_path(rel)
        path.unlink()
        self._record(rel, "deleted")

    @property
    def changes_map(self) -> Dict[str, str]:
        return self._changes


@dataclass
class PatchResult:
    summary: str
    outcome: str
    # Relative path -> 'created' | 'updated' | 'deleted', as applied.
    changes: Dict[str, str] = field(default_factory=dict)
    fuzz: int = 0
    commit: Optional[Commit] = None
    error: Optional[Exception] = None

    @property
    def ok(self) -> bool:
        return self.outcome == "success"


def build_commit(
    text: str, ops: PatchFileOps, settings: Optional[Settings] = None
) -> tuple[Commit, int]:
    """
    Read, parse and reconstruct without touching the filesystem.
    Returns the Commit and the total fuzz.

    ``settings.max_fuzz`` bounds the whitespace fuzz only. The EOF fallback
    penalty is left out: a file ending in a newline splits into a trailing
    empty line, so EOF-anchored hunks on such files always take the
    fallback.
    """
    settings = settings or Settings()
    if not text.startswith(BEGIN_MARKER):
        raise DiffError(
            f"Patch must start with {BEGIN_MARKER}",
            kind=PatchErrorKind.INVALID_PATCH_TEXT,
        )
    orig = load_files(sorted(identify_files_needed(text)), ops.open)
    patch, state = parse_patch(text, orig)
    limit = settings.max_fuzz
    if limit is not None and state.context_fuzz > limit:
        # ``index`` carries the total fuzz for reporting.
        raise DiffError(
            f"Patch context is too fuzzy: {state.context_fuzz} > {limit}",
            kind=PatchErrorKind.FUZZ_LIMIT,
            index=state.fuzz,
        )
    return patch_to_commit(patch, orig), state.fuzz


def _success_summary(commit: Commit, fuzz: int) -> str:
    added = sorted(p for p, c in commit.changes.items() if c.type == ActionType.ADD)
    deleted = sorted(
        p for p, c in commit.changes.items() if c.type == ActionType.DELETE
    )
    updated = sorted(
        p
        for p, c in commit.changes.items()
        if c.type == ActionType.UPDATE and not c.move_path
    )
    moved = sorted(
        (p, c.move_path)
        for p, c in commit.changes.items()
        if c.type == ActionType.UPDATE and c.move_path
    )

    lines: List[str] = ["Applied patch successfully."]
    if added:
        lines.append("Added files:")
        lines.extend(f"* {f}" for f in added)
    if updated:
        lines.append("Updated files:")
        lines.extend(f"* {f}" for f in updated)
    if moved:
        lines.append("Moved files:")
        lines.extend(f"* {src} -> {dst}" for src, dst in moved)
    if deleted:
        lines.append("Deleted files:")
        lines.extend(f"* {f}" for f in deleted)
    if fuzz:
        lines.append(f"Context matched with fuzz {fuzz}.")
    return "\n".join(lines)


def _failure_summary(err: Exception, changes: Dict[str, str]) -> str:
    lines: List[str] = []
    if not changes:
        lines.append("Patch application failed. No changes were applied.")
    else:
        # No rollback: report what already hit the filesystem.
        lines.append(
            "Patch application failed partway. These changes were already applied:"
        )
        lines.extend(f"* {kind}: {path}" for path, kind in changes.items())
    lines.append("Error:")
    if isinstance(err, DiffError):
        loc = f"{err.path}: " if err.path else ""
        lines.append(f"* {loc}{err.msg}")
    else:
        lines.append(f"* {type(err).__name__}: {err}")
    return "\n".join(lines)


def apply_patch(
    text: str,
    base_path: pathlib.Path,
    ops: Optional[PatchFileOps] = None,
    settings: Optional[Settings] = None,
) -> PatchResult:
    """
    Apply a patch under base_path (or through ``ops`` when given).
    Never raises for patch or I/O problems: they are reported in the
    returned PatchResult with outcome 'fail'.
    """
    settings = settings or Settings()
    file_ops = ops or FileSystemPatchFileOps(base_path, encoding=settings.encoding)

    commit: Optional[Commit] = None
    fuzz = 0
    try:
        commit, fuzz = build_commit(text, file_ops, settings)
        apply_commit(commit, file_ops.write, file_ops.remove)
    except (DiffError, OSError) as e:
        if isinstance(e, DiffError) and e.kind == PatchErrorKind.FUZZ_LIMIT:
            fuzz = e.index or 0
        logger.error(
            "Patch application failed",
            err=str(e),
            applied=len(file_ops.changes_map),
        )
        return PatchResult(
            summary=_failure_summary(e, file_ops.changes_map),
            outcome="fail",
            changes=dict(file_ops.changes_map),
            fuzz=fuzz,
            commit=commit,
            error=e,
        )

    logger.info("Applied patch", files=len(commit.changes), fuzz=fuzz)
    return PatchResult(
        summary=_success_summary(commit, fuzz),
        outcome="success",
        changes=dict(file_ops.changes_map),
        fuzz=fuzz,
        commit=commit,
    )
