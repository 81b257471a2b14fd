from __future__ import annotations

from dataclasses import dataclass
from enum import Enum, auto
from typing import List, Sequence, Tuple

from .errors import DiffError, PatchErrorKind
from .markers import (
    ADD_PREFIX,
    BARE_STARS,
    CONTEXT_PREFIX,
    DELETE_PREFIX,
    EOF_MARKER,
    SECTION_BOUNDARIES,
)
from .models import Chunk


class LineMode(Enum):
    KEEP = auto()
    ADD = auto()
    DELETE = auto()


@dataclass(frozen=True)
class Section:
    # Original-file lines (context plus deletions) the hunk must match.
    context: Tuple[str, ...]
    # Chunks with orig_index relative to the start of ``context``.
    chunks: Tuple[Chunk, ...]
    next_index: int
    is_eof: bool


def is_section_boundary(line: str) -> bool:
    return any(line.startswith(p.strip()) for p in SECTION_BOUNDARIES)


def _classify(line: str) -> Tuple[LineMode, str]:
    if line.startswith(ADD_PREFIX):
        return LineMode.ADD, line[1:]
    if line.startswith(DELETE_PREFIX):
        return LineMode.DELETE, line[1:]
    if line.startswith(CONTEXT_PREFIX):
        return LineMode.KEEP, line[1:]
    # Unmarked lines (including blank ones) are context.
    return LineMode.KEEP, line


def peek_next_section(lines: Sequence[str], index: int) -> Section:
    """
    Scan one hunk starting at ``lines[index]``.

    Stops before the next ``@@``, file header, ``*** End Patch`` or
    ``*** EOF`` line. A trailing ``*** EOF`` is consumed and marks the
    section as anchored to the end of the file.
    """
    old: List[str] = []
    del_lines: List[str] = []
    ins_lines: List[str] = []
    chunks: List[Chunk] = []
    mode = LineMode.KEEP

    def flush() -> None:
        nonlocal del_lines, ins_lines
        if del_lines or ins_lines:
            chunks.append(
                Chunk(
                    orig_index=len(old) - len(del_lines),
                    del_lines=tuple(del_lines),
                    ins_lines=tuple(ins_lines),
                )
            )
        del_lines = []
        ins_lines = []

    while index < len(lines):
        s = lines[index]
        if is_section_boundary(s) or s == BARE_STARS:
            break
        if s.startswith(BARE_STARS):
            raise DiffError(
                f"Invalid Line: {s}",
                kind=PatchErrorKind.INVALID_LINE,
                line=s,
                index=index,
            )
        index += 1

        last_mode = mode
        mode, text = _classify(s)
        if mode == LineMode.KEEP and last_mode != mode:
            flush()

        if mode == LineMode.DELETE:
            del_lines.append(text)
            old.append(text)
        elif mode == LineMode.ADD:
            ins_lines.append(text)
        else:
            old.append(text)
    flush()

    is_eof = index < len(lines) and lines[index] == EOF_MARKER
    if is_eof:
        index += 1
    return Section(
        context=tuple(old),
        chunks=tuple(chunks),
        next_index=index,
        is_eof=is_eof,
    )
