from __future__ import annotations

import dataclasses
from dataclasses import dataclass
from typing import Dict, List, Mapping, Sequence, Set, Tuple

from .errors import DiffError, PatchErrorKind
from .logger import logger
from .markers import (
    ADD_FILE_PREFIX,
    ADD_PREFIX,
    BEGIN_MARKER,
    DELETE_FILE_PREFIX,
    END_MARKER,
    EOF_MARKER,
    MOVE_FILE_TO_PREFIX,
    MOVE_TO_PREFIX,
    SECTION_MARKER,
    SECTION_PREFIX,
    UPDATE_FILE_PREFIX,
)
from .matcher import FUZZ_EOF_FALLBACK, find_context
from .models import ActionType, Patch, PatchAction
from .sections import peek_next_section

_ADD_FILE_STOP: Tuple[str, ...] = (
    END_MARKER,
    UPDATE_FILE_PREFIX,
    DELETE_FILE_PREFIX,
    ADD_FILE_PREFIX,
)
_UPDATE_FILE_STOP: Tuple[str, ...] = (*_ADD_FILE_STOP, EOF_MARKER)


@dataclass(frozen=True)
class ParseState:
    """Cursor over the patch lines plus the fuzz accumulated so far."""

    lines: Tuple[str, ...]
    index: int = 0
    fuzz: int = 0
    # EOF-anchored hunks that only matched away from the file tail.
    eof_fallbacks: int = 0

    @property
    def context_fuzz(self) -> int:
        """Fuzz spent on whitespace tiers, without the EOF fallback penalty."""
        return self.fuzz - self.eof_fallbacks * FUZZ_EOF_FALLBACK

    @property
    def line(self) -> str:
        if self.index >= len(self.lines):
            raise DiffError(
                f"Index: {self.index} >= {len(self.lines)}",
                kind=PatchErrorKind.MISSING_END_PATCH,
                index=self.index,
            )
        return self.lines[self.index]

    def is_done(self, prefixes: Sequence[str] = ()) -> bool:
        if self.index >= len(self.lines):
            return True
        current = self.lines[self.index]
        return any(current.startswith(p.strip()) for p in prefixes)

    def startswith(self, prefix: str) -> bool:
        return self.index < len(self.lines) and self.lines[self.index].startswith(
            prefix
        )

    def read_str(self, prefix: str) -> Tuple[str, "ParseState"]:
        """
        Consume the current line when it starts with ``prefix`` followed by
        a non-blank value. Returns the value (stripped) and the advanced
        state, or ("", self) when the line does not match.
        """
        if self.startswith(prefix):
            value = self.line[len(prefix) :].strip()
            if value:
                return value, self.advance()
        return "", self

    def advance(self, n: int = 1) -> "ParseState":
        return dataclasses.replace(self, index=self.index + n)

    def seek(self, index: int) -> "ParseState":
        return dataclasses.replace(self, index=index)

    def add_fuzz(self, fuzz: int) -> "ParseState":
        fallbacks = self.eof_fallbacks
        if fuzz >= FUZZ_EOF_FALLBACK:
            fallbacks += 1
        return dataclasses.replace(
            self, fuzz=self.fuzz + fuzz, eof_fallbacks=fallbacks
        )


def parse_update_file(
    state: ParseState, text: str, path: str = ""
) -> Tuple[PatchAction, ParseState]:
    file_lines = text.split("\n")
    chunks = []
    # Number of original lines already matched in this file.
    index = 0
    first = True

    while not state.is_done(_UPDATE_FILE_STOP):
        marked = state.startswith(SECTION_PREFIX) or state.line == SECTION_MARKER
        if marked:
            hint = state.line[len(SECTION_MARKER) :].strip()
            if hint:
                logger.debug("Section hint", path=path, hint=hint)
            state = state.advance()
        elif not first:
            raise DiffError(
                f"Invalid Line:\n{state.line}",
                kind=PatchErrorKind.INVALID_LINE,
                path=path,
                line=state.line,
                index=state.index,
            )
        first = False

        section = peek_next_section(state.lines, state.index)
        match = find_context(file_lines, section.context, index, section.is_eof)
        if match is None:
            ctx_text = "\n".join(section.context)
            if section.is_eof:
                raise DiffError(
                    f"Invalid EOF Context {index}:\n{ctx_text}",
                    kind=PatchErrorKind.EOF_CONTEXT_NOT_FOUND,
                    path=path,
                    line=ctx_text,
                    index=index,
                )
            raise DiffError(
                f"Invalid Context {index}:\n{ctx_text}",
                kind=PatchErrorKind.CONTEXT_NOT_FOUND,
                path=path,
                line=ctx_text,
                index=index,
            )

        if match.fuzz:
            logger.warning(
                "Fuzzy context match", path=path, index=match.index, fuzz=match.fuzz
            )
        else:
            logger.debug("Located hunk", path=path, index=match.index)

        state = state.add_fuzz(match.fuzz)
        for ch in section.chunks:
            chunks.append(
                dataclasses.replace(ch, orig_index=ch.orig_index + match.index)
            )
        index = match.index + len(section.context)
        state = state.seek(section.next_index)

    return PatchAction(type=ActionType.UPDATE, chunks=tuple(chunks)), state


def parse_add_file(state: ParseState) -> Tuple[PatchAction, ParseState]:
    lines: List[str] = []
    while not state.is_done(_ADD_FILE_STOP):
        s = state.line
        if not s.startswith(ADD_PREFIX):
            raise DiffError(
                f"Invalid Add File Line: {s}",
                kind=PatchErrorKind.INVALID_ADD_LINE,
                line=s,
                index=state.index,
            )
        lines.append(s[len(ADD_PREFIX) :])
        state = state.advance()
    return PatchAction(type=ActionType.ADD, new_file="\n".join(lines)), state


def _read_move_path(state: ParseState) -> Tuple[str, ParseState]:
    move_to, state = state.read_str(MOVE_TO_PREFIX)
    if not move_to:
        move_to, state = state.read_str(MOVE_FILE_TO_PREFIX)
    return move_to, state


def parse_patch_body(
    state: ParseState, orig: Mapping[str, str]
) -> Tuple[Patch, ParseState]:
    actions: Dict[str, PatchAction] = {}

    def check_duplicate(directive: str, path: str) -> None:
        if path in actions:
            raise DiffError(
                f"{directive} File Error: Duplicate Path: {path}",
                kind=PatchErrorKind.DUPLICATE_PATH,
                path=path,
            )

    while not state.is_done((END_MARKER,)):
        path, state = state.read_str(UPDATE_FILE_PREFIX)
        if path:
            check_duplicate("Update", path)
            move_to, state = _read_move_path(state)
            if path not in orig:
                raise DiffError(
                    f"Update File Error: Missing File: {path}",
                    kind=PatchErrorKind.MISSING_FILE,
                    path=path,
                )
            action, state = parse_update_file(state, orig[path], path)
            actions[path] = dataclasses.replace(action, move_path=move_to or None)
            continue

        path, state = state.read_str(DELETE_FILE_PREFIX)
        if path:
            check_duplicate("Delete", path)
            if path not in orig:
                raise DiffError(
                    f"Delete File Error: Missing File: {path}",
                    kind=PatchErrorKind.MISSING_FILE,
                    path=path,
                )
            actions[path] = PatchAction(type=ActionType.DELETE)
            continue

        path, state = state.read_str(ADD_FILE_PREFIX)
        if path:
            check_duplicate("Add", path)
            if path in orig:
                raise DiffError(
                    f"Add File Error: File already exists: {path}",
                    kind=PatchErrorKind.FILE_EXISTS,
                    path=path,
                )
            actions[path], state = parse_add_file(state)
            continue

        raise DiffError(
            f"Unknown Line: {state.line}",
            kind=PatchErrorKind.UNKNOWN_DIRECTIVE,
            line=state.line,
            index=state.index,
        )

    if not state.startswith(END_MARKER):
        raise DiffError("Missing End Patch", kind=PatchErrorKind.MISSING_END_PATCH)
    return Patch(actions=actions), state.advance()


def _check_envelope(lines: Sequence[str]) -> None:
    reason = None
    if len(lines) < 2:
        reason = "Patch text must have at least two lines."
    elif lines[0] != BEGIN_MARKER:
        reason = "Patch text must start with the correct patch prefix."
    elif lines[-1] != END_MARKER:
        reason = "Patch text must end with the correct patch suffix."
    if reason is not None:
        raise DiffError(
            f"Invalid patch text: {reason}", kind=PatchErrorKind.INVALID_PATCH_TEXT
        )


def parse_patch(text: str, orig: Mapping[str, str]) -> Tuple[Patch, ParseState]:
    """
    Parse patch ``text`` against the original file contents ``orig``.
    Returns the Patch and the final parser state, which carries the fuzz
    breakdown.
    """
    lines = tuple(text.strip().split("\n"))
    _check_envelope(lines)
    patch, state = parse_patch_body(ParseState(lines=lines, index=1), orig)
    logger.debug(
        "Parsed patch",
        files=len(patch.actions),
        fuzz=state.fuzz,
        eof_fallbacks=state.eof_fallbacks,
    )
    return patch, state


def text_to_patch(text: str, orig: Mapping[str, str]) -> Tuple[Patch, int]:
    """Parse ``text``; returns the Patch and the total fuzz spent locating hunks."""
    patch, state = parse_patch(text, orig)
    return patch, state.fuzz


def _scan_headers(text: str, prefixes: Sequence[str]) -> Set[str]:
    result: Set[str] = set()
    for line in text.strip().split("\n"):
        for prefix in prefixes:
            if line.startswith(prefix):
                result.add(line[len(prefix) :].strip())
    return result


def identify_files_needed(text: str) -> Set[str]:
    return _scan_headers(text, (UPDATE_FILE_PREFIX, DELETE_FILE_PREFIX))


def identify_files_added(text: str) -> Set[str]:
    return _scan_headers(text, (ADD_FILE_PREFIX,))
