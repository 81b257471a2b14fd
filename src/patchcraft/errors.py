from __future__ import annotations

from enum import Enum
from typing import Optional


class PatchErrorKind(str, Enum):
    # Envelope / directive structure
    INVALID_PATCH_TEXT = "invalid_patch_text"
    UNKNOWN_DIRECTIVE = "unknown_directive"
    INVALID_LINE = "invalid_line"
    MISSING_END_PATCH = "missing_end_patch"
    # Path bookkeeping
    DUPLICATE_PATH = "duplicate_path"
    MISSING_FILE = "missing_file"
    FILE_EXISTS = "file_exists"
    INVALID_ADD_LINE = "invalid_add_line"
    # Hunk location
    CONTEXT_NOT_FOUND = "context_not_found"
    EOF_CONTEXT_NOT_FOUND = "eof_context_not_found"
    # Commit reconstruction
    CHUNK_OUT_OF_RANGE = "chunk_out_of_range"
    CHUNK_OUT_OF_ORDER = "chunk_out_of_order"
    # File access
    FILE_NOT_FOUND = "file_not_found"
    ABSOLUTE_PATH = "absolute_path"
    PATH_ESCAPE = "path_escape"
    FUZZ_LIMIT = "fuzz_limit"


class DiffError(ValueError):
    """Any problem detected while parsing or applying a patch."""

    def __init__(
        self,
        msg: str,
        *,
        kind: PatchErrorKind,
        path: Optional[str] = None,
        line: Optional[str] = None,
        index: Optional[int] = None,
    ) -> None:
        super().__init__(msg)
        self.msg = msg
        self.kind = kind
        self.path = path
        self.line = line
        self.index = index

    def __repr__(self) -> str:
        return f"DiffError(kind={self.kind.value!r}, msg={self.msg!r})"
