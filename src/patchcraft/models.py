from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, Optional, Tuple


class ActionType(str, Enum):
    ADD = "add"
    DELETE = "delete"
    UPDATE = "update"


@dataclass(frozen=True)
class Chunk:
    # Offset into the original file's lines where this edit begins.
    # Relative to the hunk while the section is being built, absolute
    # once the parser has located the hunk.
    orig_index: int = -1
    del_lines: Tuple[str, ...] = ()
    ins_lines: Tuple[str, ...] = ()


@dataclass(frozen=True)
class PatchAction:
    type: ActionType
    new_file: Optional[str] = None
    chunks: Tuple[Chunk, ...] = ()
    move_path: Optional[str] = None


@dataclass(frozen=True)
class Patch:
    actions: Dict[str, PatchAction] = field(default_factory=dict)


@dataclass(frozen=True)
class FileChange:
    type: ActionType
    old_content: Optional[str] = None
    new_content: Optional[str] = None
    move_path: Optional[str] = None


@dataclass(frozen=True)
class Commit:
    changes: Dict[str, FileChange] = field(default_factory=dict)
