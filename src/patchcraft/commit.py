from __future__ import annotations

from typing import Dict, List, Mapping

from .errors import DiffError, PatchErrorKind
from .logger import logger
from .models import ActionType, Commit, FileChange, Patch, PatchAction


def get_updated_file(text: str, action: PatchAction, path: str = "") -> str:
    """
    Rebuild the content of ``text`` after applying the chunks of an
    Update ``action``. Pure; raises DiffError when chunk offsets are out of
    range or go backwards.
    """
    if action.type != ActionType.UPDATE:
        raise ValueError(f"Expected UPDATE action for {path}, got {action.type}")

    orig_lines = text.split("\n")
    dest_lines: List[str] = []
    orig_index = 0
    for chunk in action.chunks:
        if chunk.orig_index > len(orig_lines):
            raise DiffError(
                f"{path}: chunk.orig_index {chunk.orig_index}"
                f" > len(lines) {len(orig_lines)}",
                kind=PatchErrorKind.CHUNK_OUT_OF_RANGE,
                path=path,
                index=chunk.orig_index,
            )
        if orig_index > chunk.orig_index:
            raise DiffError(
                f"{path}: orig_index {orig_index}"
                f" > chunk.orig_index {chunk.orig_index}",
                kind=PatchErrorKind.CHUNK_OUT_OF_ORDER,
                path=path,
                index=chunk.orig_index,
            )
        dest_lines.extend(orig_lines[orig_index : chunk.orig_index])
        dest_lines.extend(chunk.ins_lines)
        orig_index = chunk.orig_index + len(chunk.del_lines)
    dest_lines.extend(orig_lines[orig_index:])
    return "\n".join(dest_lines)


def patch_to_commit(patch: Patch, orig: Mapping[str, str]) -> Commit:
    changes: Dict[str, FileChange] = {}
    for path, action in patch.actions.items():
        if action.type == ActionType.DELETE:
            changes[path] = FileChange(
                type=ActionType.DELETE, old_content=orig.get(path)
            )
        elif action.type == ActionType.ADD:
            changes[path] = FileChange(
                type=ActionType.ADD, new_content=action.new_file or ""
            )
        elif action.type == ActionType.UPDATE:
            changes[path] = FileChange(
                type=ActionType.UPDATE,
                old_content=orig[path],
                new_content=get_updated_file(orig[path], action, path),
                move_path=action.move_path,
            )
    logger.debug("Built commit", files=sorted(changes))
    return Commit(changes=changes)
