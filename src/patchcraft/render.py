from __future__ import annotations

import difflib
import typing

from rich import console as rich_console
from rich import syntax as rich_syntax
from rich import text as rich_text

from .models import ActionType, Commit, FileChange

if typing.TYPE_CHECKING:
    from . import PatchResult

HEADER_BULLET = "●"
HEADER_STYLE = "bold"
META_STYLE = "dim"

_CHANGE_TAGS = {
    ActionType.ADD: ("A", "green"),
    ActionType.DELETE: ("D", "red"),
    ActionType.UPDATE: ("M", "yellow"),
}


def _header(title: str, meta: str | None = None) -> rich_text.Text:
    header = rich_text.Text(no_wrap=True)
    header.append(HEADER_BULLET, style=HEADER_STYLE)
    header.append(" ")
    header.append(title, style=HEADER_STYLE)
    if meta:
        header.append(" => ", style=META_STYLE)
        header.append(meta, style=META_STYLE)
    return header


def render_patch_text(text: str, title: str = "Patch") -> rich_console.Group:
    return rich_console.Group(_header(title), rich_syntax.Syntax(text, "diff"))


def unified_diff(path: str, change: FileChange) -> str:
    old_path = path
    new_path = change.move_path or path
    if change.type == ActionType.ADD:
        old_path = "/dev/null"
    elif change.type == ActionType.DELETE:
        new_path = "/dev/null"
    diff = difflib.unified_diff(
        (change.old_content or "").splitlines(),
        (change.new_content or "").splitlines(),
        fromfile=old_path,
        tofile=new_path,
        lineterm="",
    )
    return "\n".join(diff)


def _file_header(path: str, change: FileChange) -> rich_text.Text:
    tag, style = _CHANGE_TAGS[change.type]
    if change.type == ActionType.UPDATE and change.move_path:
        tag = "R"
    header = rich_text.Text(no_wrap=True)
    header.append(tag, style=style)
    header.append(" ")
    header.append(path)
    if change.move_path:
        header.append(" -> ", style=META_STYLE)
        header.append(change.move_path)
    return header


def render_commit(commit: Commit, show_diff: bool = True) -> rich_console.Group:
    parts: list[rich_console.RenderableType] = []
    for path in sorted(commit.changes):
        change = commit.changes[path]
        parts.append(_file_header(path, change))
        if show_diff:
            diff = unified_diff(path, change)
            if diff:
                parts.append(rich_syntax.Syntax(diff, "diff"))
    return rich_console.Group(*parts)


def render_result(
    result: "PatchResult", show_diff: bool = False
) -> rich_console.Group:
    header = _header("Apply Patch", result.outcome)
    body = rich_text.Text(result.summary, no_wrap=False)
    if not result.ok:
        body.stylize("red")
    parts: list[rich_console.RenderableType] = [header, body]
    if show_diff and result.ok and result.commit is not None:
        parts.append(render_commit(result.commit))
    return rich_console.Group(*parts)
