from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Optional, Sequence, Tuple

from .canon import canon

# Fuzz charged by each matching tier, in order of preference.
FUZZ_EXACT = 0
FUZZ_RSTRIP = 1
FUZZ_STRIP = 100
# Added when an EOF-anchored hunk only matched away from the file tail.
FUZZ_EOF_FALLBACK = 10000


@dataclass(frozen=True)
class ContextMatch:
    index: int
    fuzz: int


def _identity(s: str) -> str:
    return s


def _rstrip(s: str) -> str:
    return s.rstrip()


def _strip(s: str) -> str:
    return s.strip()


_TIERS: Tuple[Tuple[Callable[[str], str], int], ...] = (
    (_identity, FUZZ_EXACT),
    (_rstrip, FUZZ_RSTRIP),
    (_strip, FUZZ_STRIP),
)


def _block(lines: Sequence[str], norm: Callable[[str], str]) -> str:
    return canon("\n".join(norm(s) for s in lines))


def find_context_core(
    lines: Sequence[str], context: Sequence[str], start: int
) -> Optional[ContextMatch]:
    """
    Locate ``context`` inside ``lines`` at or after ``start``.

    Every tier scans all candidate windows before the next, looser tier is
    tried. Returns None when no tier matches.
    """
    if not context:
        return ContextMatch(index=start, fuzz=FUZZ_EXACT)

    size = len(context)
    last = len(lines) - size
    for norm, fuzz in _TIERS:
        needle = _block(context, norm)
        for i in range(max(start, 0), last + 1):
            if _block(lines[i : i + size], norm) == needle:
                return ContextMatch(index=i, fuzz=fuzz)
    return None


def find_context(
    lines: Sequence[str], context: Sequence[str], start: int, eof: bool
) -> Optional[ContextMatch]:
    if eof:
        tail = find_context_core(lines, context, max(len(lines) - len(context), 0))
        if tail is not None:
            return tail
        found = find_context_core(lines, context, start)
        if found is None:
            return None
        return ContextMatch(index=found.index, fuzz=found.fuzz + FUZZ_EOF_FALLBACK)
    return find_context_core(lines, context, start)
