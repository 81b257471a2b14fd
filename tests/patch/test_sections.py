import pytest

from patchcraft.errors import DiffError, PatchErrorKind
from patchcraft.models import Chunk
from patchcraft.sections import is_section_boundary, peek_next_section


def test_delete_between_context_lines():
    lines = [" one", "-two", " three", "*** End Patch"]
    section = peek_next_section(lines, 0)
    assert section.context == ("one", "two", "three")
    assert section.chunks == (Chunk(orig_index=1, del_lines=("two",)),)
    assert section.next_index == 3
    assert section.is_eof is False


def test_insert_only_chunk():
    section = peek_next_section([" a", "+b", " c"], 0)
    assert section.context == ("a", "c")
    assert section.chunks == (Chunk(orig_index=1, ins_lines=("b",)),)
    assert section.next_index == 3


def test_replacement_at_end_of_section_is_flushed():
    section = peek_next_section([" a", "-b", "+c"], 0)
    assert section.chunks == (Chunk(orig_index=1, del_lines=("b",), ins_lines=("c",)),)


def test_multiple_chunks_in_one_section():
    section = peek_next_section([" a", "-b", " c", "+d", " e"], 0)
    assert section.context == ("a", "b", "c", "e")
    assert section.chunks == (
        Chunk(orig_index=1, del_lines=("b",)),
        Chunk(orig_index=3, ins_lines=("d",)),
    )


def test_add_then_delete_stays_in_one_chunk():
    # Switching between add and delete does not flush; only context does.
    section = peek_next_section(["+x", "-y", "+z", " k"], 0)
    assert section.chunks == (
        Chunk(orig_index=0, del_lines=("y",), ins_lines=("x", "z")),
    )


def test_unmarked_lines_are_context():
    section = peek_next_section(["a", "-b", ""], 0)
    assert section.context == ("a", "b", "")
    assert section.chunks == (Chunk(orig_index=1, del_lines=("b",)),)


def test_stops_before_next_section_marker():
    section = peek_next_section([" a", "@@ def foo", " b"], 0)
    assert section.context == ("a",)
    assert section.next_index == 1


def test_stops_before_file_header():
    lines = ["+x", "*** Delete File: y.txt", "*** End Patch"]
    section = peek_next_section(lines, 0)
    assert section.next_index == 1


def test_stops_at_bare_stars():
    section = peek_next_section(["-a", "***"], 0)
    assert section.next_index == 1
    assert section.chunks == (Chunk(orig_index=0, del_lines=("a",)),)


def test_eof_marker_is_consumed():
    lines = [" a", "+b", "*** EOF", "*** End Patch"]
    section = peek_next_section(lines, 0)
    assert section.is_eof is True
    assert section.next_index == 3


def test_unknown_star_line_is_rejected():
    with pytest.raises(DiffError) as exc:
        peek_next_section([" a", "*** Bogus"], 0)
    assert exc.value.kind == PatchErrorKind.INVALID_LINE
    assert exc.value.index == 1


def test_scan_starts_at_given_index():
    section = peek_next_section(["ignored", " a", "-b"], 1)
    assert section.context == ("a", "b")
    assert section.next_index == 3


@pytest.mark.parametrize(
    "line,expected",
    [
        ("@@", True),
        ("@@ class Foo", True),
        ("*** End Patch", True),
        ("*** Update File: a.py", True),
        ("*** Add File: a.py", True),
        ("*** Delete File: a.py", True),
        ("*** EOF", True),
        (" @@", False),
        ("+@@", False),
        ("plain", False),
    ],
)
def test_is_section_boundary(line, expected):
    assert is_section_boundary(line) is expected
