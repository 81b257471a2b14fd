import pytest

from patchcraft import (
    DiffError,
    FileSystemPatchFileOps,
    PatchErrorKind,
    PatchFileOps,
    apply_patch,
    build_commit,
)
from patchcraft.settings import Settings


class InMemoryFileOps(PatchFileOps):
    def __init__(self, files: dict[str, str]):
        self.files = dict(files)
        self._changes: dict[str, str] = {}

    def open(self, rel: str) -> str:
        return self.files[rel]

    def write(self, rel: str, content: str) -> None:
        self._changes[rel] = "updated" if rel in self.files else "created"
        self.files[rel] = content

    def remove(self, rel: str) -> None:
        del self.files[rel]
        self._changes[rel] = "deleted"

    @property
    def changes_map(self) -> dict[str, str]:
        return self._changes


def test_apply_patch_on_filesystem(tmp_path):
    (tmp_path / "f.txt").write_text("pre\nold\npost\n", encoding="utf-8")
    (tmp_path / "gone.txt").write_text("bye\n", encoding="utf-8")
    patch_text = """*** Begin Patch
*** Update File: f.txt
 pre
-old
+new
 post
*** Add File: pkg/new.txt
+fresh
*** Delete File: gone.txt
*** End Patch"""

    result = apply_patch(patch_text, tmp_path)

    assert result.ok
    assert result.outcome == "success"
    assert result.fuzz == 0
    assert result.changes == {
        "f.txt": "updated",
        "pkg/new.txt": "created",
        "gone.txt": "deleted",
    }
    assert (tmp_path / "f.txt").read_text(encoding="utf-8") == "pre\nnew\npost\n"
    assert (tmp_path / "pkg" / "new.txt").read_text(encoding="utf-8") == "fresh"
    assert not (tmp_path / "gone.txt").exists()
    assert result.summary == (
        "Applied patch successfully.\n"
        "Added files:\n"
        "* pkg/new.txt\n"
        "Updated files:\n"
        "* f.txt\n"
        "Deleted files:\n"
        "* gone.txt"
    )


def test_apply_patch_move(tmp_path):
    (tmp_path / "a.txt").write_text("x\n", encoding="utf-8")
    patch_text = """*** Begin Patch
*** Update File: a.txt
*** Move to: sub/b.txt
-x
+y
*** End Patch"""

    result = apply_patch(patch_text, tmp_path)

    assert result.ok
    assert result.changes == {"sub/b.txt": "created", "a.txt": "deleted"}
    assert not (tmp_path / "a.txt").exists()
    assert (tmp_path / "sub" / "b.txt").read_text(encoding="utf-8") == "y\n"
    assert "Moved files:\n* a.txt -> sub/b.txt" in result.summary


def test_apply_patch_preserves_crlf(tmp_path):
    (tmp_path / "w.txt").write_bytes(b"one\r\ntwo\r\n")
    patch_text = """*** Begin Patch
*** Update File: w.txt
 one
-two
+three
*** End Patch"""

    result = apply_patch(patch_text, tmp_path)

    # Context lines only differ by the trailing '\r', which costs rstrip fuzz.
    assert result.ok
    assert result.fuzz == 1
    assert (tmp_path / "w.txt").read_bytes() == b"one\r\nthree\n"
    assert "Context matched with fuzz 1." in result.summary


def test_apply_patch_reports_missing_file(tmp_path):
    patch_text = "*** Begin Patch\n*** Delete File: nope.txt\n*** End Patch"

    result = apply_patch(patch_text, tmp_path)

    assert not result.ok
    assert result.outcome == "fail"
    assert result.changes == {}
    assert isinstance(result.error, DiffError)
    assert result.error.kind == PatchErrorKind.FILE_NOT_FOUND
    assert result.summary == (
        "Patch application failed. No changes were applied.\n"
        "Error:\n"
        "* nope.txt: File not found: nope.txt"
    )


def test_apply_patch_rejects_path_escape(tmp_path):
    root = tmp_path / "root"
    root.mkdir()
    patch_text = "*** Begin Patch\n*** Add File: ../evil.txt\n+x\n*** End Patch"

    result = apply_patch(patch_text, root)

    assert not result.ok
    assert result.error.kind == PatchErrorKind.PATH_ESCAPE
    assert not (tmp_path / "evil.txt").exists()


def test_apply_patch_rejects_absolute_path(tmp_path):
    patch_text = "*** Begin Patch\n*** Add File: /etc/evil.txt\n+x\n*** End Patch"

    result = apply_patch(patch_text, tmp_path)

    assert not result.ok
    assert result.error.kind == PatchErrorKind.ABSOLUTE_PATH


def test_apply_patch_partial_failure_is_reported(tmp_path):
    root = tmp_path / "root"
    root.mkdir()
    patch_text = """*** Begin Patch
*** Add File: ok.txt
+fine
*** Add File: ../bad.txt
+nope
*** End Patch"""

    result = apply_patch(patch_text, root)

    assert not result.ok
    # Earlier changes are not rolled back.
    assert (root / "ok.txt").read_text(encoding="utf-8") == "fine"
    assert result.changes == {"ok.txt": "created"}
    assert result.summary.startswith(
        "Patch application failed partway. These changes were already applied:\n"
        "* created: ok.txt\n"
        "Error:\n"
    )
    assert "Path escapes project root: ../bad.txt" in result.summary


def test_apply_patch_enforces_max_fuzz(tmp_path):
    (tmp_path / "f.py").write_text("    foo\nbar", encoding="utf-8")
    patch_text = """*** Begin Patch
*** Update File: f.py
 foo
-bar
+baz
*** End Patch"""

    result = apply_patch(patch_text, tmp_path, settings=Settings(max_fuzz=10))

    assert not result.ok
    assert result.error.kind == PatchErrorKind.FUZZ_LIMIT
    assert result.fuzz == 100
    assert "Patch context is too fuzzy: 100 > 10" in result.summary
    assert (tmp_path / "f.py").read_text(encoding="utf-8") == "    foo\nbar"

    result = apply_patch(patch_text, tmp_path, settings=Settings(max_fuzz=100))
    assert result.ok
    assert result.fuzz == 100
    assert (tmp_path / "f.py").read_text(encoding="utf-8") == "    foo\nbaz"


def test_apply_patch_with_custom_ops(tmp_path):
    ops = InMemoryFileOps({"a.txt": "1\n2"})
    patch_text = """*** Begin Patch
*** Update File: a.txt
 1
-2
+two
*** End Patch"""

    result = apply_patch(patch_text, tmp_path, ops=ops)

    assert result.ok
    assert ops.files == {"a.txt": "1\ntwo"}
    assert list(tmp_path.iterdir()) == []


def test_build_commit_does_not_write(tmp_path):
    (tmp_path / "a.txt").write_text("x", encoding="utf-8")
    ops = FileSystemPatchFileOps(tmp_path)
    patch_text = "*** Begin Patch\n*** Update File: a.txt\n-x\n+y\n*** End Patch"

    commit, fuzz = build_commit(patch_text, ops)

    assert commit.changes["a.txt"].new_content == "y"
    assert fuzz == 0
    assert ops.changes_map == {}
    assert (tmp_path / "a.txt").read_text(encoding="utf-8") == "x"


def test_build_commit_requires_begin_marker(tmp_path):
    with pytest.raises(DiffError) as exc:
        build_commit("hello", FileSystemPatchFileOps(tmp_path))
    assert exc.value.kind == PatchErrorKind.INVALID_PATCH_TEXT


def test_file_ops_track_change_kinds(tmp_path):
    ops = FileSystemPatchFileOps(tmp_path)
    ops.write("a.txt", "1")
    ops.write("a.txt", "2")
    ops.write("b.txt", "1")
    (tmp_path / "c.txt").write_text("old", encoding="utf-8")
    ops.write("c.txt", "new")
    ops.remove("b.txt")

    assert ops.changes_map == {
        "a.txt": "created",
        "b.txt": "deleted",
        "c.txt": "updated",
    }
    assert ops.open("a.txt") == "2"


@pytest.mark.parametrize("rel", ["../x.txt", "a/../../x.txt"])
def test_file_ops_reject_escaping_paths(tmp_path, rel):
    root = tmp_path / "root"
    root.mkdir()
    ops = FileSystemPatchFileOps(root)
    with pytest.raises(DiffError) as exc:
        ops.write(rel, "x")
    assert exc.value.kind == PatchErrorKind.PATH_ESCAPE


@pytest.mark.parametrize("rel", ["/tmp/x.txt", "~/x.txt"])
def test_file_ops_reject_absolute_paths(tmp_path, rel):
    ops = FileSystemPatchFileOps(tmp_path)
    with pytest.raises(DiffError) as exc:
        ops.open(rel)
    assert exc.value.kind == PatchErrorKind.ABSOLUTE_PATH


def test_eof_hunk_on_newline_terminated_file_passes_fuzz_limit(tmp_path):
    # "a\nb\nc\n" splits into a trailing empty line, so the tail attempt
    # misses and the EOF fallback is charged. It does not count against
    # max_fuzz.
    (tmp_path / "f.txt").write_text("a\nb\nc\n", encoding="utf-8")
    patch_text = """*** Begin Patch
*** Update File: f.txt
 b
-c
+C
*** EOF
*** End Patch"""

    result = apply_patch(patch_text, tmp_path, settings=Settings(max_fuzz=0))

    assert result.ok, result.summary
    assert result.fuzz == 10000
    assert (tmp_path / "f.txt").read_text(encoding="utf-8") == "a\nb\nC\n"


def test_eof_fallback_does_not_hide_whitespace_fuzz(tmp_path):
    (tmp_path / "f.txt").write_text("a\n  b\nc\n", encoding="utf-8")
    patch_text = """*** Begin Patch
*** Update File: f.txt
 b
-c
+C
*** EOF
*** End Patch"""

    result = apply_patch(patch_text, tmp_path, settings=Settings(max_fuzz=99))

    assert not result.ok
    assert result.error.kind == PatchErrorKind.FUZZ_LIMIT
    assert result.fuzz == 10100
    assert "Patch context is too fuzzy: 100 > 99" in result.summary
    assert (tmp_path / "f.txt").read_text(encoding="utf-8") == "a\n  b\nc\n"
