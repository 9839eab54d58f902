"""Tests for the Fs container: parse, flush, mirror and rendering."""

from __future__ import annotations

from pathlib import Path
from unittest.mock import MagicMock

import pytest

from stagedfs.config import FlushOptions
from stagedfs.errors import InvalidPathError, RootNotConfiguredError, StructureConflictError
from stagedfs.fs import Fs, at, from_fs, parse
from stagedfs.types import Entry


def write(fs: Fs, path: str, data: bytes) -> None:
    """Write bytes to a node's backing file."""
    with fs.get(path).open(truncate=True) as stream:
        stream.write(data)


class TestConstruction:
    """Tests for at/parse factories."""

    def test_at_touches_nothing(self, root_dir: Path) -> None:
        """Test at() binds a root without creating it."""
        fs = at(root_dir)

        assert fs.count == 0
        assert not root_dir.exists()
        assert repr(fs) == f"Fs({str(root_dir)!r})"

    def test_parse_round_trip(self, tmp_path: Path) -> None:
        """Test a parsed tree lists every physical path."""
        (tmp_path / "p" / "q").mkdir(parents=True)
        (tmp_path / "p" / "q" / "r.txt").write_text("r")

        fs = parse(tmp_path)

        assert fs.children_paths(-1, False) == ["/p", "/p/q", "/p/q/r.txt"]
        assert fs.find("/p/q/r.txt").committed

    def test_parse_types(self, populated_dir: Path) -> None:
        """Test parsed nodes keep their physical type."""
        fs = parse(populated_dir)

        assert [d.name for d in fs.directories()] == ["abc", "ghi"]
        assert [d.name for d in fs.files()] == ["top.txt"]
        assert fs.find("/abc/def").is_directory

    def test_parse_replaces_tree(self, populated_dir: Path) -> None:
        """Test parse discards staged in-memory nodes."""
        fs = Fs(populated_dir)
        fs.get("/staged/only")

        fs.parse()

        assert fs.find("/staged") is None
        assert fs.find("/top.txt") is not None

    def test_parse_without_root(self) -> None:
        """Test parse requires a root path."""
        with pytest.raises(RootNotConfiguredError):
            Fs().parse()

    def test_parse_missing_root(self, tmp_path: Path) -> None:
        """Test parsing a missing directory propagates the storage error."""
        with pytest.raises(FileNotFoundError):
            parse(tmp_path / "missing")

    def test_parse_file_root(self, tmp_path: Path) -> None:
        """Test parsing a file root propagates the storage error."""
        target = tmp_path / "file.txt"
        target.touch()

        with pytest.raises(NotADirectoryError):
            parse(target)

    def test_parse_failure_keeps_tree(self, mock_storage: MagicMock, root_dir: Path) -> None:
        """Test a failed parse leaves the current tree in place."""
        fs = Fs(root_dir, mock_storage)
        staged = fs.get("/staged")
        mock_storage.list_directory.side_effect = PermissionError("denied")

        with pytest.raises(PermissionError):
            fs.parse()
        assert fs.find("/staged") is staged

    def test_parse_failure_keeps_pending(self, mock_storage: MagicMock, root_dir: Path) -> None:
        """Test a listing failing partway leaves pending deletions untouched."""
        fs = Fs(root_dir, mock_storage)
        fs.get("/a").delete()
        fs.get("/kept")

        def list_directory(path: Path) -> list[Entry]:
            if path == root_dir:
                return [Entry("a", False), Entry("z", True)]
            raise PermissionError("denied")

        mock_storage.list_directory.side_effect = list_directory

        with pytest.raises(PermissionError):
            fs.parse()
        assert fs.pending_deletions == ["/a"]
        assert fs.children_paths() == ["/kept"]

    def test_parse_drops_pending_found_on_storage(self, mock_storage: MagicMock, root_dir: Path) -> None:
        """Test pending paths present on storage are dropped after a parse."""
        fs = Fs(root_dir, mock_storage)
        fs.get("/a").delete()
        fs.get("/gone").delete()
        mock_storage.list_directory.side_effect = lambda path: [Entry("a", False)]

        fs.parse()

        assert fs.pending_deletions == ["/gone"]
        assert fs.find("/a").committed

    def test_parse_uses_storage_listing(self, mock_storage: MagicMock, root_dir: Path) -> None:
        """Test parse walks directories through list_directory."""
        listings = {
            root_dir: [Entry("dir", True), Entry("file", False)],
            root_dir / "dir": [Entry("inner", False)],
        }
        mock_storage.list_directory.side_effect = lambda path: listings[path]

        fs = parse(root_dir, mock_storage)

        assert fs.children_paths() == ["/dir", "/dir/inner", "/file"]


class TestFlush:
    """Tests for the commit engine."""

    def test_flush_materializes_tree(self, fs: Fs) -> None:
        """Test every live node exists on storage after a flush."""
        fs.get("/abc/file1.ext")
        fs.get("/abc/def/file2.ext")
        fs.get("/empty", directory=True)

        fs.flush()

        assert (fs.absolute_path / "abc" / "file1.ext").is_file()
        assert (fs.absolute_path / "abc" / "def" / "file2.ext").is_file()
        assert (fs.absolute_path / "empty").is_dir()

    def test_flush_empty_tree_creates_root(self, fs: Fs) -> None:
        """Test flushing an empty tree creates the root directory."""
        fs.flush()

        assert fs.absolute_path.is_dir()

    def test_flush_existing_file_without_overwrite(self, fs: Fs) -> None:
        """Test a staged file colliding with storage fails the flush."""
        fs.absolute_path.mkdir(parents=True)
        (fs.absolute_path / "taken.txt").write_text("keep")
        fs.get("/taken.txt")

        with pytest.raises(FileExistsError):
            fs.flush()
        assert (fs.absolute_path / "taken.txt").read_text() == "keep"

    def test_flush_existing_file_with_overwrite(self, fs: Fs) -> None:
        """Test overwrite truncates a colliding staged file."""
        fs.absolute_path.mkdir(parents=True)
        (fs.absolute_path / "taken.txt").write_text("old")
        fs.get("/taken.txt")

        fs.flush(overwrite=True)

        assert (fs.absolute_path / "taken.txt").read_text() == ""

    def test_flush_parsed_tree_keeps_content(self, populated_dir: Path) -> None:
        """Test flushing a parsed tree neither fails nor truncates."""
        fs = parse(populated_dir)

        fs.flush()
        fs.flush(overwrite=True)

        assert (populated_dir / "abc" / "file1.ext").read_text() == "abc-1"

    def test_flush_twice_without_overwrite(self, fs: Fs) -> None:
        """Test files written by a flush are committed for the next one."""
        fs.get("/a.txt")
        fs.flush()
        write(fs, "/a.txt", b"data")

        fs.flush()

        assert (fs.absolute_path / "a.txt").read_bytes() == b"data"

    def test_flush_partial_failure_is_not_rolled_back(self, mock_storage: MagicMock, root_dir: Path) -> None:
        """Test the first failure stops the flush and earlier nodes stay."""
        fs = Fs(root_dir, mock_storage)
        fs.get("/a")
        fs.get("/b")
        fs.get("/c")
        fs.get("/gone").delete()
        mock_storage.create_file.side_effect = [None, OSError("disk full"), None]

        with pytest.raises(OSError, match="disk full"):
            fs.flush(remove=True)

        created = [c.args[0] for c in mock_storage.create_file.call_args_list]
        assert created == [root_dir / "a", root_dir / "b"]
        assert fs.find("/a").committed
        assert not fs.find("/b").committed
        mock_storage.remove_one.assert_not_called()
        assert fs.pending_deletions == []

    def test_flush_without_remove_keeps_storage(self, fs: Fs) -> None:
        """Test pending deletions are dropped but not applied without remove."""
        fs.get("/a.txt")
        fs.flush()
        fs.find("/a.txt").delete()

        fs.flush()

        assert (fs.absolute_path / "a.txt").exists()
        assert fs.pending_deletions == []

    def test_flush_remove_prunes_subtree(self, populated_dir: Path) -> None:
        """Test a recursive delete is pruned with non-recursive removals."""
        fs = parse(populated_dir)
        fs.find("/abc").delete(recursive=True)

        fs.flush(remove=True)

        assert not (populated_dir / "abc").exists()
        assert (populated_dir / "ghi" / "file1.ext").exists()
        assert fs.pending_deletions == []

    def test_prune_order_deepest_first(self, mock_storage: MagicMock, root_dir: Path) -> None:
        """Test children are removed before their ancestors."""
        fs = Fs(root_dir, mock_storage)
        fs.get("/a/b/c")
        fs.get("/a-b")
        fs.get("/z")
        fs.find("/a").delete(recursive=True)
        fs.find("/a-b").delete()

        fs.flush(remove=True)

        removed = [c.args[0] for c in mock_storage.remove_one.call_args_list]
        assert removed == [
            root_dir / "a" / "b" / "c",
            root_dir / "a" / "b",
            root_dir / "a-b",
            root_dir / "a",
        ]

    def test_prune_order_on_disk(self, tmp_path: Path) -> None:
        """Test '/a/b' is removed before '/a' so '/a' is empty in time."""
        (tmp_path / "a" / "b").mkdir(parents=True)
        fs = parse(tmp_path)
        fs.find("/a").delete(recursive=True)
        assert fs.pending_deletions == ["/a", "/a/b"]

        fs.flush(remove=True)

        assert not (tmp_path / "a").exists()

    def test_prune_tolerates_absent_paths(self, fs: Fs) -> None:
        """Test pending paths that never reached storage are skipped."""
        fs.get("/never/written").parent.delete(recursive=True)

        fs.flush(remove=True)

        assert fs.pending_deletions == []

    def test_prune_other_error_aborts(self, mock_storage: MagicMock, root_dir: Path) -> None:
        """Test a removal error other than not-found propagates."""
        fs = Fs(root_dir, mock_storage)
        fs.get("/a")
        fs.get("/b")
        fs.delete(recursive=True)
        mock_storage.remove_one.side_effect = PermissionError("denied")

        with pytest.raises(PermissionError):
            fs.flush(remove=True)

        assert mock_storage.remove_one.call_count == 1
        assert fs.pending_deletions == []

    def test_prune_skips_recreated_path(self, populated_dir: Path) -> None:
        """Test a path recreated after deletion survives the flush."""
        fs = parse(populated_dir)
        fs.find("/top.txt").delete()
        fs.new_file("top.txt")

        fs.flush(overwrite=True, remove=True)

        assert (populated_dir / "top.txt").exists()

    def test_flush_overwrite_remove_property(self, populated_dir: Path) -> None:
        """Test live nodes exist and pending paths are gone after a full flush."""
        fs = parse(populated_dir)
        fs.find("/abc/def").delete(recursive=True)
        fs.find("/top.txt").delete()
        fs.get("/new/dir/leaf.txt")
        fs.get("/ghi/extra", directory=True)
        pending = fs.pending_deletions

        fs.flush(overwrite=True, remove=True)

        for descriptor in fs.walk():
            assert descriptor.physical_path.exists(), descriptor.path()
        for rel_path in pending:
            assert not (populated_dir / rel_path.lstrip("/")).exists(), rel_path

    def test_flush_with_options(self, mock_storage: MagicMock, root_dir: Path) -> None:
        """Test flush_with forwards the model's flags."""
        fs = Fs(root_dir, mock_storage)
        fs.get("/x")
        fs.find("/x").delete()
        fs.get("/y")

        fs.flush_with(FlushOptions(overwrite=True, remove=True))

        mock_storage.create_file.assert_called_once_with(
            root_dir / "y", truncate=True, fail_if_exists=False
        )
        mock_storage.remove_one.assert_called_once_with(root_dir / "x")


class TestMirror:
    """Tests for mirroring one tree into another."""

    @pytest.fixture
    def source(self, tmp_path: Path) -> Fs:
        """Create a flushed source tree with file contents."""
        fs = Fs(tmp_path / "source")
        fs.get("/x/f1")
        fs.get("/x/f2")
        fs.get("/x/empty", directory=True)
        fs.flush()
        write(fs, "/x/f1", b"first file")
        write(fs, "/x/f2", b"second file")
        return fs

    def test_mirror_with_content(self, source: Fs, tmp_path: Path) -> None:
        """Test files land at the same paths with identical bytes."""
        target = Fs(tmp_path / "target")

        source.mirror(target)
        target.flush()

        assert target.children_paths() == source.children_paths()
        for name in ("f1", "f2"):
            mirrored = tmp_path / "target" / "x" / name
            original = tmp_path / "source" / "x" / name
            assert mirrored.read_bytes() == original.read_bytes()
        assert (tmp_path / "target" / "x" / "empty").is_dir()

    def test_mirror_structure_only(self, source: Fs, tmp_path: Path) -> None:
        """Test content=False creates empty files."""
        target = Fs(tmp_path / "target")

        source.mirror(target, content=False)

        assert (tmp_path / "target" / "x" / "f1").read_bytes() == b""
        assert (tmp_path / "target" / "x" / "f2").read_bytes() == b""

    def test_mirror_non_recursive(self, source: Fs, tmp_path: Path) -> None:
        """Test recursive=False mirrors only the given node."""
        target = Fs(tmp_path / "target")

        source.find("/x").mirror(target, recursive=False)

        assert target.children_paths() == ["/x"]
        assert (tmp_path / "target" / "x").is_dir()
        assert not (tmp_path / "target" / "x" / "f1").exists()

    def test_mirror_single_file(self, source: Fs, tmp_path: Path) -> None:
        """Test mirroring a file creates its directories in the target."""
        target = Fs(tmp_path / "target")

        source.find("/x/f2").mirror(target)

        assert target.children_paths() == ["/x", "/x/f2"]
        assert (tmp_path / "target" / "x" / "f2").read_bytes() == b"second file"

    def test_mirror_keeps_existing_without_overwrite(self, source: Fs, tmp_path: Path) -> None:
        """Test an existing target file is left untouched."""
        existing = tmp_path / "target" / "x" / "f1"
        existing.parent.mkdir(parents=True)
        existing.write_bytes(b"target version")
        target = Fs(tmp_path / "target")

        source.mirror(target)
        target.flush()

        assert existing.read_bytes() == b"target version"
        assert (tmp_path / "target" / "x" / "f2").read_bytes() == b"second file"

    def test_mirror_overwrite_replaces(self, source: Fs, tmp_path: Path) -> None:
        """Test overwrite replaces an existing target file's content."""
        existing = tmp_path / "target" / "x" / "f1"
        existing.parent.mkdir(parents=True)
        existing.write_bytes(b"a much longer target version")
        target = Fs(tmp_path / "target")

        source.mirror(target, overwrite=True)

        assert existing.read_bytes() == b"first file"

    def test_mirror_never_deletes(self, source: Fs, tmp_path: Path) -> None:
        """Test target-only files survive a mirror."""
        extra = tmp_path / "target" / "x" / "extra.txt"
        extra.parent.mkdir(parents=True)
        extra.write_text("mine")
        target = parse(tmp_path / "target")

        source.mirror(target)
        target.flush(remove=True)

        assert extra.read_text() == "mine"
        assert "/x/extra.txt" in target.children_paths()

    def test_mirror_structure_conflict(self, source: Fs, tmp_path: Path) -> None:
        """Test a target file where the source has a directory conflicts."""
        target = Fs(tmp_path / "target")
        conflicting = target.get("/x")

        with pytest.raises(StructureConflictError) as exc_info:
            source.mirror(target)
        assert exc_info.value.descriptor is conflicting
        assert isinstance(exc_info.value, InvalidPathError)

    def test_mirror_structure_conflict_file_over_directory(self, source: Fs, tmp_path: Path) -> None:
        """Test a target directory where the source has a file conflicts."""
        target = Fs(tmp_path / "target")
        target.get("/x/f1", directory=True)

        with pytest.raises(StructureConflictError):
            source.find("/x/f1").mirror(target)

    def test_mirror_through_target_file(self, source: Fs, tmp_path: Path) -> None:
        """Test an intermediate target file surfaces as an invalid path."""
        target = Fs(tmp_path / "target")
        target.get("/x")

        with pytest.raises(InvalidPathError) as exc_info:
            source.find("/x/f1").mirror(target)
        assert not isinstance(exc_info.value, StructureConflictError)

    def test_mirror_read_only_source(self, source: Fs, tmp_path: Path) -> None:
        """Test a read-only source file is mirrored with its content."""
        source_file = tmp_path / "source" / "x" / "f1"
        source_file.chmod(0o444)
        target = Fs(tmp_path / "target")

        try:
            source.find("/x/f1").mirror(target)
        finally:
            source_file.chmod(0o644)

        assert (tmp_path / "target" / "x" / "f1").read_bytes() == b"first file"

    def test_mirror_opens_source_read_only(self, mock_storage: MagicMock, root_dir: Path, tmp_path: Path) -> None:
        """Test only the target file is opened for writing."""
        source = Fs(root_dir, mock_storage)
        source.get("/f")
        target = Fs(tmp_path / "target", mock_storage)
        mock_storage.copy_stream.return_value = 0

        source.mirror(target)

        mock_storage.open_read.assert_called_once_with(root_dir / "f")
        mock_storage.open_read_write.assert_called_once_with(
            tmp_path / "target" / "f", truncate=True
        )

    def test_mirror_unflushed_source(self, tmp_path: Path) -> None:
        """Test copying content from a file missing on storage fails."""
        source = Fs(tmp_path / "source")
        source.get("/staged.txt")
        target = Fs(tmp_path / "target")

        with pytest.raises(FileNotFoundError):
            source.mirror(target)
        assert not (tmp_path / "source" / "staged.txt").exists()

    def test_from_fs(self, source: Fs, tmp_path: Path) -> None:
        """Test from_fs builds a mirrored Fs at a new root."""
        mirrored = from_fs(tmp_path / "copy", source)

        assert mirrored is not source
        assert mirrored.absolute_path == tmp_path / "copy"
        assert mirrored.storage is source.storage
        assert (tmp_path / "copy" / "x" / "f1").read_bytes() == b"first file"
        for descriptor in source.walk():
            assert mirrored.find(descriptor.path()) is not None


class TestRender:
    """Tests for the plain text rendering."""

    def test_str_indents_children(self, fs: Fs) -> None:
        """Test one line per node, two spaces per level, names sorted."""
        fs.get("/ghi", directory=True)
        fs.get("/abc/file1")
        fs.get("/abc/def/file2")

        assert str(fs) == (
            " abc\n"
            "   def\n"
            "     file2\n"
            "   file1\n"
            " ghi\n"
        )

    def test_str_empty(self, fs: Fs) -> None:
        """Test an empty tree renders as an empty string."""
        assert str(fs) == ""
