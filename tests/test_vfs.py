"""Tests for the VirtualFileSystem store."""

import pytest

from memsh.exceptions import (
    AlreadyExistsError,
    InvalidNameError,
    NotEmptyError,
    NotFoundError,
)
from memsh.types import ErrorKind, NodeType
from memsh.vfs import VirtualFileSystem
from tests.conftest import store_raw_record


def reload(vfs: VirtualFileSystem) -> VirtualFileSystem:
    """Open a second store instance over the same record store."""
    fresh = VirtualFileSystem(config=vfs.config, database=vfs.database)
    fresh.initialize()
    return fresh


class TestDirectories:
    def test_starts_at_empty_root(self, vfs):
        assert vfs.get_cwd_path() == "/"
        listing = vfs.list()
        assert listing.folders == []
        assert listing.files == []

    def test_mkdir_twice_then_rmdir_twice(self, vfs):
        vfs.mkdir("a")
        with pytest.raises(AlreadyExistsError) as exc:
            vfs.mkdir("a")
        assert exc.value.kind is ErrorKind.ALREADY_EXISTS

        vfs.rmdir("a")
        with pytest.raises(NotFoundError):
            vfs.rmdir("a")

    def test_mkdir_collides_with_file(self, vfs):
        vfs.write_file("/a", "x")
        with pytest.raises(AlreadyExistsError):
            vfs.mkdir("a")

    @pytest.mark.parametrize("name", ["", "a/b", "/abs", ".", ".."])
    def test_mkdir_rejects_non_bare_names(self, vfs, name):
        with pytest.raises(InvalidNameError):
            vfs.mkdir(name)

    def test_mkdir_is_relative_to_cwd(self, vfs):
        vfs.mkdir("home")
        vfs.change_directory("home")
        vfs.mkdir("user")
        assert vfs.list("/home").folders == ["user"]

    def test_rmdir_not_empty(self, vfs):
        vfs.mkdir("a")
        vfs.write_file("/a/f.txt", "")
        with pytest.raises(NotEmptyError):
            vfs.rmdir("a")

    def test_change_directory(self, vfs):
        vfs.ensure_dir_path("/home/user")
        vfs.change_directory("/home/user")
        assert vfs.get_cwd_path() == "/home/user"
        vfs.change_directory("..")
        assert vfs.get_cwd_path() == "/home"
        vfs.change_directory("../..")
        assert vfs.get_cwd_path() == "/"

    def test_change_directory_missing_or_file(self, vfs):
        vfs.write_file("/f.txt", "")
        with pytest.raises(NotFoundError):
            vfs.change_directory("nowhere")
        with pytest.raises(NotFoundError):
            vfs.change_directory("f.txt")
        assert vfs.get_cwd_path() == "/"

    def test_list_missing_or_file(self, vfs):
        vfs.write_file("/f.txt", "")
        with pytest.raises(NotFoundError):
            vfs.list("/missing")
        with pytest.raises(NotFoundError):
            vfs.list("/f.txt")

    def test_ensure_dir_path_keeps_cwd(self, vfs):
        vfs.ensure_dir_path("/a/b/c")
        assert vfs.get_cwd_path() == "/"
        assert vfs.is_folder("/a/b/c")
        vfs.ensure_dir_path("/a/b/c")
        assert vfs.list("/a").folders == ["b"]


class TestFiles:
    def test_write_read_overwrite(self, vfs):
        vfs.write_file("/x.txt", "hello")
        assert vfs.read_file("/x.txt") == "hello"
        vfs.write_file("/x.txt", "world")
        assert vfs.read_file("/x.txt") == "world"
        assert vfs.list("/").files == ["x.txt"]

    def test_write_needs_parent(self, vfs):
        with pytest.raises(NotFoundError):
            vfs.write_file("/missing/x.txt", "")

    def test_write_onto_folder_fails(self, vfs):
        vfs.mkdir("docs")
        with pytest.raises(AlreadyExistsError):
            vfs.write_file("/docs", "text")
        assert vfs.is_folder("/docs")

    def test_read_missing(self, vfs):
        with pytest.raises(NotFoundError):
            vfs.read_file("/nope.txt")
        with pytest.raises(NotFoundError):
            vfs.read_file("/nope/file.txt")

    def test_unlink(self, vfs):
        vfs.write_file("/x.txt", "")
        vfs.unlink("/x.txt")
        assert not vfs.exists("/x.txt")
        with pytest.raises(NotFoundError):
            vfs.unlink("/x.txt")

    def test_content_is_opaque(self, vfs):
        blob = "data:image/png;base64,iVBORw0KGgo="
        vfs.write_file("/pic.png", blob)
        assert vfs.read_file("/pic.png") == blob

    def test_existence_checks(self, vfs):
        vfs.mkdir("d")
        vfs.write_file("/d/f", "abc")
        assert vfs.is_folder("/d") and not vfs.is_file("/d")
        assert vfs.is_file("/d/f") and not vfs.is_folder("/d/f")
        assert not vfs.exists("/d/g")
        assert vfs.file_size("/d/f") == 3
        assert vfs.child_count("/d") == 1


class TestMoveAndCopy:
    def test_rename_file(self, vfs):
        vfs.write_file("/a.txt", "A")
        assert vfs.move("a.txt", "b.txt") == "/b.txt"
        assert vfs.read_file("/b.txt") == "A"
        assert not vfs.exists("/a.txt")

    def test_move_into_existing_folder(self, vfs):
        vfs.mkdir("docs")
        vfs.write_file("/a.txt", "A")
        assert vfs.move("a.txt", "docs") == "/docs/a.txt"

    def test_move_onto_itself_is_noop(self, vfs):
        vfs.write_file("/a.txt", "A")
        assert vfs.move("a.txt", "/a.txt") == "/a.txt"
        assert vfs.read_file("/a.txt") == "A"

    def test_move_into_own_parent_is_noop(self, vfs):
        vfs.ensure_dir_path("/docs")
        vfs.write_file("/docs/a.txt", "A")
        assert vfs.move("/docs/a.txt", "/docs") == "/docs/a.txt"

    def test_move_collision(self, vfs):
        vfs.write_file("/a.txt", "A")
        vfs.write_file("/b.txt", "B")
        with pytest.raises(AlreadyExistsError):
            vfs.move("a.txt", "b.txt")

    def test_move_folder_into_itself(self, vfs):
        vfs.ensure_dir_path("/a/b")
        with pytest.raises(InvalidNameError):
            vfs.move("/a", "/a/b")

    def test_move_root(self, vfs):
        with pytest.raises(InvalidNameError):
            vfs.move("/", "/x")

    def test_move_missing_source(self, vfs):
        with pytest.raises(NotFoundError):
            vfs.move("/nope", "/x")

    def test_cwd_follows_moved_folder(self, vfs):
        vfs.ensure_dir_path("/a/b")
        vfs.change_directory("/a/b")
        vfs.move("/a", "/z")
        assert vfs.get_cwd_path() == "/z/b"

    def test_copy_file_into_folder(self, vfs):
        vfs.mkdir("docs")
        vfs.write_file("/a.txt", "A")
        assert vfs.copy_file("a.txt", "docs") == "/docs/a.txt"
        assert vfs.read_file("/docs/a.txt") == "A"
        assert vfs.read_file("/a.txt") == "A"

    def test_copy_onto_itself_is_noop(self, vfs):
        vfs.write_file("/a.txt", "A")
        assert vfs.copy_file("a.txt", "/a.txt") == "/a.txt"


class TestWalk:
    def test_pre_order_folders_first_sorted(self, vfs):
        vfs.ensure_dir_path("/r/b")
        vfs.ensure_dir_path("/r/a")
        vfs.write_file("/r/z.txt", "")
        vfs.write_file("/r/a/1.txt", "")

        entries = [(e.path, e.node_type, e.depth) for e in vfs.walk("/r")]
        assert entries == [
            ("/r", NodeType.FOLDER, 0),
            ("/r/a", NodeType.FOLDER, 1),
            ("/r/a/1.txt", NodeType.FILE, 2),
            ("/r/b", NodeType.FOLDER, 1),
            ("/r/z.txt", NodeType.FILE, 1),
        ]

    def test_max_depth(self, vfs):
        vfs.ensure_dir_path("/r/a/b")
        assert [e.path for e in vfs.walk("/r", max_depth=1)] == ["/r", "/r/a"]

    def test_missing_start(self, vfs):
        with pytest.raises(NotFoundError):
            list(vfs.walk("/missing"))


class TestPersistence:
    def test_every_mutation_is_written_through(self, vfs):
        vfs.mkdir("a")
        record = vfs.database.get_record(vfs.config.storage.vfs_key)
        assert record["root"]["type"] == "folder"
        assert [f["name"] for f in record["root"]["folders"]] == ["a"]

    def test_state_survives_reload(self, vfs):
        vfs.ensure_dir_path("/home/user")
        vfs.write_file("/home/user/notes.md", "# hi")
        vfs.change_directory("/home/user")

        again = reload(vfs)
        assert again.get_cwd_path() == "/home/user"
        assert again.read_file("notes.md") == "# hi"

    def test_undecodable_record_falls_back(self, vfs):
        store_raw_record(vfs.database, vfs.config.storage.vfs_key, "{not json")
        again = reload(vfs)
        assert again.list("/").folders == []
        assert again.get_cwd_path() == "/"

    def test_wrong_root_type_falls_back(self, vfs):
        vfs.database.put_record(
            vfs.config.storage.vfs_key, {"root": {"type": "file", "name": "x"}, "cwd": []}
        )
        again = reload(vfs)
        assert again.list("/").files == []

    def test_reset(self, vfs):
        vfs.ensure_dir_path("/a/b")
        vfs.change_directory("/a")
        vfs.reset()
        assert vfs.get_cwd_path() == "/"
        assert reload(vfs).list("/").folders == []

    def test_looks_empty_ignores_sys(self, vfs):
        assert vfs.looks_empty()
        vfs.ensure_dir_path("/sys")
        assert vfs.looks_empty()
        vfs.mkdir("bin")
        assert not vfs.looks_empty()
