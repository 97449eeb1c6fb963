"""
VirtualFileSystem - the persisted folder/file tree behind MemSH.

The store owns a single tree plus the current-directory pointer. Every
successful mutation writes the full state through the record store before
returning, so a read that follows a write always sees it.
"""

from __future__ import annotations

import logging
from collections.abc import Iterator

from memsh import paths
from memsh.config import MemshConfig
from memsh.databases.base import BaseDatabase
from memsh.databases.sqlite_db import SQLiteDatabase
from memsh.exceptions import (
    AlreadyExistsError,
    InvalidNameError,
    NotEmptyError,
    NotFoundError,
)
from memsh.types import (
    FileNode,
    FolderNode,
    Listing,
    NodeType,
    VfsState,
    WalkEntry,
)

logger = logging.getLogger(__name__)

# Top-level folder that holds the shell's own state files
SYS_FOLDER = "sys"


class VirtualFileSystem:
    """
    VirtualFileSystem - in-memory folder tree persisted to a record store.

    Nodes are always looked up by re-descending from the root; no node
    reference is kept across a mutating call.
    """

    def __init__(
        self,
        config: MemshConfig | None = None,
        database: BaseDatabase | None = None,
    ):
        """
        Initialize the filesystem.

        Args:
            config: MemSH configuration. Uses in-memory defaults if not provided.
            database: Custom record store implementation.
        """
        self.config = config or MemshConfig.default_local()
        self.database = database or self._create_database()

        self._state = VfsState()
        self._initialized = False

    def _debug_log(self, message: str) -> None:
        """Log a debug message if debug mode is enabled."""
        if self.config.debug:
            logger.debug("[vfs] %s", message)

    def _create_database(self) -> BaseDatabase:
        """Create database based on config."""
        return SQLiteDatabase(db_path=self.config.storage.sqlite_path)

    def initialize(self) -> None:
        """Open the record store and load the persisted state once."""
        if self._initialized:
            return

        self.database.initialize()
        self._state = self.load()
        self._initialized = True

    def close(self) -> None:
        """Close the record store. State has already been persisted."""
        if not self._initialized:
            return

        self.database.close()
        self._initialized = False

    def __enter__(self) -> "VirtualFileSystem":
        if not self._initialized:
            self.initialize()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()

    @property
    def state(self) -> VfsState:
        return self._state

    @property
    def cwd(self) -> list[str]:
        return list(self._state.cwd)

    # =========================================================================
    # Persistence
    # =========================================================================

    def save(self) -> None:
        """Persist the whole state to the record store."""
        self.database.put_record(self.config.storage.vfs_key, self._state.to_dict())

    def load(self) -> VfsState:
        """Load the persisted state, falling back to a fresh empty root.

        A missing record, or one whose root is not a folder tree, yields the
        default state.
        """
        raw = self.database.get_record(self.config.storage.vfs_key)
        if raw is None:
            self._debug_log("no persisted state, starting empty")
            return VfsState()

        try:
            return VfsState.from_dict(raw)
        except (ValueError, KeyError, TypeError) as e:
            logger.warning("Persisted VFS state is invalid (%s); starting empty", e)
            return VfsState()

    def reset(self) -> None:
        """Reset the filesystem to an empty root and persist it."""
        self._state = VfsState()
        self._log_operation("reset", "/")
        self.save()

    # =========================================================================
    # Directory Operations
    # =========================================================================

    def get_cwd_path(self) -> str:
        """Get current working directory as a display path."""
        return paths.to_display_path(self._state.cwd)

    def change_directory(self, path: str) -> None:
        """
        Change the current directory.

        Raises:
            NotFoundError: If the path does not resolve to a folder.
        """
        parts = self._resolve(path)
        if self._resolve_folder(parts) is None:
            raise NotFoundError(f"no such file or directory: {path}", path=path)

        self._state.cwd = parts
        self._log_operation("cd", paths.to_display_path(parts))
        self.save()

    def mkdir(self, name: str) -> None:
        """
        Create an empty folder in the current directory.

        Only bare names are accepted; parents are never created implicitly.

        Raises:
            InvalidNameError: If the name is empty or contains a separator.
            AlreadyExistsError: If a file or folder of that name exists.
            NotFoundError: If the current directory no longer exists.
        """
        if not paths.is_bare_name(name):
            raise InvalidNameError(
                "folder name must be a simple name without path separators",
                path=name,
            )

        cwd = self._require_cwd_folder()
        if cwd.has_entry(name):
            raise AlreadyExistsError(
                f"cannot create directory '{name}': File exists", path=name
            )

        cwd.folders.append(FolderNode(name=name))
        self._log_operation("mkdir", paths.join_path(self.get_cwd_path(), name))
        self.save()

    def list(self, path: str = ".") -> Listing:
        """
        List the child folder and file names of a folder.

        Raises:
            NotFoundError: If the path does not resolve to a folder.
        """
        folder = self._resolve_folder(self._resolve(path))
        if folder is None:
            raise NotFoundError(
                f"cannot access '{path}': No such file or directory", path=path
            )
        return Listing(
            folders=[f.name for f in folder.folders],
            files=[f.name for f in folder.files],
        )

    def rmdir(self, name: str) -> None:
        """
        Remove an empty folder.

        Raises:
            NotFoundError: If no such folder exists.
            NotEmptyError: If the folder still has children.
        """
        parts = self._resolve(name)
        if not parts:
            raise InvalidNameError("refusing to remove the root folder", path=name)

        parent_parts, leaf = paths.split_parent(parts)
        parent = self._resolve_folder(parent_parts)
        folder = parent.find_folder(leaf) if parent else None
        if parent is None or folder is None:
            raise NotFoundError(
                f"failed to remove '{name}': No such file or directory", path=name
            )
        if not folder.is_empty():
            raise NotEmptyError(
                f"failed to remove '{name}': Directory not empty", path=name
            )

        parent.folders.remove(folder)
        self._log_operation("rmdir", paths.to_display_path(parts))
        self.save()

    def ensure_dir_path(self, path: str) -> None:
        """Create every missing folder along ``path`` without touching cwd.

        Raises:
            AlreadyExistsError: If a file occupies one of the segments.
        """
        current = self._state.root
        created = False
        for part in self._resolve(path):
            nxt = current.find_folder(part)
            if nxt is None:
                if current.find_file(part) is not None:
                    raise AlreadyExistsError(
                        f"cannot create directory '{part}': File exists", path=path
                    )
                nxt = FolderNode(name=part)
                current.folders.append(nxt)
                created = True
            current = nxt

        if created:
            self._log_operation("ensure_dir", path)
            self.save()

    # =========================================================================
    # File Operations
    # =========================================================================

    def write_file(self, path: str, content: str) -> None:
        """
        Create or overwrite a file.

        Raises:
            NotFoundError: If the parent folder does not exist.
            AlreadyExistsError: If the final segment names a folder.
            InvalidNameError: If the path resolves to the root.
        """
        parts = self._resolve(path)
        if not parts:
            raise InvalidNameError(f"cannot write '{path}': is the root folder", path=path)

        parent_parts, name = paths.split_parent(parts)
        parent = self._resolve_folder(parent_parts)
        if parent is None:
            raise NotFoundError(f"no such directory for path: {path}", path=path)
        if parent.find_folder(name) is not None:
            raise AlreadyExistsError(f"cannot write '{path}': is a folder", path=path)

        existing = parent.find_file(name)
        if existing is not None:
            existing.content = content
        else:
            parent.files.append(FileNode(name=name, content=content))

        self._log_operation(
            "write_file", paths.to_display_path(parts), {"size": len(content)}
        )
        self.save()

    def read_file(self, path: str) -> str:
        """
        Read file content.

        Raises:
            NotFoundError: If the parent folder or the file does not exist.
        """
        file = self._get_file(self._resolve(path))
        if file is None:
            raise NotFoundError(f"{path}: No such file", path=path)
        return file.content

    def unlink(self, path: str) -> None:
        """
        Delete a file.

        Raises:
            NotFoundError: If the file does not exist.
        """
        parts = self._resolve(path)
        parent_parts, name = paths.split_parent(parts)
        parent = self._resolve_folder(parent_parts) if parts else None
        file = parent.find_file(name) if parent else None
        if parent is None or file is None:
            raise NotFoundError(f"No such file: {path}", path=path)

        parent.files.remove(file)
        self._log_operation("unlink", paths.to_display_path(parts))
        self.save()

    def move(self, src: str, dst: str) -> str:
        """
        Move or rename a file or folder.

        If ``dst`` is an existing folder the node moves into it under its own
        name. Moving a node onto its own location is a silent no-op.

        Returns:
            Display path of the node after the move.

        Raises:
            NotFoundError: If the source or the destination folder is missing.
            AlreadyExistsError: If the destination name is taken.
            InvalidNameError: For the root, or a folder moved into itself.
        """
        src_parts = self._resolve(src)
        dst_parts = self._resolve(dst)

        if not src_parts:
            raise InvalidNameError("refusing to move root", path=src)

        src_parent_parts, src_name = paths.split_parent(src_parts)
        src_parent = self._resolve_folder(src_parent_parts)
        src_file = src_parent.find_file(src_name) if src_parent else None
        src_folder = (
            src_parent.find_folder(src_name) if src_parent and src_file is None else None
        )
        if src_file is None and src_folder is None:
            raise NotFoundError(
                f"cannot stat '{src}': No such file or directory", path=src
            )

        if dst_parts == src_parts:
            return paths.to_display_path(src_parts)

        dest_parent_parts, dest_name = paths.split_parent(dst_parts)
        if self._resolve_folder(dst_parts) is not None:
            dest_parent_parts, dest_name = dst_parts, src_name

        if not dest_name:
            raise InvalidNameError(f"invalid destination: {dst}", path=dst)

        final_parts = dest_parent_parts + [dest_name]
        if final_parts == src_parts:
            return paths.to_display_path(src_parts)

        if src_folder is not None and final_parts[: len(src_parts)] == src_parts:
            raise InvalidNameError(
                f"cannot move '{src}' into itself", path=src
            )

        dest_parent = self._resolve_folder(dest_parent_parts)
        if dest_parent is None:
            raise NotFoundError(
                f"cannot move to '{paths.to_display_path(dest_parent_parts)}': "
                "No such directory",
                path=dst,
            )
        if dest_parent.has_entry(dest_name):
            raise AlreadyExistsError(
                f"cannot move to '{dst}': destination exists", path=dst
            )

        if src_file is not None:
            src_parent.files.remove(src_file)
            src_file.name = dest_name
            dest_parent.files.append(src_file)
        else:
            src_parent.folders.remove(src_folder)
            src_folder.name = dest_name
            dest_parent.folders.append(src_folder)

            # Keep cwd pointing at the same folder when it moved with the tree.
            cwd = self._state.cwd
            if cwd[: len(src_parts)] == src_parts:
                self._state.cwd = final_parts + cwd[len(src_parts):]

        self._log_operation(
            "move",
            paths.to_display_path(src_parts),
            {"to": paths.to_display_path(final_parts)},
        )
        self.save()
        return paths.to_display_path(final_parts)

    def copy_file(self, src: str, dst: str) -> str:
        """
        Copy a file. An existing destination folder receives the source name.

        Returns:
            Display path of the written copy.
        """
        content = self.read_file(src)

        dest = dst
        if self.is_folder(dst):
            dest = paths.join_path(
                paths.normalize_from_cwd(self.get_cwd_path(), dst), paths.basename(src)
            )

        if self._resolve(dest) == self._resolve(src):
            return paths.to_display_path(self._resolve(src))

        self.write_file(dest, content)
        return paths.to_display_path(self._resolve(dest))

    # =========================================================================
    # Queries
    # =========================================================================

    def exists(self, path: str) -> bool:
        return self.is_folder(path) or self.is_file(path)

    def is_folder(self, path: str) -> bool:
        return self._resolve_folder(self._resolve(path)) is not None

    def is_file(self, path: str) -> bool:
        parts = self._resolve(path)
        return bool(parts) and self._get_file(parts) is not None

    def file_size(self, path: str) -> int:
        """Length of a file's content in characters."""
        return len(self.read_file(path))

    def child_count(self, path: str) -> int:
        """Number of direct children of a folder."""
        listing = self.list(path)
        return len(listing.folders) + len(listing.files)

    def walk(self, path: str = ".", max_depth: int | None = None) -> Iterator[WalkEntry]:
        """
        Walk a subtree depth-first in pre-order.

        At each level folders come before files and both are sorted by name.

        Raises:
            NotFoundError: If the start path does not exist.
        """
        start = self._resolve(path)
        if self._resolve_folder(start) is not None:
            start_type = NodeType.FOLDER
        elif start and self._get_file(start) is not None:
            start_type = NodeType.FILE
        else:
            raise NotFoundError(f"{path}: No such file or directory", path=path)

        stack: list[tuple[list[str], int, NodeType]] = [(start, 0, start_type)]
        while stack:
            parts, depth, node_type = stack.pop()
            yield WalkEntry(paths.to_display_path(parts), node_type, depth)

            if node_type is not NodeType.FOLDER:
                continue
            if max_depth is not None and depth >= max_depth:
                continue

            folder = self._resolve_folder(parts)
            if folder is None:
                continue

            # Pushed in reverse so that pops come out in sorted order.
            for name in sorted((f.name for f in folder.files), reverse=True):
                stack.append((parts + [name], depth + 1, NodeType.FILE))
            for name in sorted((f.name for f in folder.folders), reverse=True):
                stack.append((parts + [name], depth + 1, NodeType.FOLDER))

    def looks_empty(self) -> bool:
        """True when nothing but the shell's own /sys folder exists."""
        root = self._state.root
        others = [f for f in root.folders if f.name != SYS_FOLDER]
        return not others and not root.files

    # =========================================================================
    # Helpers
    # =========================================================================

    def _resolve(self, path: str) -> list[str]:
        return paths.resolve(self._state.cwd, path)

    def _resolve_folder(self, parts: list[str]) -> FolderNode | None:
        current = self._state.root
        for part in parts:
            nxt = current.find_folder(part)
            if nxt is None:
                return None
            current = nxt
        return current

    def _require_cwd_folder(self) -> FolderNode:
        folder = self._resolve_folder(self._state.cwd)
        if folder is None:
            raise NotFoundError(
                f"current directory no longer exists: {self.get_cwd_path()}",
                path=self.get_cwd_path(),
            )
        return folder

    def _get_file(self, parts: list[str]) -> FileNode | None:
        if not parts:
            return None
        parent_parts, name = paths.split_parent(parts)
        parent = self._resolve_folder(parent_parts)
        if parent is None:
            return None
        return parent.find_file(name)

    def _log_operation(
        self,
        operation: str,
        path: str,
        details: dict | None = None,
    ) -> None:
        """Log a filesystem operation."""
        if details:
            self._debug_log(f"{operation} {path} {details}")
        else:
            self._debug_log(f"{operation} {path}")


# =========================================================================
# Factory Functions
# =========================================================================


def create_vfs(
    config: MemshConfig | None = None,
    database: BaseDatabase | None = None,
) -> VirtualFileSystem:
    """
    Create and initialize a VirtualFileSystem.

    Args:
        config: Optional configuration. Uses in-memory defaults if not provided.
        database: Optional record store; overrides the configured backend.

    Returns:
        Initialized VirtualFileSystem instance.
    """
    vfs = VirtualFileSystem(config=config, database=database)
    vfs.initialize()
    return vfs
