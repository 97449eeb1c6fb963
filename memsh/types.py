"""
Core types for MemSH - the shell kernel layered over an in-memory filesystem.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any

FOLDER_TAG = "folder"
FILE_TAG = "file"
ROOT_NAME = "/"


# =============================================================================
# Enums
# =============================================================================


class NodeType(str, Enum):
    """Type of a filesystem node."""

    FILE = FILE_TAG
    FOLDER = FOLDER_TAG


class ErrorKind(str, Enum):
    """Failure taxonomy shared by the store, the dispatcher and the scripts."""

    UNKNOWN = "Unknown"
    NOT_FOUND = "NotFound"
    ALREADY_EXISTS = "AlreadyExists"
    NOT_EMPTY = "NotEmpty"
    INVALID_NAME = "InvalidName"
    DISPATCH_NOT_FOUND = "DispatchNotFound"
    SCRIPT_FAILURE = "ScriptFailure"


class CompletionKind(str, Enum):
    """What a completion session is completing."""

    COMMAND = "command"
    PATH = "path"


# =============================================================================
# Filesystem nodes
# =============================================================================


@dataclass
class FileNode:
    """A file: a name and an opaque text (or data-URL) blob."""

    name: str
    content: str = ""

    def to_dict(self) -> dict[str, Any]:
        return {"type": FILE_TAG, "name": self.name, "content": self.content}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "FileNode":
        if data.get("type", FILE_TAG) != FILE_TAG:
            raise ValueError(f"Expected a file node, got {data.get('type')!r}")
        name = data["name"]
        content = data.get("content", "")
        if not isinstance(name, str) or not isinstance(content, str):
            raise ValueError("File node name and content must be strings")
        return cls(name=name, content=content)


@dataclass
class FolderNode:
    """A folder holding child folders and files, each list unique by name."""

    name: str
    folders: list[FolderNode] = field(default_factory=list)
    files: list[FileNode] = field(default_factory=list)

    def find_folder(self, name: str) -> FolderNode | None:
        for folder in self.folders:
            if folder.name == name:
                return folder
        return None

    def find_file(self, name: str) -> FileNode | None:
        for file in self.files:
            if file.name == name:
                return file
        return None

    def has_entry(self, name: str) -> bool:
        return self.find_folder(name) is not None or self.find_file(name) is not None

    def is_empty(self) -> bool:
        return not self.folders and not self.files

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "type": FOLDER_TAG,
            "name": self.name,
            "folders": [f.to_dict() for f in self.folders],
            "files": [f.to_dict() for f in self.files],
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "FolderNode":
        """Create from dictionary (JSON deserialization).

        Raises:
            ValueError: If the structure is not a folder tree.
        """
        if not isinstance(data, dict) or data.get("type") != FOLDER_TAG:
            raise ValueError("Expected a folder node")
        name = data.get("name", "")
        if not isinstance(name, str):
            raise ValueError("Folder name must be a string")
        folders = data.get("folders", [])
        files = data.get("files", [])
        if not isinstance(folders, list) or not isinstance(files, list):
            raise ValueError("Folder children must be lists")
        return cls(
            name=name,
            folders=[cls.from_dict(f) for f in folders],
            files=[FileNode.from_dict(f) for f in files],
        )


@dataclass
class Listing:
    """Names of the direct children of a folder, in stored order."""

    folders: list[str] = field(default_factory=list)
    files: list[str] = field(default_factory=list)

    def entries(self) -> list[tuple[str, NodeType]]:
        return [(name, NodeType.FOLDER) for name in self.folders] + [
            (name, NodeType.FILE) for name in self.files
        ]


@dataclass
class WalkEntry:
    """One node yielded by a depth-first walk."""

    path: str
    node_type: NodeType
    depth: int


@dataclass
class VfsState:
    """The whole persisted filesystem: the tree plus the cwd segments."""

    root: FolderNode = field(default_factory=lambda: FolderNode(name=ROOT_NAME))
    cwd: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {"root": self.root.to_dict(), "cwd": list(self.cwd)}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "VfsState":
        if not isinstance(data, dict):
            raise ValueError("VFS state must be an object")
        root = data.get("root")
        if not isinstance(root, dict) or root.get("type") != FOLDER_TAG:
            raise ValueError("VFS root must be a folder")
        # Older snapshots stored the cwd under "cwdParts".
        cwd = data.get("cwd", data.get("cwdParts", []))
        if not isinstance(cwd, list) or not all(isinstance(p, str) for p in cwd):
            cwd = []
        return cls(root=FolderNode.from_dict(root), cwd=list(cwd))


@dataclass
class Env:
    """Command resolution environment: PATH folders and aliases."""

    PATH: list[str] = field(default_factory=lambda: ["/bin"])
    ALIAS: dict[str, str] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {"PATH": list(self.PATH), "ALIAS": dict(self.ALIAS)}


# =============================================================================
# Tokenizer types
# =============================================================================


@dataclass
class Token:
    """A single parsed token with its raw span in the input line."""

    value: str
    raw_start: int
    raw_end: int
    quote_char: str | None = None
    had_quotes: bool = False


@dataclass
class TokenizeResult:
    """Result of tokenizing a command line."""

    tokens: list[Token] = field(default_factory=list)
    ends_with_space: bool = False
    unterminated_quote: bool = False

    @property
    def values(self) -> list[str]:
        return [t.value for t in self.tokens]


@dataclass
class ParsedCommand:
    """A command line reduced to a command word and its arguments."""

    command: str
    args: list[str] = field(default_factory=list)


# =============================================================================
# Dispatch types
# =============================================================================


@dataclass
class CommandResult:
    """Standard result format for dispatching a command line."""

    handled: bool = True
    should_continue: bool = True
    ok: bool = True
    error: BaseException | None = None

    @classmethod
    def success(cls) -> "CommandResult":
        return cls(handled=True, should_continue=True, ok=True)

    @classmethod
    def failure(cls, error: BaseException | str) -> "CommandResult":
        if isinstance(error, str):
            error = RuntimeError(error)
        return cls(handled=True, should_continue=True, ok=False, error=error)

    @classmethod
    def unhandled(cls, error: BaseException | None = None) -> "CommandResult":
        return cls(handled=False, should_continue=True, ok=False, error=error)

    @classmethod
    def stop(cls) -> "CommandResult":
        return cls(handled=True, should_continue=False, ok=True)
