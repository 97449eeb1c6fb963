"""
MemSH - a small command shell over a persisted, in-memory virtual filesystem.

The shell kernel has three parts: the VirtualFileSystem (a folder tree with a
current directory, written through to a record store on every change), the
Dispatcher (quote-aware parsing, aliases, PATH lookup and command scripts)
and the CompletionEngine (Tab completion that cycles over ambiguous matches).

Scripted Usage:
    from memsh import Shell, create_vfs

    with create_vfs() as vfs:           # in-memory by default
        shell = Shell(vfs)
        shell.bootstrap()               # loads /sys and runs `init` once
        shell.run_line("mkdir notes")
        shell.run_line("ls -l")

Interactive Usage:
    $ memsh                             # persisted in ~/.memsh/memsh.db
"""

from memsh.completion import CompletionEngine, CompletionOutcome, CompletionState
from memsh.config import MemshConfig, ShellConfig, StorageConfig
from memsh.dispatcher import CommandRegistry, Dispatcher
from memsh.env import ShellEnvironment
from memsh.exceptions import (
    AlreadyExistsError,
    DispatchNotFoundError,
    InvalidNameError,
    MemshError,
    NotEmptyError,
    NotFoundError,
    ScriptFailureError,
)
from memsh.paths import resolve, to_display_path
from memsh.shell import Shell
from memsh.tokenizer import parse_command_line, quote_arg_if_needed, tokenize
from memsh.types import (
    CommandResult,
    CompletionKind,
    Env,
    ErrorKind,
    FileNode,
    FolderNode,
    Listing,
    NodeType,
    Token,
    TokenizeResult,
    VfsState,
)
from memsh.vfs import VirtualFileSystem, create_vfs

__version__ = "0.1.0"

__all__ = [
    # Core classes
    "VirtualFileSystem",
    "Dispatcher",
    "CommandRegistry",
    "CompletionEngine",
    "Shell",
    "ShellEnvironment",
    "MemshConfig",
    "ShellConfig",
    "StorageConfig",
    # Factory functions
    "create_vfs",
    # Pure helpers
    "resolve",
    "to_display_path",
    "tokenize",
    "parse_command_line",
    "quote_arg_if_needed",
    # Types
    "CommandResult",
    "CompletionKind",
    "CompletionOutcome",
    "CompletionState",
    "Env",
    "ErrorKind",
    "FileNode",
    "FolderNode",
    "Listing",
    "NodeType",
    "Token",
    "TokenizeResult",
    "VfsState",
    # Errors
    "MemshError",
    "NotFoundError",
    "AlreadyExistsError",
    "NotEmptyError",
    "InvalidNameError",
    "DispatchNotFoundError",
    "ScriptFailureError",
]
