"""Built-in programs for MemSH."""

from memsh.programs.base import BaseProgram
from memsh.programs.filesystem import FileSystemProgram
from memsh.programs.init import InitProgram
from memsh.programs.search import SearchProgram
from memsh.programs.system import SystemProgram


def default_programs() -> list[BaseProgram]:
    """Built-in programs in registration order."""
    return [
        FileSystemProgram(),
        SearchProgram(),
        SystemProgram(),
        InitProgram(),
    ]


__all__ = [
    "BaseProgram",
    "FileSystemProgram",
    "InitProgram",
    "SearchProgram",
    "SystemProgram",
    "default_programs",
]
