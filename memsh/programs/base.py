"""
Base class for MemSH built-in programs.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Callable

from memsh.exceptions import MemshError
from memsh.types import CommandResult

if TYPE_CHECKING:
    from memsh.shell import Shell

CommandHandler = Callable[["Shell", str, "list[str]"], CommandResult]


class BaseProgram(ABC):
    """Abstract base class for a group of built-in commands.

    A program maps lower-cased command names to handler methods; the
    dispatcher registers every name it exposes.
    """

    @abstractmethod
    def get_command_map(self) -> dict[str, CommandHandler]:
        """
        Get the commands this program provides.

        Returns:
            Mapping of lower-cased command name to handler.
        """
        pass

    @property
    def names(self) -> list[str]:
        return list(self.get_command_map())

    def execute(self, shell: "Shell", command: str, args: list[str]) -> CommandResult:
        """
        Run one command.

        Args:
            shell: The interactive shell (output, input, filesystem).
            command: Command word as typed.
            args: Arguments after the command word.

        Returns:
            CommandResult; unhandled if the name is not provided here.
        """
        handler = self.get_command_map().get((command or "").lower())
        if handler is None:
            return CommandResult.unhandled()
        return handler(shell, command, list(args))


def parse_short_flags(
    args: list[str], known: str
) -> tuple[set[str], list[str], str | None]:
    """
    Split combined short flags (``-la``) from operands.

    ``--`` ends flag parsing. A lone ``-`` is an operand.

    Returns:
        (flags, operands, first unknown flag character or None)
    """
    flags: set[str] = set()
    rest: list[str] = []
    parsing = True
    for arg in args:
        if parsing and arg == "--":
            parsing = False
            continue
        if parsing and arg.startswith("-") and len(arg) > 1:
            for ch in arg[1:]:
                if ch not in known:
                    return flags, rest, ch
                flags.add(ch)
            continue
        rest.append(arg)
    return flags, rest, None


def missing_operand(shell: "Shell", command: str, hint: str | None = None) -> CommandResult:
    shell.print(f"{command}: missing operand")
    if hint:
        shell.print(f"Try '{hint}'")
    return CommandResult.failure(f"{command}: missing operand")


def report_error(shell: "Shell", error: MemshError, prefix: str | None = None) -> None:
    """Print a store error as one line, optionally prefixed by the command."""
    shell.print(f"{prefix}: {error.message}" if prefix else error.message)
