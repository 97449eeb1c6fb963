"""
Dispatcher - resolves a command line to a built-in, a hosted program or a
command script.

Lenient dispatch (interactive input) applies aliases and falls back to the
folders on PATH. Strict dispatch (lines of a command script) does neither
and turns any failure into an abort of the script.
"""

from __future__ import annotations

import asyncio
import inspect
import logging
import re
from dataclasses import dataclass
from typing import TYPE_CHECKING, Callable

from memsh import paths
from memsh.exceptions import DispatchNotFoundError, MemshError, ScriptFailureError
from memsh.programs.base import BaseProgram
from memsh.tokenizer import is_comment_or_blank, parse_command_line
from memsh.types import CommandResult

if TYPE_CHECKING:
    from memsh.env import ShellEnvironment
    from memsh.shell import Shell
    from memsh.vfs import VirtualFileSystem

logger = logging.getLogger(__name__)

# Current-directory invocation prefix, e.g. ./demo.msh
CWD_PREFIX = "./"
PROGRAM_EXTENSION = ".py"
SCRIPT_EXTENSION = ".msh"

_LINE_SPLIT = re.compile(r"\r?\n")


class CommandRegistry:
    """Exact-name lookup from a lower-cased command name to its program.

    The first program registered for a name keeps it.
    """

    def __init__(self, programs: list[BaseProgram] | None = None):
        self._commands: dict[str, BaseProgram] = {}
        for program in programs or []:
            self.register(program)

    def register(self, program: BaseProgram) -> None:
        for name in program.names:
            self._commands.setdefault(name.lower(), program)

    def lookup(self, command: str) -> BaseProgram | None:
        return self._commands.get((command or "").lower())

    def names(self) -> list[str]:
        return sorted(self._commands)

    def __contains__(self, command: str) -> bool:
        return self.lookup(command) is not None


@dataclass
class PrefixHandler:
    """A pattern-based rule evaluated before exact-name lookup."""

    name: str
    matches: Callable[[str], bool]
    run: Callable[[str, "list[str]"], CommandResult]


def is_cwd_invocation(command: str, extension: str) -> bool:
    return (
        command.startswith(CWD_PREFIX)
        and command.endswith(extension)
        and len(command) > len(CWD_PREFIX) + len(extension)
    )


class Dispatcher:
    """
    Dispatcher - turns one input line into one command execution.

    The filesystem and environment are injected so tests can run the
    dispatcher against an in-memory store.
    """

    def __init__(
        self,
        shell: "Shell",
        vfs: "VirtualFileSystem",
        environment: "ShellEnvironment",
        programs: list[BaseProgram] | None = None,
    ):
        """
        Initialize the dispatcher.

        Args:
            shell: Output/input surface handed to programs.
            vfs: Filesystem used for PATH lookups and script files.
            environment: PATH and alias source.
            programs: Built-in programs, registered in order.
        """
        self.shell = shell
        self.vfs = vfs
        self.environment = environment
        self.config = environment.config
        self.registry = CommandRegistry(programs)

        self.prefix_handlers: list[PrefixHandler] = [
            PrefixHandler(
                name="command-script",
                matches=lambda command: is_cwd_invocation(command, SCRIPT_EXTENSION),
                run=lambda command, args: self.run_command_script(command),
            ),
            PrefixHandler(
                name="program",
                matches=lambda command: is_cwd_invocation(command, PROGRAM_EXTENSION),
                run=self._run_cwd_program,
            ),
        ]

        self._script_depth = 0

    def _debug_log(self, message: str) -> None:
        if self.config.debug:
            logger.debug("[dispatch] %s", message)

    def register(self, program: BaseProgram) -> None:
        self.registry.register(program)

    # =========================================================================
    # Lenient dispatch
    # =========================================================================

    def dispatch(self, line: str) -> CommandResult:
        """
        Dispatch an interactive input line.

        Blank lines and comments are no-ops. Aliases are expanded first; a
        command nothing else recognizes is looked up as a program on PATH.

        Returns:
            CommandResult; ``handled`` is False when nothing matched.
        """
        if is_comment_or_blank(line or ""):
            return CommandResult.success()

        parsed = parse_command_line(line.strip())
        typed = parsed.command
        command, args = self.expand_aliases(parsed.command, parsed.args)
        if command != typed:
            self._debug_log(f"alias {typed!r} -> {command!r} {args}")

        result = self._dispatch_registered(command, args)
        if result.handled:
            return result

        script_path = self.resolve_script_on_path(command)
        if script_path is not None:
            self._debug_log(f"{command!r} resolved on PATH to {script_path}")
            return self.execute_vfs_script(script_path, args, invoked_as=typed)

        self.shell.print(f"Command not found: {command}")
        self.shell.print("Hit Tab for available commands.")
        self.shell.print()
        return CommandResult.unhandled(DispatchNotFoundError(command))

    def expand_aliases(self, command: str, args: list[str]) -> tuple[str, list[str]]:
        """
        Expand aliases on the command word until it stops changing.

        Expansion is bounded by the configured depth and stops silently at
        the first command seen twice, so alias cycles terminate.
        """
        current_command, current_args = command, list(args)
        seen: set[str] = set()

        for _ in range(self.config.shell.max_alias_depth):
            if current_command in seen:
                break
            target = self.environment.get_alias(current_command)
            if not isinstance(target, str) or not target.strip():
                break

            expanded = parse_command_line(target.strip())
            seen.add(current_command)
            current_args = expanded.args + current_args
            current_command = expanded.command or current_command

        return current_command, current_args

    def resolve_script_on_path(self, command: str) -> str | None:
        """
        Find ``<command>.py`` in the PATH folders, first folder wins.

        Commands containing a separator are never PATH candidates; missing
        PATH folders are skipped.
        """
        if not command or paths.SEPARATOR in command:
            return None
        file_name = command if command.endswith(PROGRAM_EXTENSION) else command + PROGRAM_EXTENSION

        for folder in self.environment.env.PATH:
            if not isinstance(folder, str) or not folder.startswith(paths.SEPARATOR):
                continue
            try:
                listing = self.vfs.list(folder)
            except MemshError:
                continue
            if file_name in listing.files:
                return paths.join_path(folder, file_name)

        return None

    # =========================================================================
    # Strict dispatch
    # =========================================================================

    def dispatch_strict(self, command: str, args: list[str]) -> CommandResult:
        """
        Dispatch one command-script line: no aliases, no PATH fallback.

        Any exception raised by a program becomes a failed result.
        """
        if not command:
            return CommandResult.success()

        try:
            result = self._dispatch_registered(command, list(args))
        except MemshError as e:
            return CommandResult.failure(e)
        except Exception as e:
            logger.debug("Program %r raised", command, exc_info=True)
            return CommandResult.failure(e)

        if not result.handled:
            return CommandResult.unhandled(DispatchNotFoundError(command))
        if not result.ok:
            return CommandResult(
                handled=True,
                should_continue=True,
                ok=False,
                error=result.error or ScriptFailureError(f"Execution failed: {command}"),
            )
        return result

    def run_command_script(self, invoked_as: str, path: str | None = None) -> CommandResult:
        """
        Run a command script line by line, stopping at the first failure.

        Args:
            invoked_as: Name reported in messages, e.g. ``./demo.msh``.
            path: Script path; derived from ``invoked_as`` when omitted.

        Returns:
            CommandResult; not ok when the file is unreadable or a line failed.
        """
        if path is None:
            path = paths.normalize_from_cwd(
                self.vfs.get_cwd_path(), invoked_as[len(CWD_PREFIX):]
            )

        if self._script_depth >= self.config.shell.max_script_depth:
            error = ScriptFailureError(
                f"{invoked_as}: command scripts nested too deeply", path=path
            )
            self.shell.print(f"msh: {error.message}")
            return CommandResult.failure(error)

        try:
            content = self.vfs.read_file(path)
        except MemshError as e:
            self.shell.print(f"exec: {invoked_as}: {e.message}")
            self.shell.print()
            return CommandResult.failure(e)

        self._script_depth += 1
        try:
            for number, raw_line in enumerate(_LINE_SPLIT.split(content), start=1):
                if is_comment_or_blank(raw_line):
                    continue

                parsed = parse_command_line(raw_line.strip())
                result = self.dispatch_strict(parsed.command, parsed.args)
                if not result.ok:
                    message = str(result.error) if result.error else "error"
                    self.shell.print(f"msh: stopped at {invoked_as}:{number}")
                    self.shell.print(f"msh: {raw_line}")
                    self.shell.print(f"msh: {message}")
                    self.shell.print()
                    return CommandResult.failure(
                        ScriptFailureError(
                            f"{invoked_as}:{number}: {message}",
                            path=path,
                            cause=result.error,
                        )
                    )

                if not result.should_continue:
                    return CommandResult.stop()
        finally:
            self._script_depth -= 1

        return CommandResult.success()

    # =========================================================================
    # Hosted programs
    # =========================================================================

    def execute_vfs_script(
        self, path: str, args: list[str], invoked_as: str | None = None
    ) -> CommandResult:
        """
        Run a Python program stored in the filesystem.

        The program may define ``main(shell, command, args)``; otherwise its
        body runs once with ``shell``, ``command``, ``args``, ``argv`` and
        ``vfs`` in scope. ``main`` returning False, or any exception, marks
        the run as failed.
        """
        try:
            source = self.vfs.read_file(path)
        except MemshError as e:
            self.shell.print(f"exec: {path}: {e.message}")
            self.shell.print()
            return CommandResult.failure(e)

        command = invoked_as or path
        namespace = {
            "__name__": "__memsh__",
            "shell": self.shell,
            "command": command,
            "args": list(args),
            "argv": list(args),
            "vfs": self.vfs,
        }

        try:
            exec(compile(source, path, "exec"), namespace)
            main = namespace.get("main")
            if callable(main):
                returned = main(self.shell, command, list(args))
                if inspect.iscoroutine(returned):
                    returned = asyncio.run(returned)
                if returned is False:
                    raise ScriptFailureError(f"{command} reported failure", path=path)
        except Exception as e:
            self.shell.print(f"Error executing {command}: {e}")
            self.shell.print()
            if isinstance(e, ScriptFailureError):
                return CommandResult.failure(e)
            return CommandResult.failure(ScriptFailureError(str(e), path=path, cause=e))

        self.shell.print()
        return CommandResult.success()

    def _run_cwd_program(self, command: str, args: list[str]) -> CommandResult:
        path = paths.normalize_from_cwd(
            self.vfs.get_cwd_path(), command[len(CWD_PREFIX):]
        )
        return self.execute_vfs_script(path, args, invoked_as=command)

    # =========================================================================
    # Completion sources
    # =========================================================================

    def command_names(self) -> list[str]:
        """Registered built-in command names."""
        return self.registry.names()

    def path_script_commands(self) -> list[str]:
        """Program names found across the PATH folders, extension stripped."""
        found: set[str] = set()
        for folder in self.environment.env.PATH:
            if not isinstance(folder, str) or not folder.startswith(paths.SEPARATOR):
                continue
            try:
                listing = self.vfs.list(folder)
            except MemshError:
                continue
            for name in listing.files:
                if name.lower().endswith(PROGRAM_EXTENSION):
                    base = name[: -len(PROGRAM_EXTENSION)]
                    if base:
                        found.add(base)
        return sorted(found)

    # =========================================================================
    # Helpers
    # =========================================================================

    def _dispatch_registered(self, command: str, args: list[str]) -> CommandResult:
        """Prefix rules first, then exact-name built-ins."""
        for handler in self.prefix_handlers:
            if handler.matches(command):
                return handler.run(command, args)

        program = self.registry.lookup(command)
        if program is None:
            return CommandResult.unhandled()
        return program.execute(self.shell, command, args)
