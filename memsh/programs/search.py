"""
Search commands: find and grep.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import TYPE_CHECKING, Callable

from memsh import paths
from memsh.exceptions import MemshError
from memsh.programs.base import BaseProgram, CommandHandler, parse_short_flags
from memsh.programs.filesystem import format_long_entry, node_size
from memsh.types import CommandResult, NodeType

if TYPE_CHECKING:
    from memsh.shell import Shell

FIND_USAGE = "Usage: find [path] [-ls] [-name <glob>] [-type f|d] [-maxdepth N]"
GREP_USAGE = "Usage: grep [-r] [-i] [-n] <pattern> [path ...]"


def glob_to_regex(glob: str) -> re.Pattern:
    """Translate a ``*``/``?`` glob into an anchored regular expression."""
    parts = []
    for ch in glob:
        if ch == "*":
            parts.append(".*")
        elif ch == "?":
            parts.append(".")
        else:
            parts.append(re.escape(ch))
    return re.compile("^" + "".join(parts) + "$")


@dataclass
class FindOptions:
    path: str = "."
    long: bool = False
    name: str | None = None
    node_type: NodeType | None = None
    max_depth: int | None = None


class FindArgumentError(ValueError):
    pass


def parse_find_args(args: list[str]) -> FindOptions:
    """
    Parse `find` arguments.

    Raises:
        FindArgumentError: On unknown options, missing values or extra paths.
    """
    opts = FindOptions()
    path: str | None = None
    parsing = True
    i = 0
    while i < len(args):
        arg = args[i]
        if parsing and arg == "--":
            parsing = False
        elif parsing and arg.startswith("-"):
            value = args[i + 1] if i + 1 < len(args) else None
            if arg == "-ls":
                opts.long = True
            elif arg == "-name":
                if value is None:
                    raise FindArgumentError("find: -name requires a pattern")
                opts.name = value
                i += 1
            elif arg == "-type":
                if value is None:
                    raise FindArgumentError("find: -type requires f or d")
                kind = value.lower()
                if kind not in ("f", "d"):
                    raise FindArgumentError("find: -type must be f or d")
                opts.node_type = NodeType.FILE if kind == "f" else NodeType.FOLDER
                i += 1
            elif arg == "-maxdepth":
                if value is None:
                    raise FindArgumentError("find: -maxdepth requires a number")
                try:
                    depth = int(float(value))
                except ValueError:
                    depth = -1
                if depth < 0:
                    raise FindArgumentError("find: -maxdepth must be a non-negative number")
                opts.max_depth = depth
                i += 1
            else:
                raise FindArgumentError(f"find: unknown option: {arg}")
        elif path is None:
            path = arg
        else:
            raise FindArgumentError("find: too many paths (only one start path supported)")
        i += 1

    opts.path = path or "."
    return opts


def compile_matcher(pattern: str, ignore_case: bool) -> Callable[[str], bool]:
    """
    Build a line matcher. ``/body/`` is a regular expression, anything else
    a plain substring.

    Raises:
        re.error: If the regular expression is invalid.
    """
    if len(pattern) >= 2 and pattern.startswith("/") and pattern.endswith("/"):
        regex = re.compile(pattern[1:-1], re.IGNORECASE if ignore_case else 0)
        return lambda line: regex.search(line) is not None

    needle = pattern.lower() if ignore_case else pattern
    if ignore_case:
        return lambda line: needle in line.lower()
    return lambda line: needle in line


class SearchProgram(BaseProgram):
    """Tree walking and content search."""

    def get_command_map(self) -> dict[str, CommandHandler]:
        return {
            "find": self._execute_find,
            "grep": self._execute_grep,
        }

    def _execute_find(self, shell: "Shell", command: str, args: list[str]) -> CommandResult:
        try:
            opts = parse_find_args(args)
        except FindArgumentError as e:
            shell.print(str(e))
            shell.print(FIND_USAGE)
            return CommandResult.failure(e)

        start = paths.normalize_from_cwd(shell.vfs.get_cwd_path(), opts.path)
        if not shell.vfs.exists(start):
            shell.print(f"find: {start}: No such file or directory")
            return CommandResult.failure(f"find: {start}: No such file or directory")

        name_re = glob_to_regex(opts.name) if opts.name is not None else None

        for entry in shell.vfs.walk(start, max_depth=opts.max_depth):
            if opts.node_type is not None and entry.node_type is not opts.node_type:
                continue
            if name_re is not None and not name_re.match(paths.basename(entry.path)):
                continue

            if opts.long:
                type_char = "d" if entry.node_type is NodeType.FOLDER else "-"
                size = node_size(shell, entry.path, entry.node_type)
                shell.print(format_long_entry(type_char, size, entry.path))
            else:
                shell.print(entry.path)

        return CommandResult.success()

    def _execute_grep(self, shell: "Shell", command: str, args: list[str]) -> CommandResult:
        flags, rest, unknown = parse_short_flags(args, "rin")
        if unknown:
            return self._usage_error(shell, f"grep: unknown option: -{unknown}")
        if not rest:
            return self._usage_error(shell, "grep: missing search pattern")

        pattern, targets = rest[0], rest[1:]
        recursive = "r" in flags
        try:
            matcher = compile_matcher(pattern, "i" in flags)
        except re.error as e:
            shell.print(f"grep: invalid pattern: {e}")
            return CommandResult.failure(e)

        if not targets:
            if not recursive:
                return self._usage_error(shell, "grep: missing file operand")
            targets = ["."]

        cwd = shell.vfs.get_cwd_path()
        absolute = [paths.normalize_from_cwd(cwd, t) for t in targets]

        files: list[str] = []
        if recursive:
            for target in absolute:
                if shell.vfs.is_folder(target):
                    files.extend(
                        entry.path
                        for entry in shell.vfs.walk(target)
                        if entry.node_type is NodeType.FILE
                    )
                else:
                    files.append(target)
        else:
            files = absolute

        show_prefix = recursive or len(files) > 1
        any_match = False
        any_failed = False

        for path in files:
            try:
                content = shell.vfs.read_file(path)
            except MemshError as e:
                any_failed = True
                shell.print(f"grep: {e.message}")
                continue

            lines = content.replace("\r\n", "\n").split("\n")
            for number, line in enumerate(lines, start=1):
                if not matcher(line):
                    continue
                any_match = True
                prefix = []
                if show_prefix:
                    prefix.append(path)
                if "n" in flags:
                    prefix.append(str(number))
                shell.print(":".join(prefix) + ":" + line if prefix else line)

        if any_match and not any_failed:
            return CommandResult.success()
        return CommandResult.failure(
            "grep: one or more files could not be read" if any_failed else "grep: no match"
        )

    def _usage_error(self, shell: "Shell", message: str) -> CommandResult:
        shell.print(message)
        shell.print(GREP_USAGE)
        return CommandResult.failure(message)
