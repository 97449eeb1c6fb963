"""
File and folder commands: ls, cd, pwd, mkdir, rmdir, touch, cat, rm, mv, copy.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from memsh import paths
from memsh.colors import entry_color
from memsh.exceptions import MemshError
from memsh.programs.base import (
    BaseProgram,
    CommandHandler,
    missing_operand,
    parse_short_flags,
    report_error,
)
from memsh.types import CommandResult, NodeType

if TYPE_CHECKING:
    from memsh.shell import Shell


def is_hidden(name: str) -> bool:
    return name.startswith(".")


def format_long_entry(type_char: str, size: int, name: str) -> str:
    """One `ls -l` / `find -ls` row: type, right-aligned size, name."""
    return f"{type_char} {str(size).rjust(6)} {name}"


def node_size(shell: "Shell", path: str, node_type: NodeType) -> int:
    """Characters for a file, direct children for a folder; 0 if unreadable."""
    try:
        if node_type is NodeType.FOLDER:
            return shell.vfs.child_count(path)
        return shell.vfs.file_size(path)
    except MemshError:
        return 0


class FileSystemProgram(BaseProgram):
    """Built-ins that operate directly on the virtual filesystem."""

    def get_command_map(self) -> dict[str, CommandHandler]:
        return {
            "ls": self._execute_ls,
            "cd": self._execute_cd,
            "pwd": self._execute_pwd,
            "mkdir": self._execute_mkdir,
            "rmdir": self._execute_rmdir,
            "touch": self._execute_touch,
            "cat": self._execute_cat,
            "rm": self._execute_rm,
            "mv": self._execute_mv,
            "copy": self._execute_copy,
        }

    # =========================================================================
    # Listing and navigation
    # =========================================================================

    def _execute_ls(self, shell: "Shell", command: str, args: list[str]) -> CommandResult:
        flags, rest, unknown = parse_short_flags(args, "la")
        if unknown:
            shell.print(f"ls: invalid option -- '{unknown}'")
            shell.print("Usage: ls [-l] [-a] [path]")
            return CommandResult.failure(f"ls: invalid option -- '{unknown}'")

        target = rest[0] if rest else "."
        vfs = shell.vfs

        if vfs.is_file(target):
            name = paths.basename(target)
            if "l" in flags:
                shell.print(format_long_entry("-", node_size(shell, target, NodeType.FILE), name))
            else:
                shell.print(shell.colorize(name, entry_color(name, False)))
            return CommandResult.success()

        try:
            listing = vfs.list(target)
        except MemshError as e:
            report_error(shell, e, "ls")
            return CommandResult.failure(e)

        entries = sorted(
            (
                (name, node_type)
                for name, node_type in listing.entries()
                if "a" in flags or not is_hidden(name)
            ),
            key=lambda entry: entry[0],
        )

        base = paths.normalize_from_cwd(vfs.get_cwd_path(), target)
        if "l" in flags:
            for name, node_type in entries:
                is_folder = node_type is NodeType.FOLDER
                size = node_size(shell, paths.join_path(base, name), node_type)
                label = shell.colorize(
                    name + ("/" if is_folder else ""), entry_color(name, is_folder)
                )
                shell.print(format_long_entry("d" if is_folder else "-", size, label))
        elif entries:
            shell.print(
                "  ".join(
                    shell.colorize(
                        name + ("/" if node_type is NodeType.FOLDER else ""),
                        entry_color(name, node_type is NodeType.FOLDER),
                    )
                    for name, node_type in entries
                )
            )

        return CommandResult.success()

    def _execute_cd(self, shell: "Shell", command: str, args: list[str]) -> CommandResult:
        target = args[0] if args else "/"
        try:
            shell.vfs.change_directory(target)
        except MemshError as e:
            report_error(shell, e, "cd")
            return CommandResult.failure(e)
        return CommandResult.success()

    def _execute_pwd(self, shell: "Shell", command: str, args: list[str]) -> CommandResult:
        shell.print(shell.vfs.get_cwd_path())
        return CommandResult.success()

    # =========================================================================
    # Folders
    # =========================================================================

    def _execute_mkdir(self, shell: "Shell", command: str, args: list[str]) -> CommandResult:
        if not args:
            return missing_operand(shell, "mkdir", "mkdir foldername")
        return self._for_each(shell, "mkdir", args, shell.vfs.mkdir)

    def _execute_rmdir(self, shell: "Shell", command: str, args: list[str]) -> CommandResult:
        if not args:
            return missing_operand(shell, "rmdir")
        return self._for_each(shell, "rmdir", args, shell.vfs.rmdir)

    # =========================================================================
    # Files
    # =========================================================================

    def _execute_touch(self, shell: "Shell", command: str, args: list[str]) -> CommandResult:
        if not args:
            return missing_operand(shell, "touch", "touch filename")

        def touch(path: str) -> None:
            if not shell.vfs.is_file(path):
                shell.vfs.write_file(path, "")

        return self._for_each(shell, "touch", args, touch)

    def _execute_cat(self, shell: "Shell", command: str, args: list[str]) -> CommandResult:
        if not args:
            return missing_operand(shell, "cat", "cat filename")

        def cat(path: str) -> None:
            shell.print(shell.vfs.read_file(path))

        return self._for_each(shell, "cat", args, cat)

    def _execute_rm(self, shell: "Shell", command: str, args: list[str]) -> CommandResult:
        if not args:
            return missing_operand(shell, "rm", "rm filename")

        had_error = False
        for path in args:
            try:
                shell.vfs.unlink(path)
            except MemshError as e:
                had_error = True
                shell.print(f"rm: cannot remove '{path}': {e.message}")

        if had_error:
            return CommandResult.failure("rm: one or more operations failed")
        return CommandResult.success()

    def _execute_mv(self, shell: "Shell", command: str, args: list[str]) -> CommandResult:
        if len(args) < 2:
            return missing_operand(shell, "mv", "mv source dest")
        try:
            shell.vfs.move(args[0], args[1])
        except MemshError as e:
            report_error(shell, e, "mv")
            return CommandResult.failure(e)
        return CommandResult.success()

    def _execute_copy(self, shell: "Shell", command: str, args: list[str]) -> CommandResult:
        if len(args) < 2:
            return missing_operand(shell, "copy", "copy source.txt dest.txt")

        src, dest = args[0], args[1]
        if not shell.vfs.is_file(src):
            shell.print(f"copy: cannot read '{src}': No such file")
            return CommandResult.failure(f"copy: cannot read '{src}'")
        try:
            shell.vfs.copy_file(src, dest)
        except MemshError as e:
            shell.print(f"copy: cannot write '{dest}': {e.message}")
            return CommandResult.failure(e)
        return CommandResult.success()

    # =========================================================================
    # Helpers
    # =========================================================================

    def _for_each(self, shell: "Shell", name: str, operands: list[str], action) -> CommandResult:
        """Apply an action to every operand; fail if any operand failed."""
        had_error = False
        for operand in operands:
            try:
                action(operand)
            except MemshError as e:
                had_error = True
                report_error(shell, e, name)

        if had_error:
            return CommandResult.failure(f"{name}: one or more operations failed")
        return CommandResult.success()
