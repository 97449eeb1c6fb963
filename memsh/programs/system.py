"""
Session commands: help, exit, cls, date, delay, config, alias, unalias, history.
"""

from __future__ import annotations

import json
import math
from datetime import datetime
from typing import TYPE_CHECKING

from memsh import paths
from memsh.assets import HELP_DIR
from memsh.exceptions import MemshError
from memsh.programs.base import BaseProgram, CommandHandler, missing_operand
from memsh.tokenizer import quote_arg_if_needed
from memsh.types import CommandResult

if TYPE_CHECKING:
    from memsh.shell import Shell

GENERAL_HELP = f"{HELP_DIR}/help.md"

MAX_DELAY_MS = 60 * 60 * 1000

CONFIG_USAGE = [
    "Usage:",
    "  config                 # show config and basic help",
    "  config show            # show config",
    "  config get <key>       # show value of a key",
    "  config set <key> <val> # set a key (strings, colors, booleans)",
    "  config reset           # reset to defaults",
]


def normalize_topic(topic: str) -> str:
    """Reduce `./foo.py`, `/bin/foo` and similar to a bare topic name."""
    raw = (topic or "").strip()
    if raw.startswith("./"):
        raw = raw[2:]
    base = paths.basename(raw.lstrip("/")) if raw.strip("/") else ""
    if base.lower().endswith(".py"):
        base = base[:-3]
    return base.lower()


class SystemProgram(BaseProgram):
    """Built-ins that manage the session rather than the filesystem."""

    def get_command_map(self) -> dict[str, CommandHandler]:
        return {
            "help": self._execute_help,
            "exit": self._execute_exit,
            "cls": self._execute_cls,
            "date": self._execute_date,
            "delay": self._execute_delay,
            "config": self._execute_config,
            "alias": self._execute_alias,
            "unalias": self._execute_unalias,
            "history": self._execute_history,
        }

    # =========================================================================
    # help
    # =========================================================================

    def _execute_help(self, shell: "Shell", command: str, args: list[str]) -> CommandResult:
        topic = normalize_topic(args[0]) if args else ""
        if not topic:
            try:
                shell.print(shell.vfs.read_file(GENERAL_HELP))
            except MemshError:
                shell.print("help: no help files installed yet.")
                shell.print("Try running: init")
            return CommandResult.success()

        try:
            shell.print(shell.vfs.read_file(f"{HELP_DIR}/{topic}.md"))
        except MemshError:
            shell.print(f'help: no help topic found for "{topic}".')
            topics = self._list_topics(shell)
            if topics:
                shell.print("Available help topics:")
                shell.print("  " + ", ".join(topics))
            else:
                shell.print("No help topics installed. Try running: init")
        return CommandResult.success()

    def _list_topics(self, shell: "Shell") -> list[str]:
        try:
            listing = shell.vfs.list(HELP_DIR)
        except MemshError:
            return []
        return sorted(name[:-3] for name in listing.files if name.lower().endswith(".md"))

    # =========================================================================
    # Session control
    # =========================================================================

    def _execute_exit(self, shell: "Shell", command: str, args: list[str]) -> CommandResult:
        shell.print("Bye...")
        return CommandResult.stop()

    def _execute_cls(self, shell: "Shell", command: str, args: list[str]) -> CommandResult:
        shell.clear()
        return CommandResult.success()

    def _execute_date(self, shell: "Shell", command: str, args: list[str]) -> CommandResult:
        shell.print(f"Current date and time: {datetime.now():%Y-%m-%d %H:%M:%S}")
        return CommandResult.success()

    def _execute_delay(self, shell: "Shell", command: str, args: list[str]) -> CommandResult:
        if not args:
            return missing_operand(shell, "delay", "delay 500")

        raw = args[0].strip()
        try:
            ms = float(raw)
        except ValueError:
            ms = -1
        if not math.isfinite(ms) or ms < 0:
            shell.print(f"delay: invalid milliseconds: {raw}")
            return CommandResult.failure("delay: invalid milliseconds")

        shell.sleep(min(int(ms), MAX_DELAY_MS) / 1000)
        return CommandResult.success()

    # =========================================================================
    # config
    # =========================================================================

    def _execute_config(self, shell: "Shell", command: str, args: list[str]) -> CommandResult:
        environment = shell.environment
        sub = (args[0] if args else "show").lower()

        if sub in ("show", "help"):
            shell.print("Current shell configuration:")
            shell.print(json.dumps(environment.display, indent=2))
            for line in CONFIG_USAGE:
                shell.print(line)
            return CommandResult.success()

        if sub == "get":
            if len(args) < 2:
                shell.print("config get: missing <key>")
                return CommandResult.failure("config get: missing <key>")
            key = args[1]
            if key not in environment.display:
                shell.print(f'config: unknown key "{key}"')
                return CommandResult.failure(f'config: unknown key "{key}"')
            shell.print(f"{key} = {json.dumps(environment.display[key])}")
            return CommandResult.success()

        if sub == "set":
            key = args[1] if len(args) > 1 else ""
            raw_value = " ".join(args[2:])
            if not key or not raw_value:
                shell.print("config set: usage: config set <key> <value>")
                return CommandResult.failure("config set: missing operand")
            value = environment.set_config(key, raw_value)
            shell.print(f"config: set {key} = {json.dumps(value)}")
            return CommandResult.success()

        if sub == "reset":
            environment.reset_config()
            shell.print("config: reset to defaults")
            return CommandResult.success()

        shell.print(f'config: unknown subcommand "{sub}"')
        for line in CONFIG_USAGE:
            shell.print(line)
        return CommandResult.failure(f'config: unknown subcommand "{sub}"')

    # =========================================================================
    # Aliases and history
    # =========================================================================

    def _execute_alias(self, shell: "Shell", command: str, args: list[str]) -> CommandResult:
        aliases = shell.environment.env.ALIAS
        if not args:
            for name in sorted(aliases):
                shell.print(f"alias {name}={quote_arg_if_needed(aliases[name], chr(39))}")
            return CommandResult.success()

        had_error = False
        for arg in args:
            name, sep, expansion = arg.partition("=")
            if not sep:
                if name in aliases:
                    shell.print(f"alias {name}={quote_arg_if_needed(aliases[name], chr(39))}")
                else:
                    shell.print(f"alias: {name}: not found")
                    had_error = True
                continue

            if not name or any(ch.isspace() for ch in name) or "/" in name:
                shell.print(f"alias: invalid alias name: '{name}'")
                had_error = True
                continue

            shell.environment.set_alias(name, expansion.strip())

        if had_error:
            return CommandResult.failure("alias: one or more operations failed")
        return CommandResult.success()

    def _execute_unalias(self, shell: "Shell", command: str, args: list[str]) -> CommandResult:
        if not args:
            return missing_operand(shell, "unalias", "unalias name")

        had_error = False
        for name in args:
            if not shell.environment.remove_alias(name):
                shell.print(f"unalias: {name}: not found")
                had_error = True

        if had_error:
            return CommandResult.failure("unalias: one or more aliases not found")
        return CommandResult.success()

    def _execute_history(self, shell: "Shell", command: str, args: list[str]) -> CommandResult:
        history = shell.environment.history
        width = len(str(len(history)))
        for index, entry in enumerate(history, start=1):
            shell.print(f"{str(index).rjust(width)}  {entry}")
        return CommandResult.success()
