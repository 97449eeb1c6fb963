"""
Shell - the interactive session that ties the filesystem, the dispatcher and
the completion engine together.

Programs and hosted scripts talk to the user only through ``print``,
``input``, ``read_key``, ``sleep`` and ``clear`` on this object.
"""

from __future__ import annotations

import asyncio
import logging
import sqlite3
import sys
import time
from typing import Any, Callable, TextIO

from prompt_toolkit import PromptSession
from prompt_toolkit.formatted_text import ANSI, FormattedText
from prompt_toolkit.history import InMemoryHistory
from prompt_toolkit.input import create_input
from prompt_toolkit.key_binding import KeyBindings
from prompt_toolkit.key_binding.key_processor import KeyPress
from prompt_toolkit.keys import Keys
from prompt_toolkit.shortcuts import clear as clear_screen

from memsh.colors import Colors, colorize
from memsh.completion import CompletionEngine, CompletionOutcome, CompletionState
from memsh.config import MemshConfig
from memsh.dispatcher import Dispatcher
from memsh.env import ShellEnvironment
from memsh.exceptions import MemshError
from memsh.programs import default_programs
from memsh.programs.base import BaseProgram
from memsh.types import CommandResult, CompletionKind
from memsh.vfs import VirtualFileSystem

logger = logging.getLogger(__name__)

LOGO = [
    r"  _ __ ___   ___ _ __ ___  ___| |__  ",
    r" | '_ ` _ \ / _ \ '_ ` _ \/ __| '_ \ ",
    r" | | | | | |  __/ | | | | \__ \ | | |",
    r" |_| |_| |_|\___|_| |_| |_|___/_| |_|",
]


class Shell:
    """
    Shell - one interactive session over a VirtualFileSystem.

    Reads lines through a prompt_toolkit session when attached to a
    terminal, or through ``input_fn`` when one is given (scripts, tests).
    """

    def __init__(
        self,
        vfs: VirtualFileSystem,
        config: MemshConfig | None = None,
        output: TextIO | None = None,
        input_fn: Callable[[str], str] | None = None,
        programs: list[BaseProgram] | None = None,
        use_color: bool | None = None,
    ):
        """
        Initialize the shell.

        Args:
            vfs: Initialized filesystem.
            config: MemSH configuration. Defaults to the filesystem's config.
            output: Stream for program output (default stdout).
            input_fn: Line reader used instead of an interactive prompt.
            programs: Built-in programs (default set if not provided).
            use_color: Emit ANSI colors; defaults to whether output is a tty.
        """
        self.vfs = vfs
        self.config = config or vfs.config
        self.output = output or sys.stdout
        self.input_fn = input_fn
        self.use_color = (
            use_color if use_color is not None else _isatty(self.output)
        )

        self.environment = ShellEnvironment(vfs, self.config)
        self.dispatcher = Dispatcher(
            self,
            vfs,
            self.environment,
            programs if programs is not None else default_programs(),
        )
        self.completion = CompletionEngine(vfs, self.dispatcher)

        self._prompt_session: PromptSession | None = None
        self._hint: str = ""
        self._completing = False
        self._bootstrapped = False

    def _debug_log(self, message: str) -> None:
        if self.config.debug:
            logger.debug("[shell] %s", message)

    # =========================================================================
    # Program-facing I/O
    # =========================================================================

    def print(self, text: Any = "") -> None:
        self.output.write(f"{text}\n")
        self.output.flush()

    def input(self, prompt: str = "") -> str:
        """Read one line from the user (used by hosted programs)."""
        if self.input_fn is not None:
            return self.input_fn(prompt)
        return self._get_prompt_session().prompt(prompt)

    def read_key(
        self,
        filter: Callable[[KeyPress], bool] | None = None,
        timeout: float | None = None,
    ) -> KeyPress | None:
        """
        Wait for the next key press.

        Args:
            filter: Only key presses for which this returns True are returned;
                others are skipped.
            timeout: Seconds to wait before giving up. None waits forever.

        Returns:
            The prompt_toolkit KeyPress (``.key`` is a Keys value or the
            character, ``.data`` the raw input), or None on timeout.

        Raises:
            KeyboardInterrupt: On Ctrl+C.
        """
        if self.input_fn is not None:
            return self._read_scripted_key(filter)
        return asyncio.run(self.read_key_async(filter=filter, timeout=timeout))

    async def read_key_async(
        self,
        filter: Callable[[KeyPress], bool] | None = None,
        timeout: float | None = None,
    ) -> KeyPress | None:
        """Awaitable ``read_key`` for programs whose ``main`` is a coroutine."""
        if self.input_fn is not None:
            return self._read_scripted_key(filter)

        terminal_input = create_input()
        future: asyncio.Future[KeyPress] = asyncio.get_running_loop().create_future()

        def keys_ready() -> None:
            # Flushing right away hands a lone Escape back without waiting
            for key_press in terminal_input.read_keys() + terminal_input.flush_keys():
                if future.done():
                    return
                if key_press.key == Keys.ControlC or filter is None or filter(key_press):
                    future.set_result(key_press)

        with terminal_input.raw_mode(), terminal_input.attach(keys_ready):
            try:
                key_press = await asyncio.wait_for(future, timeout)
            except asyncio.TimeoutError:
                return None

        if key_press.key == Keys.ControlC:
            raise KeyboardInterrupt
        return key_press

    def _read_scripted_key(
        self, filter: Callable[[KeyPress], bool] | None
    ) -> KeyPress | None:
        # Each scripted line is one key: a Keys name ("escape", "up") or a character
        while True:
            try:
                line = self.input_fn("")
            except EOFError:
                return None
            key_press = KeyPress(_key_from_text(line), line)
            if filter is None or filter(key_press):
                return key_press

    def sleep(self, seconds: float) -> None:
        time.sleep(max(0.0, seconds))

    def clear(self) -> None:
        if self.input_fn is None and _isatty(self.output):
            clear_screen()

    def colorize(self, text: str, color: str) -> str:
        return colorize(text, color, self.use_color)

    # =========================================================================
    # Session
    # =========================================================================

    def bootstrap(self) -> None:
        """Load /sys state and run `init` on a first boot."""
        if self._bootstrapped:
            return

        self.environment.load()
        if self.config.shell.bootstrap_init and self.vfs.looks_empty():
            self._debug_log("empty filesystem, running init")
            self.dispatcher.dispatch_strict("init", [])
        self._bootstrapped = True

    def run_line(self, line: str) -> CommandResult:
        """
        Record and dispatch one input line.

        Errors raised by programs are printed and never end the session;
        persistence backend errors propagate.
        """
        self.environment.add_history(line)
        self.completion.cancel()
        self._hint = ""

        try:
            return self.dispatcher.dispatch(line)
        except sqlite3.Error:
            raise
        except MemshError as e:
            self.print(f"Error: {e.message}")
        except Exception as e:
            logger.debug("Unhandled error dispatching %r", line, exc_info=True)
            self.print(f"Error: {e}")
        self.print()
        return CommandResult.failure("dispatch raised")

    def run(self) -> None:
        """Run the read-dispatch loop until `exit` or Ctrl+D."""
        self.bootstrap()
        self._print_welcome()

        while True:
            try:
                line = self._read_line()
            except KeyboardInterrupt:
                continue
            except EOFError:
                self.print("exit")
                self.print("Bye...")
                break

            try:
                result = self.run_line(line)
            except KeyboardInterrupt:
                self.print("^C")
                continue
            if not result.should_continue:
                break

    def _user_at_host(self) -> str:
        display = self.environment.display
        user = display.get("prompt_user") or self.config.shell.prompt_user
        host = display.get("prompt_host") or self.config.shell.prompt_host
        return f"{user}@{host}"

    def prompt_text(self) -> str:
        return f"{self._user_at_host()}:{self.vfs.get_cwd_path()}$ "

    def _print_welcome(self) -> None:
        if self.environment.display.get("show_welcome_logo", True):
            for row in LOGO:
                self.print(self.colorize(row, Colors.GREEN))
            self.print()
        self.print("Welcome to memsh!")
        self.print("Hit Tab for available commands, or just explore...")
        self.print()

    def _read_line(self) -> str:
        if self.input_fn is not None:
            return self.input_fn(self.prompt_text())
        return self._get_prompt_session().prompt(self._formatted_prompt())

    def _formatted_prompt(self) -> FormattedText:
        display = self.environment.display
        return FormattedText(
            [
                (_fg(display.get("prompt_user_color")), self._user_at_host()),
                ("", ":"),
                (_fg(display.get("prompt_path_color")), self.vfs.get_cwd_path()),
                ("", "$ "),
            ]
        )

    # =========================================================================
    # Interactive prompt
    # =========================================================================

    def _get_prompt_session(self) -> PromptSession:
        if self._prompt_session is None:
            self._prompt_session = self._create_prompt_session()
        return self._prompt_session

    def _create_prompt_session(self) -> PromptSession:
        """Create a prompt session whose Tab keys drive the completion engine."""
        history = InMemoryHistory()
        for entry in self.environment.history:
            history.append_string(entry)

        session = PromptSession(
            key_bindings=self._create_key_bindings(),
            bottom_toolbar=lambda: ANSI(self._hint) if self._hint else "",
            history=history,
        )

        def on_edit(_buffer) -> None:
            if not self._completing:
                self.completion.cancel()
                self._hint = ""

        session.default_buffer.on_text_changed += on_edit
        session.default_buffer.on_cursor_position_changed += on_edit
        return session

    def _create_key_bindings(self) -> KeyBindings:
        """
        Tab: complete / cycle forward
        Shift+Tab: cycle backward
        Escape: dismiss completion hints, or clear the line
        """
        bindings = KeyBindings()

        @bindings.add(Keys.Tab)
        def _(event):
            self._apply_completion(event.current_buffer, reverse=False)

        @bindings.add(Keys.BackTab)
        def _(event):
            self._apply_completion(event.current_buffer, reverse=True)

        @bindings.add(Keys.Escape)
        def _(event):
            if self._hint or self.completion.state is not CompletionState.IDLE:
                self.completion.cancel()
                self._hint = ""
            else:
                event.current_buffer.reset()

        return bindings

    def _apply_completion(self, buffer, reverse: bool) -> None:
        self._completing = True
        try:
            outcome = self.completion.complete(buffer.text, reverse=reverse)
            buffer.text = outcome.text
            buffer.cursor_position = len(outcome.text)
        finally:
            self._completing = False
        self._hint = self.format_hint(outcome)

    def format_hint(self, outcome: CompletionOutcome) -> str:
        """Render the candidate list with the active entry bracketed."""
        if outcome.no_match:
            what = "commands" if outcome.kind is CompletionKind.COMMAND else "files or folders"
            return colorize(f"No matching {what} found", Colors.RED)
        if not outcome.ambiguous:
            return ""

        parts = []
        for index, name in enumerate(outcome.candidates):
            if index == outcome.index:
                parts.append(colorize(f"[{name}]", Colors.BOLD + Colors.YELLOW))
            elif name.endswith("/"):
                parts.append(colorize(name, Colors.CYAN))
            else:
                parts.append(colorize(name, Colors.GREEN))
        return "  ".join(parts)


def _key_from_text(text: str) -> Keys | str:
    try:
        return Keys(text)
    except ValueError:
        return text[:1] if text else Keys.Enter


def _isatty(stream: TextIO) -> bool:
    try:
        return stream.isatty()
    except (AttributeError, ValueError):
        return False


def _fg(color: Any) -> str:
    return f"fg:{color}" if isinstance(color, str) and color else ""
