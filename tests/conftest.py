"""Shared fixtures: an in-memory record store, a filesystem and a shell."""

from __future__ import annotations

import io

import pytest

from memsh.config import MemshConfig
from memsh.databases.sqlite_db import SQLiteDatabase
from memsh.programs.base import BaseProgram
from memsh.shell import Shell
from memsh.types import CommandResult
from memsh.vfs import VirtualFileSystem, create_vfs


class RecordingProgram(BaseProgram):
    """Built-in stand-in that records every call it receives."""

    def __init__(self, names: list[str]):
        self._names = names
        self.calls: list[tuple[str, list[str]]] = []

    def get_command_map(self):
        return {name: self._record for name in self._names}

    def _record(self, shell, command, args):
        self.calls.append((command, list(args)))
        if command.lower() == "fail":
            return CommandResult.failure("fail: asked to fail")
        return CommandResult.success()


class ScriptedInput:
    """Feeds queued lines to Shell.input / Shell.run; a queued exception is raised instead."""

    def __init__(self, lines: list[str] | None = None):
        self.lines: list = list(lines or [])
        self.prompts: list[str] = []

    def __call__(self, prompt: str) -> str:
        self.prompts.append(prompt)
        if not self.lines:
            raise EOFError
        line = self.lines.pop(0)
        if isinstance(line, BaseException) or (
            isinstance(line, type) and issubclass(line, BaseException)
        ):
            raise line
        return line


@pytest.fixture
def config() -> MemshConfig:
    config = MemshConfig.default_local()
    config.shell.bootstrap_init = False
    return config


@pytest.fixture
def database():
    db = SQLiteDatabase(db_path=None)
    db.initialize()
    yield db
    db.close()


@pytest.fixture
def vfs(config, database) -> VirtualFileSystem:
    return create_vfs(config, database=database)


@pytest.fixture
def scripted_input() -> ScriptedInput:
    return ScriptedInput()


@pytest.fixture
def output() -> io.StringIO:
    return io.StringIO()


@pytest.fixture
def shell(vfs, config, output, scripted_input) -> Shell:
    """A bootstrapped shell with the default built-ins and no auto `init`."""
    sh = Shell(vfs, config=config, output=output, input_fn=scripted_input, use_color=False)
    sh.bootstrap()
    return sh


@pytest.fixture
def initialized_shell(database, output, scripted_input) -> Shell:
    """A shell whose first boot ran `init`."""
    config = MemshConfig.default_local()
    vfs = create_vfs(config, database=database)
    sh = Shell(vfs, config=config, output=output, input_fn=scripted_input, use_color=False)
    sh.bootstrap()
    output.seek(0)
    output.truncate()
    return sh


def make_shell(vfs, config, output, programs) -> Shell:
    sh = Shell(vfs, config=config, output=output, programs=programs, use_color=False)
    sh.bootstrap()
    return sh


def take_output(output: io.StringIO) -> str:
    """Return everything written so far and reset the buffer."""
    text = output.getvalue()
    output.seek(0)
    output.truncate()
    return text


def store_raw_record(database: SQLiteDatabase, key: str, raw: str) -> None:
    """Write an undecoded value straight into the records table."""
    database.conn.execute(
        "INSERT OR REPLACE INTO records (key, value, updated_at) VALUES (?, ?, 0)",
        (key, raw),
    )
    database.conn.commit()
