"""
Configuration management for MemSH.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Literal

# Provider type definitions
DatabaseProvider = Literal["sqlite"]

# Default paths
DEFAULT_MEMSH_HOME = Path.home() / ".memsh"


def _env_flag(name: str) -> bool:
    return os.getenv(name, "").strip().lower() in ("1", "true", "yes", "on")


@dataclass
class StorageConfig:
    """Configuration for the record store that persists the filesystem."""

    provider: DatabaseProvider = "sqlite"
    # SQLite
    sqlite_path: str | None = None  # None means in-memory
    # Record key under which the whole VFS state is stored
    vfs_key: str = "memsh.vfs"


@dataclass
class ShellConfig:
    """Configuration for command resolution and the interactive session."""

    history_limit: int = 500
    max_alias_depth: int = 5
    max_script_depth: int = 8
    default_path: list[str] = field(default_factory=lambda: ["/bin"])
    # Prompt defaults; overridable at runtime through /sys/config.json
    prompt_user: str = "memsh"
    prompt_host: str = "localhost"
    # Run `init` automatically when the filesystem looks empty
    bootstrap_init: bool = True


@dataclass
class MemshConfig:
    """Main configuration for MemSH."""

    storage: StorageConfig = field(default_factory=StorageConfig)
    shell: ShellConfig = field(default_factory=ShellConfig)

    # Debug mode - enables verbose logging for diagnosing issues
    debug: bool = False

    def get_memsh_home(self) -> Path:
        """Get the MemSH home directory."""
        return DEFAULT_MEMSH_HOME

    @classmethod
    def from_env(cls) -> "MemshConfig":
        """Create configuration from environment variables."""
        config = cls()

        config.storage.sqlite_path = os.getenv("MEMSH_DB_PATH") or None
        config.debug = _env_flag("MEMSH_DEBUG")

        limit = os.getenv("MEMSH_HISTORY_LIMIT")
        if limit and limit.strip().isdigit() and int(limit) > 0:
            config.shell.history_limit = int(limit)

        return config

    @classmethod
    def default_local(cls) -> "MemshConfig":
        """Create a default local configuration (in-memory, no persistence)."""
        return cls(
            storage=StorageConfig(provider="sqlite", sqlite_path=None),
            shell=ShellConfig(),
        )

    @classmethod
    def default_persistent(cls) -> "MemshConfig":
        """Create a default configuration with persistence enabled.

        Uses ~/.memsh/ for persistent storage:
        - ~/.memsh/memsh.db (SQLite record store)
        """
        home = DEFAULT_MEMSH_HOME
        return cls(
            storage=StorageConfig(
                provider="sqlite",
                sqlite_path=str(home / "memsh.db"),
            ),
            shell=ShellConfig(),
        )
