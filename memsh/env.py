"""
Shell environment - PATH, aliases, history and display settings.

All of it lives as ordinary files under /sys inside the virtual filesystem,
so it persists with the rest of the tree and can be inspected with `cat`.
"""

from __future__ import annotations

import json
import logging
from typing import Any

from memsh import paths
from memsh.config import MemshConfig
from memsh.exceptions import MemshError
from memsh.types import Env
from memsh.vfs import VirtualFileSystem

logger = logging.getLogger(__name__)

SYS_DIR = "/sys"
SYS_ENV_PATH = "/sys/env.json"
SYS_HISTORY_PATH = "/sys/history.json"
SYS_HISTORY_LIMIT_PATH = "/sys/historyLimit.txt"
SYS_CONFIG_PATH = "/sys/config.json"

BIN_DIR = "/bin"

# Display settings; merged under whatever /sys/config.json holds
DEFAULT_DISPLAY_CONFIG: dict[str, Any] = {
    "prompt_user": "memsh",
    "prompt_host": "localhost",
    "prompt_user_color": "#859900",
    "prompt_path_color": "#268BD2",
    "show_welcome_logo": True,
}

BOOLEAN_CONFIG_KEYS = {"show_welcome_logo"}


class ShellEnvironment:
    """
    Persisted shell state: Env (PATH and ALIAS), history and display config.

    Every setter writes the affected /sys file back immediately.
    """

    def __init__(self, vfs: VirtualFileSystem, config: MemshConfig | None = None):
        self.vfs = vfs
        self.config = config or vfs.config

        self.env = Env(PATH=list(self.config.shell.default_path))
        self.history: list[str] = []
        self.history_limit = self.config.shell.history_limit
        self.display: dict[str, Any] = self._default_display()

    def _debug_log(self, message: str) -> None:
        if self.config.debug:
            logger.debug("[env] %s", message)

    def _default_display(self) -> dict[str, Any]:
        display = dict(DEFAULT_DISPLAY_CONFIG)
        display["prompt_user"] = self.config.shell.prompt_user
        display["prompt_host"] = self.config.shell.prompt_host
        return display

    # =========================================================================
    # Loading
    # =========================================================================

    def load(self) -> None:
        """Read /sys state, normalize it and write the normalized form back."""
        self.vfs.ensure_dir_path(SYS_DIR)

        self.history_limit = self._read_history_limit()

        parsed = self._read_json(SYS_HISTORY_PATH)
        if isinstance(parsed, list):
            self.history = [item for item in parsed if isinstance(item, str)]

        parsed = self._read_json(SYS_CONFIG_PATH)
        display = self._default_display()
        if isinstance(parsed, dict):
            display.update(parsed)
        self.display = display

        self.env = self._normalize_env(self._read_json(SYS_ENV_PATH))

        self.persist_env()
        self.persist_config()
        self.persist_history()
        self._debug_log(
            f"loaded PATH={self.env.PATH} aliases={len(self.env.ALIAS)} "
            f"history={len(self.history)}/{self.history_limit}"
        )

    def _normalize_env(self, parsed: Any) -> Env:
        env = Env(PATH=list(self.config.shell.default_path), ALIAS={})
        if isinstance(parsed, dict):
            path = parsed.get("PATH", env.PATH)
            alias = parsed.get("ALIAS", env.ALIAS)
            env.PATH = (
                [d for d in path if isinstance(d, str)]
                if isinstance(path, list)
                else list(self.config.shell.default_path)
            )
            env.ALIAS = (
                {k: v for k, v in alias.items() if isinstance(v, str)}
                if isinstance(alias, dict)
                else {}
            )

        if BIN_DIR not in env.PATH:
            env.PATH.append(BIN_DIR)
        return env

    def _read_history_limit(self) -> int:
        fallback = self.config.shell.history_limit
        try:
            raw = self.vfs.read_file(SYS_HISTORY_LIMIT_PATH).strip()
            if raw.isdigit() and int(raw) > 0:
                return int(raw)
        except MemshError:
            pass

        self._write_text(SYS_HISTORY_LIMIT_PATH, str(fallback))
        return fallback

    # =========================================================================
    # Aliases
    # =========================================================================

    def get_alias(self, name: str) -> str | None:
        return self.env.ALIAS.get(name)

    def set_alias(self, name: str, expansion: str) -> None:
        self.env.ALIAS[name] = expansion
        self.persist_env()

    def remove_alias(self, name: str) -> bool:
        """Remove an alias. Returns True if it existed."""
        if name not in self.env.ALIAS:
            return False
        del self.env.ALIAS[name]
        self.persist_env()
        return True

    # =========================================================================
    # History
    # =========================================================================

    def add_history(self, line: str) -> bool:
        """
        Append a line to the history.

        Blank lines and an exact repeat of the previous entry are skipped.

        Returns:
            True if the line was recorded.
        """
        entry = (line or "").strip()
        if not entry:
            return False
        if self.history and self.history[-1] == entry:
            return False

        self.history.append(entry)
        self.persist_history()
        return True

    # =========================================================================
    # Display config
    # =========================================================================

    def set_config(self, key: str, raw_value: str) -> Any:
        """Set a display setting, coercing booleans and numbers by current type."""
        current = self.display.get(key)
        value: Any = raw_value
        if isinstance(current, bool) or key in BOOLEAN_CONFIG_KEYS:
            value = raw_value.lower() in ("true", "1", "yes", "on")
        elif isinstance(current, (int, float)):
            try:
                value = type(current)(raw_value)
            except ValueError:
                value = raw_value

        self.display[key] = value
        self.persist_config()
        return value

    def reset_config(self) -> None:
        self.display = self._default_display()
        self.persist_config()

    # =========================================================================
    # Persistence
    # =========================================================================

    def ensure_on_path(self, folder: str) -> None:
        if folder not in self.env.PATH:
            self.env.PATH.append(folder)
        self.persist_env()

    def persist_all(self) -> None:
        """Write every /sys record from the in-memory state."""
        self._write_text(SYS_HISTORY_LIMIT_PATH, str(self.history_limit))
        self.persist_env()
        self.persist_config()
        self.persist_history()

    def persist_env(self) -> None:
        self._write_json(SYS_ENV_PATH, self.env.to_dict())

    def persist_config(self) -> None:
        self._write_json(SYS_CONFIG_PATH, self.display)

    def persist_history(self) -> None:
        if len(self.history) > self.history_limit:
            del self.history[: len(self.history) - self.history_limit]
        self._write_json(SYS_HISTORY_PATH, self.history)

    def _read_json(self, path: str) -> Any:
        try:
            return json.loads(self.vfs.read_file(path) or "")
        except (MemshError, json.JSONDecodeError):
            return None

    def _write_json(self, path: str, value: Any) -> None:
        self._write_text(path, json.dumps(value, indent=2))

    def _write_text(self, path: str, text: str) -> None:
        parent = paths.to_display_path(paths.split_display_path(path)[:-1])
        try:
            if parent != paths.SEPARATOR:
                self.vfs.ensure_dir_path(parent)
            self.vfs.write_file(path, text)
        except MemshError as e:
            logger.warning("Could not write %s: %s", path, e)
