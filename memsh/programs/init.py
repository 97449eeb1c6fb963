"""
`init` - lay out the base folders and install the bundled assets.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import TYPE_CHECKING

from memsh import paths
from memsh.assets import ASSETS_VERSION, get_bundled_assets
from memsh.env import BIN_DIR, SYS_DIR
from memsh.exceptions import MemshError
from memsh.programs.base import BaseProgram, CommandHandler
from memsh.types import CommandResult

if TYPE_CHECKING:
    from memsh.shell import Shell

SYS_ASSETS_VERSION_PATH = "/sys/assets-version.json"
HOME_DIR = "/home/user"

BASE_FOLDERS = [
    BIN_DIR,
    HOME_DIR,
    f"{HOME_DIR}/pictures",
    f"{HOME_DIR}/docs",
    "/tmp",
    SYS_DIR,
]


@dataclass
class AssetSync:
    """Counts and paths from one pass over the bundled assets."""

    total: int = 0
    unchanged: int = 0
    written: int = 0
    missing_paths: list[str] = field(default_factory=list)
    outdated_paths: list[str] = field(default_factory=list)
    failed_paths: list[str] = field(default_factory=list)


def sync_assets(shell: "Shell", write: bool, only_changed: bool = True) -> AssetSync:
    """
    Compare (and optionally write) every bundled asset.

    Args:
        shell: Shell whose filesystem receives the assets.
        write: Write missing or outdated files.
        only_changed: When False, rewrite every asset.
    """
    vfs = shell.vfs
    sync = AssetSync()

    for path, content in get_bundled_assets().items():
        sync.total += 1
        try:
            current = vfs.read_file(path) if vfs.is_file(path) else None
        except MemshError:
            current = None

        if current is None:
            sync.missing_paths.append(path)
        elif current != content:
            sync.outdated_paths.append(path)
        else:
            sync.unchanged += 1
            if only_changed:
                continue

        if not write:
            continue
        try:
            parent = paths.to_display_path(paths.split_display_path(path)[:-1])
            vfs.ensure_dir_path(parent)
            vfs.write_file(path, content)
            sync.written += 1
        except MemshError as e:
            sync.failed_paths.append(path)
            shell.print(f"init: failed to write {path}: {e.message}")

    return sync


def installed_assets_version(shell: "Shell") -> str:
    try:
        parsed = json.loads(shell.vfs.read_file(SYS_ASSETS_VERSION_PATH))
    except (MemshError, json.JSONDecodeError):
        return ""
    if isinstance(parsed, dict) and isinstance(parsed.get("version"), str):
        return parsed["version"].strip()
    return ""


def record_assets_version(shell: "Shell") -> None:
    shell.vfs.ensure_dir_path(SYS_DIR)
    shell.vfs.write_file(
        SYS_ASSETS_VERSION_PATH,
        json.dumps(
            {
                "version": ASSETS_VERSION,
                "updatedAt": datetime.now(timezone.utc).isoformat(),
            },
            indent=2,
        ),
    )


def print_path_list(shell: "Shell", label: str, items: list[str]) -> None:
    if not items:
        return
    shell.print(label)
    for item in items:
        shell.print(f"  {item}")


class InitProgram(BaseProgram):
    """Creates the base layout: /bin, /home/user, /tmp, /sys and help pages."""

    def get_command_map(self) -> dict[str, CommandHandler]:
        return {"init": self._execute_init}

    def _execute_init(self, shell: "Shell", command: str, args: list[str]) -> CommandResult:
        force = "-f" in args or "--force" in args

        if "--check" in args:
            return self._check(shell)
        if "--update" in args:
            return self._update(shell)

        empty = shell.vfs.looks_empty()
        if not empty and not force:
            shell.print("init: virtual filesystem already initialized.")
            shell.print('Use "init -f" to force re-initialize.')
            shell.print(
                'Tip: use "init --check" or "init --update" to sync bundled assets '
                "without resetting your filesystem."
            )
            shell.print()
            return CommandResult.success()

        shell.print("init: create base folder structure.")
        shell.vfs.reset()
        for folder in BASE_FOLDERS:
            shell.vfs.ensure_dir_path(folder)

        # The reset wiped /sys; write the in-memory shell state back.
        shell.environment.persist_all()

        sync = sync_assets(shell, write=True, only_changed=False)
        shell.environment.ensure_on_path(BIN_DIR)
        record_assets_version(shell)
        shell.vfs.change_directory(HOME_DIR)

        shell.print(f"init: installed {sync.written}/{sync.total} bundled files.")
        shell.print("init: base folder structure initialized.")
        if not empty:
            shell.print("init: previous filesystem contents were replaced.")
        shell.print(f"Home directory: {HOME_DIR}")
        shell.print(f"Binary directory prepared on PATH: {BIN_DIR}")
        shell.print()

        if sync.failed_paths:
            return CommandResult.failure("init: some bundled files could not be written")
        return CommandResult.success()

    def _check(self, shell: "Shell") -> CommandResult:
        installed = installed_assets_version(shell)
        if installed and installed != ASSETS_VERSION:
            shell.print(
                f"init: new version available: {ASSETS_VERSION} (installed: {installed})."
            )
        elif installed:
            shell.print(f"init: installed version is up to date: {installed}.")
        else:
            shell.print(f"init: latest version: {ASSETS_VERSION}.")

        sync = sync_assets(shell, write=False)
        shell.print(
            f"init: checked {sync.total}/{sync.total} assets: "
            f"{sync.unchanged} ok, {len(sync.missing_paths)} missing, "
            f"{len(sync.outdated_paths)} outdated."
        )
        print_path_list(shell, "init: missing:", sync.missing_paths)
        print_path_list(shell, "init: outdated:", sync.outdated_paths)
        shell.print()
        return CommandResult.success()

    def _update(self, shell: "Shell") -> CommandResult:
        sync = sync_assets(shell, write=True)
        changed = sync.missing_paths + sync.outdated_paths

        failed = f", {len(sync.failed_paths)} failed" if sync.failed_paths else ""
        shell.print(
            f"init: updated {sync.written}/{sync.total} assets "
            f"({sync.unchanged} unchanged{failed})."
        )
        print_path_list(
            shell,
            "init: updated files:",
            [p for p in changed if p not in sync.failed_paths],
        )

        if sync.failed_paths:
            shell.print()
            return CommandResult.failure("init: some bundled files could not be written")

        record_assets_version(shell)
        shell.print(f"init: installed assets version is now {ASSETS_VERSION}.")
        shell.print()
        return CommandResult.success()
