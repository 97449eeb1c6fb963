"""
memsh command line entry point.

Usage:
    memsh                      # interactive shell, persisted in ~/.memsh/memsh.db
    memsh --memory             # throwaway in-memory filesystem
    memsh -c "ls -l /bin"      # run one line and exit
    memsh --script /home/user/docs/demo.msh
"""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

from dotenv import load_dotenv

from memsh.config import MemshConfig
from memsh.shell import Shell
from memsh.vfs import create_vfs

logger = logging.getLogger("memsh")


def setup_logging(debug: bool = False, log_dir: Path | None = None) -> logging.Logger:
    """Set up console logging, plus a debug log file when debugging."""
    logger.setLevel(logging.DEBUG if debug else logging.WARNING)
    logger.handlers.clear()

    console_handler = logging.StreamHandler()
    console_handler.setLevel(logging.DEBUG if debug else logging.WARNING)
    console_formatter = logging.Formatter("%(levelname)s: %(message)s")
    console_handler.setFormatter(console_formatter)
    logger.addHandler(console_handler)

    if debug and log_dir is not None:
        log_dir.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_dir / "memsh.log")
        file_handler.setLevel(logging.DEBUG)
        file_formatter = logging.Formatter("%(asctime)s - %(name)s - %(levelname)s - %(message)s")
        file_handler.setFormatter(file_formatter)
        logger.addHandler(file_handler)

    return logger


def build_config(args: argparse.Namespace) -> MemshConfig:
    config = MemshConfig.from_env()
    if args.memory:
        config.storage.sqlite_path = None
    elif args.db:
        config.storage.sqlite_path = args.db
    elif not config.storage.sqlite_path:
        config.storage.sqlite_path = MemshConfig.default_persistent().storage.sqlite_path
    config.debug = config.debug or args.debug
    return config


def main(argv: list[str] | None = None) -> int:
    load_dotenv()

    parser = argparse.ArgumentParser(
        prog="memsh", description="A shell over a persisted virtual filesystem"
    )
    parser.add_argument(
        "--db",
        type=str,
        default=None,
        help="SQLite file that stores the filesystem (default: ~/.memsh/memsh.db)",
    )
    parser.add_argument(
        "--memory",
        action="store_true",
        help="Use an in-memory filesystem that is discarded on exit",
    )
    parser.add_argument(
        "--debug",
        action="store_true",
        help="Enable debug logging",
    )
    parser.add_argument(
        "-c",
        "--command",
        type=str,
        default=None,
        help="Run a single command line and exit",
    )
    parser.add_argument(
        "--script",
        type=str,
        default=None,
        help="Run a command script stored in the virtual filesystem and exit",
    )
    args = parser.parse_args(argv)

    config = build_config(args)
    setup_logging(config.debug, config.get_memsh_home())

    with create_vfs(config) as vfs:
        shell = Shell(vfs, config=config)

        if args.command is not None:
            shell.bootstrap()
            result = shell.run_line(args.command)
            return 0 if result.ok else 1

        if args.script is not None:
            shell.bootstrap()
            result = shell.dispatcher.run_command_script(args.script, path=args.script)
            return 0 if result.ok else 1

        shell.run()
    return 0


if __name__ == "__main__":
    sys.exit(main())
