"""
Bundled assets that `init` installs into the virtual filesystem.

This module provides the sample program, a demo command script and the
markdown help pages read by `help <topic>`.
"""

from __future__ import annotations

# Bumped whenever any bundled asset text changes
ASSETS_VERSION = "1.1.0"

HELP_DIR = "/etc/help"

SAMPLE_PROGRAM = '''"""
sample.py - Example MemSH program

Run:
    cd /bin
    ./sample.py
    ./sample.py Alice
    sample Alice        # /bin is on PATH

This demonstrates the recommended convention:
    def main(shell, command, args): ...

shell.input() reads a line; shell.read_key(timeout=...) reads one key press
and returns None when the timeout runs out. An async main should await
shell.read_key_async() instead.
"""


def main(shell, command, args):
    # Use a CLI arg if provided, otherwise prompt interactively
    name = args[0] if args else shell.input("Name: ")
    shell.print(f"Hello {name}!")
    shell.print(f"(Tip) This program was invoked as: {command}")

    shell.print("Press any key to finish...")
    key = shell.read_key(timeout=10)
    if key is None:
        shell.print("(no key pressed)")
    else:
        shell.print(f"You pressed: {getattr(key.key, 'value', key.key)}")
'''

DEMO_SCRIPT = """# demo.msh - one command per line, stops at the first failing line
// comments start with # or //
mkdir demo
cd demo
touch notes.txt
ls -l
cd ..
"""

# =============================================================================
# Help pages
# =============================================================================

HELP_GENERAL = """# MemSH help

MemSH is a small shell over a persisted virtual filesystem.

## Files and folders
- `ls [-l] [-a] [path]` - list a folder
- `cd [path]` - change folder (default `/`)
- `pwd` - print the current folder
- `mkdir <name...>` / `rmdir <name...>` - create or remove empty folders
- `touch <path...>` / `cat <path...>` / `rm <path...>` - files
- `mv <src> <dst>` / `copy <src> <dst>` - move and copy
- `find` and `grep` - search

## Shell
- `alias`, `unalias`, `history`, `config`, `date`, `delay`, `cls`, `exit`
- `init` - create the base folder layout and install these pages

## Programs and scripts
- `./name.py` runs a Python program stored in the filesystem
- `./name.msh` runs a command script (see `help scripts`)
- Programs in a folder on PATH (default `/bin`) run by bare name

Use `help <command>` for details. Hit Tab to complete commands and paths.
"""

HELP_TOPICS: dict[str, str] = {
    "ls": """# ls

`ls [-l] [-a] [path]`

List folder contents, folders first with a trailing `/`.

- `-l` long format: type (`d` or `-`) and size (characters, or children for folders)
- `-a` include names starting with `.`
""",
    "cd": """# cd

`cd [path]`

Change the current folder. With no argument, go to `/`. `..` at the root stays at the root.
""",
    "pwd": """# pwd

Print the current folder.
""",
    "mkdir": """# mkdir

`mkdir <name...>`

Create empty folders in the current folder. Names may not contain `/`; parent folders are never created.
""",
    "rmdir": """# rmdir

`rmdir <name...>`

Remove empty folders.
""",
    "touch": """# touch

`touch <path...>`

Create empty files. Existing files are left unchanged.
""",
    "cat": """# cat

`cat <path...>`

Print file contents.
""",
    "rm": """# rm

`rm <path...>`

Delete files. Use `rmdir` for folders.
""",
    "mv": """# mv

`mv <src> <dst>`

Move or rename a file or folder. If `<dst>` is an existing folder, `<src>` moves into it.
""",
    "copy": """# copy

`copy <src> <dst>`

Copy a file. If `<dst>` is an existing folder, the copy keeps the source name.
""",
    "find": """# find

`find [path] [-name <glob>] [-type f|d] [-maxdepth N] [-ls]`

Walk a folder tree and print matching paths in sorted order.
""",
    "grep": """# grep

`grep [-r] [-i] [-n] <pattern|/regex/> [path...]`

Print lines that contain a pattern. `/.../` is a regular expression.

- `-r` search folders recursively
- `-i` ignore case
- `-n` show line numbers
""",
    "config": """# config

`config [show|get <key>|set <key> <value>|reset]`

Show or change display settings stored in `/sys/config.json`.

Keys: prompt_user, prompt_host, prompt_user_color, prompt_path_color, show_welcome_logo
""",
    "alias": """# alias

`alias` lists aliases. `alias name=expansion` defines one.

The expansion's first word replaces the command; its other words come before the original arguments. Aliases are stored in `/sys/env.json`.
""",
    "unalias": """# unalias

`unalias <name...>`

Remove aliases.
""",
    "history": """# history

Print the command history stored in `/sys/history.json`.
""",
    "init": """# init

`init [-f|--force] [--check] [--update]`

Create `/bin`, `/home/user`, `/tmp`, `/sys` and `/etc/help` and install the bundled files.

- `-f` re-initialize a filesystem that already has content
- `--check` report missing or outdated bundled files
- `--update` rewrite missing or outdated bundled files without resetting
""",
    "date": """# date

Print the current date and time.
""",
    "delay": """# delay

`delay <ms>`

Wait for a number of milliseconds (at most one hour).
""",
    "cls": """# cls

Clear the screen.
""",
    "exit": """# exit

Leave the shell. Ctrl+D on an empty line does the same.
""",
    "scripts": """# scripts

## Programs (`.py`)
A program may define `main(shell, command, args)`. Otherwise its body runs once with `shell`, `command`, `args`, `argv` and `vfs` defined. Returning `False` or raising marks the run as failed.

## Command scripts (`.msh`)
One command per line. Blank lines and lines starting with `#` or `//` are skipped. Aliases and PATH lookup are not applied. The script stops at the first failing line and reports its number.
""",
}


def get_bundled_assets() -> dict[str, str]:
    """
    Get every bundled file keyed by its absolute destination path.

    Returns:
        Mapping of VFS path to file content, in install order.
    """
    assets = {
        "/bin/sample.py": SAMPLE_PROGRAM,
        "/home/user/docs/demo.msh": DEMO_SCRIPT,
        f"{HELP_DIR}/help.md": HELP_GENERAL,
    }
    for topic, text in HELP_TOPICS.items():
        assets[f"{HELP_DIR}/{topic}.md"] = text
    return assets
