"""
ANSI colors for terminal output.
"""

from __future__ import annotations


class Colors:
    RESET = "\033[0m"
    BOLD = "\033[1m"

    # Standard colors
    RED = "\033[91m"
    GREEN = "\033[92m"
    YELLOW = "\033[93m"
    CYAN = "\033[96m"
    GRAY = "\033[90m"


# Roles used by listings
FOLDER_COLOR = Colors.CYAN
FILE_COLOR = Colors.GREEN
EXECUTABLE_COLOR = Colors.YELLOW
HIDDEN_COLOR = Colors.GRAY

EXECUTABLE_SUFFIXES = (".py", ".msh")


def colorize(text: str, color: str, enabled: bool = True) -> str:
    """Wrap text in an ANSI color when enabled."""
    if not enabled or not color:
        return text
    return f"{color}{text}{Colors.RESET}"


def entry_color(name: str, is_folder: bool) -> str:
    """Pick the listing color for a file or folder name."""
    if name.startswith("."):
        return HIDDEN_COLOR
    if is_folder:
        return FOLDER_COLOR
    if name.lower().endswith(EXECUTABLE_SUFFIXES):
        return EXECUTABLE_COLOR
    return FILE_COLOR
