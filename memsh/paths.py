"""
Path helpers for the MemSH virtual filesystem.

All functions here are pure string/list algebra: nothing checks whether a
path exists. Existence is the store's concern.
"""

from __future__ import annotations

SEPARATOR = "/"


def resolve(cwd_segments: list[str] | None, path: str | None) -> list[str]:
    """
    Resolve a path against the current directory into root-relative segments.

    Args:
        cwd_segments: Current working directory as segments from root.
        path: Absolute or relative path string.

    Returns:
        Canonical list of segments. ``..`` at root is ignored rather than
        underflowing.
    """
    base = list(cwd_segments or [])

    if not path or path == ".":
        return base

    result = [] if path.startswith(SEPARATOR) else base
    for part in path.split(SEPARATOR):
        if not part or part == ".":
            continue
        if part == "..":
            if result:
                result.pop()
        else:
            result.append(part)

    return result


def to_display_path(segments: list[str]) -> str:
    """Join segments into an absolute display path (``/`` for root)."""
    return SEPARATOR + SEPARATOR.join(segments)


def split_display_path(path: str | None) -> list[str]:
    """Split an absolute display path back into segments."""
    if not path or path == SEPARATOR:
        return []
    return [p for p in path.split(SEPARATOR) if p]


def normalize_from_cwd(cwd_path: str | None, path: str | None) -> str:
    """Normalize ``path`` against a cwd given as a display path."""
    return to_display_path(resolve(split_display_path(cwd_path), path))


def join_path(base_path: str, segment: str) -> str:
    """
    Join an absolute base path with a segment into a canonical path.

    An absolute segment is normalized on its own.
    """
    if not segment or segment == ".":
        return normalize_from_cwd(base_path, ".")

    if segment.startswith(SEPARATOR):
        return normalize_from_cwd(SEPARATOR, segment)

    return normalize_from_cwd(base_path, segment)


def split_parent(segments: list[str]) -> tuple[list[str], str]:
    """Split segments into (parent segments, final name)."""
    if not segments:
        return [], ""
    return list(segments[:-1]), segments[-1]


def basename(path: str) -> str:
    """Return the last segment of a path, or the path itself when it has none."""
    if not path or path == SEPARATOR:
        return path
    parts = [p for p in path.split(SEPARATOR) if p]
    return parts[-1] if parts else path


def is_bare_name(name: str) -> bool:
    """A bare name is non-empty, contains no path separator and is not `.` or `..`."""
    if not name or name in (".", ".."):
        return False
    return SEPARATOR not in name and "\\" not in name
