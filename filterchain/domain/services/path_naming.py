"""Naming heuristics shared by chain lookup and reset.

Uploaded and derived images are not named canonically, so paths are
compared in several progressively looser ways. All helpers work on
forward-slash paths regardless of how the caller spelled them.
"""
from __future__ import annotations

import posixpath

FILTERED_MARKER = "_filtered"


def to_posix(path: str) -> str:
    return path.replace("\\", "/")


def ensure_leading_slash(path: str) -> str:
    path = to_posix(path)
    return path if path.startswith("/") else "/" + path


def normalize(path: str) -> str:
    """Comparison key: forward slashes, no leading slash."""
    return to_posix(path).lstrip("/")


def file_name(path: str) -> str:
    return posixpath.basename(to_posix(path))


def split_name(path: str) -> tuple[str, str]:
    """Return (stem, extension) of the terminal file name."""
    return posixpath.splitext(file_name(path))


def directory(path: str) -> str:
    return posixpath.dirname(to_posix(path))


def file_id(path: str) -> str:
    """Everything in the stem before the first underscore."""
    stem, _ = split_name(path)
    return stem.split("_", 1)[0]


def is_filtered(path: str) -> bool:
    stem, _ = split_name(path)
    return FILTERED_MARKER in stem


def filtered_path(path: str) -> str:
    """Target path for a filter application.

    Inserts ``_filtered`` before the extension; a path already carrying the
    marker is reused as-is so repeated applications overwrite in place.
    """
    path = ensure_leading_slash(path)
    if is_filtered(path):
        return path
    stem, ext = split_name(path)
    return posixpath.join(directory(path), f"{stem}{FILTERED_MARKER}{ext}")


def strip_filtered(path: str) -> str | None:
    """Path with everything from ``_filtered`` on removed from the stem."""
    stem, ext = split_name(path)
    idx = stem.find(FILTERED_MARKER)
    if idx < 0:
        return None
    return posixpath.join(directory(path), f"{stem[:idx]}{ext}")
