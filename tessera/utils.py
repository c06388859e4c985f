"""Utility functions for Tessera.

This module contains small helpers used throughout the Tessera codebase:
filename classification, title and slug derivation, output path manipulation
and directory housekeeping.

Key functions:
    is_parsable: Check if a path is a Markdown source.
    title_from_filename: Derive a page title from a filename.
    slugify: Convert a value to a filename-safe slug.
    insert_before_extension: Splice a token in front of a file extension.
    find_files: Recursively list regular files under a directory.
    ensure_clean_dir: Ensure a directory exists and is empty.
    remove_dir: Delete a directory tree if it exists.
"""

from __future__ import annotations

import re
import shutil
from collections.abc import Iterable
from pathlib import Path, PurePosixPath

MARKDOWN_EXTENSIONS = (".md", ".markdown")
MARKDOWN_EXTENSION_RE = re.compile(r"\.(md|markdown)$", re.IGNORECASE)

# Files that never take part in a build
IGNORED_FILENAMES = frozenset({".DS_Store"})


def is_parsable(path: Path | str) -> bool:
    """Check if a path is a Markdown source that gets rendered to HTML.

    Args:
        path: Path to check.

    Returns:
        True if the file has a .md or .markdown extension (case-insensitive).
    """
    return Path(path).suffix.lower() in MARKDOWN_EXTENSIONS


def title_from_filename(filename: str) -> str:
    """Derive a page title from a filename.

    Strips the extension, replaces runs of hyphens and underscores with a
    single space and trims the result. Case is left alone.

    Args:
        filename: Filename with or without directories.

    Returns:
        Title string.

    Examples:
        >>> title_from_filename("my-first_post.md")
        'my first post'

        >>> title_from_filename("notes/2024-01-15__Release.markdown")
        '2024 01 15 Release'
    """
    base = re.sub(r"\.[^.]+$", "", Path(filename).name)
    base = re.sub(r"[-_]+", " ", base)
    return base.strip()


def slugify(value: object) -> str:
    """Convert a value to a lowercase, hyphen-separated slug.

    Args:
        value: Any value; it is converted with ``str()`` first.

    Returns:
        URL and filename friendly slug, never empty.

    Examples:
        >>> slugify("Python Tips")
        'python-tips'
    """
    cleaned = re.sub(r"[^\w]+", "-", str(value), flags=re.UNICODE)
    cleaned = cleaned.strip("-_").lower()
    return cleaned or "untitled"


def insert_before_extension(path: str, token: str) -> str:
    """Insert a token between a path's stem and its extension.

    Args:
        path: POSIX-style output path, e.g. ``/blog/index.html``.
        token: Text to insert, e.g. ``2`` or ``-python``.

    Returns:
        The modified path, e.g. ``/blog/index2.html``. A path without an
        extension gets the token appended.
    """
    posix = PurePosixPath(path)
    if not posix.suffix:
        return f"{path}{token}"
    return str(posix.with_name(f"{posix.stem}{token}{posix.suffix}"))


def markdown_to_html_path(path: str) -> str:
    """Replace a trailing .md/.markdown extension with .html."""
    return MARKDOWN_EXTENSION_RE.sub(".html", path)


def term_sort_key(value: object) -> tuple[int, object]:
    """Sort key that orders numbers before strings without comparing them.

    Args:
        value: An index term; numbers, strings or anything else.

    Returns:
        Tuple usable as a ``sorted`` key.
    """
    if isinstance(value, (int, float)):
        return (0, value)
    if isinstance(value, str):
        return (1, value)
    return (2, str(value))


def find_files(
    directory: Path, exclude: Iterable[re.Pattern[str]] = ()
) -> list[Path]:
    """Recursively list all regular files under a directory.

    Directories are never returned. Files whose basename matches one of the
    exclude patterns, or that are always ignored (like ``.DS_Store``), are
    skipped.

    Args:
        directory: Root directory to walk.
        exclude: Compiled regular expressions matched against basenames.

    Returns:
        Sorted list of absolute file paths.
    """
    patterns = list(exclude)
    files: list[Path] = []
    for path in sorted(directory.resolve().rglob("*")):
        if not path.is_file():
            continue
        if path.name in IGNORED_FILENAMES:
            continue
        if any(pattern.search(path.name) for pattern in patterns):
            continue
        files.append(path)
    return files


def is_within(path: Path, parent: Path) -> bool:
    """Check if a path lies inside (or equals) another path.

    Args:
        path: Candidate path.
        parent: Directory that might contain it.

    Returns:
        True if ``path`` is ``parent`` or one of its descendants.
    """
    try:
        path.resolve().relative_to(parent.resolve())
    except ValueError:
        return False
    return True


def remove_dir(path: Path) -> None:
    """Delete a directory tree; a missing directory is a no-op.

    Args:
        path: Directory to delete.
    """
    if path.is_dir():
        shutil.rmtree(path)


def ensure_clean_dir(path: Path) -> None:
    """Ensure a directory exists and is empty.

    If the directory exists, removes all contents. Creates the
    directory (and its parents) if it doesn't exist.

    Args:
        path: Directory path to clean or create.
    """
    remove_dir(path)
    path.mkdir(parents=True, exist_ok=True)
