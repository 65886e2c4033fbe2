"""Identifier, title and slug helpers for workspace exports.

Exported file and folder names interleave human titles with 32-hex-digit
identifiers (``Roadmap 1f2e3d4c5b6a79880716253443526170.md``). These helpers
pull the identifiers out, clean them off titles, and find files by them.
"""

import html
import logging
import os
import re
from pathlib import Path
from urllib.parse import unquote

logger = logging.getLogger(__name__)

# 8-4-4-4-12 hex groups, dashes optional
IDENTIFIER_PATTERN = re.compile(
    r"([a-f0-9]{8})-?([a-f0-9]{4})-?([a-f0-9]{4})-?([a-f0-9]{4})-?([a-f0-9]{12})",
    re.IGNORECASE,
)

SHORT_ID_LENGTH = 8

_TITLE_CLEANUP = [
    # "Title 1f2e...70.md"
    re.compile(r"\s+[a-f0-9]{32}\.(md|csv|html)$", re.IGNORECASE),
    re.compile(r"\s*[a-f0-9]{8}-[a-f0-9]{4}-[a-f0-9]{4}-[a-f0-9]{4}-[a-f0-9]{12}", re.IGNORECASE),
    re.compile(r"\s+[a-f0-9]{32}$", re.IGNORECASE),
    re.compile(r"\.(md|csv|html)$", re.IGNORECASE),
    re.compile(r"\s*\(Inline database\)\s*$", re.IGNORECASE),
]

MALFORMED_ESCAPE = re.compile(r"%(?![0-9A-Fa-f]{2})")


def extract_identifier(text: str) -> str:
    """Return the first embedded identifier as 32 lowercase hex digits, or ''."""
    match = IDENTIFIER_PATTERN.search(text)
    if not match:
        return ""
    return "".join(match.groups()).lower()


def extract_short_identifier(text: str) -> str:
    """Return the first 8 hex digits of the embedded identifier, or ''."""
    return extract_identifier(text)[:SHORT_ID_LENGTH]


def clean_title(text: str) -> str:
    """Strip identifiers, file extensions and export suffixes from a title."""
    cleaned = html.unescape(text)
    for pattern in _TITLE_CLEANUP:
        cleaned = pattern.sub("", cleaned)
    return cleaned.strip()


def slugify(text: str) -> str:
    """Convert text to a URL slug."""
    slug = text.lower()
    slug = re.sub(r"[^\w\s-]", "", slug)
    slug = re.sub(r"\s+", "-", slug)
    slug = re.sub(r"-+", "-", slug)
    return slug.strip("-")


def safe_unquote(text: str) -> str:
    """Percent-decode ``text`` without ever raising.

    Input with a malformed escape, or escapes that do not form valid UTF-8,
    is returned undecoded with every stray ``%`` replaced by ``%25``.
    """
    if MALFORMED_ESCAPE.search(text):
        return MALFORMED_ESCAPE.sub("%25", text)
    try:
        return unquote(text, errors="strict")
    except UnicodeDecodeError:
        return text


def find_file_by_identifier(
    root: Path,
    identifier: str,
    suffix: str,
    exclude_suffix: str | None = None,
) -> str | None:
    """Search ``root`` for a file whose name carries ``identifier``.

    Exported file names do not always agree with the path recorded in the
    navigation markup, so pages and tables can be located by identifier
    alone. The tree is walked depth-first in directory listing order. A
    file containing the full identifier wins; failing that, the first file
    containing its 8-character prefix. Matching is case-insensitive.

    Args:
        root: Export directory to search.
        identifier: Full or short identifier, dashes allowed.
        suffix: File extension to consider, e.g. ``".md"``.
        exclude_suffix: Name ending that disqualifies a file, e.g. ``"_all.csv"``.

    Returns:
        Posix path relative to ``root``, or None.
    """
    full_id = identifier.replace("-", "").lower()
    short_id = full_id[:SHORT_ID_LENGTH]
    if not short_id or not root.is_dir():
        return None

    candidates = list(_walk_files(root, suffix, exclude_suffix))
    for needle in (full_id, short_id):
        for path in candidates:
            if needle in path.name[: -len(suffix)].lower():
                logger.debug("Identifier %s resolved to %s", identifier, path)
                return path.relative_to(root).as_posix()
    return None


def _walk_files(directory: Path, suffix: str, exclude_suffix: str | None):
    """Yield files under ``directory`` depth-first, in listing order."""
    try:
        entries = list(os.scandir(directory))
    except OSError:
        logger.warning("Cannot list directory %s", directory)
        return
    for entry in entries:
        if entry.is_dir(follow_symlinks=False):
            yield from _walk_files(Path(entry.path), suffix, exclude_suffix)
        elif entry.name.endswith(suffix):
            if exclude_suffix and entry.name.endswith(exclude_suffix):
                continue
            yield Path(entry.path)
