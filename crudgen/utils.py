# File: crudgen/utils.py
"""
CrudGen - Utility Functions & Helpers
======================================
String transformation, file I/O, and timing utilities used throughout the
generation pipeline.

- All string-conversion functions are decorated with ``@lru_cache`` because
  the same table / column names are converted many times per run.
- ``write_file`` writes to a temporary sibling then renames, so an artifact
  is either fully replaced or left untouched.
"""

from __future__ import annotations

import functools
import logging
import os
import re
import tempfile
import time
from pathlib import Path
from typing import List, Optional, Tuple

# ---------------------------------------------------------------------------
# Logger
# ---------------------------------------------------------------------------
logger: logging.Logger = logging.getLogger("crudgen.utils")

# ---------------------------------------------------------------------------
# Pre-compiled regex patterns
# ---------------------------------------------------------------------------

_CAMEL_TO_SNAKE_RE1: re.Pattern[str] = re.compile(r"([A-Z]+)([A-Z][a-z])")
_CAMEL_TO_SNAKE_RE2: re.Pattern[str] = re.compile(r"([a-z0-9])([A-Z])")
_NON_ALPHANUM_RE: re.Pattern[str] = re.compile(r"[^a-zA-Z0-9]")
_MULTI_UNDERSCORE_RE: re.Pattern[str] = re.compile(r"_{2,}")
_LEADING_TRAILING_UNDERSCORE_RE: re.Pattern[str] = re.compile(r"^_+|_+$")
_SPLIT_WORDS_RE: re.Pattern[str] = re.compile(
    r"[A-Z]?[a-z]+|[A-Z]+(?=[A-Z][a-z]|\d|\b)|[A-Z]|\d+"
)
_IDENTIFIER_RE: re.Pattern[str] = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")


# ---------------------------------------------------------------------------
# Cached string transformation functions
# ---------------------------------------------------------------------------


@functools.lru_cache(maxsize=None)
def to_snake_case(name: str) -> str:
    """
    Convert any string to snake_case.

    Examples:
        >>> to_snake_case("UserProfile")
        'user_profile'
        >>> to_snake_case("getHTTPResponse")
        'get_http_response'
        >>> to_snake_case("already_snake")
        'already_snake'
    """
    if not name:
        return ""
    s: str = _CAMEL_TO_SNAKE_RE1.sub(r"\1_\2", name)
    s = _CAMEL_TO_SNAKE_RE2.sub(r"\1_\2", s)
    s = _NON_ALPHANUM_RE.sub("_", s)
    s = _MULTI_UNDERSCORE_RE.sub("_", s)
    s = _LEADING_TRAILING_UNDERSCORE_RE.sub("", s)
    return s.lower()


@functools.lru_cache(maxsize=None)
def to_pascal_case(name: str) -> str:
    """
    Convert any string to PascalCase.

    Examples:
        >>> to_pascal_case("order_item")
        'OrderItem'
        >>> to_pascal_case("QueryOrderList")
        'QueryOrderList'
    """
    if not name:
        return ""
    words: Tuple[str, ...] = _extract_words(name)
    return "".join(word.capitalize() for word in words)


@functools.lru_cache(maxsize=None)
def to_camel_case(name: str) -> str:
    """
    Convert any string to camelCase.

    Examples:
        >>> to_camel_case("user_profile")
        'userProfile'
        >>> to_camel_case("HTTPResponse")
        'httpResponse'
    """
    if not name:
        return ""
    words: Tuple[str, ...] = _extract_words(name)
    if not words:
        return ""
    first: str = words[0].lower()
    rest: str = "".join(w.capitalize() for w in words[1:])
    return first + rest


@functools.lru_cache(maxsize=None)
def _extract_words(name: str) -> Tuple[str, ...]:
    """
    Extract individual words from any casing style.

    Returns a tuple (hashable for LRU cache) of lowercase word strings.
    """
    cleaned: str = _NON_ALPHANUM_RE.sub(" ", name)
    words: List[str] = _SPLIT_WORDS_RE.findall(cleaned)
    return tuple(w.lower() for w in words if w)


def first_upper(name: str) -> str:
    """Upper-case only the first character."""
    if not name:
        return ""
    return name[:1].upper() + name[1:]


def first_lower(name: str) -> str:
    """Lower-case only the first character."""
    if not name:
        return ""
    return name[:1].lower() + name[1:]


def go_camel_name(name: str) -> str:
    """
    Exported Go-style name: snake_case is converted, anything else only has
    its first letter raised (``UserVIPInfo`` stays as written).
    """
    return first_upper(name) if "_" not in name else to_pascal_case(name)


def is_identifier(name: str) -> bool:
    return bool(_IDENTIFIER_RE.match(name))


# ---------------------------------------------------------------------------
# File I/O helpers
# ---------------------------------------------------------------------------


def ensure_directory(path: Path) -> None:
    """Create directory (and parents) if it doesn't exist."""
    path.mkdir(parents=True, exist_ok=True)
    logger.debug("Ensured directory exists: %s", path)


def write_file(path: Path, content: str) -> int:
    """
    Atomically replace *path* with *content*.

    The content goes to a temporary file in the same directory which is then
    renamed over the target, so readers never observe a half-written file.
    On failure the temporary file is removed and the exception propagates;
    the previous file (if any) is left as it was.

    Returns the number of bytes written.
    """
    ensure_directory(path.parent)

    encoded: bytes = content.encode("utf-8")
    fd: int = -1
    tmp_path: str = ""
    try:
        fd, tmp_path = tempfile.mkstemp(
            dir=str(path.parent),
            prefix=f".{path.name}.",
            suffix=".tmp",
        )
        os.write(fd, encoded)
        os.fsync(fd)
        os.close(fd)
        fd = -1
        os.replace(tmp_path, str(path))
    except Exception:
        if fd >= 0:
            os.close(fd)
        if tmp_path and os.path.exists(tmp_path):
            os.unlink(tmp_path)
        raise

    logger.debug("Wrote %d bytes to %s", len(encoded), path)
    return len(encoded)


def read_file(path: Path) -> str:
    """Read a file and return its content as a string, line endings as stored."""
    with open(path, encoding="utf-8", newline="") as fh:
        return fh.read()


# ---------------------------------------------------------------------------
# Timer context manager
# ---------------------------------------------------------------------------


class Timer:
    """
    Simple context-manager timer for profiling generation steps.

    Usage:
        with Timer("extract schema") as t:
            ...
        print(t.elapsed)
    """

    __slots__ = ("label", "start_time", "end_time", "elapsed")

    def __init__(self, label: str = "operation") -> None:
        self.label: str = label
        self.start_time: float = 0.0
        self.end_time: float = 0.0
        self.elapsed: float = 0.0

    def __enter__(self) -> "Timer":
        self.start_time = time.perf_counter()
        return self

    def __exit__(
        self,
        exc_type: Optional[type],
        exc_val: Optional[BaseException],
        exc_tb: Optional[object],
    ) -> None:
        self.end_time = time.perf_counter()
        self.elapsed = self.end_time - self.start_time
        logger.debug("Timer [%s]: %.4f seconds", self.label, self.elapsed)

    def __repr__(self) -> str:
        return f"<Timer {self.label}: {self.elapsed:.4f}s>"


# ---------------------------------------------------------------------------
# Module-level exports
# ---------------------------------------------------------------------------

__all__: List[str] = [
    "to_snake_case",
    "to_pascal_case",
    "to_camel_case",
    "first_upper",
    "first_lower",
    "go_camel_name",
    "is_identifier",
    "ensure_directory",
    "write_file",
    "read_file",
    "Timer",
]

logger.debug("crudgen.utils loaded — %d public symbols.", len(__all__))
