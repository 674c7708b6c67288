# File: crudgen/utils.py
"""
CrudGen - Utility Functions & Helpers
======================================
Naming transforms, file I/O, and small formatting helpers used throughout
the scaffolding pipeline.

Naming strategy:
- ALL naming functions are decorated with ``@lru_cache(maxsize=None)``; one
  invocation asks for the same handful of identifiers many times.
- Naming functions are total over non-empty names and fail fast with
  ``InvalidName`` on empty or whitespace-only input.
- Pluralisation / singularisation only inflect the LAST word of a compound
  identifier, so ``blogPost`` → ``blogPosts`` and ``sales_person`` →
  ``sales_people``.
- No external dependencies beyond the Python standard library.
"""

from __future__ import annotations

import functools
import hashlib
import logging
import os
import re
import tempfile
import time
from pathlib import Path
from typing import Dict, FrozenSet, List, Optional, Tuple

from crudgen.exceptions import InvalidName

# ---------------------------------------------------------------------------
# Logger
# ---------------------------------------------------------------------------
logger: logging.Logger = logging.getLogger("crudgen.utils")

# ---------------------------------------------------------------------------
# Pre-compiled regex patterns (compiled once at module load)
# ---------------------------------------------------------------------------

_CAMEL_TO_SNAKE_RE1: re.Pattern[str] = re.compile(r"([A-Z]+)([A-Z][a-z])")
_CAMEL_TO_SNAKE_RE2: re.Pattern[str] = re.compile(r"([a-z0-9])([A-Z])")
_NON_ALPHANUM_RE: re.Pattern[str] = re.compile(r"[^a-zA-Z0-9]")
_MULTI_UNDERSCORE_RE: re.Pattern[str] = re.compile(r"_{2,}")
_LEADING_TRAILING_UNDERSCORE_RE: re.Pattern[str] = re.compile(r"^_+|_+$")
_SPLIT_WORDS_RE: re.Pattern[str] = re.compile(
    r"[A-Z]?[a-z]+|[A-Z]+(?=[A-Z][a-z]|\d|\b)|[A-Z]|\d+"
)
_LAST_WORD_RE: re.Pattern[str] = re.compile(r"(?:[A-Z]?[a-z0-9]+|[A-Z]+)$")
_QUALIFIER_SPLIT_RE: re.Pattern[str] = re.compile(r"[\\/]+")

# Irregular singular → plural forms
_IRREGULAR_PLURALS: Dict[str, str] = {
    "person": "people",
    "child": "children",
    "man": "men",
    "woman": "women",
    "mouse": "mice",
    "goose": "geese",
    "tooth": "teeth",
    "foot": "feet",
    "ox": "oxen",
    "datum": "data",
    "index": "indices",
    "matrix": "matrices",
    "vertex": "vertices",
    "axis": "axes",
    "crisis": "crises",
    "analysis": "analyses",
    "status": "statuses",
    "address": "addresses",
    "bus": "buses",
    "leaf": "leaves",
    "wolf": "wolves",
    "half": "halves",
    "shelf": "shelves",
    "thief": "thieves",
    "knife": "knives",
    "wife": "wives",
    "life": "lives",
    "hero": "heroes",
    "potato": "potatoes",
    "tomato": "tomatoes",
    "echo": "echoes",
    "shoe": "shoes",
    "movie": "movies",
    "toe": "toes",
    "quiz": "quizzes",
    "criterion": "criteria",
    "medium": "media",
    "alias": "aliases",
    "atlas": "atlases",
    "bias": "biases",
    "canvas": "canvases",
    "gas": "gases",
    "iris": "irises",
    "lens": "lenses",
    "pancreas": "pancreases",
}

_IRREGULAR_SINGULARS: Dict[str, str] = {v: k for k, v in _IRREGULAR_PLURALS.items()}

# Words with the same singular and plural form
_UNCOUNTABLE: FrozenSet[str] = frozenset({
    "equipment", "information", "rice", "money", "species", "series",
    "fish", "sheep", "deer", "news", "metadata", "feedback", "software",
    "hardware", "staff", "audio",
})


# ---------------------------------------------------------------------------
# Name guards
# ---------------------------------------------------------------------------


def require_name(name: str) -> str:
    """
    Return *name* stripped of surrounding whitespace.

    Raises:
        InvalidName: if *name* is not a string or is empty / whitespace-only.
    """
    if not isinstance(name, str) or not name.strip():
        raise InvalidName(
            f"Name must be a non-empty string, got {name!r}.",
            name=name if isinstance(name, str) else None,
        )
    return name.strip()


# ---------------------------------------------------------------------------
# Cached naming transforms
# ---------------------------------------------------------------------------


@functools.lru_cache(maxsize=None)
def base_name(name: str) -> str:
    """
    Strip any namespace / path qualifier, keeping only the final segment.

    Examples:
        >>> base_name("App\\\\Models\\\\User")
        'User'
        >>> base_name("Admin/Post")
        'Post'
        >>> base_name("Post")
        'Post'
    """
    cleaned: str = require_name(name)
    segments: List[str] = [s for s in _QUALIFIER_SPLIT_RE.split(cleaned) if s]
    if not segments:
        raise InvalidName(f"Name {name!r} has no final segment.", name=name)
    return segments[-1]


@functools.lru_cache(maxsize=None)
def namespace_of(name: str) -> Tuple[str, ...]:
    """
    Return the qualifier segments in front of the base name.

    ``"Admin/Blog/Post"`` → ``("Admin", "Blog")``; ``"Post"`` → ``()``.
    """
    cleaned: str = require_name(name)
    segments: List[str] = [s for s in _QUALIFIER_SPLIT_RE.split(cleaned) if s]
    return tuple(segments[:-1])


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
    s: str = _CAMEL_TO_SNAKE_RE1.sub(r"\1_\2", require_name(name))
    s = _CAMEL_TO_SNAKE_RE2.sub(r"\1_\2", s)
    s = _NON_ALPHANUM_RE.sub("_", s)
    s = _MULTI_UNDERSCORE_RE.sub("_", s)
    s = _LEADING_TRAILING_UNDERSCORE_RE.sub("", s)
    if not s:
        raise InvalidName(f"Name {name!r} produces an empty identifier.", name=name)
    return s.lower()


@functools.lru_cache(maxsize=None)
def to_camel_case(name: str) -> str:
    """
    Convert any string to camelCase.

    Examples:
        >>> to_camel_case("user_profile")
        'userProfile'
        >>> to_camel_case("HTTPResponse")
        'httpResponse'
        >>> to_camel_case("Post")
        'post'
    """
    words: Tuple[str, ...] = _extract_words(require_name(name))
    if not words:
        raise InvalidName(f"Name {name!r} produces an empty identifier.", name=name)
    first: str = words[0].lower()
    rest: str = "".join(w.capitalize() for w in words[1:])
    return first + rest


@functools.lru_cache(maxsize=None)
def to_plural(name: str) -> str:
    """
    English pluralisation sufficient for code generation.

    Only the last word of a compound identifier is inflected; the casing of
    the original is preserved.

    Examples:
        >>> to_plural("category")
        'categories'
        >>> to_plural("blogPost")
        'blogPosts'
        >>> to_plural("sales_person")
        'sales_people'
    """
    head, tail = _split_last_word(require_name(name))
    return head + _match_case(tail, _pluralize_word(tail.lower()))


@functools.lru_cache(maxsize=None)
def to_singular(name: str) -> str:
    """
    English singularisation (reverse of ``to_plural``).

    Examples:
        >>> to_singular("categories")
        'category'
        >>> to_singular("Tags")
        'Tag'
        >>> to_singular("Status")
        'Status'
    """
    head, tail = _split_last_word(require_name(name))
    return head + _match_case(tail, _singularize_word(tail.lower()))


@functools.lru_cache(maxsize=None)
def to_plural_snake_case(name: str) -> str:
    """``"BlogPost"`` → ``"blog_posts"`` (the table name of an entity)."""
    return to_plural(to_snake_case(name))


@functools.lru_cache(maxsize=None)
def to_plural_camel_case(name: str) -> str:
    """``"BlogPost"`` → ``"blogPosts"`` (a to-many accessor name)."""
    return to_plural(to_camel_case(name))


@functools.lru_cache(maxsize=None)
def _extract_words(name: str) -> Tuple[str, ...]:
    """
    Extract individual words from any casing style.

    Returns a tuple (hashable for LRU cache) of lowercase word strings.
    """
    cleaned: str = _NON_ALPHANUM_RE.sub(" ", name)
    words: List[str] = _SPLIT_WORDS_RE.findall(cleaned)
    return tuple(w.lower() for w in words if w)


def _split_last_word(name: str) -> Tuple[str, str]:
    """Split *name* into ``(head, last_word)``; the whole name when no word boundary exists."""
    match: Optional[re.Match[str]] = _LAST_WORD_RE.search(name)
    if match is None or match.start() == 0:
        return "", name
    return name[: match.start()], match.group(0)


def _match_case(original: str, inflected: str) -> str:
    """Re-apply the casing of *original* to the lowercase *inflected* word."""
    if len(original) > 1 and original.isupper():
        return inflected.upper()
    if original[:1].isupper():
        return inflected[:1].upper() + inflected[1:]
    return inflected


def _pluralize_word(lower: str) -> str:
    if lower in _UNCOUNTABLE or lower in _IRREGULAR_SINGULARS:
        return lower
    if lower in _IRREGULAR_PLURALS:
        return _IRREGULAR_PLURALS[lower]

    # Already plural-looking
    if lower.endswith("s") and not lower.endswith(("ss", "us", "is")):
        return lower

    # Rules ordered by specificity
    if lower.endswith("is"):
        return lower[:-2] + "es"
    if lower.endswith(("sh", "ch", "x", "z", "ss", "us")):
        return lower + "es"
    if lower.endswith("y") and len(lower) > 1 and lower[-2] not in "aeiou":
        return lower[:-1] + "ies"

    return lower + "s"


def _singularize_word(lower: str) -> str:
    if lower in _UNCOUNTABLE or lower in _IRREGULAR_PLURALS:
        return lower
    if lower in _IRREGULAR_SINGULARS:
        return _IRREGULAR_SINGULARS[lower]

    if lower.endswith(("ss", "us", "is")):
        return lower
    if lower.endswith("ies") and len(lower) > 3:
        return lower[:-3] + "y"
    if lower.endswith(("sses", "xes", "ches", "shes", "zzes")):
        return lower[:-2]
    if lower.endswith("s"):
        return lower[:-1]

    return lower


# ---------------------------------------------------------------------------
# Text helpers
# ---------------------------------------------------------------------------


def quote(value: str, char: str = "'") -> str:
    """Wrap *value* in single quotes (PHP string literal), escaping internals."""
    escaped: str = value.replace("\\", "\\\\").replace(char, f"\\{char}")
    return f"{char}{escaped}{char}"


def sha256_hex(content: str) -> str:
    """Return SHA-256 hex digest of a string."""
    return hashlib.sha256(content.encode("utf-8")).hexdigest()


def count_lines(content: str) -> int:
    """Count the number of lines in a string."""
    if not content:
        return 0
    return content.count("\n") + (1 if not content.endswith("\n") else 0)


# ---------------------------------------------------------------------------
# File I/O helpers
# ---------------------------------------------------------------------------


def ensure_directory(path: Path) -> None:
    """Create directory (and parents) if it doesn't exist."""
    path.mkdir(parents=True, exist_ok=True)
    logger.debug("Ensured directory exists: %s", path)


def write_file(path: Path, content: str, atomic: bool = True) -> int:
    """
    Write *content* to *path*.

    When *atomic* is True, writes to a temporary file first then renames —
    this prevents partial writes on crash.

    Returns the number of bytes written.
    """
    ensure_directory(path.parent)

    encoded: bytes = content.encode("utf-8")

    if atomic:
        fd: int
        tmp_path: str
        fd, tmp_path = tempfile.mkstemp(
            dir=str(path.parent),
            prefix=f".{path.name}.",
            suffix=".tmp",
        )
        try:
            with os.fdopen(fd, "wb") as handle:
                handle.write(encoded)
            os.replace(tmp_path, path)
        except BaseException:
            if os.path.exists(tmp_path):
                os.unlink(tmp_path)
            raise
    else:
        path.write_bytes(encoded)

    logger.debug("Wrote %d bytes to %s", len(encoded), path)
    return len(encoded)


def read_file(path: Path) -> str:
    """Read a file and return its content as a string."""
    return path.read_text(encoding="utf-8")


# ---------------------------------------------------------------------------
# Timer context manager
# ---------------------------------------------------------------------------


class Timer:
    """
    Simple context-manager timer for profiling pipeline steps.

    Usage:
        with Timer("render") as t:
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
    "require_name",
    "base_name",
    "namespace_of",
    "to_snake_case",
    "to_camel_case",
    "to_plural",
    "to_singular",
    "to_plural_snake_case",
    "to_plural_camel_case",
    "quote",
    "sha256_hex",
    "count_lines",
    "ensure_directory",
    "write_file",
    "read_file",
    "Timer",
]

logger.debug("crudgen.utils loaded — %d public symbols.", len(__all__))
