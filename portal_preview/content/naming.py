"""Slug normalization for content names."""

from __future__ import annotations

import re

_WHITESPACE_RE = re.compile(r"\s+")


def normalize_name(name: str) -> str:
    """Return the filesystem slug for a human-readable content name.

    Surrounding whitespace is trimmed, the name is lower-cased and internal
    whitespace runs collapse to a single hyphen. The transformation is
    idempotent.

    Examples
    --------
    >>> normalize_name("Global React Components")
    'global-react-components'
    >>> normalize_name(normalize_name("  Header  Nav "))
    'header-nav'
    """
    return _WHITESPACE_RE.sub("-", name.strip().lower())


def language_of(file_name: str, suffix: str) -> str | None:
    """Return the language qualifier in ``Name.{lang}{suffix}`` or ``None``.

    >>> language_of("Home.he-IL.webpage.copy.html", ".webpage.copy.html")
    'he-IL'
    >>> language_of("Footer.contentsnippet.value.html", ".contentsnippet.value.html")
    """
    if not file_name.lower().endswith(suffix.lower()):
        return None
    stem = file_name[: -len(suffix)]
    _, dot, qualifier = stem.rpartition(".")
    if not dot or not qualifier:
        return None
    return qualifier if re.fullmatch(r"[A-Za-z]{2,3}(-[A-Za-z0-9]{2,8})*", qualifier) else None


__all__ = ["language_of", "normalize_name"]
