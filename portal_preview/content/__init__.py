"""Locate pages, templates and snippets inside a portal export."""

from .cache import ContentCache
from .models import NOT_FOUND, ContentItem, ContentKind, NotFound
from .naming import language_of, normalize_name
from .pages import PageMeta, PageRouter, detect_language
from .resolver import ContentResolver, Resolution

__all__ = [
    "NOT_FOUND",
    "ContentCache",
    "ContentItem",
    "ContentKind",
    "ContentResolver",
    "NotFound",
    "PageMeta",
    "PageRouter",
    "Resolution",
    "detect_language",
    "language_of",
    "normalize_name",
]
