"""In-memory content cache owned by a resolver instance."""

from __future__ import annotations

import logging
import typing as typ

from .models import ContentItem, ContentKind

logger = logging.getLogger(__name__)

CacheKey = tuple[ContentKind, str, str | None]


class ContentCache:
    """Cache resolved content keyed by ``(kind, slug, language)``.

    Entries are only ever replaced, never mutated. :meth:`clear` drops the
    whole cache and notifies every registered invalidation hook, which is how
    a file watcher also flushes the renderer's compiled-template cache.
    """

    def __init__(self) -> None:
        self._entries: dict[CacheKey, ContentItem] = {}
        self._hooks: list[typ.Callable[[], None]] = []

    def __len__(self) -> int:
        return len(self._entries)

    def get(self, key: CacheKey) -> ContentItem | None:
        item = self._entries.get(key)
        logger.debug("Content cache %s for %s", "hit" if item else "miss", key)
        return item

    def put(self, key: CacheKey, item: ContentItem) -> None:
        self._entries[key] = item

    def add_invalidation_hook(self, hook: typ.Callable[[], None]) -> None:
        """Register ``hook`` to run whenever the cache is cleared."""
        self._hooks.append(hook)

    def clear(self) -> None:
        """Drop every entry and run the invalidation hooks."""
        self._entries = {}
        for hook in self._hooks:
            hook()
        logger.debug("Content cache cleared")


__all__ = ["CacheKey", "ContentCache"]
