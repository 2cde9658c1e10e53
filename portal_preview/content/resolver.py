"""Map logical content names to files in a portal export.

The resolver understands the fixed on-disk layout produced by the portal
export tool:

* pages: ``{pages}/{slug}/content-pages/{Name}.{lang}.webpage.copy.html``
  with sibling ``.webpage.custom_css.css`` and
  ``.webpage.custom_javascript.js`` files;
* templates: ``{templates}/{slug}/{Name}.webtemplate.source.html``;
* snippets: ``{snippets}/{slug}/{Name}[.{lang}].contentsnippet.value.html``.

Misses are reported with the falsy :data:`NOT_FOUND` sentinel rather than an
exception so renderers can degrade to an inline diagnostic marker.
"""

from __future__ import annotations

import logging
import typing as typ
from pathlib import Path

from .._constants import (
    PAGE_CONTENT_DIR,
    PAGE_COPY_SUFFIX,
    PAGE_CSS_SUFFIX,
    PAGE_JS_SUFFIX,
    SNIPPET_LEGACY_SUFFIX,
    SNIPPET_VALUE_SUFFIX,
    TEMPLATE_SOURCE_SUFFIX,
)
from ..config.models import ContentPaths
from .cache import ContentCache
from .models import NOT_FOUND, ContentItem, ContentKind, NotFound
from .naming import language_of, normalize_name

logger = logging.getLogger(__name__)

Resolution = ContentItem | NotFound


class ContentResolver:
    """Resolve pages, templates and snippets with layered fallbacks.

    Parameters
    ----------
    paths : ContentPaths
        Locations of the export folders.
    default_language : str
        Language tried after the requested one.
    cache : ContentCache | None
        Cache shared with collaborators; a private cache is created otherwise.
    """

    def __init__(
        self,
        paths: ContentPaths,
        *,
        default_language: str = "en-US",
        cache: ContentCache | None = None,
    ) -> None:
        self.paths = paths
        self.default_language = default_language
        self.cache = cache if cache is not None else ContentCache()

    def resolve(
        self,
        kind: ContentKind,
        name: str,
        language: str | None = None,
        *,
        bypass_cache: bool = False,
    ) -> Resolution:
        """Return the content item for ``name`` or :data:`NOT_FOUND`.

        Parameters
        ----------
        kind : ContentKind
            Storage family to search.
        name : str
            Human-readable or slug name; normalized before lookup.
        language : str | None
            Preferred language variant.
        bypass_cache : bool
            Read from disk even when a cached item exists. The fresh result
            still replaces the cached one.
        """
        slug = normalize_name(name)
        if not slug:
            return NOT_FOUND
        key = (kind, slug, language)
        if not bypass_cache:
            cached = self.cache.get(key)
            if cached is not None:
                return cached

        try:
            item = self._read(kind, slug, language)
        except (OSError, UnicodeDecodeError) as exc:
            logger.warning("Unable to read %s '%s': %s", kind.value, name, exc)
            return NOT_FOUND
        if item is NOT_FOUND:
            logger.debug("No %s found for '%s'", kind.value, name)
            return NOT_FOUND
        self.cache.put(key, item)
        return item

    def resolve_include(
        self, name: str, language: str | None = None, *, bypass_cache: bool = False
    ) -> Resolution:
        """Resolve an include token: snippet storage first, then templates."""
        snippet = self.resolve(
            ContentKind.SNIPPET, name, language, bypass_cache=bypass_cache
        )
        if snippet:
            return snippet
        return self.resolve(
            ContentKind.TEMPLATE, name, language, bypass_cache=bypass_cache
        )

    def resolve_page_directory(
        self, directory: Path, language: str | None = None
    ) -> Resolution:
        """Resolve page content stored in ``directory`` (a routed page folder)."""
        try:
            return self._read_page(directory, language)
        except (OSError, UnicodeDecodeError) as exc:
            logger.warning("Unable to read page in %s: %s", directory, exc)
            return NOT_FOUND

    def clear(self) -> None:
        """Invalidate cached content (called by file watchers)."""
        self.cache.clear()

    def _read(self, kind: ContentKind, slug: str, language: str | None) -> Resolution:
        if kind is ContentKind.PAGE:
            return self._read_page(self.paths.pages_dir / slug, language)
        if kind is ContentKind.TEMPLATE:
            return self._read_template(slug)
        return self._read_snippet(slug, language)

    def _read_page(self, directory: Path, language: str | None) -> Resolution:
        content_dir = directory / PAGE_CONTENT_DIR
        if not content_dir.is_dir():
            return NOT_FOUND
        copies = _files_with_suffix(content_dir, PAGE_COPY_SUFFIX)
        if not copies:
            return NOT_FOUND

        chosen = None
        for candidate in (language, self.default_language):
            if not candidate:
                continue
            chosen = next(
                (
                    path
                    for path in copies
                    if path.name.lower().endswith(
                        f".{candidate}{PAGE_COPY_SUFFIX}".lower()
                    )
                ),
                None,
            )
            if chosen is not None:
                break
        if chosen is None:
            chosen = copies[0]
        if language and language_of(chosen.name, PAGE_COPY_SUFFIX) != language:
            logger.debug(
                "Page %s has no %s variant; using %s", directory.name, language, chosen.name
            )

        style = _first_text(content_dir, PAGE_CSS_SUFFIX)
        script = _first_text(content_dir, PAGE_JS_SUFFIX)
        return ContentItem(
            logical_name=normalize_name(directory.name),
            kind=ContentKind.PAGE,
            raw_source=chosen.read_text(encoding="utf-8"),
            language=language_of(chosen.name, PAGE_COPY_SUFFIX),
            source_path=chosen,
            style=style,
            script=script,
        )

    def _read_template(self, slug: str) -> Resolution:
        directory = self.paths.templates_dir / slug
        if not directory.is_dir():
            return NOT_FOUND
        sources = _files_with_suffix(directory, TEMPLATE_SOURCE_SUFFIX)
        if not sources:
            return NOT_FOUND
        source = sources[0]
        return ContentItem(
            logical_name=slug,
            kind=ContentKind.TEMPLATE,
            raw_source=source.read_text(encoding="utf-8"),
            source_path=source,
        )

    def _read_snippet(self, slug: str, language: str | None) -> Resolution:
        directory = self.paths.snippets_dir / slug
        if not directory.is_dir():
            return NOT_FOUND
        files = sorted(p for p in directory.iterdir() if p.is_file())
        chosen = _pick_snippet_file(files, language, self.default_language)
        if chosen is None:
            return NOT_FOUND
        return ContentItem(
            logical_name=slug,
            kind=ContentKind.SNIPPET,
            raw_source=chosen.read_text(encoding="utf-8"),
            language=language_of(chosen.name, SNIPPET_VALUE_SUFFIX),
            source_path=chosen,
        )


def _pick_snippet_file(
    files: typ.Sequence[Path], language: str | None, default_language: str | None = None
) -> Path | None:
    """Choose the snippet value file, preferring the requested language."""
    values = [p for p in files if p.name.endswith(SNIPPET_VALUE_SUFFIX)]
    for candidate in (language, default_language):
        if not candidate:
            continue
        wanted = f".{candidate}{SNIPPET_VALUE_SUFFIX}"
        for path in values:
            if path.name.endswith(wanted):
                return path
    bare = [p for p in values if not language_of(p.name, SNIPPET_VALUE_SUFFIX)]
    if bare:
        return bare[0]
    if values:
        return values[0]
    for path in files:
        if path.name.endswith(SNIPPET_LEGACY_SUFFIX):
            return path
    return next((p for p in files if p.suffix == ".html"), None)


def _files_with_suffix(directory: Path, suffix: str) -> list[Path]:
    lowered = suffix.lower()
    return sorted(
        path
        for path in directory.iterdir()
        if path.is_file() and path.name.lower().endswith(lowered)
    )


def _first_text(directory: Path, suffix: str) -> str | None:
    files = _files_with_suffix(directory, suffix)
    return files[0].read_text(encoding="utf-8") if files else None


__all__ = ["ContentResolver", "Resolution"]
