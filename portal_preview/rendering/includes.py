"""Recursive expansion of include directives and snippet references.

Expansion runs before the template engine sees the source because the
engine's loader cannot express the portal's lookup order (snippet storage,
then templates) together with the per-include code detection. Four token
families are recognised::

    {{ Snippets.Name }}               snippet storage only
    {{ snippets["Name"] }}            snippet storage only
    {% editable snippets "Name" %}    snippet storage only
    {% include 'Name' [key: value] %} snippet storage, then templates

Include arguments are bound around the expanded content with a Jinja
``with`` block. Tokens inside ``raw`` and ``comment`` blocks are left alone.

Content that must not reach the engine (script bundles, truncated tokens)
is parked in numbered verbatim segments and replaced by placeholders that
survive rendering untouched. :meth:`Expansion.restore` swaps them back.
"""

from __future__ import annotations

import dataclasses as dc
import logging
import re
import typing as typ

from .._constants import (
    DEFAULT_MAX_INCLUDE_DEPTH,
    INCLUDE_DEPTH_MARKER,
    INCLUDE_NOT_FOUND_MARKER,
    SNIPPET_NOT_FOUND_MARKER,
)
from ..content.models import ContentKind
from .dialect import include_bindings

if typ.TYPE_CHECKING:
    from ..content.resolver import ContentResolver
    from .classifier import ContentClassifier

logger = logging.getLogger(__name__)

INCLUDE_TOKEN_RE = re.compile(
    r"\{\{-?\s*Snippets\.(?P<attr>[^}]+?)\s*-?\}\}"
    r"|\{\{-?\s*snippets\[\s*(?P<q1>['\"])(?P<key>[^'\"]+)(?P=q1)\s*\]\s*-?\}\}"
    r"|\{%-?\s*editable\s+snippets\s+(?P<q2>['\"])(?P<editable>[^'\"]+)(?P=q2)[^%]*?-?%\}"
    r"|\{%-?\s*include\s+(?P<q3>['\"])(?P<include>[^'\"]+)(?P=q3)(?P<args>[^%]*?)-?%\}"
)
LITERAL_BLOCK_RE = re.compile(
    r"\{%-?\s*(?P<tag>raw|comment)\s*-?%\}.*?(?:\{%-?\s*end(?P=tag)\s*-?%\}|\Z)",
    re.DOTALL,
)
PLACEHOLDER_RE = re.compile(r"@@portal-preview-verbatim-(\d+)@@")


def _placeholder(index: int) -> str:
    return f"@@portal-preview-verbatim-{index}@@"


@dc.dataclass(frozen=True, slots=True)
class IncludeReference:
    """A reference token found in template source."""

    raw_token: str
    target_name: str
    depth: int
    snippet_only: bool = False
    arguments: str = ""


@dc.dataclass(slots=True)
class Expansion:
    """Result of expanding a source: text with placeholders plus bookkeeping."""

    text: str
    segments: list[str] = dc.field(default_factory=list)
    references: list[IncludeReference] = dc.field(default_factory=list)
    missing: list[str] = dc.field(default_factory=list)
    truncated: list[str] = dc.field(default_factory=list)

    def protect(self, text: str) -> str:
        """Park ``text`` as a verbatim segment and return its placeholder."""
        self.segments.append(text)
        return _placeholder(len(self.segments) - 1)

    def restore(self, text: str | None = None) -> str:
        """Replace placeholders in ``text`` (default: the expansion) with segments."""
        target = self.text if text is None else text
        return PLACEHOLDER_RE.sub(lambda m: self.segments[int(m.group(1))], target)

    def restore_as_raw(self, text: str) -> str:
        """Replace placeholders with segments wrapped in Jinja ``raw`` blocks."""
        return PLACEHOLDER_RE.sub(
            lambda m: f"{{% raw %}}{self.segments[int(m.group(1))]}{{% endraw %}}", text
        )


class IncludeExpander:
    """Expand include tokens through the resolver with a depth bound.

    Parameters
    ----------
    resolver : ContentResolver
        Source of snippets and templates.
    classifier : ContentClassifier
        Decides which included content bypasses the engine.
    max_depth : int
        Deepest discovery depth that is still expanded. Tokens found beyond
        it are kept verbatim behind an inline depth-limit marker.
    """

    def __init__(
        self,
        resolver: ContentResolver,
        classifier: ContentClassifier,
        *,
        max_depth: int = DEFAULT_MAX_INCLUDE_DEPTH,
    ) -> None:
        self.resolver = resolver
        self.classifier = classifier
        self.max_depth = max_depth

    def expand(
        self, source: str, language: str | None = None, *, depth: int = 0
    ) -> Expansion:
        """Expand every reference in ``source`` found below ``depth``."""
        expansion = Expansion(text="")
        expansion.text = self._expand(source, language, depth, expansion)
        return expansion

    def find_references(self, source: str, depth: int = 0) -> list[IncludeReference]:
        """Return the references in ``source`` in document order."""
        return [
            _reference(match, depth + 1)
            for chunk, literal in _chunks(source)
            if not literal
            for match in INCLUDE_TOKEN_RE.finditer(chunk)
        ]

    def _expand(
        self, source: str, language: str | None, depth: int, expansion: Expansion
    ) -> str:
        def _substitute(match: re.Match[str]) -> str:
            ref = _reference(match, depth + 1)
            expansion.references.append(ref)
            return self._resolve_reference(ref, language, expansion)

        return "".join(
            chunk if literal else INCLUDE_TOKEN_RE.sub(_substitute, chunk)
            for chunk, literal in _chunks(source)
        )

    def _resolve_reference(
        self, ref: IncludeReference, language: str | None, expansion: Expansion
    ) -> str:
        if ref.depth > self.max_depth:
            logger.warning(
                "Include depth limit (%d) reached at '%s'; leaving it unexpanded",
                self.max_depth,
                ref.target_name,
            )
            expansion.truncated.append(ref.target_name)
            marker = INCLUDE_DEPTH_MARKER.format(name=ref.target_name)
            return marker + expansion.protect(ref.raw_token)

        if ref.snippet_only:
            item = self.resolver.resolve(ContentKind.SNIPPET, ref.target_name, language)
            missing_marker = SNIPPET_NOT_FOUND_MARKER
        else:
            item = self.resolver.resolve_include(ref.target_name, language)
            missing_marker = INCLUDE_NOT_FOUND_MARKER
        if not item:
            logger.warning("Include not found: %s", ref.target_name)
            expansion.missing.append(ref.target_name)
            return missing_marker.format(name=ref.target_name)

        if self.classifier.should_skip_file(ref.target_name, item.raw_source):
            logger.debug("Including '%s' verbatim (script library)", ref.target_name)
            return expansion.protect(item.raw_source)

        expanded = self._expand(item.raw_source, language, ref.depth, expansion)
        restored = expansion.restore(expanded)
        if self.classifier.is_executable_code(restored, file_name=item.file_name):
            logger.debug("Including '%s' verbatim (classified as code)", ref.target_name)
            return expansion.protect(restored)
        bindings = include_bindings(ref.arguments)
        if bindings:
            return f"{{% with {bindings} %}}{expanded}{{% endwith %}}"
        return expanded


def _chunks(source: str) -> typ.Iterator[tuple[str, bool]]:
    """Split ``source`` into ``(text, is_literal_block)`` pieces."""
    position = 0
    for match in LITERAL_BLOCK_RE.finditer(source):
        if match.start() > position:
            yield source[position : match.start()], False
        yield match.group(0), True
        position = match.end()
    if position < len(source):
        yield source[position:], False


def _reference(match: re.Match[str], depth: int) -> IncludeReference:
    if match.group("include") is not None:
        return IncludeReference(
            match.group(0),
            match.group("include").strip(),
            depth,
            arguments=match.group("args").strip(),
        )
    name = match.group("attr") or match.group("key") or match.group("editable")
    return IncludeReference(match.group(0), name.strip(), depth, snippet_only=True)


__all__ = ["Expansion", "IncludeExpander", "IncludeReference", "PLACEHOLDER_RE"]
