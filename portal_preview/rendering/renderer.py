"""Render portal template sources through Jinja2.

The pipeline for one source is:

1. return it untouched if the raw source is executable code;
2. expand include tokens (:mod:`portal_preview.rendering.includes`);
3. return the expansion untouched if it now classifies as code;
4. translate Liquid to Jinja2, render, and restore verbatim segments.

Engine failures surface as :class:`~portal_preview.errors.TemplateSyntaxError`
or :class:`~portal_preview.errors.RenderRuntimeError`. Callers that must
never fail use :meth:`TemplateRenderer.render_lenient`.
"""

from __future__ import annotations

import collections
import dataclasses as dc
import hashlib
import logging
import threading
import typing as typ

import jinja2
from jinja2 import ChainableUndefined, Environment

from .._constants import DEFAULT_LANGUAGE, DEFAULT_MAX_INCLUDE_DEPTH, RENDER_ERROR_MARKER
from ..errors import RenderError, RenderRuntimeError, TemplateSyntaxError
from .classifier import ContentClassifier
from .context import RenderContext
from .dialect import translate
from .filters import register_filters
from .includes import Expansion, IncludeExpander
from .loader import ContentLoader, render_language

if typ.TYPE_CHECKING:
    from ..content.resolver import ContentResolver

logger = logging.getLogger(__name__)

RUNTIME_FAILURES = (
    jinja2.TemplateError,
    ArithmeticError,
    LookupError,
    TypeError,
    ValueError,
    RuntimeError,
)


@dc.dataclass(frozen=True, slots=True)
class RenderOutcome:
    """Text produced by a lenient render and the error it recovered from."""

    text: str
    error: RenderError | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


class TemplateRenderer:
    """Render template sources against a :class:`RenderContext`.

    Parameters
    ----------
    resolver : ContentResolver
        Resolver used for include expansion and native includes.
    classifier : ContentClassifier | None
        Code detector; a default-configured one is created when omitted.
    max_include_depth : int
        Depth bound for include expansion.
    compiled_cache_size : int
        Number of compiled templates kept, keyed by translated source.
    """

    def __init__(
        self,
        resolver: ContentResolver,
        classifier: ContentClassifier | None = None,
        *,
        max_include_depth: int = DEFAULT_MAX_INCLUDE_DEPTH,
        compiled_cache_size: int = 128,
    ) -> None:
        self.resolver = resolver
        self.classifier = classifier or ContentClassifier()
        self.expander = IncludeExpander(
            resolver, self.classifier, max_depth=max_include_depth
        )
        self.env = Environment(
            loader=ContentLoader(resolver, self.classifier, self.expander),
            autoescape=False,
            undefined=ChainableUndefined,
            extensions=["jinja2.ext.loopcontrols"],
            keep_trailing_newline=True,
            cache_size=0,
        )
        register_filters(self.env.filters)
        self._compiled: collections.OrderedDict[str, jinja2.Template] = (
            collections.OrderedDict()
        )
        self._compiled_cache_size = compiled_cache_size
        self._compiled_lock = threading.Lock()
        resolver.cache.add_invalidation_hook(self.clear_cache)

    def clear_cache(self) -> None:
        """Drop every compiled template."""
        with self._compiled_lock:
            self._compiled.clear()

    def render(
        self,
        source: str,
        context: RenderContext | None = None,
        *,
        identity: str = "<string>",
        language: str | None = None,
        overrides: typ.Mapping[str, typ.Any] | None = None,
    ) -> str:
        """Render ``source`` and return the resulting text.

        Parameters
        ----------
        source : str
            Liquid template source.
        context : RenderContext | None
            Variables; a default context is built when omitted.
        identity : str
            Label naming the source in diagnostics.
        language : str | None
            Language used to resolve includes.
        overrides : Mapping | None
            Extra variables taking precedence over ``context``.

        Raises
        ------
        TemplateSyntaxError
            If the translated source cannot be parsed.
        RenderRuntimeError
            If a filter, tag or expression fails while rendering.
        """
        expansion, verbatim = self._prepare(source, identity, language)
        if verbatim is not None:
            return verbatim
        active = self._context(context, language, overrides)
        rendered = self._execute(expansion.text, active, identity, language)
        return expansion.restore(rendered)

    def render_lenient(
        self,
        source: str,
        context: RenderContext | None = None,
        *,
        identity: str = "<string>",
        language: str | None = None,
        overrides: typ.Mapping[str, typ.Any] | None = None,
    ) -> RenderOutcome:
        """Render like :meth:`render` but degrade to an inline error marker.

        On failure the text is the error marker followed by the expanded,
        unrendered source so the rest of the page still shows.
        """
        expansion, verbatim = self._prepare(source, identity, language)
        if verbatim is not None:
            return RenderOutcome(text=verbatim)
        active = self._context(context, language, overrides)
        try:
            rendered = self._execute(expansion.text, active, identity, language)
        except RenderError as exc:
            logger.error("Render failed: %s", exc)
            marker = RENDER_ERROR_MARKER.format(
                identity=exc.identity, message=_comment_safe(exc.message)
            )
            return RenderOutcome(text=marker + expansion.restore(), error=exc)
        return RenderOutcome(text=expansion.restore(rendered))

    def _prepare(
        self, source: str, identity: str, language: str | None
    ) -> tuple[Expansion, str | None]:
        """Expand ``source``; the second item is set when the engine is skipped."""
        if self.classifier.is_executable_code(source):
            logger.debug("Skipping template engine for %s: source is code", identity)
            return Expansion(text=source), source
        expansion = self.expander.expand(source, language)
        if self.classifier.is_executable_code(expansion.text):
            logger.debug("Skipping template engine for %s: expansion is code", identity)
            return expansion, expansion.restore()
        return expansion, None

    @staticmethod
    def _context(
        context: RenderContext | None,
        language: str | None,
        overrides: typ.Mapping[str, typ.Any] | None,
    ) -> RenderContext:
        active = context or RenderContext.build(language=language or DEFAULT_LANGUAGE)
        return active.with_overrides(overrides) if overrides else active

    def _execute(
        self, text: str, context: RenderContext, identity: str, language: str | None
    ) -> str:
        token = render_language.set(language)
        try:
            template = self._compile(translate(text), identity)
            return template.render(dict(context.variables()))
        except jinja2.TemplateSyntaxError as exc:
            raise TemplateSyntaxError(identity, exc.message or str(exc), exc.lineno) from exc
        except RUNTIME_FAILURES as exc:
            raise RenderRuntimeError(identity, f"{type(exc).__name__}: {exc}") from exc
        finally:
            render_language.reset(token)

    def _compile(self, source: str, identity: str) -> jinja2.Template:
        key = hashlib.sha1(source.encode("utf-8"), usedforsecurity=False).hexdigest()
        with self._compiled_lock:
            template = self._compiled.get(key)
            if template is not None:
                self._compiled.move_to_end(key)
                return template
        template = self.env.from_string(source)
        with self._compiled_lock:
            self._compiled[key] = template
            while len(self._compiled) > self._compiled_cache_size:
                self._compiled.popitem(last=False)
        logger.debug("Compiled template for %s", identity)
        return template


def _comment_safe(message: str) -> str:
    return message.replace("--", "- -").replace("\n", " ")


__all__ = ["RenderOutcome", "TemplateRenderer"]
