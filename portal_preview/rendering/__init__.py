"""Render portal template sources and assemble pages.

The pipeline combines a code classifier, recursive include expansion, a
Liquid-to-Jinja2 translator and a Jinja2 environment with portal filters.

Examples
--------
>>> from portal_preview.rendering import RenderContext, TemplateRenderer
>>> renderer = TemplateRenderer(resolver)  # doctest: +SKIP
>>> renderer.render("Hi {{ user.fullname }}", RenderContext(user={"fullname": "Dana"}))  # doctest: +SKIP
'Hi Dana'
"""

from .classifier import DEFAULT_SIGNALS, ContentClassifier, Signal, Verdict
from .context import RenderContext
from .dialect import translate, translate_expression
from .filters import FILTERS, register_filters
from .includes import Expansion, IncludeExpander, IncludeReference
from .loader import ContentLoader, render_language
from .page import PageAssembler, PageResult
from .renderer import RenderOutcome, TemplateRenderer

__all__ = [
    "DEFAULT_SIGNALS",
    "FILTERS",
    "ContentClassifier",
    "ContentLoader",
    "Expansion",
    "IncludeExpander",
    "IncludeReference",
    "PageAssembler",
    "PageResult",
    "RenderContext",
    "RenderOutcome",
    "Signal",
    "TemplateRenderer",
    "Verdict",
    "register_filters",
    "render_language",
    "translate",
    "translate_expression",
]
