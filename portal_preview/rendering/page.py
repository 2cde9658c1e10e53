"""Assemble complete HTML documents for routed portal pages.

The assembler ties the pieces together for one request: route lookup,
language fallback, identity resolution, rendering of the page copy, custom
CSS and custom JavaScript, and finally the HTML shell that loads the client
libraries a portal page expects.
"""

from __future__ import annotations

import asyncio
import dataclasses as dc
import logging
import typing as typ
import urllib.parse
from html import escape
from http import HTTPStatus
from pathlib import Path

import jinja2
from jinja2 import Environment, FileSystemLoader

from .._constants import NOT_FOUND_ROUTE, TRACKING_SNIPPET
from ..content.models import ContentItem, ContentKind
from ..content.pages import PageMeta, PageRouter, detect_language
from ..content.resolver import ContentResolver
from ..errors import RenderError
from ..identity import IdentityProvider, resolve_user
from .classifier import ContentClassifier
from .context import RenderContext
from .renderer import TemplateRenderer

if typ.TYPE_CHECKING:
    from ..config.models import PreviewConfig

logger = logging.getLogger(__name__)

RTL_LANGUAGES = frozenset({"he", "ar", "fa", "ur"})

SHELL_STYLESHEETS = (
    "https://cdn.jsdelivr.net/npm/bootstrap@5.1.3/dist/css/bootstrap.min.css",
    "https://cdnjs.cloudflare.com/ajax/libs/font-awesome/6.0.0/css/all.min.css",
)
SHELL_SCRIPTS = (
    "https://code.jquery.com/jquery-3.6.0.min.js",
    "https://unpkg.com/react@18/umd/react.development.js",
    "https://unpkg.com/react-dom@18/umd/react-dom.development.js",
    "https://unpkg.com/@babel/standalone/babel.min.js",
    "https://cdn.jsdelivr.net/npm/bootstrap@5.1.3/dist/js/bootstrap.bundle.min.js",
)

BUILTIN_NOT_FOUND = """<!DOCTYPE html>
<html>
<head>
    <title>Page Not Found</title>
</head>
<body>
    <h1>404 - Page Not Found</h1>
    <p>The page you requested could not be found.</p>
    <a href="/">Return to Home</a>
</body>
</html>
"""


@dc.dataclass(slots=True)
class PageResult:
    """An assembled page ready to be sent to the browser."""

    status: int
    html: str
    language: str
    page: PageMeta | None = None
    errors: list[RenderError] = dc.field(default_factory=list)


class PageAssembler:
    """Render routed pages into complete HTML documents.

    Parameters
    ----------
    config : PreviewConfig
        Resolved preview configuration.
    resolver : ContentResolver | None
        Content resolver; built from ``config`` when omitted.
    renderer : TemplateRenderer | None
        Template renderer; built from ``config`` when omitted.
    identity_provider : IdentityProvider | None
        Source of live contact records. ``None`` renders with the fallback
        identity.
    templates_dir : Path | None
        Directory holding ``page_shell.jinja``. Defaults to the packaged
        templates.
    """

    def __init__(
        self,
        config: PreviewConfig,
        *,
        resolver: ContentResolver | None = None,
        renderer: TemplateRenderer | None = None,
        identity_provider: IdentityProvider | None = None,
        templates_dir: Path | None = None,
    ) -> None:
        self.config = config
        self.resolver = resolver or ContentResolver(
            config.paths, default_language=config.default_language
        )
        self.renderer = renderer or TemplateRenderer(
            self.resolver,
            ContentClassifier(config.classifier),
            max_include_depth=config.max_include_depth,
        )
        self.router = PageRouter(config.paths.pages_dir)
        self.identity_provider = identity_provider
        self.templates_dir = templates_dir or Path(__file__).parent.parent / "templates"
        self.env = Environment(
            loader=FileSystemLoader(self.templates_dir),
            autoescape=True,
            trim_blocks=True,
            lstrip_blocks=True,
        )
        self.shell = self.env.get_template("page_shell.jinja")

    async def render_page(
        self,
        route: str,
        language: str | None = None,
        *,
        overrides: typ.Mapping[str, typ.Any] | None = None,
    ) -> PageResult:
        """Resolve the user, then assemble ``route`` off the event loop."""
        user = await resolve_user(
            self.identity_provider,
            self.config.mock_user,
            timeout=self.config.backend.identity_timeout,
        )
        return await asyncio.to_thread(
            self.render_page_sync, route, language, user=user, overrides=overrides
        )

    async def render_request(
        self,
        target: str,
        headers: typ.Mapping[str, str] | None = None,
        *,
        overrides: typ.Mapping[str, typ.Any] | None = None,
    ) -> PageResult:
        """Render a request target such as ``/?lang=he-IL``.

        The language comes from the ``lang`` query parameter, then the
        ``Accept-Language`` header, then the configured default.
        """
        parts = urllib.parse.urlsplit(target)
        query = dict(urllib.parse.parse_qsl(parts.query))
        language = detect_language(query, headers, self.config.default_language)
        return await self.render_page(parts.path or "/", language, overrides=overrides)

    def render_page_sync(
        self,
        route: str,
        language: str | None = None,
        *,
        user: typ.Mapping[str, typ.Any] | None = None,
        overrides: typ.Mapping[str, typ.Any] | None = None,
    ) -> PageResult:
        """Assemble ``route`` with an already resolved ``user``.

        Returns
        -------
        PageResult
            Status 200 for a rendered page, 404 for unknown routes and 500
            when assembly itself fails. Template errors inside the page
            degrade inline and are listed in ``errors``.
        """
        lang = language or self.config.default_language
        meta = self.router.find(route)
        if meta is None:
            logger.warning("No page found for route %s", route)
            return self._not_found(user)
        item = self.resolver.resolve_page_directory(meta.directory, lang)
        if not item:
            logger.warning("Page %s has no content for %s", meta.directory.name, lang)
            return self._not_found(user)
        return self._assemble(meta, item, lang, user, overrides, HTTPStatus.OK)

    def _not_found(self, user: typ.Mapping[str, typ.Any] | None) -> PageResult:
        lang = self.config.default_language
        meta = self.router.find(NOT_FOUND_ROUTE)
        if meta is not None:
            item = self.resolver.resolve_page_directory(meta.directory, lang)
            if item:
                return self._assemble(meta, item, lang, user, None, HTTPStatus.NOT_FOUND)
        return PageResult(
            status=HTTPStatus.NOT_FOUND, html=BUILTIN_NOT_FOUND, language=lang
        )

    def _assemble(
        self,
        meta: PageMeta,
        item: ContentItem,
        language: str,
        user: typ.Mapping[str, typ.Any] | None,
        overrides: typ.Mapping[str, typ.Any] | None,
        status: int,
    ) -> PageResult:
        context = RenderContext.build(
            user=user,
            page=meta.as_context(),
            language=language,
            overrides=overrides,
        )
        errors: list[RenderError] = []

        def _render(source: str | None, identity: str) -> str:
            if not source:
                return ""
            outcome = self.renderer.render_lenient(
                source, context, identity=identity, language=language
            )
            if outcome.error is not None:
                errors.append(outcome.error)
            return outcome.text

        try:
            body = _render(item.raw_source, item.identity)
            css = _render(item.style, f"{item.identity}:css")
            js = _render(item.script, f"{item.identity}:js")
            tracking = self._tracking_code(language, _render)
            html = self.shell.render(
                language=language,
                rtl=language.split("-", 1)[0].lower() in RTL_LANGUAGES,
                title=meta.title or "Power Pages",
                stylesheets=SHELL_STYLESHEETS,
                scripts=SHELL_SCRIPTS,
                css=css,
                js=js,
                body=body,
                tracking=tracking,
                mock_user=self.config.mock_user,
            )
        except (jinja2.TemplateError, OSError) as exc:
            logger.exception("Failed to assemble page %s", meta.directory.name)
            return PageResult(
                status=HTTPStatus.INTERNAL_SERVER_ERROR,
                html=self._error_document(exc),
                language=language,
                page=meta,
                errors=errors,
            )
        if errors:
            logger.warning(
                "Page %s rendered with %d template error(s)", meta.directory.name, len(errors)
            )
        return PageResult(
            status=status, html=html, language=language, page=meta, errors=errors
        )

    def _tracking_code(
        self, language: str, render: typ.Callable[[str | None, str], str]
    ) -> str:
        snippet = self.resolver.resolve(ContentKind.SNIPPET, TRACKING_SNIPPET, language)
        if not snippet:
            logger.debug("No %s snippet in this export", TRACKING_SNIPPET)
            return ""
        return render(snippet.raw_source, snippet.identity)

    def _error_document(self, exc: Exception) -> str:
        detail = ""
        if self.config.debug:
            detail = f"<pre>{escape(str(exc))}</pre>"
        return (
            "<!DOCTYPE html>\n<html>\n<head><title>Render Error</title></head>\n"
            f"<body>\n<h1>500 - Render Error</h1>\n{detail}\n</body>\n</html>\n"
        )


__all__ = ["PageAssembler", "PageResult"]
