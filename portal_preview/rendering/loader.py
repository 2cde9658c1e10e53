"""Jinja2 loader that serves dynamic includes from the content resolver."""

from __future__ import annotations

import contextvars
import logging
import typing as typ

from jinja2 import BaseLoader

from .._constants import INCLUDE_NOT_FOUND_MARKER
from .dialect import translate

if typ.TYPE_CHECKING:
    from jinja2 import Environment

    from ..content.resolver import ContentResolver
    from .classifier import ContentClassifier
    from .includes import IncludeExpander

logger = logging.getLogger(__name__)

render_language: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "render_language", default=None
)


class ContentLoader(BaseLoader):
    """Resolve includes whose name is only known at render time.

    Literal includes, with or without arguments, are expanded before the
    engine runs. This loader covers ``{% include variable %}``: the source is
    run through the expander so nested includes and snippet references keep
    the same lookup and depth rules, and verbatim segments are wrapped in raw
    blocks. The active language comes from :data:`render_language`.
    """

    def __init__(
        self,
        resolver: ContentResolver,
        classifier: ContentClassifier,
        expander: IncludeExpander | None = None,
    ) -> None:
        self.resolver = resolver
        self.classifier = classifier
        self.expander = expander

    def get_source(
        self, environment: Environment, template: str
    ) -> tuple[str, str | None, typ.Callable[[], bool] | None]:
        item = self.resolver.resolve_include(template, render_language.get())
        if not item:
            logger.warning("Include not found: %s", template)
            return INCLUDE_NOT_FOUND_MARKER.format(name=template), None, lambda: False

        source = item.raw_source
        if self.classifier.should_skip_file(
            template, source
        ) or self.classifier.is_executable_code(source, file_name=item.file_name):
            text = f"{{% raw %}}{source}{{% endraw %}}"
        elif self.expander is None:
            text = translate(source)
        else:
            expansion = self.expander.expand(source, render_language.get(), depth=1)
            text = expansion.restore_as_raw(translate(expansion.text))

        path = item.source_path
        if path is None:
            return text, None, None
        try:
            mtime = path.stat().st_mtime
        except OSError:
            return text, str(path), None

        def uptodate() -> bool:
            try:
                return path.stat().st_mtime == mtime
            except OSError:
                return False

        return text, str(path), uptodate


__all__ = ["ContentLoader", "render_language"]
