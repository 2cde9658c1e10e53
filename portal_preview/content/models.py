"""Content items and the resolution miss sentinel."""

from __future__ import annotations

import dataclasses as dc
import enum
from pathlib import Path


class ContentKind(enum.Enum):
    """Storage family a content item was read from."""

    PAGE = "page"
    TEMPLATE = "template"
    SNIPPET = "snippet"


class NotFound(enum.Enum):
    """Sentinel returned by the resolver when nothing matches."""

    NOT_FOUND = "not-found"

    def __bool__(self) -> bool:
        return False

    def __repr__(self) -> str:
        return "NOT_FOUND"


NOT_FOUND = NotFound.NOT_FOUND


@dc.dataclass(frozen=True, slots=True)
class ContentItem:
    """A named unit of template source read from the portal export.

    Attributes
    ----------
    logical_name : str
        Normalized slug of the item.
    kind : ContentKind
        Storage family the item was resolved from.
    raw_source : str
        Template source text.
    language : str | None
        Language qualifier of the chosen file, when it had one.
    source_path : Path | None
        File the source was read from.
    style : str | None
        Page custom CSS (pages only).
    script : str | None
        Page custom JavaScript (pages only).
    """

    logical_name: str
    kind: ContentKind
    raw_source: str
    language: str | None = None
    source_path: Path | None = None
    style: str | None = None
    script: str | None = None

    @property
    def identity(self) -> str:
        """Return a label used in diagnostics, e.g. ``template:header``."""
        return f"{self.kind.value}:{self.logical_name}"

    @property
    def file_name(self) -> str | None:
        return self.source_path.name if self.source_path else None


__all__ = ["NOT_FOUND", "ContentItem", "ContentKind", "NotFound"]
