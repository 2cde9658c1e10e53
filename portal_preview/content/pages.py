"""Route lookup over ``*.webpage.yml`` metadata files."""

from __future__ import annotations

import dataclasses as dc
import logging
import typing as typ
from pathlib import Path

from ruamel.yaml import YAML
from ruamel.yaml.error import YAMLError

from .._constants import PAGE_META_SUFFIX

logger = logging.getLogger(__name__)

HOME_DIRECTORY = "home"


@dc.dataclass(frozen=True, slots=True)
class PageMeta:
    """Metadata of a routed page read from its ``.webpage.yml`` file."""

    directory: Path
    partial_url: str
    is_root: bool = False
    title: str = ""
    name: str = ""
    page_id: str | None = None
    raw: typ.Mapping[str, typ.Any] = dc.field(default_factory=dict)

    def as_context(self) -> dict[str, typ.Any]:
        """Return the ``page`` variable exposed to templates."""
        url = "/" if self.is_root else f"/{self.partial_url.strip('/')}"
        return {
            "id": self.page_id,
            "title": self.title or self.name,
            "name": self.name,
            "url": url,
            "partialurl": self.partial_url,
            "adx_title": self.title,
            "adx_name": self.name,
        }


class PageRouter:
    """Find the page folder serving a route.

    The router rereads metadata on every lookup; page trees are small and a
    local preview favours freshness over speed.
    """

    def __init__(self, pages_dir: Path) -> None:
        self.pages_dir = pages_dir
        self._yaml = YAML(typ="safe")
        self._yaml.version = (1, 2)

    def pages(self) -> list[PageMeta]:
        """Return metadata for every readable page, in directory order."""
        if not self.pages_dir.is_dir():
            logger.warning("Pages directory %s does not exist", self.pages_dir)
            return []
        found: list[PageMeta] = []
        for directory in sorted(p for p in self.pages_dir.iterdir() if p.is_dir()):
            meta = self._read_meta(directory)
            if meta is not None:
                found.append(meta)
        return found

    def find(self, route: str) -> PageMeta | None:
        """Return the page serving ``route`` or ``None``.

        Examples
        --------
        >>> router = PageRouter(Path("web-pages"))  # doctest: +SKIP
        >>> router.find("/").name  # doctest: +SKIP
        'Home'
        """
        normalized = route.split("?", 1)[0].rstrip("/") or "/"
        pages = self.pages()
        if normalized == "/":
            roots = [p for p in pages if p.is_root and p.partial_url in ("/", "")]
            if not roots:
                return None
            home = next(
                (p for p in roots if p.directory.name.lower() == HOME_DIRECTORY), None
            )
            return home or roots[0]
        wanted = normalized.lstrip("/")
        return next((p for p in pages if p.partial_url.strip("/") == wanted), None)

    def _read_meta(self, directory: Path) -> PageMeta | None:
        meta_files = sorted(directory.glob(f"*{PAGE_META_SUFFIX}"))
        if not meta_files:
            return None
        try:
            with meta_files[0].open("r", encoding="utf-8") as handle:
                data = self._yaml.load(handle) or {}
        except (OSError, YAMLError) as exc:
            logger.warning("Skipping page metadata %s: %s", meta_files[0], exc)
            return None
        if not isinstance(data, dict):
            logger.warning("Skipping page metadata %s: not a mapping", meta_files[0])
            return None
        return PageMeta(
            directory=directory,
            partial_url=str(data.get("adx_partialurl") or ""),
            is_root=bool(data.get("adx_isroot", False)),
            title=str(data.get("adx_title") or ""),
            name=str(data.get("adx_name") or directory.name),
            page_id=_optional(data.get("adx_webpageid")),
            raw=dict(data),
        )


def detect_language(
    query: typ.Mapping[str, str] | None,
    headers: typ.Mapping[str, str] | None,
    default: str,
) -> str:
    """Pick the render language for a request.

    >>> detect_language({"lang": "he-IL"}, {}, "en-US")
    'he-IL'
    >>> detect_language({}, {"Accept-Language": "he,en;q=0.8"}, "en-US")
    'he-IL'
    >>> detect_language(None, None, "en-US")
    'en-US'
    """
    if query and query.get("lang"):
        return query["lang"]
    accept = ""
    for key, value in (headers or {}).items():
        if key.lower() == "accept-language":
            accept = value
            break
    if "he" in accept.lower():
        return "he-IL"
    return default


def _optional(value: object | None) -> str | None:
    return None if value in (None, "") else str(value)


__all__ = ["PageMeta", "PageRouter", "detect_language"]
