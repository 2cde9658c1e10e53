"""Build fixture rules from recorded HTTP transactions and fixture files."""

from __future__ import annotations

import logging
import typing as typ
import urllib.parse
from pathlib import Path

import msgspec
import msgspec.json as msgspec_json
from ruamel.yaml import YAML
from ruamel.yaml.error import YAMLError

from ..errors import MockStoreError
from .models import PRIORITY_NORMAL, MockRule, new_rule_id

logger = logging.getLogger(__name__)

DROPPED_RESPONSE_HEADERS = frozenset(
    {
        "connection",
        "content-encoding",
        "content-length",
        "date",
        "set-cookie",
        "transfer-encoding",
    }
)


def _decode_body(body: object) -> object:
    """Return JSON bodies as data and anything else as text."""
    if body is None or isinstance(body, (dict, list, int, float, bool)):
        return body
    raw = body if isinstance(body, bytes) else str(body).encode("utf-8")
    if not raw.strip():
        return None
    try:
        return msgspec_json.decode(raw)
    except msgspec.DecodeError:
        return raw.decode("utf-8", errors="replace")


def capture_rule(  # noqa: PLR0913
    method: str,
    url: str,
    status: int = 200,
    body: object = None,
    headers: typ.Mapping[str, str] | None = None,
    *,
    name: str | None = None,
    description: str = "",
    priority: int = PRIORITY_NORMAL,
    delay_ms: int = 0,
    rule_id: str | None = None,
) -> MockRule:
    """Normalize a recorded transaction into a rule.

    The URL's query string becomes the rule's query constraints and only
    the path is kept as its pattern. Transport headers are dropped from the
    recorded response.

    Examples
    --------
    >>> rule = capture_rule(
    ...     "get",
    ...     "https://portal.example/_api/incidents?$select=incidentid,title",
    ...     body='{"value": []}',
    ... )
    >>> rule.method, rule.path_pattern, rule.query_constraints
    ('GET', '/_api/incidents', {'$select': 'incidentid,title'})
    >>> rule.response_body
    {'value': []}
    """
    parts = urllib.parse.urlsplit(url)
    path = parts.path or "/"
    query = dict(urllib.parse.parse_qsl(parts.query, keep_blank_values=True))
    kept_headers = {
        key: str(value)
        for key, value in (headers or {}).items()
        if key.lower() not in DROPPED_RESPONSE_HEADERS
    }
    return MockRule(
        id=rule_id or new_rule_id(),
        method=method.upper(),
        path_pattern=path,
        response_status=int(status),
        response_body=_decode_body(body),
        response_headers=kept_headers,
        query_constraints=query,
        name=name or f"{method.upper()} {path}",
        description=description,
        priority=int(priority),
        delay_ms=int(delay_ms),
    )


def load_fixture_file(path: Path) -> list[MockRule]:
    """Read rules from a YAML or JSON fixture file.

    The file holds either a list of entries or a mapping with a ``mocks``
    list. Each entry names ``method`` and ``url`` (or ``path``) and may set
    ``status``, ``body``, ``headers``, ``query``, ``name``, ``description``,
    ``priority``, ``delay_ms`` and ``enabled``.

    Raises
    ------
    MockStoreError
        If the file cannot be parsed or an entry is incomplete.
    """
    try:
        text = path.read_text(encoding="utf-8")
    except OSError as exc:
        msg = f"Unable to read fixture file {path}: {exc}"
        raise MockStoreError(msg) from exc
    try:
        if path.suffix.lower() == ".json":
            loaded = msgspec_json.decode(text.encode("utf-8"))
        else:
            loader = YAML(typ="safe")
            loader.version = (1, 2)
            loaded = loader.load(text)
    except (msgspec.DecodeError, YAMLError) as exc:
        msg = f"Unable to parse fixture file {path}: {exc}"
        raise MockStoreError(msg) from exc

    entries = loaded.get("mocks", []) if isinstance(loaded, dict) else loaded
    if not isinstance(entries, list):
        msg = f"Fixture file {path} must contain a list of mocks"
        raise MockStoreError(msg)
    rules = [_rule_from_entry(entry, path, index) for index, entry in enumerate(entries)]
    logger.info("Loaded %d fixture rule(s) from %s", len(rules), path)
    return rules


def _rule_from_entry(entry: object, path: Path, index: int) -> MockRule:
    if not isinstance(entry, dict):
        msg = f"Entry {index} in {path} must be a mapping"
        raise MockStoreError(msg)
    url = entry.get("url") or entry.get("path")
    method = entry.get("method")
    if not url or not method:
        msg = f"Entry {index} in {path} needs 'method' and 'url'"
        raise MockStoreError(msg)
    try:
        rule = capture_rule(
            str(method),
            str(url),
            status=int(entry.get("status", 200)),
            body=entry.get("body"),
            headers=entry.get("headers") or {},
            name=entry.get("name"),
            description=str(entry.get("description") or ""),
            priority=int(entry.get("priority", PRIORITY_NORMAL)),
            delay_ms=int(entry.get("delay_ms", 0)),
            rule_id=entry.get("id"),
        )
    except (TypeError, ValueError) as exc:
        msg = f"Entry {index} in {path} is invalid: {exc}"
        raise MockStoreError(msg) from exc
    extra_query = entry.get("query") or {}
    rule.query_constraints.update({str(k): str(v) for k, v in extra_query.items()})
    rule.enabled = bool(entry.get("enabled", True))
    return rule


__all__ = ["capture_rule", "load_fixture_file"]
