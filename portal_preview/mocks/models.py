"""Fixture rules and the request shape they are matched against."""

from __future__ import annotations

import dataclasses as dc
import datetime as dt
import typing as typ
import urllib.parse
import uuid

PRIORITY_HIGH = 10
PRIORITY_NORMAL = 5
PRIORITY_LOW = 1


def _now() -> dt.datetime:
    return dt.datetime.now(tz=dt.UTC)


def new_rule_id() -> str:
    """Return a fresh rule identifier.

    >>> new_rule_id().startswith("mock_")
    True
    """
    return f"mock_{uuid.uuid4().hex[:12]}"


@dc.dataclass(slots=True)
class MockRule:
    """A recorded request/response fixture.

    Attributes
    ----------
    id : str
        Stable identifier used by the management commands.
    method : str
        HTTP method, compared case-insensitively.
    path_pattern : str
        Literal path, ``*`` wildcard or ``:param`` pattern.
    response_status : int
        Status code of the canned response.
    response_body : Any
        JSON-compatible value or text.
    response_headers : dict[str, str]
        Headers of the canned response.
    query_constraints : dict[str, str]
        Query parameters that must be present with the given values.
    priority : int
        Higher priorities are checked first.
    enabled : bool
        Disabled rules never match.
    delay_ms : int
        Artificial latency applied before responding.
    hit_count, last_used_at : int, datetime | None
        Usage statistics maintained by the store.
    created_at : datetime
        Creation time; newer rules win ties on priority.
    """

    id: str
    method: str
    path_pattern: str
    response_status: int = 200
    response_body: typ.Any = None
    response_headers: dict[str, str] = dc.field(default_factory=dict)
    query_constraints: dict[str, str] = dc.field(default_factory=dict)
    name: str = ""
    description: str = ""
    priority: int = PRIORITY_NORMAL
    enabled: bool = True
    delay_ms: int = 0
    hit_count: int = 0
    last_used_at: dt.datetime | None = None
    created_at: dt.datetime = dc.field(default_factory=_now)

    @property
    def label(self) -> str:
        return self.name or f"{self.method.upper()} {self.path_pattern}"


def sort_key(rule: MockRule) -> tuple[int, float]:
    """Key ordering rules by priority, then creation time, both descending."""
    return (-rule.priority, -rule.created_at.timestamp())


@dc.dataclass(slots=True)
class RuleDocument:
    """The persisted rule set."""

    global_enabled: bool = True
    mocks: list[MockRule] = dc.field(default_factory=list)


@dc.dataclass(frozen=True, slots=True)
class MockRequest:
    """The parts of an inbound request that rules are matched against."""

    method: str
    path: str
    query: typ.Mapping[str, str] = dc.field(default_factory=dict)
    headers: typ.Mapping[str, str] = dc.field(default_factory=dict)
    body: bytes | None = None

    @classmethod
    def from_url(
        cls,
        method: str,
        url: str,
        *,
        headers: typ.Mapping[str, str] | None = None,
        body: bytes | None = None,
    ) -> MockRequest:
        """Build a request from a URL or path with an optional query string.

        >>> req = MockRequest.from_url("get", "/_api/incidents?$select=incidentid,title")
        >>> req.method, req.path, req.query["$select"]
        ('GET', '/_api/incidents', 'incidentid,title')
        """
        parts = urllib.parse.urlsplit(url)
        query = dict(urllib.parse.parse_qsl(parts.query, keep_blank_values=True))
        return cls(
            method=method.upper(),
            path=parts.path or "/",
            query=query,
            headers=dict(headers or {}),
            body=body,
        )

    @property
    def target(self) -> str:
        """Return the path with its query string, as sent to a backend."""
        if not self.query:
            return self.path
        return f"{self.path}?{urllib.parse.urlencode(self.query, safe='$,()')}"


__all__ = [
    "PRIORITY_HIGH",
    "PRIORITY_LOW",
    "PRIORITY_NORMAL",
    "MockRequest",
    "MockRule",
    "RuleDocument",
    "new_rule_id",
    "sort_key",
]
