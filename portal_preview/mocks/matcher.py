"""Structural matching of requests against fixture rules.

Matching is pure and total: rules are tried in store order (priority
descending, newest first) and the first enabled rule whose method, path and
query constraints all agree wins.
"""

from __future__ import annotations

import functools
import re
import typing as typ

from .models import MockRequest, MockRule, sort_key

FIELD_LIST_PARAM = "$select"
KEY_FIELDS = frozenset({"incidentid", "ticketnumber", "statuscode"})

_PATTERN_TOKEN_RE = re.compile(r"(\*|:[^/]+)")


@functools.lru_cache(maxsize=512)
def compile_path_pattern(pattern: str) -> re.Pattern[str]:
    """Compile a rule path into an anchored regular expression.

    ``*`` matches any run of characters and ``:name`` matches one path
    segment; everything else is literal. A query string is ignored.

    >>> bool(compile_path_pattern("/_api/incidents(:id)").match("/_api/incidents(42)"))
    True
    >>> bool(compile_path_pattern("/api/*").match("/api/a/b"))
    True
    """
    path = pattern.split("?", 1)[0]
    parts = []
    for token in _PATTERN_TOKEN_RE.split(path):
        if token == "*":
            parts.append(".*")
        elif token.startswith(":") and len(token) > 1:
            parts.append(r"[^/]+")
        else:
            parts.append(re.escape(token))
    return re.compile(f"^{''.join(parts)}$")


def matches_path(pattern: str, path: str) -> bool:
    return compile_path_pattern(pattern).match(path) is not None


def _fields(value: str) -> set[str]:
    return {field.strip() for field in value.split(",") if field.strip()}


def matches_query(
    constraints: typ.Mapping[str, str], query: typ.Mapping[str, str]
) -> bool:
    """Return ``True`` when every constraint is satisfied by ``query``.

    Each constrained key must be present with a non-empty value equal to the
    expected one. ``$select`` is relaxed: when both field lists name at least
    one common key field, the lists need not be identical.

    >>> matches_query({"$select": "incidentid,title"}, {"$select": "title,incidentid,createdon"})
    True
    >>> matches_query({"$top": "5"}, {"$top": "10"})
    False
    """
    for key, expected in constraints.items():
        actual = query.get(key)
        if not actual:
            return False
        if key == FIELD_LIST_PARAM and (
            _fields(expected) & _fields(actual) & KEY_FIELDS
        ):
            continue
        if actual != expected:
            return False
    return True


def rule_matches(rule: MockRule, request: MockRequest) -> bool:
    """Return ``True`` when ``rule`` answers ``request``."""
    if not rule.enabled:
        return False
    if rule.method.upper() != request.method.upper():
        return False
    if not matches_path(rule.path_pattern, request.path):
        return False
    return matches_query(rule.query_constraints, request.query)


def match(rules: typ.Iterable[MockRule], request: MockRequest) -> MockRule | None:
    """Return the highest-priority rule in ``rules`` that answers ``request``."""
    ordered = sorted(rules, key=sort_key)
    return next((rule for rule in ordered if rule_matches(rule, request)), None)


__all__ = [
    "KEY_FIELDS",
    "compile_path_pattern",
    "match",
    "matches_path",
    "matches_query",
    "rule_matches",
]
