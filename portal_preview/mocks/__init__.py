"""Recorded fixtures that answer API requests before the live backend."""

from .capture import capture_rule, load_fixture_file
from .dispatch import DispatchResult, MockDispatcher, backend_stage, fixture_response
from .matcher import compile_path_pattern, match, matches_path, matches_query
from .models import (
    PRIORITY_HIGH,
    PRIORITY_LOW,
    PRIORITY_NORMAL,
    MockRequest,
    MockRule,
    RuleDocument,
    new_rule_id,
)
from .store import RuleStore

__all__ = [
    "PRIORITY_HIGH",
    "PRIORITY_LOW",
    "PRIORITY_NORMAL",
    "DispatchResult",
    "MockDispatcher",
    "MockRequest",
    "MockRule",
    "RuleDocument",
    "RuleStore",
    "backend_stage",
    "capture_rule",
    "compile_path_pattern",
    "fixture_response",
    "load_fixture_file",
    "match",
    "matches_path",
    "matches_query",
    "new_rule_id",
]
