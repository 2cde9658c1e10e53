"""Tests for the persisted fixture rule store."""

from __future__ import annotations

import datetime as dt
import json
import logging
import typing as typ
from pathlib import Path

import pytest

from portal_preview.errors import MockStoreError, UnknownMockRule
from portal_preview.mocks import MockRule, RuleStore

if typ.TYPE_CHECKING:
    from pytest_mock import MockerFixture

T0 = dt.datetime(2025, 1, 1, tzinfo=dt.UTC)


@pytest.fixture
def store(tmp_path: Path) -> RuleStore:
    return RuleStore(tmp_path / "mocks" / "mock-config.json")


def _rule(rule_id: str, priority: int = 5, **kwargs: object) -> MockRule:
    return MockRule(
        id=rule_id,
        method="GET",
        path_pattern=f"/_api/{rule_id}",
        priority=priority,
        created_at=T0,
        **kwargs,  # type: ignore[arg-type]
    )


def test_missing_file_is_empty(store: RuleStore) -> None:
    """A store without a file holds no rules and is enabled."""
    document = store.load()
    assert document.mocks == [], f"expected no rules, got {document.mocks!r}"
    assert document.global_enabled, "expected fixtures to be enabled by default"


def test_add_and_reload(store: RuleStore) -> None:
    """Added rules survive a reload with their fields intact."""
    store.add(_rule("incidents", response_body={"value": [{"incidentid": "1"}]}))
    reloaded = RuleStore(store.path).get("incidents")
    assert reloaded.response_body == {"value": [{"incidentid": "1"}]}, (
        f"unexpected body {reloaded.response_body!r}"
    )
    assert reloaded.created_at == T0, f"unexpected creation time {reloaded.created_at!r}"


def test_document_is_sorted_on_write(store: RuleStore) -> None:
    """The file lists rules by priority, highest first."""
    store.add(_rule("low", priority=1))
    store.add(_rule("high", priority=10))
    store.add(_rule("normal", priority=5))
    ids = [entry["id"] for entry in json.loads(store.path.read_text())["mocks"]]
    assert ids == ["high", "normal", "low"], f"unexpected order {ids!r}"


def test_writes_leave_no_temporary_files(store: RuleStore) -> None:
    """Atomic writes clean up after themselves."""
    store.add(_rule("one"))
    store.toggle("one")
    leftovers = [p.name for p in store.path.parent.iterdir() if p.name != store.path.name]
    assert leftovers == [], f"unexpected files {leftovers!r}"


def test_duplicate_id_is_rejected(store: RuleStore) -> None:
    """Rule ids are unique within the store."""
    store.add(_rule("one"))
    with pytest.raises(MockStoreError):
        store.add(_rule("one"))


def test_toggle_and_explicit_enable(store: RuleStore) -> None:
    """Toggling flips the flag; an explicit value sets it."""
    store.add(_rule("one"))
    assert not store.toggle("one").enabled, "expected the rule to be disabled"
    assert store.toggle("one").enabled, "expected the rule to be re-enabled"
    assert store.toggle("one", enabled=True).enabled, "expected an explicit enable"


def test_delete_unknown_rule(store: RuleStore) -> None:
    """Unknown ids raise a lookup error."""
    with pytest.raises(UnknownMockRule):
        store.delete("missing")
    with pytest.raises(KeyError):
        store.toggle("missing")


def test_delete_removes_rule(store: RuleStore) -> None:
    """Deleted rules are gone from the document."""
    store.add(_rule("one"))
    store.add(_rule("two"))
    store.delete("one")
    ids = [rule.id for rule in store.rules()]
    assert ids == ["two"], f"unexpected rules {ids!r}"


def test_update_rejects_id_change(store: RuleStore) -> None:
    """Fields can be replaced but ids are immutable."""
    store.add(_rule("one"))
    updated = store.update("one", response_status=404)
    assert updated.response_status == 404, "expected the status to change"
    with pytest.raises(MockStoreError):
        store.update("one", id="other")


def test_global_switch_hides_active_rules(store: RuleStore) -> None:
    """Disabling fixtures globally leaves no active rules."""
    store.add(_rule("one"))
    store.set_global_enabled(False)
    assert store.active_rules() == [], "expected no active rules when disabled"
    store.set_global_enabled(True)
    assert [rule.id for rule in store.active_rules()] == ["one"], "expected the rule back"


def test_record_hit_and_stats(store: RuleStore) -> None:
    """Hits are counted, reported and cleared."""
    store.add(_rule("one"))
    store.add(_rule("two", enabled=False))
    store.record_hit("one", T0)
    store.record_hit("one", T0)
    stats = store.stats()
    assert stats["total"] == 2, f"unexpected total {stats['total']}"
    assert stats["enabled"] == 1, f"unexpected enabled count {stats['enabled']}"
    assert stats["disabled"] == 1, f"unexpected disabled count {stats['disabled']}"
    assert stats["total_hits"] == 2, f"unexpected hits {stats['total_hits']}"
    first = next(entry for entry in stats["mocks"] if entry["id"] == "one")
    assert first["last_used_at"] == T0, f"unexpected last use {first['last_used_at']!r}"

    store.clear_stats()
    assert store.stats()["total_hits"] == 0, "expected cleared hit counters"


def test_record_hit_never_raises(
    store: RuleStore, mocker: MockerFixture, caplog: pytest.LogCaptureFixture
) -> None:
    """Failing to persist a hit is logged, not raised."""
    store.add(_rule("one"))
    mocker.patch.object(RuleStore, "save", side_effect=MockStoreError("disk full"))
    with caplog.at_level(logging.WARNING):
        store.record_hit("one")
        store.record_hit("missing")
    assert caplog.text.count("Could not record hit") == 2, "expected two warnings"


def test_malformed_document(store: RuleStore) -> None:
    """Corrupt documents raise a store error."""
    store.path.parent.mkdir(parents=True)
    store.path.write_text("{not json", encoding="utf-8")
    with pytest.raises(MockStoreError):
        store.load()
