"""Durable storage for fixture rules.

The whole rule set lives in one JSON document that is rewritten on every
mutation. Writes go to a temporary file in the same directory and are
moved into place with :func:`os.replace`, so readers never observe a
partial document. The document is re-sorted on every write; readers can
rely on its order.
"""

from __future__ import annotations

import dataclasses as dc
import datetime as dt
import logging
import os
import tempfile
import typing as typ
from pathlib import Path

import msgspec
import msgspec.json as msgspec_json

from ..errors import MockStoreError, UnknownMockRule
from .models import MockRule, RuleDocument, sort_key

logger = logging.getLogger(__name__)


class RuleStore:
    """Read and mutate the rule document at ``path``.

    Every call reads the document afresh; the file is small and may be
    edited by the CLI while a server is running.
    """

    def __init__(self, path: Path) -> None:
        self.path = path

    def load(self) -> RuleDocument:
        """Return the stored document, or an empty one when the file is absent.

        Raises
        ------
        MockStoreError
            If the file cannot be read or decoded.
        """
        try:
            data = self.path.read_bytes()
        except FileNotFoundError:
            return RuleDocument()
        except OSError as exc:
            msg = f"Unable to read mock rules from {self.path}: {exc}"
            raise MockStoreError(msg) from exc
        if not data.strip():
            return RuleDocument()
        try:
            return msgspec_json.decode(data, type=RuleDocument)
        except msgspec.DecodeError as exc:
            msg = f"Malformed mock rule document {self.path}: {exc}"
            raise MockStoreError(msg) from exc

    def save(self, document: RuleDocument) -> None:
        """Sort and atomically write ``document``."""
        document.mocks.sort(key=sort_key)
        payload = msgspec_json.format(msgspec_json.encode(document), indent=2)
        self.path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(
            prefix=f".{self.path.name}.", suffix=".tmp", dir=self.path.parent
        )
        try:
            with os.fdopen(fd, "wb") as handle:
                handle.write(payload)
                handle.write(b"\n")
            os.replace(tmp_name, self.path)
        except OSError as exc:
            Path(tmp_name).unlink(missing_ok=True)
            msg = f"Unable to write mock rules to {self.path}: {exc}"
            raise MockStoreError(msg) from exc

    def rules(self) -> list[MockRule]:
        """Return every rule in priority order."""
        return sorted(self.load().mocks, key=sort_key)

    def active_rules(self) -> list[MockRule]:
        """Return enabled rules, or none at all when fixtures are switched off."""
        document = self.load()
        if not document.global_enabled:
            return []
        return [rule for rule in sorted(document.mocks, key=sort_key) if rule.enabled]

    def get(self, rule_id: str) -> MockRule:
        for rule in self.load().mocks:
            if rule.id == rule_id:
                return rule
        raise UnknownMockRule(f"No mock rule with id '{rule_id}'")

    def add(self, rule: MockRule) -> MockRule:
        """Persist a new rule.

        Raises
        ------
        MockStoreError
            If a rule with the same id already exists.
        """
        document = self.load()
        if any(existing.id == rule.id for existing in document.mocks):
            msg = f"Mock rule '{rule.id}' already exists"
            raise MockStoreError(msg)
        document.mocks.append(rule)
        self.save(document)
        logger.info("Added mock rule %s (%s)", rule.id, rule.label)
        return rule

    def update(self, rule_id: str, **changes: typ.Any) -> MockRule:
        """Replace fields of a stored rule and return the new version."""
        if "id" in changes:
            msg = "A mock rule id cannot be changed"
            raise MockStoreError(msg)
        return self._mutate(rule_id, lambda rule: dc.replace(rule, **changes))

    def toggle(self, rule_id: str, enabled: bool | None = None) -> MockRule:
        """Flip a rule's ``enabled`` flag, or set it when ``enabled`` is given."""
        return self._mutate(
            rule_id,
            lambda rule: dc.replace(
                rule, enabled=(not rule.enabled) if enabled is None else enabled
            ),
        )

    def delete(self, rule_id: str) -> MockRule:
        document = self.load()
        for index, rule in enumerate(document.mocks):
            if rule.id == rule_id:
                del document.mocks[index]
                self.save(document)
                logger.info("Deleted mock rule %s", rule_id)
                return rule
        raise UnknownMockRule(f"No mock rule with id '{rule_id}'")

    def set_global_enabled(self, enabled: bool) -> None:
        document = self.load()
        document.global_enabled = enabled
        self.save(document)

    def record_hit(self, rule_id: str, when: dt.datetime | None = None) -> None:
        """Increment a rule's hit statistics without ever raising.

        Concurrent hits may overwrite each other (last writer wins); the
        counters are informational.
        """
        moment = when or dt.datetime.now(tz=dt.UTC)
        try:
            self._mutate(
                rule_id,
                lambda rule: dc.replace(
                    rule, hit_count=rule.hit_count + 1, last_used_at=moment
                ),
            )
        except (MockStoreError, OSError) as exc:
            logger.warning("Could not record hit for mock rule %s: %s", rule_id, exc)

    def clear_stats(self) -> None:
        """Reset hit counters and last-used times of every rule."""
        document = self.load()
        document.mocks = [
            dc.replace(rule, hit_count=0, last_used_at=None) for rule in document.mocks
        ]
        self.save(document)

    def stats(self) -> dict[str, typ.Any]:
        """Return aggregate counts and per-rule usage."""
        document = self.load()
        rules = sorted(document.mocks, key=sort_key)
        return {
            "global_enabled": document.global_enabled,
            "total": len(rules),
            "enabled": sum(1 for rule in rules if rule.enabled),
            "disabled": sum(1 for rule in rules if not rule.enabled),
            "total_hits": sum(rule.hit_count for rule in rules),
            "mocks": [
                {
                    "id": rule.id,
                    "name": rule.label,
                    "endpoint": f"{rule.method.upper()} {rule.path_pattern}",
                    "priority": rule.priority,
                    "enabled": rule.enabled,
                    "hits": rule.hit_count,
                    "last_used_at": rule.last_used_at,
                }
                for rule in rules
            ],
        }

    def _mutate(
        self, rule_id: str, change: typ.Callable[[MockRule], MockRule]
    ) -> MockRule:
        document = self.load()
        for index, rule in enumerate(document.mocks):
            if rule.id == rule_id:
                updated = change(rule)
                document.mocks[index] = updated
                self.save(document)
                return updated
        raise UnknownMockRule(f"No mock rule with id '{rule_id}'")


__all__ = ["RuleStore"]
