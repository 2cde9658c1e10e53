"""Answer API requests from fixtures or pass them to the next stage.

Per request the dispatcher moves through ``received -> matching`` and then
either responds from the matched fixture or awaits the next stage (usually
:func:`backend_stage`). It knows nothing about what the next stage does.
"""

from __future__ import annotations

import asyncio
import dataclasses as dc
import logging
import typing as typ
from http import HTTPStatus

import msgspec.json as msgspec_json

from ..errors import BackendUnavailable, MockStoreError
from .matcher import match
from .models import MockRequest, MockRule

if typ.TYPE_CHECKING:
    from ..backend import BackendForwarder
    from .store import RuleStore

logger = logging.getLogger(__name__)

SOURCE_MOCK = "mock"
SOURCE_BACKEND = "backend"
SOURCE_UNAVAILABLE = "unavailable"


@dc.dataclass(frozen=True, slots=True)
class DispatchResult:
    """Response produced by a dispatch stage."""

    source: str
    status: int
    headers: dict[str, str]
    body: bytes = b""
    rule_id: str | None = None


NextStage = typ.Callable[[MockRequest], typ.Awaitable[DispatchResult]]


def fixture_response(rule: MockRule) -> DispatchResult:
    """Render a rule's canned response."""
    headers = dict(rule.response_headers)
    body = rule.response_body
    if body is None:
        payload = b""
    elif isinstance(body, str):
        payload = body.encode("utf-8")
    else:
        payload = msgspec_json.encode(body)
        if not any(key.lower() == "content-type" for key in headers):
            headers["Content-Type"] = "application/json"
    return DispatchResult(
        source=SOURCE_MOCK,
        status=rule.response_status,
        headers=headers,
        body=payload,
        rule_id=rule.id,
    )


class MockDispatcher:
    """Route requests to fixtures held in a :class:`RuleStore`."""

    def __init__(self, store: RuleStore) -> None:
        self.store = store

    def match(self, request: MockRequest) -> MockRule | None:
        """Return the rule answering ``request``; ``None`` passes it on.

        An unreadable rule document matches nothing.
        """
        try:
            rules = self.store.active_rules()
        except MockStoreError as exc:
            logger.warning(
                "Ignoring fixtures for %s %s: %s", request.method, request.path, exc
            )
            return None
        return match(rules, request)

    async def handle(self, request: MockRequest, call_next: NextStage) -> DispatchResult:
        """Respond from a fixture, or await ``call_next`` when none matches."""
        rule = await asyncio.to_thread(self.match, request)
        if rule is None:
            logger.debug("No fixture for %s %s", request.method, request.path)
            return await call_next(request)

        logger.info("Fixture %s answered %s %s", rule.label, request.method, request.path)
        await asyncio.to_thread(self.store.record_hit, rule.id)
        if rule.delay_ms > 0:
            await asyncio.sleep(rule.delay_ms / 1000)
        return fixture_response(rule)


def backend_stage(forwarder: BackendForwarder) -> NextStage:
    """Return a stage that forwards requests to the live backend.

    A backend that cannot be reached yields a 503 result marked
    ``unavailable`` instead of raising.
    """

    async def _forward(request: MockRequest) -> DispatchResult:
        try:
            response = await forwarder.forward_async(
                request.method, request.target, request.headers, request.body
            )
        except BackendUnavailable as exc:
            logger.warning("%s", exc)
            body = msgspec_json.encode(
                {"error": "Local development backend unreachable", "detail": str(exc)}
            )
            return DispatchResult(
                source=SOURCE_UNAVAILABLE,
                status=HTTPStatus.SERVICE_UNAVAILABLE,
                headers={"Content-Type": "application/json"},
                body=body,
            )
        return DispatchResult(
            source=SOURCE_BACKEND,
            status=response.status,
            headers=response.headers,
            body=response.body,
        )

    return _forward


__all__ = [
    "SOURCE_BACKEND",
    "SOURCE_MOCK",
    "SOURCE_UNAVAILABLE",
    "DispatchResult",
    "MockDispatcher",
    "NextStage",
    "backend_stage",
    "fixture_response",
]
