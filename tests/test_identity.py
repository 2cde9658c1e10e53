"""Tests for resolving the ``user`` variable."""

from __future__ import annotations

import asyncio
import logging
import typing as typ
from pathlib import Path

import pytest
import requests
from betamax import Betamax

from portal_preview.backend import BackendForwarder, BackendResponse
from portal_preview.config import MockUserConfig
from portal_preview.errors import BackendUnavailable, IdentityLookupFailed
from portal_preview.identity import ContactIdentityProvider, fallback_identity, resolve_user

if typ.TYPE_CHECKING:
    from pytest_mock import MockerFixture

MOCK_USER = MockUserConfig(id="c0ffee", fullname="Test User")


def _provider(mocker: MockerFixture, **forward: object) -> ContactIdentityProvider:
    forwarder = mocker.Mock()
    forwarder.forward_async = mocker.AsyncMock(**forward)
    return ContactIdentityProvider(forwarder, MOCK_USER, timeout=0.5)


def test_fallback_identity_fields() -> None:
    """The fallback user is complete enough for portal templates."""
    record = fallback_identity(MockUserConfig(fullname="Dana Levi"))
    assert record["fullname"] == "Dana Levi", f"unexpected name {record['fullname']!r}"
    assert (record["firstname"], record["lastname"]) == ("Dana", "Levi"), "unexpected split"
    assert record["emailaddress1"] == "dana.levi@example.com", "unexpected derived email"


@pytest.mark.asyncio
async def test_lookup_from_recorded_backend() -> None:
    """A live contact record becomes the user with a composed full name."""
    session = requests.Session()
    recorder = Betamax(
        session,
        cassette_library_dir=str(Path(__file__).resolve().parent / "cassettes"),
        default_cassette_options={"record_mode": "none"},
    )
    with recorder.use_cassette("backend_forward/contact_lookup"):
        forwarder = BackendForwarder("https://portal.example.test", session=session)
        provider = ContactIdentityProvider(forwarder, MOCK_USER)
        user = await resolve_user(provider, MOCK_USER)
    assert user is not None, "expected a user record"
    assert user["fullname"] == "Dana Levi", f"unexpected name {user['fullname']!r}"
    assert user["emailaddress1"] == "dana.levi@contoso.test", "expected the live email"
    assert user["parentcustomerid"] == "acc-42", "expected the parent customer id"
    assert user["governmentid"] == "", "expected null fields to render empty"


@pytest.mark.asyncio
async def test_error_status_raises(mocker: MockerFixture) -> None:
    """Non-200 answers are lookup failures."""
    provider = _provider(
        mocker, return_value=BackendResponse(status=401, headers={}, body=b"{}")
    )
    with pytest.raises(IdentityLookupFailed, match="401"):
        await provider.fetch_current_user("c0ffee")


@pytest.mark.asyncio
async def test_unavailable_backend_raises(mocker: MockerFixture) -> None:
    """Transport failures are lookup failures."""
    provider = _provider(mocker, side_effect=BackendUnavailable("refused"))
    with pytest.raises(IdentityLookupFailed):
        await provider.fetch_current_user("c0ffee")


@pytest.mark.asyncio
async def test_missing_names_use_configured_fullname(mocker: MockerFixture) -> None:
    """Contacts without names keep the configured full name."""
    provider = _provider(
        mocker, return_value=BackendResponse(status=200, headers={}, body=b"{}")
    )
    user = await provider.fetch_current_user("c0ffee")
    assert user["fullname"] == "Test User", f"unexpected name {user['fullname']!r}"


@pytest.mark.asyncio
async def test_resolve_user_falls_back(
    mocker: MockerFixture, caplog: pytest.LogCaptureFixture
) -> None:
    """Failed lookups are logged and replaced by the fallback identity."""
    provider = _provider(mocker, side_effect=BackendUnavailable("refused"))
    with caplog.at_level(logging.WARNING):
        user = await resolve_user(provider, MOCK_USER)
    assert user == fallback_identity(MOCK_USER), "expected the fallback identity"
    assert "Using fallback identity" in caplog.text, "expected a warning"


@pytest.mark.asyncio
async def test_resolve_user_disabled_and_unconfigured() -> None:
    """A disabled mock user renders anonymously; no provider uses the fallback."""
    disabled = MockUserConfig(enabled=False)
    assert await resolve_user(None, disabled) is None, "expected an anonymous render"
    assert await resolve_user(None, MOCK_USER) == fallback_identity(MOCK_USER), (
        "expected the fallback identity without a provider"
    )


class _RaisingProvider:
    async def fetch_current_user(self, user_id: str) -> dict[str, typ.Any]:
        raise ConnectionError(f"identity service down for {user_id}")


class _HangingProvider:
    async def fetch_current_user(self, user_id: str) -> dict[str, typ.Any]:
        await asyncio.sleep(3600)
        return {"fullname": user_id}


@pytest.mark.asyncio
async def test_resolve_user_recovers_from_unexpected_errors(
    caplog: pytest.LogCaptureFixture,
) -> None:
    """Any provider exception yields the fallback identity."""
    with caplog.at_level(logging.ERROR):
        user = await resolve_user(_RaisingProvider(), MOCK_USER)
    assert user == fallback_identity(MOCK_USER), "expected the fallback identity"
    assert "Identity provider failed" in caplog.text, "expected the failure to be logged"


@pytest.mark.asyncio
async def test_resolve_user_bounds_slow_providers() -> None:
    """A provider that never answers is abandoned after the timeout."""
    user = await asyncio.wait_for(
        resolve_user(_HangingProvider(), MOCK_USER, timeout=0.05), timeout=5
    )
    assert user == fallback_identity(MOCK_USER), "expected the fallback identity"
