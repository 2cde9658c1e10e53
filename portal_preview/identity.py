"""Identity records for the ``user`` template variable.

A live contact is fetched through the backend forwarder when one is
configured. Every failure path falls back to a user synthesized from the
``mock_user`` configuration so page renders never block on the backend.
"""

from __future__ import annotations

import asyncio
import logging
import typing as typ
from http import HTTPStatus

from .errors import BackendUnavailable, IdentityLookupFailed

if typ.TYPE_CHECKING:
    from .backend import BackendForwarder
    from .config.models import MockUserConfig

logger = logging.getLogger(__name__)

CONTACT_FIELDS = (
    "firstname",
    "lastname",
    "emailaddress1",
    "mobilephone",
    "governmentid",
    "_parentcustomerid_value",
)

UserRecord = dict[str, typ.Any]

DEFAULT_IDENTITY_TIMEOUT = 10.0


class IdentityProvider(typ.Protocol):
    """Source of the current user's contact record."""

    async def fetch_current_user(self, user_id: str) -> UserRecord:
        """Return the user record or raise :class:`IdentityLookupFailed`."""
        ...


def _base_record(mock_user: MockUserConfig) -> UserRecord:
    return {
        "id": mock_user.id,
        "contactid": mock_user.id,
        "fullname": mock_user.fullname,
        "email": mock_user.resolved_email,
        "roles": list(mock_user.roles),
    }


def fallback_identity(mock_user: MockUserConfig) -> UserRecord:
    """Synthesize a complete user record from the configured mock user.

    >>> from portal_preview.config.models import MockUserConfig
    >>> record = fallback_identity(MockUserConfig(fullname="Dana Levi"))
    >>> record["firstname"], record["lastname"], record["emailaddress1"]
    ('Dana', 'Levi', 'dana.levi@example.com')
    """
    return {
        **_base_record(mock_user),
        "firstname": mock_user.first_name,
        "lastname": mock_user.last_name,
        "emailaddress1": mock_user.resolved_email,
        "mobilephone": "050-1234567",
        "governmentid": "123456789",
        "parentcustomerid": "Test Company",
    }


class ContactIdentityProvider:
    """Fetch the contact record from the portal Web API.

    Parameters
    ----------
    forwarder : BackendForwarder
        Transport to the live backend.
    mock_user : MockUserConfig
        Configured user whose values fill gaps in the contact record.
    timeout : float
        Bound for the lookup in seconds.
    """

    def __init__(
        self,
        forwarder: BackendForwarder,
        mock_user: MockUserConfig,
        *,
        timeout: float = 10.0,
    ) -> None:
        self.forwarder = forwarder
        self.mock_user = mock_user
        self.timeout = timeout

    async def fetch_current_user(self, user_id: str) -> UserRecord:
        if not user_id:
            msg = "No contact id configured"
            raise IdentityLookupFailed(msg)
        path = f"/_api/contacts({user_id})?$select={','.join(CONTACT_FIELDS)}"
        try:
            response = await asyncio.wait_for(
                self.forwarder.forward_async(
                    "GET", path, {"Accept": "application/json"}, timeout=self.timeout
                ),
                timeout=self.timeout + 1,
            )
        except (BackendUnavailable, TimeoutError) as exc:
            msg = f"Contact lookup for {user_id} failed: {exc}"
            raise IdentityLookupFailed(msg) from exc
        if response.status != HTTPStatus.OK:
            msg = f"Contact lookup for {user_id} returned {response.status}"
            raise IdentityLookupFailed(msg)
        try:
            payload = response.json()
        except ValueError as exc:
            raise IdentityLookupFailed(str(exc)) from exc
        if not isinstance(payload, dict):
            msg = f"Contact lookup for {user_id} returned a non-object payload"
            raise IdentityLookupFailed(msg)
        return self._merge(payload)

    def _merge(self, payload: dict[str, typ.Any]) -> UserRecord:
        first = str(payload.get("firstname") or "")
        last = str(payload.get("lastname") or "")
        return {
            **_base_record(self.mock_user),
            "firstname": first,
            "lastname": last,
            "emailaddress1": payload.get("emailaddress1")
            or self.mock_user.resolved_email,
            "mobilephone": payload.get("mobilephone") or "",
            "governmentid": payload.get("governmentid") or "",
            "parentcustomerid": payload.get("_parentcustomerid_value") or "",
            "fullname": f"{first} {last}".strip() or self.mock_user.fullname,
        }


async def resolve_user(
    provider: IdentityProvider | None,
    mock_user: MockUserConfig,
    *,
    timeout: float = DEFAULT_IDENTITY_TIMEOUT,
) -> UserRecord | None:
    """Return the ``user`` variable for a render.

    ``None`` when the mock user is disabled; the fallback identity when no
    provider is configured, the lookup fails for any reason, or it does not
    finish within ``timeout`` seconds.
    """
    if not mock_user.enabled:
        return None
    if provider is None:
        return fallback_identity(mock_user)
    try:
        return await asyncio.wait_for(
            provider.fetch_current_user(mock_user.id), timeout=timeout
        )
    except TimeoutError:
        logger.warning(
            "Using fallback identity: lookup for %s exceeded %ss", mock_user.id, timeout
        )
    except IdentityLookupFailed as exc:
        logger.warning("Using fallback identity: %s", exc)
    except Exception:  # noqa: BLE001
        logger.exception("Identity provider failed; using fallback identity")
    return fallback_identity(mock_user)


__all__ = [
    "ContactIdentityProvider",
    "IdentityProvider",
    "UserRecord",
    "fallback_identity",
    "resolve_user",
]
