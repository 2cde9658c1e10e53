"""Forward API requests to the live portal backend.

Requests that no fixture answers are replayed against the configured
backend with the operator's session credentials and the OData headers the
portal Web API expects. Transport failures (connection refused, DNS,
timeouts) raise :class:`~portal_preview.errors.BackendUnavailable` so the
caller can tell "backend unreachable" apart from an error status the
backend really returned.

Examples
--------
>>> forwarder = BackendForwarder("https://contoso.powerappsportals.com")
>>> response = forwarder.forward("GET", "/_api/contacts")  # doctest: +SKIP
>>> response.status  # doctest: +SKIP
200
"""

from __future__ import annotations

import asyncio
import dataclasses as dc
import logging
import typing as typ

import msgspec
import msgspec.json as msgspec_json
import requests
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

from .config.credentials import BackendCredentials
from .errors import BackendUnavailable

logger = logging.getLogger(__name__)

HOP_BY_HOP_HEADERS = frozenset(
    {
        "connection",
        "keep-alive",
        "proxy-authenticate",
        "proxy-authorization",
        "te",
        "trailers",
        "transfer-encoding",
        "upgrade",
    }
)
STRIPPED_REQUEST_HEADERS = HOP_BY_HOP_HEADERS | {
    "host",
    "content-length",
    "cookie",
    "authorization",
}
STRIPPED_RESPONSE_HEADERS = frozenset(
    {"content-encoding", "content-length", "transfer-encoding", "connection"}
)
ODATA_HEADERS = {
    "Accept": "application/json",
    "Content-Type": "application/json; charset=utf-8",
    "OData-MaxVersion": "4.0",
    "OData-Version": "4.0",
    "Prefer": "odata.include-annotations=*",
}


@dc.dataclass(frozen=True, slots=True)
class BackendResponse:
    """Status, headers and raw body returned by the backend."""

    status: int
    headers: dict[str, str]
    body: bytes = b""

    @property
    def text(self) -> str:
        return self.body.decode("utf-8", errors="replace")

    def json(self) -> typ.Any:
        """Decode the body as JSON.

        Raises
        ------
        ValueError
            If the body is not valid JSON.
        """
        try:
            return msgspec_json.decode(self.body)
        except msgspec.DecodeError as exc:
            msg = f"Backend response was not valid JSON: {exc}"
            raise ValueError(msg) from exc


class BackendForwarder:
    """Replay requests against the live backend.

    Parameters
    ----------
    base_url : str
        Backend origin, for example ``https://contoso.powerappsportals.com``.
    credentials : BackendCredentials | None
        Session credentials attached to every request.
    timeout : float
        Per-request timeout in seconds.
    retries : int
        Retry budget for idempotent requests on gateway errors. Only applied
        to sessions the forwarder creates itself.
    session : requests.Session | None
        Preconfigured session, used as-is.
    """

    def __init__(
        self,
        base_url: str,
        *,
        credentials: BackendCredentials | None = None,
        timeout: float = 30.0,
        retries: int = 3,
        session: requests.Session | None = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.credentials = credentials or BackendCredentials()
        self.timeout = timeout
        if session is None:
            session = requests.Session()
            retry = Retry(
                total=retries,
                connect=retries,
                backoff_factor=0.5,
                status_forcelist=(502, 503, 504),
                allowed_methods=("GET", "HEAD", "OPTIONS"),
                raise_on_status=False,
            )
            adapter = HTTPAdapter(max_retries=retry)
            session.mount("https://", adapter)
            session.mount("http://", adapter)
        self._session = session

    def build_headers(
        self, inbound: typ.Mapping[str, str] | None = None
    ) -> dict[str, str]:
        """Return outbound headers for a request carrying ``inbound`` headers."""
        headers = {
            key: value
            for key, value in (inbound or {}).items()
            if key.lower() not in STRIPPED_REQUEST_HEADERS
        }
        headers.update(self.credentials.headers())
        headers.update(ODATA_HEADERS)
        return headers

    def forward(
        self,
        method: str,
        path: str,
        headers: typ.Mapping[str, str] | None = None,
        body: bytes | None = None,
        *,
        timeout: float | None = None,
    ) -> BackendResponse:
        """Send the request and return the backend's response.

        Raises
        ------
        BackendUnavailable
            If no backend is configured, the connection fails or the request
            exceeds ``timeout``.
        """
        if not self.base_url:
            msg = "No backend base URL configured"
            raise BackendUnavailable(msg)
        url = f"{self.base_url}/{path.lstrip('/')}"
        limit = self.timeout if timeout is None else timeout
        logger.debug("Forwarding %s %s", method.upper(), url)
        try:
            response = self._session.request(
                method.upper(),
                url,
                headers=self.build_headers(headers),
                data=body or None,
                timeout=limit,
                allow_redirects=False,
            )
        except requests.Timeout as exc:
            msg = f"Backend timed out after {limit}s: {method.upper()} {url}"
            raise BackendUnavailable(msg) from exc
        except requests.RequestException as exc:
            msg = f"Backend unreachable: {method.upper()} {url}: {exc}"
            raise BackendUnavailable(msg) from exc

        logger.debug("Backend answered %s for %s", response.status_code, url)
        return BackendResponse(
            status=response.status_code,
            headers={
                key: value
                for key, value in response.headers.items()
                if key.lower() not in STRIPPED_RESPONSE_HEADERS
            },
            body=response.content,
        )

    async def forward_async(
        self,
        method: str,
        path: str,
        headers: typ.Mapping[str, str] | None = None,
        body: bytes | None = None,
        *,
        timeout: float | None = None,
    ) -> BackendResponse:
        """Run :meth:`forward` in a worker thread."""
        return await asyncio.to_thread(
            self.forward, method, path, headers, body, timeout=timeout
        )

    def close(self) -> None:
        self._session.close()


__all__ = ["BackendForwarder", "BackendResponse", "ODATA_HEADERS"]
