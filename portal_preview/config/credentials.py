"""Backend credentials persisted in ``~/.config/portal-preview/credentials.toml``.

The preview server never performs the sign-in flow itself. Operators paste a
session cookie or bearer token (obtained from a browser session or an
external token provider) into the TOML file, or export the matching
``PREVIEW_*`` environment variables, and the forwarder attaches them to every
proxied request.

Example file::

    [auth]
    cookie = ".AspNet.ApplicationCookie=..."
    request_verification_token = "..."

    [headers]
    X-Custom-Header = "value"
"""

from __future__ import annotations

import dataclasses as dc
import os
import typing as typ
from pathlib import Path

import tomlkit
from tomlkit.exceptions import ParseError

from ..errors import PreviewConfigError

DEFAULT_CREDENTIALS_PATH = Path(
    os.getenv(
        "PREVIEW_CREDENTIALS_FILE",
        Path.home() / ".config" / "portal-preview" / "credentials.toml",
    )
)

DEFAULT_USER_AGENT = "portal-preview/0.1"


@dc.dataclass(slots=True)
class BackendCredentials:
    """Resolved credentials attached to forwarded backend requests."""

    cookie: str | None = None
    bearer_token: str | None = None
    request_verification_token: str | None = None
    user_agent: str = DEFAULT_USER_AGENT
    extra_headers: dict[str, str] = dc.field(default_factory=dict)

    def headers(self) -> dict[str, str]:
        """Return the HTTP headers carrying these credentials."""
        headers: dict[str, str] = {"User-Agent": self.user_agent}
        if self.cookie:
            headers["Cookie"] = self.cookie
        if self.bearer_token:
            headers["Authorization"] = f"Bearer {self.bearer_token}"
        if self.request_verification_token:
            headers["__RequestVerificationToken"] = self.request_verification_token
        headers.update(self.extra_headers)
        return headers

    @property
    def is_empty(self) -> bool:
        return not (self.cookie or self.bearer_token or self.request_verification_token)


def load_credentials(path: Path | None = None) -> BackendCredentials:
    """Merge environment overrides with the stored credentials file.

    A missing file yields credentials built from the environment alone.

    Raises
    ------
    PreviewConfigError
        If the file exists but is not valid TOML.
    """
    target = path or DEFAULT_CREDENTIALS_PATH
    try:
        doc = tomlkit.parse(target.read_text(encoding="utf-8"))
    except FileNotFoundError:
        doc = tomlkit.document()
    except ParseError as exc:
        msg = f"Unable to parse credentials TOML at {target}"
        raise PreviewConfigError(msg) from exc

    def _as_dict(table: typ.Any) -> dict[str, typ.Any]:
        return {str(k): v for k, v in table.items()} if table else {}

    auth = _as_dict(doc.get("auth"))
    extra = {key: str(value) for key, value in _as_dict(doc.get("headers")).items()}

    return BackendCredentials(
        cookie=os.getenv("PREVIEW_COOKIE") or _text(auth.get("cookie")),
        bearer_token=os.getenv("PREVIEW_BEARER_TOKEN")
        or _text(auth.get("bearer_token")),
        request_verification_token=os.getenv("PREVIEW_VERIFICATION_TOKEN")
        or _text(auth.get("request_verification_token")),
        user_agent=_text(auth.get("user_agent")) or DEFAULT_USER_AGENT,
        extra_headers=extra,
    )


def save_credentials(creds: BackendCredentials, *, path: Path | None = None) -> None:
    """Persist credentials into the TOML file preserving unrelated tables."""
    target = path or DEFAULT_CREDENTIALS_PATH
    target.parent.mkdir(parents=True, exist_ok=True)
    try:
        doc = tomlkit.parse(target.read_text(encoding="utf-8"))
    except FileNotFoundError:
        doc = tomlkit.document()
    except ParseError as exc:
        msg = f"Unable to parse credentials TOML at {target}"
        raise PreviewConfigError(msg) from exc

    auth_table = doc.get("auth")
    if not isinstance(auth_table, tomlkit.items.Table):
        auth_table = tomlkit.table()

    def _set(key: str, value: str | None) -> None:
        if value is None:
            auth_table.pop(key, None)
        else:
            auth_table[key] = value

    _set("cookie", creds.cookie)
    _set("bearer_token", creds.bearer_token)
    _set("request_verification_token", creds.request_verification_token)
    if creds.user_agent != DEFAULT_USER_AGENT:
        _set("user_agent", creds.user_agent)
    doc["auth"] = auth_table

    if creds.extra_headers:
        headers_table = tomlkit.table()
        headers_table.update(creds.extra_headers)
        doc["headers"] = headers_table

    target.write_text(tomlkit.dumps(doc), encoding="utf-8")
    os.chmod(target, 0o600)


def _text(value: object | None) -> str | None:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


__all__ = [
    "DEFAULT_CREDENTIALS_PATH",
    "BackendCredentials",
    "load_credentials",
    "save_credentials",
]
