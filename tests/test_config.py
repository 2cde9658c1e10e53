"""Tests for loading preview configuration and credentials."""

from __future__ import annotations

import stat
from pathlib import Path
from textwrap import dedent

import pytest

from portal_preview.config import (
    BackendCredentials,
    default_preview_config,
    load_credentials,
    load_preview_config,
    save_credentials,
)
from portal_preview.errors import PreviewConfigError


def _write(tmp_path: Path, text: str) -> Path:
    path = tmp_path / "config" / "preview.yaml"
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(dedent(text).lstrip(), encoding="utf-8")
    return path


def test_load_full_configuration(tmp_path: Path) -> None:
    """Every section is parsed and relative paths resolve from the file."""
    path = _write(
        tmp_path,
        """
        project_path: ../portal
        paths:
          templates: templates
        languages: [he-IL, en-US]
        max_include_depth: 4
        debug: true
        classifier:
          indicator_limit: 40
          excludes: [Legacy Widget, Vendor Bundle]
        mock_user:
          id: c0ffee
          name: Dana Levi
          roles: Administrators, Staff
        backend:
          base_url: https://contoso.example/
          timeout: 5
        mocks:
          store: fixtures/rules.json
        """,
    )
    config = load_preview_config(path)
    root = (tmp_path / "config" / ".." / "portal").resolve()
    assert config.paths.root.resolve() == root, f"unexpected root {config.paths.root}"
    assert config.paths.templates_dir.name == "templates", "expected the custom folder"
    assert config.paths.pages_dir.name == "web-pages", "expected the default folder"
    assert config.default_language == "he-IL", "the first language is the default"
    assert config.max_include_depth == 4, f"unexpected depth {config.max_include_depth}"
    assert config.debug, "expected debug to be enabled"
    assert config.classifier.indicator_limit == 40, "expected the custom threshold"
    assert config.classifier.excludes == ("Legacy Widget", "Vendor Bundle"), (
        f"unexpected excludes {config.classifier.excludes!r}"
    )
    assert config.mock_user.fullname == "Dana Levi", "expected name as a fullname alias"
    assert config.mock_user.roles == ("Administrators", "Staff"), "unexpected roles"
    assert config.backend.base_url == "https://contoso.example", "expected a trimmed URL"
    assert config.backend.timeout == 5.0, f"unexpected timeout {config.backend.timeout}"
    assert config.mocks.store.resolve() == (root / "fixtures" / "rules.json"), (
        f"unexpected store {config.mocks.store}"
    )


def test_empty_file_uses_defaults(tmp_path: Path) -> None:
    """An empty file yields the defaults rooted at the file's directory."""
    config = load_preview_config(_write(tmp_path, "\n"))
    assert config.languages == ["en-US", "he-IL"], f"unexpected {config.languages!r}"
    assert config.max_include_depth == 10, "unexpected default depth"
    assert config.classifier.indicator_limit == 20, "unexpected default threshold"
    assert config.mock_user.fullname == "Test User", "unexpected default user"


def test_missing_file(tmp_path: Path) -> None:
    """A missing configuration file is reported as such."""
    with pytest.raises(FileNotFoundError):
        load_preview_config(tmp_path / "absent.yaml")


@pytest.mark.parametrize(
    "text",
    [
        "- just\n- a list\n",
        "paths: nope\n",
        "max_include_depth: 0\n",
        "classifier:\n  indicator_limit: many\n",
        "backend:\n  timeout: soon\n",
        "languages: 3\n",
        "key: [unclosed\n",
    ],
)
def test_invalid_configuration(tmp_path: Path, text: str) -> None:
    """Malformed sections raise a configuration error."""
    with pytest.raises(PreviewConfigError):
        load_preview_config(_write(tmp_path, text))


def test_default_preview_config(tmp_path: Path) -> None:
    """Without a file the export root is the given directory."""
    config = default_preview_config(tmp_path)
    assert config.paths.snippets_dir == tmp_path / "content-snippets", "unexpected path"
    assert config.mocks.store == tmp_path / "mocks" / "mock-config.json", "unexpected store"


def test_credentials_round_trip(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    """Saved credentials load back and the file is private."""
    for name in ("PREVIEW_COOKIE", "PREVIEW_BEARER_TOKEN", "PREVIEW_VERIFICATION_TOKEN"):
        monkeypatch.delenv(name, raising=False)
    path = tmp_path / "credentials.toml"
    save_credentials(
        BackendCredentials(cookie="session=abc", extra_headers={"X-Tenant": "contoso"}),
        path=path,
    )
    loaded = load_credentials(path)
    assert loaded.cookie == "session=abc", f"unexpected cookie {loaded.cookie!r}"
    assert loaded.extra_headers == {"X-Tenant": "contoso"}, "unexpected extra headers"
    assert stat.S_IMODE(path.stat().st_mode) == 0o600, "expected owner-only permissions"


def test_credentials_environment_wins(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    """Environment variables override the stored values."""
    path = tmp_path / "credentials.toml"
    path.write_text('[auth]\ncookie = "stored"\nbearer_token = "file-token"\n')
    monkeypatch.setenv("PREVIEW_COOKIE", "from-env")
    monkeypatch.delenv("PREVIEW_BEARER_TOKEN", raising=False)
    loaded = load_credentials(path)
    assert loaded.cookie == "from-env", f"unexpected cookie {loaded.cookie!r}"
    assert loaded.headers()["Authorization"] == "Bearer file-token", "expected the token"


def test_credentials_missing_and_malformed(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    """A missing file is empty; an unparseable one is an error."""
    for name in ("PREVIEW_COOKIE", "PREVIEW_BEARER_TOKEN", "PREVIEW_VERIFICATION_TOKEN"):
        monkeypatch.delenv(name, raising=False)
    assert load_credentials(tmp_path / "absent.toml").is_empty, "expected no credentials"
    broken = tmp_path / "broken.toml"
    broken.write_text("[auth\ncookie = 1\n")
    with pytest.raises(PreviewConfigError):
        load_credentials(broken)
