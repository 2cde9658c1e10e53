"""Tests for assembling complete HTML pages."""

from __future__ import annotations

import asyncio
import typing as typ
from pathlib import Path

import pytest
from bs4 import BeautifulSoup
from conftest import add_snippet, write

from portal_preview.config import PreviewConfig, default_preview_config
from portal_preview.errors import IdentityLookupFailed
from portal_preview.rendering import PageAssembler

if typ.TYPE_CHECKING:
    from pytest_mock import MockerFixture

USER = {"fullname": "Dana Levi"}


@pytest.fixture
def assembler(preview_config: PreviewConfig) -> PageAssembler:
    return PageAssembler(preview_config)


def test_home_page_document(assembler: PageAssembler) -> None:
    """The root route renders the shell, body, styles and scripts."""
    result = assembler.render_page_sync("/", user=USER)
    assert result.status == 200, f"unexpected status {result.status}"
    assert result.errors == [], f"unexpected errors {result.errors!r}"
    soup = BeautifulSoup(result.html, "html.parser")
    assert soup.html["lang"] == "en-US", "expected the default language"
    assert soup.title.string == "Home", f"unexpected title {soup.title.string!r}"
    assert soup.find(id="greeting").get_text() == "Welcome Dana Levi", "expected the name"
    assert "color: #333" in (soup.style.string or ""), "expected the page CSS"
    babel = [s.string or "" for s in soup.find_all("script", type="text/babel")]
    assert any("const root" in text for text in babel), "expected the page script"
    assert "<!-- tracking: Home -->" in result.html, "expected the tracking snippet"


def test_script_component_is_not_rendered(assembler: PageAssembler) -> None:
    """The React component reaches the browser exactly as authored."""
    result = assembler.render_page_sync("/", user=USER)
    assert "style={{padding: 0, margin: 0}}" in result.html, (
        "expected the JSX double braces to survive"
    )


def test_language_fallback_keeps_requested_language(assembler: PageAssembler) -> None:
    """A page without the requested variant renders the default copy."""
    result = assembler.render_page_sync("/", "he-IL", user=USER)
    assert result.status == 200, f"unexpected status {result.status}"
    assert '<html lang="he-IL" dir="rtl">' in result.html, "expected RTL markup"
    assert "Welcome Dana Levi" in result.html, "expected the default-language copy"


def test_unknown_route_uses_export_not_found_page(assembler: PageAssembler) -> None:
    """Unknown routes render the export's not-found page with status 404."""
    result = assembler.render_page_sync("/missing", user=USER)
    assert result.status == 404, f"unexpected status {result.status}"
    assert "Nothing here" in result.html, "expected the export's not-found page"


def test_builtin_not_found_page(tmp_path: Path) -> None:
    """Exports without a not-found page get the built-in one."""
    write(tmp_path / "web-pages" / ".keep", "")
    result = PageAssembler(default_preview_config(tmp_path)).render_page_sync("/")
    assert result.status == 404, f"unexpected status {result.status}"
    assert "404 - Page Not Found" in result.html, "expected the built-in page"


def test_template_errors_degrade_inline(
    portal_export: Path, assembler: PageAssembler
) -> None:
    """A broken tracking snippet does not take the page down."""
    add_snippet(portal_export, "Tracking Code", "{% if %}")
    result = assembler.render_page_sync("/", user=USER)
    assert result.status == 200, f"unexpected status {result.status}"
    assert len(result.errors) == 1, f"expected one error, got {result.errors!r}"
    assert "<!-- Render error in snippet:tracking-code" in result.html, "expected a marker"
    assert "Welcome Dana Levi" in result.html, "expected the body to render"


def test_assembly_failure_is_500(
    preview_config: PreviewConfig, mocker: MockerFixture
) -> None:
    """Failures outside template rendering produce an error document."""
    preview_config.debug = True
    assembler = PageAssembler(preview_config)
    mocker.patch.object(assembler.shell, "render", side_effect=OSError("disk gone"))
    result = assembler.render_page_sync("/", user=USER)
    assert result.status == 500, f"unexpected status {result.status}"
    assert "disk gone" in result.html, "expected the detail in debug mode"


@pytest.mark.asyncio
async def test_render_page_resolves_identity(
    preview_config: PreviewConfig, mocker: MockerFixture
) -> None:
    """The async entry point falls back when the identity lookup fails."""
    provider = mocker.Mock()
    provider.fetch_current_user = mocker.AsyncMock(
        side_effect=IdentityLookupFailed("no backend")
    )
    assembler = PageAssembler(preview_config, identity_provider=provider)
    result = await assembler.render_page("/")
    assert result.status == 200, f"unexpected status {result.status}"
    assert "Welcome Dana Levi" in result.html, "expected the fallback identity's name"
    provider.fetch_current_user.assert_awaited_once_with("c0ffee")


@pytest.mark.asyncio
@pytest.mark.parametrize(
    ("target", "headers", "expected"),
    [
        ("/profile?lang=he-IL", None, "פרופיל"),
        ("/profile", {"Accept-Language": "he,en;q=0.8"}, "פרופיל"),
        ("/profile", {"Accept-Language": "en-GB"}, "Profile of"),
    ],
)
async def test_render_request_detects_language(
    assembler: PageAssembler,
    target: str,
    headers: dict[str, str] | None,
    expected: str,
) -> None:
    """Request targets pick the language from the query, then the header."""
    result = await assembler.render_request(target, headers)
    assert result.status == 200, f"unexpected status {result.status}"
    assert expected in result.html, f"expected {expected!r} for {target}"


def test_undecodable_page_renders_not_found(
    portal_export: Path, assembler: PageAssembler
) -> None:
    """A page whose copy cannot be decoded falls back to the not-found page."""
    content = portal_export / "web-pages" / "profile" / "content-pages"
    for copy in content.glob("*.webpage.copy.html"):
        copy.write_bytes(b"<h1>\xe0\xf8 bad</h1>")
    result = assembler.render_page_sync("/profile", user=USER)
    assert result.status == 404, f"unexpected status {result.status}"
    assert "Nothing here" in result.html, "expected the export's not-found page"


@pytest.mark.asyncio
async def test_render_page_survives_a_hanging_identity_provider(
    preview_config: PreviewConfig,
) -> None:
    """A stalled identity lookup does not block the page render."""

    class _Stalled:
        async def fetch_current_user(self, user_id: str) -> dict[str, typ.Any]:
            await asyncio.sleep(3600)
            return {"fullname": user_id}

    preview_config.backend.identity_timeout = 0.05
    assembler = PageAssembler(preview_config, identity_provider=_Stalled())
    result = await asyncio.wait_for(assembler.render_page("/"), timeout=10)
    assert result.status == 200, f"unexpected status {result.status}"
    assert "Welcome Dana Levi" in result.html, "expected the fallback identity's name"
