"""Variables exposed to portal templates during a render."""

from __future__ import annotations

import copy
import dataclasses as dc
import types
import typing as typ

from .._constants import DEFAULT_LANGUAGE

LANGUAGE_NAMES = {"en-US": "English", "he-IL": "עברית"}


def default_site(language: str = DEFAULT_LANGUAGE) -> dict[str, typ.Any]:
    """Return the site-wide objects a live portal would normally provide."""
    return {
        "website": {
            "sign_in_url_substitution": "/sign-in",
            "sign_out_url_substitution": "/sign-out",
            "adx_partialurl": "/",
            "selected_language": {
                "name": LANGUAGE_NAMES.get(language, language),
                "code": language,
            },
            "languages": [
                {"name": name, "code": code} for code, name in LANGUAGE_NAMES.items()
            ],
        },
        "weblinks": {
            "Default": {
                "weblinks": [
                    {"name": "Home", "url": "/", "display_image_only": False},
                    {"name": "Profile", "url": "/profile", "display_image_only": False},
                    {"name": "Search", "url": "/search", "display_image_only": False},
                ]
            },
            "Profile Navigation": {
                "weblinks": [
                    {"name": "My Profile", "url": "/profile"},
                    {"name": "Settings", "url": "/settings"},
                ]
            },
        },
        "sitemarkers": {
            "Profile": {"url": "/profile"},
            "Search": {"url": "/search", "id": "search-page"},
            "Forums": {"url": "/forums", "id": "forums-page"},
        },
        "snippets": {
            "Mobile Header": '<div class="mobile-header">Mobile Header Content</div>',
            "Header/Toggle Navigation": "Toggle Navigation",
            "Header/Search/ToolTip": "Search",
            "Search/Title": "Search Our Site",
            "Profile Link Text": "Profile",
            "links/login": "Sign In",
            "links/logout": "Sign Out",
        },
        "resx": {
            "Skip_To_Content": "Skip to main content",
            "Main_Navigation": "Main Navigation",
            "Toggle_Navigation": "Toggle Navigation",
            "Search_DefaultText": "Search",
            "Profile_Text": "Profile",
            "Sign_In": "Sign In",
            "Sign_Out": "Sign Out",
            "Default_Profile_name": "User",
        },
        "sitemap": {
            "/": {
                "children": [
                    {"name": "Home", "url": "/", "title": "Home"},
                    {"name": "Profile", "url": "/profile", "title": "Profile"},
                ]
            }
        },
    }


def default_settings(language: str = DEFAULT_LANGUAGE) -> dict[str, typ.Any]:
    return {
        "LanguageLocale/Code": language,
        "Profile/Enabled": True,
        "Search/Enabled": True,
        "Header/ShowAllProfileNavigationLinks": True,
    }


@dc.dataclass(frozen=True, slots=True)
class RenderContext:
    """Immutable variable environment for one render call.

    Attributes
    ----------
    user : Mapping | None
        Identity record, ``None`` for anonymous renders.
    site : Mapping
        Site objects (``website``, ``weblinks``, ``sitemarkers``,
        ``snippets``, ``resx``, ``sitemap``), each exposed as a top-level
        variable.
    settings : Mapping
        Flat site settings.
    page : Mapping
        Metadata of the page being rendered.
    overrides : Mapping
        Caller-supplied variables; they win on key collision.
    """

    user: typ.Mapping[str, typ.Any] | None = None
    site: typ.Mapping[str, typ.Any] = dc.field(default_factory=default_site)
    settings: typ.Mapping[str, typ.Any] = dc.field(default_factory=default_settings)
    page: typ.Mapping[str, typ.Any] = dc.field(
        default_factory=lambda: {"id": "home-page", "title": "Home"}
    )
    overrides: typ.Mapping[str, typ.Any] = dc.field(default_factory=dict)

    @classmethod
    def build(
        cls,
        *,
        user: typ.Mapping[str, typ.Any] | None = None,
        page: typ.Mapping[str, typ.Any] | None = None,
        language: str = DEFAULT_LANGUAGE,
        overrides: typ.Mapping[str, typ.Any] | None = None,
    ) -> RenderContext:
        """Return a context with the default site data for ``language``."""
        return cls(
            user=user,
            site=default_site(language),
            settings=default_settings(language),
            page=dict(page) if page is not None else {"id": "home-page", "title": "Home"},
            overrides=dict(overrides or {}),
        )

    def with_overrides(self, overrides: typ.Mapping[str, typ.Any]) -> RenderContext:
        """Return a copy whose overrides are extended by ``overrides``."""
        merged = {**self.overrides, **overrides}
        return dc.replace(self, overrides=merged)

    def variables(self) -> types.MappingProxyType[str, typ.Any]:
        """Return the read-only template namespace.

        Values are deep-copied so a template mutating a list cannot leak into
        another render sharing this context.
        """
        namespace: dict[str, typ.Any] = {
            "user": self.user,
            **self.site,
            "settings": self.settings,
            "page": self.page,
        }
        namespace.update(self.overrides)
        return types.MappingProxyType(copy.deepcopy(namespace))


__all__ = ["RenderContext", "default_settings", "default_site"]
