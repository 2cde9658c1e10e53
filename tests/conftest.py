"""Shared fixtures building a miniature portal export on disk.

The export mirrors the layout produced by the portal tooling::

    web-pages/<page>/<Name>.webpage.yml
    web-pages/<page>/content-pages/<Name>.<lang>.webpage.copy.html
    web-templates/<slug>/<Name>.webtemplate.source.html
    content-snippets/<slug>/<Name>[.<lang>].contentsnippet.value.html
"""

from __future__ import annotations

from pathlib import Path
from textwrap import dedent

import pytest

from portal_preview.config import PreviewConfig, default_preview_config
from portal_preview.config.models import MockUserConfig
from portal_preview.content import ContentResolver
from portal_preview.rendering import ContentClassifier, TemplateRenderer

REACT_COMPONENTS = dedent(
    """
    <div id="react-root"></div>
    <script type="text/babel">
      const Banner = ({ title }) => <div style={{padding: 0, margin: 0}}>{title}</div>;
      const Footer = () => <footer style={{display: "flex"}}>Contoso</footer>;
      function App() {
        return React.createElement("main", null, React.createElement(Banner, { title: "Hi" }));
      }
      ReactDOM.render(React.createElement(App), document.getElementById("react-root"));
    </script>
    """
).lstrip()

HOME_COPY = dedent(
    """
    <main class="home">
      <h1 id="greeting">Welcome {{ user.fullname }}</h1>
      {% include 'Global React Components' %}
      <p class="title">{{ page.title }}</p>
    </main>
    """
).lstrip()


def write(path: Path, text: str) -> Path:
    """Write ``text`` to ``path`` creating parent directories."""
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(text, encoding="utf-8")
    return path


def add_page(
    root: Path,
    directory: str,
    name: str,
    *,
    partial_url: str,
    copies: dict[str, str],
    is_root: bool = False,
    css: str | None = None,
    js: str | None = None,
) -> Path:
    """Create a routed page with one copy file per language."""
    page_dir = root / "web-pages" / directory
    write(
        page_dir / f"{name}.webpage.yml",
        dedent(
            f"""
            adx_name: {name}
            adx_title: {name}
            adx_partialurl: "{partial_url}"
            adx_isroot: {"true" if is_root else "false"}
            adx_webpageid: {directory}-id
            """
        ).lstrip(),
    )
    content_dir = page_dir / "content-pages"
    for language, text in copies.items():
        write(content_dir / f"{name}.{language}.webpage.copy.html", text)
    default_language = next(iter(copies))
    if css is not None:
        write(content_dir / f"{name}.{default_language}.webpage.custom_css.css", css)
    if js is not None:
        write(content_dir / f"{name}.{default_language}.webpage.custom_javascript.js", js)
    return page_dir


def add_template(root: Path, name: str, source: str) -> Path:
    slug = name.lower().replace(" ", "-")
    return write(root / "web-templates" / slug / f"{name}.webtemplate.source.html", source)


def add_snippet(root: Path, name: str, value: str, language: str | None = None) -> Path:
    slug = name.lower().replace(" ", "-")
    qualifier = f".{language}" if language else ""
    return write(
        root / "content-snippets" / slug / f"{name}{qualifier}.contentsnippet.value.html",
        value,
    )


@pytest.fixture
def portal_export(tmp_path: Path) -> Path:
    """Build a portal export with pages, templates and snippets.

    Parameters
    ----------
    tmp_path : Path
        Pytest-provided temporary directory used as the export root.

    Returns
    -------
    Path
        Root directory of the export.
    """
    root = tmp_path / "portal"
    add_page(
        root,
        "home",
        "Home",
        partial_url="/",
        is_root=True,
        copies={"en-US": HOME_COPY},
        css="body { color: #333; }\n",
        js='const root = document.getElementById("react-root");\n',
    )
    add_page(
        root,
        "profile",
        "Profile",
        partial_url="profile",
        copies={
            "en-US": "<h1>Profile of {{ user.fullname }}</h1>\n",
            "he-IL": "<h1>פרופיל {{ user.fullname }}</h1>\n",
        },
    )
    add_page(
        root,
        "page-not-found",
        "Page Not Found",
        partial_url="page-not-found",
        copies={"en-US": "<h1>Nothing here</h1>\n"},
    )
    add_template(root, "Global React Components", REACT_COMPONENTS)
    add_template(root, "Header", "<header>{{ website.selected_language.name }}</header>")
    add_template(root, "Card", "<h2>{{ title }}</h2>")
    add_snippet(root, "Footer", "<footer>Contoso</footer>")
    add_snippet(root, "Footer", "<footer>קונטוסו</footer>", language="he-IL")
    add_snippet(root, "Tracking Code", "<!-- tracking: {{ page.title }} -->")
    return root


@pytest.fixture
def preview_config(portal_export: Path) -> PreviewConfig:
    """Return a configuration pointing at ``portal_export``."""
    config = default_preview_config(portal_export)
    config.mock_user = MockUserConfig(id="c0ffee", fullname="Dana Levi")
    return config


@pytest.fixture
def resolver(preview_config: PreviewConfig) -> ContentResolver:
    return ContentResolver(
        preview_config.paths, default_language=preview_config.default_language
    )


@pytest.fixture
def renderer(resolver: ContentResolver, preview_config: PreviewConfig) -> TemplateRenderer:
    return TemplateRenderer(
        resolver,
        ContentClassifier(preview_config.classifier),
        max_include_depth=preview_config.max_include_depth,
    )
