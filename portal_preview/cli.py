"""Cyclopts CLI entrypoint for previewing portal exports locally.

The ``preview`` console script renders routed pages from a portal export
to stdout or a file, classifies content blobs, and manages the recorded
fixtures that answer API calls. Options can also be provided through
``PREVIEW_*`` environment variables.

Examples
--------
Render the home page in Hebrew:

>>> from portal_preview.cli import app
>>> app(["render", "--route", "/", "--lang", "he-IL"])  # doctest: +SKIP

List fixture rules:

>>> app(["mocks", "list"])  # doctest: +SKIP
"""

from __future__ import annotations

import asyncio
import logging
import typing as typ
from pathlib import Path

import cyclopts
from cyclopts import App, Parameter

from ._logging import configure_logging
from .backend import BackendForwarder
from .config import (
    DEFAULT_CONFIG_PATH,
    PreviewConfig,
    default_preview_config,
    load_credentials,
    load_preview_config,
)
from .identity import ContactIdentityProvider
from .mocks import RuleStore, load_fixture_file
from .rendering import ContentClassifier, PageAssembler

logger = logging.getLogger(__name__)

app = App(name="preview", config=cyclopts.config.Env("PREVIEW_", command=False))  # type: ignore[unknown-argument]
mocks_app = App(name="mocks", help="Inspect and manage recorded API fixtures.")
app.command(mocks_app)

ConfigOption = typ.Annotated[
    Path, Parameter(help="Path to preview config", env_var="PREVIEW_CONFIG")
]


def _load_config(path: Path) -> PreviewConfig:
    """Load ``path``; the default location may be absent (current dir export)."""
    if not path.exists() and path == DEFAULT_CONFIG_PATH:
        return default_preview_config(Path.cwd())
    return load_preview_config(path)


def _build_assembler(config: PreviewConfig) -> PageAssembler:
    provider = None
    if config.backend.base_url:
        forwarder = BackendForwarder(
            config.backend.base_url,
            credentials=load_credentials(config.backend.credentials_file),
            timeout=config.backend.timeout,
            retries=config.backend.retries,
        )
        provider = ContactIdentityProvider(
            forwarder, config.mock_user, timeout=config.backend.identity_timeout
        )
    return PageAssembler(config, identity_provider=provider)


def _store(config: Path) -> RuleStore:
    return RuleStore(_load_config(config).mocks.store)


@app.command(help="Render a routed page to stdout or a file.")
def render(
    *,
    route: typ.Annotated[str, Parameter(help="Page route, e.g. / or /profile")] = "/",
    lang: typ.Annotated[
        str | None, Parameter(help="Language variant (defaults to the first configured)")
    ] = None,
    config: ConfigOption = DEFAULT_CONFIG_PATH,
    output: typ.Annotated[
        Path | None, Parameter(help="Write the HTML here instead of stdout")
    ] = None,
    debug: typ.Annotated[bool, Parameter(help="Enable debug logging")] = False,
) -> int:
    """Render ``route`` and emit the assembled HTML document.

    Parameters
    ----------
    route : str, optional
        Route to render; defaults to ``/``.
    lang : str or None, optional
        Language variant; falls back to the configured default.
    config : Path, optional
        Preview configuration file (``PREVIEW_CONFIG``).
    output : Path or None, optional
        Destination file; stdout when ``None``.
    debug : bool, optional
        Log at DEBUG level.

    Returns
    -------
    int
        ``0`` for a rendered page, ``1`` for a missing page or a failed
        assembly.
    """
    preview_config = _load_config(config)
    configure_logging("DEBUG" if debug or preview_config.debug else "INFO")
    assembler = _build_assembler(preview_config)
    result = asyncio.run(assembler.render_page(route, lang))
    if output is not None:
        output.parent.mkdir(parents=True, exist_ok=True)
        output.write_text(result.html, encoding="utf-8")
        print(f"wrote {output} ({result.status})")
    else:
        print(result.html)
    for error in result.errors:
        logger.warning("%s", error)
    return 0 if result.status == 200 else 1


@app.command(help="Report whether a file would bypass the template engine.")
def classify(
    path: typ.Annotated[Path, Parameter(help="File to classify")],
    *,
    config: ConfigOption = DEFAULT_CONFIG_PATH,
) -> None:
    """Print the classifier verdict and the signals that fired for ``path``."""
    classifier = ContentClassifier(_load_config(config).classifier)
    verdict = classifier.classify(path.read_text(encoding="utf-8"))
    is_code = verdict.is_code or path.name in classifier.config.excludes
    kind = "code" if is_code else "markup"
    signals = ", ".join(verdict.fired) or "none"
    print(f"{path.name}: {kind} (score {verdict.score:.1f}; signals: {signals})")


@mocks_app.command(name="list", help="List fixture rules in match order.")
def list_mocks(*, config: ConfigOption = DEFAULT_CONFIG_PATH) -> None:
    """Print every rule with its priority, state and endpoint."""
    store = _store(config)
    document = store.load()
    state = "enabled" if document.global_enabled else "DISABLED"
    print(f"fixtures globally {state}")
    for rule in store.rules():
        flag = "on " if rule.enabled else "off"
        print(
            f"[{flag}] {rule.id} p{rule.priority} "
            f"{rule.method.upper()} {rule.path_pattern} - {rule.label}"
        )


@mocks_app.command(help="Show hit statistics.")
def stats(*, config: ConfigOption = DEFAULT_CONFIG_PATH) -> None:
    summary = _store(config).stats()
    print(
        f"total {summary['total']}, enabled {summary['enabled']}, "
        f"disabled {summary['disabled']}, hits {summary['total_hits']}"
    )
    for entry in summary["mocks"]:
        last = entry["last_used_at"].isoformat() if entry["last_used_at"] else "never"
        print(f"{entry['id']}: {entry['hits']} hit(s), last used {last}")


@mocks_app.command(help="Flip a rule between enabled and disabled.")
def toggle(
    rule_id: typ.Annotated[str, Parameter(help="Rule id")],
    *,
    config: ConfigOption = DEFAULT_CONFIG_PATH,
) -> None:
    rule = _store(config).toggle(rule_id)
    print(f"{rule.id} {'enabled' if rule.enabled else 'disabled'}")


@mocks_app.command(help="Delete a rule.")
def delete(
    rule_id: typ.Annotated[str, Parameter(help="Rule id")],
    *,
    config: ConfigOption = DEFAULT_CONFIG_PATH,
) -> None:
    rule = _store(config).delete(rule_id)
    print(f"deleted {rule.id} ({rule.label})")


@mocks_app.command(help="Reset hit counters.")
def clear_stats(*, config: ConfigOption = DEFAULT_CONFIG_PATH) -> None:
    _store(config).clear_stats()
    print("statistics cleared")


@mocks_app.command(help="Answer matching requests from fixtures.")
def enable_all(*, config: ConfigOption = DEFAULT_CONFIG_PATH) -> None:
    _store(config).set_global_enabled(True)
    print("fixtures enabled")


@mocks_app.command(help="Forward every request to the live backend.")
def disable_all(*, config: ConfigOption = DEFAULT_CONFIG_PATH) -> None:
    _store(config).set_global_enabled(False)
    print("fixtures disabled")


@mocks_app.command(name="import", help="Add rules from a YAML or JSON fixture file.")
def import_fixtures(
    path: typ.Annotated[Path, Parameter(help="Fixture file")],
    *,
    config: ConfigOption = DEFAULT_CONFIG_PATH,
) -> None:
    """Add every rule in ``path`` to the store."""
    store = _store(config)
    for rule in load_fixture_file(path):
        store.add(rule)
        print(f"added {rule.id} ({rule.label})")


def main() -> None:
    """Invoke the Cyclopts application behind the ``preview`` console command.

    Examples
    --------
    >>> main()  # doctest: +SKIP
    """
    app()


if __name__ == "__main__":  # pragma: no cover - manual invocation helper
    main()
