"""Load preview configuration YAML into typed dataclasses."""

from __future__ import annotations

import logging
import typing as typ
from pathlib import Path

from ruamel.yaml import YAML
from ruamel.yaml.error import YAMLError

from ..errors import PreviewConfigError
from .helpers import (
    _as_mapping,
    _build_classifier_config,
    _build_mock_user,
    _optional_str,
    _resolve_path,
    _string_list,
)
from .models import BackendConfig, ContentPaths, MockStoreConfig, PreviewConfig

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = Path("config/preview.yaml")


def load_preview_config(path: Path) -> PreviewConfig:
    """Load the YAML configuration describing a portal export and its mocks.

    Parameters
    ----------
    path : Path
        Filesystem path to the YAML configuration (for example,
        ``config/preview.yaml``).

    Returns
    -------
    PreviewConfig
        Parsed configuration. Relative paths are resolved against the
        directory containing ``path``.

    Raises
    ------
    FileNotFoundError
        If the configuration file does not exist at ``path``.
    PreviewConfigError
        If the YAML cannot be parsed or a section has the wrong shape.

    Examples
    --------
    >>> from pathlib import Path
    >>> from portal_preview.config import load_preview_config
    >>> config = load_preview_config(Path("config/preview.yaml"))  # doctest: +SKIP
    >>> config.default_language  # doctest: +SKIP
    'en-US'
    """
    if not path.exists():
        msg = f"Configuration file '{path}' not found."
        raise FileNotFoundError(msg)

    loader = YAML(typ="safe")
    loader.version = (1, 2)
    try:
        with path.open("r", encoding="utf-8") as handle:
            loaded = loader.load(handle) or {}
    except YAMLError as exc:
        msg = f"Unable to parse configuration '{path}': {exc}"
        raise PreviewConfigError(msg) from exc
    if not isinstance(loaded, dict):
        msg = "Top-level YAML structure must be a mapping."
        raise PreviewConfigError(msg)

    base_dir = path.resolve().parent
    config = _build_preview_config(dict(loaded), base_dir=base_dir)
    logger.debug("Loaded preview configuration from %s", path)
    return config


def default_preview_config(root: Path) -> PreviewConfig:
    """Return the configuration used when no YAML file is supplied."""
    return PreviewConfig(
        paths=ContentPaths(root=root),
        mocks=MockStoreConfig(store=root / MockStoreConfig().store),
    )


def _build_preview_config(
    raw: dict[str, typ.Any], *, base_dir: Path
) -> PreviewConfig:
    root = _resolve_path(base_dir, raw.get("project_path"), Path("."))
    paths_raw = _as_mapping(raw.get("paths"), section="paths")
    defaults = ContentPaths(root=root)
    paths = ContentPaths(
        root=root,
        pages=_optional_str(paths_raw.get("pages")) or defaults.pages,
        templates=_optional_str(paths_raw.get("templates")) or defaults.templates,
        snippets=_optional_str(paths_raw.get("snippets")) or defaults.snippets,
    )

    languages = _string_list(raw.get("languages"), section="languages")
    try:
        max_depth = int(raw.get("max_include_depth", 10))
        port = int(raw.get("port", 3000))
    except (TypeError, ValueError) as exc:
        msg = f"Invalid numeric setting: {exc}"
        raise PreviewConfigError(msg) from exc
    if max_depth < 1:
        msg = "'max_include_depth' must be at least 1."
        raise PreviewConfigError(msg)

    classifier = _build_classifier_config(
        _as_mapping(raw.get("classifier"), section="classifier")
    )
    mock_user = _build_mock_user(_as_mapping(raw.get("mock_user"), section="mock_user"))
    backend = _build_backend_config(
        _as_mapping(raw.get("backend"), section="backend"), base_dir=base_dir
    )
    mocks_raw = _as_mapping(raw.get("mocks"), section="mocks")
    mocks = MockStoreConfig(
        store=_resolve_path(root, mocks_raw.get("store"), MockStoreConfig().store)
    )

    config = PreviewConfig(
        paths=paths,
        max_include_depth=max_depth,
        debug=bool(raw.get("debug", False)),
        host=_optional_str(raw.get("host")) or "127.0.0.1",
        port=port,
        classifier=classifier,
        mock_user=mock_user,
        backend=backend,
        mocks=mocks,
    )
    if languages:
        config.languages = languages
    return config


def _build_backend_config(
    payload: typ.Mapping[str, typ.Any], *, base_dir: Path
) -> BackendConfig:
    base = BackendConfig()
    credentials = payload.get("credentials_file")
    try:
        return BackendConfig(
            base_url=(_optional_str(payload.get("base_url")) or "").rstrip("/"),
            timeout=float(payload.get("timeout", base.timeout)),
            retries=int(payload.get("retries", base.retries)),
            identity_timeout=float(
                payload.get("identity_timeout", base.identity_timeout)
            ),
            credentials_file=(
                _resolve_path(base_dir, credentials, Path()) if credentials else None
            ),
        )
    except (TypeError, ValueError) as exc:
        msg = f"Invalid backend setting: {exc}"
        raise PreviewConfigError(msg) from exc


__all__ = ["DEFAULT_CONFIG_PATH", "default_preview_config", "load_preview_config"]
