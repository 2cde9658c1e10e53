"""Load and validate the preview server configuration.

This subpackage parses ``config/preview.yaml`` into slotted dataclasses
(:class:`PreviewConfig`, :class:`ContentPaths`, :class:`ClassifierConfig` and
friends) and reads backend credentials from a TOML file. The primary entry
point is :func:`load_preview_config`.

Examples
--------
>>> from pathlib import Path
>>> from portal_preview.config import load_preview_config
>>> config = load_preview_config(Path("config/preview.yaml"))  # doctest: +SKIP
>>> config.paths.pages_dir  # doctest: +SKIP
PosixPath('/srv/portal/web-pages')
"""

from .credentials import (
    DEFAULT_CREDENTIALS_PATH,
    BackendCredentials,
    load_credentials,
    save_credentials,
)
from .loader import DEFAULT_CONFIG_PATH, default_preview_config, load_preview_config
from .models import (
    BackendConfig,
    ClassifierConfig,
    ContentPaths,
    MockStoreConfig,
    MockUserConfig,
    PreviewConfig,
)

__all__ = [
    "DEFAULT_CONFIG_PATH",
    "DEFAULT_CREDENTIALS_PATH",
    "BackendConfig",
    "BackendCredentials",
    "ClassifierConfig",
    "ContentPaths",
    "MockStoreConfig",
    "MockUserConfig",
    "PreviewConfig",
    "default_preview_config",
    "load_credentials",
    "load_preview_config",
    "save_credentials",
]
