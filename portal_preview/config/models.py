"""Typed dataclasses describing the preview configuration."""

from __future__ import annotations

import dataclasses as dc
from pathlib import Path

from .._constants import DEFAULT_LANGUAGE, DEFAULT_MAX_INCLUDE_DEPTH


@dc.dataclass(slots=True)
class ContentPaths:
    """Locations of the portal export folders."""

    root: Path
    pages: str = "web-pages"
    templates: str = "web-templates"
    snippets: str = "content-snippets"

    @property
    def pages_dir(self) -> Path:
        return self.root / self.pages

    @property
    def templates_dir(self) -> Path:
        return self.root / self.templates

    @property
    def snippets_dir(self) -> Path:
        return self.root / self.snippets


@dc.dataclass(slots=True)
class ClassifierConfig:
    """Tunable thresholds for the executable-code classifier.

    Attributes
    ----------
    indicator_limit : int
        Absolute number of runtime indicators above which text is code.
    density_threshold : float
        Indicators per 1000 characters above which text is code, applied only
        when the text is longer than ``density_min_length``.
    density_min_length : int
        Minimum length for the density rule.
    large_length : int
        Length above which the relaxed ``large_density_threshold`` applies.
    large_density_threshold : float
        Density threshold for long content.
    bundle_length : int
        Length above which a count of function literals marks a bundle.
    bundle_function_count : int
        Function literals required for the bundle rule.
    score_threshold : float
        Aggregate signal weight at which text is classified as code.
    excludes : tuple[str, ...]
        File names that are always treated as code.
    """

    indicator_limit: int = 20
    density_threshold: float = 2.0
    density_min_length: int = 1000
    large_length: int = 50_000
    large_density_threshold: float = 1.0
    bundle_length: int = 100_000
    bundle_function_count: int = 100
    score_threshold: float = 1.0
    excludes: tuple[str, ...] = ()


@dc.dataclass(slots=True)
class MockUserConfig:
    """Identity used for local rendering when no live contact is available."""

    enabled: bool = True
    id: str = ""
    fullname: str = "Test User"
    email: str | None = None
    roles: tuple[str, ...] = ()

    @property
    def first_name(self) -> str:
        parts = self.fullname.split()
        return parts[0] if parts else ""

    @property
    def last_name(self) -> str:
        return " ".join(self.fullname.split()[1:])

    @property
    def resolved_email(self) -> str:
        if self.email:
            return self.email
        return f"{self.fullname.lower().replace(' ', '.')}@example.com"


@dc.dataclass(slots=True)
class BackendConfig:
    """Live backend used for forwarding and identity lookups."""

    base_url: str = ""
    timeout: float = 30.0
    retries: int = 3
    identity_timeout: float = 10.0
    credentials_file: Path | None = None


@dc.dataclass(slots=True)
class MockStoreConfig:
    """Location of the fixture rule document."""

    store: Path = Path("mocks/mock-config.json")


@dc.dataclass(slots=True)
class PreviewConfig:
    """A fully resolved preview configuration."""

    paths: ContentPaths
    languages: list[str] = dc.field(default_factory=lambda: [DEFAULT_LANGUAGE, "he-IL"])
    max_include_depth: int = DEFAULT_MAX_INCLUDE_DEPTH
    debug: bool = False
    host: str = "127.0.0.1"
    port: int = 3000
    classifier: ClassifierConfig = dc.field(default_factory=ClassifierConfig)
    mock_user: MockUserConfig = dc.field(default_factory=MockUserConfig)
    backend: BackendConfig = dc.field(default_factory=BackendConfig)
    mocks: MockStoreConfig = dc.field(default_factory=MockStoreConfig)

    @property
    def default_language(self) -> str:
        """Return the first configured language or the built-in default."""
        return self.languages[0] if self.languages else DEFAULT_LANGUAGE

    @property
    def site_url(self) -> str:
        return f"http://{self.host}:{self.port}"


__all__ = [
    "BackendConfig",
    "ClassifierConfig",
    "ContentPaths",
    "MockStoreConfig",
    "MockUserConfig",
    "PreviewConfig",
]
