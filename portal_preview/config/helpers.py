"""Utility helpers shared by the preview configuration loader."""

from __future__ import annotations

import typing as typ
from pathlib import Path

from ..errors import PreviewConfigError
from .models import ClassifierConfig, MockUserConfig


def _optional_str(value: object | None) -> str | None:
    """Return a stripped string value or None when empty."""
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def _as_mapping(value: object, *, section: str) -> typ.Mapping[str, typ.Any]:
    """Return ``value`` as a mapping, treating a missing section as empty."""
    if value is None:
        return {}
    if not isinstance(value, typ.Mapping):
        msg = f"Section '{section}' must be a mapping."
        raise PreviewConfigError(msg)
    return value


def _resolve_path(base: Path, value: object | None, default: Path) -> Path:
    """Resolve ``value`` relative to ``base`` unless it is already absolute."""
    path = Path(str(value)) if value not in (None, "") else default
    if path.is_absolute():
        return path
    return base / path


def _string_list(value: object, *, section: str) -> list[str]:
    """Normalize a YAML scalar or sequence into a list of non-empty strings."""
    if value is None:
        return []
    if isinstance(value, str):
        return [part.strip() for part in value.split(",") if part.strip()]
    if isinstance(value, list):
        return [str(item).strip() for item in value if str(item).strip()]
    msg = f"'{section}' must be a list of strings."
    raise PreviewConfigError(msg)


def _build_classifier_config(payload: typ.Mapping[str, typ.Any]) -> ClassifierConfig:
    """Build a ClassifierConfig, keeping defaults for omitted thresholds."""
    base = ClassifierConfig()
    try:
        return ClassifierConfig(
            indicator_limit=int(payload.get("indicator_limit", base.indicator_limit)),
            density_threshold=float(
                payload.get("density_threshold", base.density_threshold)
            ),
            density_min_length=int(
                payload.get("density_min_length", base.density_min_length)
            ),
            large_length=int(payload.get("large_length", base.large_length)),
            large_density_threshold=float(
                payload.get("large_density_threshold", base.large_density_threshold)
            ),
            bundle_length=int(payload.get("bundle_length", base.bundle_length)),
            bundle_function_count=int(
                payload.get("bundle_function_count", base.bundle_function_count)
            ),
            score_threshold=float(payload.get("score_threshold", base.score_threshold)),
            excludes=tuple(
                _string_list(payload.get("excludes"), section="classifier.excludes")
            ),
        )
    except (TypeError, ValueError) as exc:
        if isinstance(exc, PreviewConfigError):
            raise
        msg = f"Invalid classifier threshold: {exc}"
        raise PreviewConfigError(msg) from exc


def _build_mock_user(payload: typ.Mapping[str, typ.Any]) -> MockUserConfig:
    """Build the mock user block; ``name`` is accepted as an alias of ``fullname``."""
    base = MockUserConfig()
    fullname = _optional_str(payload.get("fullname") or payload.get("name"))
    return MockUserConfig(
        enabled=bool(payload.get("enabled", base.enabled)),
        id=_optional_str(payload.get("id")) or base.id,
        fullname=fullname or base.fullname,
        email=_optional_str(payload.get("email")),
        roles=tuple(_string_list(payload.get("roles"), section="mock_user.roles")),
    )


__all__ = [
    "_as_mapping",
    "_build_classifier_config",
    "_build_mock_user",
    "_optional_str",
    "_resolve_path",
    "_string_list",
]
