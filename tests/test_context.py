"""Tests for the render context."""

from __future__ import annotations

import pytest

from portal_preview.rendering import RenderContext


def test_overrides_win_on_collision() -> None:
    """Overrides replace base variables with the same key."""
    context = RenderContext.build(
        user={"fullname": "Dana"}, overrides={"user": {"fullname": "Override"}}
    )
    assert context.variables()["user"] == {"fullname": "Override"}, (
        "expected the override user"
    )


def test_variables_are_read_only() -> None:
    """The namespace handed to templates cannot be modified."""
    variables = RenderContext.build().variables()
    with pytest.raises(TypeError):
        variables["user"] = {}  # type: ignore[index]


def test_variables_are_isolated_between_calls() -> None:
    """Mutating nested values does not leak into later renders."""
    context = RenderContext.build(overrides={"items": [1, 2]})
    first = context.variables()
    first["items"].append(3)
    second = context.variables()
    assert second["items"] == [1, 2], f"expected a fresh copy, got {second['items']!r}"


def test_with_overrides_returns_new_context() -> None:
    """Extending overrides leaves the original context untouched."""
    base = RenderContext.build(overrides={"a": 1})
    extended = base.with_overrides({"b": 2})
    assert dict(base.overrides) == {"a": 1}, "expected the original to be unchanged"
    assert dict(extended.overrides) == {"a": 1, "b": 2}, "expected merged overrides"


def test_language_selects_site_values() -> None:
    """The site objects reflect the render language."""
    variables = RenderContext.build(language="he-IL").variables()
    selected = variables["website"]["selected_language"]
    assert selected["code"] == "he-IL", f"unexpected language {selected!r}"
    assert variables["settings"]["LanguageLocale/Code"] == "he-IL", "unexpected locale"
    assert "resx" in variables, "expected resource strings in the namespace"
