"""Exception taxonomy shared by the preview core.

Content misses are not exceptions; the resolver returns the ``NOT_FOUND``
sentinel for them. Everything below is raised at a component boundary and
caught by the next layer up.
"""

from __future__ import annotations


class PreviewError(Exception):
    """Base class for errors raised by portal_preview."""


class PreviewConfigError(PreviewError, ValueError):
    """Raised when the preview configuration is invalid or incomplete."""


class RenderError(PreviewError):
    """Raised when a template cannot be rendered.

    Attributes
    ----------
    identity : str
        Label of the content that failed (for example ``"page:home"``).
    message : str
        Engine diagnostic, without the identity prefix.
    lineno : int | None
        Line number reported by the engine, when known.
    """

    def __init__(self, identity: str, message: str, lineno: int | None = None) -> None:
        self.identity = identity
        self.message = message
        self.lineno = lineno
        location = f" (line {lineno})" if lineno else ""
        super().__init__(f"{identity}{location}: {message}")


class TemplateSyntaxError(RenderError):
    """Raised when the expression grammar cannot parse a template."""


class RenderRuntimeError(RenderError):
    """Raised when a filter, tag, or lookup fails while executing a template."""


class BackendUnavailable(PreviewError, RuntimeError):
    """Raised when the live backend cannot be reached or times out.

    Distinct from an HTTP error status returned by a reachable backend, which
    is passed through to the caller unchanged.
    """


class IdentityLookupFailed(PreviewError):
    """Raised by identity providers; always recovered with a fallback user."""


class MockStoreError(PreviewError, ValueError):
    """Raised when the fixture rule document cannot be read or written."""


class UnknownMockRule(MockStoreError, KeyError):
    """Raised when a rule id is not present in the store."""

    def __str__(self) -> str:
        return str(self.args[0]) if self.args else "unknown mock rule"


__all__ = [
    "BackendUnavailable",
    "IdentityLookupFailed",
    "MockStoreError",
    "PreviewConfigError",
    "PreviewError",
    "RenderError",
    "RenderRuntimeError",
    "TemplateSyntaxError",
    "UnknownMockRule",
]
