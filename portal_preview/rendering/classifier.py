"""Decide whether a content blob is executable script or template markup.

Portal exports often keep bundled application scripts (React runtimes,
polyfills, minified vendor code) next to Liquid templates. Running such a
bundle through the template engine corrupts it because ``{{``, ``{%`` and
``}}`` sequences are common in minified code. :class:`ContentClassifier`
aggregates independent, individually testable signals into a single
verdict and leans towards "code" when in doubt.

Examples
--------
>>> classifier = ContentClassifier()
>>> classifier.is_executable_code("<h1>{{ page.title }}</h1>")
False
>>> classifier.is_executable_code("(function (root) { root.x = 1; })(this);")
True
"""

from __future__ import annotations

import dataclasses as dc
import logging
import re
import typing as typ

from ..config.models import ClassifierConfig

logger = logging.getLogger(__name__)

Predicate = typ.Callable[[str, ClassifierConfig], bool]


@dc.dataclass(frozen=True, slots=True)
class Signal:
    """A named predicate contributing ``weight`` when it fires."""

    name: str
    weight: float
    predicate: Predicate

    def fires(self, text: str, config: ClassifierConfig) -> bool:
        return self.predicate(text, config)


@dc.dataclass(frozen=True, slots=True)
class Verdict:
    """Outcome of a classification with the signals that fired."""

    is_code: bool
    score: float
    fired: tuple[str, ...] = ()


STRUCTURAL_PREFIXES: tuple[re.Pattern[str], ...] = (
    re.compile(r"^\s*/\*[\s\S]*?\*/"),
    re.compile(r"^\s*//"),
    re.compile(r"^\s*\(function\s*\("),
    re.compile(r"^\s*function\s+\w+"),
    re.compile(r"^\s*var\s+\w+"),
    re.compile(r"^\s*const\s+\w+"),
    re.compile(r"^\s*let\s+\w+"),
)

MODULE_BOILERPLATE: tuple[re.Pattern[str], ...] = (
    re.compile(r"typeof\s+exports"),
    re.compile(r"typeof\s+define"),
    re.compile(r"global\s*=\s*typeof\s*globalThis"),
    re.compile(r'"object"==typeof exports&&"undefined"!=typeof module'),
    re.compile(r"define\.amd\?define"),
)

MINIFIED_PATTERNS: tuple[re.Pattern[str], ...] = (
    re.compile(r"!function\s*\("),
    re.compile(r'this,\(function\(e,t\)\{"use strict"'),
    re.compile(r"this,\(function\(e,t\)"),
    re.compile(r"e\s*=\s*e\s*\|\|\s*self"),
)

REACT_SIGNATURES: tuple[re.Pattern[str], ...] = (
    re.compile(r"""window\s*\[\s*["']ReactDOM["']\s*\]"""),
    re.compile(r"React\.createElement"),
    re.compile(r"ReactDOM"),
    re.compile(r"__SECRET_INTERNALS_DO_NOT_USE_OR_YOU_WILL_BE_FIRED"),
    re.compile(r"ReactCurrentDispatcher"),
    re.compile(r"ReactCurrentBatchConfig"),
    re.compile(r"ReactDebugCurrentFrame"),
    re.compile(r"prepareStackTrace"),
    re.compile(r"getStackAddendum"),
)

BABEL_SCRIPT = re.compile(r"""<script[^>]*type=["']text/babel["'][^>]*>""")

BUNDLE_MARKERS = (
    "react-dom.development.js",
    "react.development.js",
    "__SECRET_INTERNALS_DO_NOT_USE_OR_YOU_WILL_BE_FIRED",
)

INDICATORS: tuple[re.Pattern[str], ...] = (
    re.compile(r"\bReactDOM\s*=\s*{}"),
    re.compile(r"typeof\s+\w+"),
    re.compile(r"function\s*\("),
    re.compile(r"\bvar\s+\w+"),
    re.compile(r"\bconst\s+\w+"),
    re.compile(r"\blet\s+\w+"),
    re.compile(r"console\.[a-zA-Z]+\s*\("),
    re.compile(r"\b\w+\s*=\s*function\s*\("),
    re.compile(r"\bif\s*\([^)]+\)\s*\{"),
    re.compile(r"\bfor\s*\([^)]+\)\s*\{"),
    re.compile(r"\btry\s*\{"),
    re.compile(r"\bcatch\s*\("),
    re.compile(r"===|!==|&&|\|\|"),
    re.compile(r"\b\w+\.prototype\."),
    re.compile(r"\bnew\s+\w+\s*\("),
    re.compile(r"\bthis\."),
    re.compile(r"\breturn\s+[^;]+;"),
    re.compile(r"\bcase\s+[^:]+:"),
    re.compile(r"ReactCurrentBatchConfig"),
    re.compile(r"ReactCurrentDispatcher"),
    re.compile(r"ReactDebugCurrentFrame"),
    re.compile(r"ReactDOM\."),
    re.compile(r"React\."),
    re.compile(r"__SECRET_INTERNALS_DO_NOT_USE_OR_YOU_WILL_BE_FIRED"),
    re.compile(r"prepareStackTrace"),
    re.compile(r"getStackAddendum"),
    re.compile(r'"object"==typeof'),
    re.compile(r'"function"==typeof'),
    re.compile(r'"undefined"!=typeof'),
)

FUNCTION_LITERAL = re.compile(r"function\s*\(")

SCRIPT_FILE_NAMES: tuple[re.Pattern[str], ...] = (
    re.compile(r"\.js$", re.IGNORECASE),
    re.compile(r"react", re.IGNORECASE),
    re.compile(r"redux", re.IGNORECASE),
    re.compile(r"bootstrap", re.IGNORECASE),
    re.compile(r"jquery", re.IGNORECASE),
    re.compile(r"babel", re.IGNORECASE),
    re.compile(r"webpack", re.IGNORECASE),
    re.compile(r"polyfill", re.IGNORECASE),
)

LIQUID_SYNTAX = re.compile(r"\{\{.*?\}\}|\{%.*?%\}", re.DOTALL)


def _any(patterns: typ.Iterable[re.Pattern[str]]) -> Predicate:
    compiled = tuple(patterns)

    def predicate(text: str, _config: ClassifierConfig) -> bool:
        return any(pattern.search(text) for pattern in compiled)

    return predicate


def count_indicators(text: str) -> int:
    """Return the number of runtime-language indicator matches in ``text``."""
    return sum(len(pattern.findall(text)) for pattern in INDICATORS)


def indicator_density(text: str) -> float:
    """Return indicators per 1000 characters (0.0 for empty text)."""
    if not text:
        return 0.0
    return count_indicators(text) / (len(text) / 1000)


def _excluded_signature(text: str, config: ClassifierConfig) -> bool:
    if not config.excludes:
        return False
    markers = (*config.excludes, *BUNDLE_MARKERS)
    return any(marker in text for marker in markers)


def _indicator_count(text: str, config: ClassifierConfig) -> bool:
    return count_indicators(text) > config.indicator_limit


def _indicator_density(text: str, config: ClassifierConfig) -> bool:
    if len(text) <= config.density_min_length:
        return False
    return indicator_density(text) > config.density_threshold


def _large_content_density(text: str, config: ClassifierConfig) -> bool:
    if len(text) <= config.large_length:
        return False
    return indicator_density(text) > config.large_density_threshold


def _bundle_size(text: str, config: ClassifierConfig) -> bool:
    if len(text) <= config.bundle_length:
        return False
    return len(FUNCTION_LITERAL.findall(text)) > config.bundle_function_count


DEFAULT_SIGNALS: tuple[Signal, ...] = (
    Signal("structural-prefix", 1.0, _any(STRUCTURAL_PREFIXES)),
    Signal("module-boilerplate", 1.0, _any(MODULE_BOILERPLATE)),
    Signal("minified-bundle", 1.0, _any(MINIFIED_PATTERNS)),
    Signal("react-runtime", 1.0, _any(REACT_SIGNATURES)),
    Signal("babel-script", 1.0, _any((BABEL_SCRIPT,))),
    Signal("excluded-signature", 1.0, _excluded_signature),
    Signal("indicator-count", 1.0, _indicator_count),
    Signal("indicator-density", 1.0, _indicator_density),
    Signal("large-content-density", 1.0, _large_content_density),
    Signal("bundle-size", 1.0, _bundle_size),
)


class ContentClassifier:
    """Weighted-vote classifier separating script payloads from markup.

    Every default signal is decisive on its own (weight equal to the
    threshold) so a single strong hint is enough to leave content
    unrendered. Custom signals with fractional weights may be supplied to
    require agreement between weaker hints.

    Parameters
    ----------
    config : ClassifierConfig | None
        Thresholds and always-code file names.
    signals : Sequence[Signal] | None
        Replacement signal list; defaults to :data:`DEFAULT_SIGNALS`.
    """

    def __init__(
        self,
        config: ClassifierConfig | None = None,
        *,
        signals: typ.Sequence[Signal] | None = None,
    ) -> None:
        self.config = config or ClassifierConfig()
        self.signals = tuple(signals) if signals is not None else DEFAULT_SIGNALS

    def classify(self, text: str) -> Verdict:
        """Evaluate every signal against ``text`` and return the verdict."""
        fired = tuple(
            signal.name for signal in self.signals if signal.fires(text, self.config)
        )
        weights = {signal.name: signal.weight for signal in self.signals}
        score = sum(weights[name] for name in fired)
        return Verdict(
            is_code=score >= self.config.score_threshold, score=score, fired=fired
        )

    def is_executable_code(self, text: str, *, file_name: str | None = None) -> bool:
        """Return ``True`` when ``text`` must bypass template execution.

        A ``file_name`` listed in ``config.excludes`` is code regardless of
        its contents.
        """
        if file_name and file_name in self.config.excludes:
            logger.debug("Classified %s as code: excluded file name", file_name)
            return True
        verdict = self.classify(text)
        if verdict.is_code:
            logger.debug(
                "Classified %d chars as code (score %.1f: %s)",
                len(text),
                verdict.score,
                ", ".join(verdict.fired),
            )
        return verdict.is_code

    def should_skip_file(self, name: str, text: str = "") -> bool:
        """Return ``True`` when an included file must not be expanded at all.

        Excluded names are always skipped. Names that look like script
        libraries are skipped unless the content carries template syntax.
        """
        if name in self.config.excludes:
            return True
        if not is_script_name(name):
            return False
        return not (text and contains_template_syntax(text))


def is_script_name(name: str) -> bool:
    """Return ``True`` for names that look like a JavaScript library."""
    return any(pattern.search(name) for pattern in SCRIPT_FILE_NAMES)


def contains_template_syntax(text: str) -> bool:
    return LIQUID_SYNTAX.search(text) is not None


__all__ = [
    "DEFAULT_SIGNALS",
    "ContentClassifier",
    "Signal",
    "Verdict",
    "contains_template_syntax",
    "count_indicators",
    "indicator_density",
    "is_script_name",
]
