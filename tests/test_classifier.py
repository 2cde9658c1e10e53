"""Tests for the executable-code classifier."""

from __future__ import annotations

import pytest

from portal_preview.config.models import ClassifierConfig
from portal_preview.rendering.classifier import (
    ContentClassifier,
    Signal,
    count_indicators,
    indicator_density,
)

MINIFIED_BUNDLE = '!function(e,t){"use strict";' + "function(e){return e&&e.t};" * 8000
HTML_FRAGMENT = "\n".join(
    [
        '<section class="cards">',
        "  <h1>{{ page.title }}</h1>",
        *(f'  <div class="card"><p>Item {i}</p></div>' for i in range(47)),
        "</section>",
    ]
)


@pytest.fixture
def classifier() -> ContentClassifier:
    return ContentClassifier()


def test_minified_bundle_is_code(classifier: ContentClassifier) -> None:
    """A 200 KB minified bundle is never handed to the template engine."""
    assert len(MINIFIED_BUNDLE) > 200_000, "fixture should be a large bundle"
    verdict = classifier.classify(MINIFIED_BUNDLE)
    assert verdict.is_code, f"expected code, fired {verdict.fired!r}"
    for name in ("minified-bundle", "indicator-count", "bundle-size"):
        assert name in verdict.fired, f"expected {name} to fire, got {verdict.fired!r}"


def test_html_fragment_is_markup(classifier: ContentClassifier) -> None:
    """A fifty-line HTML fragment with a variable is template markup."""
    assert HTML_FRAGMENT.count("\n") == 49, "fixture should have fifty lines"
    verdict = classifier.classify(HTML_FRAGMENT)
    assert not verdict.is_code, f"expected markup, fired {verdict.fired!r}"
    assert verdict.score == 0, f"expected no signal, got score {verdict.score}"


@pytest.mark.parametrize(
    ("text", "signal"),
    [
        ("// build output\nwindow.app = 1;", "structural-prefix"),
        ("/* license */\n<div></div>", "structural-prefix"),
        ("(function (root) { root.x = 1; })(this);", "structural-prefix"),
        ('<p>if (typeof exports !== "undefined") {}</p>', "module-boilerplate"),
        ("<p>!function(n){}</p>", "minified-bundle"),
        ("<div>{{ x }}</div><script>ReactDOM.render(app)</script>", "react-runtime"),
        ('<div id="root"></div><script type="text/babel">go()</script>', "babel-script"),
    ],
)
def test_individual_signals(classifier: ContentClassifier, text: str, signal: str) -> None:
    """Each strong hint is decisive on its own."""
    verdict = classifier.classify(text)
    assert signal in verdict.fired, f"expected {signal} to fire for {text!r}"
    assert verdict.is_code, f"expected {text!r} to classify as code"


def test_indicator_count_threshold(classifier: ContentClassifier) -> None:
    """More than twenty indicators make text code; twenty do not."""
    assert not classifier.is_executable_code(" a && b " * 20), "twenty should be markup"
    assert classifier.is_executable_code(" a && b " * 21), "twenty-one should be code"


def test_thresholds_are_configurable() -> None:
    """A raised indicator limit lets indicator-heavy markup through."""
    tolerant = ContentClassifier(ClassifierConfig(indicator_limit=50))
    assert not tolerant.is_executable_code(" a && b " * 21), (
        "expected the raised limit to accept twenty-one indicators"
    )


def test_excluded_file_name_is_code() -> None:
    """Names listed in the exclusions are always code."""
    classifier = ContentClassifier(ClassifierConfig(excludes=("Legacy Widget",)))
    assert classifier.is_executable_code("<p>plain</p>", file_name="Legacy Widget"), (
        "expected an excluded name to classify as code"
    )
    assert classifier.should_skip_file("Legacy Widget"), "expected the file to be skipped"


@pytest.mark.parametrize(
    ("name", "text", "expected"),
    [
        ("jquery.plugins.js", "$(function () {});", True),
        ("React Runtime", "var React = {};", True),
        ("Global React Components", "<div>{{ user.fullname }}</div>", False),
        ("Header", "<header></header>", False),
    ],
)
def test_should_skip_file(name: str, text: str, expected: bool) -> None:
    """Script-library names are skipped unless they carry template syntax."""
    result = ContentClassifier().should_skip_file(name, text)
    assert result is expected, f"expected {expected} for {name!r}, got {result}"


def test_weighted_signals_require_agreement() -> None:
    """Fractional weights need several signals to reach the threshold."""
    signals = (
        Signal("has-semicolon", 0.5, lambda text, _config: ";" in text),
        Signal("has-arrow", 0.5, lambda text, _config: "=>" in text),
    )
    classifier = ContentClassifier(signals=signals)
    assert not classifier.is_executable_code("a; b"), "one weak signal is not enough"
    verdict = classifier.classify("x => y;")
    assert verdict.is_code, f"expected both signals to agree, got {verdict!r}"
    assert verdict.score == pytest.approx(1.0), f"unexpected score {verdict.score}"


def test_indicator_helpers() -> None:
    """Indicator counts and density are reported per thousand characters."""
    assert indicator_density("") == 0.0, "empty text has no density"
    text = "var a = 1; var b = 2;"
    assert count_indicators(text) == 2, f"expected two indicators in {text!r}"
    density = indicator_density(text)
    assert density == pytest.approx(2 / (len(text) / 1000)), f"unexpected {density}"
