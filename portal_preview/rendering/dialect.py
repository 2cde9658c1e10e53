"""Translate the Liquid subset used by portal templates into Jinja2 syntax.

Jinja2 and Liquid share delimiters and most of their expression grammar, so
translation is token-level: text outside ``{{ }}`` and ``{% %}`` is copied
untouched, tags are rewritten one at a time and expressions get a handful
of targeted rewrites. Tags the translator does not know pass through and
surface as Jinja syntax errors.

Examples
--------
>>> translate("{% assign name = user.fullname | default: 'Guest' %}")
"{% set name = user.fullname | default('Guest') %}"
>>> translate("{% unless user %}anon{% endunless %}")
'{% if not (user) %}anon{% endif %}'
>>> translate("{% if roles contains 'Admin' %}x{% endif %}")
"{% if ('Admin' in roles) %}x{% endif %}"
"""

from __future__ import annotations

import re

TOKEN_RE = re.compile(
    r"(?P<tag>\{%-?(?P<tag_body>.*?)-?%\})|(?P<out>\{\{-?(?P<out_body>.*?)-?\}\})",
    re.DOTALL,
)
_STRING_RE = re.compile(r"'[^']*'|\"[^\"]*\"")
_PLACEHOLDER_RE = re.compile(r"\x00(\d+)\x00")
_OPERAND = r"[^\s()=!<>,]+"
_CONTAINS_RE = re.compile(rf"({_OPERAND})\s+contains\s+({_OPERAND})")
_BLANK_EQ_RE = re.compile(rf"({_OPERAND})\s*==\s*(?:blank|empty)\b")
_BLANK_NE_RE = re.compile(rf"({_OPERAND})\s*(?:!=|<>)\s*(?:blank|empty)\b")
_SIZE_RE = re.compile(rf"({_OPERAND})\.(size|first|last)\b")
_RANGE_RE = re.compile(rf"\(\s*({_OPERAND})\s*\.\.\s*({_OPERAND})\s*\)")
_FILTER_ARGS_RE = re.compile(r"\|\s*(\w+)\s*:\s*([^|]+)")
_FOR_RE = re.compile(r"^(\w+)\s+in\s+(.+)$", re.DOTALL)
_FOR_OPTION_RE = re.compile(r"\s+(limit|offset)\s*:\s*(\S+)|\s+(reversed)\b")
_INCLUDE_ARGS_RE = re.compile(r"(\w+)\s*:\s*([^,]+)")
_INCLUDE_NAME_RE = re.compile(r"""^('[^']*'|"[^"]*"|\S+)\s*(.*)$""", re.DOTALL)

_PROPERTY_FILTERS = {"size": "length", "first": "first", "last": "last"}


class _Translator:
    def __init__(self) -> None:
        self.cases: list[dict[str, object]] = []

    def translate(self, source: str) -> str:
        parts: list[str] = []
        position = 0
        skip_until: str | None = None
        for match in TOKEN_RE.finditer(source):
            start, end = match.span()
            body = (match.group("tag_body") or "").strip()
            if skip_until is not None:
                keyword = body.split(None, 1)[0] if body else ""
                if match.group("tag") and keyword == skip_until:
                    if skip_until == "endraw":
                        parts.append(source[position:end])
                    skip_until = None
                    position = end
                continue
            parts.append(_escape_text(source[position:start]))
            position = end
            if match.group("out") is not None:
                parts.append(self._output(match))
                continue
            keyword = body.split(None, 1)[0] if body else ""
            if keyword == "raw":
                parts.append(match.group(0))
                skip_until = "endraw"
                position = end
                continue
            if keyword == "comment":
                skip_until = "endcomment"
                continue
            parts.append(self._tag(match.group(0), body))
        if skip_until == "endraw":
            parts.append(source[position:])
        elif skip_until is None:
            parts.append(_escape_text(source[position:]))
        return "".join(parts)

    def _output(self, match: re.Match[str]) -> str:
        token = match.group(0)
        open_delim = "{{-" if token.startswith("{{-") else "{{"
        close_delim = "-}}" if token.endswith("-}}") else "}}"
        return f"{open_delim} {translate_expression(match.group('out_body').strip())} {close_delim}"

    def _tag(self, token: str, body: str) -> str:
        open_delim = "{%-" if token.startswith("{%-") else "{%"
        close_delim = "-%}" if token.endswith("-%}") else "%}"
        keyword, _, rest = body.partition(" ")
        rest = rest.strip()
        if keyword == "cycle":
            return f"{{{{ loop.cycle({translate_expression(rest)}) }}}}"
        if keyword == "include":
            return "".join(
                f"{open_delim} {statement} {close_delim}" for statement in _include(rest)
            )
        translated = self._tag_body(keyword, rest)
        if translated is None:
            return ""
        return f"{open_delim} {translated} {close_delim}"

    def _tag_body(self, keyword: str, rest: str) -> str | None:  # noqa: PLR0911, C901
        if keyword == "assign":
            return f"set {translate_expression(rest)}"
        if keyword in {"if", "elsif"}:
            name = "if" if keyword == "if" else "elif"
            return f"{name} {translate_expression(rest)}"
        if keyword == "unless":
            return f"if not ({translate_expression(rest)})"
        if keyword == "endunless":
            return "endif"
        if keyword == "capture":
            return f"set {rest}"
        if keyword == "endcapture":
            return "endset"
        if keyword == "case":
            self.cases.append({"subject": translate_expression(rest), "open": False})
            return None
        if keyword == "when":
            return self._when(rest)
        if keyword == "endcase":
            state = self.cases.pop() if self.cases else {"open": False}
            return "endif" if state["open"] else None
        if keyword == "for":
            return self._for(rest)
        if keyword == "editable":
            return None
        if keyword == "with":
            return f"with {rest}"
        if keyword in {"else", "endif", "endfor", "endwith", "break", "continue"}:
            return keyword
        return f"{keyword} {translate_expression(rest)}".strip()

    def _when(self, rest: str) -> str:
        if not self.cases:
            return f"when {rest}"
        state = self.cases[-1]
        subject = state["subject"]
        values = [
            translate_expression(value.strip())
            for value in re.split(r",|\s+or\s+", rest)
            if value.strip()
        ]
        condition = " or ".join(f"{subject} == {value}" for value in values)
        keyword = "elif" if state["open"] else "if"
        state["open"] = True
        return f"{keyword} {condition}"

    def _for(self, rest: str) -> str:
        match = _FOR_RE.match(rest)
        if match is None:
            return f"for {rest}"
        variable, spec = match.groups()
        limit = offset = None
        reverse = False
        for option in _FOR_OPTION_RE.finditer(spec):
            if option.group(3):
                reverse = True
            elif option.group(1) == "limit":
                limit = translate_expression(option.group(2))
            else:
                offset = translate_expression(option.group(2))
        collection = translate_expression(_FOR_OPTION_RE.sub("", spec).strip())
        sequence = f"({collection})"
        if limit is not None or offset is not None:
            start = offset or "0"
            stop = f"{start} + {limit}" if limit is not None else ""
            sequence = f"({sequence} | list)[{start}:{stop}]"
        if reverse:
            sequence = f"({sequence} | reverse | list)"
        return f"for {variable} in {sequence}"


def include_bindings(arguments: str) -> str:
    """Return Jinja ``with`` bindings for Liquid include arguments.

    >>> include_bindings("title: page.title, count: items.size")
    'title=page.title, count=(items|length)'
    >>> include_bindings("")
    ''
    """
    args = arguments.strip().lstrip(",").strip()
    return ", ".join(
        f"{key}={translate_expression(value.strip())}"
        for key, value in _INCLUDE_ARGS_RE.findall(args)
    )


def _include(rest: str) -> list[str]:
    """Return the Jinja statements for an include, binding Liquid arguments."""
    match = _INCLUDE_NAME_RE.match(rest)
    if match is None:
        return [f"include {rest}"]
    name, bindings = match.group(1), include_bindings(match.group(2))
    if not bindings:
        return [f"include {name}"]
    return [f"with {bindings}", f"include {name}", "endwith"]


def _escape_text(text: str) -> str:
    """Neutralize Jinja comment openers that are plain text in Liquid."""
    return text.replace("{#", "{{ '{#' }}")


def _property_filter(match: re.Match[str]) -> str:
    target, prop = match.groups()
    if target == "loop":
        return match.group(0)
    return f"({target}|{_PROPERTY_FILTERS[prop]})"


def translate_expression(expression: str) -> str:
    """Rewrite a Liquid expression into its Jinja2 equivalent.

    >>> translate_expression("page.title | upcase")
    'page.title | upcase'
    >>> translate_expression("user.email == blank")
    '(not user.email)'
    >>> translate_expression("items.size > 0 and value != nil")
    '(items|length) > 0 and value != none'
    """
    literals: list[str] = []

    def _stash(match: re.Match[str]) -> str:
        literals.append(match.group(0))
        return f"\x00{len(literals) - 1}\x00"

    text = _STRING_RE.sub(_stash, expression)
    text = re.sub(r"\bforloop\.", "loop.", text)
    text = _RANGE_RE.sub(r"range(\1, \2 + 1)", text)
    text = _BLANK_NE_RE.sub(r"(\1)", text)
    text = _BLANK_EQ_RE.sub(r"(not \1)", text)
    text = _CONTAINS_RE.sub(r"(\2 in \1)", text)
    text = _SIZE_RE.sub(_property_filter, text)
    text = re.sub(r"\bnil\b", "none", text)
    text = re.sub(r"<>", "!=", text)
    text = _FILTER_ARGS_RE.sub(lambda m: f"| {m.group(1)}({m.group(2).strip()}) ", text)
    text = text.rstrip()
    return _PLACEHOLDER_RE.sub(lambda m: literals[int(m.group(1))], text)


def translate(source: str) -> str:
    """Translate a Liquid template source into Jinja2 syntax."""
    return _Translator().translate(source)


__all__ = ["include_bindings", "translate", "translate_expression"]
