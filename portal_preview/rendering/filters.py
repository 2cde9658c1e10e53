"""Portal filters registered on the template environment.

``escape``, ``h``, ``boolean`` and ``default`` follow the portal's own
semantics; the remaining filters give Jinja2 the Liquid standard-library
names that portal templates use.
"""

from __future__ import annotations

import datetime as dt
import html
import re
import typing as typ
import urllib.parse

import markupsafe
from jinja2 import Undefined

_TAG_RE = re.compile(r"<[^>]*>")


def _is_blank(value: object) -> bool:
    return value is None or isinstance(value, Undefined)


def escape(value: object) -> str:
    """Escape HTML special characters; missing values render empty.

    >>> escape('<a href="x">Tom & Jerry\\'s</a>')
    '&lt;a href=&#34;x&#34;&gt;Tom &amp; Jerry&#39;s&lt;/a&gt;'
    >>> escape(markupsafe.Markup("<b>safe</b>"))
    '<b>safe</b>'
    >>> escape(None)
    ''
    """
    if _is_blank(value) or value == "":
        return ""
    return str(markupsafe.escape(value))


def boolean(value: object) -> bool:
    """Coerce ``value`` to a boolean; only the string ``"true"`` is truthy text.

    >>> boolean("TRUE"), boolean("yes"), boolean(1)
    (True, False, True)
    """
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        return value.lower() == "true"
    if _is_blank(value):
        return False
    return bool(value)


def default(value: object, default_value: object = "") -> object:
    """Return ``default_value`` when ``value`` is falsy or undefined."""
    if _is_blank(value):
        return default_value
    return value or default_value


def _number(value: object) -> int | float:
    if isinstance(value, (int, float)):
        return value
    text = str(value).strip()
    try:
        return int(text)
    except ValueError:
        return float(text)


def plus(value: object, other: object) -> int | float:
    return _number(value) + _number(other)


def minus(value: object, other: object) -> int | float:
    return _number(value) - _number(other)


def times(value: object, other: object) -> int | float:
    return _number(value) * _number(other)


def divided_by(value: object, other: object) -> int | float:
    """Divide like Liquid: integer operands use floor division."""
    left, right = _number(value), _number(other)
    if isinstance(left, int) and isinstance(right, int):
        return left // right
    return left / right


def modulo(value: object, other: object) -> int | float:
    return _number(value) % _number(other)


def append(value: object, suffix: object) -> str:
    return f"{'' if _is_blank(value) else value}{suffix}"


def prepend(value: object, prefix: object) -> str:
    return f"{prefix}{'' if _is_blank(value) else value}"


def remove(value: object, fragment: object) -> str:
    return str(value).replace(str(fragment), "")


def split(value: object, separator: object = " ") -> list[str]:
    if _is_blank(value):
        return []
    return str(value).split(str(separator))


def size(value: object) -> int:
    if _is_blank(value):
        return 0
    try:
        return len(typ.cast(typ.Sized, value))
    except TypeError:
        return len(str(value))


def strip_html(value: object) -> str:
    return html.unescape(_TAG_RE.sub("", str(value)))


def newline_to_br(value: object) -> str:
    return str(value).replace("\n", "<br />\n")


def url_encode(value: object) -> str:
    return urllib.parse.quote_plus(str(value))


def date(value: object, fmt: str = "%Y-%m-%d") -> str:
    """Format ``value`` with strftime; ``"now"`` and ``"today"`` mean now.

    >>> date("2025-03-01T10:00:00", "%d/%m/%Y")
    '01/03/2025'
    """
    if isinstance(value, dt.datetime | dt.date):
        moment = value
    elif str(value).lower() in {"now", "today"}:
        moment = dt.datetime.now(tz=dt.UTC)
    else:
        try:
            moment = dt.datetime.fromisoformat(str(value))
        except ValueError:
            return str(value)
    return moment.strftime(fmt)


FILTERS: dict[str, typ.Callable[..., object]] = {
    "escape": escape,
    "h": escape,
    "e": escape,
    "boolean": boolean,
    "default": default,
    "plus": plus,
    "minus": minus,
    "times": times,
    "divided_by": divided_by,
    "modulo": modulo,
    "append": append,
    "prepend": prepend,
    "remove": remove,
    "split": split,
    "size": size,
    "strip_html": strip_html,
    "newline_to_br": newline_to_br,
    "url_encode": url_encode,
    "date": date,
    "upcase": lambda value: str(value).upper(),
    "downcase": lambda value: str(value).lower(),
    "strip": lambda value: str(value).strip(),
}


def register_filters(filters: typ.MutableMapping[str, typ.Callable[..., object]]) -> None:
    """Install the portal filters into a Jinja2 ``Environment.filters`` map."""
    filters.update(FILTERS)


__all__ = ["FILTERS", "boolean", "default", "escape", "register_filters"]
