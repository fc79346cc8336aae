"""
Rewrite ``${name}`` placeholders into a driver's positional parameter syntax.

``rewrite()`` returns the new SQL text plus the ordered list of names used to
build the positional argument vector for each execution.

Matching is purely pattern based: an unterminated ``${`` is copied through
untouched, and placeholders inside string literals or comments are rewritten
like any other.
"""

import re
from enum import Enum

_PLACEHOLDER_RE = re.compile(r"\$\{([^}]+)\}")


class PlaceholderStyle(str, Enum):
    """Positional parameter syntax emitted by ``rewrite()``."""

    NUMBERED = "numbered"  # $1, $2 ... (repeated names share a number)
    QMARK = "qmark"  # ? per occurrence
    FORMAT = "format"  # %s per occurrence, literal % doubled


def rewrite(
    query: str, style: PlaceholderStyle = PlaceholderStyle.NUMBERED
) -> tuple[str, list[str]]:
    """
    Replace each ``${name}`` in *query* and collect the argument names.

    - NUMBERED: one name per distinct placeholder, in order of first
      appearance; every occurrence of a name becomes the same ``$n``.
    - QMARK / FORMAT: one name per occurrence, repeats included.
    """
    style = PlaceholderStyle(style)
    names: list[str] = []
    positions: dict[str, int] = {}
    parts: list[str] = []
    last = 0
    for m in _PLACEHOLDER_RE.finditer(query):
        parts.append(_literal(query[last : m.start()], style))
        last = m.end()
        name = m.group(1)
        if style == PlaceholderStyle.NUMBERED:
            if name not in positions:
                names.append(name)
                positions[name] = len(names)
            parts.append(f"${positions[name]}")
        else:
            names.append(name)
            parts.append("?" if style == PlaceholderStyle.QMARK else "%s")
    parts.append(_literal(query[last:], style))
    return "".join(parts), names


def _literal(text: str, style: PlaceholderStyle) -> str:
    if style == PlaceholderStyle.FORMAT:
        return text.replace("%", "%%")
    return text
