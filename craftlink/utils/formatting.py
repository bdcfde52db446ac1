"""
Text helpers shared by the relay, the status updater and the commands.

Templates come from user-edited YAML, so rendering never raises on an
unknown placeholder: it is left in the output verbatim.
"""

from __future__ import annotations

from typing import Any


class _TemplateFields(dict):
    def __missing__(self, key: str) -> str:
        return "{" + key + "}"


def render_template(template: str, **fields: Any) -> str:
    """
    Fill `{name}` placeholders, leaving unknown ones untouched.

    >>> render_template("{player} joined ({unknown})", player="Steve")
    'Steve joined ({unknown})'
    """
    try:
        return template.format_map(_TemplateFields(fields))
    except (ValueError, IndexError, AttributeError):
        # Malformed braces or positional fields: show the raw template
        return template


def truncate_text(text: str, limit: int) -> str:
    """Cut `text` to at most `limit` characters, marking the cut with an ellipsis."""
    if len(text) <= limit:
        return text
    return text[: max(limit - 1, 0)] + "…"


def format_duration(total_ms: int) -> str:
    """
    Human-readable duration, largest two units.

    >>> format_duration(93_784_000)
    '1d 2h'
    >>> format_duration(42_000)
    '42s'
    """
    seconds = max(int(total_ms // 1000), 0)
    days, seconds = divmod(seconds, 86_400)
    hours, seconds = divmod(seconds, 3_600)
    minutes, seconds = divmod(seconds, 60)

    parts = [
        f"{value}{unit}"
        for value, unit in ((days, "d"), (hours, "h"), (minutes, "m"), (seconds, "s"))
        if value
    ]
    return " ".join(parts[:2]) if parts else "0s"
