"""HTML escaping used by the compiler and by generated view code."""

from typing import Any


def escape_html(value: Any) -> str:
    """Escape HTML special characters.

    Escapes: & < > " '

    ``None`` becomes the empty string so that optional values can be output
    without a guard.
    """
    if value is None:
        return ""
    s = str(value)
    return (
        s.replace("&", "&amp;")
        .replace("<", "&lt;")
        .replace(">", "&gt;")
        .replace('"', "&quot;")
        .replace("'", "&#x27;")
    )
