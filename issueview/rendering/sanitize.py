"""HTML escaping and URL allow-listing shared by every renderer."""

from __future__ import annotations

import re
from typing import Optional

_ESCAPES = {
    "&": "&amp;",
    "<": "&lt;",
    ">": "&gt;",
    '"': "&quot;",
    "'": "&#039;",
}
_ESCAPE_RE = re.compile(r"[&<>\"']")

# http, https, data URLs and bare fragments only
_ALLOWED_URL_RE = re.compile(r"^(https?:|data:|#)", re.IGNORECASE)


def escape_html(text: Optional[str]) -> str:
    if not text:
        return ""
    return _ESCAPE_RE.sub(lambda m: _ESCAPES[m.group(0)], text)


def sanitize_url(url: Optional[str]) -> str:
    """Return the escaped URL if its scheme is allowed, otherwise ``"#"``.

    This is the only XSS defense for link and image targets; every externally
    supplied URL must pass through here before it is embedded.
    """
    if not url:
        return "#"
    candidate = url.strip()
    if _ALLOWED_URL_RE.match(candidate):
        return escape_html(candidate)
    return "#"
