"""Sanitizers for untrusted colors, URLs and object keys."""

from __future__ import annotations

import re
from typing import Final
from urllib.parse import urlparse

DEFAULT_OPTION_COLOR: Final[str] = "#94a3b8"
SAFE_URL_SCHEMES: Final[frozenset[str]] = frozenset({"http", "https", "mailto"})
UNSAFE_OBJECT_KEYS: Final[frozenset[str]] = frozenset({"__proto__", "prototype", "constructor"})

HEX_COLOR_RE: Final[re.Pattern[str]] = re.compile(
    r"#(?:[0-9a-fA-F]{3,4}|[0-9a-fA-F]{6}|[0-9a-fA-F]{8})",
)
SAFE_OBJECT_KEY_RE: Final[re.Pattern[str]] = re.compile(r"[A-Za-z0-9_-]{1,64}")


def sanitize_color(color: object, fallback: str = DEFAULT_OPTION_COLOR) -> str:
    """Return `color` if it is `#RGB`, `#RGBA`, `#RRGGBB` or `#RRGGBBAA`, else `fallback`."""
    if isinstance(color, str) and HEX_COLOR_RE.fullmatch(color):
        return color
    return fallback


def sanitize_url(url: object) -> str:
    """Return `url` when it is an absolute http(s)/mailto URL, else an empty string."""
    if not isinstance(url, str):
        return ""
    candidate = url.strip()
    try:
        parsed = urlparse(candidate)
    except ValueError:
        return ""
    if parsed.scheme.lower() not in SAFE_URL_SCHEMES:
        return ""
    if parsed.scheme.lower() != "mailto" and not parsed.netloc:
        return ""
    if parsed.scheme.lower() == "mailto" and not parsed.path:
        return ""
    return candidate


def is_safe_object_key(key: object) -> bool:
    """Whether `key` may be used as a field id / field-value key."""
    return (
        isinstance(key, str)
        and key not in UNSAFE_OBJECT_KEYS
        and SAFE_OBJECT_KEY_RE.fullmatch(key) is not None
    )
