"""
url_normalizer.py — Canonical form for the alternate web-console URL.

    ""  / None / "   "             → None (default console links)
    "example.com/x"                → "http://example.com/x"
    "https://example.com/x/"       → "https://example.com/x"
    "HTTPS://Example.com//"        → "HTTPS://Example.com"
    'example.com/"><b>'           → InvalidConfigurationError

The function is idempotent: normalising an already normalised URL
returns it unchanged.
"""

from __future__ import annotations

import re
from typing import Optional
from urllib.parse import urlsplit

from channel_provisioner.app.core.errors import InvalidConfigurationError

_SCHEMES = ("http://", "https://")

# RFC 3986 unreserved, gen-delims, sub-delims and percent-encoded octets
_URL_CHARS_RE = re.compile(r"^(?:[A-Za-z0-9\-._~:/?#\[\]@!$&'()*+,;=]|%[0-9A-Fa-f]{2})+$")


def normalize_console_url(url: Optional[str]) -> Optional[str]:
    """
    Normalise a user-supplied console URL.

    Parameters
    ----------
    url : str | None

    Returns
    -------
    str | None
        Absolute URL without trailing slash, or None when nothing was given.

    Raises
    ------
    InvalidConfigurationError
        If the result is not a well-formed absolute URL.
    """
    if url is None:
        return None

    candidate = url.strip().rstrip("/")
    if not candidate:
        return None

    if not candidate.lower().startswith(_SCHEMES):
        if "://" in candidate or candidate.lower() in ("http:", "https:"):
            raise InvalidConfigurationError(
                f"Console URL '{url}' must use http:// or https://",
                field="console_url",
            )
        candidate = f"http://{candidate}"

    # The URL is embedded verbatim in an href and in plain-text lines.
    if not _URL_CHARS_RE.match(candidate):
        raise InvalidConfigurationError(
            f"Console URL '{url}' contains characters that are not allowed in a URL",
            field="console_url",
        )

    try:
        parts = urlsplit(candidate)
        parts.port  # raises ValueError on a non-numeric / out-of-range port
    except ValueError as exc:
        raise InvalidConfigurationError(
            f"Console URL '{url}' is not a valid absolute URL: {exc}",
            field="console_url",
        ) from exc

    if not parts.hostname:
        raise InvalidConfigurationError(
            f"Console URL '{url}' is not a valid absolute URL",
            field="console_url",
        )

    return candidate
