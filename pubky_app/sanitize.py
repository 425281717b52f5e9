"""Sanitization primitives for untrusted record fields.

Every record kind sanitizes itself with these helpers before any identifier is
derived. All helpers are pure and idempotent:

    f(f(x)) == f(x)

Lengths are counted in characters (code points), never in bytes.

URI fields follow a per-field policy. An ``OPTIONAL`` field that fails to
parse is dropped; a ``MANDATORY`` field that fails to parse raises
``MandatoryFieldInvalid`` and the whole record is rejected.
"""

from __future__ import annotations

from enum import Enum
from typing import Any, Iterable, List, Optional

from ada_url import URL

from pubky_app.errors import MandatoryFieldInvalid, UriError
from pubky_app.runtime.observability import get_logger

logger = get_logger("sanitize")

# Marks content deleted on the homeserver while its record is kept for
# relationships placed by other users. Clients match it exactly, so users may
# never submit it.
DELETED_SENTINEL = "[DELETED]"
DELETED_PLACEHOLDER = "empty"


# =============================================================================
# TEXT
# =============================================================================

def trim(text: str) -> str:
    """Strip leading and trailing whitespace."""
    return text.strip()


def truncate_chars(text: str, limit: int) -> str:
    """Keep at most ``limit`` characters.

    Whitespace exposed at the end by the cut is removed as well, otherwise a
    second pass of ``trim`` would change the result.
    """
    if limit < 0:
        raise ValueError("limit must be non-negative")
    if len(text) <= limit:
        return text
    return text[:limit].rstrip()


def sanitize_text(text: str, limit: int) -> str:
    """Sanitize free-form content: trim, truncate, replace the sentinel.

    The sentinel check runs last so that a cut can never expose it.
    """
    content = truncate_chars(trim(text), limit)
    if content == DELETED_SENTINEL:
        content = DELETED_PLACEHOLDER
    return content


def sanitize_label(text: str, limit: int) -> str:
    """Sanitize a label: trim, lowercase, truncate."""
    return truncate_chars(trim(text).lower(), limit)


# =============================================================================
# URIS
# =============================================================================

def normalize_uri(text: Any) -> str:
    """Parse ``text`` as an absolute URL and return its WHATWG serialization.

    This is the form every pubky.app implementation hashes, so it must match
    the WHATWG URL Standard byte for byte:

        >>> normalize_uri("HTTPS://Bücher.Example:443/a/./b/../c d")
        'https://xn--bcher-kva.example/a/c%20d'

    Raises:
        UriError: if ``text`` is not an absolute URL.
    """
    if not isinstance(text, str):
        raise UriError(f"expected text, got {type(text).__name__}")

    try:
        return URL(text).href
    except ValueError as e:
        raise UriError(f"not an absolute URL: {text[:64]!r}") from e


class UriPolicy(Enum):
    """Whether a URI field is load-bearing for the record."""
    MANDATORY = "mandatory"
    OPTIONAL = "optional"


def sanitize_uri(value: Optional[str], field: str, policy: UriPolicy) -> Optional[str]:
    """Normalize one URI field according to its policy.

    Returns the normalized URI, or ``None`` for an absent or malformed
    optional field.

    Raises:
        MandatoryFieldInvalid: for an absent or malformed mandatory field.
    """
    if value is None:
        if policy is UriPolicy.MANDATORY:
            raise MandatoryFieldInvalid(field, "required URI is missing")
        return None

    try:
        return normalize_uri(value)
    except UriError as e:
        if policy is UriPolicy.MANDATORY:
            raise MandatoryFieldInvalid(field, f"Invalid URI: {e}", value) from e
        logger.debug("Dropped malformed optional URI", operation="sanitize", field=field, reason=str(e))
        return None


def sanitize_uri_list(items: Optional[Iterable[Any]], field: str) -> Optional[List[str]]:
    """Apply the optional URI rule element-wise, dropping malformed elements."""
    if items is None:
        return None

    out: List[str] = []
    for i, item in enumerate(items):
        uri = sanitize_uri(item, f"{field}[{i}]", UriPolicy.OPTIONAL)
        if uri is not None:
            out.append(uri)
    return out
