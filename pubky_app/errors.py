"""Error taxonomy for record identity and validation.

Every failure carries a stable ``code`` so that the surrounding homeserver can
report the error kind to the caller without parsing messages.

Sanitize never raises for optional fields; it degrades them to absent.
Validate surfaces one terminal error per record.
"""

from __future__ import annotations

from typing import Any


class ContentError(Exception):
    """Base exception for all record identity and validation failures."""

    code = "content_error"


class InvalidEncoding(ContentError, ValueError):
    """Identifier text outside the Crockford alphabet or of the wrong width."""

    code = "invalid_encoding"


class InvalidPath(ContentError, ValueError):
    """A path that is not a canonical record path."""

    code = "invalid_path"


class UnknownKind(ContentError, LookupError):
    """No record kind is registered under the requested name."""

    code = "unknown_kind"


class UriError(ContentError, ValueError):
    """Text that cannot be parsed as an absolute URI."""

    code = "invalid_uri"


class ValidationError(ContentError):
    """A record failed validation."""

    code = "validation_error"

    def __init__(self, field: str, message: str, value: Any = None):
        self.field = field
        self.message = message
        self.value = value
        super().__init__(f"{field}: {message}")


class DeserializationError(ValidationError):
    """The byte blob is not a well-formed record of the target kind."""

    code = "deserialization_error"


class MandatoryFieldInvalid(ValidationError):
    """A required field cannot be sanitized into a well-formed value."""

    code = "mandatory_field_invalid"


class IdentifierMismatch(ValidationError):
    """The recomputed identifier disagrees with the claimed one."""

    code = "identifier_mismatch"


class ContentTooLong(ValidationError):
    """Content exceeds the kind's maximum after sanitization."""

    code = "content_too_long"


class LabelTooLong(ValidationError):
    """Label exceeds the maximum after sanitization."""

    code = "label_too_long"
