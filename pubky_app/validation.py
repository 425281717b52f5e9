"""Validation entry point for records arriving at the homeserver.

    validate(kind, blob, claimed_id) -> sanitized record

Pipeline, in this order:

1. Deserialize the blob (UTF-8 JSON object, checked against the kind's
   schema).                                          -> DeserializationError
2. Sanitize.                                         -> MandatoryFieldInvalid
3. Re-derive the identifier from the sanitized record and compare it with
   the claim.                                        -> IdentifierMismatch
4. Re-check kind limits on the sanitized content.    -> ContentTooLong / LabelTooLong
5. Return the sanitized record, ready for persistence.

Identifiers are defined over sanitized content, so step 3 must never run
before step 2. Each record gets exactly one terminal error; nothing is
partially accepted and nothing is retried.
"""

from __future__ import annotations

import json
from typing import Any, Optional, Union

from pubky_app.errors import DeserializationError, ValidationError
from pubky_app.ids import TimestampClock
from pubky_app.paths import KindLike, RecordKind, get_kind
from pubky_app.record import ContentRecord
from pubky_app.runtime.observability import get_logger, timed_operation
from pubky_app.specs.schema import validate_against_schema

logger = get_logger("validation")

Blob = Union[bytes, bytearray, memoryview, str]

_MAX_LOGGED_ID = 64


def deserialize(kind: KindLike, blob: Blob) -> ContentRecord:
    """Parse a raw blob into an (unsanitized) record of ``kind``.

    Raises:
        DeserializationError: for non-UTF-8 bytes, malformed JSON, or JSON
            that does not have the shape of the kind.
    """
    k = get_kind(kind)

    if isinstance(blob, (bytes, bytearray, memoryview)):
        try:
            text = bytes(blob).decode("utf-8")
        except UnicodeDecodeError as e:
            raise DeserializationError("$", f"blob is not valid UTF-8: {e.reason}") from e
    elif isinstance(blob, str):
        text = blob
    else:
        raise DeserializationError("$", f"expected bytes, got {type(blob).__name__}")

    try:
        data = json.loads(text)
    except json.JSONDecodeError as e:
        raise DeserializationError("$", f"malformed JSON: {e.msg} at line {e.lineno} column {e.colno}") from e
    except (ValueError, RecursionError) as e:
        # over-long integer literals and nesting deeper than the decoder allows
        raise DeserializationError("$", f"malformed JSON: {e}") from e

    if not isinstance(data, dict):
        raise DeserializationError("$", f"expected a JSON object, got {type(data).__name__}")

    errors = validate_against_schema(data, k.name, schema=k.record_cls.JSON_SCHEMA)
    if errors:
        raise DeserializationError("$", f"not a valid {k.name}: " + "; ".join(errors))

    try:
        return k.record_cls.from_dict(data)
    except (KeyError, TypeError, ValueError) as e:
        raise DeserializationError("$", f"not a valid {k.name}: {e}") from e


def validate_record(
    record: ContentRecord,
    claimed_id: str,
    clock: Optional[TimestampClock] = None,
) -> ContentRecord:
    """Sanitize, verify the identifier, re-check limits. Returns the sanitized record."""
    sanitized = record.sanitize()
    sanitized.validate(claimed_id, clock)
    return sanitized


@timed_operation(logger, "validate")
def validate(
    kind: KindLike,
    blob: Blob,
    claimed_id: str,
    clock: Optional[TimestampClock] = None,
) -> ContentRecord:
    """Validate a submitted record against its claimed identifier.

    Args:
        kind: Target record kind (name, plural, class or ``RecordKind``).
        blob: Raw bytes as received.
        claimed_id: Identifier taken from the submission path.
        clock: Clock for the time-ordered acceptance window.

    Returns:
        The sanitized record.

    Raises:
        ValidationError: one of its subclasses, see module docstring.
        UnknownKind: if ``kind`` is not registered.
    """
    k: RecordKind = get_kind(kind)
    logged_id = str(claimed_id)[:_MAX_LOGGED_ID]

    try:
        record = deserialize(k, blob)
        result = validate_record(record, claimed_id, clock)
    except ValidationError as e:
        logger.warning(
            "Record rejected",
            operation="validate",
            error_code=e.code,
            kind=k.name,
            claimed_id=logged_id,
            field=e.field,
            reason=e.message,
        )
        raise

    logger.info("Record accepted", operation="validate", kind=k.name, claimed_id=logged_id)
    return result


def try_from(record_cls: Any, blob: Blob, claimed_id: str, clock: Optional[TimestampClock] = None) -> ContentRecord:
    """Validate a blob as an instance of ``record_cls``."""
    return validate(record_cls, blob, claimed_id, clock)
