"""pubky.app record specs.

Identity, sanitization and validation of user-authored records stored on a
pubky homeserver.

Architecture:
    pubky_app/
    ├── crockford.py     # Canonical encoder: Crockford base-32
    ├── ids.py           # Time-ordered and content-hashed identifiers, clock
    ├── paths.py         # Canonical paths, record-kind registry
    ├── sanitize.py      # Normalization of untrusted fields
    ├── record.py        # ContentRecord capability set
    ├── post.py          # Post (time-ordered)
    ├── tag.py           # Tag (content-hashed)
    ├── validation.py    # deserialize -> sanitize -> verify id -> re-check
    ├── errors.py        # Error taxonomy
    ├── runtime/         # Configuration, structured logging
    └── specs/           # Core primitives, JSON Schemas, CLI

The homeserver calls exactly one function:

    from pubky_app import validate
    record = validate("tag", blob, claimed_id)
"""

__version__ = "0.3.0"

from pubky_app.errors import (
    ContentError,
    ContentTooLong,
    DeserializationError,
    IdentifierMismatch,
    InvalidEncoding,
    InvalidPath,
    LabelTooLong,
    MandatoryFieldInvalid,
    UnknownKind,
    ValidationError,
)
from pubky_app.ids import (
    HASH_ID_LENGTH,
    TIMESTAMP_ID_LENGTH,
    IdStrategy,
    TimestampClock,
    get_clock,
    hash_id,
    new_timestamp_id,
    timestamp_from_id,
    timestamp_id,
)
from pubky_app.paths import RecordKind, get_kind, parse_path, register_kind, resolve
from pubky_app.record import ContentRecord
from pubky_app.post import Post, PostEmbed, PostKind
from pubky_app.tag import Tag
from pubky_app.validation import deserialize, try_from, validate, validate_record

__all__ = [
    "__version__",
    "ContentError",
    "ContentTooLong",
    "DeserializationError",
    "IdentifierMismatch",
    "InvalidEncoding",
    "InvalidPath",
    "LabelTooLong",
    "MandatoryFieldInvalid",
    "UnknownKind",
    "ValidationError",
    "HASH_ID_LENGTH",
    "TIMESTAMP_ID_LENGTH",
    "IdStrategy",
    "TimestampClock",
    "get_clock",
    "hash_id",
    "new_timestamp_id",
    "timestamp_from_id",
    "timestamp_id",
    "RecordKind",
    "get_kind",
    "parse_path",
    "register_kind",
    "resolve",
    "ContentRecord",
    "Post",
    "PostEmbed",
    "PostKind",
    "Tag",
    "deserialize",
    "try_from",
    "validate",
    "validate_record",
]
