"""Tags.

Raw tag stored on the homeserver at

  ``pubky:///pub/pubky.app/tags/<tag_id>``

where ``tag_id`` is ``crockford(blake3("{uri_tagged}:{label}")[:16])``, e.g.
``/pub/pubky.app/tags/FPB0AM9S93Q3M1GFY1KV09GMQM``. The same user tagging
the same subject with the same label twice writes the same path.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Any, ClassVar, Dict, Optional

from pubky_app.errors import LabelTooLong
from pubky_app.ids import HashId, TimestampClock, get_clock
from pubky_app.paths import register_kind
from pubky_app.record import ContentRecord
from pubky_app.sanitize import UriPolicy, sanitize_label, sanitize_uri

MAX_TAG_LABEL_LENGTH = 20


@dataclass(frozen=True)
class Tag(HashId, ContentRecord):
    """A label attached to a subject uri. ``created_at`` is milliseconds since epoch."""

    KIND: ClassVar[str] = "tag"
    PLURAL: ClassVar[str] = "tags"

    uri: str
    label: str
    created_at: int

    @classmethod
    def new(cls, uri: str, label: str, clock: Optional[TimestampClock] = None) -> "Tag":
        """Create a sanitized tag stamped with the current time.

        Raises:
            MandatoryFieldInvalid: if ``uri`` is not an absolute URI.
        """
        created_at = (clock or get_clock()).wall_millis()
        return cls(uri=uri, label=label, created_at=created_at).sanitize()

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Tag":
        return cls(uri=data["uri"], label=data["label"], created_at=int(data["created_at"]))

    def to_dict(self) -> Dict[str, Any]:
        return {"uri": self.uri, "label": self.label, "created_at": self.created_at}

    def get_id_data(self) -> str:
        # created_at is not part of the identity
        return f"{self.uri}:{self.label}"

    def sanitize(self) -> "Tag":
        label = sanitize_label(self.label, MAX_TAG_LABEL_LENGTH)
        uri = sanitize_uri(self.uri, "uri", UriPolicy.MANDATORY)
        return replace(self, uri=uri, label=label)

    def validate_semantics(self) -> None:
        length = len(self.label)
        if length > MAX_TAG_LABEL_LENGTH:
            raise LabelTooLong(
                "label",
                f"Tag label exceeds maximum length ({length} > {MAX_TAG_LABEL_LENGTH})",
                length,
            )


register_kind(Tag)
