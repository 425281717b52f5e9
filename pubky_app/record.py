"""Common capability set shared by every record kind."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, ClassVar, Dict, Optional

from pubky_app.ids import IdStrategy, TimestampClock
from pubky_app.paths import HasPath
from pubky_app.specs.core import canonical_json_bytes


class ContentRecord(HasPath, ABC):
    """
    A user-authored record stored on the homeserver.

    Concrete kinds are frozen dataclasses that mix in an identifier strategy
    (``TimestampId`` or ``HashId``) and implement sanitization and semantic
    checks. Records are never updated in place: ``sanitize`` returns a new
    instance, and an edited record gets a freshly derived identifier.
    """

    KIND: ClassVar[str]
    PLURAL: ClassVar[str]
    ID_STRATEGY: ClassVar[IdStrategy]
    # Kinds without a packaged schema file supply their own
    JSON_SCHEMA: ClassVar[Optional[Dict[str, Any]]] = None

    @classmethod
    @abstractmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ContentRecord":
        """Build a record from its (schema-checked) JSON object."""

    @abstractmethod
    def to_dict(self) -> Dict[str, Any]:
        """JSON object form of the record."""

    def to_json(self) -> bytes:
        """Canonical bytes for persistence."""
        return canonical_json_bytes(self.to_dict())

    @abstractmethod
    def sanitize(self) -> "ContentRecord":
        """Return the normalized record."""

    @abstractmethod
    def create_id(self, clock: Optional[TimestampClock] = None) -> str:
        """Derive the record's identifier."""

    @abstractmethod
    def validate_id(self, identifier: str, clock: Optional[TimestampClock] = None) -> str:
        """Check a claimed identifier, returning its canonical form."""

    @abstractmethod
    def validate_semantics(self) -> None:
        """Kind-specific checks on sanitized content."""

    def validate(self, identifier: str, clock: Optional[TimestampClock] = None) -> str:
        """Check the identifier, then the content. Returns the canonical id."""
        canonical = self.validate_id(identifier, clock)
        self.validate_semantics()
        return canonical
