"""Posts.

Raw post stored on the homeserver at

  ``pubky:///pub/pubky.app/posts/<post_id>``

where ``post_id`` is the Crockford base-32 encoding of the creation timestamp,
e.g. ``/pub/pubky.app/posts/00321FCW75ZFY``.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from enum import Enum
from typing import Any, ClassVar, Dict, Optional, Tuple

from pubky_app.errors import ContentTooLong
from pubky_app.ids import TimestampId
from pubky_app.paths import register_kind
from pubky_app.record import ContentRecord
from pubky_app.sanitize import UriPolicy, sanitize_text, sanitize_uri, sanitize_uri_list

MAX_SHORT_CONTENT_LENGTH = 1000
MAX_LONG_CONTENT_LENGTH = 50000


class PostKind(Enum):
    """How clients should display a post."""
    SHORT = "short"
    LONG = "long"
    IMAGE = "image"
    VIDEO = "video"
    LINK = "link"
    FILE = "file"

    def __str__(self) -> str:
        return self.value


_CONTENT_LIMITS = {
    PostKind.SHORT: MAX_SHORT_CONTENT_LENGTH,
    PostKind.LONG: MAX_LONG_CONTENT_LENGTH,
}


def max_content_length(kind: PostKind) -> int:
    """Content limit for a post kind; kinds without a long-form allowance get the short limit."""
    return _CONTENT_LIMITS.get(kind, MAX_SHORT_CONTENT_LENGTH)


@dataclass(frozen=True)
class PostEmbed:
    """Reposted or quoted target. A plain repost is ``short`` plus the reposted uri."""
    kind: PostKind
    uri: str

    def __post_init__(self):
        if not isinstance(self.kind, PostKind):
            object.__setattr__(self, "kind", PostKind(self.kind))

    def to_dict(self) -> Dict[str, Any]:
        return {"kind": self.kind.value, "uri": self.uri}

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "PostEmbed":
        return cls(kind=PostKind(d["kind"]), uri=d["uri"])


@dataclass(frozen=True)
class Post(TimestampId, ContentRecord):
    """A post with content and display kind."""

    KIND: ClassVar[str] = "post"
    PLURAL: ClassVar[str] = "posts"

    content: str
    kind: PostKind = PostKind.SHORT
    parent: Optional[str] = None  # reply target
    embed: Optional[PostEmbed] = None
    attachments: Optional[Tuple[str, ...]] = None

    def __post_init__(self):
        if not isinstance(self.kind, PostKind):
            object.__setattr__(self, "kind", PostKind(self.kind))
        if isinstance(self.embed, dict):
            object.__setattr__(self, "embed", PostEmbed.from_dict(self.embed))
        if self.attachments is not None and not isinstance(self.attachments, tuple):
            object.__setattr__(self, "attachments", tuple(self.attachments))

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Post":
        embed = data.get("embed")
        attachments = data.get("attachments")
        return cls(
            content=data["content"],
            kind=PostKind(data.get("kind", PostKind.SHORT.value)),
            parent=data.get("parent"),
            embed=PostEmbed.from_dict(embed) if embed is not None else None,
            attachments=tuple(attachments) if attachments is not None else None,
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "content": self.content,
            "kind": self.kind.value,
            "parent": self.parent,
            "embed": self.embed.to_dict() if self.embed is not None else None,
            "attachments": list(self.attachments) if self.attachments is not None else None,
        }

    def sanitize(self) -> "Post":
        content = sanitize_text(self.content, max_content_length(self.kind))
        parent = sanitize_uri(self.parent, "parent", UriPolicy.OPTIONAL)

        embed = None
        if self.embed is not None:
            embed_uri = sanitize_uri(self.embed.uri, "embed.uri", UriPolicy.OPTIONAL)
            if embed_uri is not None:
                embed = PostEmbed(kind=self.embed.kind, uri=embed_uri)

        attachments = sanitize_uri_list(self.attachments, "attachments")

        return replace(
            self,
            content=content,
            parent=parent,
            embed=embed,
            attachments=tuple(attachments) if attachments is not None else None,
        )

    def validate_semantics(self) -> None:
        limit = max_content_length(self.kind)
        length = len(self.content)
        if length > limit:
            raise ContentTooLong(
                "content",
                f"Post content exceeds maximum length for {self.kind} kind ({length} > {limit})",
                length,
            )


register_kind(Post)
