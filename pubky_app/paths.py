"""Canonical record paths and the record-kind registry.

Every record lives at a path that is a pure function of its kind and
identifier:

  ``<scheme>:///pub/<namespace>/<kind-plural>/<identifier>``

e.g. ``pubky:///pub/pubky.app/posts/00321FCW75ZFY``. Paths are never stored;
they are always derived. Scheme and namespace come from the ``paths``
configuration section.

Record kinds register themselves here with their plural path segment and
identifier strategy. New kinds only need to subclass ``ContentRecord`` and
call ``register_kind``.
"""

from __future__ import annotations

import re
import threading
from dataclasses import dataclass
from typing import TYPE_CHECKING, Dict, List, Optional, Tuple, Type, Union

from pubky_app import crockford
from pubky_app.errors import InvalidEncoding, InvalidPath, UnknownKind
from pubky_app.ids import IdStrategy, id_bytes_for
from pubky_app.runtime.config import get_config

if TYPE_CHECKING:
    from pubky_app.record import ContentRecord

KIND_NAME_RE = re.compile(r"^[a-z][a-z0-9_-]{0,31}$")
_PATH_RE = re.compile(r"^(?P<scheme>[^:/]+):///pub/(?P<namespace>[^/]+)/(?P<plural>[^/]+)/(?P<identifier>[^/]+)$")


@dataclass(frozen=True)
class RecordKind:
    """A registered record kind."""
    name: str
    plural: str
    record_cls: Type["ContentRecord"]
    strategy: IdStrategy

    @property
    def id_bytes(self) -> int:
        return id_bytes_for(self.strategy)

    @property
    def id_length(self) -> int:
        return crockford.encoded_length(self.id_bytes)


_REGISTRY: Dict[str, RecordKind] = {}
_registry_lock = threading.Lock()

KindLike = Union[str, RecordKind, Type["ContentRecord"]]


def register_kind(record_cls: Type["ContentRecord"]) -> RecordKind:
    """Register a record class under its ``KIND`` and ``PLURAL`` names.

    Registering the same class again is a no-op; registering a different
    class under a taken name raises ``ValueError``.
    """
    name = record_cls.KIND
    plural = record_cls.PLURAL
    for n in (name, plural):
        if not KIND_NAME_RE.match(n):
            raise ValueError(f"invalid record kind name {n!r}")

    kind = RecordKind(name=name, plural=plural, record_cls=record_cls, strategy=record_cls.ID_STRATEGY)
    with _registry_lock:
        for key in (name, plural):
            existing = _REGISTRY.get(key)
            if existing is not None and existing.record_cls is not record_cls:
                raise ValueError(
                    f"record kind {key!r} already registered to {existing.record_cls.__name__}"
                )
        _REGISTRY[name] = kind
        _REGISTRY[plural] = kind
    return kind


def _ensure_builtin_kinds() -> None:
    # Importing the modules registers their kinds.
    import pubky_app.post  # noqa: F401
    import pubky_app.tag  # noqa: F401


def get_kind(kind: KindLike) -> RecordKind:
    """Look up a kind by name, plural, record class or ``RecordKind``."""
    if isinstance(kind, RecordKind):
        return kind

    _ensure_builtin_kinds()
    key = kind if isinstance(kind, str) else getattr(kind, "KIND", None)
    with _registry_lock:
        found = _REGISTRY.get(key) if isinstance(key, str) else None
    if found is None:
        raise UnknownKind(f"unknown record kind: {kind!r}")
    return found


def registered_kinds() -> List[RecordKind]:
    """All registered kinds, ordered by name."""
    _ensure_builtin_kinds()
    with _registry_lock:
        unique = {k.name: k for k in _REGISTRY.values()}
    return [unique[name] for name in sorted(unique)]


def resolve(kind: KindLike, identifier: str) -> str:
    """Compose the canonical path of a record.

    Raises:
        InvalidEncoding: if ``identifier`` is not a valid id for the kind.
    """
    k = get_kind(kind)
    canonical = crockford.canonicalize(identifier, k.id_bytes)
    cfg = get_config().paths
    return f"{cfg.scheme.get()}:///pub/{cfg.namespace.get()}/{k.plural}/{canonical}"


def parse_path(path: str) -> Tuple[RecordKind, str]:
    """Split a canonical path into its kind and canonical identifier.

    Raises:
        InvalidPath: for paths outside the configured scheme and namespace,
            unknown kinds or malformed identifiers.
    """
    m = _PATH_RE.match(path or "")
    if m is None:
        raise InvalidPath(f"not a record path: {path!r}")

    cfg = get_config().paths
    if m.group("scheme") != cfg.scheme.get() or m.group("namespace") != cfg.namespace.get():
        raise InvalidPath(f"path outside {cfg.scheme.get()}:///pub/{cfg.namespace.get()}/: {path!r}")

    try:
        kind = get_kind(m.group("plural"))
    except UnknownKind as e:
        raise InvalidPath(str(e)) from e
    if kind.plural != m.group("plural"):
        raise InvalidPath(f"expected plural segment {kind.plural!r}, got {m.group('plural')!r}")

    try:
        identifier = crockford.canonicalize(m.group("identifier"), kind.id_bytes)
    except InvalidEncoding as e:
        raise InvalidPath(f"bad identifier in {path!r}: {e}") from e
    return kind, identifier


class HasPath:
    """Gives a record its canonical path."""

    KIND: str

    def get_path(self, identifier: Optional[str] = None) -> str:
        """Resolve the record's path.

        Content-hashed records derive their own id. Time-ordered records
        derive a fresh id unless the caller passes the one already issued.
        """
        if identifier is None:
            identifier = self.create_id()  # type: ignore[attr-defined]
        return resolve(self.KIND, identifier)
