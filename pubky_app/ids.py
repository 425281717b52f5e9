"""Identifier derivation for homeserver records.

Two strategies, chosen per record kind:

- **Time-ordered** (``IdStrategy.TIMESTAMP``): the creation instant in
  microseconds since the epoch, as 8 big-endian bytes, Crockford-encoded to
  13 characters. Text order equals creation order.
- **Content-hashed** (``IdStrategy.HASH``): BLAKE3 over a canonical string
  built from the identity-relevant fields, truncated to the first 16 bytes of
  the digest and Crockford-encoded to 26 characters. Equal fields always give
  equal identifiers.

Identifiers must only be derived from sanitized records.

Time-ordered derivation goes through a ``TimestampClock``. The clock owns the
last timestamp it issued and never issues it twice, so concurrent callers in
the same clock tick still receive distinct, increasing identifiers.
"""

from __future__ import annotations

import hmac
import threading
import time
from enum import Enum
from typing import Callable, Optional

from pubky_app import crockford
from pubky_app.errors import IdentifierMismatch, InvalidEncoding
from pubky_app.runtime.config import get_config
from pubky_app.specs.core import BLAKE3_DIGEST_SIZE, blake3_bytes


class IdStrategy(Enum):
    """How a record kind derives its identifier."""
    TIMESTAMP = "timestamp"
    HASH = "hash"


TIMESTAMP_BYTES = 8
HASH_ID_BYTES = BLAKE3_DIGEST_SIZE // 2

TIMESTAMP_ID_LENGTH = crockford.encoded_length(TIMESTAMP_BYTES)
HASH_ID_LENGTH = crockford.encoded_length(HASH_ID_BYTES)

_MAX_TIMESTAMP = (1 << (TIMESTAMP_BYTES * 8)) - 1


def id_bytes_for(strategy: IdStrategy) -> int:
    """Decoded byte width of identifiers produced by ``strategy``."""
    if strategy is IdStrategy.TIMESTAMP:
        return TIMESTAMP_BYTES
    return HASH_ID_BYTES


# =============================================================================
# CLOCK
# =============================================================================

class TimestampClock:
    """
    Strictly increasing microsecond clock.

    Each ``now_micros()`` call observes the wall clock and, if the observation
    is not later than the previously issued value, issues the previous value
    plus one microsecond instead. The read and the update happen under one
    lock.

    Args:
        time_source: returns the wall clock in nanoseconds since the epoch.
            Defaults to ``time.time_ns``; tests inject a fake.
    """

    def __init__(self, time_source: Callable[[], int] = time.time_ns):
        self._time_source = time_source
        self._last = 0
        self._lock = threading.Lock()

    def now_micros(self) -> int:
        """Issue the next unique timestamp in microseconds."""
        with self._lock:
            observed = self._time_source() // 1_000
            micros = observed if observed > self._last else self._last + 1
            self._last = micros
            return micros

    def wall_micros(self) -> int:
        """Read the wall clock without issuing a timestamp."""
        return self._time_source() // 1_000

    def wall_millis(self) -> int:
        """Read the wall clock in milliseconds without issuing a timestamp."""
        return self._time_source() // 1_000_000

    @property
    def last_issued(self) -> int:
        with self._lock:
            return self._last


_default_clock: Optional[TimestampClock] = None
_default_clock_lock = threading.Lock()


def get_clock() -> TimestampClock:
    """Get the process-wide clock."""
    global _default_clock
    with _default_clock_lock:
        if _default_clock is None:
            _default_clock = TimestampClock()
        return _default_clock


def set_default_clock(clock: Optional[TimestampClock]) -> Optional[TimestampClock]:
    """Replace the process-wide clock, returning the previous one.

    Passing ``None`` makes the next ``get_clock()`` build a fresh clock.
    """
    global _default_clock
    with _default_clock_lock:
        previous = _default_clock
        _default_clock = clock
        return previous


# =============================================================================
# DERIVATION
# =============================================================================

def timestamp_id(micros: int) -> str:
    """Encode a timestamp (microseconds since epoch) as a time-ordered id."""
    if not 0 <= micros <= _MAX_TIMESTAMP:
        raise ValueError(f"timestamp out of range for {TIMESTAMP_BYTES} bytes: {micros}")
    return crockford.encode(micros.to_bytes(TIMESTAMP_BYTES, "big"))


def new_timestamp_id(clock: Optional[TimestampClock] = None) -> str:
    """Derive a fresh time-ordered id from ``clock`` (process clock by default)."""
    return timestamp_id((clock or get_clock()).now_micros())


def timestamp_from_id(identifier: str) -> int:
    """Recover the microsecond timestamp encoded in a time-ordered id.

    Raises:
        InvalidEncoding: if ``identifier`` is not a 13-character encoding.
    """
    return int.from_bytes(crockford.decode(identifier, TIMESTAMP_BYTES), "big")


def hash_id(id_data: str) -> str:
    """Derive a content-hashed id from a canonical identity string."""
    digest = blake3_bytes(id_data.encode("utf-8"))
    return crockford.encode(digest[:HASH_ID_BYTES])


# =============================================================================
# STRATEGY MIXINS
# =============================================================================

class TimestampId:
    """Identifier strategy for records named by their creation instant."""

    ID_STRATEGY = IdStrategy.TIMESTAMP

    def create_id(self, clock: Optional[TimestampClock] = None) -> str:
        return new_timestamp_id(clock)

    def validate_id(self, identifier: str, clock: Optional[TimestampClock] = None) -> str:
        """Check a claimed time-ordered id and return its canonical form.

        The id cannot be recomputed from content, so the claim must be a
        canonical 13-character encoding of a timestamp inside the accepted
        window: no earlier than ``ids.min_timestamp_micros`` and no later
        than the local wall clock plus ``ids.max_future_skew_seconds``.
        """
        try:
            micros = timestamp_from_id(identifier)
        except InvalidEncoding as e:
            raise IdentifierMismatch("id", f"not a timestamp id: {e}", identifier) from e

        ids_cfg = get_config().ids
        earliest = ids_cfg.min_timestamp_micros.get()
        latest = (clock or get_clock()).wall_micros() + ids_cfg.max_future_skew_seconds.get() * 1_000_000
        if micros < earliest:
            raise IdentifierMismatch("id", "timestamp id predates the earliest accepted instant", identifier)
        if micros > latest:
            raise IdentifierMismatch("id", "timestamp id is too far in the future", identifier)

        return timestamp_id(micros)


class HashId:
    """Identifier strategy for records named by a digest of their content.

    Subclasses return their canonical identity string from ``get_id_data``.
    """

    ID_STRATEGY = IdStrategy.HASH

    def get_id_data(self) -> str:
        raise NotImplementedError

    def create_id(self, clock: Optional[TimestampClock] = None) -> str:
        # clock is accepted for interface parity; content ids never read it
        return hash_id(self.get_id_data())

    def validate_id(self, identifier: str, clock: Optional[TimestampClock] = None) -> str:
        """Recompute the id and compare it with the canonicalized claim."""
        expected = self.create_id()
        try:
            claimed = crockford.canonicalize(identifier, HASH_ID_BYTES)
        except InvalidEncoding as e:
            raise IdentifierMismatch("id", f"not a content id: {e}", identifier) from e

        if not hmac.compare_digest(claimed, expected):
            raise IdentifierMismatch(
                "id",
                f"claimed id {claimed} does not match content id {expected}",
                identifier,
            )
        return expected
