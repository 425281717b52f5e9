"""Crockford base-32 encoding of identifier bytes.

Identifiers on the homeserver are raw bytes (an 8-byte timestamp or half of a
BLAKE3 digest) rendered as Crockford base-32 text:

  ``0123456789ABCDEFGHJKMNPQRSTVWXYZ``

The input is read as one big-endian bit stream, five bits per character, and
the final character is right-padded with zero bits. Because the alphabet is in
ascending ASCII order, two inputs of the same width compare exactly like their
encodings, so time-ordered identifiers sort chronologically as plain text.

Encoding is always uppercase. Decoding accepts either case and rejects
anything ``encode`` could not have produced.
"""

from __future__ import annotations

from typing import Dict, Optional

from pubky_app.errors import InvalidEncoding


ALPHABET = "0123456789ABCDEFGHJKMNPQRSTVWXYZ"
_DECODE_MAP: Dict[str, int] = {c: i for i, c in enumerate(ALPHABET)}


def encoded_length(nbytes: int) -> int:
    """Number of characters ``encode`` produces for ``nbytes`` of input."""
    return (nbytes * 8 + 4) // 5


def encode(data: bytes) -> str:
    """Encode bytes as uppercase Crockford base-32 text."""
    data = bytes(data)
    if not data:
        return ""

    nchars = encoded_length(len(data))
    pad = nchars * 5 - len(data) * 8
    value = int.from_bytes(data, "big") << pad

    out = []
    for i in range(nchars):
        shift = (nchars - 1 - i) * 5
        out.append(ALPHABET[(value >> shift) & 0x1F])
    return "".join(out)


def decode(text: str, length: Optional[int] = None) -> bytes:
    """Decode Crockford base-32 text back to bytes.

    Args:
        text: Encoded identifier, in any case.
        length: Expected decoded byte length, if the caller knows it.

    Raises:
        InvalidEncoding: on characters outside the alphabet, on a width that
            ``encode`` never produces, on non-zero padding bits, or when the
            decoded length differs from ``length``.
    """
    if not isinstance(text, str):
        raise InvalidEncoding(f"identifier must be text, got {type(text).__name__}")
    if not text.isascii():
        # str.upper() maps some letters to several ASCII ones (e.g. "ß" -> "SS")
        raise InvalidEncoding("identifier must be ASCII")

    upper = text.upper()
    value = 0
    for ch in upper:
        digit = _DECODE_MAP.get(ch)
        if digit is None:
            raise InvalidEncoding(f"character {ch!r} is not in the Crockford base-32 alphabet")
        value = (value << 5) | digit

    nbytes = len(upper) * 5 // 8
    if encoded_length(nbytes) != len(upper):
        raise InvalidEncoding(f"{len(upper)} characters is not a valid encoded width")

    pad = len(upper) * 5 - nbytes * 8
    if value & ((1 << pad) - 1):
        raise InvalidEncoding("non-zero padding bits in final character")

    if length is not None and nbytes != length:
        raise InvalidEncoding(
            f"identifier decodes to {nbytes} bytes, expected {length} "
            f"({encoded_length(length)} characters)"
        )

    return (value >> pad).to_bytes(nbytes, "big")


def canonicalize(text: str, length: Optional[int] = None) -> str:
    """Return the canonical (uppercase) form of an encoded identifier."""
    return encode(decode(text, length))


def is_canonical(text: str, length: int) -> bool:
    """True when ``text`` decodes to exactly ``length`` bytes."""
    try:
        decode(text, length)
    except InvalidEncoding:
        return False
    return True
