"""
Recursive Length Prefix (RLP) framing for PoWeb wire structures.

Every message body is an RLP item: either a byte string or a list of items.

+-------------+------------------------------------------------------+
| Prefix      | Meaning                                              |
+=============+======================================================+
| [0x00-0x7f] | Single byte, value is the byte itself                |
+-------------+------------------------------------------------------+
| [0x80-0xb7] | String of 0-55 bytes, length = prefix - 0x80         |
+-------------+------------------------------------------------------+
| [0xb8-0xbf] | Longer string, prefix - 0xb7 = length of the length  |
+-------------+------------------------------------------------------+
| [0xc0-0xf7] | List with 0-55 payload bytes, length = prefix - 0xc0 |
+-------------+------------------------------------------------------+
| [0xf8-0xff] | Longer list, prefix - 0xf7 = length of the length    |
+-------------+------------------------------------------------------+

Decoding is canonical: non-minimal length encodings and trailing bytes are
rejected, so every structure has exactly one valid serialization.
"""

from __future__ import annotations

from typing import Final, TypeAlias

RLPItem: TypeAlias = bytes | list["RLPItem"]
"""Either a byte string or a (possibly nested) list of RLP items."""

SHORT_STRING_PREFIX: Final = 0x80
LONG_STRING_BASE: Final = 0xB7
SHORT_LIST_PREFIX: Final = 0xC0
LONG_LIST_BASE: Final = 0xF7

SHORT_PAYLOAD_MAX_LEN: Final = 55
"""Longest string or list payload that fits in the prefix byte itself."""


class RLPDecodingError(Exception):
    """Raised when bytes are not a canonical RLP item."""


def encode_rlp(item: RLPItem) -> bytes:
    """
    Serialize a message body.

    Args:
        item: Byte string, or list of items nested to any depth.

    Raises:
        TypeError: If anything other than bytes or lists is found.
    """
    if isinstance(item, bytes):
        if len(item) == 1 and item[0] < SHORT_STRING_PREFIX:
            return item
        return _encode_header(len(item), SHORT_STRING_PREFIX, LONG_STRING_BASE) + item
    if isinstance(item, list):
        payload = b"".join(encode_rlp(element) for element in item)
        return _encode_header(len(payload), SHORT_LIST_PREFIX, LONG_LIST_BASE) + payload
    raise TypeError(f"Unsupported RLP item type: {type(item).__name__}")


def _encode_header(length: int, short_prefix: int, long_base: int) -> bytes:
    if length <= SHORT_PAYLOAD_MAX_LEN:
        return bytes([short_prefix + length])
    length_bytes = length.to_bytes((length.bit_length() + 7) // 8, "big")
    return bytes([long_base + len(length_bytes)]) + length_bytes


def decode_rlp(data: bytes) -> RLPItem:
    """
    Parse a message body, which must hold exactly one canonical item.

    Raises:
        RLPDecodingError: If the body is empty, truncated, non-canonical or
            followed by extra bytes.
    """
    if not data:
        raise RLPDecodingError("Empty message body")

    item, end = _decode_item(data, 0)
    if end != len(data):
        raise RLPDecodingError(f"Trailing data: decoded {end} of {len(data)} bytes")
    return item


def _decode_item(data: bytes, offset: int) -> tuple[RLPItem, int]:
    """Decode the item starting at offset; return it with the offset past it."""
    if offset >= len(data):
        raise RLPDecodingError("Unexpected end of data")

    prefix = data[offset]

    if prefix < SHORT_STRING_PREFIX:
        return data[offset : offset + 1], offset + 1

    if prefix < SHORT_LIST_PREFIX:
        start, end = _payload_bounds(data, offset, SHORT_STRING_PREFIX, LONG_STRING_BASE)
        if end - start == 1 and data[start] < SHORT_STRING_PREFIX:
            raise RLPDecodingError("Non-canonical: single byte encoded as a string")
        return data[start:end], end

    start, end = _payload_bounds(data, offset, SHORT_LIST_PREFIX, LONG_LIST_BASE)
    items: list[RLPItem] = []
    position = start
    while position < end:
        item, position = _decode_item(data[:end], position)
        items.append(item)
    return items, end


def _payload_bounds(data: bytes, offset: int, short_prefix: int, long_base: int) -> tuple[int, int]:
    """Return the start and end offsets of the payload following a header."""
    prefix = data[offset]

    if prefix <= long_base:
        start = offset + 1
        length = prefix - short_prefix
    else:
        length_of_length = prefix - long_base
        start = offset + 1 + length_of_length
        _check_bounds(data, start)
        if data[offset + 1] == 0:
            raise RLPDecodingError("Non-canonical: leading zeros in length encoding")
        length = int.from_bytes(data[offset + 1 : start], "big")
        if length <= SHORT_PAYLOAD_MAX_LEN:
            raise RLPDecodingError("Non-canonical: long encoding for short payload")

    end = start + length
    _check_bounds(data, end)
    return start, end


def _check_bounds(data: bytes, end: int) -> None:
    if end > len(data):
        raise RLPDecodingError(f"Data too short: need {end}, have {len(data)}")
