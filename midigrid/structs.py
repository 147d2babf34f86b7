from __future__ import annotations

from typing import Tuple


HEADER_TAG = "MThd"
TRACK_TAG = "MTrk"
HEADER_SIZE = 6
FILE_HEADER_LENGTH = 14  # tag + u32 size + 3 * u16
CHUNK_PREFIX_LENGTH = 8  # tag + u32 length


def match_literal(data: bytes, offset: int, text: str) -> bool:
    """Return True if the ASCII bytes of `text` appear at `offset`."""

    end = offset + len(text)
    if offset < 0 or end > len(data):
        return False
    return data[offset:end] == text.encode("ascii")


def read_var_len(data: bytes, offset: int) -> Tuple[int, int]:
    """Decode a MIDI variable-length quantity starting at `offset`.

    Each byte carries 7 bits of value; the top bit flags that another byte
    follows.  There is no length cap, but decoding stops at the end of the
    buffer.  Returns ``(value, new_offset)``.
    """

    value = 0
    while offset < len(data):
        byte = data[offset]
        offset += 1
        value = (value << 7) | (byte & 0x7F)
        if not byte & 0x80:
            break
    return value, offset


def read_u16_be(data: bytes, offset: int) -> int:
    return int.from_bytes(data[offset : offset + 2], "big")


def read_u24_be(data: bytes, offset: int) -> int:
    return int.from_bytes(data[offset : offset + 3], "big")


def read_u32_be(data: bytes, offset: int) -> int:
    return int.from_bytes(data[offset : offset + 4], "big")
