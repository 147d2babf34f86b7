"""Decode ``MTrk`` chunks into ``Track`` objects.

Chunk layout:

  4 bytes  "MTrk"
  4 bytes  u32 BE chunk length
  n bytes  events: <delay VLQ> <status?> <data bytes> [<payload length VLQ> <payload>]

Fixed data-byte counts by status category:

  0x8-0xB, 0xE  2 bytes (note off/on, aftertouch, controller, pitch bend)
  0xC-0xD       1 byte  (program change, channel pressure)
  0xFF          2 bytes (meta type + first byte of the payload length)
  other 0xF?    1 byte  (first byte of the payload length)

A data byte (< 0x80) where a status byte is expected means running status:
the previous channel status is reused and the byte is the first data byte.
System and meta events cancel running status.

For system/meta events the last fixed byte is also the head of the payload
length, which is re-read as a variable-length quantity before the payload is
copied.  A payload that would run past the buffer is dropped together with
the rest of its chunk; the events before it are kept.
"""

from __future__ import annotations

import logging
from typing import Optional, Tuple

from .errors import MalformedHeader, ProtocolViolation, TruncatedData
from .events import Track
from .structs import CHUNK_PREFIX_LENGTH, TRACK_TAG, match_literal, read_u32_be, read_var_len

logger = logging.getLogger(__name__)


def data_byte_count(status: int) -> int:
    """Return the number of fixed data bytes following `status`."""

    category = status >> 4
    if category < 0xC or category == 0xE or status == 0xFF:
        return 2
    return 1


def _byte_at(data: bytes, pos: int, end: int) -> int:
    if pos >= end:
        raise TruncatedData("unexpected end of track chunk", offset=pos)
    return data[pos]


def read_track(data: bytes, offset: int) -> Tuple[Optional[Track], int]:
    """Decode the ``MTrk`` chunk at `offset`.

    Returns ``(track, next_offset)`` where `next_offset` is the first byte
    after the chunk, or ``(None, 0)`` when `offset` is exactly at the end of
    the buffer.
    """

    if offset == len(data):
        return None, 0
    if len(data) < offset + CHUNK_PREFIX_LENGTH:
        raise MalformedHeader("garbage found at end of file", offset=offset)
    if not match_literal(data, offset, TRACK_TAG):
        raise MalformedHeader("expected MTrk chunk not found", offset=offset)

    chunk_length = read_u32_be(data, offset + 4)
    pos = offset + CHUNK_PREFIX_LENGTH
    chunk_end = pos + chunk_length
    if chunk_end > len(data):
        raise TruncatedData(
            f"track declares {chunk_length} bytes but only {len(data) - pos} remain",
            offset=offset,
        )

    track = Track()
    running_status = 0

    while pos < len(data) and pos < chunk_end:
        delay, pos = read_var_len(data, pos)
        status = _byte_at(data, pos, chunk_end)
        pos += 1
        arg2 = 0

        if status >> 4 < 8:
            if running_status == 0:
                raise ProtocolViolation("unrecognized status code", offset=pos - 1)
            arg1 = status
            status = running_status
            if data_byte_count(status) == 2:
                arg2 = _byte_at(data, pos, chunk_end)
                pos += 1
        else:
            arg1 = _byte_at(data, pos, chunk_end)
            pos += 1
            if data_byte_count(status) == 2:
                arg2 = _byte_at(data, pos, chunk_end)
                pos += 1

        running_status = status if status < 0xF0 else 0

        payload = None
        if status >> 4 == 0xF:
            pos -= 1
            length, pos = read_var_len(data, pos)
            if pos + length <= len(data):
                payload = bytes(data[pos : pos + length])
                pos += length
            else:
                logger.warning(
                    "dropping %d-byte payload of status 0x%02X at 0x%X: runs past end of data",
                    length,
                    status,
                    pos,
                )
                # The rest of the chunk belongs to the dropped payload.
                pos = chunk_end

        track.push_event(delay, status, arg1, arg2, payload)

    return track, chunk_end
