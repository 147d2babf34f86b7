"""Byte-level builders for hand-made Standard MIDI Files."""

from __future__ import annotations

from typing import Iterable


def vlq(value: int) -> bytes:
    out = [value & 0x7F]
    value >>= 7
    while value:
        out.append((value & 0x7F) | 0x80)
        value >>= 7
    return bytes(reversed(out))


def header(fmt: int = 1, tracks: int = 1, ticks: int = 96, *, size: int = 6) -> bytes:
    return (
        b"MThd"
        + size.to_bytes(4, "big")
        + fmt.to_bytes(2, "big")
        + tracks.to_bytes(2, "big")
        + ticks.to_bytes(2, "big")
    )


def chunk(body: bytes) -> bytes:
    return b"MTrk" + len(body).to_bytes(4, "big") + body


def event(delay: int, *raw: int) -> bytes:
    return vlq(delay) + bytes(raw)


def tempo_event(delay: int, tempo: int) -> bytes:
    return vlq(delay) + b"\xFF\x51\x03" + tempo.to_bytes(3, "big")


END_OF_TRACK = b"\x00\xFF\x2F\x00"


def smf(*tracks: bytes, fmt: int = 1, ticks: int = 96, declared: int | None = None) -> bytes:
    count = len(tracks) if declared is None else declared
    return header(fmt, count, ticks) + b"".join(chunk(body) for body in tracks)


def note_track(ticks: Iterable[int], *, note: int = 60, velocity: int = 100, channel: int = 0) -> bytes:
    """Note-ons at the given absolute ticks, terminated by end-of-track."""

    body = bytearray()
    previous = 0
    for tick in ticks:
        body += event(tick - previous, 0x90 | channel, note, velocity)
        previous = tick
    return bytes(body) + END_OF_TRACK
