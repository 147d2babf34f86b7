from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import List

from .errors import MalformedHeader, MidiError
from .events import Track
from .structs import (
    FILE_HEADER_LENGTH,
    HEADER_SIZE,
    HEADER_TAG,
    match_literal,
    read_u16_be,
    read_u32_be,
)
from .track_reader import read_track

logger = logging.getLogger(__name__)

DEFAULT_TICKS_PER_QUARTER = 128


@dataclass(frozen=True)
class MidiHeader:
    format: int  # 0 = single track, 1 = parallel tracks, 2 = sequential
    declared_tracks: int
    ticks_per_quarter: int

    @classmethod
    def from_bytes(cls, data: bytes) -> "MidiHeader":
        if len(data) < FILE_HEADER_LENGTH:
            raise MalformedHeader(
                f"file too short for header ({len(data)} bytes, need {FILE_HEADER_LENGTH})"
            )
        if not match_literal(data, 0, HEADER_TAG):
            raise MalformedHeader(f"no MThd at start of file: {bytes(data[:4]).hex()}")
        size = read_u32_be(data, 4)
        if size != HEADER_SIZE:
            raise MalformedHeader(f"unsupported header size {size} (expected {HEADER_SIZE})")
        ticks = read_u16_be(data, 12)
        return cls(
            format=read_u16_be(data, 8),
            declared_tracks=read_u16_be(data, 10),
            ticks_per_quarter=ticks or DEFAULT_TICKS_PER_QUARTER,
        )


@dataclass(frozen=True)
class MidiFile:
    """A fully decoded Standard MIDI File.

    Decoding is all-or-nothing: ``from_bytes`` either returns every track or
    raises a ``MidiError`` subclass and keeps nothing.
    """

    header: MidiHeader
    tracks: List[Track]

    @property
    def format(self) -> int:
        return self.header.format

    @property
    def declared_tracks(self) -> int:
        return self.header.declared_tracks

    @property
    def ticks_per_quarter(self) -> int:
        return self.header.ticks_per_quarter

    speed = ticks_per_quarter

    @property
    def event_count(self) -> int:
        return sum(len(track) for track in self.tracks)

    @classmethod
    def from_bytes(cls, data: bytes) -> "MidiFile":
        header = MidiHeader.from_bytes(data)

        tracks: List[Track] = []
        offset = FILE_HEADER_LENGTH
        while True:
            track, next_offset = read_track(data, offset)
            if track is None:
                break
            logger.debug(
                "track %d: %d events, chunk 0x%X-0x%X",
                len(tracks),
                len(track),
                offset,
                next_offset,
            )
            tracks.append(track)
            offset = next_offset

        if len(tracks) < header.declared_tracks:
            raise MalformedHeader(
                f"header declares {header.declared_tracks} tracks but only "
                f"{len(tracks)} exist"
            )
        if len(tracks) > header.declared_tracks:
            logger.info(
                "found %d tracks, header declares %d; keeping all",
                len(tracks),
                header.declared_tracks,
            )
        return cls(header=header, tracks=tracks)

    def rewind(self) -> None:
        for track in self.tracks:
            track.rewind()


def parse_midi(data: bytes) -> MidiFile:
    """Decode `data` as a Standard MIDI File."""

    try:
        return MidiFile.from_bytes(data)
    except MidiError as exc:
        logger.debug("MIDI parse failed: %s", exc)
        raise
