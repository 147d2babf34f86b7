"""Parse errors raised while decoding a Standard MIDI File.

All of them derive from ``ValueError`` so callers that treat any malformed
input as a value error keep working.
"""

from __future__ import annotations

from typing import Optional


class MidiError(ValueError):
    """Base class for every MIDI decoding failure."""

    def __init__(self, message: str, *, offset: Optional[int] = None) -> None:
        if offset is not None:
            message = f"{message} (at byte 0x{offset:X})"
        super().__init__(message)
        self.offset = offset


class TruncatedData(MidiError):
    """The buffer is shorter than the structure being read requires."""


class MalformedHeader(MidiError):
    """Wrong chunk tag, wrong header size, or a track-count mismatch."""


class ProtocolViolation(MidiError):
    """Running status was used before any status byte was seen."""
