"""Decoded MIDI events and the per-track event store.

An ``Event`` keeps the raw status byte and its two data bytes rather than a
typed message object; the layout stage only needs a handful of categories and
works directly on the nibbles:

  status >> 4   category (8 = note off, 9 = note on, ... 0xF = system/meta)
  status & 0xF  channel (channel messages only)

``time`` is absolute within the owning track.  ``delay`` holds the track-local
delta once decoded and is rewritten to the delta from the previously emitted
event when the merge scheduler hands the event out.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from typing import List, Optional

NOTE_OFF = 0x8
NOTE_ON = 0x9
META = 0xFF
META_TEMPO = 0x51


@dataclass(frozen=True)
class Event:
    """A single decoded MIDI event."""

    time: int = 0  # absolute tick from the start of the track
    delay: int = 0
    status: int = 0
    arg1: int = 0
    arg2: int = 0
    data: Optional[bytes] = None  # system/meta payload only

    @property
    def valid(self) -> bool:
        return (self.status >> 4) >= 8

    @property
    def category(self) -> int:
        return self.status >> 4

    @property
    def channel(self) -> int:
        return self.status & 0x0F

    @property
    def is_meta(self) -> bool:
        return self.status == META

    @property
    def is_note_on(self) -> bool:
        return self.category == NOTE_ON

    @property
    def tempo(self) -> Optional[int]:
        """Microseconds per quarter note for a tempo meta event, else None."""
        if not self.is_meta or self.arg1 != META_TEMPO or self.arg2 != 3:
            return None
        if self.data is None or len(self.data) < 3:
            return None
        return int.from_bytes(self.data[:3], "big")

    def with_delay(self, delay: int) -> "Event":
        return replace(self, delay=delay)


class Track:
    """Ordered events of one ``MTrk`` chunk plus a forward-only read cursor.

    The cursor is only moved by whoever merges tracks: ``peek`` looks at the
    current event without consuming it, ``advance`` consumes it.
    """

    def __init__(self) -> None:
        self._events: List[Event] = []
        self._next_index = 0

    def __len__(self) -> int:
        return len(self._events)

    def __iter__(self):
        return iter(self._events)

    @property
    def events(self) -> List[Event]:
        return list(self._events)

    @property
    def next_index(self) -> int:
        return self._next_index

    def push_event(
        self,
        delay: int,
        status: int,
        arg1: int = 0,
        arg2: int = 0,
        data: Optional[bytes] = None,
    ) -> Event:
        time = delay
        if self._events:
            time += self._events[-1].time
        event = Event(
            time=time,
            delay=delay,
            status=status,
            arg1=arg1,
            arg2=arg2,
            data=data,
        )
        self._events.append(event)
        return event

    def peek(self) -> Optional[Event]:
        if self._next_index >= len(self._events):
            return None
        return self._events[self._next_index]

    def advance(self) -> None:
        if self._next_index < len(self._events):
            self._next_index += 1

    def rewind(self) -> None:
        self._next_index = 0
