"""Merge the tracks of a ``MidiFile`` into one time-ordered event stream."""

from __future__ import annotations

from typing import Iterator, Optional

from .container import MidiFile
from .events import Event


class MergeScheduler:
    """k-way merge over every track of a parsed file.

    Each ``next_event`` call consumes exactly one event from exactly one
    track: the valid event with the smallest absolute time at or after the
    watermark, first track winning ties.  The returned event carries
    ``delay`` relative to the previously emitted event.
    """

    def __init__(self, midi: MidiFile) -> None:
        self._midi = midi
        self._watermark = 0
        self._finished = False
        self.rewind()

    @property
    def midi(self) -> MidiFile:
        return self._midi

    @property
    def watermark(self) -> int:
        return self._watermark

    @property
    def finished(self) -> bool:
        return self._finished

    def rewind(self) -> None:
        self._midi.rewind()
        self._watermark = 0
        self._finished = False

    def next_event(self) -> Optional[Event]:
        best: Optional[Event] = None
        best_track = None
        for track in self._midi.tracks:
            event = track.peek()
            if event is None or not event.valid:
                continue
            if event.time < self._watermark:
                continue
            if best is None or event.time < best.time:
                best = event
                best_track = track

        if best is None or best_track is None:
            self._finished = True
            return None

        delay = best.time - self._watermark
        self._watermark = best.time
        best_track.advance()
        return best.with_delay(delay)

    def __iter__(self) -> Iterator[Event]:
        while True:
            event = self.next_event()
            if event is None:
                return
            yield event
