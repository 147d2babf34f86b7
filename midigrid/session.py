"""Drive one playback pass: merge, lay out, and deliver placement commands.

A ``PlaybackSession`` owns all per-pass state (muted channels, the cancel
flag, the scheduler watermark and the layout mapper), so independent sessions
over different files never share anything.  Only one pass may run per
session at a time; ``run`` rewinds the file and starts a fresh mapper.
"""

from __future__ import annotations

import logging
import time
from typing import Callable, Iterable, Iterator, List, Optional, Protocol

from .container import MidiFile
from .layout import LayoutConfig, LayoutMapper, PlacementCommand
from .scheduler import MergeScheduler

logger = logging.getLogger(__name__)

BLOCK_DELAY = 0.03  # seconds between paced sends
CHANNELS = range(16)


class PlacementSink(Protocol):
    def send(self, command: PlacementCommand) -> None:
        ...


class ListSink:
    """Collect commands in memory."""

    def __init__(self) -> None:
        self.commands: List[PlacementCommand] = []

    def send(self, command: PlacementCommand) -> None:
        self.commands.append(command)


class PacedSink:
    """Forward each command to `send` and wait `delay` seconds afterwards."""

    def __init__(
        self,
        send: Callable[[PlacementCommand], None],
        delay: float = BLOCK_DELAY,
        *,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        if delay < 0:
            raise ValueError(f"delay must be non-negative, got {delay}")
        self._send = send
        self._sleep = sleep
        self.delay = delay
        self.sent = 0

    def send(self, command: PlacementCommand) -> None:
        self._send(command)
        self.sent += 1
        if self.delay:
            self._sleep(self.delay)


class PlaybackSession:
    def __init__(
        self,
        midi: MidiFile,
        config: Optional[LayoutConfig] = None,
        *,
        muted_channels: Iterable[int] = (),
    ) -> None:
        self.midi = midi
        self.config = config if config is not None else LayoutConfig()
        self.scheduler = MergeScheduler(midi)
        self._muted: set[int] = set()
        for channel in muted_channels:
            self.mute(channel)
        self._cancelled = False
        self._running = False

    @property
    def muted_channels(self) -> frozenset[int]:
        return frozenset(self._muted)

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    def mute(self, channel: int) -> None:
        self._muted.add(_check_channel(channel))

    def unmute(self, channel: int) -> None:
        self._muted.discard(_check_channel(channel))

    def cancel(self) -> None:
        """Stop the running pass before its next event."""
        self._cancelled = True

    def iter_commands(self) -> Iterator[PlacementCommand]:
        if self._running:
            raise RuntimeError("a playback pass is already running on this session")
        self._running = True
        self._cancelled = False
        try:
            self.scheduler.rewind()
            mapper = LayoutMapper(
                self.midi.ticks_per_quarter,
                self.config,
                muted_channels=self._muted,
            )
            while not self._cancelled:
                event = self.scheduler.next_event()
                if event is None:
                    break
                yield from mapper.feed(event)
            if self._cancelled:
                logger.info("playback cancelled at tick %d", self.scheduler.watermark)
            yield from mapper.finish()
        finally:
            self._running = False

    def run(self, sink: PlacementSink) -> int:
        """Deliver one full pass to `sink`; returns the number of commands sent."""

        logger.info(
            "playback start: %d tracks, %d events, muted=%s",
            len(self.midi.tracks),
            self.midi.event_count,
            sorted(self._muted),
        )
        count = 0
        for command in self.iter_commands():
            sink.send(command)
            count += 1
        logger.info("playback done: %d commands", count)
        return count


def _check_channel(channel: int) -> int:
    if channel not in CHANNELS:
        raise ValueError(f"channel must be in [0, 15], got {channel}")
    return channel
