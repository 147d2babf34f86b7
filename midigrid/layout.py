"""Map a merged MIDI event stream onto a 2-D grid of placement commands.

Time is measured in cells, one cell per frame (1/85 s by default).  The
cell counter fills a column top to bottom before moving right:

  column = cell // row_height + column_offset
  row    = cell %  row_height + row_offset

Tick to cell conversion is anchored at the most recent tempo change so cell
time stays continuous across tempo boundaries:

  cell = (tick - anchor_tick) * tempo // ticks_per_quarter // us_per_cell + anchor_cell

Every column the counter leaves, starting with the entry column just left of
the grid, gets a link pair: one link just above the playable rows and one
just below. Ids run in column order and chain each bottom link to the next
top link, so the final bottom link can loop back to the top of the first
playable column (id 3).
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Iterator, List, Optional, Tuple, Union

from .events import Event

# MIDI percussion key (35-82) -> percussion tile variant.
PERCUSSION_TILES: Tuple[int, ...] = (
    0, 13, 3, 2, 7, 2, 12, 6, 13, 14,
    11, 10, 8, 10, 17, 17, 19, 9, 18,
    19, 16, 1, 18, 10, 11, 10, 10, 11,
    10, 11, 19, 19, 9, 9, 10, 10, 10,
    10, 19, 19, 19, 19, 19, 6, 17, 17, 17, 17,
)

# The last bottom link points back at the top link of the first playable column.
LOOP_BACK_LINK_ID = 3


@dataclass(frozen=True)
class LayoutConfig:
    row_height: int = 44
    frames_per_second: int = 85
    min_velocity: int = 3
    loud_velocity: int = 808  # above 127: one cell per note unless lowered
    column_offset: int = 2
    row_offset: int = 3
    percussion_channel: int = 9
    percussion_low: int = 35
    percussion_high: int = 81
    percussion_tiles: Tuple[int, ...] = PERCUSSION_TILES
    note_offset: int = 48
    layer: int = 0
    note_tile_family: int = 77
    percussion_tile_family: int = 83
    link_tile_family: int = 242
    default_tempo: int = 500_000  # 120 BPM

    def __post_init__(self) -> None:
        if self.row_height < 1:
            raise ValueError(f"row_height must be positive, got {self.row_height}")
        if self.frames_per_second < 1:
            raise ValueError(
                f"frames_per_second must be positive, got {self.frames_per_second}"
            )
        if self.loud_velocity <= self.min_velocity:
            raise ValueError(
                f"loud_velocity ({self.loud_velocity}) must exceed "
                f"min_velocity ({self.min_velocity})"
            )
        if self.percussion_high < self.percussion_low:
            raise ValueError("percussion_high must not be below percussion_low")
        needed = self.percussion_high - self.percussion_low + 1
        if len(self.percussion_tiles) < needed:
            raise ValueError(
                f"percussion_tiles has {len(self.percussion_tiles)} entries, "
                f"need {needed} for keys {self.percussion_low}-{self.percussion_high}"
            )

    @classmethod
    def for_world_height(cls, world_height: int, **overrides) -> "LayoutConfig":
        """Config for a world `world_height` cells tall (3 border rows each side)."""
        return cls(row_height=world_height - 6, **overrides)

    @property
    def microseconds_per_cell(self) -> int:
        return 1_000_000 // self.frames_per_second

    @property
    def velocity_step(self) -> int:
        return self.loud_velocity - self.min_velocity

    @property
    def top_link_row(self) -> int:
        return self.row_offset - 1

    @property
    def bottom_link_row(self) -> int:
        return self.row_offset + self.row_height

    def cell_to_grid(self, cell: int) -> Tuple[int, int]:
        return (
            cell // self.row_height + self.column_offset,
            cell % self.row_height + self.row_offset,
        )

    def percussion_tile(self, key: int) -> Optional[int]:
        if not self.percussion_low <= key <= self.percussion_high:
            return None
        return self.percussion_tiles[key - self.percussion_low]


@dataclass(frozen=True)
class NotePlacement:
    layer: int
    column: int
    row: int
    tile_family: int
    tile_variant: int

    def as_args(self) -> Tuple[int, ...]:
        return (self.layer, self.column, self.row, self.tile_family, self.tile_variant)


@dataclass(frozen=True)
class LinkPlacement:
    layer: int
    column: int
    row: int
    tile_family: int
    link_id: int
    target_id: int

    def as_args(self) -> Tuple[int, ...]:
        return (
            self.layer,
            self.column,
            self.row,
            self.tile_family,
            self.link_id,
            self.target_id,
        )


PlacementCommand = Union[NotePlacement, LinkPlacement]


class LayoutMapper:
    """Stateful event-to-placement mapper for a single playback pass."""

    def __init__(
        self,
        ticks_per_quarter: int,
        config: Optional[LayoutConfig] = None,
        *,
        muted_channels: Iterable[int] = (),
    ) -> None:
        if ticks_per_quarter < 1:
            raise ValueError(f"ticks_per_quarter must be positive, got {ticks_per_quarter}")
        self.config = config if config is not None else LayoutConfig()
        self.ticks_per_quarter = ticks_per_quarter
        self.muted_channels = frozenset(muted_channels)
        self.tempo = self.config.default_tempo
        self.anchor_tick = 0
        self.anchor_cell = 0
        self.cell = 0
        self.column = self.config.column_offset - 1
        self.link_id = 1
        self._flushed = False

    def cell_time(self, tick: int) -> int:
        elapsed = (tick - self.anchor_tick) * self.tempo
        return (
            elapsed // self.ticks_per_quarter // self.config.microseconds_per_cell
            + self.anchor_cell
        )

    def feed(self, event: Event) -> List[PlacementCommand]:
        """Advance the layout by one merged event and return its commands."""

        cell_time = self.cell_time(event.time)

        tempo = event.tempo
        if tempo is not None:
            self.anchor_cell = cell_time
            self.anchor_tick = event.time
            self.tempo = tempo

        if event.is_note_on:
            return self._place_note(event, cell_time)
        return []

    def finish(self) -> List[PlacementCommand]:
        """Close the path with a link pair in the last column reached."""

        if self._flushed:
            return []
        self._flushed = True
        return self._link_pair(self.column, LOOP_BACK_LINK_ID)

    def map_events(self, events: Iterable[Event]) -> Iterator[PlacementCommand]:
        for event in events:
            yield from self.feed(event)
        yield from self.finish()

    def _place_note(self, event: Event, cell_time: int) -> List[PlacementCommand]:
        cfg = self.config
        note = event.arg1
        channel = event.channel

        placements: List[PlacementCommand] = []
        first_column = None
        # One cell per velocity step above the floor: loud notes take two.
        level = cfg.min_velocity
        while level < event.arg2:
            level += cfg.velocity_step
            if cell_time <= self.cell:
                self.cell += 1
            else:
                self.cell = cell_time

            column, row = cfg.cell_to_grid(self.cell)
            if first_column is None:
                first_column = column

            if channel in self.muted_channels:
                continue
            if channel == cfg.percussion_channel:
                tile = cfg.percussion_tile(note)
                if tile is not None:
                    placements.append(
                        NotePlacement(cfg.layer, column, row, cfg.percussion_tile_family, tile)
                    )
                break
            placements.append(
                NotePlacement(cfg.layer, column, row, cfg.note_tile_family, note - cfg.note_offset)
            )

        if first_column is None:
            return placements
        return self._bridge(first_column, cfg.cell_to_grid(self.cell)[0], placements)

    def _bridge(
        self, first_column: int, last_column: int, placements: List[PlacementCommand]
    ) -> List[PlacementCommand]:
        """Link every column left behind by one event, in column order.

        Columns the event jumped over are linked before its placements; the
        column it departed from (and any it passed through) after them.
        """

        previous = self.column
        if last_column <= previous:
            return placements
        self.column = last_column

        pairs = {
            column: self._link_pair(column, self.link_id + 2)
            for column in range(previous, last_column)
        }
        skipped = range(previous + 1, first_column)

        commands: List[PlacementCommand] = []
        for column in skipped:
            commands.extend(pairs[column])
        commands.extend(placements)
        for column in range(previous, last_column):
            if column not in skipped:
                commands.extend(pairs[column])
        return commands

    def _link_pair(self, column: int, bottom_target: int) -> List[PlacementCommand]:
        cfg = self.config
        top = LinkPlacement(
            cfg.layer, column, cfg.top_link_row, cfg.link_tile_family,
            self.link_id, self.link_id - 1,
        )
        bottom = LinkPlacement(
            cfg.layer, column, cfg.bottom_link_row, cfg.link_tile_family,
            self.link_id + 1, bottom_target,
        )
        self.link_id += 2
        return [top, bottom]
