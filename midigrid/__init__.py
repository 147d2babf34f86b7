"""Turn Standard MIDI Files into grid placement commands."""

from .container import (  # noqa: F401
    DEFAULT_TICKS_PER_QUARTER,
    MidiFile,
    MidiHeader,
    parse_midi,
)
from .errors import (  # noqa: F401
    MalformedHeader,
    MidiError,
    ProtocolViolation,
    TruncatedData,
)
from .events import Event, Track  # noqa: F401
from .layout import (  # noqa: F401
    LOOP_BACK_LINK_ID,
    PERCUSSION_TILES,
    LayoutConfig,
    LayoutMapper,
    LinkPlacement,
    NotePlacement,
    PlacementCommand,
)
from .layout_config import load_layout_config, parse_layout_config  # noqa: F401
from .scheduler import MergeScheduler  # noqa: F401
from .session import ListSink, PacedSink, PlaybackSession, PlacementSink  # noqa: F401
from .structs import (  # noqa: F401
    match_literal,
    read_u16_be,
    read_u24_be,
    read_u32_be,
    read_var_len,
)
from .track_reader import data_byte_count, read_track  # noqa: F401
