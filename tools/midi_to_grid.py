#!/usr/bin/env python3
"""Convert a Standard MIDI File into grid placement commands.

Examples
--------
Placement commands as JSON lines (default):
    python tools/midi_to_grid.py song.mid
    python tools/midi_to_grid.py song.mid --world-height 100 --mute 9

Header and track summary only:
    python tools/midi_to_grid.py song.mid --info
"""

from __future__ import annotations

import argparse
import json
import logging
from dataclasses import asdict, replace
from pathlib import Path
import sys
from typing import List

REPO_ROOT = Path(__file__).resolve().parents[1]
if str(REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(REPO_ROOT))

import mido  # noqa: E402

from midigrid.container import MidiFile, parse_midi  # noqa: E402
from midigrid.errors import MidiError  # noqa: E402
from midigrid.layout import LayoutConfig, LinkPlacement, PlacementCommand  # noqa: E402
from midigrid.layout_config import load_layout_config  # noqa: E402
from midigrid.session import PacedSink, PlaybackSession  # noqa: E402


def _command_record(command: PlacementCommand) -> dict:
    record = asdict(command)
    record["kind"] = "link" if isinstance(command, LinkPlacement) else "note"
    return record


def show_info(midi: MidiFile) -> None:
    print(
        f"format={midi.format} declared_tracks={midi.declared_tracks} "
        f"tracks={len(midi.tracks)} ticks_per_quarter={midi.ticks_per_quarter}"
    )
    for idx, track in enumerate(midi.tracks):
        notes = sum(1 for e in track if e.is_note_on and e.arg2 > 0)
        channels = sorted({e.channel for e in track if e.category < 0xF})
        end = track.events[-1].time if len(track) else 0
        print(
            f"  track {idx:2d}: events={len(track):5d} note_ons={notes:5d} "
            f"end_tick={end} channels={channels}"
        )
        for event in track:
            tempo = event.tempo
            if tempo is not None:
                print(f"    tick {event.time:7d}: tempo {mido.tempo2bpm(tempo):.2f} BPM")


def _build_config(args: argparse.Namespace) -> LayoutConfig:
    if args.config is not None:
        config = load_layout_config(args.config)
    else:
        config = LayoutConfig()
    if args.world_height is not None:
        if args.world_height < 7:
            raise ValueError("--world-height must be at least 7")
        config = replace(config, row_height=args.world_height - 6)
    return config


def _build_arg_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Lay out a MIDI file as grid placement commands",
    )
    parser.add_argument("input", type=Path, help="Path to .mid file")
    parser.add_argument(
        "--info",
        action="store_true",
        help="Print header and track summary instead of placements",
    )
    parser.add_argument(
        "--config",
        type=Path,
        default=None,
        help="JSON layout config",
    )
    parser.add_argument(
        "--world-height",
        type=int,
        default=None,
        help="Target world height; playable rows = height - 6",
    )
    parser.add_argument(
        "--mute",
        type=int,
        nargs="*",
        default=[],
        metavar="CH",
        help="Zero-based channels to leave out (9 is drums)",
    )
    parser.add_argument(
        "--delay",
        type=float,
        default=0.0,
        help="Seconds to wait after each emitted command",
    )
    parser.add_argument(
        "--limit",
        type=int,
        default=None,
        help="Stop after this many commands",
    )
    parser.add_argument("-v", "--verbose", action="store_true")
    return parser


def main(argv: List[str] | None = None) -> int:
    parser = _build_arg_parser()
    args = parser.parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )

    try:
        midi = parse_midi(args.input.read_bytes())
    except (MidiError, OSError) as exc:
        print(f"failed to load {args.input}: {exc}", file=sys.stderr)
        return 1

    if args.info:
        show_info(midi)
        return 0

    try:
        config = _build_config(args)
        session = PlaybackSession(midi, config, muted_channels=args.mute)
    except OSError as exc:
        print(f"failed to load {args.config}: {exc}", file=sys.stderr)
        return 1
    except ValueError as exc:
        parser.error(str(exc))

    def emit(command: PlacementCommand) -> None:
        print(json.dumps(_command_record(command), sort_keys=True))

    sink = PacedSink(emit, args.delay)
    for command in session.iter_commands():
        sink.send(command)
        if args.limit is not None and sink.sent >= args.limit:
            break
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
