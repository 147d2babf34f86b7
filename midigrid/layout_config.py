from __future__ import annotations

import json
from pathlib import Path
from typing import Dict, Tuple

from .layout import LayoutConfig


_INT_FIELDS: Dict[str, Tuple[int, int]] = {
    "row_height": (1, 65535),
    "frames_per_second": (1, 1_000_000),
    "min_velocity": (0, 127),
    "loud_velocity": (1, 65535),
    "column_offset": (0, 65535),
    "row_offset": (1, 65535),
    "percussion_channel": (0, 15),
    "percussion_low": (0, 127),
    "percussion_high": (0, 127),
    "note_offset": (-127, 127),
    "layer": (0, 1),
    "note_tile_family": (0, 65535),
    "percussion_tile_family": (0, 65535),
    "link_tile_family": (0, 65535),
    "default_tempo": (1, 0xFFFFFF),
}
_KNOWN_KEYS = set(_INT_FIELDS) | {"world_height", "percussion_tiles"}


def _require_dict(value: object, *, where: str) -> dict:
    if not isinstance(value, dict):
        raise ValueError(f"{where} must be an object")
    return value


def _require_list(value: object, *, where: str) -> list:
    if not isinstance(value, list):
        raise ValueError(f"{where} must be an array")
    return value


def _int_in_range(value: object, *, where: str, low: int, high: int) -> int:
    if not isinstance(value, int) or isinstance(value, bool):
        raise ValueError(f"{where} must be an integer")
    if not (low <= value <= high):
        raise ValueError(f"{where} must be in [{low}, {high}]")
    return value


def parse_layout_config(data: object) -> LayoutConfig:
    obj = _require_dict(data, where="layout")

    unknown = sorted(set(obj) - _KNOWN_KEYS)
    if unknown:
        raise ValueError(f"layout has unknown keys: {', '.join(unknown)}")
    if "world_height" in obj and "row_height" in obj:
        raise ValueError("layout may set world_height or row_height, not both")

    kwargs: Dict[str, object] = {}
    for name, (low, high) in _INT_FIELDS.items():
        if name in obj:
            kwargs[name] = _int_in_range(obj[name], where=f"layout.{name}", low=low, high=high)

    if "world_height" in obj:
        world_height = _int_in_range(
            obj["world_height"], where="layout.world_height", low=7, high=65535
        )
        kwargs["row_height"] = world_height - 6

    if "percussion_tiles" in obj:
        tiles_raw = _require_list(obj["percussion_tiles"], where="layout.percussion_tiles")
        kwargs["percussion_tiles"] = tuple(
            _int_in_range(tile, where=f"layout.percussion_tiles[{idx}]", low=0, high=65535)
            for idx, tile in enumerate(tiles_raw)
        )

    return LayoutConfig(**kwargs)


def load_layout_config(path: Path | str) -> LayoutConfig:
    config_path = Path(path).expanduser().resolve()
    payload = json.loads(config_path.read_text(encoding="utf-8"))
    return parse_layout_config(payload)
