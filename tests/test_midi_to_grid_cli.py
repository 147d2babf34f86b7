"""CLI integration tests for tools/midi_to_grid.py."""

from __future__ import annotations

import json
import os
from pathlib import Path
import subprocess
import sys

REPO_ROOT = Path(__file__).resolve().parents[1]
SCRIPT = REPO_ROOT / "tools" / "midi_to_grid.py"
if str(REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(REPO_ROOT))

from midi_fixtures import END_OF_TRACK, note_track, smf, tempo_event  # noqa: E402


def _run_cli(*args: str) -> subprocess.CompletedProcess[str]:
    env = dict(os.environ)
    env["PYTHONPATH"] = str(REPO_ROOT)
    return subprocess.run(
        [sys.executable, str(SCRIPT), *args],
        cwd=str(REPO_ROOT),
        env=env,
        text=True,
        capture_output=True,
        check=False,
    )


def _write_song(tmp_path: Path) -> Path:
    path = tmp_path / "song.mid"
    conductor = tempo_event(0, 500000) + END_OF_TRACK
    path.write_bytes(smf(conductor, note_track([0, 96, 192]), ticks=96))
    return path


def test_info_lists_tracks_and_tempo(tmp_path: Path) -> None:
    result = _run_cli(str(_write_song(tmp_path)), "--info")
    assert result.returncode == 0, result.stderr
    assert "format=1 declared_tracks=2 tracks=2 ticks_per_quarter=96" in result.stdout
    assert "tempo 120.00 BPM" in result.stdout
    assert "note_ons=    3" in result.stdout


def test_placements_as_json_lines(tmp_path: Path) -> None:
    result = _run_cli(str(_write_song(tmp_path)))
    assert result.returncode == 0, result.stderr
    records = [json.loads(line) for line in result.stdout.splitlines()]
    assert [r["kind"] for r in records] == ["note"] + ["link"] * 2 + ["note"] * 2 + ["link"] * 4
    notes = [r for r in records if r["kind"] == "note"]
    assert [(r["column"], r["row"]) for r in notes] == [(2, 4), (2, 45), (3, 44)]
    assert records[-1]["target_id"] == 3


def test_world_height_backfills_skipped_columns(tmp_path: Path) -> None:
    result = _run_cli(str(_write_song(tmp_path)), "--world-height", "20")
    assert result.returncode == 0, result.stderr
    records = [json.loads(line) for line in result.stdout.splitlines()]
    # 14 playable rows: cell 42 lands in column 2 + 42 // 14 = 5.
    first_note, second_note = [r for r in records if r["kind"] == "note"][:2]
    assert (second_note["column"], second_note["row"]) == (5, 3)
    between = records[records.index(first_note) + 1 : records.index(second_note)]
    assert [(r["column"], r["row"]) for r in between] == [
        (1, 2), (1, 17), (3, 2), (3, 17), (4, 2), (4, 17),
    ]
    after = records[records.index(second_note) + 1 : records.index(second_note) + 3]
    assert [(r["kind"], r["column"]) for r in after] == [("link", 2), ("link", 2)]


def test_limit_stops_early(tmp_path: Path) -> None:
    result = _run_cli(str(_write_song(tmp_path)), "--limit", "2")
    assert result.returncode == 0, result.stderr
    assert len(result.stdout.splitlines()) == 2


def test_config_file(tmp_path: Path) -> None:
    config = tmp_path / "layout.json"
    config.write_text(json.dumps({"row_height": 10, "note_offset": 60}), encoding="utf-8")
    result = _run_cli(str(_write_song(tmp_path)), "--config", str(config), "--mute", "1")
    assert result.returncode == 0, result.stderr
    records = [json.loads(line) for line in result.stdout.splitlines()]
    notes = [r for r in records if r["kind"] == "note"]
    assert [r["tile_variant"] for r in notes] == [0, 0, 0]
    assert notes[0]["column"] == 2


def test_bad_file_reports_error(tmp_path: Path) -> None:
    path = tmp_path / "broken.mid"
    path.write_bytes(b"RIFF0000")
    result = _run_cli(str(path))
    assert result.returncode == 1
    assert "failed to load" in result.stderr


def test_missing_input_reports_error(tmp_path: Path) -> None:
    result = _run_cli(str(tmp_path / "absent.mid"))
    assert result.returncode == 1
    assert "failed to load" in result.stderr
    assert "Traceback" not in result.stderr


def test_missing_config_reports_error(tmp_path: Path) -> None:
    result = _run_cli(str(_write_song(tmp_path)), "--config", str(tmp_path / "absent.json"))
    assert result.returncode == 1
    assert "failed to load" in result.stderr
    assert "Traceback" not in result.stderr
