import asyncio
import json
from pathlib import Path

import pytest

from greentrack.errors import InvalidGpxError
from greentrack.formats.gpx import read_trackpoints
from greentrack.models import ActivityLabel
from greentrack.replay import cli
from greentrack.tracking.sources import fixes_from_trackpoints


def test_read_trackpoints(sample_gpx_path):
    pts = read_trackpoints(sample_gpx_path)
    assert len(pts) == 6
    assert pts[0].lat == 12.97
    assert pts[0].ele == 920.0
    assert pts[0].time.isoformat() == "2026-05-01T07:00:00+00:00"


def test_fix_speeds_are_derived(sample_gpx_path):
    fixes = fixes_from_trackpoints(read_trackpoints(sample_gpx_path))
    assert fixes[0].speed is None
    # 0.002 deg of latitude in 10 s
    assert fixes[3].speed == pytest.approx(22.24, abs=0.01)


def test_invalid_gpx(tmp_path: Path):
    bad = tmp_path / "bad.gpx"
    bad.write_text("<gpx><trk>", encoding="utf-8")
    with pytest.raises(InvalidGpxError):
        read_trackpoints(bad)


def test_replay_sample_track(sample_gpx_path):
    res = asyncio.run(cli.replay_track(sample_gpx_path))

    assert [e.label for e in res.events] == [
        ActivityLabel.CAR,
        ActivityLabel.CAR,
        ActivityLabel.PUBLIC_TRANSPORT,
    ]
    assert res.stats.fixes_received == 6
    assert res.stats.jitter_dropped == 1
    assert res.stats.stationary_dropped == 1
    assert res.errors == []

    rows = res.by_label()
    assert rows["car"]["distance_km"] == pytest.approx(0.4448, abs=1e-3)
    assert rows["public_transport"]["distance_km"] == pytest.approx(0.6672, abs=1e-3)


def test_main_tsv_and_jsonl(sample_gpx_path, tmp_path: Path, monkeypatch, capsys):
    monkeypatch.setattr(cli, "load_config", lambda: _cfg(tmp_path))
    out = tmp_path / "activities.jsonl"

    rc = cli.main([str(sample_gpx_path), "--tsv", "--jsonl", str(out)])

    assert rc == 0
    lines = capsys.readouterr().out.strip().splitlines()
    assert lines[0].startswith("file\tactivity")
    assert any("\tcar\t2\t" in line for line in lines[1:])
    assert any("\tpublic_transport\t1\t" in line for line in lines[1:])
    records = [json.loads(line) for line in out.read_text(encoding="utf-8").splitlines()]
    assert [r["name"] for r in records] == ["car", "car", "public_transport"]


def test_main_without_files(tmp_path: Path, monkeypatch, capsys):
    monkeypatch.setattr(cli, "load_config", lambda: _cfg(tmp_path))
    (tmp_path / "empty").mkdir()
    rc = cli.main(["--work-root", str(tmp_path / "empty")])
    assert rc == 1
    assert "No GPX files found" in capsys.readouterr().err


def _cfg(tmp_path: Path):
    from greentrack.config import load_config

    return load_config(repo_root=tmp_path, user_config_path=tmp_path / "none.toml")


def test_plot_events_writes_image(sample_gpx_path, tmp_path: Path):
    import matplotlib

    matplotlib.use("Agg")
    from greentrack.visualize.plot import plot_events

    res = asyncio.run(cli.replay_track(sample_gpx_path))
    out = tmp_path / "track.png"
    plot_events(res.fixes, res.events, title="sample", out_path=out)

    assert out.is_file()
    assert out.stat().st_size > 0
