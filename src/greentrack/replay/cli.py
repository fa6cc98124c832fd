#!/usr/bin/env python3
"""
Replay recorded GPX tracks through a tracking session.

Each track is fed fix by fix into a GPS-only MotionTrackingSession (no
accelerometer data is recorded in GPX, so the acceleration variance stays
0) and the detected activities are reported. Useful for checking the jitter
gate and speed thresholds against real recordings.
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from collections import defaultdict
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

from greentrack.carbon import CarbonModel
from greentrack.config import TrackingSettings, load_config
from greentrack.errors import GreenTrackError
from greentrack.formats.gpx import read_trackpoints
from greentrack.models import ActivityEvent, GeoCoordinate
from greentrack.sink import JsonlSink, MemorySink
from greentrack.tracking.session import MotionTrackingSession, TrackingSessionState
from greentrack.tracking.sources import fixes_from_trackpoints, iter_position_fixes
from greentrack.util.logging import configure_logging


@dataclass
class ReplayResult:
    path: Path
    fixes: list[GeoCoordinate]
    events: list[ActivityEvent]
    stats: TrackingSessionState
    errors: list[GreenTrackError] = field(default_factory=list)

    def by_label(self) -> dict[str, dict[str, float]]:
        out: dict[str, dict[str, float]] = defaultdict(
            lambda: {"events": 0, "distance_km": 0.0, "carbon_saved_kg": 0.0, "points": 0}
        )
        for e in self.events:
            row = out[e.name]
            row["events"] += 1
            row["distance_km"] += e.distance_km
            row["carbon_saved_kg"] += e.carbon_saved_kg
            row["points"] += e.points_earned
        return dict(out)


async def replay_track(
    path: Path,
    *,
    settings: Optional[TrackingSettings] = None,
    carbon: Optional[CarbonModel] = None,
) -> ReplayResult:
    """Replay one GPX file and collect the emitted events."""
    fixes = fixes_from_trackpoints(read_trackpoints(path))
    sink = MemorySink()
    errors: list[GreenTrackError] = []

    session = MotionTrackingSession(
        iter_position_fixes(fixes),
        sink,
        motion_source=None,
        settings=settings,
        carbon=carbon,
        on_error=errors.append,
    )
    async with session:
        await session.join()
        await session.drain()
        stats = session.snapshot()

    return ReplayResult(path=path, fixes=fixes, events=list(sink.events), stats=stats, errors=errors)


def print_report(res: ReplayResult, *, tsv: bool) -> None:
    if tsv:
        for name, row in sorted(res.by_label().items()):
            print(
                f"{res.path}\t{name}\t{int(row['events'])}\t"
                f"{row['distance_km']:.3f}\t{row['carbon_saved_kg']:.4f}\t{int(row['points'])}"
            )
        return

    s = res.stats
    print(f"\n{res.path}")
    print(f"  fixes         : {len(res.fixes)}")
    print(f"  jitter dropped: {s.jitter_dropped}")
    print(f"  stationary    : {s.stationary_dropped}")
    print(f"  events        : {s.events_emitted}")
    for name, row in sorted(res.by_label().items()):
        print(
            f"  {name:<16}: {int(row['events'])} events, {row['distance_km']:.3f} km, "
            f"{row['carbon_saved_kg']:.4f} kg saved, {int(row['points'])} points"
        )
    for err in res.errors:
        print(f"  error         : {err}")


def main(argv: Optional[list[str]] = None) -> int:
    ap = argparse.ArgumentParser(description="greentrack: replay GPX file(s) through the activity tracker.")
    ap.add_argument("gpx", nargs="*",
                    help="GPX files to replay. If omitted, every *.gpx under the work root.")
    ap.add_argument("--work-root", default=None,
                    help="Where to look for GPX files (default: from config or ~/GPS/_work)")
    ap.add_argument("--min-displacement", type=float, default=None,
                    help="Jitter gate in meters (default: from config, 20)")
    ap.add_argument("--jsonl", default=None,
                    help="Append detected activities to this JSON-lines file.")
    ap.add_argument("--plot", action="store_true",
                    help="Plot each track with detected activities.")
    ap.add_argument("--tsv", action="store_true",
                    help="Print tab-separated output (good for piping).")
    ap.add_argument("-v", "--verbose", action="store_true")

    args = ap.parse_args(argv)
    configure_logging(logging.DEBUG if args.verbose else logging.WARNING)

    try:
        cfg = load_config()
    except GreenTrackError as e:
        print(f"Config error: {e}", file=sys.stderr)
        return 2

    settings = cfg.tracking
    if args.min_displacement is not None:
        settings = TrackingSettings(
            min_displacement_m=args.min_displacement,
        )
    carbon = CarbonModel(cfg.carbon.factors)

    if args.gpx:
        selected = [Path(p).expanduser() for p in args.gpx]
    else:
        work_root = Path(args.work_root).expanduser() if args.work_root else cfg.replay.work_root
        selected = sorted(work_root.rglob("*.gpx"))
        if not selected:
            print(f"No GPX files found under {work_root}", file=sys.stderr)
            return 1

    if args.tsv:
        print("file\tactivity\tevents\tdistance_km\tcarbon_saved_kg\tpoints")

    out_sink = JsonlSink(Path(args.jsonl)) if args.jsonl else None
    rc = 0
    for path in selected:
        if not path.is_file():
            print(f"Skipping (not a file): {path}", file=sys.stderr)
            continue
        try:
            res = asyncio.run(replay_track(path, settings=settings, carbon=carbon))
        except (GreenTrackError, OSError) as e:
            print(f"Failed to replay {path}: {e}", file=sys.stderr)
            rc = 1
            continue

        print_report(res, tsv=args.tsv)

        if out_sink is not None:
            try:
                asyncio.run(_persist(out_sink, res.events))
            except GreenTrackError as e:
                print(f"Failed to write {out_sink.path}: {e}", file=sys.stderr)
                rc = 1

        if args.plot:
            from greentrack.visualize.plot import plot_events

            plot_events(res.fixes, res.events, title=path.name)

    return rc


async def _persist(sink: JsonlSink, events: list[ActivityEvent]) -> None:
    for e in events:
        await sink.accept(e)


if __name__ == "__main__":
    raise SystemExit(main())
