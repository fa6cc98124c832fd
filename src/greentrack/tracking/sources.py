# greentrack/tracking/sources.py
"""
Sensor-source adapters.

A position source is any async iterable of GeoCoordinate; a motion source
is any async iterable of MotionSample, or None when the platform has no
accelerometer. Both are consumed once per session and never restarted.

The helpers here turn prepared data (fixtures, GPX replays) into sources.
"""

from __future__ import annotations

import asyncio
from typing import AsyncIterable, AsyncIterator, Iterable, Optional, Union

from greentrack.errors import SensorUnavailable
from greentrack.formats.gpx import TrackPoint
from greentrack.geo import distance_meters
from greentrack.models import GeoCoordinate, MotionSample

PositionSource = AsyncIterable[GeoCoordinate]
MotionSource = AsyncIterable[MotionSample]


async def iter_position_fixes(
    fixes: Iterable[GeoCoordinate], *, interval_s: float = 0.0
) -> AsyncIterator[GeoCoordinate]:
    """Yield `fixes` one by one, yielding control to the loop between them."""
    for fix in fixes:
        yield fix
        await asyncio.sleep(interval_s)


async def iter_motion_samples(
    samples: Iterable[Union[MotionSample, float]], *, interval_s: float = 0.0
) -> AsyncIterator[MotionSample]:
    """Yield motion samples; bare floats are wrapped as magnitudes."""
    for s in samples:
        yield s if isinstance(s, MotionSample) else MotionSample(float(s))
        await asyncio.sleep(interval_s)


async def unavailable_motion_source(reason: str = "no accelerometer") -> AsyncIterator[MotionSample]:
    """A motion source for platforms without the capability."""
    raise SensorUnavailable(reason)
    yield  # pragma: no cover


def fixes_from_trackpoints(points: Iterable[TrackPoint]) -> list[GeoCoordinate]:
    """
    Build fixes from timestamped trackpoints.

    Speed is derived per step (distance / dt). The first point, points
    without a time, and non-increasing timestamps get speed None.
    """
    fixes: list[GeoCoordinate] = []
    prev: Optional[TrackPoint] = None
    for p in points:
        speed = None
        if prev is not None and prev.time is not None and p.time is not None:
            dt_s = (p.time - prev.time).total_seconds()
            if dt_s > 0:
                d_m = distance_meters(
                    GeoCoordinate(prev.lat, prev.lon), GeoCoordinate(p.lat, p.lon)
                )
                speed = d_m / dt_s
        fixes.append(GeoCoordinate(p.lat, p.lon, speed))
        prev = p
    return fixes
