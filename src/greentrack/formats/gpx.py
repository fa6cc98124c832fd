# greentrack/formats/gpx.py
"""
GPX helpers for greentrack

Format-focused only: namespace handling, safe reading, and extraction of
timestamped trackpoints for replaying a recorded track through a tracking
session. Orchestration lives in greentrack.replay.
"""

from __future__ import annotations

import datetime as _dt
from dataclasses import dataclass
from pathlib import Path
from typing import Optional
from xml.etree import ElementTree as ET

from greentrack.errors import InvalidGpxError

# GPX 1.1 default namespace
GPX_NS = {"gpx": "http://www.topografix.com/GPX/1/1"}


@dataclass(frozen=True)
class TrackPoint:
    lat: float
    lon: float
    time: Optional[_dt.datetime] = None
    ele: float | None = None


def _parse_gpx_time(text: str) -> Optional[_dt.datetime]:
    """
    Parse an ISO-8601 timestamp commonly found in GPX <time> nodes.

    Expected examples:
      - "2026-01-02T21:14:44Z"
      - "2026-01-02T21:14:44.123Z"
      - "2026-01-02T21:14:44+00:00"
    """
    if not text:
        return None
    s = text.strip()
    if not s:
        return None

    if s.endswith("Z"):
        s = s[:-1] + "+00:00"

    try:
        dt = _dt.datetime.fromisoformat(s)
    except ValueError:
        return None

    # Naive times are assumed UTC
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=_dt.timezone.utc)

    return dt.astimezone(_dt.timezone.utc)


def read_gpx(path: Path) -> ET.ElementTree:
    """
    Read a GPX file into an ElementTree.

    Raises:
      InvalidGpxError on malformed XML, OSError if unreadable.
    """
    try:
        return ET.parse(path)
    except ET.ParseError as e:
        raise InvalidGpxError(f"Could not parse GPX: {path} ({e})") from e


def extract_trackpoints(tree: ET.ElementTree) -> list[TrackPoint]:
    """Extract ordered trackpoints from a GPX tree."""
    root = tree.getroot()
    pts: list[TrackPoint] = []

    for trkpt in root.findall(".//gpx:trkpt", GPX_NS):
        try:
            lat = float(trkpt.get("lat"))
            lon = float(trkpt.get("lon"))
        except (TypeError, ValueError) as e:
            raise InvalidGpxError(f"trkpt without usable lat/lon: {trkpt.attrib}") from e

        time = _parse_gpx_time(trkpt.findtext("gpx:time", default="", namespaces=GPX_NS))

        ele_text = trkpt.findtext("gpx:ele", default="", namespaces=GPX_NS).strip()
        try:
            ele = float(ele_text) if ele_text else None
        except ValueError:
            ele = None

        pts.append(TrackPoint(lat=lat, lon=lon, time=time, ele=ele))

    return pts


def read_trackpoints(path: Path) -> list[TrackPoint]:
    return extract_trackpoints(read_gpx(path))
