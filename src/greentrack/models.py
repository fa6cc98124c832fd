# greentrack/models.py
"""
Data model for greentrack.

All records are immutable snapshots. GeoCoordinate and MotionSample come
from the sensor sources; ActivityEvent is what gets handed to a sink.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Optional, Union


class ActivityLabel(str, Enum):
    """Closed set of labels the classifier can produce."""

    STATIONARY = "stationary"
    WALKING = "walking"
    CYCLING = "cycling"
    TWO_WHEELER = "two_wheeler"
    CAR = "car"
    PUBLIC_TRANSPORT = "public_transport"


class SourceType(str, Enum):
    GPS = "gps"
    MANUAL = "manual"


@dataclass(frozen=True, slots=True)
class GeoCoordinate:
    """
    One fix from the position source.

    Attributes:
        latitude: Latitude in decimal degrees.
        longitude: Longitude in decimal degrees.
        speed: Ground speed in meters/second, if the platform reports one.
    """

    latitude: float
    longitude: float
    speed: Optional[float] = None


@dataclass(frozen=True, slots=True)
class MotionSample:
    """Acceleration magnitude (m/s^2) from one motion-source callback."""

    magnitude: float


@dataclass(frozen=True, slots=True)
class ActivityEvent:
    """
    A finished activity, created once and never mutated.

    ``label`` is an ActivityLabel for GPS events and free text for manual
    entries. ``carbon_saved_kg`` may be negative when the activity emits
    more than the car baseline.
    """

    label: Union[ActivityLabel, str]
    distance_km: float
    points_earned: int
    carbon_saved_kg: float
    timestamp_iso: str
    source_type: SourceType
    location: Optional[GeoCoordinate] = None

    def __post_init__(self) -> None:
        if self.distance_km < 0:
            raise ValueError(f"distance_km must be >= 0, got {self.distance_km}")
        if self.points_earned < 0:
            raise ValueError(f"points_earned must be >= 0, got {self.points_earned}")

    @property
    def name(self) -> str:
        if isinstance(self.label, ActivityLabel):
            return self.label.value
        return self.label

    def to_dict(self) -> dict[str, Any]:
        """JSON-ready activity record, keyed the way the activity consumer stores it."""
        loc = None
        if self.location is not None:
            loc = {"latitude": self.location.latitude, "longitude": self.location.longitude}
        return {
            "name": self.name,
            "distance_km": self.distance_km,
            "points_earned": self.points_earned,
            "carbon_saved": self.carbon_saved_kg,
            "date": self.timestamp_iso,
            "location": loc,
            "source_type": self.source_type.value,
        }
