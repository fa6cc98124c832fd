# greentrack/manual.py
"""
Manual activity entries (the non-GPS path).

Values are caller-supplied and pass through verbatim; no carbon or points
derivation happens here. The submitter is trusted for the numbers, only the
name and the points are checked.
"""

from __future__ import annotations

import math
import numbers
from typing import Callable

from greentrack.errors import ValidationError
from greentrack.models import ActivityEvent, SourceType
from greentrack.sink import ActivitySink
from greentrack.util.logging import get_logger, utc_now_iso

logger = get_logger(__name__)


class ManualActivityLogger:
    def __init__(self, sink: ActivitySink, *, clock: Callable[[], str] = utc_now_iso):
        self._sink = sink
        self._clock = clock

    def build(self, name: str, points_earned: int, carbon_saved_kg: float) -> ActivityEvent:
        """Validate and construct a manual ActivityEvent without emitting it."""
        if not isinstance(name, str) or not name.strip():
            raise ValidationError("activity name must not be empty")
        if isinstance(points_earned, bool) or not isinstance(points_earned, numbers.Integral):
            raise ValidationError(f"points_earned must be an integer, got {points_earned!r}")
        if points_earned <= 0:
            raise ValidationError(f"points_earned must be > 0, got {points_earned}")
        if not isinstance(carbon_saved_kg, numbers.Real) or not math.isfinite(carbon_saved_kg):
            raise ValidationError(f"carbon_saved_kg must be a finite number, got {carbon_saved_kg!r}")

        return ActivityEvent(
            label=name,
            distance_km=0.0,
            points_earned=int(points_earned),
            carbon_saved_kg=float(carbon_saved_kg),
            timestamp_iso=self._clock(),
            source_type=SourceType.MANUAL,
            location=None,
        )

    async def log_manual(self, name: str, points_earned: int, carbon_saved_kg: float) -> ActivityEvent:
        """
        Validate, build and hand a manual entry to the sink.

        Raises:
          ValidationError: empty name or non-positive points (sink not called).
          SinkError: the sink rejected the entry.
        """
        event = self.build(name, points_earned, carbon_saved_kg)
        await self._sink.accept(event)
        logger.info("Logged manual activity %r (%d points)", event.name, event.points_earned)
        return event
