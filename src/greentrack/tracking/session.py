# greentrack/tracking/session.py
"""
MotionTrackingSession: turns fixes and motion samples into activity events.

Lifecycle is IDLE -> ACTIVE -> STOPPED; a stopped session cannot be
restarted, build a new one instead.

While ACTIVE two pump tasks consume the injected sources:

- each motion sample is appended to the acceleration window (nothing else);
- each fix goes through `handle_position`:
    1. the first fix only seeds `last_position`;
    2. fixes closer than `min_displacement_m` are dropped as jitter,
       `last_position` is kept;
    3. the window variance and the fix speed are classified;
       `stationary` is dropped, `last_position` is kept;
    4. otherwise an ActivityEvent is built, `last_position` advances and the
       event is handed to the sink without waiting for it.

Classification only depends on the reported speed and the distance between
accepted fixes, so irregular fix intervals are fine. Fix staleness/timeouts
are the position source's business.

Without a motion source the variance stays 0 for the whole session, which
biases classification toward car / public transport. That is an accepted
degradation, not an error.

All session state (last position + window) sits behind one lock so
callbacks delivered from platform threads are serialized as a unit.
"""

from __future__ import annotations

import asyncio
import math
import threading
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Optional

from greentrack.carbon import CarbonModel
from greentrack.config import TrackingSettings
from greentrack.errors import (
    GeolocationError,
    GreenTrackError,
    SensorError,
    SensorUnavailable,
    SessionStateError,
)
from greentrack.geo import distance_meters, is_valid_coordinate
from greentrack.models import ActivityEvent, ActivityLabel, GeoCoordinate, MotionSample, SourceType
from greentrack.motion.buffer import DEFAULT_CAPACITY, MotionSampleBuffer
from greentrack.motion.classifier import classify
from greentrack.sink import ActivitySink, ErrorHandler, EventDispatcher
from greentrack.tracking.sources import MotionSource, PositionSource
from greentrack.util.logging import get_logger, utc_now_iso

logger = get_logger(__name__)


class SessionState(str, Enum):
    IDLE = "idle"
    ACTIVE = "active"
    STOPPED = "stopped"


@dataclass(frozen=True)
class TrackingSessionState:
    """Point-in-time view of a session, for diagnostics and reports."""

    state: SessionState
    last_position: Optional[GeoCoordinate]
    window_size: int
    accel_variance: float
    motion_available: bool
    fixes_received: int
    jitter_dropped: int
    stationary_dropped: int
    events_emitted: int


def effective_speed(speed: Optional[float]) -> float:
    """Reported speed in m/s; missing, negative or non-finite counts as 0."""
    if speed is None or not math.isfinite(speed) or speed < 0:
        return 0.0
    return float(speed)


class MotionTrackingSession:
    def __init__(
        self,
        position_source: PositionSource,
        sink: ActivitySink,
        *,
        motion_source: Optional[MotionSource] = None,
        settings: Optional[TrackingSettings] = None,
        carbon: Optional[CarbonModel] = None,
        clock: Callable[[], str] = utc_now_iso,
        on_error: Optional[ErrorHandler] = None,
    ):
        self._position_source = position_source
        self._motion_source = motion_source
        self._sink = sink
        self._settings = settings or TrackingSettings()
        self._carbon = carbon or CarbonModel()
        self._clock = clock
        self._on_error = on_error

        self._state = SessionState.IDLE
        self._lock = threading.Lock()
        self._last_position: Optional[GeoCoordinate] = None
        self._buffer = MotionSampleBuffer(DEFAULT_CAPACITY)
        self._motion_available = motion_source is not None

        self._dispatcher: Optional[EventDispatcher] = None
        self._position_task: Optional[asyncio.Task] = None
        self._motion_task: Optional[asyncio.Task] = None

        self._fixes_received = 0
        self._jitter_dropped = 0
        self._stationary_dropped = 0
        self._events_emitted = 0

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------
    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def last_position(self) -> Optional[GeoCoordinate]:
        return self._last_position

    def start(self) -> None:
        """Subscribe to both sources. Must be called from a running event loop."""
        if self._state is not SessionState.IDLE:
            raise SessionStateError(f"cannot start a session that is {self._state.value}")
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError as e:
            raise SessionStateError("start() needs a running asyncio event loop") from e

        self._dispatcher = EventDispatcher(self._sink, loop, on_error=self._on_error)
        with self._lock:
            self._state = SessionState.ACTIVE

        self._position_task = loop.create_task(self._pump_positions())
        if self._motion_source is None:
            self._degrade_motion(SensorUnavailable("no motion source on this platform"))
        else:
            self._motion_task = loop.create_task(self._pump_motion())
        logger.info(
            "Tracking session started (motion=%s, gate=%.1fm, window=%d)",
            "yes" if self._motion_available else "no",
            self._settings.min_displacement_m,
            DEFAULT_CAPACITY,
        )

    async def stop(self) -> None:
        """
        Unsubscribe both sources, then discard session state.

        Idempotent. No event is produced once this has been called, even if
        a source delivers concurrently; deliveries already handed to the
        sink are left to finish (see `drain`).
        """
        if self._state is SessionState.STOPPED:
            return
        with self._lock:
            self._state = SessionState.STOPPED

        tasks = [t for t in (self._position_task, self._motion_task) if t is not None]
        for t in tasks:
            t.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)

        for src in (self._position_source, self._motion_source):
            aclose = getattr(src, "aclose", None)
            if aclose is None:
                continue
            try:
                await aclose()
            except Exception as e:
                logger.warning("Closing source %r failed: %s", src, e)

        with self._lock:
            self._last_position = None
            self._buffer.clear()
        logger.info(
            "Tracking session stopped (%d fixes, %d events)",
            self._fixes_received,
            self._events_emitted,
        )

    async def join(self) -> None:
        """Wait until the position source is exhausted (or failed)."""
        if self._position_task is None:
            raise SessionStateError("session was never started")
        await asyncio.gather(self._position_task, return_exceptions=True)

    async def drain(self) -> None:
        """Wait for every event handed to the sink to settle."""
        if self._dispatcher is not None:
            await self._dispatcher.drain()

    async def __aenter__(self) -> "MotionTrackingSession":
        self.start()
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.stop()

    # ------------------------------------------------------------------
    # Source pumps
    # ------------------------------------------------------------------
    async def _pump_positions(self) -> None:
        try:
            async for fix in self._position_source:
                self.handle_position(fix)
        except asyncio.CancelledError:
            raise
        except SensorError as e:
            self._report(e)
        except Exception as e:
            err = GeolocationError(f"position source failed: {e}")
            err.__cause__ = e
            self._report(err)
        else:
            logger.info("Position source ended; no further fixes this session")

    async def _pump_motion(self) -> None:
        try:
            async for sample in self._motion_source:  # type: ignore[union-attr]
                self.handle_motion(sample)
        except asyncio.CancelledError:
            raise
        except SensorUnavailable as e:
            self._degrade_motion(e)
        except Exception as e:
            err = SensorUnavailable(f"motion source failed: {e}")
            err.__cause__ = e
            self._report(err)
            self._degrade_motion(err)

    def _degrade_motion(self, reason: SensorUnavailable) -> None:
        with self._lock:
            self._motion_available = False
            self._buffer.clear()
        logger.warning("Motion data unavailable (%s); continuing GPS-only", reason)

    def _report(self, err: GreenTrackError) -> None:
        logger.error("%s: %s", type(err).__name__, err)
        if self._on_error is not None:
            self._on_error(err)

    # ------------------------------------------------------------------
    # Callback entry points
    # ------------------------------------------------------------------
    def handle_motion(self, sample: MotionSample) -> None:
        """Record one acceleration magnitude. Ignored unless ACTIVE."""
        with self._lock:
            if self._state is not SessionState.ACTIVE or not self._motion_available:
                return
            try:
                self._buffer.append(sample.magnitude)
            except ValueError:
                logger.debug("Dropping non-finite motion sample %r", sample)

    def handle_position(self, fix: GeoCoordinate) -> Optional[ActivityEvent]:
        """
        Process one fix; return the emitted event, or None if the fix was
        absorbed (first fix, jitter, stationary, invalid, or not ACTIVE).
        """
        if not is_valid_coordinate(fix):
            logger.warning("Dropping invalid fix %r", fix)
            return None

        with self._lock:
            if self._state is not SessionState.ACTIVE:
                return None
            self._fixes_received += 1

            last = self._last_position
            if last is None:
                self._last_position = fix
                return None

            meters = distance_meters(last, fix)
            if meters < self._settings.min_displacement_m:
                self._jitter_dropped += 1
                return None

            variance = self._buffer.variance() if self._motion_available else 0.0
            label = classify(effective_speed(fix.speed), variance)
            if label is ActivityLabel.STATIONARY:
                self._stationary_dropped += 1
                return None

            distance_km = meters / 1000.0
            saved = self._carbon.carbon_saved_kg(label, distance_km)
            event = ActivityEvent(
                label=label,
                distance_km=distance_km,
                points_earned=self._carbon.points_earned(saved),
                carbon_saved_kg=saved,
                timestamp_iso=self._clock(),
                source_type=SourceType.GPS,
                location=fix,
            )

            # Advances regardless of what the sink later does with the event.
            self._last_position = fix
            self._events_emitted += 1
            self._dispatcher.submit(event)  # type: ignore[union-attr]

        logger.debug(
            "Emitted %s: %.3f km, var=%.3f, %.4f kg saved",
            label.value, distance_km, variance, saved,
        )
        return event

    # ------------------------------------------------------------------
    # Diagnostics
    # ------------------------------------------------------------------
    def snapshot(self) -> TrackingSessionState:
        with self._lock:
            return TrackingSessionState(
                state=self._state,
                last_position=self._last_position,
                window_size=len(self._buffer),
                accel_variance=self._buffer.variance() if self._motion_available else 0.0,
                motion_available=self._motion_available,
                fixes_received=self._fixes_received,
                jitter_dropped=self._jitter_dropped,
                stationary_dropped=self._stationary_dropped,
                events_emitted=self._events_emitted,
            )
