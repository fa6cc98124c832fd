# greentrack/sink.py
"""
Activity sink contract and non-blocking delivery.

A sink is whatever persists an ActivityEvent and updates the user's
aggregate stats. The tracking core only ever hands events over through an
EventDispatcher: `submit()` schedules `sink.accept()` and returns at once,
so a slow or failing sink never holds up the next sensor callback.
Failures are logged and reported, never retried.
"""

from __future__ import annotations

import asyncio
import json
import threading
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Optional, Protocol, runtime_checkable

from greentrack.errors import GreenTrackError, SinkError
from greentrack.models import ActivityEvent
from greentrack.util.logging import get_logger

logger = get_logger(__name__)

ErrorHandler = Callable[[GreenTrackError], None]


@runtime_checkable
class ActivitySink(Protocol):
    async def accept(self, event: ActivityEvent) -> None:
        """Persist `event`; raise SinkError on failure."""
        ...


# ---------------------------------------------------------------------------
# Dispatch
# ---------------------------------------------------------------------------
class EventDispatcher:
    """
    Fire-and-forget hand-off of events to a sink on one asyncio loop.

    `submit()` may be called from the loop thread or from any other thread;
    delivery always runs as a task on `loop`.
    """

    def __init__(
        self,
        sink: ActivitySink,
        loop: asyncio.AbstractEventLoop,
        *,
        on_error: Optional[ErrorHandler] = None,
    ):
        self._sink = sink
        self._loop = loop
        self._on_error = on_error
        self._pending: set[asyncio.Task] = set()
        self._lock = threading.Lock()
        self.delivered = 0
        self.failed = 0

    def submit(self, event: ActivityEvent) -> None:
        try:
            running = asyncio.get_running_loop()
        except RuntimeError:
            running = None

        if running is self._loop:
            self._spawn(event)
        else:
            self._loop.call_soon_threadsafe(self._spawn, event)

    def _spawn(self, event: ActivityEvent) -> None:
        task = self._loop.create_task(self._deliver(event))
        with self._lock:
            self._pending.add(task)
        task.add_done_callback(self._discard)

    def _discard(self, task: asyncio.Task) -> None:
        with self._lock:
            self._pending.discard(task)

    async def _deliver(self, event: ActivityEvent) -> None:
        try:
            await self._sink.accept(event)
        except SinkError as e:
            self._report(e, event)
        except asyncio.CancelledError:
            raise
        except Exception as e:
            err = SinkError(f"sink {type(self._sink).__name__} failed: {e}")
            err.__cause__ = e
            self._report(err, event)
        else:
            self.delivered += 1

    def _report(self, err: SinkError, event: ActivityEvent) -> None:
        self.failed += 1
        logger.error("Sink rejected %s event (%s): %s", event.name, event.timestamp_iso, err)
        if self._on_error is not None:
            self._on_error(err)

    @property
    def pending(self) -> int:
        with self._lock:
            return len(self._pending)

    async def drain(self) -> None:
        """Wait until every submitted event has been delivered or has failed."""
        # Let call_soon_threadsafe hand-offs turn into tasks first.
        await asyncio.sleep(0)
        while True:
            with self._lock:
                tasks = list(self._pending)
            if not tasks:
                return
            await asyncio.gather(*tasks, return_exceptions=True)


# ---------------------------------------------------------------------------
# Reference sinks
# ---------------------------------------------------------------------------
@dataclass
class ProfileTotals:
    """Aggregate stats a sink keeps alongside the stored events."""

    activity_count: int = 0
    total_points: int = 0
    total_carbon_saved_kg: float = 0.0
    total_distance_km: float = 0.0
    last_activity_iso: Optional[str] = None

    def add(self, event: ActivityEvent) -> None:
        self.activity_count += 1
        self.total_points += event.points_earned
        self.total_carbon_saved_kg += event.carbon_saved_kg
        self.total_distance_km += event.distance_km
        self.last_activity_iso = event.timestamp_iso


class MemorySink:
    """Keeps accepted events in memory and updates ProfileTotals."""

    def __init__(self) -> None:
        self.events: list[ActivityEvent] = []
        self.totals = ProfileTotals()

    async def accept(self, event: ActivityEvent) -> None:
        self.events.append(event)
        self.totals.add(event)


class JsonlSink:
    """
    Append one JSON object per event to `path`.

    The parent directory is created on first write. OSErrors surface as
    SinkError.
    """

    def __init__(self, path: Path):
        self.path = Path(path).expanduser()
        self.totals = ProfileTotals()

    async def accept(self, event: ActivityEvent) -> None:
        line = json.dumps(event.to_dict(), ensure_ascii=False)
        try:
            await asyncio.to_thread(self._append, line)
        except OSError as e:
            raise SinkError(f"Failed to write activity to {self.path}: {e}") from e
        self.totals.add(event)

    def _append(self, line: str) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        with self.path.open("a", encoding="utf-8") as fh:
            fh.write(line + "\n")
