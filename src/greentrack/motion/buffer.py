# greentrack/motion/buffer.py
"""
Sliding window of recent acceleration magnitudes.

The window is owned by a single tracking session and is only touched from
its sensor callbacks, so it carries no locking of its own.
"""

from __future__ import annotations

import math
from collections import deque

DEFAULT_CAPACITY = 20


def acceleration_magnitude(x: float, y: float, z: float) -> float:
    """Euclidean norm of a three-axis acceleration vector (m/s^2)."""
    return math.sqrt(x * x + y * y + z * z)


class MotionSampleBuffer:
    """
    Bounded FIFO of acceleration magnitudes with rolling statistics.

    Oldest samples are evicted once `capacity` is reached; iteration and
    `samples()` return arrival order (oldest first).
    """

    def __init__(self, capacity: int = DEFAULT_CAPACITY):
        if capacity < 1:
            raise ValueError(f"capacity must be >= 1, got {capacity}")
        self._samples: deque[float] = deque(maxlen=capacity)

    @property
    def capacity(self) -> int:
        return self._samples.maxlen  # type: ignore[return-value]

    def __len__(self) -> int:
        return len(self._samples)

    def __iter__(self):
        return iter(self._samples)

    def append(self, magnitude: float) -> None:
        if not math.isfinite(magnitude):
            raise ValueError(f"magnitude must be finite, got {magnitude!r}")
        self._samples.append(float(magnitude))

    def samples(self) -> list[float]:
        return list(self._samples)

    def clear(self) -> None:
        self._samples.clear()

    def mean(self) -> float:
        """Mean of the window; 0.0 when empty."""
        if not self._samples:
            return 0.0
        return math.fsum(self._samples) / len(self._samples)

    def variance(self) -> float:
        """Population variance of the window; 0.0 with fewer than 2 samples."""
        n = len(self._samples)
        if n < 2:
            return 0.0
        m = self.mean()
        return math.fsum((s - m) ** 2 for s in self._samples) / n
