# greentrack/motion/classifier.py
"""
Threshold-based activity classification.

Speed alone cannot separate a fast cyclist from a slow car, so each speed
band is paired with a condition on the variance of recent acceleration
magnitudes: human-powered motion is irregular (high variance), vehicles are
smooth (low variance).

Rules are evaluated top to bottom and the first match wins:

    km/h < 1.5                       -> stationary
    km/h < 6    and variance > 1.0   -> walking
    km/h < 20   and variance > 0.5   -> cycling
    km/h < 60   and variance > 0.3   -> two_wheeler
    km/h < 100  and variance < 0.3   -> car
    otherwise                        -> public_transport
"""

from __future__ import annotations

import math
import operator
from dataclasses import dataclass
from typing import Callable, Optional

from greentrack.models import ActivityLabel

MPS_TO_KMH = 3.6


@dataclass(frozen=True)
class Rule:
    label: ActivityLabel
    max_kmh: float
    # (comparison, threshold) on the acceleration variance, None = any
    variance: Optional[tuple[Callable[[float, float], bool], float]] = None

    def matches(self, kmh: float, accel_variance: float) -> bool:
        if not kmh < self.max_kmh:
            return False
        if self.variance is None:
            return True
        cmp, threshold = self.variance
        return cmp(accel_variance, threshold)


RULES: tuple[Rule, ...] = (
    Rule(ActivityLabel.STATIONARY, 1.5),
    Rule(ActivityLabel.WALKING, 6.0, (operator.gt, 1.0)),
    Rule(ActivityLabel.CYCLING, 20.0, (operator.gt, 0.5)),
    Rule(ActivityLabel.TWO_WHEELER, 60.0, (operator.gt, 0.3)),
    Rule(ActivityLabel.CAR, 100.0, (operator.lt, 0.3)),
)

FALLBACK = ActivityLabel.PUBLIC_TRANSPORT


def to_kmh(speed_mps: float) -> float:
    # Rounded so that a km/h boundary survives the m/s round trip (1.5 / 3.6 * 3.6).
    return round(speed_mps * MPS_TO_KMH, 9)


def classify(speed_mps: float, accel_variance: float) -> ActivityLabel:
    """Map (instantaneous speed in m/s, acceleration variance) to an activity label."""
    if not math.isfinite(speed_mps) or speed_mps < 0:
        speed_mps = 0.0
    if not math.isfinite(accel_variance) or accel_variance < 0:
        accel_variance = 0.0

    kmh = to_kmh(speed_mps)
    for rule in RULES:
        if rule.matches(kmh, accel_variance):
            return rule.label
    return FALLBACK
