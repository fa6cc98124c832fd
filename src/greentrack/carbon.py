# greentrack/carbon.py
"""
Carbon-saving estimate relative to a car baseline.

    carbon_saved_kg = (car_factor - label_factor) * distance_km
    points_earned   = max(0, floor(carbon_saved_kg * 100 + 0.5))

The saving is never clamped: an activity with a higher factor than the car
yields a negative value. Points round half up and are floored at zero.
"""

from __future__ import annotations

import math
from typing import Mapping, Optional, Union

from greentrack.models import ActivityLabel

# kg CO2 per km
EMISSION_FACTORS_KG_PER_KM: Mapping[ActivityLabel, float] = {
    ActivityLabel.WALKING: 0.0,
    ActivityLabel.CYCLING: 0.0,
    ActivityLabel.TWO_WHEELER: 0.075,
    ActivityLabel.CAR: 0.192,
    ActivityLabel.PUBLIC_TRANSPORT: 0.08,
}

BASELINE = ActivityLabel.CAR
POINTS_PER_KG = 100


class CarbonModel:
    """
    Emission-factor lookup plus the saving / points formulas.

    `factors` may extend or override the default table (keys are labels or
    their string values); the baseline is always the car factor.
    """

    def __init__(self, factors: Optional[Mapping[Union[ActivityLabel, str], float]] = None):
        table: dict[str, float] = {k.value: v for k, v in EMISSION_FACTORS_KG_PER_KM.items()}
        for key, value in (factors or {}).items():
            table[_key(key)] = float(value)
        if BASELINE.value not in table:
            raise ValueError("emission factors must include the car baseline")
        self._factors = table

    @property
    def baseline_factor(self) -> float:
        return self._factors[BASELINE.value]

    def factor(self, label: Union[ActivityLabel, str]) -> float:
        key = _key(label)
        try:
            return self._factors[key]
        except KeyError:
            raise ValueError(f"no emission factor for activity {key!r}") from None

    def carbon_saved_kg(self, label: Union[ActivityLabel, str], distance_km: float) -> float:
        if distance_km < 0:
            raise ValueError(f"distance_km must be >= 0, got {distance_km}")
        return (self.baseline_factor - self.factor(label)) * distance_km

    def points_earned(self, carbon_saved_kg: float) -> int:
        return max(0, math.floor(carbon_saved_kg * POINTS_PER_KG + 0.5))


def _key(label: Union[ActivityLabel, str]) -> str:
    return label.value if isinstance(label, ActivityLabel) else str(label)


_DEFAULT = CarbonModel()


def carbon_saved_kg(label: Union[ActivityLabel, str], distance_km: float) -> float:
    """Carbon saved (kg) versus driving the same distance, using the default table."""
    return _DEFAULT.carbon_saved_kg(label, distance_km)


def points_earned(carbon_saved_kg: float) -> int:
    return _DEFAULT.points_earned(carbon_saved_kg)
