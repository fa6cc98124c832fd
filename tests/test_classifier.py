import pytest

from greentrack.models import ActivityLabel as L
from greentrack.motion.classifier import classify


def kmh(v: float) -> float:
    return v / 3.6


@pytest.mark.parametrize(
    "speed_mps, variance, expected",
    [
        (0.0, 0.0, L.STATIONARY),
        (0.0, 10.0, L.STATIONARY),
        (kmh(1.4), 5.0, L.STATIONARY),
        (kmh(1.5), 10.0, L.WALKING),
        (kmh(5.0), 1.2, L.WALKING),
        (kmh(5.0), 0.8, L.CYCLING),
        (kmh(15.0), 0.6, L.CYCLING),
        (kmh(15.0), 0.4, L.TWO_WHEELER),
        (kmh(40.0), 0.35, L.TWO_WHEELER),
        (kmh(40.0), 0.1, L.CAR),
        (kmh(99.0), 0.0, L.CAR),
        (kmh(100.0), 0.0, L.PUBLIC_TRANSPORT),
        (kmh(130.0), 2.0, L.PUBLIC_TRANSPORT),
        # variance exactly 0.3 satisfies neither two_wheeler (> 0.3) nor car (< 0.3)
        (kmh(40.0), 0.3, L.PUBLIC_TRANSPORT),
        # a jogger at 8 km/h with very irregular motion falls through to cycling
        (kmh(8.0), 3.0, L.CYCLING),
    ],
)
def test_rule_table(speed_mps, variance, expected):
    assert classify(speed_mps, variance) is expected


def test_walking_boundary_is_exclusive_on_the_low_side():
    assert classify(1.5 / 3.6, 10) is not L.STATIONARY
    assert classify(1.5 / 3.6, 10) is L.WALKING


def test_bad_inputs_are_treated_as_zero():
    assert classify(-4.0, 1.0) is L.STATIONARY
    assert classify(float("nan"), 1.0) is L.STATIONARY
    assert classify(kmh(40.0), float("nan")) is L.CAR


def test_deterministic():
    results = {classify(kmh(12.0), 0.7) for _ in range(50)}
    assert results == {L.CYCLING}
