from pathlib import Path
import pytest

from greentrack.sink import MemorySink


FIXED_NOW = "2026-10-19T08:30:00+00:00"


@pytest.fixture
def sample_gpx_path() -> Path:
    return Path(__file__).parent / "data" / "sample.gpx"


@pytest.fixture
def sink() -> MemorySink:
    return MemorySink()


@pytest.fixture
def clock():
    return lambda: FIXED_NOW
