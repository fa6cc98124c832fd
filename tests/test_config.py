import asyncio
from pathlib import Path

import pytest

from greentrack.carbon import CarbonModel
from greentrack.config import load_config
from greentrack.errors import ConfigError
from greentrack.models import MotionSample
from greentrack.motion.buffer import DEFAULT_CAPACITY
from greentrack.sink import MemorySink
from greentrack.tracking.session import MotionTrackingSession


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for var in ("GREENTRACK_MIN_DISPLACEMENT_M", "GREENTRACK_SAMPLE_WINDOW", "GREENTRACK_WORK_ROOT"):
        monkeypatch.delenv(var, raising=False)


def test_defaults(tmp_path: Path):
    cfg = load_config(repo_root=tmp_path, user_config_path=tmp_path / "missing.toml")
    assert cfg.tracking.min_displacement_m == 20.0
    assert cfg.carbon.factors == {}
    assert cfg.source["tracking.min_displacement_m"] == "default"


def test_user_overrides_repo(tmp_path: Path):
    (tmp_path / "config").mkdir()
    repo_cfg = tmp_path / "config" / "config.toml"
    repo_cfg.write_text(
        "[tracking]\nmin_displacement_m = 30\n"
        "[carbon.factors]\ne_bike = 0.01\n",
        encoding="utf-8",
    )
    user_cfg = tmp_path / "user.toml"
    user_cfg.write_text("[tracking]\nmin_displacement_m = 25.5\n", encoding="utf-8")

    cfg = load_config(repo_root=tmp_path, user_config_path=user_cfg)

    assert cfg.tracking.min_displacement_m == 25.5
    assert cfg.carbon.factors == {"e_bike": 0.01}
    assert cfg.source["tracking.min_displacement_m"] == f"user:{user_cfg}"
    assert cfg.source["carbon.factors"] == f"repo:{repo_cfg}"


def test_env_overrides_files(tmp_path: Path, monkeypatch):
    user_cfg = tmp_path / "user.toml"
    user_cfg.write_text("[replay]\nwork_root = \"/data/gps\"\n", encoding="utf-8")
    monkeypatch.setenv("GREENTRACK_MIN_DISPLACEMENT_M", "15")
    monkeypatch.setenv("GREENTRACK_WORK_ROOT", str(tmp_path / "work"))

    cfg = load_config(repo_root=tmp_path, user_config_path=user_cfg)

    assert cfg.tracking.min_displacement_m == 15.0
    assert cfg.replay.work_root == tmp_path / "work"
    assert cfg.source["replay.work_root"] == "env:GREENTRACK_WORK_ROOT"


def test_motion_window_is_not_configurable(tmp_path: Path, monkeypatch):
    user_cfg = tmp_path / "user.toml"
    user_cfg.write_text("[tracking]\nsample_window = 50\n", encoding="utf-8")
    monkeypatch.setenv("GREENTRACK_SAMPLE_WINDOW", "50")

    cfg = load_config(repo_root=tmp_path, user_config_path=user_cfg)
    assert not hasattr(cfg.tracking, "sample_window")

    async def fill():
        async def empty():
            return
            yield

        session = MotionTrackingSession(
            empty(), MemorySink(), motion_source=empty(), settings=cfg.tracking
        )
        session.start()
        for i in range(50):
            session.handle_motion(MotionSample(9.0 + i % 3))
        snap = session.snapshot()
        await session.stop()
        return snap

    snap = asyncio.run(fill())
    assert snap.window_size == DEFAULT_CAPACITY == 20


def test_malformed_toml_fails_loudly(tmp_path: Path):
    bad = tmp_path / "user.toml"
    bad.write_text("[tracking\nmin_displacement_m = ", encoding="utf-8")
    with pytest.raises(ConfigError):
        load_config(repo_root=tmp_path, user_config_path=bad)


def test_invalid_values_are_config_errors(tmp_path: Path):
    user_cfg = tmp_path / "user.toml"
    user_cfg.write_text("[tracking]\nmin_displacement_m = -5\n", encoding="utf-8")
    with pytest.raises(ConfigError):
        load_config(repo_root=tmp_path, user_config_path=user_cfg)


@pytest.mark.parametrize(
    "line",
    [
        'car = "0.2O"',
        "car = -0.1",
        "e_bike = true",
        'bus = "nan"',
        "bus = [0.1]",
    ],
)
def test_bad_emission_factor_fails_loudly(tmp_path: Path, line):
    user_cfg = tmp_path / "user.toml"
    user_cfg.write_text(f"[carbon.factors]\n{line}\n", encoding="utf-8")

    with pytest.raises(ConfigError) as exc:
        load_config(repo_root=tmp_path, user_config_path=user_cfg)

    assert "carbon.factors." in str(exc.value)
    assert str(user_cfg) in str(exc.value)


def test_numeric_string_factor_is_accepted(tmp_path: Path):
    user_cfg = tmp_path / "user.toml"
    user_cfg.write_text('[carbon.factors]\ncar = "0.192"\n', encoding="utf-8")

    cfg = load_config(repo_root=tmp_path, user_config_path=user_cfg)
    model = CarbonModel(cfg.carbon.factors)

    assert model.baseline_factor == pytest.approx(0.192)
    assert model.carbon_saved_kg("walking", 10.0) == pytest.approx(1.92)
