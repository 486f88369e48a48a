from __future__ import annotations

import pytest

from pygeotrack.config import TrackerConfig
from pygeotrack.exceptions import ConfigError


def test_defaults() -> None:
    config = TrackerConfig()
    assert config.default_radius_meters == 1000.0
    assert config.subscriber_queue_size == 256
    assert config.log_payloads is False


def test_from_env(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("GEOTRACK_DEFAULT_RADIUS_M", "2500")
    monkeypatch.setenv("GEOTRACK_SUBSCRIBER_QUEUE_SIZE", "16")
    monkeypatch.setenv("GEOTRACK_LOG_PAYLOADS", "yes")
    config = TrackerConfig.from_env()
    assert config.default_radius_meters == 2500.0
    assert config.subscriber_queue_size == 16
    assert config.log_payloads is True


def test_overrides_win_over_env(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("GEOTRACK_SUBSCRIBER_QUEUE_SIZE", "16")
    monkeypatch.setenv("GEOTRACK_LOG_PAYLOADS", "1")
    config = TrackerConfig.from_env(subscriber_queue_size=8, log_payloads=False)
    assert config.subscriber_queue_size == 8
    assert config.log_payloads is False


def test_unparseable_env(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("GEOTRACK_INDEX_CELL_DEGREES", "wide")
    with pytest.raises(ConfigError, match="GEOTRACK_INDEX_CELL_DEGREES"):
        TrackerConfig.from_env()


@pytest.mark.parametrize("raw,expected", [("ON", True), (" y ", True), ("off", False), ("", False)])
def test_log_payloads_flag_words(monkeypatch: pytest.MonkeyPatch, raw: str, expected: bool) -> None:
    monkeypatch.setenv("GEOTRACK_LOG_PAYLOADS", raw)
    assert TrackerConfig.from_env().log_payloads is expected


def test_unrecognized_log_payloads_flag(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("GEOTRACK_LOG_PAYLOADS", "maybe")
    with pytest.raises(ConfigError, match="GEOTRACK_LOG_PAYLOADS"):
        TrackerConfig.from_env()


@pytest.mark.parametrize(
    "kwargs",
    [
        {"default_radius_meters": -1.0},
        {"default_radius_meters": float("inf")},
        {"subscriber_queue_size": 0},
        {"index_cell_degrees": 0.0},
        {"recent_activity_days": -1.0},
    ],
)
def test_invalid_values(kwargs: dict[str, float]) -> None:
    with pytest.raises(ConfigError):
        TrackerConfig(**kwargs)  # type: ignore[arg-type]
