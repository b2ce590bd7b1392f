from __future__ import annotations

import json

import pytest

from trendline.config import ConfigManager, PollingConfig
from trendline.utils.errors import ConfigError


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for var in ("TRENDLINE_SITE_BASE_URL", "TRENDLINE_CORE_BASE_URL", "TRENDLINE_HTTP_TIMEOUT",
                "TRENDLINE_SNAPSHOT_PATH"):
        monkeypatch.delenv(var, raising=False)


def _write(tmp_path, data) -> str:
    path = tmp_path / "config.json"
    path.write_text(json.dumps(data))
    return str(path)


def test_defaults_without_file() -> None:
    config = ConfigManager()

    assert config.sports == ["NBA", "NFL", "MLB", "NHL"]
    assert config.provider.timeout == 10.0
    assert config.cache.scoreboard_ttl == 30
    assert config.polling.live_interval == 12
    assert config.fallback.enabled is True
    assert config.snapshot_path == "trendline_snapshots.json"


def test_missing_file_falls_back_to_defaults(tmp_path) -> None:
    config = ConfigManager(str(tmp_path / "nope.json"))
    assert config.aggregation.player_trend_limit == 20


def test_file_values_and_sport_normalization(tmp_path) -> None:
    config = ConfigManager(_write(tmp_path, {
        "aggregation": {"sports": ["nba", " nfl "], "max_team_trends": 5},
        "polling": {"live_interval": 10, "scheduled_interval": 20, "final_interval": 60},
    }))

    assert config.sports == ["NBA", "NFL"]
    assert config.aggregation.max_team_trends == 5
    assert config.polling.interval_for("live") == 10
    assert config.polling.interval_for("scheduled") == 20
    assert config.polling.interval_for("final") == 60


def test_env_overrides_file(tmp_path, monkeypatch) -> None:
    monkeypatch.setenv("TRENDLINE_HTTP_TIMEOUT", "4.5")
    monkeypatch.setenv("TRENDLINE_SNAPSHOT_PATH", str(tmp_path / "snap.json"))
    config = ConfigManager(_write(tmp_path, {"provider": {"timeout": 20}}))

    assert config.provider.timeout == 4.5
    assert config.snapshot_path == str(tmp_path / "snap.json")


def test_bad_env_number_raises_config_error(monkeypatch) -> None:
    monkeypatch.setenv("TRENDLINE_HTTP_TIMEOUT", "soon")
    with pytest.raises(ConfigError) as exc:
        ConfigManager()
    assert exc.value.config_key == "TRENDLINE_HTTP_TIMEOUT"


@pytest.mark.parametrize("section,values,message", [
    ("polling", {"live_interval": 40, "scheduled_interval": 30}, "Invalid polling config"),
    ("aggregation", {"sports": ["XFL"]}, "Invalid aggregation config"),
    ("aggregation", {"high_confidence_threshold": 120}, "Invalid aggregation config"),
    ("provider", {"timeout": 0}, "Invalid provider config"),
    ("provider", {"source_timeout": 0}, "Invalid provider config"),
    ("cache", {"news_ttl": -1}, "Invalid cache config"),
    ("fallback", {"synthetic_injury_count": 0}, "Invalid fallback config"),
])
def test_invalid_sections_raise(tmp_path, section, values, message) -> None:
    with pytest.raises(ConfigError, match=message):
        ConfigManager(_write(tmp_path, {section: values}))


def test_config_error_is_a_value_error(tmp_path) -> None:
    with pytest.raises(ValueError):
        ConfigManager(_write(tmp_path, {"aggregation": {"sports": []}}))


def test_invalid_json_raises(tmp_path) -> None:
    path = tmp_path / "config.json"
    path.write_text("{not json")
    with pytest.raises(json.JSONDecodeError):
        ConfigManager(str(path))


def test_snapshot_path_disabled(tmp_path) -> None:
    config = ConfigManager(_write(tmp_path, {"cache": {"snapshot_enabled": False}}))
    assert config.snapshot_path is None


def test_to_dict_round_trips_through_json(tmp_path) -> None:
    config = ConfigManager(_write(tmp_path, {"aggregation": {"sports": ["MLB"]}}))
    reloaded = ConfigManager(_write(tmp_path, config.to_dict()))
    assert reloaded.to_dict() == config.to_dict()


def test_interval_for_unknown_status_uses_scheduled() -> None:
    assert PollingConfig().interval_for("postponed") == 30
