from __future__ import annotations

import json
from datetime import datetime, timezone
from unittest.mock import AsyncMock, MagicMock

import pytest

from trendline.config import ConfigManager
from trendline.models.payloads import ScoreboardPayload

AS_OF = datetime(2024, 1, 10, 18, 0, tzinfo=timezone.utc)


def athlete(athlete_id, name, position="SF"):
    return {"id": athlete_id, "displayName": name, "position": {"abbreviation": position}}


def competitor(team_id, name, abbreviation, record, home_away, leaders=(), injuries=(), moneyline=None):
    raw = {
        "id": team_id,
        "homeAway": home_away,
        "team": {"id": team_id, "displayName": name, "abbreviation": abbreviation},
        "records": [{"summary": record}],
        "leaders": [{"name": "points", "leaders": [{"athlete": a} for a in leaders]}],
        "injuries": list(injuries),
    }
    if moneyline is not None:
        raw["odds"] = {"moneyLine": moneyline}
    return raw


def event(game_id, home, away, state="pre", date="2024-01-11T00:30Z", odds=None):
    competition = {"id": game_id, "competitors": [home, away]}
    if odds is not None:
        competition["odds"] = [odds]
    return {
        "id": game_id,
        "date": date,
        "name": "game",
        "status": {"type": {"state": state, "completed": state == "post"}},
        "competitions": [competition],
    }


def nba_scoreboard_raw():
    """Two games: Celtics @ Lakers upcoming with odds and leaders, Knicks @ Heat live."""
    lakers = competitor(
        "13", "Lakers", "LAL", "10-2", "home",
        leaders=[athlete("1966", "LeBron James", "SF"), athlete("6583", "Anthony Davis", "PF")],
        moneyline=-150,
    )
    celtics = competitor(
        "2", "Celtics", "BOS", "4-8", "away",
        leaders=[athlete("4065648", "Jayson Tatum", "SF")],
        moneyline=130,
    )
    heat = competitor("14", "Heat", "MIA", "6-6", "home")
    knicks = competitor("18", "Knicks", "NY", "7-5", "away")
    return {
        "events": [
            event("401", lakers, celtics, state="pre", odds={"details": "LAL -3.5", "overUnder": 221.5}),
            event("402", heat, knicks, state="in", date="2024-01-10T17:00Z"),
        ]
    }


@pytest.fixture
def scoreboard() -> ScoreboardPayload:
    return ScoreboardPayload.from_raw(nba_scoreboard_raw())


@pytest.fixture
def mock_client(scoreboard):
    """Provider client double; every fetch method is an AsyncMock returning parsed payloads."""
    client = MagicMock()
    client.__aenter__ = AsyncMock(return_value=client)
    client.__aexit__ = AsyncMock(return_value=None)
    client.fetch_scoreboard = AsyncMock(return_value=scoreboard)
    client.fetch_teams = AsyncMock(return_value=[])
    client.fetch_team_roster = AsyncMock(return_value=[])
    client.fetch_team_injuries = AsyncMock(return_value=[])
    client.fetch_league_injuries = AsyncMock(return_value=[])
    client.fetch_athlete_statistics = AsyncMock(return_value={})
    client.fetch_predictor = AsyncMock()
    client.fetch_game_summary = AsyncMock(return_value={})
    client.fetch_news = AsyncMock(return_value=[])
    return client


@pytest.fixture
def write_config(tmp_path, monkeypatch):
    """Write a JSON config (NBA only unless overridden) and load it."""
    for var in ("TRENDLINE_SITE_BASE_URL", "TRENDLINE_CORE_BASE_URL", "TRENDLINE_HTTP_TIMEOUT",
                "TRENDLINE_SNAPSHOT_PATH"):
        monkeypatch.delenv(var, raising=False)

    def _write(**sections) -> ConfigManager:
        sections.setdefault("aggregation", {"sports": ["NBA"]})
        sections.setdefault("cache", {"snapshot_path": str(tmp_path / "snapshots.json")})
        path = tmp_path / "config.json"
        path.write_text(json.dumps(sections))
        return ConfigManager(str(path))

    return _write
