from __future__ import annotations

from unittest.mock import MagicMock

import pytest

from trendline.models.payloads import ArticlePayload, GamePayload, ScoreboardPayload
from trendline.services.betting_trends import BettingTrendsService, build_betting_trend, line_movement
from trendline.services.news_service import to_article
from trendline.services.player_trends import build_player_trend
from trendline.services.team_trends import TeamTrendsService, build_team_trend

from conftest import AS_OF, competitor, event


def _games_with_odds(count: int):
    return [
        GamePayload.from_raw(event(
            f"g{n}",
            competitor(f"h{n}", f"Home {n}", "HOM", "5-5", "home"),
            competitor(f"a{n}", f"Away {n}", "AWY", "5-5", "away"),
            odds={"details": "HOM -2.5", "overUnder": 210.0},
        ))
        for n in range(count)
    ]


def test_line_movement_is_deterministic_and_bounded() -> None:
    for n in range(50):
        spread, total = line_movement(f"g{n}")
        assert (spread, total) == line_movement(f"g{n}")
        assert -1.5 <= spread <= 1.4
        assert -2.5 <= total <= 2.4


def test_betting_trend_flags_follow_movement() -> None:
    for game in _games_with_odds(60):
        trend = build_betting_trend("nba", game, AS_OF)
        spread, total = line_movement(game.id)

        assert trend.id == f"betting_NBA_{game.id}"
        assert trend.steam_move == (abs(spread) > 1 or abs(total) > 2)
        if trend.reverse_line_movement:
            assert trend.spread_movement > 0.5
        if trend.steam_move:
            assert trend.severity == "critical"
        assert trend.sharp_action == ("home" if spread > 0.3 else "away" if spread < -0.3 else "none")


def test_betting_trend_needs_odds(scoreboard) -> None:
    live_without_odds = scoreboard.games[1]
    assert build_betting_trend("NBA", live_without_odds, AS_OF) is None


@pytest.mark.asyncio
async def test_betting_service_keeps_only_notable_trends() -> None:
    board = ScoreboardPayload(games=tuple(_games_with_odds(40)))
    scoreboard = MagicMock()
    scoreboard.get_scoreboard = _async_return(board)

    trends = await BettingTrendsService(scoreboard).get_trends("NBA", AS_OF)

    assert trends
    assert all(t.is_notable for t in trends)
    assert len(trends) < 40


def test_team_trend_is_deterministic_and_consistent(scoreboard) -> None:
    lakers = scoreboard.games[0].home
    trend = build_team_trend("NBA", lakers, False, AS_OF)

    assert trend == build_team_trend("NBA", lakers, False, AS_OF)
    assert trend.id == "team_trend_NBA_13"
    assert 3 <= trend.streak_length <= 6
    assert (trend.record.wins, trend.record.losses) == (10, 2)
    assert trend.splits.last_ten.wins + trend.splits.last_ten.losses <= 10
    assert (trend.stats.avg_margin > 0) == (trend.trend_type == "win_streak")


@pytest.mark.asyncio
async def test_team_service_drops_low_streaks_and_caps() -> None:
    board = ScoreboardPayload(games=tuple(_games_with_odds(20)))
    scoreboard = MagicMock()
    scoreboard.get_scoreboard = _async_return(board)

    trends = await TeamTrendsService(scoreboard, max_trends=5).get_trends("NBA", AS_OF)

    assert len(trends) == 5
    assert all(t.streak_length >= 4 for t in trends)


def test_player_trend_from_live_game(scoreboard) -> None:
    game = scoreboard.games[0]
    lebron = game.home.featured_athletes[0]
    trend = build_player_trend("NBA", game, game.home, lebron, AS_OF)

    assert trend.id == "player_trend_NBA_1966"
    assert trend.description == "Next game vs BOS"
    assert trend.next_game.opponent == "Celtics"
    assert trend.next_game.home_away == "home"
    prop = trend.calculated_props[0]
    assert prop.confidence <= 90
    assert prop.recommendation == ("over" if trend.streak_type == "hot" else "under")
    assert abs(trend.stats[0].percent_change) == pytest.approx(20.0)


def test_news_article_ids() -> None:
    with_id = to_article("nba", ArticlePayload("42", "Headline"))
    without_id = to_article("nba", ArticlePayload(None, "Headline"))

    assert with_id.id == "news_NBA_42"
    assert without_id.id == to_article("NBA", ArticlePayload(None, "Headline")).id
    assert without_id.sport == "NBA"


def _async_return(value):
    async def _get(sport):
        return value
    return _get
