from __future__ import annotations

from datetime import datetime, timezone

import pytest

from trendline.analytics.scoring import (
    SEVERITY_RANK,
    betting_severity,
    impact_score,
    injury_severity,
    is_high_impact,
    max_severity,
    percent_change_severity,
    prediction_confidence,
    round_half_up,
    streak_severity,
    usage_rate,
)
from trendline.analytics.stat_normalizer import normalize_stats
from trendline.models.trends import GameImpact, InjuryTrend, PlayerImpact

STATUSES = ("out", "doubtful", "questionable", "probable", "day-to-day")


def _injury(status: str, impact: int, spread_change: float = 0.0) -> InjuryTrend:
    return InjuryTrend(
        id="injury_NBA_1",
        sport="NBA",
        title="Player - OUT",
        description="Ankle",
        timestamp=datetime(2024, 1, 10, tzinfo=timezone.utc),
        is_live=False,
        player_id="1",
        player_name="Player",
        team_id="13",
        team_name="Lakers",
        position="SF",
        injury_status=status,
        injury_details="Ankle",
        player_impact=PlayerImpact(impact_score=impact),
        source="league",
        game_impact=GameImpact("401", "Celtics", None, spread_change, 0.0),
    )


def test_round_half_up() -> None:
    assert round_half_up(2.5) == 3
    assert round_half_up(68.5) == 69
    assert round_half_up(2.49) == 2


@pytest.mark.parametrize("sport,position", [
    ("NBA", "PG"), ("NBA", "C"), ("NFL", "QB"), ("NFL", "RB"), ("MLB", "SP"), ("NHL", "G"), ("NHL", None),
])
def test_impact_without_stats_stays_in_bounds(sport, position) -> None:
    assert 5 <= impact_score(sport, None, position) <= 100


def test_impact_without_stats_uses_position_weight() -> None:
    assert impact_score("NBA", None, "C") == 60
    assert impact_score("NFL", None, "RB") == 52
    assert impact_score("MLB", None, "SP") == 55
    assert impact_score("NHL", None, "G") == 63


def test_star_basketball_stats_hit_ceiling() -> None:
    stats = normalize_stats("NBA", {"avgPoints": 34.0, "avgAssists": 10.0, "avgRebounds": 13.0, "avgMinutes": 37.0})
    assert impact_score("NBA", stats, "PG") == 100


def test_more_production_never_lowers_impact() -> None:
    low = normalize_stats("NBA", {"avgPoints": 6.0, "avgMinutes": 14.0})
    high = normalize_stats("NBA", {"avgPoints": 22.0, "avgMinutes": 32.0})
    assert impact_score("NBA", low, "SG") < impact_score("NBA", high, "SG")


def test_football_qb_uses_passing_numbers() -> None:
    stats = normalize_stats("NFL", {"gamesPlayed": 10, "passingYards": 3000, "passingTouchdowns": 25})
    assert stats.passing_yards_per_game == 300
    assert impact_score("NFL", stats, "QB") > impact_score("NFL", None, "QB")


def test_baseball_normalizes_home_runs_per_162() -> None:
    stats = normalize_stats("MLB", {"gamesPlayed": 81, "homeRuns": 20, "avg": 0.300, "OPS": 0.950})
    assert stats.home_runs_per_162 == pytest.approx(40.0)
    assert 5 <= impact_score("MLB", stats, "OF") <= 100


def test_hockey_and_empty_stats_normalize_to_none() -> None:
    assert normalize_stats("NHL", {"goals": 30.0}) is None
    assert normalize_stats("NBA", {}) is None


def test_player_impact_is_clamped() -> None:
    assert PlayerImpact(impact_score=1).impact_score == 5
    assert PlayerImpact(impact_score=250).impact_score == 100


def test_usage_rate_default_and_estimate() -> None:
    assert usage_rate(None) == 20
    stats = normalize_stats("NBA", {"avgPoints": 28.0, "avgMinutes": 36.0})
    assert usage_rate(stats) == 100


@pytest.mark.parametrize("status,impact,expected", [
    ("out", 71, "critical"),
    ("out", 70, "high"),
    ("out", 41, "high"),
    ("out", 40, "medium"),
    ("doubtful", 61, "high"),
    ("doubtful", 60, "low"),
    ("questionable", 71, "medium"),
    ("questionable", 70, "low"),
    ("probable", 99, "low"),
    ("day-to-day", 99, "low"),
])
def test_injury_severity_table(status, impact, expected) -> None:
    assert injury_severity(status, impact) == expected


def test_injury_severity_is_monotonic_in_impact() -> None:
    for status in STATUSES:
        ranks = [SEVERITY_RANK[injury_severity(status, impact)] for impact in range(5, 101)]
        assert ranks == sorted(ranks), status


def test_out_is_never_less_severe_than_other_statuses() -> None:
    for impact in range(5, 101):
        out_rank = SEVERITY_RANK[injury_severity("out", impact)]
        for status in STATUSES[1:]:
            assert out_rank >= SEVERITY_RANK[injury_severity(status, impact)]


def test_streak_and_percent_change_severity() -> None:
    assert [streak_severity(n) for n in (3, 4, 5, 6, 9)] == ["low", "medium", "medium", "high", "high"]
    assert percent_change_severity(-30) == "high"
    assert percent_change_severity(20) == "medium"
    assert percent_change_severity(15) == "low"


def test_betting_severity_and_max() -> None:
    assert betting_severity(True, True, 0.0) == "critical"
    assert betting_severity(False, True, 0.0) == "high"
    assert betting_severity(False, False, -0.6) == "medium"
    assert betting_severity(False, False, 0.5) == "low"
    assert max_severity("low", "high", "medium") == "high"
    assert max_severity() == "low"


def test_prediction_confidence() -> None:
    assert prediction_confidence(50, 0, False) == 50
    assert prediction_confidence(76, 12, False) == 83
    assert prediction_confidence(76, 12, True) == 68
    assert prediction_confidence(100, 100, False) == 95
    assert 0 <= prediction_confidence(0, 0, True) <= 100


def test_is_high_impact() -> None:
    assert is_high_impact(_injury("out", 61))
    assert not is_high_impact(_injury("out", 60))
    assert is_high_impact(_injury("questionable", 30, spread_change=-1.5))
    assert not is_high_impact(_injury("questionable", 30, spread_change=1.0))
