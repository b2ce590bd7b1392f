from __future__ import annotations

from datetime import datetime, timedelta, timezone

from trendline.analytics.fallback import (
    FALLBACK_ROSTERS,
    SYNTHETIC_SOURCE,
    PlayerSeed,
    describe_injury,
    stable_hash,
    synthesize_injuries,
    synthesize_player_trends,
)

AS_OF = datetime(2024, 1, 10, 18, 0, tzinfo=timezone.utc)


def test_stable_hash_is_deterministic() -> None:
    assert stable_hash("NBA:1966") == stable_hash("NBA:1966")
    assert stable_hash("NBA:1966") != stable_hash("NBA:1967")
    assert stable_hash("") >= 0


def test_synthetic_injuries_are_identical_across_calls() -> None:
    assert synthesize_injuries("NBA", AS_OF, 4) == synthesize_injuries("nba", AS_OF, 4)


def test_synthetic_injuries_follow_status_cycle_and_ranges() -> None:
    injuries = synthesize_injuries("NFL", AS_OF, 4)

    assert [i.injury_status for i in injuries] == ["out", "doubtful", "questionable", "probable"]
    assert 60 <= injuries[0].impact_score < 90
    assert 50 <= injuries[1].impact_score < 70
    assert all(30 <= i.impact_score < 50 for i in injuries[2:])
    assert all(i.source == SYNTHETIC_SOURCE for i in injuries)
    assert all(i.sport == "NFL" for i in injuries)


def test_synthetic_injury_ids_are_unique_and_count_is_capped() -> None:
    injuries = synthesize_injuries("NHL", AS_OF, 10)

    assert len(injuries) == len(FALLBACK_ROSTERS["NHL"])
    assert len({i.id for i in injuries}) == len(injuries)
    assert all(i.id.startswith("injury_NHL_synthetic_nhl_") for i in injuries)


def test_synthetic_injury_context_is_relative_to_as_of() -> None:
    injuries = synthesize_injuries("NBA", AS_OF, 3)

    assert [i.timestamp for i in injuries] == [AS_OF - timedelta(minutes=10 * n) for n in range(3)]
    for injury in injuries:
        assert injury.game_impact.date == AS_OF + timedelta(days=1)
        assert injury.game_impact.opponent not in injury.team_name
        if injury.impact_score <= 60:
            assert injury.game_impact.spread_change == 0.0


def test_synthetic_injuries_use_given_seeds() -> None:
    seeds = [PlayerSeed("Jalen Brunson", "Knicks", "PG", player_id="3934672", opponent="Heat")]
    injuries = synthesize_injuries("NBA", AS_OF, 4, seeds=seeds)

    assert len(injuries) == 1
    assert injuries[0].id == "injury_NBA_3934672"
    assert injuries[0].game_impact.opponent == "Heat"


def test_describe_injury() -> None:
    assert describe_injury("Ankle Sprain", "out") == "Ankle Sprain - Will not play tonight"
    assert describe_injury(None, "probable") == "Probable to play"


def test_synthetic_player_trends_are_deterministic_and_bounded() -> None:
    first = synthesize_player_trends("NBA", AS_OF, 10)
    second = synthesize_player_trends("NBA", AS_OF, 10)

    assert first == second
    assert len(first) == len(FALLBACK_ROSTERS["NBA"])
    assert len({t.id for t in first}) == len(first)
    for trend in first:
        assert all(0 <= p.confidence <= 90 for p in trend.calculated_props)
        assert trend.next_game.opponent == "TBD"


def test_synthetic_player_trends_respect_limit() -> None:
    assert len(synthesize_player_trends("MLB", AS_OF, 2)) == 2
    assert synthesize_player_trends("MLB", AS_OF, 0) == []


def test_nba_big_men_get_rebounding_prop() -> None:
    trends = {t.player_name: t for t in synthesize_player_trends("NBA", AS_OF, 4)}

    assert [p.metric for p in trends["Nikola Jokic"].calculated_props] == ["Points", "Rebounds"]
    assert [p.metric for p in trends["Stephen Curry"].calculated_props] == ["Points"]


def test_hot_streak_recommends_over() -> None:
    trend = synthesize_player_trends("NBA", AS_OF, 1)[0]

    assert trend.streak_type == "hot"
    assert trend.calculated_props[0].recommendation == "over"
    assert trend.stats[0].percent_change > 0
