from __future__ import annotations

import asyncio

import pytest

from trendline.analytics.merger import Identity, MultiSourceMerger, normalize_name
from trendline.utils.errors import TransportError


def identify(record: dict) -> Identity:
    return Identity.of(record.get("id"), record.get("name"), record.get("team_id"), record.get("team"))


@pytest.fixture
def merger():
    return MultiSourceMerger(identify, label="test")


def test_normalize_name() -> None:
    assert normalize_name("LeBron  James Jr.") == "lebron_james_jr"
    assert normalize_name("  ") is None
    assert normalize_name(None) is None


def test_identity_key_prefers_provider_id() -> None:
    assert Identity.of("123", "Jaylen Brown", "2").key == "123"
    assert Identity.of(None, "Jaylen Brown", "2").key == "synthetic_jaylen_brown_2"
    assert Identity.of(None, "Jaylen Brown", None, "Boston Celtics").key == "synthetic_jaylen_brown_boston_celtics"
    assert Identity.of(None, None).key is None


def test_first_source_wins_for_same_player(merger) -> None:
    league = [{"id": "123", "name": "Jaylen Brown", "team_id": "2", "status": "out"}]
    scoreboard = [{"id": None, "name": "Jaylen Brown", "team_id": "2", "status": "doubtful"}]

    result = merger.merge([("league", league), ("scoreboard", scoreboard)])

    assert len(result) == 1
    kept = result.records[0]
    assert kept.record["status"] == "out"
    assert kept.source == "league"
    assert kept.key == "123"


def test_same_name_without_team_overlap_is_duplicate(merger) -> None:
    league = [{"id": "123", "name": "Jaylen Brown", "team_id": "2"}]
    teams = [{"name": "Jaylen Brown", "team": "Boston Celtics"}]

    assert len(merger.merge([("league", league), ("teams", teams)])) == 1


def test_same_name_on_different_teams_are_kept(merger) -> None:
    a = [{"name": "Mike Smith", "team_id": "1"}]
    b = [{"name": "Mike Smith", "team_id": "7"}]

    result = merger.merge([("a", a), ("b", b)])

    assert len(result) == 2
    assert {r.key for r in result.records} == {"synthetic_mike_smith_1", "synthetic_mike_smith_7"}


def test_different_provider_ids_with_same_name_are_kept(merger) -> None:
    a = [{"id": "1", "name": "Josh Allen"}]
    b = [{"id": "2", "name": "Josh Allen"}]
    assert len(merger.merge([("a", a), ("b", b)])) == 2


def test_records_without_identity_are_skipped(merger) -> None:
    result = merger.merge([("a", [{"status": "out"}, {"id": "9", "name": "X"}])])
    assert len(result) == 1
    assert result.skipped == 1


def test_failed_source_is_reported_and_rest_merged(merger) -> None:
    result = merger.merge([("league", None), ("scoreboard", [{"id": "5", "name": "A"}])])

    assert result.failed_sources == ("league",)
    assert result.source_counts == {"scoreboard": 1}
    assert not result.all_failed
    assert result.items == ({"id": "5", "name": "A"},)


def test_all_sources_failed(merger) -> None:
    result = merger.merge([("league", None), ("teams", None)])
    assert result.all_failed
    assert len(result) == 0


def test_empty_sources_are_not_failures(merger) -> None:
    result = merger.merge([("league", []), ("teams", [])])
    assert not result.all_failed
    assert result.failed_sources == ()


@pytest.mark.asyncio
async def test_fetch_and_merge_keeps_trust_order_under_partial_failure(merger) -> None:
    async def league():
        return [{"id": "1", "name": "A", "status": "out"}]

    async def scoreboard():
        raise TransportError("espn", "scoreboard")

    async def teams():
        return [{"id": "1", "name": "A", "status": "probable"}, {"id": "2", "name": "B"}]

    result = await merger.fetch_and_merge([("league", league), ("scoreboard", scoreboard), ("teams", teams)])

    assert result.failed_sources == ("scoreboard",)
    assert [r.record["status"] if "status" in r.record else None for r in result.records] == ["out", None]
    assert [r.source for r in result.records] == ["league", "teams"]


def test_teamless_record_does_not_absorb_players_on_different_teams(merger) -> None:
    scoreboard = [{"name": "Mike Smith"}]
    teams = [
        {"id": "11", "name": "Mike Smith", "team_id": "1"},
        {"id": "22", "name": "Mike Smith", "team_id": "7"},
    ]

    result = merger.merge([("scoreboard", scoreboard), ("teams", teams)])

    assert len(result) == 2
    assert [r.source for r in result.records] == ["scoreboard", "teams"]
    assert result.records[1].key == "22"


def test_folded_report_still_matches_its_own_team(merger) -> None:
    scoreboard = [{"name": "Mike Smith"}]
    teams = [
        {"id": "11", "name": "Mike Smith", "team_id": "1"},
        {"name": "Mike Smith", "team_id": "1"},
    ]

    assert len(merger.merge([("scoreboard", scoreboard), ("teams", teams)])) == 1


@pytest.mark.asyncio
async def test_slow_source_times_out_without_blocking_the_others() -> None:
    merger = MultiSourceMerger(identify, label="test", source_timeout=0.05)

    async def league():
        return [{"id": "1", "name": "A"}]

    async def scoreboard():
        return [{"id": "2", "name": "B"}]

    async def teams():
        await asyncio.sleep(5)
        return [{"id": "3", "name": "C"}]

    result = await merger.fetch_and_merge([("league", league), ("scoreboard", scoreboard), ("teams", teams)])

    assert result.failed_sources == ("teams",)
    assert [r.key for r in result.records] == ["1", "2"]
    assert not result.all_failed


@pytest.mark.asyncio
async def test_source_within_deadline_is_merged() -> None:
    merger = MultiSourceMerger(identify, label="test", source_timeout=5)

    async def league():
        await asyncio.sleep(0)
        return [{"id": "1", "name": "A"}]

    result = await merger.fetch_and_merge([("league", league)])

    assert result.failed_sources == ()
    assert len(result) == 1
