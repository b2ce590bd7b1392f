"""
Injury trends: three-source merge, per-athlete impact scoring, synthetic fallback.

Sources in trust order:
    1. league injuries endpoint (authoritative, most detail)
    2. scoreboard competitor injuries (carry game context)
    3. per-team injury listings for every team (widest coverage)
"""

import asyncio
import logging
from datetime import datetime
from typing import Any, Awaitable, Callable, Dict, List, Optional, Set, Tuple

from trendline.analytics.fallback import SYNTHETIC_SOURCE, describe_injury, stable_hash, synthesize_injuries
from trendline.analytics.merger import Identity, MergeResult, MultiSourceMerger, SourcedRecord
from trendline.analytics.scoring import impact_score, usage_rate
from trendline.analytics.stat_normalizer import NormalizedStats, normalize_stats
from trendline.api_clients.espn_client import EspnClient
from trendline.config import CacheConfig, FallbackConfig, ProviderConfig
from trendline.models.payloads import CompetitorPayload, GamePayload, InjuryPayload, ScoreboardPayload, TeamRef
from trendline.models.trends import GameImpact, InjuryTrend, PlayerImpact
from trendline.storage.cache import TTLCache
from trendline.utils.concurrency import gather_settled
from trendline.utils.errors import SourceUnavailableError, TrendlineError

from .scoreboard import ScoreboardService, cache_key

logger = logging.getLogger(__name__)

LEAGUE_SOURCE = "league"
SCOREBOARD_SOURCE = "scoreboard"
TEAMS_SOURCE = "teams"

_STATUS_NEEDLES = (
    ("out", "out"),
    ("doubtful", "doubtful"),
    ("questionable", "questionable"),
    ("probable", "probable"),
    ("day", "day-to-day"),
)

GameContext = Tuple[GamePayload, Optional[CompetitorPayload]]


def map_injury_status(raw: Optional[str]) -> str:
    """Provider status text -> one of ``INJURY_STATUSES``; unknown text reads as questionable."""
    text = (raw or "").lower()
    for needle, status in _STATUS_NEEDLES:
        if needle in text:
            return status
    return "questionable"


def injury_identity(payload: InjuryPayload) -> Identity:
    athlete = payload.athlete
    team = payload.team
    return Identity.of(
        athlete.id if athlete else None,
        athlete.display_name if athlete else None,
        team.id if team else None,
        team.display_name if team else None,
    )


def game_context(board: Optional[ScoreboardPayload]) -> Dict[str, GameContext]:
    """Each team on the scoreboard (by id and by name) -> its game and opponent."""
    context: Dict[str, GameContext] = {}
    if board is None:
        return context
    for game in board.games:
        for competitor in game.competitors:
            entry = (game, game.opponent_of(competitor))
            if competitor.team.id:
                context.setdefault(f"id:{competitor.team.id}", entry)
            context.setdefault(f"name:{competitor.team.name.lower()}", entry)
    return context


def _lookup_context(team: Optional[TeamRef], context: Dict[str, GameContext]) -> Optional[GameContext]:
    if team is None:
        return None
    if team.id and f"id:{team.id}" in context:
        return context[f"id:{team.id}"]
    return context.get(f"name:{team.name.lower()}")


def build_injury_trend(
    sport: str,
    sourced: SourcedRecord[InjuryPayload],
    stats: Optional[NormalizedStats],
    context: Optional[GameContext],
    as_of: datetime,
) -> InjuryTrend:
    sport = sport.upper()
    payload = sourced.record
    athlete = payload.athlete
    team = payload.team

    name = (athlete.display_name if athlete else None) or "Unknown Player"
    position = (athlete.position if athlete else None) or "N/A"
    player_id = (athlete.id if athlete else None) or sourced.key
    status = map_injury_status(payload.status)
    impact = impact_score(sport, stats, position)

    game_impact = None
    is_live = False
    if context is not None:
        game, opponent = context
        h = stable_hash(f"injury:{sport}:{player_id}:{game.id}")
        game_impact = GameImpact(
            game_id=game.id,
            opponent=opponent.team.name if opponent else (payload.opponent.name if payload.opponent else "TBD"),
            date=game.date,
            spread_change=((h % 6) - 3) / 2 if impact > 50 else 0.0,
            total_change=((h % 8) - 4) / 2 if impact > 50 else 0.0,
        )
        is_live = game.is_live

    return InjuryTrend(
        id=f"injury_{sport}_{player_id}",
        sport=sport,
        title=f"{name} - {status.upper()}",
        description=payload.injury_type or payload.short_comment or status.capitalize(),
        timestamp=payload.date or as_of,
        is_live=is_live,
        player_id=player_id,
        player_name=name,
        team_id=team.id if team else None,
        team_name=team.name if team else "Unknown",
        position=position,
        injury_status=status,
        injury_details=payload.long_comment or payload.details or describe_injury(payload.injury_type, status),
        player_impact=PlayerImpact(
            impact_score=impact,
            usage_rate=usage_rate(stats),
            season_avg_points=(stats.points_per_game if stats else None) or 0.0,
            season_avg_rebounds=(stats.rebounds_per_game if stats else None) or 0.0,
            season_avg_assists=(stats.assists_per_game if stats else None) or 0.0,
            season_avg_minutes=stats.minutes_per_game if stats else None,
            season_avg_yards=stats.combined_yards_per_game if stats else None,
            season_avg_touchdowns=stats.touchdowns_per_game if stats else None,
        ),
        source=sourced.source,
        game_impact=game_impact,
    )


class InjuryService:
    """
    Injury trends for one sport, cached for the injuries freshness window.

    A failing source is logged and skipped. When the merge yields fewer than
    ``FallbackConfig.min_injuries`` records, deterministic synthetic injuries
    are returned instead; with fallback disabled a total outage raises
    ``SourceUnavailableError``.
    """

    def __init__(
        self,
        client: EspnClient,
        scoreboard: ScoreboardService,
        cache: TTLCache,
        cache_config: Optional[CacheConfig] = None,
        provider_config: Optional[ProviderConfig] = None,
        fallback: Optional[FallbackConfig] = None,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ):
        self.client = client
        self.scoreboard = scoreboard
        self.cache = cache
        self.ttl = cache_config or CacheConfig()
        self.provider = provider_config or ProviderConfig()
        self.fallback = fallback or FallbackConfig()
        self._sleep = sleep
        self.merger: MultiSourceMerger[InjuryPayload] = MultiSourceMerger(
            injury_identity,
            label="injuries",
            source_timeout=self.provider.source_timeout,
        )

    async def get_injuries(self, sport: str, as_of: datetime) -> List[InjuryTrend]:
        sport = sport.upper()
        key = cache_key(sport, "injuries")
        cached = self.cache.get(key)
        if cached is not None:
            return list(cached)

        merged = await self.merger.fetch_and_merge([
            (LEAGUE_SOURCE, lambda: self.client.fetch_league_injuries(sport)),
            (SCOREBOARD_SOURCE, lambda: self._scoreboard_injuries(sport)),
            (TEAMS_SOURCE, lambda: self._team_injuries(sport)),
        ])

        trends = await self._build_trends(sport, merged, as_of)

        if len(trends) < self.fallback.min_injuries:
            if not self.fallback.enabled:
                if merged.all_failed:
                    raise SourceUnavailableError(f"{sport} injuries", merged.failed_sources)
            else:
                reason = "all sources failed" if merged.all_failed else f"only {len(trends)} real injuries"
                logger.warning(f"[{sport}] {reason}; serving synthetic injury data")
                trends = synthesize_injuries(sport, as_of, self.fallback.synthetic_injury_count)

        trends.sort(key=lambda t: (-t.severity_rank, -t.impact_score))
        self.cache.set(key, tuple(trends), self.ttl.injuries_ttl)
        logger.info(
            f"🩹 {sport}: {len(trends)} injuries "
            f"(sources {merged.source_counts or 'none'}, failed {list(merged.failed_sources) or 'none'})"
        )
        return trends

    def cached_key_injury_teams(self, sport: str) -> Set[str]:
        """Team names and ids with a real (non-synthetic) high-impact player ruled out."""
        cached = self.cache.get(cache_key(sport, "injuries")) or ()
        teams: Set[str] = set()
        for injury in cached:
            if injury.source == SYNTHETIC_SOURCE:
                continue
            if injury.injury_status == "out" and injury.impact_score > 60:
                teams.add(injury.team_name)
                if injury.team_id:
                    teams.add(injury.team_id)
        return teams

    # ========================================================================
    # SOURCES
    # ========================================================================

    async def _scoreboard_injuries(self, sport: str) -> List[InjuryPayload]:
        board = await self.scoreboard.get_scoreboard(sport)
        return board.scoreboard_injuries()

    async def _team_injuries(self, sport: str) -> List[InjuryPayload]:
        """Every team's listing, fetched in small batches with a pause between them."""
        teams = await self.scoreboard.get_teams(sport)
        batch_size = self.provider.team_batch_size
        injuries: List[InjuryPayload] = []
        failures = 0

        for start in range(0, len(teams), batch_size):
            batch = teams[start:start + batch_size]
            settled = await gather_settled(
                [(f"team {team.id}", self.client.fetch_team_injuries(sport, team)) for team in batch],
                label=f"{sport} team injuries",
            )
            for result in settled:
                if result.ok:
                    injuries.extend(result.value or ())
                else:
                    failures += 1
            if start + batch_size < len(teams):
                await self._sleep(self.provider.team_batch_delay)

        if teams and failures == len(teams):
            raise SourceUnavailableError(f"{sport} team injuries", [TEAMS_SOURCE])

        logger.debug(f"[{sport}] {len(injuries)} injuries from {len(teams)} team listings ({failures} failed)")
        return injuries

    # ========================================================================
    # BUILD
    # ========================================================================

    async def _build_trends(self, sport: str, merged: MergeResult[InjuryPayload], as_of: datetime) -> List[InjuryTrend]:
        if not merged.records:
            return []

        try:
            board: Optional[ScoreboardPayload] = await self.scoreboard.get_scoreboard(sport)
        except TrendlineError as e:
            logger.debug(f"[{sport}] no scoreboard context for injuries: {e}")
            board = None
        context = game_context(board)

        stats_by_id = await self._athlete_stats(sport, merged.records)

        trends: List[InjuryTrend] = []
        for sourced in merged.records:
            athlete = sourced.record.athlete
            values = stats_by_id.get(athlete.id) if athlete and athlete.id else None
            trends.append(build_injury_trend(
                sport,
                sourced,
                normalize_stats(sport, values) if values else None,
                _lookup_context(sourced.record.team, context),
                as_of,
            ))
        return trends

    async def _athlete_stats(
        self,
        sport: str,
        records: Tuple[SourcedRecord[InjuryPayload], ...],
    ) -> Dict[str, Dict[str, float]]:
        athlete_ids = []
        for sourced in records:
            athlete = sourced.record.athlete
            if athlete and athlete.id and athlete.id not in athlete_ids:
                athlete_ids.append(athlete.id)

        settled = await gather_settled(
            [(f"athlete {aid}", self.scoreboard.get_athlete_stats(sport, aid)) for aid in athlete_ids],
            label=f"{sport} athlete stats",
        )
        return {aid: s.value for aid, s in zip(athlete_ids, settled) if s.ok and s.value}
