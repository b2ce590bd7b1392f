"""Player form streaks and prop lines, topped up with synthetic players when games are scarce."""

import logging
from datetime import datetime
from itertools import chain, zip_longest
from typing import Dict, Iterable, List, Optional, Sequence, Set, Tuple

from trendline.analytics.fallback import PlayerSeed, fallback_roster, stable_hash, synthesize_player_trends
from trendline.analytics.merger import normalize_name
from trendline.analytics.scoring import round_half_up
from trendline.config import AggregationConfig, FallbackConfig
from trendline.models.payloads import AthleteRef, CompetitorPayload, GamePayload, ScoreboardPayload
from trendline.models.trends import (
    CalculatedProp,
    NextGame,
    PlayerTrend,
    PropFactors,
    StatSnapshot,
)
from trendline.utils.concurrency import gather_settled
from trendline.utils.errors import TrendlineError

from .scoreboard import ScoreboardService

logger = logging.getLogger(__name__)

ROSTER_PICKS = 2


def _round_robin(groups: Sequence[Sequence[Tuple[AthleteRef, CompetitorPayload]]]):
    """Alternate between teams so one side's leaders don't crowd out the other."""
    for entry in chain.from_iterable(zip_longest(*groups)):
        if entry is not None:
            yield entry


def seed_for(athlete: AthleteRef, competitor: CompetitorPayload, game: GamePayload) -> PlayerSeed:
    opponent = game.opponent_of(competitor)
    return PlayerSeed(
        name=athlete.display_name or "Unknown",
        team_name=competitor.team.name,
        position=athlete.position or "N/A",
        player_id=athlete.id,
        team_id=competitor.team.id,
        opponent=opponent.team.name if opponent else None,
        game_date=game.date,
        home_away=competitor.home_away,
    )


def build_player_trend(
    sport: str,
    game: GamePayload,
    competitor: CompetitorPayload,
    athlete: AthleteRef,
    as_of: datetime,
) -> PlayerTrend:
    """
    Streak record for a player appearing in ``game``.

    The scoreboard has no game logs, so recent form (15-29 point base, a
    +/-20% swing) is derived from a stable hash of the player id.
    """
    sport = sport.upper()
    seed = seed_for(athlete, competitor, game)
    player_id = seed.identity(sport)
    h = stable_hash(f"player:{sport}:{player_id}")

    season_avg = float(15 + h % 15)
    hot = h % 2 == 0
    last5_avg = season_avg * (1.2 if hot else 0.8)
    percent_change = (last5_avg - season_avg) / season_avg * 100
    streak_type = "hot" if hot else "cold"

    opponent = game.opponent_of(competitor)
    opponent_label = (opponent.team.abbreviation or opponent.team.name) if opponent else "TBD"
    if game.is_live:
        description = "Playing LIVE now"
    elif game.is_final:
        description = f"Last game vs {opponent_label}"
    else:
        description = f"Next game vs {opponent_label}"

    prop = CalculatedProp(
        metric="Points",
        line=float(round_half_up(last5_avg - 0.5)),
        recommendation="over" if hot else "under",
        confidence=min(90, round_half_up(60 + abs(percent_change))),
        reasoning=(
            f"Averaging {last5_avg:.1f} in recent games",
            f"{streak_type.upper()} performance trend",
            "Currently playing" if game.is_live else "Based on recent form",
            f"Season average: {season_avg:.1f}",
        ),
        factors=PropFactors(season_average=season_avg, last5_average=last5_avg),
    )

    return PlayerTrend(
        id=f"player_trend_{sport}_{player_id}",
        sport=sport,
        title=f"{seed.name} - {streak_type.upper()} STREAK",
        description=description,
        timestamp=as_of,
        is_live=game.is_live,
        player_id=player_id,
        player_name=seed.name,
        team_name=seed.team_name,
        position=seed.position,
        streak_type=streak_type,
        streak_length=3 + h % 4,
        stats=(StatSnapshot(
            metric="Points",
            current=last5_avg,
            season_avg=season_avg,
            last5_avg=last5_avg,
            percent_change=percent_change,
        ),),
        calculated_props=(prop,),
        next_game=NextGame(
            opponent=seed.opponent or "TBD",
            date=game.date,
            home_away=competitor.home_away or "home",
        ),
    )


class PlayerTrendsService:
    """
    Player trends for the first few games on the scoreboard.

    Featured athletes (stat leaders, probable starters) come first; teams
    without any fall back to their roster. When fewer than
    ``FallbackConfig.min_player_trends`` real trends exist, or the scoreboard
    is unavailable, synthetic trends fill the gap.
    """

    def __init__(
        self,
        scoreboard: ScoreboardService,
        aggregation: Optional[AggregationConfig] = None,
        fallback: Optional[FallbackConfig] = None,
    ):
        self.scoreboard = scoreboard
        self.aggregation = aggregation or AggregationConfig()
        self.fallback = fallback or FallbackConfig()

    async def get_trends(self, sport: str, as_of: datetime, limit: Optional[int] = None) -> List[PlayerTrend]:
        sport = sport.upper()
        limit = limit or self.aggregation.player_trend_limit

        try:
            board = await self.scoreboard.get_scoreboard(sport)
        except TrendlineError as e:
            if not self.fallback.enabled:
                raise
            logger.warning(f"[{sport}] scoreboard unavailable for player trends ({e}); using synthetic players")
            return synthesize_player_trends(sport, as_of, limit)

        games = list(board.games[:self.aggregation.player_trend_games])
        rosters = await self._rosters_for(sport, games)
        trends = self._real_trends(sport, games, rosters, as_of, limit)

        if len(trends) < self.fallback.min_player_trends and self.fallback.enabled:
            used = {t.player_id for t in trends}
            seeds = self._fallback_seeds(sport, board, rosters, used)
            if not seeds:
                taken = {normalize_name(t.player_name) for t in trends}
                seeds = [s for s in fallback_roster(sport) if normalize_name(s.name) not in taken]
            wanted = max(self.fallback.min_player_trends, limit - len(trends))
            logger.info(f"[{sport}] only {len(trends)} real player trends; adding up to {wanted} synthetic")
            if seeds:
                trends.extend(synthesize_player_trends(sport, as_of, wanted, seeds))

        return trends[:limit]

    async def _rosters_for(self, sport: str, games: Iterable[GamePayload]) -> Dict[str, List[AthleteRef]]:
        team_ids = []
        for game in games:
            for competitor in game.competitors:
                if not competitor.featured_athletes and competitor.team.id and competitor.team.id not in team_ids:
                    team_ids.append(competitor.team.id)

        settled = await gather_settled(
            [(f"roster {team_id}", self.scoreboard.get_roster(sport, team_id)) for team_id in team_ids],
            label=f"{sport} rosters",
        )
        return {team_id: list(s.value) for team_id, s in zip(team_ids, settled) if s.ok and s.value}

    def _athletes_for(self, competitor: CompetitorPayload, rosters: Dict[str, List[AthleteRef]]) -> List[AthleteRef]:
        if competitor.featured_athletes:
            return list(competitor.featured_athletes)
        return rosters.get(competitor.team.id or "", [])[:ROSTER_PICKS]

    def _real_trends(
        self,
        sport: str,
        games: Sequence[GamePayload],
        rosters: Dict[str, List[AthleteRef]],
        as_of: datetime,
        limit: int,
    ) -> List[PlayerTrend]:
        trends: List[PlayerTrend] = []
        seen: Set[str] = set()

        for game in games:
            groups = [
                [(athlete, competitor) for athlete in self._athletes_for(competitor, rosters)]
                for competitor in game.competitors
            ]
            picked = 0
            for athlete, competitor in _round_robin(groups):
                if picked >= self.aggregation.players_per_game:
                    break
                trend = build_player_trend(sport, game, competitor, athlete, as_of)
                if trend.id in seen:
                    continue
                seen.add(trend.id)
                trends.append(trend)
                picked += 1
            if len(trends) >= limit:
                break

        return trends

    def _fallback_seeds(
        self,
        sport: str,
        board: ScoreboardPayload,
        rosters: Dict[str, List[AthleteRef]],
        used_ids: Set[str],
    ) -> List[PlayerSeed]:
        """Unused scoreboard leaders and roster players, in scoreboard order."""
        seeds: List[PlayerSeed] = []
        seen = set(used_ids)
        for game in board.games:
            for competitor in game.competitors:
                for athlete in self._athletes_for(competitor, rosters):
                    seed = seed_for(athlete, competitor, game)
                    identity = seed.identity(sport)
                    if identity in seen:
                        continue
                    seen.add(identity)
                    seeds.append(seed)
        return seeds
