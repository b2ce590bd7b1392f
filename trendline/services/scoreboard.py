"""Cached access to the provider resources every sub-pipeline shares."""

import logging
from typing import Dict, List, Optional, Tuple

from trendline.api_clients.espn_client import EspnClient
from trendline.config import CacheConfig
from trendline.models.payloads import AthleteRef, ScoreboardPayload, TeamRef
from trendline.storage.cache import TTLCache

logger = logging.getLogger(__name__)


def cache_key(sport: str, *parts: object) -> str:
    """``cache_key("nba", "roster", 13)`` -> ``"NBA:roster:13"``; the sport prefix drives force-refresh."""
    return ":".join([sport.upper(), *(str(p) for p in parts)])


class ScoreboardService:
    """
    Read-through cache in front of the provider client.

    Each resource lives for its own freshness window (see ``CacheConfig``).
    Fetch failures propagate to the caller and nothing is cached for them.
    """

    def __init__(self, client: EspnClient, cache: TTLCache, cache_config: Optional[CacheConfig] = None):
        self.client = client
        self.cache = cache
        self.ttl = cache_config or CacheConfig()

    async def get_scoreboard(self, sport: str) -> ScoreboardPayload:
        return await self.cache.get_or_fetch(
            cache_key(sport, "scoreboard"),
            self.ttl.scoreboard_ttl,
            lambda: self.client.fetch_scoreboard(sport),
        )

    async def get_teams(self, sport: str) -> List[TeamRef]:
        return await self.cache.get_or_fetch(
            cache_key(sport, "teams"),
            self.ttl.teams_ttl,
            lambda: self.client.fetch_teams(sport),
        )

    async def get_roster(self, sport: str, team_id: str) -> List[AthleteRef]:
        return await self.cache.get_or_fetch(
            cache_key(sport, "roster", team_id),
            self.ttl.rosters_ttl,
            lambda: self.client.fetch_team_roster(sport, team_id),
        )

    async def get_athlete_stats(self, sport: str, athlete_id: str) -> Dict[str, float]:
        return await self.cache.get_or_fetch(
            cache_key(sport, "athlete", athlete_id),
            self.ttl.athlete_stats_ttl,
            lambda: self.client.fetch_athlete_statistics(sport, athlete_id),
        )

    def cached_scoreboard(self, sport: str) -> Optional[ScoreboardPayload]:
        return self.cache.get(cache_key(sport, "scoreboard"))

    def cached_game_counts(self, sport: str) -> Tuple[int, int, int]:
        """(live, upcoming, final) games on the cached scoreboard."""
        scoreboard = self.cached_scoreboard(sport)
        if scoreboard is None:
            return 0, 0, 0
        return scoreboard.live_count, scoreboard.upcoming_count, scoreboard.final_count

    def invalidate(self, sport: str) -> int:
        dropped = self.cache.invalidate(f"{sport.upper()}:")
        logger.info(f"🔄 Force refresh: dropped {dropped} cached {sport.upper()} entries")
        return dropped
