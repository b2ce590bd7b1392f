"""ESPN public JSON client: scoreboards, injuries, rosters, athlete stats, news and predictors"""

import logging
from typing import Any, Dict, List, Optional

import aiohttp

from trendline.config import ProviderConfig
from trendline.models.payloads import (
    AthleteRef,
    ArticlePayload,
    InjuryPayload,
    PredictorPayload,
    ScoreboardPayload,
    TeamRef,
    parse_articles,
    parse_league_injuries,
    parse_roster,
    parse_stat_values,
    parse_team_injuries,
    parse_teams,
)

from .base_client import BaseAPIClient

logger = logging.getLogger(__name__)


SPORT_PATHS: Dict[str, str] = {
    "NBA": "basketball/nba",
    "NFL": "football/nfl",
    "MLB": "baseball/mlb",
    "NHL": "hockey/nhl",
}

# core API nests the league one level deeper
CORE_PATHS: Dict[str, str] = {
    "NBA": "basketball/leagues/nba",
    "NFL": "football/leagues/nfl",
    "MLB": "baseball/leagues/mlb",
    "NHL": "hockey/leagues/nhl",
}


def sport_path(sport: str) -> str:
    try:
        return SPORT_PATHS[sport.upper()]
    except KeyError:
        raise ValueError(f"Unsupported sport: {sport}")


class EspnClient(BaseAPIClient):
    """
    Client for the unauthenticated ESPN site/core APIs

    Handles:
    - One bounded-timeout GET per resource with shared retry policy
    - Parsing raw JSON into the narrow payload views in models.payloads
    - Routing each resource to the right host (site, site.web, core)

    Every method raises on transport or shape failure; callers decide
    whether a failed source is fatal.
    """

    def __init__(self, config: Optional[ProviderConfig] = None, session: Optional[aiohttp.ClientSession] = None):
        """
        Initialize ESPN client

        Args:
            config: ProviderConfig with base URLs, timeout and retry settings
            session: Optional shared aiohttp session
        """
        self.config = config or ProviderConfig()
        super().__init__(
            platform_name="espn",
            base_url=self.config.site_base_url,
            timeout=self.config.timeout,
            max_retries=self.config.max_retries,
            backoff_base=self.config.backoff_base,
            session=session,
        )
        self.web_base_url = self.config.web_base_url.rstrip("/")
        self.core_base_url = self.config.core_base_url.rstrip("/")

    def _site_url(self, sport: str, suffix: str) -> str:
        return f"{self.base_url}/{sport_path(sport)}/{suffix}"

    # ========================================================================
    # GAMES
    # ========================================================================

    async def fetch_scoreboard(self, sport: str) -> ScoreboardPayload:
        data = await self._get_json(self._site_url(sport, "scoreboard"), operation_name=f"{sport} scoreboard")
        scoreboard = ScoreboardPayload.from_raw(data)
        logger.debug(f"[espn] {sport} scoreboard: {len(scoreboard.games)} games, {scoreboard.live_count} live")
        return scoreboard

    async def fetch_game_summary(self, sport: str, game_id: str) -> Dict[str, Any]:
        return await self._get_json(
            self._site_url(sport, "summary"),
            params={"event": game_id},
            operation_name=f"{sport} summary {game_id}",
        )

    async def fetch_predictor(self, sport: str, game_id: str, competition_id: Optional[str] = None) -> PredictorPayload:
        """Win-probability projection for one game from the core API."""
        league = CORE_PATHS[sport.upper()]
        url = (
            f"{self.core_base_url}/sports/{league}/events/{game_id}"
            f"/competitions/{competition_id or game_id}/predictor"
        )
        data = await self._get_json(url, operation_name=f"{sport} predictor {game_id}")
        return PredictorPayload.from_raw(data)

    # ========================================================================
    # INJURIES
    # ========================================================================

    async def fetch_league_injuries(self, sport: str) -> List[InjuryPayload]:
        data = await self._get_json(self._site_url(sport, "injuries"), operation_name=f"{sport} league injuries")
        return parse_league_injuries(data)

    async def fetch_team_injuries(self, sport: str, team: TeamRef) -> List[InjuryPayload]:
        url = f"{self.web_base_url}/{sport_path(sport)}/teams/{team.id}/injuries"
        data = await self._get_json(url, operation_name=f"{sport} team injuries {team.id}")
        return parse_team_injuries(data, team=team)

    # ========================================================================
    # TEAMS / ROSTERS / ATHLETES
    # ========================================================================

    async def fetch_teams(self, sport: str) -> List[TeamRef]:
        data = await self._get_json(self._site_url(sport, "teams"), operation_name=f"{sport} teams")
        return parse_teams(data)

    async def fetch_team_roster(self, sport: str, team_id: str) -> List[AthleteRef]:
        data = await self._get_json(
            self._site_url(sport, f"teams/{team_id}/roster"),
            operation_name=f"{sport} roster {team_id}",
        )
        return parse_roster(data)

    async def fetch_athlete_statistics(self, sport: str, athlete_id: str) -> Dict[str, float]:
        """Flattened season statistics (``{stat_name: value}``) for one athlete."""
        league = CORE_PATHS[sport.upper()]
        url = f"{self.core_base_url}/sports/{league}/athletes/{athlete_id}/statistics"
        data = await self._get_json(
            url,
            params={"lang": "en", "region": "us"},
            operation_name=f"{sport} athlete stats {athlete_id}",
        )
        return parse_stat_values(data)

    # ========================================================================
    # NEWS
    # ========================================================================

    async def fetch_news(self, sport: str, limit: int = 20) -> List[ArticlePayload]:
        data = await self._get_json(
            self._site_url(sport, "news"),
            params={"limit": limit},
            operation_name=f"{sport} news",
        )
        return parse_articles(data)
