"""
Aggregation facade: the four read operations the presentation layer calls.

Each operation fans out one sub-pipeline per (sport, category), joins them
with a settle-all combinator, then deduplicates, filters and sorts the
survivors into one immutable result. A failed sub-pipeline is logged and
left out; the result only carries an ``error`` when every one failed.
"""

import logging
import math
from datetime import datetime, timezone
from typing import Any, Awaitable, Callable, Dict, Iterable, List, Optional, Sequence, Tuple, TypeVar

from trendline.analytics.scoring import is_high_impact
from trendline.api_clients.espn_client import EspnClient
from trendline.config import SUPPORTED_SPORTS, ConfigManager
from trendline.models.results import InjuriesResult, NewsResult, PredictionsResult, TrendsResult
from trendline.models.trends import Entity, InjuryTrend, NewsArticle, PlayerTrend, Prediction
from trendline.storage.cache import TTLCache
from trendline.storage.snapshot_store import SnapshotStore
from trendline.utils.concurrency import CancelToken, Settled, gather_settled, run_cancellable

from .betting_trends import BettingTrendsService
from .injury_service import InjuryService
from .news_service import NewsService
from .player_trends import PlayerTrendsService
from .prediction_service import PredictionService, by_game_date
from .scoreboard import ScoreboardService
from .team_trends import TeamTrendsService

logger = logging.getLogger(__name__)

T = TypeVar("T")

CATEGORIES = ("all", "betting", "player", "team", "injury")
REFRESH_MODES = ("initial", "background", "force")

_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


# ============================================================================
# ORDERING / DEDUPLICATION
# ============================================================================

def entity_sort_key(entity: Entity) -> Tuple[int, float, float]:
    """Severity first, then the category's own score, newest last-resort."""
    if isinstance(entity, PlayerTrend):
        primary = entity.max_prop_confidence
    elif isinstance(entity, InjuryTrend):
        primary = entity.impact_score
    else:
        primary = 0
    return (-entity.severity_rank, -primary, -entity.timestamp.timestamp())


def prediction_sort_key(prediction: Prediction):
    return (-prediction.consensus.confidence, *by_game_date(prediction))


def news_sort_key(article: NewsArticle):
    return (article.published is None, -(article.published or _EPOCH).timestamp())


def dedupe_by_id(items: Iterable[T], label: str) -> List[T]:
    """Keep the first item per ``id``; later ones are logged and dropped."""
    kept: List[T] = []
    seen = set()
    for item in items:
        item_id = getattr(item, "id")
        if item_id in seen:
            logger.warning(f"[{label}] duplicate id {item_id} dropped")
            continue
        seen.add(item_id)
        kept.append(item)
    return kept


def _collect(settled: Sequence[Settled[Any]]) -> Tuple[List[Any], List[str], Optional[str]]:
    """Flatten successful branches; error text only when every branch failed."""
    items: List[Any] = []
    failed: List[str] = []
    for result in settled:
        if result.ok:
            items.extend(result.value or ())
        else:
            failed.append(result.name)

    error = None
    if settled and len(failed) == len(settled):
        first = next(r.error for r in settled if not r.ok)
        error = f"All sources failed ({', '.join(failed)}): {first}"
    return items, failed, error


# ============================================================================
# FACADE
# ============================================================================

class TrendsAggregator:
    """
    Owns the cache and every sub-pipeline for one process.

    Usage:
        async with TrendsAggregator(config) as aggregator:
            result = await aggregator.fetch_trends("NBA")
    """

    def __init__(
        self,
        config: ConfigManager,
        client: Optional[EspnClient] = None,
        cache: Optional[TTLCache] = None,
        snapshot_store: Optional[SnapshotStore] = None,
        now: Optional[Callable[[], datetime]] = None,
        sleep: Optional[Callable[[float], Awaitable[Any]]] = None,
    ):
        self.config = config
        self.client = client or EspnClient(config.provider)
        self.cache = cache or TTLCache()
        self.snapshot_store = snapshot_store
        self._now = now or (lambda: datetime.now(timezone.utc))

        self.scoreboard = ScoreboardService(self.client, self.cache, config.cache)
        self.betting = BettingTrendsService(self.scoreboard)
        self.teams = TeamTrendsService(self.scoreboard, config.aggregation.max_team_trends)
        self.players = PlayerTrendsService(self.scoreboard, config.aggregation, config.fallback)
        injury_kwargs = {'sleep': sleep} if sleep is not None else {}
        self.injuries = InjuryService(
            self.client,
            self.scoreboard,
            self.cache,
            config.cache,
            config.provider,
            config.fallback,
            **injury_kwargs,
        )
        self.predictions = PredictionService(
            self.client,
            self.scoreboard,
            self.cache,
            config.cache,
            injuries=self.injuries,
        )
        self.news = NewsService(self.client, self.cache, config.cache)

    async def __aenter__(self):
        await self.client.__aenter__()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.client.__aexit__(exc_type, exc_val, exc_tb)

    # ========================================================================
    # HELPERS
    # ========================================================================

    def resolve_sports(self, sport: str) -> List[str]:
        if not sport or sport.lower() == "all":
            return self.config.sports
        sport = sport.upper()
        if sport not in SUPPORTED_SPORTS:
            raise ValueError(f"Unsupported sport: {sport}")
        return [sport]

    def _prepare(self, sports: Sequence[str], refresh_mode: str) -> None:
        if refresh_mode not in REFRESH_MODES:
            raise ValueError(f"refresh_mode must be one of {REFRESH_MODES}, got {refresh_mode!r}")
        if refresh_mode == "force":
            for sport in sports:
                self.scoreboard.invalidate(sport)

    def _game_counts(self, sports: Sequence[str]) -> Dict[str, int]:
        """Live, upcoming and final games across the cached scoreboards of ``sports``."""
        live = upcoming = final = 0
        for sport in sports:
            sport_live, sport_upcoming, sport_final = self.scoreboard.cached_game_counts(sport)
            live += sport_live
            upcoming += sport_upcoming
            final += sport_final
        return {
            "live_games_count": live,
            "upcoming_games_count": upcoming,
            "final_games_count": final,
        }

    # ========================================================================
    # TRENDS
    # ========================================================================

    async def fetch_trends(
        self,
        sport: str = "all",
        category: str = "all",
        refresh_mode: str = "initial",
        cancel_token: Optional[CancelToken] = None,
    ) -> TrendsResult:
        """
        Betting, player and team trends (or injuries when ``category="injury"``).

        ``category="news"`` is treated as ``"all"``; news has its own operation.
        """
        return await run_cancellable(
            self._fetch_trends(sport, category, refresh_mode),
            cancel_token,
            "fetch_trends",
        )

    async def _fetch_trends(self, sport: str, category: str, refresh_mode: str) -> TrendsResult:
        category = "all" if category == "news" else category
        if category not in CATEGORIES:
            raise ValueError(f"category must be one of {CATEGORIES + ('news',)}, got {category!r}")
        sports = self.resolve_sports(sport)
        self._prepare(sports, refresh_mode)
        as_of = self._now()

        branches: List[Tuple[str, Awaitable[Any]]] = []
        for s in sports:
            if category in ("all", "betting"):
                branches.append((f"{s} betting", self.betting.get_trends(s, as_of)))
            if category in ("all", "player"):
                branches.append((f"{s} player", self.players.get_trends(s, as_of)))
            if category in ("all", "team"):
                branches.append((f"{s} team", self.teams.get_trends(s, as_of)))
            if category == "injury":
                branches.append((f"{s} injury", self.injuries.get_injuries(s, as_of)))

        settled = await gather_settled(branches, label="trends")
        items, failed, error = _collect(settled)
        items = sorted(dedupe_by_id(items, "trends"), key=entity_sort_key)

        logger.info(f"📊 Trends [{sport}/{category}, {refresh_mode}]: {len(items)} items, {len(failed)} failed")
        return TrendsResult(
            items=tuple(items),
            last_updated=as_of,
            error=error,
            refresh_mode=refresh_mode,
            **self._game_counts(sports),
            failed_sources=tuple(failed),
        )

    # ========================================================================
    # PREDICTIONS
    # ========================================================================

    async def fetch_predictions(
        self,
        sport: str = "all",
        min_confidence: int = 0,
        refresh_mode: str = "initial",
        cancel_token: Optional[CancelToken] = None,
    ) -> PredictionsResult:
        """Consensus predictions at or above ``min_confidence``, most confident first."""
        return await run_cancellable(
            self._fetch_predictions(sport, min_confidence, refresh_mode),
            cancel_token,
            "fetch_predictions",
        )

    async def _fetch_predictions(self, sport: str, min_confidence: int, refresh_mode: str) -> PredictionsResult:
        sports = self.resolve_sports(sport)
        self._prepare(sports, refresh_mode)
        as_of = self._now()

        settled = await gather_settled(
            [(f"{s} predictions", self.predictions.get_predictions(s)) for s in sports],
            label="predictions",
        )
        items, failed, error = _collect(settled)
        items = [p for p in dedupe_by_id(items, "predictions") if p.consensus.confidence >= min_confidence]
        items.sort(key=prediction_sort_key)

        if error is not None:
            snapshot = self.load_prediction_snapshot(sport, min_confidence)
            if snapshot is not None:
                logger.warning(f"Predictions unavailable ({error}); serving last saved snapshot")
                return PredictionsResult(
                    items=snapshot.items,
                    last_updated=snapshot.last_updated,
                    refresh_mode=refresh_mode,
                    **self._game_counts(sports),
                    failed_sources=tuple(failed),
                )
        elif self.snapshot_store is not None:
            self.snapshot_store.save_predictions(sport, min_confidence, items, as_of)

        logger.info(f"🔮 Predictions [{sport}, >= {min_confidence}]: {len(items)} games, {len(failed)} failed")
        return PredictionsResult(
            items=tuple(items),
            last_updated=as_of,
            error=error,
            refresh_mode=refresh_mode,
            **self._game_counts(sports),
            failed_sources=tuple(failed),
        )

    def load_prediction_snapshot(self, sport: str = "all", min_confidence: int = 0) -> Optional[PredictionsResult]:
        """Last saved predictions for a cold start, or None."""
        if self.snapshot_store is None:
            return None
        loaded = self.snapshot_store.load_predictions(sport, min_confidence)
        if loaded is None:
            return None
        predictions, saved_at = loaded
        return PredictionsResult(items=tuple(predictions), last_updated=saved_at, refresh_mode="initial")

    # ========================================================================
    # INJURIES
    # ========================================================================

    async def fetch_injuries(
        self,
        sport: str = "all",
        high_impact_only: bool = False,
        refresh_mode: str = "initial",
        cancel_token: Optional[CancelToken] = None,
    ) -> InjuriesResult:
        return await run_cancellable(
            self._fetch_injuries(sport, high_impact_only, refresh_mode),
            cancel_token,
            "fetch_injuries",
        )

    async def _fetch_injuries(self, sport: str, high_impact_only: bool, refresh_mode: str) -> InjuriesResult:
        sports = self.resolve_sports(sport)
        self._prepare(sports, refresh_mode)
        as_of = self._now()

        settled = await gather_settled(
            [(f"{s} injuries", self.injuries.get_injuries(s, as_of)) for s in sports],
            label="injuries",
        )
        items, failed, error = _collect(settled)
        items = dedupe_by_id(items, "injuries")
        if high_impact_only:
            items = [injury for injury in items if is_high_impact(injury)]
        items.sort(key=entity_sort_key)

        logger.info(f"🩹 Injuries [{sport}{', high impact' if high_impact_only else ''}]: {len(items)} players")
        return InjuriesResult(
            items=tuple(items),
            last_updated=as_of,
            error=error,
            refresh_mode=refresh_mode,
            **self._game_counts(sports),
            failed_sources=tuple(failed),
        )

    # ========================================================================
    # NEWS
    # ========================================================================

    async def fetch_news(
        self,
        sport: str = "all",
        limit: int = 20,
        refresh_mode: str = "initial",
        cancel_token: Optional[CancelToken] = None,
    ) -> NewsResult:
        return await run_cancellable(
            self._fetch_news(sport, limit, refresh_mode),
            cancel_token,
            "fetch_news",
        )

    async def _fetch_news(self, sport: str, limit: int, refresh_mode: str) -> NewsResult:
        if limit < 1:
            raise ValueError(f"limit must be >= 1, got {limit}")
        sports = self.resolve_sports(sport)
        self._prepare(sports, refresh_mode)
        as_of = self._now()
        per_sport = math.ceil(limit / len(sports))

        settled = await gather_settled(
            [(f"{s} news", self.news.get_news(s, per_sport)) for s in sports],
            label="news",
        )
        items, failed, error = _collect(settled)
        items = sorted(dedupe_by_id(items, "news"), key=news_sort_key)[:limit]

        return NewsResult(
            items=tuple(items),
            last_updated=as_of,
            error=error,
            refresh_mode=refresh_mode,
            **self._game_counts(sports),
            failed_sources=tuple(failed),
        )
