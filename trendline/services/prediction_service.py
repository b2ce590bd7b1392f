"""Per-game predictions for pre-game and live games, cached per game."""

import logging
from datetime import datetime, timezone
from typing import Iterable, List, Optional

from trendline.analytics.consensus import predict_game
from trendline.api_clients.espn_client import EspnClient
from trendline.config import CacheConfig
from trendline.models.payloads import GamePayload, PredictorPayload
from trendline.models.trends import Prediction
from trendline.storage.cache import TTLCache
from trendline.utils.concurrency import gather_settled
from trendline.utils.errors import TrendlineError

from .injury_service import InjuryService
from .scoreboard import ScoreboardService, cache_key

logger = logging.getLogger(__name__)

_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


def by_game_date(prediction: Prediction):
    return (prediction.game_date is None, prediction.game_date or _EPOCH)


class PredictionService:
    """
    Consensus predictions for today's open games.

    The provider's predictor endpoint is tried first, then the ``predictor``
    block of the game summary; without either, the internal model stands
    alone. Key-injury penalties use whatever injury trends are already
    cached, so predictions never trigger an injury fetch.
    """

    def __init__(
        self,
        client: EspnClient,
        scoreboard: ScoreboardService,
        cache: TTLCache,
        cache_config: Optional[CacheConfig] = None,
        injuries: Optional[InjuryService] = None,
    ):
        self.client = client
        self.scoreboard = scoreboard
        self.cache = cache
        self.ttl = cache_config or CacheConfig()
        self.injuries = injuries

    async def get_predictions(self, sport: str) -> List[Prediction]:
        sport = sport.upper()
        board = await self.scoreboard.get_scoreboard(sport)
        games = [game for game in board.games if game.is_upcoming or game.is_live]
        injured = self.injuries.cached_key_injury_teams(sport) if self.injuries else set()

        settled = await gather_settled(
            [(f"game {game.id}", self.get_prediction_for_game(sport, game, injured)) for game in games],
            label=f"{sport} predictions",
        )
        predictions = [s.value for s in settled if s.ok and s.value is not None]
        predictions.sort(key=by_game_date)
        logger.debug(f"[{sport}] {len(predictions)} predictions for {len(games)} open games")
        return predictions

    async def get_prediction_for_game(
        self,
        sport: str,
        game: GamePayload,
        key_injury_teams: Iterable[str] = (),
    ) -> Optional[Prediction]:
        key = cache_key(sport, "prediction", game.id)
        cached = self.cache.get(key)
        if cached is not None:
            return cached

        predictor = await self._predictor(sport, game)
        prediction = predict_game(sport, game, predictor, key_injury_teams)
        if prediction is not None:
            self.cache.set(key, prediction, self.ttl.predictions_ttl)
        return prediction

    async def _predictor(self, sport: str, game: GamePayload) -> Optional[PredictorPayload]:
        try:
            payload = await self.client.fetch_predictor(sport, game.id, game.competition_id)
            if payload.home_projection is not None:
                return payload
        except TrendlineError as e:
            logger.debug(f"[{sport}] predictor unavailable for {game.id}: {e}")

        try:
            summary = await self.client.fetch_game_summary(sport, game.id)
        except TrendlineError as e:
            logger.debug(f"[{sport}] summary unavailable for {game.id}: {e}")
            return None
        payload = PredictorPayload.from_raw(summary.get("predictor"))
        return payload if payload.home_projection is not None else None
