"""Game predictions: record-based Elo model, external predictor, and their consensus."""

from __future__ import annotations

import logging
from typing import Iterable, List, Optional, Sequence, Tuple

from trendline.analytics.scoring import clamp, prediction_confidence, round_half_up
from trendline.models.payloads import GamePayload, PredictorPayload
from trendline.models.trends import Consensus, OddsSnapshot, Prediction, PredictionSource

logger = logging.getLogger(__name__)

INTERNAL_SOURCE = "Trendline Model"
EXTERNAL_SOURCE = "ESPN"
EXTERNAL_CONFIDENCE = 75

BASE_RATING = 1500.0
RATING_SPREAD = 400.0
HOME_ADVANTAGE = 3.0


# ============================================================================
# ELO
# ============================================================================

def win_percentage(wins: int, losses: int) -> float:
    """Share of games won; a team with no games played rates as .500."""
    games = wins + losses
    if games <= 0:
        return 0.5
    return wins / games


def record_rating(wins: int, losses: int, home: bool = False, home_advantage: float = HOME_ADVANTAGE) -> float:
    rating = BASE_RATING + (win_percentage(wins, losses) - 0.5) * RATING_SPREAD
    return rating + home_advantage if home else rating


def elo_probability(rating_a: float, rating_b: float) -> float:
    """Probability that side A beats side B."""
    return 1 / (1 + 10 ** ((rating_b - rating_a) / RATING_SPREAD))


def home_win_probability(
    home_record: Tuple[int, int],
    away_record: Tuple[int, int],
    home_advantage: float = HOME_ADVANTAGE,
) -> int:
    """Home win probability as a whole percent."""
    home = record_rating(*home_record, home=True, home_advantage=home_advantage)
    away = record_rating(*away_record)
    return round_half_up(elo_probability(home, away) * 100)


def record_differential(home_record: Tuple[int, int], away_record: Tuple[int, int]) -> int:
    """Positive when the home team is further above .500 than the away team."""
    return (home_record[0] - home_record[1]) - (away_record[0] - away_record[1])


# ============================================================================
# SOURCES
# ============================================================================

def internal_prediction(
    home_record: Tuple[int, int],
    away_record: Tuple[int, int],
    has_key_injuries: bool = False,
) -> PredictionSource:
    home_prob = home_win_probability(home_record, away_record)
    reasoning = [
        f"Home record: {home_record[0]}-{home_record[1]}",
        f"Away record: {away_record[0]}-{away_record[1]}",
        "ELO rating calculation",
        "Home court advantage applied",
    ]
    if has_key_injuries:
        reasoning.append("Key player injuries factored in")

    return PredictionSource(
        source=INTERNAL_SOURCE,
        home_win_probability=home_prob,
        away_win_probability=100 - home_prob,
        confidence=prediction_confidence(
            home_prob,
            abs(record_differential(home_record, away_record)),
            has_key_injuries,
        ),
        reasoning=tuple(reasoning),
    )


def external_prediction(payload: Optional[PredictorPayload]) -> Optional[PredictionSource]:
    """The provider's own projection, or None when it carries no win probability."""
    if payload is None or payload.home_projection is None:
        return None
    home_prob = int(clamp(round_half_up(payload.home_projection), 0, 100))
    return PredictionSource(
        source=EXTERNAL_SOURCE,
        home_win_probability=home_prob,
        away_win_probability=100 - home_prob,
        confidence=EXTERNAL_CONFIDENCE,
        predicted_home_score=payload.home_score,
        predicted_away_score=payload.away_score,
        reasoning=("ESPN FPI Model", "Historical performance analysis"),
    )


def build_consensus(sources: Sequence[PredictionSource]) -> Consensus:
    """
    Blend independent sources with a plain mean.

    The home side is favored when the mean home probability is at least 50.
    """
    if not sources:
        raise ValueError("consensus needs at least one prediction source")

    mean_home = sum(s.home_win_probability for s in sources) / len(sources)
    mean_confidence = sum(s.confidence for s in sources) / len(sources)
    favored_home = mean_home >= 50

    return Consensus(
        favored_team="home" if favored_home else "away",
        win_probability=round_half_up(mean_home if favored_home else 100 - mean_home),
        confidence=round_half_up(mean_confidence),
    )


def key_factors(
    home_name: str,
    away_name: str,
    home_record: Tuple[int, int],
    away_record: Tuple[int, int],
    spread: Optional[float] = None,
    home_has_statistics: bool = False,
    injured_teams: Iterable[str] = (),
) -> Tuple[str, ...]:
    factors: List[str] = []

    diff = record_differential(home_record, away_record)
    if abs(diff) >= 5:
        leader = home_name if diff > 0 else away_name
        factors.append(f"{leader} has {abs(diff)} more wins")

    if home_has_statistics:
        factors.append("Home team playing at home")

    if spread is not None and abs(spread) < 3:
        factors.append("Close matchup expected")

    for team in injured_teams:
        factors.append(f"{team} missing a key player")

    return tuple(factors)


# ============================================================================
# GAME PREDICTION
# ============================================================================

def predict_game(
    sport: str,
    game: GamePayload,
    predictor: Optional[PredictorPayload] = None,
    key_injury_teams: Iterable[str] = (),
) -> Optional[Prediction]:
    """
    Predict one game, or None when the game lacks a home or away side.

    ``key_injury_teams`` holds the team names (or ids) that have an ``out``
    player with impact above 60; it lowers the internal model's confidence.
    """
    home, away = game.home, game.away
    if home is None or away is None:
        logger.debug(f"[{sport}] game {game.id} has no home/away pair, skipping prediction")
        return None

    injured = set(key_injury_teams)
    injured_sides = [
        c.team.name for c in (home, away)
        if c.team.name in injured or (c.team.id is not None and c.team.id in injured)
    ]

    sources: List[PredictionSource] = []
    external = external_prediction(predictor)
    if external is not None:
        sources.append(external)
    sources.append(internal_prediction(home.record, away.record, has_key_injuries=bool(injured_sides)))

    odds = None
    if game.odds is not None:
        odds = OddsSnapshot(
            spread=game.odds.spread,
            total=game.odds.total,
            moneyline_home=home.moneyline or 0.0,
            moneyline_away=away.moneyline or 0.0,
        )

    return Prediction(
        id=f"prediction_{game.id}",
        sport=sport.upper(),
        game_id=game.id,
        home_team=home.team.name,
        away_team=away.team.name,
        game_date=game.date,
        predictions=tuple(sources),
        consensus=build_consensus(sources),
        current_odds=odds,
        key_factors=key_factors(
            home.team.name,
            away.team.name,
            home.record,
            away.record,
            spread=odds.spread if odds else None,
            home_has_statistics=home.has_statistics,
            injured_teams=injured_sides,
        ),
        is_live=game.is_live,
    )
