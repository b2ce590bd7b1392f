"""Data models: provider payload views, analytics entities and result envelopes"""

from .payloads import GamePayload, InjuryPayload, ScoreboardPayload, TeamRef, AthleteRef
from .trends import (
    Entity,
    BettingTrend,
    PlayerTrend,
    TeamTrend,
    InjuryTrend,
    Prediction,
    NewsArticle,
)
from .results import FeedResult, TrendsResult, InjuriesResult, PredictionsResult, NewsResult

__all__ = [
    'GamePayload',
    'InjuryPayload',
    'ScoreboardPayload',
    'TeamRef',
    'AthleteRef',
    'Entity',
    'BettingTrend',
    'PlayerTrend',
    'TeamTrend',
    'InjuryTrend',
    'Prediction',
    'NewsArticle',
    'FeedResult',
    'TrendsResult',
    'InjuriesResult',
    'PredictionsResult',
    'NewsResult',
]
