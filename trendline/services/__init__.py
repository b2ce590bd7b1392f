"""Sub-pipelines and the aggregation facade"""

from .aggregator import TrendsAggregator
from .betting_trends import BettingTrendsService
from .injury_service import InjuryService
from .news_service import NewsService
from .player_trends import PlayerTrendsService
from .prediction_service import PredictionService
from .scoreboard import ScoreboardService
from .team_trends import TeamTrendsService

__all__ = [
    'TrendsAggregator',
    'BettingTrendsService',
    'InjuryService',
    'NewsService',
    'PlayerTrendsService',
    'PredictionService',
    'ScoreboardService',
    'TeamTrendsService',
]
