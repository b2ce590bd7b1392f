"""Pure analytics: stat normalization and scoring"""

from .stat_normalizer import NormalizedStats, normalize_stats
from .scoring import (
    impact_score,
    injury_severity,
    is_high_impact,
    prediction_confidence,
    usage_rate,
)

__all__ = [
    'NormalizedStats',
    'normalize_stats',
    'impact_score',
    'injury_severity',
    'is_high_impact',
    'prediction_confidence',
    'usage_rate',
]
