"""Result envelopes returned by the aggregation facade."""

from __future__ import annotations

from collections import Counter
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, Generic, List, Optional, Tuple, TypeVar

from trendline.analytics.scoring import is_high_severity
from trendline.models.trends import Entity, InjuryTrend, NewsArticle, Prediction, to_jsonable

T = TypeVar("T")


@dataclass(frozen=True)
class FeedResult(Generic[T]):
    """
    One aggregation response.

    ``error`` is set only when every sub-pipeline failed; ``items`` is then
    empty. Partial failures are logged and never surface here.
    """

    items: Tuple[T, ...] = ()
    last_updated: Optional[datetime] = None
    error: Optional[str] = None
    refresh_mode: str = "initial"
    live_games_count: int = 0
    upcoming_games_count: int = 0
    final_games_count: int = 0
    failed_sources: Tuple[str, ...] = ()

    @property
    def count(self) -> int:
        return len(self.items)

    @property
    def ok(self) -> bool:
        return self.error is None

    def to_dict(self) -> Dict[str, Any]:
        return {
            'items': [to_jsonable(item) for item in self.items],
            'last_updated': self.last_updated.isoformat() if self.last_updated else None,
            'error': self.error,
            'refresh_mode': self.refresh_mode,
            'live_games_count': self.live_games_count,
            'upcoming_games_count': self.upcoming_games_count,
            'final_games_count': self.final_games_count,
            'failed_sources': list(self.failed_sources),
        }


@dataclass(frozen=True)
class TrendsResult(FeedResult[Entity]):

    def by_category(self, category: str) -> Tuple[Entity, ...]:
        if category == "all":
            return self.items
        return tuple(item for item in self.items if item.category == category)

    def count_by_category(self) -> Dict[str, int]:
        return dict(Counter(item.category for item in self.items))

    @property
    def high_severity(self) -> Tuple[Entity, ...]:
        return tuple(item for item in self.items if is_high_severity(item.severity))


@dataclass(frozen=True)
class InjuriesResult(FeedResult[InjuryTrend]):

    @property
    def high_severity(self) -> Tuple[InjuryTrend, ...]:
        return tuple(item for item in self.items if is_high_severity(item.severity))

    def critical(self) -> Tuple[InjuryTrend, ...]:
        return tuple(item for item in self.items if item.severity == "critical")


@dataclass(frozen=True)
class PredictionsResult(FeedResult[Prediction]):

    def high_confidence(self, threshold: int = 65) -> Tuple[Prediction, ...]:
        return tuple(p for p in self.items if p.consensus.confidence >= threshold)

    def by_sport(self) -> Dict[str, List[Prediction]]:
        grouped: Dict[str, List[Prediction]] = {}
        for prediction in self.items:
            grouped.setdefault(prediction.sport, []).append(prediction)
        return grouped


@dataclass(frozen=True)
class NewsResult(FeedResult[NewsArticle]):
    pass
