"""Immutable analytics entities surfaced to the presentation layer."""

from __future__ import annotations

from dataclasses import dataclass, fields, is_dataclass
from datetime import datetime
from typing import Any, ClassVar, Dict, Optional, Tuple

from trendline.analytics.scoring import (
    SEVERITY_RANK,
    betting_severity,
    clamp,
    clamp_impact,
    injury_severity,
    max_severity,
    percent_change_severity,
    streak_severity,
)
from trendline.models.payloads import parse_timestamp

INJURY_STATUSES = ("out", "doubtful", "questionable", "probable", "day-to-day")


def to_jsonable(value: Any) -> Any:
    """Recursively convert dataclasses, tuples and datetimes into JSON-ready values."""
    if is_dataclass(value) and not isinstance(value, type):
        data = {f.name: to_jsonable(getattr(value, f.name)) for f in fields(value)}
        if isinstance(value, Entity):
            data["category"] = value.category
            data["severity"] = value.severity
        return data
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, (list, tuple)):
        return [to_jsonable(v) for v in value]
    if isinstance(value, dict):
        return {k: to_jsonable(v) for k, v in value.items()}
    return value


# ============================================================================
# BASE ENTITY
# ============================================================================

@dataclass(frozen=True)
class Entity:
    """
    One analytics record.

    ``severity`` is computed from the entity's own fields and cannot be set.
    """

    id: str
    sport: str
    title: str
    description: str
    timestamp: datetime
    is_live: bool

    category: ClassVar[str] = ""

    @property
    def severity(self) -> str:
        raise NotImplementedError

    @property
    def severity_rank(self) -> int:
        return SEVERITY_RANK[self.severity]

    def to_dict(self) -> Dict[str, Any]:
        return to_jsonable(self)


# ============================================================================
# BETTING
# ============================================================================

@dataclass(frozen=True)
class BettingTrend(Entity):
    game_id: str
    home_team: str
    away_team: str
    current_spread: float
    spread_movement: float
    current_total: float
    total_movement: float
    moneyline_home: float
    moneyline_away: float
    reverse_line_movement: bool
    steam_move: bool
    sharp_action: str

    category: ClassVar[str] = "betting"

    @property
    def severity(self) -> str:
        return betting_severity(self.steam_move, self.reverse_line_movement, self.spread_movement)

    @property
    def is_notable(self) -> bool:
        return self.severity != "low" or self.steam_move or self.reverse_line_movement


# ============================================================================
# PLAYER
# ============================================================================

@dataclass(frozen=True)
class StatSnapshot:
    metric: str
    current: float
    season_avg: float
    last5_avg: float
    percent_change: float


@dataclass(frozen=True)
class PropFactors:
    season_average: float
    last5_average: float
    vs_opponent_avg: Optional[float] = None
    home_away_diff: Optional[float] = None
    rest_days: Optional[int] = None


@dataclass(frozen=True)
class CalculatedProp:
    metric: str
    line: float
    recommendation: str
    confidence: int
    reasoning: Tuple[str, ...]
    factors: PropFactors

    def __post_init__(self):
        object.__setattr__(self, "confidence", int(clamp(self.confidence, 0, 100)))


@dataclass(frozen=True)
class NextGame:
    opponent: str
    date: Optional[datetime]
    home_away: str


@dataclass(frozen=True)
class PlayerTrend(Entity):
    player_id: str
    player_name: str
    team_name: str
    position: str
    streak_type: str
    streak_length: int
    stats: Tuple[StatSnapshot, ...] = ()
    calculated_props: Tuple[CalculatedProp, ...] = ()
    next_game: Optional[NextGame] = None

    category: ClassVar[str] = "player"

    @property
    def severity(self) -> str:
        tiers = [streak_severity(self.streak_length)]
        tiers.extend(percent_change_severity(s.percent_change) for s in self.stats)
        return max_severity(*tiers)

    @property
    def max_prop_confidence(self) -> int:
        return max((p.confidence for p in self.calculated_props), default=0)


# ============================================================================
# TEAM
# ============================================================================

@dataclass(frozen=True)
class Record:
    wins: int
    losses: int


@dataclass(frozen=True)
class AtsRecord:
    wins: int
    losses: int
    pushes: int


@dataclass(frozen=True)
class TeamStats:
    points_per_game: float
    points_allowed: float
    avg_margin: float


@dataclass(frozen=True)
class TeamSplits:
    home: Record
    away: Record
    last_ten: Record


@dataclass(frozen=True)
class TeamTrend(Entity):
    team_id: str
    team_name: str
    trend_type: str
    streak_length: int
    record: Record
    ats_record: AtsRecord
    stats: TeamStats
    splits: TeamSplits

    category: ClassVar[str] = "team"

    @property
    def severity(self) -> str:
        return streak_severity(self.streak_length)


# ============================================================================
# INJURY
# ============================================================================

@dataclass(frozen=True)
class GameImpact:
    game_id: str
    opponent: str
    date: Optional[datetime]
    spread_change: float
    total_change: float


@dataclass(frozen=True)
class PlayerImpact:
    impact_score: int
    usage_rate: int = 0
    season_avg_points: float = 0.0
    season_avg_rebounds: float = 0.0
    season_avg_assists: float = 0.0
    season_avg_minutes: Optional[float] = None
    season_avg_yards: Optional[float] = None
    season_avg_touchdowns: Optional[float] = None

    def __post_init__(self):
        object.__setattr__(self, "impact_score", clamp_impact(self.impact_score))


@dataclass(frozen=True)
class InjuryTrend(Entity):
    player_id: str
    player_name: str
    team_id: Optional[str]
    team_name: str
    position: str
    injury_status: str
    injury_details: str
    player_impact: PlayerImpact
    source: str
    game_impact: Optional[GameImpact] = None

    category: ClassVar[str] = "injury"

    @property
    def severity(self) -> str:
        return injury_severity(self.injury_status, self.player_impact.impact_score)

    @property
    def impact_score(self) -> int:
        return self.player_impact.impact_score


# ============================================================================
# PREDICTIONS
# ============================================================================

@dataclass(frozen=True)
class PredictionSource:
    source: str
    home_win_probability: int
    away_win_probability: int
    confidence: int
    predicted_home_score: Optional[float] = None
    predicted_away_score: Optional[float] = None
    reasoning: Tuple[str, ...] = ()

    def __post_init__(self):
        object.__setattr__(self, "confidence", int(clamp(self.confidence, 0, 100)))


@dataclass(frozen=True)
class Consensus:
    favored_team: str
    win_probability: int
    confidence: int


@dataclass(frozen=True)
class OddsSnapshot:
    spread: float
    total: float
    moneyline_home: float
    moneyline_away: float


@dataclass(frozen=True)
class Prediction:
    id: str
    sport: str
    game_id: str
    home_team: str
    away_team: str
    game_date: Optional[datetime]
    predictions: Tuple[PredictionSource, ...]
    consensus: Consensus
    current_odds: Optional[OddsSnapshot] = None
    key_factors: Tuple[str, ...] = ()
    is_live: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return to_jsonable(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Prediction":
        """Rebuild a prediction from ``to_dict`` output (snapshot store)."""
        odds = data.get("current_odds")
        return cls(
            id=data["id"],
            sport=data["sport"],
            game_id=data["game_id"],
            home_team=data["home_team"],
            away_team=data["away_team"],
            game_date=parse_timestamp(data.get("game_date")),
            predictions=tuple(
                PredictionSource(
                    source=p["source"],
                    home_win_probability=p["home_win_probability"],
                    away_win_probability=p["away_win_probability"],
                    confidence=p["confidence"],
                    predicted_home_score=p.get("predicted_home_score"),
                    predicted_away_score=p.get("predicted_away_score"),
                    reasoning=tuple(p.get("reasoning") or ()),
                )
                for p in data.get("predictions") or ()
            ),
            consensus=Consensus(**data["consensus"]),
            current_odds=OddsSnapshot(**odds) if odds else None,
            key_factors=tuple(data.get("key_factors") or ()),
            is_live=bool(data.get("is_live", False)),
        )


# ============================================================================
# NEWS
# ============================================================================

@dataclass(frozen=True)
class NewsArticle:
    id: str
    headline: str
    sport: str
    description: str = ""
    published: Optional[datetime] = None
    link: Optional[str] = None
    image: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return to_jsonable(self)
