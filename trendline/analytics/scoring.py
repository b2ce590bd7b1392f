"""
Deterministic scoring: player impact, severity tiers and prediction confidence.

Everything here is a pure function of its arguments.
"""

from __future__ import annotations

import math
from typing import TYPE_CHECKING, Dict, Optional

from .stat_normalizer import NormalizedStats

if TYPE_CHECKING:  # pragma: no cover
    from trendline.models.trends import InjuryTrend

MIN_IMPACT = 5
MAX_IMPACT = 100
DEFAULT_POSITION_WEIGHT = 20

POSITION_WEIGHTS: Dict[str, int] = {
    # football
    "QB": 40,
    "RB": 32,
    "WR": 30,
    "TE": 25,
    # basketball
    "PG": 36,
    "SG": 32,
    "SF": 30,
    "PF": 30,
    "C": 35,
    # baseball
    "SP": 40,
    "RP": 24,
    "CATCHER": 28,
    "1B": 25,
    "2B": 25,
    "3B": 25,
    "SS": 28,
    "OF": 26,
    # hockey
    "LW": 28,
    "RW": 28,
    "D": 30,
    "G": 38,
}

SEVERITY_RANK: Dict[str, int] = {
    "critical": 4,
    "high": 3,
    "medium": 2,
    "low": 1,
}


def round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def clamp(value: float, low: float, high: float) -> float:
    return max(low, min(high, value))


def position_weight(position: Optional[str]) -> int:
    return POSITION_WEIGHTS.get((position or "").strip().upper(), DEFAULT_POSITION_WEIGHT)


def clamp_impact(score: float) -> int:
    return int(clamp(round_half_up(score), MIN_IMPACT, MAX_IMPACT))


def _capped(value: Optional[float], scale: float, weight: float) -> float:
    if not value:
        return 0.0
    return min(value / scale * weight, weight)


# ============================================================================
# IMPACT SCORE
# ============================================================================

def basketball_impact(stats: Optional[NormalizedStats], position: Optional[str]) -> int:
    base = position_weight(position)
    if stats is None:
        return clamp_impact(base + 25)

    usage = stats.usage_share
    if usage is None:
        usage = ((stats.points_per_game or 0) / 28 + (stats.minutes_per_game or 0) / 36) / 2

    score = (
        base
        + _capped(stats.points_per_game, 34, 40)
        + _capped(stats.assists_per_game, 10, 15)
        + _capped(stats.rebounds_per_game, 13, 15)
        + _capped(stats.minutes_per_game, 37, 10)
        + min(max(usage, 0.0) * 20, 20)
    )
    return clamp_impact(score)


def football_impact(stats: Optional[NormalizedStats], position: Optional[str]) -> int:
    base = position_weight(position)
    if stats is None:
        return clamp_impact(base + 20)

    if (position or "").strip().upper() == "QB":
        score = (
            base
            + _capped(stats.passing_yards_per_game, 325, 45)
            + _capped(stats.passing_tds_per_game, 3.2, 25)
            + _capped(stats.rushing_yards_per_game, 60, 10)
        )
        return clamp_impact(score)

    total_yards = (stats.rushing_yards_per_game or 0) + (stats.receiving_yards_per_game or 0)
    touchdowns = (stats.rushing_tds_per_game or 0) + (stats.receiving_tds_per_game or 0)
    score = (
        base
        + min(total_yards / 160 * 40, 40)
        + min(touchdowns / 1.5 * 25, 25)
        + _capped(stats.touches_per_game, 25, 20)
    )
    return clamp_impact(score)


def baseball_impact(stats: Optional[NormalizedStats], position: Optional[str]) -> int:
    base = position_weight(position)
    if stats is None:
        return clamp_impact(base + 15)

    avg_score = min(max((stats.batting_average - 0.22) / 0.12, 0) * 25, 25) if stats.batting_average else 0
    ops_score = min(max((stats.ops - 0.65) / 0.45, 0) * 35, 35) if stats.ops else 0
    power_score = _capped(stats.home_runs_per_162, 45, 20)
    return clamp_impact(base + avg_score + ops_score + power_score)


def generic_impact(stats: Optional[NormalizedStats], position: Optional[str]) -> int:
    base = position_weight(position)
    usage = stats.usage_share * 15 if stats and stats.usage_share else 10
    production = _capped(stats.points_per_game, 20, 30) if stats and stats.points_per_game else 15
    return clamp_impact(base + usage + production)


_IMPACT_BY_SPORT = {
    "NBA": basketball_impact,
    "NFL": football_impact,
    "MLB": baseball_impact,
}


def impact_score(sport: str, stats: Optional[NormalizedStats], position: Optional[str]) -> int:
    """Impact of a player's absence on a 5-100 scale."""
    scorer = _IMPACT_BY_SPORT.get(sport.upper(), generic_impact)
    return scorer(stats, position)


def usage_rate(stats: Optional[NormalizedStats], default: int = 20) -> int:
    """Usage share as a whole percentage."""
    if stats is None or stats.usage_share is None:
        return default
    return round_half_up(stats.usage_share * 100)


# ============================================================================
# SEVERITY
# ============================================================================

def injury_severity(status: str, impact: float) -> str:
    if status == "out" and impact > 70:
        return "critical"
    if status == "out" and impact > 40:
        return "high"
    if status == "doubtful" and impact > 60:
        return "high"
    if status == "questionable" and impact > 70:
        return "medium"
    if status == "out":
        return "medium"
    return "low"


def streak_severity(streak_length: int) -> str:
    if streak_length >= 6:
        return "high"
    if streak_length >= 4:
        return "medium"
    return "low"


def percent_change_severity(percent_change: float) -> str:
    magnitude = abs(percent_change)
    if magnitude > 25:
        return "high"
    if magnitude > 15:
        return "medium"
    return "low"


def betting_severity(steam_move: bool, reverse_line: bool, spread_movement: float) -> str:
    if steam_move:
        return "critical"
    if reverse_line:
        return "high"
    if abs(spread_movement) > 0.5:
        return "medium"
    return "low"


def max_severity(*tiers: str) -> str:
    return max(tiers, key=lambda tier: SEVERITY_RANK.get(tier, 0), default="low")


def is_high_severity(tier: str) -> bool:
    return tier in ("critical", "high")


# ============================================================================
# CONFIDENCE
# ============================================================================

def prediction_confidence(win_probability: float, record_differential: float, has_key_injuries: bool) -> int:
    """
    Confidence (0-100) in an internal prediction.

    Starts at 50, grows with distance from a coin flip and with the gap
    between the two records (capped at +20), and drops 15 when a key player
    is out.
    """
    confidence = 50.0
    confidence += abs(win_probability - 50) * 0.5
    confidence += min(record_differential * 5, 20)
    if has_key_injuries:
        confidence -= 15
    return int(clamp(round_half_up(confidence), 0, 100))


def is_high_impact(injury: "InjuryTrend") -> bool:
    if injury.player_impact.impact_score > 60:
        return True
    return injury.game_impact is not None and abs(injury.game_impact.spread_change) > 1
