"""Per-sport normalization of athlete season statistics."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Optional


@dataclass(frozen=True)
class NormalizedStats:
    # basketball / generic
    points_per_game: Optional[float] = None
    assists_per_game: Optional[float] = None
    rebounds_per_game: Optional[float] = None
    minutes_per_game: Optional[float] = None
    usage_share: Optional[float] = None
    # football
    passing_yards_per_game: Optional[float] = None
    rushing_yards_per_game: Optional[float] = None
    receiving_yards_per_game: Optional[float] = None
    touches_per_game: Optional[float] = None
    passing_tds_per_game: Optional[float] = None
    rushing_tds_per_game: Optional[float] = None
    receiving_tds_per_game: Optional[float] = None
    # baseball
    batting_average: Optional[float] = None
    ops: Optional[float] = None
    home_runs_per_162: Optional[float] = None

    @property
    def combined_yards_per_game(self) -> Optional[float]:
        if self.rushing_yards_per_game is None and self.receiving_yards_per_game is None:
            return None
        return (self.rushing_yards_per_game or 0.0) + (self.receiving_yards_per_game or 0.0)

    @property
    def touchdowns_per_game(self) -> float:
        return (
            (self.passing_tds_per_game or 0.0)
            + (self.rushing_tds_per_game or 0.0)
            + (self.receiving_tds_per_game or 0.0)
        )


def estimate_usage(points: Optional[float], minutes: Optional[float]) -> Optional[float]:
    """Usage share estimated from scoring and floor time (28 ppg / 36 mpg ~ 1.0)."""
    if not points and not minutes:
        return None
    return ((points or 0.0) / 28 + (minutes or 0.0) / 36) / 2


def _per_game(values: Dict[str, float], rate_key: str, total_key: str, games: Optional[float]) -> Optional[float]:
    if rate_key in values:
        return values[rate_key]
    if games:
        return values.get(total_key, 0.0) / games
    return None


def _normalize_basketball(values: Dict[str, float]) -> Optional[NormalizedStats]:
    points = values.get("avgPoints")
    assists = values.get("avgAssists")
    rebounds = values.get("avgRebounds")
    minutes = values.get("avgMinutes")
    if not points and not assists and not rebounds and not minutes:
        return None
    return NormalizedStats(
        points_per_game=points,
        assists_per_game=assists,
        rebounds_per_game=rebounds,
        minutes_per_game=minutes,
        usage_share=estimate_usage(points, minutes),
    )


def _normalize_football(values: Dict[str, float]) -> Optional[NormalizedStats]:
    games = values.get("gamesPlayed") or values.get("teamGamesPlayed")

    passing = _per_game(values, "passingYardsPerGame", "passingYards", games)
    rushing = _per_game(values, "rushingYardsPerGame", "rushingYards", games)
    receiving = _per_game(values, "receivingYardsPerGame", "receivingYards", games)
    if not passing and not rushing and not receiving:
        return None

    attempts = values.get("rushingAttempts", 0.0)
    targets = values.get("receivingTargets", 0.0)
    touches = (attempts + targets) / games if games and (attempts or targets) else None

    return NormalizedStats(
        passing_yards_per_game=passing,
        rushing_yards_per_game=rushing,
        receiving_yards_per_game=receiving,
        touches_per_game=touches,
        passing_tds_per_game=values.get("passingTouchdowns", 0.0) / games if games else None,
        rushing_tds_per_game=values.get("rushingTouchdowns", 0.0) / games if games else None,
        receiving_tds_per_game=values.get("receivingTouchdowns", 0.0) / games if games else None,
    )


def _normalize_baseball(values: Dict[str, float]) -> Optional[NormalizedStats]:
    games = values.get("gamesPlayed")
    average = values.get("avg")
    ops = values.get("OPS")
    home_runs = values.get("homeRuns")
    per_162 = home_runs / games * 162 if games and home_runs else None
    if not average and not ops and not per_162:
        return None
    return NormalizedStats(batting_average=average, ops=ops, home_runs_per_162=per_162)


_NORMALIZERS = {
    "NBA": _normalize_basketball,
    "NFL": _normalize_football,
    "MLB": _normalize_baseball,
}


def normalize_stats(sport: str, values: Dict[str, float]) -> Optional[NormalizedStats]:
    """
    Turn flattened season statistics into per-game figures for ``sport``.

    Returns None when nothing usable is present (including every hockey
    payload), which makes the scoring engine fall back to positional weight.
    """
    normalizer = _NORMALIZERS.get(sport.upper())
    if normalizer is None or not values:
        return None
    return normalizer(values)
