"""
Narrow, explicitly optional views over the provider's JSON payloads.

Every field the core reads from the provider is declared here; anything the
provider omits comes through as ``None`` or an empty tuple. Parsing never
raises for a missing field. Only a top-level payload that is not a JSON
object at all is rejected (see ``PayloadShapeError`` in the gateway).
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Optional, Tuple


# ============================================================================
# DEFENSIVE ACCESSORS
# ============================================================================

def _as_dict(value: Any) -> Dict[str, Any]:
    return value if isinstance(value, dict) else {}


def _as_list(value: Any) -> List[Any]:
    return value if isinstance(value, list) else []


def _as_str(value: Any) -> Optional[str]:
    if value is None or isinstance(value, (dict, list)):
        return None
    text = str(value).strip()
    return text or None


def _as_float(value: Any) -> Optional[float]:
    if value is None or isinstance(value, bool):
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


def _first(*values: Any) -> Optional[str]:
    for value in values:
        text = _as_str(value)
        if text:
            return text
    return None


def parse_timestamp(value: Any) -> Optional[datetime]:
    """Parse a provider ISO timestamp (``2024-01-10T00:30Z``) into an aware UTC datetime."""
    text = _as_str(value)
    if not text:
        return None
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    try:
        parsed = datetime.fromisoformat(text)
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


_RECORD_RE = re.compile(r"(\d+)-(\d+)")


def parse_record(summary: Optional[str]) -> Tuple[int, int]:
    """``"10-2"`` or ``"10-2-1"`` -> ``(10, 2)``; anything else -> ``(0, 0)``."""
    if not summary:
        return (0, 0)
    match = _RECORD_RE.search(summary)
    if not match:
        return (0, 0)
    return (int(match.group(1)), int(match.group(2)))


# ============================================================================
# SHARED REFERENCES
# ============================================================================

@dataclass(frozen=True)
class TeamRef:
    id: Optional[str] = None
    display_name: Optional[str] = None
    abbreviation: Optional[str] = None
    logo: Optional[str] = None

    @classmethod
    def from_raw(cls, raw: Any) -> Optional["TeamRef"]:
        data = _as_dict(raw)
        if not data:
            return None
        logos = _as_list(data.get("logos"))
        return cls(
            id=_as_str(data.get("id")),
            display_name=_first(data.get("displayName"), data.get("name"), data.get("shortDisplayName")),
            abbreviation=_as_str(data.get("abbreviation")),
            logo=_first(data.get("logo"), _as_dict(logos[0]).get("href") if logos else None),
        )

    @property
    def name(self) -> str:
        return self.display_name or self.abbreviation or "Unknown"


@dataclass(frozen=True)
class AthleteRef:
    id: Optional[str] = None
    display_name: Optional[str] = None
    position: Optional[str] = None
    headshot: Optional[str] = None

    @classmethod
    def from_raw(cls, raw: Any) -> Optional["AthleteRef"]:
        data = _as_dict(raw)
        if not data:
            return None
        position = data.get("position")
        if isinstance(position, dict):
            position = position.get("abbreviation") or position.get("name")
        headshot = data.get("headshot")
        if isinstance(headshot, dict):
            headshot = headshot.get("href")
        return cls(
            id=_first(data.get("id"), data.get("guid"), data.get("uid")),
            display_name=_first(data.get("displayName"), data.get("fullName"), data.get("shortName")),
            position=_as_str(position),
            headshot=_as_str(headshot),
        )


# ============================================================================
# SCOREBOARD
# ============================================================================

@dataclass(frozen=True)
class InjuryPayload:
    """One injury record as reported by any of the three injury feeds."""

    athlete: Optional[AthleteRef]
    team: Optional[TeamRef]
    status: Optional[str] = None
    injury_type: Optional[str] = None
    long_comment: Optional[str] = None
    details: Optional[str] = None
    short_comment: Optional[str] = None
    date: Optional[datetime] = None
    game_id: Optional[str] = None
    game_date: Optional[datetime] = None
    game_state: Optional[str] = None
    opponent: Optional[TeamRef] = None

    @classmethod
    def from_raw(
        cls,
        raw: Any,
        team: Optional[TeamRef] = None,
        game: Optional["GamePayload"] = None,
        opponent: Optional[TeamRef] = None,
    ) -> Optional["InjuryPayload"]:
        data = _as_dict(raw)
        if not data:
            return None

        athlete_raw = _as_dict(data.get("athlete"))
        athlete = AthleteRef.from_raw(athlete_raw)
        own_team = TeamRef.from_raw(athlete_raw.get("team")) or TeamRef.from_raw(data.get("team")) or team

        type_raw = data.get("type")
        if isinstance(type_raw, dict):
            injury_type = _first(type_raw.get("description"), type_raw.get("name"))
        else:
            injury_type = _as_str(type_raw)

        # details is either free text or {type, detail, side, returnDate}
        details_raw = data.get("details")
        if isinstance(details_raw, dict):
            details = _first(details_raw.get("detail"), details_raw.get("type"))
            injury_type = injury_type or _as_str(details_raw.get("type"))
        else:
            details = _as_str(details_raw)

        status_raw = data.get("status")
        if isinstance(status_raw, dict):
            status_raw = status_raw.get("name") or status_raw.get("type")

        return cls(
            athlete=athlete,
            team=own_team,
            status=_as_str(status_raw),
            injury_type=injury_type,
            long_comment=_as_str(data.get("longComment")),
            details=details,
            short_comment=_as_str(data.get("shortComment")),
            date=parse_timestamp(data.get("date")),
            game_id=game.id if game else None,
            game_date=game.date if game else None,
            game_state=game.state if game else None,
            opponent=opponent,
        )


@dataclass(frozen=True)
class OddsPayload:
    details: Optional[str] = None
    over_under: Optional[float] = None

    @classmethod
    def from_raw(cls, raw: Any) -> Optional["OddsPayload"]:
        data = _as_dict(raw)
        if not data:
            return None
        return cls(details=_as_str(data.get("details")), over_under=_as_float(data.get("overUnder")))

    @property
    def spread(self) -> float:
        """Numeric part of ``"LAL -3.5"``; 0.0 when absent or unparseable."""
        if not self.details:
            return 0.0
        parts = self.details.split(" ")
        if len(parts) < 2:
            return 0.0
        return _as_float(parts[1]) or 0.0

    @property
    def total(self) -> float:
        return self.over_under or 0.0


@dataclass(frozen=True)
class CompetitorPayload:
    id: Optional[str]
    home_away: Optional[str]
    team: TeamRef
    record_summary: Optional[str] = None
    moneyline: Optional[float] = None
    featured_athletes: Tuple[AthleteRef, ...] = ()
    raw_injuries: Tuple[Dict[str, Any], ...] = ()
    has_statistics: bool = False

    @classmethod
    def from_raw(cls, raw: Any) -> Optional["CompetitorPayload"]:
        data = _as_dict(raw)
        team = TeamRef.from_raw(data.get("team"))
        if team is None:
            return None

        records = _as_list(data.get("records"))
        record_summary = _as_str(_as_dict(records[0]).get("summary")) if records else None

        odds = _as_dict(data.get("odds")) or _as_dict(_as_dict(data.get("team")).get("odds"))
        moneyline = _as_float(odds.get("moneyLine"))

        return cls(
            id=_first(data.get("id"), team.id),
            home_away=_as_str(data.get("homeAway")),
            team=team,
            record_summary=record_summary,
            moneyline=moneyline,
            featured_athletes=tuple(_featured_athletes(data)),
            raw_injuries=tuple(i for i in _as_list(data.get("injuries")) if isinstance(i, dict)),
            has_statistics=bool(_as_list(data.get("statistics"))),
        )

    @property
    def record(self) -> Tuple[int, int]:
        return parse_record(self.record_summary)


def _featured_athletes(competitor: Dict[str, Any]) -> Iterable[AthleteRef]:
    """Stat leaders first, then probable starters, each athlete once."""
    seen = set()
    for group in _as_list(competitor.get("leaders")):
        for leader in _as_list(_as_dict(group).get("leaders")):
            athlete = AthleteRef.from_raw(_as_dict(leader).get("athlete"))
            if athlete and athlete.display_name and (athlete.id or athlete.display_name) not in seen:
                seen.add(athlete.id or athlete.display_name)
                yield athlete
    for probable in _as_list(competitor.get("probables")):
        athlete = AthleteRef.from_raw(_as_dict(probable).get("athlete"))
        if athlete and athlete.display_name and (athlete.id or athlete.display_name) not in seen:
            seen.add(athlete.id or athlete.display_name)
            yield athlete


@dataclass(frozen=True)
class GamePayload:
    id: str
    date: Optional[datetime]
    state: Optional[str]
    completed: bool
    competition_id: Optional[str]
    competitors: Tuple[CompetitorPayload, ...]
    odds: Optional[OddsPayload] = None
    name: Optional[str] = None

    @classmethod
    def from_raw(cls, raw: Any) -> Optional["GamePayload"]:
        data = _as_dict(raw)
        game_id = _as_str(data.get("id"))
        if not game_id:
            return None

        competitions = _as_list(data.get("competitions"))
        competition = _as_dict(competitions[0]) if competitions else {}
        status_type = _as_dict(_as_dict(data.get("status") or competition.get("status")).get("type"))
        competitors = tuple(
            c for c in (CompetitorPayload.from_raw(raw_c) for raw_c in _as_list(competition.get("competitors")))
            if c is not None
        )
        odds_list = _as_list(competition.get("odds"))

        return cls(
            id=game_id,
            date=parse_timestamp(data.get("date") or competition.get("date")),
            state=_as_str(status_type.get("state")),
            completed=bool(status_type.get("completed")),
            competition_id=_first(competition.get("id"), game_id),
            competitors=competitors,
            odds=OddsPayload.from_raw(odds_list[0]) if odds_list else None,
            name=_as_str(data.get("name")),
        )

    def competitor(self, side: str) -> Optional[CompetitorPayload]:
        for competitor in self.competitors:
            if competitor.home_away == side:
                return competitor
        return None

    @property
    def home(self) -> Optional[CompetitorPayload]:
        return self.competitor("home")

    @property
    def away(self) -> Optional[CompetitorPayload]:
        return self.competitor("away")

    def opponent_of(self, competitor: CompetitorPayload) -> Optional[CompetitorPayload]:
        for other in self.competitors:
            if other is not competitor and other.id != competitor.id:
                return other
        return None

    @property
    def is_live(self) -> bool:
        return self.state == "in"

    @property
    def is_final(self) -> bool:
        return self.completed or self.state == "post"

    @property
    def is_upcoming(self) -> bool:
        return self.state == "pre"


@dataclass(frozen=True)
class ScoreboardPayload:
    games: Tuple[GamePayload, ...] = ()

    @classmethod
    def from_raw(cls, raw: Any) -> "ScoreboardPayload":
        games = (GamePayload.from_raw(event) for event in _as_list(_as_dict(raw).get("events")))
        return cls(games=tuple(g for g in games if g is not None))

    @property
    def live_count(self) -> int:
        return sum(1 for g in self.games if g.is_live)

    @property
    def upcoming_count(self) -> int:
        return sum(1 for g in self.games if g.is_upcoming)

    @property
    def final_count(self) -> int:
        return sum(1 for g in self.games if g.is_final)

    def scoreboard_injuries(self) -> List[InjuryPayload]:
        """Competitor-level injuries cross-referenced with their game and opponent."""
        injuries: List[InjuryPayload] = []
        for game in self.games:
            for competitor in game.competitors:
                opponent = game.opponent_of(competitor)
                for raw in competitor.raw_injuries:
                    parsed = InjuryPayload.from_raw(
                        raw,
                        team=competitor.team,
                        game=game,
                        opponent=opponent.team if opponent else None,
                    )
                    if parsed is not None:
                        injuries.append(parsed)
        return injuries


# ============================================================================
# INJURY / TEAM / ROSTER LISTINGS
# ============================================================================

def parse_league_injuries(raw: Any) -> List[InjuryPayload]:
    """League endpoint: ``injuries`` is a list of teams, each with its own ``injuries``."""
    injuries: List[InjuryPayload] = []
    for team_block in _as_list(_as_dict(raw).get("injuries")):
        block = _as_dict(team_block)
        team = TeamRef(
            id=_as_str(block.get("id")),
            display_name=_as_str(block.get("displayName")),
        )
        for item in _as_list(block.get("injuries")):
            parsed = InjuryPayload.from_raw(item, team=team)
            if parsed is not None:
                injuries.append(parsed)
    return injuries


def parse_team_injuries(raw: Any, team: Optional[TeamRef] = None) -> List[InjuryPayload]:
    injuries = (InjuryPayload.from_raw(item, team=team) for item in _as_list(_as_dict(raw).get("injuries")))
    return [i for i in injuries if i is not None]


def parse_teams(raw: Any) -> List[TeamRef]:
    sports = _as_list(_as_dict(raw).get("sports"))
    leagues = _as_list(_as_dict(sports[0]).get("leagues")) if sports else []
    entries = _as_list(_as_dict(leagues[0]).get("teams")) if leagues else []
    teams = (TeamRef.from_raw(_as_dict(entry).get("team")) for entry in entries)
    return [t for t in teams if t is not None and t.id]


def parse_roster(raw: Any) -> List[AthleteRef]:
    """Rosters come either flat or grouped by position (``items``)."""
    athletes: List[AthleteRef] = []
    for entry in _as_list(_as_dict(raw).get("athletes")):
        entry = _as_dict(entry)
        members = _as_list(entry.get("items")) if "items" in entry else [entry]
        for member in members:
            athlete = AthleteRef.from_raw(member)
            if athlete is not None and athlete.display_name:
                athletes.append(athlete)
    return athletes


# ============================================================================
# ATHLETE STATISTICS / PREDICTOR / NEWS
# ============================================================================

def parse_stat_values(raw: Any) -> Dict[str, float]:
    """
    Flatten ``splits.categories[].stats[]`` into ``{name: value}``.

    The first category that reports a stat wins.
    """
    values: Dict[str, float] = {}
    for category in _as_list(_as_dict(_as_dict(raw).get("splits")).get("categories")):
        for stat in _as_list(_as_dict(category).get("stats")):
            stat = _as_dict(stat)
            name = _as_str(stat.get("name"))
            value = stat.get("value")
            if name and name not in values and isinstance(value, (int, float)) and not isinstance(value, bool):
                values[name] = float(value)
    return values


def _team_projection(team: Dict[str, Any], name: str) -> Optional[float]:
    direct = _as_float(team.get(name))
    if direct is not None:
        return direct
    for stat in _as_list(team.get("statistics")):
        stat = _as_dict(stat)
        if stat.get("name") == name:
            return _as_float(stat.get("value"))
    return None


@dataclass(frozen=True)
class PredictorPayload:
    home_projection: Optional[float] = None
    home_score: Optional[float] = None
    away_score: Optional[float] = None

    @classmethod
    def from_raw(cls, raw: Any) -> "PredictorPayload":
        data = _as_dict(raw)
        home = _as_dict(data.get("homeTeam"))
        away = _as_dict(data.get("awayTeam"))
        return cls(
            home_projection=_team_projection(home, "gameProjection"),
            home_score=_team_projection(home, "averageScorePrediction"),
            away_score=_team_projection(away, "averageScorePrediction"),
        )


@dataclass(frozen=True)
class ArticlePayload:
    id: Optional[str]
    headline: Optional[str]
    description: Optional[str] = None
    published: Optional[datetime] = None
    link: Optional[str] = None
    image: Optional[str] = None

    @classmethod
    def from_raw(cls, raw: Any) -> Optional["ArticlePayload"]:
        data = _as_dict(raw)
        headline = _as_str(data.get("headline"))
        if not headline:
            return None
        images = _as_list(data.get("images"))
        return cls(
            id=_first(data.get("id"), data.get("dataSourceIdentifier")),
            headline=headline,
            description=_as_str(data.get("description")),
            published=parse_timestamp(data.get("published")),
            link=_as_str(_as_dict(_as_dict(data.get("links")).get("web")).get("href")),
            image=_as_str(_as_dict(images[0]).get("url")) if images else None,
        )


def parse_articles(raw: Any) -> List[ArticlePayload]:
    articles = (ArticlePayload.from_raw(item) for item in _as_list(_as_dict(raw).get("articles")))
    return [a for a in articles if a is not None]
