"""Canonical weekly shapes produced by the deriver: matchup pairs and scored events."""

from dataclasses import dataclass, field, asdict
from typing import Optional, Union

MatchupId = Union[int, str]


@dataclass(frozen=True)
class TeamScore:
    name: str
    points: float
    top_players: tuple = ()  # ((player_name, points), ...) highest first


@dataclass(frozen=True)
class MatchupPair:
    """
    One scheduling slot's result.

    teams keeps the upstream entry order; winner/loser are the highest and
    lowest scorers. margin is rounded to 2 decimals and never negative.
    """
    matchup_id: MatchupId
    teams: tuple
    winner: TeamScore
    loser: TeamScore
    margin: float
    bracket_label: Optional[str] = None

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass(frozen=True)
class UpcomingPair:
    matchup_id: MatchupId
    teams: tuple  # (team1, team2)


@dataclass(frozen=True)
class NormalizedEvent:
    event_id: str
    type: str
    week: Optional[int]
    parties: tuple = ()
    assets_moved: int = 0
    picks_moved: int = 0
    team: Optional[str] = None
    faab_spent: float = 0.0


@dataclass(frozen=True)
class ScoredEvent:
    event_id: str
    type: str
    week: Optional[int]
    relevance_score: int
    coverage_level: str
    reasons: tuple
    parties: tuple = ()
    assets_moved: int = 0
    picks_moved: int = 0
    team: Optional[str] = None
    faab_spent: float = 0.0

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass
class DerivedData:
    matchup_pairs: list = field(default_factory=list)
    upcoming_pairs: list = field(default_factory=list)
    events_scored: list = field(default_factory=list)

    def team_names(self) -> list[str]:
        """Unique team names seen in this week's results, in first-seen order."""
        seen = []
        for p in self.matchup_pairs:
            for t in p.teams:
                if t.name not in seen:
                    seen.append(t.name)
        return seen

    def last_scores(self) -> dict:
        """Team name → points scored in this week's results."""
        scores = {}
        for p in self.matchup_pairs:
            for t in p.teams:
                scores[t.name] = t.points
        return scores
