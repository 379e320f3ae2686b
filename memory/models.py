"""
Persona memory value types.

TeamMemory is a tagged variant: LegacyTeamMemory (kind="legacy") or
EnhancedTeamMemory (kind="enhanced"). Callers ask for the enhanced
capability with as_enhanced(), which returns None for legacy records.

trust and frustration are clamped on every assignment, including __init__.
"""

from dataclasses import dataclass, field, asdict
from datetime import datetime, timezone
from typing import Optional, Union

from config import TRUST_RANGE, FRUSTRATION_RANGE
from utils.stats_math import clamp


def utc_now() -> str:
    return datetime.now(timezone.utc).isoformat()


def narrative_key(narrative_type: str, teams, started_week: int) -> str:
    """Identity key of a narrative: type + sorted teams + start week."""
    return f"{narrative_type}-{'-'.join(sorted(teams))}-{started_week}"


# ── Team-level records ───────────────────────────────────────────────

@dataclass
class NotableEvent:
    week: int
    event: str
    sentiment: str  # positive | negative | neutral


@dataclass
class SeasonStats:
    wins: int = 0
    losses: int = 0
    points_for: float = 0.0
    points_against: float = 0.0

    @property
    def games(self) -> int:
        return self.wins + self.losses


@dataclass
class TeamMemory:
    trust: int = 0
    frustration: int = 0

    kind = "base"

    def __setattr__(self, name, value):
        if name == "trust":
            value = clamp(value, *TRUST_RANGE)
        elif name == "frustration":
            value = clamp(value, *FRUSTRATION_RANGE)
        super().__setattr__(name, value)

    def adjust(self, d_trust: int = 0, d_frustration: int = 0):
        self.trust = self.trust + d_trust
        self.frustration = self.frustration + d_frustration

    def decay(self):
        """Drift trust one unit toward zero; frustration one unit toward zero."""
        if self.trust > 0:
            self.trust -= 1
        elif self.trust < 0:
            self.trust += 1
        if self.frustration > 0:
            self.frustration -= 1

    def as_enhanced(self) -> Optional["EnhancedTeamMemory"]:
        return None

    def to_dict(self) -> dict:
        d = asdict(self)
        d["kind"] = self.kind
        return d


@dataclass
class LegacyTeamMemory(TeamMemory):
    mood: str = "Neutral"

    kind = "legacy"

    @classmethod
    def from_dict(cls, d: dict) -> "LegacyTeamMemory":
        return cls(
            trust=d.get("trust", 0),
            frustration=d.get("frustration", 0),
            mood=d.get("mood", "Neutral"),
        )


@dataclass
class EnhancedTeamMemory(TeamMemory):
    mood: str = "neutral"
    trajectory: str = "steady"
    win_streak: int = 0
    notable_events: list = field(default_factory=list)
    season_stats: SeasonStats = field(default_factory=SeasonStats)

    kind = "enhanced"

    def as_enhanced(self) -> "EnhancedTeamMemory":
        return self

    @classmethod
    def from_dict(cls, d: dict) -> "EnhancedTeamMemory":
        return cls(
            trust=d.get("trust", 0),
            frustration=d.get("frustration", 0),
            mood=d.get("mood", "neutral"),
            trajectory=d.get("trajectory", "steady"),
            win_streak=d.get("win_streak", 0),
            notable_events=[NotableEvent(**e) for e in d.get("notable_events", [])],
            season_stats=SeasonStats(**(d.get("season_stats") or {})),
        )


AnyTeamMemory = Union[LegacyTeamMemory, EnhancedTeamMemory]


def team_memory_from_dict(d: dict) -> AnyTeamMemory:
    if d.get("kind") == "enhanced":
        return EnhancedTeamMemory.from_dict(d)
    return LegacyTeamMemory.from_dict(d)


# ── Persona-level records ────────────────────────────────────────────

@dataclass
class Narrative:
    type: str
    teams: list
    title: str
    description: str
    started_week: int
    last_updated: int
    resolved: bool = False
    resolution: Optional[str] = None
    id: str = ""

    def __post_init__(self):
        if not self.id:
            self.id = narrative_key(self.type, self.teams, self.started_week)


@dataclass
class PredictionRecord:
    week: int
    matchup_id: Union[int, str]
    team1: str
    team2: str
    pick: str
    confidence: str
    reasoning: Optional[str] = None
    result: Optional[str] = None  # correct | wrong
    actual_winner: Optional[str] = None
    margin: Optional[float] = None

    @property
    def graded(self) -> bool:
        return self.result is not None


@dataclass
class PredictionStats:
    correct: int = 0
    wrong: int = 0
    win_rate: float = 0.0
    hot_streak: int = 0
    best_streak: int = 0
    worst_streak: int = 0

    def record(self, was_correct: bool):
        """Fold one graded pick into the counters and streaks."""
        if was_correct:
            self.correct += 1
            self.hot_streak = self.hot_streak + 1 if self.hot_streak >= 0 else 1
            self.best_streak = max(self.best_streak, self.hot_streak)
        else:
            self.wrong += 1
            self.hot_streak = self.hot_streak - 1 if self.hot_streak <= 0 else -1
            self.worst_streak = min(self.worst_streak, self.hot_streak)
        graded = self.correct + self.wrong
        self.win_rate = self.correct / graded if graded else 0.0


@dataclass
class HotTake:
    week: int
    take: str
    subject: Optional[str] = None
    aged_well: Optional[bool] = None
    follow_up: Optional[str] = None


@dataclass
class BotMemory:
    """Legacy persona memory: team moods only."""
    bot: str
    summary_mood: str = "Focused"
    teams: dict = field(default_factory=dict)
    updated_at: str = field(default_factory=utc_now)

    kind = "legacy"

    def as_enhanced(self) -> Optional["EnhancedBotMemory"]:
        return None

    def new_team(self) -> LegacyTeamMemory:
        return LegacyTeamMemory()

    def team(self, name: str):
        """Fetch a team record, creating it lazily on first reference."""
        if name not in self.teams:
            self.teams[name] = self.new_team()
        return self.teams[name]

    def to_dict(self) -> dict:
        return {
            "kind": self.kind,
            "bot": self.bot,
            "summary_mood": self.summary_mood,
            "updated_at": self.updated_at,
            "teams": {name: t.to_dict() for name, t in self.teams.items()},
        }


@dataclass
class EnhancedBotMemory(BotMemory):
    season: int = 0
    last_generated_week: int = 0
    narratives: list = field(default_factory=list)
    predictions: list = field(default_factory=list)
    prediction_stats: PredictionStats = field(default_factory=PredictionStats)
    hot_takes: list = field(default_factory=list)
    legacy_teams: dict = field(default_factory=dict)

    kind = "enhanced"

    def as_enhanced(self) -> "EnhancedBotMemory":
        return self

    def new_team(self) -> EnhancedTeamMemory:
        return EnhancedTeamMemory()

    def to_dict(self) -> dict:
        d = super().to_dict()
        d.update({
            "season": self.season,
            "last_generated_week": self.last_generated_week,
            "narratives": [asdict(n) for n in self.narratives],
            "predictions": [asdict(p) for p in self.predictions],
            "prediction_stats": asdict(self.prediction_stats),
            "hot_takes": [asdict(h) for h in self.hot_takes],
            "legacy_teams": {name: t.to_dict() for name, t in self.legacy_teams.items()},
        })
        return d
