"""Forecast output shapes: per-persona picks, pending picks and the running W/L record."""

from dataclasses import dataclass, field, asdict
from typing import Optional

from config import PERSONAS


@dataclass
class PersonaPick:
    pick: str
    confidence: str
    note: Optional[str] = None
    upset: bool = False
    source: str = "heuristic"  # heuristic | generated


@dataclass
class ForecastPick:
    matchup_id: object
    team1: str
    team2: str
    picks: dict = field(default_factory=dict)  # persona → PersonaPick

    @property
    def label(self) -> str:
        return f"{self.team1} vs {self.team2}"

    @property
    def agree(self) -> bool:
        chosen = {p.pick for p in self.picks.values()}
        return len(chosen) <= 1

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass
class PendingPicks:
    """Picks issued for a week, persisted until that week's results are in."""
    week: int
    picks: list = field(default_factory=list)  # [{matchup_id, entertainer_pick, analyst_pick, graded?}]
    graded: bool = False

    def to_dict(self) -> dict:
        return asdict(self)

    @classmethod
    def from_dict(cls, d: dict) -> "PendingPicks":
        return cls(week=d["week"], picks=list(d.get("picks") or []), graded=bool(d.get("graded", False)))


@dataclass
class ForecastRecords:
    """Running win/loss record per persona."""
    records: dict = field(default_factory=lambda: {p: {"w": 0, "l": 0} for p in PERSONAS})

    def record(self, persona: str, correct: bool):
        rec = self.records.setdefault(persona, {"w": 0, "l": 0})
        rec["w" if correct else "l"] += 1

    def wins(self, persona: str) -> int:
        return self.records.get(persona, {}).get("w", 0)

    def losses(self, persona: str) -> int:
        return self.records.get(persona, {}).get("l", 0)

    def __str__(self):
        return ", ".join(f"{p} {r['w']}-{r['l']}" for p, r in self.records.items())


@dataclass
class ForecastResult:
    week: int
    picks: list = field(default_factory=list)
    matchup_of_the_week: dict = field(default_factory=dict)  # persona → "A vs B"
    summary: dict = field(default_factory=dict)  # agree_count, total, disagreements
    pending: Optional[PendingPicks] = None
