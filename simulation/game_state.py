"""Live NFL game state: clock parsing, fraction of game remaining and context multipliers."""

import re
import logging
from dataclasses import dataclass
from typing import Optional

from config import (
    OVERTIME_FRACTION, SKILL_POSITIONS, RED_ZONE_MEAN_MUL, RED_ZONE_SD_MUL,
    POSSESSION_MEAN_MUL, SCORE_GAP_FOR_SCRIPT, TRAILING_MULTIPLIERS, LEADING_MULTIPLIERS,
)
from utils.constants import GAME_STATES
from utils.stats_math import clamp

logger = logging.getLogger(__name__)

CLOCK_RE = re.compile(r"^(\d{1,2}):(\d{2})")
QUARTER_MINUTES = 15


@dataclass(frozen=True)
class TeamGameState:
    """Snapshot of one NFL team's game, from that team's point of view."""
    state: str = "pre"  # pre | in | post
    period: int = 1
    clock: Optional[str] = None
    possession: bool = False
    red_zone: bool = False
    score_for: float = 0.0
    score_against: float = 0.0

    @property
    def score_diff(self) -> float:
        return self.score_for - self.score_against

    @classmethod
    def from_dict(cls, d: dict) -> "TeamGameState":
        state = str(d.get("state", "pre")).lower()
        if state not in GAME_STATES:
            logger.warning(f"Unknown game state {state!r}, treating as not started")
            state = "pre"
        return cls(
            state=state,
            period=int(d.get("period") or 1),
            clock=d.get("clock") or d.get("display_clock"),
            possession=bool(d.get("possession", False)),
            red_zone=bool(d.get("red_zone", False)),
            score_for=float(d.get("score_for") or 0),
            score_against=float(d.get("score_against") or 0),
        )


def parse_clock(clock: Optional[str]) -> float:
    """'MM:SS' → minutes left in the quarter, clamped to [0, 15]. Unparseable clocks read as 0."""
    if not clock:
        return 0.0
    m = CLOCK_RE.match(clock.strip())
    if not m:
        return 0.0
    minutes = int(m.group(1)) + int(m.group(2)) / 60
    return clamp(minutes, 0.0, QUARTER_MINUTES)


def fraction_remaining(gs: Optional[TeamGameState], is_past_week: bool = False) -> float:
    """
    Share of a team's game still to be played.

    A missing state means finished for past weeks and not yet started
    otherwise. Overtime keeps a small fixed residual.
    """
    if gs is None:
        return 0.0 if is_past_week else 1.0
    if gs.state == "pre":
        return 1.0
    if gs.state == "post":
        return 0.0
    period = gs.period or 1
    if period > 4:
        return OVERTIME_FRACTION
    quarters_left = max(0, 4 - min(4, period))
    this_quarter = clamp(parse_clock(gs.clock) / QUARTER_MINUTES, 0.0, 1.0)
    return clamp((quarters_left + this_quarter) / 4, 0.0, 1.0)


def context_multiplier(position: Optional[str], gs: Optional[TeamGameState]) -> tuple[float, float]:
    """(mean multiplier, sd multiplier) for a player given their team's live situation."""
    if gs is None:
        return 1.0, 1.0
    pos = (position or "").upper()
    mean_mul, sd_mul = 1.0, 1.0

    if gs.state == "in" and pos in SKILL_POSITIONS:
        if gs.red_zone:
            mean_mul *= RED_ZONE_MEAN_MUL
            sd_mul *= RED_ZONE_SD_MUL
        if gs.possession:
            mean_mul *= POSSESSION_MEAN_MUL

    if gs.state != "pre":
        if gs.score_diff <= -SCORE_GAP_FOR_SCRIPT:
            mean_mul *= TRAILING_MULTIPLIERS.get(pos, 1.0)
        elif gs.score_diff >= SCORE_GAP_FOR_SCRIPT:
            mean_mul *= LEADING_MULTIPLIERS.get(pos, 1.0)

    return mean_mul, sd_mul
