"""
Heuristic picks, confidence calibration and the upset flag.

The heuristic pick is the mandatory degraded path: it runs whenever the
text-generation reply is missing, malformed, or silent on a matchup.
"""

from typing import Optional

from config import (
    HEURISTIC_PARAMS, DEFAULT_LAST_SCORE, UPSET_GAP,
    CALIBRATION_HOT_WIN_RATE, CALIBRATION_COLD_WIN_RATE, CALIBRATION_STREAK,
)
from memory.models import BotMemory, PredictionStats
from utils.constants import CONFIDENCE_LEVELS
from utils.stats_math import clamp


def persona_score(persona: str, trust: int, last_score: float) -> float:
    params = HEURISTIC_PARAMS[persona]
    score = trust + last_score * params["score_scale"]
    if params["big_score"] is not None and last_score > params["big_score"]:
        score += params["big_score_bonus"]
    return score


def raw_confidence(persona: str, gap: float) -> str:
    params = HEURISTIC_PARAMS[persona]
    if gap > params["high_gap"]:
        return "high"
    if gap > params["medium_gap"]:
        return "medium"
    return "low"


def heuristic_pick(persona: str, mem: BotMemory, team1: str, team2: str,
                   last_scores: dict) -> tuple[str, str]:
    """Pick the team the persona scores higher; ties go to team1. Returns (pick, raw confidence)."""
    s1 = persona_score(persona, _trust(mem, team1), last_scores.get(team1, DEFAULT_LAST_SCORE))
    s2 = persona_score(persona, _trust(mem, team2), last_scores.get(team2, DEFAULT_LAST_SCORE))
    pick = team1 if s1 >= s2 else team2
    return pick, raw_confidence(persona, abs(s1 - s2))


def _trust(mem: BotMemory, team: str) -> int:
    t = mem.teams.get(team)
    return t.trust if t is not None else 0


def calibrate_confidence(base: str, stats: Optional[PredictionStats]) -> str:
    """
    Nudge a raw confidence by the persona's track record.

    high/medium/low map to 2/1/0; a hot record adds one, a cold record
    subtracts one, and the result is clamped back onto the scale.
    """
    if stats is None:
        return base
    score = CONFIDENCE_LEVELS.index(base)
    if stats.win_rate > CALIBRATION_HOT_WIN_RATE or stats.hot_streak >= CALIBRATION_STREAK:
        score += 1
    elif stats.win_rate < CALIBRATION_COLD_WIN_RATE or stats.hot_streak <= -CALIBRATION_STREAK:
        score -= 1
    return CONFIDENCE_LEVELS[int(clamp(score, 0, len(CONFIDENCE_LEVELS) - 1))]


def is_upset(pick: str, team1: str, team2: str, last_scores: dict) -> bool:
    """True when the pick goes against a last-week scoring gap larger than UPSET_GAP."""
    s1 = last_scores.get(team1, DEFAULT_LAST_SCORE)
    s2 = last_scores.get(team2, DEFAULT_LAST_SCORE)
    if pick == team1:
        return s2 > s1 + UPSET_GAP
    if pick == team2:
        return s1 > s2 + UPSET_GAP
    return False


def pick_note(persona: str, upset: bool, confidence: str) -> Optional[str]:
    params = HEURISTIC_PARAMS[persona]
    if upset:
        return params["upset_note"]
    if confidence == "high":
        return params["lock_note"]
    return None
