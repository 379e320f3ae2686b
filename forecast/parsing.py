"""
Reading picks out of a generated forecast reply.

Two reply shapes are accepted:
  - a JSON document matching ForecastReply (one typed record per matchup)
  - free text with one line per matchup:
        1. A vs B: Pick: A | Confidence: high | Reason: ...

A matchup the reply does not cover, or covers with a pick naming neither
team, comes back as None so the caller can fall back to the heuristic.
"""

import re
import logging
from dataclasses import dataclass
from typing import List, Literal, Optional, Union

from pydantic import BaseModel, ValidationError, field_validator

logger = logging.getLogger(__name__)

PICK_LINE_RE = re.compile(
    r"pick:\s*(?P<pick>[^|]+)\|\s*confidence:\s*(?P<confidence>high|medium|low)\b"
    r"[^|]*\|\s*reason:\s*(?P<reason>.+?)\s*$",
    re.IGNORECASE,
)
JSON_BLOCK_RE = re.compile(r"\{.*\}", re.DOTALL)


class StructuredPick(BaseModel):
    matchup_id: Optional[Union[int, str]] = None
    team1: Optional[str] = None
    team2: Optional[str] = None
    pick: str
    confidence: Literal["high", "medium", "low"]
    reason: Optional[str] = None

    @field_validator("confidence", mode="before")
    @classmethod
    def _lower_confidence(cls, v):
        return v.strip().lower() if isinstance(v, str) else v


class ForecastReply(BaseModel):
    picks: List[StructuredPick]


@dataclass(frozen=True)
class ParsedPick:
    winner: str
    confidence: str
    reason: str = ""


def resolve_team(text: str, team1: str, team2: str) -> Optional[str]:
    """Map free pick text onto one of the two team names (case-insensitive substring)."""
    lowered = text.strip().lower()
    if not lowered:
        return None
    # team2 first: a pick naming both usually reads "team2 over team1"
    if team2.lower() in lowered:
        return team2
    if team1.lower() in lowered:
        return team1
    return None


# ── Structured replies ───────────────────────────────────────────────

def parse_structured_reply(text: str) -> Optional[ForecastReply]:
    """Validate a JSON reply (optionally wrapped in prose or code fences). None if it isn't one."""
    if not text:
        return None
    match = JSON_BLOCK_RE.search(text)
    if not match:
        return None
    try:
        return ForecastReply.model_validate_json(match.group(0))
    except ValidationError as e:
        logger.debug(f"Reply is not a structured forecast: {e.error_count()} errors")
        return None


def extract_structured_pick(reply: ForecastReply, matchup_id, team1: str,
                            team2: str) -> Optional[ParsedPick]:
    teams = {team1.lower(), team2.lower()}
    for sp in reply.picks:
        by_id = sp.matchup_id is not None and str(sp.matchup_id) == str(matchup_id)
        by_teams = (
            sp.team1 is not None and sp.team2 is not None
            and {sp.team1.lower(), sp.team2.lower()} == teams
        )
        if not (by_id or by_teams):
            continue
        winner = resolve_team(sp.pick, team1, team2)
        if winner is None:
            return None
        return ParsedPick(winner=winner, confidence=sp.confidence, reason=(sp.reason or "").strip())
    return None


# ── Text replies ─────────────────────────────────────────────────────

def extract_text_pick(text: str, team1: str, team2: str) -> Optional[ParsedPick]:
    """Parse the first line mentioning either team; None when that line is not a pick line."""
    t1, t2 = team1.lower(), team2.lower()
    for line in (text or "").splitlines():
        lowered = line.lower()
        if t1 not in lowered and t2 not in lowered:
            continue
        m = PICK_LINE_RE.search(line)
        if not m:
            return None
        winner = resolve_team(m.group("pick"), team1, team2)
        if winner is None:
            return None
        return ParsedPick(
            winner=winner,
            confidence=m.group("confidence").lower(),
            reason=m.group("reason").strip(),
        )
    return None


def parse_reply(text: str, pairs) -> dict:
    """
    Parse a persona's reply for every upcoming pair.
    Returns {matchup_id: ParsedPick or None}.
    """
    structured = parse_structured_reply(text)
    parsed = {}
    for pair in pairs:
        team1, team2 = pair.teams
        if structured is not None:
            parsed[pair.matchup_id] = extract_structured_pick(structured, pair.matchup_id, team1, team2)
        else:
            parsed[pair.matchup_id] = extract_text_pick(text, team1, team2)
    return parsed


def looks_like_forecast(text: str) -> bool:
    """Structural check used to reject a reply before parsing."""
    if parse_structured_reply(text) is not None:
        return True
    return bool(re.search(r"pick:\s*", text or "", re.I) and re.search(r"confidence:\s*", text or "", re.I))
