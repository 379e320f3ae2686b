"""
One league-week of the newsletter cycle.

Derive the week → grade last week's picks → update persona memory →
forecast next week → persist. Invocations must be serialized per season;
re-running an already processed week leaves memory untouched.
"""

import logging
from dataclasses import dataclass, field
from typing import Callable, Optional

from config import PERSONAS, PLAYOFF_START_WEEK
from db.repository import MemoryRepository
from derive.models import DerivedData
from derive.pipeline import build_derived
from forecast.engine import make_forecast
from forecast.grading import grade_pending_picks, grade_predictions
from forecast.models import ForecastRecords, ForecastResult
from memory.models import EnhancedBotMemory
from memory.serialization import upgrade_to_enhanced
from memory.store import create_enhanced_memory, ensure_teams, update_enhanced_memory_after_week

logger = logging.getLogger(__name__)


@dataclass
class WeekOutput:
    week: int
    derived: DerivedData
    memories: dict = field(default_factory=dict)
    forecast: Optional[ForecastResult] = None
    records: Optional[ForecastRecords] = None


def load_memories(repo: MemoryRepository, season: int) -> dict:
    """Stored memory per persona, upgraded to the enhanced generation; fresh when missing."""
    memories = {}
    for persona in PERSONAS:
        stored = repo.load_memory(persona, season)
        if stored is None:
            logger.info(f"[{persona}] No memory for {season}, starting fresh")
            memories[persona] = create_enhanced_memory(persona, season)
        else:
            memories[persona] = upgrade_to_enhanced(stored, season)
    return memories


def run_week(raw: dict, week: int, season: int, repo: MemoryRepository,
             generator: Optional[Callable] = None,
             playoff_start_week: int = PLAYOFF_START_WEEK) -> WeekOutput:
    """
    raw holds the upstream league records: users, rosters, matchups
    (this week, final), next_matchups, transactions and optionally players.
    """
    derived = build_derived(
        raw.get("users") or [],
        raw.get("rosters") or [],
        raw.get("matchups") or [],
        next_matchups=raw.get("next_matchups"),
        transactions=raw.get("transactions"),
        week=week,
        playoff_start_week=playoff_start_week,
        players=raw.get("players"),
    )
    memories = load_memories(repo, season)
    records = repo.load_records(season)

    done = [m.as_enhanced().last_generated_week for m in memories.values()]
    if all(w >= week for w in done):
        logger.warning(f"Week {week} already processed for {season}, nothing to do")
        return WeekOutput(week=week, derived=derived, memories=memories, records=records)

    pending = repo.load_pending(season, week)
    grade_pending_picks(pending, derived.matchup_pairs, records)

    for mem in memories.values():
        enhanced: EnhancedBotMemory = mem.as_enhanced()
        grade_predictions(enhanced, week, derived.matchup_pairs)
        ensure_teams(enhanced, derived.team_names())
        update_enhanced_memory_after_week(enhanced, derived, week)

    forecast = make_forecast(derived.upcoming_pairs, derived.matchup_pairs, memories, week + 1, generator)

    pendings = [p for p in (pending, forecast.pending) if p is not None and p.picks]
    repo.save_week(season, list(memories.values()), records, pendings)

    logger.info(f"Week {week} done: records {records}")
    return WeekOutput(week=week, derived=derived, memories=memories, forecast=forecast, records=records)
