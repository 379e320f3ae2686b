"""Recording issued picks and grading them once the week's results are final."""

import logging
from typing import Optional

from forecast.models import PendingPicks, ForecastRecords
from memory.models import BotMemory, PredictionRecord

logger = logging.getLogger(__name__)


def record_prediction(mem: BotMemory, week: int, matchup_id, team1: str, team2: str,
                      pick: str, confidence: str, reasoning: str = None) -> Optional[PredictionRecord]:
    """Append an ungraded prediction to an enhanced memory. Legacy memories keep no history."""
    enhanced = mem.as_enhanced()
    if enhanced is None:
        return None
    record = PredictionRecord(
        week=week,
        matchup_id=matchup_id,
        team1=team1,
        team2=team2,
        pick=pick,
        confidence=confidence,
        reasoning=reasoning,
    )
    enhanced.predictions.append(record)
    return record


def grade_prediction(mem: BotMemory, week: int, matchup_id, actual_winner: str,
                     margin: float) -> bool:
    """Grade the ungraded prediction for (week, matchup). Returns False when there is none."""
    enhanced = mem.as_enhanced()
    if enhanced is None:
        return False
    for pred in enhanced.predictions:
        if pred.week == week and str(pred.matchup_id) == str(matchup_id) and not pred.graded:
            pred.actual_winner = actual_winner
            pred.margin = margin
            pred.result = "correct" if pred.pick == actual_winner else "wrong"
            enhanced.prediction_stats.record(pred.result == "correct")
            return True
    return False


def grade_predictions(mem: BotMemory, week: int, matchup_pairs) -> int:
    graded = 0
    for p in matchup_pairs or []:
        if grade_prediction(mem, week, p.matchup_id, p.winner.name, p.margin):
            graded += 1
    if graded:
        stats = mem.as_enhanced().prediction_stats
        logger.info(
            f"[{mem.bot}] Graded {graded} week {week} predictions "
            f"({stats.correct}-{stats.wrong}, streak {stats.hot_streak:+d})"
        )
    return graded


def grade_pending_picks(pending: Optional[PendingPicks], matchup_pairs,
                        records: ForecastRecords) -> ForecastRecords:
    """
    Fold a week's pending picks into the persona W/L records.

    Each pick is flagged once it is matched to a result and skipped after
    that, so grading the same record twice never double counts. The
    record itself is marked graded only when every pick has been graded;
    picks whose results arrive later are counted on a later call.
    """
    if pending is None or pending.graded:
        return records

    winners = {str(p.matchup_id): p.winner.name for p in matchup_pairs or []}
    matched = 0
    for pick in pending.picks:
        if pick.get("graded"):
            continue
        actual = winners.get(str(pick.get("matchup_id")))
        if not actual:
            continue
        matched += 1
        pick["graded"] = True
        for persona in records.records:
            chosen = pick.get(f"{persona}_pick")
            if chosen:
                records.record(persona, chosen == actual)

    pending.graded = all(pick.get("graded") for pick in pending.picks)
    if matched:
        logger.info(f"Graded {matched} pending picks for week {pending.week}: {records}")
    else:
        logger.warning(f"No results matched pending picks for week {pending.week}")
    return records
