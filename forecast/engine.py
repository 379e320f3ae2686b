"""
Weekly forecast: one pick per persona per upcoming matchup.

With a text generator, both personas are asked concurrently and their
replies parsed; any persona call that fails, or any matchup its reply
does not cleanly cover, falls back to the heuristic pick. Calibration,
the upset flag and prediction recording run for every pick either way.
"""

import logging
from concurrent.futures import ThreadPoolExecutor
from typing import Callable, Optional

from config import FORECAST_MAX_TOKENS
from forecast.grading import record_prediction
from forecast.heuristic import heuristic_pick, calibrate_confidence, is_upset, pick_note
from forecast.models import PersonaPick, ForecastPick, PendingPicks, ForecastResult
from forecast.parsing import parse_reply, looks_like_forecast
from memory.models import BotMemory

logger = logging.getLogger(__name__)

SECTION_TYPE = "Matchup Predictions"

PERSONA_CONSTRAINTS = {
    "entertainer": "Be bold! Trust your gut. Pick upsets when you feel it.",
    "analyst": "Use data and trends. Consider sample size and regression.",
}

FORMAT_CONSTRAINT = (
    "For each matchup, pick a winner and give confidence (high/medium/low). Format EXACTLY as:\n"
    "1. [TEAM1 vs TEAM2]: Pick: [WINNER] | Confidence: [high/medium/low] | Reason: [brief reason]\n"
    'Or reply with JSON: {"picks": [{"matchup_id": ..., "team1": ..., "team2": ..., '
    '"pick": ..., "confidence": ..., "reason": ...}]}'
)


def last_scores_from_pairs(last_pairs) -> dict:
    scores = {}
    for p in last_pairs or []:
        scores[p.winner.name] = p.winner.points
        scores[p.loser.name] = p.loser.points
    return scores


def build_context(persona: str, mem: BotMemory, upcoming_pairs, last_scores: dict, week: int) -> str:
    """Plain-text matchup context for one persona: records, last scores, its own read of each team."""
    enhanced = mem.as_enhanced()
    blocks = []
    for pair in upcoming_pairs:
        team1, team2 = pair.teams
        lines = [f"[{pair.matchup_id}] {team1} vs {team2}"]
        for team in (team1, team2):
            t = mem.teams.get(team)
            detail = f"  {team}:"
            if enhanced is not None and t is not None and t.as_enhanced() is not None:
                stats = t.season_stats
                detail += f" {stats.wins}-{stats.losses} ({stats.points_for:.1f} PF), mood {t.mood}, {t.trajectory}"
            elif t is not None:
                detail += f" mood {t.mood}"
            if team in last_scores:
                detail += f", scored {last_scores[team]:.1f} last week"
            if t is not None:
                detail += f", your trust {t.trust}, frustration {t.frustration}"
            lines.append(detail)
        blocks.append("\n".join(lines))

    context = f"WEEK {week} MATCHUPS TO PREDICT:\n\n" + "\n\n".join(blocks)
    if enhanced is not None:
        stats = enhanced.prediction_stats
        context += (
            f"\n\nYOUR TRACK RECORD: {stats.correct}-{stats.wrong}"
            f" (streak {stats.hot_streak:+d})"
        )
    return context


def _generate_replies(generator: Callable, memories: dict, upcoming_pairs,
                      last_scores: dict, week: int) -> dict:
    """Ask every persona concurrently. A failed persona maps to None."""
    def ask(persona):
        return generator(
            persona,
            SECTION_TYPE,
            build_context(persona, memories[persona], upcoming_pairs, last_scores, week),
            f"{FORMAT_CONSTRAINT}\n{PERSONA_CONSTRAINTS.get(persona, '')}",
            FORECAST_MAX_TOKENS,
            looks_like_forecast,
        )

    replies = {}
    with ThreadPoolExecutor(max_workers=max(1, len(memories))) as pool:
        futures = {persona: pool.submit(ask, persona) for persona in memories}
        for persona, future in futures.items():
            try:
                replies[persona] = future.result()
            except Exception as e:
                logger.error(f"[{persona}] Forecast generation failed, using heuristic picks: {e}")
                replies[persona] = None
    return replies


def _persona_pick(persona: str, mem: BotMemory, pair, parsed, last_scores: dict) -> PersonaPick:
    team1, team2 = pair.teams
    stats = mem.as_enhanced().prediction_stats if mem.as_enhanced() is not None else None

    if parsed is not None:
        confidence = calibrate_confidence(parsed.confidence, stats)
        upset = is_upset(parsed.winner, team1, team2, last_scores)
        note = parsed.reason or pick_note(persona, upset, confidence)
        return PersonaPick(parsed.winner, confidence, note, upset, source="generated")

    pick, raw = heuristic_pick(persona, mem, team1, team2, last_scores)
    confidence = calibrate_confidence(raw, stats)
    upset = is_upset(pick, team1, team2, last_scores)
    return PersonaPick(pick, confidence, pick_note(persona, upset, confidence), upset)


def make_forecast(upcoming_pairs, last_pairs, memories: dict, week: int,
                  generator: Optional[Callable] = None) -> ForecastResult:
    """
    Forecast next week's matchups for every persona in `memories`.

    Issued picks are appended to each enhanced memory's prediction history.
    """
    upcoming_pairs = list(upcoming_pairs or [])
    if not upcoming_pairs:
        return ForecastResult(
            week=week,
            matchup_of_the_week={p: "" for p in memories},
            summary={"agree_count": 0, "total": 0, "disagreements": []},
            pending=PendingPicks(week=week),
        )

    last_scores = last_scores_from_pairs(last_pairs)

    replies = {}
    if generator is not None:
        replies = _generate_replies(generator, memories, upcoming_pairs, last_scores, week)

    parsed_by_persona = {
        persona: parse_reply(text, upcoming_pairs) if text else {}
        for persona, text in replies.items()
    }

    picks = []
    for pair in upcoming_pairs:
        team1, team2 = pair.teams
        fp = ForecastPick(matchup_id=pair.matchup_id, team1=team1, team2=team2)
        for persona, mem in memories.items():
            parsed = parsed_by_persona.get(persona, {}).get(pair.matchup_id)
            if generator is not None and parsed is None:
                logger.warning(f"[{persona}] No usable pick for {fp.label}, using heuristic")
            pp = _persona_pick(persona, mem, pair, parsed, last_scores)
            fp.picks[persona] = pp
            record_prediction(mem, week, pair.matchup_id, team1, team2, pp.pick, pp.confidence, pp.note)
        picks.append(fp)

    pending = PendingPicks(
        week=week,
        picks=[
            {"matchup_id": fp.matchup_id, **{f"{persona}_pick": pp.pick for persona, pp in fp.picks.items()}}
            for fp in picks
        ],
    )

    disagreements = [fp for fp in picks if not fp.agree]
    motw = {}
    if "entertainer" in memories:
        motw["entertainer"] = (disagreements[0] if disagreements else picks[0]).label
    if "analyst" in memories:
        high = [fp for fp in picks if fp.picks["analyst"].confidence == "high"]
        motw["analyst"] = high[0].label if high else (disagreements[0] if disagreements else picks[0]).label

    generated = sum(1 for fp in picks for pp in fp.picks.values() if pp.source == "generated")
    logger.info(
        f"Week {week} forecast: {len(picks)} matchups, {len(disagreements)} disagreements, "
        f"{generated} generated / {len(picks) * len(memories) - generated} heuristic picks"
    )
    return ForecastResult(
        week=week,
        picks=picks,
        matchup_of_the_week=motw,
        summary={
            "agree_count": len(picks) - len(disagreements),
            "total": len(picks),
            "disagreements": [fp.label for fp in disagreements],
        },
        pending=pending,
    )

