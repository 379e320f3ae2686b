#!/usr/bin/env python3
"""
grade_picks.py — grade a week's pending persona picks against final scores.

Reads a JSON file of upstream records for the finished week (users,
rosters, matchups), grades the stored pending picks and each persona's
prediction history, and prints the running record.

Usage:
  python scripts/grade_picks.py --input week12.json --week 12
  python scripts/grade_picks.py --summary
"""

import os
import sys
import json
import logging
import argparse

# ── Paths ──
SCRIPT_DIR = os.path.dirname(os.path.abspath(__file__))
PROJECT_ROOT = os.path.dirname(SCRIPT_DIR)
sys.path.insert(0, PROJECT_ROOT)

from config import DB_PATH, PERSONAS, LEAGUE_SEASON
from db.repository import MemoryRepository
from derive.pipeline import build_derived
from forecast.grading import grade_pending_picks, grade_predictions

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    datefmt="%H:%M:%S",
)
logger = logging.getLogger(__name__)


def grade_week(repo: MemoryRepository, raw: dict, week: int, season: int):
    """Grade pending picks and prediction records for one finished week."""
    pending = repo.load_pending(season, week)
    if pending is None:
        print(f"No pending picks stored for week {week}")
        return
    if pending.graded:
        print(f"Week {week} picks already graded")
        print_summary(repo, season)
        return

    derived = build_derived(raw.get("users") or [], raw.get("rosters") or [], raw.get("matchups") or [],
                            week=week, players=raw.get("players"))
    winners = {str(p.matchup_id): p.winner.name for p in derived.matchup_pairs}

    print(f"\n{len(pending.picks)} pending picks to grade\n")
    for pick in pending.picks:
        if pick.get("graded"):
            continue
        actual = winners.get(str(pick.get("matchup_id")))
        if actual is None:
            print(f"  PENDING: matchup {pick.get('matchup_id')}")
            continue
        for persona in PERSONAS:
            chosen = pick.get(f"{persona}_pick")
            marker = "+" if chosen == actual else "-"
            print(f"  {marker} {persona:<12} {chosen} (winner: {actual})")

    records = grade_pending_picks(pending, derived.matchup_pairs, repo.load_records(season))

    graded_memories = []
    for persona in PERSONAS:
        mem = repo.load_memory(persona, season)
        if mem is None or mem.as_enhanced() is None:
            continue
        if grade_predictions(mem, week, derived.matchup_pairs):
            graded_memories.append(mem)
    repo.save_week(season, graded_memories, records, [pending])

    print_summary(repo, season)


def print_summary(repo: MemoryRepository, season: int):
    """Print running record per persona."""
    records = repo.load_records(season)
    print(f"\n{'='*50}")
    for persona in PERSONAS:
        w, l = records.wins(persona), records.losses(persona)
        rate = w / (w + l) if (w + l) else 0.0
        line = f"  {persona.upper():<12} {w}-{l}  ({rate:.0%})"
        mem = repo.load_memory(persona, season)
        enhanced = mem.as_enhanced() if mem is not None else None
        if enhanced is not None:
            stats = enhanced.prediction_stats
            line += f"  streak {stats.hot_streak:+d}  best {stats.best_streak}  worst {stats.worst_streak}"
        print(line)
    print(f"{'='*50}")


def main():
    parser = argparse.ArgumentParser(description="Grade pending persona picks")
    parser.add_argument("--input", help="JSON file of final upstream records for the week")
    parser.add_argument("--week", type=int, help="Week to grade")
    parser.add_argument("--season", type=int, default=LEAGUE_SEASON)
    parser.add_argument("--summary", action="store_true", help="Just print the record")
    args = parser.parse_args()

    print("=== Persona Pick Tracker ===\n")
    repo = MemoryRepository(DB_PATH)

    if args.summary:
        print_summary(repo, args.season)
        return
    if not args.input or args.week is None:
        parser.error("--input and --week are required unless --summary is given")

    with open(args.input) as f:
        raw = json.load(f)
    grade_week(repo, raw, args.week, args.season)


if __name__ == "__main__":
    main()
