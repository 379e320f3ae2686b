"""CLI entry point for the league newsletter engine."""

import sys
import os
import json
import logging
import argparse

# Ensure project root is on path
sys.path.insert(0, os.path.dirname(__file__))

import numpy as np

from config import DB_PATH, PERSONAS, GROQ_API_KEY, LEAGUE_SEASON
from db.repository import MemoryRepository

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    datefmt="%H:%M:%S",
)
logger = logging.getLogger(__name__)


def load_json(path: str):
    with open(path) as f:
        return json.load(f)


def run_week_command(input_path: str, week: int, season: int, use_llm: bool):
    """Run one league-week from a JSON file of upstream records."""
    from weekly import run_week
    from forecast.llm import GroqTextGenerator

    repo = MemoryRepository(DB_PATH)
    generator = None
    if use_llm:
        if GROQ_API_KEY:
            generator = GroqTextGenerator()
        else:
            logger.warning("No GROQ_API_KEY set. Using heuristic picks only.")

    out = run_week(load_json(input_path), week, season, repo, generator=generator)

    print(f"\n=== Week {week} ===")
    for p in out.derived.matchup_pairs:
        label = f" [{p.bracket_label}]" if p.bracket_label else ""
        print(f"  {p.winner.name} {p.winner.points:.2f} def. {p.loser.name} {p.loser.points:.2f}{label}")
    for ev in out.derived.events_scored:
        print(f"  {ev.type:<7} {ev.relevance_score:>3} {ev.coverage_level:<8} {', '.join(ev.reasons)}")

    if out.forecast is not None:
        print(f"\n=== Week {week + 1} forecast ===")
        for fp in out.forecast.picks:
            picks = " | ".join(f"{persona}: {pp.pick} ({pp.confidence})" for persona, pp in fp.picks.items())
            print(f"  {fp.label}: {picks}")
        s = out.forecast.summary
        print(f"  Agree on {s['agree_count']}/{s['total']}")
    show_records(out.records)


def run_simulate(request_path: str, seed: int = None, calibrated: bool = True):
    """Simulate one live matchup from a JSON request file."""
    from simulation.win_probability import simulate_request

    table = MemoryRepository(DB_PATH).load_wp_model() if calibrated else None
    rng = np.random.default_rng(seed)
    result = simulate_request(load_json(request_path), calibration=table, rng=rng)

    lo, hi = result.ci
    print(f"\nLeft  {result.left * 100:5.1f}%   proj {result.left_median:6.1f} "
          f"({result.left_range[0]:.1f}-{result.left_range[1]:.1f})")
    print(f"Right {result.right * 100:5.1f}%   proj {result.right_median:6.1f} "
          f"({result.right_range[0]:.1f}-{result.right_range[1]:.1f})")
    print(f"WP 95% CI: {lo * 100:.0f}%-{hi * 100:.0f}%  ({result.trials} trials, "
          f"{result.fraction_remaining:.0%} remaining{', calibrated' if result.calibrated else ''})\n")


def show_records(records):
    if records is None:
        return
    print("\n=== Forecast Records ===")
    for persona in PERSONAS:
        print(f"  {persona:.<20} {records.wins(persona):>3}-{records.losses(persona):<3}")
    print()


def show_status(season: int):
    """Show persona moods, records and table sizes."""
    from db.connection import table_row_count
    from db.schema import TABLES
    from memory.store import active_narratives

    repo = MemoryRepository(DB_PATH)
    print("\n=== Database Status ===")
    for table in TABLES:
        print(f"  {table:.<35} {table_row_count(table, DB_PATH):>8} rows")

    for persona in PERSONAS:
        mem = repo.load_memory(persona, season)
        if mem is None:
            print(f"\n[{persona}] no memory for {season}")
            continue
        print(f"\n[{persona}] {mem.summary_mood} ({mem.kind})")
        for name, t in sorted(mem.teams.items(), key=lambda kv: -kv[1].trust):
            print(f"  {name:.<30} trust {t.trust:>4}  frustration {t.frustration:>3}  {t.mood}")
        enhanced = mem.as_enhanced()
        if enhanced is not None:
            for n in active_narratives(enhanced):
                print(f"  * {n.title}: {n.description}")
    show_records(repo.load_records(season))


def main():
    parser = argparse.ArgumentParser(description="League Newsletter Engine")
    parser.add_argument(
        "command",
        choices=["week", "simulate", "status"],
        help="Action to run",
    )
    parser.add_argument("--input", help="JSON input file (league week or simulator request)")
    parser.add_argument("--week", type=int, help="League week being processed")
    parser.add_argument("--season", type=int, default=LEAGUE_SEASON, help="Season (default: %(default)s)")
    parser.add_argument("--llm", action="store_true", help="Generate picks with Groq (falls back to heuristics)")
    parser.add_argument("--seed", type=int, default=None, help="Seed the simulator for reproducible output")
    parser.add_argument("--raw", action="store_true", help="Skip the stored WP calibration table")

    args = parser.parse_args()
    season = args.season

    if args.command == "status":
        show_status(season)
    elif args.command == "week":
        if not args.input or args.week is None:
            parser.error("week requires --input and --week")
        run_week_command(args.input, args.week, season, args.llm)
    elif args.command == "simulate":
        if not args.input:
            parser.error("simulate requires --input")
        run_simulate(args.input, seed=args.seed, calibrated=not args.raw)


if __name__ == "__main__":
    main()
