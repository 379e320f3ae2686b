#!/usr/bin/env python3
"""
train_wp_model.py — fit and store the win-probability calibration table.

Input is a JSON file holding either ready history records
  {"history": [{"teams": [{"points": 121.4, "positions": ["QB", ...]}, {...}]}, ...]}
or raw weekly matchup rows plus a player table
  {"weeks": [[{matchup_id, points, starters}, ...], ...], "players": {id: {"position": ...}}}

Usage:
  python scripts/train_wp_model.py --input history.json
  python scripts/train_wp_model.py --input history.json --dry-run
"""

import os
import sys
import json
import logging
import argparse

SCRIPT_DIR = os.path.dirname(os.path.abspath(__file__))
PROJECT_ROOT = os.path.dirname(SCRIPT_DIR)
sys.path.insert(0, PROJECT_ROOT)

from config import DB_PATH
from db.repository import MemoryRepository
from simulation.calibration import history_from_matchups, train_calibration_table

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    datefmt="%H:%M:%S",
)
logger = logging.getLogger(__name__)


def load_history(path: str) -> list[dict]:
    with open(path) as f:
        data = json.load(f)
    if "history" in data:
        return data["history"]
    return history_from_matchups(data.get("weeks") or [], data.get("players") or {})


def main():
    parser = argparse.ArgumentParser(description="Train the WP calibration table")
    parser.add_argument("--input", required=True, help="JSON history file")
    parser.add_argument("--dry-run", action="store_true", help="Print the table without storing it")
    args = parser.parse_args()

    history = load_history(args.input)
    logger.info(f"Training on {len(history)} historical matchups")
    table = train_calibration_table(history)

    print(f"\n{'bucket':<14}{'n':>6}{'slope':>10}{'intercept':>12}")
    for b in table.buckets:
        print(f"[{b.lo:.1f}, {b.hi:.2f}){'':<2}{b.n:>6}{b.slope:>10.3f}{b.intercept:>12.3f}")

    if args.dry_run:
        print("\nDry run: table not stored")
        return
    MemoryRepository(DB_PATH).save_wp_model(table)


if __name__ == "__main__":
    main()
