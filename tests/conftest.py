"""
Pytest fixtures shared across the suite.

Provides:
- league records in the upstream shape (users, rosters, matchups, transactions)
- a factory for one week's DerivedData from plain (team, points) results
- a throwaway SQLite repository
"""

import pytest
import numpy as np

from db.repository import MemoryRepository
from derive.matchups import build_matchup_pairs, build_upcoming_pairs
from derive.models import DerivedData
from derive.names import NameIndex

TEAMS = ["Alpha", "Beta", "Gamma", "Delta"]


@pytest.fixture
def team_names():
    return list(TEAMS)


@pytest.fixture
def name_index():
    return NameIndex({i + 1: name for i, name in enumerate(TEAMS)})


@pytest.fixture
def make_derived(name_index):
    """
    make_derived([("Alpha", 130, "Beta", 95), ...], events=[...], upcoming=[("Alpha", "Gamma"), ...])
    → DerivedData with one slot per result tuple.
    """
    ids = {name: rid for rid, name in name_index.rosters.items()}

    def _make(results, events=None, upcoming=None, week=None):
        rows = []
        for slot, (team_a, pts_a, team_b, pts_b) in enumerate(results, start=1):
            rows.append({"roster_id": ids[team_a], "matchup_id": slot, "points": pts_a})
            rows.append({"roster_id": ids[team_b], "matchup_id": slot, "points": pts_b})
        next_rows = []
        for slot, (team_a, team_b) in enumerate(upcoming or [], start=1):
            next_rows.append({"roster_id": ids[team_a], "matchup_id": slot})
            next_rows.append({"roster_id": ids[team_b], "matchup_id": slot})
        return DerivedData(
            matchup_pairs=build_matchup_pairs(rows, name_index, week=week),
            upcoming_pairs=build_upcoming_pairs(next_rows, name_index),
            events_scored=list(events or []),
        )

    return _make


@pytest.fixture
def league_raw():
    """One finished week in the upstream shape, with next week's schedule."""
    return {
        "users": [
            {"user_id": "u1", "display_name": "alpha_gm", "metadata": {"team_name": "Alpha"}},
            {"user_id": "u2", "display_name": "Beta"},
            {"user_id": "u3", "username": "Gamma"},
            {"user_id": "u4", "display_name": "Delta"},
        ],
        "rosters": [
            {"roster_id": 1, "owner_id": "u1"},
            {"roster_id": 2, "owner_id": "u2"},
            {"roster_id": 3, "owner_id": "u3"},
            {"roster_id": 4, "owner_id": "u4"},
        ],
        "matchups": [
            {"roster_id": 1, "matchup_id": 1, "points": 131.2},
            {"roster_id": 2, "matchup_id": 1, "points": 96.4},
            {"roster_id": 3, "matchup_id": 2, "points": 110.0},
            {"roster_id": 4, "matchup_id": 2, "points": 107.5},
        ],
        "next_matchups": [
            {"roster_id": 1, "matchup_id": 1},
            {"roster_id": 3, "matchup_id": 1},
            {"roster_id": 2, "matchup_id": 2},
            {"roster_id": 4, "matchup_id": 2},
        ],
        "transactions": [
            {
                "transaction_id": "t1", "type": "trade", "leg": 1, "roster_ids": [1, 2],
                "adds": {"p1": 1, "p2": 2}, "drops": {"p3": 2},
                "draft_picks": [{"season": "2026", "round": 1}],
            },
            {"transaction_id": "w1", "type": "waiver", "leg": 1, "roster_ids": [3], "waiver_bid": 55},
            {"transaction_id": "f1", "type": "free_agent", "leg": 1, "roster_ids": [4]},
            {"transaction_id": "c1", "type": "commissioner", "leg": 1},
        ],
    }


@pytest.fixture
def repo(tmp_path):
    return MemoryRepository(str(tmp_path / "test.db"))


@pytest.fixture
def rng():
    return np.random.default_rng(12345)
