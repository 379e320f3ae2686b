"""
Tests for the weekly deriver: name resolution, matchup pairing, bracket
ordering, transaction normalization and relevance scoring.
"""

import random

import pytest

from derive.events import (
    coverage_level,
    faab_feature,
    normalize_transactions,
    score_event,
    score_events,
    score_trade,
    score_waiver,
)
from derive.matchups import bracket_label_for, build_matchup_pairs, build_upcoming_pairs
from derive.models import NormalizedEvent
from derive.names import NameIndex, build_name_index
from derive.pipeline import build_derived
from utils.constants import COVERAGE_LEVELS, EVENT_TYPES


# =============================================================================
# Names
# =============================================================================

def test_team_name_prefers_metadata_then_display_name(league_raw):
    names = build_name_index(league_raw["users"], league_raw["rosters"])
    assert names.roster_name(1) == "Alpha"
    assert names.roster_name(2) == "Beta"
    assert names.roster_name(3) == "Gamma"


def test_unknown_ids_get_placeholders():
    names = build_name_index(
        [{"user_id": "u1", "display_name": "One"}],
        [{"roster_id": 1, "owner_id": "u1"}, {"roster_id": 2, "owner_id": "ghost"}],
    )
    assert names.roster_name(2) == "Owner ghost"
    assert names.roster_name(99) == "Roster 99"
    assert names.player_name("4034") == "Player 4034"


def test_player_names_from_records():
    names = build_name_index([], [], players={
        "1": "Josh Allen",
        "2": {"full_name": "Bijan Robinson"},
        "3": {"first_name": "Puka", "last_name": "Nacua"},
    })
    assert names.player_name(1) == "Josh Allen"
    assert names.player_name("2") == "Bijan Robinson"
    assert names.player_name(3) == "Puka Nacua"


def test_malformed_user_and_roster_rows_are_skipped():
    names = build_name_index(
        [{"display_name": "no id"}, None, {"user_id": "u1", "display_name": "One"}],
        [{"owner_id": "u1"}, {"roster_id": 1, "owner_id": "u1"}],
    )
    assert names.roster_name(1) == "One"


@pytest.mark.parametrize("bad_user", [None, {"user_id": "u9", "metadata": "not a dict"}, "u9"])
def test_bad_user_row_does_not_abort_the_batch(bad_user):
    names = build_name_index(
        [bad_user, {"user_id": "u1", "display_name": "One"}],
        [{"roster_id": 1, "owner_id": "u1"}],
    )
    assert names.roster_name(1) == "One"


# =============================================================================
# Matchup pairs
# =============================================================================

def test_pair_winner_loser_margin(name_index):
    rows = [
        {"roster_id": 1, "matchup_id": 1, "points": 130.456},
        {"roster_id": 2, "matchup_id": 1, "points": 95.123},
    ]
    pairs = build_matchup_pairs(rows, name_index)
    assert len(pairs) == 1
    p = pairs[0]
    assert p.winner.name == "Alpha"
    assert p.loser.name == "Beta"
    assert p.margin == 35.33
    assert [t.name for t in p.teams] == ["Alpha", "Beta"]
    assert p.bracket_label is None


def test_top_players_ranked_and_named():
    names = NameIndex({1: "Alpha", 2: "Beta"}, {"p1": "Star", "p2": "Bench"})
    rows = [
        {"roster_id": 1, "matchup_id": 1, "points": 100, "players_points": {"p2": 4.5, "p1": 31.2, "p9": 12.0}},
        {"roster_id": 2, "matchup_id": 1, "points": 90},
    ]
    pair = build_matchup_pairs(rows, names, top_n=2)[0]
    assert pair.teams[0].top_players == (("Star", 31.2), ("Player p9", 12.0))
    assert pair.teams[1].top_players == ()


def test_malformed_score_rows_are_skipped(name_index):
    rows = [
        {"matchup_id": 1, "points": 100},
        {"roster_id": 1, "matchup_id": 1, "points": "not a number"},
        {"roster_id": 1, "matchup_id": 1, "points": 101},
        {"roster_id": 2, "matchup_id": 1, "points": 99},
    ]
    pairs = build_matchup_pairs(rows, name_index)
    assert len(pairs) == 1
    assert pairs[0].margin == 2.0


def test_missing_slot_groups_under_unknown(name_index):
    rows = [
        {"roster_id": 1, "points": 100},
        {"roster_id": 2, "matchup_id": None, "points": 80},
    ]
    pairs = build_matchup_pairs(rows, name_index)
    assert len(pairs) == 1
    assert pairs[0].matchup_id == "unknown"


def test_regular_season_sorted_by_margin(name_index):
    rows = [
        {"roster_id": 1, "matchup_id": 1, "points": 101},
        {"roster_id": 2, "matchup_id": 1, "points": 100},
        {"roster_id": 3, "matchup_id": 2, "points": 150},
        {"roster_id": 4, "matchup_id": 2, "points": 90},
    ]
    pairs = build_matchup_pairs(rows, name_index, week=3, playoff_start_week=15)
    assert [p.matchup_id for p in pairs] == [2, 1]
    assert all(p.bracket_label is None for p in pairs)


def test_playoff_bracket_ordering():
    # Final playoff week: slot 1 Championship, 2 3rd Place, 3/4 placement games, 5 Toilet Bowl
    margins = {1: 2, 2: 5, 3: 10, 4: 30, 5: 60}
    rows = []
    for slot, margin in margins.items():
        rows.append({"roster_id": slot * 10, "matchup_id": slot, "points": 100 + margin})
        rows.append({"roster_id": slot * 10 + 1, "matchup_id": slot, "points": 100})

    pairs = build_matchup_pairs(rows, week=17, playoff_start_week=15)
    assert [p.matchup_id for p in pairs] == [1, 2, 4, 3, 5]
    assert pairs[0].bracket_label == "Championship"
    assert pairs[1].bracket_label == "3rd Place Game"
    assert pairs[-1].bracket_label == "Toilet Bowl"


@pytest.mark.parametrize("slot,week,expected", [
    (1, 15, "Quarterfinal"),
    (5, 15, "Toilet Bowl Round 1"),
    (1, 16, "Semifinal"),
    (1, 17, "Championship"),
    (9, 17, None),
    (1, 14, None),
    ("abc", 17, None),
])
def test_bracket_label_lookup(slot, week, expected):
    assert bracket_label_for(slot, week, 15) == expected


def test_upcoming_pairs_drop_incomplete_slots(name_index):
    rows = [
        {"roster_id": 1, "matchup_id": 1},
        {"roster_id": 2, "matchup_id": 1},
        {"roster_id": 3, "matchup_id": 2},
        {"matchup_id": 3},
    ]
    upcoming = build_upcoming_pairs(rows, name_index)
    assert len(upcoming) == 1
    assert upcoming[0].teams == ("Alpha", "Beta")


# =============================================================================
# Transactions
# =============================================================================

def test_normalize_maps_types_and_skips_unknown(league_raw, name_index):
    events = normalize_transactions(league_raw["transactions"], name_index)
    assert [e.type for e in events] == ["trade", "waiver", "fa_add"]

    trade = events[0]
    assert trade.parties == ("Alpha", "Beta")
    assert trade.assets_moved == 4
    assert trade.picks_moved == 1
    assert trade.week == 1

    waiver = events[1]
    assert waiver.team == "Gamma"
    assert waiver.faab_spent == 55.0


def test_missing_transaction_id_gets_generated():
    events = normalize_transactions([{"type": "free_agent", "roster_ids": [1]}])
    assert len(events) == 1
    assert events[0].event_id


def test_trade_with_one_pick_and_three_assets():
    ev = NormalizedEvent(event_id="t1", type="trade", week=4, parties=("A", "B"),
                         assets_moved=4, picks_moved=1)
    scored = score_event(ev)
    assert scored.relevance_score == 61
    assert scored.coverage_level == "moderate"
    assert "future pick involved" in scored.reasons


def test_blockbuster_floor_and_lateral_cap():
    big, _ = score_trade(NormalizedEvent("t", "trade", 1, assets_moved=7, picks_moved=0))
    assert big >= 70
    small, reasons = score_trade(NormalizedEvent("t", "trade", 1, assets_moved=2, picks_moved=0))
    assert small <= 55
    assert reasons == ["low volume swap"]


@pytest.mark.parametrize("faab,expected", [
    (80, 0.9), (50, 0.9), (40, 0.75), (20, 0.6), (12, 0.45), (5, 0.35), (0, 0.25),
])
def test_faab_feature_tiers(faab, expected):
    assert faab_feature(faab) == expected


def test_waiver_and_fa_scores():
    waiver = score_event(NormalizedEvent("w", "waiver", 2, team="Gamma", faab_spent=55))
    assert waiver.relevance_score == 62
    assert waiver.reasons == ("FAAB 55 (aggressive)",)

    fa = score_event(NormalizedEvent("f", "fa_add", 2, team="Delta"))
    assert fa.relevance_score == 30
    assert fa.coverage_level == "low"


@pytest.mark.parametrize("faab,label", [(25, "moderate"), (5, "low"), (0, "low")])
def test_waiver_reason_tiers(faab, label):
    _, reasons = score_waiver(NormalizedEvent("w", "waiver", 2, team="Gamma", faab_spent=faab))
    assert reasons == [f"FAAB {faab} ({label})"]


def test_waiver_score_rises_with_faab():
    scores = [score_waiver(NormalizedEvent("w", "waiver", 2, faab_spent=f))[0] for f in (0, 12, 40, 90)]
    assert scores == sorted(scores)
    assert scores[0] < scores[-1]


@pytest.mark.parametrize("score,level", [(0, "low"), (39, "low"), (40, "moderate"), (69, "moderate"), (70, "high")])
def test_coverage_levels(score, level):
    assert coverage_level(score) == level


def test_relevance_always_in_range():
    rnd = random.Random(7)
    events = []
    for i in range(300):
        kind = rnd.choice(["trade", "waiver", "fa_add"])
        events.append(NormalizedEvent(
            event_id=str(i), type=kind, week=1,
            assets_moved=rnd.randint(0, 15), picks_moved=rnd.randint(0, 5),
            faab_spent=rnd.uniform(0, 200),
        ))
    for ev in score_events(events):
        assert 0 <= ev.relevance_score <= 100
        assert ev.coverage_level == coverage_level(ev.relevance_score)
        assert ev.coverage_level in COVERAGE_LEVELS
        assert ev.type in EVENT_TYPES


def test_unknown_event_type_is_skipped():
    events = [NormalizedEvent("x", "mystery", 1), NormalizedEvent("f", "fa_add", 1)]
    scored = score_events(events)
    assert [e.event_id for e in scored] == ["f"]


# =============================================================================
# Pipeline
# =============================================================================

def test_build_derived_end_to_end(league_raw):
    derived = build_derived(
        league_raw["users"], league_raw["rosters"], league_raw["matchups"],
        next_matchups=league_raw["next_matchups"],
        transactions=league_raw["transactions"],
        week=1,
    )
    assert [p.winner.name for p in derived.matchup_pairs] == ["Alpha", "Gamma"]
    assert [u.teams for u in derived.upcoming_pairs] == [("Alpha", "Gamma"), ("Beta", "Delta")]
    assert len(derived.events_scored) == 3
    assert derived.team_names() == ["Alpha", "Beta", "Gamma", "Delta"]
    assert derived.last_scores()["Beta"] == 96.4


def test_build_derived_with_empty_inputs():
    derived = build_derived([], [], [])
    assert derived.matchup_pairs == []
    assert derived.upcoming_pairs == []
    assert derived.events_scored == []
