"""
Tests for the forecast engine: heuristic picks, calibration, upset flags,
reply parsing, the heuristic fallback and grading.
"""

import threading

import pytest

from config import PERSONAS
from derive.models import UpcomingPair
from forecast.engine import build_context, last_scores_from_pairs, make_forecast
from forecast.grading import grade_pending_picks, grade_prediction, grade_predictions, record_prediction
from forecast.heuristic import calibrate_confidence, heuristic_pick, is_upset, pick_note
from forecast.models import ForecastRecords, PendingPicks
from forecast.parsing import (
    extract_text_pick,
    looks_like_forecast,
    parse_reply,
    parse_structured_reply,
    resolve_team,
)
from memory.models import PredictionStats
from memory.store import create_enhanced_memory, create_fresh_memory
from utils.constants import CONFIDENCE_LEVELS


@pytest.fixture
def memories():
    return {persona: create_enhanced_memory(persona, 2026) for persona in PERSONAS}


@pytest.fixture
def week_data(make_derived):
    return make_derived(
        [("Alpha", 130, "Beta", 95), ("Gamma", 110, "Delta", 107.5)],
        upcoming=[("Alpha", "Beta"), ("Gamma", "Delta")],
    )


# =============================================================================
# Heuristic
# =============================================================================

def test_entertainer_big_score_bonus():
    mem = create_enhanced_memory("entertainer", 2026)
    pick, conf = heuristic_pick("entertainer", mem, "Alpha", "Beta", {"Alpha": 130, "Beta": 100})
    assert pick == "Alpha"
    assert conf == "low"

    mem.team("Alpha").trust = 12
    pick, conf = heuristic_pick("entertainer", mem, "Alpha", "Beta", {"Alpha": 100, "Beta": 100})
    assert (pick, conf) == ("Alpha", "high")


def test_analyst_weighs_last_score():
    mem = create_enhanced_memory("analyst", 2026)
    pick, conf = heuristic_pick("analyst", mem, "Alpha", "Beta", {"Alpha": 90, "Beta": 180})
    assert pick == "Beta"
    assert conf == "medium"


def test_tie_goes_to_first_team_with_default_scores():
    mem = create_fresh_memory("analyst")
    assert heuristic_pick("analyst", mem, "Alpha", "Beta", {}) == ("Alpha", "low")


@pytest.mark.parametrize("base,stats,expected", [
    ("medium", None, "medium"),
    ("medium", PredictionStats(correct=7, wrong=3, win_rate=0.7), "high"),
    ("high", PredictionStats(correct=7, wrong=3, win_rate=0.7), "high"),
    ("medium", PredictionStats(correct=3, wrong=7, win_rate=0.3), "low"),
    ("low", PredictionStats(correct=3, wrong=7, win_rate=0.3), "low"),
    ("medium", PredictionStats(correct=5, wrong=5, win_rate=0.5, hot_streak=3), "high"),
    ("medium", PredictionStats(correct=5, wrong=5, win_rate=0.5, hot_streak=-3), "low"),
    ("medium", PredictionStats(correct=5, wrong=5, win_rate=0.5), "medium"),
])
def test_calibrate_confidence(base, stats, expected):
    assert calibrate_confidence(base, stats) == expected


def test_calibration_monotone_in_win_rate():
    rates = [i / 20 for i in range(21)]
    for base in CONFIDENCE_LEVELS:
        levels = [CONFIDENCE_LEVELS.index(calibrate_confidence(base, PredictionStats(win_rate=r)))
                  for r in rates]
        assert levels == sorted(levels)


def test_upset_flag():
    scores = {"Alpha": 90, "Beta": 120}
    assert is_upset("Alpha", "Alpha", "Beta", scores)
    assert not is_upset("Beta", "Alpha", "Beta", scores)
    assert not is_upset("Alpha", "Alpha", "Beta", {"Alpha": 100, "Beta": 120})
    assert not is_upset("Nobody", "Alpha", "Beta", scores)


def test_pick_note_prefers_upset():
    assert pick_note("entertainer", True, "high") == "Going against the grain here."
    assert pick_note("analyst", False, "high") == "Process favors this outcome."
    assert pick_note("analyst", False, "medium") is None


# =============================================================================
# Parsing
# =============================================================================

PAIRS = [UpcomingPair(1, ("Alpha", "Beta")), UpcomingPair(2, ("Gamma", "Delta"))]


def test_text_reply_parsed_per_matchup():
    text = (
        "Here we go!\n"
        "1. Alpha vs Beta: Pick: Beta | Confidence: High | Reason: Better floor\n"
        "2. Gamma vs Delta: Pick: gamma | Confidence: low | Reason: coin flip\n"
    )
    parsed = parse_reply(text, PAIRS)
    assert parsed[1].winner == "Beta"
    assert parsed[1].confidence == "high"
    assert parsed[1].reason == "Better floor"
    assert parsed[2].winner == "Gamma"


def test_text_line_without_confidence_is_unparsed():
    text = "1. Alpha vs Beta: Pick: Beta | Reason: vibes"
    assert extract_text_pick(text, "Alpha", "Beta") is None


def test_text_pick_naming_neither_team():
    text = "1. Alpha vs Beta: Pick: Omega | Confidence: high | Reason: ?"
    assert extract_text_pick(text, "Alpha", "Beta") is None


def test_matchup_missing_from_reply():
    text = "1. Alpha vs Beta: Pick: Alpha | Confidence: medium | Reason: ok"
    parsed = parse_reply(text, PAIRS)
    assert parsed[1].winner == "Alpha"
    assert parsed[2] is None


def test_structured_reply_in_code_fence():
    text = (
        "```json\n"
        '{"picks": [{"matchup_id": 1, "pick": "Alpha", "confidence": "HIGH", "reason": "trust"},'
        ' {"team1": "Delta", "team2": "Gamma", "pick": "Delta", "confidence": "low"}]}\n'
        "```"
    )
    reply = parse_structured_reply(text)
    assert reply is not None
    parsed = parse_reply(text, PAIRS)
    assert (parsed[1].winner, parsed[1].confidence, parsed[1].reason) == ("Alpha", "high", "trust")
    assert (parsed[2].winner, parsed[2].confidence) == ("Delta", "low")


def test_structured_reply_with_bad_confidence_is_rejected():
    text = '{"picks": [{"matchup_id": 1, "pick": "Alpha", "confidence": "certain"}]}'
    assert parse_structured_reply(text) is None
    assert parse_reply(text, PAIRS) == {1: None, 2: None}


def test_resolve_team():
    assert resolve_team("Beta over Alpha", "Alpha", "Beta") == "Beta"
    assert resolve_team("  alpha ", "Alpha", "Beta") == "Alpha"
    assert resolve_team("", "Alpha", "Beta") is None


def test_looks_like_forecast():
    assert looks_like_forecast("Pick: A | Confidence: low | Reason: x")
    assert looks_like_forecast('{"picks": []}')
    assert not looks_like_forecast("I cannot help with that.")
    assert not looks_like_forecast("")


# =============================================================================
# make_forecast
# =============================================================================

def test_heuristic_forecast_without_generator(memories, week_data):
    result = make_forecast(week_data.upcoming_pairs, week_data.matchup_pairs, memories, week=2)

    assert len(result.picks) == 2
    for fp in result.picks:
        assert set(fp.picks) == set(PERSONAS)
        for pp in fp.picks.values():
            assert pp.source == "heuristic"
            assert pp.pick in (fp.team1, fp.team2)
            assert pp.confidence in CONFIDENCE_LEVELS

    assert result.pending.week == 2
    assert result.pending.picks[0] == {
        "matchup_id": 1,
        "entertainer_pick": result.picks[0].picks["entertainer"].pick,
        "analyst_pick": result.picks[0].picks["analyst"].pick,
    }
    for mem in memories.values():
        assert len(mem.predictions) == 2
        assert all(p.week == 2 and not p.graded for p in mem.predictions)


def test_generator_failure_falls_back_per_persona(memories, week_data):
    calls = []
    lock = threading.Lock()

    def generator(persona, section_type, context, constraints, max_tokens, validate):
        with lock:
            calls.append(persona)
        if persona == "entertainer":
            raise RuntimeError("rate limited")
        return "1. Alpha vs Beta: Pick: Beta | Confidence: high | Reason: Beta's floor is higher"

    result = make_forecast(week_data.upcoming_pairs, week_data.matchup_pairs, memories, week=2,
                           generator=generator)

    assert sorted(calls) == ["analyst", "entertainer"]
    first, second = result.picks
    assert first.picks["entertainer"].source == "heuristic"
    assert first.picks["entertainer"].pick == "Alpha"

    analyst = first.picks["analyst"]
    assert analyst.source == "generated"
    assert analyst.pick == "Beta"
    # a fresh persona has a 0.0 win rate, so calibration pulls "high" down a step
    assert analyst.confidence == "medium"
    assert analyst.upset is True
    assert analyst.note == "Beta's floor is higher"

    assert second.picks["analyst"].source == "heuristic"
    assert result.summary == {"agree_count": 1, "total": 2, "disagreements": ["Alpha vs Beta"]}
    assert result.matchup_of_the_week == {"entertainer": "Alpha vs Beta", "analyst": "Alpha vs Beta"}


def test_malformed_reply_means_all_heuristic(memories, week_data):
    def generator(*args):
        return "Sorry, I can't make predictions this week."

    result = make_forecast(week_data.upcoming_pairs, week_data.matchup_pairs, memories, week=2,
                           generator=generator)
    assert all(pp.source == "heuristic" for fp in result.picks for pp in fp.picks.values())


def test_analyst_high_confidence_pick_is_matchup_of_the_week(memories, week_data):
    memories["analyst"].prediction_stats = PredictionStats(correct=8, wrong=2, win_rate=0.8)
    memories["analyst"].team("Delta").trust = 30
    result = make_forecast(week_data.upcoming_pairs, week_data.matchup_pairs, memories, week=2)
    assert result.picks[1].picks["analyst"].confidence == "high"
    assert result.matchup_of_the_week["analyst"] == "Gamma vs Delta"


def test_empty_upcoming_gives_empty_forecast(memories):
    result = make_forecast([], [], memories, week=5)
    assert result.picks == []
    assert result.summary["total"] == 0
    assert result.pending.picks == []
    assert all(mem.predictions == [] for mem in memories.values())


def test_context_mentions_teams_and_record(memories, week_data):
    scores = last_scores_from_pairs(week_data.matchup_pairs)
    assert scores == {"Alpha": 130, "Beta": 95, "Gamma": 110, "Delta": 107.5}
    memories["entertainer"].team("Alpha").trust = 7
    context = build_context("entertainer", memories["entertainer"], week_data.upcoming_pairs, scores, 2)
    assert "[1] Alpha vs Beta" in context
    assert "scored 130.0 last week" in context
    assert "your trust 7" in context
    assert "YOUR TRACK RECORD: 0-0" in context


# =============================================================================
# Grading
# =============================================================================

def test_pending_picks_graded_once(week_data):
    pending = PendingPicks(week=1, picks=[
        {"matchup_id": 1, "entertainer_pick": "Alpha", "analyst_pick": "Beta"},
        {"matchup_id": 2, "entertainer_pick": "Gamma", "analyst_pick": "Gamma"},
    ])
    records = grade_pending_picks(pending, week_data.matchup_pairs, ForecastRecords())
    assert pending.graded
    assert (records.wins("entertainer"), records.losses("entertainer")) == (2, 0)
    assert (records.wins("analyst"), records.losses("analyst")) == (1, 1)

    again = grade_pending_picks(pending, week_data.matchup_pairs, records)
    assert (again.wins("entertainer"), again.losses("analyst")) == (2, 1)


def test_pending_picks_without_results_stay_ungraded():
    pending = PendingPicks(week=3, picks=[{"matchup_id": 9, "entertainer_pick": "A", "analyst_pick": "B"}])
    records = grade_pending_picks(pending, [], ForecastRecords())
    assert not pending.graded
    assert str(records) == "entertainer 0-0, analyst 0-0"
    assert grade_pending_picks(None, [], records) is records


def test_pending_picks_graded_across_late_results(week_data):
    pending = PendingPicks(week=1, picks=[
        {"matchup_id": 1, "entertainer_pick": "Alpha", "analyst_pick": "Beta"},
        {"matchup_id": 2, "entertainer_pick": "Gamma", "analyst_pick": "Gamma"},
    ])
    first, second = week_data.matchup_pairs[0], week_data.matchup_pairs[1]

    records = grade_pending_picks(pending, [first], ForecastRecords())
    assert not pending.graded
    assert records.wins("entertainer") + records.losses("entertainer") == 1

    records = grade_pending_picks(pending, [first, second], records)
    assert pending.graded
    assert all(p["graded"] for p in pending.picks)
    assert (records.wins("entertainer"), records.losses("entertainer")) == (2, 0)
    assert (records.wins("analyst"), records.losses("analyst")) == (1, 1)


def test_prediction_graded_once(memories, week_data):
    mem = memories["analyst"]
    record_prediction(mem, 1, 1, "Alpha", "Beta", "Alpha", "high")
    record_prediction(mem, 1, "2", "Gamma", "Delta", "Delta", "low")

    assert grade_predictions(mem, 1, week_data.matchup_pairs) == 2
    assert grade_predictions(mem, 1, week_data.matchup_pairs) == 0
    assert not grade_prediction(mem, 1, 1, "Alpha", 35)

    stats = mem.prediction_stats
    assert (stats.correct, stats.wrong, stats.win_rate) == (1, 1, 0.5)
    assert mem.predictions[0].result == "correct"
    assert mem.predictions[1].actual_winner == "Gamma"


def test_legacy_memory_keeps_no_predictions():
    mem = create_fresh_memory("entertainer")
    assert record_prediction(mem, 1, 1, "A", "B", "A", "low") is None
    assert not grade_prediction(mem, 1, 1, "A", 10)


def test_prediction_streaks():
    stats = PredictionStats()
    for correct in (True, True, False, False, False, True):
        stats.record(correct)
    assert (stats.correct, stats.wrong) == (3, 3)
    assert stats.hot_streak == 1
    assert stats.best_streak == 2
    assert stats.worst_streak == -3
    assert stats.win_rate == 0.5
