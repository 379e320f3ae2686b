import os
from datetime import date

from dotenv import load_dotenv

load_dotenv()

# Database
DB_PATH = os.getenv(
    "NEWSLETTER_DB_PATH",
    os.path.join(os.path.dirname(__file__), "db", "newsletter.db"),
)

# Text generation (Groq chat-completions)
GROQ_API_KEY = os.getenv("GROQ_API_KEY", "")
GROQ_API_URL = "https://api.groq.com/openai/v1/chat/completions"
GROQ_MODEL = os.getenv("GROQ_MODEL", "llama-3.1-8b-instant")
GROQ_TIMEOUT = 30
GROQ_MIN_DELAY_SECONDS = 2.5
GROQ_MAX_RETRIES = 3
GROQ_TOP_P = 0.9
PERSONA_TEMPERATURE = {"entertainer": 0.85, "analyst": 0.6}

PERSONAS = ("entertainer", "analyst")

# League calendar
LEAGUE_SEASON = int(os.getenv("LEAGUE_SEASON") or date.today().year)
PLAYOFF_START_WEEK = 15
TOP_PLAYERS_PER_SIDE = 3

# Playoff bracket labels keyed by (round, matchup_id). Round 1 = first playoff week.
BRACKET_LABELS = {
    (1, 1): "Quarterfinal",
    (1, 2): "Quarterfinal",
    (1, 3): "Consolation Round",
    (1, 4): "Consolation Round",
    (1, 5): "Toilet Bowl Round 1",
    (1, 6): "Toilet Bowl Round 1",
    (2, 1): "Semifinal",
    (2, 2): "Semifinal",
    (2, 3): "5th Place Game",
    (2, 4): "Toilet Bowl Semifinal",
    (2, 5): "Toilet Bowl Semifinal",
    (3, 1): "Championship",
    (3, 2): "3rd Place Game",
    (3, 3): "5th Place Game",
    (3, 4): "7th Place Game",
    (3, 5): "Toilet Bowl",
}

# ── Relevance scoring ──────────────────────────────────────────────
# Weights are relative; each scorer divides by the sum of its weights.
RELEVANCE_CONFIG = {
    "thresholds": {"low_max": 39, "moderate_max": 69},
    "trade": {
        "weights": {
            "dynasty_role_impact": 20,
            "positional_scarcity": 15,
            "points_impact": 20,
            "capital_paid": 15,
            "team_need_fit": 15,
            "tag_shift_potential": 15,
        },
        "blockbuster_floor": 70,
        "lateral_cap": 55,
    },
    "waiver": {
        "weights": {
            "faab_spent_vs_value": 30,
            "bid_heat": 15,
            "need_fit": 20,
            "projection_role": 20,
            "timing": 15,
        },
    },
    "fa_add_score": 30,
}

# FAAB spend → feature value, checked top-down
FAAB_TIERS = [
    (50, 0.9),
    (35, 0.75),
    (20, 0.6),
    (10, 0.45),
    (5, 0.35),
]
FAAB_FLOOR_FEATURE = 0.25

# ── Persona memory ─────────────────────────────────────────────────
TRUST_RANGE = (-50, 50)
FRUSTRATION_RANGE = (0, 50)

BLOWOUT_MARGIN = 30
NAIL_BITER_MARGIN = 5

# (winner_trust, winner_frustration, loser_trust, loser_frustration)
RESULT_DELTAS = {
    "blowout": (4, -1, -1, 4),
    "nail_biter": (2, 0, 0, 2),
    "normal": (3, 0, 0, 3),
}

WAIVER_TRUST_TIERS = [(70, 2), (40, 1)]
TRADE_ACTIVITY_TRUST = 1

MAX_NOTABLE_EVENTS = 20
STREAK_NARRATIVE_LENGTH = 3

# ── Forecast heuristics ────────────────────────────────────────────
DEFAULT_LAST_SCORE = 100.0
UPSET_GAP = 20

HEURISTIC_PARAMS = {
    "entertainer": {
        "big_score": 120,
        "big_score_bonus": 5,
        "score_scale": 0.0,
        "high_gap": 10,
        "medium_gap": 5,
        "upset_note": "Going against the grain here.",
        "lock_note": "Lock it in.",
    },
    "analyst": {
        "big_score": None,
        "big_score_bonus": 0,
        "score_scale": 0.1,
        "high_gap": 15,
        "medium_gap": 8,
        "upset_note": "Variance play.",
        "lock_note": "Process favors this outcome.",
    },
}

CALIBRATION_HOT_WIN_RATE = 0.65
CALIBRATION_COLD_WIN_RATE = 0.45
CALIBRATION_STREAK = 3

FORECAST_MAX_TOKENS = 400

# ── Win-probability simulator ──────────────────────────────────────
SIM_TRIALS = 1500
WILSON_Z = 1.96
OVERTIME_FRACTION = 0.08
SHRINKAGE_FULL_GAMES = 6
RECENCY_WEIGHT = 0.6
BASELINE_DECAY = 0.7

POS_DEFAULT_MEAN = {"QB": 18, "RB": 13, "WR": 13, "TE": 8, "K": 8, "DEF": 8}
POS_DEFAULT_SD = {"QB": 8, "RB": 7, "WR": 7, "TE": 5, "K": 4, "DEF": 6}
FALLBACK_POS_MEAN = 10
FALLBACK_POS_SD = 6

SKILL_POSITIONS = ("QB", "RB", "WR", "TE")
RED_ZONE_MEAN_MUL = 1.08
RED_ZONE_SD_MUL = 1.10
POSSESSION_MEAN_MUL = 1.05
SCORE_GAP_FOR_SCRIPT = 8

# Game-script multipliers by position when a team trails / leads by SCORE_GAP_FOR_SCRIPT+
TRAILING_MULTIPLIERS = {"WR": 1.05, "TE": 1.05, "QB": 1.03, "RB": 0.97}
LEADING_MULTIPLIERS = {"RB": 1.03, "WR": 0.98, "TE": 0.98}

# Calibration buckets over fraction remaining: [lo, hi)
CALIBRATION_BUCKETS = [
    (0.8, 1.01),
    (0.6, 0.8),
    (0.4, 0.6),
    (0.2, 0.4),
    (0.0, 0.2),
]
CALIBRATION_SNAPSHOTS = [0.9, 0.7, 0.5, 0.3, 0.1]
CALIBRATION_MIN_SAMPLES = 10
