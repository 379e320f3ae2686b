"""Enumerated labels shared across the deriver, memory store and forecast engine."""

EVENT_TYPES = ("trade", "waiver", "fa_add")

# Upstream transaction type → normalized event type
TRANSACTION_TYPE_MAP = {
    "trade": "trade",
    "waiver": "waiver",
    "free_agent": "fa_add",
}

COVERAGE_LEVELS = ("low", "moderate", "high")

CONFIDENCE_LEVELS = ("low", "medium", "high")

LEGACY_MOODS = ("Neutral", "Confident", "Suspicious", "Irritated")
ENHANCED_MOODS = ("hot", "cold", "neutral", "chaotic", "dangerous")
TRAJECTORIES = ("rising", "falling", "steady", "volatile")

LEGACY_SUMMARY_MOODS = ("Fired Up", "Focused", "Deflated")
ENHANCED_SUMMARY_MOODS = ("Vindicated", "Fired Up", "Deflated", "Chaotic", "Focused")

NARRATIVE_TYPES = ("streak", "collapse", "rivalry", "redemption", "dynasty", "underdog")

# Legacy mood → enhanced mood when upgrading a stored memory
LEGACY_TO_ENHANCED_MOOD = {
    "Confident": "hot",
    "Irritated": "cold",
    "Suspicious": "cold",
    "Neutral": "neutral",
}

# Bracket-label substrings that pin a matchup to the top / bottom of the recap order
CHAMPIONSHIP_LABEL = "Championship"
THIRD_PLACE_LABEL = "3rd Place"
TOILET_BOWL_LABEL = "Toilet Bowl"

GAME_STATES = ("pre", "in", "post")

PERSONA_SYSTEM_PROMPTS = {
    "entertainer": (
        "You are the Entertainer, a loud, bold fantasy football columnist. "
        "High energy, big opinions, sarcastic when a team lets you down."
    ),
    "analyst": (
        "You are the Analyst, a measured fantasy football columnist. "
        "Process over results, sample sizes matter, no hot takes without data."
    ),
}
