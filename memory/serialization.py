"""JSON serialization of persona memory and the legacy → enhanced upgrade."""

import json
import logging

from memory.models import (
    BotMemory, EnhancedBotMemory, EnhancedTeamMemory, LegacyTeamMemory,
    Narrative, PredictionRecord, PredictionStats, HotTake,
    team_memory_from_dict, utc_now,
)
from utils.constants import LEGACY_TO_ENHANCED_MOOD

logger = logging.getLogger(__name__)


def serialize_memory(mem: BotMemory) -> str:
    return json.dumps(mem.to_dict())


def memory_from_dict(d: dict) -> BotMemory:
    teams = {name: team_memory_from_dict(t) for name, t in (d.get("teams") or {}).items()}

    if d.get("kind") != "enhanced":
        return BotMemory(
            bot=d["bot"],
            summary_mood=d.get("summary_mood", "Focused"),
            teams=teams,
            updated_at=d.get("updated_at") or utc_now(),
        )

    return EnhancedBotMemory(
        bot=d["bot"],
        summary_mood=d.get("summary_mood", "Focused"),
        teams=teams,
        updated_at=d.get("updated_at") or utc_now(),
        season=d.get("season", 0),
        last_generated_week=d.get("last_generated_week", 0),
        narratives=[Narrative(**n) for n in d.get("narratives", [])],
        predictions=[PredictionRecord(**p) for p in d.get("predictions", [])],
        prediction_stats=PredictionStats(**(d.get("prediction_stats") or {})),
        hot_takes=[HotTake(**h) for h in d.get("hot_takes", [])],
        legacy_teams={
            name: LegacyTeamMemory.from_dict(t)
            for name, t in (d.get("legacy_teams") or {}).items()
        },
    )


def deserialize_memory(blob) -> BotMemory:
    """Rebuild a BotMemory or EnhancedBotMemory from a serialized blob (str or bytes)."""
    if isinstance(blob, bytes):
        blob = blob.decode("utf-8")
    return memory_from_dict(json.loads(blob))


def upgrade_to_enhanced(legacy: BotMemory, season: int) -> EnhancedBotMemory:
    """
    Convert a legacy memory into an enhanced one.
    Trust and frustration carry over; streaks and stats start fresh.
    An already-enhanced memory is returned unchanged.
    """
    enhanced = legacy.as_enhanced()
    if enhanced is not None:
        return enhanced

    upgraded = EnhancedBotMemory(bot=legacy.bot, season=season, summary_mood=legacy.summary_mood)
    for name, team in legacy.teams.items():
        upgraded.teams[name] = EnhancedTeamMemory(
            trust=team.trust,
            frustration=team.frustration,
            mood=LEGACY_TO_ENHANCED_MOOD.get(getattr(team, "mood", "Neutral"), "neutral"),
        )
        upgraded.legacy_teams[name] = LegacyTeamMemory(
            trust=team.trust, frustration=team.frustration, mood=getattr(team, "mood", "Neutral")
        )
    logger.info(f"Upgraded {legacy.bot} memory to enhanced ({len(upgraded.teams)} teams)")
    return upgraded
