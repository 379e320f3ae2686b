"""
Weekly persona memory updates.

Each persona (entertainer, analyst) owns one memory per season. A week's
update is decay → result adjustment → event adjustment → mood → trajectory
→ narratives → summary mood, driven only by that week's DerivedData.
"""

import logging
from typing import Optional

from config import (
    BLOWOUT_MARGIN, NAIL_BITER_MARGIN, RESULT_DELTAS,
    WAIVER_TRUST_TIERS, TRADE_ACTIVITY_TRUST,
    MAX_NOTABLE_EVENTS, STREAK_NARRATIVE_LENGTH,
)
from derive.models import DerivedData, MatchupPair
from memory.models import (
    BotMemory, EnhancedBotMemory, EnhancedTeamMemory, LegacyTeamMemory,
    TeamMemory, Narrative, NotableEvent, HotTake, narrative_key, utc_now,
)

logger = logging.getLogger(__name__)


# ── Creation ─────────────────────────────────────────────────────────

def create_fresh_memory(bot: str) -> BotMemory:
    return BotMemory(bot=bot)


def create_enhanced_memory(bot: str, season: int) -> EnhancedBotMemory:
    return EnhancedBotMemory(bot=bot, season=season)


def ensure_teams(mem: BotMemory, team_names) -> None:
    for name in team_names:
        mem.team(name)


# ── Per-step rules ───────────────────────────────────────────────────

def margin_tier(margin: float) -> str:
    if margin >= BLOWOUT_MARGIN:
        return "blowout"
    if margin <= NAIL_BITER_MARGIN:
        return "nail_biter"
    return "normal"


def decay(mem: BotMemory) -> None:
    for t in mem.teams.values():
        t.decay()


def apply_result(winner: TeamMemory, loser: TeamMemory, margin: float) -> str:
    """Apply the margin-tier deltas to both sides. Returns the tier used."""
    tier = margin_tier(margin)
    w_trust, w_frust, l_trust, l_frust = RESULT_DELTAS[tier]
    winner.adjust(w_trust, w_frust)
    loser.adjust(l_trust, l_frust)
    return tier


def apply_events(mem: BotMemory, events) -> None:
    """High-relevance waivers earn the acquiring team trust; every trade party earns a flat bump."""
    for ev in events or []:
        if ev.type == "waiver" and ev.team:
            for threshold, bonus in WAIVER_TRUST_TIERS:
                if ev.relevance_score >= threshold:
                    mem.team(ev.team).adjust(bonus, 0)
                    break
        elif ev.type == "trade":
            for name in ev.parties:
                mem.team(name).adjust(TRADE_ACTIVITY_TRUST, 0)


def legacy_mood(trust: int, frustration: int) -> str:
    delta = trust - frustration
    if frustration >= 12:
        return "Irritated"
    if delta >= 10:
        return "Confident"
    if delta <= -8:
        return "Suspicious"
    return "Neutral"


def enhanced_mood(t: EnhancedTeamMemory) -> str:
    delta = t.trust - t.frustration
    if t.win_streak >= 3:
        return "hot"
    if t.win_streak <= -3:
        return "cold"
    if t.frustration >= 15 and t.trust >= 10:
        return "chaotic"
    if delta >= 15:
        return "dangerous"
    return "neutral"


def trajectory(t: EnhancedTeamMemory) -> str:
    if t.season_stats.games < 3:
        return "steady"
    if t.win_streak >= 2:
        return "rising"
    if t.win_streak <= -2:
        return "falling"
    recent = t.notable_events[-3:]
    sentiments = {e.sentiment for e in recent}
    if "positive" in sentiments and "negative" in sentiments:
        return "volatile"
    return "steady"


# ── Summary moods ────────────────────────────────────────────────────

def legacy_summary_mood(mem: BotMemory) -> str:
    deltas = [t.trust - t.frustration for t in mem.teams.values()]
    avg = sum(deltas) / len(deltas) if deltas else 0
    if avg > 5:
        return "Fired Up"
    if avg < -5:
        return "Deflated"
    return "Focused"


def enhanced_summary_mood(mem: EnhancedBotMemory) -> str:
    stats = mem.prediction_stats
    if stats.hot_streak >= 5 or stats.win_rate >= 0.7:
        return "Vindicated"

    teams = [t.as_enhanced() for t in mem.teams.values()]
    teams = [t for t in teams if t is not None]
    if not teams:
        return "Focused"

    avg_trust = sum(t.trust for t in teams) / len(teams)
    avg_frustration = sum(t.frustration for t in teams) / len(teams)
    hot = sum(1 for t in teams if t.mood in ("hot", "dangerous"))
    cold = sum(1 for t in teams if t.mood == "cold")
    volatile = sum(1 for t in teams if t.trajectory == "volatile")

    if hot >= 3 or avg_trust > 10:
        return "Fired Up"
    if cold >= 3 or avg_frustration > 15:
        return "Deflated"
    if volatile >= 3:
        return "Chaotic"
    return "Focused"


# ── Narratives ───────────────────────────────────────────────────────

def find_open_narrative(mem: EnhancedBotMemory, narrative_type: str, team: str) -> Optional[Narrative]:
    for n in mem.narratives:
        if n.type == narrative_type and team in n.teams and not n.resolved:
            return n
    return None


def add_narrative(mem: EnhancedBotMemory, narrative_type: str, teams: list, title: str,
                  description: str, started_week: int, week: int) -> Narrative:
    """Create a narrative unless an unresolved one with the same identity key exists."""
    key = narrative_key(narrative_type, teams, started_week)
    for n in mem.narratives:
        if n.id == key and not n.resolved:
            n.description = description
            n.last_updated = week
            return n
    narrative = Narrative(
        type=narrative_type,
        teams=list(teams),
        title=title,
        description=description,
        started_week=started_week,
        last_updated=week,
    )
    mem.narratives.append(narrative)
    logger.info(f"[{mem.bot}] New narrative: {narrative.title}")
    return narrative


def resolve_narrative(mem: EnhancedBotMemory, narrative_id: str, resolution: str) -> bool:
    for n in mem.narratives:
        if n.id == narrative_id and not n.resolved:
            n.resolved = True
            n.resolution = resolution
            return True
    return False


def active_narratives(mem: EnhancedBotMemory) -> list[Narrative]:
    return [n for n in mem.narratives if not n.resolved]


def _track_streak_narratives(mem: EnhancedBotMemory, name: str, t: EnhancedTeamMemory,
                             opponent: str, week: int) -> None:
    streak = t.win_streak

    if streak >= STREAK_NARRATIVE_LENGTH:
        existing = find_open_narrative(mem, "streak", name)
        if existing:
            existing.description = f"{name} extends their streak to {streak} games"
            existing.last_updated = week
        else:
            add_narrative(
                mem, "streak", [name],
                title=f"{name}'s Hot Streak",
                description=f"{name} is on a {streak}-game winning streak",
                started_week=week - streak + 1,
                week=week,
            )
    elif streak <= -STREAK_NARRATIVE_LENGTH:
        existing = find_open_narrative(mem, "collapse", name)
        if existing:
            existing.description = f"{name} extends their losing streak to {abs(streak)} games"
            existing.last_updated = week
        else:
            add_narrative(
                mem, "collapse", [name],
                title=f"{name} in Freefall",
                description=f"{name} has lost {abs(streak)} straight",
                started_week=week + streak + 1,
                week=week,
            )
    elif streak == 1:
        collapse = find_open_narrative(mem, "collapse", name)
        if collapse:
            collapse.resolved = True
            collapse.resolution = f"{name} snapped their losing streak with a win over {opponent}"
            collapse.last_updated = week
    elif streak == -1:
        hot = find_open_narrative(mem, "streak", name)
        if hot:
            hot.resolved = True
            hot.resolution = f"{name}'s streak ended with a loss to {opponent}"
            hot.last_updated = week


# ── Hot takes ────────────────────────────────────────────────────────

def record_hot_take(mem: EnhancedBotMemory, week: int, take: str, subject: str = None) -> HotTake:
    hot_take = HotTake(week=week, take=take, subject=subject)
    mem.hot_takes.append(hot_take)
    return hot_take


def grade_hot_take(mem: EnhancedBotMemory, week: int, aged_well: bool, follow_up: str) -> bool:
    """Grade the first ungraded hot take from the given week."""
    for take in mem.hot_takes:
        if take.week == week and take.aged_well is None:
            take.aged_well = aged_well
            take.follow_up = follow_up
            return True
    return False


# ── Weekly updates ───────────────────────────────────────────────────

def update_memory_after_week(mem: BotMemory, derived: DerivedData) -> BotMemory:
    """Legacy update: decay, results, events, moods, summary mood."""
    decay(mem)

    for p in derived.matchup_pairs:
        if p.winner.name == p.loser.name:
            continue
        apply_result(mem.team(p.winner.name), mem.team(p.loser.name), p.margin)

    apply_events(mem, derived.events_scored)

    for t in mem.teams.values():
        if isinstance(t, LegacyTeamMemory):
            t.mood = legacy_mood(t.trust, t.frustration)

    mem.summary_mood = legacy_summary_mood(mem)
    mem.updated_at = utc_now()
    return mem


def _record_game(w: EnhancedTeamMemory, l: EnhancedTeamMemory, p: MatchupPair, week: int) -> None:
    w.win_streak = w.win_streak + 1 if w.win_streak >= 0 else 1
    l.win_streak = l.win_streak - 1 if l.win_streak <= 0 else -1

    w.season_stats.wins += 1
    w.season_stats.points_for += p.winner.points
    w.season_stats.points_against += p.loser.points
    l.season_stats.losses += 1
    l.season_stats.points_for += p.loser.points
    l.season_stats.points_against += p.winner.points

    tier = apply_result(w, l, p.margin)
    if tier == "blowout":
        w.notable_events.append(NotableEvent(week, f"Dominated {p.loser.name} by {p.margin:.1f}", "positive"))
        l.notable_events.append(NotableEvent(week, f"Got destroyed by {p.winner.name} by {p.margin:.1f}", "negative"))
    elif tier == "nail_biter":
        w.notable_events.append(NotableEvent(week, f"Clutch win over {p.loser.name} by {p.margin:.1f}", "positive"))
        l.notable_events.append(NotableEvent(week, f"Heartbreaker loss to {p.winner.name} by {p.margin:.1f}", "negative"))

    for t in (w, l):
        if len(t.notable_events) > MAX_NOTABLE_EVENTS:
            del t.notable_events[:-MAX_NOTABLE_EVENTS]


def update_enhanced_memory_after_week(mem: EnhancedBotMemory, derived: DerivedData,
                                      week: int) -> EnhancedBotMemory:
    """Enhanced update: the legacy steps plus streaks, season stats, trajectories and narratives."""
    decay(mem)

    played = []
    for p in derived.matchup_pairs:
        if p.winner.name == p.loser.name:
            continue
        w = mem.team(p.winner.name).as_enhanced()
        l = mem.team(p.loser.name).as_enhanced()
        if w is None or l is None:
            logger.warning(f"[{mem.bot}] Legacy team record in enhanced memory, skipping {p.matchup_id}")
            continue
        _record_game(w, l, p, week)
        played.append((p.winner.name, w, p.loser.name))
        played.append((p.loser.name, l, p.winner.name))

    apply_events(mem, derived.events_scored)

    for t in mem.teams.values():
        et = t.as_enhanced()
        if et is None:
            continue
        et.mood = enhanced_mood(et)
        et.trajectory = trajectory(et)

    for name, t, opponent in played:
        _track_streak_narratives(mem, name, t, opponent, week)

    mem.summary_mood = enhanced_summary_mood(mem)
    mem.last_generated_week = week
    mem.updated_at = utc_now()
    logger.info(
        f"[{mem.bot}] Week {week} memory updated: {len(mem.teams)} teams, "
        f"{len(active_narratives(mem))} open narratives, mood={mem.summary_mood}"
    )
    return mem


# ── Getters ──────────────────────────────────────────────────────────

def get_team_mood(mem: BotMemory, team_name: str) -> str:
    t = mem.teams.get(team_name)
    if t is None:
        return "neutral" if mem.as_enhanced() is not None else "Neutral"
    return t.mood


def get_team_trust(mem: BotMemory, team_name: str) -> int:
    t = mem.teams.get(team_name)
    return t.trust if t is not None else 0


def get_team_frustration(mem: BotMemory, team_name: str) -> int:
    t = mem.teams.get(team_name)
    return t.frustration if t is not None else 0
