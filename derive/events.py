"""Transaction normalization and relevance scoring (trades, waivers, free-agent adds)."""

import logging
import uuid

from config import RELEVANCE_CONFIG, FAAB_TIERS, FAAB_FLOOR_FEATURE
from derive.models import NormalizedEvent, ScoredEvent
from derive.names import NameIndex
from utils.constants import TRANSACTION_TYPE_MAP
from utils.stats_math import clamp

logger = logging.getLogger(__name__)


def _acting_roster(t: dict):
    roster_ids = t.get("roster_ids") or []
    if roster_ids:
        return roster_ids[0]
    return t.get("roster_id")


def _normalize_one(t: dict, names: NameIndex) -> NormalizedEvent:
    event_type = TRANSACTION_TYPE_MAP[t["type"]]
    event_id = str(t.get("transaction_id") or uuid.uuid4().hex)
    week = int(t["leg"]) if t.get("leg") else None

    if event_type == "trade":
        adds = len(t.get("adds") or {})
        drops = len(t.get("drops") or {})
        picks = len(t.get("draft_picks") or [])
        return NormalizedEvent(
            event_id=event_id,
            type="trade",
            week=week,
            parties=tuple(names.roster_name(rid) for rid in (t.get("roster_ids") or [])),
            assets_moved=adds + drops + picks,
            picks_moved=picks,
        )

    roster_id = _acting_roster(t)
    team = names.roster_name(roster_id) if roster_id is not None else "Unknown"
    if event_type == "waiver":
        return NormalizedEvent(
            event_id=event_id,
            type="waiver",
            week=week,
            team=team,
            faab_spent=float(t.get("waiver_bid") or 0),
        )
    return NormalizedEvent(event_id=event_id, type="fa_add", week=week, team=team)


def normalize_transactions(transactions: list, names: NameIndex = None) -> list[NormalizedEvent]:
    """Map raw transactions to normalized events; malformed or unknown records are skipped."""
    names = names or NameIndex()
    events = []
    for t in transactions or []:
        try:
            if t.get("type") not in TRANSACTION_TYPE_MAP:
                logger.debug(f"Ignoring transaction type {t.get('type')!r}")
                continue
            events.append(_normalize_one(t, names))
        except (KeyError, TypeError, ValueError, AttributeError) as e:
            logger.warning(f"Skipping malformed transaction {t!r}: {e}")
    return events


# ── Scoring ──────────────────────────────────────────────────────────

def _weighted_score(features: dict, weights: dict) -> int:
    """Weighted mean of 0-1 features (each clamped) scaled to 0-100."""
    total_w = sum(weights.values())
    if total_w <= 0:
        return 0
    score01 = sum(clamp(features.get(k, 0.5), 0.0, 1.0) * (w / total_w) for k, w in weights.items())
    return int(round(clamp(score01, 0.0, 1.0) * 100))


def trade_features(assets: int, picks: int) -> dict:
    return {
        "dynasty_role_impact": 0.9 if picks >= 2 else 0.7 if picks == 1 else 0.6 if assets >= 4 else 0.5,
        "positional_scarcity": 0.5,
        "points_impact": 0.8 if assets >= 6 else 0.65 if assets >= 4 else 0.55 if assets >= 2 else 0.45,
        "capital_paid": 0.8 if picks >= 2 else 0.65 if picks == 1 else 0.5,
        "team_need_fit": 0.5,
        "tag_shift_potential": 0.6 if picks >= 1 or assets >= 4 else 0.5,
    }


def score_trade(event: NormalizedEvent, cfg: dict = RELEVANCE_CONFIG) -> tuple[int, list[str]]:
    """
    Score a trade 0-100 from six weighted features.
    Blockbusters (>=6 assets or >=2 picks) are floored; small pick-less swaps are capped.
    """
    tcfg = cfg["trade"]
    assets = int(event.assets_moved or 0)
    picks = int(event.picks_moved or 0)

    score = _weighted_score(trade_features(assets, picks), tcfg["weights"])
    if assets >= 6 or picks >= 2:
        score = max(score, tcfg["blockbuster_floor"])
    if assets <= 2 and picks == 0:
        score = min(score, tcfg["lateral_cap"])
    score = int(clamp(score, 0, 100))

    reasons = []
    if picks >= 2:
        reasons.append("multiple picks involved")
    elif picks == 1:
        reasons.append("future pick involved")
    if assets >= 6:
        reasons.append("many assets moved")
    elif assets >= 4:
        reasons.append("several assets moved")
    else:
        reasons.append("low volume swap")
    return score, reasons


def faab_feature(faab: float) -> float:
    for threshold, value in FAAB_TIERS:
        if faab >= threshold:
            return value
    return FAAB_FLOOR_FEATURE


def score_waiver(event: NormalizedEvent, cfg: dict = RELEVANCE_CONFIG) -> tuple[int, list[str]]:
    """Score a waiver claim from its FAAB tier; unmodeled features sit at a neutral 0.5."""
    faab = float(event.faab_spent or 0)
    features = {
        "faab_spent_vs_value": faab_feature(faab),
        "bid_heat": 0.5,
        "need_fit": 0.5,
        "projection_role": 0.5,
        "timing": 0.5,
    }
    score = _weighted_score(features, cfg["waiver"]["weights"])

    faab_label = f"{faab:g}"
    if faab >= 35:
        reasons = [f"FAAB {faab_label} (aggressive)"]
    elif faab >= 20:
        reasons = [f"FAAB {faab_label} (moderate)"]
    else:
        reasons = [f"FAAB {faab_label} (low)"]
    return score, reasons


def coverage_level(score: float, thresholds: dict = None) -> str:
    thresholds = thresholds or RELEVANCE_CONFIG["thresholds"]
    if score <= thresholds["low_max"]:
        return "low"
    if score <= thresholds["moderate_max"]:
        return "moderate"
    return "high"


def score_event(event: NormalizedEvent, cfg: dict = RELEVANCE_CONFIG) -> ScoredEvent:
    if event.type == "trade":
        score, reasons = score_trade(event, cfg)
    elif event.type == "waiver":
        score, reasons = score_waiver(event, cfg)
    elif event.type == "fa_add":
        score, reasons = int(cfg["fa_add_score"]), ["free agent add"]
    else:
        raise ValueError(f"Unknown event type {event.type!r}")

    return ScoredEvent(
        event_id=event.event_id,
        type=event.type,
        week=event.week,
        relevance_score=score,
        coverage_level=coverage_level(score, cfg["thresholds"]),
        reasons=tuple(reasons),
        parties=event.parties,
        assets_moved=event.assets_moved,
        picks_moved=event.picks_moved,
        team=event.team,
        faab_spent=event.faab_spent,
    )


def score_events(events: list, cfg: dict = RELEVANCE_CONFIG) -> list[ScoredEvent]:
    """Score every normalized event; one bad event never aborts the batch."""
    out = []
    for ev in events:
        try:
            out.append(score_event(ev, cfg))
        except (TypeError, ValueError, KeyError) as e:
            logger.warning(f"Skipping unscorable event {ev!r}: {e}")
    return out
