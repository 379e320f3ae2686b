"""Group raw per-roster weekly scores into matchup pairs and upcoming pairs."""

import logging
from collections import defaultdict
from typing import Optional

from config import BRACKET_LABELS, TOP_PLAYERS_PER_SIDE
from derive.models import TeamScore, MatchupPair, UpcomingPair
from derive.names import NameIndex
from utils.constants import CHAMPIONSHIP_LABEL, THIRD_PLACE_LABEL, TOILET_BOWL_LABEL

logger = logging.getLogger(__name__)

UNKNOWN_SLOT = "unknown"


def _slot_key(raw_id):
    return UNKNOWN_SLOT if raw_id is None else raw_id


def bracket_label_for(matchup_id, week: Optional[int],
                      playoff_start_week: Optional[int]) -> Optional[str]:
    """Look up the playoff bracket label for a slot; None outside the playoff window."""
    if week is None or playoff_start_week is None or week < playoff_start_week:
        return None
    playoff_round = week - playoff_start_week + 1
    try:
        slot = int(matchup_id)
    except (TypeError, ValueError):
        return None
    return BRACKET_LABELS.get((playoff_round, slot))


def _display_rank(pair: MatchupPair) -> int:
    label = pair.bracket_label or ""
    if CHAMPIONSHIP_LABEL in label:
        return 0
    if THIRD_PLACE_LABEL in label:
        return 1
    if TOILET_BOWL_LABEL in label:
        return 3
    return 2


def _top_players(players_points: dict, names: NameIndex, n: int) -> tuple:
    if not players_points:
        return ()
    ranked = sorted(
        ((pid, float(pts)) for pid, pts in players_points.items() if pts is not None),
        key=lambda x: x[1],
        reverse=True,
    )
    return tuple((names.player_name(pid), pts) for pid, pts in ranked[:n])


def build_matchup_pairs(raw_scores: list, names: NameIndex = None,
                        week: Optional[int] = None,
                        playoff_start_week: Optional[int] = None,
                        top_n: int = TOP_PLAYERS_PER_SIDE) -> list[MatchupPair]:
    """
    Group raw score rows by schedule slot and derive winner, loser and margin.

    Output order: Championship, 3rd Place, everything else by descending
    margin, Toilet Bowl last.
    """
    names = names or NameIndex()
    groups = defaultdict(list)

    for row in raw_scores or []:
        try:
            roster_id = row["roster_id"]
            points = float(row.get("points") or 0)
            entry = TeamScore(
                name=names.roster_name(roster_id),
                points=points,
                top_players=_top_players(row.get("players_points") or {}, names, top_n),
            )
        except (KeyError, TypeError, ValueError, AttributeError) as e:
            logger.warning(f"Skipping malformed score row {row!r}: {e}")
            continue
        groups[_slot_key(row.get("matchup_id"))].append(entry)

    pairs = []
    for mid, entries in groups.items():
        if not entries:
            continue
        ranked = sorted(entries, key=lambda e: e.points, reverse=True)
        winner, loser = ranked[0], ranked[-1]
        pairs.append(MatchupPair(
            matchup_id=mid,
            teams=tuple(entries),
            winner=winner,
            loser=loser,
            margin=round(max(0.0, winner.points - loser.points), 2),
            bracket_label=bracket_label_for(mid, week, playoff_start_week),
        ))

    pairs.sort(key=lambda p: p.margin, reverse=True)
    pairs.sort(key=_display_rank)
    return pairs


def build_upcoming_pairs(next_matchups: list, names: NameIndex = None) -> list[UpcomingPair]:
    """Pair next week's rosters by slot; slots with fewer than two teams are dropped."""
    names = names or NameIndex()
    groups = defaultdict(list)

    for row in next_matchups or []:
        try:
            groups[_slot_key(row.get("matchup_id"))].append(names.roster_name(row["roster_id"]))
        except (KeyError, TypeError, AttributeError) as e:
            logger.warning(f"Skipping malformed upcoming row {row!r}: {e}")

    return [
        UpcomingPair(matchup_id=mid, teams=(teams[0], teams[1]))
        for mid, teams in groups.items()
        if len(teams) >= 2
    ]
