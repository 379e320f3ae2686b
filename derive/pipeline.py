"""Build one week's derived data from raw upstream league records."""

import logging
from typing import Optional

from config import PLAYOFF_START_WEEK
from derive.events import normalize_transactions, score_events
from derive.matchups import build_matchup_pairs, build_upcoming_pairs
from derive.models import DerivedData
from derive.names import build_name_index

logger = logging.getLogger(__name__)


def build_derived(users: list, rosters: list, matchups: list,
                  next_matchups: list = None, transactions: list = None,
                  week: Optional[int] = None,
                  playoff_start_week: int = PLAYOFF_START_WEEK,
                  players: dict = None) -> DerivedData:
    """Resolve names, then derive matchup pairs, upcoming pairs and scored events."""
    names = build_name_index(users, rosters, players)

    matchup_pairs = build_matchup_pairs(
        matchups, names, week=week, playoff_start_week=playoff_start_week
    )
    upcoming_pairs = build_upcoming_pairs(next_matchups, names)
    events_scored = score_events(normalize_transactions(transactions, names))

    logger.info(
        f"Derived week {week}: {len(matchup_pairs)} matchups, "
        f"{len(upcoming_pairs)} upcoming, {len(events_scored)} events"
    )
    return DerivedData(
        matchup_pairs=matchup_pairs,
        upcoming_pairs=upcoming_pairs,
        events_scored=events_scored,
    )
