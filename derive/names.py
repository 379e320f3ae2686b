"""Name resolution: roster id → team display name, player id → player display name."""

import logging

logger = logging.getLogger(__name__)


def _display_name_for_user(user: dict) -> str:
    metadata = user.get("metadata") or {}
    team_name = (metadata.get("team_name") or "").strip()
    return (
        team_name
        or user.get("display_name")
        or user.get("username")
        or f"User {user.get('user_id')}"
    )


class NameIndex:
    """
    Lookup table used by the deriver.
    Unknown ids resolve to synthetic placeholders so downstream formatting never fails.
    """

    def __init__(self, rosters: dict = None, players: dict = None):
        self.rosters = {str(k): v for k, v in (rosters or {}).items()}
        self.players = {str(k): v for k, v in (players or {}).items()}

    def roster_name(self, roster_id) -> str:
        name = self.rosters.get(str(roster_id))
        if name:
            return name
        return f"Roster {roster_id}"

    def player_name(self, player_id) -> str:
        name = self.players.get(str(player_id))
        if name:
            return name
        return f"Player {player_id}"


def build_name_index(users: list, rosters: list, players: dict = None) -> NameIndex:
    """
    Build a NameIndex from upstream user and roster records.

    players may map player id → name, or player id → record with
    full_name / first_name + last_name.
    """
    users_by_id = {}
    for u in users or []:
        try:
            users_by_id[str(u["user_id"])] = _display_name_for_user(u)
        except (KeyError, TypeError, AttributeError) as e:
            logger.warning(f"Skipping malformed user record {u!r}: {e}")

    roster_names = {}
    for r in rosters or []:
        try:
            owner_id = r.get("owner_id")
            roster_names[str(r["roster_id"])] = users_by_id.get(str(owner_id)) or f"Owner {owner_id}"
        except (KeyError, TypeError, AttributeError) as e:
            logger.warning(f"Skipping malformed roster record {r!r}: {e}")

    player_names = {}
    for pid, p in (players or {}).items():
        if isinstance(p, str):
            player_names[str(pid)] = p
        elif isinstance(p, dict):
            full = p.get("full_name") or " ".join(
                x for x in (p.get("first_name"), p.get("last_name")) if x
            )
            if full:
                player_names[str(pid)] = full

    return NameIndex(roster_names, player_names)
