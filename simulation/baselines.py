"""Per-player scoring baselines and positional defaults."""

from dataclasses import dataclass, asdict
from typing import Optional

import numpy as np

from config import (
    BASELINE_DECAY, POS_DEFAULT_MEAN, POS_DEFAULT_SD, FALLBACK_POS_MEAN, FALLBACK_POS_SD,
)
from utils.stats_math import sample_stddev, exponential_decay_mean


@dataclass(frozen=True)
class PlayerBaseline:
    mean: float
    stddev: float
    games: int
    last3_avg: float = 0.0
    decayed_mean: Optional[float] = None

    def to_dict(self) -> dict:
        return asdict(self)

    @classmethod
    def from_dict(cls, d: dict) -> "PlayerBaseline":
        return cls(
            mean=float(d.get("mean", 0.0)),
            stddev=float(d.get("stddev", 0.0)),
            games=int(d.get("games", 0)),
            last3_avg=float(d.get("last3_avg", d.get("last3Avg", 0.0)) or 0.0),
            decayed_mean=d.get("decayed_mean"),
        )


def position_defaults(position: Optional[str]) -> tuple[float, float]:
    pos = (position or "").upper()
    return POS_DEFAULT_MEAN.get(pos, FALLBACK_POS_MEAN), POS_DEFAULT_SD.get(pos, FALLBACK_POS_SD)


def compute_player_baseline(points_by_week, decay: float = BASELINE_DECAY) -> PlayerBaseline:
    """
    Season-to-date baseline from a player's weekly points, oldest first.
    Weeks with no game (None / NaN) are dropped.
    """
    pts = np.asarray([p for p in points_by_week if p is not None], dtype=float)
    pts = pts[~np.isnan(pts)]
    if pts.size == 0:
        return PlayerBaseline(mean=0.0, stddev=0.0, games=0)
    return PlayerBaseline(
        mean=float(pts.mean()),
        stddev=sample_stddev(pts),
        games=int(pts.size),
        last3_avg=float(pts[-3:].mean()),
        decayed_mean=exponential_decay_mean(pts, decay),
    )
