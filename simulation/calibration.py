"""
Platt-scaling calibration of simulated win probabilities.

Historical final scores are replayed at fixed snapshots of the game
(fraction remaining t): the completed share of each final score is taken
as the current score, positional means fill in the rest, and a normal
proxy gives the raw probability. One logistic fit per fraction-remaining
bucket maps logit(raw) onto the observed outcome.
"""

import json
import math
import logging
from datetime import datetime, timezone
from dataclasses import dataclass, field, asdict

import numpy as np
from scipy.stats import norm
from sklearn.linear_model import LogisticRegression

from config import CALIBRATION_BUCKETS, CALIBRATION_SNAPSHOTS, CALIBRATION_MIN_SAMPLES
from simulation.baselines import position_defaults
from utils.stats_math import clamp_probability, logit, sigmoid

logger = logging.getLogger(__name__)


@dataclass
class CalibrationBucket:
    lo: float
    hi: float
    slope: float = 1.0
    intercept: float = 0.0
    n: int = 0

    def contains(self, frac: float) -> bool:
        return self.lo <= frac < self.hi


@dataclass
class CalibrationTable:
    buckets: list = field(default_factory=list)
    trained_at: str = ""

    def bucket_for(self, frac: float) -> CalibrationBucket:
        for b in self.buckets:
            if b.contains(frac):
                return b
        return self.buckets[0]

    def apply(self, raw_p: float, frac: float) -> float:
        b = self.bucket_for(frac)
        return clamp_probability(sigmoid(b.slope * logit(raw_p) + b.intercept))

    def to_json(self) -> str:
        return json.dumps(asdict(self))

    @classmethod
    def from_json(cls, blob) -> "CalibrationTable":
        if isinstance(blob, bytes):
            blob = blob.decode("utf-8")
        d = json.loads(blob)
        return cls(
            buckets=[CalibrationBucket(**b) for b in d.get("buckets", [])],
            trained_at=d.get("trained_at", ""),
        )

    @classmethod
    def identity(cls) -> "CalibrationTable":
        return cls(buckets=[CalibrationBucket(lo, hi) for lo, hi in CALIBRATION_BUCKETS])


# ── Training data ────────────────────────────────────────────────────

def positional_totals(positions) -> tuple[float, float]:
    """Sum of positional default means and variances for a starting lineup."""
    mean, var = 0.0, 0.0
    for pos in positions or []:
        mu, sd = position_defaults(pos)
        mean += mu
        var += sd * sd
    return mean, var


def history_from_matchups(weeks, players: dict = None) -> list[dict]:
    """
    Turn raw weekly matchup rows ({matchup_id, points, starters}) into
    history records. players maps player id → {"position": ...}.
    Slots with fewer than two rosters, or 0-0 results, are dropped.
    """
    players = players or {}
    history = []
    for rows in weeks or []:
        by_slot = {}
        for r in rows or []:
            if r.get("matchup_id") is None:
                continue
            by_slot.setdefault(r["matchup_id"], []).append(r)
        for entries in by_slot.values():
            if len(entries) < 2:
                continue
            sides = []
            for e in entries[:2]:
                starters = [pid for pid in (e.get("starters") or []) if pid and pid != "0"]
                sides.append({
                    "points": float(e.get("custom_points") or e.get("points") or 0.0),
                    "positions": [(players.get(pid) or {}).get("position") for pid in starters],
                })
            if sides[0]["points"] == 0 and sides[1]["points"] == 0:
                continue
            history.append({"teams": sides})
    return history


def snapshot_rows(history) -> dict:
    """Bucket index → list of (z, y) where z = logit(raw p) and y is the final outcome."""
    rows = {i: [] for i in range(len(CALIBRATION_BUCKETS))}
    for rec in history:
        try:
            a, b = rec["teams"][0], rec["teams"][1]
            a_final, b_final = float(a["points"]), float(b["points"])
        except (KeyError, IndexError, TypeError, ValueError) as e:
            logger.warning(f"Skipping malformed history record: {e}")
            continue
        if not (math.isfinite(a_final) and math.isfinite(b_final)):
            continue

        y = 1.0 if a_final > b_final else 0.0 if a_final < b_final else 0.5
        a_mean, a_var = positional_totals(a.get("positions"))
        b_mean, b_var = positional_totals(b.get("positions"))

        for t in CALIBRATION_SNAPSHOTS:
            done = 1 - t
            diff = (a_final * done + a_mean * t) - (b_final * done + b_mean * t)
            k = math.sqrt(max(1.0, (a_var + b_var) * max(0.05, t)))
            z = logit(float(norm.cdf(diff / k)))
            for i, (lo, hi) in enumerate(CALIBRATION_BUCKETS):
                if lo <= t < hi:
                    rows[i].append((z, y))
                    break
    return rows


def fit_bucket(samples) -> tuple[float, float]:
    """
    Logistic fit of outcome on logit(raw p). Ties enter as half a win and
    half a loss. Returns (slope, intercept); identity when the outcomes are
    all one class.
    """
    z, y, w = [], [], []
    for zi, yi in samples:
        if yi == 0.5:
            z += [zi, zi]
            y += [1, 0]
            w += [0.5, 0.5]
        else:
            z.append(zi)
            y.append(int(yi))
            w.append(1.0)
    if len(set(y)) < 2:
        return 1.0, 0.0
    model = LogisticRegression(C=1e4, max_iter=1000)
    model.fit(np.asarray(z).reshape(-1, 1), np.asarray(y), sample_weight=np.asarray(w))
    return float(model.coef_[0][0]), float(model.intercept_[0])


def train_calibration_table(history) -> CalibrationTable:
    rows = snapshot_rows(history)
    buckets = []
    for i, (lo, hi) in enumerate(CALIBRATION_BUCKETS):
        samples = rows[i]
        if len(samples) >= CALIBRATION_MIN_SAMPLES:
            slope, intercept = fit_bucket(samples)
        else:
            slope, intercept = 1.0, 0.0
        buckets.append(CalibrationBucket(lo, hi, slope, intercept, len(samples)))
        logger.info(f"Bucket [{lo:.1f}, {hi:.2f}): n={len(samples)} slope={slope:.3f} intercept={intercept:.3f}")
    return CalibrationTable(buckets=buckets, trained_at=datetime.now(timezone.utc).isoformat())
