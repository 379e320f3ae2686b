"""
Live win probability for a fantasy matchup by Monte Carlo simulation.

Each starter's remaining points are drawn from a normal distribution whose
mean and sd come from a shrinkage blend of the player's baseline with a
positional default, scaled by how much of their NFL game is left and by
the live game context. Samples are floored at zero and added to each
side's current score; ties split the win.
"""

import math
import logging
from dataclasses import dataclass, asdict
from typing import Optional

import numpy as np
from scipy.stats import norm

from config import SIM_TRIALS, WILSON_Z, SHRINKAGE_FULL_GAMES, RECENCY_WEIGHT
from simulation.baselines import PlayerBaseline, position_defaults
from simulation.calibration import CalibrationTable
from simulation.game_state import TeamGameState, fraction_remaining, context_multiplier
from utils.stats_math import shrinkage_weight, shrink_toward, wilson_interval, clamp

logger = logging.getLogger(__name__)

MIN_FULL_SD = 0.1
MIN_REMAINING_SD = 0.05


@dataclass(frozen=True)
class StarterSlot:
    player_id: str
    position: Optional[str] = None
    nfl_team: Optional[str] = None
    points: float = 0.0

    @classmethod
    def from_dict(cls, d: dict) -> "StarterSlot":
        return cls(
            player_id=str(d.get("player_id") or d.get("id")),
            position=d.get("position") or d.get("pos"),
            nfl_team=d.get("nfl_team") or d.get("team"),
            points=float(d.get("points") or d.get("pts") or 0.0),
        )


@dataclass(frozen=True)
class PlayerParams:
    mean: float
    sd: float
    fraction_remaining: float


@dataclass
class WinProbabilityResult:
    left: float
    right: float
    ci: tuple
    raw_left: float
    raw_ci: tuple
    left_median: float
    right_median: float
    left_range: tuple  # (p10, p90)
    right_range: tuple
    trials: int
    fraction_remaining: float
    calibrated: bool = False

    def to_dict(self) -> dict:
        return asdict(self)


# ── Per-player parameters ────────────────────────────────────────────

def recency_mean(baseline: PlayerBaseline) -> float:
    """Last-3 average blended with the season mean when available, else the decayed mean, else the mean."""
    if baseline.last3_avg and baseline.last3_avg > 0:
        return RECENCY_WEIGHT * baseline.last3_avg + (1 - RECENCY_WEIGHT) * baseline.mean
    if baseline.decayed_mean is not None:
        return baseline.decayed_mean
    return baseline.mean


def player_params(slot: StarterSlot, baseline: Optional[PlayerBaseline],
                  gs: Optional[TeamGameState], is_past_week: bool = False) -> PlayerParams:
    pos_mean, pos_sd = position_defaults(slot.position)
    if baseline is None:
        baseline = PlayerBaseline(mean=pos_mean, stddev=pos_sd, games=0)

    alpha = shrinkage_weight(baseline.games, SHRINKAGE_FULL_GAMES)
    full_mean = shrink_toward(recency_mean(baseline), pos_mean, alpha)
    full_sd = max(MIN_FULL_SD, shrink_toward(baseline.stddev, pos_sd, alpha))

    frac = fraction_remaining(gs, is_past_week)
    if frac <= 0:
        return PlayerParams(mean=0.0, sd=0.0, fraction_remaining=0.0)

    mean_mul, sd_mul = context_multiplier(slot.position, gs)
    return PlayerParams(
        mean=full_mean * frac * mean_mul,
        sd=max(MIN_REMAINING_SD, full_sd * math.sqrt(clamp(frac, 0.0, 1.0)) * sd_mul),
        fraction_remaining=frac,
    )


def side_params(starters, baselines: dict, game_states: dict, is_past_week: bool) -> list[PlayerParams]:
    return [
        player_params(s, baselines.get(s.player_id), game_states.get(s.nfl_team) if s.nfl_team else None,
                      is_past_week)
        for s in starters
    ]


# ── Sampling ─────────────────────────────────────────────────────────

def sample_remaining(params: list[PlayerParams], trials: int, rng: np.random.Generator) -> np.ndarray:
    """Box–Muller draws per (trial, player), floored at zero and summed per trial."""
    if not params:
        return np.zeros(trials)
    means = np.array([p.mean for p in params])
    sds = np.array([p.sd for p in params])
    u = 1.0 - rng.random((trials, len(params)))
    v = 1.0 - rng.random((trials, len(params)))
    z = np.sqrt(-2.0 * np.log(u)) * np.cos(2.0 * np.pi * v)
    return np.maximum(0.0, means + sds * z).sum(axis=1)


def closed_form_probability(left_total: float, right_total: float,
                            left_params: list[PlayerParams], right_params: list[PlayerParams]) -> float:
    """Normal approximation of P(left > right) ignoring the zero floor."""
    diff = (left_total + sum(p.mean for p in left_params)) - (right_total + sum(p.mean for p in right_params))
    var = sum(p.sd ** 2 for p in left_params) + sum(p.sd ** 2 for p in right_params)
    if var <= 0:
        return 1.0 if diff > 0 else 0.0 if diff < 0 else 0.5
    return float(norm.cdf(diff / math.sqrt(var)))


def average_fraction_remaining(starters, game_states: dict, is_past_week: bool) -> float:
    """Mean fraction remaining over the distinct NFL teams fielding a starter (1.0 when none)."""
    teams = {s.nfl_team for s in starters if s.nfl_team}
    if not teams:
        return 1.0
    fracs = [fraction_remaining(game_states.get(t), is_past_week) for t in teams]
    return clamp(sum(fracs) / len(fracs), 0.0, 1.0)


def simulate_matchup(left_starters, right_starters, baselines: dict = None, game_states: dict = None,
                     left_total: float = None, right_total: float = None, is_past_week: bool = False,
                     calibration: Optional[CalibrationTable] = None, trials: int = SIM_TRIALS,
                     rng: Optional[np.random.Generator] = None) -> WinProbabilityResult:
    """
    Simulate the rest of a matchup and return the left side's win probability.

    baselines maps player id → PlayerBaseline; game_states maps NFL team →
    TeamGameState. Current totals default to the sum of starter points.
    Pass a seeded numpy Generator as rng for reproducible draws.
    """
    baselines = baselines or {}
    game_states = game_states or {}
    rng = rng if rng is not None else np.random.default_rng()

    left_total = sum(s.points for s in left_starters) if left_total is None else left_total
    right_total = sum(s.points for s in right_starters) if right_total is None else right_total

    left_params = side_params(left_starters, baselines, game_states, is_past_week)
    right_params = side_params(right_starters, baselines, game_states, is_past_week)

    left_totals = left_total + sample_remaining(left_params, trials, rng)
    right_totals = right_total + sample_remaining(right_params, trials, rng)

    wins = np.sum(left_totals > right_totals) + 0.5 * np.sum(left_totals == right_totals)
    raw_p = float(wins) / trials
    raw_ci = wilson_interval(raw_p, trials, WILSON_Z)

    frac = average_fraction_remaining(list(left_starters) + list(right_starters), game_states, is_past_week)
    p, ci = raw_p, raw_ci
    if calibration is not None and calibration.buckets:
        p = calibration.apply(raw_p, frac)
        ci = wilson_interval(p, trials, WILSON_Z)

    def q(arr, level):
        return float(np.quantile(arr, level, method="lower"))

    result = WinProbabilityResult(
        left=p,
        right=1.0 - p,
        ci=ci,
        raw_left=raw_p,
        raw_ci=raw_ci,
        left_median=q(left_totals, 0.5),
        right_median=q(right_totals, 0.5),
        left_range=(q(left_totals, 0.1), q(left_totals, 0.9)),
        right_range=(q(right_totals, 0.1), q(right_totals, 0.9)),
        trials=trials,
        fraction_remaining=frac,
        calibrated=calibration is not None and bool(calibration.buckets),
    )
    logger.debug(f"Simulated {trials} trials: left {p:.3f} (raw {raw_p:.3f}), frac {frac:.2f}")
    return result


def simulate_request(request: dict, calibration: Optional[CalibrationTable] = None,
                     rng: Optional[np.random.Generator] = None) -> WinProbabilityResult:
    """
    Run simulate_matchup from a plain dict:
        {"left": {"starters": [...], "total": 88.4}, "right": {...},
         "baselines": {player_id: {...}}, "game_states": {nfl_team: {...}},
         "is_past_week": false, "trials": 1500}
    """
    left = request.get("left") or {}
    right = request.get("right") or {}
    return simulate_matchup(
        [StarterSlot.from_dict(s) for s in left.get("starters") or []],
        [StarterSlot.from_dict(s) for s in right.get("starters") or []],
        baselines={pid: PlayerBaseline.from_dict(b) for pid, b in (request.get("baselines") or {}).items()},
        game_states={team: TeamGameState.from_dict(g) for team, g in (request.get("game_states") or {}).items()},
        left_total=left.get("total"),
        right_total=right.get("total"),
        is_past_week=bool(request.get("is_past_week", False)),
        calibration=calibration,
        trials=int(request.get("trials") or SIM_TRIALS),
        rng=rng,
    )
