"""Statistical utility functions: clamping, shrinkage weights, logit/sigmoid, Wilson intervals."""

import math

import numpy as np

PROB_EPS = 1e-6


def clamp(value: float, low: float, high: float) -> float:
    """Clamp value into [low, high]."""
    return max(low, min(high, value))


def clamp_probability(p: float) -> float:
    """Keep a probability strictly inside (0, 1) so logit stays finite."""
    return clamp(p, PROB_EPS, 1 - PROB_EPS)


def logit(p: float) -> float:
    pp = clamp_probability(p)
    return math.log(pp / (1 - pp))


def sigmoid(z: float) -> float:
    if z >= 0:
        return 1.0 / (1.0 + math.exp(-z))
    ez = math.exp(z)
    return ez / (1.0 + ez)


def shrinkage_weight(sample_size: float, full_weight_at: float) -> float:
    """
    Linear shrinkage weight in [0, 1].
    0 games trusts the prior entirely; full_weight_at games trusts the sample entirely.
    """
    if full_weight_at <= 0:
        return 1.0
    return clamp(sample_size / full_weight_at, 0.0, 1.0)


def shrink_toward(raw_value: float, prior_value: float, alpha: float) -> float:
    """Blend raw_value with prior_value using weight alpha on the raw value."""
    return alpha * raw_value + (1 - alpha) * prior_value


def wilson_interval(p_hat: float, n: int, z: float = 1.96) -> tuple[float, float]:
    """
    Wilson score interval for a binomial proportion.
    Stays inside [0, 1] even when p_hat sits at 0 or 1.
    """
    if n <= 0:
        return 0.0, 1.0
    p_hat = clamp(p_hat, 0.0, 1.0)
    z2 = z * z
    denom = 1 + z2 / n
    center = p_hat + z2 / (2 * n)
    margin = z * math.sqrt((p_hat * (1 - p_hat) + z2 / (4 * n)) / n)
    lower = max(0.0, (center - margin) / denom)
    upper = min(1.0, (center + margin) / denom)
    # Float rounding can push a bound a hair past p_hat at the extremes
    return min(lower, p_hat), max(upper, p_hat)


def sample_stddev(values) -> float:
    """Sample standard deviation (n-1); 0 for fewer than two values."""
    values = np.asarray(values, dtype=float)
    if values.size <= 1:
        return 0.0
    return float(values.std(ddof=1))


def exponential_decay_mean(values, decay: float) -> float:
    """Mean weighted by decay**age, with the last value weighted highest."""
    values = np.asarray(values, dtype=float)
    if values.size == 0:
        return 0.0
    ages = np.arange(values.size - 1, -1, -1, dtype=float)
    weights = decay ** ages
    return float(np.average(values, weights=weights))
