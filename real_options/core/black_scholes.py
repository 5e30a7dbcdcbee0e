"""
Closed-form Black-Scholes-Merton prices used as a lattice benchmark.

Without a dividend yield an American call is never exercised early, so
the Defer lattice must converge to the European call price below. The
convergence diagnostics compare the two.

This is the only floating-point pricing in the package; it is a
reference value and never feeds back into a lattice valuation.

References:
    Black, F., & Scholes, M. (1973). The Pricing of Options and Corporate Liabilities.
    Journal of Political Economy, 81(3), 637-654.
"""

import math

from scipy.stats import norm

from real_options.utils.constants import (
    EPSILON_TIME,
    EPSILON_VOL,
    MAX_STANDARD_DEVIATIONS,
)


def normal_cdf(x: float) -> float:
    """Standard normal CDF, clamped to 0 or 1 beyond ±8 standard deviations."""
    if x > MAX_STANDARD_DEVIATIONS:
        return 1.0
    if x < -MAX_STANDARD_DEVIATIONS:
        return 0.0
    return float(norm.cdf(x))


def _d1_d2(S: float, K: float, T: float, r: float, sigma: float, q: float) -> tuple[float, float]:
    """
    Black-Scholes d1 and d2.

    Formula:
        d1 = [ln(S/K) + (r - q + σ²/2)T] / (σ√T),  d2 = d1 - σ√T
    """
    log_moneyness = math.log(S) - math.log(K)
    diffusion = sigma * math.sqrt(T)
    d1 = (log_moneyness + (r - q + 0.5 * sigma * sigma) * T) / diffusion
    return d1, d1 - diffusion


def black_scholes_call(
    S: float, K: float, T: float, r: float, sigma: float, q: float = 0.0
) -> float:
    """
    European call price.

    Formula:
        C = S·e^(-qT)·N(d1) - K·e^(-rT)·N(d2)

    Examples:
        >>> abs(black_scholes_call(100, 100, 1.0, 0.05, 0.20) - 10.4506) < 0.01
        True

    Edge Cases:
        - T → 0: intrinsic value
        - σ → 0: discounted deterministic forward payoff
    """
    if S <= 0 or K <= 0:
        raise ValueError(f"Spot and strike must be positive, got S={S}, K={K}")

    if T < EPSILON_TIME:
        return max(S - K, 0.0)

    if sigma < EPSILON_VOL:
        forward = S * math.exp((r - q) * T)
        return max(forward - K, 0.0) * math.exp(-r * T)

    d1, d2 = _d1_d2(S, K, T, r, sigma, q)
    return S * math.exp(-q * T) * normal_cdf(d1) - K * math.exp(-r * T) * normal_cdf(d2)


def black_scholes_put(
    S: float, K: float, T: float, r: float, sigma: float, q: float = 0.0
) -> float:
    """
    European put price.

    Formula:
        P = K·e^(-rT)·N(-d2) - S·e^(-qT)·N(-d1)

    The American put (Abandon archetype) is worth at least this much.
    """
    if S <= 0 or K <= 0:
        raise ValueError(f"Spot and strike must be positive, got S={S}, K={K}")

    if T < EPSILON_TIME:
        return max(K - S, 0.0)

    if sigma < EPSILON_VOL:
        forward = S * math.exp((r - q) * T)
        return max(K - forward, 0.0) * math.exp(-r * T)

    d1, d2 = _d1_d2(S, K, T, r, sigma, q)
    return K * math.exp(-r * T) * normal_cdf(-d2) - S * math.exp(-q * T) * normal_cdf(-d1)


def black_scholes_delta(
    S: float, K: float, T: float, r: float, sigma: float, q: float = 0.0
) -> float:
    """European call delta e^(-qT)·N(d1)."""
    if T < EPSILON_TIME or sigma < EPSILON_VOL:
        return math.exp(-q * T) if S * math.exp((r - q) * T) > K else 0.0
    d1, _ = _d1_d2(S, K, T, r, sigma, q)
    return math.exp(-q * T) * normal_cdf(d1)
