"""
Cox-Ross-Rubinstein binomial lattice for real options.

The lattice prices American-style managerial flexibility by backward
induction, comparing at every node the discounted continuation value
with the archetype's immediate exercise value.

Tree parameters:
    dt     = T / n
    u      = exp(σ·√dt),  d = 1/u
    p_up   = (exp((r - q)·dt) - d) / (u - d)
    disc   = exp(-r·dt)

Node values are derived from the net number of up-moves,
S·u^(ups - downs), using a saturating integer power. Prices are never
built by compounding n multiplications along a path, which bounds the
rounding error and keeps deep trees from overflowing.

References:
    Cox, J. C., Ross, S. A., & Rubinstein, M. (1979). Option Pricing:
    A Simplified Approach. Journal of Financial Economics, 7(3), 229-263.
"""

import logging
from dataclasses import dataclass, field
from decimal import Decimal

from real_options.core.fixed_point import (
    ONE,
    ZERO,
    exp_decimal,
    lattice_context,
    pow_capped,
    safe_mul,
    sqrt_decimal,
)
from real_options.core.payoffs import PayoffPolicy, payoff_for
from real_options.utils.constants import DEGENERATE_PROBABILITY
from real_options.utils.types import ExerciseBoundaryPoint, ValuationRequest

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class LatticeParams:
    """Per-step multipliers, risk-neutral probabilities and discount factor."""

    dt: Decimal
    u: Decimal
    d: Decimal
    p_up: Decimal
    p_down: Decimal
    discount: Decimal


@dataclass
class LatticeResult:
    """
    Output of one backward induction.

    Attributes:
        option_value: Value at the root node
        exercise_boundary: First exercising node per time step, chronological
        early_exercise_at_root: Whether exercising today beats holding
    """

    option_value: Decimal
    exercise_boundary: list[ExerciseBoundaryPoint] = field(default_factory=list)
    early_exercise_at_root: bool = False


def build_lattice_params(
    sigma: Decimal, r: Decimal, q: Decimal, T: Decimal, steps: int
) -> LatticeParams:
    """
    Derive CRR parameters for a lattice with ``steps`` time steps.

    Callers guarantee ``steps >= 1`` and ``T > 0``. With zero volatility
    u == d and the risk-neutral probability falls back to 0.5.
    """
    dt = T / steps
    u = exp_decimal(sigma * sqrt_decimal(dt))
    d = ONE / u
    growth = exp_decimal((r - q) * dt)
    discount = exp_decimal(-r * dt)

    if u == d:
        p_up = DEGENERATE_PROBABILITY
    else:
        p_up = (growth - d) / (u - d)

    return LatticeParams(
        dt=dt, u=u, d=d, p_up=p_up, p_down=ONE - p_up, discount=discount
    )


def _node_price(spot: Decimal, powers: list[Decimal], ups: int, downs: int) -> Decimal:
    if ups >= downs:
        return safe_mul(spot, powers[ups - downs])
    denom = powers[downs - ups]
    if denom == ZERO:
        return ZERO
    return spot / denom


def run_binomial_tree(
    spot: Decimal, params: LatticeParams, steps: int, payoff: PayoffPolicy
) -> LatticeResult:
    """
    Value an American-style real option by backward induction.

    Args:
        spot: Current underlying project value S0
        params: Lattice parameters from ``build_lattice_params``
        steps: Number of time steps n (>= 1)
        payoff: Exercise rule of the archetype

    Returns:
        LatticeResult with the root value, the exercise boundary and the
        immediate-exercise flag

    Notes:
        At each time step only the innermost (lowest-index) node where
        exercise strictly beats continuation is recorded; the boundary is
        the threshold, not every exercising node.
    """
    # u^k for every net exponent the tree can reach, each by squaring
    powers = [pow_capped(params.u, k) for k in range(steps + 1)]

    values = [
        payoff.exercise_value(_node_price(spot, powers, i, steps - i))
        for i in range(steps + 1)
    ]

    boundary: list[ExerciseBoundaryPoint] = []
    disc, p_up, p_down = params.discount, params.p_up, params.p_down

    for step in range(steps - 1, -1, -1):
        threshold = None
        for i in range(step + 1):
            continuation = safe_mul(
                disc, safe_mul(p_up, values[i + 1]) + safe_mul(p_down, values[i])
            )
            price = _node_price(spot, powers, i, step - i)
            exercise = payoff.exercise_value(price)

            if exercise > continuation:
                values[i] = exercise
                if threshold is None:
                    threshold = price
            else:
                values[i] = continuation

        if threshold is not None:
            boundary.append(ExerciseBoundaryPoint(time_step=step, threshold_value=threshold))

    boundary.reverse()

    option_value = values[0]
    immediate = payoff.exercise_value(spot)
    early_exercise = immediate >= option_value and immediate > ZERO

    return LatticeResult(
        option_value=option_value,
        exercise_boundary=boundary,
        early_exercise_at_root=early_exercise,
    )


def value_lattice(request: ValuationRequest) -> LatticeResult:
    """Build parameters and run the tree for a (validated) request."""
    params = build_lattice_params(
        request.volatility,
        request.risk_free_rate,
        request.dividend,
        request.time_to_expiry,
        request.steps,
    )
    logger.debug(
        "Lattice %s: n=%d u=%s p_up=%s disc=%s",
        request.option_type.value,
        request.steps,
        params.u,
        params.p_up,
        params.discount,
    )
    return run_binomial_tree(request.underlying_value, params, request.steps, payoff_for(request))


def price_lattice(request: ValuationRequest) -> Decimal:
    """
    Root value of the lattice for ``request``.

    Used for bump-and-reprice. Returns 0 when the request cannot define a
    lattice (σ <= 0, T <= 0 or no steps).
    """
    if (
        request.volatility <= ZERO
        or request.time_to_expiry <= ZERO
        or request.steps < 1
    ):
        return ZERO
    with lattice_context():
        return value_lattice(request).option_value
