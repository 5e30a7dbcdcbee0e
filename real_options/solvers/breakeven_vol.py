"""
Breakeven volatility solver.

Finds the volatility at which the lattice value of a real option equals
its static floor max(static_npv, 0), i.e. the volatility below which
the flexibility carries no time premium.

The search is a fixed-length bisection over σ ∈ [0.001, 2.0]. Each trial
re-prices the full lattice, so the tree is rebuilt at a reduced
resolution of min(steps, 30); 25 full-resolution rebuilds would dominate
the cost of a valuation. After 25 halvings the bracket is narrower than
(2.0 - 0.001) / 2²⁵ ≈ 6e-8 and its midpoint is returned as final.
"""

import logging
from dataclasses import replace
from decimal import Decimal

from real_options.core.fixed_point import ZERO, lattice_context
from real_options.core.lattice import price_lattice
from real_options.core.payoffs import payoff_for
from real_options.utils.constants import (
    BREAKEVEN_ITERATIONS,
    BREAKEVEN_MAX_STEPS,
    BREAKEVEN_VOL_LOWER,
    BREAKEVEN_VOL_UPPER,
)
from real_options.utils.types import BreakevenResult, ValuationRequest

logger = logging.getLogger(__name__)


def bisect_breakeven_volatility(
    request: ValuationRequest,
    vol_lower: Decimal = BREAKEVEN_VOL_LOWER,
    vol_upper: Decimal = BREAKEVEN_VOL_UPPER,
    iterations: int = BREAKEVEN_ITERATIONS,
    max_steps: int = BREAKEVEN_MAX_STEPS,
) -> BreakevenResult:
    """
    Solve for the breakeven volatility by bisection.

    Args:
        request: Validated valuation request (its volatility is ignored)
        vol_lower: Lower end of the search bracket
        vol_upper: Upper end of the search bracket
        iterations: Number of halvings
        max_steps: Cap on the lattice resolution used per trial

    Returns:
        BreakevenResult with the midpoint of the final bracket

    Notes:
        No convergence failure is signalled. If the target is not
        bracketed the search collapses onto the nearer bound.
    """
    with lattice_context():
        target = max(payoff_for(request).static_npv(request.underlying_value), ZERO)
        search_steps = min(request.steps, max_steps)
        lo, hi = vol_lower, vol_upper

        for i in range(iterations):
            mid = (lo + hi) / 2
            value = price_lattice(replace(request, volatility=mid, steps=search_steps))
            if value > target:
                hi = mid
            else:
                lo = mid
            logger.debug("Bisection %d: sigma=%s value=%s target=%s", i + 1, mid, value, target)

        return BreakevenResult(
            volatility=(lo + hi) / 2,
            iterations=iterations,
            search_steps=search_steps,
            target=target,
            lower=lo,
            upper=hi,
        )


def find_breakeven_volatility(request: ValuationRequest) -> Decimal:
    """Breakeven volatility of ``request`` with the default search settings."""
    return bisect_breakeven_volatility(request).volatility
