"""
Lattice diagnostics.

This module checks a lattice valuation against two references:
- Step convergence: repricing at increasing step counts should settle
- Closed-form bounds: the Defer lattice must match the European call
  when there is no dividend yield (no early exercise premium), and the
  Abandon lattice must be worth at least S·e^(-qT) plus the European put
"""

import logging
import math
from dataclasses import replace
from decimal import Decimal
from typing import Sequence

from real_options.core.black_scholes import (
    black_scholes_call,
    black_scholes_delta,
    black_scholes_put,
)
from real_options.core.greeks import spot_greeks
from real_options.core.lattice import price_lattice
from real_options.core.valuation import validate_request
from real_options.utils.constants import (
    BENCHMARK_TOLERANCE,
    CONVERGENCE_TOLERANCE,
    DEFAULT_CONVERGENCE_STEPS,
)
from real_options.utils.errors import InvalidInputError
from real_options.utils.types import ConvergenceCheck, OptionArchetype, ValuationRequest

logger = logging.getLogger(__name__)


def _require_positive_volatility(request: ValuationRequest) -> None:
    validate_request(request)
    if request.volatility <= Decimal(0):
        raise InvalidInputError("volatility", "must be positive for lattice diagnostics")


def check_lattice_convergence(
    request: ValuationRequest,
    step_grid: Sequence[int] = DEFAULT_CONVERGENCE_STEPS,
    tolerance: float = CONVERGENCE_TOLERANCE,
) -> ConvergenceCheck:
    """
    Reprice ``request`` at each step count and compare successive values.

    Args:
        request: Valuation request; its own ``steps`` is ignored
        step_grid: Increasing lattice resolutions
        tolerance: Maximum allowed change between successive resolutions

    Returns:
        ConvergenceCheck with one detail entry per resolution
    """
    _require_positive_volatility(request)
    grid = sorted(set(int(n) for n in step_grid))
    if not grid or grid[0] < 1:
        raise InvalidInputError("step_grid", "must contain positive step counts")

    violations = []
    details = {}
    previous = None

    for n in grid:
        value = float(price_lattice(replace(request, steps=n)))
        details[f"steps_{n}"] = value
        if previous is not None:
            prev_n, prev_value = previous
            change = abs(value - prev_value)
            if change > tolerance:
                violations.append(
                    f"Value moved {change:.4f} between {prev_n} and {n} steps "
                    f"(tolerance {tolerance:.4f})"
                )
        previous = (n, value)

    logger.debug("Convergence grid %s: %s", grid, details)
    return ConvergenceCheck(is_valid=not violations, violations=violations, details=details)


def benchmark_against_black_scholes(
    request: ValuationRequest,
    tolerance: float = BENCHMARK_TOLERANCE,
) -> ConvergenceCheck:
    """
    Compare the lattice value with the Black-Scholes closed form.

    Checks:
    1. Defer / Compound: lattice >= European call (early exercise never hurts)
    2. Defer / Compound with q = 0: |lattice - European call| <= tolerance
    3. Abandon: lattice >= S·e^(-qT) + European put

    ``details`` also carries the bump-and-reprice lattice delta next to the
    closed-form delta; the delta gap is reported, not checked.

    Raises:
        InvalidInputError: For archetypes without a closed-form reference
    """
    _require_positive_volatility(request)

    S = float(request.underlying_value)
    K = float(request.exercise_price)
    T = float(request.time_to_expiry)
    r = float(request.risk_free_rate)
    sigma = float(request.volatility)
    q = float(request.dividend)

    base = price_lattice(request)
    lattice_value = float(base)
    violations = []

    if request.option_type in (OptionArchetype.DEFER, OptionArchetype.COMPOUND):
        closed_form = black_scholes_call(S, K, T, r, sigma, q)
        if lattice_value < closed_form - tolerance:
            violations.append(
                f"Lattice value {lattice_value:.4f} below European call {closed_form:.4f}"
            )
        if q == 0.0 and abs(lattice_value - closed_form) > tolerance:
            violations.append(
                f"Lattice value {lattice_value:.4f} differs from European call "
                f"{closed_form:.4f} by more than {tolerance:.4f}"
            )
    elif request.option_type == OptionArchetype.ABANDON:
        # max(K, S_T) = S_T + max(K - S_T, 0)
        closed_form = S * math.exp(-q * T) + black_scholes_put(S, K, T, r, sigma, q)
        if lattice_value < closed_form - tolerance:
            violations.append(
                f"Lattice value {lattice_value:.4f} below European floor {closed_form:.4f}"
            )
    else:
        raise InvalidInputError(
            "option_type",
            f"no closed-form benchmark for {request.option_type.value}",
        )

    # S·e^(-qT) + put has the call's delta, so one closed form covers all three
    lattice_delta = float(spot_greeks(request, base)[0])
    closed_form_delta = black_scholes_delta(S, K, T, r, sigma, q)

    details = {
        "lattice_value": lattice_value,
        "closed_form_value": closed_form,
        "gap": lattice_value - closed_form,
        "lattice_delta": lattice_delta,
        "closed_form_delta": closed_form_delta,
        "delta_gap": lattice_delta - closed_form_delta,
    }
    return ConvergenceCheck(is_valid=not violations, violations=violations, details=details)
