"""
Real-option valuation entry point.

``value_real_option`` validates a request, prices it on a CRR lattice,
adds bump-and-reprice Greeks and the breakeven volatility, and returns
the result inside the standard computation envelope.

Zero volatility collapses the lattice to a single deterministic path
(u = d = 1), so that case is answered directly from the exercise value
without building a tree.
"""

import logging
import time

from real_options.core.fixed_point import ZERO, lattice_context
from real_options.core.greeks import compute_greeks
from real_options.core.lattice import value_lattice
from real_options.core.payoffs import payoff_for
from real_options.solvers.breakeven_vol import find_breakeven_volatility
from real_options.utils.envelope import ComputationOutput, with_metadata
from real_options.utils.errors import InvalidInputError
from real_options.utils.types import (
    LatticeGreeks,
    OptionArchetype,
    ValuationRequest,
    ValuationResult,
)

logger = logging.getLogger(__name__)

METHODOLOGY = "CRR Binomial Tree — Real Option Valuation"
ZERO_VOL_METHODOLOGY = "Real option valuation (zero volatility)"

ZERO_VOL_NOTE = "Zero volatility: option value equals deterministic exercise value"
NEGATIVE_VALUE_WARNING = "Option value is negative; check inputs"
EARLY_EXERCISE_WARNING = "Immediate exercise appears optimal"


def validate_request(request: ValuationRequest) -> None:
    """
    Validate a valuation request before any numerical work.

    Raises:
        InvalidInputError: With the offending field and reason
    """
    if request.underlying_value <= ZERO:
        raise InvalidInputError("underlying_value", "must be positive")
    if request.exercise_price <= ZERO:
        raise InvalidInputError("exercise_price", "must be positive")
    if request.volatility < ZERO:
        raise InvalidInputError("volatility", "must be non-negative")
    if request.time_to_expiry <= ZERO:
        raise InvalidInputError("time_to_expiry", "must be positive")
    if request.steps < 1:
        raise InvalidInputError("steps", "must be at least 1")
    if request.dividend_yield is not None and request.dividend_yield < ZERO:
        raise InvalidInputError("dividend_yield", "must be non-negative")

    archetype = request.option_type
    if archetype == OptionArchetype.EXPAND:
        if request.expansion_factor is None:
            raise InvalidInputError("expansion_factor", "required for Expand option type")
        if request.expansion_factor <= 1:
            raise InvalidInputError("expansion_factor", "must be greater than 1.0")
    elif archetype == OptionArchetype.CONTRACT:
        if request.contraction_factor is None:
            raise InvalidInputError(
                "contraction_factor", "required for Contract option type"
            )
        if request.contraction_factor <= 0 or request.contraction_factor >= 1:
            raise InvalidInputError(
                "contraction_factor", "must be between 0 and 1 exclusive"
            )
    elif archetype == OptionArchetype.SWITCH:
        if request.switch_cost is None:
            raise InvalidInputError("switch_cost", "required for Switch option type")
        if request.switch_value_ratio is None:
            raise InvalidInputError(
                "switch_value_ratio", "required for Switch option type"
            )


def _assumptions(request: ValuationRequest) -> dict[str, object]:
    return {
        "model": "CRR Binomial Tree",
        "option_type": request.option_type.value,
        "steps": request.steps,
        "risk_free_rate": str(request.risk_free_rate),
        "volatility": str(request.volatility),
        "dividend_yield": str(request.dividend),
        "time_to_expiry": str(request.time_to_expiry),
    }


def _elapsed_us(start: float) -> int:
    return int((time.perf_counter() - start) * 1_000_000)


def _value_zero_volatility(request: ValuationRequest, start: float) -> ComputationOutput:
    payoff = payoff_for(request)
    immediate = payoff.exercise_value(request.underlying_value)
    static_npv = payoff.static_npv(request.underlying_value)

    greeks = LatticeGreeks.zero()
    result = ValuationResult(
        option_value=immediate,
        static_npv=static_npv,
        expanded_npv=static_npv + max(immediate, ZERO),
        option_premium=max(immediate - max(static_npv, ZERO), ZERO),
        exercise_boundary=[],
        delta=greeks.delta,
        gamma=greeks.gamma,
        theta=greeks.theta,
        vega=greeks.vega,
        early_exercise_optimal=immediate > ZERO,
        breakeven_volatility=ZERO,
    )
    logger.info("Zero-volatility %s valued at %s", request.option_type.value, immediate)

    return with_metadata(
        ZERO_VOL_METHODOLOGY,
        {"volatility": "0", "option_type": request.option_type.value},
        [ZERO_VOL_NOTE],
        _elapsed_us(start),
        result,
    )


def value_real_option(request: ValuationRequest) -> ComputationOutput:
    """
    Value a real option on a Cox-Ross-Rubinstein lattice.

    Args:
        request: Valuation inputs

    Returns:
        ComputationOutput wrapping a ValuationResult, with warnings for
        a negative value or optimal immediate exercise

    Raises:
        InvalidInputError: If the request fails validation

    Example:
        >>> request = ValuationRequest("defer", 100, 105, 0.30, 0.05, 1)
        >>> output = value_real_option(request)
        >>> output.result.option_value > 0
        True
    """
    start = time.perf_counter()
    validate_request(request)

    with lattice_context():
        if request.volatility == ZERO:
            return _value_zero_volatility(request, start)

        lattice = value_lattice(request)
        option_value = lattice.option_value
        static_npv = payoff_for(request).static_npv(request.underlying_value)

        greeks = compute_greeks(request, option_value)
        breakeven_vol = find_breakeven_volatility(request)

        result = ValuationResult(
            option_value=option_value,
            static_npv=static_npv,
            expanded_npv=static_npv + max(option_value, ZERO),
            option_premium=max(option_value - max(static_npv, ZERO), ZERO),
            exercise_boundary=lattice.exercise_boundary,
            delta=greeks.delta,
            gamma=greeks.gamma,
            theta=greeks.theta,
            vega=greeks.vega,
            early_exercise_optimal=lattice.early_exercise_at_root,
            breakeven_volatility=breakeven_vol,
        )

    warnings = []
    if option_value < ZERO:
        warnings.append(NEGATIVE_VALUE_WARNING)
    if lattice.early_exercise_at_root:
        warnings.append(EARLY_EXERCISE_WARNING)
    for message in warnings:
        logger.warning("%s (%s)", message, request.option_type.value)

    elapsed = _elapsed_us(start)
    logger.info(
        "Valued %s option: value=%s breakeven_vol=%s in %d us",
        request.option_type.value,
        option_value,
        breakeven_vol,
        elapsed,
    )

    return with_metadata(METHODOLOGY, _assumptions(request), warnings, elapsed, result)
