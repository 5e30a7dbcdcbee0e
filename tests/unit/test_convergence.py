"""
Unit tests for the Black-Scholes benchmark and lattice diagnostics.
"""

import math
from dataclasses import replace
from decimal import Decimal

import pytest

from real_options.core.black_scholes import (
    black_scholes_call,
    black_scholes_delta,
    black_scholes_put,
    normal_cdf,
)
from real_options.diagnostics.convergence import (
    benchmark_against_black_scholes,
    check_lattice_convergence,
)
from real_options.utils.errors import InvalidInputError

D = Decimal


# ===========================
# Closed form
# ===========================


def test_call_known_solution():
    """Hull: S=100, K=100, T=1, r=5%, σ=20% → Call ≈ 10.4506"""
    assert abs(black_scholes_call(100, 100, 1.0, 0.05, 0.20) - 10.4506) < 0.01


def test_put_known_solution():
    assert abs(black_scholes_put(100, 100, 1.0, 0.05, 0.20) - 5.5735) < 0.01


def test_put_call_parity_with_dividend():
    S, K, T, r, sigma, q = 100.0, 95.0, 2.0, 0.04, 0.25, 0.02
    lhs = black_scholes_call(S, K, T, r, sigma, q) - black_scholes_put(S, K, T, r, sigma, q)
    rhs = S * math.exp(-q * T) - K * math.exp(-r * T)
    assert abs(lhs - rhs) < 1e-10


def test_call_edge_cases():
    assert black_scholes_call(120, 100, 0.0, 0.05, 0.2) == 20.0
    forward_value = (100 * math.exp(0.05) - 90) * math.exp(-0.05)
    assert black_scholes_call(100, 90, 1.0, 0.05, 0.0) == pytest.approx(forward_value)


def test_call_rejects_non_positive_inputs():
    with pytest.raises(ValueError):
        black_scholes_call(0, 100, 1.0, 0.05, 0.2)


def test_delta_and_cdf():
    assert 0.6 < black_scholes_delta(100, 100, 1.0, 0.05, 0.20) < 0.65
    assert normal_cdf(0.0) == pytest.approx(0.5)
    assert normal_cdf(9.0) == 1.0
    assert normal_cdf(-9.0) == 0.0


# ===========================
# Diagnostics
# ===========================


def test_defer_lattice_matches_european_call(atm_defer_request):
    check = benchmark_against_black_scholes(atm_defer_request)
    assert check.is_valid, check.violations
    assert abs(check.details["gap"]) < 0.25


def test_abandon_lattice_above_european_floor(abandon_request):
    check = benchmark_against_black_scholes(abandon_request)
    assert check.is_valid, check.violations
    assert check.details["gap"] >= 0


def test_tight_tolerance_reports_violation(atm_defer_request):
    coarse = replace(atm_defer_request, steps=5)
    check = benchmark_against_black_scholes(coarse, tolerance=1e-9)
    assert not check.is_valid
    assert check.violations


def test_benchmark_rejects_archetype_without_closed_form(atm_defer_request):
    request = replace(atm_defer_request, option_type="switch", switch_cost=1, switch_value_ratio=1)
    with pytest.raises(InvalidInputError) as exc_info:
        benchmark_against_black_scholes(request)
    assert exc_info.value.field == "option_type"


def test_benchmark_rejects_zero_volatility(atm_defer_request):
    with pytest.raises(InvalidInputError) as exc_info:
        benchmark_against_black_scholes(replace(atm_defer_request, volatility=D(0)))
    assert exc_info.value.field == "volatility"


def test_lattice_convergence_grid(defer_request):
    check = check_lattice_convergence(defer_request, step_grid=(50, 25, 100))
    assert check.is_valid, check.violations
    assert list(check.details) == ["steps_25", "steps_50", "steps_100"]


def test_lattice_convergence_flags_large_moves(defer_request):
    check = check_lattice_convergence(defer_request, step_grid=(1, 2, 40), tolerance=1e-6)
    assert not check.is_valid
    assert len(check.violations) >= 1


def test_lattice_convergence_rejects_empty_grid(defer_request):
    with pytest.raises(InvalidInputError):
        check_lattice_convergence(defer_request, step_grid=())


def test_benchmark_reports_delta(atm_defer_request):
    details = benchmark_against_black_scholes(atm_defer_request).details
    assert 0.6 < details["closed_form_delta"] < 0.65
    assert abs(details["delta_gap"]) < 0.05
    assert details["delta_gap"] == details["lattice_delta"] - details["closed_form_delta"]


def test_abandon_benchmark_delta_matches_call_delta(abandon_request):
    """S·e^(-qT) + put has the same delta as the call."""
    details = benchmark_against_black_scholes(abandon_request).details
    assert details["closed_form_delta"] == black_scholes_delta(80, 100, 1.0, 0.05, 0.30)
    assert 0 <= details["lattice_delta"] < 1
