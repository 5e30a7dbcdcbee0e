"""
Numerical constants and tolerances for real-option valuation.

This module defines the fixed-point kernel limits, lattice defaults,
finite-difference bump sizes and solver settings. All values are
decimal literals so the lattice never touches binary floating point.
"""

from decimal import Decimal

PACKAGE_VERSION = "1.0.0"

# Fixed-point kernel
DECIMAL_PRECISION = 28  # Significant digits in every lattice computation
PRECISION_LABEL = "decimal_28_digit"
MAX_DECIMAL = Decimal(2**96 - 1)  # Saturation cap; ~7.92e28
TAYLOR_TERMS = 30  # Terms in the exp() series after range reduction
EXP_REDUCTION_BOUND = Decimal(2)  # Halve the argument while |x| exceeds this
NEWTON_ITERATIONS = 20  # Fixed iteration count for ln() and sqrt()
LN_SENTINEL = Decimal(-999)  # Returned by ln() for non-positive input
E_APPROX = Decimal("2.718281828459045")  # Seed constant for ln() range reduction
SQRT_LARGE_THRESHOLD = Decimal(100)
SQRT_LARGE_SEED = Decimal(10)
SQRT_SMALL_THRESHOLD = Decimal("0.01")
SQRT_SMALL_SEED = Decimal("0.1")

# Lattice
DEFAULT_STEPS = 100
DEGENERATE_PROBABILITY = Decimal("0.5")  # p_up when u == d

# Reference factor in the Contract static NPV (independent of contraction_factor)
CONTRACT_STATIC_REFERENCE = Decimal("0.5")

# Greeks bump-and-reprice sizes
GREEK_SPOT_BUMP = Decimal("0.01")  # 1% of the underlying value
GREEK_TIME_BUMP = Decimal("0.01")  # Years
GREEK_VOL_BUMP = Decimal("0.01")  # Absolute volatility
GREEK_VOL_FLOOR = Decimal("0.001")  # Down-bumped volatility never drops below this

# Breakeven volatility bisection
BREAKEVEN_VOL_LOWER = Decimal("0.001")
BREAKEVEN_VOL_UPPER = Decimal("2.0")
BREAKEVEN_ITERATIONS = 25
BREAKEVEN_MAX_STEPS = 30  # Reduced lattice resolution inside the search

# Decision tree
PROBABILITY_SUM_TOLERANCE = Decimal("0.01")
SENSITIVITY_PROBABILITY_SHIFT = Decimal("0.10")

# Convergence diagnostics
DEFAULT_CONVERGENCE_STEPS = (25, 50, 100, 200)
CONVERGENCE_TOLERANCE = 2.0  # Currency units between successive step counts
BENCHMARK_TOLERANCE = 0.25  # Currency units between lattice and closed form

# Closed-form benchmark
EPSILON_TIME = 1e-6  # Below this, use intrinsic value
EPSILON_VOL = 1e-6  # Below this, deterministic pricing
MAX_STANDARD_DEVIATIONS = 8.0  # Beyond ±8σ, CDF is effectively 0 or 1
