"""
Deterministic fixed-point math kernel.

The lattice runs entirely in ``Decimal`` arithmetic so that results are
reproducible to the last digit across platforms. This module provides
the transcendental functions the lattice needs (exponential, natural
logarithm, square root) built only from exact decimal addition,
multiplication and division, together with multiplication and integer
powers that saturate at ``MAX_DECIMAL`` instead of overflowing.

Saturation:
    Deep lattices visit underlying values many standard deviations from
    the mean. Products past the cap collapse to the cap; such nodes are
    economically dominated and never selected as the optimum, so the
    loss of precision there does not reach the reported value.
"""

from decimal import (
    ROUND_HALF_EVEN,
    Context,
    Decimal,
    DivisionByZero,
    InvalidOperation,
    Overflow,
    localcontext,
)

from real_options.utils.constants import (
    DECIMAL_PRECISION,
    E_APPROX,
    EXP_REDUCTION_BOUND,
    LN_SENTINEL,
    MAX_DECIMAL,
    NEWTON_ITERATIONS,
    SQRT_LARGE_SEED,
    SQRT_LARGE_THRESHOLD,
    SQRT_SMALL_SEED,
    SQRT_SMALL_THRESHOLD,
    TAYLOR_TERMS,
)

ZERO = Decimal(0)
ONE = Decimal(1)
TWO = Decimal(2)
_HALF = Decimal("0.5")


def lattice_context():
    """
    Context manager fixing the decimal precision used by every calculator.

    Valuations run inside this context regardless of the caller's own
    decimal settings, which keeps results identical between processes.
    """
    ctx = Context(
        prec=DECIMAL_PRECISION,
        rounding=ROUND_HALF_EVEN,
        traps=[InvalidOperation, DivisionByZero, Overflow],
    )
    return localcontext(ctx)


def to_decimal(value: object) -> Decimal:
    """
    Convert ints, floats, strings and Decimals to ``Decimal``.

    Floats go through their shortest ``repr`` so that ``0.3`` becomes
    ``Decimal("0.3")`` rather than its binary expansion.
    """
    if isinstance(value, Decimal):
        return value
    if isinstance(value, int):
        return Decimal(value)
    if isinstance(value, float):
        # float.__repr__ also covers float subclasses such as numpy.float64
        return Decimal(float.__repr__(value))
    if isinstance(value, str):
        return Decimal(value.strip())
    raise TypeError(f"Cannot convert {type(value).__name__} to Decimal")


def abs_decimal(x: Decimal) -> Decimal:
    return -x if x < ZERO else x


def _saturate(x: Decimal) -> Decimal:
    if x > MAX_DECIMAL:
        return MAX_DECIMAL
    if x < -MAX_DECIMAL:
        return -MAX_DECIMAL
    return x


def safe_mul(a: Decimal, b: Decimal) -> Decimal:
    """Multiply, saturating to ±MAX_DECIMAL when the product exceeds the cap."""
    return _saturate(a * b)


def exp_decimal(x: Decimal) -> Decimal:
    """
    Exponential function e^x.

    Arguments with |x| > 2 are halved recursively and the result squared
    back up; the reduced argument is evaluated with a 30-term Taylor
    series.

    Examples:
        >>> abs(exp_decimal(Decimal(1)) - Decimal("2.718281828459045")) < Decimal("1e-12")
        True
    """
    if x > EXP_REDUCTION_BOUND or x < -EXP_REDUCTION_BOUND:
        half = exp_decimal(x / TWO)
        return safe_mul(half, half)

    total = ONE
    term = ONE
    for n in range(1, TAYLOR_TERMS + 1):
        term = term * x / n
        total += term
    return total


def ln_decimal(x: Decimal) -> Decimal:
    """
    Natural logarithm via Newton's method on exp(y) - x.

    Returns ``LN_SENTINEL`` (-999) for non-positive input rather than
    raising; callers only take logarithms of positive price ratios.
    """
    if x <= ZERO:
        return LN_SENTINEL
    if x == ONE:
        return ZERO

    if _HALF < x < TWO:
        y = x - ONE
    else:
        # Coarse seed: count factors of e, then linearise the remainder
        approx = ZERO
        v = x
        if x > ONE:
            while v > E_APPROX:
                v /= E_APPROX
                approx += ONE
        else:
            while v < ONE / E_APPROX:
                v *= E_APPROX
                approx -= ONE
        y = approx + (v - ONE)

    for _ in range(NEWTON_ITERATIONS):
        ey = exp_decimal(y)
        if ey == ZERO:
            break
        y = y - ONE + x / ey
    return y


def sqrt_decimal(x: Decimal) -> Decimal:
    """Square root by Newton's method; 0 for non-positive input."""
    if x <= ZERO:
        return ZERO
    if x == ONE:
        return ONE

    if x > SQRT_LARGE_THRESHOLD:
        guess = SQRT_LARGE_SEED
    elif x < SQRT_SMALL_THRESHOLD:
        guess = SQRT_SMALL_SEED
    else:
        guess = x / TWO

    for _ in range(NEWTON_ITERATIONS):
        guess = (guess + x / guess) / TWO
    return guess


def pow_int(base: Decimal, exponent: int) -> Decimal:
    """Integer power by repeated squaring."""
    if exponent < 0:
        raise ValueError(f"exponent must be non-negative, got {exponent}")
    result = ONE
    b = base
    e = exponent
    while e > 0:
        if e & 1:
            result *= b
        b *= b
        e >>= 1
    return result


def pow_capped(base: Decimal, exponent: int) -> Decimal:
    """
    Integer power by repeated squaring that saturates at ``MAX_DECIMAL``.

    Once either the running result or the squared base passes the cap the
    cap is returned. A base that only overflows on its final, unused
    squaring does not trigger saturation.
    """
    if exponent < 0:
        raise ValueError(f"exponent must be non-negative, got {exponent}")
    result = ONE
    b = base
    e = exponent
    while e > 0:
        if e & 1:
            result *= b
            if abs_decimal(result) > MAX_DECIMAL:
                return MAX_DECIMAL
        e >>= 1
        if e == 0:
            break
        b *= b
        if abs_decimal(b) > MAX_DECIMAL:
            return MAX_DECIMAL
    return result
