"""
Data types and structures for real-option valuation.

This module defines the request, result and intermediate dataclasses
shared by the lattice engine, the Greeks engine, the breakeven solver
and the interfaces. Numeric fields are held as ``Decimal``.
"""

from dataclasses import dataclass, field, fields
from decimal import Decimal, InvalidOperation
from enum import Enum
from typing import Optional

from real_options.core.fixed_point import to_decimal
from real_options.utils.constants import DEFAULT_STEPS
from real_options.utils.errors import InvalidInputError


class OptionArchetype(str, Enum):
    """Managerial flexibility modelled by the lattice."""

    DEFER = "defer"  # American call: right to invest later
    EXPAND = "expand"  # Scale the project up by a factor at a cost
    ABANDON = "abandon"  # American put: salvage at a floor value
    CONTRACT = "contract"  # Scale down, realizing savings
    SWITCH = "switch"  # Convert to an alternate operating mode
    COMPOUND = "compound"  # Option on an option, priced as DEFER

    @classmethod
    def parse(cls, value: "OptionArchetype | str") -> "OptionArchetype":
        """Accept enum members or case-insensitive names ("Defer", "defer")."""
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            allowed = ", ".join(member.value for member in cls)
            raise InvalidInputError(
                "option_type", f"must be one of {allowed}, got {value!r}"
            ) from None


_DECIMAL_FIELDS = (
    "underlying_value",
    "exercise_price",
    "volatility",
    "risk_free_rate",
    "time_to_expiry",
)

_OPTIONAL_DECIMAL_FIELDS = (
    "dividend_yield",
    "expansion_factor",
    "contraction_factor",
    "switch_cost",
    "switch_value_ratio",
)


@dataclass(frozen=True)
class ValuationRequest:
    """
    Immutable input for a real-option valuation.

    Attributes:
        option_type: Archetype of managerial flexibility
        underlying_value: Present value of the underlying project (S)
        exercise_price: Investment cost, salvage value or savings (K)
        volatility: Annualized volatility of project value (σ)
        risk_free_rate: Continuously compounded risk-free rate (r)
        time_to_expiry: Life of the option in years (T)
        steps: Number of lattice time steps
        dividend_yield: Continuous value leakage (q), treated as 0 when absent
        expansion_factor: Scale-up multiple, required for EXPAND
        contraction_factor: Retained fraction, required for CONTRACT
        switch_cost: Cost of switching modes, required for SWITCH
        switch_value_ratio: Value multiple after switching, required for SWITCH

    Numeric inputs are coerced to ``Decimal`` on construction. Range
    checks are left to the valuation entry point.
    """

    option_type: OptionArchetype
    underlying_value: Decimal
    exercise_price: Decimal
    volatility: Decimal
    risk_free_rate: Decimal
    time_to_expiry: Decimal
    steps: int = DEFAULT_STEPS
    dividend_yield: Optional[Decimal] = None
    expansion_factor: Optional[Decimal] = None
    contraction_factor: Optional[Decimal] = None
    switch_cost: Optional[Decimal] = None
    switch_value_ratio: Optional[Decimal] = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "option_type", OptionArchetype.parse(self.option_type))

        for name in _DECIMAL_FIELDS:
            object.__setattr__(self, name, coerce_decimal(name, getattr(self, name)))

        for name in _OPTIONAL_DECIMAL_FIELDS:
            value = getattr(self, name)
            if value is not None:
                object.__setattr__(self, name, coerce_decimal(name, value))

        object.__setattr__(self, "steps", _coerce_steps(self.steps))

    @property
    def dividend(self) -> Decimal:
        """Dividend yield with the absent case mapped to zero."""
        return self.dividend_yield if self.dividend_yield is not None else Decimal(0)

    @classmethod
    def field_names(cls) -> tuple[str, ...]:
        return tuple(f.name for f in fields(cls))


def coerce_decimal(name: str, value: object) -> Decimal:
    """Coerce a numeric input to Decimal, reporting failures against ``name``."""
    if isinstance(value, bool):
        raise InvalidInputError(name, f"must be numeric, got {value!r}")
    try:
        result = to_decimal(value)
    except (InvalidOperation, TypeError, ValueError):
        raise InvalidInputError(name, f"must be numeric, got {value!r}") from None
    if not result.is_finite():
        raise InvalidInputError(name, f"must be finite, got {value!r}")
    return result


def _coerce_steps(value: object) -> int:
    steps = coerce_decimal("steps", value)
    if steps != steps.to_integral_value():
        raise InvalidInputError("steps", f"must be a whole number, got {value!r}")
    return int(steps)


@dataclass(frozen=True)
class ExerciseBoundaryPoint:
    """
    Underlying value at which immediate exercise first becomes optimal.

    Attributes:
        time_step: Lattice time step (0 is today)
        threshold_value: Underlying value at the innermost exercising node
    """

    time_step: int
    threshold_value: Decimal


@dataclass(frozen=True)
class LatticeGreeks:
    """
    Bump-and-reprice sensitivities of the lattice value.

    Attributes:
        delta: ∂V/∂S by central difference on a 1% spot bump
        gamma: ∂²V/∂S² on the same bump
        theta: ∂V/∂t per year, from shortening expiry by 0.01 years
        vega: ∂V/∂σ per unit of volatility
    """

    delta: Decimal
    gamma: Decimal
    theta: Decimal
    vega: Decimal

    @classmethod
    def zero(cls) -> "LatticeGreeks":
        return cls(Decimal(0), Decimal(0), Decimal(0), Decimal(0))


@dataclass
class ValuationResult:
    """
    Output of a real-option valuation.

    Attributes:
        option_value: Lattice value of the flexible project
        static_npv: NPV with no managerial flexibility
        expanded_npv: static_npv + max(option_value, 0)
        option_premium: max(option_value - max(static_npv, 0), 0)
        exercise_boundary: Chronological exercise thresholds
        delta, gamma, theta, vega: Bump-and-reprice Greeks
        early_exercise_optimal: Whether exercising today is optimal
        breakeven_volatility: Volatility at which value equals max(static_npv, 0)
    """

    option_value: Decimal
    static_npv: Decimal
    expanded_npv: Decimal
    option_premium: Decimal
    exercise_boundary: list[ExerciseBoundaryPoint] = field(default_factory=list)
    delta: Decimal = Decimal(0)
    gamma: Decimal = Decimal(0)
    theta: Decimal = Decimal(0)
    vega: Decimal = Decimal(0)
    early_exercise_optimal: bool = False
    breakeven_volatility: Decimal = Decimal(0)


@dataclass(frozen=True)
class BreakevenResult:
    """
    Result from the breakeven volatility search.

    Attributes:
        volatility: Midpoint of the final bisection bracket
        iterations: Number of bisection iterations performed
        search_steps: Lattice resolution used inside the search
        target: Value the lattice was matched against, max(static_npv, 0)
        lower: Final lower bound of the bracket
        upper: Final upper bound of the bracket
    """

    volatility: Decimal
    iterations: int
    search_steps: int
    target: Decimal
    lower: Decimal
    upper: Decimal


@dataclass
class ConvergenceCheck:
    """
    Result from a lattice diagnostic.

    Attributes:
        is_valid: Whether every check stayed within tolerance
        violations: Description of each failed check
        details: Values the checks were computed from, keyed by label
    """

    is_valid: bool
    violations: list[str]
    details: dict[str, float]
