"""
Exercise payoffs for the six real-option archetypes.

Each archetype is a ``PayoffPolicy`` exposing two functions of the
underlying project value S:

    exercise_value(S)  value received if the option is exercised now
    static_npv(S)      NPV of the project with no flexibility at all

The binomial engine only depends on this interface, so adding an
archetype means adding one class and registering it in ``payoff_for``.

Payoffs (K = exercise_price):
    Defer / Compound:  max(S - K, 0)                      static: S - K
    Expand:            max(S·expansion_factor - K, S)     static: S·factor - K - S
    Abandon:           max(K, S)                          static: K - S
    Contract:          max(S·contraction_factor + K, S)   static: K - S·0.5
    Switch:            max(S·switch_value_ratio - cost, S) static: S - K
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from decimal import Decimal

from real_options.core.fixed_point import ZERO, safe_mul
from real_options.utils.constants import CONTRACT_STATIC_REFERENCE
from real_options.utils.types import OptionArchetype, ValuationRequest


@dataclass(frozen=True)
class PayoffPolicy(ABC):
    """Exercise and static-NPV rules for one archetype."""

    exercise_price: Decimal

    @abstractmethod
    def exercise_value(self, price: Decimal) -> Decimal:
        """Value of exercising immediately at underlying value ``price``."""

    @abstractmethod
    def static_npv(self, spot: Decimal) -> Decimal:
        """NPV of the project at ``spot`` with no managerial flexibility."""


@dataclass(frozen=True)
class DeferPayoff(PayoffPolicy):
    """Right to invest K later: an American call on the project."""

    def exercise_value(self, price: Decimal) -> Decimal:
        return max(price - self.exercise_price, ZERO)

    def static_npv(self, spot: Decimal) -> Decimal:
        return spot - self.exercise_price


@dataclass(frozen=True)
class CompoundPayoff(DeferPayoff):
    """
    Option on an option, valued with the Defer payoff.

    A separate sub-lattice for the inner option is not built.
    """


@dataclass(frozen=True)
class ExpandPayoff(PayoffPolicy):
    """Right to scale the project by ``expansion_factor`` for a cost of K."""

    expansion_factor: Decimal = Decimal("1.5")

    def exercise_value(self, price: Decimal) -> Decimal:
        expanded = safe_mul(price, self.expansion_factor) - self.exercise_price
        return max(expanded, price)

    def static_npv(self, spot: Decimal) -> Decimal:
        # Net gain from expanding now, less the project already held
        return spot * self.expansion_factor - self.exercise_price - spot


@dataclass(frozen=True)
class AbandonPayoff(PayoffPolicy):
    """Right to walk away for a salvage value of K: an American put."""

    def exercise_value(self, price: Decimal) -> Decimal:
        return max(self.exercise_price, price)

    def static_npv(self, spot: Decimal) -> Decimal:
        return self.exercise_price - spot


@dataclass(frozen=True)
class ContractPayoff(PayoffPolicy):
    """Right to keep ``contraction_factor`` of the project and save K."""

    contraction_factor: Decimal = Decimal("0.5")

    def exercise_value(self, price: Decimal) -> Decimal:
        contracted = safe_mul(price, self.contraction_factor) + self.exercise_price
        return max(contracted, price)

    def static_npv(self, spot: Decimal) -> Decimal:
        # Fixed 50% reference, independent of contraction_factor
        return self.exercise_price - spot * (Decimal(1) - CONTRACT_STATIC_REFERENCE)


@dataclass(frozen=True)
class SwitchPayoff(PayoffPolicy):
    """Right to switch operating mode for ``switch_cost``, scaling value by the ratio."""

    switch_cost: Decimal = ZERO
    switch_value_ratio: Decimal = Decimal(1)

    def exercise_value(self, price: Decimal) -> Decimal:
        switched = safe_mul(price, self.switch_value_ratio) - self.switch_cost
        return max(switched, price)

    def static_npv(self, spot: Decimal) -> Decimal:
        # Uses K as a strike; switch parameters do not enter the static view
        return spot - self.exercise_price


def payoff_for(request: ValuationRequest) -> PayoffPolicy:
    """
    Build the payoff policy for a request.

    Archetype parameters that are absent fall back to neutral defaults;
    the valuation entry point rejects requests missing a required one
    before this is reached.
    """
    k = request.exercise_price
    archetype = request.option_type

    if archetype == OptionArchetype.DEFER:
        return DeferPayoff(k)
    if archetype == OptionArchetype.COMPOUND:
        return CompoundPayoff(k)
    if archetype == OptionArchetype.ABANDON:
        return AbandonPayoff(k)
    if archetype == OptionArchetype.EXPAND:
        if request.expansion_factor is None:
            return ExpandPayoff(k)
        return ExpandPayoff(k, expansion_factor=request.expansion_factor)
    if archetype == OptionArchetype.CONTRACT:
        if request.contraction_factor is None:
            return ContractPayoff(k)
        return ContractPayoff(k, contraction_factor=request.contraction_factor)
    if archetype == OptionArchetype.SWITCH:
        return SwitchPayoff(
            k,
            switch_cost=request.switch_cost if request.switch_cost is not None else ZERO,
            switch_value_ratio=(
                request.switch_value_ratio
                if request.switch_value_ratio is not None
                else Decimal(1)
            ),
        )
    raise ValueError(f"Unsupported option archetype: {archetype!r}")
