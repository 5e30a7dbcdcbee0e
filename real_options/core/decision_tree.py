"""
Decision-tree analysis for staged investment decisions.

A tree is a list of nodes whose first entry is the root. Decision nodes
pick the child with the highest value, chance nodes take the
probability-weighted average of their children, and terminal nodes
carry a payoff discounted by ``(1 + r)^-t`` for their time period.

Outputs:
    - Expected monetary value (EMV) of the root, with an optional
      risk-adjusted EMV that scales terminal payoffs by ``adj^t``
    - The optimal path (decision → chosen child, chance → likeliest child)
    - Per-node values and optimal choices, and a summary per decision
    - Probability sensitivity: EMV with each chance branch shifted ±10pp
    - Value of perfect information (see ``_perfect_information_value``)
"""

import logging
import time
from dataclasses import dataclass, field
from decimal import Decimal
from enum import Enum
from typing import Optional

from real_options.core.fixed_point import ONE, ZERO, abs_decimal, lattice_context, pow_int
from real_options.utils.constants import (
    PROBABILITY_SUM_TOLERANCE,
    SENSITIVITY_PROBABILITY_SHIFT,
)
from real_options.utils.envelope import ComputationOutput, with_metadata
from real_options.utils.errors import InsufficientDataError, InvalidInputError
from real_options.utils.types import coerce_decimal

logger = logging.getLogger(__name__)

METHODOLOGY = "Decision Tree Analysis (EMV Rollback)"


class NodeType(str, Enum):
    DECISION = "decision"
    CHANCE = "chance"
    TERMINAL = "terminal"


@dataclass(frozen=True)
class TreeNode:
    """
    One node of a decision tree.

    Attributes:
        id: Unique identifier referenced by parents' ``children``
        name: Display name
        node_type: Decision, chance or terminal
        value: Payoff, required for terminal nodes
        cost: Cost incurred on entering the node
        probability: Branch probability, required under a chance node
        children: Child node ids
        time_period: Period used for discounting terminal payoffs
    """

    id: str
    name: str
    node_type: NodeType
    value: Optional[Decimal] = None
    cost: Optional[Decimal] = None
    probability: Optional[Decimal] = None
    children: tuple[str, ...] = ()
    time_period: Optional[int] = None

    def __post_init__(self) -> None:
        if not isinstance(self.node_type, NodeType):
            try:
                object.__setattr__(self, "node_type", NodeType(str(self.node_type).lower()))
            except ValueError:
                raise InvalidInputError(
                    f"node[{self.id}].node_type",
                    f"must be decision, chance or terminal, got {self.node_type!r}",
                ) from None
        for name in ("value", "cost", "probability"):
            raw = getattr(self, name)
            if raw is not None:
                object.__setattr__(self, name, coerce_decimal(f"node[{self.id}].{name}", raw))
        object.__setattr__(self, "children", tuple(self.children))
        if self.time_period is not None:
            field_name = f"node[{self.id}].time_period"
            raw_period = coerce_decimal(field_name, self.time_period)
            if raw_period != raw_period.to_integral_value():
                raise InvalidInputError(
                    field_name, f"must be a whole number, got {self.time_period!r}"
                )
            period = int(raw_period)
            if period < 0:
                raise InvalidInputError(field_name, "must be non-negative")
            object.__setattr__(self, "time_period", period)


@dataclass(frozen=True)
class DecisionTreeRequest:
    """
    Input for ``analyze_decision_tree``.

    Attributes:
        nodes: Tree nodes; the first one is the root
        discount_rate: Per-period discount rate
        risk_adjustment: Optional per-period factor applied to terminal payoffs
    """

    nodes: tuple[TreeNode, ...]
    discount_rate: Decimal
    risk_adjustment: Optional[Decimal] = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "nodes", tuple(self.nodes))
        object.__setattr__(self, "discount_rate", coerce_decimal("discount_rate", self.discount_rate))
        if self.risk_adjustment is not None:
            object.__setattr__(
                self, "risk_adjustment", coerce_decimal("risk_adjustment", self.risk_adjustment)
            )


@dataclass
class NodeValuation:
    id: str
    name: str
    value: Decimal
    optimal_choice: Optional[str] = None


@dataclass
class SensitivityResult:
    """EMV with one chance branch's probability shifted up and down."""

    node_id: str
    base_value: Decimal
    high_value: Decimal
    low_value: Decimal


@dataclass
class DecisionSummary:
    decision_node: str
    chosen_branch: str
    chosen_value: Decimal
    alternatives: list[tuple[str, Decimal]] = field(default_factory=list)


@dataclass
class DecisionTreeResult:
    expected_monetary_value: Decimal
    risk_adjusted_value: Optional[Decimal]
    optimal_path: list[str]
    optimal_path_names: list[str]
    node_values: list[NodeValuation]
    sensitivity: list[SensitivityResult]
    value_of_perfect_information: Decimal
    decision_summary: list[DecisionSummary]


def discount_factor(rate: Decimal, periods: int) -> Decimal:
    """Discrete discount factor (1 + rate)^-periods."""
    if periods == 0 or rate == ZERO:
        return ONE
    growth = pow_int(ONE + rate, periods)
    if growth == ZERO:
        return ZERO
    return ONE / growth


def risk_factor(risk_adjustment: Decimal, periods: int) -> Decimal:
    """Compounded per-period risk haircut risk_adjustment^periods."""
    if periods == 0:
        return ONE
    return pow_int(risk_adjustment, periods)


# ===========================
# Validation
# ===========================


def _validate_tree(request: DecisionTreeRequest) -> dict[str, TreeNode]:
    if not request.nodes:
        raise InsufficientDataError("Decision tree must have at least one node")

    node_map: dict[str, TreeNode] = {}
    for node in request.nodes:
        if node.id in node_map:
            raise InvalidInputError("nodes", f"Duplicate node ID: {node.id}")
        node_map[node.id] = node

    for node in request.nodes:
        is_terminal = node.node_type == NodeType.TERMINAL
        if is_terminal and node.value is None:
            raise InvalidInputError(f"node[{node.id}].value", "Terminal nodes must have a value")
        if is_terminal and node.children:
            raise InvalidInputError(
                f"node[{node.id}].children", "Terminal nodes should not have children"
            )
        if not is_terminal and not node.children:
            raise InvalidInputError(
                f"node[{node.id}].children", "Non-terminal nodes must have children"
            )

        for child_id in node.children:
            if child_id not in node_map:
                raise InvalidInputError(
                    f"node[{node.id}].children", f"Child ID {child_id} does not exist"
                )

        if node.node_type == NodeType.CHANCE:
            total = ZERO
            for child_id in node.children:
                child = node_map[child_id]
                if child.probability is None:
                    raise InvalidInputError(
                        f"node[{child.id}].probability",
                        "Children of chance nodes must have probabilities",
                    )
                if child.probability < ZERO or child.probability > ONE:
                    raise InvalidInputError(
                        f"node[{child.id}].probability", "Probability must be between 0 and 1"
                    )
                total += child.probability
            if abs_decimal(total - ONE) > PROBABILITY_SUM_TOLERANCE:
                raise InvalidInputError(
                    f"node[{node.id}].children",
                    f"Chance node child probabilities sum to {total} (expected ~1.0)",
                )

    if _has_cycle(request.nodes[0].id, node_map, set(), set()):
        raise InvalidInputError("nodes", "Decision tree contains a cycle")

    return node_map


def _has_cycle(
    node_id: str, node_map: dict[str, TreeNode], visited: set[str], stack: set[str]
) -> bool:
    if node_id in stack:
        return True
    if node_id in visited:
        return False
    visited.add(node_id)
    stack.add(node_id)
    for child_id in node_map[node_id].children:
        if _has_cycle(child_id, node_map, visited, stack):
            return True
    stack.discard(node_id)
    return False


# ===========================
# Rollback
# ===========================


class _Rollback:
    """
    Memoised backward valuation of a tree.

    ``probabilities`` overrides branch probabilities by node id; the
    sensitivity analysis uses it instead of copying the tree.
    """

    def __init__(
        self,
        node_map: dict[str, TreeNode],
        discount_rate: Decimal,
        risk_adjustment: Optional[Decimal] = None,
        probabilities: Optional[dict[str, Decimal]] = None,
    ) -> None:
        self.node_map = node_map
        self.discount_rate = discount_rate
        self.risk_adjustment = risk_adjustment
        self.probabilities = probabilities or {}
        self.values: dict[str, Decimal] = {}
        self.choices: dict[str, str] = {}

    def probability(self, node_id: str) -> Decimal:
        if node_id in self.probabilities:
            return self.probabilities[node_id]
        p = self.node_map[node_id].probability
        return p if p is not None else ZERO

    def terminal_value(self, node: TreeNode) -> Decimal:
        period = node.time_period or 0
        payoff = node.value if node.value is not None else ZERO
        if self.risk_adjustment is not None:
            payoff = payoff * risk_factor(self.risk_adjustment, period)
        return payoff * discount_factor(self.discount_rate, period)

    def value(self, node_id: str) -> Decimal:
        if node_id in self.values:
            return self.values[node_id]

        node = self.node_map[node_id]
        cost = node.cost if node.cost is not None else ZERO

        if node.node_type == NodeType.TERMINAL:
            result = self.terminal_value(node) - cost
        elif node.node_type == NodeType.CHANCE:
            expected = ZERO
            for child_id in node.children:
                expected += self.probability(child_id) * self.value(child_id)
            result = expected - cost
        else:
            best_value = None
            best_child = ""
            for child_id in node.children:
                child_value = self.value(child_id)
                if best_value is None or child_value > best_value:
                    best_value = child_value
                    best_child = child_id
            self.choices[node_id] = best_child
            result = (best_value if best_value is not None else ZERO) - cost

        self.values[node_id] = result
        return result


def _expected_maximum(distributions: list[list[tuple[Decimal, Decimal]]]) -> Decimal:
    """
    E[max(X_1, ..., X_m)] for independent discrete variables.

    Each distribution is a list of (value, probability) pairs whose
    probabilities sum to 1. The CDF of the maximum is the product of the
    individual CDFs.
    """
    support = sorted({v for dist in distributions for v, _ in dist})
    expected = ZERO
    previous_cdf = ZERO
    for level in support:
        cdf = ONE
        for dist in distributions:
            cdf *= sum((p for v, p in dist if v <= level), ZERO)
        expected += level * (cdf - previous_cdf)
        previous_cdf = cdf
    return expected


def _unit_probabilities(node_map: dict[str, TreeNode]) -> dict[str, Decimal]:
    """Branch probabilities of every chance node rescaled to sum to exactly 1."""
    scaled: dict[str, Decimal] = {}
    for node in node_map.values():
        if node.node_type != NodeType.CHANCE:
            continue
        total = sum((node_map[c].probability or ZERO for c in node.children), ZERO)
        if total <= ZERO:
            continue
        for child_id in node.children:
            scaled[child_id] = (node_map[child_id].probability or ZERO) / total
    return scaled


def _perfect_information_value(
    node_id: str,
    node_map: dict[str, TreeNode],
    discount_rate: Decimal,
    probabilities: dict[str, Decimal],
    memo: dict[str, Decimal],
) -> Decimal:
    """
    Rollback with the outcome of each alternative's chance node revealed.

    At a decision node the decision maker observes, before choosing, which
    branch every chance alternative will take (branches of different
    alternatives treated as independent) and picks the best realised
    alternative. Other alternatives enter as certain values.

    Branch weights come from ``probabilities`` (see ``_unit_probabilities``);
    the EMV it is compared against must use the same weights.
    """
    if node_id in memo:
        return memo[node_id]

    def pi(child_id: str) -> Decimal:
        return _perfect_information_value(
            child_id, node_map, discount_rate, probabilities, memo
        )

    node = node_map[node_id]
    cost = node.cost if node.cost is not None else ZERO
    period = node.time_period or 0

    if node.node_type == NodeType.TERMINAL:
        payoff = node.value if node.value is not None else ZERO
        result = payoff * discount_factor(discount_rate, period) - cost
    elif node.node_type == NodeType.CHANCE:
        expected = ZERO
        for child_id in node.children:
            expected += probabilities.get(child_id, ZERO) * pi(child_id)
        result = expected - cost
    else:
        distributions = []
        for child_id in node.children:
            child = node_map[child_id]
            if child.node_type == NodeType.CHANCE:
                child_cost = child.cost if child.cost is not None else ZERO
                distributions.append(
                    [(pi(g) - child_cost, probabilities.get(g, ZERO)) for g in child.children]
                )
            else:
                distributions.append([(pi(child_id), ONE)])
        result = _expected_maximum(distributions) - cost

    memo[node_id] = result
    return result


# ===========================
# Reporting helpers
# ===========================


def _shifted_probabilities(
    node_map: dict[str, TreeNode], chance_node: TreeNode, index: int, new_probability: Decimal
) -> dict[str, Decimal]:
    """Set one branch to ``new_probability`` and spread the change over its siblings."""
    children = chance_node.children
    target = node_map[children[index]]
    original = target.probability if target.probability is not None else ZERO
    others = len(children) - 1

    overrides: dict[str, Decimal] = {}
    if others == 0:
        return overrides

    redistribution = (new_probability - original) / others
    for i, child_id in enumerate(children):
        if i == index:
            overrides[child_id] = new_probability
        else:
            old = node_map[child_id].probability or ZERO
            overrides[child_id] = max(old - redistribution, ZERO)
    return overrides


def _sensitivity(
    request: DecisionTreeRequest, node_map: dict[str, TreeNode], base_emv: Decimal
) -> list[SensitivityResult]:
    root_id = request.nodes[0].id
    shift = SENSITIVITY_PROBABILITY_SHIFT
    results = []

    for node in request.nodes:
        if node.node_type != NodeType.CHANCE or len(node.children) < 2:
            continue
        for index, child_id in enumerate(node.children):
            base_p = node_map[child_id].probability or ZERO
            emv = {}
            for label, p in (("high", min(base_p + shift, ONE)), ("low", max(base_p - shift, ZERO))):
                overrides = _shifted_probabilities(node_map, node, index, p)
                emv[label] = _Rollback(
                    node_map, request.discount_rate, probabilities=overrides
                ).value(root_id)
            results.append(
                SensitivityResult(
                    node_id=child_id,
                    base_value=base_emv,
                    high_value=emv["high"],
                    low_value=emv["low"],
                )
            )
    return results


def _optimal_path(
    root_id: str, node_map: dict[str, TreeNode], choices: dict[str, str]
) -> tuple[list[str], list[str]]:
    ids: list[str] = []
    names: list[str] = []
    current: Optional[str] = root_id
    seen: set[str] = set()

    while current is not None and current in node_map and current not in seen:
        node = node_map[current]
        seen.add(current)
        ids.append(current)
        names.append(node.name)

        if node.node_type == NodeType.TERMINAL:
            break
        if node.node_type == NodeType.DECISION:
            current = choices.get(current)
        else:
            # Follow the most likely branch; first maximum wins
            best_p = ZERO
            current = None
            for child_id in node.children:
                p = node_map[child_id].probability or ZERO
                if p > best_p:
                    best_p = p
                    current = child_id
    return ids, names


def _decision_summaries(
    request: DecisionTreeRequest, node_map: dict[str, TreeNode], rollback: _Rollback
) -> list[DecisionSummary]:
    summaries = []
    for node in request.nodes:
        if node.node_type != NodeType.DECISION or node.id not in rollback.choices:
            continue
        chosen = rollback.choices[node.id]
        summaries.append(
            DecisionSummary(
                decision_node=node.name,
                chosen_branch=node_map[chosen].name,
                chosen_value=rollback.values.get(chosen, ZERO),
                alternatives=[
                    (node_map[c].name, rollback.values.get(c, ZERO))
                    for c in node.children
                    if c != chosen
                ],
            )
        )
    return summaries


def analyze_decision_tree(request: DecisionTreeRequest) -> ComputationOutput:
    """
    Roll back a decision tree and report its optimal strategy.

    Args:
        request: Tree nodes (root first), discount rate and optional risk adjustment

    Returns:
        ComputationOutput wrapping a DecisionTreeResult

    Raises:
        InsufficientDataError: If the tree has no nodes
        InvalidInputError: If the tree structure or probabilities are invalid
    """
    start = time.perf_counter()

    with lattice_context():
        node_map = _validate_tree(request)
        root_id = request.nodes[0].id

        rollback = _Rollback(node_map, request.discount_rate)
        emv = rollback.value(root_id)

        risk_adjusted = None
        if request.risk_adjustment is not None:
            risk_adjusted = _Rollback(
                node_map, request.discount_rate, risk_adjustment=request.risk_adjustment
            ).value(root_id)

        path_ids, path_names = _optimal_path(root_id, node_map, rollback.choices)

        node_values = [
            NodeValuation(
                id=node.id,
                name=node.name,
                value=rollback.values.get(node.id, ZERO),
                optimal_choice=(
                    node_map[rollback.choices[node.id]].name
                    if node.id in rollback.choices
                    else None
                ),
            )
            for node in request.nodes
        ]

        # Both sides of EVPI on unit-mass branch probabilities
        unit = _unit_probabilities(node_map)
        pi_value = _perfect_information_value(root_id, node_map, request.discount_rate, unit, {})
        unit_emv = _Rollback(node_map, request.discount_rate, probabilities=unit).value(root_id)
        evpi = max(pi_value - unit_emv, ZERO)

        result = DecisionTreeResult(
            expected_monetary_value=emv,
            risk_adjusted_value=risk_adjusted,
            optimal_path=path_ids,
            optimal_path_names=path_names,
            node_values=node_values,
            sensitivity=_sensitivity(request, node_map, emv),
            value_of_perfect_information=evpi,
            decision_summary=_decision_summaries(request, node_map, rollback),
        )

    assumptions = {
        "model": METHODOLOGY,
        "discount_rate": str(request.discount_rate),
        "risk_adjustment": (
            str(request.risk_adjustment) if request.risk_adjustment is not None else None
        ),
        "node_count": len(request.nodes),
    }
    elapsed = int((time.perf_counter() - start) * 1_000_000)
    logger.info("Decision tree with %d nodes: EMV=%s EVPI=%s", len(request.nodes), emv, evpi)

    return with_metadata(METHODOLOGY, assumptions, [], elapsed, result)
