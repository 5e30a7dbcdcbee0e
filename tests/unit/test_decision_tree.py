"""
Unit tests for decision-tree rollback.

The ``invest_tree`` fixture rolls back by hand to:
    good   = 200 / 1.1 = 181.818...
    bad    =  20 / 1.1 =  18.181...
    invest = 0.6·good + 0.4·bad - 50 = 66.3636...
    root   = max(invest, skip = 0)   = 66.3636...
"""

from dataclasses import replace
from decimal import Decimal

import pytest

from real_options.core.decision_tree import (
    METHODOLOGY,
    DecisionTreeRequest,
    TreeNode,
    analyze_decision_tree,
    discount_factor,
    risk_factor,
)
from real_options.utils.errors import InsufficientDataError, InvalidInputError

D = Decimal
TOL = D("1e-18")


def _approx(actual, expected):
    return abs(actual - D(expected)) < TOL


# ===========================
# Helpers
# ===========================


def test_discount_factor():
    assert discount_factor(D("0.10"), 0) == D(1)
    assert discount_factor(D(0), 5) == D(1)
    assert _approx(discount_factor(D("0.10"), 2), D(1) / D("1.21"))


def test_risk_factor():
    assert risk_factor(D("0.9"), 0) == D(1)
    assert risk_factor(D("0.9"), 2) == D("0.81")


# ===========================
# Rollback
# ===========================


def test_expected_monetary_value(invest_tree):
    result = analyze_decision_tree(invest_tree).result
    assert _approx(result.expected_monetary_value, D(128) / D("1.1") - 50)
    assert result.risk_adjusted_value is None


def test_optimal_path_follows_choice_then_likeliest_branch(invest_tree):
    result = analyze_decision_tree(invest_tree).result
    assert result.optimal_path == ["root", "invest", "good"]
    assert result.optimal_path_names == ["Launch?", "Invest", "Strong demand"]


def test_node_values_and_choices(invest_tree):
    result = analyze_decision_tree(invest_tree).result
    by_id = {nv.id: nv for nv in result.node_values}

    assert [nv.id for nv in result.node_values] == ["root", "invest", "good", "bad", "skip"]
    assert by_id["root"].optimal_choice == "Invest"
    assert by_id["invest"].optimal_choice is None
    assert _approx(by_id["good"].value, D(200) / D("1.1"))
    assert by_id["skip"].value == D(0)


def test_decision_summary(invest_tree):
    summary = analyze_decision_tree(invest_tree).result.decision_summary
    assert len(summary) == 1
    assert summary[0].decision_node == "Launch?"
    assert summary[0].chosen_branch == "Invest"
    assert summary[0].alternatives == [("Skip", D(0))]


def test_risk_adjusted_value(invest_tree):
    request = replace(invest_tree, risk_adjustment=D("0.9"))
    result = analyze_decision_tree(request).result
    assert _approx(result.risk_adjusted_value, D("115.2") / D("1.1") - 50)
    # EMV itself is not risk adjusted
    assert _approx(result.expected_monetary_value, D(128) / D("1.1") - 50)


def test_decision_picks_skip_when_investment_loses(invest_tree):
    nodes = list(invest_tree.nodes)
    nodes[1] = replace(nodes[1], cost=D(200))
    result = analyze_decision_tree(replace(invest_tree, nodes=tuple(nodes))).result
    assert result.expected_monetary_value == D(0)
    assert result.optimal_path == ["root", "skip"]


# ===========================
# Sensitivity and information value
# ===========================


def test_sensitivity_shifts_each_branch(invest_tree):
    result = analyze_decision_tree(invest_tree).result
    by_node = {s.node_id: s for s in result.sensitivity}
    assert set(by_node) == {"good", "bad"}

    good = by_node["good"]
    # good at 0.7 / bad at 0.3, then good at 0.5 / bad at 0.5
    assert _approx(good.high_value, (D(140) + D(6)) / D("1.1") - 50)
    assert _approx(good.low_value, (D(100) + D(10)) / D("1.1") - 50)
    assert good.base_value == result.expected_monetary_value
    assert by_node["bad"].high_value < good.base_value < by_node["bad"].low_value


def test_value_of_perfect_information(invest_tree):
    """Knowing demand first avoids the bad branch: EVPI = 0.4 · (50 - 20/1.1)."""
    result = analyze_decision_tree(invest_tree).result
    expected = D("0.4") * (D(50) - D(20) / D("1.1"))
    assert abs(result.value_of_perfect_information - expected) < D("1e-15")


def test_no_information_value_without_uncertainty():
    request = DecisionTreeRequest(
        nodes=(
            TreeNode("a", "Choose", "decision", children=("b", "c")),
            TreeNode("b", "Build", "terminal", value=10),
            TreeNode("c", "Buy", "terminal", value=12),
        ),
        discount_rate=0,
    )
    result = analyze_decision_tree(request).result
    assert result.expected_monetary_value == D(12)
    assert result.value_of_perfect_information == D(0)
    assert result.sensitivity == []


def test_envelope(invest_tree):
    output = analyze_decision_tree(invest_tree)
    assert output.methodology == METHODOLOGY
    assert output.assumptions["node_count"] == 5
    assert output.warnings == []


# ===========================
# Validation
# ===========================


def test_empty_tree_rejected():
    with pytest.raises(InsufficientDataError):
        analyze_decision_tree(DecisionTreeRequest(nodes=(), discount_rate=0))


def _tree(*nodes):
    return DecisionTreeRequest(nodes=nodes, discount_rate="0.05")


@pytest.mark.parametrize(
    "nodes, field",
    [
        (
            (
                TreeNode("a", "A", "decision", children=("b",)),
                TreeNode("b", "B", "terminal", value=1),
                TreeNode("b", "B2", "terminal", value=2),
            ),
            "nodes",
        ),
        ((TreeNode("a", "A", "terminal"),), "node[a].value"),
        ((TreeNode("a", "A", "decision"),), "node[a].children"),
        ((TreeNode("a", "A", "decision", children=("missing",)),), "node[a].children"),
        (
            (
                TreeNode("a", "A", "chance", children=("b", "c")),
                TreeNode("b", "B", "terminal", value=1, probability="0.5"),
                TreeNode("c", "C", "terminal", value=1, probability="0.3"),
            ),
            "node[a].children",
        ),
        (
            (
                TreeNode("a", "A", "chance", children=("b",)),
                TreeNode("b", "B", "terminal", value=1),
            ),
            "node[b].probability",
        ),
        (
            (
                TreeNode("a", "A", "decision", children=("b",)),
                TreeNode("b", "B", "decision", children=("a",)),
            ),
            "nodes",
        ),
    ],
)
def test_invalid_tree_reports_field(nodes, field):
    with pytest.raises(InvalidInputError) as exc_info:
        analyze_decision_tree(_tree(*nodes))
    assert exc_info.value.field == field


def test_probability_tolerance_accepted():
    request = _tree(
        TreeNode("a", "A", "chance", children=("b", "c")),
        TreeNode("b", "B", "terminal", value=10, probability="0.505"),
        TreeNode("c", "C", "terminal", value=0, probability="0.5"),
    )
    assert analyze_decision_tree(request).result.expected_monetary_value == D("5.05")


def test_unknown_node_type_rejected():
    with pytest.raises(InvalidInputError):
        TreeNode("a", "A", "lottery")


def test_node_type_is_case_insensitive():
    assert TreeNode("a", "A", "Decision", children=("b",)).node_type.value == "decision"


def test_no_information_value_when_probabilities_within_tolerance():
    """Branch weights summing to 0.995 leave nothing to learn when every outcome pays the same."""
    request = DecisionTreeRequest(
        nodes=(
            TreeNode("a", "Go?", "decision", children=("b",)),
            TreeNode("b", "Market", "chance", children=("c", "d")),
            TreeNode("c", "Up", "terminal", value=1000, probability="0.5"),
            TreeNode("d", "Down", "terminal", value=1000, probability="0.495"),
        ),
        discount_rate=0,
    )
    result = analyze_decision_tree(request).result
    assert result.expected_monetary_value == D(995)
    assert result.value_of_perfect_information == D(0)


@pytest.mark.parametrize("period", ["1.5", 0.25])
def test_fractional_time_period_rejected(period):
    with pytest.raises(InvalidInputError) as exc_info:
        TreeNode("a", "A", "terminal", value=1, time_period=period)
    assert exc_info.value.field == "node[a].time_period"


def test_whole_time_period_accepted():
    assert TreeNode("a", "A", "terminal", value=1, time_period="2.0").time_period == 2
    with pytest.raises(InvalidInputError):
        TreeNode("a", "A", "terminal", value=1, time_period=-1)
