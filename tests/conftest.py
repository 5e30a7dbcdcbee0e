"""
Pytest configuration and shared fixtures.
"""

import pytest

from real_options.core.decision_tree import DecisionTreeRequest, TreeNode
from real_options.utils.types import ValuationRequest


@pytest.fixture
def defer_request():
    """Slightly out-of-the-money option to defer investment."""
    return ValuationRequest(
        option_type="defer",
        underlying_value="100",
        exercise_price="105",
        volatility="0.30",
        risk_free_rate="0.05",
        time_to_expiry="1",
        steps=50,
    )


@pytest.fixture
def atm_defer_request():
    """At-the-money Defer option matching the textbook Black-Scholes example."""
    return ValuationRequest(
        option_type="defer",
        underlying_value="100",
        exercise_price="100",
        volatility="0.20",
        risk_free_rate="0.05",
        time_to_expiry="1",
        steps=100,
    )


@pytest.fixture
def abandon_request():
    """Option to abandon for a salvage value above the current project value."""
    return ValuationRequest(
        option_type="abandon",
        underlying_value="80",
        exercise_price="100",
        volatility="0.30",
        risk_free_rate="0.05",
        time_to_expiry="1",
        steps=50,
    )


@pytest.fixture
def request_fields():
    """Plain-dict form of a valuation request, as read from JSON."""
    return {
        "option_type": "Defer",
        "underlying_value": "100",
        "exercise_price": "105",
        "volatility": "0.30",
        "risk_free_rate": "0.05",
        "time_to_expiry": "1",
        "steps": 20,
    }


@pytest.fixture
def invest_tree():
    """
    Invest now (cost 50) into a 60/40 good/bad outcome, or skip.

    Terminal payoffs are received after one period at 10%.
    """
    return DecisionTreeRequest(
        nodes=(
            TreeNode("root", "Launch?", "decision", children=("invest", "skip")),
            TreeNode("invest", "Invest", "chance", cost="50", children=("good", "bad")),
            TreeNode("good", "Strong demand", "terminal", value="200", probability="0.6", time_period=1),
            TreeNode("bad", "Weak demand", "terminal", value="20", probability="0.4", time_period=1),
            TreeNode("skip", "Skip", "terminal", value="0"),
        ),
        discount_rate="0.10",
    )


@pytest.fixture
def invest_tree_dict():
    return {
        "discount_rate": "0.10",
        "nodes": [
            {"id": "root", "name": "Launch?", "node_type": "decision", "children": ["invest", "skip"]},
            {"id": "invest", "name": "Invest", "node_type": "chance", "cost": "50", "children": ["good", "bad"]},
            {"id": "good", "name": "Strong demand", "node_type": "terminal", "value": "200", "probability": "0.6", "time_period": 1},
            {"id": "bad", "name": "Weak demand", "node_type": "terminal", "value": "20", "probability": "0.4", "time_period": 1},
            {"id": "skip", "name": "Skip", "node_type": "terminal", "value": "0"},
        ],
    }
