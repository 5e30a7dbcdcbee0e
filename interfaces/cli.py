"""
Command-line interface for the real-option valuation toolkit.

This CLI provides access to:
- Lattice valuation of a real option (value, value-json)
- Decision-tree rollback (decision-tree)
- Black-Scholes benchmark of the lattice (benchmark)
"""

import json
import sys

import click

from real_options.core.decision_tree import analyze_decision_tree
from real_options.core.valuation import value_real_option
from real_options.diagnostics.convergence import benchmark_against_black_scholes
from real_options.utils.constants import DEFAULT_STEPS, PACKAGE_VERSION
from real_options.utils.errors import RealOptionsError
from real_options.utils.logging_config import setup_logging
from real_options.utils.serialization import (
    decision_tree_request_from_dict,
    to_jsonable,
    valuation_request_from_dict,
)
from real_options.utils.types import OptionArchetype, ValuationRequest

ARCHETYPES = [member.value for member in OptionArchetype]


def _fail(message: str) -> None:
    click.echo(f"Error: {message}", err=True)
    sys.exit(1)


def _load_json(source) -> dict:
    try:
        return json.load(source)
    except (json.JSONDecodeError, UnicodeDecodeError) as e:
        _fail(f"invalid JSON: {e}")


def _echo_json(output) -> None:
    click.echo(json.dumps(to_jsonable(output), indent=2))


@click.group()
@click.version_option(version=PACKAGE_VERSION)
@click.option(
    "--log-level",
    type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR"], case_sensitive=False),
    default="WARNING",
    help="Logging verbosity (logs go to stderr)",
)
def cli(log_level):
    """Real Option Valuation - CRR binomial lattice with fixed-point arithmetic."""
    setup_logging(log_level)


@cli.command()
@click.option("--type", "-t", "option_type", type=click.Choice(ARCHETYPES), default="defer")
@click.option("--underlying", "-S", type=str, required=True, help="Project value (PV of cash flows)")
@click.option("--exercise", "-K", type=str, required=True, help="Investment cost or salvage value")
@click.option("--vol", "-v", type=str, required=True, help="Volatility (annualized)")
@click.option("--rate", "-r", type=str, required=True, help="Risk-free rate")
@click.option("--time", "-T", type=str, required=True, help="Time to expiry (years)")
@click.option("--steps", "-n", type=int, default=DEFAULT_STEPS, help="Lattice steps")
@click.option("--div", "-q", type=str, default=None, help="Dividend yield (value leakage)")
@click.option("--expansion-factor", type=str, default=None, help="Scale-up multiple (expand)")
@click.option("--contraction-factor", type=str, default=None, help="Retained fraction (contract)")
@click.option("--switch-cost", type=str, default=None, help="Cost of switching (switch)")
@click.option("--switch-ratio", type=str, default=None, help="Value multiple after switching")
@click.option("--json", "as_json", is_flag=True, help="Print the full result as JSON")
def value(
    option_type,
    underlying,
    exercise,
    vol,
    rate,
    time,
    steps,
    div,
    expansion_factor,
    contraction_factor,
    switch_cost,
    switch_ratio,
    as_json,
):
    """Value a real option on a CRR binomial lattice."""
    try:
        request = ValuationRequest(
            option_type=option_type,
            underlying_value=underlying,
            exercise_price=exercise,
            volatility=vol,
            risk_free_rate=rate,
            time_to_expiry=time,
            steps=steps,
            dividend_yield=div,
            expansion_factor=expansion_factor,
            contraction_factor=contraction_factor,
            switch_cost=switch_cost,
            switch_value_ratio=switch_ratio,
        )
        output = value_real_option(request)
    except RealOptionsError as e:
        _fail(str(e))

    if as_json:
        _echo_json(output)
        return

    result = output.result
    click.echo(f"\n{option_type.capitalize()} Option ({output.methodology})")
    click.echo(f"  Option value:     {result.option_value:>14.4f}")
    click.echo(f"  Static NPV:       {result.static_npv:>14.4f}")
    click.echo(f"  Expanded NPV:     {result.expanded_npv:>14.4f}")
    click.echo(f"  Option premium:   {result.option_premium:>14.4f}")
    click.echo(f"  Breakeven vol:    {result.breakeven_volatility:>14.4f}")
    click.echo(f"  Exercise today:   {'yes' if result.early_exercise_optimal else 'no':>14}")
    click.echo("\nGreeks:")
    click.echo(f"  Delta:  {result.delta:>12.6f}")
    click.echo(f"  Gamma:  {result.gamma:>12.6f}")
    click.echo(f"  Theta:  {result.theta:>12.6f} (per year)")
    click.echo(f"  Vega:   {result.vega:>12.6f}")
    for warning in output.warnings:
        click.echo(f"\nWarning: {warning}", err=True)


@cli.command("value-json")
@click.argument("source", type=click.File("r"), default="-")
def value_json(source):
    """Value a request read as JSON from SOURCE (a file, or - for stdin)."""
    data = _load_json(source)
    try:
        output = value_real_option(valuation_request_from_dict(data))
    except RealOptionsError as e:
        _fail(str(e))
    _echo_json(output)


@cli.command("decision-tree")
@click.argument("source", type=click.File("r"), default="-")
def decision_tree(source):
    """Roll back a decision tree read as JSON from SOURCE (a file, or - for stdin)."""
    data = _load_json(source)
    try:
        output = analyze_decision_tree(decision_tree_request_from_dict(data))
    except RealOptionsError as e:
        _fail(str(e))
    _echo_json(output)


@cli.command()
@click.option("--type", "-t", "option_type", type=click.Choice(["defer", "compound", "abandon"]), default="defer")
@click.option("--underlying", "-S", type=str, required=True, help="Project value")
@click.option("--exercise", "-K", type=str, required=True, help="Investment cost or salvage value")
@click.option("--vol", "-v", type=str, required=True, help="Volatility (annualized)")
@click.option("--rate", "-r", type=str, required=True, help="Risk-free rate")
@click.option("--time", "-T", type=str, required=True, help="Time to expiry (years)")
@click.option("--steps", "-n", type=int, default=DEFAULT_STEPS, help="Lattice steps")
@click.option("--div", "-q", type=str, default=None, help="Dividend yield")
def benchmark(option_type, underlying, exercise, vol, rate, time, steps, div):
    """Compare the lattice value with the Black-Scholes closed form."""
    try:
        request = ValuationRequest(
            option_type=option_type,
            underlying_value=underlying,
            exercise_price=exercise,
            volatility=vol,
            risk_free_rate=rate,
            time_to_expiry=time,
            steps=steps,
            dividend_yield=div,
        )
        check = benchmark_against_black_scholes(request)
    except RealOptionsError as e:
        _fail(str(e))

    details = check.details
    click.echo(f"\nLattice value:      {details['lattice_value']:>12.4f}")
    click.echo(f"Closed-form value:  {details['closed_form_value']:>12.4f}")
    click.echo(f"Gap:                {details['gap']:>12.4f}")
    if check.is_valid:
        click.echo("\nBenchmark passed")
    else:
        for violation in check.violations:
            click.echo(f"  - {violation}", err=True)
        click.echo("\nBenchmark failed", err=True)
        sys.exit(1)


if __name__ == "__main__":
    cli()
