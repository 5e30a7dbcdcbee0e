"""
Unit tests for the click command-line interface.
"""

import json
import logging
from decimal import Decimal

import pytest
from click.testing import CliRunner

from interfaces.cli import cli


@pytest.fixture
def runner():
    # The CLI reconfigures root logging onto the runner's captured stderr
    root = logging.getLogger()
    handlers, level = root.handlers[:], root.level
    yield CliRunner()
    root.handlers[:] = handlers
    root.setLevel(level)


VALUE_ARGS = ["-S", "100", "-K", "105", "-v", "0.3", "-r", "0.05", "-T", "1", "-n", "20"]


def test_value_prints_summary(runner):
    result = runner.invoke(cli, ["value", *VALUE_ARGS])
    assert result.exit_code == 0, result.output
    assert "Option value:" in result.output
    assert "Delta:" in result.output


def test_value_json_flag(runner):
    result = runner.invoke(cli, ["value", *VALUE_ARGS, "--json"])
    assert result.exit_code == 0, result.output
    payload = json.loads(result.output)
    assert Decimal(payload["result"]["option_value"]) > 0
    assert payload["assumptions"]["option_type"] == "defer"


def test_value_expand_requires_factor(runner):
    result = runner.invoke(cli, ["value", "--type", "expand", *VALUE_ARGS])
    assert result.exit_code == 1
    assert "expansion_factor" in result.output


def test_value_expand_with_factor(runner):
    result = runner.invoke(
        cli, ["value", "--type", "expand", "--expansion-factor", "1.5", *VALUE_ARGS, "--json"]
    )
    assert result.exit_code == 0, result.output
    assert json.loads(result.output)["assumptions"]["option_type"] == "expand"


def test_value_non_numeric_input(runner):
    args = ["value", "-S", "abc", "-K", "105", "-v", "0.3", "-r", "0.05", "-T", "1"]
    result = runner.invoke(cli, args)
    assert result.exit_code == 1
    assert "Error: underlying_value" in result.output


def test_value_json_from_stdin(runner, request_fields):
    result = runner.invoke(cli, ["value-json", "-"], input=json.dumps(request_fields))
    assert result.exit_code == 0, result.output
    assert json.loads(result.output)["result"]["exercise_boundary"] == []


def test_value_json_from_file(runner, request_fields, tmp_path):
    path = tmp_path / "request.json"
    path.write_text(json.dumps(request_fields))
    result = runner.invoke(cli, ["value-json", str(path)])
    assert result.exit_code == 0, result.output


def test_value_json_rejects_invalid_json(runner):
    result = runner.invoke(cli, ["value-json", "-"], input="{not json")
    assert result.exit_code == 1
    assert "invalid JSON" in result.output


def test_value_json_rejects_unknown_field(runner, request_fields):
    request_fields["spot"] = 1
    result = runner.invoke(cli, ["value-json", "-"], input=json.dumps(request_fields))
    assert result.exit_code == 1
    assert "spot" in result.output


def test_decision_tree_command(runner, invest_tree_dict):
    result = runner.invoke(cli, ["decision-tree"], input=json.dumps(invest_tree_dict))
    assert result.exit_code == 0, result.output
    payload = json.loads(result.output)
    assert payload["result"]["optimal_path"] == ["root", "invest", "good"]


def test_decision_tree_command_invalid(runner):
    result = runner.invoke(cli, ["decision-tree"], input=json.dumps({"nodes": [], "discount_rate": 0}))
    assert result.exit_code == 1
    assert "Error:" in result.output


def test_benchmark_command(runner):
    args = ["benchmark", "-S", "100", "-K", "100", "-v", "0.2", "-r", "0.05", "-T", "1"]
    result = runner.invoke(cli, args)
    assert result.exit_code == 0, result.output
    assert "Benchmark passed" in result.output


def test_log_level_option(runner):
    result = runner.invoke(cli, ["--log-level", "debug", "value", *VALUE_ARGS])
    assert result.exit_code == 0, result.output


def test_version(runner):
    result = runner.invoke(cli, ["--version"])
    assert "1.0.0" in result.output


def test_value_json_rejects_undecodable_file(runner, tmp_path):
    path = tmp_path / "request.json"
    path.write_bytes(b"\xff\xfe{\x00")
    result = runner.invoke(cli, ["value-json", str(path)])
    assert result.exit_code == 1
    assert "Error: invalid JSON" in result.output
