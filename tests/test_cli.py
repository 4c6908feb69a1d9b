"""Tests for cli.py: commands run against a small hand-built table."""

import numpy as np
import pytest
from click.testing import CliRunner

from yahtzee_solver.cli import cli
from yahtzee_solver.config import JokerRule
from yahtzee_solver.states import NUM_SCORECARD_STATES
from yahtzee_solver.tables import ValueTable, save_value_table


@pytest.fixture
def zero_table(tmp_path):
    """All-zero values: every decision is greedy on the immediate reward."""
    return str(save_value_table(ValueTable(np.zeros(NUM_SCORECARD_STATES), JokerRule.FORCED), tmp_path / "zero.bin"))


@pytest.fixture
def runner():
    return CliRunner()


class TestScore:
    def test_prints_expected_score(self, runner, zero_table):
        result = runner.invoke(cli, ["score", "--table", zero_table])
        assert result.exit_code == 0
        assert "Expected score: 0.0000" in result.output
        assert "forced" in result.output

    def test_missing_table(self, runner, tmp_path):
        result = runner.invoke(cli, ["score", "--table", str(tmp_path / "nope.bin")])
        assert result.exit_code == 1
        assert "Cannot load" in result.output


class TestAdvise:
    def test_yahtzee_with_no_rolls(self, runner, zero_table):
        result = runner.invoke(cli, ["advise", "--dice", "6,6,6,6,6", "--rolls-left", "0", "--table", zero_table])
        assert result.exit_code == 0
        assert "Score Yahtzee" in result.output

    def test_list_all_actions(self, runner, zero_table):
        result = runner.invoke(
            cli,
            ["advise", "--dice", "1 3 3 4 6", "--rolls-left", "0", "--filled", "chance,aces", "--upper", "1",
             "--table", zero_table, "--all"],
        )
        assert result.exit_code == 0
        assert "Score Threes" in result.output
        assert "Score Chance" not in result.output

    def test_bad_dice(self, runner, zero_table):
        result = runner.invoke(cli, ["advise", "--dice", "1,2,3", "--table", zero_table])
        assert result.exit_code == 1
        assert "Error" in result.output

    def test_unknown_category(self, runner, zero_table):
        result = runner.invoke(cli, ["advise", "--dice", "1,2,3,4,5", "--filled", "pairs", "--table", zero_table])
        assert result.exit_code == 1

    def test_unreachable_scorecard(self, runner, zero_table):
        result = runner.invoke(cli, ["advise", "--dice", "1,2,3,4,5", "--upper", "10", "--table", zero_table])
        assert result.exit_code == 1
        assert "cannot be reached" in result.output


class TestSolve:
    def test_invalid_workers(self, runner, tmp_path):
        result = runner.invoke(cli, ["solve", "--workers", "0", "--base-path", str(tmp_path)])
        assert result.exit_code == 1
        assert "workers" in result.output


class TestInteractive:
    def test_full_game_of_yahtzees(self, runner, zero_table):
        # Same roll every turn, accepting the suggested category each time:
        # Yahtzee 50, Sixes 30, the lower section by joker, the upper section for 0,
        # and a 100-point bonus for each of the twelve Yahtzees after the first.
        turns = "6 6 6 6 6\n\n" * 13
        result = runner.invoke(cli, ["interactive", "--table", zero_table], input=turns)
        assert result.exit_code == 0, result.output
        assert "Final score: 1465" in result.output
