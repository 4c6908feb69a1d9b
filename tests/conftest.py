"""Shared fixtures: precomputed tables and (for slow tests) the full solve."""
from __future__ import annotations

import pytest

from yahtzee_solver.config import JokerRule, SolverConfig
from yahtzee_solver.solver import Solver, build_solver_tables


@pytest.fixture(scope="session")
def solver_tables():
    return build_solver_tables()


@pytest.fixture(scope="session")
def full_table(solver_tables):
    """Full FORCED-rule solve, shared by every slow test."""
    return Solver(SolverConfig(joker_rule=JokerRule.FORCED), tables=solver_tables).solve()
