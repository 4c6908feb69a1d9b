"""Optimal solitaire Yahtzee: backward induction over scorecard states."""

from .config import JokerRule, SolverConfig
from .errors import ComputationError, InvalidState, InvariantViolation, SolverError
from .query import Action, Advisor, Reroll, ScoreCategory, best_action, solve
from .scoring import Category
from .solver import Solver
from .states import DiceState, ScorecardState, YahtzeeStatus
from .tables import ValueTable, load_value_table, save_value_table

__all__ = [
    "Action",
    "Advisor",
    "Category",
    "ComputationError",
    "DiceState",
    "InvalidState",
    "InvariantViolation",
    "JokerRule",
    "Reroll",
    "ScoreCategory",
    "ScorecardState",
    "Solver",
    "SolverConfig",
    "SolverError",
    "ValueTable",
    "YahtzeeStatus",
    "best_action",
    "load_value_table",
    "save_value_table",
    "solve",
]
