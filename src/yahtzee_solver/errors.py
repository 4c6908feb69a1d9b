"""Exception hierarchy for the solver and its query interface."""
from __future__ import annotations


class SolverError(Exception):
    """Base class for every error raised by yahtzee_solver."""


class InvariantViolation(SolverError):
    """An internally generated index, table or hand is malformed.

    Always a programming error. Never caught inside the package.
    """


class ComputationError(SolverError):
    """The value recurrence produced NaN, inf or a negative expectation."""


class InvalidState(SolverError, ValueError):
    """A caller handed in a scorecard or dice state that cannot occur in play."""
