"""Optimal-play queries against a solved value table."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Union

import numpy as np

from .config import SolverConfig
from .dice import KEEP_ALL_MASK, NUM_KEEP_MASKS
from .errors import InvalidState
from .scoring import Category
from .solver import Solver, category_rewards
from .states import DiceState, ScorecardState, decode_scorecard, encode_scorecard, is_reachable
from .tables import ValueTable


@dataclass(frozen=True)
class ScoreCategory:
    category: Category

    def __post_init__(self) -> None:
        object.__setattr__(self, "category", Category(self.category))

    def __str__(self) -> str:
        return f"score {self.category.label}"


@dataclass(frozen=True)
class Reroll:
    """Reroll every die whose bit is clear; bit i set keeps die i of the sorted hand."""

    keep_mask: int

    def __post_init__(self) -> None:
        if not 0 <= self.keep_mask < KEEP_ALL_MASK:
            raise InvalidState(f"keep_mask must be in [0, {KEEP_ALL_MASK}), got {self.keep_mask}")

    def kept(self, dice: DiceState) -> tuple[int, ...]:
        return tuple(f for i, f in enumerate(dice.faces) if self.keep_mask & (1 << i))

    def __str__(self) -> str:
        bits = "".join("K" if self.keep_mask & (1 << i) else "r" for i in range(5))
        return f"reroll (keep {bits})"


Action = Union[ScoreCategory, Reroll]


class Advisor:
    """Answers best-action queries from a solved table.

    Per-hand values are recomputed from the stored per-scorecard scalars on
    each query, so an Advisor needs only the value table in memory.
    """

    def __init__(self, table: ValueTable, solver: Solver | None = None):
        self.table = table
        self.solver = solver or Solver(SolverConfig(joker_rule=table.joker_rule, workers=1), values=table.values)

    def solve(self) -> float:
        """Optimal expected final score from the empty scorecard."""
        return self.table.expected_score

    def _check(self, scorecard: ScorecardState, dice: DiceState) -> int:
        if not isinstance(scorecard, ScorecardState):
            raise InvalidState(f"expected a ScorecardState, got {type(scorecard).__name__}")
        if not isinstance(dice, DiceState):
            raise InvalidState(f"expected a DiceState, got {type(dice).__name__}")
        if scorecard.is_terminal:
            raise InvalidState("the scorecard is full; there is no action to take")
        if not is_reachable(scorecard):
            raise InvalidState(
                f"upper total {scorecard.upper_total} cannot be reached with the filled upper boxes"
            )
        return encode_scorecard(scorecard)

    def action_values(self, scorecard: ScorecardState, dice: DiceState) -> dict[Action, float]:
        """Expected remaining score of every legal action in this position."""
        index = self._check(scorecard, dice)
        hand = dice.rank
        out: dict[Action, float] = {}
        if dice.rolls_left > 0:
            keep = self.solver.keep_values(index, hand, dice.rolls_left)
            for mask in range(KEEP_ALL_MASK):
                out[Reroll(mask)] = float(keep[mask])
        for c, v in enumerate(self.solver.category_values(index, hand)):
            if np.isfinite(v):
                out[ScoreCategory(Category(c))] = float(v)
        return out

    def best_action(self, scorecard: ScorecardState, dice: DiceState) -> Action:
        """Optimal action; ties go to the lowest category id or keep mask.

        With rerolls left, keeping all five dice (standing pat) is reported as
        the best category to score now.
        """
        index = self._check(scorecard, dice)
        hand = dice.rank
        if dice.rolls_left > 0:
            keep = self.solver.keep_values(index, hand, dice.rolls_left)
            mask = int(np.argmax(keep))
            if mask != NUM_KEEP_MASKS - 1:
                return Reroll(mask)
        return ScoreCategory(Category(int(np.argmax(self.solver.category_values(index, hand)))))

    def apply_score(
        self, scorecard: ScorecardState, dice: DiceState, category: Category | int
    ) -> tuple[int, ScorecardState]:
        """Points earned (bonuses included) and the successor scorecard for writing ``category``."""
        self._check(scorecard, dice)
        category = Category(category)
        reward, successor, allowed = category_rewards(
            self.solver.tables,
            np.array([scorecard.upper_total]),
            np.array([scorecard.filled_mask]),
            np.array([int(scorecard.yahtzee)]),
            self.table.joker_rule,
        )
        hand = dice.rank
        if not allowed[category, hand, 0]:
            raise InvalidState(f"{category.label} cannot be scored with {dice.faces} on this scorecard")
        return int(reward[category, hand, 0]), decode_scorecard(int(successor[category, hand, 0]))


def solve(config: SolverConfig | None = None) -> float:
    """Solve the full game and return the optimal expected score."""
    return Solver(config).solve().expected_score


def best_action(table: ValueTable, scorecard: ScorecardState, dice: DiceState) -> Action:
    return Advisor(table).best_action(scorecard, dice)
