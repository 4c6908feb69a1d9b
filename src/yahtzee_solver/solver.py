"""Backward-induction solver for the solitaire Yahtzee MDP.

The stored result is one scalar per scorecard state: the expected remaining
score at the start of a turn, before the first roll. Levels are solved from 12
filled categories down to 0; within a level, states are independent and are
solved in chunks on a thread pool. For a chunk of B states the dice sub-MDP is
solved as dense arrays over the 252 hands:

    V0[h]  = max_c  reward(c, h) + value[successor(c, h)]
    V1[h]  = max_k  sum_h' P[k, h'] * V0[h']      (k: keeps reachable from h)
    V2[h]  = max_k  sum_h' P[k, h'] * V1[h']
    value  = sum_h  first_roll[h] * V2[h]

Keeping all five dice is one of the keeps, so the max covers standing pat.
"""

from __future__ import annotations

import time
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass

import numpy as np

from .config import (
    CATEGORY_COUNT,
    MAX_REROLLS,
    UPPER_BONUS,
    UPPER_SCORE_CAP,
    YAHTZEE_BONUS,
    JokerRule,
    SolverConfig,
)
from .dice import NUM_KEEP_MASKS, KeepTable, build_all_dice_sets, keep_table
from .errors import ComputationError, InvariantViolation
from .logger import SolverLogger
from .scoring import YAHTZEE_SCORE, Category, build_joker_score_table, build_score_table
from .states import (
    MASK_BITS,
    NUM_HANDS,
    NUM_SCORECARD_STATES,
    YahtzeeStatus,
    decode_scorecards,
    encode_scorecards,
    fill_levels,
    states_at_level,
)
from .tables import ValueTable

logger = SolverLogger(__name__).get_logger()

_UPPER = range(Category.ACES, Category.SIXES + 1)
_LOWER = range(Category.THREE_OF_A_KIND, Category.CHANCE + 1)


@dataclass
class SolverTables:
    """Everything the recurrence reads that does not depend on the scorecard."""

    hands: np.ndarray  # (252, 5) sorted dice
    counts: np.ndarray  # (252, 6) face counts
    scores: np.ndarray  # (252, 13) plain category scores
    joker_scores: np.ndarray  # (252, 13) scores with joker values on Yahtzee hands
    is_yahtzee: np.ndarray  # (252,) bool
    yahtzee_face: np.ndarray  # (252,) face index 0..5 of a Yahtzee hand, -1 otherwise
    keep: KeepTable


def build_solver_tables() -> SolverTables:
    hands, counts = build_all_dice_sets()
    scores = build_score_table(counts)
    is_yahtzee = counts.max(axis=1) == 5
    return SolverTables(
        hands=hands,
        counts=counts,
        scores=scores,
        joker_scores=build_joker_score_table(scores, counts),
        is_yahtzee=is_yahtzee,
        yahtzee_face=np.where(is_yahtzee, counts.argmax(axis=1), -1),
        keep=keep_table(),
    )


def category_rewards(
    tables: SolverTables,
    upper: np.ndarray,
    mask: np.ndarray,
    yahtzee: np.ndarray,
    joker_rule: JokerRule,
) -> tuple[np.ndarray, np.ndarray, np.ndarray]:
    """Immediate reward, successor index and legality of every (category, hand, state).

    ``upper``, ``mask`` and ``yahtzee`` are the decoded fields of B scorecards.
    Returns three (13, 252, B) arrays; the reward is -inf where the category
    may not be used.
    """
    upper = np.asarray(upper, dtype=np.int64)
    mask = np.asarray(mask, dtype=np.int64)
    yahtzee = np.asarray(yahtzee, dtype=np.int64)
    batch = len(upper)
    shape = (CATEGORY_COUNT, NUM_HANDS, batch)

    open_cat = np.empty((CATEGORY_COUNT, batch), dtype=bool)
    for c in range(MASK_BITS):
        open_cat[c] = (mask >> c) & 1 == 0
    open_cat[Category.YAHTZEE] = yahtzee == YahtzeeStatus.UNSCORED

    is_yahtzee = tables.is_yahtzee[:, None]
    if joker_rule == JokerRule.NONE:
        joker = np.zeros((NUM_HANDS, batch), dtype=bool)
        bonus = np.zeros((NUM_HANDS, batch))
    else:
        joker = is_yahtzee & (yahtzee != YahtzeeStatus.UNSCORED)[None, :]
        bonus = np.where(is_yahtzee & (yahtzee == YahtzeeStatus.SCORED)[None, :], float(YAHTZEE_BONUS), 0.0)

    allowed = np.broadcast_to(open_cat[:, None, :], shape).copy()
    if joker_rule == JokerRule.FORCED:
        face = tables.yahtzee_face
        matching_open = open_cat[np.maximum(face, 0)] & (face >= 0)[:, None]
        lower_open = open_cat[_LOWER.start:_LOWER.stop].any(axis=0)
        forced = np.empty(shape, dtype=bool)
        for c in _UPPER:
            forced[c] = np.where(matching_open, (face == c)[:, None], ~lower_open[None, :])
        forced[_LOWER.start:] = ~matching_open[None]
        allowed &= ~joker[None] | forced

    score = np.where(joker[None], tables.joker_scores.T[:, :, None], tables.scores.T[:, :, None])
    reward = score.astype(np.float64) + bonus[None]
    successor = np.empty(shape, dtype=np.int64)

    for c in _UPPER:
        raw = upper[None, :] + score[c]
        crossed = (upper[None, :] < UPPER_SCORE_CAP) & (raw >= UPPER_SCORE_CAP)
        reward[c] += np.where(crossed, float(UPPER_BONUS), 0.0)
        successor[c] = encode_scorecards(np.minimum(raw, UPPER_SCORE_CAP), mask | (1 << c), yahtzee)
    for c in _LOWER:
        successor[c] = encode_scorecards(upper, mask | (1 << c), yahtzee)[None, :]
    status = np.where(score[Category.YAHTZEE] >= YAHTZEE_SCORE, YahtzeeStatus.SCORED, YahtzeeStatus.SCRATCHED)
    successor[Category.YAHTZEE] = encode_scorecards(upper, mask, status)

    reward[~allowed] = -np.inf
    return reward, successor, allowed


def score_candidates(
    tables: SolverTables,
    values: np.ndarray,
    upper: np.ndarray,
    mask: np.ndarray,
    yahtzee: np.ndarray,
    joker_rule: JokerRule,
) -> np.ndarray:
    """(13, 252, B) value of writing each category now: reward plus successor value, -inf where illegal."""
    reward, successor, _ = category_rewards(tables, upper, mask, yahtzee, joker_rule)
    return reward + values[successor]


class Solver:
    """Fills the per-scorecard value array by backward induction.

    Pass ``values`` to wrap an already solved array (for queries); otherwise
    the solver starts from terminal states only.
    """

    def __init__(
        self,
        config: SolverConfig | None = None,
        tables: SolverTables | None = None,
        values: np.ndarray | None = None,
    ):
        self.config = config or SolverConfig()
        self.tables = tables or build_solver_tables()
        if values is None:
            self._values = np.zeros(NUM_SCORECARD_STATES, dtype=np.float64)
            self._solved = fill_levels() == CATEGORY_COUNT
        else:
            if values.shape != (NUM_SCORECARD_STATES,):
                raise InvariantViolation(f"value array has shape {values.shape}, expected ({NUM_SCORECARD_STATES},)")
            self._values = values
            self._solved = np.ones(NUM_SCORECARD_STATES, dtype=bool)

    @property
    def values(self) -> np.ndarray:
        return self._values

    def is_solved(self, index: int) -> bool:
        return bool(self._solved[index])

    # ── Per-chunk recurrence ────────────────────────────────────────────────

    def _reroll_layer(self, v: np.ndarray) -> np.ndarray:
        """One reroll: best keep value per hand, given the (252, B) values after it."""
        expected = self.tables.keep.probabilities @ v  # (462, B)
        ids = self.tables.keep.unique_keep_ids
        best = expected[ids[:, 0]]
        for j in range(1, NUM_KEEP_MASKS):
            np.maximum(best, expected[ids[:, j]], out=best)
        return best

    def _turn_layers(self, indices: np.ndarray) -> tuple[np.ndarray, list[np.ndarray]]:
        """Category candidates (13, 252, B) and the hand values for rolls_left 0..2."""
        upper, mask, yahtzee = decode_scorecards(indices)
        reward, successor, allowed = category_rewards(self.tables, upper, mask, yahtzee, self.config.joker_rule)

        stuck = ~allowed.any(axis=0)
        if stuck.any():
            hand, b = np.argwhere(stuck)[0]
            raise InvariantViolation(f"no category can be scored with hand {int(hand)} in state {int(indices[b])}")
        if not self._solved[successor[allowed]].all():
            pending = ~self._solved[successor] & allowed
            raise InvariantViolation(
                f"state {int(indices[np.argwhere(pending)[0][2]])} depends on unsolved state "
                f"{int(successor[pending][0])}"
            )

        candidates = reward + self._values[successor]
        layers = [candidates.max(axis=0)]
        for _ in range(MAX_REROLLS):
            layers.append(self._reroll_layer(layers[-1]))
        return candidates, layers

    def _solve_chunk(self, indices: np.ndarray) -> np.ndarray:
        _, layers = self._turn_layers(indices)
        return self.tables.keep.first_roll @ layers[-1]

    # ── Level sweep ─────────────────────────────────────────────────────────

    def solve_states(self, indices, pool: ThreadPoolExecutor | None = None) -> np.ndarray:
        """Solve a batch of scorecard states whose successors are already solved."""
        indices = np.asarray(indices, dtype=np.int64)
        if indices.size == 0:
            return np.zeros(0)
        size = self.config.chunk_size
        chunks = [indices[i:i + size] for i in range(0, len(indices), size)]
        if pool is None or len(chunks) == 1:
            results = [self._solve_chunk(chunk) for chunk in chunks]
        else:
            results = list(pool.map(self._solve_chunk, chunks))
        solved = np.concatenate(results)

        bad = ~np.isfinite(solved) | (solved < 0)
        if bad.any():
            first = int(np.argmax(bad))
            raise ComputationError(f"state {int(indices[first])} solved to {solved[first]!r}")

        self._values[indices] = solved
        self._solved[indices] = True
        return solved

    def solve(self) -> ValueTable:
        """Solve every reachable scorecard state, level by level from the end of the game."""
        logger.info(
            f"Solving with joker rule {self.config.joker_rule.name}, "
            f"{self.config.workers} workers, chunk size {self.config.chunk_size}"
        )
        t0 = time.time()
        with ThreadPoolExecutor(max_workers=self.config.workers) as pool:
            for level in range(CATEGORY_COUNT - 1, -1, -1):
                t_level = time.time()
                indices = states_at_level(level)
                self.solve_states(indices, pool)
                logger.info(f"Level {level:2d}: {len(indices):7d} states in {time.time() - t_level:.2f}s")
        logger.info(f"Solved in {time.time() - t0:.1f}s, expected score {self._values[0]:.4f}")
        return ValueTable(self._values, self.config.joker_rule)

    # ── Per-state queries ───────────────────────────────────────────────────

    def dice_values(self, index: int) -> np.ndarray:
        """(3, 252) values of every hand for rolls_left 0, 1, 2 in one scorecard state."""
        _, layers = self._turn_layers(np.array([index], dtype=np.int64))
        return np.stack([layer[:, 0] for layer in layers])

    def category_values(self, index: int, hand_rank: int) -> np.ndarray:
        """(13,) value of scoring each category with the given hand, -inf where illegal."""
        candidates, _ = self._turn_layers(np.array([index], dtype=np.int64))
        return candidates[:, hand_rank, 0]

    def keep_values(self, index: int, hand_rank: int, rolls_left: int) -> np.ndarray:
        """(32,) value of each keep mask on the given hand with ``rolls_left`` rerolls available."""
        if not 1 <= rolls_left <= MAX_REROLLS:
            raise InvariantViolation(f"keep values need 1..{MAX_REROLLS} rolls left, got {rolls_left}")
        _, layers = self._turn_layers(np.array([index], dtype=np.int64))
        expected = self.tables.keep.probabilities @ layers[rolls_left - 1][:, 0]
        return expected[self.tables.keep.mask_to_keep[hand_rank]]
