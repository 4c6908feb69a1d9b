"""Bijective codecs between game states and dense integer indices.

Scorecard index (mixed radix, 786,432 states):

    index = (yahtzee_status * 4096 + filled_mask) * 64 + upper_total

where ``filled_mask`` holds one bit per non-Yahtzee category (bit = category
id) and ``upper_total`` is the upper-section running total capped at 63.

Dice index (756 states): ``rank * 3 + rolls_left`` where ``rank`` is the
stars-and-bars rank of the sorted hand among the 252 five-dice multisets.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import IntEnum
from functools import lru_cache
from itertools import combinations_with_replacement
from math import comb
from typing import Iterable

import numpy as np

from .config import CATEGORY_COUNT, MAX_REROLLS, NUM_DICE, NUM_FACES, UPPER_SCORE_CAP
from .errors import InvalidState, InvariantViolation
from .scoring import Category

UPPER_RADIX = UPPER_SCORE_CAP + 1  # 64
MASK_BITS = CATEGORY_COUNT - 1  # 12 non-Yahtzee categories
MASK_RADIX = 1 << MASK_BITS  # 4096
FULL_MASK = MASK_RADIX - 1
UPPER_MASK = (1 << 6) - 1
YAHTZEE_RADIX = 3
NUM_SCORECARD_STATES = UPPER_RADIX * MASK_RADIX * YAHTZEE_RADIX  # 786,432

NUM_HANDS = comb(NUM_DICE + NUM_FACES - 1, NUM_DICE)  # 252
ROLLS_RADIX = MAX_REROLLS + 1
NUM_DICE_STATES = NUM_HANDS * ROLLS_RADIX  # 756

_POPCOUNT = np.array([bin(m).count("1") for m in range(MASK_RADIX)], dtype=np.int8)


class YahtzeeStatus(IntEnum):
    UNSCORED = 0
    SCORED = 1
    SCRATCHED = 2


# ── Scorecard states ────────────────────────────────────────────────────────

@dataclass(frozen=True)
class ScorecardState:
    """Scoring progress: capped upper total, filled boxes, Yahtzee box status."""

    upper_total: int = 0
    filled_mask: int = 0
    yahtzee: YahtzeeStatus = YahtzeeStatus.UNSCORED

    def __post_init__(self) -> None:
        if not 0 <= self.upper_total <= UPPER_SCORE_CAP:
            raise InvalidState(f"upper_total must be in [0, {UPPER_SCORE_CAP}], got {self.upper_total}")
        if not 0 <= self.filled_mask <= FULL_MASK:
            raise InvalidState(f"filled_mask must be in [0, {FULL_MASK}], got {self.filled_mask}")
        try:
            object.__setattr__(self, "yahtzee", YahtzeeStatus(self.yahtzee))
        except ValueError:
            raise InvalidState(f"Unknown Yahtzee status: {self.yahtzee!r}") from None

    @classmethod
    def empty(cls) -> ScorecardState:
        return cls()

    @classmethod
    def from_filled(
        cls,
        filled: Iterable[Category | int],
        upper_total: int = 0,
        yahtzee: YahtzeeStatus = YahtzeeStatus.UNSCORED,
    ) -> ScorecardState:
        """Build a scorecard from a list of filled non-Yahtzee categories."""
        mask = 0
        for c in filled:
            c = Category(c)
            if c == Category.YAHTZEE:
                raise InvalidState("The Yahtzee box is described by its status, not the filled list")
            mask |= 1 << c
        return cls(upper_total=min(upper_total, UPPER_SCORE_CAP), filled_mask=mask, yahtzee=yahtzee)

    @property
    def upper_mask(self) -> int:
        return self.filled_mask & UPPER_MASK

    @property
    def fill_level(self) -> int:
        return int(_POPCOUNT[self.filled_mask]) + (self.yahtzee != YahtzeeStatus.UNSCORED)

    @property
    def is_terminal(self) -> bool:
        return self.fill_level == CATEGORY_COUNT

    def is_open(self, category: Category | int) -> bool:
        if category == Category.YAHTZEE:
            return self.yahtzee == YahtzeeStatus.UNSCORED
        return not self.filled_mask & (1 << category)

    def open_categories(self) -> list[Category]:
        return [c for c in Category if self.is_open(c)]

    def apply(self, category: Category | int, score: int) -> ScorecardState:
        """Return the successor after writing ``score`` into ``category``."""
        category = Category(category)
        if not self.is_open(category):
            raise InvalidState(f"{category.label} is already filled")
        if category == Category.YAHTZEE:
            status = YahtzeeStatus.SCORED if score > 0 else YahtzeeStatus.SCRATCHED
            return ScorecardState(self.upper_total, self.filled_mask, status)
        upper_total = self.upper_total
        if category.is_upper:
            upper_total = min(upper_total + score, UPPER_SCORE_CAP)
        return ScorecardState(upper_total, self.filled_mask | (1 << category), self.yahtzee)


def encode_scorecard(state: ScorecardState) -> int:
    return (int(state.yahtzee) * MASK_RADIX + state.filled_mask) * UPPER_RADIX + state.upper_total


def decode_scorecard(index: int) -> ScorecardState:
    if not 0 <= index < NUM_SCORECARD_STATES:
        raise InvariantViolation(f"scorecard index {index} outside [0, {NUM_SCORECARD_STATES})")
    rest, upper_total = divmod(int(index), UPPER_RADIX)
    yahtzee, filled_mask = divmod(rest, MASK_RADIX)
    return ScorecardState(upper_total, filled_mask, YahtzeeStatus(yahtzee))


def encode_scorecards(upper_total, filled_mask, yahtzee) -> np.ndarray:
    """Vectorized encode; arguments broadcast against each other."""
    upper_total = np.asarray(upper_total, dtype=np.int64)
    filled_mask = np.asarray(filled_mask, dtype=np.int64)
    yahtzee = np.asarray(yahtzee, dtype=np.int64)
    return (yahtzee * MASK_RADIX + filled_mask) * UPPER_RADIX + upper_total


def decode_scorecards(indices) -> tuple[np.ndarray, np.ndarray, np.ndarray]:
    """Vectorized decode into (upper_total, filled_mask, yahtzee) int64 arrays."""
    indices = np.asarray(indices, dtype=np.int64)
    if indices.size and (indices.min() < 0 or indices.max() >= NUM_SCORECARD_STATES):
        bad = indices[(indices < 0) | (indices >= NUM_SCORECARD_STATES)]
        raise InvariantViolation(f"scorecard indices outside [0, {NUM_SCORECARD_STATES}): {bad[:8].tolist()}")
    upper_total = indices % UPPER_RADIX
    rest = indices // UPPER_RADIX
    return upper_total, rest % MASK_RADIX, rest // MASK_RADIX


EMPTY_SCORECARD_INDEX = encode_scorecard(ScorecardState.empty())


# ── Fill levels and reachability ────────────────────────────────────────────

@lru_cache(maxsize=None)
def fill_levels() -> np.ndarray:
    """Fill level (categories resolved, 0..13) of every scorecard index."""
    _, mask, yahtzee = decode_scorecards(np.arange(NUM_SCORECARD_STATES))
    levels = (_POPCOUNT[mask] + (yahtzee != YahtzeeStatus.UNSCORED)).astype(np.int8)
    levels.flags.writeable = False
    return levels


@lru_cache(maxsize=None)
def reachable_upper_totals() -> np.ndarray:
    """Table [upper_mask, total]: is the capped total achievable with exactly those upper boxes filled."""
    table = np.zeros((UPPER_MASK + 1, UPPER_RADIX), dtype=bool)
    for upper_mask in range(UPPER_MASK + 1):
        totals = {0}
        for face in range(1, NUM_FACES + 1):
            if upper_mask & (1 << (face - 1)):
                totals = {min(t + k * face, UPPER_SCORE_CAP) for t in totals for k in range(NUM_DICE + 1)}
        table[upper_mask, sorted(totals)] = True
    table.flags.writeable = False
    return table


@lru_cache(maxsize=None)
def reachable_states() -> np.ndarray:
    """Mask over every scorecard index: can the state occur in a real game."""
    upper, mask, _ = decode_scorecards(np.arange(NUM_SCORECARD_STATES))
    reachable = reachable_upper_totals()[mask & UPPER_MASK, upper]
    reachable.flags.writeable = False
    return reachable


def is_reachable(state: ScorecardState) -> bool:
    return bool(reachable_upper_totals()[state.upper_mask, state.upper_total])


def states_at_level(level: int, reachable_only: bool = True) -> np.ndarray:
    """Sorted scorecard indices with the given fill level."""
    selected = fill_levels() == level
    if reachable_only:
        selected &= reachable_states()
    return np.nonzero(selected)[0]


# ── Dice states ─────────────────────────────────────────────────────────────

@lru_cache(maxsize=None)
def all_hands() -> np.ndarray:
    """All 252 sorted 5-dice hands in rank (lexicographic) order, shape (252, 5)."""
    hands = np.array(list(combinations_with_replacement(range(1, NUM_FACES + 1), NUM_DICE)), dtype=np.int64)
    if hands.shape != (NUM_HANDS, NUM_DICE):
        raise InvariantViolation(f"enumerated {hands.shape[0]} hands, expected {NUM_HANDS}")
    hands.flags.writeable = False
    return hands


def rank_dice(faces: Iterable[int]) -> int:
    """Stars-and-bars rank of a hand among all sorted 5-dice multisets.

    Counts the sorted hands that precede ``faces`` lexicographically: at each
    position, every smaller admissible value v contributes the number of
    non-decreasing tails over [v, 6], C((7 - v) + remaining - 1, remaining).
    """
    faces = sorted(faces)
    if len(faces) != NUM_DICE or faces[0] < 1 or faces[-1] > NUM_FACES:
        raise InvariantViolation(f"not a hand of {NUM_DICE} dice in 1..{NUM_FACES}: {tuple(faces)}")
    rank = 0
    previous = 1
    for position, face in enumerate(faces):
        remaining = NUM_DICE - position - 1
        for v in range(previous, face):
            symbols = NUM_FACES - v + 1
            rank += comb(symbols + remaining - 1, remaining)
        previous = face
    return rank


def unrank_dice(rank: int) -> tuple[int, ...]:
    if not 0 <= rank < NUM_HANDS:
        raise InvariantViolation(f"hand rank {rank} outside [0, {NUM_HANDS})")
    return tuple(int(f) for f in all_hands()[rank])


@dataclass(frozen=True)
class DiceState:
    """A hand (stored sorted) and the rerolls left this turn."""

    faces: tuple[int, ...]
    rolls_left: int = MAX_REROLLS

    def __post_init__(self) -> None:
        faces = tuple(sorted(int(f) for f in self.faces))
        if len(faces) != NUM_DICE or any(not 1 <= f <= NUM_FACES for f in faces):
            raise InvalidState(f"a hand is {NUM_DICE} dice with faces 1..{NUM_FACES}, got {self.faces!r}")
        if not 0 <= self.rolls_left <= MAX_REROLLS:
            raise InvalidState(f"rolls_left must be in [0, {MAX_REROLLS}], got {self.rolls_left}")
        object.__setattr__(self, "faces", faces)

    @classmethod
    def from_faces(cls, faces: Iterable[int], rolls_left: int = MAX_REROLLS) -> DiceState:
        return cls(tuple(faces), rolls_left)

    @property
    def rank(self) -> int:
        return rank_dice(self.faces)

    @property
    def is_yahtzee(self) -> bool:
        return self.faces[0] == self.faces[-1]


def encode_dice(state: DiceState) -> int:
    return state.rank * ROLLS_RADIX + state.rolls_left


def decode_dice(index: int) -> DiceState:
    if not 0 <= index < NUM_DICE_STATES:
        raise InvariantViolation(f"dice index {index} outside [0, {NUM_DICE_STATES})")
    rank, rolls_left = divmod(int(index), ROLLS_RADIX)
    return DiceState(unrank_dice(rank), rolls_left)
