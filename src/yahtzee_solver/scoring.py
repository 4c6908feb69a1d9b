"""Yahtzee scoring rules: 13 categories.

All kernels operate on face counts (length 6, index 0 = face 1). Scores here
are the plain rules table; the upper bonus, the Yahtzee bonus and joker values
are applied by the scorecard transition in the solver.
"""

from __future__ import annotations

from enum import IntEnum
from typing import Sequence

import numpy as np
from numba import njit

from .config import NUM_DICE, NUM_FACES
from .errors import InvariantViolation


class Category(IntEnum):
    ACES = 0
    TWOS = 1
    THREES = 2
    FOURS = 3
    FIVES = 4
    SIXES = 5
    THREE_OF_A_KIND = 6
    FOUR_OF_A_KIND = 7
    FULL_HOUSE = 8
    SMALL_STRAIGHT = 9
    LARGE_STRAIGHT = 10
    CHANCE = 11
    YAHTZEE = 12

    @property
    def is_upper(self) -> bool:
        return self <= Category.SIXES

    @property
    def label(self) -> str:
        return CATEGORY_NAMES[self]


CATEGORY_NAMES = [
    "Aces", "Twos", "Threes", "Fours", "Fives", "Sixes",
    "Three of a Kind", "Four of a Kind", "Full House",
    "Small Straight", "Large Straight", "Chance", "Yahtzee",
]

UPPER_CATEGORIES = tuple(Category(c) for c in range(6))
LOWER_CATEGORIES = tuple(Category(c) for c in range(6, 12))

FULL_HOUSE_SCORE = 25
SMALL_STRAIGHT_SCORE = 30
LARGE_STRAIGHT_SCORE = 40
YAHTZEE_SCORE = 50

# Plain ints so the numba kernels see compile-time constants.
_THREE_OF_A_KIND = int(Category.THREE_OF_A_KIND)
_FOUR_OF_A_KIND = int(Category.FOUR_OF_A_KIND)
_FULL_HOUSE = int(Category.FULL_HOUSE)
_SMALL_STRAIGHT = int(Category.SMALL_STRAIGHT)
_LARGE_STRAIGHT = int(Category.LARGE_STRAIGHT)
_CHANCE = int(Category.CHANCE)
_YAHTZEE = int(Category.YAHTZEE)
_CATEGORY_COUNT = len(Category)


@njit
def category_score(counts, category):
    """Compute the score for placing a hand (as face counts) in the given category."""
    total = 0
    max_count = 0
    for f in range(6):
        total += counts[f] * (f + 1)
        if counts[f] > max_count:
            max_count = counts[f]

    if category < 6:
        return counts[category] * (category + 1)

    if category == _THREE_OF_A_KIND:
        return total if max_count >= 3 else 0

    if category == _FOUR_OF_A_KIND:
        return total if max_count >= 4 else 0

    if category == _FULL_HOUSE:
        has_three = False
        has_two = False
        for f in range(6):
            if counts[f] == 3:
                has_three = True
            elif counts[f] == 2:
                has_two = True
        return 25 if has_three and has_two else 0

    if category == _SMALL_STRAIGHT or category == _LARGE_STRAIGHT:
        run = 0
        longest = 0
        for f in range(6):
            if counts[f] > 0:
                run += 1
                if run > longest:
                    longest = run
            else:
                run = 0
        if category == _SMALL_STRAIGHT:
            return 30 if longest >= 4 else 0
        return 40 if longest >= 5 else 0

    if category == _CHANCE:
        return total

    if category == _YAHTZEE:
        return 50 if max_count == 5 else 0

    return -1


@njit
def build_score_table(all_counts):
    """Precompute scores[num_hands][13] for every hand and category."""
    n = all_counts.shape[0]
    scores = np.zeros((n, _CATEGORY_COUNT), dtype=np.int32)
    for i in range(n):
        for c in range(_CATEGORY_COUNT):
            scores[i, c] = category_score(all_counts[i], c)
    return scores


def count_faces(faces: Sequence[int]) -> np.ndarray:
    """Count occurrences of each face value. Returns array of length 6 (index 0 = face 1)."""
    if len(faces) != NUM_DICE or any(not 1 <= int(f) <= NUM_FACES for f in faces):
        raise InvariantViolation(f"not a hand of {NUM_DICE} dice in 1..{NUM_FACES}: {tuple(faces)}")
    counts = np.zeros(NUM_FACES, dtype=np.int64)
    for f in faces:
        counts[int(f) - 1] += 1
    return counts


def score_hand(faces: Sequence[int], category: Category | int) -> int:
    """Plain score for a 5-dice hand in one category."""
    return int(category_score(count_faces(faces), int(Category(category))))


def build_joker_score_table(scores: np.ndarray, all_counts: np.ndarray) -> np.ndarray:
    """Copy of the score table with joker values for the six Yahtzee hands.

    A joker scores Full House, Small Straight and Large Straight at full value;
    every other category keeps its plain score.
    """
    joker = scores.copy()
    yahtzee_rows = np.nonzero(all_counts.max(axis=1) == NUM_DICE)[0]
    if len(yahtzee_rows) != NUM_FACES:
        raise InvariantViolation(f"expected {NUM_FACES} Yahtzee hands, found {len(yahtzee_rows)}")
    joker[yahtzee_rows, Category.FULL_HOUSE] = FULL_HOUSE_SCORE
    joker[yahtzee_rows, Category.SMALL_STRAIGHT] = SMALL_STRAIGHT_SCORE
    joker[yahtzee_rows, Category.LARGE_STRAIGHT] = LARGE_STRAIGHT_SCORE
    return joker


def parse_category(name: str) -> Category:
    """Map a user-facing name ('full house', 'small-straight', 'aces', '8') to a Category."""
    key = name.strip().upper().replace("-", "_").replace(" ", "_")
    if key.isdigit() and int(key) < len(Category):
        return Category(int(key))
    try:
        return Category[key]
    except KeyError:
        raise ValueError(f"Unknown category: {name!r}") from None
