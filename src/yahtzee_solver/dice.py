"""Dice set enumeration and keep-multiset transition probabilities.

Enumerates all C(10,5)=252 sorted 5-dice hands from {1..6} (in the rank order
of ``states.rank_dice``) and builds the dense keep table: for each of the 462
multisets of 0-5 kept dice, the probability of every resulting hand after the
remaining dice are rerolled.
"""

from __future__ import annotations

from dataclasses import dataclass
from functools import lru_cache
from itertools import combinations_with_replacement
from math import factorial

import numpy as np

from .config import NUM_DICE, NUM_FACES
from .errors import InvariantViolation
from .logger import SolverLogger
from .states import NUM_HANDS, all_hands

logger = SolverLogger(__name__).get_logger()

NUM_KEEP_MULTISETS = 462
NUM_KEEP_MASKS = 1 << NUM_DICE  # 32
KEEP_ALL_MASK = NUM_KEEP_MASKS - 1
PROBABILITY_TOLERANCE = 1e-9

_KEY_WEIGHTS = NUM_FACES ** np.arange(NUM_FACES)  # base-6 key over face counts


def counts_key(counts) -> int:
    """Base-6 key of a face-count vector (each count is at most 5)."""
    return int(np.dot(np.asarray(counts, dtype=np.int64), _KEY_WEIGHTS))


def build_all_dice_sets() -> tuple[np.ndarray, np.ndarray]:
    """All 252 sorted hands and their face counts.

    Returns:
        hands: (252, 5) int64 array of sorted dice, row = hand rank
        counts: (252, 6) int64 face counts (column 0 = face 1)
    """
    hands = np.array(all_hands())
    counts = np.zeros((NUM_HANDS, NUM_FACES), dtype=np.int64)
    for face in range(1, NUM_FACES + 1):
        counts[:, face - 1] = (hands == face).sum(axis=1)
    return hands, counts


def roll_distribution(n: int) -> list[tuple[tuple[int, ...], float]]:
    """Every outcome multiset of rolling ``n`` dice as (face counts, probability)."""
    if not 0 <= n <= NUM_DICE:
        raise InvariantViolation(f"cannot roll {n} dice")
    outcomes = []
    for roll in combinations_with_replacement(range(NUM_FACES), n):
        counts = [0] * NUM_FACES
        for f in roll:
            counts[f] += 1
        denom = 1
        for c in counts:
            denom *= factorial(c)
        outcomes.append((tuple(counts), factorial(n) / denom / NUM_FACES**n))
    return outcomes


@dataclass
class KeepTable:
    """Dense keep-multiset transition table.

    ``probabilities[k, h]`` is P(hand h | keep multiset k, reroll the rest).
    ``mask_to_keep[h, m]`` maps keep mask m on hand h (bit i set = die i kept)
    to its keep id. ``unique_keep_ids[h]`` lists the distinct keep ids reachable
    from hand h, padded with the keep-all id to a fixed width of 32.
    """

    keep_counts: np.ndarray
    probabilities: np.ndarray
    mask_to_keep: np.ndarray
    unique_keep_ids: np.ndarray
    unique_count: np.ndarray
    keep_to_mask: np.ndarray
    first_roll: np.ndarray

    def keep_id(self, hand_rank: int, keep_mask: int) -> int:
        return int(self.mask_to_keep[hand_rank, keep_mask])

    def distribution(self, hand_rank: int, keep_mask: int) -> np.ndarray:
        """Outcome probabilities over the 252 hands for one (hand, keep mask)."""
        return self.probabilities[self.keep_id(hand_rank, keep_mask)]


def _enumerate_keeps() -> tuple[np.ndarray, dict[int, int]]:
    keep_counts = []
    for f1 in range(6):
        for f2 in range(6 - f1):
            for f3 in range(6 - f1 - f2):
                for f4 in range(6 - f1 - f2 - f3):
                    for f5 in range(6 - f1 - f2 - f3 - f4):
                        for f6 in range(6 - f1 - f2 - f3 - f4 - f5):
                            keep_counts.append([f1, f2, f3, f4, f5, f6])
    keep_counts = np.array(keep_counts, dtype=np.int64)
    if len(keep_counts) != NUM_KEEP_MULTISETS:
        raise InvariantViolation(f"enumerated {len(keep_counts)} keeps, expected {NUM_KEEP_MULTISETS}")
    lookup = {counts_key(kc): ki for ki, kc in enumerate(keep_counts)}
    return keep_counts, lookup


def validate_keep_table(table: KeepTable, counts: np.ndarray) -> None:
    """Raise InvariantViolation unless every keep row is a distribution over hands containing the keep."""
    sums = table.probabilities.sum(axis=1)
    bad = np.nonzero(np.abs(sums - 1.0) > PROBABILITY_TOLERANCE)[0]
    if len(bad):
        raise InvariantViolation(f"keep {int(bad[0])} probabilities sum to {sums[bad[0]]!r}")
    if (table.probabilities < 0).any():
        ki = int(np.nonzero((table.probabilities < 0).any(axis=1))[0][0])
        raise InvariantViolation(f"keep {ki} has a negative probability")
    # contains[k, h]: hand h holds at least the kept dice of k
    contains = (counts[None, :, :] >= table.keep_counts[:, None, :]).all(axis=2)
    leak = (table.probabilities > 0) & ~contains
    if leak.any():
        ki, hi = np.argwhere(leak)[0]
        raise InvariantViolation(f"keep {int(ki)} reaches hand {int(hi)} that does not contain it")


def build_keep_table() -> KeepTable:
    """Build the keep table in three steps.

    1: enumerate the 462 keep multisets as face-count vectors
    2: P(keep -> hand) from the multinomial distribution of the rerolled dice
    3: per hand, map each of the 32 keep masks to its keep id and dedup
    """
    hands, counts = build_all_dice_sets()
    hand_lookup = {counts_key(c): h for h, c in enumerate(counts)}

    # 1: keeps
    keep_counts, keep_lookup = _enumerate_keeps()

    # 2: probabilities
    distributions = [roll_distribution(n) for n in range(NUM_DICE + 1)]
    probabilities = np.zeros((NUM_KEEP_MULTISETS, NUM_HANDS), dtype=np.float64)
    for ki, kc in enumerate(keep_counts):
        n = NUM_DICE - int(kc.sum())
        for outcome, p in distributions[n]:
            target = hand_lookup[counts_key(kc + np.asarray(outcome))]
            probabilities[ki, target] += p

    # 3: masks
    mask_to_keep = np.zeros((NUM_HANDS, NUM_KEEP_MASKS), dtype=np.int64)
    unique_keep_ids = np.zeros((NUM_HANDS, NUM_KEEP_MASKS), dtype=np.int64)
    keep_to_mask = np.zeros((NUM_HANDS, NUM_KEEP_MASKS), dtype=np.int64)
    unique_count = np.zeros(NUM_HANDS, dtype=np.int64)
    for h in range(NUM_HANDS):
        seen: list[int] = []
        for mask in range(NUM_KEEP_MASKS):
            kc = np.zeros(NUM_FACES, dtype=np.int64)
            for i in range(NUM_DICE):
                if mask & (1 << i):
                    kc[hands[h, i] - 1] += 1
            ki = keep_lookup[counts_key(kc)]
            mask_to_keep[h, mask] = ki
            if ki not in seen:
                keep_to_mask[h, len(seen)] = mask
                seen.append(ki)
        unique_count[h] = len(seen)
        keep_all = mask_to_keep[h, KEEP_ALL_MASK]
        unique_keep_ids[h] = seen + [keep_all] * (NUM_KEEP_MASKS - len(seen))
        keep_to_mask[h, len(seen):] = KEEP_ALL_MASK

    table = KeepTable(
        keep_counts=keep_counts,
        probabilities=probabilities,
        mask_to_keep=mask_to_keep,
        unique_keep_ids=unique_keep_ids,
        unique_count=unique_count,
        keep_to_mask=keep_to_mask,
        first_roll=probabilities[keep_lookup[0]].copy(),
    )
    validate_keep_table(table, counts)
    logger.debug(f"Built keep table: {NUM_KEEP_MULTISETS} keeps, {int(unique_count.sum())} (hand, keep) pairs")
    return table


@lru_cache(maxsize=None)
def keep_table() -> KeepTable:
    """Process-wide keep table, built on first use."""
    return build_keep_table()
