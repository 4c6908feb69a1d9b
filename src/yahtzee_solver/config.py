"""Single source of truth for game constants, table file format, and solver settings."""
from __future__ import annotations

import os
from dataclasses import dataclass
from enum import IntEnum
from pathlib import Path

# ── Game constants ──────────────────────────────────────────────────────────
NUM_DICE = 5
NUM_FACES = 6
MAX_REROLLS = 2
CATEGORY_COUNT = 13

UPPER_SCORE_CAP = 63
UPPER_BONUS = 35
YAHTZEE_BONUS = 100

# ── Binary format constants (state value tables) ────────────────────────────
STATE_FILE_MAGIC = 0x59485A53
STATE_FILE_VERSION = 1
HEADER_SIZE = 16  # bytes: magic, version, state count, joker rule (4 x u32)

# ── Solver defaults ─────────────────────────────────────────────────────────
DEFAULT_WORKERS = min(8, os.cpu_count() or 1)
DEFAULT_CHUNK_SIZE = 1024

ENV_WORKERS = "YAHTZEE_SOLVER_WORKERS"
ENV_CHUNK_SIZE = "YAHTZEE_SOLVER_CHUNK_SIZE"


class JokerRule(IntEnum):
    """How a Yahtzee rolled after the Yahtzee box is filled may be scored.

    NONE: first-Yahtzee-only. No 100-point bonus and no joker values.
    FORCED: official rules. Bonus when the box holds 50; the matching upper
        box must be used if open, else any open lower box (Full House and the
        straights at full value), else any open upper box.
    FREE_CHOICE: bonus and joker values as FORCED, but any open box may be used.
    """

    NONE = 0
    FORCED = 1
    FREE_CHOICE = 2


@dataclass(frozen=True)
class SolverConfig:
    """Settings for one backward-induction run."""

    joker_rule: JokerRule = JokerRule.FORCED
    workers: int = DEFAULT_WORKERS
    chunk_size: int = DEFAULT_CHUNK_SIZE

    def __post_init__(self) -> None:
        object.__setattr__(self, "joker_rule", JokerRule(self.joker_rule))
        if self.workers < 1:
            raise ValueError(f"workers must be >= 1, got {self.workers}")
        if self.chunk_size < 1:
            raise ValueError(f"chunk_size must be >= 1, got {self.chunk_size}")

    @classmethod
    def from_env(cls, joker_rule: JokerRule = JokerRule.FORCED) -> SolverConfig:
        """Build a config, letting environment variables override the defaults."""
        workers = int(os.environ.get(ENV_WORKERS, DEFAULT_WORKERS))
        chunk_size = int(os.environ.get(ENV_CHUNK_SIZE, DEFAULT_CHUNK_SIZE))
        return cls(joker_rule=joker_rule, workers=workers, chunk_size=chunk_size)


# ── Path resolution ─────────────────────────────────────────────────────────
# Layout (base_path defaults to the current directory):
#   data/state_values_<joker rule>.bin


def data_dir(base_path: str | Path = ".") -> Path:
    return Path(base_path) / "data"


def default_table_path(base_path: str | Path = ".", joker_rule: JokerRule = JokerRule.FORCED) -> Path:
    """Return the state value file path for a given joker rule."""
    return data_dir(base_path) / f"state_values_{JokerRule(joker_rule).name.lower()}.bin"
