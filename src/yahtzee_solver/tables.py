"""Solved state values and their binary file format.

Layout: 16-byte little-endian header (magic, version, state count, joker rule
id as four u32) followed by float64[786,432], one expected remaining score per
scorecard index. Loading memory-maps the data portion read-only.
"""

from __future__ import annotations

import struct
from dataclasses import dataclass
from pathlib import Path

import numpy as np

from .config import HEADER_SIZE, STATE_FILE_MAGIC, STATE_FILE_VERSION, JokerRule
from .logger import SolverLogger
from .states import EMPTY_SCORECARD_INDEX, NUM_SCORECARD_STATES, ScorecardState, encode_scorecard

logger = SolverLogger(__name__).get_logger()

_HEADER = struct.Struct("<IIII")
_DTYPE = np.dtype("<f8")


@dataclass(frozen=True)
class ValueTable:
    """Expected remaining score at turn start for every scorecard index."""

    values: np.ndarray
    joker_rule: JokerRule = JokerRule.FORCED

    def __post_init__(self) -> None:
        if self.values.shape != (NUM_SCORECARD_STATES,):
            raise ValueError(f"expected {NUM_SCORECARD_STATES} state values, got shape {self.values.shape}")
        view = self.values.view()
        view.flags.writeable = False
        object.__setattr__(self, "values", view)
        object.__setattr__(self, "joker_rule", JokerRule(self.joker_rule))

    def value(self, scorecard: ScorecardState) -> float:
        return float(self.values[encode_scorecard(scorecard)])

    @property
    def expected_score(self) -> float:
        """Optimal expected final score of a whole game."""
        return float(self.values[EMPTY_SCORECARD_INDEX])


def save_value_table(table: ValueTable, path: str | Path) -> Path:
    """Write the table atomically (temp file, then rename)."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    tmp = path.with_suffix(path.suffix + ".tmp")
    with open(tmp, "wb") as f:
        f.write(_HEADER.pack(STATE_FILE_MAGIC, STATE_FILE_VERSION, NUM_SCORECARD_STATES, int(table.joker_rule)))
        f.write(np.ascontiguousarray(table.values, dtype=_DTYPE).tobytes())
    tmp.replace(path)
    logger.info(f"Saved {NUM_SCORECARD_STATES} state values to {path}")
    return path


def load_value_table(path: str | Path) -> ValueTable:
    """Load a table via numpy memmap, validating the header and file size."""
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"State file not found: {path}")

    expected_size = HEADER_SIZE + NUM_SCORECARD_STATES * _DTYPE.itemsize
    actual_size = path.stat().st_size
    if actual_size != expected_size:
        raise ValueError(f"File size mismatch: expected {expected_size}, got {actual_size}")

    with open(path, "rb") as f:
        header = f.read(HEADER_SIZE)

    magic, version, total_states, rule_id = _HEADER.unpack(header)
    if magic != STATE_FILE_MAGIC:
        raise ValueError(f"Invalid magic: 0x{magic:08x}")
    if version != STATE_FILE_VERSION:
        raise ValueError(f"Unsupported version: {version}")
    if total_states != NUM_SCORECARD_STATES:
        raise ValueError(f"State count mismatch: expected {NUM_SCORECARD_STATES}, got {total_states}")
    try:
        joker_rule = JokerRule(rule_id)
    except ValueError:
        raise ValueError(f"Unknown joker rule id: {rule_id}") from None

    values = np.memmap(path, dtype=_DTYPE, mode="r", offset=HEADER_SIZE, shape=(NUM_SCORECARD_STATES,))
    return ValueTable(values, joker_rule)
