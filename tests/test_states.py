"""Tests for states.py: codec bijectivity, fill levels, reachability."""

import numpy as np
import pytest

from yahtzee_solver.errors import InvalidState, InvariantViolation
from yahtzee_solver.scoring import Category
from yahtzee_solver.states import (
    EMPTY_SCORECARD_INDEX,
    FULL_MASK,
    NUM_DICE_STATES,
    NUM_SCORECARD_STATES,
    DiceState,
    ScorecardState,
    YahtzeeStatus,
    all_hands,
    decode_dice,
    decode_scorecard,
    decode_scorecards,
    encode_dice,
    encode_scorecard,
    encode_scorecards,
    fill_levels,
    is_reachable,
    rank_dice,
    reachable_upper_totals,
    states_at_level,
    unrank_dice,
)


class TestScorecardCodec:
    def test_state_count(self):
        assert NUM_SCORECARD_STATES == 64 * 4096 * 3 == 786_432

    def test_vectorized_round_trip_exhaustive(self):
        indices = np.arange(NUM_SCORECARD_STATES)
        upper, mask, yahtzee = decode_scorecards(indices)
        assert upper.max() == 63 and mask.max() == FULL_MASK and yahtzee.max() == 2
        np.testing.assert_array_equal(encode_scorecards(upper, mask, yahtzee), indices)

    def test_scalar_round_trip(self):
        for index in range(0, NUM_SCORECARD_STATES, 997):
            assert encode_scorecard(decode_scorecard(index)) == index

    def test_scalar_matches_vectorized(self):
        s = ScorecardState(41, 0b101000000101, YahtzeeStatus.SCRATCHED)
        assert encode_scorecard(s) == int(encode_scorecards(41, 0b101000000101, 2))

    def test_empty_is_zero(self):
        assert EMPTY_SCORECARD_INDEX == 0
        assert decode_scorecard(0) == ScorecardState.empty()

    @pytest.mark.parametrize("index", [-1, NUM_SCORECARD_STATES])
    def test_decode_out_of_range(self, index):
        with pytest.raises(InvariantViolation):
            decode_scorecard(index)

    def test_vectorized_decode_out_of_range(self):
        with pytest.raises(InvariantViolation):
            decode_scorecards(np.array([0, NUM_SCORECARD_STATES + 5]))


class TestScorecardState:
    def test_invalid_fields(self):
        with pytest.raises(InvalidState):
            ScorecardState(upper_total=64)
        with pytest.raises(InvalidState):
            ScorecardState(filled_mask=1 << 12)
        with pytest.raises(InvalidState):
            ScorecardState(yahtzee=3)

    def test_fill_level(self):
        assert ScorecardState.empty().fill_level == 0
        s = ScorecardState(0, 0b111, YahtzeeStatus.SCRATCHED)
        assert s.fill_level == 4
        assert ScorecardState(63, FULL_MASK, YahtzeeStatus.SCORED).is_terminal

    def test_open_categories(self):
        s = ScorecardState.from_filled([Category.ACES, Category.CHANCE], upper_total=3)
        open_cats = s.open_categories()
        assert Category.ACES not in open_cats
        assert Category.CHANCE not in open_cats
        assert Category.YAHTZEE in open_cats
        assert len(open_cats) == 11

    def test_apply_upper_caps_total(self):
        s = ScorecardState(60, 0, YahtzeeStatus.UNSCORED).apply(Category.SIXES, 24)
        assert s.upper_total == 63
        assert not s.is_open(Category.SIXES)

    def test_apply_lower_keeps_total(self):
        s = ScorecardState(12, 0, YahtzeeStatus.UNSCORED).apply(Category.CHANCE, 22)
        assert s.upper_total == 12
        assert s.filled_mask == 1 << Category.CHANCE

    def test_apply_yahtzee_status(self):
        empty = ScorecardState.empty()
        assert empty.apply(Category.YAHTZEE, 50).yahtzee == YahtzeeStatus.SCORED
        assert empty.apply(Category.YAHTZEE, 0).yahtzee == YahtzeeStatus.SCRATCHED

    def test_apply_closed_category(self):
        s = ScorecardState.from_filled([Category.FULL_HOUSE])
        with pytest.raises(InvalidState):
            s.apply(Category.FULL_HOUSE, 25)
        with pytest.raises(InvalidState):
            ScorecardState(0, 0, YahtzeeStatus.SCRATCHED).apply(Category.YAHTZEE, 50)


class TestFillLevels:
    def test_levels_cover_all_states(self):
        levels = fill_levels()
        assert levels.shape == (NUM_SCORECARD_STATES,)
        assert levels.min() == 0 and levels.max() == 13
        assert not levels.flags.writeable

    def test_level_matches_state(self):
        levels = fill_levels()
        for index in range(0, NUM_SCORECARD_STATES, 4099):
            assert levels[index] == decode_scorecard(index).fill_level

    def test_states_at_level_sorted_and_grouped(self):
        idx = states_at_level(5, reachable_only=False)
        assert np.all(np.diff(idx) > 0)
        assert np.all(fill_levels()[idx] == 5)

    def test_terminal_level_size(self):
        # 13 filled: full mask, Yahtzee scored or scratched, any upper total
        assert len(states_at_level(13, reachable_only=False)) == 64 * 2


class TestReachability:
    def test_no_upper_boxes(self):
        table = reachable_upper_totals()
        assert table[0, 0]
        assert not table[0, 1:].any()

    def test_aces_only(self):
        table = reachable_upper_totals()
        np.testing.assert_array_equal(np.nonzero(table[1])[0], [0, 1, 2, 3, 4, 5])

    def test_sixes_only(self):
        table = reachable_upper_totals()
        np.testing.assert_array_equal(np.nonzero(table[1 << 5])[0], [0, 6, 12, 18, 24, 30])

    def test_full_upper_reaches_cap(self):
        assert reachable_upper_totals()[63, 63]

    def test_is_reachable(self):
        assert is_reachable(ScorecardState.empty())
        assert not is_reachable(ScorecardState(upper_total=10))
        assert not is_reachable(ScorecardState.from_filled([Category.ACES], upper_total=6))
        assert is_reachable(ScorecardState.from_filled([Category.ACES], upper_total=5))

    def test_pruned_levels_smaller(self):
        assert len(states_at_level(0)) == 1
        assert len(states_at_level(3)) < len(states_at_level(3, reachable_only=False))


class TestDiceCodec:
    def test_dice_state_count(self):
        assert NUM_DICE_STATES == 756

    def test_round_trip_exhaustive(self):
        for index in range(NUM_DICE_STATES):
            assert encode_dice(decode_dice(index)) == index

    def test_rank_matches_enumeration(self):
        for r, hand in enumerate(all_hands()):
            assert rank_dice(hand) == r
            assert unrank_dice(r) == tuple(hand)

    def test_known_ranks(self):
        assert rank_dice((1, 1, 1, 1, 1)) == 0
        assert rank_dice((1, 1, 1, 1, 2)) == 1
        assert rank_dice((6, 6, 6, 6, 6)) == 251

    def test_rank_ignores_order(self):
        assert rank_dice((6, 1, 3, 3, 2)) == rank_dice((1, 2, 3, 3, 6))

    def test_dice_state_sorts(self):
        assert DiceState.from_faces([6, 1, 3, 3, 2], 1).faces == (1, 2, 3, 3, 6)

    @pytest.mark.parametrize("faces", [(1, 2, 3, 4), (0, 1, 2, 3, 4), (1, 2, 3, 4, 7), (1, 1, 1, 1, 1, 1)])
    def test_invalid_hand(self, faces):
        with pytest.raises(InvalidState):
            DiceState.from_faces(faces, 2)

    @pytest.mark.parametrize("rolls_left", [-1, 3])
    def test_invalid_rolls_left(self, rolls_left):
        with pytest.raises(InvalidState):
            DiceState((1, 2, 3, 4, 5), rolls_left)

    @pytest.mark.parametrize("index", [-1, NUM_DICE_STATES])
    def test_decode_out_of_range(self, index):
        with pytest.raises(InvariantViolation):
            decode_dice(index)
