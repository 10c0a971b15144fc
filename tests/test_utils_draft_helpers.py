"""
Unit tests for draft helper functions in utils/draft_helpers.py.

These tests verify:
1. Sequence layouts for every supported format
2. Turn lookups (ban detection, first-ban exemption, completion)
3. Rounding helpers shared by cost and penalty arithmetic
"""
import pytest

from exceptions import ConfigurationException
from models.turn import DraftFamily, Side
from utils.draft_helpers import (
    build_draft_sequence,
    count_side_slots,
    format_turn_display,
    is_ban_token,
    is_draft_complete,
    is_first_ban_for_side,
    round2,
    side_of_turn,
    snap_quarter,
)

FORMATS = [
    (DraftFamily.HSR, 2, 14),
    (DraftFamily.HSR, 3, 20),
    (DraftFamily.ZZZ, 2, 14),
    (DraftFamily.ZZZ, 3, 20),
]


class TestBuildDraftSequence:
    """Tests for build_draft_sequence()."""

    @pytest.mark.parametrize("family,team_size,length", FORMATS)
    def test_sequence_length(self, family, team_size, length):
        assert len(build_draft_sequence(family, team_size)) == length

    @pytest.mark.parametrize("family,team_size,length", FORMATS)
    def test_no_ban_in_first_four_tokens(self, family, team_size, length):
        sequence = build_draft_sequence(family, team_size)
        assert not any(token.is_ban for token in sequence[:4])

    @pytest.mark.parametrize("family,team_size,length", FORMATS)
    def test_one_ban_per_side(self, family, team_size, length):
        sequence = build_draft_sequence(family, team_size)
        assert count_side_slots(sequence, Side.BLUE, include_bans=True) - count_side_slots(sequence, Side.BLUE) == 1
        assert count_side_slots(sequence, Side.RED, include_bans=True) - count_side_slots(sequence, Side.RED) == 1

    def test_two_player_layout(self):
        tags = [t.tag for t in build_draft_sequence("zzz", 2)]
        assert tags == ["B", "R", "R", "B", "RR", "BB", "R", "B",
                        "B", "R", "R(ACE)", "B(ACE)", "B", "R"]

    def test_three_player_layout(self):
        tags = [t.tag for t in build_draft_sequence("hsr", 3)]
        assert tags == ["B", "R", "R", "B", "RR", "BB", "R", "B",
                        "B(ACE)", "R(ACE)", "R", "B", "B", "R",
                        "R", "B", "B(ACE)", "R(ACE)", "R", "B"]

    def test_families_share_layouts(self):
        assert build_draft_sequence("hsr", 2) == build_draft_sequence("zzz", 2)

    def test_returns_fresh_lists(self):
        first = build_draft_sequence("zzz", 2)
        first.pop()
        assert len(build_draft_sequence("zzz", 2)) == 14

    @pytest.mark.parametrize("family,team_size", [("hsr", 4), ("gi", 2), ("zzz", 1)])
    def test_unsupported_format(self, family, team_size):
        with pytest.raises(ConfigurationException, match="Unsupported draft format"):
            build_draft_sequence(family, team_size)


class TestTurnLookups:
    """Tests for turn lookup helpers."""

    @pytest.fixture
    def sequence(self):
        return build_draft_sequence("zzz", 2)

    def test_is_ban_token(self, sequence):
        assert is_ban_token("RR")
        assert is_ban_token(sequence[5])
        assert not is_ban_token("B(ACE)")

    def test_first_ban_for_each_side(self, sequence):
        assert is_first_ban_for_side(4, sequence)
        assert is_first_ban_for_side(5, sequence)
        assert not is_first_ban_for_side(0, sequence)
        assert not is_first_ban_for_side(99, sequence)

    def test_second_ban_of_a_side_is_not_first(self):
        from models.turn import TurnToken
        sequence = [TurnToken.parse(t) for t in ("B", "BB", "R", "BB")]
        assert is_first_ban_for_side(1, sequence)
        assert not is_first_ban_for_side(3, sequence)

    def test_side_of_turn(self, sequence):
        assert side_of_turn(0, sequence) == Side.BLUE
        assert side_of_turn(4, sequence) == Side.RED
        assert side_of_turn(14, sequence) is None

    def test_is_draft_complete(self, sequence):
        assert not is_draft_complete(13, sequence)
        assert is_draft_complete(14, sequence)

    def test_count_side_slots(self, sequence):
        assert count_side_slots(sequence, "B") == 6
        assert count_side_slots(sequence, "R", include_bans=True) == 7

    def test_format_turn_display(self, sequence):
        assert format_turn_display(0, sequence) == "Turn 1/14: Blue pick"
        assert format_turn_display(4, sequence) == "Turn 5/14: Red ban"
        assert format_turn_display(10, sequence) == "Turn 11/14: Red ace pick"
        assert format_turn_display(14, sequence) == "Draft complete"


class TestRounding:
    """Tests for rounding helpers."""

    @pytest.mark.parametrize("value,expected", [
        (1.005, 1.01),
        (2.3333, 2.33),
        (1.875, 1.88),
        (-1.005, -1.01),
        (0.0, 0.0),
    ])
    def test_round2(self, value, expected):
        assert round2(value) == expected

    @pytest.mark.parametrize("value,expected", [
        (1.1, 1.0),
        (1.125, 1.25),
        (1.3, 1.25),
        (2.0, 2.0),
        (0.37, 0.25),
        (0.38, 0.5),
    ])
    def test_snap_quarter(self, value, expected):
        assert snap_quarter(value) == expected
