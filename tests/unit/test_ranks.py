"""Unit tests for ranks, stream targets, and conditions."""

import pytest

from app_tester.core.ranks import IMPORTANT, NORMAL, UNIMPORTANT, Condition, Rank, StreamTarget


class TestRank:
    """Tests for Rank ordering and lookup."""

    def test_importance_increases(self) -> None:
        """Test that importance grows from UNIMPORTANT to IMPORTANT."""
        assert UNIMPORTANT.importance < NORMAL.importance < IMPORTANT.importance
        assert [r.importance for r in Rank] == [0, 1, 2]

    @pytest.mark.parametrize(
        ("name", "expected"),
        [
            ("IMPORTANT", Rank.IMPORTANT),
            ("normal", Rank.NORMAL),
            (" Unimportant ", Rank.UNIMPORTANT),
        ],
    )
    def test_from_name(self, name: str, expected: Rank) -> None:
        """Test case-insensitive lookup by name."""
        assert Rank.from_name(name) is expected

    def test_from_name_unknown(self) -> None:
        """Test that unknown names are rejected."""
        with pytest.raises(KeyError):
            Rank.from_name("CRITICAL")


class TestStreamModel:
    """Tests for stream targets and conditions."""

    def test_stream_target_values(self) -> None:
        """Test the configuration names of stream targets."""
        assert StreamTarget("stdout") is StreamTarget.CONSOLE_OUT_ONLY
        assert StreamTarget("stderr") is StreamTarget.CONSOLE_ERR_ONLY
        assert StreamTarget("either") is StreamTarget.EITHER_BY_CONDITION

    def test_conditions(self) -> None:
        """Test that there are exactly two conditions."""
        assert {c.name for c in Condition} == {"ERROR", "NON_ERROR"}
