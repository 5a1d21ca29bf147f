"""Severity ranks, console stream targets, and readout conditions."""

from enum import Enum


class Rank(Enum):
    """Relative importance of a readout.

    Values start at zero and increase with increasing importance.
    """

    UNIMPORTANT = 0
    NORMAL = 1
    IMPORTANT = 2

    @property
    def importance(self) -> int:
        """Importance level used for console filtering."""
        return self.value

    @classmethod
    def from_name(cls, name: str) -> "Rank":
        """Look up a rank by case-insensitive name."""
        return cls[name.strip().upper()]


class StreamTarget(Enum):
    """Which physical console stream receives readouts."""

    CONSOLE_OUT_ONLY = "stdout"
    CONSOLE_ERR_ONLY = "stderr"
    EITHER_BY_CONDITION = "either"


class Condition(Enum):
    """Whether a readout is emitted under an error or non-error situation."""

    ERROR = "error"
    NON_ERROR = "non_error"


# Shorthands
UNIMPORTANT = Rank.UNIMPORTANT
NORMAL = Rank.NORMAL
IMPORTANT = Rank.IMPORTANT
