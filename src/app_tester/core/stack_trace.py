"""Stack snapshots and head/tail splitting of stack traces.

Snapshots are lists of ``"function @ file:line"`` rows, innermost frame
first. The first rows of a trace are the ones worth showing on a terminal;
the rest only need to reach the log file.
"""

import sys
import traceback
from types import FrameType

DEFAULT_STACK_TRACE_ROWS = 6


def format_frame(frame: traceback.FrameSummary) -> str:
    """Render one frame as ``function @ file:line``."""
    return f"{frame.name} @ {frame.filename}:{frame.lineno}"


def capture_stack(frame: FrameType | None = None) -> list[str]:
    """Capture the current call stack.

    Args:
        frame: Frame to start from. Defaults to the caller of this function.

    Returns:
        Rows innermost first: row 0 is ``frame`` itself.
    """
    if frame is None:
        frame = sys._getframe(1)
    summaries = traceback.extract_stack(frame)
    return [format_frame(s) for s in reversed(summaries)]


def caller_location(stacklevel: int = 1) -> str:
    """Describe the frame ``stacklevel`` levels above the caller."""
    try:
        frame = sys._getframe(stacklevel + 1)
    except ValueError:
        return "<unknown>"
    return f"{frame.f_code.co_name} @ {frame.f_code.co_filename}:{frame.f_lineno}"


def exception_frames(exc: BaseException) -> list[str]:
    """Frames recorded on a raised exception, innermost first.

    An exception that was never raised has no frames.
    """
    summaries = traceback.extract_tb(exc.__traceback__)
    return [format_frame(s) for s in reversed(summaries)]


def describe_exception(exc: BaseException) -> str:
    """One-line ``Type: message`` description of an exception."""
    return traceback.format_exception_only(type(exc), exc)[-1].strip()


def split_stack_trace(
    snapshot: list[str],
    first_row: int,
    split_count: int,
) -> tuple[list[str], list[str]]:
    """Split a snapshot into a significant head and a secondary tail.

    Args:
        snapshot: Rows of the trace.
        first_row: Index of the first row to keep, at most ``len(snapshot)``.
        split_count: Maximum number of rows in the head.

    Returns:
        ``(head, tail)``. The head holds at most ``split_count`` rows from
        ``first_row``; the tail holds the rest. Together they reproduce
        ``snapshot[first_row:]`` in order.

    Raises:
        ValueError: If ``first_row`` lies outside the snapshot or either
            count is negative.
    """
    if first_row < 0 or first_row > len(snapshot):
        raise ValueError(
            f"first row {first_row} is outside of a stack trace of {len(snapshot)} rows"
        )
    if split_count < 0:
        raise ValueError(f"split count must not be negative, got {split_count}")

    remaining = snapshot[first_row:]
    if len(remaining) <= split_count:
        return list(remaining), []
    return remaining[:split_count], remaining[split_count:]
