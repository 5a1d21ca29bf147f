"""Custom exceptions for the diagnostic facility."""


class AppTesterError(Exception):
    """Base exception for diagnostic facility errors."""

    pass


class LogFileError(AppTesterError):
    """Raised when the log folder or log file cannot be prepared."""

    pass


class SchedulerShutdownError(AppTesterError):
    """Raised when work is submitted to a scheduler that has been shut down."""

    pass
