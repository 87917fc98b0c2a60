"""Application-level error types."""


class SchedulerError(Exception):
    """Base error for the test scheduler."""


class PlanError(SchedulerError):
    """Raised when plan loading/validation fails."""


class SpawnError(SchedulerError):
    """Raised when a test process cannot be started."""


class ResultCountError(SchedulerError):
    """Raised when the number of reaped results disagrees with the plan."""


class RunInterruptedError(SchedulerError):
    """Raised when the run is interrupted while waiting for a test."""
