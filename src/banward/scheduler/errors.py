"""Exception hierarchy for the unban scheduler."""

from __future__ import annotations


class SchedulerError(Exception):
    """Base class for every error raised by the scheduler package."""


class ScheduleStoreError(SchedulerError, OSError):
    """The schedule record could not be read from or written to disk."""


class CorruptStateError(SchedulerError):
    """The schedule record exists but is not a well-formed list of actions."""


class ExecutionError(SchedulerError):
    """The executor callback could not perform the scheduled side effect.

    Raised for both permanent failures (guild gone, user not banned) and
    transient ones (HTTP errors). The scheduler logs it and drops the entry.
    """


class SchedulerNotReadyError(SchedulerError, RuntimeError):
    """The scheduler was used outside its start/shutdown lifecycle."""
