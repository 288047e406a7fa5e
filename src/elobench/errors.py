"""Exception hierarchy for elobench.

Provisioning and build failures are fatal for a run: a statistic over a broken
candidate is meaningless. Scheduling failures abort the match after in-flight
games have drained. Invalid SPRT parameters are rejected before any workspace
is touched.
"""


class ElobenchError(Exception):
    """Base exception for all elobench errors."""

    pass


class ProvisionError(ElobenchError):
    """Raised when a revision or repository cannot be materialised."""

    pass


class BuildError(ElobenchError):
    """Raised when the build pipeline fails for a workspace."""

    pass


class ScheduleError(ElobenchError):
    """Raised when the match scheduler cannot continue.

    ``outcome`` holds the reported match result when an SPRT verdict had
    already been reached before the failure, and is None otherwise.
    """

    outcome = None


class StatError(ElobenchError, ValueError):
    """Raised for invalid SPRT parameters (elo0 >= elo1, alpha/beta outside (0, 1))."""

    pass
