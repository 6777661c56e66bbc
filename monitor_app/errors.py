"""
Domain exceptions for the Site Monitor application.

Each exception is caught at the boundary of the operation that raised it
(sweep loop, API route, HTML view or CLI command) and converted into a
logged or displayed message.
"""


class MonitorError(Exception):
    """Base class for all Site Monitor errors."""


class MeasurementFailure(MonitorError):
    """The measurement API returned an error outcome or unusable values."""


class PersistenceFailure(MonitorError):
    """A database read or write failed."""


class ConcurrentSweepRejected(MonitorError):
    """A sweep was requested while another one is still running."""

    def __init__(self, message: str = "A performance sweep is already running"):
        super().__init__(message)
