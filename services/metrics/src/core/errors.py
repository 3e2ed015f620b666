"""Error taxonomy for the aggregation pipeline.

Only ``RequestMalformed`` and unexpected handler faults end a request early;
``SourceUnavailable`` is always contained by the fan-out executor.
"""


class MetricsError(Exception):
    """Base class for service errors."""


class SourceUnavailable(MetricsError):
    """A vendor API call for one source failed."""

    def __init__(self, message: str, status: int | None = None):
        super().__init__(message)
        self.status = status


class TransientSourceError(SourceUnavailable):
    """Throttling or server-side failure worth retrying."""


class RequestMalformed(MetricsError):
    """Required request input is missing or invalid."""
