"""Exception types shared by the stats collectors, registry and routes."""


class StatsError(Exception):
    """Base class for stats broadcaster errors."""


class ProviderUnavailable(StatsError):
    """A telemetry query failed (timeout, permission, missing subsystem)."""

    def __init__(self, category: str, message: str):
        super().__init__(message)
        self.category = category

    def __str__(self):
        return f"{self.category}: {self.args[0]}"


class CapacityExceeded(StatsError):
    """The SSE subscriber limit has been reached."""


class TransportWriteFailure(StatsError):
    """A push to a single SSE subscriber failed."""
