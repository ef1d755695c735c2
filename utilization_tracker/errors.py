from __future__ import annotations


class InvalidRangeError(ValueError):
    """Raised when a requested forecast window cannot be built."""


class UpstreamDataError(RuntimeError):
    """Raised by data providers when the backing store cannot be read."""

    def __init__(self, source: str, reason: str) -> None:
        super().__init__(f"{source}: {reason}")
        self.source = source
        self.reason = reason


class ForecastCancelledError(RuntimeError):
    def __init__(self, completed: int, total: int) -> None:
        super().__init__(f"forecast cancelled after {completed} of {total} resources")
        self.completed = completed
        self.total = total
