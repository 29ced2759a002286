"""
Error types for the spatial coverage engine.

Construction-time problems (bad geometry, bad samples, bad payloads) raise
ValidationError and are never caught inside the engine. Missing sensors are
reported with UnavailableSensorError by the hardware handlers and are always
recovered by the tracking handler, which degrades and flags the loss instead.
"""


class CoverageError(Exception):
    """Base error for the spatial coverage engine."""


class ValidationError(CoverageError, ValueError):
    """Raised when geometry, samples or serialized payloads are malformed."""


class UnavailableSensorError(CoverageError):
    """Raised when a sensor cannot deliver readings on this device."""

    def __init__(self, sensor: str, reason: str = ""):
        self.sensor = sensor
        self.reason = reason
        message = f"{sensor} sensor unavailable"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(message)


class GeometryDegenerateError(CoverageError):
    """
    Degenerate geometry (zero-area boundary, empty elevation grid).

    The engine reports these states as None/0 results. The type exists for
    collaborators that want to turn such a result into an exception.
    """


class InvalidStateError(CoverageError, RuntimeError):
    """Raised when the position fusion state machine is driven out of order."""


__all__ = [
    "CoverageError",
    "ValidationError",
    "UnavailableSensorError",
    "GeometryDegenerateError",
    "InvalidStateError",
]
