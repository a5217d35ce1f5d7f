"""Domain errors raised by the telemetry and device services."""

from __future__ import annotations


class TelemetryError(Exception):
    """Base class for conditions the caller is expected to handle."""

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message

    def __str__(self) -> str:
        return self.message


class DataNotFoundError(TelemetryError):
    """The query ran but produced no qualifying readings."""


class InvalidDurationError(TelemetryError, ValueError):
    """A duration token outside the recognised set, rejected before querying."""


class DeviceAccessError(TelemetryError):
    """The device does not exist or is not owned by the requesting user."""


class InvalidCredentialsError(TelemetryError):
    pass


class DeviceAlreadyLinkedError(TelemetryError):
    pass
