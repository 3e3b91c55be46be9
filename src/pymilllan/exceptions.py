"""Custom exceptions for pymilllan library.

Only two error kinds ever reach the connectivity logic: ``ConfigurationError``
and ``CommunicationError``. ``DecodeError`` is raised by the codec and is
always converted to a ``CommunicationError`` by the API client.
"""

from __future__ import annotations

from enum import Enum


class MillError(Exception):
    """Base exception for all Mill errors.

    Attributes:
        description: Short human-readable status description. Defaults to the
            message when not given.
    """

    def __init__(self, message: str = "", description: str | None = None) -> None:
        """Initialize MillError.

        Args:
            message: Error message.
            description: Optional status description, defaults to ``message``.
        """
        super().__init__(message)
        self.description = description if description is not None else message


class ConfigurationError(MillError):
    """Exception raised for invalid configuration or command parameters.

    These errors are never retried automatically, they require the
    configuration or the caller to change.
    """


class CommunicationError(MillError):
    """Exception raised for failures talking to the device.

    Attributes:
        http_status: Optional HTTP status code returned by the device.
        reason: Optional HTTP reason phrase returned by the device.
        timeout: Whether the failure was a timeout.
    """

    def __init__(
        self,
        message: str = "",
        *,
        http_status: int | None = None,
        reason: str | None = None,
        timeout: bool = False,
        description: str | None = None,
    ) -> None:
        """Initialize CommunicationError.

        Args:
            message: Error message.
            http_status: Optional HTTP status code returned by the device.
            reason: Optional HTTP reason phrase returned by the device.
            timeout: Whether the failure was a timeout.
            description: Optional status description, defaults to ``message``.
        """
        super().__init__(message, description)
        self.http_status = http_status
        self.reason = reason
        self.timeout = timeout

    @property
    def is_client_error(self) -> bool:
        """Check if the device answered with a 4xx status."""
        return self.http_status is not None and 400 <= self.http_status < 500  # noqa: PLR2004


class DecodeErrorKind(Enum):
    """Kinds of codec failures."""

    MALFORMED = "malformed"
    MISSING_ENVELOPE = "missing_envelope"


class DecodeError(MillError):
    """Exception raised by the codec when a body can't be decoded.

    Attributes:
        kind: What went wrong while decoding.
    """

    def __init__(self, message: str = "", kind: DecodeErrorKind = DecodeErrorKind.MALFORMED) -> None:
        """Initialize DecodeError.

        Args:
            message: Error message.
            kind: What went wrong while decoding.
        """
        super().__init__(message)
        self.kind = kind
