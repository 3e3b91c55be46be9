"""Connectivity status of a device.

The status is a small lattice consumed by status reporting:

- ``UNKNOWN`` when the device was started but hasn't been reached yet
- ``ONLINE`` after a fully successful poll
- ``OFFLINE`` with a :class:`DetailCode` and description after a failure
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import StrEnum

from pymilllan.exceptions import CommunicationError, ConfigurationError


__all__ = [
    "ConnectivityState",
    "ConnectivityStateMachine",
    "ConnectivityStatus",
    "DetailCode",
    "detail_for",
]

_LOGGER = logging.getLogger(__name__)


class ConnectivityStatus(StrEnum):
    """Coarse device status."""

    UNKNOWN = "unknown"
    ONLINE = "online"
    OFFLINE = "offline"


class DetailCode(StrEnum):
    """Reason attached to an ``OFFLINE`` status."""

    NONE = "none"
    CONFIGURATION_ERROR = "configuration_error"
    COMMUNICATION_ERROR = "communication_error"


@dataclass(frozen=True)
class ConnectivityState:
    """Immutable connectivity snapshot.

    Attributes:
        status: Coarse device status.
        detail: Reason for an offline status, always NONE otherwise.
        description: Optional human-readable reason, never blank.
    """

    status: ConnectivityStatus = ConnectivityStatus.UNKNOWN
    detail: DetailCode = DetailCode.NONE
    description: str | None = None

    @property
    def is_online(self) -> bool:
        """Check if the device is online."""
        return self.status is ConnectivityStatus.ONLINE


def detail_for(error: BaseException) -> DetailCode:
    """Map an error to a detail code.

    Args:
        error: Error that made an operation fail.

    Returns:
        CONFIGURATION_ERROR or COMMUNICATION_ERROR for classified errors,
        NONE for anything else.
    """
    if isinstance(error, ConfigurationError):
        return DetailCode.CONFIGURATION_ERROR
    if isinstance(error, CommunicationError):
        return DetailCode.COMMUNICATION_ERROR
    return DetailCode.NONE


def _normalize(description: str | None) -> str | None:
    if description is None or not description.strip():
        return None
    return description


class ConnectivityStateMachine:
    """Transition function from operation outcomes to connectivity states.

    The machine holds no lock of its own; the owning device applies every
    transition under its device lock.
    """

    def __init__(self, name: str = "") -> None:
        """Initialize the state machine in the UNKNOWN state.

        Args:
            name: Device name used in log messages.
        """
        self._name = name
        self._state = ConnectivityState()

    @property
    def state(self) -> ConnectivityState:
        """Get the current state."""
        return self._state

    def reset(self) -> bool:
        """Return to UNKNOWN.

        Returns:
            True if the state changed.
        """
        return self._set(ConnectivityState())

    def on_success(self) -> bool:
        """Record a fully successful operation.

        Returns:
            True if the state changed.
        """
        if self._state.status is not ConnectivityStatus.ONLINE:
            _LOGGER.info("Mill device %s is online", self._name)
        return self._set(ConnectivityState(ConnectivityStatus.ONLINE))

    def on_failure(self, error: BaseException) -> bool:
        """Record a failed operation.

        Args:
            error: The error that made the operation fail.

        Returns:
            True if the state changed.
        """
        description = getattr(error, "description", None) or str(error)
        return self.set_offline(detail_for(error), description)

    def set_offline(self, detail: DetailCode, description: str | None = None) -> bool:
        """Go offline with an explicit detail.

        Args:
            detail: Reason code.
            description: Optional human-readable reason.

        Returns:
            True if the state changed.
        """
        state = ConnectivityState(ConnectivityStatus.OFFLINE, detail, _normalize(description))
        if state != self._state:
            _LOGGER.warning("Mill device %s is offline (%s): %s", self._name, detail, state.description)
        return self._set(state)

    def _set(self, state: ConnectivityState) -> bool:
        if state == self._state:
            return False
        self._state = state
        return True
