"""Low-level API client for the Mill LAN HTTP API.

This module turns HTTP calls into typed responses and classifies every
failure as either :class:`ConfigurationError` or :class:`CommunicationError`.
It never retries; the poll cadence of the caller is the retry policy.
"""

from __future__ import annotations

import logging
import re
from typing import TYPE_CHECKING, Any, TypeVar

from pymilllan.const import (
    API_KEY_MAX_BYTES,
    AUTHENTICATION_HEADER,
    CUSTOM_NAME_MAX_LENGTH,
    DEFAULT_TIMEOUT,
    REBOOT_TIMEOUT,
    SET_API_KEY_TIMEOUT,
    STATUS_TIMEOUT,
)
from pymilllan.exceptions import CommunicationError, ConfigurationError, DecodeError, DecodeErrorKind, MillError
from pymilllan.models import (
    ChildLockResponse,
    CloudCommunicationResponse,
    CommercialLockCustomization,
    CommercialLockCustomizationResponse,
    CommercialLockResponse,
    ControllerType,
    ControllerTypeResponse,
    ControlStatusResponse,
    DisplayUnit,
    DisplayUnitResponse,
    HysteresisParameters,
    HysteresisParametersResponse,
    LimitedHeatingPowerResponse,
    OilHeaterPowerResponse,
    OpenWindowParameters,
    OpenWindowParametersResponse,
    OperationMode,
    OperationModeResponse,
    PIDParameters,
    PIDParametersResponse,
    PredictiveHeatingType,
    PredictiveHeatingTypeResponse,
    Response,
    ResponseStatus,
    SetTemperatureResponse,
    StatusResponse,
    TemperatureCalibrationOffsetResponse,
    TemperatureType,
    TimeZoneOffsetResponse,
)
from pymilllan.serializers import decode, encode


if TYPE_CHECKING:
    from pymilllan.transport import Transport

_LOGGER = logging.getLogger(__name__)

ResponseT = TypeVar("ResponseT", bound=Response)

# Host name, IPv4 address or bracketed IPv6 address, with an optional port
_HOST_PATTERN = re.compile(r"^(?:[A-Za-z0-9_\-.]+|\[[0-9A-Fa-f:.]+\])(?::\d{1,5})?$")

_REDACTED_PATHS = frozenset({"/set-api-key"})


def validate_hostname(hostname: Any) -> str:
    """Validate a configured hostname.

    Args:
        hostname: Configured hostname or IP address, optionally with a port.

    Returns:
        The stripped hostname.

    Raises:
        ConfigurationError: If the hostname is missing, blank or invalid.
    """
    if not isinstance(hostname, str):
        msg = "Invalid configuration: hostname must be a string"
        raise ConfigurationError(msg)
    hostname = hostname.strip()
    if not hostname:
        msg = "Invalid configuration: hostname can't be blank"
        raise ConfigurationError(msg)
    if not _HOST_PATTERN.match(hostname):
        msg = f'Invalid hostname "{hostname}"'
        raise ConfigurationError(msg)
    return hostname


class MillAPI:
    """Low-level API client for one Mill device.

    Every endpoint method returns a typed response or raises one of the two
    classified errors.

    Example:
        ```python
        from pymilllan.api import MillAPI
        from pymilllan.transport import AiohttpTransport

        async with AiohttpTransport() as transport:
            api = MillAPI(transport, "192.168.1.20")
            control = await api.get_control_status()
            print(control.ambient_temperature)
        ```

    Attributes:
        hostname: Device hostname or IP address.
        api_key: Optional API key. When set, requests use HTTPS and carry an
            ``Authentication`` header.
    """

    def __init__(self, transport: Transport, hostname: str | None, api_key: str | None = None) -> None:
        """Initialize the API client.

        Args:
            transport: Shared transport used to send requests.
            hostname: Device hostname or IP address.
            api_key: Optional API key.
        """
        self._transport = transport
        self.hostname = hostname
        self.api_key = api_key

    @property
    def effective_api_key(self) -> str | None:
        """Get the API key, or None when it is missing or blank."""
        if self.api_key is None or not self.api_key.strip():
            return None
        return self.api_key

    def build_url(self, path: str) -> str:
        """Build the request URL for a path.

        Args:
            path: Resource path, e.g. "/status".

        Returns:
            Absolute URL using ``https`` when an API key is configured.

        Raises:
            ConfigurationError: If the hostname is invalid.
        """
        host = validate_hostname(self.hostname)
        scheme = "https" if self.effective_api_key is not None else "http"
        return f"{scheme}://{host}{path}"

    async def request(
        self,
        method: str,
        path: str,
        response_type: type[ResponseT],
        *,
        body: Any = None,
        timeout: float = DEFAULT_TIMEOUT,
        throw_on_api_status: bool = True,
    ) -> ResponseT:
        """Make a request and decode the response.

        This is the core method for all HTTP communication. It handles:
        - Scheme selection and the authentication header
        - HTTP status interpretation
        - Decoding and envelope status checks

        Args:
            method: HTTP method (GET, POST).
            path: Resource path (e.g., "/control-status").
            response_type: Response dataclass to decode into.
            body: Optional request dataclass or mapping sent as JSON.
            timeout: Total timeout in seconds.
            throw_on_api_status: Whether a non-OK envelope status is an error.

        Returns:
            The decoded response.

        Raises:
            ConfigurationError: If the hostname is invalid. No request is sent.
            CommunicationError: For timeouts, transport failures, non-2xx
                statuses, undecodable bodies and non-OK envelope statuses.
        """
        url = self.build_url(path)
        headers: dict[str, str] = {}
        api_key = self.effective_api_key
        if api_key is not None:
            headers[AUTHENTICATION_HEADER] = api_key

        content: bytes | None = None
        if body is not None:
            content, content_type = encode(body)
            headers["Content-Type"] = content_type

        if _LOGGER.isEnabledFor(logging.DEBUG):
            _LOGGER.debug(
                'Sending HTTP %s request to "%s" with content: %s',
                method,
                url,
                "<redacted>" if path in _REDACTED_PATHS else content,
            )

        try:
            response = await self._transport.send(method, url, headers=headers, body=content, timeout=timeout)
        except MillError:
            raise
        except Exception as err:
            msg = f"Failed to send request: {err}"
            raise CommunicationError(msg) from err

        _LOGGER.debug(
            'Received HTTP response %d from "%s" with content: %s',
            response.status,
            self.hostname,
            response.body,
        )

        if 400 <= response.status < 500:  # noqa: PLR2004
            msg = f"{response.status} - {response.reason}: {path}"
            raise CommunicationError(msg, http_status=response.status, reason=response.reason)
        if not 200 <= response.status < 300:  # noqa: PLR2004
            msg = f"{response.status} - {response.reason}"
            raise CommunicationError(msg, http_status=response.status, reason=response.reason)

        try:
            result = decode(response.body, response_type)
        except DecodeError as err:
            if err.kind is DecodeErrorKind.MISSING_ENVELOPE:
                msg = "No response status"
            else:
                msg = f"JSON parsing failed: {err}"
            raise CommunicationError(msg, http_status=response.status) from err
        except Exception as err:
            msg = f"JSON parsing failed: {err}"
            raise CommunicationError(msg, http_status=response.status) from err

        if throw_on_api_status and result.status is not ResponseStatus.OK:
            status = result.status or ResponseStatus.UNRECOGNIZED
            raise CommunicationError(status.description, http_status=response.status)
        return result

    async def _request_tolerating_timeout(self, path: str, body: Any, timeout: float) -> Response | None:
        """POST to an endpoint where the device never answers a successful call."""
        try:
            return await self.request("POST", path, Response, body=body, timeout=timeout)
        except CommunicationError as err:
            if err.timeout:
                _LOGGER.debug("No answer from %s for %s, treating as success", self.hostname, path)
                return None
            raise

    # -------------------------------------------------------------------------
    # Status Endpoints
    # -------------------------------------------------------------------------

    async def get_status(self) -> StatusResponse:
        """Get device identity (name, firmware version, MAC address)."""
        return await self.request("GET", "/status", StatusResponse, timeout=STATUS_TIMEOUT)

    async def get_control_status(self) -> ControlStatusResponse:
        """Get fast-changing control values (temperatures, power, lock state)."""
        return await self.request("GET", "/control-status", ControlStatusResponse, timeout=STATUS_TIMEOUT)

    # -------------------------------------------------------------------------
    # Temperature Endpoints
    # -------------------------------------------------------------------------

    async def get_set_temperature(self, temperature_type: TemperatureType) -> SetTemperatureResponse:
        """Get the set-temperature of one slot.

        Args:
            temperature_type: Slot to read.

        Returns:
            Response with the set-temperature in °C.
        """
        return await self.request(
            "GET", "/set-temperature", SetTemperatureResponse, body={"type": temperature_type}
        )

    async def set_set_temperature(self, temperature_type: TemperatureType, value: float) -> Response:
        """Set the set-temperature of one slot.

        Args:
            temperature_type: Slot to write.
            value: Set-temperature in °C.

        Returns:
            Generic response.
        """
        return await self.request(
            "POST", "/set-temperature", Response, body={"type": temperature_type, "value": value}
        )

    async def get_temperature_calibration_offset(self) -> TemperatureCalibrationOffsetResponse:
        """Get the temperature calibration offset in °C."""
        return await self.request("GET", "/temperature-calibration-offset", TemperatureCalibrationOffsetResponse)

    async def set_temperature_calibration_offset(self, value: float) -> Response:
        """Set the temperature calibration offset in °C."""
        return await self.request("POST", "/temperature-calibration-offset", Response, body={"value": value})

    async def set_independent_temperature(self, temperature: float) -> Response:
        """Set the temperature used in "independent device" mode.

        The device answers 503 when it isn't in that mode.

        Args:
            temperature: Set-temperature in °C.

        Returns:
            Generic response.
        """
        return await self.request(
            "POST", "/set-temperature-in-independent-mode-now", Response, body={"temperature": temperature}
        )

    # -------------------------------------------------------------------------
    # Mode and Unit Endpoints
    # -------------------------------------------------------------------------

    async def get_operation_mode(self) -> OperationModeResponse:
        """Get the operation mode."""
        return await self.request("GET", "/operation-mode", OperationModeResponse)

    async def set_operation_mode(self, mode: OperationMode) -> Response:
        """Set the operation mode."""
        return await self.request("POST", "/operation-mode", Response, body={"mode": mode})

    async def get_display_unit(self) -> DisplayUnitResponse:
        """Get the display unit."""
        return await self.request("GET", "/display-unit", DisplayUnitResponse)

    async def set_display_unit(self, unit: DisplayUnit) -> Response:
        """Set the display unit."""
        return await self.request("POST", "/display-unit", Response, body={"value": unit})

    async def get_controller_type(self) -> ControllerTypeResponse:
        """Get the regulator type."""
        return await self.request("GET", "/controller-type", ControllerTypeResponse)

    async def set_controller_type(self, controller_type: ControllerType) -> Response:
        """Set the regulator type."""
        return await self.request("POST", "/controller-type", Response, body={"regulator_type": controller_type})

    async def get_predictive_heating_type(self) -> PredictiveHeatingTypeResponse:
        """Get the predictive heating type."""
        return await self.request("GET", "/predictive-heating-type", PredictiveHeatingTypeResponse)

    async def set_predictive_heating_type(self, heating_type: PredictiveHeatingType) -> Response:
        """Set the predictive heating type."""
        return await self.request(
            "POST", "/predictive-heating-type", Response, body={"predictive_heating_type": heating_type}
        )

    # -------------------------------------------------------------------------
    # Power Endpoints
    # -------------------------------------------------------------------------

    async def get_limited_heating_power(self) -> LimitedHeatingPowerResponse:
        """Get the heating power limit in percent."""
        return await self.request("GET", "/limited-heating-power", LimitedHeatingPowerResponse)

    async def set_limited_heating_power(self, value: int) -> Response:
        """Set the heating power limit in percent."""
        return await self.request("POST", "/limited-heating-power", Response, body={"limited_heating_power": value})

    async def get_oil_heater_power(self) -> OilHeaterPowerResponse:
        """Get the oil heater power level in percent."""
        return await self.request("GET", "/oil-heater-power", OilHeaterPowerResponse)

    async def set_oil_heater_power(self, value: int) -> Response:
        """Set the oil heater power level in percent."""
        return await self.request("POST", "/oil-heater-power", Response, body={"heating_level_percentage": value})

    # -------------------------------------------------------------------------
    # Lock Endpoints
    # -------------------------------------------------------------------------

    async def get_child_lock(self) -> ChildLockResponse:
        """Get whether the child lock is enabled."""
        return await self.request("GET", "/child-lock", ChildLockResponse)

    async def set_child_lock(self, enabled: bool) -> Response:
        """Enable or disable the child lock."""
        return await self.request("POST", "/child-lock", Response, body={"value": enabled})

    async def get_commercial_lock(self) -> CommercialLockResponse:
        """Get whether the commercial lock is enabled."""
        return await self.request("GET", "/commercial-lock", CommercialLockResponse)

    async def set_commercial_lock(self, enabled: bool) -> Response:
        """Enable or disable the commercial lock."""
        return await self.request("POST", "/commercial-lock", Response, body={"value": enabled})

    async def get_commercial_lock_customization(self) -> CommercialLockCustomizationResponse:
        """Get the commercial lock temperature bounds."""
        return await self.request("GET", "/commercial-lock-customization", CommercialLockCustomizationResponse)

    async def set_commercial_lock_customization(self, min_temperature: float, max_temperature: float) -> Response:
        """Set the commercial lock temperature bounds.

        The current lock state is read first so that it is sent back unchanged.

        Args:
            min_temperature: Lowest allowed set-temperature in °C.
            max_temperature: Highest allowed set-temperature in °C.

        Returns:
            Generic response.
        """
        lock = await self.get_commercial_lock()
        body = CommercialLockCustomization(
            enabled=bool(lock.value),
            min_temperature=min_temperature,
            max_temperature=max_temperature,
        )
        return await self.request("POST", "/commercial-lock-customization", Response, body=body)

    # -------------------------------------------------------------------------
    # Configuration Endpoints
    # -------------------------------------------------------------------------

    async def get_timezone_offset(self) -> TimeZoneOffsetResponse:
        """Get the time zone offset from UTC in minutes."""
        return await self.request("GET", "/timezone-offset", TimeZoneOffsetResponse)

    async def set_timezone_offset(self, offset: int) -> Response:
        """Set the time zone offset from UTC in minutes."""
        return await self.request("POST", "/timezone-offset", Response, body={"timezone_offset": offset})

    async def get_pid_parameters(self) -> PIDParametersResponse:
        """Get the PID regulator parameters."""
        return await self.request("GET", "/pid-parameters", PIDParametersResponse)

    async def set_pid_parameters(self, parameters: PIDParameters) -> Response:
        """Set the PID regulator parameters."""
        return await self.request("POST", "/pid-parameters", Response, body=parameters)

    async def get_cloud_communication(self) -> CloudCommunicationResponse:
        """Get whether cloud communication is enabled."""
        return await self.request("GET", "/cloud-communication", CloudCommunicationResponse)

    async def set_cloud_communication(self, enabled: bool) -> Response:
        """Enable or disable cloud communication. Takes effect after a reboot."""
        return await self.request("POST", "/cloud-communication", Response, body={"value": enabled})

    async def get_hysteresis_parameters(self) -> HysteresisParametersResponse:
        """Get the hysteresis limits."""
        return await self.request("GET", "/hysteresis-parameters", HysteresisParametersResponse)

    async def set_hysteresis_parameters(self, parameters: HysteresisParameters) -> Response:
        """Set the hysteresis limits. Takes effect after a reboot."""
        return await self.request("POST", "/hysteresis-parameters", Response, body=parameters)

    async def get_open_window_parameters(self) -> OpenWindowParametersResponse:
        """Get the open window function parameters."""
        return await self.request("GET", "/open-window", OpenWindowParametersResponse)

    async def set_open_window_parameters(self, parameters: OpenWindowParameters) -> Response:
        """Set the open window function parameters."""
        return await self.request("POST", "/open-window", Response, body=parameters)

    async def set_custom_name(self, name: str) -> Response:
        """Set the custom device name. An empty name removes it.

        Args:
            name: New custom name, at most 32 characters.

        Returns:
            Generic response.

        Raises:
            ConfigurationError: If the name is too long.
        """
        if len(name) > CUSTOM_NAME_MAX_LENGTH:
            msg = f"The custom name can't be longer than {CUSTOM_NAME_MAX_LENGTH} characters"
            raise ConfigurationError(msg)
        return await self.request("POST", "/set-custom-name", Response, body={"device_name": name})

    # -------------------------------------------------------------------------
    # Maintenance Endpoints
    # -------------------------------------------------------------------------

    async def set_api_key(self, api_key: str) -> Response | None:
        """Set a new API key.

        WARNING: Setting an API key switches the device to HTTPS, and the key
        can only be changed, not removed. A factory reset is required to
        restore HTTP.

        The device reboots without answering a successful call, so a timeout
        is reported as success.

        Args:
            api_key: New API key, at most 63 bytes in UTF-8.

        Returns:
            The response, or None if the device didn't answer.

        Raises:
            ConfigurationError: If the key is blank or too long.
        """
        if not api_key or not api_key.strip():
            msg = "API key cannot be blank"
            raise ConfigurationError(msg)
        if len(api_key.encode("utf-8")) > API_KEY_MAX_BYTES:
            msg = f"API key can't be longer than {API_KEY_MAX_BYTES} bytes"
            raise ConfigurationError(msg)
        return await self._request_tolerating_timeout("/set-api-key", {"api_key": api_key}, SET_API_KEY_TIMEOUT)

    async def reboot(self) -> Response | None:
        """Reboot the device.

        Returns:
            The response, or None if the device didn't answer (the usual case).
        """
        return await self._request_tolerating_timeout("/reboot", None, REBOOT_TIMEOUT)
