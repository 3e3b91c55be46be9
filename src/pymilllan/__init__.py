"""Python client library for Mill heaters and sockets on the local network.

This package talks to the local HTTP API of Mill Gen 3 devices and keeps a
live mirror of their state.

The library is organized into layers:
1. **Transport** (pymilllan.transport): One shared HTTP client for all devices
2. **API Layer** (pymilllan.api): One method per device endpoint, with error classification
3. **Device Layer** (pymilllan.devices): Poll cadences, state mirror and connectivity status
4. **Command Layer** (pymilllan.commands): Validated commands returning human-readable results
5. **Client Layer** (pymilllan.client): Lifecycle of the transport and all devices

Example:
    Basic usage:

    ```python
    from pymilllan import DeviceConfig, DeviceVariant, MillClient

    async with MillClient() as client:
        device = await client.add_device(
            DeviceConfig(hostname="192.168.1.20", variant=DeviceVariant.PANEL_HEATER)
        )
        await device.wait_initialized()

        # Access mirrored state
        print(f"Ambient temperature: {device.ambient_temperature}°C")

        # Run commands
        result = await device.commands.set_timezone_offset(60)
        print(result.message)
    ```

    Direct API access:

    ```python
    from pymilllan import AiohttpTransport, MillAPI

    async with AiohttpTransport() as transport:
        api = MillAPI(transport, "192.168.1.20")
        status = await api.get_control_status()
        print(status.ambient_temperature)
    ```
"""

from __future__ import annotations

from pymilllan.api import MillAPI
from pymilllan.client import MillClient
from pymilllan.commands import CommandGateway, CommandResult
from pymilllan.config import DeviceConfig
from pymilllan.connectivity import (
    ConnectivityState,
    ConnectivityStateMachine,
    ConnectivityStatus,
    DetailCode,
)
from pymilllan.devices import LifecycleState, MillDevice
from pymilllan.exceptions import (
    CommunicationError,
    ConfigurationError,
    DecodeError,
    DecodeErrorKind,
    MillError,
)
from pymilllan.mirror import DeviceMirror
from pymilllan.models import (
    Attribute,
    ControllerType,
    DisplayUnit,
    LockStatus,
    OpenWindowStatus,
    OperationMode,
    PredictiveHeatingType,
    ResponseStatus,
    TemperatureType,
)
from pymilllan.precision import DecimalPrecision, precision_for, round_value, same_value
from pymilllan.transport import AiohttpTransport, Transport, TransportResponse
from pymilllan.variants import Command, DeviceVariant, PollStep, VariantCapabilities, capabilities_for


__version__ = "0.1.0"

__all__ = [
    "AiohttpTransport",
    "Attribute",
    "Command",
    "CommandGateway",
    "CommandResult",
    "CommunicationError",
    "ConfigurationError",
    "ConnectivityState",
    "ConnectivityStateMachine",
    "ConnectivityStatus",
    "ControllerType",
    "DecimalPrecision",
    "DecodeError",
    "DecodeErrorKind",
    "DetailCode",
    "DeviceConfig",
    "DeviceMirror",
    "DeviceVariant",
    "DisplayUnit",
    "LifecycleState",
    "LockStatus",
    "MillAPI",
    "MillClient",
    "MillDevice",
    "MillError",
    "OpenWindowStatus",
    "OperationMode",
    "PollStep",
    "PredictiveHeatingType",
    "ResponseStatus",
    "TemperatureType",
    "Transport",
    "TransportResponse",
    "VariantCapabilities",
    "__version__",
    "capabilities_for",
    "precision_for",
    "round_value",
    "same_value",
]
