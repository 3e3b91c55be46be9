"""Device manager for Mill LAN devices.

This module owns the shared HTTP transport and the lifecycle of every
:class:`~pymilllan.devices.MillDevice` created through it.
"""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING, Any

from aiohttp import ClientSession  # noqa: TC002 - Used at runtime for type hints

from pymilllan.config import DeviceConfig
from pymilllan.devices import MillDevice
from pymilllan.transport import AiohttpTransport


if TYPE_CHECKING:
    from collections.abc import Mapping
    from types import TracebackType

_LOGGER = logging.getLogger(__name__)


class MillClient:
    """Device manager for Mill heaters and sockets on the local network.

    All devices share one transport and its connection pool. Leaving the
    context manager shuts every device down before the transport is closed.

    Example:
        Basic usage with automatic session management:

        ```python
        from pymilllan import DeviceConfig, MillClient

        async with MillClient() as client:
            device = await client.add_device(DeviceConfig(hostname="192.168.1.20"))
            await device.wait_initialized()
            print(device.connectivity)
        ```

        Session injection:

        ```python
        from aiohttp import ClientSession

        async with ClientSession() as session, MillClient(session=session) as client:
            await client.add_device({"hostname": "192.168.1.21", "variant": "socket"})
        ```
    """

    def __init__(self, *, session: ClientSession | None = None) -> None:
        """Initialize the client.

        Args:
            session: Optional aiohttp ClientSession. If not provided, one will be
                created when entering the context manager.
        """
        self._transport = AiohttpTransport(session)
        self._devices: dict[str, MillDevice] = {}

    @property
    def transport(self) -> AiohttpTransport:
        """Get the shared transport."""
        return self._transport

    @property
    def devices(self) -> list[MillDevice]:
        """Get all managed devices."""
        return list(self._devices.values())

    async def __aenter__(self) -> MillClient:
        """Enter the context manager.

        Returns:
            Self for use in async with statements.
        """
        await self._transport.start()
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        """Exit the context manager.

        Shuts down all devices and closes the transport.
        """
        await self.close()

    async def close(self) -> None:
        """Shut down all devices and close the transport."""
        if self._devices:
            await asyncio.gather(*(device.shutdown() for device in self._devices.values()))
        self._devices.clear()
        await self._transport.close()

    async def add_device(self, config: DeviceConfig | Mapping[str, Any], *, start: bool = True) -> MillDevice:
        """Create a device and start polling it.

        Args:
            config: Device configuration, or a mapping accepted by
                :meth:`DeviceConfig.from_dict`.
            start: Start the poll cadences right away.

        Returns:
            The new device.

        Raises:
            ValueError: If a device with the same hostname is already managed.
            ConfigurationError: If a mapping holds invalid values.
        """
        if not isinstance(config, DeviceConfig):
            config = DeviceConfig.from_dict(config)
        if config.hostname in self._devices:
            msg = f"Device {config.hostname} is already managed"
            raise ValueError(msg)

        await self._transport.start()
        device = MillDevice(self._transport, config)
        self._devices[config.hostname] = device
        if start:
            await device.start()
        _LOGGER.debug("Added Mill device %s (%s)", config.hostname, config.variant)
        return device

    def get_device(self, hostname: str) -> MillDevice | None:
        """Get a managed device by hostname.

        Args:
            hostname: The hostname the device was added with.

        Returns:
            The device, or None if it isn't managed.
        """
        return self._devices.get(hostname)

    async def remove_device(self, hostname: str) -> None:
        """Shut a device down and stop managing it."""
        device = self._devices.pop(hostname, None)
        if device is not None:
            await device.shutdown()

    async def refresh_all(self) -> None:
        """Run a frequent tick on every managed device.

        Failures are reflected in each device's connectivity state.
        """
        if not self._devices:
            return
        await asyncio.gather(*(device.refresh_frequent() for device in self._devices.values()))
