"""Monitor multiple Mill devices example.

This example demonstrates:
- Managing several devices with one client
- Reacting to attribute changes
- Reacting to connectivity changes
"""

import asyncio
import logging
from datetime import datetime

from pymilllan import Attribute, ConnectivityState, DeviceConfig, DeviceVariant, MillClient, MillDevice


WATCHED = {
    Attribute.AMBIENT_TEMPERATURE,
    Attribute.SET_TEMPERATURE,
    Attribute.CURRENT_POWER,
    Attribute.OPERATION_MODE,
    Attribute.OPEN_WINDOW_STATUS,
}


def watch(device: MillDevice) -> None:
    """Print changes of one device as they are polled."""

    def on_change(device: MillDevice, changed: frozenset[Attribute]) -> None:
        timestamp = datetime.now().strftime("%H:%M:%S")
        for attribute in sorted(changed & WATCHED):
            print(f"[{timestamp}] {device}: {attribute} = {device.get(attribute)}")

    def on_status(device: MillDevice, state: ConnectivityState) -> None:
        timestamp = datetime.now().strftime("%H:%M:%S")
        reason = f" ({state.description})" if state.description else ""
        print(f"[{timestamp}] {device}: {state.status}{reason}")

    device.add_listener(on_change)
    device.add_status_listener(on_status)


async def main() -> None:
    """Main monitoring function."""
    logging.basicConfig(level=logging.INFO)

    # Replace with your devices
    configs = [
        DeviceConfig(hostname="192.168.1.20", variant=DeviceVariant.PANEL_HEATER, refresh_interval=10),
        DeviceConfig(hostname="192.168.1.21", variant=DeviceVariant.SOCKET, refresh_interval=10),
    ]

    async with MillClient() as client:
        for config in configs:
            device = await client.add_device(config, start=False)
            watch(device)
            await device.start()

        print("Monitoring devices (Ctrl+C to stop)...")
        try:
            await asyncio.Event().wait()
        except asyncio.CancelledError:
            print("\nMonitoring stopped")


if __name__ == "__main__":
    asyncio.run(main())
