"""Basic usage example for pymilllan library."""

import asyncio

from pymilllan import DeviceConfig, MillClient, TemperatureType


async def main() -> None:
    """Demonstrate basic usage of pymilllan."""
    # Replace with the address of your heater
    config = DeviceConfig(hostname="192.168.1.20")

    async with MillClient() as client:
        device = await client.add_device(config, start=False)

        # Poll once by hand instead of waiting for the background cadences
        await device.refresh_infrequent()
        await device.refresh_frequent()

        print(f"Device: {device}")
        print(f"  Connectivity: {device.connectivity.status} ({device.connectivity.description})")
        print(f"  Firmware: {device.firmware_version}")
        print(f"  MAC address: {device.mac_address}")

        if not device.is_online:
            return

        print(f"  Ambient temperature: {device.ambient_temperature} °C")
        print(f"  Set temperature: {device.set_temperature} °C")
        print(f"  Current power: {device.current_power} W")
        print(f"  Operation mode: {device.operation_mode}")

        # Commands report their outcome instead of raising
        result = await device.commands.set_set_temperature(TemperatureType.NORMAL, 21.5)
        print(f"\n{result.message}")

        result = await device.commands.set_child_lock(True)
        print(result.message)


if __name__ == "__main__":
    asyncio.run(main())
