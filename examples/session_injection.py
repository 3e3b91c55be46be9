"""Example showing session injection for Home Assistant integration."""

import asyncio

from aiohttp import ClientSession

from pymilllan import DeviceConfig, MillClient


async def main() -> None:
    """Demonstrate session injection pattern for HA integration."""
    # This pattern is useful for Home Assistant integrations where
    # the session is managed by the application

    async with ClientSession() as session:
        print("Using application-managed aiohttp session")

        # Client will use the provided session instead of creating its own
        async with MillClient(session=session) as client:
            device = await client.add_device(DeviceConfig(hostname="192.168.1.20"))
            await device.wait_initialized()
            print(f"{device}: {device.connectivity.status}")

        # Session remains open after client exits
        print("\nClient closed, but session still available for other requests")


async def home_assistant_style() -> None:
    """Example matching Home Assistant config entry setup."""
    # In HA: async_get_clientsession(hass) and entry.data
    app_session = ClientSession()
    entry_data = {"hostname": "192.168.1.20", "api_key": "", "variant": "oil_heater"}

    try:
        async with MillClient(session=app_session) as client:
            device = await client.add_device(entry_data)
            await device.wait_initialized()
            print(f"Home Assistant pattern: {device} is {device.connectivity.status}")

    finally:
        # Application manages session lifecycle
        await app_session.close()


if __name__ == "__main__":
    asyncio.run(main())
    asyncio.run(home_assistant_style())
