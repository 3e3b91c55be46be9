"""HTTP transport shared by all devices.

The transport performs one HTTP request and returns the raw result. It knows
nothing about the Mill API; status interpretation and decoding happen in
:mod:`pymilllan.api`. One transport (and its connection pool) is meant to be
shared process-wide, started once and closed once.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Protocol

from aiohttp import ClientError, ClientSession, ClientTimeout

from pymilllan.exceptions import CommunicationError


if TYPE_CHECKING:
    from collections.abc import Mapping
    from types import TracebackType

_LOGGER = logging.getLogger(__name__)


@dataclass
class TransportResponse:
    """Raw HTTP response.

    Attributes:
        status: HTTP status code.
        reason: HTTP reason phrase.
        headers: Response headers.
        body: Raw response body.
    """

    status: int
    reason: str | None = None
    headers: dict[str, str] = field(default_factory=dict)
    body: bytes = b""


class Transport(Protocol):
    """Capability to send a single HTTP request."""

    async def send(
        self,
        method: str,
        url: str,
        *,
        headers: Mapping[str, str],
        body: bytes | None,
        timeout: float,
    ) -> TransportResponse:
        """Send a request and return the raw response.

        Raises:
            CommunicationError: On timeouts or connection failures.
        """
        ...


class AiohttpTransport:
    """Transport backed by a shared aiohttp ClientSession.

    Example:
        ```python
        async with AiohttpTransport() as transport:
            response = await transport.send(
                "GET", "http://192.168.1.20/status", headers={}, body=None, timeout=8
            )
        ```

    The device serves HTTPS with a self-signed certificate when an API key is
    set, so certificate verification is disabled for ``https`` URLs.
    """

    def __init__(self, session: ClientSession | None = None) -> None:
        """Initialize the transport.

        Args:
            session: Optional aiohttp ClientSession. If not provided, one will be
                created by ``start()`` and closed by ``close()``.
        """
        self._session = session
        self._owns_session = session is None

    @property
    def started(self) -> bool:
        """Check if the transport can send requests."""
        return self._session is not None and not self._session.closed

    async def start(self) -> None:
        """Create the session if needed. Calling it twice is harmless."""
        if self._session is None or (self._owns_session and self._session.closed):
            self._session = ClientSession()
            self._owns_session = True
            _LOGGER.debug("Started HTTP transport")

    async def close(self) -> None:
        """Close the session if it was created by this transport."""
        if self._owns_session and self._session is not None and not self._session.closed:
            await self._session.close()
            _LOGGER.debug("Closed HTTP transport")
        if self._owns_session:
            self._session = None

    async def __aenter__(self) -> AiohttpTransport:
        """Enter the context manager.

        Returns:
            Self for use in async with statements.
        """
        await self.start()
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        """Exit the context manager, closing an owned session."""
        await self.close()

    async def send(
        self,
        method: str,
        url: str,
        *,
        headers: Mapping[str, str],
        body: bytes | None,
        timeout: float,
    ) -> TransportResponse:
        """Send a request and return the raw response.

        Args:
            method: HTTP method (GET, POST).
            url: Absolute request URL.
            headers: Request headers.
            body: Optional request body.
            timeout: Total timeout in seconds.

        Returns:
            The raw response.

        Raises:
            RuntimeError: If the transport isn't started.
            CommunicationError: If the request times out or the connection fails.
        """
        if self._session is None or self._session.closed:
            msg = "Transport not started. Use 'async with' or call start()."
            raise RuntimeError(msg)

        try:
            async with self._session.request(
                method,
                url,
                data=body,
                headers=dict(headers),
                timeout=ClientTimeout(total=timeout),
                ssl=not url.startswith("https"),
            ) as response:
                return TransportResponse(
                    status=response.status,
                    reason=response.reason,
                    headers=dict(response.headers),
                    body=await response.read(),
                )

        except TimeoutError as err:
            _LOGGER.debug("Request to %s timed out", url)
            msg = "Timed out while trying to communicate"
            raise CommunicationError(msg, timeout=True, description="Communication timeout") from err

        except ClientError as err:
            _LOGGER.debug("Connection error for %s: %s", url, err)
            msg = f"Failed to send request: {err}"
            raise CommunicationError(msg) from err
