"""Asyncio TCP stream to one Fishbowl server.

Only raw bytes cross this layer; framing lives in ``protocol.frame_codec``.
Every failure is raised as FishbowlConnectionError, already classified fatal
or transient, for the connection manager to act on.
"""

import asyncio
import logging
import time

from fishbowl_link.transport.exceptions import FishbowlConnectionError

logger = logging.getLogger(__name__)


def _elapsed_ms(start: float) -> float:
    return (time.perf_counter() - start) * 1000


class TCPConnection:
    """One TCP stream with connect and write deadlines.

    Reads have no deadline: a Fishbowl query may legitimately take minutes,
    and per-request deadlines are enforced above this layer.
    """

    def __init__(
        self,
        host: str,
        port: int,
        connect_timeout: float = 5.0,
        write_timeout: float = 10.0,
        max_read_size: int = 65536,
    ):
        self.host = host
        self.port = port
        self.connect_timeout = connect_timeout
        self.write_timeout = write_timeout
        self.max_read_size = max_read_size
        self.reader: asyncio.StreamReader | None = None
        self.writer: asyncio.StreamWriter | None = None
        self.bytes_sent = 0
        self.bytes_received = 0
        self._connected = False

    @property
    def address(self) -> str:
        return f"{self.host}:{self.port}"

    @property
    def is_connected(self) -> bool:
        return self._connected

    def _context(self, **fields: object) -> dict[str, object]:
        return {"host": self.host, "port": self.port, **fields}

    async def connect(self) -> None:
        """Open the stream.

        Raises:
            FishbowlConnectionError: fatal when refused, unreachable or unresolvable;
                transient on timeout and other socket errors

        """
        start = time.perf_counter()
        logger.info("→ Opening TCP stream to %s", self.address, extra=self._context(timeout=self.connect_timeout))
        try:
            async with asyncio.timeout(self.connect_timeout):
                self.reader, self.writer = await asyncio.open_connection(self.host, self.port)
        except TimeoutError as e:
            logger.warning(
                "✗ Connect to %s timed out",
                self.address,
                extra=self._context(elapsed_ms=_elapsed_ms(start), error="timeout"),
            )
            raise FishbowlConnectionError(f"connect to {self.address} timed out", state="connecting") from e
        except OSError as e:
            logger.warning(
                "✗ Connect to %s failed: %s",
                self.address,
                e,
                extra=self._context(elapsed_ms=_elapsed_ms(start), error=type(e).__name__),
            )
            raise FishbowlConnectionError.from_os_error(e, state="connecting") from e

        self._connected = True
        self.bytes_sent = self.bytes_received = 0
        logger.info("✓ TCP stream open to %s", self.address, extra=self._context(elapsed_ms=_elapsed_ms(start)))

    async def send(self, data: bytes) -> None:
        """Write ``data`` and wait until the kernel has taken it.

        Raises:
            FishbowlConnectionError: not connected, drain timed out, or socket error

        """
        if not self._connected or self.writer is None:
            raise FishbowlConnectionError("cannot send: not connected", state="disconnected")

        start = time.perf_counter()
        try:
            self.writer.write(data)
            async with asyncio.timeout(self.write_timeout):
                await self.writer.drain()
        except TimeoutError as e:
            raise FishbowlConnectionError(f"send to {self.address} timed out", state="connected") from e
        except OSError as e:
            raise FishbowlConnectionError.from_os_error(e, state="connected") from e

        self.bytes_sent += len(data)
        logger.debug("Sent %d bytes", len(data), extra=self._context(bytes=len(data), elapsed_ms=_elapsed_ms(start)))

    async def recv(self, max_bytes: int | None = None) -> bytes:
        """Next chunk from the stream, ``b""`` once the server has closed it.

        Raises:
            FishbowlConnectionError: not connected or socket error

        """
        if not self._connected or self.reader is None:
            raise FishbowlConnectionError("cannot receive: not connected", state="disconnected")

        try:
            data = await self.reader.read(max_bytes or self.max_read_size)
        except OSError as e:
            raise FishbowlConnectionError.from_os_error(e, state="connected") from e

        if data:
            self.bytes_received += len(data)
            logger.debug("Received %d bytes", len(data), extra=self._context(bytes=len(data)))
        else:
            self._connected = False
            logger.warning(
                "Server %s closed the connection",
                self.address,
                extra=self._context(bytes_sent=self.bytes_sent, bytes_received=self.bytes_received),
            )
        return data

    async def close(self) -> None:
        """Close the stream; errors while closing are logged, never raised."""
        writer, self.writer, self.reader = self.writer, None, None
        self._connected = False
        if writer is None:
            return
        logger.info("Closing TCP stream to %s", self.address, extra=self._context())
        try:
            writer.close()
            await writer.wait_closed()
        except OSError as e:
            logger.warning(
                "Error closing TCP stream: %s",
                e,
                extra=self._context(error=str(e), error_type=type(e).__name__),
            )

    def __repr__(self) -> str:
        return f"TCPConnection({self.address}, {'connected' if self._connected else 'disconnected'})"
