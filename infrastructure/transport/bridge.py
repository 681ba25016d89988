"""Relay a loopback TCP listener to a Unix domain socket.

The gRPC channel only dials ``host:port`` targets here, so a ``unix:``
address is served through an ephemeral local port instead. The relay runs
on its own event loop in a daemon thread: it never keeps the process alive
on its own.
"""
from __future__ import annotations

import asyncio
import threading
from typing import Any, Awaitable, Optional

from core.logging_config import get_logger
from domain.common.exceptions import TransportBridgeError

logger = get_logger(__name__)

UNIX_SCHEME = "unix:"
CHUNK_SIZE = 64 * 1024


async def _pipe(reader: asyncio.StreamReader, writer: asyncio.StreamWriter) -> None:
    """Copy bytes until EOF, then half-close the destination."""
    try:
        while True:
            data = await reader.read(CHUNK_SIZE)
            if not data:
                break
            writer.write(data)
            await writer.drain()
        if writer.can_write_eof():
            writer.write_eof()
    except (ConnectionError, OSError):
        writer.close()


class UnixSocketBridge:
    def __init__(self, unix_path: str, host: str = "127.0.0.1") -> None:
        self.unix_path = unix_path
        self.host = host
        self.port: Optional[int] = None
        self._loop = asyncio.new_event_loop()
        self._thread = threading.Thread(target=self._run, name="grpcc-bridge", daemon=True)
        self._started = threading.Event()
        self._server: Optional[asyncio.AbstractServer] = None
        # relay tasks per live connection; discarded once finished
        self._relays: set[asyncio.Task] = set()

    def _run(self) -> None:
        asyncio.set_event_loop(self._loop)
        self._started.set()
        self._loop.run_forever()

    def _run_coro(self, coro: Awaitable[Any]) -> Any:
        fut = asyncio.run_coroutine_threadsafe(coro, self._loop)
        return fut.result()

    @property
    def address(self) -> str:
        if self.port is None:
            raise TransportBridgeError(self.unix_path, "bridge not started")
        return f"localhost:{self.port}"

    def start(self) -> str:
        """Open the listener and return the ``localhost:<port>`` to dial."""
        self._thread.start()
        self._started.wait(5)
        try:
            self._server = self._run_coro(
                asyncio.start_server(self._handle, host=self.host, port=0)
            )
        except OSError as exc:
            self.close()
            raise TransportBridgeError(self.unix_path, exc.strerror or str(exc)) from exc

        self.port = self._server.sockets[0].getsockname()[1]
        logger.info("bridge_started", unix_path=self.unix_path, port=self.port)
        return self.address

    async def _handle(self, reader: asyncio.StreamReader, writer: asyncio.StreamWriter) -> None:
        task = asyncio.current_task()
        if task is not None:
            self._relays.add(task)
            task.add_done_callback(self._relays.discard)
        try:
            unix_reader, unix_writer = await asyncio.open_unix_connection(self.unix_path)
        except OSError as exc:
            # only this TCP connection is dropped; the listener stays up
            logger.warning("bridge_relay_failed", unix_path=self.unix_path, error=str(exc))
            writer.close()
            return

        try:
            await asyncio.gather(
                _pipe(reader, unix_writer),
                _pipe(unix_reader, writer),
            )
        finally:
            unix_writer.close()
            writer.close()

    async def _shutdown(self) -> None:
        if self._server is not None:
            self._server.close()
        relays = list(self._relays)
        for task in relays:
            task.cancel()
        await asyncio.gather(*relays, return_exceptions=True)
        # wait_closed also waits for the relayed connections to go away
        if self._server is not None:
            await self._server.wait_closed()

    def close(self) -> None:
        """Stop the listener, cancel live relays, then stop and close the loop."""
        if self.closed:
            return
        if self._thread.is_alive():
            try:
                self._run_coro(self._shutdown())
            finally:
                self._loop.call_soon_threadsafe(self._loop.stop)
                self._thread.join(timeout=5)
                logger.debug("bridge_closed", unix_path=self.unix_path)
        if not self._thread.is_alive() and not self._loop.is_closed():
            self._loop.close()

    @property
    def closed(self) -> bool:
        return self._loop.is_closed()


def bridge_address(address: str) -> tuple[str, Optional[UnixSocketBridge]]:
    """Return the address to dial, starting a bridge for ``unix:`` targets.

    Any other form is passed through unchanged.
    """
    if not address.startswith(UNIX_SCHEME):
        return address, None
    unix_path = address[len(UNIX_SCHEME):]
    # grpc also accepts unix:///abs/path
    if unix_path.startswith("//"):
        unix_path = unix_path[2:]
    if not unix_path:
        raise TransportBridgeError(address, "empty socket path")
    bridge = UnixSocketBridge(unix_path)
    return bridge.start(), bridge
