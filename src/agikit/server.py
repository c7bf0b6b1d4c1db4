"""FastAGI TCP server: one session per inbound connection, each handled in its own task."""

import asyncio
import contextlib
import logging
import os
import signal
import socket
from collections.abc import Awaitable, Callable

from mm_clikit import write_pid_file

from agikit.config import Config
from agikit.errors import ServerError
from agikit.session import Session

logger = logging.getLogger(__name__)

DEFAULT_HOST = "localhost"
DEFAULT_PORT = 4573
DEFAULT_ADDRESS = f"{DEFAULT_HOST}:{DEFAULT_PORT}"

Handler = Callable[[Session], Awaitable[None]]


def split_address(address: str) -> tuple[str, int]:
    """Split ``host:port`` into its parts; empty parts fall back to the defaults.

    Raises:
        ServerError: The port is not a number in 0-65535.

    """
    if not address:
        return DEFAULT_HOST, DEFAULT_PORT
    host, sep, port = address.rpartition(":")
    if not sep or address.endswith("]"):
        return address.strip("[]"), DEFAULT_PORT
    host = host.strip("[]") or DEFAULT_HOST
    if not port:
        return host, DEFAULT_PORT
    try:
        number = int(port)
    except ValueError:
        raise ServerError(f"invalid port in address {address!r}") from None
    if not 0 <= number <= 65535:
        raise ServerError(f"port out of range in address {address!r}")
    return host, number


class FastAgiServer:
    """Accept loop dispatching each AGI session to a handler coroutine."""

    def __init__(self, address: str, handler: Handler, *, session_logger: logging.Logger | None = None) -> None:
        """Initialize the server.

        Args:
            address: ``host:port`` to bind; empty string means ``localhost:4573``.
            handler: Coroutine function called with each ready session. It owns the connection.
            session_logger: Protocol debug logger attached to every session.

        """
        self._host, self._port = split_address(address)
        self._handler = handler
        self._session_logger = session_logger
        self._sock: socket.socket | None = None
        self._accept_task: asyncio.Future[tuple[socket.socket, object]] | None = None
        self._closing = False
        # Strong references to handler tasks to prevent GC
        self._tasks: set[asyncio.Task[None]] = set()

    @property
    def address(self) -> tuple[str, int]:
        """Bound address (the real port once bound, even when 0 was requested)."""
        if self._sock is not None:
            host, port = self._sock.getsockname()[:2]
            return host, port
        return self._host, self._port

    def bind(self) -> None:
        """Create the listening socket.

        Raises:
            ServerError: The address cannot be bound.

        """
        if self._sock is not None:
            return
        try:
            sock = socket.create_server((self._host, self._port), family=_family(self._host))
        except (OSError, OverflowError) as e:
            raise ServerError(f"failed to bind server: {e}") from e
        sock.setblocking(False)
        self._sock = sock
        logger.info("FastAGI listening on %s:%d", *self.address)

    async def serve(self) -> None:
        """Accept connections until closed.

        Raises:
            ServerError: Binding or accepting failed. The loop is not restarted.

        """
        self.bind()
        sock = self._sock
        if sock is None:
            raise ServerError("failed to bind server")
        loop = asyncio.get_running_loop()
        try:
            while not self._closing:
                self._accept_task = asyncio.ensure_future(loop.sock_accept(sock))
                try:
                    conn, peer = await self._accept_task
                except asyncio.CancelledError:
                    if self._closing:
                        return
                    raise
                except OSError as e:
                    raise ServerError(f"failed to accept TCP connection: {e}") from e
                logger.debug("Accepted connection from %s", peer)
                self._spawn(self._handle_connection(conn))
        finally:
            self._accept_task = None
            self._close_socket()

    def close(self) -> None:
        """Stop accepting connections. Dispatched sessions are left to their handlers."""
        self._closing = True
        if self._accept_task is not None:
            self._accept_task.cancel()
        else:
            self._close_socket()

    def _close_socket(self) -> None:
        if self._sock is not None:
            with contextlib.suppress(OSError):
                self._sock.close()
            self._sock = None

    def _spawn(self, coro: Awaitable[None]) -> None:
        task = asyncio.ensure_future(coro)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    async def _handle_connection(self, conn: socket.socket) -> None:
        """Run the handshake on a fresh connection and hand the session to the handler."""
        try:
            reader, writer = await asyncio.open_connection(sock=conn)
        except OSError:
            logger.exception("Failed to open AGI connection")
            conn.close()
            return
        try:
            session = await Session.from_connection(reader, writer, logger=self._session_logger)
        except (OSError, ValueError):
            logger.exception("AGI handshake failed")
            writer.close()
            return
        logger.debug("AGI session started: %s", session.variables.get("agi_request", ""))
        try:
            await self._handler(session)
        except Exception:
            logger.exception("Error in AGI handler")


async def listen(address: str, handler: Handler, *, session_logger: logging.Logger | None = None) -> None:
    """Bind a FastAGI service at ``address`` and run ``handler`` for every connection.

    Returns only when the listener is closed; accept failures raise ``ServerError``.
    """
    server = FastAgiServer(address, handler, session_logger=session_logger)
    await server.serve()


def _family(host: str) -> socket.AddressFamily:
    return socket.AF_INET6 if ":" in host else socket.AF_INET


async def _run(cfg: Config, handler: Handler) -> None:
    session_logger = logging.getLogger("agikit.protocol") if cfg.debug_protocol else None
    server = FastAgiServer(cfg.address, handler, session_logger=session_logger)
    server.bind()
    if cfg.pid_path is not None:
        write_pid_file(cfg.pid_path)
    logger.info("FastAGI server started (pid %d)", os.getpid())

    loop = asyncio.get_running_loop()
    for sig in (signal.SIGTERM, signal.SIGINT):
        loop.add_signal_handler(sig, server.close)
    try:
        await server.serve()
    finally:
        logger.info("Shutting down FastAGI server.")
        if cfg.pid_path is not None:
            with contextlib.suppress(OSError):
                cfg.pid_path.unlink()


def run_server(cfg: Config, handler: Handler) -> None:
    """Entry point: run the FastAGI server in a fresh asyncio event loop."""
    asyncio.run(_run(cfg, handler))
