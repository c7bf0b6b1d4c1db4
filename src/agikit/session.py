"""AGI session engine: handshake, serialized command round-trips, stream ownership."""

import asyncio
import contextlib
import logging
import os
import sys
from collections.abc import Iterable, Mapping
from types import MappingProxyType, TracebackType
from typing import IO, Any, Protocol, Self

from agikit.errors import TransportError
from agikit.operations import AgiOperations
from agikit.protocol import ParseMode, Response, parse_response

# File descriptor Asterisk uses for the EAGI audio stream
EAGI_FD = 3


class LineReader(Protocol):
    """Input side of a session: anything with an ``asyncio.StreamReader``-style ``readline``."""

    async def readline(self) -> bytes: ...


class LineWriter(Protocol):
    """Output side of a session: an ``asyncio.StreamWriter``-style writer."""

    def write(self, data: bytes) -> None: ...

    async def drain(self) -> None: ...

    def close(self) -> None: ...

    async def wait_closed(self) -> None: ...


def _decode_line(raw: bytes) -> str:
    return raw.decode("utf-8", errors="replace").rstrip("\r\n")


async def read_variables(reader: LineReader) -> dict[str, str]:
    """Read the ``Key: Value`` block Asterisk sends before any command.

    Stops at the first blank line or at end of stream. Lines without a colon
    are ignored.
    """
    variables: dict[str, str] = {}
    while True:
        raw = await reader.readline()
        if not raw:
            break
        line = _decode_line(raw)
        if not line:
            break
        key, sep, value = line.partition(":")
        if sep:
            variables[key.strip()] = value.strip()
    return variables


class Session(AgiOperations):
    """One AGI conversation bound to a single stream pair.

    Use ``await Session.create(...)`` (or one of the ``from_*`` constructors):
    the handshake needs the event loop, so it cannot run in ``__init__``.
    """

    def __init__(
        self,
        reader: LineReader,
        writer: LineWriter,
        variables: Mapping[str, str],
        *,
        eagi: asyncio.StreamReader | None = None,
        owns_connection: bool = False,
        logger: logging.Logger | None = None,
    ) -> None:
        """Initialize a session from already-read handshake variables.

        Args:
            reader: Stream carrying Asterisk responses.
            writer: Stream carrying commands to Asterisk.
            variables: Handshake variables.
            eagi: Optional EAGI side-channel (audio) stream.
            owns_connection: Close the writer when the session is closed.
            logger: Optional protocol debug sink.

        """
        self._reader = reader
        self._writer = writer
        self._eagi = eagi
        self._owns_connection = owns_connection
        self._logger = logger
        self._variables = MappingProxyType(dict(variables))
        self._lock = asyncio.Lock()  # one round-trip in flight per session

    @classmethod
    async def create(
        cls,
        reader: LineReader,
        writer: LineWriter,
        *,
        eagi: asyncio.StreamReader | None = None,
        owns_connection: bool = False,
        logger: logging.Logger | None = None,
    ) -> Self:
        """Bind a session to a stream pair and consume the handshake block."""
        variables = await read_variables(reader)
        session = cls(reader, writer, variables, eagi=eagi, owns_connection=owns_connection)
        if logger is not None:
            session.attach_logger(logger)
        return session

    @classmethod
    async def from_connection(
        cls, reader: asyncio.StreamReader, writer: asyncio.StreamWriter, *, logger: logging.Logger | None = None
    ) -> Self:
        """Create a session that owns a network connection (FastAGI)."""
        return await cls.create(reader, writer, owns_connection=True, logger=logger)

    @classmethod
    async def from_stdio(cls, *, logger: logging.Logger | None = None) -> Self:
        """Create a session on the process standard streams (classic AGI script)."""
        reader, writer = await _open_stdio()
        return await cls.create(reader, writer, logger=logger)

    @classmethod
    async def from_eagi(cls, *, logger: logging.Logger | None = None) -> Self:
        """Create a session on the standard streams plus the EAGI audio stream on fd 3."""
        reader, writer = await _open_stdio()
        eagi = await _open_read_pipe(os.fdopen(EAGI_FD, "rb", buffering=0))
        return await cls.create(reader, writer, eagi=eagi, logger=logger)

    @property
    def variables(self) -> Mapping[str, str]:
        """Handshake variables (read-only)."""
        return self._variables

    @property
    def eagi(self) -> asyncio.StreamReader | None:
        """EAGI side-channel stream, if the session was created with one."""
        return self._eagi

    # --- Logging ---

    def attach_logger(self, logger: logging.Logger) -> None:
        """Attach a protocol debug logger and dump the handshake variables to it.

        Raises:
            RuntimeError: A logger is already attached.

        """
        if self._logger is not None:
            raise RuntimeError("Logger already attached")
        self._logger = logger
        for key, value in self._variables.items():
            logger.debug("$%s=%s", key, value)

    def apply_logger(self, logger: logging.Logger | None) -> None:
        """Replace the protocol debug logger; None detaches it."""
        self._logger = logger

    # --- Round-trip ---

    async def command(self, *tokens: str) -> Response:
        """Send a command whose result is a plain signed integer."""
        return await self._round_trip(tokens, ParseMode.STRICT)

    async def command_permissive(self, *tokens: str) -> Response:
        """Send a command whose result may be non-numeric or carry hangup/timeout sentinels."""
        return await self._round_trip(tokens, ParseMode.PERMISSIVE)

    async def _round_trip(self, tokens: Iterable[str], mode: ParseMode) -> Response:
        command = " ".join(tokens)
        raw = ""
        async with self._lock:
            try:
                self._writer.write(f"{command}\n".encode())
                await self._writer.drain()
            except OSError as e:
                resp = Response(error=TransportError(f"failed to send command: {e}"))
            else:
                try:
                    raw = await self._read_response_line()
                except (OSError, asyncio.IncompleteReadError, asyncio.LimitOverrunError, ValueError) as e:
                    resp = Response(error=TransportError(f"failed to read response: {e}"))
                except TransportError as e:
                    resp = Response(error=e)
                else:
                    resp = parse_response(raw, mode)
            self._log_round_trip(command, raw, resp)
        return resp

    async def _read_response_line(self) -> str:
        """Read the next non-blank line; blank lines left over from a previous reply are skipped.

        Raises:
            TransportError: The stream ended before a response line arrived.

        """
        while True:
            raw = await self._reader.readline()
            if not raw:
                raise TransportError("connection closed before response")
            line = _decode_line(raw)
            if line:
                return line

    def _log_round_trip(self, command: str, raw: str, resp: Response) -> None:
        if self._logger is None:
            return
        summary = resp.summary()
        self._logger.debug(
            "#%s -> %s -> %s",
            command,
            raw,
            summary,
            extra={"agi_command": command, "agi_raw": raw, "agi_response": summary},
        )

    # --- Lifecycle ---

    async def close(self) -> None:
        """Close the owned network connection, if any. Safe to call more than once."""
        if not self._owns_connection:
            return
        self._owns_connection = False
        self._writer.close()
        with contextlib.suppress(OSError):
            await self._writer.wait_closed()

    async def __aenter__(self) -> Self:
        return self

    async def __aexit__(
        self, exc_type: type[BaseException] | None, exc: BaseException | None, tb: TracebackType | None
    ) -> None:
        await self.close()


async def _open_read_pipe(pipe: IO[Any]) -> asyncio.StreamReader:
    loop = asyncio.get_running_loop()
    reader = asyncio.StreamReader()
    await loop.connect_read_pipe(lambda: asyncio.StreamReaderProtocol(reader), pipe)
    return reader


async def _open_stdio() -> tuple[asyncio.StreamReader, asyncio.StreamWriter]:
    """Wrap stdin/stdout in asyncio streams."""
    loop = asyncio.get_running_loop()
    reader = await _open_read_pipe(sys.stdin)
    transport, protocol = await loop.connect_write_pipe(asyncio.streams.FlowControlMixin, sys.stdout)
    writer = asyncio.StreamWriter(transport, protocol, reader, loop)
    return reader, writer

