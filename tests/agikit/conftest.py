"""Stream doubles for session tests."""

import asyncio
from collections.abc import Awaitable, Callable

import pytest

from agikit.session import Session

HANDSHAKE = b"agi_request: test.agi\nagi_channel: SIP/100-00000001\n\n"


class FakePeer:
    """Scripted Asterisk end of a session: every written command releases the next reply."""

    def __init__(self, handshake: bytes, replies: list[str]) -> None:
        self.reader = asyncio.StreamReader()
        self.reader.feed_data(handshake)
        self.replies = list(replies)
        self.commands: list[str] = []
        self.closed = False
        self._eof = False

    def write(self, data: bytes) -> None:
        self.commands.append(data.decode().removesuffix("\n"))
        if self.replies:
            self.reader.feed_data(self.replies.pop(0).encode())
        elif not self._eof:
            self._eof = True
            self.reader.feed_eof()

    async def drain(self) -> None:
        pass

    def close(self) -> None:
        self.closed = True

    async def wait_closed(self) -> None:
        pass


SessionFactory = Callable[..., Awaitable[tuple[Session, FakePeer]]]


@pytest.fixture
def make_session() -> SessionFactory:
    """Build a session bound to a FakePeer answering with the given reply strings."""

    async def _make(*replies: str, handshake: bytes = HANDSHAKE, owns_connection: bool = False) -> tuple[Session, FakePeer]:
        peer = FakePeer(handshake, list(replies))
        session = await Session.create(peer.reader, peer, owns_connection=owns_connection)
        return session, peer

    return _make
