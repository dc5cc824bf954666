"""Pytest configuration and fixtures for ttyd_client tests."""

from __future__ import annotations

import asyncio
from typing import Any
from unittest.mock import AsyncMock, MagicMock

import pytest

from ttyd_client import Credentials, SessionConfig

_CLOSED = object()


@pytest.fixture
def mock_session() -> MagicMock:
    """Create a mock aiohttp ClientSession."""
    import aiohttp

    return MagicMock(spec=aiohttp.ClientSession)


@pytest.fixture
def credentials() -> Credentials:
    return Credentials(username="admin", password="s3cret")


@pytest.fixture
def config() -> SessionConfig:
    return SessionConfig(server="tty.example.com", base_path="/term/")


def create_mock_response(
    status: int = 200,
    text_data: str | None = None,
    read_data: bytes | None = None,
) -> AsyncMock:
    """Create a configured mock response.

    Args:
        status: HTTP status code
        text_data: Body text; read() returns it UTF-8 encoded
        read_data: Raw body bytes returned from read()

    Returns:
        Configured AsyncMock response
    """
    response = AsyncMock()
    response.status = status

    if text_data is not None:
        response.text.return_value = text_data
        response.read.return_value = text_data.encode()
    if read_data is not None:
        response.read.return_value = read_data

    response.__aenter__.return_value = response
    response.__aexit__.return_value = None

    return response


class FakeConnection:
    """In-memory stand-in for a websockets ClientConnection.

    Messages fed with ``feed()`` are yielded by async iteration; ``close()``
    records the request and ends iteration unless ``ack_close`` is False,
    in which case it never returns.
    """

    def __init__(self, messages: list[Any] | None = None, *, ack_close: bool = True):
        self.sent: list[bytes | str] = []
        self.close_calls: list[tuple[int, str]] = []
        self.close_code: int | None = None
        self.close_reason: str | None = None
        self._ack_close = ack_close
        self.transport = MagicMock()
        self._queue: asyncio.Queue[Any] = asyncio.Queue()
        for message in messages or []:
            self.feed(message)

    def feed(self, message: Any) -> None:
        self._queue.put_nowait(message)

    def server_close(self, code: int = 1000, reason: str = "") -> None:
        self.close_code = code
        self.close_reason = reason
        self._queue.put_nowait(_CLOSED)

    async def send(self, data: bytes | str) -> None:
        self.sent.append(data)

    async def close(self, code: int = 1000, reason: str = "") -> None:
        self.close_calls.append((code, reason))
        if not self._ack_close:
            await asyncio.sleep(3600)
        if self.close_code is None:
            self.close_code = code
            self.close_reason = reason
        self._queue.put_nowait(_CLOSED)

    def __aiter__(self) -> FakeConnection:
        return self

    async def __anext__(self) -> Any:
        item = await self._queue.get()
        if item is _CLOSED:
            raise StopAsyncIteration
        if isinstance(item, BaseException):
            raise item
        return item
