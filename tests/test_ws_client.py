"""Tests for TtydWsClient WebSocket wrapper."""

from __future__ import annotations

import json
from unittest.mock import AsyncMock, patch

import pytest
from websockets.exceptions import ConnectionClosed, ConnectionClosedError
from websockets.frames import Close

from ttyd_client import (
    Credentials,
    SessionConfig,
    TtydTransportError,
    TtydWsClient,
    TtydWsMessage,
    TtydWsMessageType,
)

from .conftest import FakeConnection


class TestTtydWsMessage:
    """Tests for TtydWsMessage dataclass."""

    def test_create_binary_message(self):
        msg = TtydWsMessage(type=TtydWsMessageType.BINARY, data=b"0hi")
        assert msg.type == TtydWsMessageType.BINARY
        assert msg.data == b"0hi"
        assert msg.code is None

    def test_message_is_frozen(self):
        msg = TtydWsMessage(type=TtydWsMessageType.TEXT, data="test")
        with pytest.raises(AttributeError):
            msg.data = "modified"  # type: ignore[misc]


class TestTtydWsClientConnect:
    """Tests for TtydWsClient.connect()."""

    async def test_connect_uses_config(self, config: SessionConfig, credentials: Credentials):
        mock_ws = AsyncMock()
        config = SessionConfig(
            server="host:7681",
            command="uptime",
            reject_unauthorized=False,
            connect_timeout=3.0,
            close_timeout=1.0,
        )

        with patch(
            "ttyd_client.ws_client.connect_websocket",
            return_value=mock_ws,
        ) as mock_connect:
            client = TtydWsClient()
            await client.connect(config, credentials)

        mock_connect.assert_called_once_with(
            "wss://host:7681/ws?arg=uptime",
            headers={"Authorization": credentials.authorization_header},
            subprotocol="tty",
            reject_unauthorized=False,
            ping_interval=20,
            close_timeout=1.0,
            timeout=3.0,
        )
        assert client.connected

    async def test_connect_propagates_errors(
        self, config: SessionConfig, credentials: Credentials
    ):
        with patch(
            "ttyd_client.ws_client.connect_websocket",
            side_effect=TtydTransportError("Connection failed"),
        ):
            client = TtydWsClient()
            with pytest.raises(TtydTransportError, match="Connection failed"):
                await client.connect(config, credentials)
        assert not client.connected


class TestTtydWsClientSend:
    """Tests for outbound messages."""

    async def _connected(self, fake, config, credentials) -> TtydWsClient:
        with patch("ttyd_client.ws_client.connect_websocket", return_value=fake):
            client = TtydWsClient()
            await client.connect(config, credentials)
        return client

    async def test_send_auth(self, config, credentials):
        fake = FakeConnection()
        client = await self._connected(fake, config, credentials)

        await client.send_auth("abc123")

        assert len(fake.sent) == 1
        assert isinstance(fake.sent[0], str)
        assert json.loads(fake.sent[0]) == {"AuthToken": "abc123"}

    async def test_send_raw_input(self, config, credentials):
        fake = FakeConnection()
        client = await self._connected(fake, config, credentials)

        await client.send(b"ls\r")
        await client.send("pwd\r")

        assert fake.sent == [b"ls\r", "pwd\r"]

    async def test_send_not_connected(self):
        client = TtydWsClient()
        with pytest.raises(TtydTransportError, match="not connected"):
            await client.send(b"data")

    async def test_send_after_close_raises_transport_error(self, config, credentials):
        mock_ws = AsyncMock()
        mock_ws.send.side_effect = ConnectionClosedError(None, None)
        client = await self._connected(mock_ws, config, credentials)

        with pytest.raises(TtydTransportError, match="closed while sending"):
            await client.send("x")


class TestTtydWsClientClose:
    """Tests for TtydWsClient.close()."""

    async def test_close_connected(self, config, credentials):
        fake = FakeConnection()
        with patch("ttyd_client.ws_client.connect_websocket", return_value=fake):
            client = TtydWsClient()
            await client.connect(config, credentials)
        await client.close(1000, "bye")

        assert fake.close_calls == [(1000, "bye")]
        assert client.close_code == 1000
        assert client.close_reason == "bye"

    async def test_close_not_connected(self):
        client = TtydWsClient()
        # Should not raise
        await client.close()
        assert client.close_code is None

    async def test_abort_drops_transport(self, config, credentials):
        fake = FakeConnection()
        with patch("ttyd_client.ws_client.connect_websocket", return_value=fake):
            client = TtydWsClient()
            await client.connect(config, credentials)
        client.abort()

        fake.transport.abort.assert_called_once_with()

    async def test_abort_not_connected(self):
        # Should not raise
        TtydWsClient().abort()

    async def test_release(self, config, credentials):
        with patch("ttyd_client.ws_client.connect_websocket", return_value=FakeConnection()):
            client = TtydWsClient()
            await client.connect(config, credentials)
        client.release()
        assert not client.connected


class TestTtydWsClientIteration:
    """Tests for TtydWsClient async iteration."""

    async def _messages(self, fake, config, credentials) -> list[TtydWsMessage]:
        with patch("ttyd_client.ws_client.connect_websocket", return_value=fake):
            client = TtydWsClient()
            await client.connect(config, credentials)
        return [msg async for msg in client]

    async def test_iter_not_connected(self):
        client = TtydWsClient()
        with pytest.raises(TtydTransportError, match="not connected"):
            client.__aiter__()

    async def test_iter_binary_and_text(self, config, credentials):
        fake = FakeConnection([b"0hi", "1title"])
        fake.server_close(1000, "done")

        messages = await self._messages(fake, config, credentials)

        assert [m.type for m in messages] == [
            TtydWsMessageType.BINARY,
            TtydWsMessageType.TEXT,
            TtydWsMessageType.CLOSED,
        ]
        assert messages[0].data == b"0hi"
        assert messages[1].data == "1title"
        assert messages[2].code == 1000
        assert messages[2].reason == "done"

    async def test_iter_connection_closed_without_frame(self, config, credentials):
        fake = FakeConnection([ConnectionClosed(None, None)])

        messages = await self._messages(fake, config, credentials)

        assert len(messages) == 1
        assert messages[0].type == TtydWsMessageType.CLOSED
        assert messages[0].code == 1006

    async def test_iter_connection_closed_with_frame(self, config, credentials):
        fake = FakeConnection([ConnectionClosedError(Close(1011, "boom"), None)])

        messages = await self._messages(fake, config, credentials)

        assert messages[0].type == TtydWsMessageType.CLOSED
        assert messages[0].code == 1011
        assert messages[0].reason == "boom"

    async def test_iter_unexpected_error(self, config, credentials):
        error = RuntimeError("Unexpected")
        fake = FakeConnection([error])

        messages = await self._messages(fake, config, credentials)

        assert len(messages) == 1
        assert messages[0].type == TtydWsMessageType.ERROR
        assert messages[0].error is error


class TestTtydWsClientNormalization:
    """Tests for TtydWsClient message normalization."""

    def test_normalize_string_message(self):
        result = TtydWsClient._normalize_message("0hello")
        assert result == TtydWsMessage(TtydWsMessageType.TEXT, "0hello")

    def test_normalize_bytes_message(self):
        result = TtydWsClient._normalize_message(bytearray(b"0hi"))
        assert result == TtydWsMessage(TtydWsMessageType.BINARY, b"0hi")

    def test_normalize_unknown_object(self):
        assert TtydWsClient._normalize_message(object()) is None
