"""WebSocket client wrapper for ttyd sessions."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Any

from websockets.asyncio.client import ClientConnection
from websockets.exceptions import ConnectionClosed

from .config import Credentials, SessionConfig
from .errors import TtydTransportError
from .protocol import SUBPROTOCOL, build_auth_message, encode_input
from .ws import connect_websocket

if TYPE_CHECKING:
    from collections.abc import AsyncIterator

_LOGGER = logging.getLogger(__name__)

# Close code reported when the peer went away without a close frame
ABNORMAL_CLOSURE = 1006


class TtydWsMessageType(Enum):
    """Normalized WebSocket message types."""

    TEXT = "text"
    BINARY = "binary"
    CLOSED = "closed"
    ERROR = "error"


@dataclass(frozen=True)
class TtydWsMessage:
    """Normalized WebSocket message payload.

    ``code`` and ``reason`` are set on CLOSED messages, ``error`` on ERROR.
    """

    type: TtydWsMessageType
    data: str | bytes | None = None
    code: int | None = None
    reason: str = ""
    error: BaseException | None = None


class TtydWsClient:
    """Wrapper around the websockets library for a ttyd endpoint."""

    def __init__(self) -> None:
        self._ws: ClientConnection | None = None

    @property
    def connected(self) -> bool:
        return self._ws is not None

    async def connect(
        self,
        config: SessionConfig,
        credentials: Credentials,
        *,
        ping_interval: int | None = 20,
    ) -> None:
        """Open the ``/ws`` endpoint with Basic auth and the ``tty`` subprotocol."""
        self._ws = await connect_websocket(
            config.ws_url,
            headers=credentials.headers(),
            subprotocol=SUBPROTOCOL,
            reject_unauthorized=config.reject_unauthorized,
            ping_interval=ping_interval,
            close_timeout=config.close_timeout,
            timeout=config.connect_timeout,
        )

    async def close(self, code: int = 1000, reason: str = "") -> None:
        """Close the websocket connection."""
        if self._ws is not None:
            await self._ws.close(code, reason)

    def abort(self) -> None:
        """Drop the TCP connection without waiting for a close handshake."""
        if self._ws is not None:
            self._ws.transport.abort()

    def release(self) -> None:
        """Drop the connection handle."""
        self._ws = None

    @property
    def close_code(self) -> int | None:
        if self._ws is None:
            return None
        return self._ws.close_code

    @property
    def close_reason(self) -> str:
        if self._ws is None:
            return ""
        return self._ws.close_reason or ""

    async def send_auth(self, token: str) -> None:
        """Send the ``{"AuthToken": ...}`` handshake message.

        Raises:
            TtydTransportError: If not connected or the send fails
        """
        await self._send(build_auth_message(token))

    async def send(self, data: bytes | str) -> None:
        """Send raw terminal input.

        Raises:
            TtydTransportError: If not connected or the send fails
        """
        await self._send(encode_input(data))

    async def _send(self, payload: bytes | str) -> None:
        if self._ws is None:
            raise TtydTransportError("WebSocket is not connected")
        try:
            await self._ws.send(payload)
        except ConnectionClosed as err:
            raise TtydTransportError("WebSocket closed while sending") from err

    def __aiter__(self) -> AsyncIterator[TtydWsMessage]:
        if self._ws is None:
            raise TtydTransportError("WebSocket is not connected")
        return self._iter_messages()

    async def _iter_messages(self) -> AsyncIterator[TtydWsMessage]:
        if self._ws is None:
            raise TtydTransportError("WebSocket is not connected")

        try:
            async for msg in self._ws:
                normalized = self._normalize_message(msg)
                if normalized is None:
                    continue
                yield normalized
        except ConnectionClosed as err:
            code, reason = self._close_info(err)
            yield TtydWsMessage(TtydWsMessageType.CLOSED, code=code, reason=reason)
        except Exception as err:
            _LOGGER.debug("WebSocket receive failed: %s", err)
            yield TtydWsMessage(TtydWsMessageType.ERROR, error=err)
        else:
            # Normal iteration completion means the peer closed gracefully.
            yield TtydWsMessage(
                TtydWsMessageType.CLOSED,
                code=self.close_code,
                reason=self.close_reason,
            )

    @staticmethod
    def _close_info(err: ConnectionClosed) -> tuple[int, str]:
        rcvd = err.rcvd
        if rcvd is None:
            return ABNORMAL_CLOSURE, ""
        return rcvd.code, rcvd.reason

    @staticmethod
    def _normalize_message(msg: Any) -> TtydWsMessage | None:
        """Normalize backend frames into TtydWsMessage."""
        if isinstance(msg, (bytes, bytearray, memoryview)):
            return TtydWsMessage(TtydWsMessageType.BINARY, bytes(msg))
        if isinstance(msg, str):
            return TtydWsMessage(TtydWsMessageType.TEXT, msg)
        return None
