"""WebSocket helpers for ttyd transport."""

from __future__ import annotations

import asyncio
import ssl

import websockets
from websockets.asyncio.client import ClientConnection
from websockets.exceptions import (
    InvalidHandshake,
    InvalidStatus,
    InvalidURI,
    WebSocketException,
)

from .errors import (
    TtydAuthError,
    TtydHandshakeError,
    TtydTimeout,
    TtydTransportError,
)
from .protocol import SUBPROTOCOL

_AUTH_REJECTED = (401, 403)


def build_ssl_context(reject_unauthorized: bool) -> ssl.SSLContext:
    """Create the TLS context for ``wss://`` URLs.

    With ``reject_unauthorized`` False, self-signed and otherwise untrusted
    certificates are accepted.
    """
    context = ssl.create_default_context()
    if not reject_unauthorized:
        context.check_hostname = False
        context.verify_mode = ssl.CERT_NONE
    return context


async def connect_websocket(
    url: str,
    *,
    headers: dict[str, str] | None = None,
    subprotocol: str = SUBPROTOCOL,
    reject_unauthorized: bool = True,
    ping_interval: int | None = 20,
    close_timeout: float = 2.0,
    timeout: float = 15.0,
) -> ClientConnection:
    """Connect to a ttyd WebSocket endpoint.

    Args:
        url: ``ws://`` or ``wss://`` endpoint URL
        headers: Extra upgrade request headers (Authorization)
        subprotocol: Requested WebSocket subprotocol
        reject_unauthorized: Verify the server certificate for ``wss://``
        ping_interval: Interval for ping frames
        close_timeout: Seconds the library waits for a close handshake
        timeout: Connection timeout
    """
    ssl_context = None
    if url.startswith("wss://"):
        ssl_context = build_ssl_context(reject_unauthorized)

    try:
        return await asyncio.wait_for(
            websockets.connect(
                url,
                additional_headers=headers,
                subprotocols=[subprotocol],
                ssl=ssl_context,
                ping_interval=ping_interval,
                close_timeout=close_timeout,
                max_size=None,
            ),
            timeout=timeout,
        )
    except TimeoutError as err:
        raise TtydTimeout("WebSocket connection timed out") from err
    except InvalidStatus as err:
        status = err.response.status_code
        if status in _AUTH_REJECTED:
            raise TtydAuthError(
                f"WebSocket upgrade rejected with status {status}", status=status
            ) from err
        raise TtydHandshakeError(
            f"WebSocket upgrade failed with status {status}"
        ) from err
    except (InvalidHandshake, InvalidURI) as err:
        raise TtydHandshakeError("WebSocket handshake failed") from err
    except (OSError, WebSocketException) as err:
        raise TtydTransportError("WebSocket connection failed") from err
