"""Client error types for ttyd terminal sessions."""

from __future__ import annotations


class TtydClientError(Exception):
    """Base error for ttyd client failures."""


class TtydTimeout(TtydClientError):
    """Timeout while communicating with the server."""


class TtydTransportError(TtydClientError):
    """Network connection to the server failed."""


class TtydHandshakeError(TtydTransportError):
    """WebSocket handshake failed."""


class TtydAuthError(TtydClientError):
    """Server rejected the credentials."""

    def __init__(self, message: str, status: int | None = None) -> None:
        super().__init__(message)
        self.status = status


class TtydProtocolError(TtydClientError):
    """Server sent something the client cannot interpret."""


class TtydResponseError(TtydClientError):
    """HTTP response error from the server."""

    def __init__(self, status: int, message: str) -> None:
        super().__init__(message)
        self.status = status
