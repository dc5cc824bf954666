"""Client for terminals shared over WebSocket by ttyd."""

__version__ = "0.1.0"

from .command import CommandResult, run_command
from .config import Credentials, SessionConfig, normalize_base_path
from .errors import (
    TtydAuthError,
    TtydClientError,
    TtydHandshakeError,
    TtydProtocolError,
    TtydResponseError,
    TtydTimeout,
    TtydTransportError,
)
from .events import (
    DiagnosticEvent,
    ErrorEvent,
    OutputEvent,
    PreferencesEvent,
    SessionEvent,
    TerminalEvent,
    TitleEvent,
)
from .http import TtydHttpClient
from .idle import IdleTimeoutManager
from .protocol import (
    SUBPROTOCOL,
    Frame,
    FrameKind,
    build_auth_message,
    decode_frame,
    encode_input,
)
from .session import SessionMode, SessionState, TtydSession
from .ws import connect_websocket
from .ws_client import TtydWsClient, TtydWsMessage, TtydWsMessageType

__all__ = [
    "SUBPROTOCOL",
    "CommandResult",
    "Credentials",
    "DiagnosticEvent",
    "ErrorEvent",
    "Frame",
    "FrameKind",
    "IdleTimeoutManager",
    "OutputEvent",
    "PreferencesEvent",
    "SessionConfig",
    "SessionEvent",
    "SessionMode",
    "SessionState",
    "TerminalEvent",
    "TitleEvent",
    "TtydAuthError",
    "TtydClientError",
    "TtydHandshakeError",
    "TtydHttpClient",
    "TtydProtocolError",
    "TtydResponseError",
    "TtydSession",
    "TtydTimeout",
    "TtydTransportError",
    "TtydWsClient",
    "TtydWsMessage",
    "TtydWsMessageType",
    "__version__",
    "build_auth_message",
    "connect_websocket",
    "decode_frame",
    "encode_input",
    "normalize_base_path",
    "run_command",
]
