"""Session state machine for a ttyd terminal connection.

A session goes through token resolution, WebSocket connect and the in-band
auth message, then streams decoded frames until it is closed explicitly,
closed by the idle timer, closed by the peer, or fails. Callers either
register callbacks or drain ``events()``; both see the same sequence.

Usage:
    session = TtydSession(config, credentials)
    session.on_output(print)
    if await session.start():
        await session.send("ls\\n")
    terminal = await session.wait_closed()
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
from collections.abc import Callable
from enum import Enum
from typing import TYPE_CHECKING

import aiohttp

from .config import Credentials, SessionConfig
from .errors import TtydClientError, TtydTransportError
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
from .protocol import Frame, FrameKind, decode_frame
from .ws_client import ABNORMAL_CLOSURE, TtydWsClient, TtydWsMessageType

if TYPE_CHECKING:
    from collections.abc import AsyncIterator

_LOGGER = logging.getLogger(__name__)

NORMAL_CLOSURE = 1000
IDLE_TIMEOUT_REASON = "idle timeout"
FORCED_CLOSE_REASON = "forced"


class SessionState(Enum):
    """Lifecycle states of a session."""

    CONNECTING = "connecting"
    HANDSHAKING = "handshaking"
    STREAMING = "streaming"
    CLOSING = "closing"
    CLOSED = "closed"
    FAILED = "failed"

    @property
    def terminal(self) -> bool:
        return self in (SessionState.CLOSED, SessionState.FAILED)


class SessionMode(Enum):
    """How the session obtains its token and is expected to end."""

    INTERACTIVE = "interactive"
    ONE_SHOT = "one_shot"


class TtydSession:
    """A single logical terminal session against a ttyd server."""

    def __init__(
        self,
        config: SessionConfig,
        credentials: Credentials,
        *,
        mode: SessionMode = SessionMode.INTERACTIVE,
        token: str | None = None,
        http_session: aiohttp.ClientSession | None = None,
        label: str | None = None,
    ) -> None:
        """Initialize session.

        Args:
            config: Server location and timeouts
            credentials: Basic-auth credentials
            mode: ONE_SHOT fetches a token from ``/token`` before connecting
            token: Explicit auth token; skips the token request
            http_session: aiohttp session used for the token request
            label: Name used in log messages (defaults to the server)
        """
        self.config = config
        self.credentials = credentials
        self.mode = mode
        self.label = label or config.server

        self._token = token
        self._http_session = http_session

        # Connection state
        self._state = SessionState.CONNECTING
        self._started = False
        self._ws: TtydWsClient | None = None
        self._listen_task: asyncio.Task[None] | None = None
        self._close_task: asyncio.Task[None] | None = None
        self._cleanup_task: asyncio.Task[None] | None = None
        self._idle = IdleTimeoutManager(config.idle_timeout, self._on_idle_timeout)

        # Event channel, created when a consumer first iterates events()
        self._events: asyncio.Queue[SessionEvent] | None = None
        self._terminal: TerminalEvent | None = None
        self._closed = asyncio.Event()

        # Callbacks
        self._output_callback: Callable[[str], None] | None = None
        self._error_callback: Callable[[BaseException], None] | None = None
        self._close_callback: Callable[[int | None, str], None] | None = None
        self._title_callback: Callable[[str], None] | None = None
        self._preferences_callback: Callable[[str], None] | None = None
        self._diagnostic_callback: Callable[[DiagnosticEvent], None] | None = None
        self._state_callback: Callable[[SessionState], None] | None = None

    # -------------------------------------------------------------------------
    # Public API: Connection Management
    # -------------------------------------------------------------------------

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def terminal_event(self) -> TerminalEvent | None:
        return self._terminal

    async def start(self) -> bool:
        """Connect, authenticate and begin streaming.

        Returns:
            True if the session reached STREAMING, False otherwise
        """
        if self._started:
            raise RuntimeError("Session already started")
        self._started = True
        if self._state.terminal:
            return False

        _LOGGER.info("[%s] Connecting to %s", self.label, self.config.ws_url)
        try:
            token = await self._resolve_token()
            ws_client = TtydWsClient()
            await ws_client.connect(self.config, self.credentials)
        except TtydClientError as err:
            _LOGGER.error("[%s] Session startup failed: %s", self.label, err)
            self._fail(err)
            return False

        if self._state is not SessionState.CONNECTING:
            _LOGGER.debug("[%s] Closed while connecting", self.label)
            self._cleanup_task = asyncio.create_task(self._close_quietly(ws_client))
            return False

        self._ws = ws_client
        self._set_state(SessionState.HANDSHAKING)
        try:
            await ws_client.send_auth(token)
        except TtydClientError as err:
            if self._state is not SessionState.HANDSHAKING:
                return False
            _LOGGER.error("[%s] Auth message failed: %s", self.label, err)
            self._fail(err)
            return False

        if self._state is not SessionState.HANDSHAKING:
            return False

        self._set_state(SessionState.STREAMING)
        self._idle.reset()
        self._listen_task = asyncio.create_task(self._listen())
        return True

    async def send(self, data: bytes | str) -> None:
        """Send raw terminal input.

        Raises:
            TtydTransportError: If the session is not streaming
        """
        if self._state is not SessionState.STREAMING or self._ws is None:
            raise TtydTransportError(f"Session is {self._state.value}")
        await self._ws.send(data)

    def request_close(self, code: int = NORMAL_CLOSURE, reason: str = "") -> None:
        """Begin a graceful close without waiting for it to finish.

        Safe to call from callbacks. No-op once closing or terminal.
        """
        if self._state is SessionState.CLOSING or self._state.terminal:
            return

        if self._state is SessionState.CONNECTING:
            self._finish(SessionState.CLOSED, code, reason or "closed before open")
            return

        _LOGGER.info("[%s] Closing session", self.label)
        self._idle.cancel()
        self._set_state(SessionState.CLOSING)
        self._close_task = asyncio.create_task(self._shutdown(code, reason))

    async def close(self, code: int = NORMAL_CLOSURE, reason: str = "") -> TerminalEvent:
        """Close the session and wait for the terminal event."""
        self.request_close(code, reason)
        return await self.wait_closed()

    async def wait_closed(self) -> TerminalEvent:
        """Wait until the session is CLOSED or FAILED."""
        await self._closed.wait()
        current = asyncio.current_task()
        for task in (self._close_task, self._listen_task, self._cleanup_task):
            if task is None or task is current:
                continue
            with contextlib.suppress(asyncio.CancelledError):
                await task
        assert self._terminal is not None
        return self._terminal

    async def events(self) -> AsyncIterator[SessionEvent]:
        """Yield session events in order, ending with the TerminalEvent.

        Only events emitted after the first call are queued; a consumer that
        attaches after the session ended receives just the TerminalEvent.
        """
        if self._events is None:
            self._events = asyncio.Queue()
            if self._terminal is not None:
                self._events.put_nowait(self._terminal)
        while True:
            event = await self._events.get()
            yield event
            if isinstance(event, TerminalEvent):
                return

    async def __aenter__(self) -> TtydSession:
        await self.start()
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.close()

    # -------------------------------------------------------------------------
    # Public API: Callbacks
    # -------------------------------------------------------------------------

    def on_output(self, callback: Callable[[str], None]) -> None:
        """Register callback for decoded terminal output."""
        self._output_callback = callback

    def on_error(self, callback: Callable[[BaseException], None]) -> None:
        """Register callback for errors; never called after on_close."""
        self._error_callback = callback

    def on_close(self, callback: Callable[[int | None, str], None]) -> None:
        """Register callback for the end of the session.

        Callback receives the close code and reason; called exactly once.
        """
        self._close_callback = callback

    def on_title(self, callback: Callable[[str], None]) -> None:
        """Register callback for window title frames."""
        self._title_callback = callback

    def on_preferences(self, callback: Callable[[str], None]) -> None:
        """Register callback for preference frames (raw JSON text)."""
        self._preferences_callback = callback

    def on_diagnostic(self, callback: Callable[[DiagnosticEvent], None]) -> None:
        """Register callback for non-fatal protocol anomalies."""
        self._diagnostic_callback = callback

    def on_state_changed(self, callback: Callable[[SessionState], None]) -> None:
        """Register callback for state transitions."""
        self._state_callback = callback

    # -------------------------------------------------------------------------
    # Internal: State Machine
    # -------------------------------------------------------------------------

    def _set_state(self, state: SessionState) -> None:
        """Update session state and notify callback."""
        if self._state is not state:
            _LOGGER.debug(
                "[%s] State: %s → %s", self.label, self._state.value, state.value
            )
            self._state = state
            if self._state_callback:
                self._state_callback(state)

    async def _resolve_token(self) -> str:
        if self._token is not None:
            return self._token
        if self.mode is SessionMode.INTERACTIVE:
            return self.credentials.basic_token

        if self._http_session is not None:
            client = TtydHttpClient(self._http_session, self.config, self.credentials)
            return await client.fetch_token()
        async with aiohttp.ClientSession() as http_session:
            client = TtydHttpClient(http_session, self.config, self.credentials)
            return await client.fetch_token()

    def _on_idle_timeout(self) -> None:
        if self._state is not SessionState.STREAMING:
            return
        _LOGGER.info(
            "[%s] No output for %.3fs, closing", self.label, self._idle.timeout
        )
        self.request_close(NORMAL_CLOSURE, IDLE_TIMEOUT_REASON)

    async def _shutdown(self, code: int, reason: str) -> None:
        """Close the transport, bounded by the close grace period."""
        ws = self._ws
        ack_code: int | None = None
        ack_reason = ""
        if ws is not None:
            try:
                await asyncio.wait_for(
                    ws.close(code, reason), timeout=self.config.close_timeout
                )
                ack_code = ws.close_code
                ack_reason = ws.close_reason
            except TimeoutError:
                _LOGGER.warning(
                    "[%s] Close not acknowledged within %.1fs, forcing",
                    self.label,
                    self.config.close_timeout,
                )
                ws.abort()
            ws.release()
            self._ws = None

        if ack_code is None or ack_code == ABNORMAL_CLOSURE:
            self._finish(SessionState.CLOSED, ABNORMAL_CLOSURE, FORCED_CLOSE_REASON)
        else:
            self._finish(SessionState.CLOSED, ack_code, ack_reason or reason)

    def _fail(self, err: BaseException) -> None:
        if self._terminal is not None:
            return
        self._emit(ErrorEvent(err), self._error_callback, err)
        self._finish(SessionState.FAILED, ABNORMAL_CLOSURE, str(err), err)

    def _finish(
        self,
        state: SessionState,
        code: int | None,
        reason: str,
        error: BaseException | None = None,
    ) -> None:
        """Enter a terminal state and release resources exactly once."""
        if self._terminal is not None:
            return

        self._idle.cancel()
        self._set_state(state)
        terminal = TerminalEvent(state=state, code=code, reason=reason, error=error)
        self._terminal = terminal

        ws, self._ws = self._ws, None
        if ws is not None:
            self._cleanup_task = asyncio.create_task(self._close_quietly(ws))

        listen_task = self._listen_task
        if (
            listen_task is not None
            and listen_task is not asyncio.current_task()
            and not listen_task.done()
        ):
            listen_task.cancel()

        _LOGGER.info(
            "[%s] Session %s (code=%s, reason=%s)", self.label, state.value, code, reason
        )
        if self._events is not None:
            self._events.put_nowait(terminal)
        self._closed.set()
        if self._close_callback:
            self._close_callback(code, reason)

    async def _close_quietly(self, ws: TtydWsClient) -> None:
        try:
            await asyncio.wait_for(ws.close(), timeout=self.config.close_timeout)
        except (TimeoutError, TtydClientError, OSError) as err:
            _LOGGER.debug("[%s] Transport cleanup failed: %s", self.label, err)
        finally:
            ws.release()

    def _emit(
        self,
        event: SessionEvent,
        callback: Callable[..., None] | None,
        *args: object,
    ) -> None:
        if self._terminal is not None:
            return
        if self._events is not None:
            self._events.put_nowait(event)
        if callback:
            callback(*args)

    # -------------------------------------------------------------------------
    # Internal: Message Listener
    # -------------------------------------------------------------------------

    async def _listen(self) -> None:
        """Dispatch inbound messages until the transport ends."""
        ws = self._ws
        if ws is None:
            return

        message_count = 0
        try:
            async for msg in ws:
                if msg.type in (TtydWsMessageType.BINARY, TtydWsMessageType.TEXT):
                    message_count += 1
                    if self._state is not SessionState.STREAMING:
                        _LOGGER.debug(
                            "[%s] Discarding frame received while %s",
                            self.label,
                            self._state.value,
                        )
                        continue
                    self._handle_frame(decode_frame(msg.data))
                    # Output is delivered before the idle window is extended
                    if self._state is SessionState.STREAMING:
                        self._idle.reset()

                elif msg.type == TtydWsMessageType.CLOSED:
                    if self._state is SessionState.STREAMING:
                        _LOGGER.info("[%s] WebSocket closed by server", self.label)
                        self._finish(SessionState.CLOSED, msg.code, msg.reason)
                    break

                elif msg.type == TtydWsMessageType.ERROR:
                    if self._state is SessionState.STREAMING:
                        _LOGGER.error("[%s] WebSocket error", self.label)
                        err = TtydTransportError("WebSocket receive failed")
                        err.__cause__ = msg.error
                        self._fail(err)
                    break

        except asyncio.CancelledError:
            _LOGGER.debug(
                "[%s] Listener cancelled (%d messages)", self.label, message_count
            )
            raise
        except Exception as err:
            _LOGGER.exception("[%s] Unexpected error: %s", self.label, err)
            self._fail(err)

    def _handle_frame(self, frame: Frame) -> None:
        if frame.kind is FrameKind.OUTPUT:
            text = frame.text
            self._emit(OutputEvent(text), self._output_callback, text)
        elif frame.kind is FrameKind.SET_TITLE:
            title = frame.text
            self._emit(TitleEvent(title), self._title_callback, title)
        elif frame.kind is FrameKind.SET_PREFERENCES:
            raw = frame.text
            self._emit(PreferencesEvent(raw), self._preferences_callback, raw)
        else:
            _LOGGER.warning("[%s] Unknown message type '%s'", self.label, frame.tag)
            event = DiagnosticEvent(f"Unknown message type '{frame.tag}'", frame.tag)
            self._emit(event, self._diagnostic_callback, event)
