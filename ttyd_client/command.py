"""Run a single command through ttyd and collect its output."""

from __future__ import annotations

import dataclasses
import logging
from collections.abc import Callable
from dataclasses import dataclass, field

import aiohttp

from .config import DEFAULT_IDLE_TIMEOUT, Credentials, SessionConfig
from .session import SessionMode, SessionState, TtydSession

_LOGGER = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class CommandResult:
    """Outcome of a one-shot command session."""

    output: str
    state: SessionState
    code: int | None = None
    reason: str = ""
    error: BaseException | None = None
    errors: tuple[BaseException, ...] = field(default=())

    @property
    def ok(self) -> bool:
        return self.state is SessionState.CLOSED and self.error is None


async def run_command(
    config: SessionConfig,
    credentials: Credentials,
    *,
    http_session: aiohttp.ClientSession | None = None,
    on_output: Callable[[str], None] | None = None,
    on_error: Callable[[BaseException], None] | None = None,
    on_close: Callable[[int | None, str], None] | None = None,
) -> CommandResult:
    """Execute ``config.command`` and return once the session has ended.

    A token is fetched from ``/token`` first. The session closes itself
    when no output arrives for ``config.idle_timeout`` seconds; a disabled
    idle timeout is replaced by the default so the call always completes.
    Failures are reported in the result instead of being raised.
    """
    if not config.command:
        raise ValueError("config.command is required for one-shot execution")
    if config.idle_timeout == 0:
        config = dataclasses.replace(config, idle_timeout=DEFAULT_IDLE_TIMEOUT)

    session = TtydSession(
        config,
        credentials,
        mode=SessionMode.ONE_SHOT,
        http_session=http_session,
    )
    chunks: list[str] = []
    errors: list[BaseException] = []

    def _collect_output(text: str) -> None:
        chunks.append(text)
        if on_output:
            on_output(text)

    def _collect_error(err: BaseException) -> None:
        errors.append(err)
        if on_error:
            on_error(err)

    session.on_output(_collect_output)
    session.on_error(_collect_error)
    if on_close:
        session.on_close(on_close)

    _LOGGER.debug("[%s] Running one-shot command", session.label)
    await session.start()
    terminal = await session.wait_closed()

    return CommandResult(
        output="".join(chunks),
        state=terminal.state,
        code=terminal.code,
        reason=terminal.reason,
        error=terminal.error,
        errors=tuple(errors),
    )
