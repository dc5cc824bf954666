"""Typed events emitted by a ttyd session."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .session import SessionState


@dataclass(frozen=True, slots=True)
class OutputEvent:
    """Decoded terminal output."""

    text: str


@dataclass(frozen=True, slots=True)
class TitleEvent:
    """Window title set by the server."""

    title: str


@dataclass(frozen=True, slots=True)
class PreferencesEvent:
    """Client preferences pushed by the server, usually a JSON object."""

    raw: str


@dataclass(frozen=True, slots=True)
class DiagnosticEvent:
    """Non-fatal anomaly, such as an unknown frame tag."""

    message: str
    tag: str | None = None


@dataclass(frozen=True, slots=True)
class ErrorEvent:
    """A failure surfaced before the session ends."""

    error: BaseException


@dataclass(frozen=True, slots=True)
class TerminalEvent:
    """Final event of a session; exactly one is emitted."""

    state: SessionState
    code: int | None = None
    reason: str = ""
    error: BaseException | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


SessionEvent = (
    OutputEvent
    | TitleEvent
    | PreferencesEvent
    | DiagnosticEvent
    | ErrorEvent
    | TerminalEvent
)
