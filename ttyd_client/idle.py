"""Inactivity timer that ends a session after a quiet period."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable

_LOGGER = logging.getLogger(__name__)


class IdleTimeoutManager:
    """Schedule a callback once no activity is seen for ``timeout`` seconds.

    A timeout of 0 disables the manager; ``reset()`` is then a no-op.
    Must be used from the event loop thread that owns the session.
    """

    def __init__(
        self,
        timeout: float,
        on_expire: Callable[[], None],
        *,
        loop: asyncio.AbstractEventLoop | None = None,
    ) -> None:
        if timeout < 0:
            raise ValueError("timeout must be >= 0")
        self._timeout = timeout
        self._on_expire = on_expire
        self._loop = loop
        self._handle: asyncio.TimerHandle | None = None

    @property
    def timeout(self) -> float:
        return self._timeout

    @property
    def enabled(self) -> bool:
        return self._timeout > 0

    @property
    def active(self) -> bool:
        return self._handle is not None

    def reset(self) -> None:
        """Cancel any pending timer and start a fresh window."""
        if not self.enabled:
            return
        self.cancel()
        loop = self._loop or asyncio.get_running_loop()
        self._handle = loop.call_later(self._timeout, self._expire)

    def cancel(self) -> None:
        """Cancel the pending timer, if any. Safe to call repeatedly."""
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None

    def _expire(self) -> None:
        self._handle = None
        _LOGGER.debug("Idle window of %.3fs elapsed", self._timeout)
        self._on_expire()
