"""Connection settings and credentials for a ttyd server."""

from __future__ import annotations

import base64
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any
from urllib.parse import quote

DEFAULT_IDLE_TIMEOUT = 0.3
DEFAULT_CONNECT_TIMEOUT = 15.0
DEFAULT_CLOSE_TIMEOUT = 2.0


def normalize_base_path(path: str | None) -> str:
    """Normalize a mount path so ``/token`` and ``/ws`` can be appended.

    ``None``, ``""`` and ``"/"`` map to ``""``; otherwise the result has a
    single leading slash and no trailing slash.
    """
    if not path:
        return ""
    stripped = path.strip("/")
    if not stripped:
        return ""
    return f"/{stripped}"


@dataclass(frozen=True, slots=True)
class Credentials:
    """Basic-auth credentials for the server."""

    username: str
    password: str = field(repr=False)

    @property
    def basic_token(self) -> str:
        raw = f"{self.username}:{self.password}".encode()
        return base64.b64encode(raw).decode("ascii")

    @property
    def authorization_header(self) -> str:
        return f"Basic {self.basic_token}"

    def headers(self) -> dict[str, str]:
        return {"Authorization": self.authorization_header}


@dataclass(frozen=True, slots=True)
class SessionConfig:
    """Where and how to reach a ttyd server.

    Args:
        server: Host name, optionally with ``:port``
        base_path: Mount path of the ttyd instance (normalized)
        reject_unauthorized: Verify TLS certificates when True
        idle_timeout: Seconds without inbound frames before closing (0 disables)
        command: Command to run in one-shot mode, sent as ``?arg=``
        secure: Use https/wss when True, http/ws otherwise
        connect_timeout: Seconds allowed for opening the WebSocket
        close_timeout: Seconds to wait for the close acknowledgement
    """

    server: str
    base_path: str = ""
    reject_unauthorized: bool = True
    idle_timeout: float = 0.0
    command: str | None = None
    secure: bool = True
    connect_timeout: float = DEFAULT_CONNECT_TIMEOUT
    close_timeout: float = DEFAULT_CLOSE_TIMEOUT

    def __post_init__(self) -> None:
        if not self.server:
            raise ValueError("server is required")
        if self.idle_timeout < 0:
            raise ValueError("idle_timeout must be >= 0")
        if self.close_timeout < 0:
            raise ValueError("close_timeout must be >= 0")
        object.__setattr__(self, "base_path", normalize_base_path(self.base_path))

    @property
    def token_url(self) -> str:
        scheme = "https" if self.secure else "http"
        return f"{scheme}://{self.server}{self.base_path}/token"

    @property
    def ws_url(self) -> str:
        scheme = "wss" if self.secure else "ws"
        url = f"{scheme}://{self.server}{self.base_path}/ws"
        if self.command:
            url += f"?arg={quote(self.command, safe='')}"
        return url

    @classmethod
    def from_options(cls, options: Mapping[str, Any]) -> SessionConfig:
        """Build a config from the option names used by ttyd client scripts.

        Recognizes ``server``, ``path``, ``command``, ``rejectUnauthorized``
        and ``executionTimeout`` (milliseconds), as well as the snake_case
        field names of this class. Unknown keys are ignored.
        """
        kwargs: dict[str, Any] = {"server": options.get("server", "")}

        path = options.get("path", options.get("base_path"))
        if path is not None:
            kwargs["base_path"] = path
        if "command" in options:
            kwargs["command"] = options["command"]

        reject = options.get("rejectUnauthorized", options.get("reject_unauthorized"))
        if reject is not None:
            kwargs["reject_unauthorized"] = bool(reject)

        if "executionTimeout" in options:
            kwargs["idle_timeout"] = float(options["executionTimeout"]) / 1000
        elif "idleTimeoutMs" in options:
            kwargs["idle_timeout"] = float(options["idleTimeoutMs"]) / 1000
        elif "idle_timeout" in options:
            kwargs["idle_timeout"] = float(options["idle_timeout"])

        for name in ("secure", "connect_timeout", "close_timeout"):
            if name in options:
                kwargs[name] = options[name]

        return cls(**kwargs)
