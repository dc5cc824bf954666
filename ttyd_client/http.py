"""HTTP client for the ttyd token endpoint."""

from __future__ import annotations

import json
import logging

import aiohttp

from .config import Credentials, SessionConfig
from .errors import (
    TtydAuthError,
    TtydProtocolError,
    TtydResponseError,
    TtydTimeout,
    TtydTransportError,
)

_LOGGER = logging.getLogger(__name__)


class TtydHttpClient:
    """HTTP client wrapper for ttyd server endpoints."""

    def __init__(
        self,
        session: aiohttp.ClientSession,
        config: SessionConfig,
        credentials: Credentials,
        *,
        timeout: float = 10.0,
    ) -> None:
        self._session = session
        self._config = config
        self._credentials = credentials
        self._timeout = timeout

    def _ssl(self) -> bool | None:
        # None keeps aiohttp's default verification
        return None if self._config.reject_unauthorized else False

    async def fetch_token(self) -> str:
        """Exchange Basic credentials for a session token via ``/token``.

        Raises:
            TtydAuthError: If the server returns 401 or 403
            TtydResponseError: If the server returns another non-200 status
            TtydProtocolError: If the body is not JSON with a string ``token``
            TtydTimeout: If the request times out
            TtydTransportError: If the connection fails
        """
        url = self._config.token_url
        try:
            async with self._session.get(
                url,
                headers=self._credentials.headers(),
                ssl=self._ssl(),
                timeout=aiohttp.ClientTimeout(total=self._timeout),
            ) as resp:
                if resp.status in (401, 403):
                    raise TtydAuthError(
                        f"Token request rejected with status {resp.status}",
                        status=resp.status,
                    )
                if resp.status != 200:
                    raise TtydResponseError(
                        resp.status, "Token request failed with non-200 response"
                    )
                body = await resp.read()
        except TimeoutError as err:
            raise TtydTimeout("Token request timed out") from err
        except aiohttp.ClientError as err:
            raise TtydTransportError("Token request failed") from err

        token = parse_token_response(body)
        _LOGGER.debug("Fetched session token from %s", url)
        return token


def parse_token_response(body: bytes | str) -> str:
    """Extract the ``token`` field from a token endpoint body."""
    try:
        text = body.decode("utf-8") if isinstance(body, bytes) else body
        data = json.loads(text)
    except ValueError as err:
        raise TtydProtocolError("Token response is not valid JSON") from err
    if not isinstance(data, dict):
        raise TtydProtocolError("Token response is not a JSON object")
    token = data.get("token")
    if not isinstance(token, str):
        raise TtydProtocolError("Token response has no 'token' field")
    return token
