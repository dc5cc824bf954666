"""Wire framing for the ttyd terminal protocol.

Every inbound message carries a one-character ASCII tag followed by an
opaque payload. Outbound traffic is limited to the JSON auth message and
raw terminal input.
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from enum import Enum

from .errors import TtydProtocolError

SUBPROTOCOL = "tty"


class FrameKind(Enum):
    """Inbound frame types keyed by their wire tag."""

    OUTPUT = "0"
    SET_TITLE = "1"
    SET_PREFERENCES = "2"
    UNKNOWN = ""


_KNOWN_TAGS = {
    FrameKind.OUTPUT.value: FrameKind.OUTPUT,
    FrameKind.SET_TITLE.value: FrameKind.SET_TITLE,
    FrameKind.SET_PREFERENCES.value: FrameKind.SET_PREFERENCES,
}


@dataclass(frozen=True, slots=True)
class Frame:
    """A single decoded server message."""

    kind: FrameKind
    tag: str
    payload: bytes = b""

    @property
    def text(self) -> str:
        """Payload decoded as UTF-8, replacing undecodable bytes."""
        return self.payload.decode("utf-8", errors="replace")


def decode_frame(raw: bytes | bytearray | memoryview | str) -> Frame:
    """Split a transport message into its tag and payload.

    Binary messages use the first byte as the tag, text messages the first
    character. Unrecognized or missing tags yield ``FrameKind.UNKNOWN``.
    """
    if isinstance(raw, str):
        tag = raw[:1]
        payload = raw[1:].encode("utf-8", errors="surrogatepass")
    elif isinstance(raw, (bytes, bytearray, memoryview)):
        data = bytes(raw)
        tag = data[:1].decode("latin-1")
        payload = data[1:]
    else:
        raise TtydProtocolError(f"Unsupported message type: {type(raw).__name__}")

    kind = _KNOWN_TAGS.get(tag, FrameKind.UNKNOWN)
    return Frame(kind=kind, tag=tag, payload=payload)


def build_auth_message(token: str) -> str:
    """Serialize the first message a client sends after the socket opens."""
    return json.dumps({"AuthToken": token}, separators=(",", ":"))


def encode_input(data: bytes | str) -> bytes | str:
    """Return terminal input unchanged; the server expects no type prefix."""
    if not isinstance(data, (bytes, str)):
        raise TypeError("input must be bytes or str")
    return data
