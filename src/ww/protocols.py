"""Protocols and enums for ww."""

from enum import Enum
from typing import Protocol


class PeerState(Enum):
    """State of a WebRTC peer connection."""

    NEW = "new"
    CONNECTING = "connecting"
    CONNECTED = "connected"
    DISCONNECTED = "disconnected"
    FAILED = "failed"
    CLOSED = "closed"


class ChannelProtocol(Protocol):
    """An established data channel."""

    def is_relay(self) -> bool:
        """True if the selected transport goes through a relay."""
        ...

    async def send(self, data: bytes) -> None:
        ...

    async def close(self) -> None:
        ...


class WormholeProtocol(Protocol):
    """A session opened on the signalling server."""

    slot: str

    @property
    def is_relay(self) -> bool | None:
        """None until a data channel has been dialed."""
        ...

    async def dial_data_channel(self, secret: bytes) -> ChannelProtocol:
        """Negotiate a data channel keyed by the pairing secret.

        Raises DialError on failure.
        """
        ...

    async def close(self) -> None:
        ...


class SignalClientProtocol(Protocol):
    """Client for the signalling server.

    Both methods raise IncompatibleServiceError on a protocol version
    mismatch and DialError on any other failure.
    """

    async def create(self) -> WormholeProtocol:
        ...

    async def join(self, slot: str) -> WormholeProtocol:
        ...


class MnemonicCodecProtocol(Protocol):
    """Bytes to words and back. ``decode`` raises ValueError on bad input."""

    def encode(self, data: bytes) -> list[str]:
        ...

    def decode(self, words: list[str]) -> bytes:
        ...
