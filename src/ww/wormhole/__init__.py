"""Default transport: signalling client and WebRTC data channel."""

from .peer import PeerConnection, PeerConnectionError
from .signaling import CloseCode, SignalClient, Wormhole

__all__ = [
    "CloseCode",
    "PeerConnection",
    "PeerConnectionError",
    "SignalClient",
    "Wormhole",
]
