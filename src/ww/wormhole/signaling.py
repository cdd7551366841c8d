"""WebSocket client for the signalling server.

Protocol (version "4", carried as the WebSocket subprotocol):

1. The client connects to ``ws(s)://<server>/<slot>``; creators leave
   the slot empty and the server assigns one.
2. The server's first message is ``{"slot": ..., "iceServers": [...]}``.
3. Once both peers are in the slot the server relays text frames between
   them. The joiner sends a sealed SDP offer, the creator a sealed answer
   (see ``ww.wormhole.crypto``).
4. After the data channel opens each client closes its socket with the
   close code that reports how it connected.

Errors are reported by the server as WebSocket close codes.
"""

import asyncio
import json
import logging
from enum import IntEnum
from typing import Any, Callable
from urllib.parse import urlsplit, urlunsplit

import aiohttp
from aiortc import RTCIceServer

from ww.errors import CryptoError, DialError, IncompatibleServiceError, WwError
from ww.wormhole.crypto import MessageBox, derive_key
from ww.wormhole.peer import PeerConnection, PeerConnectionError, ice_servers_from_json

logger = logging.getLogger(__name__)

PROTOCOL_VERSION = "4"


class CloseCode(IntEnum):
    """WebSocket close codes used by the signalling server and clients."""

    NO_SUCH_SLOT = 4000
    SLOT_TIMED_OUT = 4001
    NO_MORE_SLOTS = 4002
    WRONG_PROTO = 4003
    PEER_HUNG_UP = 4004
    BAD_KEY = 4005
    WEBRTC_FAILED = 4006
    WEBRTC_SUCCESS = 4007
    WEBRTC_SUCCESS_DIRECT = 4008
    WEBRTC_SUCCESS_RELAY = 4009


CLOSE_REASONS = {
    CloseCode.NO_SUCH_SLOT: "no such slot",
    CloseCode.SLOT_TIMED_OUT: "timed out",
    CloseCode.NO_MORE_SLOTS: "could not get slot",
    CloseCode.PEER_HUNG_UP: "peer hung up",
    CloseCode.BAD_KEY: "bad key",
    CloseCode.WEBRTC_FAILED: "webrtc connection failed",
}


def websocket_url(server: str, slot: str = "") -> str:
    """Build the WebSocket URL for a slot on a signalling server.

    Raises:
        ValueError: If the server address is not an http(s) or ws(s) URL.
    """
    parts = urlsplit(server)
    schemes = {"http": "ws", "https": "wss", "ws": "ws", "wss": "wss"}
    if parts.scheme not in schemes or not parts.netloc:
        raise ValueError(f"invalid signalling server address: {server!r}")
    path = parts.path.rstrip("/") + "/" + slot
    return urlunsplit((schemes[parts.scheme], parts.netloc, path, "", ""))


def close_error(code: int | None) -> WwError:
    """Map a close code received before success to an exception."""
    if code == CloseCode.WRONG_PROTO:
        return IncompatibleServiceError()
    reason = CLOSE_REASONS.get(code, f"connection closed ({code})")
    return DialError(f"could not dial: {reason}")


class Wormhole:
    """A slot opened on the signalling server.

    Attributes:
        slot: Slot assigned by the server (create) or supplied (join).
        ice_servers: ICE servers advertised by the server.
    """

    def __init__(
        self,
        ws: aiohttp.ClientWebSocketResponse,
        slot: str,
        ice_servers: list[RTCIceServer],
        initiator: bool,
        timeout: float,
        peer_factory: Callable[[list[RTCIceServer]], PeerConnection],
    ):
        """Initialize wormhole.

        Args:
            ws: Open WebSocket to the signalling server.
            slot: Slot identifier.
            ice_servers: ICE servers advertised by the server.
            initiator: True on the joining side, which sends the offer.
            timeout: Seconds to wait for the peer's answer and for the
                data channel to open.
            peer_factory: Creates the PeerConnection to negotiate.
        """
        self._ws = ws
        self.slot = slot
        self.ice_servers = ice_servers
        self._initiator = initiator
        self._timeout = timeout
        self._peer_factory = peer_factory
        self._is_relay: bool | None = None

    @property
    def is_relay(self) -> bool | None:
        """None until a data channel is established."""
        return self._is_relay

    async def dial_data_channel(self, secret: bytes) -> PeerConnection:
        """Negotiate the data channel with the peer in this slot.

        Args:
            secret: Pairing secret, used only to derive the sealing key.

        Returns:
            Connected PeerConnection.

        Raises:
            DialError: If the peer hangs up, the key does not match, or
                WebRTC negotiation fails or never connects.
            IncompatibleServiceError: If the server closes with WRONG_PROTO.
        """
        box = MessageBox(derive_key(secret, self.slot))
        peer = self._peer_factory(self.ice_servers)
        try:
            if self._initiator:
                offer = await peer.create_offer()
                await self._ws.send_str(box.seal({"type": "offer", "sdp": offer}))
                answer = await self._receive_sealed(box, "answer", self._timeout)
                await peer.set_remote_description(answer["sdp"], "answer")
            else:
                # Waiting for someone to type the code; the server times the slot out
                offer = await self._receive_sealed(box, "offer", None)
                answer_sdp = await peer.accept_offer(offer["sdp"])
                await self._ws.send_str(box.seal({"type": "answer", "sdp": answer_sdp}))
            await peer.wait_connected(timeout=self._timeout)
        except PeerConnectionError as e:
            await peer.close()
            await self.close(CloseCode.WEBRTC_FAILED)
            raise DialError(f"could not dial: {e}") from e
        except (aiohttp.ClientError, ConnectionError) as e:
            await peer.close()
            raise DialError(f"could not dial: {e}") from e
        except WwError:
            await peer.close()
            raise
        except Exception as e:
            # aiortc rejects bad SDP or ICE server URLs with ValueError and friends
            logger.debug(f"WebRTC negotiation failed: {e!r}")
            await peer.close()
            await self.close(CloseCode.WEBRTC_FAILED)
            raise DialError(f"could not dial: {e}") from e

        self._is_relay = peer.is_relay()
        await self.close(
            CloseCode.WEBRTC_SUCCESS_RELAY if self._is_relay else CloseCode.WEBRTC_SUCCESS_DIRECT
        )
        return peer

    async def _receive_sealed(
        self, box: MessageBox, expected: str, timeout: float | None
    ) -> dict[str, Any]:
        text = await receive_text(self._ws, timeout)
        try:
            message = box.open(text)
        except CryptoError as e:
            logger.debug(f"Could not open {expected}: {e}")
            await self.close(CloseCode.BAD_KEY)
            raise DialError("could not dial: bad key (did you mistype the code?)") from e
        if message.get("type") != expected or not isinstance(message.get("sdp"), str):
            await self.close(CloseCode.WEBRTC_FAILED)
            raise DialError(f"could not dial: expected {expected}")
        logger.debug(f"Received {expected} in slot {self.slot}")
        return message

    async def close(self, code: int = aiohttp.WSCloseCode.OK) -> None:
        """Close the signalling socket. Safe to call more than once."""
        if not self._ws.closed:
            await self._ws.close(code=code)


async def receive_text(ws: aiohttp.ClientWebSocketResponse, timeout: float | None) -> str:
    """Receive one text frame.

    Raises:
        DialError: On timeout, error or a close from the server.
        IncompatibleServiceError: If the server closes with WRONG_PROTO.
    """
    try:
        msg = await ws.receive(timeout=timeout)
    except asyncio.TimeoutError as e:
        raise DialError("could not dial: timed out waiting for signalling server") from e

    if msg.type == aiohttp.WSMsgType.TEXT:
        return msg.data
    if msg.type == aiohttp.WSMsgType.CLOSE:
        raise close_error(msg.data)
    if msg.type in (aiohttp.WSMsgType.CLOSING, aiohttp.WSMsgType.CLOSED):
        raise close_error(ws.close_code)
    if msg.type == aiohttp.WSMsgType.ERROR:
        raise DialError(f"could not dial: {ws.exception()}")
    raise DialError(f"could not dial: unexpected {msg.type.name} frame")


class SignalClient:
    """Opens slots on a signalling server.

    Usage:
        async with SignalClient("https://wrmhl.link/") as client:
            wormhole = await client.create()
    """

    def __init__(
        self,
        server: str,
        stun_servers: list[str] | None = None,
        timeout: float = 60.0,
        http_session: aiohttp.ClientSession | None = None,
        peer_factory: Callable[[list[RTCIceServer]], PeerConnection] | None = None,
    ):
        """Initialize signalling client.

        Args:
            server: Signalling server URL (http, https, ws or wss).
            stun_servers: STUN servers for the peer connection.
            timeout: Seconds to wait on the server and on the peer.
            http_session: Optional aiohttp session (for testing).
            peer_factory: Factory to create PeerConnection (for testing).
        """
        self.server = server
        self.stun_servers = stun_servers
        self.timeout = timeout
        self._session = http_session
        self._owns_session = http_session is None
        self._peer_factory = peer_factory or self._default_peer_factory

    def _default_peer_factory(self, ice_servers: list[RTCIceServer]) -> PeerConnection:
        """Create default PeerConnection."""
        return PeerConnection(stun_servers=self.stun_servers, ice_servers=ice_servers)

    async def __aenter__(self):
        """Enter async context, creating session if needed."""
        if self._session is None:
            self._session = aiohttp.ClientSession()
        return self

    async def __aexit__(self, *args):
        """Exit async context, closing owned session."""
        await self.close()

    async def close(self) -> None:
        if self._owns_session and self._session:
            await self._session.close()
            self._session = None

    async def create(self) -> Wormhole:
        """Open a new slot."""
        return await self._open("")

    async def join(self, slot: str) -> Wormhole:
        """Join an existing slot."""
        return await self._open(slot)

    async def _open(self, slot: str) -> Wormhole:
        if self._session is None:
            self._session = aiohttp.ClientSession()

        try:
            url = websocket_url(self.server, slot)
        except ValueError as e:
            raise DialError(f"could not dial: {e}") from e

        logger.debug(f"Connecting to {url}")
        try:
            ws = await self._session.ws_connect(url, protocols=(PROTOCOL_VERSION,))
        except aiohttp.WSServerHandshakeError as e:
            if e.status == 426:  # Upgrade Required
                raise IncompatibleServiceError() from e
            raise DialError(f"could not dial: {e}") from e
        except (aiohttp.ClientError, OSError) as e:
            raise DialError(f"could not dial: {e}") from e

        if ws.protocol != PROTOCOL_VERSION:
            await ws.close(code=CloseCode.WRONG_PROTO)
            raise IncompatibleServiceError()

        try:
            initial = self._parse_initial(await receive_text(ws, self.timeout))
        except WwError:
            await ws.close()
            raise

        assigned = initial.get("slot") or slot
        if not assigned:
            await ws.close()
            raise DialError("could not dial: could not get slot")

        logger.info(f"Opened slot {assigned}")
        return Wormhole(
            ws,
            slot=assigned,
            ice_servers=ice_servers_from_json(initial.get("iceServers") or []),
            initiator=bool(slot),
            timeout=self.timeout,
            peer_factory=self._peer_factory,
        )

    @staticmethod
    def _parse_initial(text: str) -> dict[str, Any]:
        try:
            initial = json.loads(text)
        except ValueError as e:
            raise DialError(f"could not dial: invalid initial message: {e}") from e
        if not isinstance(initial, dict):
            raise DialError("could not dial: invalid initial message")
        return initial
