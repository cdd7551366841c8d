"""WebRTC peer connection wrapper."""

import asyncio
import logging
from typing import Any, Callable

from aiortc import RTCConfiguration, RTCIceServer, RTCPeerConnection, RTCSessionDescription

from ww.config import DEFAULT_STUN_SERVERS
from ww.protocols import PeerState

logger = logging.getLogger(__name__)

CHANNEL_LABEL = "data"


class PeerConnectionError(Exception):
    """Peer connection error."""

    pass


def ice_servers_from_json(servers: list[dict[str, Any]]) -> list[RTCIceServer]:
    """Convert WebRTC-style ICE server dicts into RTCIceServer objects.

    Entries without ``urls`` are skipped.
    """
    result = []
    for server in servers:
        urls = server.get("urls") if isinstance(server, dict) else None
        if not urls:
            continue
        result.append(
            RTCIceServer(
                urls=urls,
                username=server.get("username"),
                credential=server.get("credential"),
            )
        )
    return result


class PeerConnection:
    """WebRTC peer connection with a single negotiated data channel."""

    def __init__(
        self,
        stun_servers: list[str] | None = None,
        ice_servers: list[RTCIceServer] | None = None,
        pc_factory: Callable[[RTCConfiguration], RTCPeerConnection] | None = None,
    ):
        """Initialize peer connection.

        Args:
            stun_servers: List of STUN server URLs.
            ice_servers: Extra ICE servers (TURN relays) from the signalling server.
            pc_factory: Factory to create RTCPeerConnection (for testing).
        """
        self.stun_servers = stun_servers or list(DEFAULT_STUN_SERVERS)
        self.ice_servers = ice_servers or []
        self._pc_factory = pc_factory or self._default_pc_factory
        self._state = PeerState.NEW
        self._pc: RTCPeerConnection | None = None
        self._channel = None
        self._connected_event = asyncio.Event()
        self._channel_open_event = asyncio.Event()

    def _default_pc_factory(self, config: RTCConfiguration) -> RTCPeerConnection:
        """Create default RTCPeerConnection."""
        return RTCPeerConnection(configuration=config)

    @property
    def state(self) -> PeerState:
        """Current connection state."""
        return self._state

    def _create_pc(self) -> None:
        """Create the RTCPeerConnection and its negotiated data channel."""
        servers = list(self.ice_servers)
        if self.stun_servers:
            servers.insert(0, RTCIceServer(urls=self.stun_servers))
        self._pc = self._pc_factory(RTCConfiguration(iceServers=servers))

        @self._pc.on("connectionstatechange")
        async def on_connection_state_change():
            state = self._pc.connectionState
            logger.debug(f"Connection state: {state}")

            if state == "connected":
                self._state = PeerState.CONNECTED
                self._connected_event.set()
            elif state == "failed":
                self._state = PeerState.FAILED
            elif state == "disconnected":
                self._state = PeerState.DISCONNECTED
            elif state == "closed":
                self._state = PeerState.CLOSED

        # Both sides create the channel with the same id; nothing is announced in-band
        self._channel = self._pc.createDataChannel(
            CHANNEL_LABEL,
            negotiated=True,
            id=0,
            ordered=True,
        )
        self._setup_channel(self._channel)

    def _setup_channel(self, channel) -> None:
        """Set up data channel handlers."""

        @channel.on("open")
        def on_open():
            logger.debug("Data channel open")
            self._channel_open_event.set()

        if channel.readyState == "open":
            self._channel_open_event.set()

    async def create_offer(self) -> str:
        """Create SDP offer with all ICE candidates gathered.

        Returns:
            Raw SDP offer string (starts with "v=0").
        """
        self._create_pc()

        offer = await self._pc.createOffer()
        await self._pc.setLocalDescription(offer)
        await self._wait_ice_gathering()

        self._state = PeerState.CONNECTING
        return self._pc.localDescription.sdp

    async def accept_offer(self, offer_sdp: str) -> str:
        """Accept SDP offer and return answer.

        Args:
            offer_sdp: Raw SDP offer string.

        Returns:
            Raw SDP answer string.
        """
        self._create_pc()

        await self._pc.setRemoteDescription(RTCSessionDescription(sdp=offer_sdp, type="offer"))
        answer = await self._pc.createAnswer()
        await self._pc.setLocalDescription(answer)
        await self._wait_ice_gathering()

        self._state = PeerState.CONNECTING
        return self._pc.localDescription.sdp

    async def set_remote_description(self, sdp: str, sdp_type: str = "answer") -> None:
        """Set remote SDP description.

        Args:
            sdp: Raw SDP string.
            sdp_type: SDP type ("offer" or "answer"). Defaults to "answer".
        """
        if self._pc is None:
            raise PeerConnectionError("No offer has been created")
        await self._pc.setRemoteDescription(RTCSessionDescription(sdp=sdp, type=sdp_type))

    async def _wait_ice_gathering(self, timeout: float = 10.0) -> None:
        """Wait for ICE gathering to complete."""
        if self._pc.iceGatheringState == "complete":
            return

        done = asyncio.Event()

        @self._pc.on("icegatheringstatechange")
        def on_ice_gathering_state_change():
            if self._pc.iceGatheringState == "complete":
                done.set()

        try:
            await asyncio.wait_for(done.wait(), timeout=timeout)
        except asyncio.TimeoutError:
            logger.warning("ICE gathering timeout, proceeding anyway")

    async def wait_connected(self, timeout: float = 30.0) -> None:
        """Wait for connection and data channel to be established.

        Raises:
            PeerConnectionError: If connection times out.
        """
        try:
            await asyncio.wait_for(
                asyncio.gather(
                    self._connected_event.wait(),
                    self._channel_open_event.wait(),
                ),
                timeout=timeout,
            )
        except asyncio.TimeoutError:
            raise PeerConnectionError("Connection timeout")

    def is_relay(self) -> bool:
        """Whether the nominated ICE candidate pair goes through a TURN relay.

        Returns False when the pair cannot be inspected.
        """
        if self._pc is None or self._pc.sctp is None:
            return False
        try:
            ice_transport = self._pc.sctp.transport.transport
            pair = ice_transport._connection._nominated.get(1)  # Component 1
        except AttributeError as e:
            logger.debug(f"Could not get ICE candidate pair: {e}")
            return False
        if pair is None:
            return False
        local = pair.local_candidate
        remote = pair.remote_candidate
        logger.info(
            f"[ICE] Selected pair: "
            f"local={local.type}({local.host}:{local.port}) <-> "
            f"remote={remote.type}({remote.host}:{remote.port})"
        )
        return local.type == "relay" or remote.type == "relay"

    async def send(self, data: bytes) -> None:
        """Send data over the data channel.

        Raises:
            PeerConnectionError: If not connected or channel not open.
        """
        if self._state != PeerState.CONNECTED:
            raise PeerConnectionError(f"Cannot send in state {self._state}")
        if not self._channel or self._channel.readyState != "open":
            raise PeerConnectionError("Data channel not open")
        self._channel.send(data)

    async def close(self) -> None:
        """Close the peer connection. Safe to call more than once."""
        if self._state == PeerState.CLOSED:
            return
        if self._pc:
            await self._pc.close()
            self._pc = None
        self._state = PeerState.CLOSED
        logger.debug("Peer connection closed")

    async def __aenter__(self):
        """Enter async context."""
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        """Exit async context."""
        await self.close()
