"""Tests for WebRTC peer connection module."""

from unittest.mock import AsyncMock, Mock, call

import pytest
from aiortc import RTCIceServer

from ww.config import DEFAULT_STUN_SERVERS
from ww.protocols import PeerState
from ww.wormhole.peer import PeerConnection, PeerConnectionError, ice_servers_from_json


def make_mock_pc(sdp="v=0\r\no=- 12345 1 IN IP4 127.0.0.1\r\n"):
    """Mock RTCPeerConnection with ICE gathering already complete."""
    mock_pc = AsyncMock()
    mock_pc.connectionState = "new"
    mock_pc.iceGatheringState = "complete"

    description = Mock()
    description.sdp = sdp
    mock_pc.createOffer = AsyncMock(return_value=description)
    mock_pc.createAnswer = AsyncMock(return_value=description)
    mock_pc.localDescription = description

    channel = Mock()
    channel.readyState = "connecting"
    mock_pc.createDataChannel = Mock(return_value=channel)

    handlers = {}

    def mock_on(event):
        def decorator(fn):
            handlers[event] = fn
            return fn

        return decorator

    mock_pc.on = mock_on
    mock_pc.handlers = handlers
    return mock_pc


def nominated(local_type, remote_type):
    pair = Mock()
    pair.local_candidate.type = local_type
    pair.remote_candidate.type = remote_type
    return {1: pair}


class TestPeerConnection:
    """Test PeerConnection class."""

    def test_initial_state_is_new(self):
        """Peer starts in NEW state."""
        assert PeerConnection().state == PeerState.NEW

    def test_uses_configured_stun_servers(self):
        """Uses STUN servers from constructor."""
        servers = ["stun:custom.stun.server:3478"]
        assert PeerConnection(stun_servers=servers).stun_servers == servers

    def test_uses_default_stun_servers(self):
        """Uses default STUN servers when none provided."""
        peer = PeerConnection()

        assert peer.stun_servers == DEFAULT_STUN_SERVERS
        assert peer.stun_servers is not DEFAULT_STUN_SERVERS

    async def test_create_offer_returns_sdp(self):
        """Peer can create SDP offer."""
        mock_pc = make_mock_pc()
        peer = PeerConnection(pc_factory=lambda cfg: mock_pc)

        offer = await peer.create_offer()

        assert offer.startswith("v=0")
        assert peer.state == PeerState.CONNECTING
        mock_pc.createDataChannel.assert_called_once_with("data", negotiated=True, id=0, ordered=True)

    async def test_channel_only_waits_for_open(self):
        """Data channel registers just the open handler."""
        mock_pc = make_mock_pc()
        peer = PeerConnection(pc_factory=lambda cfg: mock_pc)

        await peer.create_offer()

        channel = mock_pc.createDataChannel.return_value
        assert channel.on.call_args_list == [call("open")]

    async def test_config_includes_stun_and_turn(self):
        """Configuration lists STUN servers then advertised ICE servers."""
        seen = {}

        def factory(cfg):
            seen["config"] = cfg
            return make_mock_pc()

        turn = RTCIceServer(urls="turn:turn.example.com", username="u", credential="p")
        peer = PeerConnection(stun_servers=["stun:a:3478"], ice_servers=[turn], pc_factory=factory)
        await peer.create_offer()

        servers = seen["config"].iceServers
        assert servers[0].urls == ["stun:a:3478"]
        assert servers[1] is turn

    async def test_accept_offer_returns_answer(self):
        """Peer answers a remote offer."""
        mock_pc = make_mock_pc(sdp="v=0\r\nanswer\r\n")
        peer = PeerConnection(pc_factory=lambda cfg: mock_pc)

        answer = await peer.accept_offer("v=0\r\noffer\r\n")

        assert answer == "v=0\r\nanswer\r\n"
        mock_pc.setRemoteDescription.assert_awaited_once()
        remote = mock_pc.setRemoteDescription.call_args.args[0]
        assert remote.type == "offer"

    async def test_set_remote_description_before_offer_raises(self):
        """Remote description needs a local offer first."""
        with pytest.raises(PeerConnectionError):
            await PeerConnection().set_remote_description("v=0")

    async def test_connection_state_change_sets_connected(self):
        """connectionstatechange to connected updates state."""
        mock_pc = make_mock_pc()
        peer = PeerConnection(pc_factory=lambda cfg: mock_pc)
        await peer.create_offer()

        mock_pc.connectionState = "connected"
        await mock_pc.handlers["connectionstatechange"]()

        assert peer.state == PeerState.CONNECTED

    async def test_send_raises_when_not_connected(self):
        """Cannot send before the connection is up."""
        with pytest.raises(PeerConnectionError):
            await PeerConnection().send(b"hello")

    async def test_wait_connected_timeout(self):
        """Waiting for a connection that never comes times out."""
        with pytest.raises(PeerConnectionError, match="timeout"):
            await PeerConnection().wait_connected(timeout=0.01)

    async def test_close_changes_state(self):
        """Close moves to CLOSED and closes the RTCPeerConnection."""
        mock_pc = make_mock_pc()
        peer = PeerConnection(pc_factory=lambda cfg: mock_pc)
        await peer.create_offer()

        await peer.close()
        await peer.close()

        assert peer.state == PeerState.CLOSED
        mock_pc.close.assert_awaited_once()

    async def test_context_manager(self):
        """Async context manager closes on exit."""
        async with PeerConnection() as peer:
            pass
        assert peer.state == PeerState.CLOSED


class TestIsRelay:
    """Tests for transport classification."""

    def _peer_with_pair(self, local_type, remote_type):
        peer = PeerConnection()
        peer._pc = Mock()
        peer._pc.sctp.transport.transport._connection._nominated = nominated(
            local_type, remote_type
        )
        return peer

    def test_host_pair_is_direct(self):
        """Host to host is direct."""
        assert self._peer_with_pair("host", "host").is_relay() is False

    def test_srflx_pair_is_direct(self):
        """NAT traversal without TURN is direct."""
        assert self._peer_with_pair("srflx", "prflx").is_relay() is False

    def test_local_relay_is_relay(self):
        """Local TURN candidate means relayed."""
        assert self._peer_with_pair("relay", "host").is_relay() is True

    def test_remote_relay_is_relay(self):
        """Remote TURN candidate means relayed."""
        assert self._peer_with_pair("srflx", "relay").is_relay() is True

    def test_no_connection_is_not_relay(self):
        """Before negotiation there is nothing to inspect."""
        assert PeerConnection().is_relay() is False

    def test_no_nominated_pair_is_not_relay(self):
        """Without a nominated pair the transport is not relayed."""
        peer = PeerConnection()
        peer._pc = Mock()
        peer._pc.sctp.transport.transport._connection._nominated = {}
        assert peer.is_relay() is False


class TestIceServersFromJson:
    """Tests for converting advertised ICE servers."""

    def test_converts_turn_server(self):
        """TURN entries keep credentials."""
        servers = ice_servers_from_json(
            [{"urls": ["turn:t.example.com"], "username": "u", "credential": "p"}]
        )

        assert len(servers) == 1
        assert servers[0].urls == ["turn:t.example.com"]
        assert servers[0].username == "u"
        assert servers[0].credential == "p"

    def test_skips_entries_without_urls(self):
        """Malformed entries are ignored."""
        assert ice_servers_from_json([{}, "stun:x", {"urls": []}]) == []
