"""Session establishment: create or join a pairing, then dial.

Creating a pairing draws a fresh secret, opens a slot, shows the code
(text and QR) and waits for the peer. Joining decodes a code typed by
the user and opens the named slot. Either way the secret is handed to
the transport to dial the data channel, and the resulting transport is
reported as relayed or direct.

All operator-facing text goes to ``out`` (stderr by default) so that
stdout can carry payload.
"""

import logging
import secrets
import sys
from typing import Callable, TextIO

import click
from qrcode.exceptions import DataOverflowError

from ww.config import Config
from ww.errors import InvalidCodeError, RandomnessError
from ww.pairing.code import JoinPairing, NewPairing, PairingCode, PairingRequest, pairing_request
from ww.pairing.qr_generator import QrGenerator, reference_url
from ww.protocols import (
    ChannelProtocol,
    MnemonicCodecProtocol,
    SignalClientProtocol,
    WormholeProtocol,
)
from ww.wordlist import WordlistCodec

logger = logging.getLogger(__name__)


class Establisher:
    """Runs one create-or-join pairing and returns the data channel."""

    def __init__(
        self,
        config: Config,
        signal_client: SignalClientProtocol,
        codec: MnemonicCodecProtocol | None = None,
        random_bytes: Callable[[int], bytes] | None = None,
        out: TextIO | None = None,
    ):
        """Initialize establisher.

        Args:
            config: Client configuration (signalling server for the QR link).
            signal_client: Client for the signalling server.
            codec: Mnemonic codec for the secret. Defaults to the word list.
            random_bytes: Secure random source (for testing). Defaults to
                secrets.token_bytes.
            out: Diagnostic stream. Defaults to stderr.
        """
        self.config = config
        self.signal_client = signal_client
        self.codec = codec or WordlistCodec()
        self._random_bytes = random_bytes or secrets.token_bytes
        self._out = out

    @property
    def out(self) -> TextIO:
        return self._out if self._out is not None else sys.stderr

    async def establish(self, code: str | None, secret_length: int) -> ChannelProtocol:
        """Create a pairing if ``code`` is empty, otherwise join it.

        Raises:
            RandomnessError: Secret could not be generated.
            InvalidCodeError: Code is malformed or does not decode.
            IncompatibleServiceError: Signalling server version mismatch.
            DialError: Signalling or channel dial failed.
        """
        return await self.establish_request(pairing_request(code, secret_length))

    async def establish_request(self, request: PairingRequest) -> ChannelProtocol:
        if isinstance(request, NewPairing):
            secret, wormhole = await self._create(request)
        elif isinstance(request, JoinPairing):
            secret, wormhole = await self._join(request)
        else:
            raise TypeError(f"unknown pairing request: {request!r}")

        try:
            channel = await wormhole.dial_data_channel(secret)
        except BaseException:
            await wormhole.close()
            raise

        if wormhole.is_relay:
            self._echo("connected: relay")
        else:
            self._echo("connected: direct")
        return channel

    async def _create(self, request: NewPairing) -> tuple[bytes, WormholeProtocol]:
        secret = self._generate_secret(request.secret_length)
        wormhole = await self.signal_client.create()
        try:
            code = PairingCode(slot=wormhole.slot, words=tuple(self.codec.encode(secret)))
            self.print_code(str(code))
        except BaseException:
            await wormhole.close()
            raise
        return secret, wormhole

    async def _join(self, request: JoinPairing) -> tuple[bytes, WormholeProtocol]:
        try:
            secret = self.codec.decode(list(request.code.words))
        except ValueError as e:
            raise InvalidCodeError(f"could not decode password: {e}") from e
        wormhole = await self.signal_client.join(request.code.slot)
        return secret, wormhole

    def _generate_secret(self, length: int) -> bytes:
        if length < 1:
            raise RandomnessError(f"could not generate password: invalid length {length}")
        try:
            secret = self._random_bytes(length)
        except (OSError, NotImplementedError) as e:
            raise RandomnessError(f"could not generate password: {e}") from e
        if len(secret) != length:
            raise RandomnessError("could not generate password: short read")
        return secret

    def print_code(self, code: str) -> None:
        """Show the code as text, then as a QR code of the web link.

        The QR code is skipped if the link cannot be built or does not fit.
        """
        self._echo(code)
        try:
            reference = reference_url(self.config.signal_server, code)
        except ValueError as e:
            logger.debug(f"Not rendering QR code: {e}")
            return
        try:
            QrGenerator(reference).print(self.out)
        except DataOverflowError as e:
            logger.debug(f"Not rendering QR code: {e}")

    def _echo(self, message: str) -> None:
        click.echo(message, file=self.out)
