"""Pairing codes and the create/join request they imply.

A pairing code is the slot assigned by the signalling server followed
by the mnemonic words of the pairing secret, all joined by ``-``::

    7-guitar-spark
"""

from dataclasses import dataclass

from ww.errors import InvalidCodeError

SEPARATOR = "-"


@dataclass(frozen=True)
class PairingCode:
    """Slot plus mnemonic words.

    Attributes:
        slot: Session identifier on the signalling server.
        words: Mnemonic tokens encoding the pairing secret.
    """

    slot: str
    words: tuple[str, ...]

    def __str__(self) -> str:
        return SEPARATOR.join((self.slot, *self.words))

    @classmethod
    def parse(cls, code: str) -> "PairingCode":
        """Split a code typed by the user.

        Raises:
            InvalidCodeError: If the slot is missing or there are no words.
        """
        parts = code.strip().split(SEPARATOR)
        slot, words = parts[0], tuple(parts[1:])
        if not slot:
            raise InvalidCodeError("could not decode password: missing slot")
        if not words or not all(words):
            raise InvalidCodeError("could not decode password")
        return cls(slot=slot, words=words)


@dataclass(frozen=True)
class NewPairing:
    """Create a new pairing with a fresh random secret."""

    secret_length: int


@dataclass(frozen=True)
class JoinPairing:
    """Join the pairing another peer created."""

    code: PairingCode


PairingRequest = NewPairing | JoinPairing


def pairing_request(code: str | None, secret_length: int) -> PairingRequest:
    """Build the request for a code argument; empty means create."""
    if code is None or not code.strip():
        return NewPairing(secret_length=secret_length)
    return JoinPairing(code=PairingCode.parse(code))
