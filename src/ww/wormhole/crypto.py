"""Sealing of signalling messages under the pairing secret.

This module provides:
- Key derivation from the pairing secret using scrypt
- AES-256-GCM authenticated encryption of SDP messages

Security notes:
- Uses `cryptography` library (well-audited, NIST recommended)
- The pairing secret is short; scrypt raises the cost of guessing it
  from a captured message but does not make it a PAKE
- Random nonces for encryption (12 bytes for AES-GCM)
"""

import base64
import json
import secrets

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives.ciphers.aead import AESGCM
from cryptography.hazmat.primitives.kdf.scrypt import Scrypt

from ww.errors import CryptoError

# Constants
KEY_LENGTH = 32  # 256 bits
NONCE_LENGTH = 12  # 96 bits for AES-GCM
TAG_LENGTH = 16  # 128 bits for AES-GCM tag
SCRYPT_N = 2**15
SCRYPT_R = 8
SCRYPT_P = 1


def derive_key(secret: bytes, slot: str) -> bytes:
    """Derive the 32-byte sealing key for a slot.

    Both peers know the slot and the secret, so both derive the same key.

    Args:
        secret: Pairing secret decoded from (or encoded to) the words.
        slot: Slot assigned by the signalling server.

    Returns:
        32-byte key.

    Raises:
        ValueError: If secret is empty.
    """
    if not secret:
        raise ValueError("Secret must not be empty")
    kdf = Scrypt(
        salt=("ww/" + slot).encode("utf-8"),
        length=KEY_LENGTH,
        n=SCRYPT_N,
        r=SCRYPT_R,
        p=SCRYPT_P,
    )
    return kdf.derive(secret)


def encrypt(key: bytes, plaintext: bytes) -> bytes:
    """Encrypt plaintext using AES-256-GCM.

    Format: nonce (12 bytes) || ciphertext || tag (16 bytes)

    Raises:
        ValueError: If key is not 32 bytes.
    """
    if len(key) != KEY_LENGTH:
        raise ValueError(f"Key must be {KEY_LENGTH} bytes")

    nonce = secrets.token_bytes(NONCE_LENGTH)
    return nonce + AESGCM(key).encrypt(nonce, plaintext, None)


def decrypt(key: bytes, data: bytes) -> bytes:
    """Decrypt data produced by :func:`encrypt`.

    Raises:
        ValueError: If key is not 32 bytes.
        CryptoError: If decryption fails (wrong key, tampered data, etc.).
    """
    if len(key) != KEY_LENGTH:
        raise ValueError(f"Key must be {KEY_LENGTH} bytes")

    min_length = NONCE_LENGTH + TAG_LENGTH
    if len(data) < min_length:
        raise CryptoError(f"Data too short (minimum {min_length} bytes)")

    nonce = data[:NONCE_LENGTH]
    try:
        return AESGCM(key).decrypt(nonce, data[NONCE_LENGTH:], None)
    except InvalidTag as e:
        raise CryptoError("Decryption failed") from e


class MessageBox:
    """Seals and opens signalling messages for one slot.

    Usage:
        box = MessageBox(derive_key(secret, slot))
        text = box.seal({"type": "offer", "sdp": sdp})
        message = box.open(text)
    """

    def __init__(self, key: bytes) -> None:
        if len(key) != KEY_LENGTH:
            raise ValueError(f"Key must be {KEY_LENGTH} bytes, got {len(key)}")
        self._key = key

    def seal(self, message: dict) -> str:
        """Encrypt a JSON message into base64 text for a WebSocket frame."""
        data = json.dumps(message).encode("utf-8")
        return base64.b64encode(encrypt(self._key, data)).decode("ascii")

    def open(self, text: str) -> dict:
        """Decrypt a frame produced by :meth:`seal`.

        Raises:
            CryptoError: If the frame is not valid base64, does not decrypt
                under this key, or is not a JSON object.
        """
        try:
            data = base64.b64decode(text, validate=True)
        except ValueError as e:
            raise CryptoError(f"Invalid base64: {e}") from e
        plaintext = decrypt(self._key, data)
        try:
            message = json.loads(plaintext)
        except ValueError as e:
            raise CryptoError(f"Invalid message: {e}") from e
        if not isinstance(message, dict):
            raise CryptoError("Invalid message: not an object")
        return message
