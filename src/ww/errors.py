"""Base exceptions for ww."""

UPGRADE_HINT = "    pip install --upgrade ww"


class WwError(Exception):
    """Base exception for all ww errors."""

    pass


class RandomnessError(WwError):
    """Secure random source could not supply the pairing secret."""

    pass


class IncompatibleServiceError(WwError):
    """Signalling server speaks a different protocol version."""

    def __init__(self, message: str | None = None):
        super().__init__(
            message
            or (
                "the signalling server is running an incompatible version.\n"
                "try upgrading the client:\n\n" + UPGRADE_HINT + "\n"
            )
        )


class DialError(WwError):
    """Network or service failure while creating, joining or dialing."""

    pass


class InvalidCodeError(WwError):
    """Pairing code is malformed or its words do not decode."""

    pass


class CryptoError(WwError):
    """Cryptographic operation failed."""

    pass
