"""Pairing module for ww.

Provides:
- Pairing codes (slot plus mnemonic words)
- Session establishment (create or join, then dial)
- Terminal QR rendering of the pairing link
"""

from .code import JoinPairing, NewPairing, PairingCode, pairing_request
from .establisher import Establisher
from .qr_generator import ModuleGrid, QrGenerator, encode_grid, render

__all__ = [
    "Establisher",
    "JoinPairing",
    "ModuleGrid",
    "NewPairing",
    "PairingCode",
    "QrGenerator",
    "encode_grid",
    "pairing_request",
    "render",
]
