"""QR code rendering for pairing codes.

The pairing code is shown as a QR code of the signalling server URL
with the code as fragment, so a phone can scan it straight into the
web client. The module grid comes from the ``qrcode`` library; the
terminal rendering packs two module rows into one line of text using
half-block glyphs.
"""

import io
from dataclasses import dataclass
from typing import TextIO
from urllib.parse import urlsplit, urlunsplit

import qrcode
from qrcode.constants import (
    ERROR_CORRECT_H,
    ERROR_CORRECT_L,
    ERROR_CORRECT_M,
    ERROR_CORRECT_Q,
)

ERROR_CORRECTION = {
    "L": ERROR_CORRECT_L,
    "M": ERROR_CORRECT_M,
    "Q": ERROR_CORRECT_Q,
    "H": ERROR_CORRECT_H,
}

FULL = "█"
# Right-hand (and left-hand) quiet zone width, in glyphs
PADDING = FULL * 4

# Keyed by (top module dark, bottom module dark). Dark modules are drawn
# as terminal background, light ones as full blocks.
GLYPHS = {
    (True, True): " ",
    (True, False): "▄",
    (False, True): "▀",
    (False, False): FULL,
}


@dataclass(frozen=True)
class ModuleGrid:
    """Square grid of QR modules.

    Attributes:
        size: Side length in modules.
        rows: ``rows[y][x]`` is True for a dark module.
    """

    size: int
    rows: tuple[tuple[bool, ...], ...]

    @classmethod
    def from_matrix(cls, matrix: list[list[bool]]) -> "ModuleGrid":
        return cls(size=len(matrix), rows=tuple(tuple(bool(m) for m in row) for row in matrix))

    def black(self, x: int, y: int) -> bool:
        """Whether module (x, y) is dark. Outside the grid is light."""
        if 0 <= x < self.size and 0 <= y < self.size:
            return self.rows[y][x]
        return False


def encode_grid(text: str, level: str = "L") -> ModuleGrid:
    """Encode text into a module grid without quiet zone.

    Raises:
        qrcode.exceptions.DataOverflowError: If text does not fit a QR code.
    """
    qr = qrcode.QRCode(
        version=None,  # Auto-size
        error_correction=ERROR_CORRECTION[level],
        border=0,
    )
    qr.add_data(text)
    qr.make(fit=True)
    return ModuleGrid.from_matrix(qr.get_matrix())


def render(grid: ModuleGrid, reference: str, out: TextIO) -> None:
    """Write the grid as half-block text, then the reference on its own line."""
    border = FULL * grid.size + PADDING * 2 + "\n"
    out.write(border)
    out.write(border)
    for y in range(0, grid.size, 2):
        line = "".join(
            GLYPHS[(grid.black(x, y), grid.black(x, y + 1))] for x in range(grid.size)
        )
        out.write(PADDING + line + PADDING + "\n")
    out.write(border)
    out.write(border)
    out.write(reference + "\n")


def to_terminal(grid: ModuleGrid, reference: str) -> str:
    """Render to a string instead of a stream."""
    output = io.StringIO()
    render(grid, reference, output)
    return output.getvalue()


def reference_url(signal_server: str, code: str) -> str:
    """Signalling server URL with the pairing code as fragment.

    Raises:
        ValueError: If the server address is not a usable URL.
    """
    parts = urlsplit(signal_server)
    if not parts.scheme or not parts.netloc:
        raise ValueError(f"not a URL: {signal_server!r}")
    return urlunsplit((parts.scheme, parts.netloc, parts.path, parts.query, code))


class QrGenerator:
    """Generate the terminal QR code for a pairing code.

    Usage:
        qr = QrGenerator(reference_url("https://wrmhl.link/", "7-guitar-spark"))
        qr.print(sys.stderr)
    """

    def __init__(self, reference: str, level: str = "L"):
        """Initialize QR generator.

        Args:
            reference: Text to encode and print below the code.
            level: Error correction level, one of L, M, Q, H.
        """
        self.reference = reference
        self.level = level

    def grid(self) -> ModuleGrid:
        return encode_grid(self.reference, self.level)

    def to_terminal(self) -> str:
        """Generate the half-block text for terminal display."""
        return to_terminal(self.grid(), self.reference)

    def print(self, out: TextIO) -> None:
        render(self.grid(), self.reference, out)
