"""ww - ephemeral pairing over a signalling server."""

__version__ = "0.1.0"
