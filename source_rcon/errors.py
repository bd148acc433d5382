# source_rcon/errors.py
from __future__ import annotations

from typing import Optional


class RconError(Exception):
    """Base class for everything the RCON client raises."""


class ConnectionFailed(RconError):
    """Socket-level failure: refused, unreachable, timed out, reset."""


class ConnectionClosed(ConnectionFailed):
    """The connection is closed, either by us or by the server."""


class AuthenticationFailed(RconError):
    """The server rejected the password (auth response id was -1)."""


class MalformedPacket(RconError):
    """Bytes on the wire don't form a valid RCON packet."""


class IncompletePacket(RconError):
    """
    Not enough bytes buffered to decode a packet yet.

    Raised by the codec as a signal to read more; `needed` is the total
    number of bytes required, or None while the length prefix is missing.
    """

    def __init__(self, needed: Optional[int] = None, have: int = 0):
        super().__init__(f"need {needed if needed is not None else 'more'} bytes, have {have}")
        self.needed = needed
        self.have = have


class UnexpectedResponse(RconError):
    """A packet arrived whose id or type doesn't match the pending request."""

    def __init__(self, message: str, packet=None):
        super().__init__(message)
        self.packet = packet


class PacketTooLarge(RconError):
    def __init__(self, size: int, limit: int):
        super().__init__(f"body is {size} bytes (limit {limit})")
        self.size = size
        self.limit = limit


class InvalidEncoding(RconError):
    """Body bytes are not valid UTF-8."""
