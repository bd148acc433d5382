"""Client for the Source RCON remote console protocol."""
from .connection import Connection, ConnectionState, connect
from .errors import (
    AuthenticationFailed,
    ConnectionClosed,
    ConnectionFailed,
    IncompletePacket,
    InvalidEncoding,
    MalformedPacket,
    PacketTooLarge,
    RconError,
    UnexpectedResponse,
)
from .packet import MAX_BODY_SIZE, MAX_PACKET_LENGTH, Packet, PacketType, consume, decode, decode_prefix, encode

__version__ = "0.1.0"

__all__ = [
    "AuthenticationFailed",
    "Connection",
    "ConnectionClosed",
    "ConnectionFailed",
    "ConnectionState",
    "IncompletePacket",
    "InvalidEncoding",
    "MAX_BODY_SIZE",
    "MAX_PACKET_LENGTH",
    "MalformedPacket",
    "Packet",
    "PacketTooLarge",
    "PacketType",
    "RconError",
    "UnexpectedResponse",
    "connect",
    "consume",
    "decode",
    "decode_prefix",
    "encode",
]
