# source_rcon/packet.py
"""
Source RCON packet codec.

Wire format, every integer a little-endian signed 32-bit value:

    [length][id][type][body ...][0x00][0x00]

`length` counts everything after itself, so an empty body gives 10.
Encoding and decoding never touch a socket; see connection.py for that.
"""
from __future__ import annotations

import struct
from dataclasses import dataclass
from enum import IntEnum
from typing import Optional, Union

from .errors import IncompletePacket, InvalidEncoding, MalformedPacket, PacketTooLarge

HEADER = struct.Struct("<iii")
LENGTH = struct.Struct("<i")
HEADER_SIZE = HEADER.size          # length + id + type
MIN_PACKET_LENGTH = 4 + 4 + 2      # id + type + terminators
MAX_BODY_SIZE = 4096               # request body limit most servers accept
# Servers split responses into packets of at most this many bytes after the length field.
MAX_PACKET_LENGTH = MIN_PACKET_LENGTH + 4096
INT32_MIN, INT32_MAX = -(2 ** 31), 2 ** 31 - 1
TERMINATOR = b"\x00\x00"


class PacketType(IntEnum):
    RESPONSE_VALUE = 0
    EXEC_COMMAND = 2
    # Same value as EXEC_COMMAND; only the session phase tells them apart.
    AUTH_RESPONSE = 2
    AUTH = 3


@dataclass(frozen=True)
class Packet:
    id: int
    type: int
    body: bytes = b""

    def __post_init__(self):
        if isinstance(self.body, str):
            object.__setattr__(self, "body", self.body.encode("utf-8"))

    @property
    def length(self) -> int:
        return 4 + 4 + len(self.body) + len(TERMINATOR)

    @property
    def text(self) -> str:
        return decode_text(self.body)

    def __repr__(self) -> str:
        return f"<Packet id={self.id} type={self.type} {len(self.body)}B>"


def decode_text(body: bytes) -> str:
    try:
        return body.decode("utf-8")
    except UnicodeDecodeError as e:
        raise InvalidEncoding(f"body is not valid UTF-8: {e}") from e


def encode(packet: Packet, max_body: Optional[int] = MAX_BODY_SIZE) -> bytes:
    size = len(packet.body)
    if max_body is not None and size > max_body:
        raise PacketTooLarge(size, max_body)
    if packet.length > INT32_MAX:
        raise PacketTooLarge(size, INT32_MAX - MIN_PACKET_LENGTH)
    try:
        head = HEADER.pack(packet.length, packet.id, packet.type)
    except struct.error as e:
        raise MalformedPacket(f"id/type out of int32 range: {packet!r}") from e
    return head + packet.body + TERMINATOR


def _parse(data: Union[bytes, bytearray], max_length: Optional[int]) -> tuple[Packet, int]:
    if len(data) < LENGTH.size:
        raise IncompletePacket(None, len(data))
    (length,) = LENGTH.unpack_from(data, 0)
    # Both bounds are checked before completeness: no amount of extra
    # bytes makes an out-of-range length valid.
    if length < MIN_PACKET_LENGTH:
        raise MalformedPacket(f"declared length {length} is below {MIN_PACKET_LENGTH}")
    if max_length is not None and length > max_length:
        raise MalformedPacket(f"declared length {length} exceeds {max_length}")
    total = LENGTH.size + length
    if len(data) < total:
        raise IncompletePacket(total, len(data))

    _, req_id, kind = HEADER.unpack_from(data, 0)
    if bytes(data[total - 2:total]) != TERMINATOR:
        raise MalformedPacket(f"bad terminators {bytes(data[total - 2:total])!r}")
    body = bytes(data[HEADER_SIZE:total - 2])
    return Packet(req_id, kind, body), total


def decode_prefix(
    data: Union[bytes, bytearray],
    max_length: Optional[int] = MAX_PACKET_LENGTH,
) -> tuple[Packet, bytes]:
    """
    Decode the packet at the start of `data`.

    Returns (packet, remainder). Raises IncompletePacket when `data` is
    shorter than the packet it announces, MalformedPacket when the length
    is outside [MIN_PACKET_LENGTH, max_length] or the terminators aren't
    both null. Pass max_length=None to accept any length.
    """
    packet, total = _parse(data, max_length)
    return packet, bytes(data[total:])


def decode(data: Union[bytes, bytearray], max_length: Optional[int] = MAX_PACKET_LENGTH) -> Packet:
    return _parse(data, max_length)[0]


def consume(buf: bytearray, max_length: Optional[int] = MAX_PACKET_LENGTH) -> Packet:
    """Decode the packet at the start of `buf` and remove its bytes in place."""
    packet, total = _parse(buf, max_length)
    del buf[:total]
    return packet
