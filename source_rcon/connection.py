# source_rcon/connection.py
from __future__ import annotations

import enum
import logging
import select
import socket
from typing import Optional

from .errors import (
    AuthenticationFailed,
    ConnectionClosed,
    ConnectionFailed,
    IncompletePacket,
    MalformedPacket,
    RconError,
    UnexpectedResponse,
)
from .packet import (
    INT32_MAX,
    MAX_BODY_SIZE,
    MAX_PACKET_LENGTH,
    Packet,
    PacketType,
    consume,
    decode_text,
    encode,
)
from .util import DEFAULT_PORT, DEFAULT_TIMEOUT

log = logging.getLogger(__name__)

RECV_SIZE = 4096
BOUNDARIES = ("marker", "drain")


class ConnectionState(enum.Enum):
    CONNECTING = "connecting"
    AUTHENTICATED = "authenticated"
    EXECUTING = "executing"
    CLOSED = "closed"


class Connection:
    """
    One authenticated RCON session over a TCP socket.

    Requests are strictly one at a time; the class does no locking, so
    share it between threads only behind your own lock.

    `boundary` picks how the end of a (possibly fragmented) command
    response is found:
      • "marker": send an empty EXEC_COMMAND right after the command and
        collect RESPONSE_VALUE packets until the reply to that marker shows up.
      • "drain": for servers that ignore the marker; collect packets while
        more data arrives within `drain_timeout` seconds.
    """

    def __init__(
        self,
        sock: socket.socket,
        *,
        boundary: str = "marker",
        max_command_size: Optional[int] = MAX_BODY_SIZE,
        drain_timeout: float = 0.0,
        max_packet_length: Optional[int] = MAX_PACKET_LENGTH,
    ):
        if boundary not in BOUNDARIES:
            raise ValueError(f"unknown boundary strategy {boundary!r} (expected one of {BOUNDARIES})")
        self._sock: Optional[socket.socket] = sock
        self._buf = bytearray()
        self._next_id = 1
        self.boundary = boundary
        self.max_command_size = max_command_size
        self.drain_timeout = drain_timeout
        self.max_packet_length = max_packet_length
        self.state = ConnectionState.CONNECTING

    def __enter__(self):
        return self

    def __exit__(self, _type, _value, _tb):
        self.close()

    def __repr__(self) -> str:
        return f"<Connection {self.state.value} boundary={self.boundary}>"

    @property
    def closed(self) -> bool:
        return self.state is ConnectionState.CLOSED

    def close(self) -> None:
        if self._sock is not None:
            try:
                self._sock.close()
            finally:
                self._sock = None
        self._buf = bytearray()
        self.state = ConnectionState.CLOSED

    # ── handshake ──────────────────────────────────────────────────────────

    def authenticate(self, password: str) -> None:
        """Run the AUTH handshake; closes the connection if it fails."""
        if self.state is not ConnectionState.CONNECTING:
            self._check_open()
            raise UnexpectedResponse(f"cannot authenticate in state {self.state.value}")
        try:
            body = password.encode("utf-8")
            encode(Packet(0, PacketType.AUTH, body), self.max_command_size)
            auth_id = self._send(PacketType.AUTH, body)
            p = self._read_packet()
            # Servers usually precede the auth result with an empty
            # RESPONSE_VALUE; some skip it.
            if p.type == PacketType.RESPONSE_VALUE and not p.body:
                log.debug("Skipping empty RESPONSE_VALUE before auth response (id %d)", p.id)
                p = self._read_packet()
            if p.id == -1:
                raise AuthenticationFailed("authentication failed (wrong password?)")
            if p.type != PacketType.AUTH_RESPONSE:
                raise UnexpectedResponse(f"expected auth response, got {p!r}", p)
        except RconError:
            self.close()
            raise
        if p.id != auth_id:
            log.warning("Auth response id %d doesn't echo request id %d", p.id, auth_id)
        self.state = ConnectionState.AUTHENTICATED
        log.info("Authenticated")

    # ── commands ───────────────────────────────────────────────────────────

    def exec(self, command: str) -> str:
        """Run `command` on the server and return its full text output."""
        self._check_open()
        if self.state is not ConnectionState.AUTHENTICATED:
            raise UnexpectedResponse(f"cannot exec in state {self.state.value}")
        body = command.encode("utf-8")
        # Validate before anything goes on the wire.
        encode(Packet(0, PacketType.EXEC_COMMAND, body), self.max_command_size)

        self.state = ConnectionState.EXECUTING
        try:
            cmd_id = self._send(PacketType.EXEC_COMMAND, body)
            if self.boundary == "marker":
                chunks = self._collect_until_marker(cmd_id)
            else:
                chunks = self._collect_drained(cmd_id)
        finally:
            if self.state is ConnectionState.EXECUTING:
                self.state = ConnectionState.AUTHENTICATED
        return decode_text(b"".join(chunks))

    __call__ = exec

    def _collect_until_marker(self, cmd_id: int) -> list[bytes]:
        marker_id = self._send(PacketType.EXEC_COMMAND, b"")
        chunks: list[bytes] = []
        stray: Optional[Packet] = None
        while True:
            p = self._read_packet()
            if p.id == marker_id:
                log.debug("Boundary marker %d received after %d fragment(s)", marker_id, len(chunks))
                break
            if p.id == cmd_id and p.type == PacketType.RESPONSE_VALUE:
                chunks.append(p.body)
            elif stray is None:
                # keep reading up to the marker so the stream stays in sync
                stray = p
        if stray is not None:
            raise UnexpectedResponse(f"unexpected packet {stray!r} while waiting for id {cmd_id}", stray)
        return chunks

    def _collect_drained(self, cmd_id: int) -> list[bytes]:
        chunks: list[bytes] = []
        while True:
            p = self._read_packet()
            if p.id != cmd_id or p.type != PacketType.RESPONSE_VALUE:
                raise UnexpectedResponse(f"unexpected packet {p!r} while waiting for id {cmd_id}", p)
            chunks.append(p.body)
            if not self._buf and not self._readable(self.drain_timeout):
                return chunks

    # ── wire ───────────────────────────────────────────────────────────────

    def _check_open(self) -> None:
        if self._sock is None or self.state is ConnectionState.CLOSED:
            raise ConnectionClosed("connection is closed")

    def _fetch_id(self) -> int:
        req_id = self._next_id
        self._next_id = req_id + 1 if req_id < INT32_MAX else 1
        return req_id

    def _send(self, kind: int, body) -> int:
        self._check_open()
        req_id = self._fetch_id()
        packet = Packet(req_id, kind, body)
        data = encode(packet, None)
        log.debug("-> %r", packet)
        try:
            self._sock.sendall(data)
        except OSError as e:
            self.close()
            raise ConnectionFailed(f"send failed: {e}") from e
        return req_id

    def _readable(self, timeout: float) -> bool:
        try:
            ready, _, _ = select.select([self._sock], [], [], timeout)
        except (OSError, ValueError) as e:
            self.close()
            raise ConnectionFailed(f"select failed: {e}") from e
        return bool(ready)

    def _read_packet(self) -> Packet:
        self._check_open()
        while True:
            try:
                packet = consume(self._buf, self.max_packet_length)
            except IncompletePacket:
                pass
            except MalformedPacket:
                self.close()
                raise
            else:
                log.debug("<- %r", packet)
                return packet

            try:
                chunk = self._sock.recv(RECV_SIZE)
            except socket.timeout as e:
                self.close()
                raise ConnectionFailed("timed out waiting for the server") from e
            except OSError as e:
                self.close()
                raise ConnectionFailed(f"receive failed: {e}") from e
            if not chunk:
                partial = len(self._buf)
                self.close()
                if partial:
                    raise MalformedPacket(f"connection closed mid-packet ({partial} bytes buffered)")
                raise ConnectionClosed("connection closed by server")
            self._buf += chunk


def connect(
    host: str,
    port: int = DEFAULT_PORT,
    password: str = "",
    *,
    timeout: Optional[float] = DEFAULT_TIMEOUT,
    **options,
) -> Connection:
    """Open a TCP connection to host:port and authenticate with `password`."""
    try:
        sock = socket.create_connection((host, int(port)), timeout=timeout)
    except OSError as e:
        raise ConnectionFailed(f"cannot connect to {host}:{port}: {e}") from e
    sock.settimeout(timeout)
    log.debug("Connected to %s:%s", host, port)

    try:
        conn = Connection(sock, **options)
        conn.authenticate(password)
    except BaseException:
        sock.close()
        raise
    return conn
