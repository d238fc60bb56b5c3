"""TCP peer link carrying protocol messages between exactly two players.

``PeerConnection.listen()`` waits for one opponent, ``PeerConnection.connect()``
dials one. Either way the ECDH handshake runs first and every message after
that is an encrypted frame (see broadside.framing).

Messages are delivered in send order. Frames carry a sequence number that
must grow by exactly one; anything else means the stream cannot be trusted
and is reported as a FrameError.
"""

from __future__ import annotations

import contextlib
import logging
import socket
from typing import Any, Optional

from . import config as _cfg
from .framing import FrameCodec, FrameError, IncompleteError, PacketType
from .keyexchange import handshake

logger = logging.getLogger(__name__)


class ConnectionClosed(Exception):
    """The peer went away, either with a BYE frame or by dropping the socket."""


class PeerConnection:
    """One established, encrypted link to the opponent."""

    def __init__(self, sock: socket.socket, key: bytes):
        self.sock = sock
        self._codec = FrameCodec(key)
        self._send_seq = 0
        self._recv_seq = 0
        self.closed = False

    # -------------------- construction --------------------
    @classmethod
    def from_socket(cls, sock: socket.socket, *, timeout: Optional[float] = None) -> "PeerConnection":
        """Run the handshake over an already-connected socket."""
        sock.settimeout(timeout if timeout is not None else _cfg.CONNECT_TIMEOUT)
        try:
            key = handshake(sock)
        except (OSError, FrameError):
            sock.close()
            raise
        # Games have no turn timeout; block indefinitely from here on.
        sock.settimeout(None)
        with contextlib.suppress(OSError):
            sock.setsockopt(socket.SOL_SOCKET, socket.SO_KEEPALIVE, 1)
        return cls(sock, key)

    @classmethod
    def connect(cls, host: str, port: int) -> "PeerConnection":
        logger.info("Connecting to %s:%d", host, port)
        sock = socket.create_connection((host, port), timeout=_cfg.CONNECT_TIMEOUT)
        return cls.from_socket(sock)

    @classmethod
    def listen(cls, host: str, port: int) -> "PeerConnection":
        """Accept exactly one opponent on (*host*, *port*)."""
        with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as srv:
            srv.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
            srv.bind((host, port))
            srv.listen(1)
            logger.info("Waiting for an opponent on %s:%d", host, srv.getsockname()[1])
            conn, addr = srv.accept()
        logger.info("Opponent connected from %s:%d", addr[0], addr[1])
        return cls.from_socket(conn)

    # -------------------- I/O --------------------
    def fileno(self) -> int:
        return self.sock.fileno()

    def send(self, message: dict[str, Any]) -> None:
        """Send one protocol message (fire-and-forget)."""
        self._send_frame(PacketType.GAME, message)

    def _send_frame(self, ptype: PacketType, obj: Any) -> None:
        if self.closed:
            raise ConnectionClosed("Connection already closed")
        frame = self._codec.pack(ptype, self._send_seq, obj)
        try:
            self.sock.sendall(frame)
        except OSError as exc:
            raise ConnectionClosed(f"Send failed: {exc}") from exc
        self._send_seq += 1

    def read(self, n: int) -> bytes:
        """Read exactly *n* bytes unless the peer closes first.

        Unbuffered so that a select() on the socket never misses a frame
        already pulled into a userspace buffer.
        """
        buf = bytearray()
        while len(buf) < n:
            chunk = self.sock.recv(n - len(buf))
            if not chunk:
                break
            buf += chunk
        return bytes(buf)

    def recv(self) -> Any:
        """Block until the next protocol message arrives and return it."""
        try:
            ptype, seq, obj = self._codec.read_frame(self)
        except IncompleteError as exc:
            raise ConnectionClosed(str(exc)) from exc
        except OSError as exc:
            raise ConnectionClosed(f"Receive failed: {exc}") from exc
        if seq != self._recv_seq:
            raise FrameError(f"Out-of-order frame: expected seq {self._recv_seq}, got {seq}")
        self._recv_seq += 1
        if ptype is PacketType.BYE:
            raise ConnectionClosed("Peer closed the game")
        return obj

    def close(self) -> None:
        if self.closed:
            return
        with contextlib.suppress(ConnectionClosed, FrameError):
            self._send_frame(PacketType.BYE, None)
        self.closed = True
        with contextlib.suppress(OSError):
            self.sock.shutdown(socket.SHUT_RDWR)
        self.sock.close()

    def __enter__(self) -> "PeerConnection":
        return self

    def __exit__(self, *_exc: object) -> None:
        self.close()
