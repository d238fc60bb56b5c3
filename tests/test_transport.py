"""Peer link over real sockets: handshake, ordered delivery and failures."""

from __future__ import annotations

import io
import os
import socket
import threading

import pytest

from broadside.framing import FrameError
from broadside.keyexchange import HandshakeError
from broadside.peer import run
from broadside.session import GameSession, Status
from broadside.transport import ConnectionClosed, PeerConnection


def _connected_pair() -> tuple[PeerConnection, PeerConnection]:
    s1, s2 = socket.socketpair()
    other: list[PeerConnection] = []
    t = threading.Thread(target=lambda: other.append(PeerConnection.from_socket(s2, timeout=5)))
    t.start()
    c1 = PeerConnection.from_socket(s1, timeout=5)
    t.join(timeout=5)
    assert other, "handshake thread did not finish"
    return c1, other[0]


@pytest.mark.timeout(10)
def test_messages_arrive_in_order() -> None:
    c1, c2 = _connected_pair()
    try:
        msgs = [{"type": "readyToPlay"}, {"type": "passToken"}, {"type": "bombCell", "cellPos": {"row": 1, "column": 1}}]
        for m in msgs:
            c1.send(m)
        assert [c2.recv() for _ in msgs] == msgs
        c2.send({"type": "passToken"})
        assert c1.recv() == {"type": "passToken"}
    finally:
        c1.close()
        c2.close()


@pytest.mark.timeout(10)
def test_close_is_seen_as_connection_closed() -> None:
    c1, c2 = _connected_pair()
    c1.close()
    with pytest.raises(ConnectionClosed):
        c2.recv()
    c2.close()


@pytest.mark.timeout(10)
def test_dropped_socket_is_seen_as_connection_closed() -> None:
    c1, c2 = _connected_pair()
    c1.sock.close()
    with pytest.raises(ConnectionClosed):
        c2.recv()
    c2.close()


@pytest.mark.timeout(10)
def test_sequence_gap_is_a_frame_error() -> None:
    c1, c2 = _connected_pair()
    try:
        c1._send_seq = 5
        c1.send({"type": "passToken"})
        with pytest.raises(FrameError):
            c2.recv()
    finally:
        c1.close()
        c2.close()


@pytest.mark.timeout(10)
def test_send_after_close_raises() -> None:
    c1, c2 = _connected_pair()
    c1.close()
    with pytest.raises(ConnectionClosed):
        c1.send({"type": "passToken"})
    c2.close()


@pytest.mark.timeout(10)
def test_handshake_rejects_garbage() -> None:
    s1, s2 = socket.socketpair()
    s2.sendall(b"NOT A HELLO\n")
    with pytest.raises(HandshakeError):
        PeerConnection.from_socket(s1, timeout=5)
    s2.close()


@pytest.mark.timeout(10)
def test_peer_loop_abandons_when_link_drops() -> None:
    c1, c2 = _connected_pair()
    r_fd, w_fd = os.pipe()
    stdin = os.fdopen(r_fd, "r")
    try:
        session = GameSession(c1.send, ship_sizes=[2])
        c2.close()
        out = io.StringIO()
        assert run(session, c1, stdin=stdin, out=out) == 1
        assert session.outcome == "abandoned"
        assert session.status is Status.CONNECTION_LOST
        assert "abandoned" in out.getvalue()
    finally:
        stdin.close()
        os.close(w_fd)
        c1.close()


@pytest.mark.timeout(10)
def test_peer_loop_quits_on_command() -> None:
    c1, c2 = _connected_pair()
    r_fd, w_fd = os.pipe()
    stdin = os.fdopen(r_fd, "r")
    try:
        os.write(w_fd, b"QUIT\n")
        session = GameSession(c1.send, ship_sizes=[2])
        assert run(session, c1, stdin=stdin, out=io.StringIO()) == 0
        assert not session.finished
    finally:
        stdin.close()
        os.close(w_fd)
        c1.close()
        c2.close()
