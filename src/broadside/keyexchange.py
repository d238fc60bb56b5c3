# key exchange abstraction module

import socket

from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import ec
from cryptography.hazmat.primitives.kdf.hkdf import HKDF

from .framing import FrameError


class HandshakeError(FrameError):
    """Raised when the peer does not answer the HELLO exchange correctly."""


def generate_key_pair() -> tuple[bytes, ec.EllipticCurvePrivateKey]:
    """Generate an ECDH key pair; return (public_bytes, private_key)"""
    private_key = ec.generate_private_key(ec.SECP256R1())
    public_bytes = private_key.public_key().public_bytes(
        serialization.Encoding.X962, serialization.PublicFormat.UncompressedPoint
    )
    return public_bytes, private_key


def derive_session_key(private_key: ec.EllipticCurvePrivateKey, peer_public_bytes: bytes) -> bytes:
    """Derive a shared session key using ECDH and HKDF"""
    try:
        peer_public_key = ec.EllipticCurvePublicKey.from_encoded_point(ec.SECP256R1(), peer_public_bytes)
    except ValueError as exc:
        raise HandshakeError(f"Bad peer public key: {exc}") from exc
    shared_secret = private_key.exchange(ec.ECDH(), peer_public_key)
    hkdf = HKDF(algorithm=hashes.SHA256(), length=32, salt=None, info=b"broadside-session")
    return hkdf.derive(shared_secret)


def _read_line(s: socket.socket, limit: int = 1024) -> bytes:
    # Byte-wise so that nothing after the newline (the first frame) is consumed.
    buf = bytearray()
    while not buf.endswith(b"\n"):
        chunk = s.recv(1)
        if not chunk:
            raise HandshakeError("Peer closed during handshake")
        buf += chunk
        if len(buf) > limit:
            raise HandshakeError("HELLO line too long")
    return bytes(buf)


def handshake(s: socket.socket) -> bytes:
    """Exchange ``HELLO <hex pubkey>`` lines with the peer and return the session key.

    Both peers send first and then read, so the exchange is symmetric and
    works no matter which side dialed.
    """
    pub, priv = generate_key_pair()
    s.sendall(f"HELLO {pub.hex()}\n".encode())
    line = _read_line(s)
    if not line.startswith(b"HELLO "):
        raise HandshakeError("Handshake failed: expected HELLO from peer")
    _, hex_pub = line.strip().split(b" ", 1)
    try:
        peer_pub = bytes.fromhex(hex_pub.decode())
    except ValueError as exc:
        raise HandshakeError("Handshake failed: HELLO key is not hex") from exc
    return derive_session_key(priv, peer_pub)
