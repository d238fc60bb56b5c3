"""Encrypted packet framing for the peer link.

Frame layout (24-byte header + AES-GCM ciphertext):
0-1  : 0xB0A7       magic
2    : version (1)
3    : PacketType (enum)
4-7  : seq u32 (big-endian)
8-19 : 12-byte GCM nonce
20-23: len u32 (ciphertext+tag length)
24-  : AES-GCM ciphertext of the UTF-8 JSON payload

The header is passed as associated data, so a tampered header fails
authentication just like a tampered payload.
"""

from __future__ import annotations

import enum
import json
import os
import struct
from typing import Any, Final, Protocol, Tuple

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives.ciphers.aead import AESGCM

MAGIC: Final[int] = 0xB0A7
VERSION: Final[int] = 1
MAX_PAYLOAD: Final[int] = 1024 * 1024

HEADER_STRUCT = struct.Struct(">HBBI12sI")
HEADER_LEN: Final[int] = HEADER_STRUCT.size


class PacketType(int, enum.Enum):
    """Packet categories on the peer link."""

    GAME = 0  # one protocol message
    BYE = 1  # orderly close


class FrameError(Exception):
    """Base for framing problems."""


class IncompleteError(FrameError):
    """Raised when the stream closes before a full frame could be read."""


class Readable(Protocol):
    def read(self, n: int, /) -> bytes: ...


class FrameCodec:
    """Pack and unpack frames with one AES-GCM session key."""

    def __init__(self, key: bytes):
        if len(key) not in (16, 24, 32):
            raise ValueError("AES key must be 16/24/32 bytes")
        self._aead = AESGCM(key)

    def pack(self, ptype: PacketType, seq: int, obj: Any) -> bytes:
        """Serialize *obj* as JSON and return one complete frame."""
        payload = json.dumps(obj, separators=(",", ":")).encode()
        if len(payload) > MAX_PAYLOAD:
            raise FrameError(f"Payload too large: {len(payload)} bytes")
        nonce = os.urandom(12)
        # ciphertext is the payload length plus the 16-byte tag
        header = HEADER_STRUCT.pack(MAGIC, VERSION, int(ptype), seq, nonce, len(payload) + 16)
        return header + self._aead.encrypt(nonce, payload, header)

    def unpack(self, frame: bytes) -> Tuple[PacketType, int, Any]:
        """Authenticate and decode one frame into ``(ptype, seq, obj)``."""
        if len(frame) < HEADER_LEN:
            raise IncompleteError("Incomplete header")
        header = frame[:HEADER_LEN]
        magic, version, ptype_val, seq, nonce, length = HEADER_STRUCT.unpack(header)
        if magic != MAGIC or version != VERSION:
            raise FrameError("magic/version mismatch")
        ciphertext = frame[HEADER_LEN : HEADER_LEN + length]
        if len(ciphertext) < length:
            raise IncompleteError("Incomplete payload")
        try:
            plaintext = self._aead.decrypt(nonce, ciphertext, header)
        except InvalidTag:
            raise FrameError("AEAD authentication failed") from None
        try:
            ptype = PacketType(ptype_val)
        except ValueError:
            raise FrameError(f"Unknown packet type {ptype_val}") from None
        try:
            obj = json.loads(plaintext)
        except ValueError as exc:
            raise FrameError(f"Payload is not JSON: {exc}") from exc
        return ptype, seq, obj

    def read_frame(self, r: "Readable") -> Tuple[PacketType, int, Any]:
        """Blocking helper that reads and decodes the next frame from *r*."""
        header = r.read(HEADER_LEN)
        if not header:
            raise IncompleteError("Stream closed")
        if len(header) < HEADER_LEN:
            raise IncompleteError("Incomplete header")
        length = HEADER_STRUCT.unpack(header)[5]
        if length > MAX_PAYLOAD + 16:
            raise FrameError(f"Frame too large: {length} bytes")
        body = r.read(length)
        if len(body) < length:
            raise IncompleteError("Incomplete payload")
        return self.unpack(header + body)


__all__ = [
    "PacketType",
    "FrameCodec",
    "FrameError",
    "IncompleteError",
    "HEADER_LEN",
    "MAGIC",
    "VERSION",
]
