import os
import struct
from io import BytesIO

import pytest

from broadside.framing import (
    HEADER_LEN,
    MAGIC,
    VERSION,
    FrameCodec,
    FrameError,
    IncompleteError,
    PacketType,
)

KEY = bytes(range(32))


@pytest.fixture
def codec() -> FrameCodec:
    return FrameCodec(KEY)


def test_pack_unpack_roundtrip(codec):
    obj = {"type": "bombResponse", "cellPos": {"row": 1, "column": 2}, "hit": True}
    frame = codec.pack(PacketType.GAME, 12345, obj)
    ptype, seq, obj_out = codec.read_frame(BytesIO(frame))
    assert ptype == PacketType.GAME
    assert seq == 12345
    assert obj_out == obj


def test_header_fields(codec):
    frame = codec.pack(PacketType.BYE, 7, None)
    magic, version, ptype_byte, seq, _nonce, length = struct.unpack(">HBBI12sI", frame[:HEADER_LEN])
    assert magic == MAGIC
    assert version == VERSION
    assert ptype_byte == PacketType.BYE.value
    assert seq == 7
    assert length == len(frame) - HEADER_LEN


def test_frames_read_back_to_back(codec):
    stream = BytesIO(codec.pack(PacketType.GAME, 0, {"type": "passToken"}) + codec.pack(PacketType.GAME, 1, {"n": 2}))
    assert codec.read_frame(stream)[2] == {"type": "passToken"}
    assert codec.read_frame(stream)[2] == {"n": 2}
    with pytest.raises(IncompleteError):
        codec.read_frame(stream)


@pytest.mark.parametrize("index", [3, 5, HEADER_LEN + 1, -1])
def test_tampering_fails_authentication(codec, index):
    frame = bytearray(codec.pack(PacketType.GAME, 1, {"type": "passToken"}))
    frame[index] ^= 0x01
    with pytest.raises(FrameError):
        codec.unpack(bytes(frame))


def test_wrong_key_fails(codec):
    frame = codec.pack(PacketType.GAME, 1, {"secret": True})
    other = FrameCodec(os.urandom(32))
    with pytest.raises(FrameError):
        other.unpack(frame)


def test_bad_magic(codec):
    frame = bytearray(codec.pack(PacketType.GAME, 1, {}))
    frame[0] ^= 0xFF
    with pytest.raises(FrameError, match="magic"):
        codec.unpack(bytes(frame))


def test_truncated_frame(codec):
    frame = codec.pack(PacketType.GAME, 1, {"type": "passToken"})
    with pytest.raises(IncompleteError):
        codec.read_frame(BytesIO(frame[:-3]))
    with pytest.raises(IncompleteError):
        codec.read_frame(BytesIO(frame[: HEADER_LEN - 1]))


def test_oversized_payload_rejected(codec):
    with pytest.raises(FrameError):
        codec.pack(PacketType.GAME, 1, {"blob": "x" * (1024 * 1024 + 1)})


def test_key_length_checked():
    with pytest.raises(ValueError):
        FrameCodec(b"short")
