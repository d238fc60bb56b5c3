import pytest

from broadside.protocol import (
    BombCell,
    BombResponse,
    Chat,
    PassToken,
    ReadyToPlay,
    ShipInfo,
    decode,
    encode,
)


def test_encode_plain_messages():
    assert encode(ReadyToPlay()) == {"type": "readyToPlay"}
    assert encode(PassToken()) == {"type": "passToken"}
    assert encode(BombCell(2, 7)) == {"type": "bombCell", "cellPos": {"row": 2, "column": 7}}


def test_encode_ready_with_tiebreak_fields():
    assert encode(ReadyToPlay(nonce=42, reply=True)) == {"type": "readyToPlay", "nonce": 42, "reply": True}


def test_encode_bomb_response_optional_fields():
    assert encode(BombResponse(1, 1, hit=False)) == {
        "type": "bombResponse",
        "cellPos": {"row": 1, "column": 1},
        "hit": False,
    }
    full = encode(BombResponse(1, 0, hit=True, ship=ShipInfo(0, 0, True, 2), all_sunk=True))
    assert full["ship"] == {"row": 0, "column": 0, "isVertical": True, "size": 2}
    assert full["allSunk"] is True


def test_decode_bomb_response():
    msg = decode(
        {
            "type": "bombResponse",
            "cellPos": {"row": 9, "column": 0},
            "hit": True,
            "ship": {"row": 8, "column": 0, "isVertical": True, "size": 2},
            "allSunk": True,
        }
    )
    assert msg == BombResponse(9, 0, hit=True, ship=ShipInfo(8, 0, True, 2), all_sunk=True)


def test_decode_ready_without_extras():
    assert decode({"type": "readyToPlay"}) == ReadyToPlay(nonce=None, reply=False)


@pytest.mark.parametrize(
    "obj",
    [
        None,
        "readyToPlay",
        [1, 2],
        {},
        {"msg": "hello"},
        {"type": "surrender"},
        {"type": "chat"},
        {"type": "chat", "text": "   "},
        {"type": "chat", "text": 7},
        {"type": "chat", "text": "x" * 501},
        {"type": 3},
        {"type": "bombCell"},
        {"type": "bombCell", "cellPos": {"row": "1", "column": 2}},
        {"type": "bombCell", "cellPos": {"row": 10, "column": 2}},
        {"type": "bombCell", "cellPos": {"row": True, "column": 2}},
        {"type": "bombResponse", "cellPos": {"row": 1, "column": 2}},
        {"type": "bombResponse", "cellPos": {"row": 1, "column": 2}, "hit": 1},
        {"type": "bombResponse", "cellPos": {"row": 1, "column": 2}, "hit": True, "ship": {"row": 1}},
        {
            "type": "bombResponse",
            "cellPos": {"row": 9, "column": 9},
            "hit": True,
            "ship": {"row": 9, "column": 8, "isVertical": False, "size": 3},
        },
        {
            "type": "bombResponse",
            "cellPos": {"row": 0, "column": 0},
            "hit": True,
            "ship": {"row": -1, "column": 0, "isVertical": True, "size": 2},
        },
        {"type": "readyToPlay", "nonce": "x"},
    ],
)
def test_malformed_or_unknown_is_dropped(obj):
    assert decode(obj) is None


def test_encode_rejects_non_messages():
    with pytest.raises(TypeError):
        encode({"type": "passToken"})  # type: ignore[arg-type]


def test_chat_message():
    assert encode(Chat("good luck")) == {"type": "chat", "text": "good luck"}
    assert decode({"type": "chat", "text": "gg"}) == Chat("gg")


def test_ship_touching_the_far_edge_is_accepted():
    msg = decode(
        {
            "type": "bombResponse",
            "cellPos": {"row": 9, "column": 9},
            "hit": True,
            "ship": {"row": 9, "column": 7, "isVertical": False, "size": 3},
        }
    )
    assert msg.ship == ShipInfo(9, 7, False, 3)
