import pytest

from broadside.commands import (
    parse_command,
    ChatCommand,
    FireCommand,
    FlipCommand,
    MoveCommand,
    QuitCommand,
    RandomCommand,
    ShowCommand,
    CommandParseError,
)


def test_fire_valid_A1():
    cmd = parse_command("FIRE A1")
    assert isinstance(cmd, FireCommand)
    assert (cmd.row, cmd.column) == (0, 0)


def test_fire_valid_J10():
    cmd = parse_command("fire j10")
    assert isinstance(cmd, FireCommand)
    assert (cmd.row, cmd.column) == (9, 9)


def test_fire_invalid_coord():
    with pytest.raises(CommandParseError):
        parse_command("FIRE K1")


def test_fire_missing_arg():
    with pytest.raises(CommandParseError):
        parse_command("FIRE")


def test_move_is_one_based():
    cmd = parse_command("  move 3 c5 ")
    assert cmd == MoveCommand(ship=2, row=2, column=4)


@pytest.mark.parametrize("line", ["MOVE 0 A1", "MOVE x A1", "MOVE 1", "MOVE 1 Z9"])
def test_move_invalid(line):
    with pytest.raises(CommandParseError):
        parse_command(line)


def test_flip():
    assert parse_command("FLIP 1") == FlipCommand(ship=0)


def test_flip_missing_arg():
    with pytest.raises(CommandParseError):
        parse_command("FLIP")


def test_simple_verbs():
    assert isinstance(parse_command("random"), RandomCommand)
    assert isinstance(parse_command("SHOW"), ShowCommand)
    assert isinstance(parse_command("QUIT"), QuitCommand)


def test_quit_with_args_is_unknown():
    with pytest.raises(CommandParseError):
        parse_command("QUIT now")


def test_unknown_command():
    with pytest.raises(CommandParseError):
        parse_command("HELLO there")


def test_empty_line():
    with pytest.raises(CommandParseError):
        parse_command("    ")


def test_chat_keeps_inner_spacing():
    assert parse_command("CHAT  nice  shot ") == ChatCommand(text="nice  shot")


@pytest.mark.parametrize("line", ["CHAT", "chat    ", "CHAT " + "x" * 501])
def test_chat_invalid(line):
    with pytest.raises(CommandParseError):
        parse_command(line)


@pytest.mark.parametrize("line", ["FIRE A0", "FIRE A11", "FIRE A01", "FIRE 1A"])
def test_fire_coordinate_off_the_board(line):
    with pytest.raises(CommandParseError):
        parse_command(line)
