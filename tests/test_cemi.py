import pytest

from knx_mqtt.cemi import (
    GroupAddr,
    GroupCommand,
    GroupEvent,
    decode_cemi,
    encode_cemi,
    is_regular_group_address,
)


@pytest.mark.parametrize(
    "text, expected",
    [
        ("1/2/3", True),
        ("31/7/255", True),
        ("Lights/Kitchen/Ceiling", False),
        ("1/2", False),
        ("", False),
    ],
)
def test_is_regular_group_address(text, expected):
    assert is_regular_group_address(text) is expected


@pytest.mark.parametrize("text", ["0/0/0", "1/2/3", "31/7/255", "4/0/17"])
def test_group_addr_string_round_trip(text):
    assert str(GroupAddr.parse(text)) == text


def test_group_addr_highest_value():
    assert GroupAddr.parse("31/7/255").value == 0xFFFF


def test_group_addr_two_level_and_flat_agree_with_three_level():
    three = GroupAddr.parse("1/2/3")
    assert GroupAddr.parse("1/515") == three
    assert GroupAddr.parse("2563") == three


@pytest.mark.parametrize("text", ["32/0/0", "0/8/0", "0/0/256", "abc", "1/2048", "65536", ""])
def test_group_addr_rejects_invalid(text):
    with pytest.raises(ValueError):
        GroupAddr.parse(text)


def test_group_addr_components():
    addr = GroupAddr.parse("17/5/200")
    assert (addr.main, addr.middle, addr.sub) == (17, 5, 200)


def test_encode_small_write():
    event = GroupEvent(GroupCommand.WRITE, GroupAddr.parse("1/2/3"), b"\x01")
    assert encode_cemi(event) == bytes.fromhex("1100bce000000a03010081")


def test_encode_read_has_empty_payload():
    event = GroupEvent(GroupCommand.READ, GroupAddr.parse("1/2/3"))
    assert encode_cemi(event)[-2:] == b"\x00\x00"


@pytest.mark.parametrize(
    "event",
    [
        GroupEvent(GroupCommand.WRITE, GroupAddr.parse("1/2/3"), b"\x01"),
        GroupEvent(GroupCommand.WRITE, GroupAddr.parse("0/0/1"), b"\x00\x0c\x1a"),
        GroupEvent(GroupCommand.RESPONSE, GroupAddr.parse("31/7/255"), b"\x00\xff"),
        GroupEvent(GroupCommand.READ, GroupAddr.parse("5/1/9")),
    ],
)
def test_round_trip(event):
    assert decode_cemi(encode_cemi(event)) == event


def test_decode_indication_with_additional_info():
    event = GroupEvent(GroupCommand.WRITE, GroupAddr.parse("2/3/4"), b"\x00\x11\x22", source=0x1101)
    encoded = encode_cemi(event)
    frame = bytes([0x29, 2, 0xAA, 0xBB]) + encoded[2:]
    assert decode_cemi(frame) == event


def test_decode_rejects_unknown_message_code():
    frame = bytearray(encode_cemi(GroupEvent(GroupCommand.WRITE, GroupAddr(1), b"\x01")))
    frame[0] = 0x2B
    with pytest.raises(ValueError):
        decode_cemi(bytes(frame))


def test_decode_rejects_individual_destination():
    frame = bytearray(encode_cemi(GroupEvent(GroupCommand.WRITE, GroupAddr(1), b"\x01")))
    frame[3] &= 0x7F
    with pytest.raises(ValueError):
        decode_cemi(bytes(frame))


def test_decode_rejects_truncated_frame():
    frame = encode_cemi(GroupEvent(GroupCommand.WRITE, GroupAddr(1), b"\x00\x01\x02"))
    with pytest.raises(ValueError):
        decode_cemi(frame[:-1])


def test_encode_rejects_oversized_first_byte():
    with pytest.raises(ValueError):
        encode_cemi(GroupEvent(GroupCommand.WRITE, GroupAddr(1), b"\x40"))