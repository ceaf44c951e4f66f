import pytest

from knx_mqtt.dpt import DatapointError, produce, string_without_suffix


def test_bool_pack_wire_bytes():
    dp = produce("1.001")
    dp.value = True
    assert dp.pack() == b"\x01"
    assert str(dp) == "On"


def test_bool_unpack():
    dp = produce("1.009")
    dp.unpack(b"\x00")
    assert dp.value is False
    assert str(dp) == "Open"


def test_scaled_percent_full_range():
    dp = produce("5.001")
    dp.value = 100.0
    assert dp.pack() == b"\x00\xff"
    other = produce("5.001")
    other.unpack(dp.pack())
    assert other.value == pytest.approx(100.0)


@pytest.mark.parametrize("value", [0.0, 21.5, -30.0, 1000.0, 0.5])
def test_float16_round_trip(value):
    dp = produce("9.001")
    dp.value = value
    back = produce("9.001")
    back.unpack(dp.pack())
    assert back.value == pytest.approx(value, rel=0.01, abs=0.01)


def test_float16_out_of_range():
    dp = produce("9.001")
    dp.value = 1e9
    with pytest.raises(DatapointError):
        dp.pack()


@pytest.mark.parametrize(
    "name,value",
    [("6.010", -5), ("7.001", 65535), ("8.001", -32768), ("12.001", 4000000000), ("13.010", -123456)],
)
def test_integer_round_trip(name, value):
    dp = produce(name)
    dp.value = value
    back = produce(name)
    back.unpack(dp.pack())
    assert back.value == value


def test_integer_overflow():
    dp = produce("7.001")
    dp.value = 70000
    with pytest.raises(DatapointError):
        dp.pack()


def test_float32_round_trip():
    dp = produce("14.1200")
    dp.value = 12.5
    back = produce("14.1200")
    back.unpack(dp.pack())
    assert back.value == 12.5
    assert back.unit() == "m³/h"


def test_unpack_wrong_length():
    with pytest.raises(DatapointError):
        produce("9.001").unpack(b"\x00\x01")


def test_unknown_type():
    with pytest.raises(DatapointError):
        produce("999.999")


def test_time_of_day_round_trip_and_text():
    dp = produce("10.001")
    dp.weekday, dp.hour, dp.minutes, dp.seconds = 1, 12, 30, 15
    back = produce("10.001")
    back.unpack(dp.pack())
    assert (back.weekday, back.hour, back.minutes, back.seconds) == (1, 12, 30, 15)
    assert str(back) == "Monday 12:30:15"


def test_date_round_trip():
    dp = produce("11.001")
    dp.year, dp.month, dp.day = 1995, 6, 17
    back = produce("11.001")
    back.unpack(dp.pack())
    assert str(back) == "1995-06-17"


def test_fixed_string_round_trip_and_limit():
    dp = produce("16.000")
    dp.value = "hello"
    assert len(dp.pack()) == 15
    back = produce("16.000")
    back.unpack(dp.pack())
    assert back.value == "hello"
    dp.value = "x" * 15
    with pytest.raises(DatapointError):
        dp.pack()


def test_variable_string_round_trip():
    dp = produce("28.001")
    dp.value = "grüß"
    back = produce("28.001")
    back.unpack(dp.pack())
    assert back.value == "grüß"


def test_rgb_text():
    dp = produce("232.600")
    dp.red, dp.green, dp.blue = 255, 0, 16
    back = produce("232.600")
    back.unpack(dp.pack())
    assert str(back) == "#FF0010"


def test_xyy_round_trip():
    dp = produce("242.600")
    dp.x, dp.y, dp.y_brightness, dp.color_valid, dp.brightness_valid = 1000, 2000, 50, True, False
    back = produce("242.600")
    back.unpack(dp.pack())
    assert str(back) == "x: 1000 y: 2000 Y: 50 ColorValid: true, BrightnessValid: false"


def test_rgbw_round_trip():
    dp = produce("251.600")
    dp.red, dp.green, dp.blue, dp.white = 1, 2, 3, 4
    dp.red_valid, dp.white_valid = True, True
    back = produce("251.600")
    back.unpack(dp.pack())
    assert (back.red, back.green, back.blue, back.white) == (1, 2, 3, 4)
    assert (back.red_valid, back.green_valid, back.blue_valid, back.white_valid) == (True, False, False, True)


def test_enum_text():
    dp = produce("20.102")
    dp.unpack(b"\x00\x01")
    assert str(dp) == "Comfort"


def test_string_without_suffix_removes_unit():
    dp = produce("9.001")
    dp.value = 21.0
    text = string_without_suffix(dp)
    assert f"{text} {dp.unit()}" == str(dp)
    assert not text.endswith(dp.unit())


def test_string_without_suffix_no_unit():
    dp = produce("1.001")
    assert string_without_suffix(dp) == str(dp)