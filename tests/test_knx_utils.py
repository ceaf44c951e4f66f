import math

import pytest

from knx_mqtt.dpt import produce, string_without_suffix
from knx_mqtt.knx_utils import PackError, extract_datapoint_value, pack_string


def _unpacked(datatype, text):
    datapoint = produce(datatype)
    datapoint.unpack(pack_string(datatype, text))
    return datapoint


def test_bool_packs_to_single_bit():
    assert pack_string("1.001", "true") == b"\x01"
    assert pack_string("1.001", "0") == b"\x00"


@pytest.mark.parametrize("text", ["1", "t", "T", "TRUE", "True"])
def test_bool_true_spellings(text):
    assert pack_string("1.009", text) == pack_string("1.009", "true")


def test_bool_invalid():
    with pytest.raises(PackError, match="could not convert to boolean"):
        pack_string("1.001", "yes")


def test_unsupported_datatype():
    with pytest.raises(PackError, match="unsupported datatype: 99.999"):
        pack_string("99.999", "1")


@pytest.mark.parametrize(
    "datatype, text",
    [("9.001", "21.5"), ("9.001", "-5"), ("14.056", "1234.5"), ("14.1200", "0.25"), ("5.001", "50")],
)
def test_float_round_trip(datatype, text):
    datapoint = _unpacked(datatype, text)
    assert math.isclose(datapoint.value, float(text), abs_tol=0.5)


@pytest.mark.parametrize("text", [" 1.0", "1_0", "", "abc", "1e39"])
def test_float_invalid(text):
    with pytest.raises(PackError, match="float32"):
        pack_string("9.001", text)


@pytest.mark.parametrize(
    "datatype, text",
    [
        ("5.004", "255"),
        ("6.010", "-128"),
        ("7.001", "65535"),
        ("8.001", "+5"),
        ("8.001", "-32768"),
        ("12.001", "4294967295"),
        ("13.001", "-2147483648"),
        ("17.001", "63"),
        ("20.102", "3"),
    ],
)
def test_integer_round_trip(datatype, text):
    assert _unpacked(datatype, text).value == int(text)


@pytest.mark.parametrize(
    "datatype, text, kind",
    [
        ("5.004", "256", "uint8"),
        ("6.010", "-129", "int8"),
        ("7.001", "+5", "uint16"),
        ("7.001", "65536", "uint16"),
        ("8.001", "32768", "int16"),
        ("12.001", "-1", "uint32"),
        ("13.001", "2147483648", "int32"),
    ],
)
def test_integer_out_of_range(datatype, text, kind):
    with pytest.raises(PackError, match=f"could not convert to {kind}"):
        pack_string(datatype, text)


@pytest.mark.parametrize("text", ["Tuesday 13:45:10", "07:08:09", "Sunday 23:59:59"])
def test_time_of_day_round_trip(text):
    assert str(_unpacked("10.001", text)) == text


@pytest.mark.parametrize("text", ["25:00", "noon", "Funday 10:00:00"])
def test_time_of_day_invalid_text(text):
    with pytest.raises(PackError):
        pack_string("10.001", text)


def test_time_of_day_hour_out_of_range():
    with pytest.raises(PackError):
        pack_string("10.001", "25:00:00")


def test_date_round_trip():
    assert str(_unpacked("11.001", "2024-02-29")) == "2024-02-29"


def test_date_invalid():
    with pytest.raises(PackError):
        pack_string("11.001", "2024/02/29")


def test_rgb_round_trip():
    assert str(_unpacked("232.600", "#12AB34")) == "#12AB34"


def test_rgb_invalid():
    with pytest.raises(PackError):
        pack_string("232.600", "#12AB3")


def test_xyy_round_trip():
    text = "x: 1000 y: 2000 Y: 200 ColorValid: true, BrightnessValid: false"
    assert str(_unpacked("242.600", text)) == text


def test_xyy_overflow():
    with pytest.raises(PackError):
        pack_string("242.600", "x: 70000 y: 2000 Y: 200 ColorValid: true, BrightnessValid: false")


def test_rgbw_round_trip():
    text = (
        "Red: 1 Green: 2 Blue: 3 White: 4 RedValid: true, GreenValid: false, "
        "BlueValid: true, WhiteValid: false"
    )
    assert str(_unpacked("251.600", text)) == text


def test_rgbw_overflow():
    with pytest.raises(PackError):
        pack_string(
            "251.600",
            "Red: 300 Green: 2 Blue: 3 White: 4 RedValid: true, GreenValid: false, "
            "BlueValid: true, WhiteValid: false",
        )


@pytest.mark.parametrize("datatype, text", [("16.000", "Hello"), ("16.001", "Grüße"), ("28.001", "héllo wörld")])
def test_strings_round_trip(datatype, text):
    assert _unpacked(datatype, text).value == text


def test_fixed_string_too_long():
    with pytest.raises(PackError):
        pack_string("16.000", "ABCDEFGHIJKLMNO")


def test_extract_bool():
    assert extract_datapoint_value(_unpacked("1.001", "true"), "1.001") is True


def test_extract_integers():
    assert extract_datapoint_value(_unpacked("7.001", "1234"), "7.001") == 1234
    assert extract_datapoint_value(_unpacked("8.001", "-7"), "8.001") == -7
    assert extract_datapoint_value(_unpacked("5.004", "42"), "5.004") == 42
    assert extract_datapoint_value(_unpacked("20.102", "3"), "20.102") == 3


def test_extract_float16_is_single_precision():
    assert extract_datapoint_value(_unpacked("9.001", "21.5"), "9.001") == 21.5


def test_extract_float32_uses_shortest_text():
    datapoint = _unpacked("14.000", "0.1")
    assert datapoint.value != 0.1
    assert extract_datapoint_value(datapoint, "14.000") == 0.1


def test_extract_scaled_values():
    assert extract_datapoint_value(_unpacked("5.001", "100"), "5.001") == 100.0
    assert extract_datapoint_value(_unpacked("8.010", "12"), "8.010") == 12.0


def test_extract_falls_back_to_text():
    datapoint = _unpacked("10.001", "Monday 10:11:12")
    assert extract_datapoint_value(datapoint, "10.001") == "Monday 10:11:12"


def test_extract_kind_mismatch_falls_back_to_text():
    datapoint = _unpacked("7.001", "5")
    assert extract_datapoint_value(datapoint, "1.001") == string_without_suffix(datapoint)