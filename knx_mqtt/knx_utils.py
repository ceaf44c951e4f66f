"""Conversion between text group values and packed datapoint data."""

from __future__ import annotations

import math
import re
import struct
from collections.abc import Callable
from typing import Any

from knx_mqtt.dpt import (
    WEEKDAYS,
    BoolDatapoint,
    Datapoint,
    DatapointError,
    EnumDatapoint,
    Float16Datapoint,
    NumberDatapoint,
    produce,
    string_without_suffix,
)


class PackError(ValueError):
    """A text value could not be packed for its datapoint type."""


_TIME_OF_DAY = re.compile(
    r"(Monday|Tuesday|Wednesday|Thursday|Friday|Saturday|Sunday)?\s*(\d{2}):(\d{2}):(\d{2})",
    re.ASCII,
)
_DATE = re.compile(r"(\d{4})-(\d{2})-(\d{2})", re.ASCII)
_RGB = re.compile(r"#([A-Fa-f0-9]{2})([A-Fa-f0-9]{2})([A-Fa-f0-9]{2})")
_XYY = re.compile(
    r"x:\s*(\d+)\s*y:\s*(\d+)\s*Y:\s*(\d+)\s*ColorValid:\s*(true|false),"
    r"\s*BrightnessValid:\s*(true|false)",
    re.ASCII,
)
_RGBW = re.compile(
    r"Red:\s*(\d+)\s*Green:\s*(\d+)\s*Blue:\s*(\d+)\s*White:\s*(\d+)\s*"
    r"RedValid:\s*(true|false),\s*GreenValid:\s*(true|false),\s*"
    r"BlueValid:\s*(true|false),\s*WhiteValid:\s*(true|false)",
    re.ASCII,
)

_WEEKDAY_NUMBERS = {name: number for number, name in enumerate(WEEKDAYS, start=1)}

_TRUE_TEXTS = frozenset({"1", "t", "T", "TRUE", "true", "True"})
_FALSE_TEXTS = frozenset({"0", "f", "F", "FALSE", "false", "False"})
_UNSIGNED = re.compile(r"[0-9]+")
_SIGNED = re.compile(r"[+-]?[0-9]+")
_HEX_FLOAT = re.compile(r"[+-]?0[xX]")


def _parse_bool(text: str) -> bool:
    if text in _TRUE_TEXTS:
        return True
    if text in _FALSE_TEXTS:
        return False
    raise ValueError(text)


def _parse_uint(text: str, bits: int) -> int:
    if not _UNSIGNED.fullmatch(text):
        raise ValueError(text)
    number = int(text)
    if number >= 1 << bits:
        raise ValueError(text)
    return number


def _parse_int(text: str, bits: int) -> int:
    if not _SIGNED.fullmatch(text):
        raise ValueError(text)
    number = int(text)
    limit = 1 << (bits - 1)
    if not -limit <= number < limit:
        raise ValueError(text)
    return number


def _to_single(number: float) -> float:
    return struct.unpack(">f", struct.pack(">f", number))[0]


def _parse_float32(text: str) -> float:
    if not text or "_" in text or text != text.strip():
        raise ValueError(text)
    number = float.fromhex(text) if _HEX_FLOAT.match(text) else float(text)
    if math.isinf(number) and "inf" not in text.lower():
        raise ValueError(text)
    return _to_single(number)


_BOOL_TYPES = frozenset(f"1.{n:03d}" for n in (*range(1, 20), 21, 22, 23, 24, 100))
_FLOAT32_TYPES = frozenset(
    [
        "5.001",
        "5.003",
        *(f"9.{n:03d}" for n in (*range(1, 9), 10, 11, *range(20, 30))),
        *(f"14.{n:03d}" for n in range(80)),
        "14.1200",
    ]
)
_UINT8_TYPES = frozenset({"5.004", "5.005", "17.001", "18.001", "20.102", "20.105"})
_INT8_TYPES = frozenset({"6.010"})
_UINT16_TYPES = frozenset(f"7.{n:03d}" for n in (1, 2, 3, 4, 5, 6, 7, 10, 11, 12, 13, 600))
_INT16_TYPES = frozenset(f"8.{n:03d}" for n in (1, 2, 3, 4, 5, 6, 7, 10, 11))
_UINT32_TYPES = frozenset({"12.001"})
_INT32_TYPES = frozenset(f"13.{n:03d}" for n in (1, 2, 10, 11, 12, 13, 14, 15, 16, 100))

_SCALARS: tuple[tuple[frozenset[str], Callable[[str], Any], str], ...] = (
    (_BOOL_TYPES, _parse_bool, "boolean"),
    (_FLOAT32_TYPES, _parse_float32, "float32"),
    (_UINT8_TYPES, lambda text: _parse_uint(text, 8), "uint8"),
    (_INT8_TYPES, lambda text: _parse_int(text, 8), "int8"),
    (_UINT16_TYPES, lambda text: _parse_uint(text, 16), "uint16"),
    (_INT16_TYPES, lambda text: _parse_int(text, 16), "int16"),
    (_UINT32_TYPES, lambda text: _parse_uint(text, 32), "uint32"),
    (_INT32_TYPES, lambda text: _parse_int(text, 32), "int32"),
)


def _match(pattern: re.Pattern[str], text: str, what: str) -> tuple[str, ...]:
    match = pattern.fullmatch(text)
    if match is None:
        raise PackError(f"could not convert to {what}: {text}")
    return match.groups()


def _time_of_day(text: str) -> Datapoint:
    day, hour, minutes, seconds = _match(_TIME_OF_DAY, text, "time of day")
    datapoint = produce("10.001")
    datapoint.weekday = _WEEKDAY_NUMBERS.get(day, 0) if day else 0
    datapoint.hour = int(hour)
    datapoint.minutes = int(minutes)
    datapoint.seconds = int(seconds)
    return datapoint


def _date(text: str) -> Datapoint:
    year, month, day = _match(_DATE, text, "date")
    datapoint = produce("11.001")
    datapoint.year = int(year)
    datapoint.month = int(month)
    datapoint.day = int(day)
    return datapoint


def _text(name: str) -> Callable[[str], Datapoint]:
    def build(text: str) -> Datapoint:
        datapoint = produce(name)
        datapoint.value = text
        return datapoint

    return build


def _rgb(text: str) -> Datapoint:
    red, green, blue = _match(_RGB, text, "RGB colour")
    datapoint = produce("232.600")
    datapoint.red, datapoint.green, datapoint.blue = (int(part, 16) for part in (red, green, blue))
    return datapoint


def _xyy(text: str) -> Datapoint:
    x, y, brightness, color_valid, brightness_valid = _match(_XYY, text, "xyY colour")
    datapoint = produce("242.600")
    try:
        datapoint.x = _parse_uint(x, 16)
        datapoint.y = _parse_uint(y, 16)
        datapoint.y_brightness = _parse_uint(brightness, 8)
    except ValueError:
        raise PackError(f"could not convert to xyY colour: {text}") from None
    datapoint.color_valid = color_valid == "true"
    datapoint.brightness_valid = brightness_valid == "true"
    return datapoint


def _rgbw(text: str) -> Datapoint:
    *colours, red_valid, green_valid, blue_valid, white_valid = _match(_RGBW, text, "RGBW colour")
    datapoint = produce("251.600")
    try:
        datapoint.red, datapoint.green, datapoint.blue, datapoint.white = (
            _parse_uint(colour, 8) for colour in colours
        )
    except ValueError:
        raise PackError(f"could not convert to RGBW colour: {text}") from None
    datapoint.red_valid = red_valid == "true"
    datapoint.green_valid = green_valid == "true"
    datapoint.blue_valid = blue_valid == "true"
    datapoint.white_valid = white_valid == "true"
    return datapoint


_TEXT_BUILDERS: dict[str, Callable[[str], Datapoint]] = {
    "10.001": _time_of_day,
    "11.001": _date,
    "16.000": _text("16.000"),
    "16.001": _text("16.001"),
    "28.001": _text("28.001"),
    "232.600": _rgb,
    "242.600": _xyy,
    "251.600": _rgbw,
}


def _pack(datapoint: Datapoint) -> bytes:
    try:
        return datapoint.pack()
    except DatapointError as exc:
        raise PackError(f"could not pack {datapoint.name}: {exc}") from exc


def pack_string(datatype: str, value: str) -> bytes:
    """Pack a text value as group telegram data for the named datapoint type."""
    for types, parse, kind in _SCALARS:
        if datatype in types:
            try:
                parsed = parse(value)
            except (ValueError, OverflowError):
                raise PackError(f"could not convert to {kind}: {value}") from None
            datapoint = produce(datatype)
            datapoint.value = parsed
            return _pack(datapoint)
    builder = _TEXT_BUILDERS.get(datatype)
    if builder is None:
        raise PackError(f"unsupported datatype: {datatype}")
    return _pack(builder(value))


def _float32(value: float) -> float:
    """The float whose shortest text matches the single-precision value."""
    try:
        single = _to_single(value)
    except OverflowError:
        return value
    if not math.isfinite(single):
        return single
    for precision in range(9):
        text = f"{single:.{precision}e}"
        try:
            if _to_single(float(text)) == single:
                return float(text)
        except OverflowError:
            continue
    return single


def _float_value(dp: Any) -> float | None:
    if isinstance(dp, Float16Datapoint) or (isinstance(dp, NumberDatapoint) and dp.is_float):
        return _float32(float(dp.value))
    return None


def _int_value(dp: Any) -> int | None:
    if isinstance(dp, EnumDatapoint) or (isinstance(dp, NumberDatapoint) and not dp.is_float):
        return int(dp.value)
    return None


_INTEGER_MAIN_TYPES = frozenset({"6", "7", "12", "13", "17", "18", "20"})
_FLOAT_MAIN_TYPES = frozenset({"9", "14"})
_FLOAT_TYPES = frozenset({"5.001", "5.003", "8.003", "8.004", "8.010"})
_INTEGER_TYPES = frozenset({"5.004", "5.005", "8.001", "8.002", "8.005", "8.006", "8.007", "8.011"})


def extract_datapoint_value(dp: Any, dpt_type: str) -> Any:
    """The datapoint's value as a bool, int or float, or its text when it has no plain value."""
    main_type = dpt_type.split(".", 1)[0]
    if main_type == "1" and isinstance(dp, BoolDatapoint):
        return bool(dp.value)
    if main_type in _FLOAT_MAIN_TYPES or dpt_type in _FLOAT_TYPES:
        number = _float_value(dp)
        if number is not None:
            return number
    if main_type in _INTEGER_MAIN_TYPES or dpt_type in _INTEGER_TYPES:
        integer = _int_value(dp)
        if integer is not None:
            return integer
    return string_without_suffix(dp)