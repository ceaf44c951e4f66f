"""KNX datapoint types: packing, unpacking and text form of group values."""

from __future__ import annotations

import struct
from abc import ABC, abstractmethod
from collections.abc import Callable
from typing import Any


class DatapointError(ValueError):
    """A datapoint type is unknown or a value or frame does not fit it."""


WEEKDAYS = ("Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday", "Sunday")


class Datapoint(ABC):
    """A typed group value that can be packed to and unpacked from telegram data."""

    def __init__(self, name: str, unit: str = "") -> None:
        self.name = name
        self._unit = unit

    def unit(self) -> str:
        return self._unit

    @abstractmethod
    def pack(self) -> bytes:
        """Encode the value as group telegram data."""

    @abstractmethod
    def unpack(self, data: bytes) -> None:
        """Decode group telegram data into the value."""

    @abstractmethod
    def _text(self) -> str:
        ...

    def __str__(self) -> str:
        text = self._text()
        return f"{text} {self._unit}" if self._unit else text

    def __repr__(self) -> str:
        return f"<{type(self).__name__} {self.name} {self}>"


def _payload(data: bytes, size: int) -> bytes:
    data = bytes(data)
    if len(data) != size + 1:
        raise DatapointError(f"expected {size + 1} bytes, got {len(data)}")
    return data[1:]


def _check(value: int, low: int, high: int, what: str) -> int:
    if not low <= value <= high:
        raise DatapointError(f"{what} out of range: {value}")
    return value


class BoolDatapoint(Datapoint):
    """One-bit value carried inside the APCI byte."""

    def __init__(self, name: str, labels: tuple[str, str], value: bool = False) -> None:
        super().__init__(name)
        self.labels = labels
        self.value = value

    def pack(self) -> bytes:
        return b"\x01" if self.value else b"\x00"

    def unpack(self, data: bytes) -> None:
        data = bytes(data)
        if len(data) != 1:
            raise DatapointError(f"expected 1 byte, got {len(data)}")
        self.value = bool(data[0] & 0x01)

    def _text(self) -> str:
        return self.labels[1] if self.value else self.labels[0]


class NumberDatapoint(Datapoint):
    """Fixed-width integer or float, optionally scaled from its raw integer."""

    def __init__(self, name: str, fmt: str, unit: str = "", scale: float | None = None) -> None:
        super().__init__(name, unit)
        self._struct = struct.Struct(">" + fmt)
        self._scale = scale
        self.is_float = scale is not None or fmt == "f"
        self.value: int | float = 0.0 if self.is_float else 0

    def pack(self) -> bytes:
        if self._scale is not None:
            raw: int | float = round(self.value / self._scale)
        elif self._struct.format.endswith("f"):
            raw = float(self.value)
        else:
            raw = int(self.value)
        try:
            return b"\x00" + self._struct.pack(raw)
        except (struct.error, OverflowError) as exc:
            raise DatapointError(f"{self.name}: value out of range: {self.value}") from exc

    def unpack(self, data: bytes) -> None:
        (raw,) = self._struct.unpack(_payload(data, self._struct.size))
        self.value = raw * self._scale if self._scale is not None else raw

    def _text(self) -> str:
        return f"{self.value:.2f}" if self.is_float else str(self.value)


class Float16Datapoint(Datapoint):
    """Two-byte KNX float: 0.01 * mantissa * 2**exponent."""

    MAX = 670760.96
    MIN = -671088.64

    def __init__(self, name: str, unit: str = "") -> None:
        super().__init__(name, unit)
        self.value = 0.0
        self.is_float = True

    def pack(self) -> bytes:
        if not self.MIN <= self.value <= self.MAX:
            raise DatapointError(f"{self.name}: value out of range: {self.value}")
        mantissa = self.value * 100
        exponent = 0
        while round(mantissa) > 2047 or round(mantissa) < -2048:
            mantissa /= 2
            exponent += 1
        mantissa = max(-2048, min(2047, round(mantissa)))
        sign = 0x8000 if mantissa < 0 else 0
        raw = sign | (exponent << 11) | (mantissa & 0x7FF)
        return b"\x00" + raw.to_bytes(2, "big")

    def unpack(self, data: bytes) -> None:
        raw = int.from_bytes(_payload(data, 2), "big")
        mantissa = raw & 0x7FF
        if raw & 0x8000:
            mantissa -= 2048
        exponent = (raw >> 11) & 0x0F
        self.value = 0.01 * mantissa * (1 << exponent)

    def _text(self) -> str:
        return f"{self.value:.2f}"


class EnumDatapoint(Datapoint):
    """One-byte enumeration with labelled values."""

    def __init__(self, name: str, labels: dict[int, str]) -> None:
        super().__init__(name)
        self.labels = labels
        self.value = 0
        self.is_float = False

    def pack(self) -> bytes:
        return b"\x00" + bytes([_check(int(self.value), 0, 0xFF, "value")])

    def unpack(self, data: bytes) -> None:
        self.value = _payload(data, 1)[0]

    def _text(self) -> str:
        return self.labels.get(self.value, "reserved")


class TimeOfDay(Datapoint):
    """DPT 10.001: weekday (0 for none), hour, minutes and seconds."""

    def __init__(self, name: str) -> None:
        super().__init__(name)
        self.weekday = 0
        self.hour = 0
        self.minutes = 0
        self.seconds = 0

    def pack(self) -> bytes:
        _check(self.weekday, 0, 7, "weekday")
        _check(self.hour, 0, 23, "hour")
        _check(self.minutes, 0, 59, "minutes")
        _check(self.seconds, 0, 59, "seconds")
        return bytes([0, (self.weekday << 5) | self.hour, self.minutes, self.seconds])

    def unpack(self, data: bytes) -> None:
        first, minutes, seconds = _payload(data, 3)
        self.weekday = first >> 5
        self.hour = _check(first & 0x1F, 0, 23, "hour")
        self.minutes = _check(minutes & 0x3F, 0, 59, "minutes")
        self.seconds = _check(seconds & 0x3F, 0, 59, "seconds")

    def _text(self) -> str:
        clock = f"{self.hour:02d}:{self.minutes:02d}:{self.seconds:02d}"
        if 1 <= self.weekday <= 7:
            return f"{WEEKDAYS[self.weekday - 1]} {clock}"
        return clock


class Date(Datapoint):
    """DPT 11.001: calendar date between 1990 and 2089."""

    def __init__(self, name: str) -> None:
        super().__init__(name)
        self.year = 2000
        self.month = 1
        self.day = 1

    def pack(self) -> bytes:
        _check(self.year, 1990, 2089, "year")
        _check(self.month, 1, 12, "month")
        _check(self.day, 1, 31, "day")
        short_year = self.year - 2000 if self.year >= 2000 else self.year - 1900
        return bytes([0, self.day, self.month, short_year])

    def unpack(self, data: bytes) -> None:
        day, month, short_year = _payload(data, 3)
        self.day = _check(day & 0x1F, 1, 31, "day")
        self.month = _check(month & 0x0F, 1, 12, "month")
        short_year = _check(short_year & 0x7F, 0, 99, "year")
        self.year = 2000 + short_year if short_year < 90 else 1900 + short_year

    def _text(self) -> str:
        return f"{self.year:04d}-{self.month:02d}-{self.day:02d}"


class FixedString(Datapoint):
    """DPT 16: text of up to 14 characters, zero padded."""

    SIZE = 14

    def __init__(self, name: str, encoding: str) -> None:
        super().__init__(name)
        self._encoding = encoding
        self.value = ""

    def pack(self) -> bytes:
        try:
            raw = self.value.encode(self._encoding)
        except UnicodeEncodeError as exc:
            raise DatapointError(f"{self.name}: cannot encode {self.value!r}") from exc
        if len(raw) > self.SIZE:
            raise DatapointError(f"{self.name}: text longer than {self.SIZE} bytes")
        return b"\x00" + raw.ljust(self.SIZE, b"\x00")

    def unpack(self, data: bytes) -> None:
        raw = _payload(data, self.SIZE).split(b"\x00", 1)[0]
        try:
            self.value = raw.decode(self._encoding)
        except UnicodeDecodeError as exc:
            raise DatapointError(f"{self.name}: cannot decode text") from exc

    def _text(self) -> str:
        return self.value


class VariableString(Datapoint):
    """DPT 28.001: zero-terminated UTF-8 text."""

    def __init__(self, name: str) -> None:
        super().__init__(name)
        self.value = ""

    def pack(self) -> bytes:
        return b"\x00" + self.value.encode("utf-8") + b"\x00"

    def unpack(self, data: bytes) -> None:
        data = bytes(data)
        if len(data) < 2 or data[-1] != 0:
            raise DatapointError(f"{self.name}: text is not zero terminated")
        try:
            self.value = data[1:-1].split(b"\x00", 1)[0].decode("utf-8")
        except UnicodeDecodeError as exc:
            raise DatapointError(f"{self.name}: cannot decode text") from exc

    def _text(self) -> str:
        return self.value


class RGB(Datapoint):
    """DPT 232.600: red, green and blue bytes."""

    def __init__(self, name: str) -> None:
        super().__init__(name)
        self.red = self.green = self.blue = 0

    def pack(self) -> bytes:
        colours = [_check(c, 0, 255, "colour") for c in (self.red, self.green, self.blue)]
        return bytes([0, *colours])

    def unpack(self, data: bytes) -> None:
        self.red, self.green, self.blue = _payload(data, 3)

    def _text(self) -> str:
        return f"#{self.red:02X}{self.green:02X}{self.blue:02X}"


class XYY(Datapoint):
    """DPT 242.600: colour coordinates x, y and brightness Y with validity flags."""

    def __init__(self, name: str) -> None:
        super().__init__(name)
        self.x = 0
        self.y = 0
        self.y_brightness = 0
        self.color_valid = False
        self.brightness_valid = False

    def pack(self) -> bytes:
        _check(self.x, 0, 0xFFFF, "x")
        _check(self.y, 0, 0xFFFF, "y")
        _check(self.y_brightness, 0, 0xFF, "Y")
        valid = (int(self.color_valid) << 1) | int(self.brightness_valid)
        return b"\x00" + struct.pack(">HHBB", self.x, self.y, self.y_brightness, valid)

    def unpack(self, data: bytes) -> None:
        self.x, self.y, self.y_brightness, valid = struct.unpack(">HHBB", _payload(data, 6))
        self.color_valid = bool(valid & 0x02)
        self.brightness_valid = bool(valid & 0x01)

    def _text(self) -> str:
        return (
            f"x: {self.x} y: {self.y} Y: {self.y_brightness} "
            f"ColorValid: {str(self.color_valid).lower()}, "
            f"BrightnessValid: {str(self.brightness_valid).lower()}"
        )


class RGBW(Datapoint):
    """DPT 251.600: red, green, blue and white with validity flags."""

    def __init__(self, name: str) -> None:
        super().__init__(name)
        self.red = self.green = self.blue = self.white = 0
        self.red_valid = self.green_valid = self.blue_valid = self.white_valid = False

    def pack(self) -> bytes:
        colours = [_check(c, 0, 255, "colour") for c in (self.red, self.green, self.blue, self.white)]
        mask = (
            (int(self.red_valid) << 3)
            | (int(self.green_valid) << 2)
            | (int(self.blue_valid) << 1)
            | int(self.white_valid)
        )
        return bytes([0, *colours, 0, mask])

    def unpack(self, data: bytes) -> None:
        self.red, self.green, self.blue, self.white, _, mask = _payload(data, 6)
        self.red_valid = bool(mask & 0x08)
        self.green_valid = bool(mask & 0x04)
        self.blue_valid = bool(mask & 0x02)
        self.white_valid = bool(mask & 0x01)

    def _text(self) -> str:
        flag = lambda b: str(b).lower()  # noqa: E731
        return (
            f"Red: {self.red} Green: {self.green} Blue: {self.blue} White: {self.white} "
            f"RedValid: {flag(self.red_valid)}, GreenValid: {flag(self.green_valid)}, "
            f"BlueValid: {flag(self.blue_valid)}, WhiteValid: {flag(self.white_valid)}"
        )


_BOOL_LABELS = {
    "1.001": ("Off", "On"),
    "1.002": ("False", "True"),
    "1.003": ("Disable", "Enable"),
    "1.004": ("No ramp", "Ramp"),
    "1.005": ("No alarm", "Alarm"),
    "1.006": ("Low", "High"),
    "1.007": ("Decrease", "Increase"),
    "1.008": ("Up", "Down"),
    "1.009": ("Open", "Close"),
    "1.010": ("Stop", "Start"),
    "1.011": ("Inactive", "Active"),
    "1.012": ("Not inverted", "Inverted"),
    "1.013": ("Start/stop", "Cyclically"),
    "1.014": ("Fixed", "Calculated"),
    "1.015": ("No action", "Reset"),
    "1.016": ("No action", "Acknowledge"),
    "1.017": ("Trigger", "Trigger"),
    "1.018": ("Not occupied", "Occupied"),
    "1.019": ("Closed", "Open"),
    "1.021": ("Logical OR", "Logical AND"),
    "1.022": ("Scene A", "Scene B"),
    "1.023": ("Move up/down", "Move up/down + step-stop"),
    "1.024": ("Day", "Night"),
    "1.100": ("Cooling", "Heating"),
}

_FLOAT16_UNITS = {
    "9.001": "°C", "9.002": "K", "9.003": "K/h", "9.004": "lux", "9.005": "m/s",
    "9.006": "Pa", "9.007": "%", "9.008": "ppm", "9.010": "s", "9.011": "ms",
    "9.020": "mV", "9.021": "mA", "9.022": "W/m²", "9.023": "K/%", "9.024": "kW",
    "9.025": "l/h", "9.026": "l/m²", "9.027": "°F", "9.028": "km/h", "9.029": "g/m³",
}

_FLOAT32_UNITS = [
    "m/s²", "rad/s²", "J/mol", "1/s", "mol", "", "rad", "°", "J s", "rad/s",
    "m²", "F", "C/m²", "C/m³", "m³/kg", "Ω", "S/m", "kg/m³", "C", "A",
    "A/m²", "C m", "C/m²", "V/m", "C", "C/m²", "C/m²", "V", "V", "A m²",
    "V", "J", "N", "Hz", "rad/s", "J/K", "W", "J", "Ω", "m",
    "J", "cd/m²", "lm", "cd", "A/m", "Wb", "T", "A m²", "T", "A/m",
    "A", "kg", "kg/s", "N/s", "rad", "°", "W", "", "Pa", "Ω",
    "Ω", "Ω m", "H", "sr", "W/m²", "m/s", "Pa", "N/m", "°C", "K",
    "K", "J/K", "W/m K", "V/K", "s", "N m", "m³", "m³/s", "N", "J",
]

# name: (struct format, unit, scale)
_NUMBERS: dict[str, tuple[str, str, float | None]] = {
    "5.001": ("B", "%", 100 / 255),
    "5.003": ("B", "°", 360 / 255),
    "5.004": ("B", "%", None),
    "5.005": ("B", "", None),
    "6.010": ("b", "pulses", None),
    "7.001": ("H", "pulses", None), "7.002": ("H", "ms", None), "7.003": ("H", "10 ms", None),
    "7.004": ("H", "100 ms", None), "7.005": ("H", "s", None), "7.006": ("H", "min", None),
    "7.007": ("H", "h", None), "7.010": ("H", "", None), "7.011": ("H", "mm", None),
    "7.012": ("H", "mA", None), "7.013": ("H", "lux", None), "7.600": ("H", "K", None),
    "8.001": ("h", "pulses", None), "8.002": ("h", "ms", None), "8.003": ("h", "ms", 10.0),
    "8.004": ("h", "ms", 100.0), "8.005": ("h", "s", None), "8.006": ("h", "min", None),
    "8.007": ("h", "h", None), "8.010": ("h", "%", 0.01), "8.011": ("h", "°", None),
    "12.001": ("I", "pulses", None),
    "13.001": ("i", "pulses", None), "13.002": ("i", "m³/h", None), "13.010": ("i", "Wh", None),
    "13.011": ("i", "VAh", None), "13.012": ("i", "VARh", None), "13.013": ("i", "kWh", None),
    "13.014": ("i", "kVAh", None), "13.015": ("i", "kVARh", None), "13.016": ("i", "MWh", None),
    "13.100": ("i", "s", None),
    "14.1200": ("f", "m³/h", None),
    "17.001": ("B", "", None),
    "18.001": ("B", "", None),
}
_NUMBERS.update({f"14.{index:03d}": ("f", unit, None) for index, unit in enumerate(_FLOAT32_UNITS)})

_HVAC_MODES = {0: "Auto", 1: "Comfort", 2: "Standby", 3: "Economy", 4: "Building Protection"}
_HVAC_CONTROL_MODES = dict(
    enumerate(
        [
            "Auto", "Heat", "Morning Warmup", "Cool", "Night Purge", "Precool", "Off", "Test",
            "Emergency Heat", "Fan only", "Free Cool", "Ice", "Max Heat", "Economic Heat/Cool",
            "Dehumidification", "Calibration", "Emergency Cool", "Emergency Steam",
        ]
    )
)
_HVAC_CONTROL_MODES[20] = "NoDem"


def _factories() -> dict[str, Callable[[], Datapoint]]:
    table: dict[str, Callable[[], Datapoint]] = {}
    for name, labels in _BOOL_LABELS.items():
        table[name] = lambda name=name, labels=labels: BoolDatapoint(name, labels)
    for name, unit in _FLOAT16_UNITS.items():
        table[name] = lambda name=name, unit=unit: Float16Datapoint(name, unit)
    for name, (fmt, unit, scale) in _NUMBERS.items():
        table[name] = lambda name=name, fmt=fmt, unit=unit, scale=scale: NumberDatapoint(
            name, fmt, unit, scale
        )
    table["10.001"] = lambda: TimeOfDay("10.001")
    table["11.001"] = lambda: Date("11.001")
    table["16.000"] = lambda: FixedString("16.000", "ascii")
    table["16.001"] = lambda: FixedString("16.001", "latin-1")
    table["20.102"] = lambda: EnumDatapoint("20.102", _HVAC_MODES)
    table["20.105"] = lambda: EnumDatapoint("20.105", _HVAC_CONTROL_MODES)
    table["28.001"] = lambda: VariableString("28.001")
    table["232.600"] = lambda: RGB("232.600")
    table["242.600"] = lambda: XYY("242.600")
    table["251.600"] = lambda: RGBW("251.600")
    return table


_FACTORIES = _factories()


def produce(name: str) -> Datapoint:
    """Create a fresh datapoint of the named type, such as "9.001"."""
    try:
        return _FACTORIES[name]()
    except KeyError:
        raise DatapointError(f"unknown datapoint type: {name!r}") from None


def string_without_suffix(datapoint: Any) -> str:
    """The datapoint's text with its unit removed."""
    text = str(datapoint)
    unit = datapoint.unit()
    if unit and text.endswith(unit):
        text = text[: -len(unit)]
    return text.strip(" ")