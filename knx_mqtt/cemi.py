"""KNX group addresses, group events and cEMI L_Data frame encoding."""

from __future__ import annotations

import re
from dataclasses import dataclass
from enum import Enum

_GAD_PATTERN = re.compile(r"\d+/\d+/\d+")
_THREE_LEVEL = re.compile(r"(\d+)/(\d+)/(\d+)")
_TWO_LEVEL = re.compile(r"(\d+)/(\d+)")
_FLAT = re.compile(r"\d+")

L_DATA_REQ = 0x11
L_DATA_CON = 0x2E
L_DATA_IND = 0x29
_ACCEPTED_CODES = frozenset({L_DATA_REQ, L_DATA_CON, L_DATA_IND})

# Standard frame, no repetition, system broadcast off, low priority.
_CONTROL1 = 0xBC
# Group destination, hop count 6.
_CONTROL2 = 0xE0
_GROUP_DESTINATION = 0x80

_MAX_SMALL_VALUE = 0x3F


def is_regular_group_address(address: str) -> bool:
    """Tell whether the text contains a three-level group address."""
    return _GAD_PATTERN.search(address) is not None


@dataclass(frozen=True, order=True)
class GroupAddr:
    """A 16-bit KNX group address."""

    value: int

    def __post_init__(self) -> None:
        if not 0 <= self.value <= 0xFFFF:
            raise ValueError(f"group address out of range: {self.value}")

    @classmethod
    def parse(cls, text: str) -> GroupAddr:
        """Parse a three-level, two-level or flat group address."""
        text = text.strip()
        if match := _THREE_LEVEL.fullmatch(text):
            main, middle, sub = (int(part) for part in match.groups())
            if main > 0x1F or middle > 0x07 or sub > 0xFF:
                raise ValueError(f"invalid group address: {text!r}")
            return cls((main << 11) | (middle << 8) | sub)
        if match := _TWO_LEVEL.fullmatch(text):
            main, sub = (int(part) for part in match.groups())
            if main > 0x1F or sub > 0x7FF:
                raise ValueError(f"invalid group address: {text!r}")
            return cls((main << 11) | sub)
        if _FLAT.fullmatch(text):
            number = int(text)
            if number > 0xFFFF:
                raise ValueError(f"invalid group address: {text!r}")
            return cls(number)
        raise ValueError(f"invalid group address: {text!r}")

    @property
    def main(self) -> int:
        return self.value >> 11

    @property
    def middle(self) -> int:
        return (self.value >> 8) & 0x07

    @property
    def sub(self) -> int:
        return self.value & 0xFF

    def __str__(self) -> str:
        return f"{self.main}/{self.middle}/{self.sub}"


class GroupCommand(Enum):
    """Group value service, by its APCI code."""

    READ = 0x000
    RESPONSE = 0x040
    WRITE = 0x080


@dataclass(frozen=True)
class GroupEvent:
    """A group telegram: command, destination and application data."""

    command: GroupCommand
    destination: GroupAddr
    data: bytes = b""
    source: int = 0


def encode_cemi(event: GroupEvent) -> bytes:
    """Encode a group event as a cEMI L_Data.req frame."""
    data = b"\x00" if event.command is GroupCommand.READ else bytes(event.data) or b"\x00"
    if data[0] > _MAX_SMALL_VALUE:
        raise ValueError(f"first data byte does not fit in the APCI: {data[0]:#x}")
    apci = event.command.value
    apdu = bytes([(apci >> 8) & 0x03, (apci & 0xC0) | data[0]]) + data[1:]
    length = len(apdu) - 1
    if length > 0xFF:
        raise ValueError("group event data too long")
    source = event.source & 0xFFFF
    destination = event.destination.value
    header = bytes(
        [
            L_DATA_REQ,
            0x00,
            _CONTROL1,
            _CONTROL2,
            source >> 8,
            source & 0xFF,
            destination >> 8,
            destination & 0xFF,
            length,
        ]
    )
    return header + apdu


def decode_cemi(frame: bytes) -> GroupEvent:
    """Decode a cEMI L_Data frame that carries a group value service."""
    frame = bytes(frame)
    if len(frame) < 2:
        raise ValueError("cEMI frame too short")
    if frame[0] not in _ACCEPTED_CODES:
        raise ValueError(f"unsupported cEMI message code: {frame[0]:#04x}")
    body = frame[2 + frame[1]:]
    if len(body) < 9:
        raise ValueError("cEMI frame too short")
    control2 = body[1]
    if not control2 & _GROUP_DESTINATION:
        raise ValueError("cEMI frame is not addressed to a group")
    source = (body[2] << 8) | body[3]
    destination = GroupAddr((body[4] << 8) | body[5])
    length = body[6]
    apdu = body[7:]
    if len(apdu) != length + 1:
        raise ValueError("cEMI frame length does not match its payload")
    if apdu[0] & 0xFC:
        raise ValueError("cEMI frame does not carry group data")
    apci = ((apdu[0] & 0x03) << 8) | apdu[1]
    try:
        command = GroupCommand(apci & 0x3C0)
    except ValueError:
        raise ValueError(f"unsupported APCI: {apci:#05x}") from None
    if command is GroupCommand.READ:
        data = b""
    else:
        data = bytes([apdu[1] & _MAX_SMALL_VALUE]) + apdu[2:]
    return GroupEvent(command=command, destination=destination, data=data, source=source)