"""Messages passed between the KNX and MQTT sides of the bridge."""

from __future__ import annotations

import base64
import math
from contextlib import suppress
from dataclasses import dataclass
from decimal import Decimal
from typing import Any, Callable

from knx_mqtt.cemi import GroupEvent
from knx_mqtt.dpt import Datapoint, DatapointError, produce, string_without_suffix
from knx_mqtt.knx_utils import extract_datapoint_value
from knx_mqtt.models import GroupAddress, IncludedJsonFields, MessageType, OutgoingMqttJson

UNRESOLVED = "<unresolved>"
UNRESOLVED_VALUE = "<unresolved value>"


def _go_float(value: float) -> str:
    """Shortest text of a float, switching to exponent form as the bridge always has."""
    if math.isnan(value):
        return "NaN"
    if math.isinf(value):
        return "+Inf" if value > 0 else "-Inf"
    sign = "-" if math.copysign(1.0, value) < 0 else ""
    if value == 0:
        return sign + "0"
    _, digit_tuple, exponent = Decimal(repr(abs(value))).as_tuple()
    digits = "".join(map(str, digit_tuple)).rstrip("0")
    exponent += len(digit_tuple) - len(digits)
    point = len(digits) + exponent
    if point - 1 < -4 or point - 1 >= 6:
        mantissa = digits[0] + ("." + digits[1:] if len(digits) > 1 else "")
        return f"{sign}{mantissa}e{point - 1:+03d}"
    if point <= 0:
        return f"{sign}0.{'0' * -point}{digits}"
    if point >= len(digits):
        return sign + digits + "0" * (point - len(digits))
    return f"{sign}{digits[:point]}.{digits[point:]}"


def _value_text(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float):
        return _go_float(value)
    return str(value)


def _json_value(datapoint: Datapoint, dpt_name: str, emit_value_as_string: bool) -> Any:
    if emit_value_as_string:
        return string_without_suffix(datapoint)
    value = extract_datapoint_value(datapoint, dpt_name)
    if isinstance(value, float) and value.is_integer() and abs(value) < 1e21:
        return int(value)
    return value


def _build_payload(
    datapoint: Datapoint,
    dpt_name: str,
    emit_value_as_string: bool,
    message_type: str,
    make_json: Callable[[], OutgoingMqttJson],
) -> str | bytes | None:
    if message_type == MessageType.JSON:
        return make_json().to_json()
    if message_type == MessageType.VALUE:
        if emit_value_as_string:
            return string_without_suffix(datapoint)
        return _value_text(extract_datapoint_value(datapoint, dpt_name))
    if message_type == MessageType.VALUE_WITH_UNIT:
        return str(datapoint)
    if message_type == MessageType.BYTES:
        return datapoint.pack()
    return None


@dataclass(frozen=True)
class _Resolved:
    datapoint: Datapoint
    group_address: GroupAddress


class KNXMessage:
    """A telegram received from KNX, optionally resolved against a known group address."""

    def __init__(
        self,
        event: GroupEvent,
        datapoint: Datapoint | None = None,
        group_address: GroupAddress | None = None,
    ) -> None:
        if (datapoint is None) != (group_address is None):
            raise ValueError("a resolved message needs both a datapoint and a group address")
        self.event = event
        self._resolved = (
            None if datapoint is None else _Resolved(datapoint, group_address)  # type: ignore[arg-type]
        )

    def __repr__(self) -> str:
        return f"<KNXMessage {self.destination()} {self}>"

    def destination(self) -> str:
        return str(self.event.destination)

    def data(self) -> bytes:
        return self.event.data

    def is_resolved(self) -> bool:
        return self._resolved is not None

    def name(self) -> str:
        return UNRESOLVED if self._resolved is None else self._resolved.group_address.name

    def address(self) -> str:
        return UNRESOLVED if self._resolved is None else self._resolved.group_address.address

    def full_name(self) -> str:
        return UNRESOLVED if self._resolved is None else self._resolved.group_address.full_name

    def __str__(self) -> str:
        return UNRESOLVED_VALUE if self._resolved is None else str(self._resolved.datapoint)

    def datapoint_name(self) -> str:
        return UNRESOLVED if self._resolved is None else self._resolved.group_address.datapoint

    def to_payload(
        self, emit_value_as_string: bool, message_type: str, json_fields: IncludedJsonFields
    ) -> str | bytes | None:
        """Render the resolved value as an MQTT payload of the given type."""
        if self._resolved is None:
            raise ValueError(f"message for {self.destination()} is not resolved")
        datapoint = self._resolved.datapoint
        group_address = self._resolved.group_address

        def make_json() -> OutgoingMqttJson:
            outgoing = OutgoingMqttJson()
            if json_fields.include_address:
                outgoing.address = group_address.address
            if json_fields.include_name:
                outgoing.name = group_address.name
            if json_fields.include_bytes:
                outgoing.bytes = base64.b64encode(datapoint.pack()).decode("ascii")
            if json_fields.include_dpt:
                outgoing.dpt = group_address.datapoint
            if json_fields.include_value:
                outgoing.value = _json_value(datapoint, group_address.datapoint, emit_value_as_string)
            if json_fields.include_unit:
                outgoing.unit = datapoint.unit()
            return outgoing

        return _build_payload(
            datapoint, group_address.datapoint, emit_value_as_string, message_type, make_json
        )

    def to_payload_for(
        self,
        group_address: GroupAddress,
        emit_value_as_string: bool,
        message_type: str,
        json_fields: IncludedJsonFields,
        address_name: str | None,
    ) -> tuple[str | bytes | None, str]:
        """Decode the telegram data as the given group address; return payload and value text."""
        try:
            datapoint = produce(group_address.datapoint)
        except DatapointError:
            raise ValueError(f"could not create datapoint {group_address.datapoint}") from None
        with suppress(DatapointError):
            datapoint.unpack(self.data())

        def make_json() -> OutgoingMqttJson:
            outgoing = OutgoingMqttJson()
            if json_fields.include_bytes:
                outgoing.bytes = base64.b64encode(datapoint.pack()).decode("ascii")
            if json_fields.include_name:
                outgoing.name = address_name
            if json_fields.include_value:
                outgoing.value = _json_value(datapoint, group_address.datapoint, emit_value_as_string)
            if json_fields.include_unit:
                outgoing.unit = datapoint.unit()
            return outgoing

        payload = _build_payload(
            datapoint, group_address.datapoint, emit_value_as_string, message_type, make_json
        )
        return payload, str(datapoint)


@dataclass(frozen=True)
class MQTTMessage:
    """A message received from the MQTT broker."""

    topic: str
    payload: bytes = b""