"""Configuration, group address registry and outgoing JSON payload."""

from __future__ import annotations

import json
from collections.abc import Mapping
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from knx_mqtt.cemi import is_regular_group_address


class MessageType(str, Enum):
    """Shapes of the payload published to MQTT."""

    VALUE = "value"
    VALUE_WITH_UNIT = "value-with-unit"
    BYTES = "bytes"
    JSON = "json"


@dataclass
class IncludedJsonFields:
    include_address: bool = False
    include_name: bool = False
    include_bytes: bool = False
    include_dpt: bool = False
    include_value: bool = False
    include_unit: bool = False


@dataclass
class OutgoingMqttMessage:
    type: str = ""
    emit_using_address: bool = False
    emit_using_name: bool = False
    emit_value_as_string: bool = False
    included_json_fields: IncludedJsonFields = field(default_factory=IncludedJsonFields)


@dataclass
class KNXConfig:
    ets_export: str = ""
    endpoint: str = ""
    interface: str = ""
    tunnel_mode: bool = False
    ignore_unknown_group_addresses: bool = False
    enable_logs: bool = False


@dataclass
class MQTTConfig:
    url: str = ""
    client_id: str | None = None
    username: str | None = None
    password: str | None = None
    tls_key: str | None = None
    tls_cert: str | None = None
    tls_ca: str | None = None
    topic_prefix: str = ""
    qos: int = 0
    retain: bool = False


def _section(data: Mapping, key: str) -> Mapping:
    value = data.get(key)
    if value is None:
        return {}
    if not isinstance(value, Mapping):
        raise ValueError(f"{key}: expected a mapping")
    return value


def _optional_str(data: Mapping, key: str) -> str | None:
    value = data.get(key)
    if value is None:
        return None
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (str, int, float)):
        return str(value)
    raise ValueError(f"{key}: expected a string")


def _str(data: Mapping, key: str) -> str:
    value = _optional_str(data, key)
    return "" if value is None else value


def _bool(data: Mapping, key: str) -> bool:
    value = data.get(key)
    if value is None:
        return False
    if not isinstance(value, bool):
        raise ValueError(f"{key}: expected a boolean")
    return value


def _byte(data: Mapping, key: str) -> int:
    value = data.get(key)
    if value is None:
        return 0
    if isinstance(value, bool) or not isinstance(value, int) or not 0 <= value <= 0xFF:
        raise ValueError(f"{key}: expected an integer between 0 and 255")
    return value


def _included_json_fields(data: Mapping) -> IncludedJsonFields:
    return IncludedJsonFields(
        include_address=_bool(data, "address"),
        include_name=_bool(data, "name"),
        include_bytes=_bool(data, "bytes"),
        include_dpt=_bool(data, "dpt"),
        include_value=_bool(data, "value"),
        include_unit=_bool(data, "unit"),
    )


def _outgoing(data: Mapping) -> OutgoingMqttMessage:
    return OutgoingMqttMessage(
        type=_str(data, "type"),
        emit_using_address=_bool(data, "emitUsingAddress"),
        emit_using_name=_bool(data, "emitUsingName"),
        emit_value_as_string=_bool(data, "emitValueAsString"),
        included_json_fields=_included_json_fields(_section(data, "includedJsonFields")),
    )


def _knx(data: Mapping) -> KNXConfig:
    return KNXConfig(
        ets_export=_str(data, "etsExport"),
        endpoint=_str(data, "endpoint"),
        interface=_str(data, "interface"),
        tunnel_mode=_bool(data, "tunnelMode"),
        ignore_unknown_group_addresses=_bool(data, "ignoreUnknownGroupAddresses"),
        enable_logs=_bool(data, "enableLogs"),
    )


def _mqtt(data: Mapping) -> MQTTConfig:
    return MQTTConfig(
        url=_str(data, "url"),
        client_id=_optional_str(data, "clientId"),
        username=_optional_str(data, "username"),
        password=_optional_str(data, "password"),
        tls_key=_optional_str(data, "tlsKey"),
        tls_cert=_optional_str(data, "tlsCert"),
        tls_ca=_optional_str(data, "tlsCa"),
        topic_prefix=_str(data, "topicPrefix"),
        qos=_byte(data, "qos"),
        retain=_bool(data, "retain"),
    )


@dataclass
class Config:
    """Top-level bridge configuration."""

    log_level: str = ""
    outgoing_mqtt_message: OutgoingMqttMessage = field(default_factory=OutgoingMqttMessage)
    ignore_unknown_group_addresses: bool = False
    knx: KNXConfig = field(default_factory=KNXConfig)
    mqtt: MQTTConfig = field(default_factory=MQTTConfig)

    @classmethod
    def from_dict(cls, data: Mapping) -> Config:
        """Build a configuration from a decoded YAML document; unknown keys are ignored."""
        if not isinstance(data, Mapping):
            raise ValueError("configuration must be a mapping")
        return cls(
            log_level=_str(data, "loglevel"),
            outgoing_mqtt_message=_outgoing(_section(data, "outgoingMqttMessage")),
            ignore_unknown_group_addresses=_bool(data, "ignoreUnknownGroupAddresses"),
            knx=_knx(_section(data, "knx")),
            mqtt=_mqtt(_section(data, "mqtt")),
        )


@dataclass(frozen=True)
class GroupAddress:
    full_name: str
    name: str
    address: str
    datapoint: str


@dataclass
class KNX:
    """Registry of known group addresses, looked up by address or full name."""

    name_to_index: dict[str, int] = field(default_factory=dict)
    gad_to_index: dict[str, int] = field(default_factory=dict)
    group_addresses: list[GroupAddress] = field(default_factory=list)

    def add_group_address(self, group_address: GroupAddress) -> None:
        self.group_addresses.append(group_address)
        index = len(self.group_addresses) - 1
        self.name_to_index[group_address.full_name] = index
        self.gad_to_index[group_address.address] = index

    def get_group_address(self, address: str) -> GroupAddress | None:
        """Find a group address by its "a/b/c" form or by its full name."""
        lookup = self.gad_to_index if is_regular_group_address(address) else self.name_to_index
        index = lookup.get(address)
        return None if index is None else self.group_addresses[index]

    def add_named(self, address: GroupAddress) -> None:
        """Append an address without indexing it; its name must not be empty."""
        if not address.name:
            raise ValueError("address name cannot be empty")
        self.group_addresses.append(address)


_JSON_ESCAPES = {
    ord("<"): "\\u003c",
    ord(">"): "\\u003e",
    ord("&"): "\\u0026",
    0x2028: "\\u2028",
    0x2029: "\\u2029",
}


@dataclass
class OutgoingMqttJson:
    """JSON payload published for a KNX telegram; empty fields are left out."""

    bytes: str | None = None
    address: str | None = None
    name: str | None = None
    dpt: str = ""
    value: Any = None
    unit: str | None = None

    def to_json(self) -> str:
        fields: dict[str, Any] = {}
        if self.bytes is not None:
            fields["bytes"] = self.bytes
        if self.address is not None:
            fields["address"] = self.address
        if self.name is not None:
            fields["name"] = self.name
        if self.dpt:
            fields["dpt"] = self.dpt
        if self.value is not None:
            fields["value"] = self.value
        if self.unit is not None:
            fields["unit"] = self.unit
        text = json.dumps(fields, ensure_ascii=False, separators=(",", ":"), allow_nan=False)
        return text.translate(_JSON_ESCAPES)