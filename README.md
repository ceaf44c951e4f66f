# knx-mqtt

A library of building blocks for relaying KNX group telegrams to and from an
MQTT broker: configuration loading, ETS group address exports, KNX datapoint
encoding, cEMI frame encoding and an MQTT client that publishes KNX values.

## Installation

```
pip install .
```

For the tests:

```
pip install .[test]
pytest
```

## What is in the package

| module                  | contents |
|-------------------------|----------|
| `knx_mqtt.parser`       | `load_config`, `parse_group_address_export`, `convert_dpt_format`, `replace_slash_in_name`, `ConfigError` |
| `knx_mqtt.models`       | `Config` and its sections, `MessageType`, `GroupAddress`, the `KNX` registry, `OutgoingMqttJson` |
| `knx_mqtt.cemi`         | `GroupAddr`, `GroupCommand`, `GroupEvent`, `encode_cemi`, `decode_cemi`, `is_regular_group_address` |
| `knx_mqtt.dpt`          | `Datapoint` types, `produce`, `string_without_suffix`, `DatapointError` |
| `knx_mqtt.knx_utils`    | `pack_string`, `extract_datapoint_value`, `PackError` |
| `knx_mqtt.messages`     | `KNXMessage`, `MQTTMessage` |
| `knx_mqtt.mqtt_client`  | `MQTTClient`, `new_tls_config` |
| `knx_mqtt.logsetup`     | `setup_logging` |

## Configuration

`load_config(path)` reads a YAML file into a `Config`; unknown keys are
ignored, and a file that cannot be opened or decoded raises `ConfigError`.

```yaml
loglevel: info
outgoingMqttMessage:
  type: json              # value, value-with-unit, bytes or json
  emitUsingAddress: true  # publish to <prefix><main>/<middle>/<sub>
  emitUsingName: true     # publish to <prefix><main range>/<middle range>/<name>
  emitValueAsString: false
  includedJsonFields:
    address: true
    name: true
    bytes: false
    dpt: true
    value: true
    unit: true
knx:
  etsExport: knx.xml
  endpoint: 224.0.23.12:3671
  interface: ""
  tunnelMode: false
  enableLogs: false
mqtt:
  url: tcp://localhost:1883
  clientId: knx-mqtt
  username: user
  password: password
  topicPrefix: knx/
  qos: 0
  retain: false
```

For TLS, set `tlsCa`, `tlsCert` and `tlsKey` under `mqtt` to file paths.

## ETS group address exports

`parse_group_address_export(path)` reads the three-level group range XML that
ETS exports and returns a `KNX` registry. Addresses without a `DPTs`
attribute are skipped with a warning. Slashes in range or address names are
replaced with `_`, so that full names such as `Lights/Kitchen/Ceiling` stay
three topic levels. `KNX.get_group_address` looks an entry up either by its
`a/b/c` address or by its full name and returns `None` when it is unknown.

## Datapoints

```python
from knx_mqtt.dpt import produce
from knx_mqtt.knx_utils import pack_string, extract_datapoint_value

pack_string("1.001", "true")          # b"\x01"
datapoint = produce("9.001")
datapoint.unpack(pack_string("9.001", "21.5"))
str(datapoint)                        # text with its unit, "°C"
extract_datapoint_value(datapoint, "9.001")
```

`pack_string` accepts `true`/`false` for DPT 1, numbers for the numeric
types, `Monday 12:30:00` for 10.001, `2024-05-01` for 11.001, `#ff8000` for
232.600, and the texts of 242.600 and 251.600. Values that do not parse or do
not fit, and unknown types, raise `PackError`.

## Frames and addresses

`GroupAddr.parse` accepts three-level, two-level and flat addresses;
`str(GroupAddr.parse("1/2/3"))` is `"1/2/3"`. `encode_cemi` turns a
`GroupEvent` into a cEMI L_Data.req frame, and `decode_cemi` turns an
L_Data frame carrying a group read, response or write back into a
`GroupEvent`.

## Publishing to MQTT

`MQTTClient(config)` connects to the broker named by `mqtt.url` (schemes
`tcp`, `mqtt`, `ssl`, `tls`, `tcps`, `mqtts`, `ws`, `wss`).
`connect(callback)` waits for the broker's answer, raising `ConnectionError`
or `TimeoutError`, subscribes to `<topicPrefix>+/+/+/+` and passes every
received message to the callback as an `MQTTMessage`. `send(message)`
publishes a `KNXMessage` under its address and/or full name, in the shape set
by `outgoingMqttMessage`. Unresolved messages are published only when the
type is `bytes` and `emitUsingAddress` is set.

## What the package does not do

The package has no KNXnet/IP connection: it does not join a routing multicast
group or open a tunnel, so cEMI frames must be carried to and from the bus by
the caller. It has no component that joins the KNX and MQTT sides together
and no command-line program; an application wires `MQTTClient`, `KNXMessage`
and its own KNX transport itself.