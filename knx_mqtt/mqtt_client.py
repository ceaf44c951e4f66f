"""The MQTT side of the bridge: broker connection, subscription and publishing."""

from __future__ import annotations

import logging
import ssl
import threading
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any
from urllib.parse import urlsplit

import paho.mqtt.client as paho

from knx_mqtt.messages import KNXMessage, MQTTMessage
from knx_mqtt.models import Config, MessageType

log = logging.getLogger(__name__)

SUBSCRIPTION = "+/+/+/+"
KEEPALIVE = 30
CONNECT_TIMEOUT = 30.0

_PEM_CERTIFICATE = "-----BEGIN CERTIFICATE-----"

# scheme: (paho transport, uses TLS, default port)
_SCHEMES: dict[str, tuple[str, bool, int]] = {
    "tcp": ("tcp", False, 1883),
    "mqtt": ("tcp", False, 1883),
    "ssl": ("tcp", True, 8883),
    "tls": ("tcp", True, 8883),
    "tcps": ("tcp", True, 8883),
    "mqtts": ("tcp", True, 8883),
    "ws": ("websockets", False, 80),
    "wss": ("websockets", True, 443),
}


@dataclass(frozen=True)
class _Broker:
    host: str
    port: int
    transport: str
    secure: bool
    path: str


def _parse_broker(url: str) -> _Broker:
    parts = urlsplit(url)
    scheme = parts.scheme.lower()
    if scheme not in _SCHEMES:
        raise ValueError(f"unsupported MQTT broker URL: {url!r}")
    transport, secure, default_port = _SCHEMES[scheme]
    if not parts.hostname:
        raise ValueError(f"missing host in MQTT broker URL: {url!r}")
    try:
        port = parts.port or default_port
    except ValueError:
        raise ValueError(f"invalid port in MQTT broker URL: {url!r}") from None
    return _Broker(parts.hostname, port, transport, secure, parts.path or "/")


def new_tls_config(ca_file: str, cert_file: str, key_file: str) -> ssl.SSLContext:
    """A client TLS context trusting the CA file, with an optional client certificate."""
    try:
        with open(ca_file, encoding="ascii", errors="replace") as handle:
            ca_pem = handle.read()
    except OSError as exc:
        raise ValueError(f"failed to read CA file: {exc}") from exc
    if _PEM_CERTIFICATE not in ca_pem:
        raise ValueError("failed to append CA certificate")
    context = ssl.SSLContext(ssl.PROTOCOL_TLS_CLIENT)
    try:
        context.load_verify_locations(cadata=ca_pem)
    except (ssl.SSLError, ValueError) as exc:
        raise ValueError("failed to append CA certificate") from exc
    if cert_file and key_file:
        try:
            context.load_cert_chain(cert_file, key_file)
        except OSError as exc:
            raise ValueError(f"failed to load client certificate and key: {exc}") from exc
    return context


def _default_factory(client_id: str, transport: str) -> Any:
    return paho.Client(paho.CallbackAPIVersion.VERSION2, client_id=client_id, transport=transport)


class MQTTClient:
    """Connection to the MQTT broker that publishes KNX values and receives commands."""

    def __init__(
        self,
        config: Config,
        *,
        client_factory: Callable[[str, str], Any] = _default_factory,
        connect_timeout: float = CONNECT_TIMEOUT,
    ) -> None:
        self._config = config
        settings = config.mqtt
        self._broker = _parse_broker(settings.url)
        self._connect_timeout = connect_timeout
        self._callback: Callable[[MQTTMessage], None] | None = None
        self._connack = threading.Event()
        self._connack_code: Any = None
        self._closing = False

        client = client_factory(settings.client_id or "", self._broker.transport)
        if settings.username is not None or settings.password is not None:
            client.username_pw_set(settings.username or "", settings.password)

        context: ssl.SSLContext | None = None
        if settings.tls_ca is not None and settings.tls_cert is not None and settings.tls_key is not None:
            try:
                context = new_tls_config(settings.tls_ca, settings.tls_cert, settings.tls_key)
            except ValueError as exc:
                log.error("Failed to create TLS configuration: %s", exc)
        if context is None and self._broker.secure:
            context = ssl.create_default_context()
        if context is not None:
            client.tls_set_context(context)
        if self._broker.transport == "websockets":
            client.ws_set_options(path=self._broker.path)

        client.on_connect = self._on_connect
        client.on_disconnect = self._on_disconnect
        client.on_message = self._on_message
        self._client = client

    def _on_connect(self, client: Any, userdata: Any, flags: Any, reason_code: Any, properties: Any = None) -> None:
        self._connack_code = reason_code
        if not reason_code.is_failure:
            result, _ = client.subscribe(self._config.mqtt.topic_prefix + SUBSCRIPTION, 0)
            if result != paho.MQTT_ERR_SUCCESS:
                log.warning("Failed to subscribe to MQTT topics")
            else:
                log.info("Subscribed to MQTT")
        self._connack.set()

    def _on_disconnect(
        self, client: Any, userdata: Any, flags: Any, reason_code: Any, properties: Any = None
    ) -> None:
        if not self._closing:
            log.error("Connection to MQTT broker lost: %s", reason_code)

    def _on_message(self, client: Any, userdata: Any, message: Any) -> None:
        callback = self._callback
        if callback is not None:
            callback(MQTTMessage(message.topic, bytes(message.payload)))

    def connect(self, callback: Callable[[MQTTMessage], None]) -> None:
        """Connect to the broker and deliver every received command to the callback."""
        self._callback = callback
        self._closing = False
        self._connack.clear()
        try:
            self._client.connect(self._broker.host, self._broker.port, keepalive=KEEPALIVE)
        except OSError as exc:
            raise ConnectionError(f"failed to connect to MQTT broker {self._config.mqtt.url}: {exc}") from exc
        self._client.loop_start()
        if not self._connack.wait(self._connect_timeout):
            self._client.loop_stop()
            raise TimeoutError(f"no answer from MQTT broker {self._config.mqtt.url}")
        code = self._connack_code
        if code.is_failure:
            self._client.loop_stop()
            raise ConnectionError(f"MQTT broker refused the connection: {code}")

    def close(self) -> None:
        """Disconnect from the broker."""
        self._closing = True
        self._client.disconnect()
        self._client.loop_stop()

    def subscribe(self, callback: Callable[[MQTTMessage], None]) -> None:
        """Replace the callback that receives incoming commands."""
        self._callback = callback

    def _publish(self, topic: str, payload: str | bytes) -> None:
        settings = self._config.mqtt
        self._client.publish(topic, payload, qos=settings.qos, retain=settings.retain)

    def send(self, message: KNXMessage) -> None:
        """Publish a KNX telegram under its address and/or name topics."""
        outgoing = self._config.outgoing_mqtt_message
        prefix = self._config.mqtt.topic_prefix
        is_bytes = outgoing.type == MessageType.BYTES
        if not message.is_resolved():
            if is_bytes and outgoing.emit_using_address:
                self._publish(prefix + message.destination(), message.data())
            else:
                log.info(
                    "Cannot read unknown address %s, update your KNX XML export", message.destination()
                )
            return

        if is_bytes:
            payload: str | bytes | None = message.data()
        else:
            try:
                payload = message.to_payload(
                    outgoing.emit_value_as_string, outgoing.type, outgoing.included_json_fields
                )
            except (ValueError, TypeError) as exc:
                log.warning(
                    "Could not create message payload for %s for address %s: %s",
                    message.datapoint_name(),
                    message.destination(),
                    exc,
                )
                return
        if payload is None:
            log.warning("Unknown outgoing message type %s", outgoing.type)
            return

        if outgoing.emit_using_address:
            self._publish(prefix + message.address(), payload)
        if outgoing.emit_using_name:
            self._publish(prefix + message.full_name(), payload)