"""MQTT feed adapter.

Devices publish JSON to topics under a common prefix::

    <prefix>                  full mapping {device_id: node, ...}
    <prefix>/<device_id>      whole device node
    <prefix>/<device_id>/last latest reading (any deeper path works too)

The adapter merges every message into one device tree and hands the full
tree to subscribers on the asyncio loop. The paho network loop runs in its
own thread; all subscriber callbacks are hopped onto the loop with
``call_soon_threadsafe``.
"""

from __future__ import annotations

import asyncio
import copy
import json
import logging
import threading
from typing import Any, cast

import paho.mqtt.client as mqtt

from forestwatch._redact import redact_for_log
from forestwatch.config import ForestWatchConfig
from forestwatch.exceptions import FeedTransportError
from forestwatch.feed.base import ErrorCallback, SubscriberSet, Unsubscribe, UpdateCallback


def split_topic(prefix: str, topic: str) -> list[str] | None:
    """Return the topic segments below *prefix*, or ``None`` if outside it."""
    prefix_parts = [part for part in prefix.strip("/").split("/") if part]
    parts = [part for part in topic.strip("/").split("/") if part]
    if parts[: len(prefix_parts)] != prefix_parts:
        return None
    return parts[len(prefix_parts) :]


def decode_payload(payload: bytes) -> Any:
    """Decode a message body; an empty body means "deleted" (``None``)."""
    text = payload.decode("utf-8").strip()
    if not text:
        return None
    return json.loads(text)


def apply_message(devices: dict[str, Any], segments: list[str], value: Any) -> bool:
    """Merge one decoded message into the device tree.

    Returns True if the tree changed shape or content.
    """
    if not segments:
        if value is None:
            changed = bool(devices)
            devices.clear()
            return changed
        if not isinstance(value, dict):
            raise ValueError("full-mapping message must be a JSON object")
        devices.clear()
        devices.update({str(key): node for key, node in value.items()})
        return True

    device_id, path = segments[0], segments[1:]
    if not path:
        if value is None:
            return devices.pop(device_id, None) is not None
        devices[device_id] = value
        return True

    node = devices.get(device_id)
    if not isinstance(node, dict):
        node = {}
        devices[device_id] = node
    for key in path[:-1]:
        child = node.get(key)
        if not isinstance(child, dict):
            child = {}
            node[key] = child
        node = child
    if value is None:
        return node.pop(path[-1], None) is not None
    node[path[-1]] = value
    return True


class MqttFeed:
    """Threaded paho-mqtt feed that emits full device mappings onto an asyncio loop."""

    def __init__(
        self,
        config: ForestWatchConfig,
        *,
        loop: asyncio.AbstractEventLoop | None = None,
        client_id: str = "",
        username: str | None = None,
        password: str | None = None,
        tls: bool = False,
        logger: logging.Logger | None = None,
    ) -> None:
        if not config.mqtt_host:
            raise ValueError("config.mqtt_host is required for the MQTT feed")
        self._config = config
        self._loop = loop
        self._client_id = client_id
        self._username = username
        self._password = password
        self._tls = tls
        self._logger = logger or logging.getLogger(__name__)
        self._prefix = config.topic_prefix
        self._subscribers = SubscriberSet()
        self._client: mqtt.Client | None = None
        self._running = False
        self._lock = threading.Lock()
        self._devices: dict[str, Any] = {}

    @property
    def is_running(self) -> bool:
        """Whether the MQTT network loop is active."""
        return self._running

    def subscribe(self, on_update: UpdateCallback, on_error: ErrorCallback | None = None) -> Unsubscribe:
        if self._loop is None:
            self._loop = asyncio.get_running_loop()
        remove = self._subscribers.add(on_update, on_error)
        if not self._running:
            self.start()

        def unsubscribe() -> None:
            remove()
            if not len(self._subscribers):
                self.stop()

        return unsubscribe

    # ------------------------------------------------------------------
    # paho thread -> loop
    # ------------------------------------------------------------------

    def _emit_update(self) -> None:
        with self._lock:
            devices = copy.deepcopy(self._devices)
        loop = self._loop
        if loop is not None and not loop.is_closed():
            loop.call_soon_threadsafe(self._subscribers.publish, devices)

    def _emit_error(self, error: BaseException) -> None:
        loop = self._loop
        if loop is not None and not loop.is_closed():
            loop.call_soon_threadsafe(self._subscribers.publish_error, error)

    def handle_message(self, topic: str, payload: bytes) -> None:
        """Merge one raw MQTT message and notify subscribers."""
        segments = split_topic(self._prefix, topic)
        if segments is None:
            self._logger.debug("Ignoring message outside %s: %s", self._prefix, topic)
            return
        try:
            value = decode_payload(payload)
        except (UnicodeDecodeError, json.JSONDecodeError):
            self._logger.debug("Ignoring undecodable payload on %s", topic, exc_info=True)
            return

        self._logger.debug("Received PUBLISH topic=%s payload=%s", topic, redact_for_log(value))
        with self._lock:
            try:
                changed = apply_message(self._devices, segments, value)
            except ValueError:
                self._logger.debug("Ignoring malformed message on %s", topic, exc_info=True)
                return
        if changed:
            self._emit_update()

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def start(self) -> None:
        """Connect (asynchronously) and subscribe to the device topics."""
        self.stop()
        host = cast(str, self._config.mqtt_host)
        port = self._config.mqtt_port
        self._logger.debug("MQTT feed start requested host=%s port=%s prefix=%s", host, port, self._prefix)

        client = mqtt.Client(
            callback_api_version=cast(Any, mqtt).CallbackAPIVersion.VERSION2,
            client_id=self._client_id,
        )
        client.enable_logger(self._logger)
        if self._username is not None:
            client.username_pw_set(self._username, self._password)
        if self._tls:
            client.tls_set()
        client.reconnect_delay_set(min_delay=1, max_delay=max(1, int(self._config.reconnect_delay) or 1))

        def on_connect(
            c: mqtt.Client,
            _userdata: Any,
            _flags: Any,
            reason_code: Any,
            _properties: Any,
        ) -> None:
            if reason_code.value != 0:
                self._logger.warning("MQTT connect failed: %s", reason_code)
                self._emit_error(FeedTransportError(f"MQTT connect refused: {reason_code}", endpoint=host))
                return
            self._logger.info("MQTT feed connected to %s:%s", host, port)
            c.subscribe([(self._prefix, 1), (f"{self._prefix}/#", 1)])

        def on_connect_fail(_c: mqtt.Client, _userdata: Any) -> None:
            self._logger.warning("MQTT connection to %s:%s failed", host, port)
            self._emit_error(FeedTransportError("MQTT connection failed", endpoint=host))

        def on_message(_c: mqtt.Client, _userdata: Any, msg: mqtt.MQTTMessage) -> None:
            try:
                self.handle_message(msg.topic, msg.payload)
            except Exception:
                self._logger.debug("MQTT message handling failure", exc_info=True)

        def on_disconnect(
            _client: mqtt.Client,
            _userdata: Any,
            _disconnect_flags: Any,
            reason_code: Any,
            _properties: Any,
        ) -> None:
            if self._running:
                self._logger.warning("MQTT feed disconnected: %s", reason_code)
                self._emit_error(FeedTransportError(f"MQTT disconnected: {reason_code}", endpoint=host))

        client.on_connect = on_connect
        client.on_connect_fail = on_connect_fail
        client.on_message = on_message
        client.on_disconnect = on_disconnect

        client.connect_async(host, port, keepalive=self._config.mqtt_keepalive)
        client.loop_start()

        self._client = client
        self._running = True
        self._logger.debug("MQTT network loop started")

    def stop(self) -> None:
        """Stop and disconnect the current MQTT client if running."""
        client = self._client
        self._client = None
        was_running = self._running
        self._running = False

        if client is None:
            return
        try:
            if was_running:
                self._logger.debug("MQTT disconnect requested")
                client.disconnect()
        finally:
            client.loop_stop()
            self._logger.debug("MQTT network loop stopped")
