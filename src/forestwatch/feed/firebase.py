"""Firebase Realtime Database adapter.

The feed side streams ``<database>/<devices_path>.json`` with the REST
streaming protocol (server-sent events). ``put`` events replace the value
at a path, ``patch`` events merge children into it, ``keep-alive`` is
ignored and ``cancel`` / ``auth_revoked`` end the stream. The adapter keeps
the whole device tree and publishes a full copy after every change.

The control side PATCHes actuator toggles onto a device node.
"""

from __future__ import annotations

import asyncio
import contextlib
import copy
import json
import logging
from dataclasses import dataclass
from typing import Any
from urllib.parse import quote, urlencode

import aiohttp

from forestwatch._redact import redact_for_log, redact_url
from forestwatch.config import ForestWatchConfig
from forestwatch.exceptions import DeviceControlError, FeedCancelledError, FeedTransportError
from forestwatch.feed.base import ErrorCallback, SubscriberSet, Unsubscribe, UpdateCallback
from forestwatch.models.control import ControlCommand

_logger = logging.getLogger(__name__)

# Firebase sends a keep-alive every ~30 s; three missed ones means the stream is dead.
_STREAM_READ_TIMEOUT = 90.0
_CONTROL_TIMEOUT = 15.0


@dataclass(frozen=True)
class StreamEvent:
    """One server-sent event from the streaming endpoint."""

    event: str
    data: Any


class SseParser:
    """Incremental server-sent events parser (one line at a time)."""

    def __init__(self) -> None:
        self._event = ""
        self._data: list[str] = []

    def feed_line(self, line: str) -> StreamEvent | None:
        """Consume a line (without its newline); return an event on a blank line."""
        if not line:
            if not self._event and not self._data:
                return None
            event = self._event or "message"
            text = "\n".join(self._data)
            self._event = ""
            self._data = []
            try:
                data = json.loads(text) if text else None
            except json.JSONDecodeError:
                data = text
            return StreamEvent(event=event, data=data)

        if line.startswith(":"):
            return None
        field, _, value = line.partition(":")
        if value.startswith(" "):
            value = value[1:]
        if field == "event":
            self._event = value
        elif field == "data":
            self._data.append(value)
        return None


def _path_parts(path: str) -> list[str]:
    return [part for part in path.strip("/").split("/") if part]


def apply_put(tree: dict[str, Any], path: str, data: Any) -> dict[str, Any]:
    """Replace the value at *path*; ``None`` deletes it. Returns the (new) root."""
    parts = _path_parts(path)
    if not parts:
        return copy.deepcopy(data) if isinstance(data, dict) else {}

    node = tree
    for key in parts[:-1]:
        child = node.get(key)
        if not isinstance(child, dict):
            if data is None:
                return tree
            child = {}
            node[key] = child
        node = child
    if data is None:
        node.pop(parts[-1], None)
    else:
        node[parts[-1]] = copy.deepcopy(data)
    return tree


def apply_patch(tree: dict[str, Any], path: str, data: Any) -> dict[str, Any]:
    """Merge the children of *data* under *path*. Returns the (new) root."""
    if not isinstance(data, dict):
        return tree
    base = path.rstrip("/")
    for key, value in data.items():
        tree = apply_put(tree, f"{base}/{key}", value)
    return tree


def _rest_url(config: ForestWatchConfig, *segments: str) -> str:
    if not config.firebase_url:
        raise ValueError("config.firebase_url is required for the Firebase adapters")
    path = "/".join(quote(segment.strip("/"), safe="/") for segment in segments if segment.strip("/"))
    url = f"{config.firebase_url.rstrip('/')}/{path}.json"
    if config.firebase_auth:
        url = f"{url}?{urlencode({'auth': config.firebase_auth})}"
    return url


class FirebaseFeed:
    """Streaming Firebase feed publishing the full device tree."""

    def __init__(
        self,
        config: ForestWatchConfig,
        *,
        session: aiohttp.ClientSession | None = None,
    ) -> None:
        self._config = config
        self._url = _rest_url(config, config.devices_path)
        self._external_session = session is not None
        self._http_session = session
        self._subscribers = SubscriberSet()
        self._task: asyncio.Task[None] | None = None
        self._tree: dict[str, Any] = {}

    @property
    def is_running(self) -> bool:
        return self._task is not None and not self._task.done()

    def subscribe(self, on_update: UpdateCallback, on_error: ErrorCallback | None = None) -> Unsubscribe:
        remove = self._subscribers.add(on_update, on_error)
        if not self.is_running:
            self._task = asyncio.get_running_loop().create_task(self._run())

        def unsubscribe() -> None:
            remove()
            if not len(self._subscribers):
                self.stop()

        return unsubscribe

    def stop(self) -> None:
        """Cancel the stream task; safe to call repeatedly."""
        task = self._task
        self._task = None
        if task is not None and not task.done():
            task.cancel()

    async def aclose(self) -> None:
        task = self._task
        self.stop()
        if task is not None:
            with contextlib.suppress(asyncio.CancelledError):
                await task

    def handle_event(self, event: StreamEvent) -> None:
        """Apply one stream event to the tree and publish on change."""
        if event.event in ("put", "patch"):
            if not isinstance(event.data, dict):
                _logger.debug("Ignoring %s event without payload: %r", event.event, event.data)
                return
            path = str(event.data.get("path") or "/")
            data = event.data.get("data")
            _logger.debug("Stream %s path=%s data=%s", event.event, path, redact_for_log(data))
            if event.event == "put":
                self._tree = apply_put(self._tree, path, data)
            else:
                self._tree = apply_patch(self._tree, path, data)
            self._subscribers.publish(copy.deepcopy(self._tree))
            return
        if event.event == "keep-alive":
            return
        if event.event in ("cancel", "auth_revoked"):
            raise FeedCancelledError(f"Firebase stream {event.event}: {event.data}")
        _logger.debug("Ignoring unknown stream event %s", event.event)

    async def _stream_once(self, session: aiohttp.ClientSession) -> None:
        headers = {"Accept": "text/event-stream"}
        timeout = aiohttp.ClientTimeout(total=None, sock_read=_STREAM_READ_TIMEOUT)
        _logger.debug("GET %s (stream)", redact_url(self._url))
        async with session.get(self._url, headers=headers, timeout=timeout) as resp:
            if resp.status != 200:
                text = await resp.text()
                raise FeedTransportError(
                    f"HTTP {resp.status} from stream: {text[:200]}",
                    status_code=resp.status,
                    endpoint=self._config.devices_path,
                )
            _logger.info("Firebase stream open for %s", self._config.devices_path)
            parser = SseParser()
            async for raw_line in resp.content:
                try:
                    line = raw_line.decode("utf-8")
                except UnicodeDecodeError:
                    _logger.debug("Skipping undecodable stream line: %r", raw_line[:80])
                    continue
                event = parser.feed_line(line.rstrip("\r\n"))
                if event is not None:
                    self.handle_event(event)
        raise FeedTransportError("Firebase stream closed by server", endpoint=self._config.devices_path)

    async def _run(self) -> None:
        if self._http_session is None:
            self._http_session = aiohttp.ClientSession()
        session = self._http_session
        try:
            while True:
                try:
                    await self._stream_once(session)
                except (FeedTransportError, FeedCancelledError) as exc:
                    _logger.warning("Firebase feed error: %s", exc)
                    self._subscribers.publish_error(exc)
                except (aiohttp.ClientError, TimeoutError) as exc:
                    _logger.warning("Firebase feed connection failed: %s", exc)
                    self._subscribers.publish_error(
                        FeedTransportError(f"Stream failed: {exc}", endpoint=self._config.devices_path)
                    )
                except Exception as exc:
                    _logger.warning("Firebase feed stream crashed", exc_info=True)
                    self._subscribers.publish_error(
                        FeedTransportError(f"Stream crashed: {exc!r}", endpoint=self._config.devices_path)
                    )
                await asyncio.sleep(self._config.reconnect_delay)
        finally:
            if not self._external_session and self._http_session is not None:
                await self._http_session.close()
                self._http_session = None


class FirebaseDeviceControl:
    """Actuator write contract backed by the Firebase REST API."""

    def __init__(self, config: ForestWatchConfig, session: aiohttp.ClientSession) -> None:
        self._config = config
        self._http = session

    async def set_control(self, device_id: str, command: ControlCommand) -> None:
        """PATCH the command's toggles onto ``<devices_path>/<device_id>``.

        Raises
        ------
        DeviceControlError
            On transport failure or a non-2xx response.
        """
        url = _rest_url(self._config, self._config.devices_path, device_id)
        body = command.to_patch()
        _logger.debug("PATCH %s %s", redact_url(url), body)
        try:
            async with self._http.patch(
                url,
                json=body,
                timeout=aiohttp.ClientTimeout(total=_CONTROL_TIMEOUT),
            ) as resp:
                if resp.status >= 300:
                    text = await resp.text()
                    raise DeviceControlError(
                        f"HTTP {resp.status} writing controls for {device_id}: {text[:200]}",
                        device_id=device_id,
                        status_code=resp.status,
                    )
        except DeviceControlError:
            raise
        except (aiohttp.ClientError, TimeoutError) as exc:
            raise DeviceControlError(f"Control write for {device_id} failed: {exc}", device_id=device_id) from exc
        _logger.info("Device %s controls updated: %s", device_id, body)
