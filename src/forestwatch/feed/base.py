"""Feed subscription boundary.

A feed delivers the FULL current mapping of device id -> raw device node
every time any device changes (not a diff), with no ordering guarantee
between devices. Transport problems are reported through ``on_error``; a
later ``on_update`` means the feed has recovered.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Mapping
from typing import Any, Protocol

from forestwatch.models.control import ControlCommand

_logger = logging.getLogger(__name__)

DeviceMapping = Mapping[str, Any]
UpdateCallback = Callable[[DeviceMapping], None]
ErrorCallback = Callable[[BaseException], None]
Unsubscribe = Callable[[], None]


class FeedSubscription(Protocol):
    """Structural feed interface consumed by the monitor."""

    def subscribe(self, on_update: UpdateCallback, on_error: ErrorCallback | None = None) -> Unsubscribe: ...


class _Subscriber:
    __slots__ = ("on_update", "on_error", "active")

    def __init__(self, on_update: UpdateCallback, on_error: ErrorCallback | None) -> None:
        self.on_update = on_update
        self.on_error = on_error
        self.active = True


class SubscriberSet:
    """Callback bookkeeping shared by the feed adapters.

    Unsubscribe handles are synchronous and idempotent. Subscriber callbacks
    that raise are logged and do not affect other subscribers.
    """

    def __init__(self) -> None:
        self._subscribers: list[_Subscriber] = []

    def __len__(self) -> int:
        return len(self._subscribers)

    def add(self, on_update: UpdateCallback, on_error: ErrorCallback | None = None) -> Unsubscribe:
        subscriber = _Subscriber(on_update, on_error)
        self._subscribers.append(subscriber)

        def unsubscribe() -> None:
            if not subscriber.active:
                return
            subscriber.active = False
            self._subscribers = [cand for cand in self._subscribers if cand is not subscriber]

        return unsubscribe

    def publish(self, devices: DeviceMapping) -> None:
        for subscriber in list(self._subscribers):
            if not subscriber.active:
                continue
            try:
                subscriber.on_update(devices)
            except Exception:
                _logger.exception("Feed subscriber failed to handle update")

    def publish_error(self, error: BaseException) -> None:
        for subscriber in list(self._subscribers):
            if not subscriber.active or subscriber.on_error is None:
                continue
            try:
                subscriber.on_error(error)
            except Exception:
                _logger.exception("Feed subscriber failed to handle error")


class ManualFeed:
    """In-process feed driven by explicit :meth:`push` calls.

    Used for replaying recorded updates and in tests.
    """

    def __init__(self) -> None:
        self._subscribers = SubscriberSet()

    @property
    def subscriber_count(self) -> int:
        return len(self._subscribers)

    def subscribe(self, on_update: UpdateCallback, on_error: ErrorCallback | None = None) -> Unsubscribe:
        return self._subscribers.add(on_update, on_error)

    def push(self, devices: DeviceMapping) -> None:
        self._subscribers.publish(dict(devices))

    def fail(self, error: BaseException) -> None:
        self._subscribers.publish_error(error)


class DeviceControl(Protocol):
    """Actuator write contract (flame sensor / servo toggles)."""

    async def set_control(self, device_id: str, command: ControlCommand) -> None: ...
