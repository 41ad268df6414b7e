from __future__ import annotations

from typing import Any

from forestwatch.exceptions import FeedTransportError
from forestwatch.feed.base import ManualFeed, SubscriberSet


def test_unsubscribe_is_idempotent() -> None:
    feed = ManualFeed()
    received: list[Any] = []
    unsubscribe = feed.subscribe(received.append)

    unsubscribe()
    unsubscribe()
    feed.push({"dev1": {}})

    assert received == []
    assert feed.subscriber_count == 0


def test_push_delivers_a_copy_of_the_mapping() -> None:
    feed = ManualFeed()
    received: list[Any] = []
    feed.subscribe(received.append)
    devices = {"dev1": {"last": {}}}

    feed.push(devices)
    devices["dev2"] = {}

    assert received == [{"dev1": {"last": {}}}]


def test_failing_subscriber_does_not_block_others() -> None:
    subscribers = SubscriberSet()
    received: list[Any] = []

    def broken(_devices: Any) -> None:
        raise RuntimeError("boom")

    subscribers.add(broken)
    subscribers.add(received.append)
    subscribers.publish({"dev1": {}})

    assert received == [{"dev1": {}}]


def test_errors_only_reach_error_callbacks() -> None:
    feed = ManualFeed()
    errors: list[BaseException] = []
    feed.subscribe(lambda _devices: None)
    feed.subscribe(lambda _devices: None, errors.append)

    error = FeedTransportError("broken", status_code=503, endpoint="forest_devices")
    feed.fail(error)

    assert errors == [error]
    assert errors[0].status_code == 503  # type: ignore[attr-defined]
