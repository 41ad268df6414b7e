from __future__ import annotations

import asyncio
import json
from typing import Any

import pytest

from forestwatch.config import ForestWatchConfig
from forestwatch.feed.mqtt import MqttFeed, apply_message, decode_payload, split_topic


def test_split_topic() -> None:
    assert split_topic("forest_devices", "forest_devices") == []
    assert split_topic("forest_devices", "forest_devices/dev1/last") == ["dev1", "last"]
    assert split_topic("site/a", "site/a/dev1") == ["dev1"]
    assert split_topic("forest_devices", "other/dev1") is None


def test_decode_payload() -> None:
    assert decode_payload(b'{"temperature": 21}') == {"temperature": 21}
    assert decode_payload(b"") is None
    assert decode_payload(b"  ") is None
    with pytest.raises(json.JSONDecodeError):
        decode_payload(b"{not json")


class TestApplyMessage:
    def test_full_mapping_replaces_tree(self) -> None:
        devices: dict[str, Any] = {"old": {}}
        assert apply_message(devices, [], {"dev1": {"last": {"temperature": 20}}})
        assert devices == {"dev1": {"last": {"temperature": 20}}}

    def test_full_mapping_must_be_object(self) -> None:
        with pytest.raises(ValueError):
            apply_message({}, [], [1, 2])

    def test_device_node_set_and_delete(self) -> None:
        devices: dict[str, Any] = {}
        assert apply_message(devices, ["dev1"], {"last": {"gas": 100}})
        assert devices["dev1"] == {"last": {"gas": 100}}
        assert apply_message(devices, ["dev1"], None)
        assert devices == {}
        assert not apply_message(devices, ["dev1"], None)

    def test_nested_path_creates_parents(self) -> None:
        devices: dict[str, Any] = {"dev1": {"flameEnabled": True}}
        assert apply_message(devices, ["dev1", "last", "temperature"], 31)
        assert devices == {"dev1": {"flameEnabled": True, "last": {"temperature": 31}}}

    def test_nested_delete(self) -> None:
        devices: dict[str, Any] = {"dev1": {"last": {"temperature": 31, "gas": 5}}}
        assert apply_message(devices, ["dev1", "last", "gas"], None)
        assert devices == {"dev1": {"last": {"temperature": 31}}}

    def test_clear_empty_root_is_no_change(self) -> None:
        assert not apply_message({}, [], None)


def test_feed_requires_host() -> None:
    with pytest.raises(ValueError):
        MqttFeed(ForestWatchConfig())


@pytest.mark.asyncio
async def test_messages_publish_full_mapping_on_loop(monkeypatch: pytest.MonkeyPatch) -> None:
    feed = MqttFeed(ForestWatchConfig(mqtt_host="broker.local"), loop=asyncio.get_running_loop())
    monkeypatch.setattr(feed, "start", lambda: None)
    received: list[dict[str, Any]] = []
    unsubscribe = feed.subscribe(lambda devices: received.append(dict(devices)))

    feed.handle_message("forest_devices/dev1/last", b'{"temperature": 21}')
    feed.handle_message("forest_devices/dev2", b'{"last": {"gas": 700}}')
    feed.handle_message("elsewhere/dev3", b'{"last": {}}')
    feed.handle_message("forest_devices/dev1/last", b"{broken")
    await asyncio.sleep(0)

    assert received == [
        {"dev1": {"last": {"temperature": 21}}},
        {"dev1": {"last": {"temperature": 21}}, "dev2": {"last": {"gas": 700}}},
    ]

    unsubscribe()
    unsubscribe()
    feed.handle_message("forest_devices/dev1/last", b'{"temperature": 22}')
    await asyncio.sleep(0)
    assert len(received) == 2


@pytest.mark.asyncio
async def test_published_mapping_is_a_copy(monkeypatch: pytest.MonkeyPatch) -> None:
    feed = MqttFeed(ForestWatchConfig(mqtt_host="broker.local"), loop=asyncio.get_running_loop())
    monkeypatch.setattr(feed, "start", lambda: None)
    received: list[Any] = []
    feed.subscribe(received.append)

    feed.handle_message("forest_devices/dev1/last", b'{"temperature": 21}')
    await asyncio.sleep(0)
    received[0]["dev1"]["last"]["temperature"] = 99
    feed.handle_message("forest_devices/dev1/last/gas", b"10")
    await asyncio.sleep(0)

    assert received[1] == {"dev1": {"last": {"temperature": 21, "gas": 10}}}


@pytest.mark.asyncio
async def test_custom_topic_prefix(monkeypatch: pytest.MonkeyPatch) -> None:
    config = ForestWatchConfig(mqtt_host="broker.local", mqtt_topic_prefix="site/north")
    feed = MqttFeed(config, loop=asyncio.get_running_loop())
    monkeypatch.setattr(feed, "start", lambda: None)
    received: list[Any] = []
    feed.subscribe(received.append)

    feed.handle_message("site/north", b'{"dev1": {"last": {"rainPercent": 75}}}')
    await asyncio.sleep(0)

    assert received == [{"dev1": {"last": {"rainPercent": 75}}}]
