from __future__ import annotations

from typing import Any

import aiohttp
import pytest

from forestwatch.config import ForestWatchConfig
from forestwatch.exceptions import DeviceControlError
from forestwatch.feed.firebase import FirebaseDeviceControl
from forestwatch.models import ControlCommand

_CONFIG = ForestWatchConfig(firebase_url="https://db.example.com", firebase_auth="s3cret")


class _FakeResponse:
    def __init__(self, status: int, text: str = "") -> None:
        self.status = status
        self._text = text

    async def text(self) -> str:
        return self._text

    async def __aenter__(self) -> _FakeResponse:
        return self

    async def __aexit__(self, *exc: Any) -> None:
        return None


class _FakeSession:
    def __init__(self, response: _FakeResponse | None = None, error: Exception | None = None) -> None:
        self.response = response
        self.error = error
        self.requests: list[tuple[str, Any]] = []

    def patch(self, url: str, *, json: Any, timeout: Any) -> _FakeResponse:
        self.requests.append((url, json))
        if self.error is not None:
            raise self.error
        assert self.response is not None
        return self.response


@pytest.mark.asyncio
async def test_set_control_patches_device_node() -> None:
    session = _FakeSession(_FakeResponse(200))
    control = FirebaseDeviceControl(_CONFIG, session)  # type: ignore[arg-type]

    await control.set_control("dev1", ControlCommand(flame_enabled=False, servo_enabled=True))

    assert session.requests == [
        (
            "https://db.example.com/forest_devices/dev1.json?auth=s3cret",
            {"flameEnabled": False, "servoEnabled": True},
        )
    ]


@pytest.mark.asyncio
async def test_set_control_http_error() -> None:
    session = _FakeSession(_FakeResponse(401, "Permission denied"))
    control = FirebaseDeviceControl(_CONFIG, session)  # type: ignore[arg-type]

    with pytest.raises(DeviceControlError) as excinfo:
        await control.set_control("dev1", ControlCommand(servo_enabled=False))

    assert excinfo.value.status_code == 401
    assert excinfo.value.device_id == "dev1"


@pytest.mark.asyncio
async def test_set_control_transport_error() -> None:
    session = _FakeSession(error=aiohttp.ClientConnectionError("unreachable"))
    control = FirebaseDeviceControl(_CONFIG, session)  # type: ignore[arg-type]

    with pytest.raises(DeviceControlError) as excinfo:
        await control.set_control("dev1", ControlCommand(flame_enabled=True))

    assert excinfo.value.status_code is None
    assert isinstance(excinfo.value.__cause__, aiohttp.ClientConnectionError)
