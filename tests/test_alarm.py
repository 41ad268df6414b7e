from __future__ import annotations

import asyncio
import sys

import pytest

from forestwatch.alarm import IdempotentAlarm, LoggingAlarm, SubprocessPlayer
from forestwatch.exceptions import AlarmSinkError


class _RecordingPlayer:
    def __init__(self) -> None:
        self.calls: list[str] = []

    async def play(self) -> None:
        await asyncio.sleep(0)
        self.calls.append("play")

    async def halt(self) -> None:
        await asyncio.sleep(0)
        self.calls.append("halt")


@pytest.mark.asyncio
async def test_stop_when_idle_is_noop() -> None:
    player = _RecordingPlayer()
    alarm = IdempotentAlarm(player)

    await alarm.stop()

    assert player.calls == []
    assert not alarm.is_playing


@pytest.mark.asyncio
async def test_start_while_playing_restarts() -> None:
    player = _RecordingPlayer()
    alarm = IdempotentAlarm(player)

    await alarm.start()
    await alarm.start()

    assert player.calls == ["play", "halt", "play"]
    assert alarm.is_playing


@pytest.mark.asyncio
async def test_concurrent_start_then_stop_ends_silent() -> None:
    player = _RecordingPlayer()
    alarm = IdempotentAlarm(player)

    # stop is issued before start finished its setup
    await asyncio.gather(alarm.start(), alarm.stop())

    assert player.calls == ["play", "halt"]
    assert not alarm.is_playing


@pytest.mark.asyncio
async def test_stop_clears_session_even_if_halt_fails() -> None:
    class _BrokenHalt(_RecordingPlayer):
        async def halt(self) -> None:
            raise AlarmSinkError("speaker gone")

    alarm = IdempotentAlarm(_BrokenHalt())
    await alarm.start()

    with pytest.raises(AlarmSinkError):
        await alarm.stop()
    assert not alarm.is_playing


@pytest.mark.asyncio
async def test_logging_alarm_tracks_state() -> None:
    alarm = LoggingAlarm()
    await alarm.stop()
    assert not alarm.active
    await alarm.start()
    assert alarm.active
    await alarm.stop()
    assert not alarm.active


def test_subprocess_player_requires_command() -> None:
    with pytest.raises(ValueError):
        SubprocessPlayer([])


@pytest.mark.asyncio
async def test_subprocess_player_missing_binary() -> None:
    player = SubprocessPlayer(["/nonexistent/forestwatch-alarm-player"])
    with pytest.raises(AlarmSinkError):
        await player.play()


@pytest.mark.asyncio
async def test_subprocess_player_halt_terminates_process() -> None:
    player = SubprocessPlayer([sys.executable, "-c", "import time; time.sleep(30)"])
    await player.play()
    process = player._process  # type: ignore[attr-defined]
    assert process is not None

    await player.halt()

    assert process.returncode is not None
    assert player._process is None  # type: ignore[attr-defined]


async def _wait_done(player: SubprocessPlayer, timeout: float = 5.0) -> None:
    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout
    while loop.time() < deadline:
        task = player._task  # type: ignore[attr-defined]
        if task is None or task.done():
            return
        await asyncio.sleep(0.05)


@pytest.mark.asyncio
async def test_subprocess_player_stops_looping_on_fast_failure(
    monkeypatch: pytest.MonkeyPatch, caplog: pytest.LogCaptureFixture
) -> None:
    player = SubprocessPlayer([sys.executable, "-c", "raise SystemExit(3)"], pause=0.0)
    spawns = 0
    spawn = player._spawn  # type: ignore[attr-defined]

    async def counting_spawn() -> asyncio.subprocess.Process:
        nonlocal spawns
        spawns += 1
        return await spawn()

    monkeypatch.setattr(player, "_spawn", counting_spawn)

    with caplog.at_level("WARNING", logger="forestwatch.alarm"):
        await player.play()
        await _wait_done(player)

    assert spawns == 1
    assert "exited with status 3" in caplog.text
    await player.halt()


@pytest.mark.asyncio
async def test_subprocess_player_replays_a_finished_sound(monkeypatch: pytest.MonkeyPatch) -> None:
    player = SubprocessPlayer([sys.executable, "-c", "pass"], pause=0.01, fail_window=2.0)
    spawns = 0
    spawn = player._spawn  # type: ignore[attr-defined]

    async def counting_spawn() -> asyncio.subprocess.Process:
        nonlocal spawns
        spawns += 1
        return await spawn()

    monkeypatch.setattr(player, "_spawn", counting_spawn)
    await player.play()
    loop = asyncio.get_running_loop()
    deadline = loop.time() + 10.0
    while spawns < 2 and loop.time() < deadline:
        await asyncio.sleep(0.05)
    await player.halt()

    assert spawns >= 2
