"""Audible alarm boundary.

The monitor asks an :class:`AlarmSink` to start on fire onset and stop on
fire clear. Calls are fire-and-forget from the monitor's point of view, so
sinks must be idempotent: stopping an idle alarm is a no-op and starting a
playing alarm restarts it from the beginning. :class:`IdempotentAlarm`
provides those semantics on top of a bare :class:`AlarmPlayer`.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
from collections.abc import Sequence
from typing import Protocol

from forestwatch.exceptions import AlarmSinkError

_logger = logging.getLogger(__name__)

# Gap between two plays of the sound.
_DEFAULT_REPLAY_PAUSE = 0.5
# A player failing faster than this is broken, not finished.
_FAIL_WINDOW = 2.0


class AlarmSink(Protocol):
    """Structural alarm interface consumed by the monitor."""

    async def start(self) -> None: ...

    async def stop(self) -> None: ...


class AlarmPlayer(Protocol):
    """Something that can loop a sound from position zero and halt it."""

    async def play(self) -> None: ...

    async def halt(self) -> None: ...


class IdempotentAlarm:
    """Single alarm session with idempotent start/stop.

    Requests are applied in call order under a lock, so a stop issued while
    a previous start is still setting up takes effect after it.
    """

    def __init__(self, player: AlarmPlayer) -> None:
        self._player = player
        self._lock = asyncio.Lock()
        self._playing = False

    @property
    def is_playing(self) -> bool:
        return self._playing

    async def start(self) -> None:
        async with self._lock:
            if self._playing:
                _logger.debug("Alarm already playing; restarting from the beginning")
                await self._player.halt()
                self._playing = False
            await self._player.play()
            self._playing = True
            _logger.info("Alarm started")

    async def stop(self) -> None:
        async with self._lock:
            if not self._playing:
                _logger.debug("Alarm stop requested while idle; ignoring")
                return
            # Whatever halt() does, the session is over.
            self._playing = False
            await self._player.halt()
            _logger.info("Alarm stopped")


class SubprocessPlayer:
    """Loop an external player command (e.g. ``aplay alarm.wav``) until halted."""

    def __init__(
        self,
        command: Sequence[str],
        *,
        pause: float = _DEFAULT_REPLAY_PAUSE,
        fail_window: float = _FAIL_WINDOW,
    ) -> None:
        if not command:
            raise ValueError("command must not be empty")
        self._command = tuple(command)
        self._pause = pause
        self._fail_window = fail_window
        self._started_at = 0.0
        self._task: asyncio.Task[None] | None = None
        self._process: asyncio.subprocess.Process | None = None

    async def _spawn(self) -> asyncio.subprocess.Process:
        try:
            process = await asyncio.create_subprocess_exec(
                *self._command,
                stdout=asyncio.subprocess.DEVNULL,
                stderr=asyncio.subprocess.DEVNULL,
            )
        except OSError as exc:
            raise AlarmSinkError(f"Cannot run alarm command {self._command[0]!r}: {exc}") from exc
        self._process = process
        self._started_at = asyncio.get_running_loop().time()
        return process

    async def _loop(self, first: asyncio.subprocess.Process) -> None:
        process = first
        while True:
            returncode = await process.wait()
            ran_for = asyncio.get_running_loop().time() - self._started_at
            if returncode != 0 and ran_for < self._fail_window:
                _logger.warning(
                    "Alarm loop stopped: %r exited with status %s after %.2fs",
                    self._command[0],
                    returncode,
                    ran_for,
                )
                return
            if self._pause > 0:
                await asyncio.sleep(self._pause)
            try:
                process = await self._spawn()
            except AlarmSinkError:
                _logger.warning("Alarm loop stopped: player could not be restarted", exc_info=True)
                return

    async def play(self) -> None:
        first = await self._spawn()
        self._task = asyncio.get_running_loop().create_task(self._loop(first))

    async def halt(self) -> None:
        task = self._task
        self._task = None
        if task is not None:
            task.cancel()
            with contextlib.suppress(asyncio.CancelledError, AlarmSinkError):
                await task

        process = self._process
        self._process = None
        if process is not None and process.returncode is None:
            with contextlib.suppress(ProcessLookupError):
                process.terminate()
            await process.wait()


class LoggingAlarm:
    """Alarm sink that only logs; used when no player is configured."""

    def __init__(self, logger: logging.Logger | None = None) -> None:
        self._logger = logger or _logger
        self.active = False

    async def start(self) -> None:
        self.active = True
        self._logger.warning("ALARM: fire alarm sounding")

    async def stop(self) -> None:
        if not self.active:
            return
        self.active = False
        self._logger.warning("ALARM: fire alarm silenced")
