#!/usr/bin/env python3
"""Run the hazard monitor against a live feed or a recorded replay.

Feeds:
  mqtt      subscribe to <prefix>/# on FORESTWATCH_MQTT_HOST
  firebase  stream <devices_path> from FORESTWATCH_FIREBASE_URL
  replay    push each line of an NDJSON file (one full device mapping per line)

Every alert transition is printed as one JSON line on stdout.
"""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import shlex
import signal
import sys
from pathlib import Path

# Allow running from repo root without installing the package.
_repo = Path(__file__).resolve().parent.parent
_src = _repo / "src"
if _src.is_dir():
    sys.path.insert(0, str(_src))

from forestwatch import (  # noqa: E402
    AlertEvent,
    Connectivity,
    ForestWatchConfig,
    ForestWatchError,
    HazardMonitor,
    IdempotentAlarm,
    LoggingAlarm,
    ManualFeed,
    SubprocessPlayer,
)
from forestwatch.alarm import AlarmSink  # noqa: E402

_LOG = logging.getLogger("forestwatch.monitor_cli")


def _parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Forest hazard monitor.",
        formatter_class=argparse.ArgumentDefaultsHelpFormatter,
    )
    parser.add_argument("--feed", choices=("mqtt", "firebase", "replay"), default="mqtt", help="Feed to monitor.")
    parser.add_argument("--replay-file", type=Path, help="NDJSON file for --feed replay.")
    parser.add_argument(
        "--replay-interval",
        type=float,
        default=0.0,
        help="Seconds to wait between replayed updates.",
    )
    parser.add_argument(
        "--alarm-command",
        type=str,
        default="",
        help="Player command looped while a fire alarm is active, e.g. 'aplay alarm.wav'.",
    )
    parser.add_argument(
        "--duration",
        type=int,
        default=0,
        help="Maximum runtime in seconds (0 = run until Ctrl+C).",
    )
    parser.add_argument("--mqtt-username", type=str, default=None, help="MQTT username.")
    parser.add_argument("--mqtt-password", type=str, default=None, help="MQTT password.")
    parser.add_argument("--mqtt-tls", action="store_true", help="Use TLS for MQTT.")
    parser.add_argument("--debug", action="store_true", help="Enable debug logging.")
    return parser.parse_args()


def _print_event(event: AlertEvent) -> None:
    print(event.model_dump_json(), flush=True)


def _print_connectivity(state: Connectivity) -> None:
    print(json.dumps({"connectivity": state.value}), flush=True)


def _build_alarm(command: str) -> AlarmSink:
    if command:
        return IdempotentAlarm(SubprocessPlayer(shlex.split(command)))
    return LoggingAlarm(_LOG)


async def _replay(monitor: HazardMonitor, path: Path, interval: float) -> None:
    feed = ManualFeed()
    monitor.attach(feed)
    with path.open(encoding="utf-8") as handle:
        for line_no, line in enumerate(handle, start=1):
            text = line.strip()
            if not text:
                continue
            try:
                devices = json.loads(text)
            except json.JSONDecodeError:
                _LOG.warning("Skipping line %d: not JSON", line_no)
                continue
            if not isinstance(devices, dict):
                _LOG.warning("Skipping line %d: not a device mapping", line_no)
                continue
            feed.push(devices)
            if interval > 0:
                await asyncio.sleep(interval)
    await monitor.drain()


async def _run(args: argparse.Namespace) -> int:
    config = ForestWatchConfig.from_env()
    stop = asyncio.Event()

    loop = asyncio.get_running_loop()
    for signum in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(signum, stop.set)

    async with HazardMonitor(config, alarm=_build_alarm(args.alarm_command)) as monitor:
        monitor.subscribe_to_alert_events(_print_event)
        monitor.subscribe_to_connectivity(_print_connectivity)

        if args.feed == "replay":
            if args.replay_file is None:
                print("--replay-file is required with --feed replay", file=sys.stderr)
                return 2
            await _replay(monitor, args.replay_file, args.replay_interval)
            return 0

        if args.feed == "mqtt":
            from forestwatch.feed.mqtt import MqttFeed

            monitor.attach(
                MqttFeed(
                    config,
                    username=args.mqtt_username,
                    password=args.mqtt_password,
                    tls=args.mqtt_tls,
                )
            )
        else:
            from forestwatch.feed.firebase import FirebaseFeed

            monitor.attach(FirebaseFeed(config))

        try:
            if args.duration > 0:
                await asyncio.wait_for(stop.wait(), timeout=args.duration)
            else:
                await stop.wait()
        except TimeoutError:
            _LOG.info("Reached --duration=%ss, stopping.", args.duration)
    return 0


def _main() -> int:
    args = _parse_args()
    logging.basicConfig(
        level=logging.DEBUG if args.debug else logging.INFO,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )
    try:
        return asyncio.run(_run(args))
    except (ForestWatchError, ValueError) as exc:
        print(f"[monitor] {exc}", file=sys.stderr)
        return 2


if __name__ == "__main__":
    raise SystemExit(_main())
