#!/usr/bin/env python3
"""Watch Tasmota devices on an MQTT broker.

Connects with settings from the environment, subscribes to the given
device topics on every (re)connect and prints each projection change.

Usage
-----
::

    export TASMOTA_MQTT_HOST="broker.local"
    export TASMOTA_MQTT_USERNAME="user"
    export TASMOTA_MQTT_PASSWORD="secret"
    python scripts/tasmota_watch.py sonoff-dapur sonoff-kamar

Options::

    --inspect TOPIC     Also open a configuration session for TOPIC
    --page PAGE         Config page to enter after opening (module, timers ...)
    --duration SECS     Stop after SECS seconds (default: run until Ctrl+C)
    --verbose / -v      Enable debug logging
"""

from __future__ import annotations

import argparse
import asyncio
import contextlib
import logging
import signal
import sys
from pathlib import Path

# Allow running from the repo root without installing the package.
_repo = Path(__file__).resolve().parent.parent
_src = _repo / "src"
if _src.is_dir():
    sys.path.insert(0, str(_src))

from pytasmota import (  # noqa: E402
    ConfigPage,
    ConfigSession,
    ConnectionSettings,
    ConnectionState,
    DeviceProjection,
    TasmotaClient,
    TasmotaError,
    TasmotaTransportError,
)

_LOG = logging.getLogger("tasmota_watch")


def _parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Watch Tasmota devices over MQTT.")
    parser.add_argument("topics", nargs="+", help="Device topics to subscribe to.")
    parser.add_argument("--inspect", metavar="TOPIC", help="Open a configuration session for TOPIC.")
    parser.add_argument(
        "--page",
        choices=[page.value for page in ConfigPage],
        default=None,
        help="Config page to enter once the session is open.",
    )
    parser.add_argument(
        "--duration",
        type=float,
        default=0,
        help="Maximum runtime in seconds (0 = run until Ctrl+C).",
    )
    parser.add_argument("--verbose", "-v", action="store_true", help="Enable debug logs.")
    return parser.parse_args()


def _format_projection(topic: str, device: DeviceProjection) -> str:
    online = "online" if device.is_online else "offline"
    parts = [f"[{topic}] {device.status.value} ({online})"]
    for label, value in (
        ("ip", device.ip_address),
        ("rssi", device.rssi),
        ("module", device.module),
        ("fw", device.version),
        ("power", device.power),
        ("temp", device.temperature),
        ("hum", device.humidity),
    ):
        if value is not None:
            parts.append(f"{label}={value}")
    return " ".join(parts)


def _print_session(topic: str, session: ConfigSession) -> None:
    print(f"[{topic}] config module={session.module_id} name={session.module_name}")
    for pin, function in sorted(session.gpio.items()):
        print(f"[{topic}]   GPIO{pin}: {function.code} {function.name or ''}".rstrip())
    for index, timer in sorted(session.timers.items()):
        print(f"[{topic}]   Timer{index}: {timer.to_payload()}")
    device_now = session.device_now()
    if device_now is not None:
        print(f"[{topic}]   device clock: {device_now.isoformat(timespec='seconds')}")


async def _run(args: argparse.Namespace) -> int:
    settings = ConnectionSettings.from_env()
    stop = asyncio.Event()

    client: TasmotaClient

    def on_connection_change(state: ConnectionState) -> None:
        print(f"[watch] connection: {state.value}")
        if state == ConnectionState.CONNECTED:
            for topic in args.topics:
                client.subscribe(topic)

    def on_error(error: TasmotaTransportError) -> None:
        print(f"[watch] error: {error}")

    def on_state_change(topic: str, device: DeviceProjection) -> None:
        print(_format_projection(topic, device))

    client = TasmotaClient(
        on_state_change=on_state_change,
        on_connection_change=on_connection_change,
        on_error=on_error,
        on_config_change=_print_session,
    )

    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        with contextlib.suppress(NotImplementedError):
            loop.add_signal_handler(sig, stop.set)

    async with client:
        print(f"[watch] connecting to {settings.url}")
        await client.connect(settings)
        if args.inspect:
            inspector = client.open_inspector(args.inspect)
            if args.page:
                inspector.navigate(args.page)
        if args.duration > 0:
            with contextlib.suppress(TimeoutError):
                await asyncio.wait_for(stop.wait(), args.duration)
        else:
            await stop.wait()
    return 0


def main() -> int:
    args = _parse_args()
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    try:
        return asyncio.run(_run(args))
    except TasmotaError as exc:
        _LOG.error("%s", exc)
        return 2


if __name__ == "__main__":
    raise SystemExit(main())
