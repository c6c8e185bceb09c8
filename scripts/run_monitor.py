#!/usr/bin/env python3
"""Run speed monitoring cycles from the command line.

Acts as the external trigger: runs one cycle per subject, optionally
repeating every ``--interval`` seconds. Rescheduling stops for a subject
once a cycle ends fatally (missing location permission).

Configuration comes from ``SPEEDGUARD_*`` environment variables; see
:class:`speedguard.config.MonitorConfig`.
"""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
from pathlib import Path

_repo = Path(__file__).resolve().parent.parent
_src = _repo / "src"
if _src.is_dir():
    sys.path.insert(0, str(_src))

from speedguard import CycleOutcome, MonitorConfig, OutcomeStatus, SpeedMonitor  # noqa: E402
from speedguard._mqtt import MqttNotificationSink, MqttRuntime  # noqa: E402


def _parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description=__doc__, formatter_class=argparse.RawDescriptionHelpFormatter)
    parser.add_argument("subjects", nargs="+", help="Subject identifiers to monitor (e.g. renter_123)")
    parser.add_argument("--interval", type=float, default=0.0, help="Seconds between cycles; 0 runs once")
    parser.add_argument("--mqtt-display", action="store_true", help="Publish notifications to the MQTT display topic")
    parser.add_argument("--json", action="store_true", help="Print each outcome as JSON")
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable DEBUG logging")
    return parser.parse_args(argv)


def _print_outcome(outcome: CycleOutcome, as_json: bool) -> None:
    if as_json:
        payload = outcome.model_dump(mode="json")
        payload["status"] = str(outcome.status)
        print(json.dumps(payload, indent=2))
        return
    speed = f"{outcome.sample.speed_kmh:.1f} km/h" if outcome.sample else "-"
    limit = f"{outcome.limit.kmh:.1f} km/h" if outcome.limit else "-"
    print(f"{outcome.subject}: {outcome.status} state={outcome.state} speed={speed} limit={limit}")
    if outcome.reason:
        print(f"  {outcome.reason}")


async def _main(args: argparse.Namespace) -> int:
    config = MonitorConfig.from_env()
    display_runtime: MqttRuntime | None = None
    notifier = None
    if args.mqtt_display:
        display_runtime = MqttRuntime(config.mqtt, client_id="speedguard-display")
        notifier = MqttNotificationSink(display_runtime, config.mqtt.display_topic)

    active = list(dict.fromkeys(args.subjects))
    exit_code = 0
    try:
        async with SpeedMonitor(config, notifier=notifier) as monitor:
            while active:
                outcomes = await asyncio.gather(*(monitor.run(subject) for subject in active))
                for outcome in outcomes:
                    _print_outcome(outcome, args.json)
                    if outcome.status == OutcomeStatus.FATAL:
                        exit_code = 2
                        active.remove(outcome.subject)
                    elif outcome.status == OutcomeStatus.PARTIAL_FAILURE and exit_code == 0:
                        exit_code = 1
                if args.interval <= 0:
                    break
                await asyncio.sleep(args.interval)
    finally:
        if display_runtime is not None:
            display_runtime.stop()
    return exit_code


def main(argv: list[str] | None = None) -> int:
    args = _parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    try:
        return asyncio.run(_main(args))
    except KeyboardInterrupt:
        return 130


if __name__ == "__main__":
    raise SystemExit(main())
