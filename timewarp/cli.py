# timewarp/cli.py

from __future__ import annotations
import argparse
import json
import logging
import signal
import sys
from pathlib import Path
from typing import Any, List

import yaml

from timewarp.engine.event_bus import EventBus
from timewarp.engine.scenario_runner import ScenarioRunner
from timewarp.output.timeline_adapter import TimelineAdapter


def main(argv: list[str] | None = None) -> int | None:
    parser = argparse.ArgumentParser(
        prog="timewarp.cli",
        description="Replay a timer scenario against a virtual clock",
        formatter_class=argparse.ArgumentDefaultsHelpFormatter,
    )
    parser.add_argument(
        "scenario",
        type=Path,
        help="Path to the scenario YAML file",
    )
    parser.add_argument(
        "--output",
        choices=["cli", "json"],
        default="cli",
        help="Output mode: 'cli' prints lines to stdout; 'json' dumps events to a JSON file",
    )
    parser.add_argument(
        "--json-file",
        type=Path,
        default=Path("timeline_output.json"),
        help="Path to JSON output file if --output=json",
    )
    parser.add_argument(
        "--verbose",
        action="store_true",
        help="Log clock internals to stderr",
    )

    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )

    if not args.scenario.exists():
        print(f"Scenario file not found: {args.scenario}", file=sys.stderr)
        return 1

    event_bus = EventBus()
    adapter = TimelineAdapter()

    records: List[dict[str, Any]] = []

    def handle_event(event: dict[str, Any]) -> None:
        for line in adapter.transform(event):
            if not line:
                continue

            records.append({"line": line, "event": event})

            if args.output == "cli":
                print(line)

    event_bus.subscribe(handle_event)

    runner = ScenarioRunner(scenario_path=args.scenario, event_bus=event_bus)

    try:
        runner.load()
    except (OSError, ValueError, yaml.YAMLError) as exc:
        print(f"Failed to load scenario: {exc}", file=sys.stderr)
        return 2

    try:
        runner.run(close_bus=True)
    except Exception as exc:
        print(f"Replay failed: {exc}", file=sys.stderr)
        return 3

    if args.output == "json":
        try:
            args.json_file.parent.mkdir(parents=True, exist_ok=True)
            with args.json_file.open("w", encoding="utf-8") as f:
                json.dump(records, f, indent=2)
            print(f"Replay JSON dumped to {args.json_file}")
        except OSError as exc:
            print(f"Failed to write JSON file: {exc}", file=sys.stderr)
            return 4

    return 0


if __name__ == "__main__":

    signal.signal(signal.SIGPIPE, signal.SIG_DFL)  # Ignore broken pipe
    sys.exit(main())
