"""
Scenario runner for timewarp.

Responsibilities:

- Load a timer scenario from YAML
- Drive a Clock through the scenario's timeline deterministically
- Hand one event per clock action to the EventBus

A scenario looks like this:

    id: sunday-morning
    origin: "2024-02-11T00:00:00+00:00"
    timers:
      A: {delay: 600, repeat: true}
      B: {delay: 900}
    timeline:
      - {t: "09:55", action: add, timer: A}
      - {t: "10:00", action: add, timer: B}
      - {t: "10:14", action: set}
      - {t: "10:20", action: cancel, timer: A}
      - {t: "10:30", action: change, to: "10:00", speed: 2}

Timeline times are seconds after the origin, or "HH:MM[:SS]" strings on
the origin's date. Quote them: YAML reads a bare 10:14 as the number 614.
"""

import logging
from datetime import UTC, date, datetime, time, timedelta
from pathlib import Path
from typing import Any

import yaml

from timewarp.engine.clock import Clock
from timewarp.engine.event_bus import EventBus
from timewarp.engine.reference import ManualReference
from timewarp.engine.timer import Timer
from timewarp.engine.transform import EPOCH

logger = logging.getLogger(__name__)

ACTIONS = ("add", "set", "cancel", "remove", "change")
TIMER_ACTIONS = ("add", "cancel", "remove")


def parse_origin(value: Any) -> datetime:
    """
    Turn a scenario 'origin' into an aware datetime. Naive values are
    taken to be UTC.
    """
    if value is None:
        return EPOCH
    if isinstance(value, datetime):
        origin = value
    elif isinstance(value, date):
        origin = datetime.combine(value, time())
    elif isinstance(value, str):
        try:
            origin = datetime.fromisoformat(value)
        except ValueError as exc:
            raise ValueError(f"Invalid scenario origin: {value!r}") from exc
    else:
        raise ValueError(f"Invalid scenario origin: {value!r}")

    if origin.tzinfo is None:
        origin = origin.replace(tzinfo=UTC)
    return origin


def parse_instant(value: Any, origin: datetime) -> datetime:
    """
    Resolve a timeline time against the scenario origin.
    """
    if isinstance(value, bool):
        raise ValueError(f"Invalid timeline time: {value!r}")
    if isinstance(value, (int, float)):
        return origin + timedelta(seconds=value)
    if isinstance(value, str):
        try:
            clock_time = time.fromisoformat(value)
        except ValueError as exc:
            raise ValueError(f"Invalid timeline time: {value!r}") from exc
        return datetime.combine(origin.date(), clock_time, tzinfo=origin.tzinfo)
    raise ValueError(f"Invalid timeline time: {value!r}")


class ScenarioRunner:
    """
    Replays a single timer scenario against a virtual clock.

    The clock reads a ManualReference that follows the timeline: each
    entry moves it to the entry's instant before the action runs, so
    clock.now() matches the last action performed.
    """

    def __init__(self, scenario_path: Path, event_bus: EventBus) -> None:
        self.scenario_path = scenario_path
        self.event_bus = event_bus
        self.scenario: dict[str, Any] = {}
        self.origin: datetime = EPOCH
        self.timers: dict[str, Timer] = {}
        self.reference = ManualReference(self.origin)
        self.clock = Clock(reference=self.reference)

    def load(self) -> None:
        """
        Load the scenario YAML from disk and validate its structure.
        """
        with self.scenario_path.open("r", encoding="utf-8") as fh:
            self.scenario = yaml.safe_load(fh)

        if not isinstance(self.scenario, dict):
            raise ValueError("Scenario file must be a YAML mapping (dict)")

        if "timeline" not in self.scenario:
            raise ValueError("Scenario is missing a 'timeline' section")

        if not isinstance(self.scenario["timeline"], list):
            raise ValueError("'timeline' must be a list of actions")

        timers = self.scenario.get("timers") or {}
        if not isinstance(timers, dict):
            raise ValueError("'timers' must be a mapping of name to timer")

        self.origin = parse_origin(self.scenario.get("origin"))
        for name, spec in timers.items():
            self._validate_timer(name, spec)
        for entry in self.scenario["timeline"]:
            self._validate_entry(entry, timers)

        self.reset()
        logger.debug(
            "Loaded scenario %s: %d timers, %d timeline entries",
            self.scenario.get("id"),
            len(self.timers),
            len(self.scenario["timeline"]),
        )

    def _validate_timer(self, name: Any, spec: Any) -> None:
        if not isinstance(name, str):
            raise ValueError(f"Timer names must be strings, got {name!r}")
        if not isinstance(spec, dict):
            raise ValueError(f"Timer {name!r} must be a mapping")
        delay = spec.get("delay")
        if isinstance(delay, bool) or not isinstance(delay, (int, float)):
            raise ValueError(f"Timer {name!r} needs a numeric 'delay' in seconds")
        if delay < 0:
            raise ValueError(f"Timer {name!r} has a negative delay")
        repeat = spec.get("repeat", False)
        if not isinstance(repeat, bool):
            raise ValueError(
                f"Timer {name!r} has a non-boolean 'repeat': {repeat!r}"
            )
        if repeat and delay == 0:
            raise ValueError(f"Repeating timer {name!r} needs a positive delay")

    def _validate_entry(self, entry: Any, timers: dict[str, Any]) -> None:
        if not isinstance(entry, dict):
            raise ValueError("Each timeline entry must be a mapping")

        action = entry.get("action")
        if action not in ACTIONS:
            raise ValueError(f"Unknown timeline action: {action!r}")

        parse_instant(entry.get("t", 0), self.origin)

        if action in TIMER_ACTIONS and entry.get("timer") not in timers:
            raise ValueError(
                f"Timeline action {action!r} refers to unknown timer "
                f"{entry.get('timer')!r}"
            )

        if action == "change":
            if "to" not in entry:
                raise ValueError("A 'change' action needs a 'to' time")
            parse_instant(entry["to"], self.origin)
            speed = entry.get("speed", 1)
            if isinstance(speed, bool) or not isinstance(speed, (int, float)):
                raise ValueError(f"Invalid speed: {speed!r}")

    def run(self, close_bus: bool = False) -> None:
        """
        Run the scenario from start to finish.

        Args:
            close_bus: whether to close the EventBus after execution
                       (use False if running multiple scenarios in one session)
        """
        timeline: list[dict[str, Any]] = sorted(
            self.scenario.get("timeline", []),
            key=lambda e: parse_instant(e.get("t", 0), self.origin),
        )

        for entry in timeline:
            event = self._perform(entry)
            self.event_bus.publish(event)

        if close_bus:
            self.event_bus.close()

    def _perform(self, entry: dict[str, Any]) -> dict[str, Any]:
        action = entry["action"]
        instant = parse_instant(entry.get("t", 0), self.origin)
        self.reference.set(instant)
        event: dict[str, Any] = {
            "timestamp": instant.isoformat(),
            "scenario_id": self.scenario.get("id"),
            "action": action,
        }

        if action == "add":
            snooze = self.clock.add(instant, self.timers[entry["timer"]])
            event.update(timer=entry["timer"], snooze=snooze.total_seconds())

        elif action == "set":
            result = self.clock.set(instant)
            event.update(
                elapsed=[self.name_of(timer) for timer in result.elapsed],
                snooze=result.snooze.total_seconds(),
            )

        elif action == "cancel":
            self.timers[entry["timer"]].cancel()
            event.update(timer=entry["timer"])

        elif action == "remove":
            self.clock.remove(self.timers[entry["timer"]])
            event.update(timer=entry["timer"])

        elif action == "change":
            target = parse_instant(entry["to"], self.origin)
            speed = float(entry.get("speed", 1))
            self.clock.change(instant, target, speed)
            event.update(to=target.isoformat(), speed=speed)

        logger.debug("Performed %s at %s", action, event["timestamp"])
        return event

    def name_of(self, timer: Timer) -> str:
        for name, candidate in self.timers.items():
            if candidate is timer:
                return name
        raise KeyError(f"Timer {timer!r} does not belong to this scenario")

    def reset(self) -> None:
        """
        Rebuild the clock and the scenario's timers.
        """
        self.reference = ManualReference(self.origin)
        self.clock = Clock(reference=self.reference)
        self.timers = {
            name: Timer(
                delay=timedelta(seconds=spec["delay"]),
                repeats=spec.get("repeat", False),
            )
            for name, spec in (self.scenario.get("timers") or {}).items()
        }
        # Do not automatically clear event bus; let caller decide
