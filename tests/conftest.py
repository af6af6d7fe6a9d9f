"""Test configuration and fixtures."""

import sys
from dataclasses import dataclass
from datetime import UTC, date, datetime, time, timedelta
from pathlib import Path
from unittest.mock import Mock

import pytest

# Add project root to Python path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from timewarp.engine.clock import Clock  # noqa: E402
from timewarp.engine.timer import Timer  # noqa: E402


class Day:
    """A calendar day on which tests name instants by "HH:MM"."""

    def __init__(self, day: date) -> None:
        self.day = day

    def at(self, hhmm: str) -> datetime:
        return datetime.combine(self.day, time.fromisoformat(hhmm), tzinfo=UTC)


@dataclass(eq=False)
class Mix:
    """
    A static mix of timers for a Sunday morning from 10:00 onwards.

    10:00      10        20        30        40        50       11:00
      o----o----o----o----o----o----o----o----o----o----o----o----o
           A         A         A         A         A         A
                     B              C              D
    """

    A: Timer
    B: Timer
    C: Timer
    D: Timer

    def names(self, timers) -> str:
        lookup = {id(self.A): "A", id(self.B): "B", id(self.C): "C", id(self.D): "D"}
        return "".join(lookup[id(t)] for t in timers)


@pytest.fixture
def sun() -> Day:
    return Day(date(2024, 2, 11))


@pytest.fixture
def mix() -> Mix:
    return Mix(
        A=Timer(timedelta(minutes=10), repeats=True),
        B=Timer(timedelta(minutes=15)),
        C=Timer(timedelta(minutes=30)),
        D=Timer(timedelta(minutes=45)),
    )


@pytest.fixture
def prepared_clock(sun, mix) -> Clock:
    """A clock with B, C and D added at 10:00 and A added at 09:55."""
    clock = Clock()
    clock.add(sun.at("10:00"), mix.B)
    clock.add(sun.at("10:00"), mix.C)
    clock.add(sun.at("10:00"), mix.D)
    clock.add(sun.at("09:55"), mix.A)
    return clock


@pytest.fixture
def mock_event_bus(monkeypatch):
    """Mock EventBus for CLI tests."""
    mock_bus = Mock()
    monkeypatch.setattr("timewarp.cli.EventBus", lambda: mock_bus)
    return mock_bus


@pytest.fixture
def mock_scenario_runner(monkeypatch):
    """Mock ScenarioRunner with default configuration."""
    mock_runner = Mock()
    mock_runner.scenario = {"id": "test_scenario"}
    monkeypatch.setattr(
        "timewarp.cli.ScenarioRunner", lambda scenario_path, event_bus: mock_runner
    )
    return mock_runner


@pytest.fixture
def sunday_scenario(tmp_path) -> Path:
    """The Sunday-morning walkthrough as a scenario file."""
    path = tmp_path / "sunday.yaml"
    path.write_text(
        """
id: sunday-morning
origin: "2024-02-11T00:00:00+00:00"
timers:
  A: {delay: 600, repeat: true}
  B: {delay: 900}
  C: {delay: 1800}
  D: {delay: 2700}
timeline:
  - {t: "10:00", action: add, timer: B}
  - {t: "10:00", action: add, timer: C}
  - {t: "10:00", action: add, timer: D}
  - {t: "09:55", action: add, timer: A}
  - {t: "10:14", action: set}
  - {t: "10:20", action: set}
  - {t: "10:24", action: set}
  - {t: "10:29", action: set}
  - {t: "10:34", action: set}
  - {t: "10:50", action: set}
""",
        encoding="utf-8",
    )
    return path
