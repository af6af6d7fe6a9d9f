"""
timewarp: a virtual clock with a timer schedule.

The engine provides:
- Clock, an affine function of a reference clock that can jump, pause
  and run at any speed
- Timer, the caller-owned record the clock schedules
- ScenarioRunner and EventBus, for replaying timer scenarios from YAML
"""

from timewarp.engine.clock import Clock, Ramifications
from timewarp.engine.event_bus import EventBus
from timewarp.engine.reference import ManualReference, SystemReference
from timewarp.engine.scenario_runner import ScenarioRunner
from timewarp.engine.schedule import Schedule
from timewarp.engine.timer import Timer
from timewarp.engine.transform import AffineTransform
