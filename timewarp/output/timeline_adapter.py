# timewarp/output/timeline_adapter.py
from __future__ import annotations
from datetime import datetime
from pathlib import Path
from typing import Iterable
import sys

from .base import Adapter


class TimelineAdapter(Adapter):
    """Render scenario replay events as one log line per clock action."""

    TIMESTAMP_FORMAT = "%b %d %H:%M:%S"

    def transform(self, event: dict) -> Iterable[str]:
        action = event.get("action")
        if action is None:
            return []

        ts = event.get("timestamp")
        ts_str = datetime.fromisoformat(ts).strftime(self.TIMESTAMP_FORMAT) if ts else "-"
        scenario = event.get("scenario_id") or "scenario"
        prefix = f"{ts_str} {scenario}"

        if action == "set":
            elapsed = ",".join(event.get("elapsed", [])) or "-"
            return [f"{prefix} SET elapsed={elapsed} snooze={event.get('snooze', 0):g}s"]

        if action == "add":
            return [f"{prefix} ADD {event.get('timer')} snooze={event.get('snooze', 0):g}s"]

        if action in ("cancel", "remove"):
            return [f"{prefix} {action.upper()} {event.get('timer')}"]

        if action == "change":
            to = datetime.fromisoformat(event["to"]).strftime(self.TIMESTAMP_FORMAT)
            return [f"{prefix} CHANGE to={to} speed={event.get('speed', 1):g}"]

        return []


def write_timeline_log(events: Iterable[dict], output_file_path: str | Path) -> None:
    adapter = TimelineAdapter()
    output_file = Path(output_file_path)
    output_file.parent.mkdir(parents=True, exist_ok=True)
    with output_file.open("w", encoding="utf-8") as f:
        for event in events:
            try:
                for line in adapter.transform(event):
                    if line:
                        f.write(line + "\n")
            except (KeyError, TypeError, ValueError) as e:
                print(f"Warning: failed to transform event {event}: {e}", file=sys.stderr)
