# timewarp/output/__init__.py
from .base import Adapter
from .timeline_adapter import TimelineAdapter, write_timeline_log

__all__ = [
    "Adapter",
    "TimelineAdapter",
    "write_timeline_log",
]
