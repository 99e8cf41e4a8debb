"""Schedule loading and the engine facade."""

from comensales.application.schedule.engine import ScheduleEngine, WeekView
from comensales.application.schedule.tracker import GridRequestTracker

__all__ = [
    "GridRequestTracker",
    "ScheduleEngine",
    "WeekView",
]
