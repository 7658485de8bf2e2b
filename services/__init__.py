"""Services package: speed filtering and the speed monitor."""

from services.speed_filter import SpeedFilter
from services.speed_monitor import SpeedMonitor

__all__ = ["SpeedFilter", "SpeedMonitor"]
