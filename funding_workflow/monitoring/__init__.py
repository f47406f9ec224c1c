"""Monitoring dashboard statistics and periodic refresh."""

from .aggregator import compute_snapshot, detect_risks, recent_updates, success_rate
from .poller import MonitoringPoller

__all__ = [
    "compute_snapshot",
    "detect_risks",
    "recent_updates",
    "success_rate",
    "MonitoringPoller",
]
