"""
Notification sinks - best-effort alerting about new reports.

Exports:
- NotificationSink: sink contract
- build_notification_sink: resolve the configured sink
"""

from .base import NotificationSink
from .resolver import build_notification_sink

__all__ = ["NotificationSink", "build_notification_sink"]
