"""
Notification Simulator

SIMULATED SMS delivery for local development and demos.
No messages leave the process; each one is logged and kept in a short
in-memory outbox for inspection.
"""

from collections import deque
from typing import Deque, Dict
import logging

from .base import NotificationSink, new_report_message

logger = logging.getLogger(__name__)


class SimulatedNotificationSink(NotificationSink):
    name = "simulator"

    def __init__(self, admin_phone: str = "admin", outbox_size: int = 100):
        self.admin_phone = admin_phone
        self.outbox: Deque[Dict] = deque(maxlen=outbox_size)

    def send_sms(self, phone: str, body: str) -> bool:
        self.outbox.append({"to": phone, "body": body})
        # Bodies may carry OTP codes; keep them out of INFO logs
        logger.info(f"[SIMULATED SMS] to={phone}")
        logger.debug(f"[SIMULATED SMS] body={body!r}")
        return True

    def notify_new_report(self, summary: Dict) -> None:
        self.send_sms(self.admin_phone, new_report_message(summary))
