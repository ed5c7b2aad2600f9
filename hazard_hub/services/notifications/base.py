from abc import ABC, abstractmethod
from typing import Dict, Iterable
import logging

logger = logging.getLogger(__name__)


def new_report_message(summary: Dict) -> str:
    return f"New Hazard Report ({summary.get('urgency')}): {summary.get('description')}"


def mass_alert_message(summary: Dict) -> str:
    return (
        "High Urgency Alert\n"
        f"A new hazard has been reported in your area: {summary.get('description')}. Please be cautious."
    )


class NotificationSink(ABC):
    """
    Abstract side channel for alerting people about reports.

    Contract:
    - Best-effort. Callers never let a sink failure fail the operation that
      triggered it, so implementations may raise.
    - send_sms reports delivery as a bool and does not raise.
    """

    name = "base"

    @abstractmethod
    def send_sms(self, phone: str, body: str) -> bool:
        raise NotImplementedError

    @abstractmethod
    def notify_new_report(self, summary: Dict) -> None:
        """Alert the admins about a freshly submitted report."""
        raise NotImplementedError

    def send_mass_alert(self, summary: Dict, phones: Iterable[str]) -> int:
        """
        Warn nearby reporters about a high-urgency report.

        Returns:
            Number of messages accepted for delivery
        """
        unique_phones = sorted(set(phones))
        logger.info(f"Sending mass alert to {len(unique_phones)} unique numbers")
        body = mass_alert_message(summary)
        return sum(1 for phone in unique_phones if self.send_sms(phone, body))
