import logging
from typing import Dict, Optional

import requests

from .base import NotificationSink, new_report_message

logger = logging.getLogger(__name__)


class TwilioSmsSink(NotificationSink):
    """
    SMS alerts through the Twilio Messages REST API.

    - Uses a strict request timeout.
    - Never raises from send_sms; failures are logged and reported as False.
    """

    name = "twilio"
    BASE_URL = "https://api.twilio.com/2010-04-01/Accounts"

    def __init__(
        self,
        account_sid: str,
        auth_token: str,
        from_phone: str,
        admin_phone: Optional[str] = None,
        timeout: float = 5.0,
    ):
        self.account_sid = account_sid
        self.auth_token = auth_token
        self.from_phone = from_phone
        self.admin_phone = admin_phone
        self.timeout = timeout

    def send_sms(self, phone: str, body: str) -> bool:
        url = f"{self.BASE_URL}/{self.account_sid}/Messages.json"
        try:
            resp = requests.post(
                url,
                data={"To": phone, "From": self.from_phone, "Body": body},
                auth=(self.account_sid, self.auth_token),
                timeout=self.timeout,
            )
        except requests.RequestException as e:
            logger.error(f"Failed to send SMS to {phone}: {e}")
            return False

        if resp.status_code >= 400:
            logger.error(f"Twilio rejected SMS to {phone} (status {resp.status_code}): {resp.text[:200]}")
            return False

        try:
            sid = resp.json().get("sid")
        except ValueError:
            sid = None
        logger.info(f"SMS sent to {phone}: {sid}")
        return True

    def notify_new_report(self, summary: Dict) -> None:
        if not self.admin_phone:
            logger.info("ADMIN_PHONE_NUMBER not configured. Skipping admin SMS.")
            return
        if not self.send_sms(self.admin_phone, new_report_message(summary)):
            raise RuntimeError(f"Admin SMS for report {summary.get('report_id')} was not delivered")
