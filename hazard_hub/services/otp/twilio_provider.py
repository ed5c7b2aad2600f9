import logging
from typing import Any, Dict

import requests

from hazard_hub.core.errors import UpstreamFailure

from .base import OtpProvider, OtpStatus

logger = logging.getLogger(__name__)


class TwilioVerifyProvider(OtpProvider):
    """
    Twilio Verify v2 over its REST API.

    - Challenge state lives entirely at Twilio.
    - 4xx answers are ordinary refusals and map to a status.
    - Network errors and 5xx answers raise UpstreamFailure.
    """

    name = "twilio"
    BASE_URL = "https://verify.twilio.com/v2/Services"

    # Verification check statuses reported by Twilio
    _CHECK_STATUS = {
        "approved": OtpStatus.APPROVED,
        "pending": OtpStatus.REJECTED,  # wrong code, challenge still open
        "canceled": OtpStatus.EXPIRED,
        "expired": OtpStatus.EXPIRED,
        "max_attempts_reached": OtpStatus.EXPIRED,
    }

    def __init__(self, account_sid: str, auth_token: str, service_sid: str, timeout: float = 5.0):
        self.account_sid = account_sid
        self.auth_token = auth_token
        self.service_sid = service_sid
        self.timeout = timeout

    def request_code(self, phone: str) -> OtpStatus:
        resp = self._post("Verifications", {"To": phone, "Channel": "sms"})
        if resp.status_code >= 400:
            logger.warning(f"Twilio Verify refused to send OTP (status {resp.status_code})")
            return OtpStatus.FAILED

        data: Dict[str, Any] = resp.json()
        if data.get("status") == "pending":
            return OtpStatus.PENDING
        logger.warning(f"Twilio Verify returned unexpected status {data.get('status')!r}")
        return OtpStatus.FAILED

    def check_code(self, phone: str, code: str) -> OtpStatus:
        resp = self._post("VerificationCheck", {"To": phone, "Code": code})
        if resp.status_code == 404:
            # No open verification for this number (expired, used or never sent)
            return OtpStatus.EXPIRED
        if resp.status_code == 429:
            return OtpStatus.EXPIRED
        if resp.status_code >= 400:
            logger.warning(f"Twilio Verify check refused (status {resp.status_code})")
            return OtpStatus.REJECTED

        data: Dict[str, Any] = resp.json()
        return self._CHECK_STATUS.get(data.get("status"), OtpStatus.REJECTED)

    def _post(self, endpoint: str, form: Dict[str, str]) -> requests.Response:
        url = f"{self.BASE_URL}/{self.service_sid}/{endpoint}"
        try:
            resp = requests.post(url, data=form, auth=(self.account_sid, self.auth_token), timeout=self.timeout)
        except requests.RequestException as e:
            logger.error(f"Twilio Verify unreachable: {e}", exc_info=True)
            raise UpstreamFailure(f"Twilio Verify request failed: {e}") from e

        if resp.status_code >= 500:
            logger.error(f"Twilio Verify server error {resp.status_code}: {resp.text[:200]}")
            raise UpstreamFailure(f"Twilio Verify returned {resp.status_code}")
        return resp
