"""
Local OTP provider - generate, store, and verify codes in Firestore.
"""

from datetime import datetime, timedelta, timezone
from typing import Callable, Optional
import hashlib
import hmac
import logging
import secrets

from google.api_core.exceptions import FailedPrecondition

from hazard_hub.core.errors import UpstreamFailure
from hazard_hub.utils.firestore_helpers import to_datetime, where_filter

from .base import OtpProvider, OtpStatus

logger = logging.getLogger(__name__)

OTP_COLLECTION = "otp_challenges"


def _hash_code(phone: str, code: str) -> str:
    return hashlib.sha256(f"{phone}:{code}".encode()).hexdigest()


class LocalOtpProvider(OtpProvider):
    """
    OTP challenges stored in Firestore with an expiry and an attempt budget.

    Only a hash of each code is stored. Delivery goes through ``send_sms``
    (phone, body) -> bool; without one the code is logged at DEBUG for local
    development.
    """

    name = "local"

    def __init__(
        self,
        db,
        send_sms: Optional[Callable[[str, str], bool]] = None,
        code_length: int = 6,
        expiry_minutes: int = 5,
        max_attempts: int = 3,
        max_write_attempts: int = 5,
        test_phone_number: Optional[str] = None,
        test_code: Optional[str] = None,
        clock: Callable[[], datetime] = lambda: datetime.now(timezone.utc),
    ):
        self.db = db
        self.send_sms = send_sms
        self.code_length = code_length
        self.expiry_minutes = expiry_minutes
        self.max_attempts = max_attempts
        self.max_write_attempts = max_write_attempts
        self.test_phone_number = test_phone_number
        self.test_code = test_code
        self.clock = clock

    def generate_code(self) -> str:
        return "".join(secrets.choice("0123456789") for _ in range(self.code_length))

    def request_code(self, phone: str) -> OtpStatus:
        if self._is_test_number(phone):
            logger.info(f"Test phone number detected: {phone}, fixed OTP accepted")
            return OtpStatus.PENDING

        code = self.generate_code()
        now = self.clock()

        try:
            # A new challenge supersedes any earlier pending one
            self._expire_pending(phone)
            self.db.collection(OTP_COLLECTION).document().set({
                "phone": phone,
                "code_hash": _hash_code(phone, code),
                "status": OtpStatus.PENDING.value,
                "attempts": 0,
                "created_at": now,
                "expires_at": now + timedelta(minutes=self.expiry_minutes),
            })
        except Exception as e:
            logger.error(f"Failed to store OTP challenge: {e}", exc_info=True)
            raise UpstreamFailure(f"OTP store write failed: {e}") from e

        body = f"Your Hazard Alert Hub verification code is {code}"
        if self.send_sms is None:
            logger.debug(f"OTP for {phone}: {code} (no SMS sender configured)")
            return OtpStatus.PENDING

        if not self.send_sms(phone, body):
            logger.warning(f"OTP delivery failed for {phone}")
            return OtpStatus.FAILED
        return OtpStatus.PENDING

    def check_code(self, phone: str, code: str) -> OtpStatus:
        if self._is_test_number(phone):
            return OtpStatus.APPROVED if code == self.test_code else OtpStatus.REJECTED

        try:
            return self._check_latest_challenge(phone, code)
        except Exception as e:
            logger.error(f"Failed to verify OTP: {e}", exc_info=True)
            raise UpstreamFailure(f"OTP store read failed: {e}") from e

    def _check_latest_challenge(self, phone: str, code: str) -> OtpStatus:
        # Each write carries the snapshot's update time, so concurrent checks
        # on one challenge serialize and every guess is counted
        for _ in range(self.max_write_attempts):
            query = where_filter(self.db.collection(OTP_COLLECTION), "phone", "==", phone)
            query = where_filter(query, "status", "==", OtpStatus.PENDING.value)
            docs = list(query.stream())
            if not docs:
                return OtpStatus.EXPIRED

            doc = max(docs, key=lambda d: to_datetime(d.to_dict().get("created_at")))
            challenge = doc.to_dict()
            option = self.db.write_option(last_update_time=doc.update_time)

            if to_datetime(challenge.get("expires_at")) < self.clock():
                status, update = OtpStatus.EXPIRED, {"status": OtpStatus.EXPIRED.value}
            else:
                attempts = challenge.get("attempts", 0) + 1
                if hmac.compare_digest(challenge.get("code_hash", ""), _hash_code(phone, code)):
                    status = OtpStatus.APPROVED
                    update = {
                        "status": OtpStatus.APPROVED.value,
                        "attempts": attempts,
                        "approved_at": self.clock(),
                    }
                else:
                    status, update = OtpStatus.REJECTED, {"attempts": attempts}
                    if attempts >= self.max_attempts:
                        # Attempt budget spent; a new code must be requested
                        update["status"] = OtpStatus.EXPIRED.value

            try:
                doc.reference.update(update, option=option)
            except FailedPrecondition:
                logger.info(f"Concurrent OTP check for {phone}, re-reading challenge")
                continue

            if status == OtpStatus.APPROVED:
                logger.info(f"OTP verified successfully for {phone}")
            return status

        logger.warning(f"OTP check for {phone} kept colliding with concurrent checks")
        return OtpStatus.REJECTED

    def _expire_pending(self, phone: str):
        query = where_filter(self.db.collection(OTP_COLLECTION), "phone", "==", phone)
        query = where_filter(query, "status", "==", OtpStatus.PENDING.value)
        for doc in query.stream():
            doc.reference.update({"status": OtpStatus.EXPIRED.value})

    def _is_test_number(self, phone: str) -> bool:
        return bool(self.test_phone_number and self.test_code and phone == self.test_phone_number)
