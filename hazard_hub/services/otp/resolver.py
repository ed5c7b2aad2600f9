import logging
from typing import Callable, Optional

from hazard_hub.core.settings import Settings
from .base import OtpProvider
from .local_provider import LocalOtpProvider
from .twilio_provider import TwilioVerifyProvider

logger = logging.getLogger(__name__)


def build_otp_provider(
    settings: Settings,
    db,
    send_sms: Optional[Callable[[str, str], bool]] = None,
) -> OtpProvider:
    """
    Resolve the OTP provider based on settings.

    Rules:
    - OTP_PROVIDER='twilio' with TWILIO_SID, TWILIO_TOKEN and TWILIO_VERIFY_SID set: Twilio Verify.
    - Anything else: local Firestore-backed provider delivering via send_sms.
    """
    provider_name = (settings.OTP_PROVIDER or "local").lower()

    if provider_name == "twilio":
        if settings.twilio_configured and settings.TWILIO_VERIFY_SID:
            logger.info("OTP provider initialized: twilio")
            return TwilioVerifyProvider(
                account_sid=settings.TWILIO_SID,
                auth_token=settings.TWILIO_TOKEN,
                service_sid=settings.TWILIO_VERIFY_SID,
                timeout=settings.HTTP_TIMEOUT_SECONDS,
            )
        logger.warning("OTP_PROVIDER=twilio but Twilio Verify is not configured. Falling back to local provider.")

    logger.info("OTP provider initialized: local")
    return LocalOtpProvider(
        db=db,
        send_sms=send_sms,
        code_length=settings.OTP_LENGTH,
        expiry_minutes=settings.OTP_EXPIRY_MINUTES,
        max_attempts=settings.OTP_MAX_ATTEMPTS,
        test_phone_number=settings.TEST_PHONE_NUMBER,
        test_code=settings.TEST_OTP,
    )
