import logging

from hazard_hub.core.settings import Settings
from .base import NotificationSink
from .simulator import SimulatedNotificationSink
from .twilio_sms import TwilioSmsSink

logger = logging.getLogger(__name__)


def build_notification_sink(settings: Settings) -> NotificationSink:
    """
    Resolve the notification sink based on settings.

    Rules:
    - Twilio when TWILIO_SID, TWILIO_TOKEN and TWILIO_PHONE are set.
    - Otherwise the log-only simulator, so report submission keeps working.
    """
    if settings.twilio_configured and settings.TWILIO_PHONE:
        if not settings.ADMIN_PHONE_NUMBER:
            logger.warning("ADMIN_PHONE_NUMBER is not set; new-report SMS will be skipped")
        logger.info("Notification sink initialized: twilio")
        return TwilioSmsSink(
            account_sid=settings.TWILIO_SID,
            auth_token=settings.TWILIO_TOKEN,
            from_phone=settings.TWILIO_PHONE,
            admin_phone=settings.ADMIN_PHONE_NUMBER,
            timeout=settings.HTTP_TIMEOUT_SECONDS,
        )

    logger.warning("Twilio messaging is not fully configured. Using simulated SMS delivery.")
    return SimulatedNotificationSink(admin_phone=settings.ADMIN_PHONE_NUMBER or "admin")
