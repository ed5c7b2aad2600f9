"""
Service wiring.

Every collaborator is constructed once at process start and handed to the
components that need it. Routes reach them through app.state.services.
"""

from dataclasses import dataclass
from typing import Optional
import logging

from hazard_hub.config.firebase import create_firestore_client
from hazard_hub.core.settings import Settings
from hazard_hub.services.auth_service import AuthService
from hazard_hub.services.authorization import AuthorizationGate
from hazard_hub.services.credential_store import CredentialStore
from hazard_hub.services.notifications import NotificationSink, build_notification_sink
from hazard_hub.services.otp import OtpProvider, build_otp_provider
from hazard_hub.services.report_service import ReportLifecycleEngine
from hazard_hub.services.report_store import ReportStore

logger = logging.getLogger(__name__)


@dataclass
class Services:
    settings: Settings
    credential_store: CredentialStore
    report_store: ReportStore
    otp_provider: OtpProvider
    notifier: NotificationSink
    auth: AuthService
    gate: AuthorizationGate
    reports: ReportLifecycleEngine


def build_services(
    settings: Settings,
    db=None,
    otp_provider: Optional[OtpProvider] = None,
    notifier: Optional[NotificationSink] = None,
) -> Services:
    """
    Assemble the service graph.

    Args:
        settings: Application settings
        db: Document-store client; created from settings when omitted
        otp_provider: Override for the configured OTP provider
        notifier: Override for the configured notification sink
    """
    if db is None:
        db = create_firestore_client(settings)

    credential_store = CredentialStore(db)
    report_store = ReportStore(db)
    notifier = notifier or build_notification_sink(settings)
    otp_provider = otp_provider or build_otp_provider(settings, db, send_sms=notifier.send_sms)

    auth = AuthService(
        credential_store=credential_store,
        otp_provider=otp_provider,
        token_secret=settings.JWT_SECRET,
        token_algorithm=settings.JWT_ALGORITHM,
        token_expire_minutes=settings.JWT_EXPIRE_MINUTES,
    )
    gate = AuthorizationGate(
        credential_store=credential_store,
        token_secret=settings.JWT_SECRET,
        token_algorithm=settings.JWT_ALGORITHM,
    )
    reports = ReportLifecycleEngine(
        store=report_store,
        notifier=notifier,
        credential_store=credential_store,
        notifications_enabled=settings.NOTIFICATIONS_ENABLED,
        mass_alert_radius_km=settings.MASS_ALERT_RADIUS_KM,
    )

    logger.info(
        f"Services ready (otp={otp_provider.name}, notifications={notifier.name}, "
        f"mock_db={settings.USE_MOCK_DB})"
    )
    return Services(
        settings=settings,
        credential_store=credential_store,
        report_store=report_store,
        otp_provider=otp_provider,
        notifier=notifier,
        auth=auth,
        gate=gate,
        reports=reports,
    )
