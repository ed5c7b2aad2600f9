"""
Auth Service - Session/Identity.

Turns a credential login or an approved OTP challenge into a Session
carrying a signed bearer token. Holds no session state of its own.
"""

from typing import Optional
import logging

from hazard_hub.core.errors import (
    InvalidCredentials,
    OtpNotApproved,
    OtpSendFailed,
    UserNotFound,
    ValidationError,
)
from hazard_hub.models.user import Session, User
from hazard_hub.services.credential_store import CredentialStore
from hazard_hub.services.otp import OtpProvider, OtpStatus
from hazard_hub.utils.phone import normalize_phone
from hazard_hub.utils.security import create_access_token

logger = logging.getLogger(__name__)


def _normalize(phone: str) -> str:
    try:
        return normalize_phone(phone)
    except ValueError as e:
        raise ValidationError(str(e))


class AuthService:

    def __init__(
        self,
        credential_store: CredentialStore,
        otp_provider: OtpProvider,
        token_secret: str,
        token_algorithm: str = "HS256",
        token_expire_minutes: int = 60,
    ):
        self.credential_store = credential_store
        self.otp_provider = otp_provider
        self.token_secret = token_secret
        self.token_algorithm = token_algorithm
        self.token_expire_minutes = token_expire_minutes

    def login_with_credentials(self, email: str, password: str) -> Session:
        """
        Email + password login.

        Unknown email and wrong password raise the same InvalidCredentials,
        and both pay for one hash comparison.
        """
        user = self.credential_store.lookup_by_email(email)
        password_hash = user.password_hash if user else None

        if not self.credential_store.verify_password(password, password_hash) or user is None:
            logger.warning("Failed credential login attempt")
            raise InvalidCredentials()

        logger.info(f"User authenticated with credentials: {user.id}")
        return self._issue_session(user)

    def request_otp(self, phone: str) -> None:
        """
        Ask the OTP provider to send a code.

        Raises:
            OtpSendFailed: provider did not report a pending challenge
        """
        normalized_phone = _normalize(phone)
        status = self.otp_provider.request_code(normalized_phone)
        if status != OtpStatus.PENDING:
            logger.warning(f"OTP send failed for {normalized_phone}: provider status {status.value}")
            raise OtpSendFailed()
        logger.info(f"OTP requested for {normalized_phone}")

    def login_with_otp(self, phone: str, code: str) -> Session:
        """
        Phone + OTP login.

        Raises:
            OtpNotApproved: provider status is anything but approved
            UserNotFound: the code was right but no account has this phone
        """
        normalized_phone = _normalize(phone)
        status = self.otp_provider.check_code(normalized_phone, code)
        if status != OtpStatus.APPROVED:
            logger.warning(f"OTP not approved for {normalized_phone}: {status.value}")
            raise OtpNotApproved(f"OTP could not be verified. Status: {status.value}")

        user = self.credential_store.lookup_by_phone(normalized_phone)
        if user is None:
            raise UserNotFound()

        logger.info(f"User authenticated with OTP: {user.id}")
        return self._issue_session(user)

    def signup(self, email: str, password: str, phone: str) -> Session:
        """Create a reporter account and log it in."""
        user = self.credential_store.create_user(email=email, password=password, phone=phone)
        return self._issue_session(user)

    def session_for(self, user: User, token: Optional[str] = None) -> Session:
        return Session.from_user(user, token=token)

    def _issue_session(self, user: User) -> Session:
        token = create_access_token(
            user_id=user.id,
            role=user.role.value,
            secret=self.token_secret,
            algorithm=self.token_algorithm,
            expires_minutes=self.token_expire_minutes,
        )
        return Session.from_user(user, token=token)
