"""
Credential Store - user records in Firestore.
"""

from datetime import datetime, timezone
from typing import Dict, Optional
import logging

from hazard_hub.core.errors import EmailAlreadyRegistered, UpstreamFailure
from hazard_hub.models.user import Role, User
from hazard_hub.utils.firestore_helpers import to_datetime, where_filter
from hazard_hub.utils.phone import normalize_phone
from hazard_hub.utils.security import hash_password, verify_password

logger = logging.getLogger(__name__)

USERS_COLLECTION = "users"


def normalize_email(email: str) -> str:
    return email.strip().lower()


class CredentialStore:
    """
    Read access to user records plus self-service reporter signup.

    Roles are written once at creation; this class has no way to change them.
    """

    def __init__(self, db):
        self.db = db

    def lookup_by_email(self, email: str) -> Optional[User]:
        return self._find_one("email", normalize_email(email))

    def lookup_by_phone(self, phone_number: str) -> Optional[User]:
        try:
            normalized_phone = normalize_phone(phone_number)
        except ValueError:
            return None
        return self._find_one("phone", normalized_phone)

    def get_by_id(self, user_id: str) -> Optional[User]:
        try:
            doc = self.db.collection(USERS_COLLECTION).document(user_id).get()
        except Exception as e:
            logger.error(f"Failed to get user {user_id}: {e}", exc_info=True)
            raise UpstreamFailure(f"Credential store lookup failed: {e}") from e

        if not doc.exists:
            return None
        return self._to_user(doc.id, doc.to_dict())

    def verify_password(self, plain_password: str, password_hash: Optional[str]) -> bool:
        """Constant-time comparison; see utils.security.verify_password."""
        return verify_password(plain_password, password_hash)

    def create_user(self, email: str, password: str, phone: str) -> User:
        """
        Create a reporter account.

        Raises:
            EmailAlreadyRegistered: the normalized email is taken
        """
        normalized_email = normalize_email(email)
        if self.lookup_by_email(normalized_email) is not None:
            raise EmailAlreadyRegistered()

        user_data = {
            "email": normalized_email,
            "password_hash": hash_password(password),
            "phone": normalize_phone(phone),
            "role": Role.REPORTER.value,  # Default role for new signups
            "created_at": datetime.now(timezone.utc),
        }

        try:
            user_ref = self.db.collection(USERS_COLLECTION).document()
            user_ref.set(user_data)
        except Exception as e:
            logger.error(f"Failed to create user: {e}", exc_info=True)
            raise UpstreamFailure(f"Credential store write failed: {e}") from e

        logger.info(f"User created: {user_ref.id}")
        return self._to_user(user_ref.id, user_data)

    def _find_one(self, field: str, value: str) -> Optional[User]:
        try:
            users_ref = self.db.collection(USERS_COLLECTION)
            docs = list(where_filter(users_ref, field, "==", value).limit(1).stream())
        except Exception as e:
            logger.error(f"Failed to get user by {field}: {e}", exc_info=True)
            raise UpstreamFailure(f"Credential store lookup failed: {e}") from e

        if not docs:
            return None
        return self._to_user(docs[0].id, docs[0].to_dict())

    @staticmethod
    def _to_user(doc_id: str, data: Dict) -> User:
        return User(
            id=doc_id,
            email=data.get("email"),
            password_hash=data.get("password_hash"),
            phone=data.get("phone"),
            role=data.get("role", Role.REPORTER.value),
            created_at=to_datetime(data.get("created_at")),
        )
