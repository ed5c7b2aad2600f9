"""
Security utilities: password hashing and bearer tokens.
"""

import logging
from datetime import datetime, timedelta, timezone
from functools import lru_cache
from typing import Dict, Optional

from jose import ExpiredSignatureError, JWTError, jwt
from passlib.context import CryptContext

from hazard_hub.core.errors import Unauthorized

logger = logging.getLogger(__name__)

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")


def hash_password(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(plain_password: str, password_hash: Optional[str]) -> bool:
    """
    Constant-time password check.

    A missing hash (OTP-only account, unknown user) is compared against a
    dummy hash so the call costs the same either way.
    """
    if not password_hash:
        pwd_context.verify(plain_password, _dummy_hash())
        return False
    try:
        return pwd_context.verify(plain_password, password_hash)
    except ValueError:
        # Malformed stored hash
        logger.warning("Stored password hash could not be parsed")
        return False


@lru_cache(maxsize=1)
def _dummy_hash() -> str:
    return pwd_context.hash("hazard-hub-timing-equalizer")


def create_access_token(
    user_id: str,
    role: str,
    secret: str,
    algorithm: str = "HS256",
    expires_minutes: int = 60,
    now: Optional[datetime] = None,
) -> str:
    """
    Issue a signed bearer token for a user.

    The token only names the user; role and account state are re-read from
    the Credential Store on every protected call.
    """
    issued_at = now or datetime.now(timezone.utc)
    payload = {
        "sub": user_id,
        "role": role,
        "iat": issued_at,
        "exp": issued_at + timedelta(minutes=expires_minutes),
    }
    return jwt.encode(payload, secret, algorithm=algorithm)


def decode_access_token(token: str, secret: str, algorithm: str = "HS256") -> Dict:
    """
    Verify signature and expiry of a bearer token.

    Raises:
        Unauthorized: token is expired, forged or malformed.
    """
    try:
        claims = jwt.decode(token, secret, algorithms=[algorithm])
    except ExpiredSignatureError:
        raise Unauthorized("Token has expired")
    except JWTError:
        raise Unauthorized("Invalid or expired token")

    if not claims.get("sub"):
        raise Unauthorized("Invalid or expired token")
    return claims
