"""
Authorization Gate - authentication and role checks in front of protected
operations.

The gate is the only trust boundary. It re-resolves the bearer credential
against the Credential Store on every call, so a purged or revoked account
stops working immediately regardless of what the client still caches.
"""

from functools import wraps
from typing import Callable, Iterable, Optional
import logging

from hazard_hub.core.errors import Forbidden, Unauthorized
from hazard_hub.models.user import Role, User
from hazard_hub.services.credential_store import CredentialStore
from hazard_hub.utils.security import decode_access_token

logger = logging.getLogger(__name__)


def extract_bearer_token(authorization: Optional[str]) -> str:
    """
    Pull the token out of an ``Authorization: Bearer <token>`` header value.

    Raises:
        Unauthorized: header missing, empty or not a Bearer credential
    """
    if not authorization or not authorization.strip():
        raise Unauthorized("Authorization header is required")

    scheme, _, token = authorization.strip().partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        raise Unauthorized("Authorization header must be 'Bearer <token>'")
    return token.strip()


class AuthorizationGate:

    def __init__(self, credential_store: CredentialStore, token_secret: str, token_algorithm: str = "HS256"):
        self.credential_store = credential_store
        self.token_secret = token_secret
        self.token_algorithm = token_algorithm

    def authenticate(self, authorization: Optional[str]) -> User:
        """
        Resolve a bearer credential to the current User record.

        Raises:
            Unauthorized: no credential, bad/expired token, or unknown user
        """
        token = extract_bearer_token(authorization)
        claims = decode_access_token(token, self.token_secret, self.token_algorithm)

        user = self.credential_store.get_by_id(claims["sub"])
        if user is None:
            logger.warning(f"Token presented for unknown user {claims['sub']}")
            raise Unauthorized("Invalid or expired token")
        return user

    def authorize(self, authorization: Optional[str], allowed_roles: Optional[Iterable[Role]] = None) -> User:
        """
        Authenticate, then check role membership.

        ``allowed_roles`` None means any authenticated role. Membership is a
        plain set test; admin does not implicitly include reporter.

        Raises:
            Unauthorized: see authenticate
            Forbidden: authenticated but role not in allowed_roles
        """
        user = self.authenticate(authorization)

        if allowed_roles is not None:
            allowed = {Role(role) for role in allowed_roles}
            if user.role not in allowed:
                logger.warning(
                    f"Unauthorized role access attempt: user={user.id} role={user.role.value} "
                    f"allowed={sorted(r.value for r in allowed)}"
                )
                raise Forbidden()
        return user

    def guard(self, operation: Callable, allowed_roles: Optional[Iterable[Role]] = None) -> Callable:
        """
        Wrap ``operation(principal, *args, **kwargs)`` behind the gate.

        The wrapped callable takes the raw Authorization header value as its
        first argument. The operation runs only after authentication and the
        role check both pass.
        """
        roles = frozenset(Role(r) for r in allowed_roles) if allowed_roles is not None else None

        @wraps(operation)
        def guarded(authorization: Optional[str], *args, **kwargs):
            principal = self.authorize(authorization, roles)
            return operation(principal, *args, **kwargs)

        return guarded
