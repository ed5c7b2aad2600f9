"""
FastAPI dependencies: service lookup and the Authorization Gate.
"""

from typing import Optional

from fastapi import Depends, Header, Request

from hazard_hub.core.container import Services
from hazard_hub.core.errors import UpstreamFailure
from hazard_hub.models.user import Role, User


def get_services(request: Request) -> Services:
    services = getattr(request.app.state, "services", None)
    if services is None:
        raise UpstreamFailure("Services not initialized")
    return services


def require_user(
    authorization: Optional[str] = Header(None),
    services: Services = Depends(get_services),
) -> User:
    """Any authenticated role."""
    return services.gate.authorize(authorization)


def require_roles(*roles: Role):
    """Dependency factory: authenticated and role in ``roles``."""
    allowed = frozenset(roles)

    def dependency(
        authorization: Optional[str] = Header(None),
        services: Services = Depends(get_services),
    ) -> User:
        return services.gate.authorize(authorization, allowed)

    return dependency


def optional_user(
    authorization: Optional[str] = Header(None),
    services: Services = Depends(get_services),
) -> Optional[User]:
    """
    Caller identity when a credential is sent, None otherwise.

    A credential that is sent but invalid is still rejected rather than
    silently downgraded to anonymous.
    """
    if authorization is None:
        return None
    return services.gate.authorize(authorization)


require_admin = require_roles(Role.ADMIN)
