"""
Authentication endpoints - email/password login, signup and phone OTP.
"""

from fastapi import APIRouter, Depends, Header, status
from typing import Optional
import logging

from hazard_hub.core.container import Services
from hazard_hub.models.user import (
    AuthResponse,
    LoginRequest,
    OTPRequest,
    OTPVerifyRequest,
    Session,
    SignupRequest,
    User,
)
from hazard_hub.routes.deps import get_services, require_user
from hazard_hub.services.authorization import extract_bearer_token

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["Authentication"])


def _auth_response(message: str, session: Session) -> AuthResponse:
    return AuthResponse(success=True, message=message, session=session, token=session.token)


@router.post("/login", response_model=AuthResponse)
def login(request: LoginRequest, services: Services = Depends(get_services)):
    """
    Email + password login.

    Returns the session object the client persists, plus its bearer token.
    Wrong password and unknown email both answer 401 invalid_credentials.
    """
    session = services.auth.login_with_credentials(request.email, request.password)
    return _auth_response("Login successful", session)


@router.post("/signup", response_model=AuthResponse, status_code=status.HTTP_201_CREATED)
def signup(request: SignupRequest, services: Services = Depends(get_services)):
    """Create a reporter account and log it in."""
    session = services.auth.signup(email=request.email, password=request.password, phone=request.phone)
    return _auth_response("Account created successfully", session)


@router.post("/otp/send")
def send_otp(request: OTPRequest, services: Services = Depends(get_services)):
    """
    Send an OTP to a phone number.

    Answers 500 otp_send_failed when the provider does not open a challenge.
    """
    services.auth.request_otp(request.phone)
    return {"success": True, "message": "OTP sent successfully."}


@router.post("/otp/verify", response_model=AuthResponse)
def verify_otp(request: OTPVerifyRequest, services: Services = Depends(get_services)):
    """
    Verify an OTP and log in the account registered for that phone.

    Errors:
        401 otp_not_approved: code wrong, expired or already used
        404 user_not_found: code approved but no account has this phone
    """
    session = services.auth.login_with_otp(request.phone, request.code)
    return _auth_response("OTP verified successfully.", session)


@router.get("/me", response_model=Session)
def get_current_session(
    authorization: Optional[str] = Header(None),
    user: User = Depends(require_user),
    services: Services = Depends(get_services),
):
    """Current session, rebuilt from the freshly re-verified user record."""
    return services.auth.session_for(user, token=extract_bearer_token(authorization))
