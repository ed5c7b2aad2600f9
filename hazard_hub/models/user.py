"""
User, session and authentication request models.
"""

from pydantic import BaseModel, EmailStr, Field, field_validator
from datetime import datetime
from enum import Enum
from typing import Optional

from hazard_hub.utils.phone import normalize_phone


class Role(str, Enum):
    """Closed set of roles. No hierarchy: admin does not imply reporter."""
    REPORTER = "reporter"
    ADMIN = "admin"


class User(BaseModel):
    """User record as held by the Credential Store."""
    id: str = Field(..., description="Firestore document ID")
    email: Optional[str] = Field(None, description="Lowercase-normalized email (unique)")
    password_hash: Optional[str] = Field(None, description="Present only for credential-based accounts")
    phone: Optional[str] = Field(None, description="E.164 phone number")
    role: Role = Role.REPORTER
    created_at: Optional[datetime] = None


class Session(BaseModel):
    """
    Client-held proof of a successful login.

    Never carries the password hash. ``token`` is the bearer credential the
    server re-verifies on every protected call.
    """
    id: str
    name: str
    email: Optional[str] = None
    phone: Optional[str] = None
    role: Role
    token: Optional[str] = None

    @classmethod
    def from_user(cls, user: User, token: Optional[str] = None) -> "Session":
        if user.email:
            name = user.email.split("@")[0]
        else:
            name = user.phone or user.id
        return cls(
            id=user.id,
            name=name,
            email=user.email,
            phone=user.phone,
            role=user.role,
            token=token,
        )


class LoginRequest(BaseModel):
    email: EmailStr
    password: str = Field(..., min_length=1, description="Password is required.")


class PhoneRequest(BaseModel):
    """Base for requests carrying a phone number; normalizes it to E.164."""
    phone: str = Field(..., min_length=10, max_length=20, description="Phone number with country code")

    @field_validator("phone")
    @classmethod
    def normalize_phone_number(cls, value: str) -> str:
        return normalize_phone(value)


class SignupRequest(PhoneRequest):
    email: EmailStr
    password: str = Field(..., min_length=6, max_length=72, description="At least 6 characters")


class OTPRequest(PhoneRequest):
    """Request to send OTP."""


class OTPVerifyRequest(PhoneRequest):
    """Request to verify OTP and log in."""
    code: str = Field(..., pattern=r"^\d{4,8}$", description="OTP code")


class AuthResponse(BaseModel):
    """Authentication response."""
    success: bool = True
    message: str
    session: Session
    token: str
