"""
OTP providers - phone possession verification.

Exports:
- OtpProvider, OtpStatus: provider contract
- build_otp_provider: resolve the configured provider
"""

from .base import OtpProvider, OtpStatus
from .resolver import build_otp_provider

__all__ = ["OtpProvider", "OtpStatus", "build_otp_provider"]
