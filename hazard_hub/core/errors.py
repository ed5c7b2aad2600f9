"""
Error taxonomy for Hazard Alert Hub.

Every error carries an HTTP status and a machine-readable code. Routes do not
translate these; the handlers registered in main.py render them.
"""

from typing import Any, Optional


class HazardHubError(Exception):
    """Base class for all errors surfaced to API callers."""

    status_code = 500
    code = "internal_error"
    message = "Internal server error"

    def __init__(self, message: Optional[str] = None, details: Any = None):
        self.message = message or self.message
        self.details = details
        super().__init__(self.message)

    def to_dict(self) -> dict:
        body = {"detail": self.message, "code": self.code}
        if self.details is not None:
            body["errors"] = self.details
        return body


class ValidationError(HazardHubError):
    status_code = 400
    code = "validation_error"
    message = "Invalid input"


class Unauthorized(HazardHubError):
    status_code = 401
    code = "unauthorized"
    message = "Authentication required"


class InvalidCredentials(HazardHubError):
    status_code = 401
    code = "invalid_credentials"
    message = "Invalid email or password."


class OtpNotApproved(HazardHubError):
    status_code = 401
    code = "otp_not_approved"
    message = "OTP could not be verified"


class Forbidden(HazardHubError):
    status_code = 403
    code = "forbidden"
    message = "Insufficient role for this operation"


class NotFound(HazardHubError):
    status_code = 404
    code = "not_found"
    message = "Resource not found"


class UserNotFound(NotFound):
    code = "user_not_found"
    message = "No account is registered for this phone number"


class InvalidTransition(HazardHubError):
    status_code = 409
    code = "invalid_transition"
    message = "Status transition not allowed"


class StaleUpdate(HazardHubError):
    status_code = 409
    code = "stale_update"
    message = "Report was modified since it was last read"


class EmailAlreadyRegistered(HazardHubError):
    status_code = 409
    code = "email_already_registered"
    message = "An account with this email already exists."


class OtpSendFailed(HazardHubError):
    status_code = 500
    code = "otp_send_failed"
    message = "Failed to send OTP. Please check the phone number."


class UpstreamFailure(HazardHubError):
    """
    A collaborator (datastore, OTP provider, SMS gateway) failed.

    The message is for logs only; callers always receive the opaque
    internal-error body.
    """

    status_code = 500
    code = "internal_error"

    def to_dict(self) -> dict:
        return {"detail": "Internal server error", "code": self.code}
