"""
Core settings and environment variables for Hazard Alert Hub.
Uses pydantic-settings for type-safe environment variable loading.
"""

from pydantic_settings import BaseSettings
from typing import List, Optional


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.
    Create a .env file in the root directory to configure these.
    """

    # Application
    APP_NAME: str = "Hazard Alert Hub"
    APP_VERSION: str = "0.1.0"
    DEBUG: bool = False
    LOG_LEVEL: str = "INFO"

    # CORS - Frontend URLs allowed to access this API
    CORS_ORIGINS: str = "http://localhost:3000,http://localhost:5173"

    # Firebase/Firestore
    FIREBASE_PROJECT_ID: Optional[str] = None
    FIREBASE_CREDENTIALS_PATH: Optional[str] = None  # Path to service account JSON

    # Mock DB mode for local development without Firebase credentials
    USE_MOCK_DB: bool = False
    MOCK_DB_PATH: Optional[str] = None  # None keeps the mock DB in memory only

    # Bearer tokens
    JWT_SECRET: str = "dev-secret-change-me"
    JWT_ALGORITHM: str = "HS256"
    JWT_EXPIRE_MINUTES: int = 60 * 24 * 7

    # OTP verification
    # - OTP_PROVIDER: "local" (codes stored in Firestore) or "twilio" (Twilio Verify)
    OTP_PROVIDER: str = "local"
    OTP_LENGTH: int = 6
    OTP_EXPIRY_MINUTES: int = 5
    OTP_MAX_ATTEMPTS: int = 3
    TEST_PHONE_NUMBER: Optional[str] = None  # E.164, accepts TEST_OTP without a stored challenge
    TEST_OTP: str = "123456"

    # Twilio (SMS notifications + Verify)
    TWILIO_SID: Optional[str] = None
    TWILIO_TOKEN: Optional[str] = None
    TWILIO_PHONE: Optional[str] = None
    TWILIO_VERIFY_SID: Optional[str] = None
    ADMIN_PHONE_NUMBER: Optional[str] = None

    # Notifications
    NOTIFICATIONS_ENABLED: bool = True
    MASS_ALERT_RADIUS_KM: float = 10.0
    HTTP_TIMEOUT_SECONDS: float = 5.0

    class Config:
        env_file = ".env"
        case_sensitive = True
        extra = "allow"

    @property
    def cors_origins(self) -> List[str]:
        return [origin.strip() for origin in self.CORS_ORIGINS.split(",") if origin.strip()]

    @property
    def twilio_configured(self) -> bool:
        return bool(self.TWILIO_SID and self.TWILIO_TOKEN)


# Global settings instance
settings = Settings()
