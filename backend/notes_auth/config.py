import os
import logging
from typing import List, Optional
from dotenv import load_dotenv

load_dotenv(dotenv_path=os.path.join(os.path.dirname(__file__), '../.env'))

logger = logging.getLogger(__name__)


def _env_bool(name: str, default: str) -> bool:
    return os.getenv(name, default).strip().lower() in ("1", "true", "yes", "on")


class Settings:
    """Process configuration read from the environment."""

    def __init__(self, **overrides):
        self.environment = os.getenv("ENVIRONMENT", "development").lower()
        self.database_uri: Optional[str] = os.getenv("DATABASE_URI")
        self.jwt_secret: Optional[str] = os.getenv("JWT_SECRET_KEY") or None
        self.jwt_algorithm = "HS256"
        self.jwt_expires_in = int(os.getenv("JWT_EXPIRES_IN", str(3 * 3600)))
        self.cookie_expire_days = int(os.getenv("COOKIE_EXPIRE", "7"))
        self.cookie_secure = _env_bool("COOKIE_SECURE", "0")
        self.cookie_samesite = os.getenv("COOKIE_SAMESITE", "lax")
        self.frontend_url: Optional[str] = os.getenv("FRONTEND_URL")
        self.smtp_host: Optional[str] = os.getenv("SMTP_HOST")
        self.smtp_port = int(os.getenv("SMTP_PORT", "587"))
        self.smtp_mail: Optional[str] = os.getenv("SMTP_MAIL")
        self.smtp_password: Optional[str] = os.getenv("SMTP_PASSWORD")
        self.twilio_account_sid: Optional[str] = os.getenv("TWILIO_ACCOUNT_SID")
        self.twilio_auth_token: Optional[str] = os.getenv("TWILIO_AUTH_TOKEN")
        self.twilio_phone_number: Optional[str] = os.getenv("TWILIO_PHONE_NUMBER")
        self.rate_limit_enabled = _env_bool("RATE_LIMIT_ENABLED", "1")
        self.rate_limit_storage_uri = os.getenv("RATE_LIMIT_STORAGE_URI", "memory://")
        self.allowed_hosts = [h.strip() for h in os.getenv("ALLOWED_HOSTS", "*").split(",") if h.strip()]
        self.cors_origins = self._get_cors_origins()

        for key, value in overrides.items():
            if not hasattr(self, key):
                raise AttributeError(f"Unknown setting: {key}")
            setattr(self, key, value)

    @property
    def is_development(self) -> bool:
        return self.environment == "development"

    def _get_cors_origins(self) -> List[str]:
        """Get CORS origins based on environment"""
        configured = os.getenv("CORS_ORIGINS")
        if configured:
            return [o.strip() for o in configured.split(",") if o.strip()]
        if self.environment == "production":
            return [self.frontend_url] if self.frontend_url else []
        return [
            "http://127.0.0.1:3000",
            "http://localhost:3000",
            "http://localhost:5173",
            "http://127.0.0.1:5173",
        ]


def validate_environment(settings: Settings) -> None:
    """Validate environment configuration"""
    required = {
        "DATABASE_URI": settings.database_uri,
        "JWT_SECRET_KEY": settings.jwt_secret,
        "SMTP_HOST": settings.smtp_host,
        "SMTP_MAIL": settings.smtp_mail,
    }
    missing_vars = [name for name, value in required.items() if not value]
    if missing_vars:
        logger.warning(f"Missing environment variables: {missing_vars}")

    if settings.jwt_secret and len(settings.jwt_secret) < 32:
        logger.warning("JWT_SECRET_KEY should be at least 32 characters long")

    if settings.environment not in ["development", "test", "staging", "production"]:
        logger.warning(f"Invalid ENVIRONMENT value: {settings.environment}")

    if not (settings.twilio_account_sid and settings.twilio_auth_token and settings.twilio_phone_number):
        logger.info("Twilio is not configured; SMS verification will fail")
