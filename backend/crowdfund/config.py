"""Application settings.

Values come from the environment (optionally seeded from a ``.env`` file).
"""
import os
from dataclasses import dataclass, field
from typing import List

from dotenv import load_dotenv

load_dotenv(os.getenv("ENV_FILE", ".env"), override=False)

# Values shipped in sample .env files; treated as "not configured"
PLACEHOLDER_KEYS = {"rzp_test_your_key_id_here", "your_razorpay_secret_key_here"}

# environments that may run on the built-in JWT secret
DEV_ENVIRONMENTS = ("development", "dev", "test", "testing")


class ConfigError(RuntimeError):
    pass


def _int(val: str, default: int) -> int:
    try:
        return int(val) if val else default
    except ValueError:
        return default


def _list(val: str) -> List[str]:
    return [item.strip() for item in val.split(",") if item.strip()]


@dataclass
class Settings:
    environment: str = "development"
    log_level: str = "INFO"

    database_url: str = "sqlite:///./crowdfundin.db"

    jwt_secret: str = "dev-jwt-secret-change-me"
    jwt_expires_days: int = 30

    razorpay_key_id: str = ""
    razorpay_key_secret: str = ""
    razorpay_api_url: str = "https://api.razorpay.com/v1"
    payment_currency: str = "INR"

    mail_api_url: str = "https://api.resend.com"
    mail_api_key: str = ""
    mail_from: str = "CrowdFundIn <noreply@crowdfundin.com>"

    frontend_url: str = "http://localhost:3000"
    cors_origins: List[str] = field(
        default_factory=lambda: ["http://localhost:3000", "http://localhost:3001"]
    )

    @property
    def payments_configured(self) -> bool:
        return bool(
            self.razorpay_key_id
            and self.razorpay_key_secret
            and self.razorpay_key_id not in PLACEHOLDER_KEYS
            and self.razorpay_key_secret not in PLACEHOLDER_KEYS
        )

    @property
    def mail_configured(self) -> bool:
        return bool(self.mail_api_key and self.mail_from)

    def campaign_url(self, campaign_id: int) -> str:
        return f"{self.frontend_url.rstrip('/')}/campaigns/{campaign_id}"

    @classmethod
    def from_env(cls) -> "Settings":
        env = os.getenv("ENV") or os.getenv("ENVIRONMENT", "development")
        defaults = cls()
        jwt_secret = os.getenv("JWT_SECRET")
        if not jwt_secret:
            if env not in DEV_ENVIRONMENTS:
                raise ConfigError(f"JWT_SECRET must be set when ENV is '{env}'")
            jwt_secret = defaults.jwt_secret
        return cls(
            environment=env,
            log_level=os.getenv("LOG_LEVEL", "DEBUG" if env == "development" else "INFO"),
            database_url=os.getenv("DATABASE_URL", defaults.database_url),
            jwt_secret=jwt_secret,
            jwt_expires_days=_int(os.getenv("JWT_EXPIRES_DAYS", ""), 30),
            razorpay_key_id=os.getenv("RAZORPAY_KEY_ID", ""),
            razorpay_key_secret=os.getenv("RAZORPAY_KEY_SECRET", ""),
            razorpay_api_url=os.getenv("RAZORPAY_API_URL", defaults.razorpay_api_url),
            payment_currency=os.getenv("PAYMENT_CURRENCY", "INR"),
            mail_api_url=os.getenv("MAIL_API_URL", defaults.mail_api_url),
            mail_api_key=os.getenv("MAIL_API_KEY", ""),
            mail_from=os.getenv("MAIL_FROM", defaults.mail_from),
            frontend_url=os.getenv("FRONTEND_URL", defaults.frontend_url),
            cors_origins=_list(os.getenv("CORS_ORIGINS", "")) or defaults.cors_origins,
        )
