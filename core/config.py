import os
from typing import List
from dotenv import load_dotenv

# Load environment variables from .env file
load_dotenv()

DEFAULT_CORS_ORIGINS = [
    "http://localhost:3000",
    "http://127.0.0.1:3000",
    "http://localhost:5000",
    "http://localhost:5173",
]


def _as_bool(value: str) -> bool:
    return value.strip().lower() in ("1", "true", "yes", "on")


class Settings:
    def __init__(self):
        self.database_url: str = os.getenv("DATABASE_URL", "")
        self.debug: bool = _as_bool(os.getenv("DEBUG", "False"))

        origins = os.getenv("CORS_ORIGINS")
        self.cors_origins: List[str] = (
            [o.strip() for o in origins.split(",") if o.strip()] if origins else list(DEFAULT_CORS_ORIGINS)
        )

        # JWT
        # Set JWT_SECRET_KEY in production; "fallback-secret" is for local development only.
        self.jwt_secret_key: str = os.getenv("JWT_SECRET_KEY", "fallback-secret")
        self.jwt_algorithm: str = "HS256"
        self.jwt_expire_minutes: int = int(os.getenv("JWT_EXPIRE_MINUTES", 60 * 24 * 7))  # 7 days by default

        # Reminder scheduler
        self.reminder_scheduler_enabled: bool = _as_bool(os.getenv("REMINDER_SCHEDULER_ENABLED", "True"))
        self.reminder_interval_seconds: int = int(os.getenv("REMINDER_INTERVAL_SECONDS", 60))
        self.reminder_send_timeout_seconds: float = float(os.getenv("REMINDER_SEND_TIMEOUT_SECONDS", 10))

        # Participation rules
        self.reveal_window_minutes: int = int(os.getenv("REVEAL_WINDOW_MINUTES", 5))
        self.minimum_age: int = int(os.getenv("MINIMUM_AGE", 15))

        # Website purchase
        self.website_price: int = int(os.getenv("WEBSITE_PRICE", 15000))
        self.download_token_ttl_days: int = int(os.getenv("DOWNLOAD_TOKEN_TTL_DAYS", 7))
        self.base_url: str = os.getenv("BASE_URL", "http://localhost:8000")

        # Password reset
        self.password_reset_ttl_minutes: int = int(os.getenv("PASSWORD_RESET_TTL_MINUTES", 60))

        # SMTP (e-mail channel is disabled when SMTP_HOST is empty)
        self.smtp_host: str = os.getenv("SMTP_HOST", "")
        self.smtp_port: int = int(os.getenv("SMTP_PORT", 587))
        self.smtp_user: str = os.getenv("SMTP_USER", "")
        self.smtp_password: str = os.getenv("SMTP_PASSWORD", "")
        self.from_email: str = os.getenv("FROM_EMAIL", "noreply@fftournament.com")

    @property
    def email_enabled(self) -> bool:
        return bool(self.smtp_host)


settings = Settings()
