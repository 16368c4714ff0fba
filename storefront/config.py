# storefront/config.py
import os
from dataclasses import dataclass
from functools import lru_cache
from dotenv import load_dotenv

load_dotenv()


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in ("1", "true", "yes", "on")


@dataclass(frozen=True)
class Settings:
    database_url: str = "sqlite+aiosqlite:///./storefront.db"

    access_token_secret: str = "change_me_access_secret"
    refresh_token_secret: str = "change_me_refresh_secret"
    reset_password_secret: str = "change_me_reset_secret"
    jwt_algorithm: str = "HS256"
    access_token_expire_minutes: int = 15
    refresh_token_expire_days: int = 7
    reset_token_expire_minutes: int = 15
    otp_expire_minutes: int = 10

    frontend_url: str = "http://localhost:5173"

    email_from: str = "Auth App <no-reply@storefront.local>"
    email_api_key: str = ""
    email_api_url: str = "https://api.resend.com/emails"

    redis_url: str = ""
    rate_limit_enabled: bool = True

    upload_dir: str = "uploads"
    search_result_limit: int = 2
    log_level: str = "INFO"
    port: int = 8000

    @classmethod
    def from_env(cls) -> "Settings":
        return cls(
            database_url=os.getenv("DATABASE_URL", cls.database_url),
            access_token_secret=os.getenv("ACCESS_TOKEN_SECRET", cls.access_token_secret),
            refresh_token_secret=os.getenv("REFRESH_TOKEN_SECRET", cls.refresh_token_secret),
            reset_password_secret=os.getenv("RESET_PASSWORD_SECRET", cls.reset_password_secret),
            access_token_expire_minutes=int(os.getenv("ACCESS_TOKEN_EXPIRE_MINUTES", "15")),
            refresh_token_expire_days=int(os.getenv("REFRESH_TOKEN_EXPIRE_DAYS", "7")),
            reset_token_expire_minutes=int(os.getenv("RESET_TOKEN_EXPIRE_MINUTES", "15")),
            otp_expire_minutes=int(os.getenv("OTP_EXPIRE_MINUTES", "10")),
            frontend_url=os.getenv("FRONTEND_URL", cls.frontend_url),
            email_from=os.getenv("EMAIL_FROM", cls.email_from),
            email_api_key=os.getenv("EMAIL_API_KEY", ""),
            email_api_url=os.getenv("EMAIL_API_URL", cls.email_api_url),
            redis_url=os.getenv("REDIS_URL", ""),
            rate_limit_enabled=_env_bool("RATE_LIMIT_ENABLED", True),
            upload_dir=os.getenv("UPLOAD_DIR", cls.upload_dir),
            search_result_limit=int(os.getenv("SEARCH_RESULT_LIMIT", "2")),
            log_level=os.getenv("LOG_LEVEL", cls.log_level).upper(),
            port=int(os.getenv("PORT", "8000")),
        )


@lru_cache
def get_settings() -> Settings:
    """Process-wide settings, read once from the environment."""
    return Settings.from_env()
