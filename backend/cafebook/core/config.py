"""Application configuration using pydantic-settings.

All environment variables should be accessed through the settings object
rather than using os.getenv() directly. This ensures:
1. Type validation at startup
2. Centralized configuration
3. Documentation of available settings
4. Proper defaults
"""

from functools import lru_cache
from typing import List, Literal

from pydantic import field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables.

    All sensitive configuration should be defined here rather than
    accessed via os.getenv() throughout the codebase.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",  # Ignore extra env vars
    )

    app_name: str = "Gaming App"

    # Database - hosted Postgres in production, SQLite file for local dev
    database_url: str = "sqlite:///./cafebook.db"

    # Security
    secret_key: str = "change-me-in-production"
    algorithm: str = "HS256"
    # Owner dashboard sessions are client-held and expire 24h after issue
    owner_session_hours: int = 24

    # CORS - comma-separated origins or "*" for development only
    cors_origins: str = "http://localhost:3000,http://localhost:8000"

    # ==========================================================================
    # UroPay UPI gateway
    # ==========================================================================
    uropay_api_base: str = "https://api.uropay.me"
    uropay_api_key: str = ""
    uropay_secret: str = ""
    uropay_vpa: str = ""
    uropay_vpa_name: str = "Gaming App"
    uropay_webhook_secret: str = ""

    # ==========================================================================
    # ZeptoMail transactional email
    # ==========================================================================
    zepto_mail_url: str = "https://api.zeptomail.com/v1.1/email"
    zepto_mail_token: str = ""
    zepto_mail_from_email: str = ""
    zepto_mail_from_name: str = "Gaming App"
    # Linked from the welcome email
    site_url: str = "https://gaming-app.com"

    # Applied to every outbound gateway / email call
    outbound_timeout_seconds: float = 10.0

    # Booking calendar
    open_hour: int = 10
    close_hour: int = 24
    peak_start: int = 18
    peak_end: int = 22
    slot_interval_minutes: int = 15
    default_duration_minutes: int = 60

    # Server
    debug: bool = True
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"

    # API
    api_v1_prefix: str = "/api/v1"

    # Rate limiting
    rate_limit_enabled: bool = True

    @field_validator("uropay_api_key", "uropay_secret", "uropay_vpa", "zepto_mail_token", mode="after")
    @classmethod
    def strip_credentials(cls, v: str) -> str:
        return (v or "").strip()

    @field_validator("secret_key")
    @classmethod
    def validate_secret_key(cls, v: str) -> str:
        if v == "change-me-in-production":
            import warnings
            warnings.warn(
                "Using default SECRET_KEY is insecure! Set SECRET_KEY environment variable.",
                UserWarning,
                stacklevel=2,
            )
        return v

    @model_validator(mode="after")
    def validate_production_settings(self) -> "Settings":
        """Validate settings for production safety."""
        if not self.debug:
            if self.secret_key == "change-me-in-production":
                raise ValueError(
                    "FATAL: Cannot start in production mode with default SECRET_KEY. "
                    "Set a secure SECRET_KEY environment variable (minimum 32 characters)."
                )
            if len(self.secret_key) < 32:
                raise ValueError(
                    f"FATAL: SECRET_KEY must be at least 32 characters in production mode "
                    f"(current length: {len(self.secret_key)})."
                )
        return self

    @property
    def cors_origins_list(self) -> List[str]:
        """Parse CORS origins into a list."""
        if self.cors_origins == "*":
            return ["*"]
        return [origin.strip() for origin in self.cors_origins.split(",") if origin.strip()]

    @property
    def uropay_configured(self) -> bool:
        return bool(self.uropay_api_key and self.uropay_secret)

    @property
    def email_configured(self) -> bool:
        return bool(self.zepto_mail_token and self.zepto_mail_from_email)


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


settings = get_settings()
