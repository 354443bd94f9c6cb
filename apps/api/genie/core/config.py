"""Application configuration with environment variables."""

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    # Environment
    ENV: str = "dev"

    # App Version (format: major.feature.patch)
    VERSION: str = "0.01.00"

    # Logging
    LOG_LEVEL: str = "INFO"

    # Database
    DATABASE_URL: str

    # Session tokens (supports key rotation)
    JWT_SECRET: str = "change-this-in-production"
    JWT_SECRET_PREVIOUS: str = ""  # Set during rotation, clear after
    ACCESS_TOKEN_EXPIRES_HOURS: int = 4
    REFRESH_TOKEN_EXPIRES_DAYS: int = 365

    # CORS
    CORS_ORIGINS: str = "http://localhost:3000"

    # Frontend (activation links in emails)
    FRONTEND_URL: str = "http://localhost:3000"

    # Outbound email (Resend). Empty key disables delivery.
    RESEND_API_KEY: str = ""
    EMAIL_FROM: str = "Project Genie <noreply@example.com>"

    # Error Tracking (optional, set in production)
    SENTRY_DSN: str = ""

    # Rate Limiting (requests per minute)
    RATE_LIMIT_ENABLED: bool = True
    RATE_LIMIT_AUTH: int = 5  # Login / sign-up attempts
    RATE_LIMIT_API: int = 120  # General API
    RATE_LIMIT_STORAGE_URL: str = "memory://"

    @property
    def cors_origins_list(self) -> list[str]:
        """Parse CORS_ORIGINS into a list."""
        return [o.strip() for o in self.CORS_ORIGINS.split(",") if o.strip()]

    @property
    def jwt_secrets(self) -> list[str]:
        """Returns list of valid secrets (current first, then previous if set)."""
        secrets = [self.JWT_SECRET]
        if self.JWT_SECRET_PREVIOUS:
            secrets.append(self.JWT_SECRET_PREVIOUS)
        return secrets

    @property
    def cookie_secure(self) -> bool:
        """Secure cookies everywhere except local dev."""
        return self.ENV != "dev"


settings = Settings()
