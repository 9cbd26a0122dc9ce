"""Application configuration with environment variables."""

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    # Environment: dev, test, production
    ENV: str = "dev"

    VERSION: str = "0.1.0"

    # Database
    DATABASE_URL: str

    # Session Token (supports key rotation)
    JWT_SECRET: str = "change-this-in-production"
    JWT_SECRET_PREVIOUS: str = ""  # Set during rotation, clear after
    JWT_EXPIRES_HOURS: int = 24

    # CORS
    CORS_ORIGINS: str = "http://localhost:3000"

    # Dashboard origin
    FRONTEND_URL: str = "http://localhost:3000"

    # Dev-only
    DEV_SECRET: str = "change-me"

    # Error Tracking (optional, set in production)
    SENTRY_DSN: str = ""

    # Rate Limiting (requests per minute, 0 disables)
    RATE_LIMIT_API: int = 120
    RATE_LIMIT_STORAGE_URI: str = "memory://"

    LOG_LEVEL: str = "INFO"

    # Billing
    PAYMENT_CURRENCY: str = "SAR"

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
        """Secure cookies outside local development."""
        return self.ENV != "dev"

    @property
    def is_production(self) -> bool:
        return self.ENV == "production"


settings = Settings()
