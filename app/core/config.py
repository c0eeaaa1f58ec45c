# app/core/config.py
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application configuration settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,  # Environment vars are uppercase
        extra="ignore",      # Ignore unexpected vars instead of raising
    )

    # Core application settings
    DATABASE_URL: str
    DATABASE_ECHO: bool = False
    GOOGLE_API_KEY: str
    HOST: str = "0.0.0.0"
    PORT: int = 8101
    DEBUG: bool = False
    ENVIRONMENT: str = "development"
    LOG_FILE: str | None = "app.log"

    # CORS settings
    ALLOWED_ORIGINS: list[str] = ["*"]  # In production, specify actual origins
    ALLOW_CREDENTIALS: bool = True
    ALLOWED_METHODS: list[str] = ["*"]
    ALLOWED_HEADERS: list[str] = ["*"]

    # JWT settings
    JWT_SECRET: str
    JWT_ALGORITHM: str = "HS256"
    JWT_EXPIRE_MINUTES: int = 43200  # 30 days

    # Tutoring assistant (Gemini)
    GEMINI_MODEL: str = "gemini-2.5-flash"
    TUTOR_TEMPERATURE: float = 0.2
    TUTOR_MAX_OUTPUT_TOKENS: int = 2048


def _validate_settings(settings: Settings) -> None:
    """Validate critical application settings."""
    if not settings.DATABASE_URL:
        raise ValueError("DATABASE_URL is required")
    if not settings.GOOGLE_API_KEY:
        raise ValueError("GOOGLE_API_KEY is required")
    if not settings.JWT_SECRET:
        raise ValueError("JWT_SECRET is required")

    # Environment-specific validations
    if settings.ENVIRONMENT == "production" and settings.DEBUG:
        print("WARNING: DEBUG is enabled in production. Consider setting DEBUG=False.")


# Initialize settings with error handling
try:
    settings = Settings()
    _validate_settings(settings)
except Exception as e:
    print(f"Error initializing settings: {e}")
    raise
