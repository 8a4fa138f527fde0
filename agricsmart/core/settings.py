# ==============================================================================
# SETTINGS CONFIGURATION - Environment Management
# ==============================================================================
# Pydantic Settings for type-safe environment variable management
# Supports: Development, Staging, Production environments
# ==============================================================================

from __future__ import annotations

from enum import Enum
from functools import lru_cache
from typing import List, Optional

from pydantic import Field, computed_field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Environment(str, Enum):
    """Application environment types."""
    DEVELOPMENT = "development"
    STAGING = "staging"
    PRODUCTION = "production"


class Settings(BaseSettings):
    """
    Application Settings Configuration.

    Every value can be overridden by an environment variable of the same
    name or by an entry in the ``.env`` file.

    Example:
        >>> from agricsmart.core.settings import settings
        >>> print(settings.APP_NAME)
        'AgricSmart'
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore",
    )

    # --------------------------------------------------------------------------
    # APPLICATION SETTINGS
    # --------------------------------------------------------------------------
    APP_NAME: str = Field(
        default="AgricSmart",
        description="Application display name"
    )
    APP_VERSION: str = Field(
        default="1.0.0",
        description="Application semantic version"
    )
    DEBUG: bool = Field(
        default=False,
        description="Enable debug mode (docs, error details)"
    )
    ENVIRONMENT: Environment = Field(
        default=Environment.DEVELOPMENT,
        description="Current deployment environment"
    )

    # --------------------------------------------------------------------------
    # API CONFIGURATION
    # --------------------------------------------------------------------------
    API_V1_PREFIX: str = Field(
        default="/api/v1",
        description="API version 1 route prefix"
    )
    API_TITLE: str = Field(
        default="AgricSmart API",
        description="OpenAPI documentation title"
    )
    API_DESCRIPTION: str = Field(
        default="Marketplace, payments, chat, education and AI advisory for agriculture",
        description="OpenAPI documentation description"
    )

    # --------------------------------------------------------------------------
    # MONGODB CONFIGURATION
    # --------------------------------------------------------------------------
    MONGODB_URL: str = Field(
        default="mongodb://localhost:27017",
        description="MongoDB connection URI"
    )
    MONGODB_DB: str = Field(
        default="agricsmart",
        description="MongoDB database name"
    )
    DB_POOL_SIZE: int = Field(
        default=10,
        ge=1,
        le=100,
        description="Maximum connections held by the Motor pool"
    )
    DB_CONNECT_TIMEOUT_MS: int = Field(
        default=5000,
        ge=100,
        description="Server selection / connect timeout in milliseconds"
    )

    # --------------------------------------------------------------------------
    # SECURITY SETTINGS
    # --------------------------------------------------------------------------
    SECRET_KEY: str = Field(
        default="your-super-secret-key-change-in-production",
        min_length=32,
        description="JWT signing secret key (min 32 chars)"
    )
    ALGORITHM: str = Field(
        default="HS256",
        description="JWT signing algorithm"
    )
    ACCESS_TOKEN_EXPIRE_MINUTES: int = Field(
        default=60,
        ge=1,
        le=1440,
        description="Access token expiration in minutes"
    )
    REFRESH_TOKEN_EXPIRE_DAYS: int = Field(
        default=7,
        ge=1,
        le=30,
        description="Refresh token expiration in days"
    )
    BCRYPT_ROUNDS: int = Field(
        default=12,
        ge=4,
        le=16,
        description="bcrypt work factor"
    )

    # --------------------------------------------------------------------------
    # CORS SETTINGS
    # --------------------------------------------------------------------------
    CORS_ORIGINS: List[str] = Field(
        default=["*"],
        description="Allowed CORS origins"
    )
    CORS_ALLOW_CREDENTIALS: bool = Field(
        default=True,
        description="Allow credentials in CORS requests"
    )

    # --------------------------------------------------------------------------
    # LOGGING CONFIGURATION
    # --------------------------------------------------------------------------
    LOG_LEVEL: str = Field(
        default="INFO",
        description="Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)"
    )
    LOG_FORMAT: str = Field(
        default="text",
        description="Log format (json, text)"
    )

    # --------------------------------------------------------------------------
    # EMAIL (SMTP) CONFIGURATION
    # --------------------------------------------------------------------------
    SMTP_HOST: Optional[str] = Field(
        default=None,
        description="SMTP server host; emails are logged only when unset"
    )
    SMTP_PORT: int = Field(
        default=587,
        ge=1,
        le=65535,
        description="SMTP server port"
    )
    SMTP_USER: Optional[str] = Field(
        default=None,
        description="SMTP username"
    )
    SMTP_PASSWORD: Optional[str] = Field(
        default=None,
        description="SMTP password"
    )
    SMTP_USE_TLS: bool = Field(
        default=True,
        description="Issue STARTTLS after connecting"
    )
    EMAIL_FROM: str = Field(
        default="AgricSmart <no-reply@agricsmart.app>",
        description="Sender address for outgoing email"
    )

    # --------------------------------------------------------------------------
    # AI ADVISORY (OPENAI) CONFIGURATION
    # --------------------------------------------------------------------------
    OPENAI_API_KEY: Optional[str] = Field(
        default=None,
        description="OpenAI API key; advisory endpoints return 503 when unset"
    )
    OPENAI_BASE_URL: Optional[str] = Field(
        default=None,
        description="Optional OpenAI-compatible base URL"
    )
    OPENAI_MODEL: str = Field(
        default="gpt-4o-mini",
        description="Chat completion model"
    )
    OPENAI_IMAGE_MODEL: str = Field(
        default="dall-e-3",
        description="Image generation model"
    )
    OPENAI_TIMEOUT: float = Field(
        default=60.0,
        gt=0,
        description="Request timeout in seconds"
    )
    OPENAI_MAX_TOKENS: int = Field(
        default=800,
        ge=16,
        description="Maximum completion tokens per advisory answer"
    )

    # --------------------------------------------------------------------------
    # OUTBOX (SIDE-EFFECT DELIVERY)
    # --------------------------------------------------------------------------
    OUTBOX_WORKER_ENABLED: bool = Field(
        default=True,
        description="Run the background outbox dispatcher"
    )
    OUTBOX_POLL_INTERVAL: float = Field(
        default=2.0,
        gt=0,
        description="Seconds between dispatcher polls"
    )
    OUTBOX_MAX_ATTEMPTS: int = Field(
        default=5,
        ge=1,
        description="Delivery attempts before an event is dead-lettered"
    )
    OUTBOX_RETRY_DELAY: float = Field(
        default=10.0,
        ge=0,
        description="Base retry delay in seconds (multiplied by attempt)"
    )
    OUTBOX_LEASE_SECONDS: int = Field(
        default=60,
        ge=1,
        description="Seconds a claimed event stays locked to one dispatcher"
    )
    OUTBOX_BATCH_SIZE: int = Field(
        default=50,
        ge=1,
        description="Events claimed per dispatcher pass"
    )

    # --------------------------------------------------------------------------
    # DOMAIN DEFAULTS
    # --------------------------------------------------------------------------
    DEFAULT_CURRENCY: str = Field(
        default="GHS",
        description="Currency used when a payment or order omits one"
    )
    NEARBY_MAX_DISTANCE_KM: float = Field(
        default=50.0,
        gt=0,
        description="Default radius for nearby product search"
    )
    CERTIFICATE_VERIFY_URL: str = Field(
        default="https://agricsmart.app/verify-certificate",
        description="Base URL embedded in certificate verification links"
    )

    # --------------------------------------------------------------------------
    # COMPUTED PROPERTIES
    # --------------------------------------------------------------------------
    @computed_field
    @property
    def is_development(self) -> bool:
        """Check if running in development environment."""
        return self.ENVIRONMENT == Environment.DEVELOPMENT

    @computed_field
    @property
    def is_production(self) -> bool:
        """Check if running in production environment."""
        return self.ENVIRONMENT == Environment.PRODUCTION

    @computed_field
    @property
    def email_enabled(self) -> bool:
        """SMTP delivery is active only when a host is configured."""
        return bool(self.SMTP_HOST)

    # --------------------------------------------------------------------------
    # VALIDATORS
    # --------------------------------------------------------------------------
    @field_validator("SECRET_KEY")
    @classmethod
    def validate_secret_key(cls, v: str) -> str:
        """Warn when the shipped default key is in use."""
        if v == "your-super-secret-key-change-in-production":
            import warnings
            warnings.warn(
                "Using default SECRET_KEY. Generate a secure key for production!",
                UserWarning
            )
        return v

    @field_validator("CORS_ORIGINS", mode="before")
    @classmethod
    def parse_cors_origins(cls, v):
        """Parse CORS origins from string or list."""
        if isinstance(v, str):
            if v == "*":
                return ["*"]
            return [origin.strip() for origin in v.split(",")]
        return v

    @field_validator("LOG_FORMAT")
    @classmethod
    def validate_log_format(cls, v: str) -> str:
        v = v.lower()
        if v not in ("json", "text"):
            raise ValueError("LOG_FORMAT must be 'json' or 'text'")
        return v


@lru_cache()
def get_settings() -> Settings:
    """
    Get cached Settings instance.

    Returns:
        Settings: Cached settings instance
    """
    return Settings()


# Module-level settings instance for convenient imports
settings = get_settings()
