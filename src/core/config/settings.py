# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Service configuration loaded from the environment.

Each concern has its own settings class with an environment prefix
(``DOCDB_``, ``JWT_``, ``AUTH_``, ``VALIDATION_``, ``ACTIVATION_``,
``RATE_LIMIT_``, ``CORS_``, ``API_``). Settings nests them all and
get_settings() returns one cached instance.

Example:
    >>> from src.core.config.settings import get_settings
    >>> get_settings().activation.ambiguous_match_policy
    'reject'
"""

from functools import lru_cache
from typing import Literal, Self

from pydantic import Field, SecretStr, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class DocumentDatabaseSettings(BaseSettings):
    """Document database configuration.

    All collections (pending_users, users, classes, subjects,
    auth_principals) live in a single JSON document table.

    Attributes:
        user: PostgreSQL username.
        password: PostgreSQL password.
        host: Database host address.
        port: Database port number.
        database: Database name.
        url_override: Full async URL, used instead of the components when set.
        pool_size: Connection pool size.
        max_overflow: Maximum overflow connections.
        create_schema: Create the documents table at startup.
    """

    model_config = SettingsConfigDict(
        env_prefix="DOCDB_",
        extra="ignore",
    )

    user: str = "campus"
    password: SecretStr = SecretStr("campus_password")
    host: str = "campus-db"
    port: int = 5432
    database: str = "campus"
    url_override: str | None = Field(
        default=None,
        validation_alias="DOCDB_URL",
    )
    pool_size: int = 10
    max_overflow: int = 20
    create_schema: bool = True

    @property
    def url(self) -> str:
        """Build the async database URL from components."""
        if self.url_override:
            return self.url_override
        pwd = self.password.get_secret_value()
        return f"postgresql+asyncpg://{self.user}:{pwd}@{self.host}:{self.port}/{self.database}"


class JWTSettings(BaseSettings):
    """JWT authentication configuration.

    Attributes:
        secret_key: Secret key for signing tokens.
        algorithm: JWT signing algorithm.
        access_token_expire_minutes: Access token expiration time.
        refresh_token_expire_days: Refresh token expiration time.
    """

    model_config = SettingsConfigDict(
        env_prefix="JWT_",
        extra="ignore",
    )

    secret_key: SecretStr = SecretStr("change-this-in-production")
    algorithm: str = "HS256"
    access_token_expire_minutes: int = Field(
        default=30,
        validation_alias="ACCESS_TOKEN_EXPIRE_MINUTES",
    )
    refresh_token_expire_days: int = Field(
        default=7,
        validation_alias="REFRESH_TOKEN_EXPIRE_DAYS",
    )


class AuthSettings(BaseSettings):
    """Authentication principal configuration.

    Attributes:
        bcrypt_rounds: bcrypt cost factor for password hashes.
    """

    model_config = SettingsConfigDict(
        env_prefix="AUTH_",
        extra="ignore",
    )

    bcrypt_rounds: int = Field(default=12, ge=4, le=31)


class StudentValidationSettings(BaseSettings):
    """External student validation service configuration.

    The validation service confirms a student's institutional identity
    (matricule and names) before a self-registered account is activated.

    Attributes:
        url: Endpoint receiving the POST validation request.
        timeout: Deadline in seconds for a single attempt.
        max_attempts: Total attempts including the first one.
        backoff_min: Minimum wait between attempts in seconds.
        backoff_max: Maximum wait between attempts in seconds.
        enabled: When False the self-registration path skips validation.
    """

    model_config = SettingsConfigDict(
        env_prefix="VALIDATION_",
        extra="ignore",
    )

    url: str = "https://veri-genius.vercel.app/api/validate-student"
    timeout: float = 10.0
    max_attempts: int = 3
    backoff_min: float = 0.5
    backoff_max: float = 4.0
    enabled: bool = True


class ActivationSettings(BaseSettings):
    """Account activation policy configuration.

    Attributes:
        bootstrap_admin_email: Reserved address that creates the first
            administrator without a pending record.
        ambiguous_match_policy: What to do when several pending records
            match the same proof: "reject" or "first".
        default_group_number: Group used when a student carries none.
        validate_claimed_students: Run the external validator on the
            claim path for student records.
    """

    model_config = SettingsConfigDict(
        env_prefix="ACTIVATION_",
        extra="ignore",
    )

    bootstrap_admin_email: str | None = None
    ambiguous_match_policy: Literal["reject", "first"] = "reject"
    default_group_number: int = Field(default=1, ge=1)
    validate_claimed_students: bool = False


class RateLimitSettings(BaseSettings):
    """Rate limiting configuration.

    Attributes:
        requests_per_minute: Maximum requests per minute per client.
        activation_per_minute: Maximum activation attempts per minute per IP.
        storage_uri: slowapi storage backend.
    """

    model_config = SettingsConfigDict(
        env_prefix="RATE_LIMIT_",
        extra="ignore",
    )

    requests_per_minute: int = 60
    activation_per_minute: int = 10
    storage_uri: str = "memory://"


class CORSSettings(BaseSettings):
    """CORS configuration for API.

    Attributes:
        origins: Comma-separated list of allowed origins.
        allow_credentials: Whether to allow credentials.
        allow_methods: Allowed HTTP methods.
        allow_headers: Allowed HTTP headers.
    """

    model_config = SettingsConfigDict(
        env_prefix="CORS_",
        extra="ignore",
    )

    origins: str = "http://localhost:3000,http://localhost:9002"
    allow_credentials: bool = True
    allow_methods: list[str] = ["*"]
    allow_headers: list[str] = ["*"]

    @property
    def origins_list(self) -> list[str]:
        """Parse origins string into a list."""
        return [origin.strip() for origin in self.origins.split(",") if origin.strip()]


class APISettings(BaseSettings):
    """API server configuration.

    Attributes:
        host: Host to bind to.
        port: Port to listen on.
        workers: Number of worker processes.
        reload: Whether to enable auto-reload.
    """

    model_config = SettingsConfigDict(
        env_prefix="API_",
        extra="ignore",
    )

    host: str = "0.0.0.0"
    port: int = 8000
    workers: int = 2
    reload: bool = False


class Settings(BaseSettings):
    """Main application settings aggregating all subsettings.

    Use get_settings() to obtain a cached singleton instance.

    Attributes:
        environment: Current environment (development, staging, production).
        debug: Enable debug mode.
        log_level: Logging level.
        docdb: Document database settings.
        jwt: JWT authentication settings.
        auth: Authentication principal settings.
        validation: External student validation settings.
        activation: Activation policy settings.
        rate_limit: Rate limiting settings.
        cors: CORS settings.
        api: API server settings.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        case_sensitive=False,
    )

    # Environment
    environment: Literal["development", "staging", "production"] = "development"
    debug: bool = True
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = "DEBUG"

    # Subsettings - loaded with their own env prefixes
    docdb: DocumentDatabaseSettings = Field(default_factory=DocumentDatabaseSettings)
    jwt: JWTSettings = Field(default_factory=JWTSettings)
    auth: AuthSettings = Field(default_factory=AuthSettings)
    validation: StudentValidationSettings = Field(default_factory=StudentValidationSettings)
    activation: ActivationSettings = Field(default_factory=ActivationSettings)
    rate_limit: RateLimitSettings = Field(default_factory=RateLimitSettings)
    cors: CORSSettings = Field(default_factory=CORSSettings)
    api: APISettings = Field(default_factory=APISettings)

    @model_validator(mode="after")
    def validate_production_settings(self) -> Self:
        """Validate that production settings are properly configured.

        Raises:
            ValueError: If running in production with insecure defaults.
        """
        if self.environment == "production":
            default_jwt_secret = "change-this-in-production"
            if self.jwt.secret_key.get_secret_value() == default_jwt_secret:
                raise ValueError(
                    "JWT secret key must be changed from default in production. "
                    "Set JWT_SECRET_KEY environment variable."
                )
        return self

    @property
    def is_development(self) -> bool:
        """Check if running in development environment."""
        return self.environment == "development"

    @property
    def is_production(self) -> bool:
        """Check if running in production environment."""
        return self.environment == "production"


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Settings read once from the environment and cached."""
    return Settings()


def clear_settings_cache() -> None:
    """Drop the cached settings so the next call re-reads the environment."""
    get_settings.cache_clear()
