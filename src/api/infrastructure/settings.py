"""Application settings using pydantic-settings.

Settings are loaded from environment variables with sensible defaults
for development. Production deployments should set all values explicitly.

Core services never read these classes directly: the dependency layer
assembles an immutable ``CoreConfig`` from them and injects it.
"""

from dataclasses import dataclass
from enum import StrEnum
from functools import lru_cache

from pydantic import Field, SecretStr, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class IdentityBackend(StrEnum):
    """Where the authoritative identity records live."""

    LOCAL = "local"
    IDENTITY_PROVIDER = "identity_provider"


class DatabaseSettings(BaseSettings):
    """Database connection settings.

    Environment variables:
        AUTHGATE_DB_HOST: Database host (default: localhost)
        AUTHGATE_DB_PORT: Database port (default: 5432)
        AUTHGATE_DB_DATABASE: Database name (default: authgate)
        AUTHGATE_DB_USERNAME: Database user (default: authgate)
        AUTHGATE_DB_PASSWORD: Database password (required in production)
        AUTHGATE_DB_POOL_MIN_CONNECTIONS: Minimum connections in pool (default: 2)
        AUTHGATE_DB_POOL_MAX_CONNECTIONS: Maximum connections in pool (default: 10)
    """

    model_config = SettingsConfigDict(
        env_prefix="AUTHGATE_DB_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    host: str = Field(default="localhost", description="Database host")
    port: int = Field(default=5432, description="Database port")
    database: str = Field(default="authgate", description="Database name")
    username: str = Field(default="authgate", description="Database username")
    password: SecretStr = Field(
        default=SecretStr(""),
        description="Database password",
    )
    pool_min_connections: int = Field(
        default=2,
        description="Minimum connections in pool",
        ge=1,
        le=100,
    )
    pool_max_connections: int = Field(
        default=10,
        description="Maximum connections in pool",
        ge=1,
        le=100,
    )

    @model_validator(mode="after")
    def validate_pool_settings(self) -> "DatabaseSettings":
        """Validate pool max >= min."""
        if self.pool_max_connections < self.pool_min_connections:
            raise ValueError(
                f"pool_max_connections ({self.pool_max_connections}) must be >= "
                f"pool_min_connections ({self.pool_min_connections})"
            )
        return self

    @property
    def connection_string(self) -> str:
        """Generate a connection string (without password for logging)."""
        return f"postgresql://{self.username}@{self.host}:{self.port}/{self.database}"


class TokenSettings(BaseSettings):
    """Session token signing settings.

    Environment variables:
        AUTHGATE_TOKEN_SECRET: HMAC signing secret (required in production)
        AUTHGATE_TOKEN_ALGORITHM: Signing algorithm (default: HS256)
        AUTHGATE_TOKEN_EXPIRES_IN_MINUTES: Token lifetime, 0 means never (default: 0)
    """

    model_config = SettingsConfigDict(
        env_prefix="AUTHGATE_TOKEN_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    secret: SecretStr = Field(
        default=SecretStr("change-me"),
        description="Secret used to sign session tokens",
    )
    algorithm: str = Field(default="HS256", description="JWT signing algorithm")
    expires_in_minutes: int = Field(
        default=0,
        ge=0,
        description="Token lifetime in minutes; 0 disables expiry",
    )


class IdentityProviderSettings(BaseSettings):
    """External identity provider settings.

    Environment variables:
        AUTHGATE_IDP_URL: Base URL of the identity provider org
        AUTHGATE_IDP_API_KEY: API token for the users API
        AUTHGATE_IDP_CLIENT_ID: OAuth client id
        AUTHGATE_IDP_CLIENT_SECRET: OAuth client secret
        AUTHGATE_IDP_REDIRECT_URI: Authorization-code callback URL
        AUTHGATE_IDP_TIMEOUT_SECONDS: Per-request timeout (default: 15)
    """

    model_config = SettingsConfigDict(
        env_prefix="AUTHGATE_IDP_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    url: str = Field(default="http://localhost:9000", description="IdP base URL")
    api_key: SecretStr = Field(default=SecretStr(""), description="IdP API token")
    client_id: str = Field(default="", description="OAuth client id")
    client_secret: SecretStr = Field(
        default=SecretStr(""), description="OAuth client secret"
    )
    redirect_uri: str = Field(
        default="http://localhost:9050/auth/authorization-code/callback",
        description="Authorization-code callback URL",
    )
    timeout_seconds: float = Field(
        default=15.0,
        ge=1.0,
        le=60.0,
        description="Timeout applied to every IdP request",
    )


class MailSettings(BaseSettings):
    """Transactional mail settings.

    Environment variables:
        AUTHGATE_MAIL_API_URL: Transmission API base URL
        AUTHGATE_MAIL_API_KEY: Transmission API key
        AUTHGATE_MAIL_SENDER: From address
        AUTHGATE_MAIL_SENDER_NAME: From display name
        AUTHGATE_MAIL_TIMEOUT_SECONDS: Per-request timeout (default: 15)
        AUTHGATE_MAIL_DISABLED: Skip sending, only log (default: false)
    """

    model_config = SettingsConfigDict(
        env_prefix="AUTHGATE_MAIL_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    api_url: str = Field(
        default="https://api.sparkpost.com/api/v1",
        description="Transmission API base URL",
    )
    api_key: SecretStr = Field(default=SecretStr(""), description="Mail API key")
    sender: str = Field(default="noreply@example.com", description="From address")
    sender_name: str = Field(default="Authgate", description="From display name")
    timeout_seconds: float = Field(default=15.0, ge=1.0, le=60.0)
    disabled: bool = Field(
        default=False,
        description="Log transmissions instead of sending them",
    )


class Settings(BaseSettings):
    """Main application settings aggregating all configuration sections."""

    model_config = SettingsConfigDict(
        env_prefix="AUTHGATE_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Application metadata
    app_name: str = Field(default="Authgate API", description="Application name")
    debug: bool = Field(default=False, description="Debug mode")
    public_url: str = Field(
        default="http://localhost:9050",
        description="Public base URL used in links sent by mail",
    )
    identity_backend: IdentityBackend = Field(
        default=IdentityBackend.LOCAL,
        description="Source of truth for identity records",
    )
    default_app: str = Field(default="rw", description="Fallback origin application")
    redirect_urls: dict[str, str] = Field(
        default_factory=dict,
        description="Per-application redirect URL after account confirmation",
    )

    @property
    def database(self) -> DatabaseSettings:
        """Get database settings."""
        return get_database_settings()


@dataclass(frozen=True)
class CoreConfig:
    """Immutable configuration handed to core services.

    Built once from the settings classes; services receive it through
    dependency injection instead of reading ambient state.
    """

    token_secret: str
    token_algorithm: str
    token_expires_in_minutes: int
    identity_backend: IdentityBackend
    public_url: str
    default_app: str
    redirect_urls: tuple[tuple[str, str], ...] = ()

    def redirect_url_for(self, app: str) -> str | None:
        """Return the confirmation redirect configured for an application."""
        return dict(self.redirect_urls).get(app)


@lru_cache
def get_settings() -> Settings:
    """Get cached application settings.

    Uses lru_cache to ensure settings are only loaded once.
    """
    return Settings()


@lru_cache
def get_database_settings() -> DatabaseSettings:
    """Get cached database settings.

    Uses lru_cache to ensure settings are only loaded once.
    """
    return DatabaseSettings()


@lru_cache
def get_token_settings() -> TokenSettings:
    """Get cached token settings."""
    return TokenSettings()


@lru_cache
def get_identity_provider_settings() -> IdentityProviderSettings:
    """Get cached identity provider settings."""
    return IdentityProviderSettings()


@lru_cache
def get_mail_settings() -> MailSettings:
    """Get cached mail settings."""
    return MailSettings()


@lru_cache
def get_core_config() -> CoreConfig:
    """Assemble the immutable core configuration from all settings sections."""
    settings = get_settings()
    token = get_token_settings()
    return CoreConfig(
        token_secret=token.secret.get_secret_value(),
        token_algorithm=token.algorithm,
        token_expires_in_minutes=token.expires_in_minutes,
        identity_backend=settings.identity_backend,
        public_url=settings.public_url.rstrip("/"),
        default_app=settings.default_app,
        redirect_urls=tuple(sorted(settings.redirect_urls.items())),
    )
