"""Application settings using pydantic-settings.

Settings are loaded from environment variables with sensible defaults
for development. Production deployments should set all values explicitly.
"""

from functools import lru_cache
from typing import Literal

from pydantic import Field, SecretStr, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class DatabaseSettings(BaseSettings):
    """Control-plane database settings (tier registry, migrations).

    Environment variables:
        TENANTGATE_DB_HOST: Database host (default: localhost)
        TENANTGATE_DB_PORT: Database port (default: 5432)
        TENANTGATE_DB_DATABASE: Database name (default: tenantgate)
        TENANTGATE_DB_USERNAME: Database user (default: tenantgate)
        TENANTGATE_DB_PASSWORD: Database password (required in production)
        TENANTGATE_DB_POOL_MAX_CONNECTIONS: Maximum connections in pool (default: 10)
    """

    model_config = SettingsConfigDict(
        env_prefix="TENANTGATE_DB_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    host: str = Field(default="localhost", description="Database host")
    port: int = Field(default=5432, description="Database port")
    database: str = Field(default="tenantgate", description="Database name")
    username: str = Field(default="tenantgate", description="Database username")
    password: SecretStr = Field(
        default=SecretStr(""),
        description="Database password",
    )
    pool_max_connections: int = Field(
        default=10,
        description="Maximum connections in pool",
        ge=1,
        le=100,
    )

    @property
    def connection_string(self) -> str:
        """Generate a connection string (without password for logging)."""
        return f"postgresql://{self.username}@{self.host}:{self.port}/{self.database}"


class OIDCSettings(BaseSettings):
    """OIDC settings for bearer token validation.

    Environment variables:
        TENANTGATE_OIDC_ISSUER_URL: OIDC issuer (realm) URL
        TENANTGATE_OIDC_AUDIENCE: Expected audience (default: tenantgate)
        TENANTGATE_OIDC_SWAGGER_CLIENT_ID: Public client for Swagger UI login
        TENANTGATE_OIDC_TENANT_CLAIM: Claim carrying the principal's tenants
        TENANTGATE_OIDC_ROLES_CLAIM: Claim carrying the principal's roles
        TENANTGATE_OIDC_OPERATOR_ROLE: Role allowed to drive migrations
    """

    model_config = SettingsConfigDict(
        env_prefix="TENANTGATE_OIDC_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    issuer_url: str = Field(
        default="http://localhost:8080/realms/tenantgate",
        description="OIDC issuer URL",
    )
    audience: str = Field(default="tenantgate", description="Expected audience")
    swagger_client_id: str = Field(
        default="tenantgate-swagger",
        description="Public client used by Swagger UI (PKCE, no secret)",
    )
    user_id_claim: str = Field(default="sub")
    username_claim: str = Field(default="preferred_username")
    tenant_claim: str = Field(default="tenant_id")
    roles_claim: str = Field(default="roles")
    operator_role: str = Field(default="tenancy-operator")


class RoutingSettings(BaseSettings):
    """Shard routing and physical target settings.

    Addresses are opaque to the router; the store driver factory interprets
    them (an in-memory name or an async SQLAlchemy URL).

    Environment variables:
        TENANTGATE_ROUTING_SHARED_POOL_ADDRESS: Address of the shared pool
        TENANTGATE_ROUTING_SHARD_ADDRESSES: JSON list of shard addresses
        TENANTGATE_ROUTING_DEDICATED_ADDRESS_TEMPLATE: Template for dedicated
            cluster addresses; ``{tenant_id}`` is substituted
        TENANTGATE_ROUTING_ARCHIVE_ADDRESS: Where retired tenant data goes
        TENANTGATE_ROUTING_RETRY_ATTEMPTS: Registry attempts before failing
        TENANTGATE_ROUTING_RETRY_BASE_DELAY_MS: First backoff delay
        TENANTGATE_ROUTING_RETRY_MAX_DELAY_MS: Backoff ceiling
    """

    model_config = SettingsConfigDict(
        env_prefix="TENANTGATE_ROUTING_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    shared_pool_address: str = Field(default="memory://shared-pool")
    shard_addresses: list[str] = Field(
        default_factory=lambda: ["memory://shard-0", "memory://shard-1"]
    )
    dedicated_address_template: str = Field(default="memory://dedicated-{tenant_id}")
    archive_address: str = Field(default="memory://archive")
    retry_attempts: int = Field(default=3, ge=1, le=10)
    retry_base_delay_ms: int = Field(default=50, ge=0)
    retry_max_delay_ms: int = Field(default=2000, ge=0)
    retry_jitter_ms: int = Field(default=50, ge=0)

    @model_validator(mode="after")
    def validate_addresses(self) -> "RoutingSettings":
        """Validate shard list and the dedicated address template."""
        if not self.shard_addresses:
            raise ValueError("shard_addresses must contain at least one address")
        if "{tenant_id}" not in self.dedicated_address_template:
            raise ValueError(
                "dedicated_address_template must contain a {tenant_id} placeholder"
            )
        if self.retry_max_delay_ms < self.retry_base_delay_ms:
            raise ValueError(
                f"retry_max_delay_ms ({self.retry_max_delay_ms}) must be >= "
                f"retry_base_delay_ms ({self.retry_base_delay_ms})"
            )
        return self


class MigrationSettings(BaseSettings):
    """Tier migration settings.

    Environment variables:
        TENANTGATE_MIGRATION_CUTOVER_HOLD_TIMEOUT_SECONDS: How long writes
            (and the cutover drain) may wait on a held tenant
        TENANTGATE_MIGRATION_RETENTION_HOURS: How long a retired target
            stays read-only before archival
        TENANTGATE_MIGRATION_SWEEP_INTERVAL_SECONDS: Retention sweep period
    """

    model_config = SettingsConfigDict(
        env_prefix="TENANTGATE_MIGRATION_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    cutover_hold_timeout_seconds: float = Field(default=5.0, gt=0)
    retention_hours: float = Field(default=72.0, ge=0)
    sweep_interval_seconds: int = Field(default=300, ge=1)


class StoreSettings(BaseSettings):
    """Backend selection for the registry, migrations and document stores.

    Environment variables:
        TENANTGATE_STORE_BACKEND: 'memory' (default) or 'postgres'
    """

    model_config = SettingsConfigDict(
        env_prefix="TENANTGATE_STORE_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    backend: Literal["memory", "postgres"] = Field(default="memory")


class Settings(BaseSettings):
    """Main application settings aggregating all configuration sections."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    app_name: str = Field(default="Tenant Gate API", description="Application name")
    debug: bool = Field(default=False, description="Debug mode")

    @property
    def database(self) -> DatabaseSettings:
        """Get database settings."""
        return get_database_settings()

    @property
    def routing(self) -> RoutingSettings:
        """Get routing settings."""
        return get_routing_settings()


@lru_cache
def get_settings() -> Settings:
    """Get cached application settings."""
    return Settings()


@lru_cache
def get_database_settings() -> DatabaseSettings:
    """Get cached database settings."""
    return DatabaseSettings()


@lru_cache
def get_oidc_settings() -> OIDCSettings:
    """Get cached OIDC settings."""
    return OIDCSettings()


@lru_cache
def get_routing_settings() -> RoutingSettings:
    """Get cached routing settings."""
    return RoutingSettings()


@lru_cache
def get_migration_settings() -> MigrationSettings:
    """Get cached migration settings."""
    return MigrationSettings()


@lru_cache
def get_store_settings() -> StoreSettings:
    """Get cached store backend settings."""
    return StoreSettings()
