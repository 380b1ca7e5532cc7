"""
Operator configuration using Pydantic Settings.
Loads configuration from environment variables with validation.
"""
from typing import Optional
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Main operator settings with environment variable loading."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Application
    app_name: str = Field(default="Keycloak Operator", description="Application name")
    app_version: str = Field(default="1.0.0", description="Application version")
    environment: str = Field(default="development", description="Environment (development/staging/production)")
    log_level: str = Field(default="INFO", description="Logging level")

    # Default images (used when the Keycloak CR has no image override)
    keycloak_image: str = Field(
        default="quay.io/keycloak/keycloak:9.0.2", description="Default Keycloak image"
    )
    rhsso_image: str = Field(
        default="registry.redhat.io/rh-sso-7/sso74-openshift-rhel8:7.4",
        description="Default RH-SSO image (RHSSO profile)",
    )
    postgresql_image: str = Field(
        default="registry.redhat.io/rhel8/postgresql-10:1", description="Default PostgreSQL image"
    )

    # Migration backups
    backup_name_prefix: str = Field(
        default="migration-backup-", description="Name prefix of one-time migration backups"
    )
    backup_storage_size: str = Field(default="1Gi", description="Size of the migration backup volume claim")
    database_storage_size: str = Field(default="1Gi", description="Size of the PostgreSQL data volume claim")

    # Kubernetes
    kubeconfig_path: Optional[str] = Field(
        default=None, description="Path to kubeconfig file (None for default location)"
    )
    k8s_in_cluster: bool = Field(default=False, description="Running inside Kubernetes cluster")
    watch_namespace: Optional[str] = Field(
        default=None, description="Namespace to watch for Keycloak resources (None for all namespaces)"
    )

    # Reconciler
    reconcile_interval: int = Field(default=30, ge=5, le=600, description="Reconciliation interval in seconds")

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate log level."""
        valid_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        if v.upper() not in valid_levels:
            raise ValueError(f"Log level must be one of {valid_levels}")
        return v.upper()

    @field_validator("environment")
    @classmethod
    def validate_environment(cls, v: str) -> str:
        """Validate environment."""
        valid_envs = ["development", "staging", "production"]
        if v.lower() not in valid_envs:
            raise ValueError(f"Environment must be one of {valid_envs}")
        return v.lower()

    @property
    def is_production(self) -> bool:
        """Check if running in production."""
        return self.environment == "production"


# Global settings instance
settings = Settings()
