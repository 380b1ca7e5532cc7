"""
Pydantic models for the Keycloak custom resource.

Fields set to null in the custom resource fall back to their defaults.
"""
from typing import Any, Dict

from pydantic import BaseModel, ConfigDict, Field, field_validator, ValidationInfo

KEYCLOAK_GROUP = "keycloak.org"
KEYCLOAK_VERSION = "v1alpha1"
KEYCLOAK_PLURAL = "keycloaks"

RHSSO_PROFILE = "RHSSO"


class KeycloakRelatedImages(BaseModel):
    """Per-component image overrides. Empty string means "use the default"."""

    keycloak: str = Field(default="", description="Keycloak image override")
    rhsso: str = Field(default="", description="RH-SSO image override (RHSSO profile)")
    postgresql: str = Field(default="", description="PostgreSQL image override")

    @field_validator("keycloak", "rhsso", "postgresql", mode="before")
    @classmethod
    def null_as_empty(cls, v: Any) -> Any:
        return "" if v is None else v


class BackupConfig(BaseModel):
    """Backup settings applied during migrations."""

    enabled: bool = Field(default=False, description="Take a one-time backup before migrating")

    @field_validator("enabled", mode="before")
    @classmethod
    def null_as_disabled(cls, v: Any) -> Any:
        return False if v is None else v


class MigrateConfig(BaseModel):
    """Migration settings."""

    backups: BackupConfig = Field(default_factory=BackupConfig)

    @field_validator("backups", mode="before")
    @classmethod
    def null_as_default(cls, v: Any) -> Any:
        return {} if v is None else v


class KeycloakSpec(BaseModel):
    """Desired configuration of a Keycloak deployment."""

    model_config = ConfigDict(populate_by_name=True)

    instances: int = Field(default=1, ge=0, description="Number of Keycloak replicas")
    profile: str = Field(default="", description="Image profile ('' for Keycloak, 'RHSSO' for RH-SSO)")
    image_overrides: KeycloakRelatedImages = Field(
        default_factory=KeycloakRelatedImages, alias="imageOverrides"
    )
    migration: MigrateConfig = Field(default_factory=MigrateConfig)

    @field_validator("profile", "image_overrides", "migration", mode="before")
    @classmethod
    def null_as_default(cls, v: Any, info: ValidationInfo) -> Any:
        if v is not None:
            return v
        return "" if info.field_name == "profile" else {}

    @field_validator("instances", mode="before")
    @classmethod
    def null_as_single_instance(cls, v: Any) -> Any:
        return 1 if v is None else v

    @property
    def is_rhsso(self) -> bool:
        return self.profile == RHSSO_PROFILE

    @property
    def backups_enabled(self) -> bool:
        return self.migration.backups.enabled


class Keycloak(BaseModel):
    """A Keycloak custom resource (metadata subset plus spec)."""

    name: str = Field(default="keycloak")
    namespace: str = Field(default="default")
    spec: KeycloakSpec = Field(default_factory=KeycloakSpec)

    @classmethod
    def from_custom_object(cls, obj: Dict[str, Any]) -> "Keycloak":
        """Build from the dict returned by the custom objects API."""
        metadata = obj.get("metadata") or {}
        return cls(
            name=metadata.get("name") or "keycloak",
            namespace=metadata.get("namespace") or "default",
            spec=KeycloakSpec.model_validate(obj.get("spec") or {}),
        )


class KeycloakBackup(BaseModel):
    """Identity of a one-time migration backup."""

    name: str
    namespace: str
