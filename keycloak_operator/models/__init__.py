from keycloak_operator.models.actions import (
    ActionType,
    ClusterAction,
    DesiredClusterState,
    ResourceKind,
)
from keycloak_operator.models.cluster_state import ClusterState
from keycloak_operator.models.keycloak import (
    BackupConfig,
    Keycloak,
    KeycloakBackup,
    KeycloakRelatedImages,
    KeycloakSpec,
    MigrateConfig,
)

__all__ = [
    "ActionType",
    "BackupConfig",
    "ClusterAction",
    "ClusterState",
    "DesiredClusterState",
    "Keycloak",
    "KeycloakBackup",
    "KeycloakRelatedImages",
    "KeycloakSpec",
    "MigrateConfig",
    "ResourceKind",
]
