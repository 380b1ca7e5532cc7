"""
Migration planning for Keycloak and PostgreSQL image changes.

Runs once per reconciliation pass, after the desired state has been built
and before it is applied. When the running Keycloak image differs from the
desired one the Keycloak StatefulSet is scaled down to a single replica, and
when backups are enabled a one-time database backup is appended. The backup
always runs the PostgreSQL image that is currently deployed, so the dump is
taken with a binary compatible tool before the database image changes.

The planner performs no I/O and keeps no state: once running and desired
images converge it becomes a no-op.
"""
from typing import Any, Callable, Dict, Optional

from pydantic import BaseModel, ConfigDict

from keycloak_operator.config.logging import get_logger
from keycloak_operator.models.actions import ActionType, DesiredClusterState, ResourceKind
from keycloak_operator.models.cluster_state import ClusterState
from keycloak_operator.models.keycloak import Keycloak
from keycloak_operator.services.images import ImageRole, resolve_image
from keycloak_operator.services.manifests import KEYCLOAK_STATEFULSET_NAME, container_image
from keycloak_operator.services.migration_backup import generate_backup_name, inject_backup

logger = get_logger(__name__)


class MigrationResult(BaseModel):
    """Outcome of planning one reconciliation pass."""

    model_config = ConfigDict(arbitrary_types_allowed=True)

    desired_state: DesiredClusterState
    database_image: str
    backup_name: Optional[str] = None
    scaled_down: bool = False


def needs_migration(current: Optional[Dict[str, Any]], desired_image: str) -> bool:
    """
    Check whether a workload runs a different image than desired.

    A workload that does not exist yet has nothing to migrate from.
    Images are compared as plain strings, so registry or tag changes count.
    """
    if current is None:
        return False
    return container_image(current) != desired_image


class DefaultMigrator:
    """Plans guarded rollouts and pre-migration backups."""

    def __init__(self, backup_name_factory: Callable[[], str] = generate_backup_name):
        self.backup_name_factory = backup_name_factory

    def migrate(
        self,
        cr: Keycloak,
        current_state: ClusterState,
        desired_state: DesiredClusterState,
    ) -> MigrationResult:
        """
        Amend the desired state for a pending migration.

        Args:
            cr: Keycloak resource (never modified)
            current_state: Objects currently in the cluster
            desired_state: Planned actions (appended to and mutated in place)

        Returns:
            MigrationResult with the amended desired state and the database
            image a backup runs with
        """
        desired_keycloak_image = resolve_image(cr.spec, ImageRole.KEYCLOAK)
        desired_postgresql_image = resolve_image(cr.spec, ImageRole.POSTGRESQL)
        postgresql_needs_migration = needs_migration(
            current_state.postgresql_deployment, desired_postgresql_image
        )

        # Backups must run the database binary that wrote the data
        database_image = desired_postgresql_image
        if postgresql_needs_migration:
            database_image = container_image(current_state.postgresql_deployment)

        result = MigrationResult(desired_state=desired_state, database_image=database_image)

        if needs_migration(current_state.keycloak_statefulset, desired_keycloak_image):
            logger.info(
                "performing_migration",
                keycloak=cr.name,
                namespace=cr.namespace,
                current_image=container_image(current_state.keycloak_statefulset),
                desired_image=desired_keycloak_image,
            )
            result.scaled_down = self._scale_down_keycloak(cr, desired_state)

            if cr.spec.backups_enabled:
                result.backup_name = self._backup(cr, desired_state, database_image)

        elif postgresql_needs_migration and cr.spec.backups_enabled:
            logger.info(
                "performing_database_migration",
                keycloak=cr.name,
                namespace=cr.namespace,
                current_image=database_image,
                desired_image=desired_postgresql_image,
            )
            result.backup_name = self._backup(cr, desired_state, database_image)

        return result

    def _scale_down_keycloak(self, cr: Keycloak, desired_state: DesiredClusterState) -> bool:
        action = desired_state.find(
            ActionType.UPDATE, ResourceKind.STATEFUL_SET, KEYCLOAK_STATEFULSET_NAME
        )
        if action is None:
            logger.info(
                "migration_scale_down_target_missing",
                keycloak=cr.name,
                namespace=cr.namespace,
                statefulset=KEYCLOAK_STATEFULSET_NAME,
            )
            return False

        action.ref.setdefault("spec", {})["replicas"] = 1
        logger.info(
            "migration_replicas_decreased",
            keycloak=cr.name,
            namespace=cr.namespace,
            replicas=1,
        )
        return True

    def _backup(self, cr: Keycloak, desired_state: DesiredClusterState, image: str) -> str:
        backup = inject_backup(cr, desired_state, image, name=self.backup_name_factory())
        return backup.name
