"""
One-time database backups taken before a migration.
"""
from datetime import datetime
from typing import Optional
from uuid import uuid4

from keycloak_operator.config.logging import get_logger
from keycloak_operator.config.settings import settings
from keycloak_operator.models.actions import ClusterAction, DesiredClusterState
from keycloak_operator.models.keycloak import Keycloak, KeycloakBackup
from keycloak_operator.services.manifests import postgresql_backup_job, postgresql_backup_pvc

logger = get_logger(__name__)


def generate_backup_name(now: Optional[datetime] = None) -> str:
    """
    Build a unique backup name, e.g. migration-backup-20200102-150405-1a2b3.

    The timestamp has second precision; the random suffix keeps names unique
    when two passes run within the same second.
    """
    now = now or datetime.now()
    return f"{settings.backup_name_prefix}{now.strftime('%Y%m%d-%H%M%S')}-{uuid4().hex[:5]}"


def inject_backup(
    cr: Keycloak,
    desired_state: DesiredClusterState,
    image: str,
    name: Optional[str] = None,
) -> KeycloakBackup:
    """
    Append a backup Job and its volume claim to the desired state.

    Existing actions are left untouched.

    Args:
        cr: Keycloak resource being migrated
        desired_state: Desired state to append to (mutated in place)
        image: Database image the backup Job runs
        name: Backup name (generated when not given)

    Returns:
        The backup identity used for both new objects
    """
    backup = KeycloakBackup(name=name or generate_backup_name(), namespace=cr.namespace)

    backup_action = ClusterAction.create(
        postgresql_backup_job(backup, cr, image),
        msg="Create Local Backup job",
    )
    volume_claim_action = ClusterAction.create(
        postgresql_backup_pvc(backup),
        msg="Create Local Backup Persistent Volume Claim",
    )

    logger.info(
        "migration_backup_scheduled",
        keycloak=cr.name,
        namespace=cr.namespace,
        backup_name=backup.name,
        image=image,
    )
    desired_state.add_action(backup_action)
    desired_state.add_action(volume_claim_action)

    return backup
