"""
Desired-state builder: turns a Keycloak resource and the current cluster
state into an ordered list of create/update actions.
"""
from typing import Any, Dict, Optional

from keycloak_operator.models.actions import ClusterAction, DesiredClusterState
from keycloak_operator.models.cluster_state import ClusterState
from keycloak_operator.models.keycloak import Keycloak
from keycloak_operator.services import manifests
from keycloak_operator.services.images import ImageRole, resolve_image


def _create_or_update(
    desired: Dict[str, Any],
    current: Optional[Dict[str, Any]],
    description: str,
) -> ClusterAction:
    if current is None:
        return ClusterAction.create(desired, msg=f"Create {description}")
    return ClusterAction.update(desired, msg=f"Update {description}")


def build_desired_state(cr: Keycloak, current_state: ClusterState) -> DesiredClusterState:
    """
    Build the actions converging the cluster towards `cr`.

    Order: database volume claim, database Deployment and Service, then the
    Keycloak Service and StatefulSet. The data volume claim is only ever
    created; its spec is immutable once bound.
    """
    desired_state = DesiredClusterState()

    if current_state.postgresql_pvc is None:
        desired_state.add_action(
            ClusterAction.create(
                manifests.postgresql_pvc(cr),
                msg="Create Postgresql Persistent Volume Claim",
            )
        )

    postgresql_image = resolve_image(cr.spec, ImageRole.POSTGRESQL)
    desired_state.add_action(
        _create_or_update(
            manifests.postgresql_deployment(cr, postgresql_image),
            current_state.postgresql_deployment,
            "Postgresql Deployment",
        )
    )
    desired_state.add_action(
        _create_or_update(
            manifests.postgresql_service(cr),
            current_state.postgresql_service,
            "Postgresql Service",
        )
    )
    desired_state.add_action(
        _create_or_update(
            manifests.keycloak_service(cr),
            current_state.keycloak_service,
            "Keycloak Service",
        )
    )

    keycloak_image = resolve_image(cr.spec, ImageRole.KEYCLOAK)
    desired_state.add_action(
        _create_or_update(
            manifests.keycloak_statefulset(cr, keycloak_image),
            current_state.keycloak_statefulset,
            "Keycloak StatefulSet",
        )
    )

    return desired_state
