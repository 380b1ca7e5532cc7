"""
Tests for the desired-state builder.
"""
from keycloak_operator.config.settings import settings
from keycloak_operator.models.actions import ActionType, ResourceKind
from keycloak_operator.models.cluster_state import ClusterState
from keycloak_operator.services import manifests
from keycloak_operator.services.desired_state import build_desired_state


def test_fresh_install_creates_everything(keycloak_cr, empty_state):
    desired_state = build_desired_state(keycloak_cr, empty_state)

    assert [(action.type, action.kind) for action in desired_state] == [
        (ActionType.CREATE, ResourceKind.PERSISTENT_VOLUME_CLAIM),
        (ActionType.CREATE, ResourceKind.DEPLOYMENT),
        (ActionType.CREATE, ResourceKind.SERVICE),
        (ActionType.CREATE, ResourceKind.SERVICE),
        (ActionType.CREATE, ResourceKind.STATEFUL_SET),
    ]
    assert desired_state[1].msg == "Create Postgresql Deployment"


def test_existing_objects_are_updated(keycloak_cr):
    current_state = ClusterState(
        keycloak_statefulset=manifests.keycloak_statefulset(keycloak_cr, "old_image"),
        keycloak_service=manifests.keycloak_service(keycloak_cr),
        postgresql_pvc=manifests.postgresql_pvc(keycloak_cr),
        postgresql_deployment=manifests.postgresql_deployment(keycloak_cr, "postgresql:old"),
        postgresql_service=manifests.postgresql_service(keycloak_cr),
    )

    desired_state = build_desired_state(keycloak_cr, current_state)

    assert len(desired_state) == 4
    assert all(action.type == ActionType.UPDATE for action in desired_state)
    statefulset = desired_state.find(
        ActionType.UPDATE, ResourceKind.STATEFUL_SET, manifests.KEYCLOAK_STATEFULSET_NAME
    )
    assert manifests.container_image(statefulset.ref) == settings.keycloak_image
    deployment = desired_state.find(
        ActionType.UPDATE, ResourceKind.DEPLOYMENT, manifests.POSTGRESQL_DEPLOYMENT_NAME
    )
    assert manifests.container_image(deployment.ref) == settings.postgresql_image


def test_uses_resolved_images_and_instances(make_keycloak, empty_state):
    cr = make_keycloak({
        "instances": 4,
        "imageOverrides": {"keycloak": "keycloak:1.0.0", "postgresql": "postgresql:1.0.0"},
    })

    desired_state = build_desired_state(cr, empty_state)

    statefulset = desired_state[-1].ref
    assert manifests.container_image(statefulset) == "keycloak:1.0.0"
    assert manifests.replica_count(statefulset) == 4
    assert manifests.container_image(desired_state[1].ref) == "postgresql:1.0.0"
