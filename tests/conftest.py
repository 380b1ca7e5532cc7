"""
Pytest configuration and fixtures.
"""
import pytest

from keycloak_operator.config.settings import settings
from keycloak_operator.models.actions import ClusterAction, DesiredClusterState
from keycloak_operator.models.cluster_state import ClusterState
from keycloak_operator.models.keycloak import Keycloak, KeycloakSpec
from keycloak_operator.services import manifests


@pytest.fixture(autouse=True)
def default_images(monkeypatch):
    """Pin default images so tests do not depend on the environment."""
    monkeypatch.setattr(settings, "keycloak_image", "quay.io/keycloak/keycloak:9.0.2")
    monkeypatch.setattr(settings, "rhsso_image", "registry.redhat.io/rh-sso-7/sso74-openshift-rhel8:7.4")
    monkeypatch.setattr(settings, "postgresql_image", "registry.redhat.io/rhel8/postgresql-10:1")
    monkeypatch.setattr(settings, "backup_name_prefix", "migration-backup-")


@pytest.fixture
def make_keycloak():
    """Factory for Keycloak resources from a raw CR spec dict."""
    def _make(spec=None, name="keycloak-test", namespace="identity"):
        return Keycloak(
            name=name,
            namespace=namespace,
            spec=KeycloakSpec.model_validate(spec or {}),
        )
    return _make


@pytest.fixture
def keycloak_cr(make_keycloak):
    return make_keycloak()


@pytest.fixture
def statefulset_with_image(keycloak_cr):
    def _make(image, replicas=1):
        statefulset = manifests.keycloak_statefulset(keycloak_cr, image)
        statefulset["spec"]["replicas"] = replicas
        return statefulset
    return _make


@pytest.fixture
def deployment_with_image(keycloak_cr):
    def _make(image):
        return manifests.postgresql_deployment(keycloak_cr, image)
    return _make


@pytest.fixture
def empty_state():
    return ClusterState()


@pytest.fixture
def desired_with_statefulset(keycloak_cr):
    """Desired state holding an update of the Keycloak StatefulSet with 5 replicas."""
    def _make(image=None):
        statefulset = manifests.keycloak_statefulset(keycloak_cr, image or settings.keycloak_image)
        statefulset["spec"]["replicas"] = 5
        return DesiredClusterState([ClusterAction.update(statefulset, msg="Update Keycloak StatefulSet")])
    return _make
