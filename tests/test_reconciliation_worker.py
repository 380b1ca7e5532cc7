"""
Tests for the reconciliation worker.
"""
import asyncio
from unittest.mock import AsyncMock

import pytest
import structlog

from keycloak_operator.config.settings import settings
from keycloak_operator.exceptions import KubernetesError
from keycloak_operator.models.actions import ResourceKind
from keycloak_operator.models.cluster_state import ClusterState
from keycloak_operator.services import manifests
from keycloak_operator.services.migrator import DefaultMigrator
from keycloak_operator.workers.reconciliation_worker import ReconciliationWorker


def keycloak_object(name="keycloak-test", namespace="identity", spec=None):
    return {
        "apiVersion": "keycloak.org/v1alpha1",
        "kind": "Keycloak",
        "metadata": {"name": name, "namespace": namespace},
        "spec": spec or {},
    }


@pytest.fixture
def cluster_service():
    return AsyncMock()


@pytest.fixture
def worker(cluster_service):
    return ReconciliationWorker(
        cluster_service=cluster_service,
        migrator=DefaultMigrator(backup_name_factory=lambda: "migration-backup-test"),
        reconcile_interval=3600,
    )


@pytest.mark.asyncio
async def test_reconcile_fresh_install(worker, cluster_service):
    cluster_service.read_state.return_value = ClusterState()

    result = await worker.reconcile_keycloak(keycloak_object())

    cluster_service.apply.assert_awaited_once_with(result.desired_state, "identity")
    assert len(result.desired_state) == 5
    assert result.backup_name is None


@pytest.mark.asyncio
async def test_reconcile_migration_scales_down_and_backs_up(worker, cluster_service, keycloak_cr):
    statefulset = manifests.keycloak_statefulset(keycloak_cr, "old_image")
    statefulset["spec"]["replicas"] = 3
    cluster_service.read_state.return_value = ClusterState(
        keycloak_statefulset=statefulset,
        keycloak_service=manifests.keycloak_service(keycloak_cr),
        postgresql_pvc=manifests.postgresql_pvc(keycloak_cr),
        postgresql_deployment=manifests.postgresql_deployment(keycloak_cr, "postgresql:old"),
        postgresql_service=manifests.postgresql_service(keycloak_cr),
    )
    obj = keycloak_object(spec={"instances": 3, "migration": {"backups": {"enabled": True}}})

    result = await worker.reconcile_keycloak(obj)

    applied = cluster_service.apply.await_args.args[0]
    assert [action.kind for action in applied][-2:] == [ResourceKind.JOB, ResourceKind.PERSISTENT_VOLUME_CLAIM]
    assert manifests.replica_count(applied[3].ref) == 1
    # Deployment moves to the new image while the backup uses the running one
    assert manifests.container_image(applied[0].ref) == settings.postgresql_image
    assert manifests.container_image(applied[4].ref) == "postgresql:old"
    assert result.backup_name == "migration-backup-test"


@pytest.mark.asyncio
async def test_reconcile_all_isolates_failures(worker, cluster_service):
    cluster_service.list_keycloaks.return_value = [
        keycloak_object(name="broken"),
        keycloak_object(name="healthy"),
    ]
    cluster_service.read_state.side_effect = [KubernetesError("Failed to read keycloak"), ClusterState()]

    reconciled = await worker.reconcile_all()

    assert reconciled == 1
    cluster_service.apply.assert_awaited_once()


@pytest.mark.asyncio
async def test_reconcile_all_survives_list_failure(worker, cluster_service):
    cluster_service.list_keycloaks.side_effect = KubernetesError("unreachable")

    assert await worker.reconcile_all() == 0
    cluster_service.read_state.assert_not_awaited()


@pytest.mark.asyncio
async def test_start_and_stop(worker, cluster_service):
    cluster_service.list_keycloaks.return_value = []

    task = asyncio.create_task(worker.start())
    for _ in range(5):
        await asyncio.sleep(0)
    await worker.stop()
    await asyncio.wait_for(task, timeout=1)

    assert worker.running is False
    cluster_service.list_keycloaks.assert_awaited_with(None)


@pytest.mark.asyncio
async def test_reconcile_binds_keycloak_log_context(worker, cluster_service):
    bound = {}

    async def read_state(cr):
        bound.update(structlog.contextvars.get_contextvars())
        return ClusterState()

    cluster_service.read_state.side_effect = read_state

    await worker.reconcile_keycloak(keycloak_object(name="sso", namespace="auth"))

    assert bound == {"keycloak": "sso", "namespace": "auth"}
    assert structlog.contextvars.get_contextvars() == {}
