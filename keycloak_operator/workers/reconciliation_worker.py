"""
Reconciliation worker for Keycloak resources.

Runs periodically. For every Keycloak custom resource it reads the current
cluster state, builds the desired state, lets the migrator amend it for
pending image migrations and applies the result.
"""
import asyncio
import signal
from typing import Any, Dict, Optional

from keycloak_operator.config.logging import configure_logging, get_logger, keycloak_context
from keycloak_operator.config.settings import settings
from keycloak_operator.models.keycloak import Keycloak
from keycloak_operator.services.cluster_service import ClusterService
from keycloak_operator.services.desired_state import build_desired_state
from keycloak_operator.services.migrator import DefaultMigrator, MigrationResult

logger = get_logger(__name__)


class ReconciliationWorker:
    """
    Converges Keycloak and PostgreSQL workloads towards their custom resources.

    Features:
    - Periodic reconciliation (configurable interval)
    - Guarded rollout and pre-migration backup on image changes
    - Per-resource error isolation
    - Graceful shutdown
    """

    def __init__(
        self,
        cluster_service: ClusterService,
        migrator: Optional[DefaultMigrator] = None,
        reconcile_interval: int = 30,
        namespace: Optional[str] = None,
    ):
        """
        Initialize reconciliation worker.

        Args:
            cluster_service: Connected Kubernetes access
            migrator: Migration planner (default: DefaultMigrator)
            reconcile_interval: Seconds between reconciliation runs
            namespace: Namespace to watch (None for all namespaces)
        """
        self.cluster_service = cluster_service
        self.migrator = migrator or DefaultMigrator()
        self.reconcile_interval = reconcile_interval
        self.namespace = namespace
        self.running = False
        self._sleep_task: Optional[asyncio.Task] = None

    async def start(self):
        """Start reconciliation worker (runs until stopped)."""
        self.running = True

        logger.info(
            "reconciliation_worker_started",
            interval_seconds=self.reconcile_interval,
            namespace=self.namespace or "*",
        )

        while self.running:
            try:
                await self.reconcile_all()

                logger.info(
                    "reconciliation_cycle_completed",
                    next_run_in_seconds=self.reconcile_interval,
                )
                try:
                    self._sleep_task = asyncio.create_task(asyncio.sleep(self.reconcile_interval))
                    await self._sleep_task
                except asyncio.CancelledError:
                    logger.info("reconciliation_sleep_cancelled")
                    break
                finally:
                    self._sleep_task = None

            except asyncio.CancelledError:
                logger.info("reconciliation_worker_cancelled")
                break

        logger.info("reconciliation_worker_stopped")

    async def stop(self):
        """Stop reconciliation worker gracefully."""
        logger.info("stopping_reconciliation_worker")
        self.running = False

        if self._sleep_task and not self._sleep_task.done():
            self._sleep_task.cancel()
            try:
                await self._sleep_task
            except asyncio.CancelledError:
                pass

    async def reconcile_all(self) -> int:
        """
        Reconcile every Keycloak resource.

        Returns:
            Number of resources reconciled successfully
        """
        try:
            items = await self.cluster_service.list_keycloaks(self.namespace)
        except Exception as e:
            logger.error("keycloak_list_failed", error=str(e), exc_info=True)
            return 0

        if not items:
            logger.debug("no_keycloaks_found")
            return 0

        reconciled = 0
        for obj in items:
            metadata = obj.get("metadata", {})
            try:
                await self.reconcile_keycloak(obj)
                reconciled += 1
            except Exception as e:
                logger.error(
                    "reconciliation_failed_for_keycloak",
                    keycloak=metadata.get("name"),
                    namespace=metadata.get("namespace"),
                    error=str(e),
                    exc_info=True,
                )

        return reconciled

    async def reconcile_keycloak(self, obj: Dict[str, Any]) -> MigrationResult:
        """Run one reconciliation pass for a single Keycloak resource."""
        cr = Keycloak.from_custom_object(obj)

        with keycloak_context(cr.name, cr.namespace):
            current_state = await self.cluster_service.read_state(cr)
            desired_state = build_desired_state(cr, current_state)
            result = self.migrator.migrate(cr, current_state, desired_state)

            if result.backup_name:
                logger.info(
                    "migration_backup_planned",
                    backup_name=result.backup_name,
                    database_image=result.database_image,
                )

            await self.cluster_service.apply(result.desired_state, cr.namespace)

            logger.debug("keycloak_reconciled", actions=len(result.desired_state))
        return result


async def main():
    """Run reconciliation worker."""
    configure_logging()

    cluster_service = ClusterService()
    await cluster_service.connect()

    worker = ReconciliationWorker(
        cluster_service=cluster_service,
        reconcile_interval=settings.reconcile_interval,
        namespace=settings.watch_namespace,
    )

    shutdown_event = asyncio.Event()

    def signal_handler(signum, frame):
        logger.info("shutdown_signal_received", signal=signum)
        shutdown_event.set()

    signal.signal(signal.SIGINT, signal_handler)
    signal.signal(signal.SIGTERM, signal_handler)

    async def monitor_shutdown():
        await shutdown_event.wait()
        logger.info("shutdown_event_triggered")
        await worker.stop()

    shutdown_task = asyncio.create_task(monitor_shutdown())

    worker_task = None
    try:
        worker_task = asyncio.create_task(worker.start())
        await asyncio.gather(worker_task, shutdown_task, return_exceptions=True)
    except KeyboardInterrupt:
        logger.info("keyboard_interrupt_received")
        await worker.stop()
        if worker_task and not worker_task.done():
            worker_task.cancel()
    finally:
        await cluster_service.close()
        logger.info("reconciliation_worker_exited")


def run():
    """Console entry point."""
    asyncio.run(main())


if __name__ == "__main__":
    run()
