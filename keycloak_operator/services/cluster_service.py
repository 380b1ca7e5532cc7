"""
Cluster Service - Kubernetes I/O for the reconciler.

Reads Keycloak custom resources and the objects they own, and applies
desired-state actions in order.
"""
from typing import Any, Awaitable, Callable, Dict, List, Optional, Tuple

from kubernetes_asyncio import client, config
from kubernetes_asyncio.client import ApiException

from keycloak_operator.config.logging import get_logger
from keycloak_operator.config.settings import settings
from keycloak_operator.exceptions import KubernetesError, ReconciliationError
from keycloak_operator.models.actions import (
    ActionType,
    ClusterAction,
    DesiredClusterState,
    ResourceKind,
)
from keycloak_operator.models.cluster_state import ClusterState
from keycloak_operator.models.keycloak import (
    KEYCLOAK_GROUP,
    KEYCLOAK_PLURAL,
    KEYCLOAK_VERSION,
    Keycloak,
)
from keycloak_operator.services import manifests
from keycloak_operator.utils.retry import CONFLICT, NOT_FOUND, retry_on_k8s_error

logger = get_logger(__name__)

ApiCall = Callable[..., Awaitable[Any]]


class ClusterService:
    """
    Kubernetes access for one operator process.

    Call `connect()` before use, or pass an already configured ApiClient.
    """

    def __init__(self, api_client: Optional[client.ApiClient] = None):
        self.api_client: Optional[client.ApiClient] = None
        if api_client is not None:
            self._bind(api_client)

    def _bind(self, api_client: client.ApiClient) -> None:
        self.api_client = api_client
        self.apps_api = client.AppsV1Api(api_client)
        self.core_api = client.CoreV1Api(api_client)
        self.batch_api = client.BatchV1Api(api_client)
        self.custom_api = client.CustomObjectsApi(api_client)

    async def connect(self) -> None:
        """Load cluster credentials and create the API clients."""
        try:
            if settings.k8s_in_cluster:
                config.load_incluster_config()
            else:
                await config.load_kube_config(config_file=settings.kubeconfig_path)
        except (config.ConfigException, OSError) as e:
            logger.error("kubernetes_config_load_failed", error=str(e), exc_info=True)
            raise KubernetesError(f"Failed to load Kubernetes configuration: {str(e)}")

        self._bind(client.ApiClient())
        logger.info("kubernetes_client_initialized", in_cluster=settings.k8s_in_cluster)

    async def close(self) -> None:
        """Close the API client."""
        if self.api_client:
            await self.api_client.close()

    @retry_on_k8s_error()
    async def list_keycloaks(self, namespace: Optional[str] = None) -> List[Dict[str, Any]]:
        """List Keycloak custom resources, in one namespace or cluster wide."""
        if namespace:
            result = await self.custom_api.list_namespaced_custom_object(
                group=KEYCLOAK_GROUP,
                version=KEYCLOAK_VERSION,
                namespace=namespace,
                plural=KEYCLOAK_PLURAL,
            )
        else:
            result = await self.custom_api.list_cluster_custom_object(
                group=KEYCLOAK_GROUP,
                version=KEYCLOAK_VERSION,
                plural=KEYCLOAK_PLURAL,
            )
        return result.get("items", [])

    async def read_state(self, cr: Keycloak) -> ClusterState:
        """Read every object owned by `cr`; missing objects are None."""
        readers: Dict[str, Tuple[ApiCall, str]] = {
            "keycloak_statefulset": (
                self.apps_api.read_namespaced_stateful_set,
                manifests.KEYCLOAK_STATEFULSET_NAME,
            ),
            "keycloak_service": (
                self.core_api.read_namespaced_service,
                manifests.KEYCLOAK_SERVICE_NAME,
            ),
            "postgresql_pvc": (
                self.core_api.read_namespaced_persistent_volume_claim,
                manifests.POSTGRESQL_PVC_NAME,
            ),
            "postgresql_deployment": (
                self.apps_api.read_namespaced_deployment,
                manifests.POSTGRESQL_DEPLOYMENT_NAME,
            ),
            "postgresql_service": (
                self.core_api.read_namespaced_service,
                manifests.POSTGRESQL_SERVICE_NAME,
            ),
        }

        objects: Dict[str, Optional[Dict[str, Any]]] = {}
        for field, (read, name) in readers.items():
            try:
                obj = await self._read(read, name, cr.namespace)
            except ApiException as e:
                logger.error(
                    "cluster_state_read_failed",
                    keycloak=cr.name,
                    namespace=cr.namespace,
                    object=name,
                    error=e.reason,
                )
                raise KubernetesError(
                    f"Failed to read {name}: {e.reason}",
                    status=e.status,
                    details={"namespace": cr.namespace, "name": name},
                )
            objects[field] = None if obj is None else self.api_client.sanitize_for_serialization(obj)

        return ClusterState(**objects)

    @retry_on_k8s_error(tolerate=(NOT_FOUND,))
    async def _read(self, read: ApiCall, name: str, namespace: str) -> Any:
        return await read(name=name, namespace=namespace)

    async def apply(self, desired_state: DesiredClusterState, namespace: str) -> None:
        """Apply actions in order; stops at the first failure."""
        for action in desired_state:
            logger.info(
                "applying_action",
                action=action.msg,
                type=action.type.value,
                kind=action.kind.value,
                name=action.name,
                namespace=namespace,
            )
            try:
                await self._apply_action(action, namespace)
            except ApiException as e:
                raise KubernetesError(
                    f"Failed to {action.type.value} {action.kind.value} '{action.name}': {e.reason}",
                    status=e.status,
                    details={"namespace": namespace, "action": action.msg},
                )

    def _handlers(self) -> Dict[Tuple[ActionType, ResourceKind], ApiCall]:
        return {
            (ActionType.CREATE, ResourceKind.STATEFUL_SET): self.apps_api.create_namespaced_stateful_set,
            (ActionType.UPDATE, ResourceKind.STATEFUL_SET): self.apps_api.patch_namespaced_stateful_set,
            (ActionType.CREATE, ResourceKind.DEPLOYMENT): self.apps_api.create_namespaced_deployment,
            (ActionType.UPDATE, ResourceKind.DEPLOYMENT): self.apps_api.patch_namespaced_deployment,
            (ActionType.CREATE, ResourceKind.SERVICE): self.core_api.create_namespaced_service,
            (ActionType.UPDATE, ResourceKind.SERVICE): self.core_api.patch_namespaced_service,
            (ActionType.CREATE, ResourceKind.PERSISTENT_VOLUME_CLAIM): (
                self.core_api.create_namespaced_persistent_volume_claim
            ),
            (ActionType.CREATE, ResourceKind.JOB): self.batch_api.create_namespaced_job,
        }

    async def _apply_action(self, action: ClusterAction, namespace: str) -> None:
        handler = self._handlers().get((action.type, action.kind))
        if handler is None:
            raise ReconciliationError(
                f"Unsupported action: {action.type.value} {action.kind.value}",
                details={"name": action.name},
            )

        if action.type == ActionType.CREATE:
            await self._create(handler, action.ref, namespace)
        else:
            await self._patch(handler, action.name, action.ref, namespace)

    # An object created by an earlier pass is left for the next update
    @retry_on_k8s_error(tolerate=(CONFLICT,))
    async def _create(self, create: ApiCall, body: Dict[str, Any], namespace: str) -> Any:
        return await create(namespace=namespace, body=body)

    @retry_on_k8s_error()
    async def _patch(self, patch: ApiCall, name: str, body: Dict[str, Any], namespace: str) -> Any:
        return await patch(name=name, namespace=namespace, body=body)
