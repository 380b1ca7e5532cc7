"""
Snapshot of the objects currently present in the cluster for one Keycloak.
"""
from typing import Any, Dict, Optional

from pydantic import BaseModel

Manifest = Dict[str, Any]


class ClusterState(BaseModel):
    """
    Current cluster state, rebuilt on every reconciliation pass.

    Every field is a manifest dict as returned by the Kubernetes API,
    or None when the object does not exist.
    """

    keycloak_statefulset: Optional[Manifest] = None
    keycloak_service: Optional[Manifest] = None
    postgresql_pvc: Optional[Manifest] = None
    postgresql_deployment: Optional[Manifest] = None
    postgresql_service: Optional[Manifest] = None
