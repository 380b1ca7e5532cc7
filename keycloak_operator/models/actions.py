"""
Desired-state actions.

An action is a tagged variant keyed by (kind, name): planners locate the
object they need by key instead of inspecting the manifest shape.
"""
from enum import Enum
from typing import Any, Dict, Iterator, List, Optional, Tuple

from pydantic import BaseModel, Field


class ActionType(str, Enum):
    """How an action is applied."""
    CREATE = "create"
    UPDATE = "update"


class ResourceKind(str, Enum):
    """Kubernetes kinds managed by the operator."""
    STATEFUL_SET = "StatefulSet"
    DEPLOYMENT = "Deployment"
    SERVICE = "Service"
    PERSISTENT_VOLUME_CLAIM = "PersistentVolumeClaim"
    JOB = "Job"


class ClusterAction(BaseModel):
    """A single create or update of a Kubernetes object."""

    type: ActionType
    kind: ResourceKind
    name: str
    ref: Dict[str, Any] = Field(description="Manifest body of the target object")
    msg: str = ""

    @property
    def key(self) -> Tuple[ResourceKind, str]:
        return self.kind, self.name

    @classmethod
    def create(cls, ref: Dict[str, Any], msg: str) -> "ClusterAction":
        return cls._from_manifest(ActionType.CREATE, ref, msg)

    @classmethod
    def update(cls, ref: Dict[str, Any], msg: str) -> "ClusterAction":
        return cls._from_manifest(ActionType.UPDATE, ref, msg)

    @classmethod
    def _from_manifest(cls, action_type: ActionType, ref: Dict[str, Any], msg: str) -> "ClusterAction":
        return cls(
            type=action_type,
            kind=ResourceKind(ref["kind"]),
            name=ref["metadata"]["name"],
            ref=ref,
            msg=msg,
        )


class DesiredClusterState:
    """
    Ordered list of actions for one reconciliation pass.

    Consumers apply actions in sequence. Planners may append actions or
    mutate the manifest of an existing action, never remove one.
    """

    def __init__(self, actions: Optional[List[ClusterAction]] = None):
        self.actions: List[ClusterAction] = list(actions or [])

    def add_action(self, action: ClusterAction) -> "DesiredClusterState":
        self.actions.append(action)
        return self

    def find(
        self,
        action_type: ActionType,
        kind: ResourceKind,
        name: str,
    ) -> Optional[ClusterAction]:
        """Return the first action of the given type targeting (kind, name)."""
        for action in self.actions:
            if action.type == action_type and action.key == (kind, name):
                return action
        return None

    def __len__(self) -> int:
        return len(self.actions)

    def __iter__(self) -> Iterator[ClusterAction]:
        return iter(self.actions)

    def __getitem__(self, index: int) -> ClusterAction:
        return self.actions[index]

    def __repr__(self) -> str:
        return f"DesiredClusterState(actions={self.actions!r})"
