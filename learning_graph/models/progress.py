"""
Per-user progress models.

Progress is the only mutable state in the learning graph. The same
shape is persisted by the hosting application and returned to the UI
as the result envelope of every progress operation.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Dict, List, Optional

from pydantic import Field, field_validator

from .base import GraphModel, Node


def _as_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Read timestamps without an offset as UTC."""
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


class NodeState(str, Enum):
    """Derived per-node state. Never stored."""
    LOCKED = "locked"
    AVAILABLE = "available"
    COMPLETED = "completed"


class PathProgress(GraphModel):
    """Position of a user within the learning path they are following."""

    path_id: str
    current_node_index: int = Field(default=0, ge=0)
    completed_nodes: List[str] = Field(
        default_factory=list,
        description="Completed nodes of this path, in sequence order",
    )
    started_at: datetime
    last_accessed_at: datetime

    @field_validator("started_at", "last_accessed_at")
    @classmethod
    def check_utc(cls, value: datetime) -> datetime:
        return _as_utc(value)


class KnowledgeGraphProgress(GraphModel):
    """
    A user's progress through one course's knowledge graph.

    ``completed_nodes`` has set semantics but keeps completion order.
    ``last_accessed_at`` doubles as the version token for optimistic
    concurrency when the progress is saved.
    """

    user_id: str
    course_id: str
    completed_nodes: List[str] = Field(default_factory=list)
    current_path_id: Optional[str] = None
    path_progress: Optional[PathProgress] = None
    recommended_next_nodes: List[str] = Field(default_factory=list)

    last_accessed_at: Optional[datetime] = None
    path_started_at: Dict[str, datetime] = Field(default_factory=dict)

    @field_validator("last_accessed_at")
    @classmethod
    def check_utc(cls, value: Optional[datetime]) -> Optional[datetime]:
        return _as_utc(value)

    @field_validator("path_started_at")
    @classmethod
    def check_start_times_utc(cls, value: Dict[str, datetime]) -> Dict[str, datetime]:
        return {path_id: _as_utc(started) for path_id, started in value.items()}

    def is_completed(self, node_id: str) -> bool:
        return node_id in self.completed_nodes


class UserKnowledgeNode(GraphModel):
    """A node annotated with one user's state, for display."""

    node: Node
    state: NodeState
    completed: bool = False
    in_progress: bool = False
    recommended: bool = False


class PathCompletion(GraphModel):
    """How far a user is through a learning path."""

    path_id: str
    completed_count: int
    total_count: int
    percent: float = Field(..., ge=0.0, le=100.0)
    remaining_minutes: int = 0
    current_node_id: Optional[str] = None

    @property
    def is_complete(self) -> bool:
        return self.completed_count == self.total_count
