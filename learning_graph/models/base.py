"""
Course content models for the learning graph.

These models describe authored course content: concept nodes,
the typed relationships between them, and predefined learning paths.
They are immutable once loaded and are exchanged with the hosting
application in camelCase form.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel


class Difficulty(str, Enum):
    """Ordered difficulty levels (beginner < intermediate < advanced)."""
    BEGINNER = "beginner"
    INTERMEDIATE = "intermediate"
    ADVANCED = "advanced"

    @property
    def rank(self) -> int:
        return _DIFFICULTY_RANK[self]


_DIFFICULTY_RANK = {
    Difficulty.BEGINNER: 0,
    Difficulty.INTERMEDIATE: 1,
    Difficulty.ADVANCED: 2,
}


class Importance(str, Enum):
    """How essential a node is to the course."""
    CORE = "core"
    RECOMMENDED = "recommended"
    OPTIONAL = "optional"

    @property
    def rank(self) -> int:
        """Higher rank sorts first in recommendations."""
        return _IMPORTANCE_RANK[self]

    @classmethod
    def _missing_(cls, value):
        # Older course files call optional nodes "supplementary"
        if value == "supplementary":
            return cls.OPTIONAL
        return None


_IMPORTANCE_RANK = {
    Importance.CORE: 2,
    Importance.RECOMMENDED: 1,
    Importance.OPTIONAL: 0,
}


class RelationshipType(str, Enum):
    """Relationship types between nodes. Only PREREQUISITE gates progress."""
    PREREQUISITE = "prerequisite"
    APPLIES_TO = "applies-to"
    RELATES_TO = "relates-to"
    BUILDS_UPON = "builds-upon"
    CONTRASTS_WITH = "contrasts-with"


class LearningPathType(str, Enum):
    """Kinds of predefined learning paths."""
    COMPREHENSIVE = "comprehensive"
    ACCELERATED = "accelerated"
    APPLICATION = "application"
    THEORY = "theory"
    CUSTOM = "custom"


class GraphModel(BaseModel):
    """Base for wire records: snake_case in Python, camelCase on the wire."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )

    def to_wire(self) -> dict:
        """Dump to the camelCase JSON-compatible form."""
        return self.model_dump(by_alias=True, mode="json")


class NodeMetadata(GraphModel):
    """Display metadata for a node. Unknown keys are preserved."""

    model_config = ConfigDict(extra="allow")

    order: int = 0
    key_takeaways: List[str] = Field(default_factory=list)


class Node(GraphModel):
    """
    A learning concept in a course's knowledge graph.

    Identity is the ``id``, unique within a course.
    """

    model_config = ConfigDict(frozen=True)

    id: str = Field(..., min_length=1)
    module_id: str = Field(..., description="Module that owns this concept")
    lesson_id: Optional[str] = None

    # Content
    title: str
    description: str = ""

    # Classification
    difficulty: Difficulty = Difficulty.BEGINNER
    importance: Importance = Importance.CORE
    estimated_minutes: int = Field(default=0, ge=0)

    # References (opaque, not dereferenced)
    resources: List[str] = Field(default_factory=list)
    concepts: List[str] = Field(default_factory=list, description="Free-text concept tags")

    metadata: NodeMetadata = Field(default_factory=NodeMetadata)

    @property
    def order(self) -> int:
        return self.metadata.order


class Relationship(GraphModel):
    """
    A directed, typed, weighted edge between two nodes.

    For PREREQUISITE edges the source must be learned before the target.
    """

    model_config = ConfigDict(frozen=True)

    id: str = Field(..., min_length=1)
    source_id: str = Field(..., description="Source node ID")
    target_id: str = Field(..., description="Target node ID")
    type: RelationshipType
    strength: int = Field(default=5, ge=1, le=10)
    description: str = ""
    bidirectional: bool = False


class LearningPath(GraphModel):
    """
    A named, ordered route through the graph.

    Users follow a path without mutating it.
    """

    model_config = ConfigDict(frozen=True)

    id: str = Field(..., min_length=1)
    course_id: str
    name: str
    description: str = ""
    type: LearningPathType = LearningPathType.CUSTOM
    difficulty: Difficulty = Difficulty.INTERMEDIATE
    estimated_total_time: int = Field(default=0, ge=0, description="Minutes")
    node_sequence: List[str] = Field(..., min_length=1)
    target_audience: Optional[str] = None
    created_by: Optional[str] = None
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    @field_validator("node_sequence")
    @classmethod
    def check_unique_nodes(cls, value: List[str]) -> List[str]:
        seen = set()
        duplicates = []
        for node_id in value:
            if node_id in seen:
                duplicates.append(node_id)
            seen.add(node_id)
        if duplicates:
            raise ValueError(f"duplicate node ids in sequence: {', '.join(duplicates)}")
        return value

    def index_of(self, node_id: str) -> Optional[int]:
        """Position of ``node_id`` in the sequence, or None."""
        try:
            return self.node_sequence.index(node_id)
        except ValueError:
            return None


class CourseContent(GraphModel):
    """The full authored content of one course, as loaded from storage."""

    course_id: str = Field(..., min_length=1)
    version: str = "1.0"
    last_updated: Optional[datetime] = None

    nodes: List[Node] = Field(default_factory=list)
    relationships: List[Relationship] = Field(default_factory=list)
    predefined_paths: List[LearningPath] = Field(default_factory=list)
