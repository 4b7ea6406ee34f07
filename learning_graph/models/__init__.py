"""
Learning Graph Domain Models.

Storage-agnostic Pydantic models for course content
and per-user progress.
"""

from .base import (
    GraphModel,
    Node,
    NodeMetadata,
    Relationship,
    LearningPath,
    CourseContent,
    Difficulty,
    Importance,
    RelationshipType,
    LearningPathType,
)

from .progress import (
    KnowledgeGraphProgress,
    PathProgress,
    PathCompletion,
    UserKnowledgeNode,
    NodeState,
)

__all__ = [
    # Content models
    "GraphModel",
    "Node",
    "NodeMetadata",
    "Relationship",
    "LearningPath",
    "CourseContent",
    # Enums
    "Difficulty",
    "Importance",
    "RelationshipType",
    "LearningPathType",
    "NodeState",
    # Progress models
    "KnowledgeGraphProgress",
    "PathProgress",
    "PathCompletion",
    "UserKnowledgeNode",
]
