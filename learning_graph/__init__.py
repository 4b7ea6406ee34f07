"""
Learning Graph Library.

Models a course as a directed graph of learning nodes joined by typed
relationships, offers curated learning paths through that graph, and
tracks each learner's completion to recommend what to study next.

Course content is validated once on load (no dangling references, no
self-loops, no prerequisite cycles) and is immutable afterwards.
"""

from .models import (
    Node,
    Relationship,
    LearningPath,
    CourseContent,
    KnowledgeGraphProgress,
    PathProgress,
    PathCompletion,
    UserKnowledgeNode,
    NodeState,
    Difficulty,
    Importance,
    RelationshipType,
    LearningPathType,
)

from .exceptions import (
    LearningGraphError,
    GraphValidationError,
    ValidationErrorKind,
    NotFoundError,
    NodeNotFoundError,
    PathNotFoundError,
    CourseNotFoundError,
    CourseMismatchError,
    ConcurrentUpdateError,
)

from .storage import (
    GraphStore,
    PathCatalog,
    ProgressStore,
    InMemoryProgressStore,
)

from .services import (
    RecommendationEngine,
    ProgressTracker,
)

from .content import (
    build_course,
    load_course_file,
    load_sample_course,
    parse_course,
)

from .repository import LearningGraphRepository, LoadedCourse

__all__ = [
    # Models
    "Node",
    "Relationship",
    "LearningPath",
    "CourseContent",
    "KnowledgeGraphProgress",
    "PathProgress",
    "PathCompletion",
    "UserKnowledgeNode",
    "NodeState",
    "Difficulty",
    "Importance",
    "RelationshipType",
    "LearningPathType",
    # Errors
    "LearningGraphError",
    "GraphValidationError",
    "ValidationErrorKind",
    "NotFoundError",
    "NodeNotFoundError",
    "PathNotFoundError",
    "CourseNotFoundError",
    "CourseMismatchError",
    "ConcurrentUpdateError",
    # Storage
    "GraphStore",
    "PathCatalog",
    "ProgressStore",
    "InMemoryProgressStore",
    # Services
    "RecommendationEngine",
    "ProgressTracker",
    # Content
    "build_course",
    "load_course_file",
    "load_sample_course",
    "parse_course",
    # Facade
    "LearningGraphRepository",
    "LoadedCourse",
]
