"""
Exceptions for learning graph operations.

Content errors (GraphValidationError) are raised while loading a
course and keep the course from being served. The remaining errors are
raised per call and never leave progress half-updated.
"""

from enum import Enum
from typing import Iterable


class LearningGraphError(Exception):
    """Base exception for learning graph operations."""
    pass


class ValidationErrorKind(str, Enum):
    """Why course content was rejected."""
    DANGLING_REFERENCE = "DanglingReference"
    SELF_LOOP = "SelfLoop"
    PREREQUISITE_CYCLE = "PrerequisiteCycle"
    UNKNOWN_NODE_IN_PATH = "UnknownNodeInPath"
    DUPLICATE_ID = "DuplicateId"
    FOREIGN_PATH = "ForeignPath"


class GraphValidationError(LearningGraphError):
    """Raised when course content violates a graph invariant."""

    def __init__(self, kind: ValidationErrorKind, ids: Iterable[str], message: str = ""):
        self.kind = kind
        self.ids = list(ids)
        detail = message or ", ".join(self.ids)
        super().__init__(f"{kind.value}: {detail}")


class NotFoundError(LearningGraphError):
    """Raised when a caller passes an unknown id."""
    pass


class NodeNotFoundError(NotFoundError):
    """Raised when a node is not in the course graph."""
    pass


class PathNotFoundError(NotFoundError):
    """Raised when a learning path is not in the catalog."""
    pass


class CourseNotFoundError(NotFoundError):
    """Raised when a course has not been loaded."""
    pass


class CourseMismatchError(LearningGraphError):
    """Raised when progress for one course is used with another course's graph."""

    def __init__(self, expected: str, actual: str):
        self.expected = expected
        self.actual = actual
        super().__init__(f"Progress is for course '{actual}', graph is '{expected}'")


class ConcurrentUpdateError(LearningGraphError):
    """Raised when saved progress changed since it was read."""

    def __init__(self, user_id: str, course_id: str):
        self.user_id = user_id
        self.course_id = course_id
        super().__init__(f"Progress for {user_id}/{course_id} was modified concurrently")
