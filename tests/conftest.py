"""
Pytest configuration for Learning Graph tests.

Provides shared fixtures for unit tests and BDD step definitions.
"""

import pytest
import sys
from datetime import datetime, timedelta, timezone
from pathlib import Path

# Add the repository root to path for imports
repo_path = Path(__file__).parent.parent
sys.path.insert(0, str(repo_path))

from learning_graph import (
    CourseContent,
    GraphStore,
    InMemoryProgressStore,
    LearningGraphRepository,
    LearningPath,
    Node,
    PathCatalog,
    ProgressTracker,
    RecommendationEngine,
    Relationship,
    RelationshipType,
    build_course,
    load_sample_course,
)


COURSE_ID = "course-1"
SAT_COURSE_ID = "digital-sat-math"


class FakeClock:
    """Clock that advances one minute per reading."""

    def __init__(self, start: datetime = datetime(2024, 1, 1, 9, 0, tzinfo=timezone.utc)):
        self.current = start

    def __call__(self) -> datetime:
        reading = self.current
        self.current = self.current + timedelta(minutes=1)
        return reading


def make_node(node_id: str, order: int = 0, **kwargs) -> Node:
    """Build a node with sensible defaults."""
    return Node(
        id=node_id,
        module_id=kwargs.pop("module_id", "module-1"),
        title=kwargs.pop("title", node_id.upper()),
        metadata={"order": order},
        **kwargs,
    )


def prereq(source: str, target: str, strength: int = 5, rel_id: str = None) -> Relationship:
    """Build a prerequisite edge source → target."""
    return Relationship(
        id=rel_id or f"{source}->{target}",
        source_id=source,
        target_id=target,
        type=RelationshipType.PREREQUISITE,
        strength=strength,
    )


def make_path(path_id: str, sequence, course_id: str = COURSE_ID, **kwargs) -> LearningPath:
    return LearningPath(
        id=path_id,
        course_id=course_id,
        name=kwargs.pop("name", path_id.title()),
        node_sequence=list(sequence),
        **kwargs,
    )


@pytest.fixture
def clock():
    """Deterministic clock for progress timestamps."""
    return FakeClock()


@pytest.fixture
def abc_content():
    """
    Three-node course: A unlocks B (strength 9) and C (strength 5).

    One path walks A, B, C in order.
    """
    return CourseContent(
        course_id=COURSE_ID,
        nodes=[make_node("A", 1), make_node("B", 2), make_node("C", 3)],
        relationships=[prereq("A", "B", 9), prereq("A", "C", 5)],
        predefined_paths=[make_path("abc-path", ["A", "B", "C"])],
    )


@pytest.fixture
def abc_course(abc_content):
    """Graph store and path catalog for the three-node course."""
    return build_course(abc_content)


@pytest.fixture
def abc_graph(abc_course) -> GraphStore:
    return abc_course[0]


@pytest.fixture
def abc_catalog(abc_course) -> PathCatalog:
    return abc_course[1]


@pytest.fixture
def abc_engine(abc_graph, abc_catalog) -> RecommendationEngine:
    return RecommendationEngine(abc_graph, abc_catalog)


@pytest.fixture
def abc_tracker(abc_graph, abc_catalog, clock) -> ProgressTracker:
    """Fresh progress for learner u1 on the three-node course."""
    return ProgressTracker(abc_graph, abc_catalog, user_id="u1", clock=clock)


@pytest.fixture
def sample_content() -> CourseContent:
    """The bundled Digital SAT Math course."""
    return load_sample_course()


@pytest.fixture
def sample_course(sample_content):
    return build_course(sample_content)


@pytest.fixture
def progress_store():
    """Fresh in-memory progress store for each test."""
    return InMemoryProgressStore()


@pytest.fixture
def repository(progress_store, abc_content, clock):
    """Repository with the three-node course loaded."""
    repo = LearningGraphRepository(
        progress_store=progress_store,
        strict_paths=False,
        max_retries=3,
        clock=clock,
    )
    repo.load_course(abc_content)
    return repo
