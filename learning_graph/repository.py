"""
Unified repository interface for the learning graph.

Provides a single facade for:
- Course content loading (graph + learning paths)
- Per-user progress updates through a ProgressStore
- Recommendations and path completion

This is the main entry point for the hosting application. Every call
is keyed by ``(user_id, course_id)`` and returns the progress envelope
(or a completion record) or raises a typed error.
"""

import logging
import os
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Any, Callable, Mapping

from .content import build_course, load_course_file, load_sample_course, parse_course
from .exceptions import ConcurrentUpdateError, CourseNotFoundError
from .models import CourseContent, KnowledgeGraphProgress, PathCompletion
from .services import ProgressTracker, RecommendationEngine
from .storage import GraphStore, InMemoryProgressStore, PathCatalog, ProgressStore


logger = logging.getLogger(__name__)

DEFAULT_MAX_RETRIES = 3


def _env_int(name: str) -> int | None:
    value = os.getenv(name)
    return int(value) if value else None


def _env_flag(name: str) -> bool:
    return os.getenv(name, "").strip().lower() in ("1", "true", "yes", "on")


@dataclass(frozen=True)
class LoadedCourse:
    """A course that passed validation and can be served."""
    content: CourseContent
    graph: GraphStore
    catalog: PathCatalog
    engine: RecommendationEngine

    @property
    def course_id(self) -> str:
        return self.graph.course_id


class LearningGraphRepository:
    """
    Learning graph facade.

    Configuration via environment variables:
    - LEARNING_GRAPH_RECOMMEND_LIMIT: default recommendation limit (unset = all)
    - LEARNING_GRAPH_STRICT_PATHS: 'true' to reject a whole course when
      one of its paths is invalid (default: drop only that path)
    - LEARNING_GRAPH_MAX_RETRIES: retries after a concurrent progress update
    """

    def __init__(
        self,
        progress_store: ProgressStore | None = None,
        recommend_limit: int | None = None,
        strict_paths: bool | None = None,
        max_retries: int | None = None,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        """
        Initialize the repository.

        Args:
            progress_store: Override progress storage backend
            recommend_limit: Default limit for recommend_next
            strict_paths: Fail course loads on any invalid path
            max_retries: Retries after ConcurrentUpdateError
            clock: Timestamp source for progress updates
        """
        self._progress_store = progress_store or InMemoryProgressStore()
        self._recommend_limit = (
            recommend_limit if recommend_limit is not None
            else _env_int("LEARNING_GRAPH_RECOMMEND_LIMIT")
        )
        self._strict_paths = strict_paths if strict_paths is not None else _env_flag("LEARNING_GRAPH_STRICT_PATHS")
        env_retries = _env_int("LEARNING_GRAPH_MAX_RETRIES")
        self._max_retries = (
            max_retries if max_retries is not None
            else env_retries if env_retries is not None
            else DEFAULT_MAX_RETRIES
        )
        self._clock = clock
        self._courses: dict[str, LoadedCourse] = {}

        logger.info(
            f"LearningGraphRepository initialized "
            f"(strict_paths={self._strict_paths}, max_retries={self._max_retries})"
        )

    # ─────────────────────────────────────────────────────────────────────────
    # Course Content
    # ─────────────────────────────────────────────────────────────────────────

    def load_course(self, content: CourseContent | Mapping[str, Any]) -> LoadedCourse:
        """
        Validate and register a course, replacing any previous version.

        The previous version stays in service if validation fails.

        Raises:
            GraphValidationError: If the content is invalid
        """
        if not isinstance(content, CourseContent):
            content = parse_course(content)

        graph, catalog = build_course(content, skip_invalid_paths=not self._strict_paths)
        course = LoadedCourse(
            content=content,
            graph=graph,
            catalog=catalog,
            engine=RecommendationEngine(graph, catalog),
        )

        replaced = content.course_id in self._courses
        self._courses[content.course_id] = course
        logger.info(
            f"{'Replaced' if replaced else 'Loaded'} course {content.course_id} "
            f"v{content.version}"
        )
        return course

    def load_course_file(self, path: str | Path) -> LoadedCourse:
        """Read, validate and register a course from a JSON file."""
        return self.load_course(load_course_file(path))

    def load_sample_course(self) -> LoadedCourse:
        """Register the bundled Digital SAT Math course."""
        return self.load_course(load_sample_course())

    def get_course(self, course_id: str) -> LoadedCourse:
        """Get a loaded course. Raises CourseNotFoundError."""
        try:
            return self._courses[course_id]
        except KeyError:
            raise CourseNotFoundError(f"Course not loaded: {course_id}") from None

    def course_ids(self) -> list[str]:
        return list(self._courses)

    # ─────────────────────────────────────────────────────────────────────────
    # Progress
    # ─────────────────────────────────────────────────────────────────────────

    def get_progress(self, user_id: str, course_id: str) -> KnowledgeGraphProgress:
        """Current progress; fresh (unsaved) progress if the user has none."""
        course = self.get_course(course_id)
        stored = self._progress_store.get(user_id, course_id)
        return self._tracker(course, user_id, stored).get_progress()

    def mark_completed(self, user_id: str, course_id: str, node_id: str) -> KnowledgeGraphProgress:
        """Mark a node completed for a user."""
        return self._update(user_id, course_id, lambda tracker: tracker.mark_completed(node_id))

    def select_path(self, user_id: str, course_id: str, path_id: str) -> KnowledgeGraphProgress:
        """Start or resume a learning path for a user."""
        return self._update(user_id, course_id, lambda tracker: tracker.select_path(path_id))

    def clear_path(self, user_id: str, course_id: str) -> KnowledgeGraphProgress:
        """Stop following a learning path."""
        return self._update(user_id, course_id, lambda tracker: tracker.clear_path())

    def sync_progress(self, incoming: KnowledgeGraphProgress) -> KnowledgeGraphProgress:
        """Merge a progress copy from another device into the stored progress."""
        return self._update(
            incoming.user_id,
            incoming.course_id,
            lambda tracker: tracker.merge(incoming),
        )

    # ─────────────────────────────────────────────────────────────────────────
    # Recommendations
    # ─────────────────────────────────────────────────────────────────────────

    def recommend_next(
        self,
        user_id: str,
        course_id: str,
        limit: int | None = None,
    ) -> KnowledgeGraphProgress:
        """
        Progress envelope with freshly computed recommendations.

        Uses the configured default limit when ``limit`` is None.
        """
        course = self.get_course(course_id)
        progress = self.get_progress(user_id, course_id)
        progress.recommended_next_nodes = course.engine.recommend_next(
            progress,
            limit=limit if limit is not None else self._recommend_limit,
        )
        return progress

    def path_completion(
        self,
        user_id: str,
        course_id: str,
        path_id: str | None = None,
    ) -> PathCompletion:
        """Completion of a path (default: the user's current path)."""
        course = self.get_course(course_id)
        progress = self.get_progress(user_id, course_id)
        return course.engine.path_completion(progress, path_id)

    # ─────────────────────────────────────────────────────────────────────────
    # Private Helpers
    # ─────────────────────────────────────────────────────────────────────────

    def _tracker(
        self,
        course: LoadedCourse,
        user_id: str,
        stored: KnowledgeGraphProgress | None,
    ) -> ProgressTracker:
        return ProgressTracker(
            course.graph,
            course.catalog,
            progress=stored,
            user_id=user_id,
            clock=self._clock,
            engine=course.engine,
        )

    def _update(
        self,
        user_id: str,
        course_id: str,
        operation: Callable[[ProgressTracker], KnowledgeGraphProgress],
    ) -> KnowledgeGraphProgress:
        """
        Apply an operation to stored progress and save it.

        On a concurrent update the operation is re-applied to the latest
        stored progress. Completion is monotonic, so this merges both
        writers' completed nodes.
        """
        course = self.get_course(course_id)
        conflicts = 0

        while True:
            stored = self._progress_store.get(user_id, course_id)
            version = stored.last_accessed_at if stored else None
            tracker = self._tracker(course, user_id, stored)
            before = tracker.get_progress()

            result = operation(tracker)
            if result == before:
                return result

            try:
                self._progress_store.save(result, expected_version=version)
                return result
            except ConcurrentUpdateError:
                conflicts += 1
                if conflicts > self._max_retries:
                    logger.error(f"Giving up on progress update for {user_id}/{course_id} after {conflicts} conflicts")
                    raise
                logger.warning(f"Concurrent progress update for {user_id}/{course_id}; retrying ({conflicts})")
