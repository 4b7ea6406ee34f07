"""
Progress Service - maintains one learner's progress through a course.

Node states are derived, never stored:

    LOCKED ──(all prerequisites completed)──▶ AVAILABLE ──mark_completed──▶ COMPLETED

Completion is monotonic: nodes are only ever added to
``completed_nodes``. Every operation works on a copy of the progress
and swaps it in only on success, so a failing call leaves state as it
was.
"""

import logging
from datetime import datetime, timedelta, timezone
from typing import Callable, List, Optional

from ..exceptions import CourseMismatchError
from ..models import KnowledgeGraphProgress, LearningPath, NodeState, PathProgress
from ..storage import GraphStore, PathCatalog
from .recommendation_service import RecommendationEngine


logger = logging.getLogger(__name__)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class ProgressTracker:
    """
    Controlled mutation of a learner's KnowledgeGraphProgress.

    Not safe for concurrent calls on the same learner; callers serialize
    writes (see LearningGraphRepository for optimistic concurrency).
    """

    def __init__(
        self,
        graph: GraphStore,
        catalog: PathCatalog,
        progress: Optional[KnowledgeGraphProgress] = None,
        user_id: Optional[str] = None,
        clock: Optional[Callable[[], datetime]] = None,
        engine: Optional[RecommendationEngine] = None,
    ) -> None:
        """
        Initialize the tracker.

        Args:
            graph: The course graph
            catalog: The course's learning paths
            progress: Existing progress to continue from
            user_id: Learner id, required when starting fresh progress
            clock: Source of timestamps (defaults to UTC now)
            engine: Recommendation engine for the cached recommendations

        Raises:
            CourseMismatchError: If ``progress`` is for another course
        """
        self._graph = graph
        self._catalog = catalog
        self._clock = clock or utcnow
        self._engine = engine or RecommendationEngine(graph, catalog)

        if progress is None:
            if not user_id:
                raise ValueError("user_id is required when no progress is given")
            progress = KnowledgeGraphProgress(user_id=user_id, course_id=graph.course_id)
        else:
            progress = progress.model_copy(deep=True)

        if progress.course_id != graph.course_id:
            raise CourseMismatchError(graph.course_id, progress.course_id)

        self._progress = self._normalize(progress)

    # =========================================================
    # READ
    # =========================================================

    @property
    def user_id(self) -> str:
        return self._progress.user_id

    @property
    def course_id(self) -> str:
        return self._progress.course_id

    def get_progress(self) -> KnowledgeGraphProgress:
        """Read-only snapshot of the current progress."""
        return self._progress.model_copy(deep=True)

    def state_of(self, node_id: str) -> NodeState:
        """Derived state of a node for this learner."""
        return self._engine.node_state(self._progress, node_id)

    # =========================================================
    # MUTATIONS
    # =========================================================

    def mark_completed(self, node_id: str) -> KnowledgeGraphProgress:
        """
        Mark a node completed.

        Marking an already-completed node changes nothing. When the node
        is on the current path, the path position moves to the first
        node of the sequence that is not yet completed.

        Raises:
            NodeNotFoundError: If the node is not in the course graph
        """
        self._graph.get_node(node_id)

        if self._progress.is_completed(node_id):
            logger.debug(f"{self.user_id}: {node_id} already completed")
            return self.get_progress()

        updated = self._progress.model_copy(deep=True)
        now = self._now(updated)
        updated.completed_nodes.append(node_id)
        updated.last_accessed_at = now

        if updated.current_path_id is not None:
            path = self._catalog.get_path(updated.current_path_id)
            self._sync_path(updated, path, now)

        self._commit(updated)
        logger.info(f"{self.user_id} completed {node_id} in course {self.course_id}")
        return self.get_progress()

    def select_path(self, path_id: str) -> KnowledgeGraphProgress:
        """
        Start (or resume) following a learning path.

        Path progress reflects the already-completed nodes of the path.
        The path keeps its original start time if it was followed before.

        Raises:
            PathNotFoundError: If the path is not in the catalog
        """
        path = self._catalog.get_path(path_id)

        updated = self._progress.model_copy(deep=True)
        now = self._now(updated)
        updated.current_path_id = path.id
        updated.last_accessed_at = now
        self._sync_path(updated, path, now)

        self._commit(updated)
        logger.info(f"{self.user_id} selected path {path.id} in course {self.course_id}")
        return self.get_progress()

    def clear_path(self) -> KnowledgeGraphProgress:
        """Stop following the current path. Completed nodes are kept."""
        if self._progress.current_path_id is None:
            return self.get_progress()

        updated = self._progress.model_copy(deep=True)
        updated.current_path_id = None
        updated.path_progress = None
        updated.last_accessed_at = self._now(updated)

        self._commit(updated)
        logger.info(f"{self.user_id} cleared path selection in course {self.course_id}")
        return self.get_progress()

    def merge(self, other: KnowledgeGraphProgress) -> KnowledgeGraphProgress:
        """
        Merge a diverged copy of this learner's progress.

        Completed nodes are unioned (completion is monotonic, so no
        completion is ever lost). The path selection of whichever copy
        was accessed more recently wins.
        """
        if other.course_id != self.course_id:
            raise CourseMismatchError(self.course_id, other.course_id)
        if other.user_id != self.user_id:
            raise ValueError(f"Cannot merge progress of {other.user_id} into {self.user_id}")

        mine = self._progress
        updated = mine.model_copy(deep=True)

        for nid in other.completed_nodes:
            if nid not in updated.completed_nodes:
                updated.completed_nodes.append(nid)

        for path_id, started in other.path_started_at.items():
            current = updated.path_started_at.get(path_id)
            if current is None or started < current:
                updated.path_started_at[path_id] = started

        theirs_newer = (
            other.last_accessed_at is not None
            and (mine.last_accessed_at is None or other.last_accessed_at > mine.last_accessed_at)
        )
        if theirs_newer:
            updated.current_path_id = other.current_path_id
            updated.path_progress = other.path_progress.model_copy() if other.path_progress else None
            now = self._now(updated, other.last_accessed_at)
        else:
            now = self._now(updated)
        updated.last_accessed_at = now

        if updated.current_path_id is not None and updated.current_path_id not in self._catalog:
            logger.warning(f"Merged progress follows unknown path {updated.current_path_id}; clearing it")
            updated.current_path_id = None
            updated.path_progress = None
        if updated.current_path_id is not None:
            self._sync_path(updated, self._catalog.get_path(updated.current_path_id), now)

        self._commit(updated)
        logger.info(f"Merged progress for {self.user_id} in course {self.course_id}")
        return self.get_progress()

    # =========================================================
    # HELPERS
    # =========================================================

    def _commit(self, updated: KnowledgeGraphProgress) -> None:
        updated.recommended_next_nodes = self._engine.recommend_next(updated)
        self._progress = updated

    def _now(self, progress: KnowledgeGraphProgress, *floors: Optional[datetime]) -> datetime:
        """
        Clock reading strictly after the progress' last access.

        ``last_accessed_at`` is the version token; two writes must never
        share one.
        """
        now = self._clock()
        for floor in (progress.last_accessed_at, *floors):
            if floor is not None and now <= floor:
                now = floor + timedelta(microseconds=1)
        return now

    def _sync_path(self, progress: KnowledgeGraphProgress, path: LearningPath, now: datetime) -> None:
        """Recompute path progress for ``path`` from the completed nodes."""
        completed = set(progress.completed_nodes)
        done: List[str] = [nid for nid in path.node_sequence if nid in completed]
        index = next(
            (i for i, nid in enumerate(path.node_sequence) if nid not in completed),
            len(path.node_sequence),
        )

        previous = progress.path_progress
        started = progress.path_started_at.get(path.id)
        if started is None:
            started = previous.started_at if previous and previous.path_id == path.id else now
            progress.path_started_at[path.id] = started

        progress.path_progress = PathProgress(
            path_id=path.id,
            current_node_index=index,
            completed_nodes=done,
            started_at=started,
            last_accessed_at=now,
        )

    def _normalize(self, progress: KnowledgeGraphProgress) -> KnowledgeGraphProgress:
        """
        Bring progress loaded from storage in line with the current content.

        Unknown completed ids are kept; content may have been updated
        after they were recorded. The recommendation refresh logs them.
        """
        # Duplicates would break set semantics
        progress.completed_nodes = list(dict.fromkeys(progress.completed_nodes))

        if progress.current_path_id is not None and progress.current_path_id not in self._catalog:
            logger.warning(
                f"Progress of {progress.user_id} follows unknown path "
                f"{progress.current_path_id}; clearing the selection"
            )
            progress.current_path_id = None
            progress.path_progress = None

        if progress.current_path_id is not None:
            path = self._catalog.get_path(progress.current_path_id)
            accessed = (
                progress.path_progress.last_accessed_at
                if progress.path_progress and progress.path_progress.path_id == path.id
                else progress.last_accessed_at or self._clock()
            )
            self._sync_path(progress, path, accessed)
        elif progress.path_progress is not None:
            progress.path_progress = None

        progress.recommended_next_nodes = self._engine.recommend_next(progress)
        return progress
