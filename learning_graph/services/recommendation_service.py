"""
Recommendation Service - computes what a learner should study next.

Everything here is a pure function of a course graph, its path
catalog and a progress snapshot. Nothing is mutated, and the same
inputs always produce the same ordered output.

Only prerequisite edges gate or rank nodes; applies-to, relates-to and
the other relationship types are informational.
"""

import logging
from typing import Dict, List, Optional, Set

from ..exceptions import CourseMismatchError, PathNotFoundError
from ..models import (
    KnowledgeGraphProgress,
    LearningPath,
    NodeState,
    PathCompletion,
    UserKnowledgeNode,
)
from ..storage import GraphStore, PathCatalog


logger = logging.getLogger(__name__)


class RecommendationEngine:
    """
    Ranks available nodes for a learner.

    A node is available when it is not completed and every one of its
    prerequisites is. Nodes of the learner's active path come first, in
    path order; the rest are ranked by importance, by how much completed
    prerequisite strength points at them, by display order and finally
    by id.
    """

    def __init__(self, graph: GraphStore, catalog: PathCatalog):
        self._graph = graph
        self._catalog = catalog

    # =========================================================
    # RECOMMENDATIONS
    # =========================================================

    def recommend_next(
        self,
        progress: KnowledgeGraphProgress,
        limit: Optional[int] = None,
    ) -> List[str]:
        """
        Get the ranked ids of the nodes to study next.

        Args:
            progress: The learner's progress snapshot
            limit: Maximum number of ids to return (None for all)

        Raises:
            CourseMismatchError: If the progress is for another course
        """
        if limit is not None and limit < 0:
            raise ValueError(f"limit must be non-negative, got {limit}")

        ranked = self._ranked(progress, self._known_completed(progress))
        return ranked if limit is None else ranked[:limit]

    def unknown_completed(self, progress: KnowledgeGraphProgress) -> List[str]:
        """Completed ids the course graph does not contain."""
        return [nid for nid in progress.completed_nodes if not self._graph.has_node(nid)]

    def _ranked(self, progress: KnowledgeGraphProgress, completed: Set[str]) -> List[str]:
        available = self._available(completed)

        on_path: List[str] = []
        path = self._active_path(progress)
        if path is not None:
            start = self._path_index(progress, path)
            on_path = [nid for nid in path.node_sequence[start:] if nid in available]

        path_members = set(on_path)
        off_path = sorted(
            (nid for nid in available if nid not in path_members),
            key=lambda nid: self._rank_key(nid, completed),
        )

        return on_path + off_path

    # =========================================================
    # NODE STATES
    # =========================================================

    def node_state(self, progress: KnowledgeGraphProgress, node_id: str) -> NodeState:
        """Derived state of one node. Raises NodeNotFoundError if unknown."""
        self._graph.get_node(node_id)
        completed = self._known_completed(progress)
        return self._state(node_id, completed)

    def node_states(self, progress: KnowledgeGraphProgress) -> Dict[str, NodeState]:
        """Derived state of every node in the course."""
        completed = self._known_completed(progress)
        return {nid: self._state(nid, completed) for nid in self._graph.node_ids()}

    def user_nodes(self, progress: KnowledgeGraphProgress) -> List[UserKnowledgeNode]:
        """Every node annotated with the learner's state, in display order."""
        completed = self._known_completed(progress)
        recommended = set(self._ranked(progress, completed))

        current_node_id = None
        path = self._active_path(progress)
        if path is not None:
            index = self._path_index(progress, path)
            if index < len(path.node_sequence):
                current_node_id = path.node_sequence[index]

        return [
            UserKnowledgeNode(
                node=node,
                state=self._state(node.id, completed),
                completed=node.id in completed,
                in_progress=node.id == current_node_id,
                recommended=node.id in recommended,
            )
            for node in self._graph.list_nodes()
        ]

    # =========================================================
    # PATHS
    # =========================================================

    def path_completion(
        self,
        progress: KnowledgeGraphProgress,
        path_id: Optional[str] = None,
    ) -> PathCompletion:
        """
        How much of a learning path the learner has completed.

        Defaults to the learner's current path.

        Raises:
            PathNotFoundError: If the path is unknown or none is selected
        """
        self._check_course(progress)
        path_id = path_id or progress.current_path_id
        if path_id is None:
            raise PathNotFoundError(f"No learning path selected for {progress.user_id}")
        path = self._catalog.get_path(path_id)

        completed = set(progress.completed_nodes)
        remaining = [nid for nid in path.node_sequence if nid not in completed]
        total = len(path.node_sequence)
        done = total - len(remaining)

        return PathCompletion(
            path_id=path.id,
            completed_count=done,
            total_count=total,
            percent=round(done * 100.0 / total, 2),
            remaining_minutes=sum(self._graph.get_node(nid).estimated_minutes for nid in remaining),
            current_node_id=remaining[0] if remaining else None,
        )

    def study_plan(self, progress: KnowledgeGraphProgress, target_node_id: str) -> List[str]:
        """
        Outstanding nodes to reach a target, in learning order.

        Includes every uncompleted transitive prerequisite and the target
        itself unless it is already completed.
        """
        target = self._graph.get_node(target_node_id)
        completed = self._known_completed(progress)

        plan = [
            node.id for node in self._graph.get_all_prerequisites(target.id)
            if node.id not in completed
        ]
        if target.id not in completed:
            plan.append(target.id)
        return plan

    # =========================================================
    # HELPERS
    # =========================================================

    def _check_course(self, progress: KnowledgeGraphProgress) -> None:
        if progress.course_id != self._graph.course_id:
            raise CourseMismatchError(self._graph.course_id, progress.course_id)

    def _known_completed(self, progress: KnowledgeGraphProgress) -> Set[str]:
        """Completed ids that exist in the graph; the rest are logged and skipped."""
        self._check_course(progress)
        for nid in self.unknown_completed(progress):
            logger.warning(
                f"ignoredUnknownNode: {nid} in progress of {progress.user_id} "
                f"is not in course {progress.course_id}"
            )
        return {nid for nid in progress.completed_nodes if self._graph.has_node(nid)}

    def _available(self, completed: Set[str]) -> Set[str]:
        return {
            nid for nid in self._graph.node_ids()
            if nid not in completed
            and all(pid in completed for pid in self._graph.prerequisite_ids(nid))
        }

    def _state(self, node_id: str, completed: Set[str]) -> NodeState:
        if node_id in completed:
            return NodeState.COMPLETED
        if all(pid in completed for pid in self._graph.prerequisite_ids(node_id)):
            return NodeState.AVAILABLE
        return NodeState.LOCKED

    def _rank_key(self, node_id: str, completed: Set[str]):
        node = self._graph.get_node(node_id)
        unblocked = sum(
            self._graph.prerequisite_strength(pid, node_id)
            for pid in self._graph.prerequisite_ids(node_id)
            if pid in completed
        )
        return (-node.importance.rank, -unblocked, node.order, node.id)

    def _active_path(self, progress: KnowledgeGraphProgress) -> Optional[LearningPath]:
        if progress.current_path_id is None:
            return None
        if progress.current_path_id not in self._catalog:
            logger.warning(
                f"Progress of {progress.user_id} follows unknown path "
                f"{progress.current_path_id}; ranking without it"
            )
            return None
        return self._catalog.get_path(progress.current_path_id)

    @staticmethod
    def _path_index(progress: KnowledgeGraphProgress, path: LearningPath) -> int:
        if progress.path_progress is not None and progress.path_progress.path_id == path.id:
            return progress.path_progress.current_node_index
        return 0
