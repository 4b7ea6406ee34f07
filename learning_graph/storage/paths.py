"""
Catalog of predefined learning paths for a course.
"""

import logging
from typing import Dict, Iterable, List, Optional

from ..exceptions import GraphValidationError, PathNotFoundError, ValidationErrorKind
from ..models import Difficulty, LearningPath, LearningPathType
from .graph import GraphStore


logger = logging.getLogger(__name__)


class PathCatalog:
    """
    Validated, immutable set of learning paths.

    Every path belongs to the graph's course and only references nodes
    the graph contains.
    """

    def __init__(
        self,
        course_id: str,
        paths: Iterable[LearningPath],
        rejected: Optional[Dict[str, GraphValidationError]] = None,
    ) -> None:
        self._course_id = course_id
        self._paths: Dict[str, LearningPath] = {path.id: path for path in paths}
        self._rejected = dict(rejected or {})

    @classmethod
    def load(
        cls,
        paths: Iterable[LearningPath],
        graph: GraphStore,
        skip_invalid: bool = False,
    ) -> "PathCatalog":
        """
        Validate paths against a graph and build a catalog.

        Args:
            paths: Path definitions, in display order
            graph: The course graph the paths traverse
            skip_invalid: Drop invalid paths (recorded in ``rejected``)
                instead of failing the whole catalog

        Raises:
            GraphValidationError: UnknownNodeInPath, ForeignPath or DuplicateId
        """
        accepted: List[LearningPath] = []
        seen: set[str] = set()
        rejected: Dict[str, GraphValidationError] = {}

        for path in paths:
            try:
                if path.id in seen:
                    raise GraphValidationError(ValidationErrorKind.DUPLICATE_ID, [path.id])
                cls._validate_path(path, graph)
            except GraphValidationError as e:
                if not skip_invalid:
                    raise
                logger.warning(f"Skipping learning path {path.id}: {e}")
                rejected[path.id] = e
                continue
            seen.add(path.id)
            accepted.append(path)

        logger.info(
            f"Loaded {len(accepted)} learning paths for course {graph.course_id}"
            + (f" ({len(rejected)} rejected)" if rejected else "")
        )
        return cls(graph.course_id, accepted, rejected)

    @staticmethod
    def _validate_path(path: LearningPath, graph: GraphStore) -> None:
        if path.course_id != graph.course_id:
            raise GraphValidationError(
                ValidationErrorKind.FOREIGN_PATH,
                [path.id],
                f"path {path.id} belongs to course {path.course_id}, not {graph.course_id}",
            )
        missing = [nid for nid in path.node_sequence if not graph.has_node(nid)]
        if missing:
            raise GraphValidationError(
                ValidationErrorKind.UNKNOWN_NODE_IN_PATH,
                [path.id] + missing,
                f"path {path.id} references unknown node(s) {', '.join(missing)}",
            )

    @property
    def course_id(self) -> str:
        return self._course_id

    @property
    def rejected(self) -> Dict[str, GraphValidationError]:
        """Paths dropped by ``load(skip_invalid=True)``, with the reason."""
        return dict(self._rejected)

    def __len__(self) -> int:
        return len(self._paths)

    def __contains__(self, path_id: object) -> bool:
        return path_id in self._paths

    def get_path(self, path_id: str) -> LearningPath:
        """Get a path by ID. Raises PathNotFoundError if unknown."""
        try:
            return self._paths[path_id]
        except KeyError:
            raise PathNotFoundError(f"Learning path not found in course {self._course_id}: {path_id}") from None

    def list_paths(
        self,
        difficulty: Optional[Difficulty] = None,
        path_type: Optional[LearningPathType] = None,
    ) -> List[LearningPath]:
        """Paths in load order, optionally filtered."""
        return [
            path for path in self._paths.values()
            if (difficulty is None or path.difficulty == difficulty)
            and (path_type is None or path.type == path_type)
        ]

    def paths_containing(self, node_id: str) -> List[LearningPath]:
        """Paths whose sequence includes ``node_id``."""
        return [path for path in self._paths.values() if node_id in path.node_sequence]
