"""
Unit tests for PathCatalog validation and lookups.
"""

import pytest
from pydantic import ValidationError

from conftest import make_path
from learning_graph import (
    Difficulty,
    GraphValidationError,
    LearningPathType,
    PathCatalog,
    PathNotFoundError,
    ValidationErrorKind,
)


class TestPathValidation:
    """Invalid paths are rejected, or skipped on request."""

    def test_unknown_node_in_path_rejected(self, abc_graph):
        paths = [make_path("bad", ["A", "X", "C"])]

        with pytest.raises(GraphValidationError) as exc_info:
            PathCatalog.load(paths, abc_graph)

        assert exc_info.value.kind == ValidationErrorKind.UNKNOWN_NODE_IN_PATH
        assert exc_info.value.ids == ["bad", "X"]

    def test_invalid_path_skipped_keeps_others(self, abc_graph):
        """An invalid path does not prevent other paths from loading."""
        paths = [
            make_path("good", ["A", "B"]),
            make_path("bad", ["A", "X"]),
            make_path("also-good", ["A", "C"]),
        ]

        catalog = PathCatalog.load(paths, abc_graph, skip_invalid=True)

        assert [p.id for p in catalog.list_paths()] == ["good", "also-good"]
        assert "bad" not in catalog
        assert catalog.rejected["bad"].kind == ValidationErrorKind.UNKNOWN_NODE_IN_PATH

    def test_foreign_path_rejected(self, abc_graph):
        paths = [make_path("other", ["A"], course_id="another-course")]

        with pytest.raises(GraphValidationError) as exc_info:
            PathCatalog.load(paths, abc_graph)

        assert exc_info.value.kind == ValidationErrorKind.FOREIGN_PATH

    def test_duplicate_path_id_rejected(self, abc_graph):
        paths = [make_path("p", ["A"]), make_path("p", ["B"])]

        with pytest.raises(GraphValidationError) as exc_info:
            PathCatalog.load(paths, abc_graph)

        assert exc_info.value.kind == ValidationErrorKind.DUPLICATE_ID

    def test_empty_sequence_invalid(self):
        with pytest.raises(ValidationError):
            make_path("empty", [])

    def test_repeated_node_in_sequence_invalid(self):
        with pytest.raises(ValidationError):
            make_path("loop", ["A", "B", "A"])

    def test_path_may_ignore_prerequisite_order(self, abc_graph):
        """Sequences are curated; they need not be topologically sorted."""
        catalog = PathCatalog.load([make_path("backwards", ["C", "B", "A"])], abc_graph)

        assert catalog.get_path("backwards").node_sequence == ["C", "B", "A"]


class TestPathQueries:
    """Lookups over a loaded catalog."""

    def test_get_path(self, abc_catalog):
        path = abc_catalog.get_path("abc-path")

        assert path.node_sequence == ["A", "B", "C"]
        assert path.index_of("B") == 1
        assert path.index_of("Z") is None

    def test_get_unknown_path_raises(self, abc_catalog):
        with pytest.raises(PathNotFoundError):
            abc_catalog.get_path("missing")

    def test_list_paths_filters(self, sample_course):
        _, catalog = sample_course

        assert len(catalog) == 3
        assert [p.id for p in catalog.list_paths(difficulty=Difficulty.ADVANCED)] == ["accelerated-path"]
        assert [p.id for p in catalog.list_paths(path_type=LearningPathType.APPLICATION)] == ["application-path"]

    def test_paths_containing(self, sample_course):
        _, catalog = sample_course

        ids = [p.id for p in catalog.paths_containing("advanced-rational")]

        assert ids == ["comprehensive-path", "accelerated-path"]
