"""
Tests for course content parsing, file loading and the bundled course.
"""

import json

import pytest
from pydantic import ValidationError

from conftest import SAT_COURSE_ID
from learning_graph import (
    Importance,
    KnowledgeGraphProgress,
    RelationshipType,
    build_course,
    load_course_file,
    parse_course,
)


TINY_COURSE = {
    "courseId": "tiny",
    "version": "2.1",
    "nodes": [
        {"id": "a", "moduleId": "m1", "title": "A", "importance": "supplementary",
         "metadata": {"order": 2, "keyTakeaways": ["one"], "color": "#336699"}},
        {"id": "b", "moduleId": "m1", "lessonId": "l1", "title": "B", "estimatedMinutes": 15},
    ],
    "relationships": [
        {"id": "r1", "sourceId": "a", "targetId": "b", "type": "builds-upon", "strength": 4},
    ],
    "predefinedPaths": [
        {"id": "p1", "courseId": "tiny", "name": "Theory", "type": "theory", "nodeSequence": ["a", "b"]},
    ],
}


class TestParsing:
    """Wire format: camelCase keys, enum values, defaults."""

    def test_parse_camel_case(self):
        content = parse_course(TINY_COURSE)

        assert content.course_id == "tiny"
        assert content.version == "2.1"
        assert content.nodes[1].lesson_id == "l1"
        assert content.nodes[1].estimated_minutes == 15
        assert content.relationships[0].type == RelationshipType.BUILDS_UPON

    def test_supplementary_importance_is_optional(self):
        content = parse_course(TINY_COURSE)

        assert content.nodes[0].importance == Importance.OPTIONAL

    def test_supplementary_written_back_as_optional(self):
        """Older importance values are normalized, not preserved, on output."""
        wire = parse_course(TINY_COURSE).to_wire()

        assert wire["nodes"][0]["importance"] == "optional"
        assert parse_course(wire).nodes[0].importance == Importance.OPTIONAL

    def test_metadata_extra_keys_preserved(self):
        node = parse_course(TINY_COURSE).nodes[0]

        assert node.order == 2
        assert node.metadata.key_takeaways == ["one"]
        assert node.to_wire()["metadata"]["color"] == "#336699"

    def test_to_wire_uses_camel_case(self):
        wire = parse_course(TINY_COURSE).to_wire()

        assert "predefinedPaths" in wire
        assert wire["nodes"][1]["estimatedMinutes"] == 15
        assert wire["relationships"][0]["sourceId"] == "a"

    def test_progress_envelope_round_trip(self):
        progress = KnowledgeGraphProgress(user_id="u1", course_id="tiny", completed_nodes=["a"])

        wire = progress.to_wire()

        assert wire["userId"] == "u1"
        assert wire["completedNodes"] == ["a"]
        assert KnowledgeGraphProgress.model_validate(wire) == progress

    @pytest.mark.parametrize("field, value", [
        ("strength", 0),
        ("strength", 11),
        ("type", "depends-on"),
    ])
    def test_invalid_relationship_fields(self, field, value):
        data = json.loads(json.dumps(TINY_COURSE))
        data["relationships"][0][field] = value

        with pytest.raises(ValidationError):
            parse_course(data)

    def test_negative_minutes_rejected(self):
        data = json.loads(json.dumps(TINY_COURSE))
        data["nodes"][1]["estimatedMinutes"] = -5

        with pytest.raises(ValidationError):
            parse_course(data)


class TestCourseFiles:
    """Reading course documents from disk."""

    def test_load_course_file(self, tmp_path):
        path = tmp_path / "tiny.json"
        path.write_text(json.dumps(TINY_COURSE), encoding="utf-8")

        content = load_course_file(path)

        assert content.course_id == "tiny"

    def test_bare_name_resolved_in_content_dir(self, tmp_path, monkeypatch):
        (tmp_path / "tiny.json").write_text(json.dumps(TINY_COURSE), encoding="utf-8")
        monkeypatch.setenv("LEARNING_GRAPH_CONTENT_DIR", str(tmp_path))
        monkeypatch.chdir(tmp_path.parent)

        content = load_course_file("tiny")

        assert content.course_id == "tiny"

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_course_file(tmp_path / "absent.json")


class TestSampleCourse:
    """The bundled Digital SAT Math course is valid content."""

    def test_sample_course_shape(self, sample_content):
        assert sample_content.course_id == SAT_COURSE_ID
        assert len(sample_content.nodes) == 17
        assert len(sample_content.relationships) == 20
        assert [p.id for p in sample_content.predefined_paths] == [
            "comprehensive-path",
            "accelerated-path",
            "application-path",
        ]

    def test_sample_course_builds(self, sample_content):
        graph, catalog = build_course(sample_content)

        assert len(graph) == 17
        assert catalog.rejected == {}
        assert graph.find_prerequisite_cycle() is None

    def test_comprehensive_path_covers_every_node(self, sample_course):
        graph, catalog = sample_course

        path = catalog.get_path("comprehensive-path")

        assert sorted(path.node_sequence) == sorted(graph.node_ids())
