"""
Step definitions for course content loading.

Feature: course_loading.feature
Scenarios: 4

Implements BDD steps for:
- Declaring nodes, prerequisite edges and learning paths
- Loading a course (and the bundled sample course)
- Validation failures and rejected paths

The Given steps here are shared with the progress and recommendation
features.
"""

import pytest
from pytest_bdd import given, when, then, parsers

from learning_graph import (
    CourseContent,
    GraphValidationError,
    LearningGraphRepository,
    LearningPath,
    Node,
    Relationship,
    RelationshipType,
)


BDD_COURSE_ID = "bdd-course"


def split_ids(text: str):
    return [part.strip() for part in text.split(",") if part.strip()]


# ─────────────────────────────────────────────────────────────────────────────
# Shared Context
# ─────────────────────────────────────────────────────────────────────────────

class ScenarioContext:
    """Shared test context across steps."""

    def __init__(self):
        self.repository = LearningGraphRepository(strict_paths=False)
        self.nodes = []
        self.relationships = []
        self.paths = []
        self.course = None
        self.user_id = None
        self.progress = None
        self.error = None


@pytest.fixture
def ctx():
    """Fresh test context for each scenario."""
    return ScenarioContext()


# ─────────────────────────────────────────────────────────────────────────────
# Content Steps
# ─────────────────────────────────────────────────────────────────────────────

@given(parsers.parse('nodes "{ids}"'))
def given_nodes(ctx, ids):
    for order, node_id in enumerate(split_ids(ids), start=1):
        ctx.nodes.append(Node(id=node_id, module_id="m1", title=node_id, metadata={"order": order}))


@given("prerequisite edges:")
def given_prerequisite_edges(ctx, datatable):
    header, *rows = datatable
    for row in rows:
        record = dict(zip(header, row))
        ctx.relationships.append(Relationship(
            id=f"rel-{len(ctx.relationships) + 1}",
            source_id=record["source"],
            target_id=record["target"],
            type=RelationshipType.PREREQUISITE,
            strength=int(record["strength"]),
        ))


@given(parsers.parse('a learning path "{path_id}" through "{ids}"'))
def given_learning_path(ctx, path_id, ids):
    ctx.paths.append(LearningPath(
        id=path_id,
        course_id=BDD_COURSE_ID,
        name=path_id,
        node_sequence=split_ids(ids),
    ))


# ─────────────────────────────────────────────────────────────────────────────
# Loading Steps
# ─────────────────────────────────────────────────────────────────────────────

@given("the course is loaded")
@when("the course is loaded")
def load_course(ctx):
    content = CourseContent(
        course_id=BDD_COURSE_ID,
        nodes=ctx.nodes,
        relationships=ctx.relationships,
        predefined_paths=ctx.paths,
    )
    try:
        ctx.course = ctx.repository.load_course(content)
    except GraphValidationError as e:
        ctx.error = e


@when("the sample course is loaded")
def load_sample_course(ctx):
    ctx.course = ctx.repository.load_sample_course()


# ─────────────────────────────────────────────────────────────────────────────
# Assertions
# ─────────────────────────────────────────────────────────────────────────────

@then(parsers.parse('loading fails with "{kind}"'))
def loading_fails(ctx, kind):
    assert ctx.course is None
    assert isinstance(ctx.error, GraphValidationError)
    assert ctx.error.kind.value == kind


@then(parsers.parse("the course has {count:d} nodes"))
def course_node_count(ctx, count):
    assert len(ctx.course.graph) == count


@then(parsers.parse('the course has paths "{ids}"'))
def course_paths(ctx, ids):
    assert [p.id for p in ctx.course.catalog.list_paths()] == split_ids(ids)


@then(parsers.parse('path "{path_id}" was rejected with "{kind}"'))
def path_rejected(ctx, path_id, kind):
    assert ctx.course.catalog.rejected[path_id].kind.value == kind
