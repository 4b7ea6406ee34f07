"""
Course content loading.

Course content arrives as one document per course (nodes,
relationships and predefined paths). Documents are parsed into
CourseContent and then built into a validated GraphStore and
PathCatalog. Nothing is loaded at import time.

Configuration via environment variables:
- LEARNING_GRAPH_CONTENT_DIR: directory searched for bare course file
  names (defaults to the bundled ``data`` directory)
"""

import logging
import os
from pathlib import Path
from typing import Any, Mapping, Tuple, Union

from .models import CourseContent
from .storage import GraphStore, PathCatalog


logger = logging.getLogger(__name__)

BUNDLED_CONTENT_DIR = Path(__file__).parent / "data"
SAMPLE_COURSE_FILE = "digital_sat_math.json"


def content_dir() -> Path:
    """Directory that bare course file names are resolved against."""
    configured = os.getenv("LEARNING_GRAPH_CONTENT_DIR")
    return Path(configured) if configured else BUNDLED_CONTENT_DIR


def parse_course(data: Mapping[str, Any]) -> CourseContent:
    """Parse a course document. Keys may be camelCase or snake_case."""
    return CourseContent.model_validate(data)


def load_course_file(path: Union[str, Path]) -> CourseContent:
    """
    Read a course document from a JSON file.

    A relative path that does not exist from the working directory is
    looked up in the content directory; the ``.json`` suffix may be
    omitted.
    """
    candidate = Path(path)
    if not candidate.is_absolute() and not candidate.exists():
        candidate = content_dir() / candidate
        if not candidate.exists() and candidate.suffix != ".json":
            candidate = candidate.with_name(candidate.name + ".json")

    content = CourseContent.model_validate_json(candidate.read_text(encoding="utf-8"))
    logger.info(f"Read course {content.course_id} v{content.version} from {candidate}")
    return content


def load_sample_course() -> CourseContent:
    """The bundled Digital SAT Math course."""
    return load_course_file(BUNDLED_CONTENT_DIR / SAMPLE_COURSE_FILE)


def build_course(
    content: CourseContent,
    skip_invalid_paths: bool = False,
    check_acyclic: bool = True,
) -> Tuple[GraphStore, PathCatalog]:
    """
    Validate course content and build its graph and path catalog.

    Raises:
        GraphValidationError: If the graph is invalid, or a path is
            invalid and ``skip_invalid_paths`` is False
    """
    graph = GraphStore.from_content(content, check_acyclic=check_acyclic)
    catalog = PathCatalog.load(content.predefined_paths, graph, skip_invalid=skip_invalid_paths)
    return graph, catalog
