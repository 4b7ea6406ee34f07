"""
Progress storage.

The persistence technology belongs to the hosting application; this
module defines the store protocol the repository writes through and an
in-memory implementation for tests and single-process use.

Saves are compare-and-set on the progress-level ``last_accessed_at``
token: a writer passes the token it read and the save fails with
ConcurrentUpdateError if someone else saved in between.
"""

import logging
import threading
from datetime import datetime
from typing import Protocol

from ..exceptions import ConcurrentUpdateError
from ..models import KnowledgeGraphProgress


logger = logging.getLogger(__name__)


class ProgressStore(Protocol):
    """Protocol for progress storage backends."""

    def get(self, user_id: str, course_id: str) -> KnowledgeGraphProgress | None: ...
    def save(
        self,
        progress: KnowledgeGraphProgress,
        expected_version: datetime | None,
    ) -> KnowledgeGraphProgress: ...
    def delete(self, user_id: str, course_id: str) -> bool: ...


class InMemoryProgressStore:
    """
    In-memory progress store.

    Stores deep copies so callers can never mutate saved state in place.
    """

    def __init__(self) -> None:
        self._records: dict[tuple[str, str], KnowledgeGraphProgress] = {}
        self._lock = threading.Lock()

    def get(self, user_id: str, course_id: str) -> KnowledgeGraphProgress | None:
        """Get a copy of the stored progress, or None."""
        record = self._records.get((user_id, course_id))
        return record.model_copy(deep=True) if record else None

    def save(
        self,
        progress: KnowledgeGraphProgress,
        expected_version: datetime | None,
    ) -> KnowledgeGraphProgress:
        """
        Save progress if the stored version still matches.

        Args:
            progress: The progress to store
            expected_version: ``last_accessed_at`` of the copy the caller
                read, or None when the caller saw no stored progress

        Raises:
            ConcurrentUpdateError: If the stored version differs
        """
        key = (progress.user_id, progress.course_id)
        with self._lock:
            current = self._records.get(key)
            current_version = current.last_accessed_at if current else None
            if current_version != expected_version:
                raise ConcurrentUpdateError(*key)
            self._records[key] = progress.model_copy(deep=True)

        logger.debug(f"Saved progress for {key[0]}/{key[1]}")
        return progress

    def delete(self, user_id: str, course_id: str) -> bool:
        """Delete stored progress."""
        with self._lock:
            if (user_id, course_id) not in self._records:
                return False
            del self._records[(user_id, course_id)]
        logger.info(f"Deleted progress for {user_id}/{course_id}")
        return True
