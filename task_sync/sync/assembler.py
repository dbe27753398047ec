"""Saving and reading tasks together with their sync-managed metadata."""

import logging
from typing import Any, List, Mapping, Optional

from ..core.models import Metadata, MetadataKind, MetadataScope, TaskContainer
from ..storage.database import Database
from ..storage.metadata_dao import MetadataDao
from ..storage.task_dao import TaskDao, task_from_row
from .merge import MetadataMergeEngine


class RecordAssembler:
    """Moves TaskContainers in and out of local storage.

    Only metadata inside the managed scope is written or read; other kinds
    stay local and never travel to the remote store.
    """

    def __init__(self, database: Database, task_dao: TaskDao, metadata_dao: MetadataDao,
                 merge_engine: MetadataMergeEngine, scope: MetadataScope,
                 logger: Optional[logging.Logger] = None):
        self.db = database
        self.task_dao = task_dao
        self.metadata_dao = metadata_dao
        self.merge_engine = merge_engine
        self.scope = scope
        self.logger = logger or logging.getLogger(__name__)

    def save_task_and_metadata(self, container: TaskContainer) -> None:
        """Save the task, then replace its managed metadata with the container's."""
        with self.db.transaction():
            self.task_dao.save(container.task)
            self.merge_engine.synchronize_metadata(container.task.id, container.metadata, self.scope)

    def read_task_and_metadata(self, row: Mapping[str, Any]) -> TaskContainer:
        """Build a container from a task row plus its managed metadata."""
        task = task_from_row(row)
        metadata = self.metadata_dao.query(task.id, self.scope)
        return TaskContainer(task=task, metadata=metadata)

    def get_task_notes(self, task_id: int) -> List[Metadata]:
        """All notes of a task, whatever provider wrote them."""
        return self.metadata_dao.query_kind(task_id, MetadataKind.NOTE)
