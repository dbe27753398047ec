"""Kind-scoped replacement of task metadata."""

import logging
from typing import Iterable, List, Optional

from ..core.exceptions import MalformedPayloadError
from ..core.models import Metadata, MetadataScope
from ..storage.database import Database
from ..storage.metadata_dao import MetadataDao


class MetadataMergeEngine:
    """Replaces the metadata of one task within a scope.

    Remote payloads usually carry only some kinds of metadata (tags, remote
    comments). Everything outside the merge scope, such as local
    attachments or alarms, is left exactly as it was.
    """

    def __init__(self, database: Database, metadata_dao: MetadataDao,
                 logger: Optional[logging.Logger] = None):
        self.db = database
        self.metadata_dao = metadata_dao
        self.logger = logger or logging.getLogger(__name__)

    def synchronize_metadata(self, task_id: int, new_items: Iterable[Metadata],
                             scope: MetadataScope) -> List[Metadata]:
        """Delete the task's metadata matched by `scope` and insert `new_items`.

        Runs in a single transaction: on failure nothing changes. Items that
        fall outside `scope` are rejected before anything is written, since
        they could never be replaced by a later merge.

        Returns the inserted items with their new ids.
        """
        items = list(new_items)
        for item in items:
            if not scope.matches(item):
                raise MalformedPayloadError(
                    f"Metadata {item.kind.value!r} (provider {item.provider!r}) "
                    f"is outside the merge scope {scope.to_config()}"
                )

        with self.db.transaction():
            removed = self.metadata_dao.delete_where(task_id, scope)
            for item in items:
                item.task = task_id
                self.metadata_dao.insert(item)

        self.logger.debug(f"Task {task_id}: replaced {removed} metadata items with {len(items)}")
        return items
