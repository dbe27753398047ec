"""Selection of local tasks that need to be pushed to the remote service."""

import logging
from typing import List, Optional

from ..core.models import Task
from ..storage.task_dao import ACTIVE, TaskDao, task_from_row
from .watermark import NEVER_SYNCED, WatermarkStore


class ChangeSelector:
    """Finds never-synced and locally-updated tasks.

    Both queries are pure reads; result order follows local id but callers
    should not rely on it.
    """

    def __init__(self, task_dao: TaskDao, watermark: WatermarkStore, seed_threshold: int,
                 logger: Optional[logging.Logger] = None):
        self.task_dao = task_dao
        self.watermark = watermark
        self.seed_threshold = seed_threshold
        self.logger = logger or logging.getLogger(__name__)

    def never_synced_rows(self) -> list:
        """Rows of active tasks the remote store has never seen.

        Introductory tasks (id at or below the seed threshold) are excluded;
        they belong to the application, not the user.
        """
        rows = self.task_dao.query_rows(
            f"{ACTIVE} AND tasks.id > ? AND tasks.remote_id = 0",
            (self.seed_threshold,),
        )
        self.logger.debug(f"{len(rows)} never-synced tasks above id {self.seed_threshold}")
        return rows

    def locally_updated_rows(self) -> list:
        """Rows of previously synced tasks modified since the last sync, one per task.

        Empty when the account has never synced: a first sync only creates,
        it does not push every existing task as an update.
        """
        last_sync_date = self.watermark.get()
        if last_sync_date == NEVER_SYNCED:
            return []

        rows = self.task_dao.query_rows(
            "tasks.remote_id > 0 AND tasks.modification_date > ? AND tasks.last_sync < ?",
            (last_sync_date, last_sync_date),
            join_metadata=True,
            group_by_id=True,
        )
        self.logger.debug(f"{len(rows)} tasks updated since {last_sync_date}")
        return rows

    def get_never_synced(self) -> List[Task]:
        return [task_from_row(row) for row in self.never_synced_rows()]

    def get_locally_updated(self) -> List[Task]:
        return [task_from_row(row) for row in self.locally_updated_rows()]
