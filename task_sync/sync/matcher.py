"""Binding of remote tasks to their local counterparts."""

import logging
from typing import Optional

from ..core.models import TaskContainer
from ..storage.task_dao import TaskDao


class IdentityMatcher:
    """Matches a remote task to a local one by remote id."""

    def __init__(self, task_dao: TaskDao, logger: Optional[logging.Logger] = None):
        self.task_dao = task_dao
        self.logger = logger or logging.getLogger(__name__)

    def find_local_match(self, container: TaskContainer) -> bool:
        """Bind the container's task to an existing local task.

        Returns True when the task already has a local id or one was found
        (the container is updated in place); False means the caller should
        create a new local task.
        """
        task = container.task
        if task.is_saved:
            return True

        local_id = self.task_dao.find_id_by_remote_id(task.remote_id)
        if local_id is None:
            self.logger.debug(f"No local task for remote id {task.remote_id}")
            return False

        task.id = local_id
        self.logger.debug(f"Remote task {task.remote_id} matched local task {local_id}")
        return True
