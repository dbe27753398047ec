"""Data access for tasks."""

import json
import logging
from typing import Any, Dict, List, Mapping, Optional, Sequence

from ..core.exceptions import StorageError
from ..core.models import NO_ID, Task
from .database import Database, dump_payload

# Columns that may be bulk-updated through update_multiple
UPDATABLE_COLUMNS = frozenset({
    "remote_id",
    "title",
    "modification_date",
    "last_sync",
    "completion_date",
    "deletion_date",
})

ACTIVE = "tasks.completion_date = 0 AND tasks.deletion_date = 0"
"""WHERE fragment selecting tasks that are neither completed nor deleted."""


def task_from_row(row: Mapping[str, Any]) -> Task:
    """Build a Task from a `tasks` row."""
    return Task(
        id=row["id"],
        remote_id=row["remote_id"],
        title=row["title"],
        modification_date=row["modification_date"],
        last_sync=row["last_sync"],
        completion_date=row["completion_date"],
        deletion_date=row["deletion_date"],
        values=json.loads(row["payload"] or "{}"),
    )


class TaskDao:
    """Queries and persists tasks."""

    def __init__(self, database: Database, logger: Optional[logging.Logger] = None):
        self.db = database
        self.logger = logger or logging.getLogger(__name__)

    def query_rows(self, where: str = "1", params: Sequence[Any] = (),
                   join_metadata: bool = False, group_by_id: bool = False) -> list:
        """Select raw task rows.

        With join_metadata the tasks are left-joined with their metadata, so a
        task with several metadata rows appears several times unless
        group_by_id collapses them.
        """
        sql = "SELECT tasks.* FROM tasks"
        if join_metadata:
            sql += " LEFT JOIN metadata ON tasks.id = metadata.task"
        sql += f" WHERE {where}"
        if group_by_id:
            sql += " GROUP BY tasks.id"
        sql += " ORDER BY tasks.id"
        return self.db.fetchall(sql, params)

    def query(self, where: str = "1", params: Sequence[Any] = (),
              join_metadata: bool = False, group_by_id: bool = False) -> List[Task]:
        rows = self.query_rows(where, params, join_metadata=join_metadata, group_by_id=group_by_id)
        return [task_from_row(row) for row in rows]

    def fetch(self, task_id: int) -> Optional[Task]:
        row = self.db.fetchone("SELECT * FROM tasks WHERE id = ?", (task_id,))
        return task_from_row(row) if row else None

    def find_id_by_remote_id(self, remote_id: int) -> Optional[int]:
        if not remote_id:
            return None
        row = self.db.fetchone("SELECT id FROM tasks WHERE remote_id = ? LIMIT 1", (remote_id,))
        return row["id"] if row else None

    def count(self, where: str = "1", params: Sequence[Any] = ()) -> int:
        row = self.db.fetchone(f"SELECT COUNT(*) AS n FROM tasks WHERE {where}", params)
        return row["n"]

    def save(self, task: Task) -> None:
        """Insert or update a task by local id.

        A task without an id is inserted and receives its id here; a task
        with an id is upserted so a caller-supplied id is honoured.
        """
        columns = {
            "remote_id": task.remote_id,
            "title": task.title,
            "modification_date": task.modification_date,
            "last_sync": task.last_sync,
            "completion_date": task.completion_date,
            "deletion_date": task.deletion_date,
            "payload": dump_payload(task.values, f"Task (remote {task.remote_id})"),
        }
        names = list(columns)
        if task.id == NO_ID:
            sql = (f"INSERT INTO tasks ({', '.join(names)}) "
                   f"VALUES ({', '.join('?' for _ in names)})")
            cursor = self.db.execute(sql, list(columns.values()))
            task.id = cursor.lastrowid
            self.logger.debug(f"Inserted task {task.id} (remote {task.remote_id})")
            return

        assignments = ", ".join(f"{name} = excluded.{name}" for name in names)
        sql = (f"INSERT INTO tasks (id, {', '.join(names)}) "
               f"VALUES (?, {', '.join('?' for _ in names)}) "
               f"ON CONFLICT(id) DO UPDATE SET {assignments}")
        self.db.execute(sql, [task.id, *columns.values()])
        self.logger.debug(f"Saved task {task.id} (remote {task.remote_id})")

    def update_multiple(self, values: Dict[str, Any], where: str = "1",
                        params: Sequence[Any] = ()) -> int:
        """Set the given columns on every task matching `where`; returns rows changed."""
        unknown = set(values) - UPDATABLE_COLUMNS
        if unknown:
            raise StorageError(f"Cannot bulk-update columns: {sorted(unknown)}")
        if not values:
            return 0
        assignments = ", ".join(f"{name} = ?" for name in values)
        cursor = self.db.execute(f"UPDATE tasks SET {assignments} WHERE {where}",
                                 [*values.values(), *params])
        return cursor.rowcount
