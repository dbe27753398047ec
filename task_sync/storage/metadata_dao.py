"""Data access for task metadata."""

import json
import logging
from typing import Any, List, Mapping, Optional

from ..core.models import Metadata, MetadataKind, MetadataScope
from .database import Database, dump_payload


def metadata_from_row(row: Mapping[str, Any]) -> Metadata:
    return Metadata(
        id=row["id"],
        task=row["task"],
        kind=MetadataKind(row["kind"]),
        provider=row["provider"],
        value=row["value"],
        payload=json.loads(row["payload"] or "{}"),
        created_at=row["created_at"],
    )


class MetadataDao:
    """Reads and writes metadata rows, always scoped to one owning task."""

    def __init__(self, database: Database, logger: Optional[logging.Logger] = None):
        self.db = database
        self.logger = logger or logging.getLogger(__name__)

    def query(self, task_id: int, scope: Optional[MetadataScope] = None) -> List[Metadata]:
        """Metadata of a task in insertion order, optionally restricted to a scope."""
        where = "task = ?"
        params: List[Any] = [task_id]
        if scope is not None:
            fragment, scope_params = scope.to_sql()
            where += f" AND {fragment}"
            params.extend(scope_params)
        rows = self.db.fetchall(f"SELECT * FROM metadata WHERE {where} ORDER BY id", params)
        return [metadata_from_row(row) for row in rows]

    def query_kind(self, task_id: int, kind: MetadataKind) -> List[Metadata]:
        return self.query(task_id, MetadataScope.of_kinds(kind))

    def delete_where(self, task_id: int, scope: MetadataScope) -> int:
        fragment, params = scope.to_sql()
        cursor = self.db.execute(f"DELETE FROM metadata WHERE task = ? AND {fragment}",
                                 [task_id, *params])
        return cursor.rowcount

    def insert(self, item: Metadata) -> None:
        cursor = self.db.execute(
            "INSERT INTO metadata (task, kind, provider, value, payload, created_at) "
            "VALUES (?, ?, ?, ?, ?, ?)",
            (item.task, item.kind.value, item.provider, item.value,
             dump_payload(item.payload, f"{item.kind.value} metadata"), item.created_at),
        )
        item.id = cursor.lastrowid

    def count(self, task_id: Optional[int] = None) -> int:
        if task_id is None:
            row = self.db.fetchone("SELECT COUNT(*) AS n FROM metadata")
        else:
            row = self.db.fetchone("SELECT COUNT(*) AS n FROM metadata WHERE task = ?", (task_id,))
        return row["n"]
