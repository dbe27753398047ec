"""Data access for tags known to the tag subsystem."""

import json
import logging
from typing import Any, List, Mapping, Optional

from ..core.models import NO_ID, TagData
from .database import Database, dump_payload


def tag_from_row(row: Mapping[str, Any]) -> TagData:
    return TagData(
        id=row["id"],
        remote_id=row["remote_id"],
        name=row["name"],
        member_count=row["member_count"],
        values=json.loads(row["payload"] or "{}"),
    )


class TagDataDao:
    """Get-or-create and save for tags, looked up by name."""

    def __init__(self, database: Database, logger: Optional[logging.Logger] = None):
        self.db = database
        self.logger = logger or logging.getLogger(__name__)

    def get_tag(self, name: str) -> Optional[TagData]:
        """Find a tag by name, ignoring case."""
        row = self.db.fetchone("SELECT * FROM tagdata WHERE name = ? COLLATE NOCASE", (name,))
        return tag_from_row(row) if row else None

    def list_tags(self) -> List[TagData]:
        return [tag_from_row(row) for row in self.db.fetchall("SELECT * FROM tagdata ORDER BY id")]

    def save(self, tag: TagData) -> None:
        payload = dump_payload(tag.values, f"Tag '{tag.name}'")
        if tag.id == NO_ID:
            cursor = self.db.execute(
                "INSERT INTO tagdata (remote_id, name, member_count, payload) VALUES (?, ?, ?, ?)",
                (tag.remote_id, tag.name, tag.member_count, payload),
            )
            tag.id = cursor.lastrowid
            self.logger.debug(f"Created tag '{tag.name}' ({tag.id})")
        else:
            self.db.execute(
                "UPDATE tagdata SET remote_id = ?, name = ?, member_count = ?, payload = ? WHERE id = ?",
                (tag.remote_id, tag.name, tag.member_count, payload, tag.id),
            )
            self.logger.debug(f"Updated tag '{tag.name}' ({tag.id})")
