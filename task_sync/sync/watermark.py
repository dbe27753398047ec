"""Persistence of the last successful sync time."""

import logging
from pathlib import Path
from typing import Optional, Union

from ..utils.io import safe_read_json, safe_write_json

NEVER_SYNCED = 0


class WatermarkStore:
    """Stores the timestamp (epoch ms) of the last completed sync round.

    0 means the account has never synced. Advancing backwards is allowed
    but logged, since callers are expected to move it forward only.
    """

    KEY = "last_sync_date"

    def __init__(self, path: Union[str, Path], logger: Optional[logging.Logger] = None):
        self.path = Path(path)
        self.logger = logger or logging.getLogger(__name__)

    def get(self) -> int:
        data = safe_read_json(str(self.path), default={})
        try:
            return int(data.get(self.KEY, NEVER_SYNCED))
        except (TypeError, ValueError):
            self.logger.warning(f"Ignoring unreadable watermark in {self.path}: {data.get(self.KEY)!r}")
            return NEVER_SYNCED

    def advance(self, timestamp: int) -> None:
        current = self.get()
        if timestamp < current:
            self.logger.warning(f"Moving sync watermark backwards: {current} -> {timestamp}")
        self._write(timestamp)
        self.logger.info(f"Sync watermark set to {timestamp}")

    def reset(self) -> None:
        """Forget the last sync so the next round behaves like a first sync."""
        self._write(NEVER_SYNCED)
        self.logger.info("Sync watermark reset")

    def _write(self, timestamp: int) -> None:
        safe_write_json(str(self.path), {self.KEY: int(timestamp)})
