"""
Path management for task-sync.

Resolves where configuration, the task database and the sync watermark
live. A PathManager is created by the entry point and handed to whatever
needs it; there is no module-level instance.
"""

import os
import sys
from pathlib import Path
from typing import Optional
import logging


class PathManager:
    """Manages task-sync file paths."""

    # Directory names
    APP_DIR_NAME = "task-sync"
    HOME_ENV_VAR = "TASK_SYNC_HOME"

    # File names
    CONFIG_FILE = "config.json"
    DATABASE_FILE = "tasks.db"
    WATERMARK_FILE = "watermark.json"

    def __init__(self, base_dir: Optional[str] = None, logger: Optional[logging.Logger] = None):
        self.logger = logger or logging.getLogger(__name__)
        self._working_dir: Optional[Path] = Path(base_dir).expanduser().resolve() if base_dir else None

    def _default_user_dir(self) -> Path:
        """Platform-appropriate per-user data directory."""
        if sys.platform == "darwin":
            return Path.home() / "Library" / "Application Support" / self.APP_DIR_NAME
        if sys.platform.startswith("win"):
            appdata = os.environ.get("APPDATA")
            if appdata:
                return Path(appdata) / self.APP_DIR_NAME
            return Path.home() / "AppData" / "Roaming" / self.APP_DIR_NAME
        return Path.home() / ".config" / self.APP_DIR_NAME

    @property
    def working_dir(self) -> Path:
        """
        Get the working directory for task-sync data.

        Priority order:
        1. base_dir passed to the constructor
        2. TASK_SYNC_HOME environment variable
        3. the platform user data directory
        """
        if self._working_dir is not None:
            return self._working_dir

        env_override = os.environ.get(self.HOME_ENV_VAR)
        if env_override:
            self._working_dir = Path(env_override).expanduser().resolve()
            self.logger.debug(f"Using {self.HOME_ENV_VAR} override: {self._working_dir}")
        else:
            self._working_dir = self._default_user_dir()
        return self._working_dir

    def ensure_directories(self) -> None:
        """Ensure all required directories exist."""
        for directory in (self.working_dir, self.data_dir):
            directory.mkdir(parents=True, exist_ok=True)
            self.logger.debug(f"Ensured directory exists: {directory}")

    @property
    def data_dir(self) -> Path:
        """Directory holding the database and sync state."""
        return self.working_dir / "data"

    @property
    def config_path(self) -> Path:
        return self.working_dir / self.CONFIG_FILE

    @property
    def database_path(self) -> Path:
        return self.data_dir / self.DATABASE_FILE

    @property
    def watermark_path(self) -> Path:
        return self.data_dir / self.WATERMARK_FILE
