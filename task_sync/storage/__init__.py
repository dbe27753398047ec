"""SQLite-backed storage for tasks, metadata and tags."""

from .database import Database
from .task_dao import TaskDao, task_from_row
from .metadata_dao import MetadataDao
from .tag_data_dao import TagDataDao

__all__ = ['Database', 'TaskDao', 'task_from_row', 'MetadataDao', 'TagDataDao']
