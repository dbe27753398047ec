"""
task-sync - reconciliation core for two-way task synchronization.
"""

__version__ = "1.0.0"

from .core import (
    NO_ID,
    Task,
    Metadata,
    MetadataKind,
    MetadataScope,
    TaskContainer,
    TagData,
    SyncConfig,
)
from .sync import RemoteDataService, SyncRoundResult

__all__ = [
    'NO_ID',
    'Task',
    'Metadata',
    'MetadataKind',
    'MetadataScope',
    'TaskContainer',
    'TagData',
    'SyncConfig',
    'RemoteDataService',
    'SyncRoundResult',
]
