"""
Core module for task-sync - contains domain models, configuration, and exceptions.
"""

from .models import (
    NO_ID,
    Task,
    Metadata,
    MetadataKind,
    MetadataScope,
    ScopeRule,
    TaskContainer,
    TagData,
)

from .exceptions import (
    TaskSyncError,
    ConfigurationError,
    MalformedPayloadError,
    StorageError,
    SyncError,
)

from .config import SyncConfig

__all__ = [
    # Models
    'NO_ID',
    'Task',
    'Metadata',
    'MetadataKind',
    'MetadataScope',
    'ScopeRule',
    'TaskContainer',
    'TagData',
    'SyncConfig',
    # Exceptions
    'TaskSyncError',
    'ConfigurationError',
    'MalformedPayloadError',
    'StorageError',
    'SyncError',
]
