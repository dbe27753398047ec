"""
Exception classes for task-sync.
"""


class TaskSyncError(Exception):
    """Base exception for all task-sync errors."""
    pass


class ConfigurationError(TaskSyncError):
    """Raised when configuration is invalid or missing."""
    pass


class MalformedPayloadError(TaskSyncError):
    """Raised when a remote payload is missing a required field or carries an invalid value."""
    pass


class StorageError(TaskSyncError):
    """Raised when a storage transaction could not be committed."""
    pass


class SyncError(TaskSyncError):
    """Raised when sync operations fail."""
    pass
