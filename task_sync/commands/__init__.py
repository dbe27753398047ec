"""
Command implementations for task-sync.
"""

from .status import StatusCommand
from .apply import ApplyCommand
from .logout import LogoutCommand

__all__ = [
    'StatusCommand',
    'ApplyCommand',
    'LogoutCommand',
]
