"""
Utility functions for task-sync.
"""

from .io import safe_read_json, safe_write_json
from .date import now_millis, from_millis, format_millis

__all__ = [
    # I/O utilities
    'safe_read_json',
    'safe_write_json',
    # Date utilities
    'now_millis',
    'from_millis',
    'format_millis',
]
