"""
Configuration management for task-sync.
"""

from __future__ import annotations

import json
import os
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from .exceptions import ConfigurationError, MalformedPayloadError
from .models import DEFAULT_NOTE_PROVIDER, MetadataScope
from .paths import PathManager

# Tasks with an id at or below this number are the introductory tasks the
# application creates on first launch; they are never pushed.
DEFAULT_SEED_THRESHOLD = 14


def _normalize_path(path: str) -> str:
    """Expand user and convert to absolute path."""
    return os.path.abspath(os.path.expanduser(path))


@dataclass
class SyncConfig:
    """Configuration for sync operations."""

    database_path: Optional[str] = None
    watermark_path: Optional[str] = None
    seed_threshold: int = DEFAULT_SEED_THRESHOLD
    note_provider: str = DEFAULT_NOTE_PROVIDER
    # Metadata the sync process owns, as [{"kind": ..., "provider": ...}].
    # Empty means tags plus notes from note_provider.
    managed_metadata: List[Dict[str, Optional[str]]] = field(default_factory=list)

    def __post_init__(self) -> None:
        if self.database_path is not None:
            self.database_path = _normalize_path(self.database_path)
        if self.watermark_path is not None:
            self.watermark_path = _normalize_path(self.watermark_path)
        if self.seed_threshold < 0:
            raise ConfigurationError(f"seed_threshold must be >= 0, got {self.seed_threshold}")

    def resolve_paths(self, manager: PathManager) -> None:
        """Fill in storage locations that were not configured explicitly."""
        if self.database_path is None:
            self.database_path = str(manager.database_path)
        if self.watermark_path is None:
            self.watermark_path = str(manager.watermark_path)

    @property
    def managed_scope(self) -> MetadataScope:
        if not self.managed_metadata:
            return MetadataScope.sync_managed(self.note_provider)
        try:
            return MetadataScope.from_config(self.managed_metadata)
        except MalformedPayloadError as exc:
            raise ConfigurationError(f"Invalid managed_metadata entry: {exc}") from exc

    def validate(self) -> None:
        """Raise ConfigurationError if the managed metadata scope cannot be built."""
        self.managed_scope

    def to_dict(self) -> Dict[str, Any]:
        return {
            "storage": {
                "database_path": self.database_path,
                "watermark_path": self.watermark_path,
            },
            "sync": {
                "seed_threshold": self.seed_threshold,
                "note_provider": self.note_provider,
                "managed_metadata": self.managed_metadata,
            },
        }

    @classmethod
    def load_from_file(cls, config_path: str) -> SyncConfig:
        config_path = _normalize_path(config_path)
        if not os.path.exists(config_path):
            return cls()

        try:
            with open(config_path, "r", encoding="utf-8") as handle:
                data = json.load(handle)
        except (json.JSONDecodeError, UnicodeDecodeError) as exc:
            raise ConfigurationError(f"Config file {config_path} is not valid JSON: {exc}") from exc

        if not isinstance(data, dict):
            raise ConfigurationError(f"Config file {config_path} must contain a JSON object")
        storage = data.get("storage", {})
        sync = data.get("sync", {})
        for section, value in (("storage", storage), ("sync", sync)):
            if not isinstance(value, dict):
                raise ConfigurationError(f"Config section '{section}' must be an object, got {value!r}")
        managed = sync.get("managed_metadata", [])
        if not isinstance(managed, list):
            raise ConfigurationError(f"'managed_metadata' must be a list, got {managed!r}")
        note_provider = sync.get("note_provider", DEFAULT_NOTE_PROVIDER)
        if not isinstance(note_provider, str) or not note_provider:
            raise ConfigurationError(f"'note_provider' must be a non-empty string, got {note_provider!r}")
        try:
            config = cls(
                database_path=storage.get("database_path"),
                watermark_path=storage.get("watermark_path"),
                seed_threshold=int(sync.get("seed_threshold", DEFAULT_SEED_THRESHOLD)),
                note_provider=note_provider,
                managed_metadata=list(managed),
            )
        except (TypeError, ValueError) as exc:
            raise ConfigurationError(f"Invalid config file {config_path}: {exc}") from exc

        config.validate()
        return config

    def save_to_file(self, config_path: str) -> None:
        config_path = _normalize_path(config_path)
        os.makedirs(os.path.dirname(config_path), exist_ok=True)
        with open(config_path, "w", encoding="utf-8") as handle:
            json.dump(self.to_dict(), handle, indent=2)


def load_config(config_path: Optional[str] = None, manager: Optional[PathManager] = None) -> SyncConfig:
    """
    Load configuration from file or return defaults.

    Args:
        config_path: Optional path to config file. Uses the manager's default if not provided.
        manager: PathManager used for default locations.

    Returns:
        SyncConfig object with storage paths resolved
    """
    manager = manager or PathManager()
    if config_path is None:
        config_path = str(manager.config_path)

    config = SyncConfig.load_from_file(config_path)
    config.resolve_paths(manager)
    return config


def save_config(config: SyncConfig, config_path: Optional[str] = None,
                manager: Optional[PathManager] = None):
    """
    Save configuration to file.

    Args:
        config: SyncConfig object to save
        config_path: Optional path to save to. Uses the manager's default if not provided.
    """
    if config_path is None:
        manager = manager or PathManager()
        manager.ensure_directories()
        config_path = str(manager.config_path)

    config.save_to_file(config_path)
