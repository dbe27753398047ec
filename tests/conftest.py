#!/usr/bin/env python3
"""
Global pytest configuration and fixtures.

This module provides:
- Isolated temporary directories and databases
- A fully wired RemoteDataService
- Per-component DAOs and a temporary watermark file
"""

import os
import shutil
import sys
import tempfile
from typing import Generator

import pytest

# Add parent directory to path for imports
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from task_sync.core.models import MetadataScope
from task_sync.storage import Database, MetadataDao, TaskDao
from task_sync.sync.service import RemoteDataService
from task_sync.sync.watermark import WatermarkStore

from tests.helpers import NOTE_PROVIDER, SEED_THRESHOLD


@pytest.fixture
def temp_dir() -> Generator[str, None, None]:
    """Create a temporary directory for test isolation."""
    temp_path = tempfile.mkdtemp(prefix="task_sync_test_")
    try:
        yield temp_path
    finally:
        shutil.rmtree(temp_path, ignore_errors=True)


@pytest.fixture
def database() -> Generator[Database, None, None]:
    db = Database(":memory:")
    try:
        yield db
    finally:
        db.close()


@pytest.fixture
def task_dao(database: Database) -> TaskDao:
    return TaskDao(database)


@pytest.fixture
def metadata_dao(database: Database) -> MetadataDao:
    return MetadataDao(database)


@pytest.fixture
def watermark(temp_dir: str) -> WatermarkStore:
    return WatermarkStore(os.path.join(temp_dir, "watermark.json"))


@pytest.fixture
def managed_scope() -> MetadataScope:
    return MetadataScope.sync_managed(NOTE_PROVIDER)


@pytest.fixture
def service(database: Database, watermark: WatermarkStore,
            managed_scope: MetadataScope) -> RemoteDataService:
    return RemoteDataService(database, watermark, seed_threshold=SEED_THRESHOLD, scope=managed_scope)

