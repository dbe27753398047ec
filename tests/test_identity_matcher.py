#!/usr/bin/env python3
"""
Tests for binding remote tasks to local tasks by remote id.
"""

import pytest

from task_sync.core.models import NO_ID, Task, TaskContainer
from task_sync.sync.matcher import IdentityMatcher
from tests.helpers import make_task


@pytest.fixture
def matcher(task_dao):
    return IdentityMatcher(task_dao)


class TestIdentityMatcher:

    def test_already_bound_container_matches_without_lookup(self, matcher, task_dao):
        container = TaskContainer(Task(id=42, remote_id=9))

        assert matcher.find_local_match(container) is True
        assert container.task.id == 42

    def test_binds_to_existing_task_by_remote_id(self, matcher, task_dao):
        local = make_task(task_dao, id=5, remote_id=77, title="local copy")
        container = TaskContainer(Task(remote_id=77, title="remote copy"))

        assert matcher.find_local_match(container) is True
        assert container.task.id == local.id
        # Binding only sets the id
        assert container.task.title == "remote copy"

    def test_miss_returns_false_and_leaves_container_unbound(self, matcher, task_dao):
        make_task(task_dao, id=5, remote_id=77)
        container = TaskContainer(Task(remote_id=78))

        assert matcher.find_local_match(container) is False
        assert container.task.id == NO_ID

    def test_zero_remote_id_never_matches(self, matcher, task_dao):
        make_task(task_dao, id=5, remote_id=0)

        assert matcher.find_local_match(TaskContainer(Task(remote_id=0))) is False

    def test_second_container_binds_to_task_created_for_first(self, matcher, service):
        first = TaskContainer(Task(remote_id=300, title="from remote"))
        assert matcher.find_local_match(first) is False
        service.save_task_and_metadata(first)

        second = TaskContainer(Task(remote_id=300, title="from remote, again"))
        assert matcher.find_local_match(second) is True
        assert second.task.id == first.task.id

        service.save_task_and_metadata(second)
        assert service.task_dao.count("remote_id = ?", (300,)) == 1
