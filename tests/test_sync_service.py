#!/usr/bin/env python3
"""
Tests for RemoteDataService: logout reset, sync rounds, tags and pushes.
"""

from datetime import date

import pytest

from task_sync.core.exceptions import MalformedPayloadError, StorageError, SyncError
from task_sync.core.models import MetadataKind, Task, TaskContainer
from task_sync.sync.service import SyncRoundResult
from tests.helpers import attachment, make_task, tag


def remote_container(remote_id, title="remote task", tags=(), **task_fields):
    return {
        "task": {"remote_id": remote_id, "title": title, **task_fields},
        "metadata": [{"kind": "tags-tag", "value": name} for name in tags],
    }


class TestLogoutReset:

    def test_clears_every_remote_id(self, service, task_dao):
        make_task(task_dao, id=1, remote_id=11)
        make_task(task_dao, id=2, remote_id=0)
        make_task(task_dao, id=30, remote_id=12, completion_date=5)

        cleared = service.clear_metadata()

        assert cleared == 3
        assert [task.remote_id for task in task_dao.query()] == [0, 0, 0]

    def test_leaves_metadata_timestamps_and_watermark(self, service, task_dao, metadata_dao, watermark):
        task = make_task(task_dao, id=10, remote_id=11, modification_date=150, last_sync=90)
        item = tag("work")
        item.task = task.id
        metadata_dao.insert(item)
        watermark.advance(100)

        service.clear_metadata()

        stored = task_dao.fetch(task.id)
        assert stored.modification_date == 150
        assert stored.last_sync == 90
        assert [m.value for m in metadata_dao.query(task.id)] == ["work"]
        assert watermark.get() == 100

    def test_cleared_tasks_become_never_synced(self, service, task_dao):
        make_task(task_dao, id=10, remote_id=11)

        service.clear_metadata()

        assert [task.id for task in service.get_never_synced()] == [10]


class TestApplyRemoteChanges:

    def test_creates_unknown_tasks_and_updates_known_ones(self, service, task_dao):
        existing = make_task(task_dao, id=10, remote_id=500, title="old title")

        result = service.apply_remote_changes(
            [remote_container(500, "new title"), remote_container(501, "brand new", tags=["x"])],
            sync_time=1000,
        )

        assert result.succeeded
        assert len(result.applied) == 2
        assert len(result.created) == 1
        assert task_dao.fetch(existing.id).title == "new title"
        created = task_dao.fetch(result.created[0])
        assert created.remote_id == 501
        assert created.last_sync == 1000
        assert [m.value for m in service.metadata_dao.query_kind(created.id, MetadataKind.TAG)] == ["x"]

    def test_accepts_container_objects(self, service):
        container = TaskContainer(Task(remote_id=42, title="object"), [])

        result = service.apply_remote_changes([container], sync_time=5)

        assert result.created == [container.task.id]

    def test_bad_records_do_not_block_the_batch(self, service, task_dao):
        batch = [
            remote_container(1, "fine"),
            {"metadata": []},                                         # no task
            remote_container(0, "no remote id"),
            {"task": {"remote_id": 3}, "metadata": [{"kind": "bogus"}]},
            {"task": {"remote_id": "abc"}},
            remote_container(2, "also fine"),
        ]

        result = service.apply_remote_changes(batch, sync_time=10)

        assert not result.succeeded
        assert len(result.failures) == 4
        assert sorted(task.remote_id for task in task_dao.query()) == [1, 2]

    def test_remote_id_too_large_for_storage_is_isolated(self, service, task_dao):
        batch = [remote_container(1), remote_container(2 ** 64), remote_container(2)]

        result = service.apply_remote_changes(batch, sync_time=10)

        assert [f.remote_id for f in result.failures] == [2 ** 64]
        assert sorted(task.remote_id for task in task_dao.query()) == [1, 2]

    def test_oversized_id_on_container_object_is_isolated(self, service, task_dao):
        batch = [TaskContainer(Task(remote_id=2 ** 63)), TaskContainer(Task(remote_id=3))]

        result = service.apply_remote_changes(batch, sync_time=10)

        assert len(result.failures) == 1
        assert [task.remote_id for task in task_dao.query()] == [3]

    def test_unserialisable_values_are_isolated(self, service, task_dao):
        broken = TaskContainer(Task(remote_id=5, values={"due": date(2024, 1, 1)}))
        batch = [broken, TaskContainer(Task(remote_id=6))]

        result = service.apply_remote_changes(batch, sync_time=10)

        assert [f.remote_id for f in result.failures] == [5]
        assert broken.task.id == 0
        assert [task.remote_id for task in task_dao.query()] == [6]

    def test_unserialisable_metadata_payload_rolls_back_the_task(self, service, task_dao):
        item = tag("work")
        item.payload = {"seen": date(2024, 1, 1)}
        batch = [TaskContainer(Task(remote_id=5), [item]), TaskContainer(Task(remote_id=6))]

        result = service.apply_remote_changes(batch, sync_time=10)

        assert len(result.failures) == 1
        assert task_dao.find_id_by_remote_id(5) is None
        assert task_dao.find_id_by_remote_id(6) is not None

    def test_tag_link_without_name_is_malformed(self, service, task_dao):
        batch = [
            {"task": {"remote_id": 4}, "metadata": [{"kind": "tags-tag", "value": ""}]},
            remote_container(5, tags=["ok"]),
        ]

        result = service.apply_remote_changes(batch, sync_time=10)

        assert [f.remote_id for f in result.failures] == [4]
        assert [task.remote_id for task in task_dao.query()] == [5]

    def test_conflicting_identity_is_isolated(self, service, task_dao):
        make_task(task_dao, id=10, remote_id=7)
        make_task(task_dao, id=11, remote_id=8)
        # Bound to task 11 locally but claims task 10's remote id
        clash = TaskContainer(Task(id=11, remote_id=7, title="clash"))

        result = service.apply_remote_changes([clash, remote_container(9)], sync_time=10)

        assert [f.remote_id for f in result.failures] == [7]
        assert task_dao.fetch(11).remote_id == 8
        assert task_dao.find_id_by_remote_id(9) is not None

    def test_failed_new_task_keeps_no_local_id(self, service, monkeypatch):
        def broken_merge(*args, **kwargs):
            raise StorageError("merge failed")

        monkeypatch.setattr(service.merge_engine, "synchronize_metadata", broken_merge)
        container = TaskContainer(Task(remote_id=42))

        result = service.apply_remote_changes([container], sync_time=5)

        assert not result.succeeded
        assert container.task.id == 0
        assert service.task_dao.count() == 0

    def test_remote_metadata_keeps_local_attachments(self, service, task_dao, metadata_dao):
        task = make_task(task_dao, id=10, remote_id=500)
        item = attachment("scan.png")
        item.task = task.id
        metadata_dao.insert(item)

        service.apply_remote_changes([remote_container(500, tags=["a", "b"])], sync_time=10)

        kinds = sorted((m.kind.value, m.value) for m in metadata_dao.query(task.id))
        assert kinds == [("file", "scan.png"), ("tags-tag", "a"), ("tags-tag", "b")]


class TestFinishRound:

    def test_advances_watermark_after_clean_round(self, service, watermark):
        result = service.apply_remote_changes([remote_container(1)], sync_time=1234)

        assert service.finish_round(result, completed_at=1300) is True
        assert watermark.get() == 1300

    def test_default_completion_is_after_round_start(self, service, watermark):
        result = service.apply_remote_changes([remote_container(1)], sync_time=1234)

        assert service.finish_round(result) is True
        assert watermark.get() > 1234

    def test_completion_must_follow_round_start(self, service, watermark):
        result = SyncRoundResult(sync_time=1234)

        with pytest.raises(SyncError):
            service.finish_round(result, completed_at=1234)
        assert watermark.get() == 0

    def test_applied_task_edited_later_is_picked_up(self, service, task_dao, watermark):
        result = service.apply_remote_changes([remote_container(1, modification_date=900)], sync_time=1000)
        service.finish_round(result, completed_at=1100)
        assert service.get_locally_updated() == []

        task = task_dao.fetch(result.applied[0])
        task.modification_date = 1200
        task_dao.save(task)

        assert [t.id for t in service.get_locally_updated()] == [task.id]

    def test_withholds_watermark_after_failures(self, service, watermark):
        watermark.advance(100)
        result = service.apply_remote_changes([remote_container(1), {"task": {}}], sync_time=1234)

        assert service.finish_round(result) is False
        assert watermark.get() == 100

    def test_failed_round_is_retried_by_selector(self, service, task_dao, watermark):
        watermark.advance(100)
        make_task(task_dao, id=10, remote_id=7, modification_date=150, last_sync=90)

        result = service.apply_remote_tags([{"id": 3}])
        service.finish_round(result)

        assert [task.id for task in service.get_locally_updated()] == [10]


class TestTagData:

    def test_creates_tag_when_absent(self, service):
        tag_data = service.save_tag_data({"id": 31, "name": "Errands", "member_count": 2, "color": "red"})

        assert tag_data.id > 0
        assert tag_data.remote_id == 31
        assert tag_data.values == {"color": "red"}

    def test_merges_into_existing_tag_by_name(self, service):
        first = service.save_tag_data({"id": 31, "name": "Errands"})
        second = service.save_tag_data({"id": 31, "name": "errands", "member_count": 5})

        assert second.id == first.id
        assert len(service.tag_data_dao.list_tags()) == 1
        assert service.tag_data_dao.get_tag("ERRANDS").member_count == 5

    def test_tag_without_name_is_malformed(self, service):
        with pytest.raises(MalformedPayloadError):
            service.save_tag_data({"id": 31})

    def test_invalid_numbers_are_malformed_and_not_saved(self, service):
        with pytest.raises(MalformedPayloadError):
            service.save_tag_data({"id": "x", "name": "Broken"})

        assert service.tag_data_dao.get_tag("Broken") is None

    def test_oversized_tag_id_is_malformed(self, service):
        with pytest.raises(MalformedPayloadError):
            service.save_tag_data({"id": 2 ** 64, "name": "Huge"})

        assert service.tag_data_dao.get_tag("Huge") is None

    def test_unserialisable_tag_field_is_isolated(self, service):
        result = service.apply_remote_tags([{"id": 4, "name": "a", "since": date(2024, 1, 1)},
                                            {"id": 5, "name": "b"}])

        assert [f.remote_id for f in result.failures] == [4]
        assert [t.name for t in service.tag_data_dao.list_tags()] == ["b"]

    def test_apply_remote_tags_isolates_failures(self, service):
        result = service.apply_remote_tags([{"name": "a"}, {"id": 9}, {"name": "b"}])

        assert len(result.tags_saved) == 2
        assert [f.remote_id for f in result.failures] == [9]


class TestRecordPush:

    def test_binds_remote_identity(self, service, task_dao, watermark):
        task = make_task(task_dao, id=10, modification_date=50)

        service.record_push(task.id, remote_id=900, synced_at=60)

        stored = task_dao.fetch(task.id)
        assert stored.remote_id == 900
        assert stored.last_sync == 60
        assert service.get_never_synced() == []

    def test_unknown_task_is_a_storage_error(self, service):
        with pytest.raises(StorageError):
            service.record_push(404, remote_id=900, synced_at=60)

    def test_non_positive_remote_id_is_rejected(self, service, task_dao):
        make_task(task_dao, id=10)

        with pytest.raises(MalformedPayloadError):
            service.record_push(10, remote_id=0, synced_at=60)


class TestSyncLifecycle:
    """Unsynced -> Synced -> Dirty -> Synced, then logout."""

    def test_task_moves_through_sync_states(self, service, task_dao, watermark):
        task = make_task(task_dao, id=10, title="draft", modification_date=50)
        assert [t.id for t in service.get_never_synced()] == [10]

        # First push
        service.record_push(task.id, remote_id=700, synced_at=90)
        service.finish_round(SyncRoundResult(sync_time=90), completed_at=100)
        assert service.get_never_synced() == []
        assert service.get_locally_updated() == []

        # Local edit after the round
        task = task_dao.fetch(task.id)
        task.title = "edited"
        task.modification_date = 150
        task_dao.save(task)
        assert [t.id for t in service.get_locally_updated()] == [10]

        # Second push
        service.record_push(task.id, remote_id=700, synced_at=190)
        service.finish_round(SyncRoundResult(sync_time=190), completed_at=200)
        assert service.get_locally_updated() == []

        # Logout
        service.clear_metadata()
        stored = task_dao.fetch(task.id)
        assert stored.remote_id == 0
        assert stored.modification_date == 150
        assert stored.last_sync == 190


class TestCollectOutgoing:

    def test_returns_containers_with_managed_metadata(self, service, task_dao, metadata_dao, watermark):
        watermark.advance(100)
        new_task = make_task(task_dao, id=10)
        dirty = make_task(task_dao, id=11, remote_id=7, modification_date=150, last_sync=90)
        for owner, item in ((new_task, tag("n")), (dirty, tag("d")), (dirty, attachment("local.bin"))):
            item.task = owner.id
            metadata_dao.insert(item)

        created, updated = service.collect_outgoing()

        assert [(c.task.id, [m.value for m in c.metadata]) for c in created] == [(10, ["n"])]
        assert [(c.task.id, [m.value for m in c.metadata]) for c in updated] == [(11, ["d"])]

    def test_status_counts(self, service, task_dao, watermark):
        watermark.advance(100)
        make_task(task_dao, id=1)                     # seed task
        make_task(task_dao, id=10)
        make_task(task_dao, id=11, remote_id=7, modification_date=150, last_sync=90)

        assert service.status() == {
            "last_sync_date": 100,
            "never_synced": 1,
            "locally_updated": 1,
            "tasks": 3,
        }
