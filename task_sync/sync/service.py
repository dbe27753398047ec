"""Entry point of the sync core: wires the components and runs sync rounds."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple, Union

from ..core.config import SyncConfig
from ..core.exceptions import ConfigurationError, MalformedPayloadError, StorageError, SyncError
from ..core.models import NO_ID, Metadata, MetadataScope, TagData, Task, TaskContainer, parse_int
from ..storage import Database, MetadataDao, TagDataDao, TaskDao
from ..utils.date import now_millis
from .assembler import RecordAssembler
from .matcher import IdentityMatcher
from .merge import MetadataMergeEngine
from .selector import ChangeSelector
from .watermark import WatermarkStore

# Remote tag fields copied onto TagData directly; anything else lands in values
_TAG_FIELDS = ("id", "name", "member_count")


@dataclass
class RecordFailure:
    """A single remote record that could not be applied."""

    remote_id: Optional[int]
    error: str


@dataclass
class SyncRoundResult:
    """Outcome of applying one batch of remote data.

    sync_time is when the round started; every task applied in the round is
    stamped with it as last_sync.
    """

    sync_time: int
    applied: List[int] = field(default_factory=list)
    created: List[int] = field(default_factory=list)
    tags_saved: List[int] = field(default_factory=list)
    failures: List[RecordFailure] = field(default_factory=list)

    @property
    def succeeded(self) -> bool:
        return not self.failures

    def to_dict(self) -> Dict[str, Any]:
        return {
            "sync_time": self.sync_time,
            "applied": len(self.applied),
            "created": len(self.created),
            "tags_saved": len(self.tags_saved),
            "failures": [{"remote_id": f.remote_id, "error": f.error} for f in self.failures],
        }


def _remote_id_of(payload: Any) -> Optional[int]:
    """Best-effort remote id for failure reports."""
    if isinstance(payload, TaskContainer):
        return payload.task.remote_id
    if isinstance(payload, Mapping):
        task = payload.get("task")
        candidate = task.get("remote_id") if isinstance(task, Mapping) else payload.get("id")
        try:
            return int(candidate) if candidate is not None else None
        except (TypeError, ValueError):
            return None
    return None


class RemoteDataService:
    """Reconciles local tasks with a remote task service.

    All collaborators are passed in; `from_config` is a convenience that
    builds them from a SyncConfig.
    """

    def __init__(self, database: Database, watermark: WatermarkStore,
                 seed_threshold: int, scope: MetadataScope,
                 logger: Optional[logging.Logger] = None):
        self.logger = logger or logging.getLogger(__name__)
        self.db = database
        self.watermark = watermark
        self.scope = scope

        self.task_dao = TaskDao(database, logger=self.logger)
        self.metadata_dao = MetadataDao(database, logger=self.logger)
        self.tag_data_dao = TagDataDao(database, logger=self.logger)

        self.selector = ChangeSelector(self.task_dao, watermark, seed_threshold, logger=self.logger)
        self.matcher = IdentityMatcher(self.task_dao, logger=self.logger)
        self.merge_engine = MetadataMergeEngine(database, self.metadata_dao, logger=self.logger)
        self.assembler = RecordAssembler(
            database, self.task_dao, self.metadata_dao, self.merge_engine, scope, logger=self.logger
        )

    @classmethod
    def from_config(cls, config: SyncConfig, logger: Optional[logging.Logger] = None) -> RemoteDataService:
        if not config.database_path or not config.watermark_path:
            raise ConfigurationError("Storage paths are not configured; call SyncConfig.resolve_paths first")
        return cls(
            Database(config.database_path, logger=logger),
            WatermarkStore(config.watermark_path, logger=logger),
            seed_threshold=config.seed_threshold,
            scope=config.managed_scope,
            logger=logger,
        )

    def close(self) -> None:
        self.db.close()

    # --- task and metadata methods

    def clear_metadata(self) -> int:
        """Forget every task's remote identity. Used when the user logs out.

        Metadata and the watermark are left alone; resetting the watermark
        for a full resync is up to the caller.
        """
        cleared = self.task_dao.update_multiple({"remote_id": 0})
        self.logger.info(f"Cleared remote ids on {cleared} tasks")
        return cleared

    def get_never_synced(self) -> List[Task]:
        return self.selector.get_never_synced()

    def get_locally_updated(self) -> List[Task]:
        return self.selector.get_locally_updated()

    def collect_outgoing(self) -> Tuple[List[TaskContainer], List[TaskContainer]]:
        """Containers to push: (never synced, locally updated)."""
        created = [self.assembler.read_task_and_metadata(row) for row in self.selector.never_synced_rows()]
        updated = [self.assembler.read_task_and_metadata(row) for row in self.selector.locally_updated_rows()]
        return created, updated

    def find_local_match(self, container: TaskContainer) -> bool:
        return self.matcher.find_local_match(container)

    def save_task_and_metadata(self, container: TaskContainer) -> None:
        self.assembler.save_task_and_metadata(container)

    def get_task_notes(self, task_id: int) -> List[Metadata]:
        return self.assembler.get_task_notes(task_id)

    def record_push(self, task_id: int, remote_id: int, synced_at: int) -> None:
        """Store the identity the remote service gave a pushed task."""
        if remote_id <= 0:
            raise MalformedPayloadError(f"Remote id for task {task_id} must be positive, got {remote_id}")
        with self.db.transaction():
            changed = self.task_dao.update_multiple(
                {"remote_id": remote_id, "last_sync": synced_at}, "id = ?", (task_id,)
            )
            if changed == 0:
                raise StorageError(f"Task {task_id} does not exist")
        self.logger.debug(f"Task {task_id} pushed as remote {remote_id}")

    # --- sync rounds

    def apply_remote_changes(self, containers: Iterable[Union[TaskContainer, Mapping[str, Any]]],
                             sync_time: Optional[int] = None,
                             result: Optional[SyncRoundResult] = None) -> SyncRoundResult:
        """Apply remote tasks one by one.

        A malformed or unsavable record is logged and reported in the
        result; it does not stop the rest of the batch.
        """
        if result is None:
            result = SyncRoundResult(sync_time=sync_time if sync_time is not None else now_millis())

        for payload in containers:
            original_id = NO_ID
            container = None
            try:
                container = payload if isinstance(payload, TaskContainer) else TaskContainer.from_dict(payload)
                if container.task.remote_id <= 0:
                    raise MalformedPayloadError("Remote task has no remote id")
                original_id = container.task.id

                matched = self.matcher.find_local_match(container)
                container.task.last_sync = result.sync_time
                self.assembler.save_task_and_metadata(container)
            except (MalformedPayloadError, StorageError) as exc:
                if container is not None:
                    # The insert was rolled back; don't leave a dangling id behind
                    container.task.id = original_id
                remote_id = _remote_id_of(payload)
                self.logger.warning(f"Skipping remote task {remote_id}: {exc}")
                result.failures.append(RecordFailure(remote_id, str(exc)))
                continue

            result.applied.append(container.task.id)
            if not matched:
                result.created.append(container.task.id)

        self.logger.info(
            f"Applied {len(result.applied)} remote tasks "
            f"({len(result.created)} new, {len(result.failures)} failed)"
        )
        return result

    def save_tag_data(self, tag_object: Mapping[str, Any]) -> TagData:
        """Merge a remote tag into the local tag of the same name, creating it if needed."""
        name = tag_object.get("name") if isinstance(tag_object, Mapping) else None
        if not name or not isinstance(name, str):
            raise MalformedPayloadError("Remote tag has no name")

        with self.db.transaction():
            tag_data = self.tag_data_dao.get_tag(name)
            if tag_data is None:
                tag_data = TagData(name=name)
            self._tag_from_json(tag_object, tag_data)
            self.tag_data_dao.save(tag_data)
        return tag_data

    def apply_remote_tags(self, tag_objects: Iterable[Mapping[str, Any]],
                          result: Optional[SyncRoundResult] = None) -> SyncRoundResult:
        if result is None:
            result = SyncRoundResult(sync_time=now_millis())
        for tag_object in tag_objects:
            try:
                tag_data = self.save_tag_data(tag_object)
            except (MalformedPayloadError, StorageError) as exc:
                remote_id = _remote_id_of(tag_object)
                self.logger.warning(f"Skipping remote tag {remote_id}: {exc}")
                result.failures.append(RecordFailure(remote_id, str(exc)))
                continue
            result.tags_saved.append(tag_data.id)
        return result

    def finish_round(self, result: SyncRoundResult, completed_at: Optional[int] = None) -> bool:
        """Advance the watermark if every record in the round was applied.

        The watermark moves to completed_at (default: now), which must be
        later than the round's sync_time so that tasks stamped during the
        round count as synced before the watermark and later edits are
        picked up. A round with failures leaves the watermark where it was
        so the next round sees the same changes again.
        """
        if not result.succeeded:
            self.logger.warning(
                f"Not advancing sync watermark: {len(result.failures)} records failed"
            )
            return False

        if completed_at is None:
            completed_at = max(now_millis(), result.sync_time + 1)
        elif completed_at <= result.sync_time:
            raise SyncError(
                f"Round completion time {completed_at} must be after its start {result.sync_time}"
            )
        self.watermark.advance(completed_at)
        return True

    def status(self) -> Dict[str, int]:
        return {
            "last_sync_date": self.watermark.get(),
            "never_synced": len(self.selector.get_never_synced()),
            "locally_updated": len(self.selector.get_locally_updated()),
            "tasks": self.task_dao.count(),
        }

    @staticmethod
    def _tag_from_json(tag_object: Mapping[str, Any], tag_data: TagData) -> None:
        tag_data.name = tag_object["name"]
        try:
            tag_data.remote_id = parse_int(tag_object, "id")
            tag_data.member_count = parse_int(tag_object, "member_count")
        except MalformedPayloadError as exc:
            raise MalformedPayloadError(f"Invalid remote tag {tag_data.name!r}: {exc}") from exc
        extra = {key: value for key, value in tag_object.items() if key not in _TAG_FIELDS}
        tag_data.values.update(extra)
