"""Builders shared by the test modules."""

from task_sync.core.models import Metadata, MetadataKind, Task
from task_sync.storage import TaskDao

NOTE_PROVIDER = "remote-comment"
SEED_THRESHOLD = 3


def make_task(task_dao: TaskDao, **fields) -> Task:
    """Persist a task built from keyword fields and return it."""
    task = Task(**fields)
    task_dao.save(task)
    return task


def tag(name: str) -> Metadata:
    return Metadata(kind=MetadataKind.TAG, value=name)


def remote_note(title: str, body: str = "") -> Metadata:
    return Metadata(kind=MetadataKind.NOTE, value=title, provider=NOTE_PROVIDER,
                    payload={"body": body})


def local_note(title: str) -> Metadata:
    return Metadata(kind=MetadataKind.NOTE, value=title, provider=None, payload={"body": "mine"})


def attachment(name: str) -> Metadata:
    return Metadata(kind=MetadataKind.ATTACHMENT, value=name, payload={"path": f"/files/{name}"})
