"""
Domain models for task-sync.

This module contains the core data structures shared by the storage layer
and the sync components: tasks, their metadata, the transfer container and
the scope rules that decide which metadata the sync process owns.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, FrozenSet, Iterable, List, Mapping, Optional, Tuple

from .exceptions import MalformedPayloadError

NO_ID = 0
"""Sentinel local id for a task that has not been persisted yet."""

DEFAULT_NOTE_PROVIDER = "remote-comment"


# SQLite INTEGER is a signed 64-bit value
MAX_INT = 2 ** 63 - 1
MIN_INT = -(2 ** 63)


def parse_int(data: Mapping[str, Any], key: str, default: int = 0) -> int:
    """Read an integer field, raising MalformedPayloadError if it is not one SQLite can store."""
    value = data.get(key, default)
    if value is None:
        return default
    try:
        number = int(value)
    except (TypeError, ValueError) as exc:
        raise MalformedPayloadError(f"Field '{key}' must be an integer, got {value!r}") from exc
    if not MIN_INT <= number <= MAX_INT:
        raise MalformedPayloadError(f"Field '{key}' is out of range: {number}")
    return number


class MetadataKind(Enum):
    """Kinds of metadata that can be attached to a task."""

    TAG = "tags-tag"
    NOTE = "note"
    ATTACHMENT = "file"
    ALARM = "alarm"

    @classmethod
    def parse(cls, value: Any) -> MetadataKind:
        if isinstance(value, cls):
            return value
        if not value:
            raise MalformedPayloadError("Metadata item is missing its kind")
        try:
            return cls(value)
        except ValueError:
            pass
        # Also accept the enum name ("tag", "NOTE")
        try:
            return cls[str(value).upper()]
        except KeyError:
            raise MalformedPayloadError(f"Unknown metadata kind: {value!r}") from None


@dataclass
class Task:
    """A locally stored task as seen by the sync process.

    Timestamps are epoch milliseconds; 0 means "never".
    """

    id: int = NO_ID
    remote_id: int = 0
    title: str = ""
    modification_date: int = 0
    last_sync: int = 0
    completion_date: int = 0
    deletion_date: int = 0
    values: Dict[str, Any] = field(default_factory=dict)

    @property
    def is_saved(self) -> bool:
        return self.id != NO_ID

    @property
    def is_active(self) -> bool:
        return self.completion_date == 0 and self.deletion_date == 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "remote_id": self.remote_id,
            "title": self.title,
            "modification_date": self.modification_date,
            "last_sync": self.last_sync,
            "completion_date": self.completion_date,
            "deletion_date": self.deletion_date,
            "values": dict(self.values),
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> Task:
        if not isinstance(data, Mapping):
            raise MalformedPayloadError(f"Task payload must be an object, got {type(data).__name__}")
        values = data.get("values") or {}
        if not isinstance(values, Mapping):
            raise MalformedPayloadError("Field 'values' must be an object")
        return cls(
            id=parse_int(data, "id", NO_ID),
            remote_id=parse_int(data, "remote_id"),
            title=str(data.get("title") or ""),
            modification_date=parse_int(data, "modification_date"),
            last_sync=parse_int(data, "last_sync"),
            completion_date=parse_int(data, "completion_date"),
            deletion_date=parse_int(data, "deletion_date"),
            values=dict(values),
        )


@dataclass
class Metadata:
    """A piece of data attached to exactly one task (a tag link, a note...)."""

    kind: MetadataKind
    value: str = ""
    provider: Optional[str] = None
    payload: Dict[str, Any] = field(default_factory=dict)
    created_at: int = 0
    task: int = NO_ID
    id: int = NO_ID

    def to_dict(self) -> Dict[str, Any]:
        # Local ids stay local; only content travels.
        return {
            "kind": self.kind.value,
            "value": self.value,
            "provider": self.provider,
            "payload": dict(self.payload),
            "created_at": self.created_at,
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> Metadata:
        if not isinstance(data, Mapping):
            raise MalformedPayloadError(f"Metadata payload must be an object, got {type(data).__name__}")
        payload = data.get("payload") or {}
        if not isinstance(payload, Mapping):
            raise MalformedPayloadError("Field 'payload' must be an object")
        kind = MetadataKind.parse(data.get("kind"))
        value = str(data.get("value") or "")
        if kind is MetadataKind.TAG and not value.strip():
            raise MalformedPayloadError("Tag metadata has no tag name")
        return cls(
            kind=kind,
            value=value,
            provider=data.get("provider") or None,
            payload=dict(payload),
            created_at=parse_int(data, "created_at"),
        )


@dataclass(frozen=True)
class ScopeRule:
    """Matches metadata of one kind, optionally restricted to one provider."""

    kind: MetadataKind
    provider: Optional[str] = None

    def matches(self, item: Metadata) -> bool:
        if item.kind is not self.kind:
            return False
        return self.provider is None or item.provider == self.provider

    def to_dict(self) -> Dict[str, Optional[str]]:
        return {"kind": self.kind.value, "provider": self.provider}


class MetadataScope:
    """A finite set of scope rules describing which metadata a merge owns.

    An item is in scope when any rule matches it. The empty scope matches
    nothing.
    """

    def __init__(self, rules: Iterable[ScopeRule] = ()):
        self.rules: FrozenSet[ScopeRule] = frozenset(rules)

    @classmethod
    def of_kinds(cls, *kinds: MetadataKind) -> MetadataScope:
        return cls(ScopeRule(kind) for kind in kinds)

    @classmethod
    def sync_managed(cls, note_provider: str = DEFAULT_NOTE_PROVIDER) -> MetadataScope:
        """Tags plus the notes written by the remote service."""
        return cls([ScopeRule(MetadataKind.TAG), ScopeRule(MetadataKind.NOTE, note_provider)])

    @classmethod
    def from_config(cls, entries: Iterable[Mapping[str, Any]]) -> MetadataScope:
        rules = []
        for entry in entries:
            if not isinstance(entry, Mapping):
                raise MalformedPayloadError(f"Scope rule must be an object, got {entry!r}")
            kind = MetadataKind.parse(entry.get("kind"))
            rules.append(ScopeRule(kind, entry.get("provider") or None))
        return cls(rules)

    @property
    def kinds(self) -> FrozenSet[MetadataKind]:
        return frozenset(rule.kind for rule in self.rules)

    def matches(self, item: Metadata) -> bool:
        return any(rule.matches(item) for rule in self.rules)

    def to_sql(self) -> Tuple[str, List[Any]]:
        """Render the scope as a WHERE fragment over the metadata table."""
        if not self.rules:
            return "0", []
        clauses = []
        params: List[Any] = []
        for rule in sorted(self.rules, key=lambda r: (r.kind.value, r.provider or "")):
            if rule.provider is None:
                clauses.append("kind = ?")
                params.append(rule.kind.value)
            else:
                clauses.append("(kind = ? AND provider = ?)")
                params.extend([rule.kind.value, rule.provider])
        return "(" + " OR ".join(clauses) + ")", params

    def to_config(self) -> List[Dict[str, Optional[str]]]:
        return [rule.to_dict() for rule in sorted(self.rules, key=lambda r: (r.kind.value, r.provider or ""))]

    def __eq__(self, other: object) -> bool:
        return isinstance(other, MetadataScope) and self.rules == other.rules

    def __hash__(self) -> int:
        return hash(self.rules)

    def __repr__(self) -> str:
        return f"MetadataScope({self.to_config()!r})"


@dataclass
class TaskContainer:
    """A task bundled with its metadata, used only to move data across the sync boundary."""

    task: Task
    metadata: List[Metadata] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "task": self.task.to_dict(),
            "metadata": [item.to_dict() for item in self.metadata],
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> TaskContainer:
        if not isinstance(data, Mapping) or "task" not in data:
            raise MalformedPayloadError("Container payload is missing 'task'")
        metadata = data.get("metadata") or []
        if not isinstance(metadata, list):
            raise MalformedPayloadError("Field 'metadata' must be a list")
        return cls(
            task=Task.from_dict(data["task"]),
            metadata=[Metadata.from_dict(item) for item in metadata],
        )


@dataclass
class TagData:
    """A tag (label) as known to the tag subsystem."""

    name: str
    id: int = NO_ID
    remote_id: int = 0
    member_count: int = 0
    values: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "remote_id": self.remote_id,
            "name": self.name,
            "member_count": self.member_count,
            "values": dict(self.values),
        }
