"""Activity log entry — one immutable line of a band's audit trail.

Entries narrate "who did what to what, and what changed":
``action`` is imperative ("vote"), ``action_past`` is narrated
("voted 'approve' on"), and ``context`` holds action-specific detail
(a vote and comment, a field diff, a tally breakdown).
"""

from __future__ import annotations

import hashlib
import json
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Optional


TIMESTAMP_FORMAT = "%Y-%m-%dT%H:%M:%S.%fZ"


def format_timestamp(value: datetime) -> str:
    """Render *value* in the log's UTC text form. Naive values are taken as UTC."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).strftime(TIMESTAMP_FORMAT)


@dataclass(frozen=True)
class ActivityLogEntry:
    """A single immutable activity log entry.

    ``entry_hash`` is the SHA-256 of the canonical JSON of every other
    field, computed at creation. A stored entry whose hash no longer
    matches has been altered.
    """
    entry_id: str
    band_id: str
    actor_id: str
    actor_type: str
    action: str
    action_past: str
    entity_type: str
    timestamp_utc: str
    entity_id: Optional[str] = None
    entity_name: Optional[str] = None
    context: Optional[dict[str, Any]] = None
    entry_hash: str = ""

    @staticmethod
    def create(
        entry_id: str,
        band_id: str,
        actor_id: str,
        action: str,
        action_past: str,
        entity_type: str,
        entity_id: Optional[str] = None,
        entity_name: Optional[str] = None,
        context: Optional[dict[str, Any]] = None,
        actor_type: str = "member",
        timestamp_utc: Optional[datetime] = None,
    ) -> ActivityLogEntry:
        """Create a new entry with computed hash."""
        ts = timestamp_utc or datetime.now(timezone.utc)
        ts_str = format_timestamp(ts)
        fields_ = {
            "entry_id": entry_id,
            "band_id": band_id,
            "actor_id": actor_id,
            "actor_type": actor_type,
            "action": action,
            "action_past": action_past,
            "entity_type": entity_type,
            "entity_id": entity_id,
            "entity_name": entity_name,
            "context": context,
            "timestamp_utc": ts_str,
        }
        return ActivityLogEntry(**fields_, entry_hash=compute_entry_hash(fields_))

    def canonical_fields(self) -> dict[str, Any]:
        return {
            "entry_id": self.entry_id,
            "band_id": self.band_id,
            "actor_id": self.actor_id,
            "actor_type": self.actor_type,
            "action": self.action,
            "action_past": self.action_past,
            "entity_type": self.entity_type,
            "entity_id": self.entity_id,
            "entity_name": self.entity_name,
            "context": self.context,
            "timestamp_utc": self.timestamp_utc,
        }

    def to_dict(self) -> dict[str, Any]:
        return {**self.canonical_fields(), "entry_hash": self.entry_hash}

    @property
    def timestamp(self) -> datetime:
        return datetime.strptime(self.timestamp_utc, TIMESTAMP_FORMAT).replace(
            tzinfo=timezone.utc
        )


def compute_entry_hash(fields_: dict[str, Any]) -> str:
    canonical = json.dumps(
        fields_, sort_keys=True, ensure_ascii=False, default=str,
    ).encode("utf-8")
    return f"sha256:{hashlib.sha256(canonical).hexdigest()}"


@dataclass(frozen=True)
class ActivityFilter:
    """Query filter for a band's activity log. All fields optional."""
    entity_type: Optional[str] = None
    actor_id: Optional[str] = None
    start_utc: Optional[datetime] = None
    end_utc: Optional[datetime] = None


@dataclass(frozen=True)
class ActivityPage:
    """One page of activity entries, newest first."""
    entries: list[ActivityLogEntry] = field(default_factory=list)
    total: int = 0
    limit: int = 50
    offset: int = 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "entries": [e.to_dict() for e in self.entries],
            "total": self.total,
            "limit": self.limit,
            "offset": self.offset,
        }
