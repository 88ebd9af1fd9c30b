"""Persistence — SQLite governance store and the best-effort activity log."""

from bandgov.persistence.activity_log import ActivityLog
from bandgov.persistence.store import GovernanceStore, StoreSession

__all__ = ["ActivityLog", "GovernanceStore", "StoreSession"]
