"""Remote mirror synchronization package."""

from fintrack.sync.manager import SyncManager
from fintrack.sync.session import SyncSession, content_hash

__all__ = ["SyncManager", "SyncSession", "content_hash"]
