"""
Sync Models

State of the remote mirror as shown to the user, and the reference to
the remote file that is kept in the local store.
"""

from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class SyncStatus(str, Enum):
    """Sync state machine states."""
    IDLE = "idle"
    SYNCING = "syncing"
    SUCCESS = "success"
    ERROR = "error"


class RemoteFileInfo(BaseModel):
    """A file in the remote mirror."""

    file_id: str = Field(
        ...,
        min_length=1,
        description="Provider file identifier"
    )
    name: str
    modified_time: Optional[str] = Field(
        default=None,
        description="Provider-reported modification time (ISO)"
    )
    web_view_link: Optional[str] = None


class SyncState(BaseModel):
    """
    Read-only snapshot of the sync loop for display.

    A new snapshot is produced after every push or pull.
    """
    model_config = ConfigDict(frozen=True)

    status: SyncStatus = SyncStatus.IDLE
    last_sync_time: Optional[str] = None
    error: Optional[str] = None
    remote_file_id: Optional[str] = None
    web_view_link: Optional[str] = None
