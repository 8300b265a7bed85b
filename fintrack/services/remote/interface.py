"""
Remote Mirror Interface

DESIGN DECISION: The remote mirror is an opaque file store. The sync loop
needs exactly four things from it: find a file by name, upload (create or
replace in place), download, and read file metadata. No versioning and no
merging - the last upload wins.
"""

from abc import ABC, abstractmethod
from typing import Optional

from fintrack.models.sync import RemoteFileInfo


CSV_MIME_TYPE = "text/csv"


class RemoteMirrorInterface(ABC):
    """Abstract interface for the remote copy of a user's table."""

    @abstractmethod
    async def find_by_name(self, name: str) -> Optional[RemoteFileInfo]:
        """
        Look up a file by exact name.

        Returns:
            The first match, or None
        """
        pass

    @abstractmethod
    async def upload(
        self,
        name: str,
        content: str,
        existing: Optional[RemoteFileInfo] = None,
    ) -> RemoteFileInfo:
        """
        Create a file, or replace the content of `existing` in place.

        Returns:
            Reference and metadata of the written file

        Raises:
            RemoteNotFoundError: If `existing` no longer exists
            RemoteMirrorError: On any other failure
        """
        pass

    @abstractmethod
    async def download(self, file_id: str) -> str:
        """
        Read a file's content.

        Raises:
            RemoteNotFoundError: If the file does not exist
        """
        pass

    @abstractmethod
    async def get_info(self, file_id: str) -> Optional[RemoteFileInfo]:
        """File metadata, or None if the file does not exist."""
        pass


class RemoteMirrorError(Exception):
    """Base exception for remote mirror operations."""
    pass


class RemoteNotFoundError(RemoteMirrorError):
    """Remote file does not exist."""
    pass


class RemoteAuthError(RemoteMirrorError):
    """Credentials missing, invalid, or lacking permission."""
    pass
