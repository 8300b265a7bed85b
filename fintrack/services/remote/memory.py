"""
In-Memory Remote Mirror

Dict-backed stand-in for Google Drive, used in tests and offline runs.
fail_next() makes the next N calls raise, to exercise sync error paths.
"""

from datetime import datetime, timezone
from typing import Optional

from fintrack.models.sync import RemoteFileInfo
from fintrack.services.remote.interface import (
    RemoteMirrorError,
    RemoteMirrorInterface,
    RemoteNotFoundError,
)


class InMemoryRemoteMirror(RemoteMirrorInterface):
    """Remote mirror held in a dict of file_id -> (info, content)."""

    def __init__(self):
        self._files: dict[str, tuple[RemoteFileInfo, str]] = {}
        self._next_id = 1
        self._failures_left = 0
        self._failure: Optional[Exception] = None
        self.upload_count = 0
        self.download_count = 0

    def fail_next(self, count: int = 1, error: Optional[Exception] = None) -> None:
        """Make the next `count` calls raise `error` (RemoteMirrorError by default)."""
        self._failures_left = count
        self._failure = error

    def _maybe_fail(self) -> None:
        if self._failures_left > 0:
            self._failures_left -= 1
            raise self._failure or RemoteMirrorError("Simulated remote failure")

    def content_of(self, file_id: str) -> Optional[str]:
        stored = self._files.get(file_id)
        return stored[1] if stored else None

    def put_file(self, name: str, content: str) -> RemoteFileInfo:
        """Seed a file directly, as if another device had uploaded it."""
        info = self._make_info(name)
        self._files[info.file_id] = (info, content)
        return info

    def _make_info(self, name: str, file_id: Optional[str] = None) -> RemoteFileInfo:
        if file_id is None:
            file_id = f"file-{self._next_id}"
            self._next_id += 1
        return RemoteFileInfo(
            file_id=file_id,
            name=name,
            modified_time=datetime.now(timezone.utc).isoformat(),
            web_view_link=f"memory://{file_id}",
        )

    async def find_by_name(self, name: str) -> Optional[RemoteFileInfo]:
        self._maybe_fail()
        for info, _ in self._files.values():
            if info.name == name:
                return info
        return None

    async def upload(
        self,
        name: str,
        content: str,
        existing: Optional[RemoteFileInfo] = None,
    ) -> RemoteFileInfo:
        self._maybe_fail()
        if existing and existing.file_id not in self._files:
            raise RemoteNotFoundError(f"No file {existing.file_id}")
        info = self._make_info(name, existing.file_id if existing else None)
        self._files[info.file_id] = (info, content)
        self.upload_count += 1
        return info

    async def download(self, file_id: str) -> str:
        self._maybe_fail()
        if file_id not in self._files:
            raise RemoteNotFoundError(f"No file {file_id}")
        self.download_count += 1
        return self._files[file_id][1]

    async def get_info(self, file_id: str) -> Optional[RemoteFileInfo]:
        self._maybe_fail()
        stored = self._files.get(file_id)
        return stored[0] if stored else None
