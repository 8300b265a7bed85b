"""
Google Drive Remote Mirror

Stores each user's table as one CSV file in Google Drive (API v3).

Authentication uses a service account (google-auth); requests go through
an AuthorizedSession, which refreshes the access token as needed. All
HTTP work is blocking, so it runs in a worker thread via asyncio.to_thread.

Error mapping:
- 401 / 403 -> RemoteAuthError (not retried)
- 404       -> RemoteNotFoundError (not retried)
- anything else -> RemoteMirrorError (retried)
"""

import asyncio
import json
import uuid
from typing import Any, Optional

import requests
import structlog
from google.auth.transport.requests import AuthorizedSession
from google.oauth2.service_account import Credentials
from tenacity import (
    retry,
    retry_if_not_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from fintrack.config import GoogleDriveSettings, get_settings
from fintrack.models.sync import RemoteFileInfo
from fintrack.services.remote.interface import (
    CSV_MIME_TYPE,
    RemoteAuthError,
    RemoteMirrorError,
    RemoteMirrorInterface,
    RemoteNotFoundError,
)


logger = structlog.get_logger(__name__)

DRIVE_SCOPES = ["https://www.googleapis.com/auth/drive.file"]
FILE_FIELDS = "id,name,modifiedTime,webViewLink"

_retry_transient = retry(
    stop=stop_after_attempt(3),
    wait=wait_exponential(multiplier=1, min=2, max=10),
    retry=retry_if_not_exception_type((RemoteAuthError, RemoteNotFoundError)),
    reraise=True,
)


def _file_info(data: dict[str, Any]) -> RemoteFileInfo:
    return RemoteFileInfo(
        file_id=data["id"],
        name=data.get("name", ""),
        modified_time=data.get("modifiedTime"),
        web_view_link=data.get("webViewLink"),
    )


def _multipart_body(metadata: dict, content: str, mime_type: str) -> tuple[bytes, str]:
    """Build a multipart/related body: JSON metadata part, then the file."""
    boundary = f"fintrack-{uuid.uuid4().hex}"
    body = (
        f"--{boundary}\r\n"
        "Content-Type: application/json; charset=UTF-8\r\n\r\n"
        f"{json.dumps(metadata)}\r\n"
        f"--{boundary}\r\n"
        f"Content-Type: {mime_type}; charset=UTF-8\r\n\r\n"
        f"{content}\r\n"
        f"--{boundary}--\r\n"
    )
    return body.encode("utf-8"), f"multipart/related; boundary={boundary}"


class GoogleDriveMirror(RemoteMirrorInterface):
    """Google Drive implementation of the remote mirror."""

    def __init__(
        self,
        settings: Optional[GoogleDriveSettings] = None,
        session: Optional[requests.Session] = None,
    ):
        self._settings = settings or get_settings().google_drive
        self._session = session

    def _get_session(self) -> requests.Session:
        if self._session is None:
            try:
                credentials = Credentials.from_service_account_file(
                    self._settings.credentials_path,
                    scopes=DRIVE_SCOPES,
                )
            except FileNotFoundError as e:
                raise RemoteAuthError(
                    f"Google credentials file not found: {self._settings.credentials_path}"
                ) from e
            except ValueError as e:
                raise RemoteAuthError(f"Invalid Google credentials: {e}") from e
            self._session = AuthorizedSession(credentials)
        return self._session

    def _request(self, method: str, url: str, **kwargs) -> requests.Response:
        session = self._get_session()
        try:
            response = session.request(
                method,
                url,
                timeout=self._settings.timeout_seconds,
                **kwargs,
            )
        except requests.RequestException as e:
            raise RemoteMirrorError(f"Drive request failed: {e}") from e

        if response.status_code in (401, 403):
            raise RemoteAuthError(f"Drive refused access ({response.status_code}): {response.text}")
        if response.status_code == 404:
            raise RemoteNotFoundError(f"Drive file not found: {url}")
        if not response.ok:
            raise RemoteMirrorError(
                f"Drive request failed ({response.status_code}): {response.text}"
            )
        return response

    # -------------------------------------------------------------------------
    # Blocking operations
    # -------------------------------------------------------------------------

    def _find_by_name(self, name: str) -> Optional[RemoteFileInfo]:
        escaped = name.replace("\\", "\\\\").replace("'", "\\'")
        response = self._request(
            "GET",
            f"{self._settings.api_base}/files",
            params={
                "q": f"name='{escaped}' and trashed=false",
                "fields": f"files({FILE_FIELDS})",
            },
        )
        files = response.json().get("files") or []
        return _file_info(files[0]) if files else None

    def _upload(
        self,
        name: str,
        content: str,
        existing: Optional[RemoteFileInfo],
    ) -> RemoteFileInfo:
        body, content_type = _multipart_body(
            {"name": name, "mimeType": CSV_MIME_TYPE},
            content,
            CSV_MIME_TYPE,
        )
        params = {"uploadType": "multipart", "fields": FILE_FIELDS}
        headers = {"Content-Type": content_type}

        if existing:
            response = self._request(
                "PATCH",
                f"{self._settings.upload_base}/files/{existing.file_id}",
                params=params,
                headers=headers,
                data=body,
            )
        else:
            response = self._request(
                "POST",
                f"{self._settings.upload_base}/files",
                params=params,
                headers=headers,
                data=body,
            )
        return _file_info(response.json())

    def _download(self, file_id: str) -> str:
        response = self._request(
            "GET",
            f"{self._settings.api_base}/files/{file_id}",
            params={"alt": "media"},
        )
        response.encoding = response.encoding or "utf-8"
        return response.text

    def _get_info(self, file_id: str) -> Optional[RemoteFileInfo]:
        try:
            response = self._request(
                "GET",
                f"{self._settings.api_base}/files/{file_id}",
                params={"fields": FILE_FIELDS},
            )
        except RemoteNotFoundError:
            return None
        return _file_info(response.json())

    # -------------------------------------------------------------------------
    # RemoteMirrorInterface
    # -------------------------------------------------------------------------

    @_retry_transient
    async def find_by_name(self, name: str) -> Optional[RemoteFileInfo]:
        return await asyncio.to_thread(self._find_by_name, name)

    @_retry_transient
    async def upload(
        self,
        name: str,
        content: str,
        existing: Optional[RemoteFileInfo] = None,
    ) -> RemoteFileInfo:
        info = await asyncio.to_thread(self._upload, name, content, existing)
        logger.info("drive_file_uploaded", file_id=info.file_id, created=existing is None)
        return info

    @_retry_transient
    async def download(self, file_id: str) -> str:
        return await asyncio.to_thread(self._download, file_id)

    @_retry_transient
    async def get_info(self, file_id: str) -> Optional[RemoteFileInfo]:
        return await asyncio.to_thread(self._get_info, file_id)
