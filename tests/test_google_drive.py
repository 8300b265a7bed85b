"""Tests for the Google Drive mirror with the HTTP session faked."""

import asyncio
import warnings
from unittest.mock import MagicMock

import pytest

from fintrack.config import GoogleDriveSettings
from fintrack.models.sync import RemoteFileInfo
from fintrack.services.remote import GoogleDriveMirror, RemoteAuthError, RemoteNotFoundError


FILE = {
    "id": "drive-1",
    "name": "finance_data_a_b.c.csv",
    "modifiedTime": "2026-10-17T10:00:00.000Z",
    "webViewLink": "https://drive.google.com/file/d/drive-1/view",
}


def _response(status=200, payload=None, text=""):
    response = MagicMock()
    response.status_code = status
    response.ok = status < 400
    response.json.return_value = payload or {}
    response.text = text
    response.encoding = "utf-8"
    return response


def _mirror(*responses):
    session = MagicMock()
    session.request.side_effect = list(responses)
    with warnings.catch_warnings():
        warnings.simplefilter("ignore")
        settings = GoogleDriveSettings(credentials_path="/nonexistent/credentials.json")
    return GoogleDriveMirror(settings, session=session), session


class TestGoogleDriveMirror:
    """Tests for GoogleDriveMirror."""

    def test_find_by_name(self):
        mirror, session = _mirror(_response(payload={"files": [FILE]}))

        info = asyncio.run(mirror.find_by_name("finance_data_a_b.c.csv"))

        assert info.file_id == "drive-1"
        assert info.web_view_link.endswith("/view")
        params = session.request.call_args.kwargs["params"]
        assert params["q"] == "name='finance_data_a_b.c.csv' and trashed=false"

    def test_find_by_name_none(self):
        mirror, _ = _mirror(_response(payload={"files": []}))
        assert asyncio.run(mirror.find_by_name("missing.csv")) is None

    def test_upload_creates_then_updates(self):
        mirror, session = _mirror(_response(payload=FILE), _response(payload=FILE))

        created = asyncio.run(mirror.upload(FILE["name"], "id,amount\n", None))
        asyncio.run(mirror.upload(FILE["name"], "id,amount\ntx_1,5\n", created))

        first, second = session.request.call_args_list
        assert first.args[0] == "POST"
        assert second.args[0] == "PATCH"
        assert second.args[1].endswith("/files/drive-1")
        assert b"tx_1,5" in second.kwargs["data"]
        assert second.kwargs["headers"]["Content-Type"].startswith("multipart/related")

    def test_download(self):
        mirror, session = _mirror(_response(text="id,amount\ntx_1,5"))
        assert asyncio.run(mirror.download("drive-1")) == "id,amount\ntx_1,5"
        assert session.request.call_args.kwargs["params"] == {"alt": "media"}

    def test_missing_file_not_retried(self):
        mirror, session = _mirror(_response(status=404))
        with pytest.raises(RemoteNotFoundError):
            asyncio.run(mirror.download("gone"))
        assert session.request.call_count == 1

    def test_auth_failure_not_retried(self):
        mirror, session = _mirror(_response(status=403, text="forbidden"))
        existing = RemoteFileInfo(file_id="drive-1", name=FILE["name"])
        with pytest.raises(RemoteAuthError):
            asyncio.run(mirror.upload(FILE["name"], "x", existing))
        assert session.request.call_count == 1

    def test_get_info_missing_is_none(self):
        mirror, _ = _mirror(_response(status=404))
        assert asyncio.run(mirror.get_info("gone")) is None

    def test_missing_credentials_file(self):
        with warnings.catch_warnings():
            warnings.simplefilter("ignore")
            settings = GoogleDriveSettings(credentials_path="/nonexistent/credentials.json")
        mirror = GoogleDriveMirror(settings)
        with pytest.raises(RemoteAuthError):
            asyncio.run(mirror.download("drive-1"))
