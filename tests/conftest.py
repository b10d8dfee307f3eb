"""Shared pytest fixtures for the Cesium tiler test suite."""

import json
from pathlib import Path
from typing import Any, Optional

import pytest
import requests

from cesium.tiler.config import TilerConfig

# ---------------------------------------------------------------------------
# API payloads
# ---------------------------------------------------------------------------

UPLOAD_LOCATION = {
    "endpoint": "https://s3.amazonaws.com/",
    "bucket": "assets.cesium.com",
    "prefix": "sources/42/",
    "accessKey": "ASIAEXAMPLE",
    "secretAccessKey": "secret-example",
    "sessionToken": "session-example",
}


def created_asset_payload(asset_id: int = 42, status: str = "AWAITING_FILES") -> dict:
    return {
        "assetMetadata": {
            "id": asset_id,
            "type": "3DTILES",
            "name": "Test",
            "description": "Test",
            "bytes": 0,
            "dateAdded": "2026-10-19T10:00:00.000Z",
            "status": status,
            "percentComplete": 0,
        },
        "uploadLocation": dict(UPLOAD_LOCATION, prefix=f"sources/{asset_id}/"),
        "onComplete": {
            "method": "POST",
            "url": f"https://api.cesium.com/v1/assets/{asset_id}/uploadComplete",
            "fields": {},
        },
    }


def _make_response(
        status_code: int = 200,
        payload: Any = None,
        content: Optional[bytes] = None,
        content_type: Optional[str] = None,
) -> requests.Response:
    """Build a fully-read requests.Response."""
    response = requests.Response()
    response.status_code = status_code
    if payload is not None:
        response._content = json.dumps(payload).encode("utf-8")
        response.headers["Content-Type"] = content_type or "application/json"
    else:
        response._content = content or b""
        if content_type:
            response.headers["Content-Type"] = content_type
    response._content_consumed = True
    return response


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture()
def config() -> TilerConfig:
    """Configuration with a dummy token and no poll delay."""
    return TilerConfig(token="test-token", poll_interval=0)


@pytest.fixture()
def make_response():
    """Factory for canned HTTP responses."""
    return _make_response


@pytest.fixture()
def asset_payload():
    """Factory for asset creation responses."""
    return created_asset_payload


@pytest.fixture()
def source_dir(tmp_path: Path) -> Path:
    """Directory with two model files and one subdirectory."""
    directory = tmp_path / "model"
    directory.mkdir()
    (directory / "a.bin").write_bytes(b"AAAA")
    (directory / "b.bin").write_bytes(b"BBBB")
    (directory / "textures").mkdir()
    return directory
