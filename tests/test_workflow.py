"""Tests for the tiling workflow.

The API client is a real TilerClient whose endpoint methods are replaced by
recording doubles, so the polling loops and step ordering run for real.
"""

from unittest.mock import MagicMock, patch

import pytest
import requests
from botocore.exceptions import ClientError

from cesium.tiler.client import TilerClient
from cesium.tiler.data.archive import Archive
from cesium.tiler.data.asset import Asset, CreatedAsset
from cesium.tiler.data.enums import ArchiveStatus, AssetStatus
from cesium.tiler.exceptions import (
    ConfigurationError,
    PollTimeoutError,
    ProcessingError,
    RequestError,
)
from cesium.tiler.uploader import SourceUploader
from cesium.tiler.workflow import TilingWorkflow, WorkflowStep, create_3d_tiles

STEPS = [
    WorkflowStep.CREATE_ASSET,
    WorkflowStep.UPLOAD,
    WorkflowStep.NOTIFY,
    WorkflowStep.POLL_ASSET,
    WorkflowStep.CREATE_ARCHIVE,
    WorkflowStep.POLL_ARCHIVE,
    WorkflowStep.DOWNLOAD,
    WorkflowStep.DONE,
]


class FakeApi:
    """Records endpoint calls in order and serves scripted statuses."""

    def __init__(self, asset_payload, asset_statuses=("COMPLETE",), archive_statuses=("COMPLETE",)):
        self.events = []
        self.asset_payload = asset_payload
        self.asset_statuses = list(asset_statuses)
        self.archive_statuses = list(archive_statuses)

    def create_asset(self, name, description, options=None):
        self.events.append(("create_asset", name))
        return CreatedAsset.from_dict(self.asset_payload(42))

    def notify_upload_complete(self, asset_id):
        self.events.append(("notify_upload_complete", asset_id))

    def get_asset(self, asset_id):
        status = self.asset_statuses.pop(0)
        self.events.append(("get_asset", status))
        return Asset(id=asset_id, status=AssetStatus(status))

    def create_archive(self, asset_id):
        self.events.append(("create_archive", asset_id))
        return Archive(id=7, status=ArchiveStatus.IN_PROGRESS, asset_ids=[asset_id])

    def get_archive(self, archive_id):
        status = self.archive_statuses.pop(0)
        self.events.append(("get_archive", status))
        return Archive(id=archive_id, status=ArchiveStatus(status))

    def download_archive(self, archive_id, output_path):
        self.events.append(("download_archive", archive_id))
        with open(output_path, "wb") as f:
            f.write(b"ZIPDATA")
        return output_path

    def install(self, client):
        for name in (
                "create_asset",
                "notify_upload_complete",
                "get_asset",
                "create_archive",
                "get_archive",
                "download_archive",
        ):
            setattr(client, name, MagicMock(side_effect=getattr(self, name)))
        return client

    def names(self):
        return [event[0] for event in self.events]


@pytest.fixture(autouse=True)
def no_sleep():
    with patch("cesium.tiler.client.time.sleep") as mock_sleep:
        yield mock_sleep


@pytest.fixture()
def s3():
    return MagicMock()


def _workflow(client, s3, **kwargs):
    return TilingWorkflow(
        client,
        uploader_factory=lambda location, region: SourceUploader(location, region=region, client=s3),
        **kwargs,
    )


def test_runs_every_step_in_order(config, asset_payload, s3, source_dir, tmp_path):
    api = FakeApi(asset_payload)
    client = api.install(TilerClient(config))
    seen_steps = []
    output = tmp_path / "out.zip"

    result = _workflow(client, s3, on_step=seen_steps.append).run(
        "Test", "Test", str(source_dir), str(output)
    )

    assert result.steps == STEPS
    assert seen_steps == STEPS
    assert api.names() == [
        "create_asset",
        "notify_upload_complete",
        "get_asset",
        "create_archive",
        "get_archive",
        "download_archive",
    ]
    assert result.asset.is_complete()
    assert result.archive.id == 7
    assert output.read_bytes() == b"ZIPDATA"


def test_archive_created_only_after_asset_complete(config, asset_payload, s3, source_dir, tmp_path):
    api = FakeApi(asset_payload, asset_statuses=("AWAITING_FILES", "NOT_STARTED", "IN_PROGRESS", "COMPLETE"))
    client = api.install(TilerClient(config))

    _workflow(client, s3).run("Test", "Test", str(source_dir), str(tmp_path / "out.zip"))

    assert client.get_asset.call_count == 4
    archive_index = api.names().index("create_archive")
    polled = [event for event in api.events[:archive_index] if event[0] == "get_asset"]
    assert polled[-1] == ("get_asset", "COMPLETE")
    assert all(event[0] != "get_asset" for event in api.events[archive_index:])


def test_download_only_after_archive_complete(config, asset_payload, s3, source_dir, tmp_path):
    api = FakeApi(asset_payload, archive_statuses=("IN_PROGRESS", "IN_PROGRESS", "COMPLETE"))
    client = api.install(TilerClient(config))

    _workflow(client, s3).run("Test", "Test", str(source_dir), str(tmp_path / "out.zip"))

    assert client.get_archive.call_count == 3
    assert api.events[-2:] == [("get_archive", "COMPLETE"), ("download_archive", 7)]


def test_upload_failure_still_notifies(config, asset_payload, s3, source_dir, tmp_path):
    s3.put_object.side_effect = [
        ClientError({"Error": {"Code": "AccessDenied", "Message": "denied"}}, "PutObject"),
        None,
    ]
    api = FakeApi(asset_payload)
    client = api.install(TilerClient(config))

    result = _workflow(client, s3).run("Test", "Test", str(source_dir), str(tmp_path / "out.zip"))

    assert s3.put_object.call_count == 2
    assert [r.key for r in result.upload_report.failed] == ["sources/42/a.bin"]
    assert "notify_upload_complete" in api.names()
    assert result.steps[-1] == WorkflowStep.DONE


@pytest.mark.parametrize(
    "method, step, later",
    [
        ("create_asset", WorkflowStep.CREATE_ASSET, "notify_upload_complete"),
        ("notify_upload_complete", WorkflowStep.NOTIFY, "get_asset"),
        ("get_asset", WorkflowStep.POLL_ASSET, "create_archive"),
        ("create_archive", WorkflowStep.CREATE_ARCHIVE, "get_archive"),
        ("get_archive", WorkflowStep.POLL_ARCHIVE, "download_archive"),
        ("download_archive", WorkflowStep.DOWNLOAD, None),
    ],
)
def test_request_error_aborts(config, asset_payload, s3, source_dir, tmp_path, method, step, later):
    api = FakeApi(asset_payload)
    client = api.install(TilerClient(config))
    getattr(client, method).side_effect = RequestError("boom", status_code=503)
    workflow = _workflow(client, s3)

    with pytest.raises(RequestError) as exc_info:
        workflow.run("Test", "Test", str(source_dir), str(tmp_path / "out.zip"))

    assert exc_info.value.status_code == 503
    assert exc_info.value.step == step.value
    assert workflow.failed_step == step
    assert workflow.state == WorkflowStep.FAILED
    if later is not None:
        getattr(client, later).assert_not_called()
    if method == "create_asset":
        s3.put_object.assert_not_called()


def test_processing_error_aborts(config, asset_payload, s3, source_dir, tmp_path):
    api = FakeApi(asset_payload, asset_statuses=("IN_PROGRESS", "DATA_ERROR"))
    client = api.install(TilerClient(config))

    with pytest.raises(ProcessingError) as exc_info:
        _workflow(client, s3).run("Test", "Test", str(source_dir), str(tmp_path / "out.zip"))

    assert exc_info.value.step == "POLL_ASSET"
    client.create_archive.assert_not_called()


def test_poll_limit(config, asset_payload, s3, source_dir, tmp_path):
    api = FakeApi(asset_payload, asset_statuses=["IN_PROGRESS"] * 10)
    client = api.install(TilerClient(config))

    with pytest.raises(PollTimeoutError):
        _workflow(client, s3, max_poll_attempts=3).run(
            "Test", "Test", str(source_dir), str(tmp_path / "out.zip")
        )

    assert client.get_asset.call_count == 3


class TestInputValidation:
    def test_empty_name(self, config, asset_payload, s3, source_dir, tmp_path):
        api = FakeApi(asset_payload)
        client = api.install(TilerClient(config))

        with pytest.raises(ConfigurationError):
            _workflow(client, s3).run("", "Test", str(source_dir), str(tmp_path / "out.zip"))

        assert api.events == []

    def test_missing_input_directory(self, config, asset_payload, s3, tmp_path):
        api = FakeApi(asset_payload)
        client = api.install(TilerClient(config))
        workflow = _workflow(client, s3)

        with pytest.raises(FileNotFoundError):
            workflow.run("Test", "Test", str(tmp_path / "missing"), str(tmp_path / "out.zip"))

        assert api.events == []
        assert workflow.failed_step == WorkflowStep.CREATE_ASSET

    def test_output_parent_missing(self, config, asset_payload, s3, source_dir, tmp_path):
        api = FakeApi(asset_payload)
        client = api.install(TilerClient(config))

        with pytest.raises(FileNotFoundError):
            _workflow(client, s3).run(
                "Test", "Test", str(source_dir), str(tmp_path / "nowhere" / "out.zip")
            )

        assert api.events == []


def test_end_to_end_over_http(config, asset_payload, make_response, tmp_path):
    """Asset 42 and archive 7 complete immediately; the archive bytes are ZIPDATA."""
    input_dir = tmp_path / "input"
    input_dir.mkdir()
    (input_dir / "a.bin").write_bytes(b"A")
    (input_dir / "b.bin").write_bytes(b"B")
    output = tmp_path / "output.zip"

    api = config.api_url
    routes = {
        ("POST", f"{api}/assets"): make_response(200, asset_payload(42)),
        ("POST", f"{api}/assets/42/uploadComplete"): make_response(204),
        ("GET", f"{api}/assets/42"): make_response(200, {"id": 42, "status": "COMPLETE"}),
        ("POST", f"{api}/archives"): make_response(200, {"id": 7, "status": "IN_PROGRESS", "assetIds": [42]}),
        ("GET", f"{api}/archives/7"): make_response(200, {"id": 7, "status": "COMPLETE"}),
        ("GET", f"{api}/archives/7/download"): make_response(
            200, content=b"ZIPDATA", content_type="application/zip"
        ),
    }
    requested = []

    def handle(method, url, **kwargs):
        requested.append((method, url))
        return routes[(method, url)]

    session = requests.Session()
    session.request = MagicMock(side_effect=handle)
    s3 = MagicMock()

    with TilerClient(config, session=session) as client:
        result = _workflow(client, s3).run("Test", "Test", str(input_dir), str(output))

    assert [call.kwargs["Key"] for call in s3.put_object.call_args_list] == [
        "sources/42/a.bin",
        "sources/42/b.bin",
    ]
    assert output.read_bytes() == b"ZIPDATA"
    assert requested == list(routes)
    assert result.upload_report.ok


def test_create_3d_tiles_without_token(monkeypatch, source_dir, tmp_path):
    monkeypatch.delenv("CESIUM_AUTH_TOKEN", raising=False)

    with patch("requests.Session.request") as mock_request:
        with pytest.raises(ConfigurationError):
            create_3d_tiles("Test", "Test", str(source_dir), str(tmp_path / "out.zip"))

    mock_request.assert_not_called()
