"""End-to-end workflow: source files in, 3D Tiles archive out.

The workflow runs a fixed sequence of steps::

    CREATE_ASSET -> UPLOAD -> NOTIFY -> POLL_ASSET
        -> CREATE_ARCHIVE -> POLL_ARCHIVE -> DOWNLOAD -> DONE

Any error ends the run in FAILED and is re-raised with ``step`` set to the
step that was running. Failed uploads of individual files are the exception:
they are collected in the upload report and the run continues.
"""

import asyncio
import logging
import threading
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, List, Optional

from cesium.tiler.async_client import AsyncTilerClient
from cesium.tiler.client import TilerClient
from cesium.tiler.config import TilerConfig
from cesium.tiler.data.archive import Archive
from cesium.tiler.data.asset import Asset, AssetOptions, UploadLocation
from cesium.tiler.data.upload import UploadReport
from cesium.tiler.exceptions import ConfigurationError, TilerError
from cesium.tiler.uploader import SourceUploader
from cesium.tiler.utils import validate_directory, validate_output_path

logger = logging.getLogger(__name__)


class WorkflowStep(str, Enum):
    """Steps of the tiling workflow."""

    CREATE_ASSET = "CREATE_ASSET"
    UPLOAD = "UPLOAD"
    NOTIFY = "NOTIFY"
    POLL_ASSET = "POLL_ASSET"
    CREATE_ARCHIVE = "CREATE_ARCHIVE"
    POLL_ARCHIVE = "POLL_ARCHIVE"
    DOWNLOAD = "DOWNLOAD"
    DONE = "DONE"
    FAILED = "FAILED"


@dataclass
class WorkflowResult:
    """Outcome of a workflow run.

    Attributes:
        output_path: Where the archive was written
        asset: Last known state of the asset
        archive: Last known state of the archive
        upload_report: Per-file upload results
        steps: Steps entered, in order
    """

    output_path: str
    asset: Optional[Asset] = None
    archive: Optional[Archive] = None
    upload_report: Optional[UploadReport] = None
    steps: List[WorkflowStep] = field(default_factory=list)


UploaderFactory = Callable[[UploadLocation, str], SourceUploader]


def _default_uploader(upload_location: UploadLocation, region: str) -> SourceUploader:
    return SourceUploader(upload_location, region=region)


class _WorkflowBase:
    def __init__(
            self,
            options: Optional[AssetOptions] = None,
            uploader_factory: Optional[UploaderFactory] = None,
            poll_interval: Optional[float] = None,
            poll_timeout: Optional[float] = None,
            max_poll_attempts: Optional[int] = None,
            on_step: Optional[Callable[[WorkflowStep], None]] = None,
    ):
        self.options = options
        self.uploader_factory = uploader_factory or _default_uploader
        self.poll_interval = poll_interval
        self.poll_timeout = poll_timeout
        self.max_poll_attempts = max_poll_attempts
        self.on_step = on_step
        self.state: Optional[WorkflowStep] = None
        self.failed_step: Optional[WorkflowStep] = None

    def _enter(self, step: WorkflowStep, result: WorkflowResult) -> None:
        self.state = step
        result.steps.append(step)
        logger.info("Workflow step: %s", step.value)
        if self.on_step:
            self.on_step(step)

    def _fail(self, error: Exception, result: WorkflowResult) -> None:
        self.failed_step = self.state
        if isinstance(error, TilerError) and error.step is None:
            error.step = self.failed_step.value
        logger.error(
            "Workflow failed at %s: %s: %s",
            self.failed_step.value, type(error).__name__, error,
        )
        self._enter(WorkflowStep.FAILED, result)

    @staticmethod
    def _validate_inputs(name: str, input_dir: str, output_path: str) -> None:
        if not name or not name.strip():
            raise ConfigurationError("Asset name is required", key="name")
        if not input_dir:
            raise ConfigurationError("Input directory is required", key="input_dir")
        if not output_path:
            raise ConfigurationError("Output path is required", key="output_path")
        validate_directory(input_dir)
        validate_output_path(output_path)

    def _log_upload_report(self, report: UploadReport) -> None:
        for failure in report.failed:
            logger.warning("Continuing without %s: %s", failure.path, failure.error)


class TilingWorkflow(_WorkflowBase):
    """Runs the tiling workflow with the synchronous client.

    Example:
        config = TilerConfig.from_env()
        with TilerClient(config) as client:
            workflow = TilingWorkflow(client, poll_interval=10)
            result = workflow.run("Building", "Scan", "./model", "building.zip")
            print(result.upload_report.summary())
    """

    def __init__(
            self,
            client: TilerClient,
            options: Optional[AssetOptions] = None,
            uploader_factory: Optional[UploaderFactory] = None,
            poll_interval: Optional[float] = None,
            poll_timeout: Optional[float] = None,
            max_poll_attempts: Optional[int] = None,
            cancel_event: Optional[threading.Event] = None,
            on_step: Optional[Callable[[WorkflowStep], None]] = None,
    ):
        """Initialize the workflow.

        Args:
            client: API client
            options: Tiling options for the new asset
            uploader_factory: Builds the uploader from the asset's credentials
                and the configured region
            poll_interval: Seconds between status polls (default: from config)
            poll_timeout: Maximum seconds per poll loop (default: from config)
            max_poll_attempts: Maximum status requests per poll loop
            cancel_event: Event that aborts a running poll loop when set
            on_step: Called with each step as it is entered
        """
        super().__init__(
            options=options,
            uploader_factory=uploader_factory,
            poll_interval=poll_interval,
            poll_timeout=poll_timeout,
            max_poll_attempts=max_poll_attempts,
            on_step=on_step,
        )
        self.client = client
        self.cancel_event = cancel_event

    def run(
            self,
            name: str,
            description: str,
            input_dir: str,
            output_path: str,
    ) -> WorkflowResult:
        """Turn the files in input_dir into a 3D Tiles archive at output_path.

        Args:
            name: Asset name
            description: Asset description
            input_dir: Directory whose regular files are the tiling sources
            output_path: File the downloaded archive is written to

        Returns:
            WorkflowResult

        Raises:
            ConfigurationError: If a required argument is missing
            OSError: If input_dir is unusable or output_path cannot be written
            RequestError: If an API call fails
            ProcessingError: If tiling or archiving fails remotely
            PollTimeoutError: If a poll limit is exceeded
        """
        result = WorkflowResult(output_path=output_path)
        poll_kwargs = {
            "poll_interval": self.poll_interval,
            "timeout": self.poll_timeout,
            "max_attempts": self.max_poll_attempts,
            "cancel_event": self.cancel_event,
        }

        try:
            self._enter(WorkflowStep.CREATE_ASSET, result)
            self._validate_inputs(name, input_dir, output_path)
            created = self.client.create_asset(name, description, self.options)
            asset_id = created.asset_id
            result.asset = created.asset

            self._enter(WorkflowStep.UPLOAD, result)
            uploader = self.uploader_factory(created.upload_location, self.client.config.region)
            result.upload_report = uploader.upload_directory(input_dir, asset_id)
            self._log_upload_report(result.upload_report)
            # upload credentials are not needed past this point
            created = uploader = None

            self._enter(WorkflowStep.NOTIFY, result)
            self.client.notify_upload_complete(asset_id)

            self._enter(WorkflowStep.POLL_ASSET, result)
            result.asset = self.client.wait_for_asset(asset_id, **poll_kwargs)

            self._enter(WorkflowStep.CREATE_ARCHIVE, result)
            result.archive = self.client.create_archive(result.asset.id)

            self._enter(WorkflowStep.POLL_ARCHIVE, result)
            result.archive = self.client.wait_for_archive(result.archive.id, **poll_kwargs)

            self._enter(WorkflowStep.DOWNLOAD, result)
            self.client.download_archive(result.archive.id, output_path)
        except Exception as e:
            self._fail(e, result)
            raise

        self._enter(WorkflowStep.DONE, result)
        return result


class AsyncTilingWorkflow(_WorkflowBase):
    """Runs the tiling workflow with the asynchronous client.

    Steps still run one after another; uploads run in a worker thread so the
    event loop is not blocked. Cancel the awaiting task to stop a poll loop.
    """

    def __init__(
            self,
            client: AsyncTilerClient,
            options: Optional[AssetOptions] = None,
            uploader_factory: Optional[UploaderFactory] = None,
            poll_interval: Optional[float] = None,
            poll_timeout: Optional[float] = None,
            max_poll_attempts: Optional[int] = None,
            on_step: Optional[Callable[[WorkflowStep], None]] = None,
    ):
        super().__init__(
            options=options,
            uploader_factory=uploader_factory,
            poll_interval=poll_interval,
            poll_timeout=poll_timeout,
            max_poll_attempts=max_poll_attempts,
            on_step=on_step,
        )
        self.client = client

    async def run(
            self,
            name: str,
            description: str,
            input_dir: str,
            output_path: str,
    ) -> WorkflowResult:
        """Async version of TilingWorkflow.run()."""
        result = WorkflowResult(output_path=output_path)
        poll_kwargs = {
            "poll_interval": self.poll_interval,
            "timeout": self.poll_timeout,
            "max_attempts": self.max_poll_attempts,
        }

        try:
            self._enter(WorkflowStep.CREATE_ASSET, result)
            self._validate_inputs(name, input_dir, output_path)
            created = await self.client.create_asset(name, description, self.options)
            asset_id = created.asset_id
            result.asset = created.asset

            self._enter(WorkflowStep.UPLOAD, result)
            uploader = self.uploader_factory(created.upload_location, self.client.config.region)
            result.upload_report = await asyncio.to_thread(
                uploader.upload_directory, input_dir, asset_id
            )
            self._log_upload_report(result.upload_report)
            # upload credentials are not needed past this point
            created = uploader = None

            self._enter(WorkflowStep.NOTIFY, result)
            await self.client.notify_upload_complete(asset_id)

            self._enter(WorkflowStep.POLL_ASSET, result)
            result.asset = await self.client.wait_for_asset(asset_id, **poll_kwargs)

            self._enter(WorkflowStep.CREATE_ARCHIVE, result)
            result.archive = await self.client.create_archive(result.asset.id)

            self._enter(WorkflowStep.POLL_ARCHIVE, result)
            result.archive = await self.client.wait_for_archive(result.archive.id, **poll_kwargs)

            self._enter(WorkflowStep.DOWNLOAD, result)
            await self.client.download_archive(result.archive.id, output_path)
        except Exception as e:
            self._fail(e, result)
            raise

        self._enter(WorkflowStep.DONE, result)
        return result


def create_3d_tiles(
        name: str,
        description: str,
        input_dir: str,
        output_path: str,
        config: Optional[TilerConfig] = None,
        options: Optional[AssetOptions] = None,
) -> WorkflowResult:
    """Run the whole workflow with a client built from config (or the environment).

    Example:
        result = create_3d_tiles("Test", "Test", "/tmp/model", "/tmp/output.zip")
    """
    if config is None:
        config = TilerConfig.from_env()

    with TilerClient(config) as client:
        return TilingWorkflow(client, options=options).run(
            name, description, input_dir, output_path
        )
