"""Cesium ion 3D Tiles Python client.

This module provides synchronous and asynchronous clients for the asset and
archive endpoints of the Cesium ion REST API, an S3 uploader for asset source
files, and a workflow that chains them into a single run.
"""

from cesium.tiler.client import TilerClient
from cesium.tiler.async_client import AsyncTilerClient
from cesium.tiler.config import TilerConfig
from cesium.tiler.uploader import SourceUploader, collect_source_files
from cesium.tiler.workflow import (
    AsyncTilingWorkflow,
    TilingWorkflow,
    WorkflowResult,
    WorkflowStep,
    create_3d_tiles,
)
from cesium.tiler.data.enums import (
    AssetStatus,
    ArchiveStatus,
    SourceType,
    GeometryCompression,
)
from cesium.tiler.data.asset import Asset, AssetOptions, CreatedAsset, UploadLocation
from cesium.tiler.data.archive import Archive
from cesium.tiler.data.upload import SourceFile, UploadResult, UploadReport
from cesium.tiler.exceptions import (
    TilerError,
    ConfigurationError,
    RequestError,
    ResponseFormatError,
    UploadError,
    ProcessingError,
    PollTimeoutError,
    PollCancelledError,
    ValidationError,
)

__version__ = "1.0.0"

__all__ = [
    # Clients
    "TilerClient",
    "AsyncTilerClient",
    "TilerConfig",
    "SourceUploader",
    "collect_source_files",
    # Workflow
    "TilingWorkflow",
    "AsyncTilingWorkflow",
    "WorkflowResult",
    "WorkflowStep",
    "create_3d_tiles",
    # Models
    "AssetStatus",
    "ArchiveStatus",
    "SourceType",
    "GeometryCompression",
    "Asset",
    "AssetOptions",
    "CreatedAsset",
    "UploadLocation",
    "Archive",
    "SourceFile",
    "UploadResult",
    "UploadReport",
    # Exceptions
    "TilerError",
    "ConfigurationError",
    "RequestError",
    "ResponseFormatError",
    "UploadError",
    "ProcessingError",
    "PollTimeoutError",
    "PollCancelledError",
    "ValidationError",
]
