"""Data models for the Cesium ion API."""

from cesium.tiler.data.enums import (
    AssetStatus,
    ArchiveStatus,
    AssetType,
    SourceType,
    GeometryCompression,
    ArchiveFormat,
    ArchiveType,
)
from cesium.tiler.data.asset import Asset, AssetOptions, CreatedAsset, UploadLocation
from cesium.tiler.data.archive import Archive
from cesium.tiler.data.upload import SourceFile, UploadResult, UploadReport

__all__ = [
    "AssetStatus",
    "ArchiveStatus",
    "AssetType",
    "SourceType",
    "GeometryCompression",
    "ArchiveFormat",
    "ArchiveType",
    "Asset",
    "AssetOptions",
    "CreatedAsset",
    "UploadLocation",
    "Archive",
    "SourceFile",
    "UploadResult",
    "UploadReport",
]
