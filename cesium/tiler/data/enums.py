"""Enumerations for the Cesium ion API."""

from enum import Enum


class AssetStatus(str, Enum):
    """Status enumeration for assets.

    Attributes:
        AWAITING_FILES: Asset created, source files not yet uploaded
        NOT_STARTED: Upload complete, tiling queued
        IN_PROGRESS: Tiling is running
        COMPLETE: Tiling finished successfully
        DATA_ERROR: Tiling failed because of the source data
        ERROR: Tiling failed
    """

    AWAITING_FILES = "AWAITING_FILES"
    NOT_STARTED = "NOT_STARTED"
    IN_PROGRESS = "IN_PROGRESS"
    COMPLETE = "COMPLETE"
    DATA_ERROR = "DATA_ERROR"
    ERROR = "ERROR"


class ArchiveStatus(str, Enum):
    """Status enumeration for archives."""

    IN_PROGRESS = "IN_PROGRESS"
    COMPLETE = "COMPLETE"
    ERROR = "ERROR"


class AssetType(str, Enum):
    TILES_3D = "3DTILES"


class SourceType(str, Enum):
    MODEL_3D = "3D_MODEL"
    CITYGML = "CITYGML"
    KML = "KML"
    POINT_CLOUD = "POINT_CLOUD"
    PHOTOGRAMMETRY_IMAGES = "PHOTOGRAMMETRY_IMAGES"
    BIM_CAD = "BIM_CAD"


class GeometryCompression(str, Enum):
    NONE = "NONE"
    DRACO = "DRACO"


class ArchiveFormat(str, Enum):
    ZIP = "ZIP"


class ArchiveType(str, Enum):
    FULL = "FULL"
