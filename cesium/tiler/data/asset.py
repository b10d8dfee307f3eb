"""Asset models."""

from dataclasses import dataclass, field
from typing import Optional, Dict, Any

from cesium.tiler.data.enums import (
    AssetStatus,
    AssetType,
    SourceType,
    GeometryCompression,
)
from cesium.tiler.exceptions import ResponseFormatError, ValidationError


@dataclass
class AssetOptions:
    """Tiling options sent with asset creation.

    Example:
        options = AssetOptions(geometry_compression=GeometryCompression.DRACO)
    """

    source_type: SourceType = SourceType.MODEL_3D
    geometry_compression: GeometryCompression = GeometryCompression.NONE

    def to_dict(self) -> Dict[str, str]:
        """Convert to the request body ``options`` object."""
        return {
            "sourceType": SourceType(self.source_type).value,
            "geometryCompression": GeometryCompression(self.geometry_compression).value,
        }


@dataclass
class Asset:
    """Asset metadata returned by /assets APIs.

    Attributes:
        id: Numeric asset identifier
        name: Asset name
        description: Asset description
        type: Declared asset type (e.g. "3DTILES")
        status: Current status, None when the API sent an unknown value
        percent_complete: Tiling progress (0-100)
        bytes: Size of the tiled asset in bytes
        date_added: ISO-8601 creation timestamp
    """

    id: int
    name: Optional[str] = None
    description: Optional[str] = None
    type: Optional[str] = None
    status: Optional[AssetStatus] = None
    percent_complete: Optional[int] = None
    bytes: Optional[int] = None
    date_added: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Asset":
        """Create Asset from API response."""
        if not isinstance(data, dict) or data.get("id") is None:
            raise ResponseFormatError(f"Asset response has no id: {data!r}")

        status = None
        if "status" in data:
            try:
                status = AssetStatus(data["status"])
            except ValueError:
                pass

        try:
            asset_id = int(data["id"])
        except (TypeError, ValueError):
            raise ResponseFormatError(f"Asset id is not an integer: {data['id']!r}")

        return cls(
            id=asset_id,
            name=data.get("name"),
            description=data.get("description"),
            type=data.get("type"),
            status=status,
            percent_complete=data.get("percentComplete"),
            bytes=data.get("bytes"),
            date_added=data.get("dateAdded"),
        )

    def is_complete(self) -> bool:
        """Check if tiling finished successfully."""
        return self.status == AssetStatus.COMPLETE

    def is_failed(self) -> bool:
        """Check if tiling failed."""
        return self.status in (AssetStatus.ERROR, AssetStatus.DATA_ERROR)


@dataclass
class UploadLocation:
    """Temporary S3 credentials for uploading an asset's source files.

    Valid only until the upload is reported complete. ``asset_id`` is set
    once the credentials are bound to the asset they were issued for.
    """

    bucket: str
    access_key: str = field(repr=False)
    secret_access_key: str = field(repr=False)
    session_token: str = field(repr=False)
    prefix: Optional[str] = None
    endpoint: Optional[str] = None
    asset_id: Optional[int] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "UploadLocation":
        """Create UploadLocation from the ``uploadLocation`` response object."""
        if not isinstance(data, dict):
            raise ResponseFormatError(f"uploadLocation is not an object: {data!r}")
        required = ("bucket", "accessKey", "secretAccessKey", "sessionToken")
        missing = [name for name in required if not data.get(name)]
        if missing:
            raise ResponseFormatError(
                f"uploadLocation is missing fields: {', '.join(missing)}"
            )

        return cls(
            bucket=data["bucket"],
            access_key=data["accessKey"],
            secret_access_key=data["secretAccessKey"],
            session_token=data["sessionToken"],
            prefix=data.get("prefix"),
            endpoint=data.get("endpoint"),
        )

    def for_asset(self, asset_id: int) -> "UploadLocation":
        """Bind these credentials to a single asset.

        Raises:
            ValidationError: If already bound to a different asset
        """
        if self.asset_id is not None and self.asset_id != asset_id:
            raise ValidationError(
                f"Upload credentials belong to asset {self.asset_id}, not {asset_id}"
            )
        self.asset_id = asset_id
        return self


@dataclass
class CreatedAsset:
    """Parsed response of asset creation.

    Attributes:
        asset: Metadata of the new asset
        upload_location: Credentials for uploading its source files
        on_complete: Request the API expects once uploading is done
    """

    asset: Asset
    upload_location: UploadLocation
    on_complete: Optional[Dict[str, Any]] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "CreatedAsset":
        """Create CreatedAsset from API response."""
        if not isinstance(data, dict) or "assetMetadata" not in data or "uploadLocation" not in data:
            raise ResponseFormatError(
                "Asset creation response must contain assetMetadata and uploadLocation"
            )

        asset = Asset.from_dict(data["assetMetadata"])
        upload_location = UploadLocation.from_dict(data["uploadLocation"])
        return cls(
            asset=asset,
            upload_location=upload_location.for_asset(asset.id),
            on_complete=data.get("onComplete"),
        )

    @property
    def asset_id(self) -> int:
        return self.asset.id


def build_asset_request(
        name: str,
        description: str,
        options: Optional[AssetOptions] = None,
) -> Dict[str, Any]:
    """Build the request body for asset creation.

    Raises:
        ValidationError: If name is empty
    """
    if not name or not name.strip():
        raise ValidationError("Asset name must not be empty")
    if options is None:
        options = AssetOptions()

    return {
        "name": name,
        "description": description or "",
        "type": AssetType.TILES_3D.value,
        "options": options.to_dict(),
    }
