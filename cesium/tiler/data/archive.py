"""Archive model."""

from dataclasses import dataclass, field
from typing import List, Optional, Dict, Any

from cesium.tiler.data.enums import ArchiveStatus, ArchiveFormat, ArchiveType
from cesium.tiler.exceptions import ResponseFormatError


@dataclass
class Archive:
    """Archive information returned by /archives APIs.

    Attributes:
        id: Numeric archive identifier
        status: Current status, None when the API sent an unknown value
        asset_ids: Assets packaged into this archive
        format: Archive format (e.g. "ZIP")
        type: Archive type (e.g. "FULL")
        bytes_archived: Bytes written to the archive so far
    """

    id: int
    status: Optional[ArchiveStatus] = None
    asset_ids: List[int] = field(default_factory=list)
    format: Optional[str] = None
    type: Optional[str] = None
    bytes_archived: Optional[int] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Archive":
        """Create Archive from API response."""
        if not isinstance(data, dict) or data.get("id") is None:
            raise ResponseFormatError(f"Archive response has no id: {data!r}")

        status = None
        if "status" in data:
            try:
                status = ArchiveStatus(data["status"])
            except ValueError:
                pass

        try:
            archive_id = int(data["id"])
            asset_ids = [int(asset_id) for asset_id in data.get("assetIds") or []]
        except (TypeError, ValueError):
            raise ResponseFormatError(f"Archive ids are not integers: {data!r}")

        return cls(
            id=archive_id,
            status=status,
            asset_ids=asset_ids,
            format=data.get("format"),
            type=data.get("type"),
            bytes_archived=data.get("bytesArchived"),
        )

    @property
    def source_asset_id(self) -> Optional[int]:
        """The first asset packaged into this archive."""
        return self.asset_ids[0] if self.asset_ids else None

    def is_complete(self) -> bool:
        """Check if the archive is ready to download."""
        return self.status == ArchiveStatus.COMPLETE

    def is_failed(self) -> bool:
        """Check if archiving failed."""
        return self.status == ArchiveStatus.ERROR


def build_archive_request(asset_id: int) -> Dict[str, Any]:
    """Build the request body for archive creation."""
    return {
        "assetIds": [asset_id],
        "format": ArchiveFormat.ZIP.value,
        "type": ArchiveType.FULL.value,
    }
