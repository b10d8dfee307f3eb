"""Upload bookkeeping models."""

from dataclasses import dataclass, field
from typing import List, Optional

from cesium.tiler.exceptions import UploadError


@dataclass
class SourceFile:
    """A local file and the storage key it uploads to."""

    path: str
    key: str


@dataclass
class UploadResult:
    """Outcome of uploading one source file."""

    path: str
    key: str
    error: Optional[UploadError] = None

    @property
    def ok(self) -> bool:
        return self.error is None


@dataclass
class UploadReport:
    """Per-file results of uploading a directory.

    Attributes:
        asset_id: Asset the files were uploaded for
        results: One result per regular file, in upload order
        skipped: Directory entries that were not regular files
    """

    asset_id: int
    results: List[UploadResult] = field(default_factory=list)
    skipped: List[str] = field(default_factory=list)

    @property
    def uploaded(self) -> List[UploadResult]:
        return [result for result in self.results if result.ok]

    @property
    def failed(self) -> List[UploadResult]:
        return [result for result in self.results if not result.ok]

    @property
    def ok(self) -> bool:
        return not self.failed

    def summary(self) -> str:
        """One-line summary for logs and the CLI."""
        return (
            f"asset {self.asset_id}: {len(self.uploaded)} uploaded, "
            f"{len(self.failed)} failed, {len(self.skipped)} skipped"
        )
