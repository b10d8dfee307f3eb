"""Upload of source files to the asset's S3 bucket."""
import logging
import os
from typing import Any, List, Optional, Tuple

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from cesium.tiler.config import DEFAULT_REGION
from cesium.tiler.data.asset import UploadLocation
from cesium.tiler.data.upload import SourceFile, UploadReport, UploadResult
from cesium.tiler.exceptions import UploadError
from cesium.tiler.utils import is_regular_file, source_key, validate_directory

logger = logging.getLogger(__name__)


def collect_source_files(directory: str, asset_id: int) -> Tuple[List[SourceFile], List[str]]:
    """List the regular files directly under a directory.

    Subdirectories are not descended into. Entries are returned sorted by
    name so the upload order is deterministic.

    Args:
        directory: Input directory
        asset_id: Asset the files belong to

    Returns:
        (files to upload, paths of skipped entries)

    Raises:
        OSError: If the directory is missing or unreadable
    """
    validate_directory(directory)

    files = []
    skipped = []
    for name in sorted(os.listdir(directory)):
        path = os.path.join(directory, name)
        if is_regular_file(path):
            files.append(SourceFile(path=path, key=source_key(asset_id, name)))
        else:
            skipped.append(path)

    return files, skipped


def create_s3_client(upload_location: UploadLocation, region: str = DEFAULT_REGION):
    """Build an S3 client from an asset's temporary credentials."""
    return boto3.client(
        "s3",
        region_name=region,
        aws_access_key_id=upload_location.access_key,
        aws_secret_access_key=upload_location.secret_access_key,
        aws_session_token=upload_location.session_token,
    )


class SourceUploader:
    """Uploads an asset's source files with its temporary S3 credentials.

    A failed file is recorded in the returned report and the remaining
    files are still uploaded.

    Example:
        uploader = SourceUploader(created.upload_location, region="us-east-1")
        report = uploader.upload_directory("./model", created.asset_id)
        for result in report.failed:
            print(f"{result.path}: {result.error}")
    """

    def __init__(
            self,
            upload_location: UploadLocation,
            region: str = DEFAULT_REGION,
            client: Optional[Any] = None,
    ):
        """Initialize the uploader.

        Args:
            upload_location: Credentials returned by asset creation
            region: AWS region of the bucket
            client: Optional pre-built S3 client, mainly for tests
        """
        self.upload_location = upload_location
        self.region = region
        self._client = client

    def _get_client(self):
        if self._client is None:
            self._client = create_s3_client(self.upload_location, self.region)
        return self._client

    def upload_directory(self, directory: str, asset_id: int) -> UploadReport:
        """Upload every regular file directly under a directory.

        Args:
            directory: Input directory
            asset_id: Asset the credentials were issued for

        Returns:
            UploadReport with one result per file

        Raises:
            ValidationError: If the credentials belong to another asset
            OSError: If the directory is missing or unreadable
        """
        self.upload_location.for_asset(asset_id)

        files, skipped = collect_source_files(directory, asset_id)
        report = UploadReport(asset_id=asset_id, skipped=skipped)

        for path in skipped:
            logger.debug("Skipping %s: not a regular file", path)

        for source in files:
            report.results.append(self.upload_file(source))

        if report.failed:
            logger.warning("Uploads finished with failures: %s", report.summary())
        else:
            logger.info("Uploads finished: %s", report.summary())
        return report

    def upload_file(self, source: SourceFile) -> UploadResult:
        """Upload one file, returning the failure instead of raising it."""
        bucket = self.upload_location.bucket

        try:
            with open(source.path, "rb") as f:
                self._get_client().put_object(Bucket=bucket, Key=source.key, Body=f)
        except (ClientError, BotoCoreError, OSError) as e:
            error = UploadError(
                f"Failed to upload {source.path} to s3://{bucket}/{source.key}: {e}",
                path=source.path,
                key=source.key,
            )
            error.__cause__ = e
            logger.error("%s", error)
            return UploadResult(path=source.path, key=source.key, error=error)

        logger.info("Uploaded %s to s3://%s/%s", source.path, bucket, source.key)
        return UploadResult(path=source.path, key=source.key)
