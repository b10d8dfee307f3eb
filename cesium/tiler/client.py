"""Synchronous client for the Cesium ion REST API."""
import logging
import os
import threading
import time
from typing import Any, Callable, Dict, Iterator, Optional, Union

import requests

from cesium.tiler.config import TilerConfig
from cesium.tiler.data.archive import Archive, build_archive_request
from cesium.tiler.data.asset import Asset, AssetOptions, CreatedAsset, build_asset_request
from cesium.tiler.data.enums import ArchiveStatus, AssetStatus
from cesium.tiler.exceptions import (
    PollCancelledError,
    PollTimeoutError,
    ProcessingError,
    RequestError,
    ResponseFormatError,
)
from cesium.tiler.utils import format_error_body

logger = logging.getLogger(__name__)

DOWNLOAD_CHUNK_SIZE = 64 * 1024

Polled = Union[Asset, Archive]


class TilerClient:
    """Synchronous client for the Cesium ion REST API.

    This client provides a simple, blocking interface to the asset and
    archive endpoints used to turn source models into 3D Tiles.
    For async operations, use AsyncTilerClient instead.

    Example:
        config = TilerConfig.from_env()
        with TilerClient(config) as client:
            created = client.create_asset("Building", "Scanned building")
            # ... upload files with SourceUploader ...
            client.notify_upload_complete(created.asset_id)
            client.wait_for_asset(created.asset_id)

            archive = client.create_archive(created.asset_id)
            client.wait_for_archive(archive.id)
            client.download_archive(archive.id, "building.zip")
    """

    def __init__(
            self,
            config: TilerConfig,
            session: Optional[requests.Session] = None,
    ):
        """Initialize the client.

        Args:
            config: Validated client configuration (token, API URL, timeouts)
            session: Optional pre-built session, mainly for tests
        """
        self.config = config
        self.api_url = config.api_url.rstrip("/")
        self.timeout = config.request_timeout
        self._session = session

    @classmethod
    def from_env(cls) -> "TilerClient":
        """Create a client from environment variables.

        Raises:
            ConfigurationError: If the token is missing
        """
        return cls(TilerConfig.from_env())

    def _get_session(self) -> requests.Session:
        """Get or create the authenticated session."""
        if self._session is None:
            self._session = requests.Session()
        self._session.headers["Authorization"] = f"Bearer {self.config.token}"
        return self._session

    def _request(
            self,
            method: str,
            path: str,
            json_data: Optional[Dict[str, Any]] = None,
            stream: bool = False,
    ) -> requests.Response:
        """Make HTTP request to API.

        Args:
            method: HTTP method (GET, POST)
            path: API path (e.g., "/assets")
            json_data: JSON body data
            stream: Whether to defer downloading the body

        Returns:
            Response object

        Raises:
            RequestError: If request fails or returns a non-success status
        """
        url = f"{self.api_url}{path}"
        session = self._get_session()
        logger.debug("%s %s", method, url)

        try:
            response = session.request(
                method=method,
                url=url,
                json=json_data,
                stream=stream,
                timeout=self.timeout,
            )
        except requests.exceptions.RequestException as e:
            raise RequestError(
                f"Request failed: {str(e)}", method=method, path=path
            ) from e

        if response.status_code >= 400:
            error_body = None
            content_type = response.headers.get("Content-Type", "")
            if "json" in content_type:
                try:
                    error_body = response.json()
                except ValueError:
                    error_body = response.text
            else:
                error_body = response.text
            response.close()

            raise RequestError(
                f"{method} {path}: {format_error_body(error_body, response.status_code)}",
                status_code=response.status_code,
                error_body=error_body,
                method=method,
                path=path,
            )

        return response

    def _request_json(
            self,
            method: str,
            path: str,
            json_data: Optional[Dict[str, Any]] = None,
    ) -> Dict[str, Any]:
        response = self._request(method, path, json_data=json_data)
        try:
            return response.json()
        except ValueError as e:
            raise ResponseFormatError(f"{method} {path} did not return JSON") from e

    # ==================== Asset API ====================

    def create_asset(
            self,
            name: str,
            description: str,
            options: Optional[AssetOptions] = None,
    ) -> CreatedAsset:
        """Create a new 3D Tiles asset.

        Args:
            name: Asset name
            description: Asset description
            options: Tiling options (defaults to 3D_MODEL source, no compression)

        Returns:
            CreatedAsset with the asset metadata and its upload credentials
        """
        body = build_asset_request(name, description, options)
        data = self._request_json("POST", "/assets", json_data=body)
        created = CreatedAsset.from_dict(data)
        logger.info("Created asset %s (%s)", created.asset_id, name)
        return created

    def notify_upload_complete(self, asset_id: int) -> None:
        """Tell the API that all source files were uploaded and tiling can start.

        Args:
            asset_id: Asset identifier
        """
        response = self._request("POST", f"/assets/{asset_id}/uploadComplete")
        response.close()
        logger.info("Upload complete for asset %s", asset_id)

    def get_asset(self, asset_id: int) -> Asset:
        """Get current metadata of an asset.

        Example:
            asset = client.get_asset(42)
            print(f"{asset.status}: {asset.percent_complete}%")
        """
        data = self._request_json("GET", f"/assets/{asset_id}")
        return Asset.from_dict(data)

    def get_asset_status(self, asset_id: int) -> Optional[AssetStatus]:
        """Get current status of an asset."""
        return self.get_asset(asset_id).status

    def wait_for_asset(
            self,
            asset_id: int,
            poll_interval: Optional[float] = None,
            timeout: Optional[float] = None,
            max_attempts: Optional[int] = None,
            cancel_event: Optional[threading.Event] = None,
            progress_callback: Optional[Callable[[Asset], None]] = None,
    ) -> Asset:
        """Poll an asset until tiling is COMPLETE.

        Args:
            asset_id: Asset identifier
            poll_interval: Seconds between polls (default: config.poll_interval)
            timeout: Maximum wait time in seconds (default: config.poll_timeout)
            max_attempts: Maximum number of status requests
            cancel_event: Event that stops the wait when set
            progress_callback: Called with every polled Asset

        Returns:
            The completed Asset

        Raises:
            ProcessingError: If the asset ends in ERROR or DATA_ERROR
            PollTimeoutError: If timeout or max_attempts is exceeded
            PollCancelledError: If cancel_event is set
        """
        return self._poll(
            lambda: self.get_asset(asset_id),
            f"asset {asset_id}",
            poll_interval=poll_interval,
            timeout=timeout,
            max_attempts=max_attempts,
            cancel_event=cancel_event,
            progress_callback=progress_callback,
        )

    # ==================== Archive API ====================

    def create_archive(self, asset_id: int) -> Archive:
        """Request a full ZIP archive of a completed asset.

        Args:
            asset_id: Asset identifier

        Returns:
            Archive with its identifier and initial status
        """
        data = self._request_json("POST", "/archives", json_data=build_archive_request(asset_id))
        archive = Archive.from_dict(data)
        logger.info("Created archive %s for asset %s", archive.id, asset_id)
        return archive

    def get_archive(self, archive_id: int) -> Archive:
        """Get current information of an archive."""
        data = self._request_json("GET", f"/archives/{archive_id}")
        return Archive.from_dict(data)

    def get_archive_status(self, archive_id: int) -> Optional[ArchiveStatus]:
        """Get current status of an archive."""
        return self.get_archive(archive_id).status

    def wait_for_archive(
            self,
            archive_id: int,
            poll_interval: Optional[float] = None,
            timeout: Optional[float] = None,
            max_attempts: Optional[int] = None,
            cancel_event: Optional[threading.Event] = None,
            progress_callback: Optional[Callable[[Archive], None]] = None,
    ) -> Archive:
        """Poll an archive until it is COMPLETE.

        Takes the same arguments as wait_for_asset().
        """
        return self._poll(
            lambda: self.get_archive(archive_id),
            f"archive {archive_id}",
            poll_interval=poll_interval,
            timeout=timeout,
            max_attempts=max_attempts,
            cancel_event=cancel_event,
            progress_callback=progress_callback,
        )

    def iter_archive(
            self, archive_id: int, chunk_size: int = DOWNLOAD_CHUNK_SIZE
    ) -> Iterator[bytes]:
        """Stream the content of a completed archive.

        The request is sent immediately, so a failing status raises here
        rather than on first iteration.

        Args:
            archive_id: Archive identifier
            chunk_size: Bytes per chunk

        Returns:
            Iterator over the archive bytes
        """
        response = self._request("GET", f"/archives/{archive_id}/download", stream=True)
        return _iter_chunks(response, chunk_size)

    def download_archive(self, archive_id: int, output_path: str) -> str:
        """Download a completed archive to a local file.

        The content is written to ``<output_path>.part`` and moved into place
        once complete.

        Args:
            archive_id: Archive identifier
            output_path: File to write

        Returns:
            output_path
        """
        response = self._request("GET", f"/archives/{archive_id}/download", stream=True)
        partial_path = f"{output_path}.part"
        written = 0

        with response:
            try:
                with open(partial_path, "wb") as f:
                    for chunk in _iter_chunks(response, DOWNLOAD_CHUNK_SIZE):
                        f.write(chunk)
                        written += len(chunk)
                os.replace(partial_path, output_path)
            except BaseException:
                if os.path.exists(partial_path):
                    os.remove(partial_path)
                raise

        logger.info("Downloaded archive %s to %s (%d bytes)", archive_id, output_path, written)
        return output_path

    # ==================== Polling ====================

    def _poll(
            self,
            fetch: Callable[[], Polled],
            label: str,
            poll_interval: Optional[float] = None,
            timeout: Optional[float] = None,
            max_attempts: Optional[int] = None,
            cancel_event: Optional[threading.Event] = None,
            progress_callback: Optional[Callable[[Polled], None]] = None,
    ) -> Polled:
        """Poll until the fetched object is complete.

        The first request is sent immediately; later requests wait
        ``poll_interval`` seconds.
        """
        if poll_interval is None:
            poll_interval = self.config.poll_interval
        if timeout is None:
            timeout = self.config.poll_timeout

        start_time = time.monotonic()
        attempts = 0

        while True:
            if cancel_event is not None and cancel_event.is_set():
                raise PollCancelledError(f"Stopped waiting for {label}")

            current = fetch()
            attempts += 1
            status = current.status.value if current.status else "UNKNOWN"
            logger.info("Polled %s: status=%s attempt=%d", label, status, attempts)

            if progress_callback:
                progress_callback(current)

            if current.is_complete():
                return current

            if current.is_failed():
                raise ProcessingError(f"{label} failed with status {status}", status=status)

            if max_attempts is not None and attempts >= max_attempts:
                raise PollTimeoutError(
                    f"{label} not complete after {attempts} attempts", attempts=attempts
                )

            if timeout is not None and (time.monotonic() - start_time) >= timeout:
                raise PollTimeoutError(
                    f"{label} not complete after {timeout} seconds", attempts=attempts
                )

            if cancel_event is not None:
                if cancel_event.wait(poll_interval):
                    raise PollCancelledError(f"Stopped waiting for {label}")
            else:
                time.sleep(poll_interval)

    # ==================== Session ====================

    def close(self) -> None:
        """Close the session."""
        if self._session is not None:
            self._session.close()
            self._session = None

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()


def _iter_chunks(response: requests.Response, chunk_size: int) -> Iterator[bytes]:
    with response:
        try:
            for chunk in response.iter_content(chunk_size=chunk_size):
                if chunk:
                    yield chunk
        except requests.exceptions.RequestException as e:
            raise RequestError(f"Download interrupted: {str(e)}") from e
