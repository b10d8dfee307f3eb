"""Asynchronous client for the Cesium ion REST API."""

import asyncio
import json
import logging
import os
import time
from typing import Any, AsyncIterator, Awaitable, Callable, Dict, Optional, Union

import aiohttp

from cesium.tiler.client import DOWNLOAD_CHUNK_SIZE
from cesium.tiler.config import TilerConfig
from cesium.tiler.data.archive import Archive, build_archive_request
from cesium.tiler.data.asset import Asset, AssetOptions, CreatedAsset, build_asset_request
from cesium.tiler.data.enums import ArchiveStatus, AssetStatus
from cesium.tiler.exceptions import (
    PollTimeoutError,
    ProcessingError,
    RequestError,
    ResponseFormatError,
)
from cesium.tiler.utils import format_error_body

logger = logging.getLogger(__name__)

Polled = Union[Asset, Archive]
ProgressCallback = Callable[[Polled], Union[None, Awaitable[None]]]


class AsyncTilerClient:
    """Asynchronous client for the Cesium ion REST API.

    It mirrors the synchronous client's structure but uses async/await.
    Waits can be cancelled by cancelling the task awaiting them.

    Example:
        async with AsyncTilerClient(TilerConfig.from_env()) as client:
            created = await client.create_asset("Building", "Scanned building")
            # ... upload files ...
            await client.notify_upload_complete(created.asset_id)
            await client.wait_for_asset(created.asset_id)

            archive = await client.create_archive(created.asset_id)
            await client.wait_for_archive(archive.id)
            await client.download_archive(archive.id, "building.zip")
    """

    def __init__(self, config: TilerConfig):
        """Initialize the client.

        Args:
            config: Validated client configuration (token, API URL, timeouts)
        """
        self.config = config
        self.api_url = config.api_url.rstrip("/")
        self.timeout = (
            aiohttp.ClientTimeout(total=config.request_timeout)
            if config.request_timeout else None
        )
        self._session: Optional[aiohttp.ClientSession] = None

    @classmethod
    def from_env(cls) -> "AsyncTilerClient":
        """Create a client from environment variables."""
        return cls(TilerConfig.from_env())

    def _get_session(self) -> aiohttp.ClientSession:
        """Get or create the authenticated session."""
        if self._session is None or self._session.closed:
            kwargs = {
                "headers": {"Authorization": f"Bearer {self.config.token}"},
                "trust_env": True,
            }
            if self.timeout is not None:
                kwargs["timeout"] = self.timeout
            self._session = aiohttp.ClientSession(**kwargs)
        return self._session

    async def _request(
            self,
            method: str,
            path: str,
            json_data: Optional[Dict[str, Any]] = None,
    ) -> Dict[str, Any]:
        """Make HTTP request to API.

        Returns:
            Parsed JSON response ({} for an empty body)
        """
        url = f"{self.api_url}{path}"
        session = self._get_session()
        logger.debug("%s %s", method, url)

        try:
            async with session.request(method=method, url=url, json=json_data) as response:
                await self._raise_for_status(response, method, path)
                body = await response.text()
        except aiohttp.ClientError as e:
            raise RequestError(
                f"Request failed: {str(e)}", method=method, path=path
            ) from e

        if not body.strip():
            return {}
        try:
            return json.loads(body)
        except ValueError as e:
            raise ResponseFormatError(f"{method} {path} did not return JSON") from e

    async def _raise_for_status(
            self, response: aiohttp.ClientResponse, method: str, path: str
    ) -> None:
        """Raise RequestError for a non-success response."""
        if response.status < 400:
            return

        error_body: Any = await response.text()
        if "json" in response.headers.get("Content-Type", ""):
            try:
                error_body = json.loads(error_body)
            except ValueError:
                pass

        raise RequestError(
            f"{method} {path}: {format_error_body(error_body, response.status)}",
            status_code=response.status,
            error_body=error_body,
            method=method,
            path=path,
        )

    async def close(self) -> None:
        """Close the session."""
        if self._session and not self._session.closed:
            await self._session.close()
        self._session = None

    async def __aenter__(self):
        """Async context manager entry."""
        self._get_session()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        """Async context manager exit."""
        await self.close()

    # ==================== Asset API ====================

    async def create_asset(
            self,
            name: str,
            description: str,
            options: Optional[AssetOptions] = None,
    ) -> CreatedAsset:
        """Create a new 3D Tiles asset."""
        body = build_asset_request(name, description, options)
        data = await self._request("POST", "/assets", json_data=body)
        created = CreatedAsset.from_dict(data)
        logger.info("Created asset %s (%s)", created.asset_id, name)
        return created

    async def notify_upload_complete(self, asset_id: int) -> None:
        """Tell the API that all source files were uploaded."""
        await self._request("POST", f"/assets/{asset_id}/uploadComplete")
        logger.info("Upload complete for asset %s", asset_id)

    async def get_asset(self, asset_id: int) -> Asset:
        """Get current metadata of an asset."""
        data = await self._request("GET", f"/assets/{asset_id}")
        return Asset.from_dict(data)

    async def get_asset_status(self, asset_id: int) -> Optional[AssetStatus]:
        """Get current status of an asset."""
        return (await self.get_asset(asset_id)).status

    async def wait_for_asset(
            self,
            asset_id: int,
            poll_interval: Optional[float] = None,
            timeout: Optional[float] = None,
            max_attempts: Optional[int] = None,
            progress_callback: Optional[ProgressCallback] = None,
    ) -> Asset:
        """Poll an asset until tiling is COMPLETE.

        See TilerClient.wait_for_asset(); progress_callback may be a coroutine
        function.
        """
        return await self._poll(
            lambda: self.get_asset(asset_id),
            f"asset {asset_id}",
            poll_interval=poll_interval,
            timeout=timeout,
            max_attempts=max_attempts,
            progress_callback=progress_callback,
        )

    # ==================== Archive API ====================

    async def create_archive(self, asset_id: int) -> Archive:
        """Request a full ZIP archive of a completed asset."""
        data = await self._request("POST", "/archives", json_data=build_archive_request(asset_id))
        archive = Archive.from_dict(data)
        logger.info("Created archive %s for asset %s", archive.id, asset_id)
        return archive

    async def get_archive(self, archive_id: int) -> Archive:
        """Get current information of an archive."""
        data = await self._request("GET", f"/archives/{archive_id}")
        return Archive.from_dict(data)

    async def get_archive_status(self, archive_id: int) -> Optional[ArchiveStatus]:
        """Get current status of an archive."""
        return (await self.get_archive(archive_id)).status

    async def wait_for_archive(
            self,
            archive_id: int,
            poll_interval: Optional[float] = None,
            timeout: Optional[float] = None,
            max_attempts: Optional[int] = None,
            progress_callback: Optional[ProgressCallback] = None,
    ) -> Archive:
        """Poll an archive until it is COMPLETE."""
        return await self._poll(
            lambda: self.get_archive(archive_id),
            f"archive {archive_id}",
            poll_interval=poll_interval,
            timeout=timeout,
            max_attempts=max_attempts,
            progress_callback=progress_callback,
        )

    async def iter_archive(
            self, archive_id: int, chunk_size: int = DOWNLOAD_CHUNK_SIZE
    ) -> AsyncIterator[bytes]:
        """Stream the content of a completed archive.

        The request is sent when iteration starts.
        """
        path = f"/archives/{archive_id}/download"
        url = f"{self.api_url}{path}"
        session = self._get_session()
        logger.debug("GET %s", url)

        try:
            async with session.get(url) as response:
                await self._raise_for_status(response, "GET", path)
                async for chunk in response.content.iter_chunked(chunk_size):
                    if chunk:
                        yield chunk
        except aiohttp.ClientError as e:
            raise RequestError(f"Request failed: {str(e)}", method="GET", path=path) from e

    async def download_archive(self, archive_id: int, output_path: str) -> str:
        """Download a completed archive to a local file.

        Returns:
            output_path
        """
        partial_path = f"{output_path}.part"
        written = 0

        try:
            with open(partial_path, "wb") as f:
                async for chunk in self.iter_archive(archive_id):
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

    async def _poll(
            self,
            fetch: Callable[[], Awaitable[Polled]],
            label: str,
            poll_interval: Optional[float] = None,
            timeout: Optional[float] = None,
            max_attempts: Optional[int] = None,
            progress_callback: Optional[ProgressCallback] = None,
    ) -> Polled:
        """Poll until the fetched object is complete."""
        if poll_interval is None:
            poll_interval = self.config.poll_interval
        if timeout is None:
            timeout = self.config.poll_timeout

        start_time = time.monotonic()
        attempts = 0

        while True:
            current = await fetch()
            attempts += 1
            status = current.status.value if current.status else "UNKNOWN"
            logger.info("Polled %s: status=%s attempt=%d", label, status, attempts)

            if progress_callback:
                res = progress_callback(current)
                if asyncio.iscoroutine(res):
                    await res

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

            await asyncio.sleep(poll_interval)
