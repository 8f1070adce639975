import base64
import mimetypes
from typing import Any, Dict, Optional

from azure.core.exceptions import AzureError, HttpResponseError
from azure.storage.blob.aio import BlobPrefix
from loguru import logger

from ..base import SourceProvider, RemoteEntry, ListingPage, FOLDER_MIME_TYPE
from ..credentials import create_blob_service_client
from ...exceptions import ConfigurationException, ProviderException, ListingException, DownloadException
from ...utils.error_handler import convert_exceptions

GENERIC_CONTENT_TYPES = {"", "application/octet-stream", "binary/octet-stream"}


def _as_prefix(folder_id: str) -> str:
    folder_id = folder_id.strip("/")
    return f"{folder_id}/" if folder_id else ""


class AzureBlobSourceProvider(SourceProvider):
    """
    Image source backed by an Azure Blob container.

    Blob names are treated as `/`-separated paths: virtual directories are
    folders, blobs are files. Folder ids are blob-name prefixes and file
    ids are blob names; `/` is the container root.
    """

    def __init__(self, config: Dict[str, Any]):
        self.config = config
        self.credential = None
        self.service_client = None
        self.container_client = None
        self.page_size = int(config.get("page_size") or 100)

        self.container_name = config.get("container_name")
        if not self.container_name:
            raise ConfigurationException("Azure source container_name is required")

    def _ensure_initialized(self):
        if self.service_client is None:
            try:
                self.service_client, self.credential = create_blob_service_client(self.config)
                self.container_client = self.service_client.get_container_client(self.container_name)
                logger.info(f"Reading images from blob container: {self.container_name}")
            except ConfigurationException:
                raise
            except Exception as e:
                logger.exception(f"Failed to initialize Azure Blob source client: {e}")
                raise ProviderException(f"Failed to initialize Azure Blob source client: {e}")

    async def verify(self) -> None:
        """Probe the container so auth and configuration errors surface before a run."""
        self._ensure_initialized()
        try:
            await self.container_client.get_container_properties()
        except AzureError as e:
            raise ProviderException(
                f"Cannot access source container {self.container_name}: {e}",
                error_code="SOURCE_UNAVAILABLE",
            ) from e

    def _to_entry(self, blob, prefix: str) -> RemoteEntry:
        name = blob.name[len(prefix):].rstrip("/")
        if isinstance(blob, BlobPrefix):
            return RemoteEntry(id=blob.name, name=name, mime_type=FOLDER_MIME_TYPE)

        settings = blob.content_settings
        content_type = (settings.content_type or "").lower() if settings else ""
        if content_type in GENERIC_CONTENT_TYPES:
            content_type = mimetypes.guess_type(name)[0] or content_type
        md5 = settings.content_md5 if settings else None
        digest = base64.b64encode(bytes(md5)).decode("ascii") if md5 else ""
        return RemoteEntry(id=blob.name, name=name, mime_type=content_type, digest=digest)

    @convert_exceptions({AzureError: ListingException})
    async def list_children(self, folder_id: str, continuation_token: Optional[str] = None) -> ListingPage:
        self._ensure_initialized()

        prefix = _as_prefix(folder_id)
        logger.trace(f"Listing blobs under '{prefix}'")
        pages = self.container_client.walk_blobs(
            name_starts_with=prefix or None,
            delimiter="/",
            results_per_page=self.page_size,
        ).by_page(continuation_token=continuation_token)

        try:
            page = await pages.__anext__()
        except StopAsyncIteration:
            return ListingPage()

        entries = [self._to_entry(blob, prefix) async for blob in page]
        return ListingPage(entries=entries, next_token=pages.continuation_token or None)

    async def download(self, item_id: str) -> bytes:
        self._ensure_initialized()

        try:
            stream = await self.container_client.download_blob(item_id)
            return await stream.readall()
        except HttpResponseError as e:
            raise DownloadException(
                f"Error downloading {item_id}: {e.reason or e}",
                status_code=e.status_code,
            ) from e
        except AzureError as e:
            raise DownloadException(f"Error downloading {item_id}: {e}") from e

    async def close(self):
        if self.service_client:
            logger.info("Closing Azure Blob source client")
            await self.service_client.close()
        if self.credential:
            await self.credential.close()
