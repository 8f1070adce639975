import base64
from typing import Any, Dict

from azure.core.exceptions import AzureError, ResourceNotFoundError
from azure.storage.blob import ContentSettings
from loguru import logger

from ..base import StorageProvider, ObjectInfo
from ..credentials import create_blob_service_client
from ...exceptions import ConfigurationException, ProviderException, UploadException
from ...utils.error_handler import convert_exceptions


class AzureStorageProvider(StorageProvider):
    """Azure Blob Storage object store; one container is the bucket."""

    def __init__(self, config: Dict[str, Any]):
        """
        Initialize Azure Storage Provider.

        Args:
            config: Configuration dictionary with:
                - container_name: Container all objects are written to
                - account_url: Azure Storage account URL
                - connection_string: Optional connection string (takes priority)
        """
        self.config = config
        self.credential = None
        self.service_client = None
        self.container_client = None

        self.container_name = config.get("container_name")
        if not self.container_name:
            raise ConfigurationException("Azure Storage container_name is required")

    def _initialize(self):
        try:
            self.service_client, self.credential = create_blob_service_client(self.config)
            self.container_client = self.service_client.get_container_client(self.container_name)
            logger.info(f"Using blob container: {self.container_name}")
        except ConfigurationException:
            raise
        except Exception as e:
            logger.exception(f"Failed to initialize Azure Blob Storage client: {e}")
            raise ProviderException(f"Failed to initialize Azure Blob Storage client: {e}")

    def _ensure_initialized(self):
        """Ensure the client is initialized before operations."""
        if self.service_client is None:
            self._initialize()

    async def verify(self) -> None:
        """Probe the container so auth and configuration errors surface before a run."""
        self._ensure_initialized()
        try:
            await self.container_client.get_container_properties()
        except AzureError as e:
            raise ProviderException(
                f"Cannot access output container {self.container_name}: {e}",
                error_code="STORAGE_UNAVAILABLE",
            ) from e

    @convert_exceptions({AzureError: UploadException})
    async def stat_object(self, path: str) -> ObjectInfo:
        self._ensure_initialized()

        client = self.container_client.get_blob_client(path)
        try:
            props = await client.get_blob_properties()
        except ResourceNotFoundError:
            return ObjectInfo(exists=False)
        finally:
            await client.close()

        md5 = props.content_settings.content_md5
        if not md5:
            return ObjectInfo(exists=True, content_hash=None)
        return ObjectInfo(exists=True, content_hash=base64.b64encode(bytes(md5)).decode("ascii"))

    @convert_exceptions({AzureError: UploadException})
    async def put_object(self, path: str, data: bytes, content_type: str, cache_control: str) -> None:
        self._ensure_initialized()

        logger.debug(f"Uploading {len(data)} bytes to {self.container_name}/{path}")
        await self.container_client.upload_blob(
            name=path,
            data=data,
            overwrite=True,
            content_settings=ContentSettings(content_type=content_type, cache_control=cache_control),
        )

    async def close(self):
        """Close the underlying service client and cleanup."""
        if self.service_client:
            logger.info("Closing Azure Blob Storage client")
            await self.service_client.close()
        if self.credential:
            await self.credential.close()
