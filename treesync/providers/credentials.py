"""
Centralized Azure credentials management for the blob providers.

Both the image source and the object store use the same chained
credential: Azure CLI first, then DefaultAzureCredential (managed identity,
environment, etc.).
"""

from azure.identity.aio import (
    DefaultAzureCredential as AsyncDefaultAzureCredential,
    AzureCliCredential as AsyncAzureCliCredential,
    ChainedTokenCredential as AsyncChainedTokenCredential
)
from azure.storage.blob.aio import BlobServiceClient
from loguru import logger

from ..exceptions import ConfigurationException


class AzureCredentials:
    """Centralized credential management for Azure services."""

    @staticmethod
    def get_async_credentials():
        """
        Get credentials for Azure Blob Storage (async version).
        Uses ChainedTokenCredential to try CLI first, then fallback to DefaultAzureCredential.

        Returns:
            AsyncChainedTokenCredential with CLI and DefaultAzureCredential
        """
        return AsyncChainedTokenCredential(
            AsyncAzureCliCredential(),
            AsyncDefaultAzureCredential()
        )


def create_blob_service_client(config: dict):
    """
    Build an async BlobServiceClient from a provider config dictionary.

    Authentication priority:
    1. connection_string
    2. account_url with the chained Azure credential

    Returns:
        Tuple of (BlobServiceClient, credential or None)
    """
    connection_string = config.get("connection_string")
    if connection_string:
        logger.info("Initializing Blob Storage with connection string")
        return BlobServiceClient.from_connection_string(connection_string), None

    account_url = config.get("account_url")
    if not account_url:
        raise ConfigurationException(
            "Azure Storage configuration required: provide account_url or connection_string"
        )
    logger.info("Initializing Blob Storage with Azure credentials (CLI -> Default)")
    credential = AzureCredentials.get_async_credentials()
    return BlobServiceClient(account_url=account_url, credential=credential), credential
