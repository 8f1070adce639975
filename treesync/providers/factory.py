from typing import Dict, Type, Optional
from loguru import logger

from .base import SourceProvider, StorageProvider
from .azure_providers import AzureBlobSourceProvider, AzureStorageProvider
from .custom_providers import LocalFolderSourceProvider, LocalStorageProvider
from ..config.settings import TreeSyncConfig
from ..exceptions import ConfigurationException


class ProviderFactory:
    """Factory class for creating provider instances."""

    _source_providers: Dict[str, Type[SourceProvider]] = {
        'azure': AzureBlobSourceProvider,
        'local': LocalFolderSourceProvider,
    }

    _storage_providers: Dict[str, Type[StorageProvider]] = {
        'azure': AzureStorageProvider,
        'local': LocalStorageProvider,
    }

    @classmethod
    def create_source_provider(cls, config: Optional[TreeSyncConfig] = None,
                               provider_name: str = None) -> SourceProvider:
        """
        Create the image source provider.

        Args:
            config: Loaded configuration (defaults to the environment)
            provider_name: Name of the provider (optional, defaults to config)

        Returns:
            SourceProvider instance

        Raises:
            ConfigurationException: If provider is not supported
        """
        config = config or TreeSyncConfig()
        if provider_name is None:
            provider_name = config.source.provider

        if provider_name not in cls._source_providers:
            raise ConfigurationException(
                f"Unknown source provider: {provider_name}. "
                f"Supported providers: {list(cls._source_providers.keys())}"
            )

        provider_class = cls._source_providers[provider_name]
        logger.info(f"Creating source provider: {provider_name}")
        return provider_class(config.source.model_dump())

    @classmethod
    def create_storage_provider(cls, config: Optional[TreeSyncConfig] = None,
                                provider_name: str = None) -> StorageProvider:
        """
        Create the output object store provider.

        Args:
            config: Loaded configuration (defaults to the environment)
            provider_name: Name of the provider (optional, defaults to config)

        Returns:
            StorageProvider instance

        Raises:
            ConfigurationException: If provider is not supported
        """
        config = config or TreeSyncConfig()
        if provider_name is None:
            provider_name = config.storage.provider

        if provider_name not in cls._storage_providers:
            raise ConfigurationException(
                f"Unknown storage provider: {provider_name}. "
                f"Supported providers: {list(cls._storage_providers.keys())}"
            )

        provider_class = cls._storage_providers[provider_name]
        logger.info(f"Creating storage provider: {provider_name}")
        return provider_class(config.storage.model_dump())

    @classmethod
    def get_supported_providers(cls) -> Dict[str, list]:
        """Get list of supported providers by type."""
        return {
            "source": list(cls._source_providers.keys()),
            "storage": list(cls._storage_providers.keys()),
        }

    @classmethod
    def register_source_provider(cls, name: str, provider_class: Type[SourceProvider]):
        """Register a new source provider."""
        cls._source_providers[name] = provider_class
        logger.info(f"Registered source provider: {name}")

    @classmethod
    def register_storage_provider(cls, name: str, provider_class: Type[StorageProvider]):
        """Register a new storage provider."""
        cls._storage_providers[name] = provider_class
        logger.info(f"Registered storage provider: {name}")
