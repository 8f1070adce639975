from .source_provider import AzureBlobSourceProvider
from .storage_provider import AzureStorageProvider

__all__ = [
    "AzureBlobSourceProvider",
    "AzureStorageProvider",
]
