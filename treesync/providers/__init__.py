from .base import SourceProvider, StorageProvider, RemoteEntry, ListingPage, ObjectInfo, FOLDER_MIME_TYPE
from .factory import ProviderFactory

__all__ = [
    "SourceProvider",
    "StorageProvider",
    "RemoteEntry",
    "ListingPage",
    "ObjectInfo",
    "FOLDER_MIME_TYPE",
    "ProviderFactory",
]
