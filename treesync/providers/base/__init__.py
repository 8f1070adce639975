from .source_provider import SourceProvider, RemoteEntry, ListingPage, FOLDER_MIME_TYPE
from .storage_provider import StorageProvider, ObjectInfo

__all__ = [
    'SourceProvider',
    'RemoteEntry',
    'ListingPage',
    'FOLDER_MIME_TYPE',
    'StorageProvider',
    'ObjectInfo',
]
