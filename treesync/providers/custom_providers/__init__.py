from .source_provider import LocalFolderSourceProvider
from .storage_provider import LocalStorageProvider

__all__ = [
    'LocalFolderSourceProvider',
    'LocalStorageProvider'
]
