from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True)
class ObjectInfo:
    """Existence and content hash of a stored object."""
    exists: bool
    content_hash: Optional[str] = None


class StorageProvider(ABC):
    """Abstract base class for object store providers."""

    @abstractmethod
    async def stat_object(self, path: str) -> ObjectInfo:
        """Probe an object; content_hash is base64 MD5 when the store has one."""
        pass

    @abstractmethod
    async def put_object(self, path: str, data: bytes, content_type: str, cache_control: str) -> None:
        """Write an object, overwriting any existing one."""
        pass

    @abstractmethod
    async def close(self):
        """Close the underlying client and cleanup."""
        pass
