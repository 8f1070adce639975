import mimetypes
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import List, Optional

FOLDER_MIME_TYPE = "inode/directory"

# Not registered by every Python release
mimetypes.add_type("image/heic", ".heic")
mimetypes.add_type("image/heif", ".heif")
mimetypes.add_type("image/webp", ".webp")


@dataclass(frozen=True)
class RemoteEntry:
    """One child of a remote folder as reported by the source."""
    id: Optional[str]
    name: str
    mime_type: str
    digest: str = ""

    @property
    def is_folder(self) -> bool:
        return self.mime_type == FOLDER_MIME_TYPE


@dataclass
class ListingPage:
    """One page of a folder listing."""
    entries: List[RemoteEntry] = field(default_factory=list)
    next_token: Optional[str] = None


class SourceProvider(ABC):
    """Abstract base class for remote image sources."""

    @abstractmethod
    async def list_children(self, folder_id: str, continuation_token: Optional[str] = None) -> ListingPage:
        """List one page of the immediate children of a folder."""
        pass

    @abstractmethod
    async def download(self, item_id: str) -> bytes:
        """Download the raw bytes of a file."""
        pass

    @abstractmethod
    async def close(self):
        """Close the underlying client and cleanup."""
        pass
