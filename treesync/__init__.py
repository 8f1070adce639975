"""
treesync: publish a folder tree of geotagged tree photos as WEBP renditions
and a GeoJSON index.
"""

from .config import TreeSyncConfig
from .exceptions import TreeSyncException
from .ingestion import IngestionPipeline, run_ingestion

__version__ = "1.0.0"

__all__ = [
    "TreeSyncConfig",
    "TreeSyncException",
    "IngestionPipeline",
    "run_ingestion",
]
