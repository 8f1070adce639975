from .settings import (
    TreeSyncConfig,
    SourceConfig,
    StorageConfig,
    PipelineConfig,
    LoggingConfig,
)

__all__ = [
    "TreeSyncConfig",
    "SourceConfig",
    "StorageConfig",
    "PipelineConfig",
    "LoggingConfig",
]
