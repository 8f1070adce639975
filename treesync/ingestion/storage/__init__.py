"""Hash-verified uploads to the output object store."""

from .uploader import IdempotentUploader, ArtifactSize, UploadOutcome, compute_hash, artifact_path

__all__ = [
    "IdempotentUploader",
    "ArtifactSize",
    "UploadOutcome",
    "compute_hash",
    "artifact_path",
]
