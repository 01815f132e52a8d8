"""S3 storage for asto."""

from asto.s3.storage import MIN_MULTIPART, S3Storage

__all__ = ["MIN_MULTIPART", "S3Storage"]
