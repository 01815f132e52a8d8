"""Storage factory registry for asto.

Maps the ``type`` discriminator of a storage configuration block to a
function building the backend. New backends plug in with ``register``.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Mapping
from typing import Any

from asto.config import StorageConfig, parse_storage
from asto.errors import InvalidArgumentError
from asto.fs import FileStorage
from asto.s3.storage import S3Storage
from asto.storage import Storage

logger = logging.getLogger(__name__)

StorageFactory = Callable[[StorageConfig], Storage]


def fs_storage(config: StorageConfig) -> FileStorage:
    """Build a FileStorage from a ``type: fs`` block."""
    if not config.path:
        raise InvalidArgumentError("storage.path is required when type is 'fs'")
    return FileStorage(config.path)


def s3_storage(config: StorageConfig) -> S3Storage:
    """Build an S3Storage from a ``type: s3`` block.

    Raises:
        InvalidArgumentError: If the bucket or credentials are missing, or
            the credentials type is not ``basic``.
    """
    if not config.bucket:
        raise InvalidArgumentError("storage.bucket is required when type is 's3'")
    creds = config.credentials
    if creds is None:
        raise InvalidArgumentError("storage.credentials is required when type is 's3'")
    if creds.type != "basic":
        raise InvalidArgumentError(f"Unsupported S3 credentials type: {creds.type}")
    return S3Storage(
        bucket=config.bucket,
        region=config.region,
        endpoint=config.endpoint,
        access_key_id=creds.access_key_id,
        secret_access_key=creds.secret_access_key,
        multipart=config.multipart,
    )


DEFAULT_FACTORIES: dict[str, StorageFactory] = {
    "fs": fs_storage,
    "s3": s3_storage,
}


class Storages:
    """Registry resolving storage configuration blocks to backends."""

    def __init__(self, factories: Mapping[str, StorageFactory] | None = None) -> None:
        self._factories: dict[str, StorageFactory] = dict(
            DEFAULT_FACTORIES if factories is None else factories
        )

    @property
    def types(self) -> list[str]:
        return sorted(self._factories)

    def register(self, type_: str, factory: StorageFactory) -> None:
        """Register (or replace) the factory for a storage type."""
        self._factories[type_] = factory

    def new_storage(self, config: StorageConfig | Mapping[str, Any]) -> Storage:
        """Create an uninitialized storage for a configuration block.

        Args:
            config: A StorageConfig or a raw mapping as read from YAML.

        Returns:
            The backend instance; call ``init()`` before use.

        Raises:
            InvalidArgumentError: If the type is unknown or the block is
                incomplete.
        """
        if not isinstance(config, StorageConfig):
            config = StorageConfig(**parse_storage(dict(config)))
        factory = self._factories.get(config.type)
        if factory is None:
            raise InvalidArgumentError(
                f"Unknown storage type '{config.type}', expected one of {self.types}"
            )
        storage = factory(config)
        logger.debug("Created %s storage", config.type)
        return storage
