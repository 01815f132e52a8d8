"""S3 storage for asto.

Stores every value as one object in a single S3 (or S3-compatible) bucket,
using the key's string form as the object key. Talks to S3 via aiobotocore.

Upload strategy:
    Content of known size below ``MIN_MULTIPART`` is sent with a single
    ``put_object``. Larger content and content of unknown size goes through
    a multipart upload, which is committed when every part is acknowledged
    and aborted when any part fails. The save only fails after the abort
    has finished, always with the upload's own error.

Transactions are not supported. ``move`` is copy-then-delete and not
atomic: if deleting the source fails, both keys hold the value.
"""

from __future__ import annotations

import logging
from typing import Any

from aiobotocore.session import AioSession

from asto import metrics
from asto.content import Content
from asto.errors import (
    InvalidArgumentError,
    NotFoundError,
    StorageIOError,
    UnsupportedOperationError,
)
from asto.key import Key
from asto.s3.bucket import Bucket
from asto.s3.multipart import MIN_PART_SIZE, MultipartUpload
from asto.s3.streams import ContentBody, response_content
from asto.storage import Transaction, check_scope

logger = logging.getLogger(__name__)

# Minimum content size to consider uploading it as multipart: 10 MiB
MIN_MULTIPART = 10 * 1024 * 1024


class S3Storage:
    """Storage that keeps values as objects in an S3 bucket.

    Pass ``client`` to reuse an existing aiobotocore S3 client; otherwise
    ``init()`` creates one from the connection settings and ``close()``
    releases it.

    Attributes:
        bucket_name: The S3 bucket name.
        region: The AWS region, or None for the client default.
        endpoint: Endpoint URL override, or None for AWS.
        multipart: Whether large or unsized content uses multipart uploads.
        part_size: Size of multipart parts in bytes.
    """

    backend_name = "s3"

    def __init__(
        self,
        bucket: str,
        *,
        client: Any = None,
        region: str | None = None,
        endpoint: str | None = None,
        access_key_id: str = "",
        secret_access_key: str = "",
        multipart: bool = True,
        part_size: int = MIN_PART_SIZE,
    ) -> None:
        self.bucket_name = bucket
        self.region = region
        self.endpoint = endpoint
        self.access_key_id = access_key_id
        self.secret_access_key = secret_access_key
        self.multipart = multipart
        self.part_size = part_size
        self._client = client
        self._client_ctx = None

    @property
    def _bucket(self) -> Bucket:
        if self._client is None:
            raise StorageIOError("S3 storage is not initialized")
        return Bucket(self._client, self.bucket_name)

    async def init(self) -> None:
        """Create the S3 client if needed and verify the bucket is reachable.

        Raises:
            StorageIOError: If the bucket does not exist or is inaccessible.
        """
        if self._client is None:
            client_kwargs: dict[str, Any] = {}
            if self.region:
                client_kwargs["region_name"] = self.region
            if self.endpoint:
                client_kwargs["endpoint_url"] = self.endpoint

            session = AioSession()
            if self.access_key_id and self.secret_access_key:
                session.set_credentials(self.access_key_id, self.secret_access_key)
            self._client_ctx = session.create_client("s3", **client_kwargs)
            self._client = await self._client_ctx.__aenter__()

        try:
            await self._bucket.head_bucket()
        except StorageIOError:
            await self.close()
            raise

        logger.info(
            "S3 storage initialized: bucket=%s region=%s endpoint=%s multipart=%s",
            self.bucket_name,
            self.region,
            self.endpoint,
            self.multipart,
        )

    async def close(self) -> None:
        """Close the aiobotocore client if this storage created it."""
        if self._client_ctx is not None:
            await self._client_ctx.__aexit__(None, None, None)
            self._client = None
            self._client_ctx = None

    @metrics.instrumented("exists")
    async def exists(self, key: Key) -> bool:
        """Probe the object's metadata; a missing object is False."""
        try:
            await self._bucket.head_object(key)
        except NotFoundError:
            return False
        return True

    @metrics.instrumented("list")
    async def list(self, prefix: Key) -> set[Key]:
        check_scope(prefix)
        keys: set[Key] = set()
        async for name in self._bucket.list_keys(str(prefix)):
            # Zero-byte "folder" placeholders are not values
            if name.endswith("/"):
                continue
            try:
                keys.add(Key(name))
            except InvalidArgumentError:
                logger.warning("Skipping object with an invalid key name: %r", name)
        logger.debug("Found %d keys by the prefix '%s'", len(keys), prefix)
        return keys

    @metrics.instrumented("save")
    async def save(self, key: Key, content: Content) -> None:
        """Store a value, replacing any previous one.

        Uses a single upload for content of known size below
        ``MIN_MULTIPART`` (or for everything when multipart is disabled),
        and a multipart upload otherwise.
        """
        if key.is_root or key.is_dir:
            raise InvalidArgumentError(f"Cannot save a value under a scope key: '{key}'")
        size = content.size
        if not self.multipart or (size is not None and size < MIN_MULTIPART):
            data = await ContentBody(content).read()
            await self._bucket.put_object(key, data)
            metrics.record_bytes_written(self.backend_name, len(data))
            logger.debug("Saved %d bytes to %s", len(data), key)
            return

        upload_id = await self._bucket.create_multipart_upload(key)
        upload = MultipartUpload(self._bucket, key, upload_id, part_size=self.part_size)
        try:
            await upload.upload(content)
        except Exception:
            try:
                await upload.abort()
            except Exception:
                logger.warning(
                    "Failed to abort multipart upload of %s",
                    key,
                    exc_info=True,
                    extra={"key": str(key), "upload_id": upload_id},
                )
            raise
        await upload.complete()
        metrics.record_bytes_written(
            self.backend_name, sum(part.size for part in upload.parts)
        )
        logger.debug("Saved %s with %d parts", key, len(upload.parts))

    @metrics.instrumented("value")
    async def value(self, key: Key) -> Content:
        response = await self._bucket.get_object(key)
        return response_content(response)

    @metrics.instrumented("move")
    async def move(self, source: Key, destination: Key) -> None:
        """Copy ``source`` to ``destination`` server-side, then delete it.

        Not atomic: when the delete fails the error is raised and both keys
        keep the value.
        """
        await self._bucket.copy_object(source, destination)
        await self._bucket.delete_object(source)

    @metrics.instrumented("delete")
    async def delete(self, key: Key) -> None:
        if not await self.exists(key):
            raise NotFoundError(key)
        await self._bucket.delete_object(key)

    async def transaction(self, keys: list[Key]) -> Transaction:
        raise UnsupportedOperationError("S3 storage does not support transactions")
