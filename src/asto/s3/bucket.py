"""Thin wrapper around an aiobotocore S3 client bound to one bucket.

Every call takes asto keys, builds the request keyword arguments and
translates botocore faults into asto errors:

    - "no such key" codes become ``NotFoundError`` where a key is involved
    - anything else becomes ``StorageIOError`` with the fault chained
"""

from __future__ import annotations

from collections.abc import AsyncIterator, Iterator
from contextlib import contextmanager
from typing import Any

from botocore.exceptions import BotoCoreError, ClientError

from asto.errors import NotFoundError, StorageIOError
from asto.key import Key

_MISSING_CODES = frozenset({"404", "NoSuchKey", "NotFound"})


def error_code(exc: ClientError) -> str:
    """Return the S3 error code carried by a ClientError."""
    return exc.response.get("Error", {}).get("Code", "")


@contextmanager
def translate_errors(action: str, key: Key | None = None) -> Iterator[None]:
    """Translate botocore faults raised inside the block.

    Args:
        action: Operation name used in the error message.
        key: When given, a "no such key" fault raises NotFoundError for it.
    """
    try:
        yield
    except ClientError as exc:
        if key is not None and error_code(exc) in _MISSING_CODES:
            raise NotFoundError(key) from exc
        raise StorageIOError(f"S3 {action} failed: {exc}") from exc
    except BotoCoreError as exc:
        raise StorageIOError(f"S3 {action} failed: {exc}") from exc


class Bucket:
    """An S3 client paired with a bucket name.

    Attributes:
        client: The aiobotocore S3 client.
        name: The bucket name.
    """

    def __init__(self, client: Any, name: str) -> None:
        self.client = client
        self.name = name

    async def head_bucket(self) -> None:
        with translate_errors("head_bucket"):
            await self.client.head_bucket(Bucket=self.name)

    async def head_object(self, key: Key) -> dict[str, Any]:
        with translate_errors("head_object", key):
            return await self.client.head_object(Bucket=self.name, Key=str(key))

    async def put_object(self, key: Key, data: bytes) -> None:
        with translate_errors("put_object"):
            await self.client.put_object(
                Bucket=self.name,
                Key=str(key),
                Body=data,
                ContentLength=len(data),
            )

    async def get_object(self, key: Key) -> dict[str, Any]:
        with translate_errors("get_object", key):
            return await self.client.get_object(Bucket=self.name, Key=str(key))

    async def list_keys(self, prefix: str) -> AsyncIterator[str]:
        """Yield every object key starting with ``prefix``, page by page."""
        paginator = self.client.get_paginator("list_objects_v2")
        with translate_errors("list_objects_v2"):
            async for page in paginator.paginate(Bucket=self.name, Prefix=prefix):
                for obj in page.get("Contents", []):
                    yield obj["Key"]

    async def copy_object(self, source: Key, destination: Key) -> None:
        with translate_errors("copy_object", source):
            await self.client.copy_object(
                Bucket=self.name,
                Key=str(destination),
                CopySource={"Bucket": self.name, "Key": str(source)},
            )

    async def delete_object(self, key: Key) -> None:
        with translate_errors("delete_object"):
            await self.client.delete_object(Bucket=self.name, Key=str(key))

    async def create_multipart_upload(self, key: Key) -> str:
        """Open a multipart upload session and return its upload id."""
        with translate_errors("create_multipart_upload"):
            resp = await self.client.create_multipart_upload(Bucket=self.name, Key=str(key))
        return resp["UploadId"]

    async def upload_part(self, key: Key, upload_id: str, part_number: int, data: bytes) -> str:
        """Upload one part and return the ETag assigned to it."""
        with translate_errors("upload_part"):
            resp = await self.client.upload_part(
                Bucket=self.name,
                Key=str(key),
                UploadId=upload_id,
                PartNumber=part_number,
                Body=data,
                ContentLength=len(data),
            )
        return resp["ETag"]

    async def complete_multipart_upload(
        self, key: Key, upload_id: str, parts: list[tuple[int, str]]
    ) -> None:
        """Assemble uploaded parts, given as ``(number, etag)`` pairs in order."""
        manifest = [{"ETag": etag, "PartNumber": number} for number, etag in parts]
        with translate_errors("complete_multipart_upload"):
            await self.client.complete_multipart_upload(
                Bucket=self.name,
                Key=str(key),
                UploadId=upload_id,
                MultipartUpload={"Parts": manifest},
            )

    async def abort_multipart_upload(self, key: Key, upload_id: str) -> None:
        with translate_errors("abort_multipart_upload"):
            await self.client.abort_multipart_upload(
                Bucket=self.name,
                Key=str(key),
                UploadId=upload_id,
            )
