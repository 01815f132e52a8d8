"""Shared pytest fixtures for asto tests.

S3 tests run against ``FakeS3Client``, an in-memory stand-in for the
aiobotocore S3 client that implements just the calls asto issues and
counts them, so tests can tell which upload path was taken. Individual
calls can be replaced with ``AsyncMock`` or a wrapper to inject faults.
"""

from collections import Counter

import pytest
from botocore.exceptions import ClientError

from asto.fs import FileStorage
from asto.s3.storage import S3Storage

BUCKET = "test-bucket"


def client_error(code: str, operation: str = "TestOperation") -> ClientError:
    """Create a botocore ClientError with the given error code."""
    return ClientError({"Error": {"Code": code, "Message": code}}, operation)


class FakeBody:
    """Streaming body returned by ``FakeS3Client.get_object``."""

    def __init__(self, data: bytes) -> None:
        self._data = data
        self._pos = 0
        self.closed = False

    async def read(self, amt: int | None = None) -> bytes:
        if amt is None:
            amt = len(self._data) - self._pos
        chunk = self._data[self._pos : self._pos + amt]
        self._pos += len(chunk)
        return chunk

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc_info):
        self.closed = True
        return False


class FakePaginator:
    """``list_objects_v2`` paginator over the fake client's objects."""

    def __init__(self, client: "FakeS3Client", page_size: int) -> None:
        self._client = client
        self._page_size = page_size

    async def paginate(self, Bucket: str, Prefix: str = ""):
        self._client._check_bucket(Bucket)
        keys = sorted(k for k in self._client.objects if k.startswith(Prefix))
        if not keys:
            yield {"KeyCount": 0}
            return
        for start in range(0, len(keys), self._page_size):
            page = keys[start : start + self._page_size]
            yield {"KeyCount": len(page), "Contents": [{"Key": k} for k in page]}


class FakeS3Client:
    """In-memory S3 client for a single bucket."""

    def __init__(self, bucket: str = BUCKET, page_size: int = 1000) -> None:
        self.bucket = bucket
        self.page_size = page_size
        self.objects: dict[str, bytes] = {}
        self.uploads: dict[str, dict] = {}
        self.completed: list[str] = []
        self.aborted: list[str] = []
        self.calls: Counter = Counter()
        self._upload_counter = 0

    def _check_bucket(self, name: str) -> None:
        if name != self.bucket:
            raise client_error("NoSuchBucket")

    async def head_bucket(self, Bucket: str) -> dict:
        self.calls["head_bucket"] += 1
        self._check_bucket(Bucket)
        return {}

    async def head_object(self, Bucket: str, Key: str) -> dict:
        self.calls["head_object"] += 1
        self._check_bucket(Bucket)
        if Key not in self.objects:
            raise client_error("404", "HeadObject")
        return {"ContentLength": len(self.objects[Key])}

    async def put_object(self, Bucket: str, Key: str, Body: bytes, ContentLength: int | None = None) -> dict:
        self.calls["put_object"] += 1
        self._check_bucket(Bucket)
        self.objects[Key] = bytes(Body)
        return {"ETag": '"put"'}

    async def get_object(self, Bucket: str, Key: str) -> dict:
        self.calls["get_object"] += 1
        self._check_bucket(Bucket)
        if Key not in self.objects:
            raise client_error("NoSuchKey", "GetObject")
        data = self.objects[Key]
        return {"ContentLength": len(data), "Body": FakeBody(data)}

    def get_paginator(self, name: str) -> FakePaginator:
        assert name == "list_objects_v2"
        self.calls["list_objects_v2"] += 1
        return FakePaginator(self, self.page_size)

    async def copy_object(self, Bucket: str, Key: str, CopySource: dict) -> dict:
        self.calls["copy_object"] += 1
        self._check_bucket(Bucket)
        source = CopySource["Key"]
        if source not in self.objects:
            raise client_error("NoSuchKey", "CopyObject")
        self.objects[Key] = self.objects[source]
        return {"CopyObjectResult": {"ETag": '"copy"'}}

    async def delete_object(self, Bucket: str, Key: str) -> dict:
        self.calls["delete_object"] += 1
        self._check_bucket(Bucket)
        self.objects.pop(Key, None)
        return {}

    async def create_multipart_upload(self, Bucket: str, Key: str) -> dict:
        self.calls["create_multipart_upload"] += 1
        self._check_bucket(Bucket)
        self._upload_counter += 1
        upload_id = f"upload-{self._upload_counter}"
        self.uploads[upload_id] = {"key": Key, "parts": {}}
        return {"UploadId": upload_id}

    async def upload_part(
        self,
        Bucket: str,
        Key: str,
        UploadId: str,
        PartNumber: int,
        Body: bytes,
        ContentLength: int | None = None,
    ) -> dict:
        self.calls["upload_part"] += 1
        self._check_bucket(Bucket)
        if UploadId not in self.uploads:
            raise client_error("NoSuchUpload", "UploadPart")
        etag = f'"etag-{UploadId}-{PartNumber}"'
        self.uploads[UploadId]["parts"][PartNumber] = (etag, bytes(Body))
        return {"ETag": etag}

    async def complete_multipart_upload(
        self, Bucket: str, Key: str, UploadId: str, MultipartUpload: dict
    ) -> dict:
        self.calls["complete_multipart_upload"] += 1
        self._check_bucket(Bucket)
        upload = self.uploads.pop(UploadId, None)
        if upload is None:
            raise client_error("NoSuchUpload", "CompleteMultipartUpload")
        numbers = [part["PartNumber"] for part in MultipartUpload["Parts"]]
        if numbers != sorted(numbers) or not numbers:
            raise client_error("InvalidPartOrder", "CompleteMultipartUpload")
        data = b""
        for part in MultipartUpload["Parts"]:
            etag, body = upload["parts"][part["PartNumber"]]
            if etag != part["ETag"]:
                raise client_error("InvalidPart", "CompleteMultipartUpload")
            data += body
        self.objects[Key] = data
        self.completed.append(UploadId)
        return {"ETag": '"multipart"'}

    async def abort_multipart_upload(self, Bucket: str, Key: str, UploadId: str) -> dict:
        self.calls["abort_multipart_upload"] += 1
        self._check_bucket(Bucket)
        if self.uploads.pop(UploadId, None) is None:
            raise client_error("NoSuchUpload", "AbortMultipartUpload")
        self.aborted.append(UploadId)
        return {}


@pytest.fixture
def s3_client() -> FakeS3Client:
    return FakeS3Client()


@pytest.fixture
def s3_storage(s3_client) -> S3Storage:
    """An S3Storage bound to the fake client with small multipart parts."""
    return S3Storage(BUCKET, client=s3_client, part_size=4)


@pytest.fixture
async def fs_storage(tmp_path):
    """Create and initialize a filesystem storage in a temp directory."""
    storage = FileStorage(tmp_path / "objects")
    await storage.init()
    yield storage
    await storage.close()
