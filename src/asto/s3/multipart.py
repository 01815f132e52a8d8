"""Multipart upload session for the S3 storage.

A session belongs to exactly one ``S3Storage.save`` call. It streams the
content into numbered parts, remembers the ETag S3 assigns to each part and
ends in exactly one terminal state: committed (parts assembled into the
final object) or aborted (session discarded on the server).
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from enum import Enum

from asto import metrics
from asto.content import Content
from asto.errors import InvalidArgumentError
from asto.key import Key
from asto.s3.bucket import Bucket
from asto.s3.streams import ContentBody

logger = logging.getLogger(__name__)

# S3 rejects non-final parts smaller than 5 MiB
MIN_PART_SIZE = 5 * 1024 * 1024

_MAX_INFLIGHT_PARTS = 4


class UploadState(Enum):
    """Lifecycle state of a multipart upload session."""

    OPEN = "open"
    COMMITTED = "committed"
    ABORTED = "aborted"


@dataclass(frozen=True)
class UploadedPart:
    """An acknowledged part.

    Attributes:
        number: The 1-based part number.
        etag: The ETag S3 assigned to the part.
        size: The part length in bytes.
    """

    number: int
    etag: str
    size: int = 0


class MultipartUpload:
    """State holder for one multipart upload.

    The state moves to COMMITTED or ABORTED as soon as the corresponding
    call is issued, so each terminal action happens at most once and the
    two exclude each other even when the call itself fails.

    Attributes:
        bucket: The bucket helper issuing the S3 calls.
        key: The key the final object is stored under.
        upload_id: The session identifier issued by S3.
        part_size: Size of every part except the last.
        max_inflight: Maximum number of part uploads in flight.
        parts: Parts acknowledged so far, in completion order.
        state: Current lifecycle state.
    """

    def __init__(
        self,
        bucket: Bucket,
        key: Key,
        upload_id: str,
        part_size: int = MIN_PART_SIZE,
        max_inflight: int = _MAX_INFLIGHT_PARTS,
    ) -> None:
        self.bucket = bucket
        self.key = key
        self.upload_id = upload_id
        self.part_size = part_size
        self.max_inflight = max_inflight
        self.parts: list[UploadedPart] = []
        self.state = UploadState.OPEN

    def _check_open(self) -> None:
        if self.state is not UploadState.OPEN:
            raise InvalidArgumentError(
                f"Multipart upload {self.upload_id} is already {self.state.value}"
            )

    async def upload(self, content: Content) -> None:
        """Stream ``content`` into the session as parts.

        Returns once every produced part is acknowledged. On the first
        failure the remaining part uploads are cancelled and the failure is
        re-raised; the session stays open for the caller to abort.
        """
        self._check_open()
        tasks: list[asyncio.Task[None]] = []
        pending: set[asyncio.Task[None]] = set()
        try:
            number = 0
            async for data in ContentBody(content).parts(self.part_size):
                number += 1
                if len(pending) >= self.max_inflight:
                    done, pending = await asyncio.wait(
                        pending, return_when=asyncio.FIRST_COMPLETED
                    )
                    for task in done:
                        task.result()
                task = asyncio.create_task(self._upload_part(number, data))
                tasks.append(task)
                pending.add(task)
            if number == 0:
                # Empty content still needs one part to commit
                task = asyncio.create_task(self._upload_part(1, b""))
                tasks.append(task)
                pending.add(task)
            if pending:
                done, pending = await asyncio.wait(
                    pending, return_when=asyncio.FIRST_EXCEPTION
                )
                for task in done:
                    task.result()
        except BaseException:
            for task in tasks:
                task.cancel()
            await asyncio.gather(*tasks, return_exceptions=True)
            raise

    async def _upload_part(self, number: int, data: bytes) -> None:
        etag = await self.bucket.upload_part(self.key, self.upload_id, number, data)
        self.parts.append(UploadedPart(number=number, etag=etag, size=len(data)))
        logger.debug(
            "Uploaded part %d (%d bytes) of %s",
            number,
            len(data),
            self.key,
            extra={"key": str(self.key), "upload_id": self.upload_id},
        )

    async def complete(self) -> None:
        """Assemble the acknowledged parts into the final object."""
        self._check_open()
        self.state = UploadState.COMMITTED
        ordered = sorted(self.parts, key=lambda part: part.number)
        await self.bucket.complete_multipart_upload(
            self.key, self.upload_id, [(part.number, part.etag) for part in ordered]
        )
        metrics.record_multipart(UploadState.COMMITTED.value)
        logger.debug(
            "Committed multipart upload of %s with %d parts",
            self.key,
            len(ordered),
            extra={"key": str(self.key), "upload_id": self.upload_id},
        )

    async def abort(self) -> None:
        """Discard the session and every part uploaded so far."""
        self._check_open()
        self.state = UploadState.ABORTED
        metrics.record_multipart(UploadState.ABORTED.value)
        await self.bucket.abort_multipart_upload(self.key, self.upload_id)
        logger.info(
            "Aborted multipart upload of %s",
            self.key,
            extra={"key": str(self.key), "upload_id": self.upload_id},
        )
