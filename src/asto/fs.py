"""Local filesystem storage for asto.

Implements the Storage protocol over a directory tree. A key maps to
``{root}/{key}``.

Crash-only design:
    - Values are streamed into a temp file and fsync'd before they become
      visible under their final name.
    - Publishing uses a hard link, so an existing value is never replaced
      (exclusive-create). Callers that want to replace must delete first.
    - In-flight writes live in the reserved ``.tmp/`` directory under the
      root, outside the key space. Startup empties it.
"""

from __future__ import annotations

import logging
import os
import uuid
from pathlib import Path

from asto import metrics
from asto.content import Content
from asto.errors import (
    InvalidArgumentError,
    NotFoundError,
    StorageIOError,
    UnsupportedOperationError,
)
from asto.key import Key
from asto.storage import Transaction, check_scope

logger = logging.getLogger(__name__)

_TMP_DIR = ".tmp"


class FileStorage:
    """Storage that keeps values as files under a root directory.

    Attributes:
        root: The root directory for all stored data.
    """

    backend_name = "fs"

    def __init__(self, root: str | Path) -> None:
        """Initialize the filesystem storage.

        Args:
            root: Root directory path.
        """
        self.root = Path(root)
        self._tmp_dir = self.root / _TMP_DIR

    def _path(self, key: Key) -> Path:
        """Return the filesystem path for a key.

        Raises:
            InvalidArgumentError: If a segment would escape the root
                or the key lies in the reserved temp directory.
        """
        if any(part in (".", "..") for part in key.parts):
            raise InvalidArgumentError(f"Key must not contain relative segments: {key}")
        if key.parts and key.parts[0] == _TMP_DIR:
            raise InvalidArgumentError(f"Key uses the reserved '{_TMP_DIR}' directory: {key}")
        return self.root.joinpath(*key.parts)

    async def init(self) -> None:
        """Create the root and temp directories and clean up orphan temp files."""
        self._tmp_dir.mkdir(parents=True, exist_ok=True)
        self._clean_temp_files()
        logger.info("Filesystem storage initialized at %s", self.root)

    def _clean_temp_files(self) -> None:
        """Remove orphan temp files left by interrupted writes."""
        count = 0
        for entry in self._tmp_dir.iterdir():
            try:
                entry.unlink()
                count += 1
            except OSError:
                logger.warning("Cannot remove orphan temp file %s", entry.name)
        if count > 0:
            logger.info("Cleaned %d orphan temp files on startup", count)

    async def close(self) -> None:
        """No-op for the filesystem storage."""

    @metrics.instrumented("exists")
    async def exists(self, key: Key) -> bool:
        return self._path(key).is_file()

    @metrics.instrumented("list")
    async def list(self, prefix: Key) -> set[Key]:
        """Walk the subtree under ``prefix`` and return the keys of all files.

        Keys are relative to the storage root, so every returned key has
        ``prefix`` as its prefix.
        """
        check_scope(prefix)
        base = self._path(prefix)
        keys: set[Key] = set()
        if not base.is_dir():
            return keys
        try:
            for dirpath, dirnames, filenames in os.walk(base):
                if dirpath == str(self.root) and _TMP_DIR in dirnames:
                    dirnames.remove(_TMP_DIR)
                for fname in filenames:
                    path = Path(dirpath) / fname
                    if path.is_file():
                        keys.add(Key(path.relative_to(self.root).as_posix()))
        except OSError as exc:
            raise StorageIOError(f"Cannot list {prefix}: {exc}") from exc
        logger.debug("Found %d keys by the prefix '%s' in %s", len(keys), prefix, self.root)
        return keys

    @metrics.instrumented("save")
    async def save(self, key: Key, content: Content) -> None:
        """Write a value with exclusive-create semantics.

        The content is drained into the temp directory before the target is
        checked, so a rejected save still consumes it.

        Raises:
            StorageIOError: If the key already exists, a parent segment is a
                value, or the write fails.
        """
        path = self._path(key)
        if key.is_root or key.is_dir:
            raise InvalidArgumentError(f"Cannot save a value under a scope key: '{key}'")
        tmp = self._tmp_dir / uuid.uuid4().hex
        written = 0
        try:
            self._tmp_dir.mkdir(parents=True, exist_ok=True)
            fd = os.open(str(tmp), os.O_WRONLY | os.O_CREAT | os.O_EXCL, 0o644)
            try:
                async for chunk in content:
                    os.write(fd, chunk)
                    written += len(chunk)
                os.fsync(fd)
            finally:
                os.close(fd)
            try:
                path.parent.mkdir(parents=True, exist_ok=True)
            except (FileExistsError, NotADirectoryError) as exc:
                raise StorageIOError(
                    f"Cannot save {key}: a parent of the key holds a value"
                ) from exc
            os.link(tmp, path)
        except FileExistsError as exc:
            raise StorageIOError(f"Key already exists: {key}") from exc
        except StorageIOError:
            raise
        except OSError as exc:
            raise StorageIOError(f"Cannot save {key}: {exc}") from exc
        finally:
            try:
                tmp.unlink(missing_ok=True)
            except OSError:
                logger.warning("Cannot remove temp file %s", tmp)
        metrics.record_bytes_written(self.backend_name, written)
        logger.debug("Saved %d bytes to %s: %s", written, key, path)

    @metrics.instrumented("value")
    async def value(self, key: Key) -> Content:
        path = self._path(key)
        if not path.is_file():
            raise NotFoundError(key)
        try:
            data = path.read_bytes()
        except FileNotFoundError as exc:
            raise NotFoundError(key) from exc
        except OSError as exc:
            raise StorageIOError(f"Cannot read {key}: {exc}") from exc
        logger.debug("Loaded %d bytes of %s: %s", len(data), key, path)
        return Content.from_bytes(data)

    @metrics.instrumented("move")
    async def move(self, source: Key, destination: Key) -> None:
        """Rename a file, replacing any value at the destination."""
        src = self._path(source)
        dst = self._path(destination)
        if not src.is_file():
            raise NotFoundError(source)
        try:
            dst.parent.mkdir(parents=True, exist_ok=True)
            os.replace(src, dst)
        except FileNotFoundError as exc:
            raise NotFoundError(source) from exc
        except OSError as exc:
            raise StorageIOError(f"Cannot move {source} to {destination}: {exc}") from exc
        self._prune_empty_parents(src)

    @metrics.instrumented("delete")
    async def delete(self, key: Key) -> None:
        path = self._path(key)
        if not path.is_file():
            raise NotFoundError(key)
        try:
            path.unlink()
        except FileNotFoundError as exc:
            raise NotFoundError(key) from exc
        except OSError as exc:
            raise StorageIOError(f"Cannot delete {key}: {exc}") from exc
        self._prune_empty_parents(path)

    async def transaction(self, keys: list[Key]) -> Transaction:
        raise UnsupportedOperationError("Filesystem storage does not support transactions")

    def _prune_empty_parents(self, path: Path) -> None:
        """Remove empty directories between ``path`` and the root."""
        parent = path.parent
        while parent != self.root and self.root in parent.parents:
            try:
                parent.rmdir()  # Only removes empty dirs
            except OSError:
                break
            parent = parent.parent
