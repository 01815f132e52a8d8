"""Abstract storage protocol for asto."""

from __future__ import annotations

from typing import Protocol

from asto.content import Content
from asto.errors import InvalidArgumentError
from asto.key import Key


class Transaction(Protocol):
    """A multi-key atomic operation scope.

    No shipped backend provides one yet; ``Storage.transaction`` raises
    ``UnsupportedOperationError`` on both of them.
    """

    async def commit(self) -> None:
        ...

    async def rollback(self) -> None:
        ...


class Storage(Protocol):
    """Protocol defining the key-value storage interface.

    All storage backends (local filesystem, S3) must implement this
    interface. Values are streamed ``Content`` objects addressed by
    hierarchical ``Key`` objects.
    """

    async def init(self) -> None:
        """Initialize the storage (create directories, connect, etc.)."""
        ...

    async def close(self) -> None:
        """Release resources held by the storage."""
        ...

    async def exists(self, key: Key) -> bool:
        """Check whether a value is stored under a key.

        Args:
            key: The key to probe.

        Returns:
            True if a value exists. Absence is never an error.
        """
        ...

    async def list(self, prefix: Key) -> set[Key]:
        """List all keys under a scope.

        Args:
            prefix: A scope key (trailing separator) or ``Key.ROOT``.

        Returns:
            Every stored key the prefix is a prefix of, in no order.

        Raises:
            InvalidArgumentError: If the prefix lacks the trailing separator.
        """
        ...

    async def save(self, key: Key, content: Content) -> None:
        """Store a value, fully consuming the content.

        Args:
            key: Destination key.
            content: The value to store.
        """
        ...

    async def value(self, key: Key) -> Content:
        """Open the value stored under a key.

        Raises:
            NotFoundError: If the key has no value.
        """
        ...

    async def move(self, source: Key, destination: Key) -> None:
        """Rename a value. Not guaranteed to be atomic.

        Raises:
            NotFoundError: If the source key has no value.
        """
        ...

    async def delete(self, key: Key) -> None:
        """Remove a value.

        Raises:
            NotFoundError: If the key has no value.
        """
        ...

    async def transaction(self, keys: list[Key]) -> Transaction:
        """Start a multi-key transaction over the given keys.

        Raises:
            UnsupportedOperationError: If the backend has no atomic
                multi-key support.
        """
        ...


def check_scope(prefix: Key) -> None:
    """Raise InvalidArgumentError unless ``prefix`` is a listing scope."""
    if not (prefix.is_root or prefix.is_dir):
        raise InvalidArgumentError(f'The prefix must end with a slash: "{prefix}"')
