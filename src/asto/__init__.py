"""asto - asynchronous key-value storage over interchangeable backends."""

from asto.content import Content
from asto.errors import (
    AstoError,
    ContentConsumedError,
    InvalidArgumentError,
    NotFoundError,
    StorageIOError,
    UnsupportedOperationError,
)
from asto.key import Key
from asto.storage import Storage, Transaction

__all__ = [
    "AstoError",
    "Content",
    "ContentConsumedError",
    "InvalidArgumentError",
    "Key",
    "NotFoundError",
    "Storage",
    "StorageIOError",
    "Transaction",
    "UnsupportedOperationError",
]
