"""Storage error definitions for asto."""


class AstoError(Exception):
    """A storage error with a stable code and a human-readable message.

    Attributes:
        code: The error code string (e.g. "NotFound", "InvalidArgument").
        message: Human-readable error description.
    """

    def __init__(self, code: str, message: str) -> None:
        """Initialize the error.

        Args:
            code: Error code.
            message: Error description.
        """
        super().__init__(message)
        self.code = code
        self.message = message


class StorageIOError(AstoError):
    """An underlying disk or network fault.

    The originating exception is chained as ``__cause__``.
    """

    def __init__(self, message: str = "Storage I/O error") -> None:
        super().__init__(code="IOError", message=message)


class NotFoundError(AstoError):
    """The requested key has no value."""

    def __init__(self, key: object = "") -> None:
        super().__init__(code="NotFound", message=f"Key does not exist: {key}")
        self.key = key


class InvalidArgumentError(AstoError):
    """An invalid argument was provided."""

    def __init__(self, message: str = "Invalid argument") -> None:
        super().__init__(code="InvalidArgument", message=message)


class UnsupportedOperationError(AstoError):
    """The backend does not support the requested operation."""

    def __init__(self, message: str = "Operation is not supported") -> None:
        super().__init__(code="UnsupportedOperation", message=message)


class ContentConsumedError(AstoError):
    """A single-consumption content was read more than once."""

    def __init__(self, message: str = "Content has already been consumed") -> None:
        super().__init__(code="ContentConsumed", message=message)
