"""Prometheus metrics definitions for asto.

All asto metrics use the ``asto_`` prefix for namespace isolation. Metrics
are opt-in: until ``init_metrics()`` is called the module-level references
stay ``None``, nothing is registered in the global registry and the
recording helpers are no-ops.
"""

from __future__ import annotations

import functools
from collections.abc import Awaitable, Callable
from typing import Any, TypeVar

from prometheus_client import Counter

# Flag indicating whether metrics have been initialised via init_metrics().
_initialized: bool = False

# ---------------------------------------------------------------------------
# Storage operation counter  (labels: backend, operation, status)
# ---------------------------------------------------------------------------
storage_operations_total: Counter | None = None

# ---------------------------------------------------------------------------
# Multipart upload outcomes  (labels: outcome)
# ---------------------------------------------------------------------------
multipart_uploads_total: Counter | None = None

# ---------------------------------------------------------------------------
# Byte counters
# ---------------------------------------------------------------------------
bytes_written_total: Counter | None = None

_F = TypeVar("_F", bound=Callable[..., Awaitable[Any]])


def init_metrics() -> None:
    """Create and register all Prometheus metrics.

    Safe to call more than once; collectors are registered only on the
    first call.
    """
    global _initialized
    global storage_operations_total, multipart_uploads_total, bytes_written_total

    if _initialized:
        return

    storage_operations_total = Counter(
        "asto_storage_operations_total",
        "Total storage operations by backend, type and outcome",
        ["backend", "operation", "status"],
    )

    multipart_uploads_total = Counter(
        "asto_multipart_uploads_total",
        "Multipart upload sessions by terminal outcome",
        ["outcome"],
    )

    bytes_written_total = Counter(
        "asto_bytes_written_total",
        "Total bytes written by storage backends",
        ["backend"],
    )

    _initialized = True


def record_operation(backend: str, operation: str, status: str) -> None:
    if storage_operations_total is not None:
        storage_operations_total.labels(
            backend=backend, operation=operation, status=status
        ).inc()


def record_multipart(outcome: str) -> None:
    if multipart_uploads_total is not None:
        multipart_uploads_total.labels(outcome=outcome).inc()


def record_bytes_written(backend: str, count: int) -> None:
    if bytes_written_total is not None and count > 0:
        bytes_written_total.labels(backend=backend).inc(count)


def instrumented(operation: str) -> Callable[[_F], _F]:
    """Count calls of a storage coroutine method by outcome.

    The backend label is read from the instance's ``backend_name``
    attribute. The status label is ``ok`` or the raised exception's
    class name.
    """

    def decorator(func: _F) -> _F:
        @functools.wraps(func)
        async def wrapper(self, *args: Any, **kwargs: Any) -> Any:
            backend = getattr(self, "backend_name", type(self).__name__)
            try:
                result = await func(self, *args, **kwargs)
            except Exception as exc:
                record_operation(backend, operation, type(exc).__name__)
                raise
            record_operation(backend, operation, "ok")
            return result

        return wrapper  # type: ignore[return-value]

    return decorator
