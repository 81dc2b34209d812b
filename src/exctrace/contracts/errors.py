"""Exception types raised across subsystem boundaries.

Classification never raises; everything here is either a storage failure
the caller may retry, or a programming error that should crash.
"""

from typing import Literal

StorageOperation = Literal["connect", "disconnect", "store", "fetch", "delete", "write", "read"]


class ExctraceError(Exception):
    """Base class for all exctrace errors."""

    pass


class StorageError(ExctraceError):
    """Raised when the document database or blob store fails.

    Carries enough context to retry: which collection or bucket was targeted
    and which operation failed. The original driver exception is chained as
    __cause__.

    Attributes:
        target: Collection, bucket, or "database" for connection-level failures
        operation: The failed operation
        retryable: False when retrying cannot help (e.g. a duplicate key)
        tx_hash: Transaction being persisted, when known
    """

    def __init__(
        self,
        message: str,
        *,
        target: str,
        operation: StorageOperation,
        retryable: bool = True,
        tx_hash: str | None = None,
    ) -> None:
        self.target = target
        self.operation = operation
        self.retryable = retryable
        self.tx_hash = tx_hash
        super().__init__(f"{operation} on {target!r} failed: {message}")


class TraceFinalizedError(ExctraceError):
    """Raised when a finished trace builder or sealed transaction is mutated.

    This is always a bug in the caller driving the VM hooks, never a data
    condition.
    """

    pass


class SchemaVersionError(ExctraceError):
    """Raised when a stored document declares a schema version we cannot decode."""

    def __init__(self, version: object) -> None:
        self.version = version
        super().__init__(f"Unsupported document schema_version: {version!r}")
