"""BlobStore protocol for overflow payload storage.

This protocol defines the interface for blob storage backends used by:
- core/blob_store.py (FilesystemBlobStore implementation)
- core/overflow.py (OverflowPolicy, which detaches oversized trace bodies)

Consolidated here to avoid circular imports and provide single source of truth.
"""

import re
from typing import Protocol, runtime_checkable

from exctrace.contracts.errors import ExctraceError

# SHA-256 hex digest: exactly 64 lowercase hex characters
_CONTENT_REF_PATTERN = re.compile(r"^[a-f0-9]{64}$")


def is_content_ref(ref: str) -> bool:
    """True if ref has the shape of a content reference issued by store().

    Documents from the first archival snapshot carry object ids of a
    different store in the same fields; those never pass.
    """
    return _CONTENT_REF_PATTERN.match(ref) is not None


class IntegrityError(ExctraceError):
    """Raised when blob content doesn't match its reference.

    References are content hashes, so a mismatch means filesystem
    corruption, tampering, or a bug. We never return corrupted trace data.
    """

    pass


@runtime_checkable
class BlobStore(Protocol):
    """Protocol for overflow blob storage backends.

    Implementations return a stable, opaque reference for each stored
    payload. Backend failures surface as StorageError.
    """

    @property
    def bucket(self) -> str:
        """Name of the bucket this store writes to."""
        ...

    def store(self, content: bytes) -> str:
        """Store content and return its reference.

        Args:
            content: Raw bytes to store

        Returns:
            Opaque reference id for the content
        """
        ...

    def retrieve(self, ref: str) -> bytes:
        """Retrieve content by reference.

        Args:
            ref: Reference returned by store()

        Returns:
            Original content bytes

        Raises:
            KeyError: If content not found
            IntegrityError: If content doesn't match the reference
        """
        ...

    def exists(self, ref: str) -> bool:
        """Check if content exists."""
        ...

    def delete(self, ref: str) -> bool:
        """Delete content by reference.

        Returns:
            True if content was deleted, False if not found
        """
        ...
