"""
Blob store for trace bodies too large to keep inline.

Uses content-addressable storage (hash-based) for:
- Stable references: the reference IS the SHA-256 of the payload
- Integrity verification on retrieval
- Idempotent writes, so a retried store() after a timeout is harmless
"""

import hashlib
import hmac
import os
import tempfile
from pathlib import Path

from exctrace.contracts.blob_store import IntegrityError, is_content_ref
from exctrace.contracts.errors import StorageError
from exctrace.core.logging import get_logger

__all__ = ["FilesystemBlobStore"]

logger = get_logger(__name__)


class FilesystemBlobStore:
    """Filesystem-backed blob bucket.

    Stores blobs under the bucket directory using the first 2 characters
    of the hash as a subdirectory for better file distribution.

    Structure: base_path/bucket/ab/abcdef123...

    Safe for concurrent writers: blobs are written to a temporary file and
    renamed into place, and two writers of the same content produce the
    same file.
    """

    def __init__(self, base_path: Path, bucket: str = "exception_bucket") -> None:
        """Open (and create if needed) a bucket.

        Args:
            base_path: Root directory for all buckets
            bucket: Bucket name, used as a directory under base_path

        Raises:
            ValueError: If bucket is not a plain directory name
            StorageError: If the bucket directory cannot be created
        """
        if not bucket or bucket in (".", "..") or "/" in bucket or os.sep in bucket:
            raise ValueError(f"Invalid bucket name: {bucket!r}")
        self._bucket = bucket
        self.root = base_path / bucket
        try:
            self.root.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise StorageError(str(e), target=bucket, operation="connect") from e

    @property
    def bucket(self) -> str:
        return self._bucket

    def _path_for_ref(self, ref: str) -> Path:
        """Get filesystem path for a reference.

        Raises:
            ValueError: If ref is not a valid SHA-256 hex digest
        """
        if not is_content_ref(ref):
            raise ValueError(f"Invalid blob reference: must be 64 lowercase hex characters, got {repr(ref)[:50]}")
        return self.root / ref[:2] / ref

    def _read_verified(self, path: Path, ref: str) -> bytes:
        content = path.read_bytes()
        actual = hashlib.sha256(content).hexdigest()
        # Timing-safe comparison, same as on store()
        if not hmac.compare_digest(actual, ref):
            raise IntegrityError(f"Blob integrity check failed in bucket {self._bucket!r}: expected {ref}, got {actual}")
        return content

    def store(self, content: bytes) -> str:
        """Store content and return its reference.

        If the blob already exists, verifies integrity before returning.

        Raises:
            IntegrityError: If an existing blob doesn't match its reference
            StorageError: If the write fails
        """
        ref = hashlib.sha256(content).hexdigest()
        path = self._path_for_ref(ref)
        try:
            if path.exists():
                self._read_verified(path, ref)
                return ref
            path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(dir=path.parent, prefix=".tmp-")
            try:
                with os.fdopen(fd, "wb") as tmp:
                    tmp.write(content)
                    tmp.flush()
                    os.fsync(tmp.fileno())
                os.replace(tmp_name, path)
            except BaseException:
                Path(tmp_name).unlink(missing_ok=True)
                raise
        except OSError as e:
            raise StorageError(str(e), target=self._bucket, operation="store") from e

        logger.debug("blob_stored", bucket=self._bucket, ref=ref, size=len(content))
        return ref

    def retrieve(self, ref: str) -> bytes:
        """Retrieve content by reference with integrity verification.

        Raises:
            KeyError: If content not found
            IntegrityError: If content doesn't match the reference
            StorageError: If the read fails
        """
        path = self._path_for_ref(ref)
        try:
            if not path.exists():
                raise KeyError(f"Blob not found in bucket {self._bucket!r}: {ref}")
            return self._read_verified(path, ref)
        except OSError as e:
            raise StorageError(str(e), target=self._bucket, operation="fetch") from e

    def exists(self, ref: str) -> bool:
        """Check if content exists."""
        return self._path_for_ref(ref).exists()

    def delete(self, ref: str) -> bool:
        """Delete content by reference.

        Returns:
            True if content was deleted, False if not found
        """
        path = self._path_for_ref(ref)
        try:
            path.unlink()
        except FileNotFoundError:
            return False
        except OSError as e:
            raise StorageError(str(e), target=self._bucket, operation="delete") from e
        return True
