"""Open and close every archive handle from one settings object."""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from typing import Self

from exctrace.contracts.records import TransactionRecord
from exctrace.core.archive.database import ArchiveDB
from exctrace.core.archive.recorder import ArchiveRecorder, IngestOutcome
from exctrace.core.blob_store import FilesystemBlobStore
from exctrace.core.config import ExctraceSettings
from exctrace.core.logging import configure_from_settings
from exctrace.core.overflow import OverflowPolicy


@dataclass
class ArchiveSession:
    """Connected database, blob bucket and recorder."""

    db: ArchiveDB
    blob_store: FilesystemBlobStore
    recorder: ArchiveRecorder
    max_workers: int

    def record_transactions(self, records: Sequence[TransactionRecord]) -> list[IngestOutcome]:
        return self.recorder.record_transactions(records, max_workers=self.max_workers)

    def close(self) -> None:
        """Disconnect. Safe to call more than once."""
        self.db.close()

    def __enter__(self) -> Self:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: object,
    ) -> None:
        self.close()


def connect(settings: ExctraceSettings, *, configure_logs: bool = False) -> ArchiveSession:
    """Connect to the collections and bucket named in settings.

    Args:
        settings: Validated settings
        configure_logs: Also apply settings.logging to structlog and stdlib
            logging. Leave off when the host process owns logging.

    Raises:
        StorageError: If the database or bucket cannot be opened
    """
    if configure_logs:
        configure_from_settings(settings.logging)
    blob_store = FilesystemBlobStore(settings.blob_store.base_path, settings.blob_store.bucket)
    db = ArchiveDB.from_settings(settings.database)
    recorder = ArchiveRecorder(db, OverflowPolicy(blob_store, settings.overflow.max_document_bytes))
    return ArchiveSession(
        db=db,
        blob_store=blob_store,
        recorder=recorder,
        max_workers=settings.concurrency.max_workers,
    )
