# src/exctrace/core/__init__.py
"""Core infrastructure: Classifier, Assembler, Codec, Overflow, Archive, Configuration, Logging."""

from exctrace.contracts import BlobStore, IntegrityError
from exctrace.core.archive import (
    ArchiveDB,
    ArchiveRecorder,
    ArchiveSession,
    IngestOutcome,
    connect,
)
from exctrace.core.assembler import (
    TraceBuilder,
    TransactionAssembler,
    TransactionHandle,
)
from exctrace.core.blob_store import FilesystemBlobStore
from exctrace.core.canonical import canonical_json
from exctrace.core.classifier import classify
from exctrace.core.codec import (
    SCHEMA_VERSION,
    transaction_from_document,
    transaction_to_document,
)
from exctrace.core.config import (
    BlobStoreSettings,
    ConcurrencySettings,
    DatabaseSettings,
    ExctraceSettings,
    LoggingSettings,
    OverflowSettings,
    load_settings,
)
from exctrace.core.export import JsonlRecordWriter, read_jsonl_records
from exctrace.core.logging import (
    archive_context,
    configure_from_settings,
    configure_logging,
    get_logger,
)
from exctrace.core.overflow import OverflowPolicy, OverflowReport

__all__ = [
    "SCHEMA_VERSION",
    "ArchiveDB",
    "ArchiveRecorder",
    "ArchiveSession",
    "BlobStore",
    "BlobStoreSettings",
    "ConcurrencySettings",
    "DatabaseSettings",
    "ExctraceSettings",
    "FilesystemBlobStore",
    "IngestOutcome",
    "IntegrityError",
    "JsonlRecordWriter",
    "LoggingSettings",
    "OverflowPolicy",
    "OverflowReport",
    "OverflowSettings",
    "TraceBuilder",
    "TransactionAssembler",
    "TransactionHandle",
    "archive_context",
    "canonical_json",
    "classify",
    "configure_from_settings",
    "configure_logging",
    "connect",
    "get_logger",
    "load_settings",
    "read_jsonl_records",
    "transaction_from_document",
    "transaction_to_document",
]
