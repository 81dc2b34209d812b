"""Archive: persistence boundary for trace records.

Two collections live in the document database (transactions and
contract_codes); oversized trace bodies go to a blob bucket through the
overflow policy.

Usage:
    with connect(settings) as archive:
        archive.recorder.record_transaction(record)
"""

from exctrace.core.archive.database import ArchiveDB
from exctrace.core.archive.recorder import ArchiveRecorder, IngestOutcome
from exctrace.core.archive.schema import ArchiveTables, build_tables
from exctrace.core.archive.session import ArchiveSession, connect

__all__ = [
    "ArchiveDB",
    "ArchiveRecorder",
    "ArchiveSession",
    "ArchiveTables",
    "IngestOutcome",
    "build_tables",
    "connect",
]
