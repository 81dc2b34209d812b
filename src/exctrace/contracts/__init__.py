"""Shared contracts for cross-boundary data types.

All dataclasses, enums, and protocols that cross subsystem boundaries are
defined here. This package is a LEAF MODULE with no outbound dependencies
to core.

Import patterns:
    # Contracts (lightweight, no heavy dependencies)
    from exctrace.contracts import ExceptionKind, TraceNode, TransactionRecord

    # Settings classes (from core, pulls in pydantic/dynaconf)
    from exctrace.core.config import ExctraceSettings
"""

from exctrace.contracts.blob_store import BlobStore, IntegrityError, is_content_ref
from exctrace.contracts.enums import CallType, ExceptionKind, TxStatus
from exctrace.contracts.errors import (
    ExctraceError,
    SchemaVersionError,
    StorageError,
    TraceFinalizedError,
)
from exctrace.contracts.records import (
    UINT64_MAX,
    UINT256_MAX,
    ContractCodeRecord,
    ExecutionStep,
    TraceNode,
    TransactionFields,
    TransactionRecord,
    derive_has_exception,
    fits_uint64,
)

__all__ = [
    "UINT256_MAX",
    "UINT64_MAX",
    "BlobStore",
    "CallType",
    "ContractCodeRecord",
    "ExceptionKind",
    "ExctraceError",
    "ExecutionStep",
    "IntegrityError",
    "SchemaVersionError",
    "StorageError",
    "TraceFinalizedError",
    "TraceNode",
    "TransactionFields",
    "TransactionRecord",
    "TxStatus",
    "derive_has_exception",
    "fits_uint64",
    "is_content_ref",
]
