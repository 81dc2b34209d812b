"""Detach oversized trace bodies into blob storage.

Document stores cap the size of a single inline document. After a record is
sealed, OverflowPolicy.apply() shrinks it in two passes:

1. Any trace node whose own document exceeds the limit has its step log
   written as a blob; the node keeps the reference and an empty step tuple.
2. If the whole transaction document is still over the limit, the encoded
   trace sequence is written as a blob; the record keeps the reference and
   an empty trace tuple.

Records are immutable, so each pass builds new objects. A node or record is
only rewritten after its blob write returned a reference: when a write
fails, the StorageError propagates and the caller still holds the original
record. Blobs written before the failure are orphaned and must be collected
out of band.
"""

from __future__ import annotations

from dataclasses import dataclass

from exctrace.contracts.blob_store import BlobStore, is_content_ref
from exctrace.contracts.records import TraceNode, TransactionRecord
from exctrace.core.canonical import canonical_bytes, document_size, load_json
from exctrace.core.codec import (
    steps_from_document,
    steps_to_document,
    trace_to_document,
    traces_from_document,
    traces_to_document,
    transaction_to_document,
)
from exctrace.core.logging import get_logger

# Maximum inline document size of MongoDB-style stores (16 MiB).
DEFAULT_MAX_DOCUMENT_BYTES = 16 * 1024 * 1024

logger = get_logger(__name__)


@dataclass(frozen=True)
class OverflowReport:
    """What apply() detached for one record."""

    tx_hash: str
    original_bytes: int
    final_bytes: int
    detached_nodes: int
    detached_traces: bool
    # Still over the limit after both passes (e.g. a very large tx input)
    exceeds_limit: bool = False

    @property
    def overflowed(self) -> bool:
        return self.detached_nodes > 0 or self.detached_traces


class OverflowPolicy:
    """Size-overflow policy for transaction records."""

    def __init__(self, store: BlobStore, max_document_bytes: int = DEFAULT_MAX_DOCUMENT_BYTES) -> None:
        if max_document_bytes <= 0:
            raise ValueError(f"max_document_bytes must be positive, got {max_document_bytes}")
        self._store = store
        self._max_document_bytes = max_document_bytes

    @property
    def max_document_bytes(self) -> int:
        return self._max_document_bytes

    @property
    def store(self) -> BlobStore:
        return self._store

    def is_oversized(self, document: object) -> bool:
        return document_size(document) > self._max_document_bytes

    def _detach_node(self, node: TraceNode) -> TraceNode:
        if node.is_detached or not node.steps:
            return node
        if not self.is_oversized(trace_to_document(node)):
            return node
        ref = self._store.store(canonical_bytes(steps_to_document(node.steps)))
        return node.detach_steps(ref)

    def apply(self, record: TransactionRecord) -> TransactionRecord:
        """Return record with oversized bodies detached.

        Raises:
            StorageError: If a blob write fails (record is not modified)
        """
        return self.apply_with_report(record)[0]

    def apply_with_report(self, record: TransactionRecord) -> tuple[TransactionRecord, OverflowReport]:
        """Like apply(), also reporting what was detached."""
        original_bytes = document_size(transaction_to_document(record))
        if original_bytes <= self._max_document_bytes or record.is_detached:
            exceeds_limit = original_bytes > self._max_document_bytes
            return record, OverflowReport(record.tx_hash, original_bytes, original_bytes, 0, False, exceeds_limit)

        traces = tuple(self._detach_node(node) for node in record.traces)
        detached_nodes = sum(1 for before, after in zip(record.traces, traces, strict=True) if before is not after)
        result = record.attach_traces(traces)

        detached_traces = False
        if self.is_oversized(transaction_to_document(result)):
            ref = self._store.store(canonical_bytes(traces_to_document(result.traces)))
            result = result.detach_traces(ref)
            detached_traces = True

        final_bytes = document_size(transaction_to_document(result))
        exceeds_limit = final_bytes > self._max_document_bytes
        report = OverflowReport(record.tx_hash, original_bytes, final_bytes, detached_nodes, detached_traces, exceeds_limit)
        logger.info(
            "record_overflowed",
            tx_hash=record.tx_hash,
            original_bytes=original_bytes,
            final_bytes=final_bytes,
            detached_nodes=detached_nodes,
            detached_traces=detached_traces,
            bucket=self._store.bucket,
        )
        if exceeds_limit:
            logger.warning(
                "record_exceeds_limit_after_overflow",
                tx_hash=record.tx_hash,
                final_bytes=final_bytes,
                max_document_bytes=self._max_document_bytes,
            )
        return result, report

    def rehydrate(self, record: TransactionRecord) -> TransactionRecord:
        """Fetch detached bodies and return the record with everything inline.

        References that are not content references (object ids in documents
        from the first archival snapshot) cannot be fetched from this store;
        those bodies stay detached and the reference is kept.

        Raises:
            KeyError: If a referenced blob is missing
            IntegrityError: If a blob is corrupted
            StorageError: If a fetch fails
        """
        result = record
        if record.overflow_ref is not None and self._fetchable(record.overflow_ref):
            traces = traces_from_document(load_json(self._store.retrieve(record.overflow_ref)))
            result = record.attach_traces(traces)

        if not any(node.is_detached for node in result.traces):
            return result

        restored = tuple(self._rehydrate_node(node) for node in result.traces)
        return result.attach_traces(restored)

    def _fetchable(self, ref: str) -> bool:
        if is_content_ref(ref):
            return True
        logger.warning("overflow_ref_not_fetchable", ref=ref, bucket=self._store.bucket)
        return False

    def _rehydrate_node(self, node: TraceNode) -> TraceNode:
        if node.overflow_ref is None or not self._fetchable(node.overflow_ref):
            return node
        steps = steps_from_document(load_json(self._store.retrieve(node.overflow_ref)))
        return node.attach_steps(steps)
