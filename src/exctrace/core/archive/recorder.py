"""ArchiveRecorder: persist sealed records to the archive collections.

Write path for one transaction:

1. OverflowPolicy.apply() detaches oversized bodies (blob writes happen here)
2. The primary document is inserted in a single database transaction

A record is committed only when both steps succeed. If step 2 fails the
blobs from step 1 remain in the bucket with nothing referencing them; they
are logged as orphaned for out-of-band collection.

Failures are reported per transaction. record_transactions() persists a
batch and returns one outcome per record instead of stopping at the first
StorageError.
"""

from __future__ import annotations

from collections.abc import Sequence
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError as SAIntegrityError
from sqlalchemy.exc import SQLAlchemyError

from exctrace.contracts.errors import ExctraceError, StorageError
from exctrace.contracts.records import ContractCodeRecord, TransactionRecord
from exctrace.core.archive._helpers import now
from exctrace.core.archive.database import ArchiveDB
from exctrace.core.canonical import canonical_json, load_json
from exctrace.core.codec import (
    SCHEMA_VERSION,
    contract_code_from_document,
    contract_code_to_document,
    transaction_from_document,
    transaction_to_document,
)
from exctrace.core.logging import archive_context, get_logger
from exctrace.core.overflow import OverflowPolicy

logger = get_logger(__name__)

# Copied index columns are signed BIGINT.
_BIGINT_MAX = 2**63 - 1


@dataclass(frozen=True)
class IngestOutcome:
    """Result of persisting one record in a batch.

    Exactly one of record and error is set. error is a StorageError for
    backend failures, or another ExctraceError (e.g. IntegrityError for a
    corrupted blob) that is specific to this record.
    """

    tx_hash: str
    record: TransactionRecord | None = None
    error: ExctraceError | None = None

    def __post_init__(self) -> None:
        if (self.record is None) == (self.error is None):
            raise ValueError("IngestOutcome requires exactly one of record or error")

    @property
    def succeeded(self) -> bool:
        return self.error is None


def _overflow_refs(record: TransactionRecord) -> list[str]:
    refs = [node.overflow_ref for node in record.traces if node.overflow_ref is not None]
    if record.overflow_ref is not None:
        refs.append(record.overflow_ref)
    return refs


def _index_value(value: int) -> int | None:
    return value if value <= _BIGINT_MAX else None


class ArchiveRecorder:
    """Persists and loads transaction and contract code records."""

    def __init__(self, db: ArchiveDB, overflow: OverflowPolicy) -> None:
        self._db = db
        self._overflow = overflow

    @property
    def overflow(self) -> OverflowPolicy:
        return self._overflow

    @property
    def _transactions_target(self) -> str:
        return self._db.tables.transactions.name

    @property
    def _contract_codes_target(self) -> str:
        return self._db.tables.contract_codes.name

    # === Transactions ===

    def record_transaction(self, record: TransactionRecord) -> TransactionRecord:
        """Persist a sealed transaction record.

        Args:
            record: Sealed record with all traces inline

        Returns:
            The record as stored (bodies may be detached)

        Raises:
            StorageError: If a blob write or the document write fails
            IntegrityError: If an existing blob with the same content is corrupted

        The record is not committed when anything raises. Log events from
        the whole write, blob store and overflow policy included, carry
        tx_hash, collection and bucket.
        """
        with archive_context(
            tx_hash=record.tx_hash,
            collection=self._transactions_target,
            bucket=self._overflow.store.bucket,
        ):
            return self._insert_transaction(record)

    def _insert_transaction(self, record: TransactionRecord) -> TransactionRecord:
        try:
            persisted = self._overflow.apply(record)
        except StorageError as e:
            e.tx_hash = record.tx_hash
            raise

        table = self._db.tables.transactions
        stmt = table.insert().values(
            tx_hash=persisted.tx_hash,
            block_number=_index_value(persisted.block_number),
            tx_index=_index_value(persisted.tx_index),
            has_exception=persisted.has_exception,
            num_steps=_index_value(persisted.num_steps),
            overflow_ref=persisted.overflow_ref,
            schema_version=SCHEMA_VERSION,
            document=canonical_json(transaction_to_document(persisted)),
            recorded_at=now(),
        )
        try:
            with self._db.connection() as conn:
                conn.execute(stmt)
        except SQLAlchemyError as e:
            orphaned = _overflow_refs(persisted)
            if orphaned:
                logger.warning("overflow_blobs_orphaned", refs=orphaned)
            raise StorageError(
                str(e),
                target=self._transactions_target,
                operation="write",
                retryable=not isinstance(e, SAIntegrityError),
                tx_hash=persisted.tx_hash,
            ) from e

        logger.debug("transaction_recorded", traces=len(persisted.traces), has_exception=persisted.has_exception)
        return persisted

    def record_transactions(
        self,
        records: Sequence[TransactionRecord],
        *,
        max_workers: int = 4,
    ) -> list[IngestOutcome]:
        """Persist many records concurrently, one outcome per record.

        Outcomes are returned in input order. An ExctraceError for one record
        (storage or blob integrity) does not affect the others; any other
        exception is a bug and propagates.
        """
        if max_workers <= 0:
            raise ValueError(f"max_workers must be positive, got {max_workers}")

        def _persist(record: TransactionRecord) -> IngestOutcome:
            try:
                return IngestOutcome(tx_hash=record.tx_hash, record=self.record_transaction(record))
            except ExctraceError as e:
                logger.error(
                    "transaction_record_failed",
                    tx_hash=record.tx_hash,
                    error_type=type(e).__name__,
                    error=str(e),
                )
                return IngestOutcome(tx_hash=record.tx_hash, error=e)

        with ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix="exctrace-ingest") as pool:
            return list(pool.map(_persist, records))

    def get_transaction(self, tx_hash: str, *, rehydrate: bool = True) -> TransactionRecord | None:
        """Load a transaction record.

        Args:
            tx_hash: Transaction hash
            rehydrate: Fetch detached bodies from the blob store

        Returns:
            The record, or None if it was never archived

        Raises:
            StorageError: If the read or a blob fetch fails
        """
        table = self._db.tables.transactions
        try:
            with self._db.connection() as conn:
                row = conn.execute(select(table.c.document).where(table.c.tx_hash == tx_hash)).fetchone()
        except SQLAlchemyError as e:
            raise StorageError(str(e), target=self._transactions_target, operation="read", tx_hash=tx_hash) from e

        if row is None:
            return None
        record = transaction_from_document(load_json(row.document))
        return self._overflow.rehydrate(record) if rehydrate else record

    # === Contract code ===

    def record_contract_code(self, record: ContractCodeRecord) -> None:
        """Persist a contract code record.

        Raises:
            StorageError: If the write fails (not retryable for an address
                that is already archived)
        """
        table = self._db.tables.contract_codes
        stmt = table.insert().values(
            address=record.address,
            tx_hash=record.tx_hash,
            schema_version=SCHEMA_VERSION,
            document=canonical_json(contract_code_to_document(record)),
            recorded_at=now(),
        )
        try:
            with self._db.connection() as conn:
                conn.execute(stmt)
        except SQLAlchemyError as e:
            raise StorageError(
                str(e),
                target=self._contract_codes_target,
                operation="write",
                retryable=not isinstance(e, SAIntegrityError),
                tx_hash=record.tx_hash,
            ) from e

    def get_contract_code(self, address: str) -> ContractCodeRecord | None:
        """Load the contract code record for an address, or None."""
        table = self._db.tables.contract_codes
        try:
            with self._db.connection() as conn:
                row = conn.execute(select(table.c.document).where(table.c.address == address)).fetchone()
        except SQLAlchemyError as e:
            raise StorageError(str(e), target=self._contract_codes_target, operation="read") from e
        if row is None:
            return None
        return contract_code_from_document(load_json(row.document))
