"""SQLAlchemy table definitions for the archive collections.

Uses SQLAlchemy Core (not ORM). Each collection is a table keyed by its
natural identifier, with the full canonical JSON document in `document`
and a few copied columns for indexing. The document is the source of
truth; the copied columns are never read back into records.

Collection names are configurable, so tables are built per ArchiveDB
rather than declared once at import time.
"""

from dataclasses import dataclass

from sqlalchemy import (
    BigInteger,
    Boolean,
    Column,
    DateTime,
    Index,
    Integer,
    MetaData,
    String,
    Table,
    Text,
)

DEFAULT_TRANSACTIONS_COLLECTION = "transactions"
DEFAULT_CONTRACT_CODES_COLLECTION = "contract_codes"


@dataclass(frozen=True)
class ArchiveTables:
    """Table handles for one archive database."""

    metadata: MetaData
    transactions: Table
    contract_codes: Table


def build_tables(
    transactions_collection: str = DEFAULT_TRANSACTIONS_COLLECTION,
    contract_codes_collection: str = DEFAULT_CONTRACT_CODES_COLLECTION,
) -> ArchiveTables:
    """Build table definitions for the given collection names."""
    metadata = MetaData()

    transactions = Table(
        transactions_collection,
        metadata,
        Column("tx_hash", String(66), primary_key=True),
        # Copied counters are NULL when the uint64 value does not fit a
        # signed BIGINT; the document always holds the exact value.
        Column("block_number", BigInteger),
        Column("tx_index", BigInteger),
        Column("has_exception", Boolean, nullable=False),
        Column("num_steps", BigInteger),
        # Whole trace sequence detached to the blob bucket
        Column("overflow_ref", String(64)),
        Column("schema_version", Integer, nullable=False),
        Column("document", Text, nullable=False),
        Column("recorded_at", DateTime(timezone=True), nullable=False),
        Index(f"ix_{transactions_collection}_block", "block_number", "tx_index"),
        Index(f"ix_{transactions_collection}_has_exception", "has_exception"),
    )

    contract_codes = Table(
        contract_codes_collection,
        metadata,
        Column("address", String(42), primary_key=True),
        # Correlates with transactions.tx_hash. Not a foreign key: the two
        # collections are written independently and in either order.
        Column("tx_hash", String(66), nullable=False),
        Column("schema_version", Integer, nullable=False),
        Column("document", Text, nullable=False),
        Column("recorded_at", DateTime(timezone=True), nullable=False),
        Index(f"ix_{contract_codes_collection}_tx_hash", "tx_hash"),
    )

    return ArchiveTables(metadata=metadata, transactions=transactions, contract_codes=contract_codes)
