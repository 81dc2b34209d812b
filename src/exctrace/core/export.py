"""JSONL export of archive records.

An append-only file of canonical JSON documents, one per line, for shipping
records without a database. The file is created exclusively: an existing
export is never overwritten or appended to by a new writer.

Each line is tagged with its collection so transaction and contract code
documents can share one file.
"""

from __future__ import annotations

from collections.abc import Iterator
from pathlib import Path
from typing import IO, Self

from exctrace.contracts.errors import StorageError
from exctrace.contracts.records import ContractCodeRecord, TransactionRecord
from exctrace.core.canonical import canonical_json, load_json
from exctrace.core.codec import (
    contract_code_from_document,
    contract_code_to_document,
    transaction_from_document,
    transaction_to_document,
)
from exctrace.core.logging import get_logger

logger = get_logger(__name__)

_TRANSACTION = "transaction"
_CONTRACT_CODE = "contract_code"


class JsonlRecordWriter:
    """Write records to a new JSONL file."""

    def __init__(self, path: Path) -> None:
        """Create the export file.

        Raises:
            StorageError: If the file already exists or cannot be created
                (not retryable when it exists)
        """
        self._path = path
        self._count = 0
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            self._file: IO[str] | None = path.open("x", encoding="utf-8")
        except FileExistsError as e:
            raise StorageError(str(e), target=str(path), operation="connect", retryable=False) from e
        except OSError as e:
            raise StorageError(str(e), target=str(path), operation="connect") from e

    @property
    def path(self) -> Path:
        return self._path

    @property
    def count(self) -> int:
        return self._count

    def _write_line(self, kind: str, document: dict[str, object]) -> None:
        if self._file is None:
            raise StorageError("writer is closed", target=str(self._path), operation="write", retryable=False)
        line = canonical_json({"collection": kind, "document": document})
        try:
            self._file.write(line + "\n")
        except OSError as e:
            raise StorageError(str(e), target=str(self._path), operation="write") from e
        self._count += 1

    def write_transaction(self, record: TransactionRecord) -> None:
        self._write_line(_TRANSACTION, transaction_to_document(record))

    def write_contract_code(self, record: ContractCodeRecord) -> None:
        self._write_line(_CONTRACT_CODE, contract_code_to_document(record))

    def close(self) -> None:
        """Flush and close. Safe to call more than once."""
        if self._file is None:
            return
        file, self._file = self._file, None
        try:
            file.close()
        except OSError as e:
            raise StorageError(str(e), target=str(self._path), operation="disconnect") from e
        logger.info("jsonl_export_closed", path=str(self._path), records=self._count)

    def __enter__(self) -> Self:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: object,
    ) -> None:
        self.close()


def read_jsonl_records(path: Path) -> Iterator[TransactionRecord | ContractCodeRecord]:
    """Yield records from an export file in the order they were written.

    Raises:
        ValueError: If a line has an unknown collection tag
    """
    with path.open(encoding="utf-8") as f:
        for line_no, line in enumerate(f, start=1):
            if not line.strip():
                continue
            entry = load_json(line)
            kind = entry["collection"]
            if kind == _TRANSACTION:
                yield transaction_from_document(entry["document"])
            elif kind == _CONTRACT_CODE:
                yield contract_code_from_document(entry["document"])
            else:
                raise ValueError(f"{path}:{line_no}: unknown collection {kind!r}")
