"""Tests for JSONL record export."""

import json
from pathlib import Path

import pytest

from exctrace.contracts import ExceptionKind, StorageError, TxStatus
from exctrace.core.export import JsonlRecordWriter, read_jsonl_records
from tests.helpers.records import make_contract_code, make_node, make_record, make_steps, make_tx_hash


class TestJsonlRecordWriter:
    def test_write_and_read_back_in_order(self, tmp_path: Path) -> None:
        path = tmp_path / "export" / "records.jsonl"
        tx1 = make_record((make_node(steps=make_steps(3)),))
        tx2 = make_record(
            (make_node(kind=ExceptionKind.EXPLICIT_REVERT, message="evm: execution reverted"),),
            status=TxStatus.FAILURE,
            tx_hash=make_tx_hash(2),
        )
        code = make_contract_code()

        with JsonlRecordWriter(path) as writer:
            writer.write_transaction(tx1)
            writer.write_contract_code(code)
            writer.write_transaction(tx2)
            assert writer.count == 3

        assert list(read_jsonl_records(path)) == [tx1, code, tx2]

    def test_lines_are_tagged_canonical_json(self, tmp_path: Path) -> None:
        path = tmp_path / "records.jsonl"
        with JsonlRecordWriter(path) as writer:
            writer.write_contract_code(make_contract_code())

        (line,) = path.read_text().splitlines()
        entry = json.loads(line)
        assert entry["collection"] == "contract_code"
        assert entry["document"]["address"] == make_contract_code().address
        assert line == json.dumps(entry, sort_keys=True, separators=(",", ":"), ensure_ascii=False)

    def test_existing_file_is_not_overwritten(self, tmp_path: Path) -> None:
        path = tmp_path / "records.jsonl"
        path.write_text("keep me\n")

        with pytest.raises(StorageError) as exc_info:
            JsonlRecordWriter(path)

        assert exc_info.value.retryable is False
        assert exc_info.value.operation == "connect"
        assert path.read_text() == "keep me\n"

    def test_write_after_close_raises(self, tmp_path: Path) -> None:
        writer = JsonlRecordWriter(tmp_path / "records.jsonl")
        writer.close()
        writer.close()
        with pytest.raises(StorageError, match="writer is closed"):
            writer.write_transaction(make_record())


class TestReadJsonlRecords:
    def test_blank_lines_skipped(self, tmp_path: Path) -> None:
        path = tmp_path / "records.jsonl"
        with JsonlRecordWriter(path) as writer:
            writer.write_transaction(make_record())
        path.write_text(path.read_text() + "\n\n")

        assert len(list(read_jsonl_records(path))) == 1

    def test_unknown_collection_raises(self, tmp_path: Path) -> None:
        path = tmp_path / "records.jsonl"
        path.write_text('{"collection":"receipts","document":{}}\n')

        with pytest.raises(ValueError, match="unknown collection 'receipts'"):
            list(read_jsonl_records(path))
