"""Tests for opening an archive from settings."""

from pathlib import Path

from exctrace.core.archive import connect
from exctrace.core.config import (
    BlobStoreSettings,
    ConcurrencySettings,
    DatabaseSettings,
    ExctraceSettings,
    OverflowSettings,
)
from tests.helpers.records import make_node, make_record, make_steps, make_tx_hash


def _settings(tmp_path: Path, **overflow: int) -> ExctraceSettings:
    return ExctraceSettings(
        database=DatabaseSettings(url=f"sqlite:///{tmp_path / 'archive.db'}", transactions_collection="tx_records"),
        blob_store=BlobStoreSettings(base_path=tmp_path / "blobs", bucket="overflow"),
        overflow=OverflowSettings(**overflow),
        concurrency=ConcurrencySettings(max_workers=2),
    )


class TestConnect:
    def test_connect_wires_settings(self, tmp_path: Path) -> None:
        with connect(_settings(tmp_path, max_document_bytes=1_000)) as archive:
            assert archive.db.tables.transactions.name == "tx_records"
            assert archive.blob_store.bucket == "overflow"
            assert archive.recorder.overflow.max_document_bytes == 1_000
            assert archive.max_workers == 2
        assert archive.db.is_closed
        assert (tmp_path / "blobs" / "overflow").is_dir()

    def test_session_records_batch(self, tmp_path: Path) -> None:
        records = [make_record((make_node(steps=make_steps(50)),), tx_hash=make_tx_hash(n)) for n in (1, 2, 3)]

        with connect(_settings(tmp_path, max_document_bytes=1_000)) as archive:
            outcomes = archive.record_transactions(records)
            loaded = [archive.recorder.get_transaction(r.tx_hash) for r in records]

        assert all(o.succeeded for o in outcomes)
        assert loaded == records
        assert any((tmp_path / "blobs" / "overflow").rglob("*"))

    def test_close_is_idempotent(self, tmp_path: Path) -> None:
        archive = connect(_settings(tmp_path))
        archive.close()
        archive.close()
        assert archive.db.is_closed
