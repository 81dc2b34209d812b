"""Property tests for the filesystem blob store."""

import hashlib
from pathlib import Path

from hypothesis import given

from exctrace.core.blob_store import FilesystemBlobStore
from tests.strategies import SLOW_SETTINGS, binary_content


class TestBlobStoreProperties:
    @given(content=binary_content)
    @SLOW_SETTINGS
    def test_store_retrieve_round_trip(self, tmp_path: Path, content: bytes) -> None:
        store = FilesystemBlobStore(tmp_path, bucket="exception_bucket")
        ref = store.store(content)
        assert ref == hashlib.sha256(content).hexdigest()
        assert store.retrieve(ref) == content

    @given(content=binary_content)
    @SLOW_SETTINGS
    def test_repeated_store_returns_same_ref(self, tmp_path: Path, content: bytes) -> None:
        store = FilesystemBlobStore(tmp_path, bucket="exception_bucket")
        assert store.store(content) == store.store(content)
