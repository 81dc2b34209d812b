"""Property tests for document encoding."""

from hypothesis import given

from exctrace.contracts import ExecutionStep, TraceNode, TransactionRecord
from exctrace.core.canonical import canonical_json, load_json
from exctrace.core.codec import (
    decode_quantity,
    encode_quantity,
    steps_from_document,
    steps_to_document,
    transaction_from_document,
    transaction_to_document,
)
from tests.strategies import DETERMINISM_SETTINGS, STANDARD_SETTINGS, step_sequences, trace_nodes, transaction_records
from tests.strategies.records import uint256s


class TestCodecProperties:
    @given(value=uint256s)
    @STANDARD_SETTINGS
    def test_quantity_round_trip(self, value: int) -> None:
        assert decode_quantity(encode_quantity(value)) == value

    @given(record=transaction_records())
    @STANDARD_SETTINGS
    def test_transaction_survives_canonical_json(self, record: TransactionRecord) -> None:
        text = canonical_json(transaction_to_document(record))
        assert transaction_from_document(load_json(text)) == record

    @given(steps=step_sequences())
    @STANDARD_SETTINGS
    def test_step_log_survives_canonical_json(self, steps: tuple[ExecutionStep, ...]) -> None:
        text = canonical_json(steps_to_document(steps))
        assert steps_from_document(load_json(text)) == steps

    @given(record=transaction_records())
    @DETERMINISM_SETTINGS
    def test_encoding_is_deterministic(self, record: TransactionRecord) -> None:
        assert canonical_json(transaction_to_document(record)) == canonical_json(transaction_to_document(record))

    @given(node=trace_nodes())
    @STANDARD_SETTINGS
    def test_generated_nodes_keep_message_iff_failed(self, node: TraceNode) -> None:
        assert bool(node.error_message) == node.exception_kind.is_exception
