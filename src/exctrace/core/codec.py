"""Convert records to and from self-describing archive documents.

This is the seam between plain JSON documents and the strict record
contracts. Documents read back from the archive are OUR data: malformed
content raises (KeyError/TypeError/ValueError) rather than being repaired.

Schema versions:
    1 - Documents written by the first archival snapshot. Field names are
        lower-cased struct names (blocknum, callstackdepth, tracedocid, ...),
        numbers are plain integers, and there is no nonce, value, input, gas
        price, call type or per-step gas. No schema_version key.
    2 - Current shape. snake_case keys. Every unsigned number (wei values,
        gas, block and step counters) is a 0x-prefixed hex string, since
        canonical JSON only carries integers up to 2**53 - 1.

Only the current version is ever written. Every version has a decoder.
"""

from __future__ import annotations

from collections.abc import Callable
from typing import Any

from exctrace.contracts.enums import CallType, ExceptionKind, TxStatus
from exctrace.contracts.errors import SchemaVersionError
from exctrace.contracts.records import (
    ContractCodeRecord,
    ExecutionStep,
    TraceNode,
    TransactionRecord,
    derive_has_exception,
)
from exctrace.core.classifier import UNKNOWN_ERROR_MESSAGE

SCHEMA_VERSION = 2
_LEGACY_SCHEMA_VERSION = 1

Document = dict[str, Any]


# === Quantities ===


def encode_quantity(value: int) -> str:
    """Encode a non-negative integer as a JSON-RPC style hex quantity."""
    if value < 0:
        raise ValueError(f"Quantities are unsigned, got {value}")
    return hex(value)


def decode_quantity(raw: object) -> int:
    """Decode a 0x-prefixed hex quantity."""
    if not isinstance(raw, str) or not raw.startswith("0x") or len(raw) < 3:
        raise ValueError(f"Expected 0x-prefixed hex quantity, got {raw!r}")
    return int(raw, 16)


def _encode_optional_quantity(value: int | None) -> str | None:
    return encode_quantity(value) if value is not None else None


def _decode_optional_quantity(raw: object) -> int | None:
    return decode_quantity(raw) if raw is not None else None


def _document_version(doc: Document) -> int:
    version = doc.get("schema_version", _LEGACY_SCHEMA_VERSION)
    # bool and float compare equal to valid versions
    if type(version) is not int or version not in (_LEGACY_SCHEMA_VERSION, SCHEMA_VERSION):
        raise SchemaVersionError(version)
    return version


# === Steps ===


def step_to_document(step: ExecutionStep) -> Document:
    return {
        "step_num": encode_quantity(step.step_num),
        "pc": encode_quantity(step.pc),
        "op": step.op,
        "gas_remaining": _encode_optional_quantity(step.gas_remaining),
        "immediate": step.immediate,
    }


def step_from_document(doc: Document) -> ExecutionStep:
    return ExecutionStep(
        step_num=decode_quantity(doc["step_num"]),
        pc=decode_quantity(doc["pc"]),
        op=doc["op"],
        gas_remaining=_decode_optional_quantity(doc["gas_remaining"]),
        immediate=doc["immediate"],
    )


def steps_to_document(steps: tuple[ExecutionStep, ...]) -> Document:
    """Standalone document for a detached step log."""
    return {"schema_version": SCHEMA_VERSION, "steps": [step_to_document(s) for s in steps]}


def steps_from_document(doc: Document) -> tuple[ExecutionStep, ...]:
    _document_version(doc)
    return tuple(step_from_document(s) for s in doc["steps"])


# === Trace nodes ===


def trace_to_document(node: TraceNode) -> Document:
    return {
        "depth": encode_quantity(node.depth),
        "call_type": node.call_type,
        "sender": node.sender,
        "recipient": node.recipient,
        "value": encode_quantity(node.value),
        "input": node.input,
        "gas_limit": _encode_optional_quantity(node.gas_limit),
        "gas_remaining": _encode_optional_quantity(node.gas_remaining),
        "status": node.status,
        "exception_kind": node.exception_kind,
        "error_message": node.error_message,
        "created_address": node.created_address,
        "steps": [step_to_document(s) for s in node.steps],
        "overflow_ref": node.overflow_ref,
    }


def trace_from_document(doc: Document) -> TraceNode:
    return TraceNode(
        depth=decode_quantity(doc["depth"]),
        call_type=CallType(doc["call_type"]),
        sender=doc["sender"],
        recipient=doc["recipient"],
        value=decode_quantity(doc["value"]),
        input=doc["input"],
        gas_limit=_decode_optional_quantity(doc["gas_limit"]),
        gas_remaining=_decode_optional_quantity(doc["gas_remaining"]),
        status=TxStatus(doc["status"]),
        exception_kind=ExceptionKind(doc["exception_kind"]),
        error_message=doc["error_message"],
        created_address=doc["created_address"],
        steps=tuple(step_from_document(s) for s in doc["steps"]),
        overflow_ref=doc["overflow_ref"],
    )


def traces_to_document(traces: tuple[TraceNode, ...]) -> Document:
    """Standalone document for a detached trace sequence."""
    return {"schema_version": SCHEMA_VERSION, "traces": [trace_to_document(t) for t in traces]}


def traces_from_document(doc: Document) -> tuple[TraceNode, ...]:
    if _document_version(doc) == _LEGACY_SCHEMA_VERSION:
        return tuple(_legacy_trace_from_document(t) for t in doc["traces"])
    return tuple(trace_from_document(t) for t in doc["traces"])


# === Transactions ===


def transaction_to_document(record: TransactionRecord) -> Document:
    return {
        "schema_version": SCHEMA_VERSION,
        "block_number": encode_quantity(record.block_number),
        "tx_index": encode_quantity(record.tx_index),
        "nonce": encode_quantity(record.nonce),
        "tx_hash": record.tx_hash,
        "sender": record.sender,
        "recipient": record.recipient,
        "value": encode_quantity(record.value),
        "input": record.input,
        "gas_limit": encode_quantity(record.gas_limit),
        "gas_price": encode_quantity(record.gas_price),
        "created_address": record.created_address,
        "status": record.status,
        "num_steps": encode_quantity(record.num_steps),
        "has_exception": record.has_exception,
        "traces": [trace_to_document(t) for t in record.traces],
        "overflow_ref": record.overflow_ref,
    }


def _transaction_from_v2(doc: Document) -> TransactionRecord:
    return TransactionRecord(
        block_number=decode_quantity(doc["block_number"]),
        tx_index=decode_quantity(doc["tx_index"]),
        nonce=decode_quantity(doc["nonce"]),
        tx_hash=doc["tx_hash"],
        sender=doc["sender"],
        recipient=doc["recipient"],
        value=decode_quantity(doc["value"]),
        input=doc["input"],
        gas_limit=decode_quantity(doc["gas_limit"]),
        gas_price=decode_quantity(doc["gas_price"]),
        created_address=doc["created_address"],
        status=TxStatus(doc["status"]),
        num_steps=decode_quantity(doc["num_steps"]),
        has_exception=doc["has_exception"],
        traces=tuple(trace_from_document(t) for t in doc["traces"]),
        overflow_ref=doc["overflow_ref"],
    )


def _legacy_trace_from_document(doc: Document) -> TraceNode:
    # The first snapshot stored the kind code as the source of truth and did
    # not record call type, so status is derived from the code and the call
    # type from whether a recipient existed.
    kind = ExceptionKind(doc["errorcode"])
    message = doc["errormsg"] if kind.is_exception else ""
    if kind.is_exception and not message:
        message = UNKNOWN_ERROR_MESSAGE
    recipient = doc["to"] or None
    doc_ref = doc["tracedocid"] or None
    return TraceNode(
        depth=doc["callstackdepth"],
        call_type=CallType.CALL if recipient is not None else CallType.CREATE,
        sender=doc["from"],
        recipient=recipient,
        value=0,
        input="0x",
        gas_limit=None,
        gas_remaining=None,
        status=TxStatus.FAILURE if kind.is_exception else TxStatus.SUCCESS,
        exception_kind=kind,
        error_message=message,
        steps=() if doc_ref else tuple(ExecutionStep(step_num=s["stepnum"], pc=s["pc"], op=s["opcode"]) for s in doc["steps"] or ()),
        overflow_ref=doc_ref,
    )


def _transaction_from_v1(doc: Document) -> TransactionRecord:
    status = TxStatus(doc["statuscode"])
    traces = tuple(_legacy_trace_from_document(t) for t in doc["traces"] or ())
    return TransactionRecord(
        block_number=doc["blocknum"],
        tx_index=doc["txindex"],
        nonce=0,
        tx_hash=doc["txhash"],
        sender=doc["from"],
        recipient=doc["to"] or None,
        value=0,
        input="0x",
        gas_limit=doc["gaslimit"],
        gas_price=0,
        status=status,
        num_steps=doc["numsteps"],
        has_exception=derive_has_exception(status, traces),
        traces=traces,
    )


_TRANSACTION_DECODERS: dict[int, Callable[[Document], TransactionRecord]] = {
    _LEGACY_SCHEMA_VERSION: _transaction_from_v1,
    SCHEMA_VERSION: _transaction_from_v2,
}


def transaction_from_document(doc: Document) -> TransactionRecord:
    """Decode a transaction document of any supported schema version.

    Raises:
        SchemaVersionError: If schema_version is unknown
    """
    return _TRANSACTION_DECODERS[_document_version(doc)](doc)


# === Contract code ===


def contract_code_to_document(record: ContractCodeRecord) -> Document:
    return {
        "schema_version": SCHEMA_VERSION,
        "address": record.address,
        "code": record.code,
        "creator": record.creator,
        "nonce": encode_quantity(record.nonce),
        "value": encode_quantity(record.value),
        "gas_limit": encode_quantity(record.gas_limit),
        "gas_price": encode_quantity(record.gas_price),
        "init_code": record.init_code,
        "tx_hash": record.tx_hash,
        "is_external": record.is_external,
    }


def contract_code_from_document(doc: Document) -> ContractCodeRecord:
    if _document_version(doc) != SCHEMA_VERSION:
        # Contract code was never archived under the first snapshot.
        raise SchemaVersionError(doc.get("schema_version"))
    return ContractCodeRecord(
        address=doc["address"],
        code=doc["code"],
        creator=doc["creator"],
        nonce=decode_quantity(doc["nonce"]),
        value=decode_quantity(doc["value"]),
        gas_limit=decode_quantity(doc["gas_limit"]),
        gas_price=decode_quantity(doc["gas_price"]),
        init_code=doc["init_code"],
        tx_hash=doc["tx_hash"],
        is_external=doc["is_external"],
    )
