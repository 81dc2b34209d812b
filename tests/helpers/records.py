"""Record factories shared by unit and property tests."""

from __future__ import annotations

from typing import Any

from exctrace.contracts import (
    CallType,
    ContractCodeRecord,
    ExceptionKind,
    ExecutionStep,
    TraceNode,
    TransactionFields,
    TransactionRecord,
    TxStatus,
    derive_has_exception,
)

SENDER = "0x" + "a1" * 20
RECIPIENT = "0x" + "b2" * 20
CONTRACT = "0x" + "c3" * 20


def make_tx_hash(n: int = 1) -> str:
    return "0x" + format(n, "064x")


def make_fields(**overrides: Any) -> TransactionFields:
    values: dict[str, Any] = {
        "block_number": 6_700_000,
        "tx_index": 3,
        "nonce": 17,
        "tx_hash": make_tx_hash(),
        "sender": SENDER,
        "recipient": RECIPIENT,
        "value": 10**18,
        "input": "0xa9059cbb",
        "gas_limit": 300_000,
        "gas_price": 20 * 10**9,
    }
    values.update(overrides)
    return TransactionFields(**values)


def make_steps(count: int, *, start_gas: int = 10_000_000) -> tuple[ExecutionStep, ...]:
    return tuple(
        ExecutionStep(step_num=i, pc=(i - 1) * 2, op="PUSH1" if i % 2 else "ADD", gas_remaining=max(start_gas - 3 * i, 0), immediate="0x60" if i % 2 else None)
        for i in range(1, count + 1)
    )


def make_node(
    *,
    depth: int = 0,
    kind: ExceptionKind = ExceptionKind.NONE,
    message: str | None = None,
    steps: tuple[ExecutionStep, ...] = (),
    call_type: CallType = CallType.CALL,
    **overrides: Any,
) -> TraceNode:
    values: dict[str, Any] = {
        "depth": depth,
        "call_type": call_type,
        "sender": SENDER,
        "recipient": RECIPIENT,
        "value": 0,
        "input": "0x",
        "gas_limit": 100_000,
        "gas_remaining": 58_000,
        "status": TxStatus.SUCCESS if kind is ExceptionKind.NONE else TxStatus.FAILURE,
        "exception_kind": kind,
        "error_message": message if message is not None else ("" if kind is ExceptionKind.NONE else "out of gas"),
        "steps": steps,
    }
    values.update(overrides)
    return TraceNode(**values)


def make_record(
    traces: tuple[TraceNode, ...] = (),
    *,
    status: TxStatus = TxStatus.SUCCESS,
    **overrides: Any,
) -> TransactionRecord:
    fields = make_fields()
    values: dict[str, Any] = {
        "block_number": fields.block_number,
        "tx_index": fields.tx_index,
        "nonce": fields.nonce,
        "tx_hash": fields.tx_hash,
        "sender": fields.sender,
        "recipient": fields.recipient,
        "value": fields.value,
        "input": fields.input,
        "gas_limit": fields.gas_limit,
        "gas_price": fields.gas_price,
        "status": status,
        "num_steps": sum(len(t.steps) for t in traces),
        "has_exception": derive_has_exception(status, traces),
        "traces": traces,
    }
    values.update(overrides)
    return TransactionRecord(**values)


def make_contract_code(**overrides: Any) -> ContractCodeRecord:
    values: dict[str, Any] = {
        "address": CONTRACT,
        "code": "0x6080604052348015600f57600080fd5b50",
        "creator": SENDER,
        "nonce": 4,
        "value": 0,
        "gas_limit": 1_500_000,
        "gas_price": 10**9,
        "init_code": "0x608060405234801561001057600080fd5b50",
        "tx_hash": make_tx_hash(),
        "is_external": True,
    }
    values.update(overrides)
    return ContractCodeRecord(**values)
