"""Trace record contracts for the archive collections.

These are strict contracts: enum fields must be proper enum instances,
integers must fit their on-chain domain, and the cross-field invariants
below are checked at construction. The codec handles string/int → enum
conversion for documents read back from storage.

Ownership: a TransactionRecord owns its TraceNode tuple and each TraceNode
owns its ExecutionStep tuple. All three are frozen, so a sealed record
cannot be mutated after it leaves the assembler.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, replace

from exctrace.contracts.enums import CallType, ExceptionKind, TxStatus

UINT64_MAX = 2**64 - 1
UINT256_MAX = 2**256 - 1


def _validate_enum(value: object, enum_type: type, field_name: str) -> None:
    """Validate that value is an instance of the expected enum type.

    No coercion, no defaults: a raw int or str here means a caller skipped
    the codec.
    """
    if not isinstance(value, enum_type):
        raise TypeError(f"{field_name} must be {enum_type.__name__}, got {type(value).__name__}: {value!r}")


def _validate_uint(value: object, maximum: int, field_name: str, *, optional: bool = False) -> None:
    """Validate an unsigned integer against its fixed-width domain.

    Values that would wrap in the original fixed-width representation are
    rejected rather than stored incorrectly.
    """
    if value is None and optional:
        return
    if type(value) is not int:
        raise TypeError(f"{field_name} must be int, got {type(value).__name__}: {value!r}")
    if value < 0 or value > maximum:
        raise ValueError(f"{field_name} out of range [0, {maximum}]: {value}")


def fits_uint64(value: int) -> bool:
    """Return True if value is representable as an unsigned 64-bit integer."""
    return 0 <= value <= UINT64_MAX


def derive_has_exception(status: TxStatus, traces: Iterable[TraceNode]) -> bool:
    """A transaction has an exception if it failed externally or any frame failed."""
    if status is TxStatus.FAILURE:
        return True
    return any(node.exception_kind.is_exception for node in traces)


@dataclass(frozen=True)
class ExecutionStep:
    """One executed instruction inside a call frame.

    step_num is 1-based and consecutive within its node. gas_remaining is the
    snapshot after the step, or None when it was never recorded.
    """

    step_num: int
    pc: int
    op: str
    gas_remaining: int | None = None
    immediate: str | None = None

    def __post_init__(self) -> None:
        _validate_uint(self.step_num, UINT64_MAX, "step_num")
        if self.step_num == 0:
            raise ValueError("step_num is 1-based, got 0")
        _validate_uint(self.pc, UINT64_MAX, "pc")
        _validate_uint(self.gas_remaining, UINT64_MAX, "gas_remaining", optional=True)
        if not self.op:
            raise ValueError("op must be a non-empty instruction mnemonic")


@dataclass(frozen=True)
class TraceNode:
    """One call frame of a transaction's execution.

    Invariants:
    - exception_kind is NONE iff status is SUCCESS
    - error_message is non-empty iff exception_kind is not NONE
    - overflow_ref and steps are mutually exclusive locations for the step log
    - steps are numbered exactly 1..N
    - created_address only appears on creation frames
    """

    depth: int
    call_type: CallType
    sender: str
    recipient: str | None
    value: int
    input: str
    gas_limit: int | None
    gas_remaining: int | None
    status: TxStatus
    exception_kind: ExceptionKind
    error_message: str = ""
    created_address: str | None = None
    steps: tuple[ExecutionStep, ...] = ()
    overflow_ref: str | None = None

    def __post_init__(self) -> None:
        _validate_enum(self.call_type, CallType, "call_type")
        _validate_enum(self.status, TxStatus, "status")
        _validate_enum(self.exception_kind, ExceptionKind, "exception_kind")
        _validate_uint(self.depth, UINT64_MAX, "depth")
        _validate_uint(self.value, UINT256_MAX, "value")
        _validate_uint(self.gas_limit, UINT64_MAX, "gas_limit", optional=True)
        _validate_uint(self.gas_remaining, UINT64_MAX, "gas_remaining", optional=True)

        if (self.status is TxStatus.SUCCESS) == self.exception_kind.is_exception:
            raise ValueError(f"status {self.status.name} is inconsistent with exception_kind {self.exception_kind.name}")
        if bool(self.error_message) != self.exception_kind.is_exception:
            raise ValueError(f"error_message {self.error_message!r} is inconsistent with exception_kind {self.exception_kind.name}")
        if self.created_address is not None and not self.call_type.is_creation:
            raise ValueError(f"created_address set on non-creation frame ({self.call_type})")
        if type(self.steps) is not tuple:
            raise TypeError(f"steps must be a tuple, got {type(self.steps).__name__}")
        if self.overflow_ref is not None and self.steps:
            raise ValueError("steps must be empty when overflow_ref is set")
        for expected, step in enumerate(self.steps, start=1):
            if step.step_num != expected:
                raise ValueError(f"steps must be numbered 1..N without gaps: expected {expected}, got {step.step_num}")

    @property
    def is_detached(self) -> bool:
        return self.overflow_ref is not None

    def detach_steps(self, ref: str) -> TraceNode:
        """Return a copy whose step log lives in blob storage under ref."""
        return replace(self, steps=(), overflow_ref=ref)

    def attach_steps(self, steps: tuple[ExecutionStep, ...]) -> TraceNode:
        """Return a copy with the step log restored inline."""
        return replace(self, steps=steps, overflow_ref=None)


@dataclass(frozen=True)
class TransactionFields:
    """External transaction fields known before tracing begins."""

    block_number: int
    tx_index: int
    nonce: int
    tx_hash: str
    sender: str
    recipient: str | None
    value: int
    input: str
    gas_limit: int
    gas_price: int

    @property
    def is_creation(self) -> bool:
        return self.recipient is None


@dataclass(frozen=True)
class TransactionRecord:
    """Root record: one external transaction and its flattened call tree.

    traces are in call-tree traversal order. has_exception must agree with
    derive_has_exception(); when traces were detached to blob storage only
    the external-status half can be checked here.
    """

    block_number: int
    tx_index: int
    nonce: int
    tx_hash: str
    sender: str
    recipient: str | None
    value: int
    input: str
    gas_limit: int
    gas_price: int
    status: TxStatus
    num_steps: int
    has_exception: bool
    created_address: str | None = None
    traces: tuple[TraceNode, ...] = ()
    overflow_ref: str | None = None

    def __post_init__(self) -> None:
        _validate_enum(self.status, TxStatus, "status")
        _validate_uint(self.block_number, UINT64_MAX, "block_number")
        _validate_uint(self.tx_index, UINT64_MAX, "tx_index")
        _validate_uint(self.nonce, UINT64_MAX, "nonce")
        _validate_uint(self.value, UINT256_MAX, "value")
        _validate_uint(self.gas_limit, UINT64_MAX, "gas_limit")
        _validate_uint(self.gas_price, UINT256_MAX, "gas_price")
        _validate_uint(self.num_steps, UINT64_MAX, "num_steps")
        if not self.tx_hash:
            raise ValueError("tx_hash must be non-empty")
        if type(self.traces) is not tuple:
            raise TypeError(f"traces must be a tuple, got {type(self.traces).__name__}")
        if self.overflow_ref is not None and self.traces:
            raise ValueError("traces must be empty when overflow_ref is set")

        if self.overflow_ref is None:
            expected = derive_has_exception(self.status, self.traces)
            if self.has_exception != expected:
                raise ValueError(f"has_exception={self.has_exception} contradicts status and traces (expected {expected})")
        elif self.status is TxStatus.FAILURE and not self.has_exception:
            raise ValueError("has_exception must be True when the external status is FAILURE")

    @property
    def is_detached(self) -> bool:
        return self.overflow_ref is not None

    @property
    def failed_traces(self) -> tuple[TraceNode, ...]:
        return tuple(node for node in self.traces if node.exception_kind.is_exception)

    def detach_traces(self, ref: str) -> TransactionRecord:
        """Return a copy whose trace sequence lives in blob storage under ref."""
        return replace(self, traces=(), overflow_ref=ref)

    def attach_traces(self, traces: tuple[TraceNode, ...]) -> TransactionRecord:
        """Return a copy with the trace sequence restored inline."""
        return replace(self, traces=traces, overflow_ref=None)


@dataclass(frozen=True)
class ContractCodeRecord:
    """Deployed contract code and the context it was created in.

    One record per contract address, written once at deployment and never
    mutated. Correlated with TransactionRecord through tx_hash.
    """

    address: str
    code: str
    creator: str
    nonce: int
    value: int
    gas_limit: int
    gas_price: int
    init_code: str
    tx_hash: str
    is_external: bool

    def __post_init__(self) -> None:
        _validate_uint(self.nonce, UINT64_MAX, "nonce")
        _validate_uint(self.value, UINT256_MAX, "value")
        _validate_uint(self.gas_limit, UINT64_MAX, "gas_limit")
        _validate_uint(self.gas_price, UINT256_MAX, "gas_price")
        if not self.address:
            raise ValueError("address must be non-empty")
        if type(self.is_external) is not bool:
            raise TypeError(f"is_external must be bool, got {type(self.is_external).__name__}")
