"""Assemble one TransactionRecord from the VM's call-frame hooks.

Lifecycle of a record:

    handle = TransactionAssembler().begin(fields)     # before execution
    builder = handle.open_trace(depth=0, ...)         # on each frame start
    builder.add_step(pc=0, op="PUSH1", ...)           # per instruction (optional)
    builder.finish(err, gas_remaining=...)            # on each frame end
    record = handle.seal(status=TxStatus.SUCCESS)     # after the call tree

Trace slots are appended in the order frames are opened, which is the VM's
depth-first traversal order. A handle is driven by a single thread; separate
transactions use separate handles and share nothing.

Abort policy: frames still open when the record is sealed are finalized with
a best-effort classification of the abort error instead of being dropped.
A partially populated record is kept over losing the frames.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from exctrace.contracts.enums import CallType, ExceptionKind, TxStatus
from exctrace.contracts.errors import TraceFinalizedError
from exctrace.contracts.records import (
    ExecutionStep,
    TraceNode,
    TransactionFields,
    TransactionRecord,
    derive_has_exception,
    fits_uint64,
)
from exctrace.core.classifier import GAS_UINT_OVERFLOW_MESSAGE, classify

logger = logging.getLogger(__name__)

ABORTED_FRAME_MESSAGE = "execution aborted before frame completed"


@dataclass(frozen=True)
class _FrameStart:
    depth: int
    call_type: CallType
    sender: str
    recipient: str | None
    value: int
    input: str
    gas_limit: int


class TraceBuilder:
    """Collects one call frame until its outcome is known.

    Not constructed directly; use TransactionHandle.open_trace().
    """

    def __init__(self, start: _FrameStart, *, record_steps: bool = True) -> None:
        self._start = start
        self._record_steps = record_steps
        self._steps: list[ExecutionStep] = []
        self._node: TraceNode | None = None

    @property
    def depth(self) -> int:
        return self._start.depth

    @property
    def call_type(self) -> CallType:
        return self._start.call_type

    @property
    def is_finished(self) -> bool:
        return self._node is not None

    @property
    def node(self) -> TraceNode:
        """The finalized node. Raises if finish() has not run yet."""
        if self._node is None:
            raise TraceFinalizedError(f"Trace at depth {self.depth} has not been finished")
        return self._node

    def add_step(
        self,
        pc: int,
        op: str,
        gas_remaining: int | None = None,
        immediate: str | None = None,
    ) -> ExecutionStep | None:
        """Append the next executed instruction.

        Returns the recorded step, or None when this frame does not keep a
        step log. Step numbers are assigned here, starting at 1.
        """
        if self._node is not None:
            raise TraceFinalizedError(f"Cannot add step to finished trace at depth {self.depth}")
        if not self._record_steps:
            return None
        if gas_remaining is not None and not fits_uint64(gas_remaining):
            gas_remaining = None
        step = ExecutionStep(
            step_num=len(self._steps) + 1,
            pc=pc,
            op=op,
            gas_remaining=gas_remaining,
            immediate=immediate,
        )
        self._steps.append(step)
        return step

    def finish(
        self,
        error: BaseException | str | None = None,
        *,
        gas_remaining: int | None,
        created_address: str | None = None,
        recipient: str | None = None,
    ) -> TraceNode:
        """Classify the frame's outcome and freeze it into a TraceNode.

        Args:
            error: The VM's failure signal for the frame, None on success
            gas_remaining: Gas left after the frame executed
            created_address: Address produced by a creation frame. Dropped
                when the frame failed, since nothing was deployed.
            recipient: Resolved recipient, for creations whose target was
                unknown when the frame opened

        Gas figures that do not fit uint64 are stored as None and the frame
        is classified GAS_UINT_OVERFLOW unless it already failed.
        """
        if self._node is not None:
            raise TraceFinalizedError(f"Trace at depth {self.depth} is already finished")

        if created_address is not None and not self.call_type.is_creation:
            raise ValueError(f"created_address given for non-creation frame ({self.call_type})")

        message, kind = classify(error)

        overflowed = False
        gas_limit: int | None = self._start.gas_limit
        if not fits_uint64(self._start.gas_limit):
            gas_limit = None
            overflowed = True
        if gas_remaining is not None and not fits_uint64(gas_remaining):
            gas_remaining = None
            overflowed = True
        if overflowed and kind is ExceptionKind.NONE:
            message, kind = classify(GAS_UINT_OVERFLOW_MESSAGE)

        succeeded = kind is ExceptionKind.NONE
        self._node = TraceNode(
            depth=self._start.depth,
            call_type=self._start.call_type,
            sender=self._start.sender,
            recipient=recipient if recipient is not None else self._start.recipient,
            value=self._start.value,
            input=self._start.input,
            gas_limit=gas_limit,
            gas_remaining=gas_remaining,
            status=TxStatus.SUCCESS if succeeded else TxStatus.FAILURE,
            exception_kind=kind,
            error_message=message,
            created_address=created_address if succeeded else None,
            steps=tuple(self._steps),
        )
        self._steps = []
        return self._node


class TransactionHandle:
    """Owns one in-progress TransactionRecord.

    Not constructed directly; use TransactionAssembler.begin().
    """

    def __init__(self, fields: TransactionFields) -> None:
        self._fields = fields
        self._builders: list[TraceBuilder] = []
        self._closed = False

    @property
    def fields(self) -> TransactionFields:
        return self._fields

    @property
    def trace_count(self) -> int:
        return len(self._builders)

    @property
    def open_traces(self) -> list[TraceBuilder]:
        return [builder for builder in self._builders if not builder.is_finished]

    def _check_open(self, action: str) -> None:
        if self._closed:
            raise TraceFinalizedError(f"Cannot {action}: transaction {self._fields.tx_hash} is already sealed or discarded")

    def open_trace(
        self,
        *,
        depth: int,
        call_type: CallType,
        sender: str,
        recipient: str | None,
        value: int,
        input: str,
        gas_limit: int,
        record_steps: bool = True,
    ) -> TraceBuilder:
        """Start a new call frame and append its slot to the record.

        Slots are never removed or reordered.
        """
        self._check_open("open trace")
        builder = TraceBuilder(
            _FrameStart(
                depth=depth,
                call_type=call_type,
                sender=sender,
                recipient=recipient,
                value=value,
                input=input,
                gas_limit=gas_limit,
            ),
            record_steps=record_steps,
        )
        self._builders.append(builder)
        return builder

    def seal(
        self,
        *,
        status: TxStatus,
        created_address: str | None = None,
        abort_error: BaseException | str | None = None,
    ) -> TransactionRecord:
        """Finalize the record.

        Args:
            status: External transaction status code
            created_address: Contract address for successful creation externals
            abort_error: Why execution stopped, if it stopped with frames still
                open. Used to classify those frames.

        Returns:
            The sealed, immutable TransactionRecord
        """
        self._check_open("seal")

        unfinished = self.open_traces
        if unfinished:
            signal = abort_error if abort_error is not None else ABORTED_FRAME_MESSAGE
            logger.warning(
                "Finalizing %d unfinished trace(s) for tx %s with %r",
                len(unfinished),
                self._fields.tx_hash,
                str(signal),
            )
            # Innermost first, matching the order the VM would have unwound them.
            for builder in reversed(unfinished):
                builder.finish(signal, gas_remaining=None)

        traces = tuple(builder.node for builder in self._builders)
        self._closed = True
        self._builders = []

        f = self._fields
        return TransactionRecord(
            block_number=f.block_number,
            tx_index=f.tx_index,
            nonce=f.nonce,
            tx_hash=f.tx_hash,
            sender=f.sender,
            recipient=f.recipient,
            value=f.value,
            input=f.input,
            gas_limit=f.gas_limit,
            gas_price=f.gas_price,
            status=status,
            num_steps=sum(len(node.steps) for node in traces),
            has_exception=derive_has_exception(status, traces),
            created_address=created_address if status is TxStatus.SUCCESS else None,
            traces=traces,
        )

    def discard(self) -> None:
        """Drop the unsealed record (e.g. the trace was cancelled)."""
        self._check_open("discard")
        self._closed = True
        self._builders = []


class TransactionAssembler:
    """Factory for per-transaction handles.

    Stateless, so one assembler may be shared by any number of workers.
    """

    def begin(self, fields: TransactionFields) -> TransactionHandle:
        return TransactionHandle(fields)
