"""Status codes, call types, and the exception taxonomy.

Every value here is persisted. Integer codes in ExceptionKind and TxStatus
are a stable external contract: archived documents written by older builds
must still decode, so members are never renumbered or removed.
"""

from enum import IntEnum, StrEnum


class ExceptionKind(IntEnum):
    """Classified outcome of one call frame.

    Closed set. NONE is the only success value; every failure maps to exactly
    one of the remaining kinds. PRECOMPILED_CALL_ERROR is the catch-all for
    failure text the classifier does not recognise (precompiled contract
    failures in practice), and is a valid terminal classification.

    Stored in documents (traces[].exception_kind).
    """

    NONE = 0
    EXPLICIT_REVERT = 1
    DEPOSIT_OUT_OF_GAS = 2
    RUN_OUT_OF_GAS = 3
    CALL_STACK_OVERFLOW = 4
    DATA_STACK_UNDERFLOW = 5
    DATA_STACK_OVERFLOW = 6
    INVALID_JUMP_DESTINATION = 7
    INVALID_INSTRUCTION = 8
    PRECOMPILED_CALL_ERROR = 9
    INSUFFICIENT_BALANCE = 10
    WRITE_PERMISSION_VIOLATION = 11
    RETURN_DATA_OUT_OF_BOUND = 12
    CONTRACT_ADDRESS_COLLISION = 13
    MAX_CODE_SIZE_EXCEEDED = 14
    GAS_UINT_OVERFLOW = 15
    EMPTY_CODE = 16

    @property
    def is_exception(self) -> bool:
        return self is not ExceptionKind.NONE


class TxStatus(IntEnum):
    """Execution status code, matching receipt status values.

    Used for both the external transaction and each trace node.
    """

    FAILURE = 0
    SUCCESS = 1


class CallType(StrEnum):
    """Kind of call frame.

    Stored in documents (traces[].call_type).

    CREATE2 frames behave as creations everywhere in this package.
    """

    CREATE = "create"
    CREATE2 = "create2"
    CALL = "call"
    CALLCODE = "callcode"
    DELEGATECALL = "delegatecall"
    STATICCALL = "staticcall"

    @property
    def is_creation(self) -> bool:
        return self in (CallType.CREATE, CallType.CREATE2)
