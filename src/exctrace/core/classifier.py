"""Classify raw VM failure signals into the exception taxonomy.

The VM reports failures as error text, not codes, so the literal strings and
prefixes below are a contract with the upstream interpreter and must match
its messages byte-for-byte. No case folding, no trimming, no parsing beyond
equality and prefix checks.

Rules are evaluated in order and the first match wins:
1. Exact messages (FAILURE_MESSAGES order)
2. Prefix messages ("<prefix> <detail>", FAILURE_PREFIXES order)
3. Anything else is PRECOMPILED_CALL_ERROR
"""

from types import MappingProxyType

from exctrace.contracts.enums import ExceptionKind

# Insertion order is evaluation order.
FAILURE_MESSAGES: MappingProxyType[str, ExceptionKind] = MappingProxyType(
    {
        "evm: execution reverted": ExceptionKind.EXPLICIT_REVERT,
        "contract creation code storage out of gas": ExceptionKind.DEPOSIT_OUT_OF_GAS,
        "out of gas": ExceptionKind.RUN_OUT_OF_GAS,
        "max call depth exceeded": ExceptionKind.CALL_STACK_OVERFLOW,
        "insufficient balance for transfer": ExceptionKind.INSUFFICIENT_BALANCE,
        "evm: write protection": ExceptionKind.WRITE_PERMISSION_VIOLATION,
        "evm: return data out of bounds": ExceptionKind.RETURN_DATA_OUT_OF_BOUND,
        "contract address collision": ExceptionKind.CONTRACT_ADDRESS_COLLISION,
        "evm: max code size exceeded": ExceptionKind.MAX_CODE_SIZE_EXCEEDED,
        "gas uint64 overflow": ExceptionKind.GAS_UINT_OVERFLOW,
        "empty call code": ExceptionKind.EMPTY_CODE,
    }
)

# Each prefix must be followed by a space and at least one detail character.
FAILURE_PREFIXES: tuple[tuple[str, ExceptionKind], ...] = (
    ("stack underflow", ExceptionKind.DATA_STACK_UNDERFLOW),
    ("stack limit reached", ExceptionKind.DATA_STACK_OVERFLOW),
    ("invalid jump destination", ExceptionKind.INVALID_JUMP_DESTINATION),
    ("invalid opcode", ExceptionKind.INVALID_INSTRUCTION),
)

GAS_UINT_OVERFLOW_MESSAGE = "gas uint64 overflow"

# Substituted for an empty failure message so the stored message stays non-empty.
UNKNOWN_ERROR_MESSAGE = "unknown execution error"


def _matches_prefix(message: str, prefix: str) -> bool:
    head = prefix + " "
    return message.startswith(head) and len(message) > len(head)


def classify(signal: BaseException | str | None) -> tuple[str, ExceptionKind]:
    """Map a frame's failure signal to (message, kind).

    Args:
        signal: The VM's error for the frame. None means the frame succeeded.
            Exceptions are classified by str(signal).

    Returns:
        ("", ExceptionKind.NONE) on success, otherwise the failure message
        and its kind. Never raises; unrecognised text falls back to
        PRECOMPILED_CALL_ERROR.
    """
    if signal is None:
        return "", ExceptionKind.NONE

    message = signal if isinstance(signal, str) else str(signal)
    if not message:
        return UNKNOWN_ERROR_MESSAGE, ExceptionKind.PRECOMPILED_CALL_ERROR

    kind = FAILURE_MESSAGES.get(message)
    if kind is not None:
        return message, kind

    for prefix, prefix_kind in FAILURE_PREFIXES:
        if _matches_prefix(message, prefix):
            return message, prefix_kind

    return message, ExceptionKind.PRECOMPILED_CALL_ERROR
