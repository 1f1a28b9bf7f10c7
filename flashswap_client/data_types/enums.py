"""Enums used in the flashswap_client module."""

from enum import Enum, IntEnum


class TxStatus(IntEnum):
    REVERTED = 0  # included and status == 0 (on-chain revert)
    CONFIRMED = 1  # included, status == 1 and required depth reached
    PENDING = 2  # submitted, not yet terminal
    TIMED_OUT = 3  # depth not reached within the timeout budget

    @property
    def is_terminal(self) -> bool:
        return self is not TxStatus.PENDING


class TimeoutReason(Enum):
    """Why a confirmation wait ended without a terminal on-chain outcome."""

    INSUFFICIENT_DEPTH = "insufficient_depth"
    PENDING = "pending"
    NOT_FOUND = "not_found"
    CANCELLED = "cancelled"


class SubmissionFailure(Enum):
    """Classified reasons for a node rejecting a raw transaction."""

    NONCE_TOO_LOW = "nonce_too_low"
    INSUFFICIENT_FUNDS = "insufficient_funds"
    UNDERPRICED = "underpriced"
    ALREADY_KNOWN = "already_known"
    GAS_LIMIT = "gas_limit"
    UNKNOWN = "unknown"


class FeeMode(Enum):
    """How gas pricing is supplied to a transaction."""

    LEGACY = "legacy"
    EIP1559 = "eip1559"


class StateMutability(Enum):
    PURE = "pure"
    VIEW = "view"
    NONPAYABLE = "nonpayable"
    PAYABLE = "payable"
