from typing import TypeVar

from returns.result import Failure, Result, Success

from flashswap_client.data_types import TimeoutReason, TxResult, TxStatus
from flashswap_client.exceptions import (
    ConfirmationTimeout,
    FinalityTimeout,
    TransactionDropped,
    TransactionReverted,
    TxPendingTimeout,
    WaitCancelled,
)

T = TypeVar("T")

TIMEOUT_ERRORS: dict[TimeoutReason, type[ConfirmationTimeout]] = {
    TimeoutReason.INSUFFICIENT_DEPTH: FinalityTimeout,
    TimeoutReason.PENDING: TxPendingTimeout,
    TimeoutReason.NOT_FOUND: TransactionDropped,
    TimeoutReason.CANCELLED: WaitCancelled,
}


def to_result(tx_result: TxResult) -> Result[TxResult, Exception]:
    """Map a terminal TxResult onto Success (confirmed) or Failure (reverted / timed out)."""

    match tx_result.status:
        case TxStatus.CONFIRMED:
            return Success(tx_result)
        case TxStatus.REVERTED:
            msg = f"Transaction {tx_result.tx_hash} reverted in block {tx_result.block_number}"
            return Failure(TransactionReverted(msg))
        case TxStatus.TIMED_OUT:
            error_cls = TIMEOUT_ERRORS.get(tx_result.timeout_reason, ConfirmationTimeout)
            msg = (
                f"Transaction {tx_result.tx_hash} not confirmed "
                f"({tx_result.timeout_reason.value if tx_result.timeout_reason else 'unknown'}, "
                f"confirmations={tx_result.confirmations}); it remains broadcast and may still confirm"
            )
            return Failure(error_cls(msg))
        case _:
            raise ValueError(f"TxResult for {tx_result.tx_hash} is not terminal: {tx_result.status.name}")


def unwrap_or_raise(result: Result[T, Exception]) -> T:
    """Convert a returns.Result into a normal Python value or raise the underlying exception."""

    match result:
        case Success():
            return result.unwrap()
        case Failure():
            raise result.failure()
        case _:
            raise RuntimeError("unwrap_or_raise received a non-Result value")
