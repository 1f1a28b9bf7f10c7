"""
Submission & confirmation engine.

A transaction moves Created → Submitted → {Confirmed, Reverted, TimedOut}.
Submission is attempted exactly once: resending risks nonce reuse, so a
rejected transaction must be rebuilt by the caller. Confirmation polling, on
the other hand, retries transient read failures until the timeout budget is
spent.
"""

from __future__ import annotations

import threading
import time
from logging import Logger
from typing import Any, Callable, Generator

from eth_account.datastructures import SignedTransaction
from requests import RequestException
from web3.datastructures import AttributeDict
from web3.exceptions import Web3Exception

from flashswap_client.constants import DEFAULT_CONFIRMATION_TIMEOUT, DEFAULT_CONFIRMATIONS, DEFAULT_POLL_INTERVAL
from flashswap_client.data_types import (
    PendingTransaction,
    SignableTransaction,
    SubmissionFailure,
    TimeoutReason,
    TxResult,
    TxStatus,
)
from flashswap_client.exceptions import (
    AlreadyFinalizedError,
    InsufficientNativeBalance,
    MissingSignerError,
    NoAvailableRPC,
    SimulationError,
    SubmissionError,
)
from flashswap_client.protocols import ChainClient
from flashswap_client.utils.logger import get_logger
from flashswap_client.utils.retry import TRANSIENT_ERRORS

READ_ERRORS = TRANSIENT_ERRORS + (Web3Exception,)
SEND_ERRORS = (Web3Exception, ValueError, RequestException, NoAvailableRPC, ConnectionError, TimeoutError)
CALL_KEYS = ("from", "to", "data", "value", "gas")

_READ_FAILED = object()

# ordered: the first matching fragment wins
_FAILURE_PATTERNS = (
    (SubmissionFailure.ALREADY_KNOWN, ("already known", "already imported", "known transaction")),
    (SubmissionFailure.NONCE_TOO_LOW, ("nonce too low", "nonce has already been used", "invalid nonce")),
    (SubmissionFailure.INSUFFICIENT_FUNDS, ("insufficient funds",)),
    (SubmissionFailure.UNDERPRICED, ("underpriced", "fee too low", "less than block base fee", "fee cap")),
    (SubmissionFailure.GAS_LIMIT, ("gas limit", "intrinsic gas too low", "out of gas")),
)


class CancellationToken:
    """Lets a caller abandon a confirmation wait from another thread."""

    def __init__(self):
        self._event = threading.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def wait(self, timeout: float) -> bool:
        """Suspend for up to `timeout` seconds; returns True as soon as the token is cancelled."""
        return self._event.wait(timeout)


def _error_message(error: Exception) -> str:
    if error.args and isinstance(error.args[0], dict):
        return str(error.args[0].get("message", error.args[0]))
    return str(error)


def classify_submission_error(error: Exception) -> SubmissionFailure:
    message = _error_message(error).lower()
    for failure, fragments in _FAILURE_PATTERNS:
        if any(fragment in message for fragment in fragments):
            return failure
    return SubmissionFailure.UNKNOWN


def _max_cost(tx: dict[str, Any]) -> int:
    price = tx.get("gasPrice", tx.get("maxFeePerGas", 0))
    return tx["gas"] * price + tx.get("value", 0)


class SubmissionEngine:
    """Signs, submits and tracks one transaction at a time against a ChainClient."""

    def __init__(
        self,
        client: ChainClient,
        *,
        poll_interval: float = DEFAULT_POLL_INTERVAL,
        logger: Logger | None = None,
    ):
        if poll_interval <= 0:
            raise ValueError(f"poll_interval must be positive, got {poll_interval}")
        self.client = client
        self.poll_interval = poll_interval
        self.logger = logger or get_logger()

    def _read(self, what: str, func: Callable[..., Any], *args) -> Any:
        try:
            return func(*args)
        # nodes behind a load balancer can briefly disagree or drop requests
        except READ_ERRORS as exc:
            self.logger.debug("Transient failure reading %s: %s", what, exc)
            return _READ_FAILED

    def prepare(self, tx: SignableTransaction) -> dict[str, Any]:
        """Complete the transaction with nonce and chain id; the only reads before signing."""

        if (signer := tx.binding.signer) is None:
            raise MissingSignerError(f"Binding for {tx.binding.address} has no signer")
        params = dict(tx.tx)
        params.setdefault("from", signer.address)
        if "nonce" not in params:
            params["nonce"] = self.client.get_transaction_count(signer.address, "pending")
        if "chainId" not in params:
            params["chainId"] = self.client.chain_id
        return params

    def sign(self, tx: SignableTransaction) -> tuple[dict[str, Any], SignedTransaction]:
        params = self.prepare(tx)
        return params, tx.binding.signer.sign_transaction(params)

    def simulate(self, tx: SignableTransaction) -> SignableTransaction:
        """Preflight: the signer can afford the worst-case cost and the call does not revert."""

        params = self.prepare(tx)
        balance = self.client.get_balance(params["from"])
        if balance < (total_cost := _max_cost(params)):
            ratio = balance / total_cost * 100
            raise InsufficientNativeBalance(f"available: {balance} < required: {total_cost} ({ratio:.2f}%)")
        try:
            self.client.call({key: params[key] for key in CALL_KEYS if key in params})
        except (Web3Exception, ValueError) as e:
            raise SimulationError(f"Simulation of {tx.method} on {tx.binding.address} failed: {e}") from e
        self.logger.debug("Simulation of %s on %s succeeded", tx.method, tx.binding.address)
        return tx

    def submit(self, tx: SignableTransaction) -> PendingTransaction:
        params, signed_tx = self.sign(tx)
        tx_hash = signed_tx.hash.to_0x_hex()
        try:
            node_hash = self.client.send_raw_transaction(signed_tx.raw_transaction)
        except SEND_ERRORS as e:
            failure = classify_submission_error(e)
            msg = "Submission of %s (nonce=%s) rejected: %s [%s]"
            self.logger.error(msg, tx.method, params["nonce"], _error_message(e), failure.value)
            raise SubmissionError(f"{failure.value}: {_error_message(e)}", failure=failure) from e

        if node_hash and node_hash.lower() != tx_hash.lower():
            self.logger.warning("Node returned hash %s, locally computed %s", node_hash, tx_hash)
        self.logger.info("Submitted %s: tx=%s nonce=%s", tx.method, tx_hash, params["nonce"])
        return PendingTransaction(tx_hash=tx_hash, nonce=params["nonce"])

    def iter_heads(self, deadline: float, cancel_token: CancellationToken) -> Generator[int, None, None]:
        """Yield the chain head once per poll until the deadline passes or the wait is cancelled."""

        while not cancel_token.cancelled:
            head = self._read("block number", self.client.get_block_number)
            if head is not _READ_FAILED:
                yield head
            remaining = deadline - time.monotonic()
            if remaining <= 0:
                return
            cancel_token.wait(min(self.poll_interval, remaining))

    def _finalize(
        self,
        pending: PendingTransaction,
        status: TxStatus,
        receipt: AttributeDict | None = None,
        confirmations: int = 0,
        timeout_reason: TimeoutReason | None = None,
    ) -> TxResult:
        pending.transition(status, receipt)
        return TxResult(
            tx_hash=pending.tx_hash,
            status=status,
            receipt=receipt,
            confirmations=confirmations,
            timeout_reason=timeout_reason,
        )

    def _classify_timeout(self, pending: PendingTransaction, receipt: AttributeDict | None) -> TimeoutReason:
        if receipt is not None:
            return TimeoutReason.INSUFFICIENT_DEPTH
        tx = self._read("transaction", self.client.get_transaction, pending.tx_hash)
        if tx is _READ_FAILED or tx is None:
            return TimeoutReason.NOT_FOUND
        if tx.get("blockNumber") is None:
            return TimeoutReason.PENDING
        return TimeoutReason.INSUFFICIENT_DEPTH

    def await_confirmation(
        self,
        pending: PendingTransaction,
        confirmations: int = DEFAULT_CONFIRMATIONS,
        timeout: float = DEFAULT_CONFIRMATION_TIMEOUT,
        cancel_token: CancellationToken | None = None,
    ) -> TxResult:
        """
        Wait until `pending` is included with `confirmations` depth (the inclusion block counts as one).

        Returns a terminal TxResult:
          - CONFIRMED: included, execution succeeded, depth reached
          - REVERTED: included, execution failed, depth reached
          - TIMED_OUT: depth not reached within `timeout` seconds or the wait was cancelled.
            The transaction stays broadcast and may still confirm; `timeout_reason` tells
            whether a receipt was seen, the node holds it in the mempool, or it is unknown.

        A reorg can make an observed receipt disappear; depth is recomputed from the latest receipt.
        """

        if pending.status.is_terminal:
            raise AlreadyFinalizedError(f"Transaction {pending.tx_hash} already finalized as {pending.status.name}")
        if confirmations < 1:
            raise ValueError(f"confirmations must be at least 1, got {confirmations}")
        if timeout < 0:
            raise ValueError(f"timeout must be non-negative, got {timeout}")

        cancel_token = cancel_token or CancellationToken()
        deadline = time.monotonic() + timeout
        receipt = None
        depth = 0

        for head in self.iter_heads(deadline, cancel_token):
            fetched = self._read("receipt", self.client.get_transaction_receipt, pending.tx_hash)
            if fetched is not _READ_FAILED:
                if receipt is not None and fetched is None:
                    self.logger.info("Receipt for tx=%s disappeared, possible reorg", pending.tx_hash)
                receipt = fetched
            if receipt is None:
                self.logger.debug("Waiting for inclusion: tx=%s head=%s", pending.tx_hash, head)
                continue

            depth = max(head - receipt["blockNumber"] + 1, 0)
            if depth < confirmations:
                self.logger.debug("Waiting for depth: tx=%s depth=%d/%d", pending.tx_hash, depth, confirmations)
                continue

            if int(receipt["status"]) == 1:
                self.logger.info("Confirmed tx=%s in block %s", pending.tx_hash, receipt["blockNumber"])
                return self._finalize(pending, TxStatus.CONFIRMED, receipt, depth)
            self.logger.warning("Reverted tx=%s in block %s", pending.tx_hash, receipt["blockNumber"])
            return self._finalize(pending, TxStatus.REVERTED, receipt, depth)

        if cancel_token.cancelled:
            reason = TimeoutReason.CANCELLED
        else:
            reason = self._classify_timeout(pending, receipt)
        msg = "Gave up waiting for tx=%s after %.1fs (%s, depth %d/%d); it remains broadcast, state unknown/pending"
        self.logger.warning(msg, pending.tx_hash, timeout, reason.value, depth, confirmations)
        return self._finalize(pending, TxStatus.TIMED_OUT, receipt, depth, reason)

    def send_and_confirm(
        self,
        tx: SignableTransaction,
        confirmations: int = DEFAULT_CONFIRMATIONS,
        timeout: float = DEFAULT_CONFIRMATION_TIMEOUT,
        cancel_token: CancellationToken | None = None,
        simulate: bool = False,
    ) -> TxResult:
        if simulate:
            self.simulate(tx)
        pending = self.submit(tx)
        return self.await_confirmation(pending, confirmations, timeout, cancel_token)
