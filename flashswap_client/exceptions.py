"""Custom Exception classes."""


class UnknownNetworkError(LookupError):
    """Raised when no network profile is configured for the requested network id."""


class UnknownSymbolError(LookupError):
    """Raised when a token symbol is absent from the address table of a network."""


class InvalidAddressError(ValueError):
    """Raised when a value is not a valid Ethereum address."""


class InvalidAbiError(ValueError):
    """Raised when an ABI descriptor or contract artifact is malformed."""


class UnknownMethodError(LookupError):
    """Raised when a contract binding has no function with the requested name."""


class InvalidCallError(ValueError):
    """Raised when call arguments cannot be encoded against the function ABI."""


class InvalidOverrideError(ValueError):
    """Raised when transaction overrides (gas limit, gas price, fees, nonce) are invalid."""


class SubmissionError(Exception):
    """Raised when the network rejects a signed transaction. Never retried: rebuild with a fresh nonce."""

    def __init__(self, message: str, failure=None):
        super().__init__(message)
        self.failure = failure


class InsufficientNativeBalance(Exception):
    """Raised when the signer cannot cover gas limit * gas price + value."""


class SimulationError(Exception):
    """Raised when an eth_call preflight of the transaction fails."""


class MissingSignerError(Exception):
    """Raised when a transaction is submitted from a binding without a signer."""


class TransactionReverted(Exception):
    """Raised when a transaction was included in a block but its execution failed."""


class ConfirmationTimeout(Exception):
    """Raised when the confirmation depth was not reached in time. The transaction may still confirm later."""


class FinalityTimeout(ConfirmationTimeout):
    """Raised when a receipt was observed but did not reach the required confirmation depth."""


class TxPendingTimeout(ConfirmationTimeout):
    """Raised when no receipt was observed and the node reports the transaction pending in the mempool."""


class TransactionDropped(ConfirmationTimeout):
    """Raised when neither a receipt nor a pending transaction is known to the node."""


class WaitCancelled(ConfirmationTimeout):
    """Raised when the caller abandoned the wait before the transaction reached a terminal state."""


class AlreadyFinalizedError(Exception):
    """Raised when attempting to transition or poll a PendingTransaction whose status is not TxStatus.PENDING."""


class NoAvailableRPC(Exception):
    """Raised when all configured RPC endpoints are temporarily unavailable due to backoff or failures."""


class PairNotFoundError(LookupError):
    """Raised when the pair factory has no pair for the requested tokens."""
