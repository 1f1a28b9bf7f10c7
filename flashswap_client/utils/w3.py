import functools
import heapq
import threading
import time
from logging import Logger
from pathlib import Path
from typing import Any

import yaml
from requests import RequestException
from web3 import Web3
from web3.datastructures import AttributeDict
from web3.exceptions import TransactionNotFound
from web3.providers.base import BaseProvider
from web3.providers.rpc import HTTPProvider
from web3.types import RPCEndpoint, RPCResponse

from flashswap_client.constants import DEFAULT_RPC_ENDPOINTS, GAS_FEE_BUFFER
from flashswap_client.data_types import FeeEstimate, RPCEndpoints
from flashswap_client.exceptions import NoAvailableRPC
from flashswap_client.utils.logger import get_logger
from flashswap_client.utils.retry import exp_backoff_retry

# JSON-RPC error codes providers use for throttling
RATE_LIMIT_CODES = {-32005, -32029, 429}

# never replayed against another endpoint after a transport failure
NON_RETRYABLE_METHODS = {"eth_sendRawTransaction", "eth_sendTransaction"}


class EndpointState:
    __slots__ = ("provider", "backoff", "next_available", "seq")

    def __init__(self, provider: HTTPProvider, seq: int = 0):
        self.provider = provider
        self.backoff = 0.0
        self.next_available = 0.0
        self.seq = seq

    def __lt__(self, other: "EndpointState") -> bool:
        # ties go to the endpoint configured first
        return (self.next_available, self.seq) < (other.next_available, other.seq)

    def __str__(self) -> str:
        return f"{self.__class__.__name__}({self.provider.endpoint_uri})"


def _is_rate_limited(error: dict) -> bool:
    return error.get("code") in RATE_LIMIT_CODES or "rate limit" in str(error.get("message", "")).lower()


class RotatingHTTPProvider(BaseProvider):
    """
    Provider spreading requests over several HTTP endpoints:
     - round-robin via a min-heap of `next_available` times
     - on transport failure or throttling: exponential back-off for that endpoint, capped
     - other JSON-RPC errors are node answers and are returned to the caller unchanged
     - transaction submissions are never replayed against another endpoint
    """

    def __init__(
        self,
        endpoints: list[HTTPProvider],
        *,
        initial_backoff: float = 1.0,
        max_backoff: float = 600.0,
        logger: Logger,
    ):
        super().__init__()
        if not endpoints:
            raise NoAvailableRPC("No RPC endpoints configured")
        self._heap: list[EndpointState] = [EndpointState(p, seq) for seq, p in enumerate(endpoints)]
        heapq.heapify(self._heap)
        self._lock = threading.Lock()
        self.initial_backoff = initial_backoff
        self.max_backoff = max_backoff
        self.logger = logger

    @property
    def endpoint_uris(self) -> list[str]:
        return [str(state.provider.endpoint_uri) for state in self._heap]

    def _reschedule(self, state: EndpointState, now: float, backoff: float | None = None) -> None:
        if backoff is None:
            state.backoff = 0.0
            state.next_available = now
        else:
            state.backoff = min(backoff, self.max_backoff)
            state.next_available = now + state.backoff
        with self._lock:
            heapq.heappush(self._heap, state)

    def _next_backoff(self, state: EndpointState) -> float:
        return state.backoff * 2 if state.backoff else self.initial_backoff

    def make_request(self, method: RPCEndpoint, params: Any) -> RPCResponse:
        now = time.monotonic()

        while True:
            # 1) grab the earliest-available endpoint
            with self._lock:
                state = heapq.heappop(self._heap)

            # 2) if it's not yet ready, push back and error out
            if state.next_available > now:
                with self._lock:
                    heapq.heappush(self._heap, state)
                msg = "All RPC endpoints are cooling down. Try again in %.2f seconds."
                self.logger.warning(msg, state.next_available - now)
                raise NoAvailableRPC(msg % (state.next_available - now))

            try:
                # 3) attempt the request
                resp = state.provider.make_request(method, params)
            except RequestException as e:
                self.logger.debug("Endpoint %s failed: %s", state.provider.endpoint_uri, e)
                hdr = (e.response is not None and e.response.headers or {}).get("Retry-After")
                try:
                    backoff = float(hdr)
                except (ValueError, TypeError):
                    backoff = self._next_backoff(state)
                self._reschedule(state, now, backoff)
                self.logger.info("Backing off %s for %.2fs", state.provider.endpoint_uri, state.backoff)
                if method in NON_RETRYABLE_METHODS:
                    raise
                continue

            # JSON-RPC throttling branch
            if isinstance(resp, dict) and (error := resp.get("error")) and _is_rate_limited(error):
                self._reschedule(state, now, self._next_backoff(state))
                msg = "RPC throttled on %s: %s → backing off %.2fs"
                self.logger.info(msg, state.provider.endpoint_uri, error.get("message", ""), state.backoff)
                if method in NON_RETRYABLE_METHODS:
                    return resp
                continue

            # 4) on an answer, reset its backoff and re-schedule immediately
            self._reschedule(state, now)
            return resp

    def is_connected(self, show_traceback: bool = False) -> bool:
        return any(state.provider.is_connected(show_traceback) for state in list(self._heap))


@functools.lru_cache
def load_rpc_endpoints(path: Path) -> RPCEndpoints:
    return RPCEndpoints(yaml.safe_load(path.read_text()))


def get_w3_connection(
    network_id: str,
    *,
    rpc_endpoints: RPCEndpoints | None = None,
    rpc_urls: list[str] | None = None,
    logger: Logger | None = None,
) -> Web3:
    """Web3 over the configured endpoints of `network_id`, or over `rpc_urls` when given."""

    urls = rpc_urls or (rpc_endpoints or load_rpc_endpoints(DEFAULT_RPC_ENDPOINTS))[network_id]
    # retries happen across endpoints in the rotating provider, never inside one
    providers = [HTTPProvider(str(url), exception_retry_configuration=None) for url in urls]
    provider = RotatingHTTPProvider(
        providers,
        initial_backoff=1.0,
        max_backoff=600.0,
        logger=logger or get_logger(),
    )
    return Web3(provider)


class Web3ChainClient:
    """ChainClient backed by a web3 connection."""

    def __init__(self, w3: Web3):
        self.w3 = w3

    @property
    def chain_id(self) -> int:
        return self.w3.eth.chain_id

    def get_block_number(self) -> int:
        return self.w3.eth.block_number

    def get_transaction_receipt(self, tx_hash: str) -> AttributeDict | None:
        try:
            return AttributeDict(self.w3.eth.get_transaction_receipt(tx_hash))
        except TransactionNotFound:
            return None

    def get_transaction(self, tx_hash: str) -> AttributeDict | None:
        try:
            return AttributeDict(self.w3.eth.get_transaction(tx_hash))
        except TransactionNotFound:
            return None

    def get_transaction_count(self, address: str, block_identifier: str = "pending") -> int:
        return self.w3.eth.get_transaction_count(Web3.to_checksum_address(address), block_identifier)

    def get_balance(self, address: str) -> int:
        return self.w3.eth.get_balance(Web3.to_checksum_address(address))

    def call(self, tx: dict[str, Any]) -> bytes:
        return bytes(self.w3.eth.call(tx))

    def send_raw_transaction(self, raw_transaction: bytes) -> str:
        return self.w3.eth.send_raw_transaction(raw_transaction).to_0x_hex()


@exp_backoff_retry
def estimate_fees(w3: Web3, percentiles: list[int], blocks: int = 20, default_tip: int = 10_000) -> list[FeeEstimate]:
    """EIP-1559 fee suggestions, one per reward percentile, from the recent fee history."""

    fee_history = w3.eth.fee_history(blocks, "pending", percentiles)
    base_fees = fee_history["baseFeePerGas"]
    rewards = fee_history["reward"]

    # Calculate average priority fees for each percentile
    avg_priority_fees = []
    for i in range(len(percentiles)):
        nonzero_rewards = [r[i] for r in rewards if len(r) > i and r[i] > 0]
        if nonzero_rewards:
            estimated_tip = sum(nonzero_rewards) // len(nonzero_rewards)
        else:
            estimated_tip = default_tip
        avg_priority_fees.append(estimated_tip)

    # Use the latest base fee
    latest_base_fee = base_fees[-1]

    return [
        FeeEstimate(
            max_fee_per_gas=int((latest_base_fee + priority_fee) * GAS_FEE_BUFFER),
            max_priority_fee_per_gas=priority_fee,
        )
        for priority_fee in avg_priority_fees
    ]
