"""
Uniswap V2 flash swap: resolve the pair, bind it, build `swap(amount0Out, amount1Out, to, data)`,
submit once and wait for confirmation.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from logging import Logger

from eth_account.signers.local import LocalAccount
from eth_utils import to_bytes
from returns.result import Result
from web3 import Web3

from flashswap_client.constants import (
    DEFAULT_BASE_SYMBOL,
    DEFAULT_BORROW_AMOUNT,
    DEFAULT_CALLBACK_DATA,
    DEFAULT_CONFIRMATION_TIMEOUT,
    DEFAULT_CONFIRMATIONS,
    DEFAULT_GAS_LIMIT,
    DEFAULT_GAS_PRICE,
    DEFAULT_NETWORK,
    DEFAULT_QUOTE_SYMBOL,
    UNISWAP_V2_FACTORY,
    UNISWAP_V2_PAIR,
)
from flashswap_client.contracts import ArtifactRegistry, bind, default_artifacts
from flashswap_client.data_types import Address, ContractBinding, SignableTransaction, TxOverrides, TxResult
from flashswap_client.exceptions import InvalidCallError, UnknownNetworkError
from flashswap_client.resolver import AddressResolver, fetch_pair, sort_tokens
from flashswap_client.submission import CancellationToken, SubmissionEngine
from flashswap_client.transaction import build
from flashswap_client.utils.logger import get_logger
from flashswap_client.utils.unwrap import to_result


class PairSource(Enum):
    """Where the pair address comes from."""

    CREATE2 = "create2"  # derived offline from factory and init code hash
    FACTORY = "factory"  # factory.getPair on-chain


@dataclass(frozen=True)
class FlashSwapRequest:
    recipient: str
    network: str = DEFAULT_NETWORK
    base: str = DEFAULT_BASE_SYMBOL
    quote: str = DEFAULT_QUOTE_SYMBOL
    borrow: str | None = None  # symbol of the borrowed token, the base token when unset
    amount: int = DEFAULT_BORROW_AMOUNT
    data: str = DEFAULT_CALLBACK_DATA
    overrides: TxOverrides = field(
        default_factory=lambda: TxOverrides(gas_limit=DEFAULT_GAS_LIMIT, gas_price=DEFAULT_GAS_PRICE)
    )
    confirmations: int = DEFAULT_CONFIRMATIONS
    timeout: float = DEFAULT_CONFIRMATION_TIMEOUT
    pair_source: PairSource = PairSource.CREATE2

    @property
    def borrow_symbol(self) -> str:
        return self.borrow or self.base


def swap_amounts(token0: str, borrow_token: str, amount: int) -> tuple[int, int]:
    """`(amount0Out, amount1Out)` borrowing `amount` of `borrow_token` from a pair whose token0 is `token0`."""

    if amount <= 0:
        raise InvalidCallError(f"Borrow amount must be positive, got {amount}")
    if Address.from_value(borrow_token) == Address.from_value(token0):
        return amount, 0
    return 0, amount


class FlashSwapper:
    """Runs flash swaps on one network connection with one signer."""

    def __init__(
        self,
        resolver: AddressResolver,
        engine: SubmissionEngine,
        signer: LocalAccount,
        w3: Web3 | None = None,
        artifacts: ArtifactRegistry | None = None,
        logger: Logger | None = None,
    ):
        self.resolver = resolver
        self.engine = engine
        self.signer = signer
        self.w3 = w3 or Web3()
        self.artifacts = artifacts or default_artifacts()
        self.logger = logger or get_logger()

    def pair_address(self, request: FlashSwapRequest) -> Address:
        if request.pair_source is PairSource.CREATE2:
            return self.resolver.resolve_pair(request.network, request.base, request.quote)

        profile = self.resolver.profile(request.network)
        if profile.pair_factory is None:
            raise UnknownNetworkError(f"No pair factory configured for network {request.network!r}")
        factory = bind(profile.pair_factory, self.artifacts.load(UNISWAP_V2_FACTORY), w3=self.w3)
        return fetch_pair(factory, profile.address_of(request.base), profile.address_of(request.quote))

    def bind_pair(self, request: FlashSwapRequest) -> ContractBinding:
        pair = self.pair_address(request)
        self.logger.info("Pair %s/%s on %s: %s", request.base, request.quote, request.network, pair)
        return bind(pair, self.artifacts.load(UNISWAP_V2_PAIR), signer=self.signer, w3=self.w3)

    def build_swap(self, request: FlashSwapRequest, pair: ContractBinding | None = None) -> SignableTransaction:
        profile = self.resolver.profile(request.network)
        base, quote = profile.address_of(request.base), profile.address_of(request.quote)
        borrow_token = profile.address_of(request.borrow_symbol)
        if borrow_token not in (base, quote):
            raise InvalidCallError(f"Cannot borrow {request.borrow_symbol} from a {request.base}/{request.quote} pair")

        token0, _ = sort_tokens(base, quote)
        amount0_out, amount1_out = swap_amounts(token0, borrow_token, request.amount)
        pair = pair or self.bind_pair(request)
        args = (amount0_out, amount1_out, Address.from_value(request.recipient), to_bytes(hexstr=request.data))
        return build(pair, "swap", args, request.overrides, chain_id=profile.chain_id)

    def execute(
        self,
        request: FlashSwapRequest,
        cancel_token: CancellationToken | None = None,
        simulate: bool = False,
        pair: ContractBinding | None = None,
    ) -> TxResult:
        """Build, submit and await one flash swap; returns the terminal TxResult."""

        tx = self.build_swap(request, pair)
        self.logger.info(
            "Flash swap: borrowing %d of %s via %s, receiver %s",
            request.amount,
            request.borrow_symbol,
            tx.binding.address,
            request.recipient,
        )
        return self.engine.send_and_confirm(
            tx,
            confirmations=request.confirmations,
            timeout=request.timeout,
            cancel_token=cancel_token,
            simulate=simulate,
        )

    def run(
        self,
        request: FlashSwapRequest,
        cancel_token: CancellationToken | None = None,
        simulate: bool = False,
    ) -> Result[TxResult, Exception]:
        return to_result(self.execute(request, cancel_token=cancel_token, simulate=simulate))
