"""
Conftest for flashswap client tests
"""

import pytest
import yaml
from eth_account import Account
from hexbytes import HexBytes
from requests import RequestException
from web3 import Web3
from web3.datastructures import AttributeDict

from flashswap_client.contracts import bind, default_artifacts
from flashswap_client.data_types import NetworkRegistry
from flashswap_client.resolver import AddressResolver
from flashswap_client.submission import SubmissionEngine
from flashswap_client.utils import get_logger

TEST_WALLET = "0x8772185a1516f0d61fC1c2524926BfC69F95d698"
TEST_PRIVATE_KEY = "0x2ae8be44db8a590d20bffbe3b6872df9b569147d3bf6801a35a28281a4816bbd"
TEST_CHAIN_ID = 31337
RECIPIENT = "0x000000000000000000000000000000000000dEaD"

TESTNET_PROFILES = {
    "testnet": {
        "chain_id": TEST_CHAIN_ID,
        "pair_factory": "0x5c69bee701ef814a2b6a3edd4b1652cb9cc5aa6f",
        "pair_init_code_hash": "0x96e8ac4277198ff8b6f785478aa9a39f403cb768dd02cbee326c3e7da348845f",
        "known_addresses": {
            "WETH": "0xd0a1e359811322d97991e03f863a0c30c2cf029c",
            "DAI": "0x4f96fe3b7a6cf9725f59d353f723c1bdb64ca6aa",
            "USDC": "0xa0b86991c6218b36c1d19d4a2e9eb0ce3606eb48",
        },
    },
}


class MockChain:
    """
    In-memory ChainClient. Every head read mines one block; a sent transaction is
    included `inclusion_delay` blocks later unless it is `stuck` (kept in the
    mempool) or `dropped` (forgotten by the node).
    """

    def __init__(
        self,
        chain_id: int = TEST_CHAIN_ID,
        head: int = 100,
        inclusion_delay: int = 0,
        revert: bool = False,
        stuck: bool = False,
        dropped: bool = False,
        balance: int = 10**18,
        nonce: int = 0,
        read_failures: int = 0,
        send_error: Exception | None = None,
        call_error: Exception | None = None,
    ):
        self._chain_id = chain_id
        self.head = head
        self.inclusion_delay = inclusion_delay
        self.revert = revert
        self.stuck = stuck
        self.dropped = dropped
        self.balance = balance
        self.nonce = nonce
        self.read_failures = read_failures
        self.send_error = send_error
        self.call_error = call_error
        self.mempool: dict[str, int] = {}
        self.receipts: dict[str, AttributeDict] = {}
        self.sent: list[bytes] = []
        self.calls: list[dict] = []
        self.head_reads = 0
        self.send_attempts = 0

    @property
    def chain_id(self) -> int:
        return self._chain_id

    def _maybe_fail(self):
        if self.read_failures > 0:
            self.read_failures -= 1
            raise RequestException("connection reset by peer")

    def mine(self, blocks: int = 1) -> None:
        for _ in range(blocks):
            self.head += 1
            for tx_hash, remaining in list(self.mempool.items()):
                if self.stuck:
                    continue
                if remaining > 0:
                    self.mempool[tx_hash] = remaining - 1
                    continue
                del self.mempool[tx_hash]
                self.receipts[tx_hash] = AttributeDict(
                    {
                        "transactionHash": HexBytes(tx_hash),
                        "blockNumber": self.head,
                        "status": 0 if self.revert else 1,
                        "gasUsed": 21_000,
                    }
                )

    def reorg(self, tx_hash: str) -> None:
        self.receipts.pop(tx_hash, None)
        self.mempool[tx_hash] = 0

    def get_block_number(self) -> int:
        self._maybe_fail()
        self.head_reads += 1
        self.mine()
        return self.head

    def get_transaction_receipt(self, tx_hash: str):
        self._maybe_fail()
        return self.receipts.get(tx_hash)

    def get_transaction(self, tx_hash: str):
        if tx_hash in self.mempool:
            return AttributeDict({"hash": HexBytes(tx_hash), "blockNumber": None})
        if (receipt := self.receipts.get(tx_hash)) is not None:
            return AttributeDict({"hash": HexBytes(tx_hash), "blockNumber": receipt["blockNumber"]})
        return None

    def get_transaction_count(self, address: str, block_identifier: str = "pending") -> int:
        return self.nonce

    def get_balance(self, address: str) -> int:
        return self.balance

    def call(self, tx: dict) -> bytes:
        self.calls.append(tx)
        if self.call_error is not None:
            raise self.call_error
        return b""

    def send_raw_transaction(self, raw_transaction: bytes) -> str:
        self.send_attempts += 1
        if self.send_error is not None:
            raise self.send_error
        self.sent.append(bytes(raw_transaction))
        tx_hash = HexBytes(Web3.keccak(raw_transaction)).to_0x_hex()
        if not self.dropped:
            self.mempool[tx_hash] = self.inclusion_delay
        self.nonce += 1
        return tx_hash


@pytest.fixture
def signer():
    return Account.from_key(TEST_PRIVATE_KEY)


@pytest.fixture
def registry():
    return NetworkRegistry(TESTNET_PROFILES)


@pytest.fixture
def resolver(registry):
    return AddressResolver(registry)


@pytest.fixture
def pair_binding(resolver, signer):
    pair = resolver.resolve_pair("testnet", "WETH", "DAI")
    return bind(pair, default_artifacts().load("IUniswapV2Pair"), signer=signer)


@pytest.fixture
def chain():
    return MockChain()


@pytest.fixture
def engine(chain):
    return SubmissionEngine(chain, poll_interval=0.01, logger=get_logger())


@pytest.fixture
def make_chain():
    return MockChain


@pytest.fixture
def recipient():
    return RECIPIENT


@pytest.fixture
def networks_file(tmp_path):
    path = tmp_path / "networks.yaml"
    path.write_text(yaml.safe_dump(TESTNET_PROFILES))
    return path
