import threading
from unittest.mock import MagicMock

import pytest
from requests.exceptions import ConnectionError as RequestsConnectionError
from web3.exceptions import TransactionNotFound
from web3.providers import HTTPProvider

from flashswap_client.constants import DEFAULT_RPC_ENDPOINTS
from flashswap_client.exceptions import NoAvailableRPC
from flashswap_client.protocols import ChainClient
from flashswap_client.resolver import load_network_profiles
from flashswap_client.utils import get_logger, load_rpc_endpoints
from flashswap_client.utils.w3 import RotatingHTTPProvider, Web3ChainClient, estimate_fees, get_w3_connection

RPC_ENDPOINTS = list(load_rpc_endpoints(DEFAULT_RPC_ENDPOINTS).model_dump(mode="json").items())
THROTTLED = {"jsonrpc": "2.0", "id": 1, "error": {"code": -32005, "message": "daily request count exceeded"}}


class TrackingHTTPProvider(HTTPProvider):
    def __init__(self, endpoint_uri: str, used: list, response=None, error: Exception | None = None):
        super().__init__(endpoint_uri)
        self.used = used
        self.response = response or {"jsonrpc": "2.0", "id": 1, "result": "0x1"}
        self.error = error
        self.lock = threading.Lock()

    def make_request(self, method, params):
        with self.lock:
            self.used.append(self.endpoint_uri)
        # No-op, no call to super(), we only use this to test provider rotation
        if self.error is not None:
            raise self.error
        return self.response


def rotating(*providers) -> RotatingHTTPProvider:
    return RotatingHTTPProvider(list(providers), initial_backoff=2.0, max_backoff=30.0, logger=get_logger())


def test_rpc_endpoints_cover_network_profiles():
    configured = {chain for chain, _ in RPC_ENDPOINTS}
    assert configured == set(load_network_profiles().root)


@pytest.mark.parametrize("chain, rpc_endpoints", RPC_ENDPOINTS)
def test_rotating_provider(chain, rpc_endpoints):
    used = []
    providers = [TrackingHTTPProvider(url, used) for url in rpc_endpoints]
    provider = rotating(*providers)

    for _ in range(len(providers)):
        assert provider.make_request("eth_blockNumber", [])["result"] == "0x1"

    unused = {p.endpoint_uri for p in providers} - set(used)
    assert not unused, f"Unused {chain} endpoints:\n{unused}"


def test_first_configured_endpoint_goes_first():
    used = []
    urls = [f"http://node{i}.invalid" for i in range(5)]
    provider = rotating(*(TrackingHTTPProvider(url, used) for url in urls))

    provider.make_request("eth_blockNumber", [])

    assert used == [urls[0]]
    assert provider.endpoint_uris[0] == urls[1]


def test_failing_endpoint_backs_off():
    used = []
    failing = TrackingHTTPProvider("http://failing.invalid", used, error=RequestsConnectionError("refused"))
    healthy = TrackingHTTPProvider("http://healthy.invalid", used)
    provider = rotating(failing, healthy)

    for _ in range(3):
        provider.make_request("eth_blockNumber", [])

    assert used.count("http://failing.invalid") == 1
    assert used.count("http://healthy.invalid") == 3


def test_throttled_endpoint_backs_off():
    used = []
    throttled = TrackingHTTPProvider("http://throttled.invalid", used, response=THROTTLED)
    healthy = TrackingHTTPProvider("http://healthy.invalid", used)
    provider = rotating(throttled, healthy)

    assert provider.make_request("eth_chainId", [])["result"] == "0x1"
    assert used == ["http://throttled.invalid", "http://healthy.invalid"]


def test_node_errors_are_returned_unchanged():
    reverted = {"jsonrpc": "2.0", "id": 1, "error": {"code": 3, "message": "execution reverted"}}
    provider = rotating(TrackingHTTPProvider("http://node.invalid", [], response=reverted))
    assert provider.make_request("eth_call", []) == reverted


def test_all_endpoints_cooling_down():
    error = RequestsConnectionError("refused")
    provider = rotating(
        TrackingHTTPProvider("http://a.invalid", [], error=error),
        TrackingHTTPProvider("http://b.invalid", [], error=error),
    )
    with pytest.raises(NoAvailableRPC):
        provider.make_request("eth_blockNumber", [])


def test_raw_transaction_not_replayed():
    used = []
    failing = TrackingHTTPProvider("http://failing.invalid", used, error=RequestsConnectionError("reset"))
    healthy = TrackingHTTPProvider("http://healthy.invalid", used)
    provider = rotating(failing, healthy)

    with pytest.raises(RequestsConnectionError):
        provider.make_request("eth_sendRawTransaction", ["0x00"])
    assert used == ["http://failing.invalid"]


def test_no_endpoints():
    with pytest.raises(NoAvailableRPC):
        RotatingHTTPProvider([], logger=get_logger())


def test_get_w3_connection_with_urls():
    w3 = get_w3_connection("hardhat", rpc_urls=["http://127.0.0.1:8545", "http://127.0.0.1:8546"])
    assert isinstance(w3.provider, RotatingHTTPProvider)
    assert sorted(w3.provider.endpoint_uris) == ["http://127.0.0.1:8545", "http://127.0.0.1:8546"]


def test_get_w3_connection_unknown_network():
    with pytest.raises(ValueError):
        get_w3_connection("ropsten")


def test_web3_chain_client_maps_missing_to_none():
    w3 = MagicMock()
    w3.eth.get_transaction_receipt.side_effect = TransactionNotFound("not found")
    w3.eth.get_transaction.side_effect = TransactionNotFound("not found")
    w3.eth.chain_id = 31337
    client = Web3ChainClient(w3)

    assert isinstance(client, ChainClient)
    assert client.get_transaction_receipt("0x" + "00" * 32) is None
    assert client.get_transaction("0x" + "00" * 32) is None
    assert client.chain_id == 31337


def test_estimate_fees():
    w3 = MagicMock()
    w3.eth.fee_history.return_value = {"baseFeePerGas": [100, 200], "reward": [[10, 50], [0, 70], [30, 0]]}

    low, high = estimate_fees(w3, [25, 75])

    assert low.max_priority_fee_per_gas == 20
    assert high.max_priority_fee_per_gas == 60
    assert low.max_fee_per_gas == int((200 + 20) * 1.1)
    w3.eth.fee_history.assert_called_once_with(20, "pending", [25, 75])
