import pytest

from flashswap_client.contracts import bind
from flashswap_client.data_types import SignableTransaction, TxOverrides
from flashswap_client.exceptions import InvalidCallError, InvalidOverrideError, UnknownMethodError
from flashswap_client.transaction import build, encode_call

OVERRIDES = {"gasLimit": 8e6, "gasPrice": 60e8}
SWAP_SELECTOR = "0x022c0d9f"


@pytest.fixture
def swap_args(recipient):
    return (0, 1, recipient, b"\x00")


def test_build_swap(pair_binding, swap_args):
    tx = build(pair_binding, "swap", swap_args, OVERRIDES)

    assert isinstance(tx, SignableTransaction)
    assert tx.method == "swap(uint256,uint256,address,bytes)"
    assert tx.tx["to"] == pair_binding.address
    assert tx.tx["gas"] == 8_000_000
    assert tx.tx["gasPrice"] == 6_000_000_000
    assert tx.tx["value"] == 0
    assert tx.sender == pair_binding.signer.address
    assert tx.nonce is None
    assert tx.tx["data"].startswith(SWAP_SELECTOR)
    # selector, three static words, offset word, length word, one padded data word
    assert len(tx.tx["data"]) == 2 + 2 * (4 + 32 * 6)


def test_build_is_deterministic(pair_binding, swap_args):
    assert build(pair_binding, "swap", swap_args, OVERRIDES).tx == build(pair_binding, "swap", swap_args, OVERRIDES).tx


def test_build_with_full_signature(pair_binding, swap_args):
    tx = build(pair_binding, "swap(uint256,uint256,address,bytes)", swap_args, OVERRIDES)
    assert tx.tx["data"].startswith(SWAP_SELECTOR)


def test_build_eip1559(pair_binding, swap_args):
    overrides = TxOverrides(gas_limit=500_000, max_fee_per_gas=30 * 10**9, max_priority_fee_per_gas=10**9, nonce=3)
    tx = build(pair_binding, "swap", swap_args, overrides, chain_id=1)
    assert "gasPrice" not in tx.tx
    assert tx.tx["maxFeePerGas"] == 30 * 10**9
    assert tx.tx["chainId"] == 1
    assert tx.nonce == 3


@pytest.mark.parametrize("gas_limit", [0, -1, -8_000_000])
def test_build_rejects_non_positive_gas_limit(pair_binding, swap_args, gas_limit):
    with pytest.raises(InvalidOverrideError):
        build(pair_binding, "swap", swap_args, {"gasLimit": gas_limit, "gasPrice": 6_000_000_000})


@pytest.mark.parametrize(
    "overrides",
    [
        None,
        {},
        {"gasPrice": 1},
        {"gasLimit": 1.5, "gasPrice": 1},
        {"gasLimit": "8000000", "gasPrice": 1},
        {"gasLimit": True, "gasPrice": 1},
        {"gasLimit": 21_000, "gasPrice": -1},
        {"gasLimit": 21_000},
        {"gasLimit": 21_000, "gasPrice": 1, "maxFeePerGas": 2, "maxPriorityFeePerGas": 1},
        {"gasLimit": 21_000, "maxFeePerGas": 1, "maxPriorityFeePerGas": 2},
        {"gasLimit": 21_000, "maxFeePerGas": 1},
        {"gasLimit": 21_000, "gasPrice": 1, "nonce": -1},
        {"gasLimit": 21_000, "gasPrice": 1, "gasToken": "ETH"},
    ],
)
def test_build_rejects_invalid_overrides(pair_binding, swap_args, overrides):
    with pytest.raises(InvalidOverrideError):
        build(pair_binding, "swap", swap_args, overrides)


def test_zero_gas_price_allowed(pair_binding, swap_args):
    assert build(pair_binding, "swap", swap_args, {"gasLimit": 21_000, "gasPrice": 0}).tx["gasPrice"] == 0


def test_build_rejects_value_for_nonpayable(pair_binding, swap_args):
    with pytest.raises(InvalidOverrideError):
        build(pair_binding, "swap", swap_args, {**OVERRIDES, "value": 1})


def test_build_unknown_method(pair_binding, swap_args):
    with pytest.raises(UnknownMethodError):
        build(pair_binding, "flashLoan", swap_args, OVERRIDES)


@pytest.mark.parametrize(
    "args",
    [
        (0, 1),
        (0, 1, "0x000000000000000000000000000000000000dEaD", b"\x00", 5),
        (-1, 1, "0x000000000000000000000000000000000000dEaD", b"\x00"),
        (0, 2**256, "0x000000000000000000000000000000000000dEaD", b"\x00"),
        (0, 1, "not-an-address", b"\x00"),
        ("zero", 1, "0x000000000000000000000000000000000000dEaD", b"\x00"),
    ],
)
def test_build_invalid_arguments(pair_binding, args):
    with pytest.raises(InvalidCallError):
        build(pair_binding, "swap", args, OVERRIDES)


def test_build_rejects_view_function(pair_binding):
    with pytest.raises(InvalidCallError):
        build(pair_binding, "getReserves", (), OVERRIDES)


def test_build_without_signer(pair_binding, swap_args):
    binding = bind(pair_binding.address, pair_binding.abi)
    tx = build(binding, "swap", swap_args, OVERRIDES)
    assert "from" not in tx.tx


def test_ambiguous_overload(recipient):
    abi = [
        {"type": "function", "name": "pay", "inputs": [{"name": "to", "type": "address"}]},
        {"type": "function", "name": "pay", "inputs": [{"name": "amount", "type": "uint256"}]},
    ]
    binding = bind(recipient, abi)
    with pytest.raises(InvalidCallError):
        build(binding, "pay", (1,), OVERRIDES)
    tx = build(binding, "pay(uint256)", (1,), OVERRIDES)
    assert tx.method == "pay(uint256)"


def test_encode_call_matches_known_calldata(pair_binding):
    function = pair_binding.abi.get_functions("skim")[0]
    calldata = encode_call(function, ["0x000000000000000000000000000000000000dEaD"])
    # keccak("skim(address)")[:4] followed by the left-padded address
    assert calldata == "0xbc25cf77" + "0" * 24 + "000000000000000000000000000000000000dead"
