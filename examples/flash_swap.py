"""
Example of a WETH/DAI flash swap on a local mainnet fork, waiting for two confirmations
"""

import os

import click
from dotenv import load_dotenv
from eth_account import Account

from flashswap_client import AddressResolver, FlashSwapper, FlashSwapRequest, SubmissionEngine
from flashswap_client.data_types import Address, TxOverrides
from flashswap_client.utils import Web3ChainClient, get_w3_connection, unwrap_or_raise


@click.command()
@click.option("--receiver", "-r", type=Address.from_value, required=True, help="The flash swap receiver contract.")
@click.option("--amount", "-a", type=int, default=10**18, help="The amount of WETH to borrow, in wei.")
@click.option("--rpc-url", default="http://127.0.0.1:8545", help="The fork's RPC endpoint.")
def main(receiver, amount, rpc_url):
    """
    Borrow WETH from the WETH/DAI pair and repay it within the receiver's callback.
    """

    load_dotenv()

    if (private_key := os.environ.get("ETH_PRIVATE_KEY")) is None:
        raise ValueError("`ETH_PRIVATE_KEY` not found in env.")

    w3 = get_w3_connection("hardhat", rpc_urls=[rpc_url])
    swapper = FlashSwapper(
        resolver=AddressResolver.from_file(),
        engine=SubmissionEngine(Web3ChainClient(w3), poll_interval=0.5),
        signer=Account.from_key(private_key),
        w3=w3,
    )
    request = FlashSwapRequest(
        recipient=receiver,
        network="hardhat",
        amount=amount,
        overrides=TxOverrides(gas_limit=500_000, gas_price=w3.eth.gas_price),
        confirmations=2,
        timeout=60.0,
    )

    tx_result = unwrap_or_raise(swapper.run(request, simulate=True))
    print(f"Flash swap confirmed in block {tx_result.block_number}: {tx_result.tx_hash}")


if __name__ == "__main__":
    main()
