"""
Command line entry point: run a Uniswap V2 flash swap and wait for it to confirm.

    flashswap                                  # WETH/DAI on kovan, borrow 1 wei of WETH
    flashswap -n mainnet --borrow DAI --amount 1000 --recipient 0x...
"""

import logging
import os
import sys
from pathlib import Path

import click
from dotenv import load_dotenv
from eth_account import Account

from flashswap_client.constants import (
    DEFAULT_BASE_SYMBOL,
    DEFAULT_BORROW_AMOUNT,
    DEFAULT_CALLBACK_DATA,
    DEFAULT_CONFIRMATION_TIMEOUT,
    DEFAULT_CONFIRMATIONS,
    DEFAULT_DEPLOYMENT_FILE,
    DEFAULT_GAS_LIMIT,
    DEFAULT_GAS_PRICE,
    DEFAULT_NETWORK,
    DEFAULT_NETWORKS,
    DEFAULT_POLL_INTERVAL,
    DEFAULT_QUOTE_SYMBOL,
)
from flashswap_client.contracts import load_deployment
from flashswap_client.data_types import FeeMode, TxOverrides
from flashswap_client.exceptions import MissingSignerError
from flashswap_client.flashswap import FlashSwapper, FlashSwapRequest, PairSource
from flashswap_client.resolver import AddressResolver
from flashswap_client.submission import SubmissionEngine
from flashswap_client.utils.logger import get_logger
from flashswap_client.utils.unwrap import to_result, unwrap_or_raise
from flashswap_client.utils.w3 import Web3ChainClient, estimate_fees, get_w3_connection

FeeModeChoice = click.Choice([m.value for m in FeeMode])
PairSourceChoice = click.Choice([s.value for s in PairSource])


@click.command()
@click.option("--network", "-n", default=DEFAULT_NETWORK, show_default=True, envvar="FLASHSWAP_NETWORK")
@click.option("--base", default=DEFAULT_BASE_SYMBOL, show_default=True, help="First token of the pair.")
@click.option("--quote", default=DEFAULT_QUOTE_SYMBOL, show_default=True, help="Second token of the pair.")
@click.option("--borrow", default=None, help="Symbol of the token to borrow (defaults to --base).")
@click.option("--amount", "-a", type=int, default=DEFAULT_BORROW_AMOUNT, show_default=True, help="Amount in wei.")
@click.option("--recipient", "-r", default=None, help="Flash swap receiver (defaults to the deployment record).")
@click.option(
    "--deployment",
    type=click.Path(dir_okay=False, path_type=Path),
    default=DEFAULT_DEPLOYMENT_FILE,
    show_default=True,
    help="Deployment record holding uniswapFlashloanerAddress.",
)
@click.option("--data", default=DEFAULT_CALLBACK_DATA, show_default=True, help="Callback data passed to the receiver.")
@click.option("--gas-limit", type=int, default=DEFAULT_GAS_LIMIT, show_default=True)
@click.option("--gas-price", type=int, default=DEFAULT_GAS_PRICE, show_default=True, help="Legacy gas price in wei.")
@click.option("--fee-mode", type=FeeModeChoice, default=FeeMode.LEGACY.value, show_default=True)
@click.option("--confirmations", "-c", type=int, default=DEFAULT_CONFIRMATIONS, show_default=True)
@click.option("--timeout", "-t", type=float, default=DEFAULT_CONFIRMATION_TIMEOUT, show_default=True, help="Seconds.")
@click.option("--poll-interval", type=float, default=DEFAULT_POLL_INTERVAL, show_default=True, help="Seconds.")
@click.option("--pair-source", type=PairSourceChoice, default=PairSource.CREATE2.value, show_default=True)
@click.option("--rpc-url", multiple=True, envvar="FLASHSWAP_RPC_URL", help="Overrides the configured endpoints.")
@click.option("--networks-file", type=click.Path(exists=True, dir_okay=False, path_type=Path), default=None)
@click.option("--simulate/--no-simulate", default=False, show_default=True, help="eth_call preflight.")
@click.option("--verbose", "-v", is_flag=True, default=False)
def main(
    network,
    base,
    quote,
    borrow,
    amount,
    recipient,
    deployment,
    data,
    gas_limit,
    gas_price,
    fee_mode,
    confirmations,
    timeout,
    poll_interval,
    pair_source,
    rpc_url,
    networks_file,
    simulate,
    verbose,
):
    """
    Execute a Uniswap V2 flash swap and wait for confirmation.

    Prints the pair address, the transaction hash and the terminal status.
    Exits 1 on any error, including revert and timeout.
    """

    load_dotenv()
    logger = get_logger(level=logging.DEBUG if verbose else logging.INFO)

    try:
        if (private_key := os.environ.get("ETH_PRIVATE_KEY")) is None:
            raise MissingSignerError("`ETH_PRIVATE_KEY` not found in env.")
        signer = Account.from_key(private_key)

        resolver = AddressResolver.from_file(networks_file or DEFAULT_NETWORKS)
        resolver.profile(network)
        recipient = recipient or load_deployment(deployment).flashloaner

        w3 = get_w3_connection(network, rpc_urls=list(rpc_url) or None, logger=logger)
        if FeeMode(fee_mode) is FeeMode.EIP1559:
            fees = estimate_fees(w3, [50])[0]
            overrides = TxOverrides(
                gas_limit=gas_limit,
                max_fee_per_gas=fees.max_fee_per_gas,
                max_priority_fee_per_gas=fees.max_priority_fee_per_gas,
            )
        else:
            overrides = TxOverrides(gas_limit=gas_limit, gas_price=gas_price)

        request = FlashSwapRequest(
            recipient=recipient,
            network=network,
            base=base,
            quote=quote,
            borrow=borrow,
            amount=amount,
            data=data,
            overrides=overrides,
            confirmations=confirmations,
            timeout=timeout,
            pair_source=PairSource(pair_source),
        )
        engine = SubmissionEngine(Web3ChainClient(w3), poll_interval=poll_interval, logger=logger)
        swapper = FlashSwapper(resolver, engine, signer, w3=w3, logger=logger)

        pair = swapper.bind_pair(request)
        click.echo(pair.address)
        tx_result = swapper.execute(request, simulate=simulate, pair=pair)
        click.echo(tx_result.tx_hash)
        click.echo(tx_result.status.name)
        unwrap_or_raise(to_result(tx_result))
    except Exception as e:
        click.echo(f"{type(e).__name__}: {e}", err=True)
        sys.exit(1)

    logger.info("Flash swap confirmed, see tx %s for details", tx_result.tx_hash)


if __name__ == "__main__":
    main()
