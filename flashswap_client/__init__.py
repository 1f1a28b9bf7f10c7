"""Transaction orchestration client for Uniswap V2 flash swaps."""

from flashswap_client.contracts import ArtifactRegistry, bind, parse_abi
from flashswap_client.flashswap import FlashSwapper, FlashSwapRequest
from flashswap_client.resolver import AddressResolver, pair_for
from flashswap_client.submission import CancellationToken, SubmissionEngine
from flashswap_client.transaction import build

__all__ = [
    "AddressResolver",
    "pair_for",
    "ArtifactRegistry",
    "bind",
    "parse_abi",
    "build",
    "CancellationToken",
    "SubmissionEngine",
    "FlashSwapper",
    "FlashSwapRequest",
]
