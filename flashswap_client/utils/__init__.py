"""Utils for the flashswap client package."""

from .logger import get_logger
from .retry import exp_backoff_retry
from .unwrap import to_result, unwrap_or_raise
from .w3 import RotatingHTTPProvider, Web3ChainClient, estimate_fees, get_w3_connection, load_rpc_endpoints

__all__ = [
    "estimate_fees",
    "get_logger",
    "exp_backoff_retry",
    "get_w3_connection",
    "load_rpc_endpoints",
    "RotatingHTTPProvider",
    "Web3ChainClient",
    "to_result",
    "unwrap_or_raise",
]
