"""Constants for the flashswap client."""

from pathlib import Path

PACKAGE_ROOT = Path(__file__).parent
DATA_DIR = PACKAGE_ROOT / "data"
ABI_DATA_DIR = DATA_DIR / "abis"

DEFAULT_NETWORKS = DATA_DIR / "networks.yaml"
DEFAULT_RPC_ENDPOINTS = DATA_DIR / "rpc_endpoints.yaml"
DEFAULT_DEPLOYMENT_FILE = Path("UniswapFlashloaner.json")

UNISWAP_V2_PAIR = "IUniswapV2Pair"
UNISWAP_V2_FACTORY = "IUniswapV2Factory"

# flash swap defaults
DEFAULT_NETWORK = "kovan"
DEFAULT_BASE_SYMBOL = "WETH"
DEFAULT_QUOTE_SYMBOL = "DAI"
DEFAULT_BORROW_AMOUNT = 1
DEFAULT_CALLBACK_DATA = "0x00"
DEFAULT_GAS_LIMIT = 8_000_000
DEFAULT_GAS_PRICE = 6_000_000_000

# confirmation defaults
DEFAULT_CONFIRMATIONS = 1
DEFAULT_CONFIRMATION_TIMEOUT = 120.0
DEFAULT_POLL_INTERVAL = 1.0

GAS_FEE_BUFFER = 1.1  # multiplier on the latest base fee
