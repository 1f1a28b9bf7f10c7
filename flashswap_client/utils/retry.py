import functools
import time

from requests import RequestException
from web3.exceptions import ProviderConnectionError

from flashswap_client.exceptions import NoAvailableRPC
from flashswap_client.utils.logger import get_logger

# read failures worth retrying: transport errors and endpoint exhaustion
TRANSIENT_ERRORS = (RequestException, ProviderConnectionError, ConnectionError, TimeoutError, NoAvailableRPC)


def exp_backoff_retry(func=None, *, attempts=3, initial_delay=1, exceptions=TRANSIENT_ERRORS):
    """Retry `func` with exponential back-off. Only for idempotent reads: never wrap a submission."""

    if func is None:
        return lambda f: exp_backoff_retry(f, attempts=attempts, initial_delay=initial_delay, exceptions=exceptions)

    @functools.wraps(func)
    def wrapper(*args, **kwargs):
        delay = initial_delay
        for attempt in range(attempts):
            try:
                return func(*args, **kwargs)
            except exceptions as e:
                if attempt == attempts - 1:
                    raise
                msg = "Failed execution of %s (attempt %d/%d): %s. Trying again in %.1f seconds"
                get_logger().info(msg, getattr(func, "__name__", func), attempt + 1, attempts, e, delay)
                time.sleep(delay)
                delay *= 2

    return wrapper
