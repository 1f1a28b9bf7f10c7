"""
Address resolution: static (network, symbol) → address tables and Uniswap V2 pair derivation.
"""

from __future__ import annotations

import functools
from pathlib import Path
from typing import Mapping

import yaml
from eth_utils import keccak, to_bytes, to_checksum_address

from flashswap_client.constants import DEFAULT_NETWORKS
from flashswap_client.data_types import Address, ContractBinding, NetworkProfile, NetworkRegistry
from flashswap_client.exceptions import InvalidAddressError, PairNotFoundError, UnknownNetworkError
from flashswap_client.utils.retry import exp_backoff_retry

ZERO_ADDRESS = "0x0000000000000000000000000000000000000000"


@functools.lru_cache
def load_network_profiles(path: Path = DEFAULT_NETWORKS) -> NetworkRegistry:
    """Load the network profile table once per path."""
    return NetworkRegistry(yaml.safe_load(Path(path).read_text()))


def sort_tokens(token_a: str, token_b: str) -> tuple[Address, Address]:
    """Order two token addresses the way a Uniswap V2 pair assigns token0 / token1."""

    a, b = Address.from_value(token_a), Address.from_value(token_b)
    if a == b:
        raise InvalidAddressError(f"Identical token addresses: {a}")
    token0, token1 = (a, b) if a.lower() < b.lower() else (b, a)
    if token0 == ZERO_ADDRESS:
        raise InvalidAddressError("Zero address is not a token")
    return token0, token1


def pair_for(factory: str, token_a: str, token_b: str, init_code_hash: str) -> Address:
    """CREATE2 address of the pair contract for two tokens, computed without network access."""

    token0, token1 = sort_tokens(token_a, token_b)
    salt = keccak(to_bytes(hexstr=token0) + to_bytes(hexstr=token1))
    digest = keccak(b"\xff" + to_bytes(hexstr=Address.from_value(factory)) + salt + to_bytes(hexstr=init_code_hash))
    return Address(to_checksum_address(digest[12:]))


@exp_backoff_retry
def fetch_pair(factory: ContractBinding, token_a: str, token_b: str) -> Address:
    """Ask the factory contract for the pair address. Raises PairNotFoundError if the pair was never created."""

    pair = factory.functions.getPair(Address.from_value(token_a), Address.from_value(token_b)).call()
    if int(pair, 16) == 0:
        raise PairNotFoundError(f"Factory {factory.address} has no pair for {token_a} / {token_b}")
    return Address.from_value(pair)


class AddressResolver:
    """Resolves token symbols to addresses from immutable network profiles."""

    def __init__(self, profiles: NetworkRegistry | Mapping[str, NetworkProfile]):
        if isinstance(profiles, NetworkRegistry):
            profiles = profiles.root
        self._profiles = dict(profiles)

    @classmethod
    def from_file(cls, path: Path = DEFAULT_NETWORKS) -> AddressResolver:
        return cls(load_network_profiles(path))

    @property
    def networks(self) -> list[str]:
        return sorted(self._profiles)

    def profile(self, network_id: str) -> NetworkProfile:
        try:
            return self._profiles[network_id]
        except KeyError:
            raise UnknownNetworkError(f"Unknown network {network_id!r}, configured: {self.networks}") from None

    def resolve(self, network_id: str, symbol: str) -> Address:
        return self.profile(network_id).address_of(symbol)

    def resolve_pair(self, network_id: str, symbol_a: str, symbol_b: str) -> Address:
        profile = self.profile(network_id)
        if profile.pair_factory is None or profile.pair_init_code_hash is None:
            raise UnknownNetworkError(f"No pair factory configured for network {network_id!r}")
        token_a, token_b = profile.address_of(symbol_a), profile.address_of(symbol_b)
        return pair_for(profile.pair_factory, token_a, token_b, profile.pair_init_code_hash)
