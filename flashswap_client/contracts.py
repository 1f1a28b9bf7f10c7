"""
Contract bindings: ABI parsing, artifact loading and typed contract proxies.

Binding never touches the network; the web3 handle is only used to encode
calldata and, later, to perform calls through the connection it was built on.
"""

from __future__ import annotations

import functools
import json
from pathlib import Path
from typing import Any, Union

from eth_account.signers.local import LocalAccount
from pydantic import ValidationError
from web3 import Web3

from flashswap_client.constants import ABI_DATA_DIR
from flashswap_client.data_types import Address, ContractAbi, ContractBinding, FlashloanerDeployment
from flashswap_client.exceptions import InvalidAbiError

AbiDescriptor = Union[ContractAbi, list, dict, str, Path]


def _read_json(path: Path) -> Any:
    try:
        return json.loads(path.read_text())
    except FileNotFoundError:
        raise InvalidAbiError(f"ABI artifact not found: {path}") from None
    except json.JSONDecodeError as e:
        raise InvalidAbiError(f"ABI artifact {path} is not valid JSON: {e}") from e


def parse_abi(descriptor: AbiDescriptor) -> ContractAbi:
    """
    Validate an ABI descriptor once into a ContractAbi.

    Accepts a parsed ABI list, a compiler artifact (hardhat / foundry) holding an
    `abi` key, JSON text of either, or a path to a JSON file.
    """

    if isinstance(descriptor, ContractAbi):
        return descriptor
    if isinstance(descriptor, Path):
        descriptor = _read_json(descriptor)
    elif isinstance(descriptor, str):
        try:
            descriptor = json.loads(descriptor)
        except json.JSONDecodeError as e:
            raise InvalidAbiError(f"ABI descriptor is not valid JSON: {e}") from e

    if isinstance(descriptor, dict):
        if "abi" not in descriptor:
            raise InvalidAbiError("Contract artifact has no 'abi' key")
        descriptor = descriptor["abi"]
    if not isinstance(descriptor, list):
        raise InvalidAbiError(f"ABI must be a list of entries, got {type(descriptor).__name__}")

    try:
        return ContractAbi.model_validate(descriptor)
    except ValidationError as e:
        raise InvalidAbiError(f"Malformed ABI: {e}") from e


class ArtifactRegistry:
    """Loads `<name>.json` compiler artifacts from a directory, parsing each at most once."""

    def __init__(self, directory: Path = ABI_DATA_DIR):
        self.directory = Path(directory)
        self._cache: dict[str, ContractAbi] = {}

    def path_of(self, name: str) -> Path:
        return self.directory / f"{name}.json"

    def load(self, name: str) -> ContractAbi:
        if name not in self._cache:
            self._cache[name] = parse_abi(self.path_of(name))
        return self._cache[name]

    def available(self) -> list[str]:
        return sorted(path.stem for path in self.directory.glob("*.json"))


@functools.lru_cache
def default_artifacts() -> ArtifactRegistry:
    return ArtifactRegistry(ABI_DATA_DIR)


def bind(
    address: str,
    abi: AbiDescriptor,
    signer: LocalAccount | None = None,
    w3: Web3 | None = None,
) -> ContractBinding:
    """Bind an address to a validated ABI. Raises InvalidAddressError / InvalidAbiError; performs no I/O."""

    checksum_address = Address.from_value(address)
    contract_abi = parse_abi(abi)
    w3 = w3 or Web3()
    contract = w3.eth.contract(address=checksum_address, abi=contract_abi.to_json_abi())
    return ContractBinding(address=checksum_address, abi=contract_abi, contract=contract, signer=signer)


def load_deployment(path: Path) -> FlashloanerDeployment:
    """Read the flash swap receiver deployment record (`UniswapFlashloaner.json`)."""
    return FlashloanerDeployment.model_validate_json(Path(path).read_text())
