"""Models used in the flashswap_client module."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Mapping

from eth_account.signers.local import LocalAccount
from eth_utils import (
    is_0x_prefixed,
    is_address,
    is_checksum_address,
    is_checksum_formatted_address,
    is_hex,
    to_checksum_address,
)
from hexbytes import HexBytes
from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    GetCoreSchemaHandler,
    GetJsonSchemaHandler,
    HttpUrl,
    RootModel,
    field_validator,
    model_validator,
)
from pydantic.dataclasses import dataclass as pydantic_dataclass
from pydantic_core import core_schema
from web3.contract import Contract
from web3.datastructures import AttributeDict

from flashswap_client.exceptions import (
    AlreadyFinalizedError,
    InvalidAddressError,
    InvalidOverrideError,
    UnknownNetworkError,
    UnknownSymbolError,
)

from .abi import ContractAbi
from .enums import TimeoutReason, TxStatus


class PAttributeDict(AttributeDict):

    @classmethod
    def __get_pydantic_core_schema__(cls, _source, _handler: GetCoreSchemaHandler) -> core_schema.CoreSchema:
        return core_schema.no_info_plain_validator_function(lambda v, **kwargs: cls._validate(v))

    @classmethod
    def __get_pydantic_json_schema__(cls, _schema, _handler: GetJsonSchemaHandler) -> dict:
        return {"type": "object", "additionalProperties": True}

    @classmethod
    def _validate(cls, v) -> AttributeDict:
        if not isinstance(v, (dict, AttributeDict)):
            raise TypeError(f"Expected AttributeDict, got {v!r}")
        return AttributeDict(v)


class Address(str):
    @classmethod
    def __get_pydantic_core_schema__(cls, _source, _handler: GetCoreSchemaHandler) -> core_schema.CoreSchema:
        return core_schema.no_info_before_validator_function(cls._validate, core_schema.any_schema())

    @classmethod
    def __get_pydantic_json_schema__(cls, _schema, _handler: GetJsonSchemaHandler) -> dict:
        return {"type": "string", "format": "ethereum-address"}

    @classmethod
    def _validate(cls, v: str) -> str:
        if not isinstance(v, str) or not is_address(v):
            raise InvalidAddressError(f"Invalid Ethereum address: {v!r}")
        if is_checksum_formatted_address(v) and not is_checksum_address(v):
            raise InvalidAddressError(f"Bad checksum for mixed-case address: {v!r}")
        return to_checksum_address(v)

    @classmethod
    def from_value(cls, v: str) -> Address:
        """Validate and checksum `v`, raising InvalidAddressError."""
        return cls(cls._validate(v))


class TxHash(str):
    @classmethod
    def __get_pydantic_core_schema__(cls, _source, _handler: GetCoreSchemaHandler):
        return core_schema.no_info_before_validator_function(cls._validate, core_schema.str_schema())

    @classmethod
    def __get_pydantic_json_schema__(cls, _schema, _handler: GetJsonSchemaHandler):
        return {"type": "string", "format": "ethereum-tx-hash"}

    @classmethod
    def _validate(cls, v: str | HexBytes | bytes) -> str:
        if isinstance(v, (bytes, bytearray)):
            v = HexBytes(v).to_0x_hex()
        if not isinstance(v, str):
            raise ValueError("Expected a string or HexBytes for TxHash")
        if not is_0x_prefixed(v) or not is_hex(v) or len(v) != 66:
            raise ValueError(f"Invalid Ethereum transaction hash: {v}")
        return v.lower()


class NetworkProfile(BaseModel):
    """Static description of one network: chain id, token address table and Uniswap V2 factory."""

    model_config = ConfigDict(frozen=True)

    network_id: str
    chain_id: int
    known_addresses: dict[str, Address] = Field(default_factory=dict)
    pair_factory: Address | None = None
    pair_init_code_hash: str | None = None

    @field_validator("known_addresses", mode="after")
    @classmethod
    def _normalize_symbols(cls, value: dict[str, Address]) -> dict[str, Address]:
        normalized = {}
        for symbol, address in value.items():
            key = symbol.upper()
            if key in normalized and normalized[key] != address:
                raise ValueError(f"Conflicting addresses for symbol {symbol!r}")
            normalized[key] = address
        return normalized

    @field_validator("pair_init_code_hash", mode="after")
    @classmethod
    def _validate_init_code_hash(cls, value: str | None) -> str | None:
        if value is not None and (not is_0x_prefixed(value) or not is_hex(value) or len(value) != 66):
            raise ValueError(f"Invalid init code hash: {value}")
        return value

    def address_of(self, symbol: str) -> Address:
        try:
            return self.known_addresses[symbol.upper()]
        except KeyError:
            raise UnknownSymbolError(f"Unknown symbol {symbol!r} on network {self.network_id!r}") from None


class NetworkRegistry(RootModel, frozen=True):
    root: dict[str, NetworkProfile]

    @model_validator(mode="before")
    @classmethod
    def _inject_network_ids(cls, data: Any) -> Any:
        if isinstance(data, Mapping):
            return {
                name: {"network_id": name, **profile} if isinstance(profile, Mapping) else profile
                for name, profile in data.items()
            }
        return data

    def __getitem__(self, network_id: str) -> NetworkProfile:
        try:
            return self.root[network_id]
        except KeyError:
            known = ", ".join(sorted(self.root))
            raise UnknownNetworkError(f"Unknown network {network_id!r}, configured: {known}") from None

    def __contains__(self, network_id: str) -> bool:
        return network_id in self.root

    def __iter__(self):
        return iter(self.root)


class RPCEndpoints(RootModel, frozen=True):
    root: dict[str, list[HttpUrl]]

    def __getitem__(self, network_id: str) -> list[HttpUrl]:
        if not (urls := self.root.get(network_id, [])):
            raise ValueError(f"No RPC URLs configured for {network_id}")
        return urls


class FlashloanerDeployment(BaseModel):
    """Deployment record of the flash swap receiver contract."""

    model_config = ConfigDict(populate_by_name=True)

    flashloaner: Address = Field(alias="uniswapFlashloanerAddress")
    v2_library: Address | None = Field(default=None, alias="uniswapV2LibraryAddress")


@dataclass(frozen=True)
class FeeEstimate:
    max_fee_per_gas: int
    max_priority_fee_per_gas: int


_OVERRIDE_KEYS = {
    "gasLimit": "gas_limit",
    "gas": "gas_limit",
    "gasPrice": "gas_price",
    "maxFeePerGas": "max_fee_per_gas",
    "maxPriorityFeePerGas": "max_priority_fee_per_gas",
}


def _is_int(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


@dataclass(frozen=True)
class TxOverrides:
    """Explicit call parameters. Validated by `validate()`, which the transaction builder always calls."""

    gas_limit: int
    gas_price: int | None = None
    max_fee_per_gas: int | None = None
    max_priority_fee_per_gas: int | None = None
    value: int = 0
    nonce: int | None = None

    @classmethod
    def from_mapping(cls, overrides: Mapping[str, Any]) -> TxOverrides:
        """Accept both camelCase (`{"gasLimit": 8e6, "gasPrice": 60e8}`) and snake_case keys."""

        kwargs = {}
        for key, value in overrides.items():
            name = _OVERRIDE_KEYS.get(key, key)
            if name not in cls.__dataclass_fields__:
                raise InvalidOverrideError(f"Unsupported override: {key!r}")
            if isinstance(value, float):
                if not value.is_integer():
                    raise InvalidOverrideError(f"Override {key!r} must be integral, got {value}")
                value = int(value)
            kwargs[name] = value
        if "gas_limit" not in kwargs:
            raise InvalidOverrideError("Override 'gasLimit' is required")
        return cls(**kwargs)

    def validate(self) -> TxOverrides:
        if not _is_int(self.gas_limit) or self.gas_limit <= 0:
            raise InvalidOverrideError(f"gas_limit must be a positive integer, got {self.gas_limit!r}")
        for name in ("gas_price", "max_fee_per_gas", "max_priority_fee_per_gas", "nonce"):
            value = getattr(self, name)
            if value is not None and (not _is_int(value) or value < 0):
                raise InvalidOverrideError(f"{name} must be a non-negative integer, got {value!r}")
        if not _is_int(self.value) or self.value < 0:
            raise InvalidOverrideError(f"value must be a non-negative integer, got {self.value!r}")

        eip1559 = (self.max_fee_per_gas, self.max_priority_fee_per_gas)
        if self.gas_price is not None and any(fee is not None for fee in eip1559):
            raise InvalidOverrideError("gas_price cannot be combined with EIP-1559 fee fields")
        if self.gas_price is None:
            if None in eip1559:
                raise InvalidOverrideError("Either gas_price or both max_fee_per_gas and max_priority_fee_per_gas")
            if self.max_priority_fee_per_gas > self.max_fee_per_gas:
                raise InvalidOverrideError(
                    f"max_priority_fee_per_gas {self.max_priority_fee_per_gas} exceeds "
                    f"max_fee_per_gas {self.max_fee_per_gas}"
                )
        return self

    def to_tx_params(self) -> dict[str, int]:
        params = {"gas": self.gas_limit, "value": self.value}
        if self.gas_price is not None:
            params["gasPrice"] = self.gas_price
        else:
            params["maxFeePerGas"] = self.max_fee_per_gas
            params["maxPriorityFeePerGas"] = self.max_priority_fee_per_gas
        if self.nonce is not None:
            params["nonce"] = self.nonce
        return params


@dataclass(frozen=True)
class ContractBinding:
    address: Address
    abi: ContractAbi
    contract: Contract
    signer: LocalAccount | None = None

    @property
    def functions(self):
        return self.contract.functions


@dataclass(frozen=True)
class SignableTransaction:
    binding: ContractBinding
    method: str
    args: tuple
    tx: dict[str, Any]

    @property
    def nonce(self) -> int | None:
        return self.tx.get("nonce")

    @property
    def sender(self) -> str | None:
        return self.tx.get("from")


@dataclass
class PendingTransaction:
    """A submitted transaction. Status only moves from PENDING to one terminal status."""

    tx_hash: str
    nonce: int
    submitted_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    status: TxStatus = TxStatus.PENDING
    receipt: AttributeDict | None = None

    def __setattr__(self, name: str, value: Any) -> None:
        if name == "status":
            current = self.__dict__.get("status")
            if current is not None and current.is_terminal:
                raise AlreadyFinalizedError(f"Transaction {self.tx_hash} already finalized as {current.name}")
        super().__setattr__(name, value)

    def transition(self, status: TxStatus, receipt: AttributeDict | None = None) -> None:
        if self.status.is_terminal:
            raise AlreadyFinalizedError(f"Transaction {self.tx_hash} already finalized as {self.status.name}")
        if not status.is_terminal:
            raise ValueError(f"Cannot transition {self.tx_hash} back to {status.name}")
        self.status = status
        if receipt is not None:
            self.receipt = receipt


@pydantic_dataclass(frozen=True)
class TxResult:
    tx_hash: TxHash
    status: TxStatus
    receipt: PAttributeDict | None = None
    confirmations: int = 0
    timeout_reason: TimeoutReason | None = None

    @property
    def block_number(self) -> int | None:
        return None if self.receipt is None else self.receipt.get("blockNumber")

    @property
    def gas_used(self) -> int | None:
        return None if self.receipt is None else self.receipt.get("gasUsed")
