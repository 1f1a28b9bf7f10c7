"""
Typed ABI descriptors.

An ABI list is parsed once into a tagged union keyed on the entry `type`, so a
malformed descriptor fails at bind time instead of at call time.
"""

from __future__ import annotations

import re
from typing import Annotated, Any, Literal, Union

from pydantic import BaseModel, ConfigDict, Field, RootModel, field_validator, model_validator

from .enums import StateMutability

SOLIDITY_TYPE = re.compile(
    r"^(address|bool|string|bytes([1-9]|[12][0-9]|3[0-2])?|u?int(8|16|24|32|40|48|56|64|72|80|88|96|104|112|120|128"
    r"|136|144|152|160|168|176|184|192|200|208|216|224|232|240|248|256)?|tuple|function"
    r"|u?fixed(\d+x\d+)?)(\[\d*\])*$"
)


class AbiParameter(BaseModel):
    model_config = ConfigDict(extra="allow", populate_by_name=True, frozen=True)

    name: str = ""
    type: str
    internal_type: str | None = Field(default=None, alias="internalType")
    indexed: bool | None = None
    components: list[AbiParameter] | None = None

    @field_validator("type")
    @classmethod
    def _validate_type(cls, value: str) -> str:
        if not SOLIDITY_TYPE.match(value):
            raise ValueError(f"Unsupported solidity type: {value!r}")
        return value

    @model_validator(mode="after")
    def _check_components(self) -> AbiParameter:
        if self.type.startswith("tuple") and not self.components:
            raise ValueError(f"Tuple parameter {self.name!r} has no components")
        return self

    @property
    def canonical_type(self) -> str:
        if not self.type.startswith("tuple"):
            return self.type
        inner = ",".join(component.canonical_type for component in self.components)
        return f"({inner}){self.type[len('tuple'):]}"


class _AbiEntry(BaseModel):
    model_config = ConfigDict(extra="allow", populate_by_name=True, frozen=True)


class AbiFunction(_AbiEntry):
    type: Literal["function"]
    name: str = Field(min_length=1)
    inputs: list[AbiParameter] = Field(default_factory=list)
    outputs: list[AbiParameter] = Field(default_factory=list)
    state_mutability: StateMutability = Field(default=StateMutability.NONPAYABLE, alias="stateMutability")

    @model_validator(mode="before")
    @classmethod
    def _legacy_mutability(cls, data: Any) -> Any:
        # pre-0.5 compilers emit `constant` / `payable` flags instead of `stateMutability`
        if isinstance(data, dict) and "stateMutability" not in data:
            if data.get("constant"):
                data = {**data, "stateMutability": "view"}
            elif data.get("payable"):
                data = {**data, "stateMutability": "payable"}
        return data

    @property
    def signature(self) -> str:
        return f"{self.name}({','.join(p.canonical_type for p in self.inputs)})"

    @property
    def is_read_only(self) -> bool:
        return self.state_mutability in (StateMutability.VIEW, StateMutability.PURE)


class AbiEvent(_AbiEntry):
    type: Literal["event"]
    name: str = Field(min_length=1)
    inputs: list[AbiParameter] = Field(default_factory=list)
    anonymous: bool = False


class AbiError(_AbiEntry):
    type: Literal["error"]
    name: str = Field(min_length=1)
    inputs: list[AbiParameter] = Field(default_factory=list)


class AbiConstructor(_AbiEntry):
    type: Literal["constructor"]
    inputs: list[AbiParameter] = Field(default_factory=list)
    state_mutability: StateMutability = Field(default=StateMutability.NONPAYABLE, alias="stateMutability")


class AbiFallback(_AbiEntry):
    type: Literal["fallback"]
    state_mutability: StateMutability = Field(default=StateMutability.NONPAYABLE, alias="stateMutability")


class AbiReceive(_AbiEntry):
    type: Literal["receive"]
    state_mutability: StateMutability = Field(default=StateMutability.PAYABLE, alias="stateMutability")


AbiEntry = Annotated[
    Union[AbiFunction, AbiEvent, AbiError, AbiConstructor, AbiFallback, AbiReceive],
    Field(discriminator="type"),
]


class ContractAbi(RootModel, frozen=True):
    root: list[AbiEntry]

    @model_validator(mode="before")
    @classmethod
    def _default_entry_type(cls, data: Any) -> Any:
        # entries without `type` are functions
        if isinstance(data, list):
            return [
                {"type": "function", **entry} if isinstance(entry, dict) and "type" not in entry else entry
                for entry in data
            ]
        return data

    @model_validator(mode="after")
    def _unique_signatures(self) -> ContractAbi:
        seen = set()
        for function in self.functions:
            if function.signature in seen:
                raise ValueError(f"Duplicate function signature: {function.signature}")
            seen.add(function.signature)
        constructors = [entry for entry in self.root if isinstance(entry, AbiConstructor)]
        if len(constructors) > 1:
            raise ValueError("ABI declares more than one constructor")
        return self

    @property
    def functions(self) -> list[AbiFunction]:
        return [entry for entry in self.root if isinstance(entry, AbiFunction)]

    @property
    def events(self) -> list[AbiEvent]:
        return [entry for entry in self.root if isinstance(entry, AbiEvent)]

    def get_functions(self, name: str) -> list[AbiFunction]:
        """All overloads of `name`, empty if none."""
        return [function for function in self.functions if function.name == name]

    def to_json_abi(self) -> list[dict[str, Any]]:
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)
