"""
Transaction builder: turns a contract binding, a method call and explicit
overrides into a fully specified, unsigned transaction without any I/O.
"""

from __future__ import annotations

from typing import Any, Mapping, Sequence

from eth_abi import encode
from eth_abi.exceptions import EncodingError
from eth_utils import function_signature_to_4byte_selector

from flashswap_client.data_types import AbiFunction, ContractBinding, SignableTransaction, StateMutability, TxOverrides
from flashswap_client.exceptions import InvalidCallError, InvalidOverrideError, UnknownMethodError


def _select_function(binding: ContractBinding, method: str, args: Sequence[Any]) -> AbiFunction:
    if "(" in method:
        candidates = [f for f in binding.abi.functions if f.signature == method.replace(" ", "")]
    else:
        candidates = binding.abi.get_functions(method)
    if not candidates:
        raise UnknownMethodError(f"Contract {binding.address} has no function {method!r}")

    matching = [f for f in candidates if len(f.inputs) == len(args)]
    if not matching:
        expected = " or ".join(str(len(f.inputs)) for f in candidates)
        raise InvalidCallError(f"{method} expects {expected} arguments, got {len(args)}")
    if len(matching) > 1:
        signatures = ", ".join(f.signature for f in matching)
        raise InvalidCallError(f"Ambiguous overload for {method!r}: {signatures}; pass the full signature")
    return matching[0]


def encode_call(function: AbiFunction, args: Sequence[Any]) -> str:
    """0x-prefixed calldata: 4-byte selector followed by the ABI-encoded arguments."""

    selector = function_signature_to_4byte_selector(function.signature)
    types = [param.canonical_type for param in function.inputs]
    try:
        encoded = encode(types, list(args))
    except (EncodingError, TypeError, ValueError, OverflowError) as e:
        raise InvalidCallError(f"Cannot encode arguments for {function.signature}: {e}") from e
    return "0x" + (selector + encoded).hex()


def build(
    binding: ContractBinding,
    method: str,
    args: Sequence[Any] = (),
    overrides: TxOverrides | Mapping[str, Any] | None = None,
    *,
    chain_id: int | None = None,
) -> SignableTransaction:
    """Assemble a signable transaction calling `method` on `binding`."""

    if overrides is None:
        raise InvalidOverrideError("Transaction overrides with at least a gas limit are required")
    if not isinstance(overrides, TxOverrides):
        overrides = TxOverrides.from_mapping(overrides)
    overrides.validate()

    function = _select_function(binding, method, args)
    if function.is_read_only:
        raise InvalidCallError(f"{function.signature} is {function.state_mutability.value}; call it instead")
    if overrides.value and function.state_mutability is not StateMutability.PAYABLE:
        raise InvalidOverrideError(f"{function.signature} is not payable but value={overrides.value}")

    tx = {
        "to": binding.address,
        "data": encode_call(function, args),
        **overrides.to_tx_params(),
    }
    if binding.signer is not None:
        tx["from"] = binding.signer.address
    if chain_id is not None:
        tx["chainId"] = chain_id

    return SignableTransaction(binding=binding, method=function.signature, args=tuple(args), tx=tx)
