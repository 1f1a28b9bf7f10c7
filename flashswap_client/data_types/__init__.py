"""Enums and Models used in the flashswap_client module"""

from .abi import (
    AbiConstructor,
    AbiError,
    AbiEvent,
    AbiFallback,
    AbiFunction,
    AbiParameter,
    AbiReceive,
    ContractAbi,
)
from .enums import FeeMode, StateMutability, SubmissionFailure, TimeoutReason, TxStatus
from .models import (
    Address,
    ContractBinding,
    FeeEstimate,
    FlashloanerDeployment,
    NetworkProfile,
    NetworkRegistry,
    PAttributeDict,
    PendingTransaction,
    RPCEndpoints,
    SignableTransaction,
    TxHash,
    TxOverrides,
    TxResult,
)

__all__ = [
    "TxStatus",
    "TimeoutReason",
    "SubmissionFailure",
    "FeeMode",
    "StateMutability",
    "AbiParameter",
    "AbiFunction",
    "AbiEvent",
    "AbiError",
    "AbiConstructor",
    "AbiFallback",
    "AbiReceive",
    "ContractAbi",
    "Address",
    "TxHash",
    "PAttributeDict",
    "NetworkProfile",
    "NetworkRegistry",
    "RPCEndpoints",
    "FlashloanerDeployment",
    "FeeEstimate",
    "TxOverrides",
    "ContractBinding",
    "SignableTransaction",
    "PendingTransaction",
    "TxResult",
]
