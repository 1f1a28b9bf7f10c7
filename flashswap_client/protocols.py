"""
Protocol definitions for the network collaborators of the submission engine
"""

from typing import Any, Protocol, runtime_checkable

from web3.datastructures import AttributeDict


@runtime_checkable
class ChainClient(Protocol):
    """Read/submit surface of a network RPC endpoint. Missing receipts and transactions are returned as None."""

    @property
    def chain_id(self) -> int: ...

    def get_block_number(self) -> int: ...

    def get_transaction_receipt(self, tx_hash: str) -> AttributeDict | None: ...

    def get_transaction(self, tx_hash: str) -> AttributeDict | None: ...

    def get_transaction_count(self, address: str, block_identifier: str = "pending") -> int: ...

    def get_balance(self, address: str) -> int: ...

    def call(self, tx: dict[str, Any]) -> bytes: ...

    def send_raw_transaction(self, raw_transaction: bytes) -> str: ...
