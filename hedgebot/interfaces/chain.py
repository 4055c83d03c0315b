"""Chain client protocol — blockchain RPC abstraction."""
from typing import Any, Protocol


class ChainClient(Protocol):
    """Abstract interface for blockchain RPC interactions."""

    async def get_owned_objects(
        self, wallet_address: str, struct_type: str | None = None
    ) -> list[dict[str, Any]]: ...

    async def get_object(self, object_id: str) -> dict[str, Any]: ...

    async def multi_get_objects(self, object_ids: list[str]) -> list[dict[str, Any]]: ...

    async def get_coins(self, owner: str, coin_type: str) -> list[dict[str, Any]]: ...

    async def get_coin_metadata(self, coin_type: str) -> dict[str, Any] | None: ...

    async def build_transaction(self, payload: dict[str, Any]) -> str: ...

    async def dry_run_transaction_block(self, tx_bytes: str) -> dict[str, Any]: ...

    async def execute_transaction_block(
        self, tx_bytes: str, signature: str
    ) -> dict[str, Any]: ...
