"""SUI RPC client with fallback support."""
import asyncio
import logging
import ssl
from typing import Any

import aiohttp
import certifi

from ...config import ChainConfig
from ...errors import DataUnavailable, RpcRejected

logger = logging.getLogger(__name__)

_OBJECT_OPTIONS = {"showType": True, "showContent": True, "showOwner": True}


class SuiClient:
    """SUI blockchain RPC client with automatic endpoint fallback."""

    def __init__(self, config: ChainConfig) -> None:
        self.endpoints = list(config.rpc_endpoints)
        self.timeout = config.rpc_timeout
        self.builder_url = config.builder_url
        self.gas_budget = config.gas_budget
        self.current_rpc_index = 0

    async def rpc_call(
        self,
        method: str,
        params: list[Any],
        fallback: bool = True,
        retry_rejected: bool = True,
    ) -> Any:
        """Make RPC call with fallback to alternative endpoints.

        ``fallback=False`` sends to the current endpoint only. With
        ``retry_rejected=False`` a JSON-RPC error answer raises RpcRejected
        at once instead of being repeated on the next endpoint.
        """
        payload = {"jsonrpc": "2.0", "id": 1, "method": method, "params": params}

        ssl_context = ssl.create_default_context(cafile=certifi.where())

        attempts = len(self.endpoints) if fallback else min(1, len(self.endpoints))
        last_error: Exception | None = None
        for attempt in range(attempts):
            rpc_index = (self.current_rpc_index + attempt) % len(self.endpoints)
            rpc_url = self.endpoints[rpc_index]

            try:
                connector = aiohttp.TCPConnector(ssl=ssl_context)
                async with aiohttp.ClientSession(connector=connector) as session:
                    async with session.post(
                        rpc_url,
                        json=payload,
                        timeout=aiohttp.ClientTimeout(total=self.timeout),
                    ) as response:
                        result = await response.json()
                        if "error" in result:
                            raise RpcRejected(
                                f"RPC Error: {result['error']}",
                                method=method,
                                error=result["error"],
                            )

                        if rpc_index != self.current_rpc_index:
                            logger.info("Switched to RPC endpoint: %s", rpc_url)
                            self.current_rpc_index = rpc_index

                        return result.get("result", {})
            except RpcRejected as e:
                if not retry_rejected:
                    raise
                last_error = e
                logger.warning("RPC endpoint %s rejected %s: %s", rpc_url, method, e)
            except Exception as e:
                last_error = e
                logger.warning("RPC endpoint %s failed on %s: %s", rpc_url, method, e)
            if attempt < attempts - 1:
                logger.info("Trying next endpoint...")

        if not fallback:
            raise DataUnavailable(f"RPC endpoint failed: {last_error}", method=method)
        raise DataUnavailable(
            f"All RPC endpoints failed. Last error: {last_error}", method=method
        )

    # ------------------------------------------------------------------
    # Object reads
    # ------------------------------------------------------------------

    async def get_owned_objects(
        self, wallet_address: str, struct_type: str | None = None
    ) -> list[dict[str, Any]]:
        """Get all objects owned by the wallet (paginated)."""
        all_objects: list[dict[str, Any]] = []
        cursor = None
        query_filter = {"StructType": struct_type} if struct_type else None

        while True:
            result = await self.rpc_call(
                "suix_getOwnedObjects",
                [
                    wallet_address,
                    {"filter": query_filter, "options": _OBJECT_OPTIONS},
                    cursor,
                    50,
                ],
            )

            all_objects.extend(result.get("data", []))

            cursor = result.get("nextCursor")
            if not result.get("hasNextPage", False) or not cursor:
                break

        return all_objects

    async def get_object(self, object_id: str) -> dict[str, Any]:
        """Get detailed information about an object."""
        result = await self.rpc_call("sui_getObject", [object_id, _OBJECT_OPTIONS])
        if "error" in result or not result.get("data"):
            raise DataUnavailable("Object not found", object_id=object_id)
        return result

    async def multi_get_objects(self, object_ids: list[str]) -> list[dict[str, Any]]:
        """Read several objects in one request (one consistent batch)."""
        if not object_ids:
            return []
        return await self.rpc_call(
            "sui_multiGetObjects", [object_ids, _OBJECT_OPTIONS]
        )

    async def get_coins(self, owner: str, coin_type: str) -> list[dict[str, Any]]:
        """All coin objects of ``coin_type`` owned by ``owner``."""
        coins: list[dict[str, Any]] = []
        cursor = None
        while True:
            result = await self.rpc_call(
                "suix_getCoins", [owner, coin_type, cursor, 50]
            )
            coins.extend(result.get("data", []))
            cursor = result.get("nextCursor")
            if not result.get("hasNextPage", False) or not cursor:
                break
        return coins

    async def get_coin_metadata(self, coin_type: str) -> dict[str, Any] | None:
        """Coin metadata, or None when the lookup fails (non-critical)."""
        try:
            return await self.rpc_call("suix_getCoinMetadata", [coin_type]) or None
        except DataUnavailable as e:
            logger.warning("No coin metadata for %s: %s", coin_type, e)
            return None

    # ------------------------------------------------------------------
    # Transactions
    # ------------------------------------------------------------------

    async def build_transaction(self, payload: dict[str, Any]) -> str:
        """Serialize a bundle payload to base64 transaction bytes.

        BCS encoding is delegated to the configured builder endpoint.
        """
        if not self.builder_url:
            raise DataUnavailable("No transaction builder endpoint configured")

        body = dict(payload)
        body.setdefault("gasBudget", self.gas_budget)

        ssl_context = ssl.create_default_context(cafile=certifi.where())
        connector = aiohttp.TCPConnector(ssl=ssl_context)
        try:
            async with aiohttp.ClientSession(connector=connector) as session:
                async with session.post(
                    self.builder_url,
                    json=body,
                    timeout=aiohttp.ClientTimeout(total=self.timeout),
                ) as response:
                    if response.status != 200:
                        raise DataUnavailable(
                            f"Transaction builder returned HTTP {response.status}"
                        )
                    data = await response.json()
        except aiohttp.ClientError as e:
            raise DataUnavailable(f"Transaction builder unreachable: {e}") from e
        except asyncio.TimeoutError as e:
            raise DataUnavailable("Transaction builder timed out") from e

        tx_bytes = data.get("txBytes")
        if not tx_bytes:
            raise DataUnavailable("Transaction builder returned no txBytes")
        return tx_bytes

    async def dry_run_transaction_block(self, tx_bytes: str) -> dict[str, Any]:
        """Dry-run on the first endpoint that answers; a rejection is final."""
        return await self.rpc_call(
            "sui_dryRunTransactionBlock", [tx_bytes], retry_rejected=False
        )

    async def execute_transaction_block(
        self, tx_bytes: str, signature: str
    ) -> dict[str, Any]:
        """Submit to the current endpoint only; never re-sent elsewhere."""
        return await self.rpc_call(
            "sui_executeTransactionBlock",
            [
                tx_bytes,
                [signature],
                {"showEffects": True, "showEvents": True},
                "WaitForLocalExecution",
            ],
            fallback=False,
            retry_rejected=False,
        )
