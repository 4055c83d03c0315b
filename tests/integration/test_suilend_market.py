"""Integration tests for Suilend market reads with a mocked chain client."""
from __future__ import annotations

from unittest.mock import AsyncMock

import pytest

from hedgebot.config import LendingConfig
from hedgebot.errors import DataUnavailable
from hedgebot.protocols.suilend import SuilendMarket
from tests.conftest import LENDING_PKG, MARKET_TYPE


def _cap(cap_id: str, obligation_id: str | None) -> dict:
    fields = {"obligation_id": obligation_id} if obligation_id else {}
    return {"data": {"objectId": cap_id, "content": {"fields": fields}}}


@pytest.fixture()
def market(
    mock_chain_client: AsyncMock, sample_lending_config: LendingConfig
) -> SuilendMarket:
    return SuilendMarket(mock_chain_client, sample_lending_config)


class TestOwnerCaps:
    def test_cap_type_names_the_market(self, market: SuilendMarket) -> None:
        assert market.owner_cap_type == (
            f"{LENDING_PKG}::lending_market::ObligationOwnerCap<{MARKET_TYPE}>"
        )

    @pytest.mark.asyncio
    async def test_filters_by_cap_type_and_skips_malformed(
        self, market: SuilendMarket, mock_chain_client: AsyncMock
    ) -> None:
        mock_chain_client.get_owned_objects = AsyncMock(
            return_value=[_cap("0xcap1", "0xob1"), _cap("0xcap2", None)]
        )

        caps = await market.fetch_owner_caps("0xowner")

        mock_chain_client.get_owned_objects.assert_awaited_once_with(
            "0xowner", market.owner_cap_type
        )
        assert [(c.id, c.obligation_id) for c in caps] == [("0xcap1", "0xob1")]


class TestObligationObjects:
    @pytest.mark.asyncio
    async def test_one_batch_in_request_order(
        self, market: SuilendMarket, mock_chain_client: AsyncMock
    ) -> None:
        objects = [{"data": {"objectId": "0xob1"}}, {"data": {"objectId": "0xob2"}}]
        mock_chain_client.multi_get_objects = AsyncMock(return_value=objects)

        result = await market.fetch_obligation_objects(["0xob1", "0xob2"])

        assert result == objects
        mock_chain_client.multi_get_objects.assert_awaited_once_with(["0xob1", "0xob2"])

    @pytest.mark.asyncio
    async def test_missing_obligation_raises(
        self, market: SuilendMarket, mock_chain_client: AsyncMock
    ) -> None:
        mock_chain_client.multi_get_objects = AsyncMock(
            return_value=[{"data": {"objectId": "0xob1"}}, {"error": {"code": "notExists"}}]
        )

        with pytest.raises(DataUnavailable) as exc_info:
            await market.fetch_obligation_objects(["0xob1", "0xgone"])
        assert exc_info.value.context["obligation_id"] == "0xgone"
