"""Tests for the shipping quote client."""

import asyncio

import pytest

from checkout_engine.application.shipping_quotes import ShippingQuoteClient
from checkout_engine.domain import (
    AuthExpiredError,
    NetworkFailureError,
    ShippingMethod,
    ShippingStatus,
)
from checkout_engine.infrastructure.commerce_client import ShippingQuoteRecord
from tests.factories import DRAFT_ADDRESS


@pytest.fixture
def shipping(commerce_client) -> ShippingQuoteClient:
    return ShippingQuoteClient(commerce_client)


class TestRefresh:
    @pytest.mark.asyncio
    async def test_quotes_saved_address(self, shipping, commerce_client, session) -> None:
        status = await shipping.refresh(session)

        assert status == ShippingStatus.QUOTED
        assert session.totals.shipping_minor == 50000
        commerce_client.shipping_quote.assert_awaited_once_with(
            address_id="addr-1",
            items=[("prod-rice", 2)],
            method=ShippingMethod.STANDARD,
        )

    @pytest.mark.asyncio
    async def test_cart_scenario_totals(self, shipping, session) -> None:
        """Two units at 150000 plus a 50000 delivery fee."""
        await shipping.refresh(session)
        assert session.totals.total_minor == 350000

    @pytest.mark.asyncio
    async def test_draft_needs_address(self, shipping, commerce_client, session) -> None:
        session.use_draft_address(DRAFT_ADDRESS)

        status = await shipping.refresh(session)

        assert status == ShippingStatus.ADDRESS_REQUIRED
        commerce_client.shipping_quote.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_unchanged_key_is_not_requoted(
        self, shipping, commerce_client, session
    ) -> None:
        await shipping.refresh(session)
        await shipping.refresh(session)
        assert commerce_client.shipping_quote.await_count == 1

    @pytest.mark.asyncio
    async def test_force_requotes(self, shipping, commerce_client, session) -> None:
        await shipping.refresh(session)
        await shipping.refresh(session, force=True)
        assert commerce_client.shipping_quote.await_count == 2

    @pytest.mark.asyncio
    async def test_failure_is_not_free_shipping(
        self, shipping, commerce_client, session
    ) -> None:
        commerce_client.shipping_quote.side_effect = NetworkFailureError(
            "shipping_quote", "timeout"
        )

        status = await shipping.refresh(session)

        assert status == ShippingStatus.ERROR
        assert session.shipping_quote is None
        assert session.shipping_quote_error is not None
        assert session.shipping_status.blocks_submission()

    @pytest.mark.asyncio
    async def test_success_clears_error(self, shipping, commerce_client, session) -> None:
        commerce_client.shipping_quote.side_effect = [
            NetworkFailureError("shipping_quote", "timeout"),
            ShippingQuoteRecord(shipping_fee_minor=50000, total_weight_kg=100.0),
        ]
        await shipping.refresh(session)
        await shipping.refresh(session)

        assert session.shipping_status == ShippingStatus.QUOTED
        assert session.shipping_quote_error is None

    @pytest.mark.asyncio
    async def test_auth_expiry_propagates(self, shipping, commerce_client, session) -> None:
        commerce_client.shipping_quote.side_effect = AuthExpiredError("shipping_quote")
        with pytest.raises(AuthExpiredError):
            await shipping.refresh(session)


class TestConcurrentRefresh:
    """Out-of-order responses for one session."""

    @pytest.mark.asyncio
    async def test_slow_older_response_is_discarded(
        self, shipping, commerce_client, session
    ) -> None:
        """The older request answers last; the newer fee must stay."""
        release_first = asyncio.Event()
        calls = 0

        async def fake_quote(address_id, items, method):
            nonlocal calls
            calls += 1
            if calls == 1:
                await release_first.wait()
                return ShippingQuoteRecord(shipping_fee_minor=99999, total_weight_kg=1.0)
            return ShippingQuoteRecord(shipping_fee_minor=50000, total_weight_kg=1.0)

        commerce_client.shipping_quote.side_effect = fake_quote

        first = asyncio.create_task(shipping.refresh(session, force=True))
        await asyncio.sleep(0)
        await shipping.refresh(session, force=True)
        release_first.set()
        await first

        assert session.shipping_quote.fee_minor == 50000
        assert session.shipping_status == ShippingStatus.QUOTED

    @pytest.mark.asyncio
    async def test_response_after_discard_is_dropped(
        self, shipping, commerce_client, session
    ) -> None:
        release = asyncio.Event()

        async def fake_quote(address_id, items, method):
            await release.wait()
            return ShippingQuoteRecord(shipping_fee_minor=50000, total_weight_kg=1.0)

        commerce_client.shipping_quote.side_effect = fake_quote

        task = asyncio.create_task(shipping.refresh(session))
        await asyncio.sleep(0)
        session.discard()
        release.set()
        await task

        assert session.shipping_quote is None
