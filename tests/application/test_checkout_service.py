"""Tests for the checkout application service."""

import asyncio
from datetime import timedelta

import pytest

from checkout_engine.application.checkout_service import (
    CheckoutService,
    CheckoutSessionRepository,
)
from checkout_engine.domain import (
    CartUpdateFailedError,
    CheckoutSessionNotFoundError,
    CheckoutStep,
    CheckoutValidationError,
    EmptyCartError,
    QuoteNotUsableError,
    RemoteValidationError,
    SessionContext,
    ShippingStatus,
    UserProfile,
)
from checkout_engine.domain.base import utc_now
from checkout_engine.infrastructure.config import settings
from tests.factories import VALID_BUSINESS, VALID_CONTACT, make_cart, make_quote


@pytest.fixture
def repository() -> CheckoutSessionRepository:
    return CheckoutSessionRepository()


@pytest.fixture
def service(context, commerce_client, geocoder, repository) -> CheckoutService:
    return CheckoutService(
        context,
        client=commerce_client,
        geocoder=geocoder,
        repository=repository,
        request_id="req-1",
    )


class TestStart:
    @pytest.mark.asyncio
    async def test_start_from_cart(self, service, commerce_client, repository) -> None:
        session = await service.start()

        assert session.source.source_type == "cart"
        assert session.step == CheckoutStep.SUMMARY
        assert session.subtotal_minor == 300000
        assert len(repository) == 1
        commerce_client.load_quote.assert_not_awaited()

    def test_injected_empty_repository_is_used(self, service, repository) -> None:
        assert len(repository) == 0
        assert service.repository is repository

    @pytest.mark.asyncio
    async def test_start_from_quote(self, service, commerce_client) -> None:
        session = await service.start(quote_id="quote-1")

        assert session.is_quote
        assert session.requires_business_meta
        assert session.subtotal_minor == 5000
        commerce_client.load_quote.assert_awaited_once_with("quote-1")

    @pytest.mark.asyncio
    async def test_rejected_quote(self, service, commerce_client, repository) -> None:
        commerce_client.load_quote.return_value = make_quote(status="REJECTED")

        with pytest.raises(QuoteNotUsableError):
            await service.start(quote_id="quote-1")

        assert len(repository) == 0

    @pytest.mark.asyncio
    async def test_missing_cart(self, service, commerce_client) -> None:
        commerce_client.load_cart.return_value = None
        with pytest.raises(EmptyCartError):
            await service.start()

    @pytest.mark.asyncio
    async def test_contact_prefilled_from_user(
        self, commerce_client, geocoder, repository
    ) -> None:
        context = SessionContext(
            access_token="test-token",
            user=UserProfile(id="u-1", name="Ada Obi", email="ada@example.com"),
        )
        service = CheckoutService(
            context, client=commerce_client, geocoder=geocoder, repository=repository
        )

        session = await service.start()

        assert session.contact.full_name == "Ada Obi"
        assert session.contact.email == "ada@example.com"


class TestWizard:
    @pytest.mark.asyncio
    async def test_delivery_step_quotes_shipping(self, service, commerce_client) -> None:
        session = await service.start()

        await service.next_step(session.id)

        assert session.step == CheckoutStep.DELIVERY
        assert session.shipping_status == ShippingStatus.QUOTED
        assert session.totals.total_minor == 350000
        commerce_client.shipping_quote.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_invalid_form_stays_on_delivery(self, service) -> None:
        session = await service.start()
        await service.next_step(session.id)

        with pytest.raises(CheckoutValidationError):
            await service.next_step(session.id)

        assert session.step == CheckoutStep.DELIVERY

    @pytest.mark.asyncio
    async def test_back_from_delivery(self, service) -> None:
        session = await service.start()
        await service.next_step(session.id)

        await service.previous_step(session.id)

        assert session.step == CheckoutStep.SUMMARY

    @pytest.mark.asyncio
    async def test_quote_needs_business_meta(self, service) -> None:
        session = await service.start(quote_id="quote-1")
        service.update_contact(session.id, VALID_CONTACT)
        await service.next_step(session.id)

        with pytest.raises(CheckoutValidationError):
            await service.next_step(session.id)

        service.update_business_meta(session.id, VALID_BUSINESS)
        await service.next_step(session.id)
        assert session.step == CheckoutStep.CONFIRMATION


class TestCartEdits:
    @pytest.mark.asyncio
    async def test_confirmed_update(self, service, commerce_client) -> None:
        commerce_client.update_cart_item.return_value = make_cart(quantity=3, total=440000)
        session = await service.start()

        await service.update_item_quantity(session.id, "ci-1", 3)

        assert session.items[0].quantity == 3
        assert session.subtotal_minor == 440000

    @pytest.mark.asyncio
    async def test_refused_update_restores_cart(self, service, commerce_client) -> None:
        commerce_client.update_cart_item.side_effect = RemoteValidationError(
            "update_cart_item", ["Only 2 left in stock"]
        )
        session = await service.start()

        with pytest.raises(CartUpdateFailedError):
            await service.update_item_quantity(session.id, "ci-1", 5)

        assert session.items[0].quantity == 2
        assert session.subtotal_minor == 300000

    @pytest.mark.asyncio
    async def test_quote_quantities_fixed(self, service, commerce_client) -> None:
        session = await service.start(quote_id="quote-1")

        with pytest.raises(CheckoutValidationError):
            await service.update_item_quantity(session.id, "ci-1", 5)

        commerce_client.update_cart_item.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_update_clears_coupon(self, service, commerce_client) -> None:
        commerce_client.update_cart_item.return_value = make_cart(quantity=3)
        session = await service.start()
        await service.apply_coupon(session.id, "SAVE200")

        await service.update_item_quantity(session.id, "ci-1", 3)

        assert not session.coupon.applied
        assert session.totals.discount_minor == 0

    @pytest.mark.asyncio
    async def test_submit_waits_for_pending_edit(self, service, commerce_client) -> None:
        """A refused edit still surfaces as a cart error when submit was tried meanwhile."""
        release = asyncio.Event()

        async def slow_refusal(item_id, quantity):
            await release.wait()
            raise RemoteValidationError("update_cart_item", ["Only 2 left in stock"])

        commerce_client.update_cart_item.side_effect = slow_refusal
        session = await service.start()
        service.update_contact(session.id, VALID_CONTACT)
        await service.next_step(session.id)
        await service.next_step(session.id)

        edit = asyncio.create_task(service.update_item_quantity(session.id, "ci-1", 5))
        await asyncio.sleep(0)
        assert session.cart_edit_pending

        with pytest.raises(CheckoutValidationError):
            await service.submit(session.id)

        release.set()
        with pytest.raises(CartUpdateFailedError):
            await edit

        assert not session.cart_edit_pending
        assert session.items[0].quantity == 2
        commerce_client.create_order.assert_not_awaited()

        redirect = await service.submit(session.id)
        assert redirect.order_id == "order-1"

    @pytest.mark.asyncio
    async def test_second_edit_refused_while_first_pending(
        self, service, commerce_client
    ) -> None:
        release = asyncio.Event()

        async def slow_update(item_id, quantity):
            await release.wait()
            return make_cart(quantity=3, total=440000)

        commerce_client.update_cart_item.side_effect = slow_update
        session = await service.start()

        first = asyncio.create_task(service.update_item_quantity(session.id, "ci-1", 3))
        await asyncio.sleep(0)
        with pytest.raises(CheckoutValidationError):
            await service.update_item_quantity(session.id, "ci-1", 4)

        release.set()
        await first
        assert session.items[0].quantity == 3
        assert commerce_client.update_cart_item.await_count == 1


class TestSubmitAndDiscard:
    @pytest.mark.asyncio
    async def test_submit_ends_session(self, service, repository) -> None:
        session = await service.start()
        service.update_contact(session.id, VALID_CONTACT)
        await service.next_step(session.id)
        await service.next_step(session.id)

        redirect = await service.submit(session.id)

        assert redirect.authorization_url == "https://checkout.paystack.com/abc123"
        assert len(repository) == 0
        with pytest.raises(CheckoutSessionNotFoundError):
            service.get(session.id)

    @pytest.mark.asyncio
    async def test_discard(self, service, repository) -> None:
        session = await service.start()

        service.discard(session.id)

        assert not session.active
        assert len(repository) == 0

    def test_unknown_session(self, service) -> None:
        with pytest.raises(CheckoutSessionNotFoundError):
            service.get("missing")


class TestExpiry:
    @pytest.mark.asyncio
    async def test_start_sets_expiry(self, service) -> None:
        session = await service.start()

        assert session.expires_at is not None
        assert session.expires_at > utc_now() + timedelta(
            minutes=settings.session_ttl_minutes - 1
        )

    @pytest.mark.asyncio
    async def test_expired_session_not_found(self, service, repository) -> None:
        session = await service.start()
        session.expires_at = utc_now() - timedelta(minutes=1)

        with pytest.raises(CheckoutSessionNotFoundError):
            service.get(session.id)

        assert len(repository) == 0

    @pytest.mark.asyncio
    async def test_save_evicts_expired_sessions(self, service, repository) -> None:
        stale = await service.start()
        stale.expires_at = utc_now() - timedelta(minutes=1)

        fresh = await service.start()

        assert len(repository) == 1
        assert service.get(fresh.id) is fresh

    @pytest.mark.asyncio
    async def test_activity_extends_expiry(self, service) -> None:
        session = await service.start()
        session.expires_at = utc_now() + timedelta(minutes=1)

        service.update_contact(session.id, VALID_CONTACT)

        assert session.expires_at > utc_now() + timedelta(minutes=2)
