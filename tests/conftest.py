"""Shared fixtures for checkout tests."""

from unittest.mock import AsyncMock, MagicMock

import pytest

from checkout_engine.domain import (
    Address,
    CartSource,
    CheckoutSession,
    QuoteSource,
    SessionContext,
)
from checkout_engine.infrastructure.commerce_client import (
    CommerceClient,
    CouponValidationRecord,
    OrderRecord,
    PaymentInitRecord,
    ShippingQuoteRecord,
)
from checkout_engine.infrastructure.geocoder import GeocodeResult, NominatimGeocoder
from tests.factories import DRAFT_ADDRESS, SAVED_ADDRESS, VALID_CONTACT, make_cart, make_quote


@pytest.fixture
def cart() -> CartSource:
    return make_cart()


@pytest.fixture
def quote() -> QuoteSource:
    return make_quote()


@pytest.fixture
def context() -> SessionContext:
    return SessionContext(access_token="test-token")


@pytest.fixture
def session(cart: CartSource) -> CheckoutSession:
    """Cart session with one saved address, still on the summary step."""
    session = CheckoutSession.create(cart, saved_addresses=(SAVED_ADDRESS,))
    session.collect_events()
    return session


@pytest.fixture
def ready_session(session: CheckoutSession) -> CheckoutSession:
    """Cart session with a valid form, on the confirmation step."""
    session.update_contact(VALID_CONTACT)
    session.advance()
    session.advance()
    session.collect_events()
    return session


@pytest.fixture
def commerce_client() -> MagicMock:
    """Commerce client double with happy-path responses."""
    client = MagicMock(spec=CommerceClient)
    client.load_cart = AsyncMock(return_value=make_cart())
    client.load_quote = AsyncMock(return_value=make_quote())
    client.update_cart_item = AsyncMock()
    client.list_addresses = AsyncMock(return_value=(SAVED_ADDRESS,))
    client.create_address = AsyncMock(
        return_value=Address(
            id="addr-new",
            line1=DRAFT_ADDRESS.line1,
            city=DRAFT_ADDRESS.city,
            state=DRAFT_ADDRESS.state,
        )
    )
    client.shipping_quote = AsyncMock(
        return_value=ShippingQuoteRecord(shipping_fee_minor=50000, total_weight_kg=100.0)
    )
    client.validate_coupon = AsyncMock(
        return_value=CouponValidationRecord(valid=True, discount_minor=20000, message=None)
    )
    client.create_order = AsyncMock(return_value=OrderRecord(id="order-1", status="PENDING"))
    client.initialize_payment = AsyncMock(
        return_value=PaymentInitRecord(
            authorization_url="https://checkout.paystack.com/abc123", reference="ref-1"
        )
    )
    client.close = AsyncMock()
    return client


@pytest.fixture
def geocoder() -> MagicMock:
    geocoder = MagicMock(spec=NominatimGeocoder)
    geocoder.geocode = AsyncMock(return_value=GeocodeResult(latitude=6.45, longitude=3.39))
    geocoder.close = AsyncMock()
    return geocoder
