"""Builders for checkout test data."""

from checkout_engine.domain import (
    Address,
    BusinessMeta,
    CartSource,
    ContactInfo,
    LineItem,
    QuoteItem,
    QuoteSource,
)


def make_cart(quantity: int = 2, unit_price: int = 150000, total: int | None = None) -> CartSource:
    """Cart with a single rice line."""
    item = LineItem(
        product_id="prod-rice",
        title="Rice 50kg",
        quantity=quantity,
        unit_price_minor=unit_price,
        line_total_minor=unit_price * quantity,
        item_id="ci-1",
    )
    return CartSource(
        items=(item,),
        total_minor=unit_price * quantity if total is None else total,
        id="cart-1",
    )


def make_quote(
    status: str = "APPROVED",
    seller_price: int | None = 500,
    requested_price: int | None = 400,
    quantity: int = 10,
    moq: int | None = None,
) -> QuoteSource:
    return QuoteSource(
        id="quote-1",
        status=status,
        items=(
            QuoteItem(
                product_id="prod-cement",
                title="Cement 50kg",
                quantity=quantity,
                requested_price_minor=requested_price,
                seller_quoted_price_minor=seller_price,
                moq=moq,
            ),
        ),
        seller_name="Dangote Depot",
    )


SAVED_ADDRESS = Address(
    id="addr-1",
    label="Home",
    line1="12 Admiralty Way",
    city="Lekki",
    state="Lagos",
)

DRAFT_ADDRESS = Address(
    line1="4 Broad Street",
    city="Lagos Island",
    state="Lagos",
)

VALID_CONTACT = ContactInfo(
    full_name="Ada Obi",
    email="ada@example.com",
    phone="+2348012345678",
)

VALID_BUSINESS = BusinessMeta(name="Obi Builders Ltd", purpose="Site construction")

