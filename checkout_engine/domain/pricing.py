"""Price line-item resolution.

Turns a cart or an approved quote into one list of priced line items
and a subtotal. Pure functions, no I/O.
"""

from dataclasses import dataclass

from checkout_engine.domain.exceptions import EmptyCartError, QuoteNotUsableError
from checkout_engine.domain.sources import CartSource, CheckoutSource, QuoteSource
from checkout_engine.domain.value_objects import CouponState, LineItem, SellingContext


@dataclass(frozen=True)
class PricedItems:
    """Line items with the subtotal the order is priced from."""

    items: tuple[LineItem, ...]
    subtotal_minor: int


@dataclass(frozen=True)
class OrderTotals:
    """Amounts shown on the confirmation step."""

    subtotal_minor: int
    shipping_minor: int
    discount_minor: int
    total_minor: int


def resolve_line_items(source: CheckoutSource | None) -> PricedItems:
    """Resolve a checkout source into priced line items.

    Cart subtotals are the server-reported cart total. Quote subtotals
    are summed from the resolved unit prices, where the seller's quoted
    price always wins over the buyer's requested price.

    Args:
        source: Cart or quote loaded for this checkout.

    Returns:
        PricedItems for the source.

    Raises:
        EmptyCartError: If the cart is missing or has no items.
        QuoteNotUsableError: If the quote is not approved or has an
            item with no price at all.
    """
    if source is None:
        raise EmptyCartError()
    if isinstance(source, QuoteSource):
        return _resolve_quote(source)
    return _resolve_cart(source)


def _resolve_cart(cart: CartSource) -> PricedItems:
    if not cart.items:
        raise EmptyCartError()
    return PricedItems(items=tuple(cart.items), subtotal_minor=cart.total_minor)


def _resolve_quote(quote: QuoteSource) -> PricedItems:
    if not quote.is_approved:
        raise QuoteNotUsableError(quote.id, quote.status)
    if not quote.items:
        raise QuoteNotUsableError(quote.id, quote.status, reason="This quote has no items.")

    items: list[LineItem] = []
    for quote_item in quote.items:
        unit_price = quote_item.resolved_unit_price_minor
        if unit_price is None:
            raise QuoteNotUsableError(
                quote.id,
                quote.status,
                reason=f"No price has been agreed for '{quote_item.title}'.",
            )
        items.append(
            LineItem(
                product_id=quote_item.product_id,
                title=quote_item.title,
                quantity=quote_item.quantity,
                unit_price_minor=unit_price,
                selling_context=SellingContext.B2B,
                moq=quote_item.moq,
            )
        )

    subtotal = sum(item.quantity * item.unit_price_minor for item in items)
    return PricedItems(items=tuple(items), subtotal_minor=subtotal)


def compute_totals(
    subtotal_minor: int,
    shipping_minor: int,
    coupon: CouponState,
) -> OrderTotals:
    """Compute order totals.

    Only an applied coupon contributes a discount. The total never
    goes below zero.
    """
    discount = coupon.trusted_discount_minor
    total = max(0, subtotal_minor + shipping_minor - discount)
    return OrderTotals(
        subtotal_minor=subtotal_minor,
        shipping_minor=shipping_minor,
        discount_minor=discount,
        total_minor=total,
    )
