"""Tests for line-item resolution and order totals."""

import pytest

from checkout_engine.domain import (
    CouponState,
    EmptyCartError,
    QuoteNotUsableError,
    SellingContext,
    compute_totals,
    resolve_line_items,
)
from checkout_engine.domain.sources import CartSource
from tests.factories import make_cart, make_quote


class TestResolveCart:
    """Tests for cart sources."""

    def test_subtotal_is_server_total(self) -> None:
        """The cart total from the server is used, not a client-side sum."""
        cart = make_cart(quantity=2, unit_price=150000, total=295000)

        priced = resolve_line_items(cart)

        assert priced.subtotal_minor == 295000
        assert sum(i.line_total_minor for i in priced.items) == 300000

    def test_items_are_kept(self) -> None:
        cart = make_cart()
        priced = resolve_line_items(cart)
        assert priced.items == cart.items

    def test_missing_cart(self) -> None:
        with pytest.raises(EmptyCartError):
            resolve_line_items(None)

    def test_empty_cart(self) -> None:
        with pytest.raises(EmptyCartError):
            resolve_line_items(CartSource(items=(), total_minor=0))


class TestResolveQuote:
    """Tests for quote sources."""

    def test_seller_price_wins(self) -> None:
        """Seller's quoted price beats the buyer's requested price."""
        priced = resolve_line_items(make_quote(seller_price=500, requested_price=400))
        assert priced.items[0].unit_price_minor == 500

    def test_requested_price_used_without_seller_price(self) -> None:
        priced = resolve_line_items(make_quote(seller_price=None, requested_price=400))
        assert priced.items[0].unit_price_minor == 400

    def test_subtotal_is_sum_of_lines(self) -> None:
        priced = resolve_line_items(make_quote(seller_price=500, quantity=10))
        assert priced.subtotal_minor == 5000

    def test_quote_items_are_b2b(self) -> None:
        priced = resolve_line_items(make_quote())
        assert priced.items[0].selling_context == SellingContext.B2B

    @pytest.mark.parametrize("status", ["PENDING", "REJECTED", "EXPIRED", "CONVERTED"])
    def test_unapproved_quote_is_unusable(self, status: str) -> None:
        """The actual status is carried on the error."""
        with pytest.raises(QuoteNotUsableError) as exc_info:
            resolve_line_items(make_quote(status=status))

        assert exc_info.value.status == status
        assert exc_info.value.details["status"] == status

    def test_unpriced_item_is_unusable(self) -> None:
        with pytest.raises(QuoteNotUsableError) as exc_info:
            resolve_line_items(make_quote(seller_price=None, requested_price=None))
        assert "Cement 50kg" in exc_info.value.message


class TestComputeTotals:
    """Tests for order totals."""

    def test_no_coupon(self) -> None:
        totals = compute_totals(300000, 50000, CouponState.empty())
        assert totals.total_minor == 350000
        assert totals.discount_minor == 0

    def test_applied_coupon(self) -> None:
        coupon = CouponState.accepted("SAVE200", 20000, 300000, None)
        totals = compute_totals(300000, 50000, coupon)
        assert totals.discount_minor == 20000
        assert totals.total_minor == 330000

    def test_rejected_coupon_gives_no_discount(self) -> None:
        coupon = CouponState(code="BOGUS", applied=False, discount_minor=20000)
        totals = compute_totals(300000, 50000, coupon)
        assert totals.discount_minor == 0
        assert totals.total_minor == 350000

    def test_total_never_negative(self) -> None:
        coupon = CouponState.accepted("ALLFREE", 999999, 1000, None)
        totals = compute_totals(1000, 0, coupon)
        assert totals.total_minor == 0
