"""Tests for value objects."""

import pytest

from checkout_engine.domain import (
    CouponState,
    LineItem,
    Money,
    ShippingMethod,
    ShippingQuoteKey,
)
from checkout_engine.domain.exceptions import InvalidQuantityError, NegativeMoneyError
from checkout_engine.domain.value_objects import Address


class TestMoney:
    def test_formats_naira(self) -> None:
        assert str(Money(amount_minor=123456)) == "₦1,234.56"

    def test_formats_zero(self) -> None:
        assert str(Money(amount_minor=0)) == "₦0.00"

    def test_negative_rejected(self) -> None:
        with pytest.raises(NegativeMoneyError):
            Money(amount_minor=-1)


class TestLineItem:
    def test_total_defaults_to_unit_times_quantity(self) -> None:
        item = LineItem(product_id="p", title="t", quantity=3, unit_price_minor=1000)
        assert item.line_total_minor == 3000
        assert not item.server_total

    def test_server_total_is_kept(self) -> None:
        item = LineItem(
            product_id="p", title="t", quantity=3, unit_price_minor=1000, line_total_minor=2900
        )
        assert item.line_total_minor == 2900
        assert item.server_total

    def test_zero_quantity_rejected(self) -> None:
        with pytest.raises(InvalidQuantityError):
            LineItem(product_id="p", title="t", quantity=0, unit_price_minor=1000)

    def test_with_quantity_recomputes_locally(self) -> None:
        item = LineItem(
            product_id="p", title="t", quantity=3, unit_price_minor=1000, line_total_minor=2900
        )
        changed = item.with_quantity(5)
        assert changed.line_total_minor == 5000
        assert not changed.server_total


class TestAddress:
    def test_geocode_query_skips_empty_parts(self) -> None:
        address = Address(line1="4 Broad Street", line2=" ", city="Lagos Island", state="Lagos")
        assert address.geocode_query() == "4 Broad Street, Lagos Island, Lagos, Nigeria"

    def test_with_coordinates(self) -> None:
        address = Address(line1="a", city="b", state="c").with_coordinates(6.4, 3.4)
        assert address.has_coordinates()


class TestShippingQuoteKey:
    def test_item_order_does_not_matter(self) -> None:
        a = LineItem(product_id="a", title="A", quantity=1, unit_price_minor=1)
        b = LineItem(product_id="b", title="B", quantity=2, unit_price_minor=1)

        first = ShippingQuoteKey.build("addr-1", [a, b], ShippingMethod.STANDARD)
        second = ShippingQuoteKey.build("addr-1", [b, a], ShippingMethod.STANDARD)

        assert first == second

    def test_quantity_change_changes_key(self) -> None:
        a = LineItem(product_id="a", title="A", quantity=1, unit_price_minor=1)
        first = ShippingQuoteKey.build("addr-1", [a], ShippingMethod.STANDARD)
        second = ShippingQuoteKey.build("addr-1", [a.with_quantity(2)], ShippingMethod.STANDARD)
        assert first != second


class TestCouponState:
    def test_matches_same_code_and_subtotal(self) -> None:
        coupon = CouponState.accepted("SAVE200", 20000, 300000, None)
        assert coupon.matches("SAVE200", 300000)
        assert not coupon.matches("SAVE200", 250000)
        assert not coupon.matches("OTHER", 300000)

    def test_rejected_has_no_trusted_discount(self) -> None:
        assert CouponState.rejected("BOGUS", "Expired").trusted_discount_minor == 0
