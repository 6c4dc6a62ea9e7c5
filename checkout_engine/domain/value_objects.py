"""Value Objects for the checkout domain.

Value objects are immutable objects that are defined by their attributes
rather than identity. All monetary amounts are integers in the smallest
currency unit (kobo for NGN).
"""

from dataclasses import dataclass, replace
from decimal import Decimal
from enum import Enum
from typing import Iterable, Self

from checkout_engine.domain.base import ValueObject
from checkout_engine.domain.exceptions import InvalidQuantityError, NegativeMoneyError


# ============================================================================
# Enumerations
# ============================================================================


class SellingContext(str, Enum):
    """Whether a line is sold to a consumer or to a business."""

    B2C = "B2C"
    B2B = "B2B"


class ShippingMethod(str, Enum):
    """Delivery tiers known to the shipping service.

    Only STANDARD is offered at checkout today.
    """

    STANDARD = "STANDARD"
    EXPRESS = "EXPRESS"
    PICKUP = "PICKUP"


# ============================================================================
# Money Value Object
# ============================================================================


_CURRENCY_SYMBOLS = {"NGN": "₦", "USD": "$", "EUR": "€", "GBP": "£"}


@dataclass(frozen=True)
class Money(ValueObject):
    """Monetary value in minor units.

    Pricing logic works on plain integers; Money exists so formatting
    happens in one place at the presentation boundary.

    Attributes:
        amount_minor: Amount in smallest currency unit (e.g., kobo).
        currency: ISO 4217 currency code.
    """

    amount_minor: int
    currency: str = "NGN"

    def __post_init__(self) -> None:
        if self.amount_minor < 0:
            raise NegativeMoneyError(self.amount_minor)
        object.__setattr__(self, "currency", self.currency.upper())

    def to_decimal(self) -> Decimal:
        """Convert to major units (e.g., naira from kobo)."""
        return Decimal(self.amount_minor) / 100

    def __str__(self) -> str:
        """Return formatted string (e.g., '₦3,500.00')."""
        symbol = _CURRENCY_SYMBOLS.get(self.currency, "")
        formatted = f"{self.to_decimal():,.2f}"
        if symbol:
            return f"{symbol}{formatted}"
        return f"{formatted} {self.currency}"


# ============================================================================
# Line Items
# ============================================================================


@dataclass(frozen=True)
class LineItem(ValueObject):
    """One priced product line in a checkout source.

    ``line_total_minor`` defaults to ``unit_price_minor * quantity``.
    When the server supplied a total it is kept as-is and never
    recomputed here.

    Attributes:
        product_id: Product identifier.
        title: Product title for display.
        quantity: Number of units (>= 1).
        unit_price_minor: Resolved price per unit.
        line_total_minor: Total for the line.
        selling_context: B2C or B2B.
        moq: Minimum order quantity for B2B lines.
        item_id: Cart line identifier (cart sources only).
    """

    product_id: str
    title: str
    quantity: int
    unit_price_minor: int
    line_total_minor: int | None = None
    selling_context: SellingContext = SellingContext.B2C
    moq: int | None = None
    item_id: str | None = None
    server_total: bool = False

    def __post_init__(self) -> None:
        if self.quantity < 1:
            raise InvalidQuantityError(self.quantity)
        if self.unit_price_minor < 0:
            raise NegativeMoneyError(self.unit_price_minor)
        if self.line_total_minor is None:
            object.__setattr__(
                self, "line_total_minor", self.unit_price_minor * self.quantity
            )
        else:
            object.__setattr__(self, "server_total", True)

    @property
    def is_b2b(self) -> bool:
        return self.selling_context == SellingContext.B2B

    @property
    def below_moq(self) -> bool:
        """Check if a B2B line is under its minimum order quantity."""
        return self.is_b2b and self.moq is not None and self.quantity < self.moq

    def with_quantity(self, quantity: int) -> "LineItem":
        """Return a local copy with a new quantity.

        The copy's total is recomputed locally; it is only a placeholder
        until the server confirms the change.
        """
        return replace(
            self, quantity=quantity, line_total_minor=None, server_total=False
        )


# ============================================================================
# Address Value Object
# ============================================================================


@dataclass(frozen=True)
class Address(ValueObject):
    """Delivery address.

    An address with an ``id`` was selected from the user's saved list.
    An address without one is a draft, created on final submission.

    Attributes:
        line1: Street address.
        city: City name.
        state: State or region.
        country: Country name.
        label: Short name shown in the saved-address picker.
        line2: Landmark or secondary line.
        id: Server identifier, absent for drafts.
        latitude: Optional latitude.
        longitude: Optional longitude.
    """

    line1: str
    city: str
    state: str
    country: str = "Nigeria"
    label: str = "Home"
    line2: str | None = None
    id: str | None = None
    latitude: float | None = None
    longitude: float | None = None

    REQUIRED_FIELDS = ("line1", "city", "state")

    @property
    def is_saved(self) -> bool:
        return self.id is not None

    @property
    def is_draft(self) -> bool:
        return self.id is None

    def missing_fields(self) -> list[str]:
        """Get required fields that are empty or whitespace."""
        return [
            name for name in self.REQUIRED_FIELDS
            if not (getattr(self, name) or "").strip()
        ]

    def is_complete(self) -> bool:
        return not self.missing_fields()

    def has_coordinates(self) -> bool:
        return self.latitude is not None and self.longitude is not None

    def with_coordinates(self, latitude: float, longitude: float) -> "Address":
        return replace(self, latitude=latitude, longitude=longitude)

    def geocode_query(self) -> str:
        """Join the non-empty address parts into one search string."""
        parts = [self.line1, self.line2, self.city, self.state, self.country]
        return ", ".join(p.strip() for p in parts if p and p.strip())

    def format_single_line(self) -> str:
        parts = [self.line1]
        if self.line2:
            parts.append(self.line2)
        parts.extend([self.city, self.state])
        return ", ".join(parts)


# ============================================================================
# Contact and Business Details
# ============================================================================


@dataclass(frozen=True)
class ContactInfo(ValueObject):
    """Buyer contact details entered on the delivery step."""

    full_name: str = ""
    email: str = ""
    phone: str = ""


@dataclass(frozen=True)
class BusinessMeta(ValueObject):
    """Business details required when an order contains B2B lines."""

    name: str = ""
    purpose: str = ""


# ============================================================================
# Shipping
# ============================================================================


@dataclass(frozen=True)
class ShippingQuoteKey(ValueObject):
    """Everything a delivery fee depends on.

    A quote computed for one key is stale for any other key.
    """

    address_id: str | None
    items: tuple[tuple[str, int], ...]
    method: ShippingMethod

    @classmethod
    def build(
        cls,
        address_id: str | None,
        items: Iterable[LineItem],
        method: ShippingMethod,
    ) -> Self:
        """Build a key from line items.

        Args:
            address_id: Saved address id, if any.
            items: Line items being shipped.
            method: Shipping method.

        Returns:
            Key with items in a stable order.
        """
        pairs = tuple(sorted((item.product_id, item.quantity) for item in items))
        return cls(address_id=address_id, items=pairs, method=method)


@dataclass(frozen=True)
class ShippingQuote(ValueObject):
    """Delivery fee returned by the shipping service."""

    fee_minor: int
    total_weight_kg: float
    key: ShippingQuoteKey | None = None

    def __post_init__(self) -> None:
        if self.fee_minor < 0:
            raise NegativeMoneyError(self.fee_minor)


# ============================================================================
# Coupon
# ============================================================================


@dataclass(frozen=True)
class CouponState(ValueObject):
    """Coupon entry and its validation outcome.

    ``discount_minor`` is only meaningful while ``applied`` is True.

    Attributes:
        code: Code as entered.
        applied: Whether the server accepted the code.
        discount_minor: Discount granted by the server.
        validated_subtotal_minor: Subtotal the code was validated against.
        message: Last message from the server, if any.
    """

    code: str = ""
    applied: bool = False
    discount_minor: int = 0
    validated_subtotal_minor: int | None = None
    message: str | None = None

    @classmethod
    def empty(cls) -> Self:
        return cls()

    @classmethod
    def accepted(
        cls, code: str, discount_minor: int, subtotal_minor: int, message: str | None
    ) -> Self:
        return cls(
            code=code,
            applied=True,
            discount_minor=discount_minor,
            validated_subtotal_minor=subtotal_minor,
            message=message,
        )

    @classmethod
    def rejected(cls, code: str, message: str | None) -> Self:
        return cls(code=code, applied=False, discount_minor=0, message=message)

    @property
    def trusted_discount_minor(self) -> int:
        """Discount that may be used in totals."""
        return self.discount_minor if self.applied else 0

    def matches(self, code: str, subtotal_minor: int) -> bool:
        """Check if this applied coupon was validated for code and subtotal."""
        return (
            self.applied
            and self.code == code
            and self.validated_subtotal_minor == subtotal_minor
        )


# ============================================================================
# Session Context
# ============================================================================


@dataclass(frozen=True)
class UserProfile(ValueObject):
    """Signed-in user details used to prefill the contact form."""

    id: str
    name: str = ""
    email: str = ""
    phone: str = ""
    role: str = "BUYER"


@dataclass(frozen=True)
class SessionContext(ValueObject):
    """Auth context injected into the checkout core.

    Created when a checkout view mounts and dropped with it.

    Attributes:
        access_token: Bearer token forwarded to the commerce API.
        user: Optional profile of the signed-in user.
    """

    access_token: str
    user: UserProfile | None = None
