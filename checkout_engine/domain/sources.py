"""Checkout sources.

A checkout is backed by exactly one source: the buyer's cart, or a
B2B quote the seller has approved. Sources are snapshots of what the
commerce API returned when the checkout view loaded them.
"""

from dataclasses import dataclass, replace

from checkout_engine.domain.base import ValueObject
from checkout_engine.domain.state_machines import QuoteStatus
from checkout_engine.domain.value_objects import LineItem


@dataclass(frozen=True)
class CartSource(ValueObject):
    """The buyer's shopping cart.

    Attributes:
        items: Cart lines with server-resolved prices.
        total_minor: Cart total as reported by the server.
        id: Server cart id.
    """

    items: tuple[LineItem, ...]
    total_minor: int
    id: str | None = None

    source_type = "cart"

    def find_item(self, item_id: str) -> LineItem | None:
        for item in self.items:
            if item.item_id == item_id:
                return item
        return None

    def with_item_quantity(self, item_id: str, quantity: int) -> "CartSource":
        """Return a local copy with one line's quantity changed.

        The server total is carried over unchanged; only the server can
        say what the new total is.
        """
        items = tuple(
            item.with_quantity(quantity) if item.item_id == item_id else item
            for item in self.items
        )
        return replace(self, items=items)

    @property
    def total_items(self) -> int:
        return sum(item.quantity for item in self.items)


@dataclass(frozen=True)
class QuoteItem(ValueObject):
    """One line of a B2B quote request.

    Attributes:
        product_id: Product identifier.
        title: Product title.
        quantity: Requested quantity.
        requested_price_minor: Unit price the buyer asked for.
        seller_quoted_price_minor: Unit price the seller offered.
        moq: Product minimum order quantity.
    """

    product_id: str
    title: str
    quantity: int
    requested_price_minor: int | None = None
    seller_quoted_price_minor: int | None = None
    moq: int | None = None

    @property
    def resolved_unit_price_minor(self) -> int | None:
        """Seller's quoted price, falling back to the requested price."""
        if self.seller_quoted_price_minor is not None:
            return self.seller_quoted_price_minor
        return self.requested_price_minor


@dataclass(frozen=True)
class QuoteSource(ValueObject):
    """A B2B quote request.

    Attributes:
        id: Quote request id.
        status: Status string as reported by the server.
        items: Quote lines.
        seller_name: Seller business name, for display.
    """

    id: str
    status: str
    items: tuple[QuoteItem, ...]
    seller_name: str | None = None

    source_type = "quote"

    @property
    def is_approved(self) -> bool:
        return self.status.upper() == QuoteStatus.APPROVED.value


CheckoutSource = CartSource | QuoteSource
