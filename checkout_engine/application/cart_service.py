"""Cart quantity edits made from the checkout summary.

An edit is shown immediately and then confirmed by the commerce API.
If the API refuses it, the cart as it was before the edit is restored.
"""

from dataclasses import dataclass

import structlog

from checkout_engine.domain.exceptions import (
    AuthExpiredError,
    CartUpdateFailedError,
    CheckoutValidationError,
    DomainError,
)
from checkout_engine.domain.sources import CartSource
from checkout_engine.infrastructure.commerce_client import CommerceClient

logger = structlog.get_logger()


@dataclass
class PendingCartUpdate:
    """A quantity change applied locally but not yet confirmed."""

    item_id: str
    quantity: int
    previous: CartSource
    optimistic: CartSource


@dataclass
class CartUpdate:
    """A confirmed quantity change."""

    item_id: str
    quantity: int
    previous: CartSource
    cart: CartSource


class CartService:
    """Two-phase cart quantity updates."""

    def __init__(self, client: CommerceClient) -> None:
        self.client = client

    def begin_update(self, cart: CartSource, item_id: str, quantity: int) -> PendingCartUpdate:
        """Apply a quantity change locally.

        Raises:
            CheckoutValidationError: If the line is not in the cart.
            InvalidQuantityError: If the quantity is below 1.
        """
        if cart.find_item(item_id) is None:
            raise CheckoutValidationError(
                "That item is no longer in your cart.", field="quantity"
            )
        return PendingCartUpdate(
            item_id=item_id,
            quantity=quantity,
            previous=cart,
            optimistic=cart.with_item_quantity(item_id, quantity),
        )

    async def confirm(self, pending: PendingCartUpdate) -> CartUpdate:
        """Confirm a local change with the commerce API.

        Returns:
            The update with the cart as the server now reports it.

        Raises:
            CartUpdateFailedError: If the server refused the change. The
                error carries the cart as it was before the edit.
            AuthExpiredError: If the user's token was rejected.
        """
        try:
            cart = await self.client.update_cart_item(pending.item_id, pending.quantity)
        except AuthExpiredError:
            raise
        except DomainError as e:
            logger.warning(
                "Cart update failed, restoring previous cart",
                item_id=pending.item_id,
                quantity=pending.quantity,
                error=e.message,
            )
            raise CartUpdateFailedError(
                pending.item_id, e.message, restored=pending.previous
            ) from e

        logger.info(
            "Cart item updated",
            item_id=pending.item_id,
            quantity=pending.quantity,
            total_minor=cart.total_minor,
        )
        return CartUpdate(
            item_id=pending.item_id,
            quantity=pending.quantity,
            previous=pending.previous,
            cart=cart,
        )

    async def update_quantity(
        self, cart: CartSource, item_id: str, quantity: int
    ) -> CartUpdate:
        """Apply and confirm a quantity change in one call."""
        pending = self.begin_update(cart, item_id, quantity)
        return await self.confirm(pending)
