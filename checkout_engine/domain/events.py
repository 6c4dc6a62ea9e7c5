"""Domain events for the checkout session.

Events are recorded on the CheckoutSession aggregate and collected by
the application service after each operation, where they are logged.
"""

from dataclasses import dataclass
from typing import ClassVar

from checkout_engine.domain.base import DomainEvent


@dataclass(frozen=True)
class CheckoutStarted(DomainEvent):
    """Event raised when a checkout session is created."""

    event_type: ClassVar[str] = "checkout.started"

    source_type: str = ""
    quote_id: str | None = None
    item_count: int = 0
    subtotal_minor: int = 0


@dataclass(frozen=True)
class CheckoutStepChanged(DomainEvent):
    """Event raised when the wizard moves between steps."""

    event_type: ClassVar[str] = "checkout.step_changed"

    from_step: int = 0
    to_step: int = 0


@dataclass(frozen=True)
class CheckoutSourceReplaced(DomainEvent):
    """Event raised when the cart behind a session changes."""

    event_type: ClassVar[str] = "checkout.source_replaced"

    item_count: int = 0
    subtotal_minor: int = 0
    coupon_invalidated: bool = False


@dataclass(frozen=True)
class CouponApplied(DomainEvent):
    """Event raised when a coupon is accepted by the server."""

    event_type: ClassVar[str] = "checkout.coupon_applied"

    code: str = ""
    discount_minor: int = 0
    subtotal_minor: int = 0


@dataclass(frozen=True)
class CouponCleared(DomainEvent):
    """Event raised when a coupon is removed, rejected or invalidated."""

    event_type: ClassVar[str] = "checkout.coupon_cleared"

    code: str = ""
    reason: str = ""


@dataclass(frozen=True)
class ShippingQuoted(DomainEvent):
    """Event raised when a delivery fee is applied to the session."""

    event_type: ClassVar[str] = "checkout.shipping_quoted"

    address_id: str = ""
    fee_minor: int = 0
    total_weight_kg: float = 0.0


@dataclass(frozen=True)
class OrderCreated(DomainEvent):
    """Event raised when the commerce API confirms an order."""

    event_type: ClassVar[str] = "checkout.order_created"

    order_id: str = ""
    address_id: str = ""
    total_minor: int = 0


@dataclass(frozen=True)
class PaymentInitialized(DomainEvent):
    """Event raised when the payment provider returns a hosted page."""

    event_type: ClassVar[str] = "checkout.payment_initialized"

    order_id: str = ""
    authorization_url: str = ""


@dataclass(frozen=True)
class CheckoutSubmissionFailed(DomainEvent):
    """Event raised when a submission attempt ends in an error."""

    event_type: ClassVar[str] = "checkout.submission_failed"

    error_code: str = ""
    reason: str = ""
    order_id: str | None = None


@dataclass(frozen=True)
class CheckoutDiscarded(DomainEvent):
    """Event raised when the view leaves checkout or payment starts."""

    event_type: ClassVar[str] = "checkout.discarded"

    step: int = 0
    reason: str = ""


EVENT_REGISTRY: dict[str, type[DomainEvent]] = {
    cls.event_type: cls
    for cls in (
        CheckoutStarted,
        CheckoutStepChanged,
        CheckoutSourceReplaced,
        CouponApplied,
        CouponCleared,
        ShippingQuoted,
        OrderCreated,
        PaymentInitialized,
        CheckoutSubmissionFailed,
        CheckoutDiscarded,
    )
}
