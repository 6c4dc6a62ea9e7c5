"""Domain layer - checkout session, value objects, state machines, events.

This module exports the core domain building blocks:

- **Entities**: The CheckoutSession aggregate and its OrderSubmission
- **Sources**: CartSource and QuoteSource snapshots
- **Value Objects**: LineItem, Address, CouponState, ShippingQuote, Money
- **State Machines**: CheckoutStep, SubmissionState, ShippingStatus
- **Pricing**: Line-item resolution and order totals
- **Exceptions**: The checkout error taxonomy

Example usage:
    from checkout_engine.domain import CartSource, CheckoutSession, LineItem

    cart = CartSource(
        items=(LineItem(product_id="p-1", title="Rice 50kg", quantity=2,
                        unit_price_minor=150000, item_id="ci-1"),),
        total_minor=300000,
    )
    session = CheckoutSession.create(cart)
    session.advance()  # summary -> delivery
"""

from checkout_engine.domain.base import AggregateRoot, DomainEvent, ValueObject
from checkout_engine.domain.entities import CheckoutSession, OrderSubmission
from checkout_engine.domain.events import EVENT_REGISTRY
from checkout_engine.domain.exceptions import (
    AddressCreationFailedError,
    AuthExpiredError,
    CartUpdateFailedError,
    CheckoutSessionNotFoundError,
    CheckoutValidationError,
    CouponRejectedError,
    DomainError,
    EmptyCartError,
    IncompleteAddressError,
    InvalidStepTransitionError,
    NetworkFailureError,
    PaymentInitFailedError,
    QuoteNotUsableError,
    RemoteServiceError,
    RemoteValidationError,
    ResponseDecodeError,
    ShippingUnavailableError,
    SourceUnusableError,
    SubmissionInProgressError,
    Treatment,
)
from checkout_engine.domain.pricing import (
    OrderTotals,
    PricedItems,
    compute_totals,
    resolve_line_items,
)
from checkout_engine.domain.sources import (
    CartSource,
    CheckoutSource,
    QuoteItem,
    QuoteSource,
)
from checkout_engine.domain.state_machines import (
    CheckoutStep,
    QuoteStatus,
    ShippingStatus,
    SubmissionState,
)
from checkout_engine.domain.value_objects import (
    Address,
    BusinessMeta,
    ContactInfo,
    CouponState,
    LineItem,
    Money,
    SellingContext,
    SessionContext,
    ShippingMethod,
    ShippingQuote,
    ShippingQuoteKey,
    UserProfile,
)

__all__ = [
    # Base
    "AggregateRoot",
    "DomainEvent",
    "ValueObject",
    # Entities
    "CheckoutSession",
    "OrderSubmission",
    # Sources
    "CartSource",
    "CheckoutSource",
    "QuoteItem",
    "QuoteSource",
    # Pricing
    "OrderTotals",
    "PricedItems",
    "compute_totals",
    "resolve_line_items",
    # State machines
    "CheckoutStep",
    "QuoteStatus",
    "ShippingStatus",
    "SubmissionState",
    # Value objects
    "Address",
    "BusinessMeta",
    "ContactInfo",
    "CouponState",
    "LineItem",
    "Money",
    "SellingContext",
    "SessionContext",
    "ShippingMethod",
    "ShippingQuote",
    "ShippingQuoteKey",
    "UserProfile",
    # Events
    "EVENT_REGISTRY",
    # Exceptions
    "AddressCreationFailedError",
    "AuthExpiredError",
    "CartUpdateFailedError",
    "CheckoutSessionNotFoundError",
    "CheckoutValidationError",
    "CouponRejectedError",
    "DomainError",
    "EmptyCartError",
    "IncompleteAddressError",
    "InvalidStepTransitionError",
    "NetworkFailureError",
    "PaymentInitFailedError",
    "QuoteNotUsableError",
    "RemoteServiceError",
    "RemoteValidationError",
    "ResponseDecodeError",
    "ShippingUnavailableError",
    "SourceUnusableError",
    "SubmissionInProgressError",
    "Treatment",
]
