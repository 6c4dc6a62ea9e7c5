"""Application layer - checkout orchestration services."""

from checkout_engine.application.address_resolver import AddressResolver
from checkout_engine.application.cart_service import CartService, CartUpdate, PendingCartUpdate
from checkout_engine.application.checkout_service import (
    CheckoutService,
    CheckoutSessionRepository,
    get_checkout_session_repository,
)
from checkout_engine.application.coupon_validator import CouponValidation, CouponValidator
from checkout_engine.application.order_submitter import (
    OrderSubmitter,
    PaymentRedirect,
    build_order_payload,
    order_fingerprint,
)
from checkout_engine.application.shipping_quotes import ShippingQuoteClient

__all__ = [
    "AddressResolver",
    "CartService",
    "CartUpdate",
    "CheckoutService",
    "CheckoutSessionRepository",
    "CouponValidation",
    "CouponValidator",
    "OrderSubmitter",
    "PaymentRedirect",
    "PendingCartUpdate",
    "ShippingQuoteClient",
    "build_order_payload",
    "get_checkout_session_repository",
    "order_fingerprint",
]
