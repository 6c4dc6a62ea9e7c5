"""Order and payment submission.

Runs the final, strictly sequential part of checkout: resolve the
delivery address, make sure the delivery fee is current, create the
order and start payment. Nothing here retries on its own; every failure
returns the session to the confirmation step with the form intact.
"""

import hashlib
import json
from dataclasses import dataclass
from typing import Any

import structlog

from checkout_engine.application.address_resolver import AddressResolver
from checkout_engine.application.shipping_quotes import ShippingQuoteClient
from checkout_engine.domain.entities import CheckoutSession
from checkout_engine.domain.exceptions import (
    AuthExpiredError,
    CheckoutValidationError,
    DomainError,
    PaymentInitFailedError,
    ShippingUnavailableError,
)
from checkout_engine.domain.state_machines import ShippingStatus
from checkout_engine.domain.validation import validate_checkout_form
from checkout_engine.infrastructure.commerce_client import CommerceClient

logger = structlog.get_logger()


@dataclass
class PaymentRedirect:
    """Where to send the buyer once the order exists."""

    order_id: str
    authorization_url: str


def build_order_payload(session: CheckoutSession, address_id: str) -> dict[str, Any]:
    """Build the order-creation request body.

    Args:
        session: Session being submitted.
        address_id: Resolved delivery address id.

    Returns:
        JSON-ready payload.
    """
    payload: dict[str, Any] = {
        "addressId": address_id,
        "shippingMethod": session.shipping_method.value,
    }
    if session.coupon.applied:
        payload["couponCode"] = session.coupon.code

    if session.is_quote:
        payload["quoteId"] = session.quote_id
        payload["orderType"] = "B2B"
    else:
        payload["items"] = [
            {"productId": item.product_id, "quantity": item.quantity}
            for item in session.items
        ]

    if session.requires_business_meta and session.business_meta is not None:
        payload["businessName"] = session.business_meta.name.strip()
        payload["businessPurpose"] = session.business_meta.purpose.strip()

    if session.notes:
        payload["notes"] = session.notes
    return payload


def order_fingerprint(payload: dict[str, Any]) -> str:
    """Stable digest of an order payload."""
    encoded = json.dumps(payload, sort_keys=True, separators=(",", ":"))
    return hashlib.sha256(encoded.encode("utf-8")).hexdigest()


class OrderSubmitter:
    """Submits a checkout session as an order and starts payment."""

    def __init__(
        self,
        client: CommerceClient,
        address_resolver: AddressResolver,
        shipping: ShippingQuoteClient,
    ) -> None:
        self.client = client
        self.address_resolver = address_resolver
        self.shipping = shipping

    async def submit(self, session: CheckoutSession) -> PaymentRedirect:
        """Place the order for a session and initialize payment.

        Args:
            session: Session on the confirmation step.

        Returns:
            Order id and the hosted payment page to redirect to.

        Raises:
            SubmissionInProgressError: If a submission is already running.
            CheckoutValidationError: If the form is no longer valid.
            ShippingUnavailableError: If no valid delivery fee exists.
            AddressCreationFailedError: If the draft address was refused.
            RemoteValidationError: If the order was refused.
            PaymentInitFailedError: If the order exists but payment could
                not be started.
        """
        log = logger.bind(session_id=session.id)

        session.begin_submission()
        try:
            self._check_ready(session)

            address_id = await self.address_resolver.resolve(session)
            await self._ensure_shipping(session)

            payload = build_order_payload(session, address_id)
            fingerprint = order_fingerprint(payload)

            order_id = session.submission.reusable_order_id(fingerprint)
            if order_id:
                log.info("Reusing order from earlier attempt", order_id=order_id)
            else:
                order = await self.client.create_order(payload)
                order_id = order.id
                session.record_order_created(order_id, fingerprint)

            authorization_url = await self._initialize_payment(order_id)
        except DomainError as e:
            session.fail_submission(e.error_code, e.message)
            log.warning(
                "Checkout submission failed",
                error_code=e.error_code,
                error=e.message,
                order_id=session.submission.order_id,
                attempt=session.submission.attempts,
            )
            raise
        except BaseException:
            # Cancelled or crashed mid-flight.
            session.fail_submission(
                "SUBMISSION_INTERRUPTED", "Your order could not be completed. Please try again."
            )
            log.warning(
                "Checkout submission interrupted",
                order_id=session.submission.order_id,
                attempt=session.submission.attempts,
            )
            raise

        session.complete_submission(authorization_url)
        log.info("Redirecting to payment", order_id=order_id)
        return PaymentRedirect(order_id=order_id, authorization_url=authorization_url)

    def _check_ready(self, session: CheckoutSession) -> None:
        """Local checks that must pass before any remote call."""
        validate_checkout_form(session)

        if session.shipping_status == ShippingStatus.ERROR:
            raise ShippingUnavailableError(
                session.shipping_quote_error or "the last quote request failed"
            )

        if not session.coupon_is_current():
            session.invalidate_coupon("subtotal_changed")
            raise CheckoutValidationError(
                "Your order total changed since the coupon was applied. "
                "Please apply it again.",
                field="coupon",
            )

    async def _ensure_shipping(self, session: CheckoutSession) -> None:
        status = await self.shipping.refresh(session)
        if status != ShippingStatus.QUOTED or not session.shipping_is_current:
            raise ShippingUnavailableError(
                session.shipping_quote_error or "no quote for the selected address"
            )

    async def _initialize_payment(self, order_id: str) -> str:
        try:
            payment = await self.client.initialize_payment(order_id)
        except AuthExpiredError:
            raise
        except DomainError as e:
            raise PaymentInitFailedError(order_id, e.message) from e
        return payment.authorization_url
