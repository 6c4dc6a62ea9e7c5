"""Coupon validation.

The server is the only authority on whether a code applies and for how
much. A discount is used in totals only after the server accepted the
code for the current subtotal.
"""

from dataclasses import dataclass

import structlog

from checkout_engine.domain.entities import CheckoutSession
from checkout_engine.domain.exceptions import CheckoutValidationError, CouponRejectedError
from checkout_engine.domain.value_objects import CouponState
from checkout_engine.infrastructure.commerce_client import CommerceClient

logger = structlog.get_logger()


@dataclass
class CouponValidation:
    """Server verdict on a coupon code."""

    valid: bool
    discount_minor: int = 0
    message: str | None = None


class CouponValidator:
    """Validates coupon codes and applies the outcome to sessions."""

    def __init__(self, client: CommerceClient) -> None:
        self.client = client

    async def validate(self, code: str, subtotal_minor: int) -> CouponValidation:
        """Ask the commerce API whether a code applies to a subtotal.

        Raises:
            CheckoutValidationError: If the code is blank. No request is sent.
        """
        code = code.strip()
        if not code:
            raise CheckoutValidationError("Please enter a coupon code.", field="coupon")
        record = await self.client.validate_coupon(code, subtotal_minor)
        if not record.valid:
            return CouponValidation(valid=False, discount_minor=0, message=record.message)
        return CouponValidation(
            valid=True, discount_minor=record.discount_minor, message=record.message
        )

    async def apply(self, session: CheckoutSession, code: str) -> CouponState:
        """Validate a code for the session and store the outcome.

        Re-applying the code that is already applied for the same
        subtotal returns the stored state without a request.

        Args:
            session: Session to apply the coupon to.
            code: Code as entered by the buyer.

        Returns:
            The applied coupon state.

        Raises:
            CheckoutValidationError: If the code is blank, or another code
                is already applied.
            CouponRejectedError: If the server refused the code.
        """
        code = code.strip()
        if not code:
            raise CheckoutValidationError("Please enter a coupon code.", field="coupon")

        if session.coupon.matches(code, session.subtotal_minor):
            return session.coupon

        if session.coupon.applied and session.coupon.code != code:
            raise CheckoutValidationError(
                f"Coupon '{session.coupon.code}' is already applied. "
                "Remove it before entering another code.",
                field="coupon",
            )

        subtotal = session.subtotal_minor
        result = await self.validate(code, subtotal)

        if not result.valid:
            session.apply_coupon(CouponState.rejected(code, result.message))
            logger.info("Coupon rejected", session_id=session.id, code=code)
            raise CouponRejectedError(code, result.message)

        if subtotal != session.subtotal_minor:
            # The items changed while the request was in flight.
            raise CheckoutValidationError(
                "Your order changed while the coupon was being checked. "
                "Please apply it again.",
                field="coupon",
            )

        state = CouponState.accepted(code, result.discount_minor, subtotal, result.message)
        session.apply_coupon(state)
        logger.info(
            "Coupon applied",
            session_id=session.id,
            code=code,
            discount_minor=result.discount_minor,
        )
        return state
