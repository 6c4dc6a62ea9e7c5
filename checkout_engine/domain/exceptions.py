"""Domain exceptions.

Every failure the checkout core can surface is one of the kinds below.
Remote errors are translated into these kinds at the point of the call,
so callers never see raw transport exceptions.

Each kind has exactly one user-visible treatment:
- ``inline``: a banner next to the form, the user corrects input
- ``toast``: a transient notice, usually with a retry affordance
- ``redirect``: the view navigates away (listing page or login)
"""

from enum import Enum
from typing import Any


class Treatment(str, Enum):
    """How a failure is presented to the user."""

    INLINE = "inline"
    TOAST = "toast"
    REDIRECT = "redirect"


class DomainError(Exception):
    """Base class for all checkout errors.

    Attributes:
        message: Human-readable error message.
        details: Additional error context.
        error_code: Machine-readable code.
        treatment: The single way this error is shown to the user.
    """

    error_code: str = "CHECKOUT_ERROR"
    treatment: Treatment = Treatment.TOAST

    def __init__(self, message: str, details: dict[str, Any] | None = None) -> None:
        """Initialize domain error.

        Args:
            message: Human-readable error message.
            details: Optional dictionary with additional error context.
        """
        super().__init__(message)
        self.message = message
        self.details = details or {}


# ============================================================================
# Local Validation Errors
# ============================================================================


class CheckoutValidationError(DomainError):
    """Raised when user input fails local validation.

    Never reaches the network layer. The session stays on its current step.
    """

    error_code = "VALIDATION_ERROR"
    treatment = Treatment.INLINE

    def __init__(self, message: str, field: str | None = None) -> None:
        super().__init__(message, details={"field": field} if field else None)
        self.field = field


class IncompleteAddressError(CheckoutValidationError):
    """Raised when a drafted address is missing required fields."""

    error_code = "INCOMPLETE_ADDRESS"

    def __init__(self, missing_fields: list[str]) -> None:
        """Initialize incomplete address error.

        Args:
            missing_fields: Names of the empty required fields.
        """
        readable = ", ".join(missing_fields)
        super().__init__(
            f"Please complete your delivery address ({readable}).",
            field="address",
        )
        self.details["missing_fields"] = missing_fields
        self.missing_fields = missing_fields


class CouponRejectedError(CheckoutValidationError):
    """Raised when the server says a coupon code is not valid."""

    error_code = "COUPON_REJECTED"

    def __init__(self, code: str, message: str | None = None) -> None:
        super().__init__(message or f"Coupon '{code}' is not valid.", field="coupon")
        self.details["code"] = code
        self.code = code


class InvalidStepTransitionError(CheckoutValidationError):
    """Raised when the wizard is asked to move somewhere it cannot go."""

    error_code = "INVALID_STEP_TRANSITION"

    def __init__(self, session_id: str, current_step: int, target_step: int) -> None:
        super().__init__(
            f"Cannot move checkout {session_id} from step {current_step} "
            f"to step {target_step}"
        )
        self.details.update(
            {
                "session_id": session_id,
                "current_step": current_step,
                "target_step": target_step,
            }
        )


class SubmissionInProgressError(CheckoutValidationError):
    """Raised when submit is called while a submission is in flight."""

    error_code = "SUBMISSION_IN_PROGRESS"

    def __init__(self, session_id: str) -> None:
        super().__init__("Your order is already being placed. Please wait.")
        self.details["session_id"] = session_id


# ============================================================================
# Source Errors
# ============================================================================


class SourceUnusableError(DomainError):
    """Raised when the checkout source cannot be checked out.

    Terminal for the session; the user is sent back to a listing page.
    """

    error_code = "SOURCE_UNUSABLE"
    treatment = Treatment.REDIRECT


class EmptyCartError(SourceUnusableError):
    """Raised when the cart is missing or has no items."""

    error_code = "EMPTY_CART"

    def __init__(self) -> None:
        super().__init__("Your cart is empty. Add products before checking out.")


class QuoteNotUsableError(SourceUnusableError):
    """Raised when a quote cannot be checked out.

    The actual quote status is surfaced to the caller.
    """

    error_code = "QUOTE_NOT_USABLE"

    def __init__(self, quote_id: str, status: str, reason: str | None = None) -> None:
        """Initialize quote not usable error.

        Args:
            quote_id: ID of the quote.
            status: Status reported by the server.
            reason: Optional explanation when the status itself is fine.
        """
        message = reason or (
            f"Quote {quote_id} is {status.lower()} and cannot be checked out. "
            "Only approved quotes can be paid for."
        )
        super().__init__(message, details={"quote_id": quote_id, "status": status})
        self.quote_id = quote_id
        self.status = status


class CheckoutSessionNotFoundError(DomainError):
    """Raised when a checkout session id is unknown or was discarded."""

    error_code = "CHECKOUT_SESSION_NOT_FOUND"
    treatment = Treatment.REDIRECT

    def __init__(self, session_id: str) -> None:
        super().__init__(
            f"Checkout session not found: {session_id}",
            details={"session_id": session_id},
        )


# ============================================================================
# Remote Errors
# ============================================================================


class NetworkFailureError(DomainError):
    """Raised when the remote API cannot be reached."""

    error_code = "NETWORK_FAILURE"
    treatment = Treatment.TOAST

    def __init__(self, operation: str, reason: str) -> None:
        super().__init__(
            "We couldn't reach the server. Check your internet connection "
            "and try again.",
            details={"operation": operation, "reason": reason},
        )
        self.operation = operation


class RemoteValidationError(DomainError):
    """Raised on a 400-class response; server messages are kept verbatim."""

    error_code = "REMOTE_VALIDATION_ERROR"
    treatment = Treatment.INLINE

    def __init__(
        self, operation: str, messages: list[str], status_code: int = 400
    ) -> None:
        """Initialize remote validation error.

        Args:
            operation: Remote operation that failed.
            messages: Server messages, shown joined and unmodified.
            status_code: HTTP status code.
        """
        super().__init__(
            "; ".join(messages) or "The request was rejected.",
            details={
                "operation": operation,
                "messages": messages,
                "status_code": status_code,
            },
        )
        self.operation = operation
        self.messages = messages
        self.status_code = status_code


class AddressCreationFailedError(RemoteValidationError):
    """Raised when the server refuses to create a drafted address."""

    error_code = "ADDRESS_CREATION_FAILED"

    def __init__(self, messages: list[str], status_code: int = 400) -> None:
        super().__init__("create_address", messages, status_code)


class AuthExpiredError(DomainError):
    """Raised on a 401; the view redirects to login after a short delay."""

    error_code = "AUTH_EXPIRED"
    treatment = Treatment.REDIRECT

    def __init__(self, operation: str) -> None:
        super().__init__(
            "Your session has expired. Please sign in again.",
            details={"operation": operation},
        )


class RemoteServiceError(DomainError):
    """Raised on a 5xx or otherwise unexpected response."""

    error_code = "REMOTE_SERVICE_ERROR"
    treatment = Treatment.TOAST

    def __init__(self, operation: str, message: str, status_code: int | None) -> None:
        super().__init__(
            message,
            details={"operation": operation, "status_code": status_code},
        )
        self.operation = operation
        self.status_code = status_code


class ResponseDecodeError(DomainError):
    """Raised when a response does not match the expected contract."""

    error_code = "RESPONSE_DECODE_ERROR"
    treatment = Treatment.TOAST

    def __init__(self, operation: str, reason: str) -> None:
        super().__init__(
            "The server sent an unexpected response. Please try again.",
            details={"operation": operation, "reason": reason},
        )
        self.operation = operation
        self.reason = reason


# ============================================================================
# Checkout Flow Errors
# ============================================================================


class ShippingUnavailableError(DomainError):
    """Raised when no valid shipping quote exists for the order."""

    error_code = "SHIPPING_UNAVAILABLE"
    treatment = Treatment.INLINE

    def __init__(self, reason: str) -> None:
        super().__init__(
            f"Delivery fee could not be calculated: {reason}",
            details={"reason": reason},
        )
        self.reason = reason


class PaymentInitFailedError(DomainError):
    """Raised when an order exists but payment could not be started."""

    error_code = "PAYMENT_INIT_FAILED"
    treatment = Treatment.TOAST

    def __init__(self, order_id: str, reason: str) -> None:
        super().__init__(
            f"Your order was created but payment could not be started: {reason}. "
            "Please try again.",
            details={"order_id": order_id, "reason": reason},
        )
        self.order_id = order_id
        self.reason = reason


class CartUpdateFailedError(DomainError):
    """Raised when a cart edit is refused; the prior cart was restored."""

    error_code = "CART_UPDATE_FAILED"
    treatment = Treatment.TOAST

    def __init__(self, item_id: str, reason: str, restored: Any = None) -> None:
        super().__init__(
            f"Failed to update quantity: {reason}",
            details={"item_id": item_id},
        )
        self.item_id = item_id
        self.restored = restored


# ============================================================================
# Value Errors
# ============================================================================


class InvalidQuantityError(CheckoutValidationError):
    """Raised when an invalid quantity is provided."""

    error_code = "INVALID_QUANTITY"

    def __init__(self, quantity: int, reason: str = "Quantity must be at least 1") -> None:
        super().__init__(f"Invalid quantity {quantity}: {reason}", field="quantity")
        self.details.update({"quantity": quantity, "reason": reason})


class NegativeMoneyError(DomainError):
    """Raised when attempting to create money with a negative amount."""

    error_code = "NEGATIVE_MONEY"

    def __init__(self, amount: int) -> None:
        super().__init__(
            f"Money amount cannot be negative: {amount}",
            details={"amount": amount},
        )
