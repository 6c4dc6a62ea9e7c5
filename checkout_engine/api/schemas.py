"""Pydantic schemas for the checkout HTTP API.

Money crosses this boundary as integer minor units plus a display
string; formatting happens nowhere else.
"""

from datetime import datetime

from pydantic import BaseModel, Field

from checkout_engine.domain.value_objects import Money


# ============================================================================
# Common Schemas
# ============================================================================


class PriceSchema(BaseModel):
    """Price representation."""

    amount: int = Field(..., description="Amount in smallest currency unit (kobo)")
    currency: str = Field(default="NGN", description="Currency code")
    display: str = Field(..., description="Formatted amount, e.g. ₦3,500.00")

    @classmethod
    def from_minor(cls, amount: int, currency: str = "NGN") -> "PriceSchema":
        return cls(
            amount=amount,
            currency=currency,
            display=str(Money(amount_minor=amount, currency=currency)),
        )


class ErrorResponse(BaseModel):
    """Standard error response.

    ``treatment`` tells the client how to present the error: inline next
    to the form, as a toast, or by navigating to ``redirect_to``.
    """

    error_code: str = Field(..., description="Machine-readable error code")
    message: str = Field(..., description="Human-readable error message")
    treatment: str = Field(..., description="inline, toast or redirect")
    redirect_to: str | None = Field(default=None, description="Where to navigate")
    retry_after: int | None = Field(
        default=None, description="Seconds to wait before redirecting"
    )
    details: dict = Field(default_factory=dict, description="Error context")
    request_id: str | None = Field(default=None, description="Request correlation ID")


# ============================================================================
# Request Schemas
# ============================================================================


class CheckoutSessionCreateRequest(BaseModel):
    """Request to open a checkout."""

    quote_id: str | None = Field(
        default=None, description="Approved quote to pay for; the cart if omitted"
    )


class ContactRequest(BaseModel):
    full_name: str = Field(default="", description="Buyer's full name")
    email: str = Field(default="", description="Contact email")
    phone: str = Field(default="", description="Phone in international format")


class AddressSchema(BaseModel):
    """Delivery address, saved or draft."""

    id: str | None = Field(default=None, description="Saved address id")
    label: str = Field(default="Home", description="Short name of the address")
    line1: str = Field(default="", description="Street address")
    line2: str | None = Field(default=None, description="Landmark or second line")
    city: str = Field(default="")
    state: str = Field(default="")
    country: str = Field(default="Nigeria")


class AddressRequest(BaseModel):
    """Select a saved address, or provide a draft."""

    address_id: str | None = Field(default=None, description="Saved address to use")
    draft: AddressSchema | None = Field(default=None, description="Typed-in address")
    save_for_later: bool = Field(
        default=False, description="Keep the draft in the saved-address list"
    )


class BusinessRequest(BaseModel):
    name: str = Field(default="", description="Business name")
    purpose: str = Field(default="", description="Purpose of the purchase")


class NotesRequest(BaseModel):
    notes: str | None = Field(default=None, max_length=2000)


class QuantityRequest(BaseModel):
    quantity: int = Field(..., ge=1, description="New quantity")


class CouponRequest(BaseModel):
    code: str = Field(..., description="Coupon code as entered")


# ============================================================================
# Response Schemas
# ============================================================================


class LineItemSchema(BaseModel):
    item_id: str | None = None
    product_id: str
    title: str
    quantity: int
    unit_price: PriceSchema
    line_total: PriceSchema
    selling_context: str
    moq: int | None = None


class CouponSchema(BaseModel):
    code: str
    applied: bool
    discount: PriceSchema
    message: str | None = None


class ShippingSchema(BaseModel):
    status: str = Field(..., description="Quote lifecycle status")
    method: str
    fee: PriceSchema | None = None
    total_weight_kg: float | None = None
    error: str | None = None


class TotalsSchema(BaseModel):
    subtotal: PriceSchema
    shipping: PriceSchema
    discount: PriceSchema
    total: PriceSchema


class CheckoutSessionResponse(BaseModel):
    """Checkout session state."""

    id: str
    source_type: str = Field(..., description="cart or quote")
    quote_id: str | None = None
    step: int = Field(..., ge=1, le=3)
    items: list[LineItemSchema]
    totals: TotalsSchema
    contact: ContactRequest
    address: AddressSchema | None = None
    saved_addresses: list[AddressSchema]
    business: BusinessRequest | None = None
    requires_business: bool
    notes: str | None = None
    coupon: CouponSchema | None = None
    shipping: ShippingSchema
    submission_state: str
    can_submit: bool
    last_error: str | None = None
    created_at: datetime
    updated_at: datetime


class SubmitResponse(BaseModel):
    """Where to send the buyer to pay."""

    order_id: str
    redirect_url: str
