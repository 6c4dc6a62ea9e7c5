"""Checkout session API endpoints.

Provides endpoints for the three-step checkout wizard:
- POST /checkout-sessions - open a checkout for the cart or a quote
- PUT /checkout-sessions/{id}/contact|address|business|notes - delivery form
- POST /checkout-sessions/{id}/next|back - move between steps
- POST /checkout-sessions/{id}/submit - place the order, get the payment URL
"""

from typing import Annotated, AsyncIterator

from fastapi import APIRouter, Depends, Request, status

from checkout_engine.api.schemas import (
    AddressRequest,
    AddressSchema,
    BusinessRequest,
    CheckoutSessionCreateRequest,
    CheckoutSessionResponse,
    ContactRequest,
    CouponRequest,
    CouponSchema,
    ErrorResponse,
    LineItemSchema,
    NotesRequest,
    PriceSchema,
    QuantityRequest,
    ShippingSchema,
    SubmitResponse,
    TotalsSchema,
)
from checkout_engine.application.checkout_service import CheckoutService
from checkout_engine.domain.entities import CheckoutSession
from checkout_engine.domain.exceptions import CheckoutValidationError
from checkout_engine.domain.value_objects import Address, BusinessMeta, ContactInfo
from checkout_engine.infrastructure.config import settings

router = APIRouter(prefix="/checkout-sessions", tags=["Checkout Sessions"])

ERROR_RESPONSES = {
    400: {"model": ErrorResponse},
    401: {"model": ErrorResponse},
    404: {"model": ErrorResponse},
    409: {"model": ErrorResponse},
    422: {"model": ErrorResponse},
    502: {"model": ErrorResponse},
    503: {"model": ErrorResponse},
}


# ============================================================================
# Dependencies
# ============================================================================


async def get_service(request: Request) -> AsyncIterator[CheckoutService]:
    """Build a checkout service for the caller and close its clients after."""
    service = CheckoutService(
        context=request.state.session_context,
        request_id=getattr(request.state, "request_id", None),
    )
    try:
        yield service
    finally:
        await service.client.close()
        await service.geocoder.close()


ServiceDep = Annotated[CheckoutService, Depends(get_service)]


# ============================================================================
# Converters
# ============================================================================


def _price(amount: int) -> PriceSchema:
    return PriceSchema.from_minor(amount, settings.currency)


def _address_schema(address: Address) -> AddressSchema:
    return AddressSchema(
        id=address.id,
        label=address.label,
        line1=address.line1,
        line2=address.line2,
        city=address.city,
        state=address.state,
        country=address.country,
    )


def session_to_response(session: CheckoutSession) -> CheckoutSessionResponse:
    """Convert a CheckoutSession aggregate to its response schema."""
    totals = session.totals
    quote = session.shipping_quote if session.shipping_is_current else None

    coupon = None
    if session.coupon.code:
        coupon = CouponSchema(
            code=session.coupon.code,
            applied=session.coupon.applied,
            discount=_price(session.coupon.trusted_discount_minor),
            message=session.coupon.message,
        )

    business = None
    if session.business_meta is not None:
        business = BusinessRequest(
            name=session.business_meta.name, purpose=session.business_meta.purpose
        )

    return CheckoutSessionResponse(
        id=session.id,
        source_type=session.source.source_type,
        quote_id=session.quote_id,
        step=int(session.step),
        items=[
            LineItemSchema(
                item_id=item.item_id,
                product_id=item.product_id,
                title=item.title,
                quantity=item.quantity,
                unit_price=_price(item.unit_price_minor),
                line_total=_price(item.line_total_minor),
                selling_context=item.selling_context.value,
                moq=item.moq,
            )
            for item in session.items
        ],
        totals=TotalsSchema(
            subtotal=_price(totals.subtotal_minor),
            shipping=_price(totals.shipping_minor),
            discount=_price(totals.discount_minor),
            total=_price(totals.total_minor),
        ),
        contact=ContactRequest(
            full_name=session.contact.full_name,
            email=session.contact.email,
            phone=session.contact.phone,
        ),
        address=_address_schema(session.address) if session.address else None,
        saved_addresses=[_address_schema(a) for a in session.saved_addresses],
        business=business,
        requires_business=session.requires_business_meta,
        notes=session.notes,
        coupon=coupon,
        shipping=ShippingSchema(
            status=session.shipping_status.value,
            method=session.shipping_method.value,
            fee=_price(quote.fee_minor) if quote else None,
            total_weight_kg=quote.total_weight_kg if quote else None,
            error=session.shipping_quote_error,
        ),
        submission_state=session.submission_state.value,
        can_submit=session.can_submit,
        last_error=session.submission.last_error,
        created_at=session.created_at,
        updated_at=session.updated_at,
    )


# ============================================================================
# Endpoints
# ============================================================================


@router.post(
    "",
    response_model=CheckoutSessionResponse,
    status_code=status.HTTP_201_CREATED,
    responses=ERROR_RESPONSES,
    summary="Open a checkout",
    description="Open a checkout for the buyer's cart, or for an approved quote.",
)
async def create_checkout_session(
    body: CheckoutSessionCreateRequest,
    service: ServiceDep,
) -> CheckoutSessionResponse:
    session = await service.start(quote_id=body.quote_id)
    return session_to_response(session)


@router.get(
    "/{session_id}",
    response_model=CheckoutSessionResponse,
    responses=ERROR_RESPONSES,
    summary="Get checkout state",
)
async def get_checkout_session(
    session_id: str, service: ServiceDep
) -> CheckoutSessionResponse:
    return session_to_response(service.get(session_id))


@router.delete(
    "/{session_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    responses=ERROR_RESPONSES,
    summary="Discard a checkout",
    description="Called when the buyer leaves the checkout view.",
)
async def discard_checkout_session(session_id: str, service: ServiceDep) -> None:
    service.discard(session_id)


@router.put(
    "/{session_id}/contact",
    response_model=CheckoutSessionResponse,
    responses=ERROR_RESPONSES,
)
async def update_contact(
    session_id: str, body: ContactRequest, service: ServiceDep
) -> CheckoutSessionResponse:
    contact = ContactInfo(full_name=body.full_name, email=body.email, phone=body.phone)
    return session_to_response(service.update_contact(session_id, contact))


@router.put(
    "/{session_id}/address",
    response_model=CheckoutSessionResponse,
    responses=ERROR_RESPONSES,
    summary="Choose the delivery address",
    description="Select a saved address by id, or provide a draft to be "
    "created when the order is placed.",
)
async def update_address(
    session_id: str, body: AddressRequest, service: ServiceDep
) -> CheckoutSessionResponse:
    if body.address_id:
        session = await service.select_address(session_id, body.address_id)
    elif body.draft is not None:
        draft = Address(
            label=body.draft.label,
            line1=body.draft.line1,
            line2=body.draft.line2,
            city=body.draft.city,
            state=body.draft.state,
            country=body.draft.country,
        )
        session = await service.use_draft_address(session_id, draft, body.save_for_later)
    else:
        raise CheckoutValidationError(
            "Please choose a saved address or enter a new one.", field="address"
        )
    return session_to_response(session)


@router.put(
    "/{session_id}/business",
    response_model=CheckoutSessionResponse,
    responses=ERROR_RESPONSES,
)
async def update_business(
    session_id: str, body: BusinessRequest, service: ServiceDep
) -> CheckoutSessionResponse:
    meta = BusinessMeta(name=body.name, purpose=body.purpose)
    return session_to_response(service.update_business_meta(session_id, meta))


@router.put(
    "/{session_id}/notes",
    response_model=CheckoutSessionResponse,
    responses=ERROR_RESPONSES,
)
async def update_notes(
    session_id: str, body: NotesRequest, service: ServiceDep
) -> CheckoutSessionResponse:
    return session_to_response(service.update_notes(session_id, body.notes))


@router.put(
    "/{session_id}/items/{item_id}",
    response_model=CheckoutSessionResponse,
    responses=ERROR_RESPONSES,
    summary="Change a cart line quantity",
)
async def update_item_quantity(
    session_id: str, item_id: str, body: QuantityRequest, service: ServiceDep
) -> CheckoutSessionResponse:
    session = await service.update_item_quantity(session_id, item_id, body.quantity)
    return session_to_response(session)


@router.post(
    "/{session_id}/next",
    response_model=CheckoutSessionResponse,
    responses=ERROR_RESPONSES,
    summary="Go to the next step",
    description="Leaving the delivery step validates the whole form.",
)
async def next_step(session_id: str, service: ServiceDep) -> CheckoutSessionResponse:
    return session_to_response(await service.next_step(session_id))


@router.post(
    "/{session_id}/back",
    response_model=CheckoutSessionResponse,
    responses=ERROR_RESPONSES,
)
async def previous_step(session_id: str, service: ServiceDep) -> CheckoutSessionResponse:
    return session_to_response(await service.previous_step(session_id))


@router.post(
    "/{session_id}/coupon",
    response_model=CheckoutSessionResponse,
    responses=ERROR_RESPONSES,
    summary="Apply a coupon",
)
async def apply_coupon(
    session_id: str, body: CouponRequest, service: ServiceDep
) -> CheckoutSessionResponse:
    await service.apply_coupon(session_id, body.code)
    return session_to_response(service.get(session_id))


@router.delete(
    "/{session_id}/coupon",
    response_model=CheckoutSessionResponse,
    responses=ERROR_RESPONSES,
)
async def clear_coupon(session_id: str, service: ServiceDep) -> CheckoutSessionResponse:
    return session_to_response(service.clear_coupon(session_id))


@router.post(
    "/{session_id}/shipping/refresh",
    response_model=CheckoutSessionResponse,
    responses=ERROR_RESPONSES,
    summary="Request a new delivery fee",
)
async def refresh_shipping(
    session_id: str, service: ServiceDep
) -> CheckoutSessionResponse:
    await service.refresh_shipping(session_id)
    return session_to_response(service.get(session_id))


@router.post(
    "/{session_id}/submit",
    response_model=SubmitResponse,
    responses=ERROR_RESPONSES,
    summary="Place the order",
    description="Creates the order and initializes payment. The client "
    "redirects the buyer to redirect_url.",
)
async def submit(session_id: str, service: ServiceDep) -> SubmitResponse:
    redirect = await service.submit(session_id)
    return SubmitResponse(order_id=redirect.order_id, redirect_url=redirect.authorization_url)
