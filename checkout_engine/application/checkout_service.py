"""Checkout application service.

Drives one buyer's checkout from mount to payment redirect:
- Loading the cart or approved quote and the saved addresses
- Moving through the summary, delivery and confirmation steps
- Keeping the delivery fee in step with address and item changes
- Coupons, cart quantity edits and the final submission
"""

import structlog

from checkout_engine.application.address_resolver import AddressResolver
from checkout_engine.application.cart_service import CartService
from checkout_engine.application.coupon_validator import CouponValidator
from checkout_engine.application.order_submitter import OrderSubmitter, PaymentRedirect
from checkout_engine.application.shipping_quotes import ShippingQuoteClient
from checkout_engine.domain.entities import CheckoutSession
from checkout_engine.domain.exceptions import (
    CheckoutSessionNotFoundError,
    CheckoutValidationError,
)
from checkout_engine.domain.state_machines import ShippingStatus
from checkout_engine.domain.value_objects import (
    Address,
    BusinessMeta,
    ContactInfo,
    CouponState,
    SessionContext,
    ShippingMethod,
)
from checkout_engine.infrastructure.commerce_client import CommerceClient
from checkout_engine.infrastructure.config import settings
from checkout_engine.infrastructure.geocoder import NominatimGeocoder

logger = structlog.get_logger()


# ============================================================================
# In-Memory Repository
# ============================================================================


class CheckoutSessionRepository:
    """In-memory store of live checkout sessions."""

    def __init__(self) -> None:
        self._sessions: dict[str, CheckoutSession] = {}

    def save(self, session: CheckoutSession) -> None:
        """Save a session, dropping any that expired."""
        self._evict_expired()
        self._sessions[session.id] = session

    def get(self, session_id: str) -> CheckoutSession | None:
        """Get session by ID. Expired sessions are forgotten."""
        session = self._sessions.get(session_id)
        if session is not None and session.is_expired:
            del self._sessions[session_id]
            return None
        return session

    def remove(self, session_id: str) -> CheckoutSession | None:
        """Forget a session."""
        return self._sessions.pop(session_id, None)

    def __len__(self) -> int:
        return len(self._sessions)

    def _evict_expired(self) -> None:
        expired = [sid for sid, s in self._sessions.items() if s.is_expired]
        for session_id in expired:
            del self._sessions[session_id]
        if expired:
            logger.info("Expired checkout sessions evicted", count=len(expired))


# Global repository instance
_session_repo: CheckoutSessionRepository | None = None


def get_checkout_session_repository() -> CheckoutSessionRepository:
    """Get checkout session repository singleton."""
    global _session_repo
    if _session_repo is None:
        _session_repo = CheckoutSessionRepository()
    return _session_repo


# ============================================================================
# Checkout Service
# ============================================================================


class CheckoutService:
    """Application service for the checkout wizard.

    One service is built per request from the caller's auth context.
    Sessions outlive the service in the repository; they end when the
    buyer is redirected to payment or the session is discarded.
    """

    def __init__(
        self,
        context: SessionContext,
        client: CommerceClient | None = None,
        geocoder: NominatimGeocoder | None = None,
        repository: CheckoutSessionRepository | None = None,
        request_id: str | None = None,
    ) -> None:
        """Initialize service.

        Args:
            context: Auth context of the signed-in user.
            client: Commerce API client; built from the context if omitted.
            geocoder: Address geocoder.
            repository: Session repository.
            request_id: Request ID for correlation.
        """
        self.context = context
        self.request_id = request_id
        self.client = (
            client if client is not None else CommerceClient(context, request_id=request_id)
        )
        self.geocoder = geocoder if geocoder is not None else NominatimGeocoder()
        self.repository = (
            repository if repository is not None else get_checkout_session_repository()
        )

        self.shipping = ShippingQuoteClient(self.client)
        self.coupons = CouponValidator(self.client)
        self.carts = CartService(self.client)
        self.submitter = OrderSubmitter(
            self.client,
            AddressResolver(self.client, self.geocoder),
            self.shipping,
        )

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def start(self, quote_id: str | None = None) -> CheckoutSession:
        """Open a checkout for the cart, or for an approved quote.

        Args:
            quote_id: Quote request to pay for; the cart is used if omitted.

        Returns:
            New session on the summary step.

        Raises:
            EmptyCartError: If the cart is missing or empty.
            QuoteNotUsableError: If the quote is not approved or unpriced.
        """
        if quote_id:
            source = await self.client.load_quote(quote_id)
        else:
            source = await self.client.load_cart()
        saved_addresses = await self.client.list_addresses()

        session = CheckoutSession.create(
            source,
            contact=self._prefilled_contact(),
            saved_addresses=saved_addresses,
            shipping_method=ShippingMethod(settings.shipping_method),
            ttl_minutes=settings.session_ttl_minutes,
        )
        self._commit(session)
        logger.info(
            "Checkout started",
            session_id=session.id,
            source_type=source.source_type,
            quote_id=quote_id,
            subtotal_minor=session.subtotal_minor,
            request_id=self.request_id,
        )
        return session

    def get(self, session_id: str) -> CheckoutSession:
        """Get a live session.

        Raises:
            CheckoutSessionNotFoundError: If unknown, discarded or expired.
        """
        session = self.repository.get(session_id)
        if session is None or not session.active:
            raise CheckoutSessionNotFoundError(session_id)
        return session

    def discard(self, session_id: str, reason: str = "navigated_away") -> None:
        """End a session, e.g. when the buyer leaves the checkout view."""
        session = self.get(session_id)
        session.discard(reason)
        self._commit(session)
        self.repository.remove(session_id)

    # ------------------------------------------------------------------
    # Wizard
    # ------------------------------------------------------------------

    async def next_step(self, session_id: str) -> CheckoutSession:
        """Advance the wizard, refreshing the delivery fee on entry."""
        session = self.get(session_id)
        try:
            step = session.advance()
        finally:
            self._commit(session)
        if step.needs_shipping():
            await self._refresh_shipping(session)
        return session

    async def previous_step(self, session_id: str) -> CheckoutSession:
        """Go back one step. Never validates."""
        session = self.get(session_id)
        step = session.go_back()
        self._commit(session)
        if step.needs_shipping():
            await self._refresh_shipping(session)
        return session

    # ------------------------------------------------------------------
    # Delivery form
    # ------------------------------------------------------------------

    def update_contact(self, session_id: str, contact: ContactInfo) -> CheckoutSession:
        session = self.get(session_id)
        session.update_contact(contact)
        self._commit(session)
        return session

    async def select_address(self, session_id: str, address_id: str) -> CheckoutSession:
        """Pick a saved address and requote if the fee is showing."""
        session = self.get(session_id)
        session.select_address(address_id)
        self._commit(session)
        if session.step.needs_shipping():
            await self._refresh_shipping(session)
        return session

    async def use_draft_address(
        self, session_id: str, draft: Address, save_for_later: bool = False
    ) -> CheckoutSession:
        """Use a typed-in address. It is only created on submission."""
        session = self.get(session_id)
        session.use_draft_address(draft, save_for_later)
        self._commit(session)
        if session.step.needs_shipping():
            await self._refresh_shipping(session)
        return session

    def update_business_meta(
        self, session_id: str, business_meta: BusinessMeta | None
    ) -> CheckoutSession:
        session = self.get(session_id)
        session.update_business_meta(business_meta)
        self._commit(session)
        return session

    def update_notes(self, session_id: str, notes: str | None) -> CheckoutSession:
        session = self.get(session_id)
        session.update_notes(notes)
        self._commit(session)
        return session

    # ------------------------------------------------------------------
    # Cart edits
    # ------------------------------------------------------------------

    async def update_item_quantity(
        self, session_id: str, item_id: str, quantity: int
    ) -> CheckoutSession:
        """Change a cart line's quantity.

        The new quantity is applied to the session straight away. If the
        commerce API refuses it, the previous cart is put back before the
        error is raised.

        Raises:
            CheckoutValidationError: For quote sessions or unknown lines.
            CartUpdateFailedError: If the server refused the change.
        """
        session = self.get(session_id)
        cart = session.cart
        if cart is None:
            raise CheckoutValidationError(
                "Quantities on an approved quote cannot be changed.", field="quantity"
            )

        pending = self.carts.begin_update(cart, item_id, quantity)
        session.begin_cart_edit(pending.optimistic)
        try:
            update = await self.carts.confirm(pending)
        except BaseException:
            session.end_cart_edit(pending.previous)
            self._commit(session)
            raise

        session.end_cart_edit(update.cart)
        self._commit(session)
        if session.active and session.step.needs_shipping():
            await self._refresh_shipping(session)
        return session

    # ------------------------------------------------------------------
    # Coupon
    # ------------------------------------------------------------------

    async def apply_coupon(self, session_id: str, code: str) -> CouponState:
        session = self.get(session_id)
        try:
            return await self.coupons.apply(session, code)
        finally:
            self._commit(session)

    def clear_coupon(self, session_id: str) -> CheckoutSession:
        session = self.get(session_id)
        session.clear_coupon()
        self._commit(session)
        return session

    # ------------------------------------------------------------------
    # Shipping and submission
    # ------------------------------------------------------------------

    async def refresh_shipping(self, session_id: str) -> ShippingStatus:
        """Request a new delivery fee, e.g. after a shipping error."""
        session = self.get(session_id)
        return await self._refresh_shipping(session, force=True)

    async def submit(self, session_id: str) -> PaymentRedirect:
        """Place the order and return where to send the buyer for payment."""
        session = self.get(session_id)
        try:
            redirect = await self.submitter.submit(session)
        finally:
            self._commit(session)
        self.repository.remove(session.id)
        return redirect

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    async def _refresh_shipping(
        self, session: CheckoutSession, force: bool = False
    ) -> ShippingStatus:
        try:
            return await self.shipping.refresh(session, force=force)
        finally:
            self._commit(session)

    def _prefilled_contact(self) -> ContactInfo:
        user = self.context.user
        if user is None:
            return ContactInfo()
        return ContactInfo(full_name=user.name, email=user.email, phone=user.phone)

    def _commit(self, session: CheckoutSession) -> None:
        """Save a session and log the events it recorded."""
        if session.active:
            session.extend(settings.session_ttl_minutes)
            self.repository.save(session)
        for event in session.collect_events():
            logger.info(
                "Domain event",
                request_id=self.request_id,
                **event.to_dict(),
            )
