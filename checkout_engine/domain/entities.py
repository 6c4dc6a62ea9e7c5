"""Domain entities for the checkout core.

The CheckoutSession aggregate holds everything a checkout view needs
between mount and redirect: the source and its priced items, the
wizard step, the form, coupon and shipping state, and the submission
record. It is mutated only through the methods below.
"""

from dataclasses import dataclass, field, replace
from datetime import datetime, timedelta
from uuid import uuid4

from checkout_engine.domain.base import AggregateRoot, utc_now
from checkout_engine.domain.events import (
    CheckoutDiscarded,
    CheckoutSourceReplaced,
    CheckoutStarted,
    CheckoutStepChanged,
    CheckoutSubmissionFailed,
    CouponApplied,
    CouponCleared,
    OrderCreated,
    PaymentInitialized,
    ShippingQuoted,
)
from checkout_engine.domain.exceptions import (
    CheckoutSessionNotFoundError,
    CheckoutValidationError,
    InvalidStepTransitionError,
    SubmissionInProgressError,
)
from checkout_engine.domain.pricing import OrderTotals, compute_totals, resolve_line_items
from checkout_engine.domain.sources import CartSource, CheckoutSource, QuoteSource
from checkout_engine.domain.state_machines import (
    CheckoutStep,
    ShippingStatus,
    SubmissionState,
    validate_step_transition,
)
from checkout_engine.domain.validation import validate_checkout_form
from checkout_engine.domain.value_objects import (
    Address,
    BusinessMeta,
    ContactInfo,
    CouponState,
    LineItem,
    ShippingMethod,
    ShippingQuote,
    ShippingQuoteKey,
)


# ============================================================================
# Order Submission
# ============================================================================


@dataclass
class OrderSubmission:
    """Progress of the order/payment sequence for one session.

    Kept across failed attempts so a resubmission can reuse the address
    already created and, when the order payload is unchanged, the order
    already created.

    Attributes:
        address_id: Resolved delivery address id.
        order_id: Order created by the commerce API.
        order_fingerprint: Payload fingerprint of the created order.
        authorization_url: Hosted payment page.
        last_error: Message of the last failed attempt.
        attempts: Number of submissions started.
    """

    address_id: str | None = None
    order_id: str | None = None
    order_fingerprint: str | None = None
    authorization_url: str | None = None
    last_error: str | None = None
    attempts: int = 0

    def reusable_order_id(self, fingerprint: str) -> str | None:
        """Get the created order id if it was built from the same payload."""
        if self.order_id and self.order_fingerprint == fingerprint:
            return self.order_id
        return None


# ============================================================================
# Checkout Session Aggregate Root
# ============================================================================


@dataclass(kw_only=True, eq=False)
class CheckoutSession(AggregateRoot):
    """Checkout session aggregate root.

    Attributes:
        id: Session identifier.
        source: Cart or approved quote being checked out.
        items: Priced line items resolved from the source.
        subtotal_minor: Subtotal resolved from the source.
        step: Current wizard step.
        contact: Buyer contact details.
        address: Selected saved address or a draft.
        save_address: Whether a draft should be kept for later use.
        saved_addresses: The user's saved addresses.
        notes: Optional order notes.
        business_meta: Business details for B2B orders.
        coupon: Coupon entry and validation outcome.
        shipping_method: Delivery tier used for quotes and the order.
        shipping_quote: Last applied delivery fee.
        shipping_status: Where the shipping quote lifecycle stands.
        shipping_quote_error: Message of the last failed quote.
        shipping_generation: Token of the latest quote request.
        submission: Order/payment progress.
        submission_state: Submission lifecycle state.
        cart_edit_pending: A quantity change awaits the commerce API.
        active: False once the session was discarded.
        expires_at: When an idle session stops being served.
    """

    id: str
    source: CheckoutSource
    items: tuple[LineItem, ...] = ()
    subtotal_minor: int = 0
    step: CheckoutStep = CheckoutStep.SUMMARY
    contact: ContactInfo = field(default_factory=ContactInfo)
    address: Address | None = None
    save_address: bool = False
    saved_addresses: tuple[Address, ...] = ()
    notes: str | None = None
    business_meta: BusinessMeta | None = None
    coupon: CouponState = field(default_factory=CouponState.empty)
    shipping_method: ShippingMethod = ShippingMethod.STANDARD
    shipping_quote: ShippingQuote | None = None
    shipping_status: ShippingStatus = ShippingStatus.NOT_REQUESTED
    shipping_quote_error: str | None = None
    shipping_generation: int = 0
    submission: OrderSubmission = field(default_factory=OrderSubmission)
    submission_state: SubmissionState = SubmissionState.IDLE
    cart_edit_pending: bool = False
    active: bool = True
    expires_at: datetime | None = None

    @classmethod
    def create(
        cls,
        source: CheckoutSource | None,
        contact: ContactInfo | None = None,
        saved_addresses: tuple[Address, ...] = (),
        shipping_method: ShippingMethod = ShippingMethod.STANDARD,
        session_id: str | None = None,
        ttl_minutes: int | None = None,
    ) -> "CheckoutSession":
        """Create a session for a freshly loaded source.

        The first saved address, if any, is preselected.

        Args:
            source: Cart or quote loaded from the commerce API.
            contact: Contact details to prefill.
            saved_addresses: The user's saved addresses.
            shipping_method: Delivery tier.
            session_id: Optional pre-generated id.
            ttl_minutes: Idle lifetime; the session never expires if omitted.

        Returns:
            New CheckoutSession on the summary step.

        Raises:
            SourceUnusableError: If the source cannot be checked out.
        """
        priced = resolve_line_items(source)
        session = cls(
            id=session_id or str(uuid4()),
            source=source,
            items=priced.items,
            subtotal_minor=priced.subtotal_minor,
            contact=contact or ContactInfo(),
            saved_addresses=saved_addresses,
            address=saved_addresses[0] if saved_addresses else None,
            shipping_method=shipping_method,
        )
        if ttl_minutes is not None:
            session.extend(ttl_minutes)
        session._record_event(
            CheckoutStarted(
                aggregate_id=session.id,
                source_type=source.source_type,
                quote_id=source.id if isinstance(source, QuoteSource) else None,
                item_count=len(priced.items),
                subtotal_minor=priced.subtotal_minor,
            )
        )
        return session

    # ------------------------------------------------------------------
    # Derived state
    # ------------------------------------------------------------------

    @property
    def is_expired(self) -> bool:
        """Check if the session outlived its idle lifetime."""
        return self.expires_at is not None and utc_now() > self.expires_at

    @property
    def is_quote(self) -> bool:
        return isinstance(self.source, QuoteSource)

    @property
    def quote_id(self) -> str | None:
        return self.source.id if isinstance(self.source, QuoteSource) else None

    @property
    def requires_business_meta(self) -> bool:
        """Business details are needed for quotes and any B2B line."""
        return self.is_quote or any(item.is_b2b for item in self.items)

    @property
    def address_id(self) -> str | None:
        if self.address is not None and self.address.is_saved:
            return self.address.id
        return self.submission.address_id

    @property
    def shipping_key(self) -> ShippingQuoteKey:
        return ShippingQuoteKey.build(self.address_id, self.items, self.shipping_method)

    @property
    def shipping_is_current(self) -> bool:
        """Check if the applied quote was computed for the current key."""
        return (
            self.shipping_status == ShippingStatus.QUOTED
            and self.shipping_quote is not None
            and self.shipping_quote.key == self.shipping_key
        )

    @property
    def totals(self) -> OrderTotals:
        shipping = self.shipping_quote.fee_minor if self.shipping_is_current else 0
        return compute_totals(self.subtotal_minor, shipping, self.coupon)

    @property
    def can_submit(self) -> bool:
        """Check if the submit action should be enabled."""
        return (
            self.active
            and self.step.is_final()
            and self.submission_state.accepts_submit()
            and not self.shipping_status.blocks_submission()
        )

    # ------------------------------------------------------------------
    # Wizard transitions
    # ------------------------------------------------------------------

    def advance(self) -> CheckoutStep:
        """Move one step forward.

        Leaving the delivery step runs full form validation; on failure
        the session stays where it is.

        Returns:
            The new step.

        Raises:
            InvalidStepTransitionError: From the last step.
            CheckoutValidationError: If the delivery form is not valid.
        """
        self._ensure_active()
        if self.step.is_final():
            validate_step_transition(self.id, self.step, self.step)
        target = self.step.next()
        validate_step_transition(self.id, self.step, target)
        if self.step.is_gated():
            validate_checkout_form(self)
        self._move_to(target)
        return target

    def go_back(self) -> CheckoutStep:
        """Move one step back. Never validates.

        Raises:
            InvalidStepTransitionError: From the first step.
        """
        self._ensure_active()
        if self.step == CheckoutStep.SUMMARY:
            validate_step_transition(self.id, self.step, self.step)
        target = self.step.previous()
        validate_step_transition(self.id, self.step, target)
        self._move_to(target)
        return target

    def _move_to(self, target: CheckoutStep) -> None:
        previous = self.step
        self.step = target
        self._touch()
        self._record_event(
            CheckoutStepChanged(
                aggregate_id=self.id,
                from_step=int(previous),
                to_step=int(target),
            )
        )

    # ------------------------------------------------------------------
    # Form updates
    # ------------------------------------------------------------------

    def update_contact(self, contact: ContactInfo) -> None:
        self._ensure_editable()
        self.contact = contact
        self._touch()

    def select_address(self, address_id: str) -> Address:
        """Select one of the user's saved addresses.

        Raises:
            CheckoutValidationError: If the id is not in the saved list.
        """
        self._ensure_editable()
        for saved in self.saved_addresses:
            if saved.id == address_id:
                self.address = saved
                self.save_address = False
                self._touch()
                return saved
        raise CheckoutValidationError(
            "The selected address is no longer available.", field="address"
        )

    def use_draft_address(self, draft: Address, save_for_later: bool = False) -> None:
        """Use an address typed in during checkout.

        Any id on the draft is dropped; a draft only gets an id once the
        commerce API creates it.
        """
        self._ensure_editable()
        self.address = replace(draft, id=None)
        self.save_address = save_for_later
        self.submission.address_id = None
        self._touch()

    def update_business_meta(self, business_meta: BusinessMeta | None) -> None:
        self._ensure_editable()
        self.business_meta = business_meta
        self._touch()

    def update_notes(self, notes: str | None) -> None:
        self._ensure_editable()
        self.notes = notes.strip() if notes and notes.strip() else None
        self._touch()

    def record_address_created(
        self, address: Address, saved_addresses: tuple[Address, ...] | None = None
    ) -> None:
        """Remember a draft the commerce API has now created."""
        self.submission.address_id = address.id
        if saved_addresses is not None:
            self.saved_addresses = saved_addresses
        self._touch()

    def replace_source(self, source: CheckoutSource) -> bool:
        """Swap in a reloaded source (e.g. after a cart edit).

        A coupon validated against the old items no longer applies and
        is cleared.

        Returns:
            True if an applied coupon was invalidated.

        Raises:
            SourceUnusableError: If the new source cannot be checked out.
        """
        self._ensure_editable()
        priced = resolve_line_items(source)
        items_changed = priced.items != self.items or priced.subtotal_minor != self.subtotal_minor
        self.source = source
        self.items = priced.items
        self.subtotal_minor = priced.subtotal_minor
        invalidated = False
        if items_changed and self.coupon.applied:
            self._clear_coupon("items_changed")
            invalidated = True
        self._touch()
        self._record_event(
            CheckoutSourceReplaced(
                aggregate_id=self.id,
                item_count=len(priced.items),
                subtotal_minor=priced.subtotal_minor,
                coupon_invalidated=invalidated,
            )
        )
        return invalidated

    def begin_cart_edit(self, optimistic: CartSource) -> bool:
        """Show an unconfirmed quantity change until the API answers.

        Submission is refused until end_cart_edit settles the change.

        Returns:
            True if an applied coupon was invalidated.

        Raises:
            SubmissionInProgressError: If an order is being placed.
            CheckoutValidationError: If another change is still pending.
        """
        self._ensure_editable()
        if self.cart_edit_pending:
            raise CheckoutValidationError(
                "Another quantity change is still being saved.", field="quantity"
            )
        invalidated = self.replace_source(optimistic)
        self.cart_edit_pending = True
        return invalidated

    def end_cart_edit(self, source: CartSource) -> bool:
        """Settle a pending change with the confirmed or previous cart.

        Returns:
            True if an applied coupon was invalidated.
        """
        self.cart_edit_pending = False
        if not self.active:
            return False
        return self.replace_source(source)

    @property
    def cart(self) -> CartSource | None:
        return self.source if isinstance(self.source, CartSource) else None

    # ------------------------------------------------------------------
    # Coupon
    # ------------------------------------------------------------------

    def apply_coupon(self, coupon: CouponState) -> None:
        """Store a coupon validation outcome.

        An accepted coupon is recorded as applied; anything else resets
        the discount to zero.
        """
        self._ensure_editable()
        self.coupon = coupon
        self._touch()
        if coupon.applied:
            self._record_event(
                CouponApplied(
                    aggregate_id=self.id,
                    code=coupon.code,
                    discount_minor=coupon.discount_minor,
                    subtotal_minor=self.subtotal_minor,
                )
            )
        else:
            self._record_event(
                CouponCleared(
                    aggregate_id=self.id,
                    code=coupon.code,
                    reason="rejected",
                )
            )

    def clear_coupon(self) -> None:
        self._ensure_editable()
        self._clear_coupon("removed")

    def coupon_is_current(self) -> bool:
        """Check an applied coupon still matches the subtotal."""
        if not self.coupon.applied:
            return True
        return self.coupon.validated_subtotal_minor == self.subtotal_minor

    def invalidate_coupon(self, reason: str) -> bool:
        """Drop an applied coupon that no longer matches the order.

        Unlike ``clear_coupon`` this is allowed during submission.

        Returns:
            True if a coupon was dropped.
        """
        if not self.coupon.applied:
            return False
        self._clear_coupon(reason)
        return True

    def _clear_coupon(self, reason: str) -> None:
        code = self.coupon.code
        self.coupon = CouponState.empty()
        self._touch()
        self._record_event(
            CouponCleared(
                aggregate_id=self.id,
                code=code,
                reason=reason,
            )
        )

    # ------------------------------------------------------------------
    # Shipping
    # ------------------------------------------------------------------

    def mark_address_required(self) -> None:
        """Record that no address id exists to quote against."""
        self.shipping_generation += 1
        self.shipping_status = ShippingStatus.ADDRESS_REQUIRED
        self.shipping_quote = None
        self.shipping_quote_error = None

    def begin_shipping_request(self) -> int:
        """Start a quote request and return its generation token.

        Any request started earlier becomes stale.
        """
        self.shipping_generation += 1
        self.shipping_status = ShippingStatus.PENDING
        return self.shipping_generation

    def is_latest_shipping_request(self, generation: int) -> bool:
        return self.active and generation == self.shipping_generation

    def apply_shipping_quote(self, generation: int, quote: ShippingQuote) -> bool:
        """Apply a quote if it answers the latest request.

        Returns:
            False if the response was stale and discarded.
        """
        if not self.is_latest_shipping_request(generation):
            return False
        self.shipping_quote = quote
        self.shipping_status = ShippingStatus.QUOTED
        self.shipping_quote_error = None
        self._touch()
        self._record_event(
            ShippingQuoted(
                aggregate_id=self.id,
                address_id=quote.key.address_id if quote.key and quote.key.address_id else "",
                fee_minor=quote.fee_minor,
                total_weight_kg=quote.total_weight_kg,
            )
        )
        return True

    def apply_shipping_failure(self, generation: int, reason: str) -> bool:
        """Record a failed quote if it answers the latest request.

        A failure is never treated as free shipping.

        Returns:
            False if the response was stale and discarded.
        """
        if not self.is_latest_shipping_request(generation):
            return False
        self.shipping_quote = None
        self.shipping_status = ShippingStatus.ERROR
        self.shipping_quote_error = reason
        self._touch()
        return True

    # ------------------------------------------------------------------
    # Submission
    # ------------------------------------------------------------------

    def begin_submission(self) -> None:
        """Enter the in-flight state.

        Raises:
            SubmissionInProgressError: If a submission is already running.
            CheckoutValidationError: If a quantity change is still pending.
            InvalidStepTransitionError: If not on the confirmation step.
        """
        self._ensure_active()
        if self.submission_state == SubmissionState.IN_FLIGHT:
            raise SubmissionInProgressError(self.id)
        if self.cart_edit_pending:
            raise CheckoutValidationError(
                "Your cart is still being updated. Please try again in a moment."
            )
        if not self.step.is_final():
            raise InvalidStepTransitionError(
                self.id, int(self.step), int(CheckoutStep.CONFIRMATION)
            )
        self.submission_state = SubmissionState.IN_FLIGHT
        self.submission.attempts += 1
        self.submission.last_error = None
        self._touch()

    def record_order_created(self, order_id: str, fingerprint: str) -> None:
        self.submission.order_id = order_id
        self.submission.order_fingerprint = fingerprint
        self._touch()
        self._record_event(
            OrderCreated(
                aggregate_id=self.id,
                order_id=order_id,
                address_id=self.address_id or "",
                total_minor=self.totals.total_minor,
            )
        )

    def complete_submission(self, authorization_url: str) -> None:
        """Record the payment page and close the session."""
        self.submission.authorization_url = authorization_url
        self.submission_state = SubmissionState.REDIRECTED
        self._record_event(
            PaymentInitialized(
                aggregate_id=self.id,
                order_id=self.submission.order_id or "",
                authorization_url=authorization_url,
            )
        )
        self.discard(reason="payment_redirect")

    def fail_submission(self, error_code: str, reason: str) -> None:
        """Leave the in-flight state with form input intact."""
        self.submission_state = SubmissionState.FAILED
        self.submission.last_error = reason
        self._touch()
        self._record_event(
            CheckoutSubmissionFailed(
                aggregate_id=self.id,
                error_code=error_code,
                reason=reason,
                order_id=self.submission.order_id,
            )
        )

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def discard(self, reason: str = "navigated_away") -> None:
        """End the session. Later results for it are ignored."""
        if not self.active:
            return
        self.active = False
        self._touch()
        self._record_event(
            CheckoutDiscarded(
                aggregate_id=self.id,
                step=int(self.step),
                reason=reason,
            )
        )

    def extend(self, ttl_minutes: int) -> None:
        """Push the expiry out to ttl_minutes from now."""
        self.expires_at = utc_now() + timedelta(minutes=ttl_minutes)

    def _ensure_active(self) -> None:
        if not self.active:
            raise CheckoutSessionNotFoundError(self.id)

    def _ensure_editable(self) -> None:
        """Form state is frozen while an order is being placed."""
        self._ensure_active()
        if self.submission_state == SubmissionState.IN_FLIGHT:
            raise SubmissionInProgressError(self.id)
