"""State machines for the checkout session.

Deterministic state machines for the three-step checkout wizard,
the submission sequence and the shipping quote lifecycle.
"""

from enum import Enum, IntEnum

from checkout_engine.domain.exceptions import InvalidStepTransitionError


# ============================================================================
# Checkout Step Machine
# ============================================================================


class CheckoutStep(IntEnum):
    """Checkout wizard steps.

    State diagram:
        SUMMARY (1) ──next──► DELIVERY (2) ──next (validated)──► CONFIRMATION (3)
             ▲                    │   ▲                               │
             └───────back─────────┘   └─────────────back──────────────┘

    Forward moves are strictly linear. Backward moves are always
    permitted and never validate anything.
    """

    SUMMARY = 1
    DELIVERY = 2
    CONFIRMATION = 3

    def can_transition_to(self, target: "CheckoutStep") -> bool:
        """Check if transition to target step is valid.

        Args:
            target: Target step.

        Returns:
            True if the move is one step forward or one step back.
        """
        return target in _STEP_TRANSITIONS.get(self, set())

    def allowed_transitions(self) -> list["CheckoutStep"]:
        """Get list of valid target steps."""
        return sorted(_STEP_TRANSITIONS.get(self, set()))

    def next(self) -> "CheckoutStep":
        """Get the step after this one.

        Raises:
            ValueError: On the last step.
        """
        return CheckoutStep(self.value + 1)

    def previous(self) -> "CheckoutStep":
        """Get the step before this one.

        Raises:
            ValueError: On the first step.
        """
        return CheckoutStep(self.value - 1)

    def is_final(self) -> bool:
        """Check if submission is available from this step."""
        return self == CheckoutStep.CONFIRMATION

    def is_gated(self) -> bool:
        """Check if moving forward from this step requires validation."""
        return self == CheckoutStep.DELIVERY

    def needs_shipping(self) -> bool:
        """Check if shipping is recomputed while on this step."""
        return self in {CheckoutStep.DELIVERY, CheckoutStep.CONFIRMATION}


_STEP_TRANSITIONS: dict[CheckoutStep, set[CheckoutStep]] = {
    CheckoutStep.SUMMARY: {CheckoutStep.DELIVERY},
    CheckoutStep.DELIVERY: {CheckoutStep.CONFIRMATION, CheckoutStep.SUMMARY},
    CheckoutStep.CONFIRMATION: {CheckoutStep.DELIVERY},
}


# ============================================================================
# Submission State Machine
# ============================================================================


class SubmissionState(str, Enum):
    """Order submission lifecycle.

    State diagram:
        IDLE ──submit──► IN_FLIGHT ──redirect──► REDIRECTED
                            │  ▲
                       fail │  │ resubmit
                            ▼  │
                           FAILED
    """

    IDLE = "idle"
    IN_FLIGHT = "in_flight"
    FAILED = "failed"
    REDIRECTED = "redirected"

    def can_transition_to(self, target: "SubmissionState") -> bool:
        """Check if transition to target state is valid."""
        return target in _SUBMISSION_TRANSITIONS.get(self, set())

    def is_terminal(self) -> bool:
        """Check if this is a terminal state."""
        return len(_SUBMISSION_TRANSITIONS.get(self, set())) == 0

    def accepts_submit(self) -> bool:
        """Check if a new submission may start."""
        return self in {SubmissionState.IDLE, SubmissionState.FAILED}


_SUBMISSION_TRANSITIONS: dict[SubmissionState, set[SubmissionState]] = {
    SubmissionState.IDLE: {SubmissionState.IN_FLIGHT},
    SubmissionState.IN_FLIGHT: {SubmissionState.FAILED, SubmissionState.REDIRECTED},
    SubmissionState.FAILED: {SubmissionState.IN_FLIGHT},
    SubmissionState.REDIRECTED: set(),  # Terminal state
}


# ============================================================================
# Shipping Quote Lifecycle
# ============================================================================


class ShippingStatus(str, Enum):
    """Shipping quote lifecycle for a session.

    ADDRESS_REQUIRED holds while only a draft address exists; the draft
    is created at submission and quoted then. ERROR blocks submission
    until a later refresh succeeds.
    """

    NOT_REQUESTED = "not_requested"
    ADDRESS_REQUIRED = "address_required"
    PENDING = "pending"
    QUOTED = "quoted"
    ERROR = "error"

    def blocks_submission(self) -> bool:
        """Check if a failed quote is holding the order back."""
        return self == ShippingStatus.ERROR


# ============================================================================
# Quote Status
# ============================================================================


class QuoteStatus(str, Enum):
    """B2B quote request statuses reported by the commerce API."""

    PENDING = "PENDING"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"
    EXPIRED = "EXPIRED"
    CONVERTED = "CONVERTED"

    def is_usable(self) -> bool:
        """Only approved quotes can be checked out."""
        return self == QuoteStatus.APPROVED


# ============================================================================
# State Machine Helpers
# ============================================================================


def validate_step_transition(
    session_id: str,
    current_step: CheckoutStep,
    target_step: CheckoutStep,
) -> None:
    """Validate and raise if a wizard step transition is invalid.

    Args:
        session_id: Session identifier for error message.
        current_step: Current step.
        target_step: Target step.

    Raises:
        InvalidStepTransitionError: If transition is not valid.
    """
    if not current_step.can_transition_to(target_step):
        raise InvalidStepTransitionError(
            session_id=session_id,
            current_step=int(current_step),
            target_step=int(target_step),
        )
