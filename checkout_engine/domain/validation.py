"""Checkout form validation.

Runs before the wizard leaves the delivery step and again before
submission. Raises the first problem found as a single
human-readable error.
"""

import re
from typing import TYPE_CHECKING

from checkout_engine.domain.exceptions import (
    CheckoutValidationError,
    IncompleteAddressError,
)
from checkout_engine.domain.value_objects import (
    Address,
    BusinessMeta,
    ContactInfo,
    LineItem,
)

if TYPE_CHECKING:
    from checkout_engine.domain.entities import CheckoutSession


# "+" then a 1-3 digit country code then 9-14 subscriber digits
PHONE_PATTERN = re.compile(r"^\+[1-9]\d{9,16}$")
EMAIL_PATTERN = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")
_PHONE_SEPARATORS = re.compile(r"[\s\-().]")


def normalize_phone(phone: str) -> str:
    """Strip spaces, dashes, dots and brackets from a phone number."""
    return _PHONE_SEPARATORS.sub("", phone or "")


def is_valid_phone(phone: str) -> bool:
    return bool(PHONE_PATTERN.match(normalize_phone(phone)))


def validate_contact(contact: ContactInfo) -> None:
    """Validate buyer contact details.

    Raises:
        CheckoutValidationError: If a field is empty or malformed.
    """
    if not (contact.full_name.strip() and contact.email.strip() and contact.phone.strip()):
        raise CheckoutValidationError(
            "Please provide your contact information.", field="contact"
        )
    if not EMAIL_PATTERN.match(contact.email.strip()):
        raise CheckoutValidationError(
            "Please enter a valid email address.", field="email"
        )
    if not is_valid_phone(contact.phone):
        raise CheckoutValidationError(
            "Please enter your phone number in international format, "
            "e.g. +2348012345678.",
            field="phone",
        )


def validate_address(address: Address | None) -> None:
    """Validate the delivery address.

    A selected saved address is always acceptable. A draft must carry
    line1, city and state.

    Raises:
        IncompleteAddressError: If no address was given or a draft is
            missing required fields.
    """
    if address is None:
        raise IncompleteAddressError(list(Address.REQUIRED_FIELDS))
    if address.is_saved:
        return
    missing = address.missing_fields()
    if missing:
        raise IncompleteAddressError(missing)


def validate_business_meta(
    business_meta: BusinessMeta | None, required: bool
) -> None:
    if not required:
        return
    if business_meta is None or not business_meta.name.strip():
        raise CheckoutValidationError(
            "Business name is required for business orders.", field="business_name"
        )
    if not business_meta.purpose.strip():
        raise CheckoutValidationError(
            "Please tell us what this business order is for.", field="business_purpose"
        )


def validate_minimum_quantities(items: tuple[LineItem, ...]) -> None:
    """Check every B2B line meets its product's minimum order quantity."""
    for item in items:
        if item.below_moq:
            raise CheckoutValidationError(
                f"'{item.title}' has a minimum order quantity of {item.moq} "
                f"for business orders (you have {item.quantity}).",
                field="quantity",
            )


def validate_checkout_form(session: "CheckoutSession") -> None:
    """Validate everything needed to leave the delivery step.

    Args:
        session: Checkout session to validate.

    Raises:
        CheckoutValidationError: On the first failing rule.
    """
    validate_contact(session.contact)
    validate_address(session.address)
    validate_business_meta(session.business_meta, session.requires_business_meta)
    validate_minimum_quantities(session.items)
