"""Address resolution for order submission.

Turns whatever the buyer chose on the delivery step into the id of a
saved address the commerce API can ship to.
"""

import structlog

from checkout_engine.domain.entities import CheckoutSession
from checkout_engine.domain.validation import validate_address
from checkout_engine.infrastructure.commerce_client import CommerceClient
from checkout_engine.infrastructure.geocoder import NominatimGeocoder

logger = structlog.get_logger()


class AddressResolver:
    """Resolves a session's address selection to a saved address id."""

    def __init__(self, client: CommerceClient, geocoder: NominatimGeocoder) -> None:
        self.client = client
        self.geocoder = geocoder

    async def resolve(self, session: CheckoutSession) -> str:
        """Return the address id to place the order against.

        A selected saved address is used as-is. A draft is validated,
        geocoded when possible and created through the commerce API.
        The created id is cached on the session so a later resubmission
        does not create the address again.

        Args:
            session: Checkout session on the confirmation step.

        Returns:
            Saved address id.

        Raises:
            IncompleteAddressError: If the draft is missing fields.
            AddressCreationFailedError: If the server refuses the draft.
        """
        address = session.address
        if address is not None and address.is_saved:
            return address.id

        if session.submission.address_id:
            logger.debug(
                "Reusing address created by an earlier attempt",
                session_id=session.id,
                address_id=session.submission.address_id,
            )
            return session.submission.address_id

        validate_address(address)

        coordinates = await self.geocoder.geocode(address)
        if coordinates is not None:
            address = address.with_coordinates(coordinates.latitude, coordinates.longitude)
        else:
            logger.info("Creating address without coordinates", session_id=session.id)

        created = await self.client.create_address(address)

        saved_addresses = None
        if session.save_address:
            saved_addresses = await self.client.list_addresses()

        session.record_address_created(created, saved_addresses)
        logger.info(
            "Draft address created",
            session_id=session.id,
            address_id=created.id,
            saved_for_later=session.save_address,
        )
        return created.id
