"""Shipping quote client.

Keeps a session's delivery fee in step with everything it depends on:
the address id, the items and the shipping method. Several quote
requests for one session may be in flight at once; only the response to
the most recent request is ever applied.
"""

import structlog

from checkout_engine.domain.entities import CheckoutSession
from checkout_engine.domain.exceptions import AuthExpiredError, DomainError
from checkout_engine.domain.state_machines import ShippingStatus
from checkout_engine.domain.value_objects import ShippingQuote, ShippingQuoteKey
from checkout_engine.infrastructure.commerce_client import CommerceClient

logger = structlog.get_logger()


class ShippingQuoteClient:
    """Fetches delivery fees and applies them to sessions."""

    def __init__(self, client: CommerceClient) -> None:
        self.client = client

    async def quote(self, key: ShippingQuoteKey) -> ShippingQuote:
        """Fetch a delivery fee for a quote key.

        Args:
            key: Address id, items and method to price.

        Returns:
            Quote tagged with the key it was computed for.
        """
        record = await self.client.shipping_quote(
            address_id=key.address_id,
            items=list(key.items),
            method=key.method,
        )
        return record.to_quote(key)

    async def refresh(self, session: CheckoutSession, force: bool = False) -> ShippingStatus:
        """Recompute the session's delivery fee if its key changed.

        Without an address id the session is marked as needing one and
        nothing is requested. A failed request is recorded as a shipping
        error, never as a zero fee. A response that arrives after a newer
        request was started, or after the session was discarded, is
        dropped.

        Args:
            session: Session to refresh.
            force: Request a new quote even if the current one matches.

        Returns:
            The session's shipping status after the refresh.

        Raises:
            AuthExpiredError: If the user's token was rejected.
        """
        key = session.shipping_key
        if key.address_id is None:
            session.mark_address_required()
            return session.shipping_status

        if session.shipping_is_current and not force:
            return session.shipping_status

        generation = session.begin_shipping_request()
        logger.debug(
            "Requesting shipping quote",
            session_id=session.id,
            address_id=key.address_id,
            generation=generation,
        )
        try:
            quote = await self.quote(key)
        except DomainError as e:
            applied = session.apply_shipping_failure(generation, e.message)
            logger.warning(
                "Shipping quote failed",
                session_id=session.id,
                error_code=e.error_code,
                error=e.message,
                stale=not applied,
            )
            if isinstance(e, AuthExpiredError):
                raise
            return session.shipping_status

        if not session.apply_shipping_quote(generation, quote):
            logger.debug(
                "Discarded stale shipping quote",
                session_id=session.id,
                generation=generation,
                latest=session.shipping_generation,
            )
        return session.shipping_status
