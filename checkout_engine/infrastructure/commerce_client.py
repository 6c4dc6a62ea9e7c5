"""HTTP client for the Carryofy commerce API.

Every remote call made by the checkout core goes through CommerceClient.
Responses are unwrapped and decoded here, and transport failures and
error statuses are translated into domain errors, so nothing above this
module handles httpx exceptions or raw JSON.
"""

from dataclasses import dataclass
from typing import Any, Callable, TypeVar

import httpx
import structlog

from checkout_engine.domain.exceptions import (
    AddressCreationFailedError,
    AuthExpiredError,
    InvalidQuantityError,
    NegativeMoneyError,
    NetworkFailureError,
    RemoteServiceError,
    RemoteValidationError,
    ResponseDecodeError,
)
from checkout_engine.domain.sources import CartSource, QuoteItem, QuoteSource
from checkout_engine.domain.value_objects import (
    Address,
    LineItem,
    SellingContext,
    SessionContext,
    ShippingMethod,
    ShippingQuote,
    ShippingQuoteKey,
)
from checkout_engine.infrastructure.config import settings

logger = structlog.get_logger()

T = TypeVar("T")


# ============================================================================
# Response Records
# ============================================================================


def _minor_amount(value: Any) -> int:
    """Parse an amount in minor units (kobo); fractions are refused."""
    if isinstance(value, bool):
        raise ValueError(f"not an amount: {value!r}")
    if isinstance(value, float):
        if not value.is_integer():
            raise ValueError(f"fractional minor amount: {value!r}")
        return int(value)
    return int(value)


def _optional_int(value: Any) -> int | None:
    if value is None:
        return None
    return _minor_amount(value)


@dataclass
class CartItemRecord:
    """Cart line as returned by ``GET /cart``."""

    id: str
    product_id: str
    title: str
    quantity: int
    unit_price_minor: int
    total_price_minor: int | None
    selling_context: SellingContext
    moq: int | None

    @classmethod
    def from_api_response(cls, data: dict[str, Any]) -> "CartItemRecord":
        """Create from API response data.

        The server-resolved unit price wins over the catalogue price.
        """
        product = data.get("product") or {}
        unit_price = data.get("resolvedUnitPrice")
        if unit_price is None:
            unit_price = product["price"]
        return cls(
            id=str(data["id"]),
            product_id=str(data.get("productId") or product["id"]),
            title=product.get("title", ""),
            quantity=int(data["quantity"]),
            unit_price_minor=_minor_amount(unit_price),
            total_price_minor=_optional_int(data.get("resolvedTotalPrice")),
            selling_context=SellingContext(data.get("sellingContext") or "B2C"),
            moq=_optional_int(product.get("moq")),
        )

    def to_line_item(self) -> LineItem:
        return LineItem(
            product_id=self.product_id,
            title=self.title,
            quantity=self.quantity,
            unit_price_minor=self.unit_price_minor,
            line_total_minor=self.total_price_minor,
            selling_context=self.selling_context,
            moq=self.moq,
            item_id=self.id,
        )


@dataclass
class CartRecord:
    """Cart as returned by ``GET /cart`` and ``PUT /cart/items/{id}``."""

    id: str | None
    items: list[CartItemRecord]
    total_amount_minor: int

    @classmethod
    def from_api_response(cls, data: dict[str, Any]) -> "CartRecord":
        return cls(
            id=data.get("id"),
            items=[CartItemRecord.from_api_response(i) for i in data["items"]],
            total_amount_minor=_minor_amount(data["totalAmount"]),
        )

    def to_source(self) -> CartSource:
        return CartSource(
            items=tuple(item.to_line_item() for item in self.items),
            total_minor=self.total_amount_minor,
            id=self.id,
        )


@dataclass
class QuoteRequestRecord:
    """B2B quote request as returned by ``GET /quote-requests/{id}``."""

    id: str
    status: str
    items: list[QuoteItem]
    seller_name: str | None

    @classmethod
    def from_api_response(cls, data: dict[str, Any]) -> "QuoteRequestRecord":
        items = []
        for raw in data["items"]:
            product = raw.get("product") or {}
            items.append(
                QuoteItem(
                    product_id=str(raw["productId"]),
                    title=product.get("title", ""),
                    quantity=int(raw["requestedQuantity"]),
                    requested_price_minor=_optional_int(raw.get("requestedPriceKobo")),
                    seller_quoted_price_minor=_optional_int(
                        raw.get("sellerQuotedPriceKobo")
                    ),
                    moq=_optional_int(product.get("moq")),
                )
            )
        seller = data.get("seller") or {}
        return cls(
            id=str(data["id"]),
            status=str(data["status"]),
            items=items,
            seller_name=seller.get("businessName"),
        )

    def to_source(self) -> QuoteSource:
        return QuoteSource(
            id=self.id,
            status=self.status,
            items=tuple(self.items),
            seller_name=self.seller_name,
        )


def _cart_source(data: Any) -> CartSource:
    return CartRecord.from_api_response(data).to_source()


def _quote_source(data: Any) -> QuoteSource:
    return QuoteRequestRecord.from_api_response(data).to_source()


def address_from_api_response(data: dict[str, Any]) -> Address:
    """Decode a saved address record."""
    return Address(
        id=str(data["id"]),
        label=data.get("label") or "Home",
        line1=data["line1"],
        line2=data.get("line2"),
        city=data["city"],
        state=data["state"],
        country=data.get("country") or settings.default_country,
        latitude=data.get("latitude"),
        longitude=data.get("longitude"),
    )


@dataclass
class ShippingQuoteRecord:
    """Response of ``POST /shipping/quote``."""

    shipping_fee_minor: int
    total_weight_kg: float

    @classmethod
    def from_api_response(cls, data: dict[str, Any]) -> "ShippingQuoteRecord":
        return cls(
            shipping_fee_minor=_minor_amount(data["shippingFeeKobo"]),
            total_weight_kg=float(data.get("totalWeightKg") or 0.0),
        )

    def to_quote(self, key: ShippingQuoteKey | None = None) -> ShippingQuote:
        return ShippingQuote(
            fee_minor=self.shipping_fee_minor,
            total_weight_kg=self.total_weight_kg,
            key=key,
        )


@dataclass
class CouponValidationRecord:
    """Response of ``POST /coupons/validate``."""

    valid: bool
    discount_minor: int
    message: str | None

    @classmethod
    def from_api_response(cls, data: dict[str, Any]) -> "CouponValidationRecord":
        valid = bool(data["valid"])
        return cls(
            valid=valid,
            discount_minor=_minor_amount(data.get("discountAmount") or 0) if valid else 0,
            message=data.get("message"),
        )


@dataclass
class OrderRecord:
    """Response of ``POST /orders``."""

    id: str
    status: str | None

    @classmethod
    def from_api_response(cls, data: dict[str, Any]) -> "OrderRecord":
        return cls(id=str(data["id"]), status=data.get("status"))


@dataclass
class PaymentInitRecord:
    """Response of ``POST /payments/initialize``."""

    authorization_url: str
    reference: str | None

    @classmethod
    def from_api_response(cls, data: dict[str, Any]) -> "PaymentInitRecord":
        url = data.get("authorization_url") or data.get("authorizationUrl")
        if not url:
            raise KeyError("authorization_url")
        return cls(authorization_url=str(url), reference=data.get("reference"))


# ============================================================================
# Commerce Client
# ============================================================================


def _error_messages(response: httpx.Response) -> list[str]:
    """Extract server error messages without rewording them."""
    try:
        body = response.json()
    except ValueError:
        return [response.text] if response.text else []
    if isinstance(body, dict):
        message = body.get("message") or body.get("error")
        if isinstance(message, list):
            return [str(m) for m in message]
        if message:
            return [str(message)]
    return []


class CommerceClient:
    """HTTP client for the commerce API, scoped to one signed-in user.

    Example:
        async with CommerceClient(context) as client:
            cart = await client.load_cart()
    """

    def __init__(
        self,
        context: SessionContext,
        base_url: str | None = None,
        timeout: float | None = None,
        request_id: str | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """Initialize commerce client.

        Args:
            context: Auth context whose token is sent on every call.
            base_url: API base URL; defaults to the configured URL.
            timeout: Request timeout in seconds.
            request_id: Optional request ID for correlation.
            transport: Optional transport override (used in tests).
        """
        self.context = context
        self.base_url = base_url or settings.commerce_api_url
        self.timeout = timeout or settings.commerce_api_timeout
        self.request_id = request_id
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    async def __aenter__(self) -> "CommerceClient":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.close()

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create HTTP client."""
        if self._client is None:
            headers = {"Authorization": f"Bearer {self.context.access_token}"}
            if self.request_id:
                headers["X-Request-ID"] = self.request_id
            self._client = httpx.AsyncClient(
                base_url=self.base_url.rstrip("/") + "/",
                timeout=self.timeout,
                headers=headers,
                transport=self._transport,
            )
        return self._client

    async def close(self) -> None:
        """Close the HTTP client."""
        if self._client:
            await self._client.aclose()
            self._client = None

    async def _request(
        self,
        operation: str,
        method: str,
        path: str,
        json: dict[str, Any] | None = None,
    ) -> Any:
        """Send a request and return the unwrapped response body.

        Raises:
            NetworkFailureError: If the API could not be reached.
            AuthExpiredError: On 401.
            RemoteValidationError: On any other 4xx.
            RemoteServiceError: On 5xx or an unexpected status.
            ResponseDecodeError: If the body is not JSON.
        """
        client = await self._get_client()
        try:
            response = await client.request(method, path.lstrip("/"), json=json)
        except httpx.RequestError as e:
            logger.error(
                "Commerce API request failed",
                operation=operation,
                error=str(e),
            )
            raise NetworkFailureError(operation, str(e)) from e

        if response.status_code == 401:
            logger.warning("Commerce API rejected token", operation=operation)
            raise AuthExpiredError(operation)

        if 400 <= response.status_code < 500:
            messages = _error_messages(response)
            logger.info(
                "Commerce API rejected request",
                operation=operation,
                status_code=response.status_code,
                messages=messages,
            )
            raise RemoteValidationError(operation, messages, response.status_code)

        if response.status_code >= 300:
            messages = _error_messages(response)
            logger.error(
                "Commerce API error",
                operation=operation,
                status_code=response.status_code,
            )
            raise RemoteServiceError(
                operation,
                "; ".join(messages) or "Something went wrong. Please try again.",
                response.status_code,
            )

        try:
            return self._unwrap(response.json())
        except ValueError as e:
            raise ResponseDecodeError(operation, "response is not JSON") from e

    @staticmethod
    def _unwrap(body: Any) -> Any:
        """Strip one ``{"data": ...}`` envelope if present."""
        if isinstance(body, dict) and "data" in body:
            return body["data"]
        return body

    @staticmethod
    def _decode(operation: str, factory: Callable[[Any], T], payload: Any) -> T:
        """Decode a payload, turning contract mismatches into domain errors."""
        try:
            return factory(payload)
        except (
            KeyError,
            TypeError,
            ValueError,
            AttributeError,
            InvalidQuantityError,
            NegativeMoneyError,
        ) as e:
            logger.error(
                "Commerce API response did not match contract",
                operation=operation,
                error=repr(e),
            )
            raise ResponseDecodeError(operation, repr(e)) from e

    # ------------------------------------------------------------------
    # Sources
    # ------------------------------------------------------------------

    async def load_cart(self) -> CartSource | None:
        """Load the buyer's cart.

        Returns:
            The cart, or None if the user has none yet.
        """
        data = await self._request("load_cart", "GET", "/cart")
        if data is None:
            return None
        return self._decode("load_cart", _cart_source, data)

    async def update_cart_item(self, item_id: str, quantity: int) -> CartSource:
        """Change a cart line's quantity and return the server's cart."""
        data = await self._request(
            "update_cart_item", "PUT", f"/cart/items/{item_id}", json={"quantity": quantity}
        )
        return self._decode("update_cart_item", _cart_source, data)

    async def load_quote(self, quote_id: str) -> QuoteSource:
        """Load a B2B quote request by id."""
        data = await self._request("load_quote", "GET", f"/quote-requests/{quote_id}")
        return self._decode("load_quote", _quote_source, data)

    # ------------------------------------------------------------------
    # Addresses
    # ------------------------------------------------------------------

    async def list_addresses(self) -> tuple[Address, ...]:
        """List the user's saved addresses."""
        data = await self._request("list_addresses", "GET", "/users/me/addresses")
        return self._decode(
            "list_addresses",
            lambda rows: tuple(address_from_api_response(row) for row in rows),
            data,
        )

    async def create_address(self, address: Address) -> Address:
        """Create a saved address from a draft.

        Raises:
            AddressCreationFailedError: If the server refuses the address.
        """
        payload: dict[str, Any] = {
            "label": address.label,
            "line1": address.line1,
            "city": address.city,
            "state": address.state,
            "country": address.country,
        }
        if address.line2:
            payload["line2"] = address.line2
        if address.has_coordinates():
            payload["latitude"] = address.latitude
            payload["longitude"] = address.longitude

        try:
            data = await self._request(
                "create_address", "POST", "/users/me/addresses", json=payload
            )
        except RemoteValidationError as e:
            raise AddressCreationFailedError(e.messages, e.status_code) from e
        created = self._decode("create_address", address_from_api_response, data)
        logger.info("Address created", address_id=created.id)
        return created

    # ------------------------------------------------------------------
    # Pricing
    # ------------------------------------------------------------------

    async def shipping_quote(
        self,
        address_id: str,
        items: list[tuple[str, int]],
        method: ShippingMethod,
    ) -> ShippingQuoteRecord:
        """Request a delivery fee for items shipped to a saved address."""
        payload = {
            "addressId": address_id,
            "items": [{"productId": pid, "quantity": qty} for pid, qty in items],
            "shippingMethod": method.value,
        }
        data = await self._request("shipping_quote", "POST", "/shipping/quote", json=payload)
        return self._decode("shipping_quote", ShippingQuoteRecord.from_api_response, data)

    async def validate_coupon(self, code: str, order_amount_minor: int) -> CouponValidationRecord:
        """Ask the server whether a coupon applies to an order amount."""
        data = await self._request(
            "validate_coupon",
            "POST",
            "/coupons/validate",
            json={"code": code, "orderAmount": order_amount_minor},
        )
        return self._decode(
            "validate_coupon", CouponValidationRecord.from_api_response, data
        )

    # ------------------------------------------------------------------
    # Orders and payment
    # ------------------------------------------------------------------

    async def create_order(self, payload: dict[str, Any]) -> OrderRecord:
        """Create an order."""
        data = await self._request("create_order", "POST", "/orders", json=payload)
        order = self._decode("create_order", OrderRecord.from_api_response, data)
        logger.info("Order created", order_id=order.id)
        return order

    async def initialize_payment(self, order_id: str) -> PaymentInitRecord:
        """Start payment for an order and get the hosted payment page."""
        data = await self._request(
            "initialize_payment",
            "POST",
            "/payments/initialize",
            json={"orderId": order_id},
        )
        return self._decode(
            "initialize_payment", PaymentInitRecord.from_api_response, data
        )

