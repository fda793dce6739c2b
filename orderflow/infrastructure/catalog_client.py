"""HTTP client for the product catalog.

Looks up current unit prices from the catalog service. Expected response
for ``GET /products/{sku}``::

    {"sku": "SKU-001", "price": {"amount": 1250, "currency": "USD"}}
"""

from decimal import Decimal, InvalidOperation
from typing import Any

import httpx
import structlog

from orderflow.application.catalog import PriceCatalog, StaticPriceCatalog
from orderflow.domain.exceptions import NegativeMoneyError, PriceLookupError
from orderflow.domain.value_objects import Money
from orderflow.infrastructure.config import settings

logger = structlog.get_logger()


class HttpPriceCatalog:
    """Price catalog backed by the catalog service's REST API."""

    def __init__(
        self,
        base_url: str,
        timeout: float = 5.0,
        default_currency: str = "USD",
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """Initialize catalog client.

        Args:
            base_url: Catalog service base URL.
            timeout: Request timeout in seconds.
            default_currency: Currency when the response omits one.
            transport: Optional transport (used by tests).
        """
        self.base_url = base_url
        self.timeout = timeout
        self.default_currency = default_currency
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    async def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(
                base_url=self.base_url,
                timeout=self.timeout,
                transport=self._transport,
            )
        return self._client

    async def close(self) -> None:
        """Close the HTTP client."""
        if self._client:
            await self._client.aclose()
            self._client = None

    async def get_unit_price(self, sku: str) -> Money:
        """Fetch the current unit price of ``sku``.

        Raises:
            PriceLookupError: On transport errors, non-200 responses or
                unparseable prices.
        """
        try:
            client = await self._get_client()
            response = await client.get(f"/products/{sku}")
        except httpx.RequestError as e:
            logger.error("Catalog request failed", sku=sku, error=str(e))
            raise PriceLookupError(sku, f"catalog unreachable: {e}") from e

        if response.status_code == 404:
            raise PriceLookupError(sku, "SKU is not in the catalog")
        if response.status_code != 200:
            logger.error(
                "Catalog returned an error",
                sku=sku,
                status_code=response.status_code,
            )
            raise PriceLookupError(sku, f"catalog responded with HTTP {response.status_code}")

        return self._parse_price(sku, response.json())

    def _parse_price(self, sku: str, data: dict[str, Any]) -> Money:
        price = data.get("price")
        try:
            if isinstance(price, dict):
                return Money(
                    amount_cents=int(price["amount"]),
                    currency=price.get("currency", self.default_currency),
                )
            if price is not None:
                return Money.from_decimal(Decimal(str(price)), self.default_currency)
        except (KeyError, TypeError, ValueError, InvalidOperation, NegativeMoneyError) as e:
            raise PriceLookupError(sku, f"malformed price {price!r}") from e
        raise PriceLookupError(sku, "catalog response has no price")


def build_price_catalog() -> PriceCatalog:
    """Build the catalog configured in settings.

    Without a ``catalog_url`` every SKU is priced at
    ``default_unit_price_cents`` (zero unless configured).
    """
    if settings.catalog_url:
        return HttpPriceCatalog(
            base_url=settings.catalog_url,
            timeout=settings.catalog_timeout_seconds,
            default_currency=settings.default_currency,
        )
    logger.warning(
        "No catalog_url configured; using a flat unit price",
        unit_price_cents=settings.default_unit_price_cents,
    )
    return StaticPriceCatalog(
        default=Money(settings.default_unit_price_cents, settings.default_currency)
    )
