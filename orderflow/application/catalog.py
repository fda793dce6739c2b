"""Product price lookup port.

Approval reprices every line from the catalog. The HTTP implementation
lives in ``orderflow.infrastructure.catalog_client``.
"""

from typing import Protocol

from orderflow.domain.exceptions import PriceLookupError
from orderflow.domain.value_objects import Money


class PriceCatalog(Protocol):
    """Source of current unit prices."""

    async def get_unit_price(self, sku: str) -> Money:
        """Current unit price for ``sku``.

        Raises:
            PriceLookupError: If the SKU cannot be priced.
        """
        ...


class StaticPriceCatalog:
    """Price catalog backed by a fixed mapping.

    Args:
        prices: Unit price per SKU.
        default: Price for SKUs missing from ``prices``; unknown SKUs
            fail the lookup when None.
    """

    def __init__(self, prices: dict[str, Money] | None = None, default: Money | None = None) -> None:
        self._prices = dict(prices or {})
        self._default = default

    def set_price(self, sku: str, price: Money) -> None:
        self._prices[sku] = price

    async def get_unit_price(self, sku: str) -> Money:
        price = self._prices.get(sku, self._default)
        if price is None:
            raise PriceLookupError(sku, "SKU is not in the catalog")
        return price
