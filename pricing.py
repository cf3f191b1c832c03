"""
Authoritative order pricing.

Everything here is pure: the caller loads the catalog snapshot and the store
settings, and gets back verified line items and totals. Client-submitted
prices never enter the calculation.
"""
from dataclasses import dataclass, field
from decimal import Decimal, ROUND_HALF_UP
from typing import Dict, List, Optional

from errors import CatalogDataError, InsufficientStockError, InvalidRequestError, ProductNotFoundError
from schemas import StoreSettings, VerifiedLineItem


@dataclass(frozen=True)
class CartLine:
    product_id: str
    quantity: int


@dataclass
class PricedOrder:
    items: List[VerifiedLineItem] = field(default_factory=list)
    subtotal: int = 0
    shipping: int = 0
    gst: int = 0

    @property
    def total(self) -> int:
        return self.subtotal + self.shipping + self.gst

    @property
    def item_count(self) -> int:
        return sum(i.quantity for i in self.items)


def round_half_up(value: Decimal) -> int:
    return int(value.quantize(Decimal(1), rounding=ROUND_HALF_UP))


def compute_shipping(subtotal: int, settings: StoreSettings) -> int:
    return 0 if subtotal >= settings.free_shipping_threshold else settings.shipping_cost


def compute_gst(subtotal: int, settings: StoreSettings) -> int:
    # str() keeps float rates like 2.5 exact
    rate = Decimal(str(settings.gst))
    return round_half_up(Decimal(subtotal) * rate / Decimal(100))


def _image_for(product: dict) -> str:
    if product.get("image"):
        return product["image"]
    images = product.get("images") or []
    return images[0] if images else ""


def _catalog_price(product_id: str, product: dict) -> int:
    price = product.get("price")
    if isinstance(price, float) and price.is_integer():
        price = int(price)
    if isinstance(price, bool) or not isinstance(price, int) or price < 0:
        raise CatalogDataError(product_id)
    return price


def price_order(
    cart: List[CartLine],
    catalog: Dict[str, dict],
    settings: Optional[StoreSettings] = None,
) -> PricedOrder:
    """Re-derive line items and totals for `cart` from `catalog`.

    Lines are checked in cart order; the first missing product or short stock
    fails the whole order.
    """
    settings = settings or StoreSettings()
    priced = PricedOrder()
    requested: Dict[str, int] = {}

    for line in cart:
        if isinstance(line.quantity, bool) or not isinstance(line.quantity, int) or line.quantity < 1:
            raise InvalidRequestError(f"Invalid quantity for product: {line.product_id}")

        product = catalog.get(line.product_id)
        if product is None:
            raise ProductNotFoundError(line.product_id)

        requested[line.product_id] = requested.get(line.product_id, 0) + line.quantity
        stock = product.get("stock")
        if stock is not None and stock < requested[line.product_id]:
            raise InsufficientStockError(line.product_id, product.get("name", line.product_id), stock)

        price = _catalog_price(line.product_id, product)
        priced.subtotal += price * line.quantity
        priced.items.append(
            VerifiedLineItem(
                product_id=line.product_id,
                name=product.get("name", ""),
                price=price,
                quantity=line.quantity,
                image=_image_for(product),
            )
        )

    priced.shipping = compute_shipping(priced.subtotal, settings)
    priced.gst = compute_gst(priced.subtotal, settings)
    return priced
