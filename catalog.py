"""Storefront catalog listing: filters and sort orders for the shop page."""
from datetime import datetime, timezone
from typing import List, Optional

from schemas import Product

SORT_ORDERS = ("featured", "price-low", "price-high", "newest", "name")

_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


def _created(product: dict) -> datetime:
    created = product.get("created_at")
    if not isinstance(created, datetime):
        return _EPOCH
    return created if created.tzinfo else created.replace(tzinfo=timezone.utc)


def to_public(doc: dict) -> dict:
    """Product document as shown to shoppers, with missing fields defaulted."""
    product = Product.model_validate(doc)
    return {"id": doc["id"], **product.model_dump()}


def filter_products(
    products: List[dict],
    category: Optional[str] = None,
    occasion: Optional[str] = None,
    min_price: Optional[int] = None,
    max_price: Optional[int] = None,
    color: Optional[str] = None,
    sort_by: Optional[str] = None,
) -> List[dict]:
    result = [p for p in products if p.get("is_active", True) is not False]
    if category:
        result = [p for p in result if p.get("category") == category]
    if occasion:
        result = [p for p in result if p.get("occasion") == occasion]
    if min_price is not None:
        result = [p for p in result if p.get("price", 0) >= min_price]
    if max_price is not None:
        result = [p for p in result if p.get("price", 0) <= max_price]
    if color:
        result = [p for p in result if (p.get("color") or "").lower() == color.lower()]

    if sort_by == "price-low":
        result.sort(key=lambda p: p.get("price", 0))
    elif sort_by == "price-high":
        result.sort(key=lambda p: p.get("price", 0), reverse=True)
    elif sort_by == "newest":
        result.sort(key=_created, reverse=True)
    elif sort_by == "name":
        result.sort(key=lambda p: (p.get("name") or "").lower())
    else:
        result.sort(key=lambda p: bool(p.get("featured")), reverse=True)
    return result
