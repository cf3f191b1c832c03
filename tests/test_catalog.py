"""Tests for catalog filtering."""

from datetime import datetime

from catalog import filter_products

PRODUCTS = [
    {"id": "a", "name": "banarasi", "price": 900, "color": "Red", "occasion": "wedding"},
    {"id": "b", "name": "Chanderi", "price": 300, "color": "red", "featured": True},
    {"id": "c", "name": "Assam Silk", "price": 600, "color": "Gold", "is_active": False},
]


def ids(products):
    return [p["id"] for p in products]


def test_inactive_hidden():
    assert "c" not in ids(filter_products(PRODUCTS))


def test_color_is_case_insensitive():
    assert ids(filter_products(PRODUCTS, color="RED", sort_by="name")) == ["a", "b"]


def test_occasion():
    assert ids(filter_products(PRODUCTS, occasion="wedding")) == ["a"]


def test_price_high():
    assert ids(filter_products(PRODUCTS, sort_by="price-high")) == ["a", "b"]


def test_undated_sorts_after_dated():
    products = [{"id": "old"}, {"id": "new", "created_at": datetime(2026, 3, 1)}]
    assert ids(filter_products(products, sort_by="newest")) == ["new", "old"]
