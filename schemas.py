"""
Database Schemas for the Storefront

Each Pydantic model describes a document in MongoDB. Collections:
- Product -> "products"
- Order -> "orders"
- StoreSettings -> "settings" (single document with id "store")
"""
from datetime import datetime
from enum import Enum
from typing import List, Optional
from pydantic import BaseModel, Field

PRODUCTS = "products"
ORDERS = "orders"
SETTINGS = "settings"
STORE_SETTINGS_ID = "store"


class OrderStatus(str, Enum):
    PENDING = "pending"
    PAID = "paid"
    PROCESSING = "processing"
    SHIPPED = "shipped"
    DELIVERED = "delivered"
    CANCELLED = "cancelled"


class Product(BaseModel):
    """
    Catalog entry, the only source of truth for price and stock
    Collection: "products"
    """
    name: str = Field(..., description="Display name")
    price: int = Field(..., ge=0, description="Unit price in whole currency units")
    stock: Optional[int] = Field(None, description="Units left; absent means unlimited")
    category: Optional[str] = None
    occasion: Optional[str] = None
    color: Optional[str] = None
    image: Optional[str] = Field(None, description="Primary image URL")
    images: List[str] = Field(default_factory=list, description="Gallery image URLs")
    featured: bool = False
    is_active: bool = True
    created_at: Optional[datetime] = None


class StoreSettings(BaseModel):
    """
    Pricing knobs for checkout
    Collection: "settings", document "store"
    """
    free_shipping_threshold: int = Field(25000, ge=0)
    shipping_cost: int = Field(500, ge=0)
    gst: float = Field(5, ge=0, description="Tax rate percentage")

    @classmethod
    def from_document(cls, doc: Optional[dict]) -> "StoreSettings":
        """Build settings from a stored document, keeping defaults for absent keys."""
        if not doc:
            return cls()
        return cls(**{k: doc[k] for k in cls.model_fields if doc.get(k) is not None})


class VerifiedLineItem(BaseModel):
    """Cart line re-derived from the catalog at order time."""
    product_id: str
    name: str
    price: int = Field(..., ge=0)
    quantity: int = Field(..., ge=1)
    image: str = ""


class Customer(BaseModel):
    name: str
    email: str
    phone: str


class ShippingAddress(BaseModel):
    address: str
    city: str
    state: str = ""
    pincode: str
    country: str = "India"


class Order(BaseModel):
    """
    Orders placed by customers
    Collection: "orders"
    """
    model_config = {"use_enum_values": True}

    customer: Customer
    shipping_address: ShippingAddress
    items: List[VerifiedLineItem]
    item_count: int = Field(..., ge=1)
    subtotal: int = Field(..., ge=0)
    shipping: int = Field(..., ge=0)
    gst: int = Field(..., ge=0)
    total_amount: int = Field(..., ge=0)
    notes: str = ""
    gateway_order_id: str
    payment_method: str = "razorpay"
    status: OrderStatus = Field(OrderStatus.PENDING, validate_default=True)
    payment_id: Optional[str] = None
    payment_signature: Optional[str] = None
    created_at: datetime
    updated_at: datetime
    paid_at: Optional[datetime] = None
