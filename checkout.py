"""
Checkout: order intake and payment settlement.

Intake fixes the price from the catalog before any gateway order exists.
Settlement trusts nothing but the gateway signature, and commits the status
change and the stock decrements in one transaction.
"""
import re
from typing import List, Optional

import structlog

from database import Database, utcnow
from errors import (
    InvalidRequestError,
    OrderAlreadySettledError,
    OrderCancelledError,
    OrderNotFoundError,
    SignatureMismatchError,
)
from gateway import PaymentGateway, make_receipt
from pricing import CartLine, price_order
from schemas import (
    ORDERS,
    PRODUCTS,
    SETTINGS,
    STORE_SETTINGS_ID,
    Customer,
    Order,
    OrderStatus,
    ShippingAddress,
    StoreSettings,
)

logger = structlog.get_logger(component="checkout")


def _clean(value) -> str:
    return value.strip() if isinstance(value, str) else ""


def normalize_customer(customer: Optional[dict]) -> Customer:
    customer = customer or {}
    name, email, phone = (_clean(customer.get(k)) for k in ("name", "email", "phone"))
    if not (name and email and phone):
        raise InvalidRequestError("Customer details are required")
    return Customer(name=name, email=email.lower(), phone=re.sub(r"\s", "", phone))


def normalize_address(address: Optional[dict]) -> ShippingAddress:
    address = address or {}
    line, city, pincode = (_clean(address.get(k)) for k in ("address", "city", "pincode"))
    if not (line and city and pincode):
        raise InvalidRequestError("Shipping address is required")
    return ShippingAddress(address=line, city=city, state=_clean(address.get("state")), pincode=pincode)


def parse_cart(items: Optional[list]) -> List[CartLine]:
    if not items:
        raise InvalidRequestError("Cart items are required")
    cart = []
    for item in items:
        product_id = _clean((item or {}).get("product_id"))
        if not product_id:
            raise InvalidRequestError("Cart items are required")
        cart.append(CartLine(product_id=product_id, quantity=item.get("quantity")))
    return cart


class OrderIntakeService:
    def __init__(self, database: Database, gateway: PaymentGateway, currency: str = "INR", receipt_source: str = "storefront_website"):
        self.database = database
        self.gateway = gateway
        self.currency = currency
        self.receipt_source = receipt_source

    def load_settings(self) -> StoreSettings:
        return StoreSettings.from_document(self.database.get(SETTINGS, STORE_SETTINGS_ID))

    def create_order(self, items: Optional[list], customer: Optional[dict], shipping_address: Optional[dict], notes: Optional[str] = None) -> dict:
        """Price the cart, open a gateway order and persist a pending order.

        `items` are dicts with `product_id` and `quantity`; any price the client
        sent alongside is ignored.
        """
        cart = parse_cart(items)
        buyer = normalize_customer(customer)
        address = normalize_address(shipping_address)

        catalog = self.database.get_many(PRODUCTS, [line.product_id for line in cart])
        priced = price_order(cart, catalog, self.load_settings())

        receipt = make_receipt()
        gateway_order_id = self.gateway.create_order(
            priced.total, self.currency, receipt, notes={"source": self.receipt_source}
        )

        now = utcnow()
        order = Order(
            customer=buyer,
            shipping_address=address,
            items=priced.items,
            item_count=priced.item_count,
            subtotal=priced.subtotal,
            shipping=priced.shipping,
            gst=priced.gst,
            total_amount=priced.total,
            notes=_clean(notes),
            gateway_order_id=gateway_order_id,
            created_at=now,
            updated_at=now,
        )
        try:
            order_id = self.database.create(ORDERS, order)
        except Exception:
            # Gateway orders can't be deleted; an unpaid one simply expires.
            logger.error("order_persist_failed", gateway_order_id=gateway_order_id, receipt=receipt)
            raise

        logger.info(
            "order_created",
            order_id=order_id,
            gateway_order_id=gateway_order_id,
            total=priced.total,
            item_count=priced.item_count,
        )
        return {
            "orderId": order_id,
            "gatewayOrderId": gateway_order_id,
            "amount": priced.total,
            "currency": self.currency,
        }


class PaymentSettlementService:
    def __init__(self, database: Database, gateway: PaymentGateway):
        self.database = database
        self.gateway = gateway

    def settle(self, order_id: Optional[str], gateway_order_id: Optional[str], payment_id: Optional[str], signature: Optional[str]) -> dict:
        """Verify a gateway payment and mark the order paid.

        Returns the settled order document. A repeat call for an order that is
        no longer pending performs no writes.
        """
        if not (order_id and gateway_order_id and payment_id and signature):
            raise InvalidRequestError("Missing payment verification data")

        if not self.gateway.verify(gateway_order_id, payment_id, signature):
            logger.warning("payment_signature_mismatch", order_id=order_id, payment_id=payment_id)
            raise SignatureMismatchError()

        order = self.database.get(ORDERS, order_id)
        if order is None:
            raise OrderNotFoundError(order_id)

        if order.get("gateway_order_id") != gateway_order_id:
            # A genuine signature for some other order's payment.
            logger.warning("payment_order_mismatch", order_id=order_id, payment_id=payment_id)
            raise SignatureMismatchError()

        if order.get("status") != OrderStatus.PENDING.value:
            return self._already_settled(order)

        now = utcnow()
        paid_fields = {
            "status": OrderStatus.PAID.value,
            "payment_id": payment_id,
            "payment_signature": signature,
            "paid_at": now,
            "updated_at": now,
        }
        try:
            with self.database.transaction() as session:
                if not self.database.update(
                    ORDERS,
                    order_id,
                    paid_fields,
                    expect={"status": OrderStatus.PENDING.value, "gateway_order_id": gateway_order_id},
                    session=session,
                ):
                    raise OrderAlreadySettledError(order_id)
                for item in order.get("items", []):
                    self.database.increment(PRODUCTS, item["product_id"], "stock", -item["quantity"], session=session)
        except OrderAlreadySettledError:
            # Lost a race with a concurrent status change; report what won.
            return self._already_settled(self.database.get(ORDERS, order_id) or order)

        logger.info("payment_settled", order_id=order_id, payment_id=payment_id, total=order.get("total_amount"))
        return {**order, **paid_fields, "already_settled": False}

    def _already_settled(self, order: dict) -> dict:
        """No-op result for a paid order; a cancelled one can no longer be paid."""
        if order.get("status") == OrderStatus.CANCELLED.value:
            logger.warning("payment_for_cancelled_order", order_id=order.get("id"))
            raise OrderCancelledError(order.get("id"))
        logger.info("payment_already_settled", order_id=order.get("id"), status=order.get("status"))
        return {**order, "already_settled": True}
