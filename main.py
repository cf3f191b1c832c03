import os
from typing import List, Optional

import structlog
from fastapi import APIRouter, BackgroundTasks, FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field, ValidationError
from starlette.exceptions import HTTPException as StarletteHTTPException

from catalog import SORT_ORDERS, filter_products, to_public
from checkout import OrderIntakeService, PaymentSettlementService
from config import Settings, configure_logging
from database import Database
from errors import StorefrontError
from gateway import PaymentGateway
from notifications import OrderNotifier
from schemas import PRODUCTS

logger = structlog.get_logger(component="api")

router = APIRouter()


class CartLineIn(BaseModel):
    model_config = {"populate_by_name": True}

    product_id: Optional[str] = Field(None, alias="productId")
    quantity: Optional[int] = None


class CustomerIn(BaseModel):
    name: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None


class ShippingAddressIn(BaseModel):
    address: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    pincode: Optional[str] = None


class CreateOrderIn(BaseModel):
    model_config = {"populate_by_name": True}

    items: Optional[List[CartLineIn]] = None
    customer: Optional[CustomerIn] = None
    shipping_address: Optional[ShippingAddressIn] = Field(None, alias="shippingAddress")
    notes: Optional[str] = None


class VerifyPaymentIn(BaseModel):
    model_config = {"populate_by_name": True}

    order_id: Optional[str] = Field(None, alias="orderId")
    gateway_order_id: Optional[str] = Field(None, alias="gatewayOrderId")
    payment_id: Optional[str] = Field(None, alias="paymentId")
    signature: Optional[str] = None


def error_response(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": message})


def _dump(model: Optional[BaseModel]):
    return model.model_dump() if model is not None else None


# -----------------------------
# Checkout
# -----------------------------
@router.post("/createOrder")
def create_order(payload: CreateOrderIn, request: Request):
    """Price the cart server-side and open a gateway order for the verified total."""
    intake: OrderIntakeService = request.app.state.intake
    try:
        return intake.create_order(
            items=[i.model_dump() for i in payload.items] if payload.items else None,
            customer=_dump(payload.customer),
            shipping_address=_dump(payload.shipping_address),
            notes=payload.notes,
        )
    except StorefrontError as e:
        if e.status_code >= 500:
            logger.error("create_order_failed", error=str(e))
            return error_response(500, "Failed to create order. Please try again.")
        return error_response(e.status_code, str(e))
    except Exception:
        logger.exception("create_order_failed")
        return error_response(500, "Failed to create order. Please try again.")


@router.post("/verifyPayment")
def verify_payment(payload: VerifyPaymentIn, request: Request, background_tasks: BackgroundTasks):
    """Check the gateway signature, then mark the order paid and take the stock."""
    settlement: PaymentSettlementService = request.app.state.settlement
    try:
        order = settlement.settle(
            order_id=payload.order_id,
            gateway_order_id=payload.gateway_order_id,
            payment_id=payload.payment_id,
            signature=payload.signature,
        )
    except StorefrontError as e:
        if e.status_code >= 500:
            logger.error("verify_payment_failed", order_id=payload.order_id, error=str(e))
            return error_response(500, "Payment verification failed. Please contact support.")
        return error_response(e.status_code, str(e))
    except Exception:
        logger.exception("verify_payment_failed", order_id=payload.order_id)
        return error_response(500, "Payment verification failed. Please contact support.")

    if order["already_settled"]:
        message = "Payment already verified"
    else:
        message = "Payment verified and order confirmed"
        background_tasks.add_task(request.app.state.notifier.order_paid, order)
    return {"success": True, "orderId": payload.order_id, "message": message}


# -----------------------------
# Catalog
# -----------------------------
@router.get("/api/products")
def list_products(
    request: Request,
    category: Optional[str] = None,
    occasion: Optional[str] = None,
    minPrice: Optional[int] = None,
    maxPrice: Optional[int] = None,
    color: Optional[str] = None,
    sortBy: Optional[str] = None,
):
    """Active products, filtered and sorted for the shop page."""
    if sortBy and sortBy not in SORT_ORDERS:
        return error_response(400, f"Unknown sort order: {sortBy}")
    database: Database = request.app.state.database
    filters = {"category": category} if category else {}
    products = []
    for doc in database.find(PRODUCTS, filters):
        try:
            products.append(to_public(doc))
        except ValidationError:
            logger.warning("product_skipped_invalid", product_id=doc.get("id"))
    products = filter_products(
        products,
        occasion=occasion,
        min_price=minPrice,
        max_price=maxPrice,
        color=color,
        sort_by=sortBy,
    )
    return {"products": products, "count": len(products)}


@router.get("/api/products/{product_id}")
def get_product(product_id: str, request: Request):
    database: Database = request.app.state.database
    doc = database.get(PRODUCTS, product_id)
    if not doc:
        return error_response(404, "Product not found")
    return to_public(doc)


@router.get("/api/settings")
def get_store_settings(request: Request):
    """Effective shipping and tax settings, so the cart can preview totals."""
    try:
        return request.app.state.intake.load_settings().model_dump()
    except Exception:
        logger.exception("load_settings_failed")
        return error_response(500, "Failed to load store settings. Please try again.")


# -----------------------------
# Health
# -----------------------------
@router.get("/")
def root():
    return {"status": "ok", "service": "storefront-api"}


@router.get("/test")
def test_database(request: Request):
    database: Database = request.app.state.database
    response = {
        "backend": "✅ Running",
        "database": "❌ Not Available",
        "database_url": "✅ Set" if os.getenv("DATABASE_URL") else "❌ Not Set",
        "database_name": database.name,
        "collections": [],
    }
    try:
        database.ping()
        response["database"] = "✅ Connected"
        response["collections"] = database.list_collection_names()[:10]
    except Exception as e:
        response["database"] = f"❌ Error: {str(e)[:80]}"
    return response


def create_app(
    settings: Optional[Settings] = None,
    database: Optional[Database] = None,
    gateway: Optional[PaymentGateway] = None,
    notifier: Optional[OrderNotifier] = None,
) -> FastAPI:
    """Build the API with its collaborators; anything not passed is built from settings."""
    settings = settings or Settings()
    configure_logging(settings.log_level)
    database = database or Database.connect(settings.database_url, settings.database_name, settings.database_timeout_ms)
    gateway = gateway or PaymentGateway(
        settings.gateway_key_id,
        settings.gateway_key_secret,
        api_url=settings.gateway_api_url,
        timeout=settings.gateway_timeout,
    )
    notifier = notifier or OrderNotifier(settings.order_webhook_url)

    app = FastAPI(title="Storefront Checkout API")
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.state.settings = settings
    app.state.database = database
    app.state.notifier = notifier
    app.state.intake = OrderIntakeService(
        database, gateway, currency=settings.currency, receipt_source=settings.receipt_source
    )
    app.state.settlement = PaymentSettlementService(database, gateway)

    @app.exception_handler(RequestValidationError)
    async def invalid_body(request: Request, exc: RequestValidationError):
        return error_response(400, "Invalid request body")

    @app.exception_handler(StarletteHTTPException)
    async def http_error(request: Request, exc: StarletteHTTPException):
        return error_response(exc.status_code, str(exc.detail))

    app.include_router(router)
    return app


if __name__ == "__main__":
    import uvicorn

    settings = Settings()
    uvicorn.run(create_app(settings), host="0.0.0.0", port=settings.port)
