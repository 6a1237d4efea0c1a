"""
FastAPI application for the bakery order engine.

This application provides:
1. Catalog and inventory endpoints (/products, /ingredients)
2. Ordering endpoints for customers (/orders/checkout, /inquiries)
3. Admin order management (/orders/{id}/status, /orders/{id}/quote)
4. The signed-in user's notification list (/notifications)

Identity comes from the X-User-Id / X-User-Name / X-User-Email / X-User-Role
headers set by whatever performs authentication in front of this app.

Run with:
    uvicorn api.main:app --reload

Then visit http://localhost:8000/docs for interactive API documentation.
"""

import logging
from contextlib import asynccontextmanager
from typing import Any, Optional

from fastapi import Depends, FastAPI, Header, HTTPException
from fastapi.encoders import jsonable_encoder
from pydantic import BaseModel, Field

from storefront.config import settings

# Configure logging
logging.basicConfig(
    level=settings.log_level,
    format="%(asctime)s | %(name)-24s | %(levelname)-5s | %(message)s",
    datefmt="%H:%M:%S",
)

from fulfillment.cart import Cart
from fulfillment.ordering import CheckoutDetails, InquiryDetails
from fulfillment.results import ErrorKind, OperationResult
from fulfillment.service import BakeryService
from storefront.models import GUEST_USER_ID, Identity, OrderStatus, Product, UserRole
from storefront.providers import ProviderError


# =============================================================================
# Service wiring
# =============================================================================

_service: Optional[BakeryService] = None


def get_service() -> BakeryService:
    """Get the service instance, building it from settings on first use."""
    global _service
    if _service is None:
        _service = BakeryService.from_settings(settings)
    return _service


def reset_service(service: Optional[BakeryService] = None) -> None:
    """Swap the service instance (for testing)."""
    global _service
    _service = service


def get_identity(
    x_user_id: Optional[str] = Header(default=None),
    x_user_name: Optional[str] = Header(default=None),
    x_user_email: Optional[str] = Header(default=None),
    x_user_role: UserRole = Header(default=UserRole.CUSTOMER),
) -> Identity:
    return Identity(
        user_id=x_user_id or GUEST_USER_ID,
        name=x_user_name,
        email=x_user_email,
        role=x_user_role,
    )


def require_admin(identity: Identity = Depends(get_identity)) -> Identity:
    if not identity.is_admin:
        raise HTTPException(status_code=403, detail="Admin role required")
    return identity


ERROR_STATUS_CODES = {
    ErrorKind.VALIDATION: 422,
    ErrorKind.NOT_FOUND: 404,
    ErrorKind.PROVIDER: 503,
    ErrorKind.FORBIDDEN: 403,
}


def respond(result: OperationResult) -> dict[str, Any]:
    """Turn an OperationResult into a response body or an HTTP error."""
    if not result.success:
        raise HTTPException(status_code=ERROR_STATUS_CODES[result.error_kind], detail=result.error)
    return {
        "action": result.action,
        "value": jsonable_encoder(result.value),
        "secondary_errors": result.secondary_errors,
    }


# =============================================================================
# Request models
# =============================================================================

class CartLine(BaseModel):
    product_id: str
    quantity: int = Field(..., ge=1)


class CheckoutRequest(BaseModel):
    items: list[CartLine]
    details: CheckoutDetails


class StatusRequest(BaseModel):
    status: OrderStatus


class QuoteRequest(BaseModel):
    amount: float = Field(..., allow_inf_nan=False)


class StockRequest(BaseModel):
    stock: int


class QuantityRequest(BaseModel):
    quantity: float = Field(..., allow_inf_nan=False)


# Application lifespan
@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application startup and shutdown."""
    logging.info("Starting bakery order API")
    yield
    if _service is not None:
        _service.delivery.close_all()
    logging.info("Shutting down")


app = FastAPI(
    title="Bakery Order API",
    description="""
    Order taking, inventory and order-status notifications for a bakery storefront.

    ## Endpoints

    - `/products`, `/ingredients` - Catalog and stock
    - `/orders/checkout`, `/inquiries` - Customer ordering
    - `/orders/{id}/status`, `/orders/{id}/quote` - Admin order management
    - `/notifications` - The signed-in customer's notifications
    """,
    version="1.0.0",
    lifespan=lifespan,
)


# =============================================================================
# Health Check
# =============================================================================

@app.get("/health", tags=["Health"])
def health_check():
    """Health check endpoint."""
    return {"status": "healthy", "service": "bakery-order-api"}


# =============================================================================
# Catalog and inventory
# =============================================================================

@app.get("/products", tags=["Catalog"])
async def list_products(service: BakeryService = Depends(get_service)):
    try:
        return jsonable_encoder(await service.inventory.list_products())
    except ProviderError as e:
        raise HTTPException(status_code=503, detail=str(e))


@app.post("/products", tags=["Catalog"])
async def add_product(
    product: Product,
    service: BakeryService = Depends(get_service),
    admin: Identity = Depends(require_admin),
):
    return respond(await service.inventory.add_product(product))


@app.put("/products/{product_id}/stock", tags=["Catalog"])
async def set_product_stock(
    product_id: str,
    request: StockRequest,
    service: BakeryService = Depends(get_service),
    admin: Identity = Depends(require_admin),
):
    return respond(await service.inventory.set_stock(product_id, request.stock))


@app.delete("/products/{product_id}", tags=["Catalog"])
async def delete_product(
    product_id: str,
    service: BakeryService = Depends(get_service),
    admin: Identity = Depends(require_admin),
):
    return respond(await service.inventory.delete_product(product_id))


@app.get("/ingredients", tags=["Catalog"])
async def list_ingredients(
    service: BakeryService = Depends(get_service),
    admin: Identity = Depends(require_admin),
):
    try:
        return jsonable_encoder(await service.provider.get_ingredients())
    except ProviderError as e:
        raise HTTPException(status_code=503, detail=str(e))


@app.put("/ingredients/{ingredient_id}/quantity", tags=["Catalog"])
async def set_ingredient_quantity(
    ingredient_id: str,
    request: QuantityRequest,
    service: BakeryService = Depends(get_service),
    admin: Identity = Depends(require_admin),
):
    return respond(await service.inventory.set_ingredient_quantity(ingredient_id, request.quantity))


# =============================================================================
# Ordering
# =============================================================================

@app.get("/orders", tags=["Orders"])
async def list_orders(
    service: BakeryService = Depends(get_service),
    identity: Identity = Depends(get_identity),
):
    """All orders for admins, the caller's own orders otherwise."""
    if identity.is_guest:
        raise HTTPException(status_code=403, detail="Sign in to see orders")
    try:
        if identity.is_admin:
            orders = await service.orders.list_orders()
        else:
            orders = await service.orders.orders_for_user(identity.user_id)
    except ProviderError as e:
        raise HTTPException(status_code=503, detail=str(e))
    return jsonable_encoder(orders)


@app.post("/orders/checkout", tags=["Orders"])
async def checkout(
    request: CheckoutRequest,
    service: BakeryService = Depends(get_service),
    identity: Identity = Depends(get_identity),
):
    """
    Place an order for the given cart lines.

    The cart is rebuilt against current stock, so quantities are clamped the
    same way the storefront cart clamps them.
    """
    try:
        products = {p.id: p for p in await service.inventory.list_products()}
    except ProviderError as e:
        raise HTTPException(status_code=503, detail=str(e))

    cart = Cart()
    for line in request.items:
        product = products.get(line.product_id)
        if product is None:
            raise HTTPException(status_code=404, detail=f"Product not found: {line.product_id}")
        if not cart.add(product):
            raise HTTPException(status_code=422, detail=f"{product.name} is out of stock")
        cart.update_quantity(product, line.quantity)

    return respond(await service.orders.place_order(identity, cart, request.details))


@app.post("/inquiries", tags=["Orders"])
async def submit_inquiry(
    details: InquiryDetails,
    service: BakeryService = Depends(get_service),
    identity: Identity = Depends(get_identity),
):
    return respond(await service.orders.submit_custom_inquiry(details, identity=identity))


@app.post("/orders/{order_id}/status", tags=["Orders"])
async def update_order_status(
    order_id: str,
    request: StatusRequest,
    service: BakeryService = Depends(get_service),
    admin: Identity = Depends(require_admin),
):
    return respond(await service.orders.update_order_status(order_id, request.status))


@app.post("/orders/{order_id}/quote", tags=["Orders"])
async def set_quote(
    order_id: str,
    request: QuoteRequest,
    service: BakeryService = Depends(get_service),
    admin: Identity = Depends(require_admin),
):
    return respond(await service.orders.set_quote_price(order_id, request.amount))


# =============================================================================
# Notifications
# =============================================================================

def _require_customer(identity: Identity) -> None:
    if identity.is_guest or identity.is_admin:
        raise HTTPException(status_code=403, detail="Only signed-in customers have notifications")


@app.get("/notifications", tags=["Notifications"])
async def list_notifications(
    service: BakeryService = Depends(get_service),
    identity: Identity = Depends(get_identity),
):
    _require_customer(identity)
    try:
        return jsonable_encoder(await service.notifications.list(identity.user_id))
    except ProviderError as e:
        raise HTTPException(status_code=503, detail=str(e))


@app.post("/notifications/{notification_id}/read", tags=["Notifications"])
async def mark_notification_read(
    notification_id: str,
    service: BakeryService = Depends(get_service),
    identity: Identity = Depends(get_identity),
):
    _require_customer(identity)
    try:
        if await service.notifications.get(identity.user_id, notification_id) is None:
            raise HTTPException(status_code=404, detail=f"Notification not found: {notification_id}")
        await service.notifications.mark_read(notification_id)
    except ProviderError as e:
        raise HTTPException(status_code=503, detail=str(e))
    return {"status": "ok"}


@app.post("/notifications/read-all", tags=["Notifications"])
async def mark_all_notifications_read(
    service: BakeryService = Depends(get_service),
    identity: Identity = Depends(get_identity),
):
    _require_customer(identity)
    try:
        await service.notifications.mark_all_read(identity.user_id)
    except ProviderError as e:
        raise HTTPException(status_code=503, detail=str(e))
    return {"status": "ok"}
