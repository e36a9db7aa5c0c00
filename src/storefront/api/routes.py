"""FastAPI routes for the storefront: cart, checkout, orders and payments."""

import json
import math

import structlog
from fastapi import APIRouter, Depends, HTTPException, Query
from protean.utils.globals import current_domain

from storefront.api.auth import Principal, get_current_user, require_admin
from storefront.api.schemas import (
    AddToCartRequest,
    CancelOrderRequest,
    CheckoutRequest,
    ProcessPaymentRequest,
    SyncCartRequest,
    UpdateCartItemRequest,
    UpdateOrderStatusRequest,
)
from storefront.api.serializers import cart_to_dict, order_to_dict, pricing_to_dict
from storefront.cart.cart import Cart
from storefront.cart.items import AddToCart, RemoveFromCart, UpdateCartItem
from storefront.cart.management import ClearCart, SyncCart
from storefront.checkout.saga import place_order
from storefront.checkout.session import checkout_session, load_products
from storefront.order.cancellation import cancel_order
from storefront.order.order import Order, PaymentMethod
from storefront.order.placement import normalize_payment_method
from storefront.order.status import update_order_status
from storefront.payments import get_gateway

logger = structlog.get_logger(__name__)


def _cart_payload(user_id):
    cart = current_domain.repository_for(Cart).for_user(user_id)
    products = load_products(item.product_id for item in cart.items)
    return cart_to_dict(cart, products)


def _order_payload(order, user: Principal | None = None):
    products = load_products(item.product_id for item in order.items if item.catalogued)
    owner = None
    if user is not None and order.is_owned_by(user.id):
        owner = {"id": user.id, "email": user.email, "name": user.name}
    return order_to_dict(order, products, user=owner)


# ---------------------------------------------------------------------------
# Cart Router
# ---------------------------------------------------------------------------
cart_router = APIRouter(prefix="/cart", tags=["cart"])


@cart_router.get("")
async def get_cart(user: Principal = Depends(get_current_user)) -> dict:
    return {"success": True, "data": _cart_payload(user.id)}


@cart_router.post("/add")
async def add_to_cart(body: AddToCartRequest, user: Principal = Depends(get_current_user)) -> dict:
    command = AddToCart(
        user_id=user.id,
        product_id=body.product_id,
        quantity=body.quantity,
        selected_variant=body.selected_variant,
    )
    current_domain.process(command, asynchronous=False)
    return {"success": True, "message": "Item added to cart", "data": _cart_payload(user.id)}


@cart_router.put("/update/{item_id}")
async def update_cart_item(item_id: str, body: UpdateCartItemRequest, user: Principal = Depends(get_current_user)) -> dict:
    command = UpdateCartItem(
        user_id=user.id,
        item_id=item_id,
        quantity=body.quantity,
    )
    current_domain.process(command, asynchronous=False)
    return {"success": True, "message": "Cart updated", "data": _cart_payload(user.id)}


@cart_router.delete("/remove/{item_id}")
async def remove_cart_item(item_id: str, user: Principal = Depends(get_current_user)) -> dict:
    current_domain.process(RemoveFromCart(user_id=user.id, item_id=item_id), asynchronous=False)
    return {"success": True, "message": "Item removed from cart", "data": _cart_payload(user.id)}


@cart_router.delete("/clear")
async def clear_cart(user: Principal = Depends(get_current_user)) -> dict:
    current_domain.process(ClearCart(user_id=user.id), asynchronous=False)
    return {"success": True, "message": "Cart cleared", "data": _cart_payload(user.id)}


@cart_router.post("/sync")
async def sync_cart(body: SyncCartRequest, user: Principal = Depends(get_current_user)) -> dict:
    current_domain.process(SyncCart(user_id=user.id, items=json.dumps(body.items)), asynchronous=False)
    return {"success": True, "message": "Cart synced", "data": _cart_payload(user.id)}


# ---------------------------------------------------------------------------
# Checkout Router
# ---------------------------------------------------------------------------
checkout_router = APIRouter(prefix="/checkout", tags=["checkout"])


@checkout_router.get("/session")
async def get_checkout_session(
    payment_method: str | None = Query(None, alias="paymentMethod"),
    user: Principal = Depends(get_current_user),
) -> dict:
    method = normalize_payment_method(payment_method) if payment_method else None
    session = checkout_session(user.id, payment_method=method)
    return {
        "success": True,
        "data": {
            "cart": cart_to_dict(session["cart"], session["products"]),
            "pricing": pricing_to_dict(session["pricing"]),
        },
    }


@checkout_router.post("", status_code=201)
async def checkout(body: CheckoutRequest, user: Principal = Depends(get_current_user)) -> dict:
    result = place_order(user_id=user.id, clear_cart=True, **body.placement_kwargs())
    return {
        "success": True,
        "message": "Order created successfully",
        "order": _order_payload(result.order, user),
        "cartCleared": result.cart_cleared,
    }


# ---------------------------------------------------------------------------
# Order Router
# ---------------------------------------------------------------------------
order_router = APIRouter(prefix="/orders", tags=["orders"])


def _pagination(page, limit, total):
    return {"page": page, "limit": limit, "total": total, "pages": math.ceil(total / limit) if limit else 0}


def _load_visible_order(order_id: str, user: Principal) -> Order:
    order = current_domain.repository_for(Order).get(order_id)
    if not (order.is_owned_by(user.id) or user.is_admin):
        raise HTTPException(status_code=403, detail="Not authorized to access this order")
    return order


@order_router.post("", status_code=201)
async def create_order(body: CheckoutRequest, user: Principal = Depends(get_current_user)) -> dict:
    result = place_order(user_id=user.id, allow_unlisted=False, **body.placement_kwargs())
    return {"success": True, "order": _order_payload(result.order, user)}


@order_router.get("/myorders")
async def my_orders(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    user: Principal = Depends(get_current_user),
) -> dict:
    orders, total = current_domain.repository_for(Order).page_for_user(user.id, page=page, limit=limit)
    return {
        "success": True,
        "orders": [_order_payload(order, user) for order in orders],
        "pagination": _pagination(page, limit, total),
    }


@order_router.get("")
async def list_orders(
    status: str | None = None,
    payment_status: str | None = Query(None, alias="paymentStatus"),
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    admin: Principal = Depends(require_admin),
) -> dict:
    orders, total = current_domain.repository_for(Order).page_all(
        status=status,
        payment_status=payment_status,
        page=page,
        limit=limit,
    )
    return {
        "success": True,
        "orders": [_order_payload(order) for order in orders],
        "pagination": _pagination(page, limit, total),
    }


@order_router.get("/{order_id}")
async def get_order(order_id: str, user: Principal = Depends(get_current_user)) -> dict:
    order = _load_visible_order(order_id, user)
    return {"success": True, "order": _order_payload(order, user)}


@order_router.put("/{order_id}/cancel")
async def cancel(order_id: str, body: CancelOrderRequest | None = None, user: Principal = Depends(get_current_user)) -> dict:
    _load_visible_order(order_id, user)
    cancel_order(order_id, reason=body.reason if body else None)
    order = current_domain.repository_for(Order).get(order_id)
    return {"success": True, "message": "Order cancelled successfully", "order": _order_payload(order, user)}


@order_router.put("/{order_id}/status")
async def update_status(order_id: str, body: UpdateOrderStatusRequest, admin: Principal = Depends(require_admin)) -> dict:
    update_order_status(
        order_id,
        body.status,
        note=body.note,
        tracking_number=body.tracking_number,
        carrier=body.carrier,
    )
    order = current_domain.repository_for(Order).get(order_id)
    return {"success": True, "message": "Order status updated", "order": _order_payload(order)}


# ---------------------------------------------------------------------------
# Payment Router
# ---------------------------------------------------------------------------
payment_router = APIRouter(prefix="/payments", tags=["payments"])

_PAYMENT_METHOD_DETAILS = {
    PaymentMethod.CARD.value: ("Credit/Debit Card", "Pay securely with your card"),
    PaymentMethod.PAYPAL.value: ("PayPal", "Pay with your PayPal account"),
    PaymentMethod.STRIPE.value: ("Stripe", "Pay through Stripe checkout"),
    PaymentMethod.CASH_ON_DELIVERY.value: ("Cash on Delivery", "Pay when your order arrives"),
}


@payment_router.post("/process")
async def process_payment(body: ProcessPaymentRequest, user: Principal = Depends(get_current_user)) -> dict:
    method = normalize_payment_method(body.payment_method)
    result = get_gateway().process_payment(amount=body.amount, payment_method=method, order_id=body.order_id)
    if not result.succeeded:
        logger.warning("Payment declined", user_id=user.id, order_id=body.order_id, reason=result.failure_reason)
        raise HTTPException(status_code=400, detail="Payment failed. Please try again.")
    return {"success": True, "message": "Payment processed successfully", "paymentResult": result.as_dict()}


@payment_router.get("/methods")
async def payment_methods() -> dict:
    return {
        "success": True,
        "data": [
            {"id": key, "name": name, "description": description}
            for key, (name, description) in _PAYMENT_METHOD_DETAILS.items()
        ],
    }
