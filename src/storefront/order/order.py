"""Order aggregate (CQRS): an immutable snapshot of a purchase plus its lifecycle.

State machine:
    pending → confirmed → processing → shipped → delivered → returned
    pending → processing (prepaid orders start here)
    pending | confirmed → cancelled

Items, prices and addresses never change after placement. Every status change
on a persisted order appends exactly one entry to ``status_history``.
"""

import json
from datetime import UTC, datetime, timedelta
from enum import Enum

from protean import invariant
from protean.exceptions import ValidationError
from protean.fields import (
    Boolean,
    DateTime,
    Float,
    HasMany,
    Identifier,
    Integer,
    String,
    Text,
    ValueObject,
)

from storefront.domain import storefront
from storefront.order.events import (
    OrderCancelled,
    OrderPlaced,
    OrderRefunded,
    OrderStatusChanged,
)
from storefront.shared.errors import InvalidTransition
from storefront.shared.money import round_money, to_decimal

RETURN_WINDOW = timedelta(days=30)
DEFAULT_CANCELLATION_REASON = "Cancelled by user"


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------
class OrderStatus(Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    PROCESSING = "processing"
    SHIPPED = "shipped"
    DELIVERED = "delivered"
    CANCELLED = "cancelled"
    RETURNED = "returned"


class PaymentStatus(Enum):
    PENDING = "pending"
    PAID = "paid"
    FAILED = "failed"
    REFUNDED = "refunded"


class PaymentMethod(Enum):
    CARD = "card"
    PAYPAL = "paypal"
    STRIPE = "stripe"
    CASH_ON_DELIVERY = "cash_on_delivery"


_VALID_TRANSITIONS = {
    OrderStatus.PENDING: {OrderStatus.CONFIRMED, OrderStatus.PROCESSING, OrderStatus.CANCELLED},
    OrderStatus.CONFIRMED: {OrderStatus.PROCESSING, OrderStatus.CANCELLED},
    OrderStatus.PROCESSING: {OrderStatus.SHIPPED},
    OrderStatus.SHIPPED: {OrderStatus.DELIVERED},
    OrderStatus.DELIVERED: {OrderStatus.RETURNED},
    OrderStatus.CANCELLED: set(),  # Terminal
    OrderStatus.RETURNED: set(),  # Terminal
}

_CANCELLABLE_STATES = {OrderStatus.PENDING, OrderStatus.CONFIRMED}


# ---------------------------------------------------------------------------
# Value Objects
# ---------------------------------------------------------------------------
@storefront.value_object(part_of="Order")
class Address:
    """A shipping or billing address as captured at checkout."""

    street = String(required=True, max_length=255)
    city = String(required=True, max_length=100)
    state = String(required=True, max_length=100)
    zip_code = String(required=True, max_length=20)
    country = String(required=True, max_length=100)
    phone = String(max_length=30)


# ---------------------------------------------------------------------------
# Entities
# ---------------------------------------------------------------------------
@storefront.entity(part_of="Order")
class OrderItem:
    """A priced line of the order. ``catalogued`` is False for unlisted items."""

    product_id = Identifier(required=True)
    name = String(required=True, max_length=255)
    image = String(max_length=1000)
    unit_price = Float(required=True, min_value=0.0)
    quantity = Integer(required=True, min_value=1)
    selected_variant = String(max_length=255)
    catalogued = Boolean(default=True)

    @property
    def subtotal(self):
        return round_money(to_decimal(self.unit_price) * self.quantity)


@storefront.entity(part_of="Order")
class StatusChange:
    status = String(required=True, choices=OrderStatus)
    timestamp = DateTime(required=True)
    note = String(max_length=500)


# ---------------------------------------------------------------------------
# Aggregate Root
# ---------------------------------------------------------------------------
@storefront.aggregate
class Order:
    user_id = Identifier(required=True)
    order_number = String(required=True, max_length=20, unique=True)
    items = HasMany(OrderItem)
    shipping_address = ValueObject(Address)
    billing_address = ValueObject(Address)
    payment_method = String(required=True, choices=PaymentMethod)
    payment_status = String(choices=PaymentStatus, default=PaymentStatus.PENDING.value)
    payment_reference = String(max_length=255)
    paid_at = DateTime()
    items_price = Float(default=0.0, min_value=0.0)
    tax_price = Float(default=0.0, min_value=0.0)
    shipping_price = Float(default=0.0, min_value=0.0)
    discount_amount = Float(default=0.0, min_value=0.0)
    total_price = Float(default=0.0, min_value=0.0)
    order_status = String(choices=OrderStatus, default=OrderStatus.PENDING.value)
    status_history = HasMany(StatusChange)
    tracking_number = String(max_length=255)
    carrier = String(max_length=100)
    delivered_at = DateTime()
    cancelled_at = DateTime()
    cancellation_reason = String(max_length=500)
    coupon_code = String(max_length=100)
    notes = Text()
    refund_amount = Float(default=0.0, min_value=0.0)
    refund_reason = String(max_length=500)
    refunded_at = DateTime()
    created_at = DateTime()
    updated_at = DateTime()

    @invariant.post
    def total_must_add_up(self):
        expected = round_money(
            to_decimal(self.items_price or 0)
            + to_decimal(self.tax_price or 0)
            + to_decimal(self.shipping_price or 0)
            - to_decimal(self.discount_amount or 0)
        )
        if round_money(self.total_price or 0) != expected:
            raise ValidationError({"total_price": ["Total does not match items, tax, shipping and discount"]})

    # -------------------------------------------------------------------
    # Factory method
    # -------------------------------------------------------------------
    @classmethod
    def place(
        cls,
        user_id,
        order_number,
        items_data,
        shipping_address,
        billing_address,
        payment_method,
        pricing,
        payment_result=None,
        coupon_code=None,
        notes=None,
    ):
        """Create a new order from validated lines.

        Args:
            user_id: The customer placing the order.
            order_number: A freshly generated ``CZ...`` number.
            items_data: List of dicts with product_id, name, image,
                        unit_price, quantity, selected_variant, catalogued.
            shipping_address: Dict with street, city, state, zip_code, country, phone.
            billing_address: Same shape; defaults to the shipping address.
            payment_method: One of the PaymentMethod values.
            pricing: Dict with items_price, tax_price, shipping_price,
                     discount_amount, total_price.
            payment_result: Optional gateway result dict with a ``status``.
        """
        if not items_data:
            raise ValidationError({"items": ["No order items"]})
        if not shipping_address:
            raise ValidationError({"shipping_address": ["Shipping address is required"]})
        if not payment_method:
            raise ValidationError({"payment_method": ["Payment method is required"]})

        now = datetime.now(UTC)
        order_status, payment_status, paid_at = _initial_statuses(payment_method, payment_result)

        order = cls(
            user_id=user_id,
            order_number=order_number,
            shipping_address=Address(**shipping_address),
            billing_address=Address(**(billing_address or shipping_address)),
            payment_method=payment_method,
            payment_status=payment_status,
            payment_reference=(payment_result or {}).get("id"),
            paid_at=paid_at,
            items_price=pricing["items_price"],
            tax_price=pricing["tax_price"],
            shipping_price=pricing["shipping_price"],
            discount_amount=pricing.get("discount_amount", 0.0),
            total_price=pricing["total_price"],
            order_status=order_status,
            coupon_code=coupon_code,
            notes=notes,
            refund_amount=0.0,
            created_at=now,
            updated_at=now,
        )
        for item in items_data:
            order.add_items(
                OrderItem(
                    product_id=item["product_id"],
                    name=item["name"],
                    image=item.get("image"),
                    unit_price=item["unit_price"],
                    quantity=item["quantity"],
                    selected_variant=item.get("selected_variant"),
                    catalogued=item.get("catalogued", True),
                )
            )

        order.raise_(
            OrderPlaced(
                order_id=str(order.id),
                order_number=order_number,
                user_id=str(user_id),
                items=json.dumps(items_data),
                payment_method=payment_method,
                payment_status=payment_status,
                order_status=order_status,
                items_price=order.items_price,
                tax_price=order.tax_price,
                shipping_price=order.shipping_price,
                total_price=order.total_price,
                placed_at=now,
            )
        )
        return order

    # -------------------------------------------------------------------
    # Queries
    # -------------------------------------------------------------------
    @property
    def total_items(self):
        return sum(item.quantity for item in self.items)

    @property
    def order_age_days(self):
        return (datetime.now(UTC) - self.created_at).days

    @property
    def catalogued_lines(self):
        """Stock lines for the items that came from the catalogue."""
        return [
            {"product_id": str(item.product_id), "quantity": item.quantity} for item in self.items if item.catalogued
        ]

    def can_be_cancelled(self):
        return OrderStatus(self.order_status) in _CANCELLABLE_STATES

    def can_be_returned(self, now=None):
        if OrderStatus(self.order_status) != OrderStatus.DELIVERED or self.delivered_at is None:
            return False
        now = now or datetime.now(UTC)
        return now - self.delivered_at <= RETURN_WINDOW

    def is_owned_by(self, user_id):
        return str(self.user_id) == str(user_id)

    # -------------------------------------------------------------------
    # State transitions
    # -------------------------------------------------------------------
    def _assert_can_transition(self, target):
        current = OrderStatus(self.order_status)
        if target == current:
            raise InvalidTransition(f"Order is already {current.value}")
        if target not in _VALID_TRANSITIONS.get(current, set()):
            raise InvalidTransition(f"Cannot transition from {current.value} to {target.value}")

    def _record_status_change(self, previous, target, note=None, now=None):
        now = now or datetime.now(UTC)
        self.order_status = target.value
        self.updated_at = now
        self.add_status_history(StatusChange(status=target.value, timestamp=now, note=note))

        self.raise_(
            OrderStatusChanged(
                order_id=str(self.id),
                order_number=self.order_number,
                previous_status=previous.value,
                new_status=target.value,
                note=note,
                changed_at=now,
            )
        )

    def transition_to(self, status, note=None, tracking_number=None, carrier=None, reason=None):
        """Move the order to ``status``, applying that status's side effects.

        Cancellation and returns go through ``cancel`` and ``mark_returned``.
        Restocking after a cancellation is the caller's job.
        """
        try:
            target = OrderStatus(status)
        except ValueError:
            raise ValidationError({"status": [f"Invalid status: {status}"]}) from None

        if target == OrderStatus.CANCELLED:
            return self.cancel(reason=reason or note)
        if target == OrderStatus.RETURNED:
            return self.mark_returned(reason=reason or note)

        previous = OrderStatus(self.order_status)
        self._assert_can_transition(target)
        now = datetime.now(UTC)

        if target == OrderStatus.SHIPPED:
            if tracking_number:
                self.tracking_number = tracking_number
            if carrier:
                self.carrier = carrier
        elif target == OrderStatus.DELIVERED:
            self.delivered_at = now
            if self.payment_status != PaymentStatus.PAID.value:
                self.payment_status = PaymentStatus.PAID.value
                self.paid_at = now

        self._record_status_change(previous, target, note=note, now=now)

    def cancel(self, reason=None):
        """Cancel a pending or confirmed order. A paid order is refunded in full."""
        previous = OrderStatus(self.order_status)
        if not self.can_be_cancelled():
            raise InvalidTransition(f"Order cannot be cancelled once it is {previous.value}")

        now = datetime.now(UTC)
        reason = reason or DEFAULT_CANCELLATION_REASON
        self.cancelled_at = now
        self.cancellation_reason = reason
        self._record_status_change(previous, OrderStatus.CANCELLED, note=reason, now=now)

        self.raise_(
            OrderCancelled(
                order_id=str(self.id),
                order_number=self.order_number,
                reason=reason,
                restock_lines=json.dumps(self.catalogued_lines),
                cancelled_at=now,
            )
        )

        if self.payment_status == PaymentStatus.PAID.value:
            self._refund(self.total_price, reason, now)

    def mark_returned(self, reason=None, refund_amount=None):
        """Accept a return of a delivered order within the return window."""
        previous = OrderStatus(self.order_status)
        self._assert_can_transition(OrderStatus.RETURNED)
        if not self.can_be_returned():
            raise InvalidTransition("Return window has expired")

        now = datetime.now(UTC)
        self._record_status_change(previous, OrderStatus.RETURNED, note=reason, now=now)
        self._refund(self.total_price if refund_amount is None else refund_amount, reason, now)

    def _refund(self, amount, reason, now):
        self.refund_amount = round_money(amount)
        self.refund_reason = reason
        self.refunded_at = now
        self.payment_status = PaymentStatus.REFUNDED.value

        self.raise_(
            OrderRefunded(
                order_id=str(self.id),
                order_number=self.order_number,
                refund_amount=self.refund_amount,
                refund_reason=reason,
                refunded_at=now,
            )
        )


def _initial_statuses(payment_method, payment_result):
    """Return ``(order_status, payment_status, paid_at)`` for a new order."""
    if payment_method == PaymentMethod.CASH_ON_DELIVERY.value or not payment_result:
        return OrderStatus.PENDING.value, PaymentStatus.PENDING.value, None

    result_status = payment_result.get("status")
    if result_status == "completed":
        return OrderStatus.PROCESSING.value, PaymentStatus.PAID.value, datetime.now(UTC)
    if result_status == "failed":
        return OrderStatus.PENDING.value, PaymentStatus.FAILED.value, None
    return OrderStatus.PENDING.value, PaymentStatus.PENDING.value, None
