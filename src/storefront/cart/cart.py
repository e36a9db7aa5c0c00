"""Cart aggregate (CQRS): one mutable cart per user.

A cart line is identified by ``(product_id, selected_variant)``: adding the
same pair again grows the existing line instead of creating a second one.
Unit prices are snapshotted when a line is first inserted and never
refreshed afterwards. ``total_items`` and ``total_price`` are recomputed by
every mutation, and the post-invariant keeps them honest.
"""

from datetime import UTC, datetime

from protean import atomic_change, invariant
from protean.exceptions import ObjectNotFoundError, ValidationError
from protean.fields import DateTime, Float, HasMany, Identifier, Integer, String

from storefront.cart.events import (
    CartCleared,
    CartItemAdded,
    CartItemQuantityUpdated,
    CartItemRemoved,
    CartSynced,
)
from storefront.domain import storefront
from storefront.shared.errors import InsufficientStock
from storefront.shared.money import line_total, round_money


@storefront.entity(part_of="Cart")
class CartItem:
    product_id = Identifier(required=True)
    quantity = Integer(required=True, min_value=1)
    selected_variant = String(max_length=255)
    unit_price = Float(required=True, min_value=0.0)
    added_at = DateTime()

    def matches(self, product_id, selected_variant):
        return str(self.product_id) == str(product_id) and (self.selected_variant or None) == (
            selected_variant or None
        )

    @property
    def subtotal(self):
        return round_money(line_total(self.unit_price, self.quantity))


@storefront.aggregate
class Cart:
    user_id = Identifier(required=True, unique=True)
    items = HasMany(CartItem)
    total_items = Integer(default=0)
    total_price = Float(default=0.0)
    created_at = DateTime()
    updated_at = DateTime()

    @invariant.post
    def totals_must_match_items(self):
        expected_items = sum(item.quantity for item in self.items)
        expected_price = round_money(sum(line_total(item.unit_price, item.quantity) for item in self.items))
        if (self.total_items or 0) != expected_items or round_money(self.total_price or 0) != expected_price:
            raise ValidationError({"totals": ["Cart totals are out of sync with its items"]})

    # -------------------------------------------------------------------
    # Factory
    # -------------------------------------------------------------------
    @classmethod
    def create(cls, user_id):
        now = datetime.now(UTC)
        return cls(
            user_id=user_id,
            total_items=0,
            total_price=0.0,
            created_at=now,
            updated_at=now,
        )

    # -------------------------------------------------------------------
    # Queries
    # -------------------------------------------------------------------
    def find_item(self, product_id, selected_variant=None):
        return next((i for i in self.items if i.matches(product_id, selected_variant)), None)

    def get_item(self, item_id):
        item = next((i for i in self.items if str(i.id) == str(item_id)), None)
        if item is None:
            raise ObjectNotFoundError({"item_id": ["Item not found in cart"]})
        return item

    @property
    def is_empty(self):
        return not self.items

    def _recompute_totals(self):
        self.total_items = sum(item.quantity for item in self.items)
        self.total_price = round_money(sum(line_total(item.unit_price, item.quantity) for item in self.items))
        self.updated_at = datetime.now(UTC)

    # -------------------------------------------------------------------
    # Item management
    # -------------------------------------------------------------------
    def add_item(self, product_id, quantity, unit_price, available_stock, selected_variant=None):
        """Add a product to the cart, merging with an existing line for the same variant."""
        if quantity is None or quantity <= 0:
            raise ValidationError({"quantity": ["Quantity must be greater than 0"]})

        existing = self.find_item(product_id, selected_variant)
        requested = (existing.quantity if existing else 0) + quantity
        if available_stock < requested:
            message = "Cannot add more items. Stock limit exceeded" if existing else "Insufficient stock available"
            raise InsufficientStock({"stock": [message]})

        with atomic_change(self):
            if existing:
                existing.quantity = requested
                item = existing
            else:
                item = CartItem(
                    product_id=product_id,
                    quantity=quantity,
                    selected_variant=selected_variant,
                    unit_price=unit_price,
                    added_at=datetime.now(UTC),
                )
                self.add_items(item)
            self._recompute_totals()

        self.raise_(
            CartItemAdded(
                cart_id=str(self.id),
                user_id=str(self.user_id),
                item_id=str(item.id),
                product_id=str(product_id),
                selected_variant=selected_variant,
                quantity=quantity,
                unit_price=item.unit_price,
            )
        )
        return item

    def update_item_quantity(self, item_id, quantity, available_stock=None):
        """Set a line's quantity. Zero or less removes the line."""
        item = self.get_item(item_id)
        if quantity <= 0:
            return self.remove_item(item_id)

        if available_stock is not None and available_stock < quantity:
            raise InsufficientStock({"stock": ["Insufficient stock available"]})

        previous_quantity = item.quantity
        with atomic_change(self):
            item.quantity = quantity
            self._recompute_totals()

        self.raise_(
            CartItemQuantityUpdated(
                cart_id=str(self.id),
                item_id=str(item_id),
                previous_quantity=previous_quantity,
                new_quantity=quantity,
            )
        )
        return item

    def remove_item(self, item_id):
        item = self.get_item(item_id)

        with atomic_change(self):
            self.remove_items(item)
            self._recompute_totals()

        self.raise_(
            CartItemRemoved(
                cart_id=str(self.id),
                item_id=str(item_id),
            )
        )

    def clear(self):
        """Empty the cart. The cart itself is kept."""
        removed = len(self.items)

        with atomic_change(self):
            for item in list(self.items):
                self.remove_items(item)
            self._recompute_totals()

        self.raise_(
            CartCleared(
                cart_id=str(self.id),
                user_id=str(self.user_id),
                items_removed=removed,
            )
        )

    def replace_items(self, lines, items_received=None):
        """Replace the cart contents with already-validated lines.

        Args:
            lines: List of dicts with product_id, quantity, unit_price and
                   optionally selected_variant. Lines sharing a product and
                   variant are merged.
            items_received: How many lines the client sent, for the event.
        """
        now = datetime.now(UTC)

        with atomic_change(self):
            for item in list(self.items):
                self.remove_items(item)

            for line in lines:
                variant = line.get("selected_variant") or None
                existing = self.find_item(line["product_id"], variant)
                if existing:
                    existing.quantity += line["quantity"]
                    continue
                self.add_items(
                    CartItem(
                        product_id=line["product_id"],
                        quantity=line["quantity"],
                        selected_variant=variant,
                        unit_price=line["unit_price"],
                        added_at=now,
                    )
                )
            self._recompute_totals()

        self.raise_(
            CartSynced(
                cart_id=str(self.id),
                user_id=str(self.user_id),
                items_received=items_received if items_received is not None else len(lines),
                items_kept=len(self.items),
            )
        )
