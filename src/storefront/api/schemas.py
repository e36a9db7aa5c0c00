"""Pydantic request schemas for the storefront API.

These are external contracts, separate from the internal Protean commands.
Clients send camelCase keys; snake_case is accepted as well.
"""

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# ---------------------------------------------------------------------------
# Shared sub-models
# ---------------------------------------------------------------------------
class AddressSchema(CamelModel):
    """Address as sent by the client. ``address`` and ``postalCode`` are accepted aliases."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="allow")

    street: str | None = None
    city: str | None = None
    state: str | None = None
    zip_code: str | None = None
    country: str | None = None
    phone: str | None = None


class OrderItemSchema(CamelModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="allow")

    product_id: str | None = None
    name: str | None = None
    price: float | None = None
    image: str | None = None
    quantity: int = 1
    selected_variant: str | None = None


class PaymentResultSchema(CamelModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="allow")

    id: str | None = None
    status: str | None = None
    update_time: str | None = None
    email_address: str | None = None


# ---------------------------------------------------------------------------
# Cart Request Schemas
# ---------------------------------------------------------------------------
class AddToCartRequest(CamelModel):
    product_id: str
    quantity: int = 1
    selected_variant: str | None = None

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        json_schema_extra={
            "examples": [
                {
                    "productId": "prod-001",
                    "quantity": 2,
                    "selectedVariant": "Size: M",
                }
            ]
        },
    )


class UpdateCartItemRequest(CamelModel):
    quantity: int


class SyncCartRequest(CamelModel):
    items: list[dict] = []


# ---------------------------------------------------------------------------
# Checkout / Order Request Schemas
# ---------------------------------------------------------------------------
class CheckoutRequest(CamelModel):
    items: list[OrderItemSchema] = []
    shipping_address: AddressSchema | None = None
    billing_address: AddressSchema | None = None
    payment_method: str | None = None
    payment_result: PaymentResultSchema | None = None
    coupon_code: str | None = None
    notes: str | None = None

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        json_schema_extra={
            "examples": [
                {
                    "items": [{"productId": "prod-001", "quantity": 1}],
                    "shippingAddress": {
                        "street": "12 MG Road",
                        "city": "Bengaluru",
                        "state": "KA",
                        "zipCode": "560001",
                        "country": "India",
                    },
                    "paymentMethod": "cod",
                }
            ]
        },
    )

    def placement_kwargs(self) -> dict:
        """Keyword arguments for the checkout saga, with aliases left for it to resolve."""

        def dump(model):
            return model.model_dump(exclude_none=True) if model is not None else None

        return {
            "items": [item.model_dump(exclude_none=True) for item in self.items],
            "shipping_address": dump(self.shipping_address),
            "billing_address": dump(self.billing_address),
            "payment_method": self.payment_method,
            "payment_result": dump(self.payment_result),
            "coupon_code": self.coupon_code,
            "notes": self.notes,
        }


class CancelOrderRequest(CamelModel):
    reason: str | None = None


class UpdateOrderStatusRequest(CamelModel):
    status: str
    note: str | None = None
    tracking_number: str | None = None
    carrier: str | None = None


class ProcessPaymentRequest(CamelModel):
    amount: float = Field(ge=0)
    payment_method: str
    order_id: str | None = None
