"""Checkout pricing.

Pure functions over line totals; nothing here touches the repositories.

    items_price     sum of unit_price * quantity
    tax_price       8% of items_price
    shipping_price  10.00 up to and including 100.00, free above it
                    cash on delivery: 40.00 up to and including 500.00,
                    free above it (replaces the standard fee)
    total_price     items + tax + shipping - discount
"""

from dataclasses import asdict, dataclass
from decimal import Decimal

from storefront.shared.money import line_total, round_money, to_decimal

TAX_RATE = Decimal("0.08")

FREE_SHIPPING_THRESHOLD = Decimal("100")
STANDARD_SHIPPING_FEE = Decimal("10")

COD_FREE_THRESHOLD = Decimal("500")
COD_CHARGE = Decimal("40")

CASH_ON_DELIVERY = "cash_on_delivery"


@dataclass(frozen=True)
class Pricing:
    items_price: float
    tax_price: float
    shipping_price: float
    cod_charge: float
    discount_amount: float
    total_price: float

    def as_dict(self):
        return asdict(self)


def items_subtotal(lines) -> Decimal:
    """Sum ``unit_price * quantity`` over dict lines."""
    return sum((line_total(line["unit_price"], line["quantity"]) for line in lines), Decimal("0"))


def shipping_fee(items_price) -> Decimal:
    return Decimal("0") if to_decimal(items_price) > FREE_SHIPPING_THRESHOLD else STANDARD_SHIPPING_FEE


def cod_charge(items_price) -> Decimal:
    return Decimal("0") if to_decimal(items_price) > COD_FREE_THRESHOLD else COD_CHARGE


def calculate_pricing(lines, payment_method=None, discount_amount=0) -> Pricing:
    """Price a set of ``{unit_price, quantity}`` lines for the given payment method."""
    items_price = to_decimal(round_money(items_subtotal(lines)))
    tax_price = to_decimal(round_money(items_price * TAX_RATE))

    cod = cod_charge(items_price) if payment_method == CASH_ON_DELIVERY else Decimal("0")
    if payment_method == CASH_ON_DELIVERY:
        shipping_price = cod
    else:
        shipping_price = shipping_fee(items_price)

    gross = items_price + tax_price + shipping_price
    discount = min(to_decimal(discount_amount or 0), gross)
    total_price = gross - discount

    return Pricing(
        items_price=round_money(items_price),
        tax_price=round_money(tax_price),
        shipping_price=round_money(shipping_price),
        cod_charge=round_money(cod),
        discount_amount=round_money(discount),
        total_price=round_money(total_price),
    )
