"""Cart totals. Derived on every read, never stored."""

from collections.abc import Iterable
from dataclasses import dataclass

from ...config import DELIVERY_CHARGE_IN_PAISA, TAX_RATE_PERCENT
from ...shared.money import calc_tax
from .schemas import CartLine


@dataclass(frozen=True)
class CartSummary:
    item_count: int
    subtotal: int
    tax: int
    delivery_charge: int
    total: int


def summarize(
    lines: Iterable[CartLine],
    tax_rate_percent: int = TAX_RATE_PERCENT,
    delivery_charge: int = DELIVERY_CHARGE_IN_PAISA,
) -> CartSummary:
    """
    item_count = sum of quantities, subtotal = sum of unit price x quantity,
    tax = subtotal x rate rounded half up, total = subtotal + tax + delivery.
    """
    lines = list(lines)
    item_count = sum(line.quantity for line in lines)
    subtotal = sum(line.unit_price * line.quantity for line in lines)
    tax = calc_tax(subtotal, tax_rate_percent)
    return CartSummary(
        item_count=item_count,
        subtotal=subtotal,
        tax=tax,
        delivery_charge=delivery_charge,
        total=subtotal + tax + delivery_charge,
    )
