"""
Order financial calculators.

``price_item`` prices a single line. ``OrderCalculator`` derives the order
level figures from the order's items, discounts, comps and payments:

    subtotal   = sum of line totals over non-void items
    taxable    = max(0, subtotal - discounts - comps)
    tax        = taxable x location tax rate
    total      = taxable + tax
    tip        = sum of payment tips

Arithmetic runs at full Decimal precision; only the returned figures are
quantized to the currency's minor unit.

Usage:
    from orders.calculators import OrderCalculator
    totals = OrderCalculator(order).calculate_totals()
"""

from decimal import Decimal
from typing import Dict, Iterable

from core_backend.exceptions import ValidationFailure
from payments.money import ZERO, quantize, to_decimal
from .models import OrderItem


def price_item(unit_price, modifiers: Iterable = (), quantity: int = 1) -> Decimal:
    """
    ``(unit_price + sum of modifier adjustments) x quantity``, unrounded.

    ``modifiers`` may hold Decimals or anything with a ``price_adjustment``.
    """
    if quantity is None or int(quantity) < 1:
        raise ValidationFailure(f"Quantity must be at least 1, got {quantity}")
    modifier_total = modifier_sum(modifiers)
    return (to_decimal(unit_price) + modifier_total) * int(quantity)


def modifier_sum(modifiers: Iterable = ()) -> Decimal:
    total = ZERO
    for modifier in modifiers:
        adjustment = getattr(modifier, "price_adjustment", modifier)
        total += to_decimal(adjustment)
    return total


def tax_for(amount, tax_rate) -> Decimal:
    return to_decimal(amount) * to_decimal(tax_rate)


class OrderCalculator:
    """
    Calculator for the derived money fields of an order.

    Collections can be passed in explicitly (the calculation service does so
    with rows it just re-read under lock); otherwise they are loaded from the
    order's relations.
    """

    def __init__(self, order, items=None, discounts=None, comps=None, payments=None):
        self.order = order
        self.items = list(items) if items is not None else list(order.items.all())
        self.discounts = (
            list(discounts) if discounts is not None else list(order.discounts.all())
        )
        self.comps = list(comps) if comps is not None else list(order.comps.all())
        self.payments = list(payments) if payments is not None else list(order.payments.all())

    @property
    def currency(self) -> str:
        return self.order.location.currency

    @property
    def tax_rate(self) -> Decimal:
        return self.order.location.tax_rate

    def calculate_subtotal(self) -> Decimal:
        return sum(
            (item.line_total for item in self.items if item.status != OrderItem.ItemStatus.VOID),
            ZERO,
        )

    def calculate_discounts(self) -> Decimal:
        return sum((d.amount for d in self.discounts), ZERO)

    def calculate_comps(self) -> Decimal:
        return sum((c.amount for c in self.comps), ZERO)

    def calculate_tips(self) -> Decimal:
        return sum((p.tip_amount for p in self.payments), ZERO)

    def calculate_totals(self) -> Dict[str, Decimal]:
        subtotal = self.calculate_subtotal()
        discount = self.calculate_discounts()
        comp = self.calculate_comps()
        taxable = max(ZERO, subtotal - discount - comp)
        tax = quantize(self.currency, tax_for(taxable, self.tax_rate))
        taxable = quantize(self.currency, taxable)

        return {
            "subtotal": quantize(self.currency, subtotal),
            "discount_amount": quantize(self.currency, discount),
            "comp_amount": quantize(self.currency, comp),
            "taxable_amount": taxable,
            "tax_amount": tax,
            "tip_amount": quantize(self.currency, self.calculate_tips()),
            # Quantized parts add up to the stored total exactly.
            "total": taxable + tax,
        }


def calculate_check_totals(items, tax_rate, currency: str) -> Dict[str, Decimal]:
    """Subtotal, tax and total for a check from the non-void items assigned to it."""
    subtotal = sum(
        (i.line_total for i in items if i.status != OrderItem.ItemStatus.VOID), ZERO
    )
    subtotal = quantize(currency, subtotal)
    tax = quantize(currency, tax_for(subtotal, tax_rate))
    return {"subtotal": subtotal, "tax_amount": tax, "total": subtotal + tax}
