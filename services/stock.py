"""Quantity bookkeeping for factory items (spare parts, raw materials).

Only quantities move here; the money side of a purchase goes through the ledger.
"""

from decimal import Decimal

from services.errors import BusinessRuleError
from services.values import MILLI, to_qty


def _qty(val) -> Decimal:
    if val is None:
        return Decimal("0.000")
    return Decimal(str(val)).quantize(MILLI)


def add_stock(item, qty) -> Decimal:
    """Increase ``item.quantity`` (purchase, or a consumption being undone)."""
    q = to_qty(qty)
    item.quantity = _qty(item.quantity) + q
    return item.quantity


def remove_stock(item, qty) -> Decimal:
    """Decrease ``item.quantity``; never below zero."""
    q = to_qty(qty)
    current = _qty(item.quantity)
    if current < q:
        raise BusinessRuleError(f"Insufficient stock for {item.name}. Available={current} required={q}")
    item.quantity = current - q
    return item.quantity
