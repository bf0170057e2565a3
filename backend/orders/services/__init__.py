"""
Orders services package.

- OrderService: the order lifecycle; every mutation goes through it
- OrderCalculationService: subtotal, discounts, comps, tax and totals
- OrderItemService: item snapshots and pricing
- OrderAdjustmentService: void, comp and discount audit records
"""

# Core order operations
from .order_service import OrderService

# Calculation operations
from .calculation_service import OrderCalculationService

# Item management
from .item_service import OrderItemService

# Adjustment operations (voids, comps, discounts)
from .adjustment_service import OrderAdjustmentService

__all__ = [
    'OrderService',
    'OrderCalculationService',
    'OrderItemService',
    'OrderAdjustmentService',
]
