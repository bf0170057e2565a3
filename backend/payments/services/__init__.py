"""
Payments services package.

- PaymentService: recording tenders against orders and checks
- CheckSplitService: even, by-seat and custom check splits
"""

from .payment_service import PaymentService
from .split_service import CheckSplitService

__all__ = [
    'PaymentService',
    'CheckSplitService',
]
