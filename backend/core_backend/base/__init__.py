"""
Core backend base components.

This package provides foundational classes that should be used throughout the
Django application for consistency and maintainability.
"""

from .viewsets import BaseViewSet, ReadOnlyBaseViewSet, BaseAPIView
from .serializers import BaseModelSerializer, MoneyField

__all__ = [
    # ViewSets
    'BaseViewSet',
    'ReadOnlyBaseViewSet',
    'BaseAPIView',

    # Serializers
    'BaseModelSerializer',
    'MoneyField',
]
