from rest_framework import viewsets, filters
from django_filters.rest_framework import DjangoFilterBackend
from ..pagination import StandardPagination


class BaseViewSet(viewsets.ModelViewSet):
    """
    Base ViewSet that provides standard configuration for all ModelViewSets.

    Features:
    - Standard pagination, filtering, and ordering
    - Query optimization driven by serializer Meta
      (``select_related_fields`` / ``prefetch_related_fields``)

    Usage:
        class OrderViewSet(BaseViewSet):
            serializer_class = OrderSerializer
    """

    pagination_class = StandardPagination

    filter_backends = [
        DjangoFilterBackend,
        filters.OrderingFilter,
    ]

    ordering = ['-id']

    def get_queryset(self):
        queryset = super().get_queryset()
        serializer_class = self.get_serializer_class()
        meta = getattr(serializer_class, "Meta", None)
        select_related = getattr(meta, "select_related_fields", [])
        prefetch_related = getattr(meta, "prefetch_related_fields", [])
        if select_related:
            queryset = queryset.select_related(*select_related)
        if prefetch_related:
            queryset = queryset.prefetch_related(*prefetch_related)
        return queryset


class ReadOnlyBaseViewSet(viewsets.ReadOnlyModelViewSet):
    """Base ViewSet for read-only endpoints."""

    pagination_class = StandardPagination
    filter_backends = [
        DjangoFilterBackend,
        filters.OrderingFilter,
    ]
    ordering = ['-id']


class BaseAPIView(viewsets.ViewSet):
    """
    Base class for RPC-style endpoints that are not backed by a single queryset
    (kitchen projections, for example).
    """
