"""
Root conftest.py for all backend tests.

This file makes fixtures available to all test files across all apps.
"""
import pytest
from django.core.cache import cache


# ============================================================================
# AUTO-USE FIXTURES (Run automatically for every test)
# ============================================================================

@pytest.fixture(autouse=True)
def clear_cache_after_test():
    """
    Clear cache after each test to prevent cache pollution.
    """
    yield  # Run the test
    cache.clear()


@pytest.fixture(autouse=True)
def in_memory_channel_layer(settings):
    """
    Keep the notification sink off Redis during tests, whatever the
    environment says.
    """
    settings.CHANNEL_LAYERS = {
        "default": {"BACKEND": "channels.layers.InMemoryChannelLayer"}
    }


# ============================================================================
# API CLIENT FIXTURES
# ============================================================================

@pytest.fixture
def api_client():
    """
    Provide DRF API client for API tests.

    Usage:
        def test_my_api(api_client):
            response = api_client.get('/api/orders/')
            assert response.status_code == 401
    """
    from rest_framework.test import APIClient
    return APIClient()


@pytest.fixture
def server_client(api_client, server):
    """API client authenticated as the floor server."""
    api_client.force_authenticate(user=server)
    return api_client


@pytest.fixture
def manager_client(api_client, manager):
    """API client authenticated as the shift manager."""
    api_client.force_authenticate(user=manager)
    return api_client


# ============================================================================
# IMPORT ALL FIXTURES FROM core_backend/tests/fixtures.py
# ============================================================================

from core_backend.tests.fixtures import *  # noqa: E402,F401,F403
