"""
Shared test fixtures for all backend tests.

This module provides reusable pytest fixtures for common test objects
like locations, staff, menu items and orders.
"""
import pytest
from decimal import Decimal

from locations.models import Location, Table
from menu.models import MenuItem, Modifier, ModifierGroup, Station
from notifications.services import RecordingNotificationSink
from orders.models import Order
from orders.services import OrderService
from users.models import User


# ============================================================================
# LOCATION FIXTURES
# ============================================================================

@pytest.fixture
def location(db):
    """Main dining room location, 8.25% tax."""
    return Location.objects.create(
        name="Main Street",
        tax_rate=Decimal("0.0825"),
        currency="USD",
    )


@pytest.fixture
def other_location(db):
    return Location.objects.create(name="Airport Kiosk", tax_rate=Decimal("0.0700"))


@pytest.fixture
def table(location):
    return Table.objects.create(location=location, name="T1", section="Patio", seats=4)


@pytest.fixture
def second_table(location):
    return Table.objects.create(location=location, name="T2", section="Patio", seats=2)


# ============================================================================
# USER FIXTURES
# ============================================================================

@pytest.fixture
def server(location):
    return User.objects.create_user(
        email="server@mainstreet.test",
        password="password123",
        first_name="Sam",
        last_name="Server",
        role=User.Role.SERVER,
        location=location,
    )


@pytest.fixture
def manager(location):
    return User.objects.create_user(
        email="manager@mainstreet.test",
        password="password123",
        first_name="Morgan",
        last_name="Manager",
        role=User.Role.MANAGER,
        location=location,
    )


@pytest.fixture
def cook(location):
    return User.objects.create_user(
        email="cook@mainstreet.test",
        password="password123",
        role=User.Role.COOK,
        location=location,
    )


# ============================================================================
# MENU FIXTURES
# ============================================================================

@pytest.fixture
def grill_station(location):
    return Station.objects.create(location=location, name="Grill", short_name="GRL", sort_order=1)


@pytest.fixture
def fry_station(location):
    return Station.objects.create(location=location, name="Fry", short_name="FRY", sort_order=2)


@pytest.fixture
def addons_group(db):
    """Optional multi-select group."""
    return ModifierGroup.objects.create(
        name="Add-ons",
        selection_type=ModifierGroup.SelectionType.MULTIPLE,
        required=False,
    )


@pytest.fixture
def bacon(addons_group):
    return Modifier.objects.create(
        group=addons_group, name="Add Bacon", price_adjustment=Decimal("1.50")
    )


@pytest.fixture
def cheese(addons_group):
    return Modifier.objects.create(
        group=addons_group, name="Add Cheese", price_adjustment=Decimal("0.75")
    )


@pytest.fixture
def temperature_group(db):
    """Required single-choice group."""
    return ModifierGroup.objects.create(
        name="Temperature",
        selection_type=ModifierGroup.SelectionType.SINGLE,
        required=True,
    )


@pytest.fixture
def medium_rare(temperature_group):
    return Modifier.objects.create(group=temperature_group, name="Medium Rare")


@pytest.fixture
def well_done(temperature_group):
    return Modifier.objects.create(group=temperature_group, name="Well Done")


@pytest.fixture
def burger(location, grill_station, addons_group):
    """$10.00 item on the grill with optional add-ons."""
    item = MenuItem.objects.create(
        location=location,
        name="Classic Burger",
        kitchen_name="BURG",
        price=Decimal("10.00"),
        station=grill_station,
    )
    item.modifier_groups.add(addons_group)
    return item


@pytest.fixture
def fries(location, fry_station, addons_group):
    """$5.00 item on the fryer with optional add-ons."""
    item = MenuItem.objects.create(
        location=location,
        name="Loaded Fries",
        price=Decimal("5.00"),
        station=fry_station,
    )
    item.modifier_groups.add(addons_group)
    return item


@pytest.fixture
def steak(location, grill_station, temperature_group, medium_rare, well_done):
    """Needs exactly one temperature."""
    item = MenuItem.objects.create(
        location=location,
        name="Ribeye",
        price=Decimal("32.00"),
        station=grill_station,
    )
    item.modifier_groups.add(temperature_group)
    return item


@pytest.fixture
def foreign_item(other_location):
    return MenuItem.objects.create(
        location=other_location, name="Airport Pretzel", price=Decimal("6.00")
    )


# ============================================================================
# SERVICE FIXTURES
# ============================================================================

@pytest.fixture
def recording_sink():
    return RecordingNotificationSink()


@pytest.fixture
def order_service(recording_sink):
    return OrderService(notifier=recording_sink)


@pytest.fixture
def order(order_service, location, table, server):
    """Empty dine-in order for two at T1."""
    return order_service.create_order(
        location=location,
        server=server,
        order_type=Order.OrderType.DINE_IN,
        table=table,
        guest_count=2,
    )


@pytest.fixture
def scenario_order(order_service, order, burger, fries, bacon):
    """
    Two burgers on seat 1 and fries with bacon on seat 2:
    subtotal 26.50.
    """
    burger_line = order_service.add_item(order, burger.pk, quantity=2, seat=1)
    fries_line = order_service.add_item(order, fries.pk, quantity=1, seat=2, modifier_ids=[bacon.pk])
    order.refresh_from_db()
    return order, burger_line, fries_line
