"""
OrderService behaviour: the order lifecycle end to end against the database.
"""
import pytest
from decimal import Decimal

from core_backend.exceptions import InvalidState, NotFound, ValidationFailure
from kds.services import TicketRouter
from locations.models import Table
from menu.services import MenuCatalog
from orders.models import Order, OrderComp, OrderDiscount, OrderItem, OrderVoid
from payments.models import Payment

ItemStatus = OrderItem.ItemStatus
OrderStatus = Order.OrderStatus


def assert_subtotal_matches_items(order):
    order.refresh_from_db()
    live = order.items.exclude(status=ItemStatus.VOID)
    assert order.subtotal == sum((i.line_total for i in live), Decimal("0.00"))


def refreshed(*objs):
    for obj in objs:
        obj.refresh_from_db()
    return objs


@pytest.mark.django_db
class TestCreateOrder:
    def test_numbers_are_sequential_per_location(self, order_service, location, server):
        first = order_service.create_order(location=location, server=server)
        second = order_service.create_order(location=location, server=server)
        assert second.order_number == first.order_number + 1
        assert first.status == OrderStatus.OPEN
        assert first.subtotal == Decimal("0.00")

    def test_numbering_is_independent_between_locations(
        self, order_service, location, other_location, server
    ):
        order_service.create_order(location=location, server=server)
        elsewhere = order_service.create_order(location=other_location, server=server)
        assert elsewhere.order_number == 1

    def test_guest_count_must_be_positive(self, order_service, location, server):
        with pytest.raises(ValidationFailure, match="Guest count"):
            order_service.create_order(location=location, server=server, guest_count=0)

    def test_table_from_another_location_is_rejected(
        self, order_service, other_location, table, server
    ):
        with pytest.raises(ValidationFailure, match="another location"):
            order_service.create_order(location=other_location, server=server, table=table)

    def test_bar_tab(self, order_service, location, server):
        tab = order_service.create_order(
            location=location,
            server=server,
            order_type=Order.OrderType.BAR_TAB,
            tab_name="Jordan",
        )
        assert tab.display_name == "Jordan"
        assert tab.table is None

    def test_unknown_order_type(self, order_service, location, server):
        with pytest.raises(ValidationFailure):
            order_service.create_order(location=location, server=server, order_type="DRONE")


@pytest.mark.django_db
class TestAddItem:
    def test_scenario_a_pricing(self, order_service, order, burger, fries, bacon):
        order_service.add_item(order, burger.pk, quantity=2)
        order.refresh_from_db()
        assert order.subtotal == Decimal("20.00")

        fries_line = order_service.add_item(order, fries.pk, modifier_ids=[bacon.pk])
        order.refresh_from_db()
        assert fries_line.line_total == Decimal("6.50")
        assert fries_line.modifier_total == Decimal("1.50")
        assert order.subtotal == Decimal("26.50")
        assert order.guest_count == 2

    def test_unit_price_is_a_snapshot(self, order_service, order, burger):
        item = order_service.add_item(order, burger.pk)
        burger.price = Decimal("12.00")
        burger.save()
        order_service.update_item(item, quantity=2)
        item.refresh_from_db()
        assert item.unit_price == Decimal("10.00")
        assert item.line_total == Decimal("20.00")

    def test_modifier_snapshot_survives_menu_changes(self, order_service, order, fries, bacon):
        item = order_service.add_item(order, fries.pk, modifier_ids=[bacon.pk])
        bacon.name = "Bacon Bits"
        bacon.price_adjustment = Decimal("3.00")
        bacon.save()
        snapshot = item.modifiers.get()
        assert snapshot.name == "Add Bacon"
        assert snapshot.price_adjustment == Decimal("1.50")

    def test_station_copied_from_menu_item(self, order_service, order, burger, grill_station):
        item = order_service.add_item(order, burger.pk)
        assert item.station == grill_station

    def test_eighty_sixed_item_rejected(self, order_service, order, burger):
        MenuCatalog().eighty_six(burger.pk, reason="Out of buns")
        with pytest.raises(InvalidState, match="86"):
            order_service.add_item(order, burger.pk)
        assert not order.items.exists()

    def test_inactive_item_rejected(self, order_service, order, burger):
        burger.is_active = False
        burger.save()
        with pytest.raises(InvalidState, match="not available"):
            order_service.add_item(order, burger.pk)

    def test_unknown_menu_item(self, order_service, order):
        with pytest.raises(NotFound):
            order_service.add_item(order, 999999)

    def test_menu_item_from_other_location(self, order_service, order, foreign_item):
        with pytest.raises(ValidationFailure):
            order_service.add_item(order, foreign_item.pk)

    @pytest.mark.parametrize("field", ["quantity", "seat", "course"])
    def test_non_positive_values_rejected(self, order_service, order, burger, field):
        with pytest.raises(ValidationFailure):
            order_service.add_item(order, burger.pk, **{field: 0})
        assert not order.items.exists()

    def test_required_modifier_missing(self, order_service, order, steak):
        with pytest.raises(ValidationFailure, match="A selection is required for 'Temperature'"):
            order_service.add_item(order, steak.pk)

    def test_single_choice_group_takes_one(self, order_service, order, steak, medium_rare, well_done):
        with pytest.raises(ValidationFailure, match="Only one option"):
            order_service.add_item(order, steak.pk, modifier_ids=[medium_rare.pk, well_done.pk])

    def test_required_modifier_given(self, order_service, order, steak, medium_rare):
        item = order_service.add_item(order, steak.pk, modifier_ids=[medium_rare.pk])
        assert item.line_total == Decimal("32.00")
        assert [m.name for m in item.modifiers.all()] == ["Medium Rare"]

    def test_modifier_not_offered(self, order_service, order, steak, medium_rare, bacon):
        with pytest.raises(ValidationFailure, match="not offered"):
            order_service.add_item(order, steak.pk, modifier_ids=[medium_rare.pk, bacon.pk])

    def test_unknown_modifier(self, order_service, order, burger):
        with pytest.raises(ValidationFailure, match="Invalid modifier"):
            order_service.add_item(order, burger.pk, modifier_ids=[424242])


@pytest.mark.django_db
class TestUpdateAndRemoveItem:
    def test_quantity_change_reprices(self, order_service, scenario_order):
        order, burger_line, fries_line = scenario_order
        order_service.update_item(fries_line, quantity=3)
        fries_line.refresh_from_db()
        assert fries_line.line_total == Decimal("19.50")
        assert_subtotal_matches_items(order)
        assert order.subtotal == Decimal("39.50")

    def test_modifier_replacement(self, order_service, scenario_order, cheese):
        order, burger_line, _ = scenario_order
        order_service.update_item(burger_line, modifier_ids=[cheese.pk])
        burger_line.refresh_from_db()
        assert burger_line.modifier_total == Decimal("0.75")
        assert burger_line.line_total == Decimal("21.50")
        assert [m.name for m in burger_line.modifiers.all()] == ["Add Cheese"]
        assert_subtotal_matches_items(order)

    def test_quantity_locked_once_fired(self, order_service, scenario_order):
        order, burger_line, _ = scenario_order
        order_service.fire_order(order)
        with pytest.raises(InvalidState, match="already sent"):
            order_service.update_item(burger_line, quantity=3)

    def test_seat_can_move_after_fire(self, order_service, scenario_order):
        order, burger_line, _ = scenario_order
        order_service.fire_order(order)
        order_service.update_item(burger_line, seat=3)
        burger_line.refresh_from_db()
        assert burger_line.seat == 3

    def test_remove_pending(self, order_service, scenario_order):
        order, burger_line, _ = scenario_order
        order_service.remove_item(burger_line)
        assert not OrderItem.objects.filter(pk=burger_line.pk).exists()
        assert_subtotal_matches_items(order)
        assert order.subtotal == Decimal("6.50")

    def test_remove_fired_rejected(self, order_service, scenario_order):
        order, burger_line, _ = scenario_order
        order_service.fire_order(order)
        with pytest.raises(InvalidState, match="not removable, use void"):
            order_service.remove_item(burger_line)

    def test_remove_held_rejected(self, order_service, scenario_order):
        order, burger_line, _ = scenario_order
        order_service.hold_items(order, [burger_line.pk])
        with pytest.raises(InvalidState, match="use void"):
            order_service.remove_item(burger_line)

    def test_remove_comped_item_rejected(self, order_service, scenario_order, manager):
        order, burger_line, _ = scenario_order
        order_service.add_comp(order, "Birthday", manager, item_id=burger_line.pk)
        with pytest.raises(InvalidState, match="comp"):
            order_service.remove_item(burger_line)

    def test_unknown_item(self, order_service, order):
        with pytest.raises(NotFound):
            order_service.remove_item(987654)


@pytest.mark.django_db
class TestKitchenFlow:
    def test_scenario_c(self, order_service, scenario_order):
        order, burger_line, fries_line = scenario_order

        fired = order_service.fire_order(order)
        refreshed(order, burger_line, fries_line)
        assert len(fired) == 2
        assert burger_line.status == fries_line.status == ItemStatus.FIRED
        assert burger_line.fired_at is not None
        assert burger_line.sent_at is not None
        assert order.status == OrderStatus.SENT

        order_service.bump_item(burger_line)
        order.refresh_from_db()
        assert order.status == OrderStatus.SENT

        order_service.bump_item(fries_line)
        refreshed(order, burger_line, fries_line)
        assert burger_line.status == fries_line.status == ItemStatus.READY
        assert burger_line.ready_at is not None
        assert order.status == OrderStatus.READY

        order_service.serve_item(burger_line)
        order.refresh_from_db()
        assert order.status == OrderStatus.READY

        order_service.serve_item(fries_line)
        order.refresh_from_db()
        assert order.status == OrderStatus.SERVED

    def test_fire_twice_is_a_no_op(self, order_service, scenario_order):
        order, burger_line, _ = scenario_order
        order_service.fire_order(order)
        burger_line.refresh_from_db()
        first_fired_at = burger_line.fired_at

        assert order_service.fire_order(order) == []
        burger_line.refresh_from_db()
        assert burger_line.fired_at == first_fired_at

    def test_fire_with_nothing_eligible(self, order_service, order):
        assert order_service.fire_order(order) == []
        order.refresh_from_db()
        assert order.status == OrderStatus.OPEN

    def test_fire_selected_items(self, order_service, scenario_order):
        order, burger_line, fries_line = scenario_order
        order_service.fire_items(order, [fries_line.pk])
        refreshed(burger_line, fries_line)
        assert fries_line.status == ItemStatus.FIRED
        assert burger_line.status == ItemStatus.PENDING

    def test_fire_by_course(self, order_service, order, burger, fries):
        appetizer = order_service.add_item(order, fries.pk, course=1)
        entree = order_service.add_item(order, burger.pk, course=2)
        order_service.fire_order(order, course=1)
        refreshed(appetizer, entree)
        assert appetizer.status == ItemStatus.FIRED
        assert entree.status == ItemStatus.PENDING

    def test_fire_items_from_another_order(self, order_service, scenario_order, location, server):
        order, burger_line, _ = scenario_order
        other = order_service.create_order(location=location, server=server)
        with pytest.raises(NotFound):
            order_service.fire_items(other, [burger_line.pk])

    def test_hold_then_fire(self, order_service, scenario_order):
        order, burger_line, fries_line = scenario_order
        order_service.hold_items(order, [burger_line.pk])
        order_service.fire_order(order)
        refreshed(burger_line)
        assert burger_line.status == ItemStatus.FIRED

    def test_hold_is_idempotent(self, order_service, scenario_order):
        order, burger_line, _ = scenario_order
        order_service.hold_items(order, [burger_line.pk])
        order_service.hold_items(order, [burger_line.pk])
        burger_line.refresh_from_db()
        assert burger_line.status == ItemStatus.HELD

    def test_hold_fired_item_rejected(self, order_service, scenario_order):
        order, burger_line, _ = scenario_order
        order_service.fire_order(order)
        with pytest.raises(InvalidState):
            order_service.hold_items(order, [burger_line.pk])

    def test_start_moves_order_in_progress(self, order_service, scenario_order):
        order, burger_line, _ = scenario_order
        order_service.fire_order(order)
        order_service.start_item(burger_line)
        refreshed(order, burger_line)
        assert burger_line.status == ItemStatus.IN_PROGRESS
        assert order.status == OrderStatus.IN_PROGRESS

    def test_bump_pending_item_rejected(self, order_service, scenario_order):
        _, burger_line, _ = scenario_order
        with pytest.raises(InvalidState, match="cannot bump"):
            order_service.bump_item(burger_line)

    def test_serve_unready_item_rejected(self, order_service, scenario_order):
        order, burger_line, _ = scenario_order
        order_service.fire_order(order)
        with pytest.raises(InvalidState, match="cannot serve"):
            order_service.serve_item(burger_line)

    def test_bump_ticket_for_one_station(self, order_service, scenario_order, grill_station):
        order, burger_line, fries_line = scenario_order
        order_service.fire_order(order)
        bumped = order_service.bump_ticket(order, station_id=grill_station.pk)
        refreshed(order, burger_line, fries_line)
        assert [i.pk for i in bumped] == [burger_line.pk]
        assert burger_line.status == ItemStatus.READY
        assert fries_line.status == ItemStatus.FIRED
        assert order.status == OrderStatus.SENT

    def test_bump_whole_ticket_readies_order(self, order_service, scenario_order):
        order, burger_line, fries_line = scenario_order
        order_service.fire_order(order)
        order_service.start_item(burger_line)
        order_service.bump_ticket(order)
        refreshed(order, burger_line, fries_line)
        assert burger_line.status == fries_line.status == ItemStatus.READY
        assert order.status == OrderStatus.READY

    def test_bump_ticket_with_pending_course_still_readies(self, order_service, order, burger, fries):
        starter = order_service.add_item(order, fries.pk, course=1)
        order_service.add_item(order, burger.pk, course=2)
        order_service.fire_order(order, course=1)
        order_service.bump_ticket(order)
        refreshed(order, starter)
        assert starter.status == ItemStatus.READY
        assert order.status == OrderStatus.READY

    def test_recall(self, order_service, scenario_order):
        order, burger_line, fries_line = scenario_order
        order_service.fire_order(order)
        order_service.bump_ticket(order)
        order_service.recall_ticket(order)
        refreshed(order, burger_line, fries_line)
        assert burger_line.status == fries_line.status == ItemStatus.IN_PROGRESS
        assert burger_line.ready_at is None
        assert order.status == OrderStatus.IN_PROGRESS

    def test_new_item_on_served_order_refires(self, order_service, scenario_order, burger):
        order, burger_line, fries_line = scenario_order
        order_service.fire_order(order)
        order_service.bump_ticket(order)
        order_service.serve_item(burger_line)
        order_service.serve_item(fries_line)

        dessert = order_service.add_item(order, burger.pk, seat=2)
        order.refresh_from_db()
        assert order.status == OrderStatus.SERVED

        order_service.fire_items(order, [dessert.pk])
        order.refresh_from_db()
        assert order.status == OrderStatus.SENT


@pytest.mark.django_db
class TestVoids:
    def test_scenario_e(self, order_service, scenario_order, manager, location):
        order, burger_line, fries_line = scenario_order
        order_service.fire_order(order)
        order_service.void_item(burger_line, "Guest changed mind", manager)

        burger_line.refresh_from_db()
        assert burger_line.status == ItemStatus.VOID
        assert burger_line.voided_at is not None
        assert_subtotal_matches_items(order)
        assert order.subtotal == Decimal("6.50")

        tickets = TicketRouter().get_tickets(location.pk)
        ticket_item_ids = [i["id"] for t in tickets for i in t["items"]]
        assert burger_line.pk not in ticket_item_ids
        assert fries_line.pk in ticket_item_ids

    def test_void_record_is_written(self, order_service, scenario_order, manager, server):
        order, burger_line, _ = scenario_order
        order_service.void_item(burger_line, "Wrong table", manager, user=server)
        record = OrderVoid.objects.get(order_item=burger_line)
        assert record.amount == Decimal("20.00")
        assert record.approved_by == manager
        assert record.created_by == server
        assert record.reason == "Wrong table"

    def test_void_pending_excluded_from_subtotal(self, order_service, scenario_order, manager):
        order, _, fries_line = scenario_order
        order_service.void_item(fries_line, "Dropped", manager)
        assert_subtotal_matches_items(order)
        assert order.subtotal == Decimal("20.00")

    def test_void_served_rejected(self, order_service, scenario_order, manager):
        order, burger_line, _ = scenario_order
        order_service.fire_order(order)
        order_service.bump_item(burger_line)
        order_service.serve_item(burger_line)
        with pytest.raises(InvalidState, match="cannot be voided"):
            order_service.void_item(burger_line, "Too late", manager)
        assert not OrderVoid.objects.exists()

    def test_void_needs_reason_and_approver(self, order_service, scenario_order, manager):
        _, burger_line, _ = scenario_order
        with pytest.raises(ValidationFailure):
            order_service.void_item(burger_line, "", manager)
        with pytest.raises(ValidationFailure):
            order_service.void_item(burger_line, "Cold", None)
        burger_line.refresh_from_db()
        assert burger_line.status == ItemStatus.PENDING

    def test_voiding_last_cooking_item_readies_order(self, order_service, scenario_order, manager):
        order, burger_line, fries_line = scenario_order
        order_service.fire_order(order)
        order_service.bump_item(burger_line)
        order_service.void_item(fries_line, "86'd mid-service", manager)
        order.refresh_from_db()
        assert order.status == OrderStatus.READY

    def test_voiding_every_fired_item_serves_order(self, order_service, scenario_order, manager):
        order, burger_line, fries_line = scenario_order
        order_service.fire_order(order)
        order_service.void_item(burger_line, "Guest left", manager)
        order_service.void_item(fries_line, "Guest left", manager)
        order.refresh_from_db()
        assert order.status == OrderStatus.SERVED
        assert order.total == Decimal("0.00")

        order = order_service.close_order(order)
        assert order.status == OrderStatus.CLOSED

    def test_void_records_are_append_only(self, order_service, scenario_order, manager):
        _, burger_line, _ = scenario_order
        order_service.void_item(burger_line, "Wrong item", manager)
        record = OrderVoid.objects.get()
        record.reason = "edited"
        with pytest.raises(InvalidState):
            record.save()
        with pytest.raises(InvalidState):
            record.delete()

    def test_void_comped_item_reverses_comp(self, order_service, scenario_order, manager, server):
        order, _, fries_line = scenario_order
        order_service.add_comp(order, "Burnt", manager, item_id=fries_line.pk)
        order_service.fire_order(order)
        order_service.void_item(fries_line, "Sent back", manager, user=server)

        order.refresh_from_db()
        assert order.subtotal == Decimal("20.00")
        assert order.comp_amount == Decimal("0.00")
        assert order.total == Decimal("21.65")

        comps = list(OrderComp.objects.filter(order_item=fries_line).order_by("pk"))
        assert [c.amount for c in comps] == [Decimal("6.50"), Decimal("-6.50")]
        reversal = comps[1]
        assert reversal.reason == "Burnt"
        assert reversal.approved_by == manager
        assert reversal.created_by == server

    def test_void_order_reverses_item_comps(self, order_service, scenario_order, manager):
        order, _, fries_line = scenario_order
        order_service.add_comp(order, "Burnt", manager, item_id=fries_line.pk)
        order_service.void_order(order, "Walkout", manager)
        order.refresh_from_db()
        assert order.comp_amount == Decimal("0.00")
        assert order.total == Decimal("0.00")

    def test_void_whole_order(self, order_service, scenario_order, manager):
        order, burger_line, fries_line = scenario_order
        order_service.fire_order(order)
        order_service.void_order(order, "Walkout", manager)
        refreshed(order, burger_line, fries_line)
        assert order.status == OrderStatus.VOID
        assert order.closed_at is not None
        assert burger_line.status == fries_line.status == ItemStatus.VOID
        assert OrderVoid.objects.filter(order=order).count() == 2
        assert order.subtotal == Decimal("0.00")
        assert order.total == Decimal("0.00")

    def test_void_order_keeps_served_items(self, order_service, scenario_order, manager):
        order, burger_line, fries_line = scenario_order
        order_service.fire_order(order)
        order_service.bump_item(burger_line)
        order_service.serve_item(burger_line)
        order_service.void_order(order, "Kitchen fire", manager)
        refreshed(burger_line, fries_line)
        assert burger_line.status == ItemStatus.SERVED
        assert fries_line.status == ItemStatus.VOID

    def test_void_order_with_payment_rejected(self, order_service, scenario_order, manager):
        order, _, _ = scenario_order
        order_service.add_payment(order, Payment.PaymentMethod.CASH, Decimal("5.00"))
        with pytest.raises(InvalidState, match="payments"):
            order_service.void_order(order, "Walkout", manager)

    def test_voided_order_rejects_changes(self, order_service, scenario_order, manager, burger):
        order, _, _ = scenario_order
        order_service.void_order(order, "Duplicate ticket", manager)
        with pytest.raises(InvalidState, match="can no longer be changed"):
            order_service.add_item(order, burger.pk)


@pytest.mark.django_db
class TestDiscountsAndComps:
    def test_scenario_b(self, order_service, scenario_order, manager):
        order, _, _ = scenario_order
        order = order_service.add_discount(
            order, "Regulars", OrderDiscount.DiscountType.PERCENTAGE, Decimal("10"), "Regular guest", manager
        )
        assert order.discount_amount == Decimal("2.65")
        assert order.tax_amount == Decimal("1.97")
        assert order.total == Decimal("25.82")

    def test_percentage_discount_is_fixed_at_application(
        self, order_service, scenario_order, manager, burger
    ):
        order, _, _ = scenario_order
        order_service.add_discount(
            order, "Regulars", OrderDiscount.DiscountType.PERCENTAGE, "10", "Regular guest", manager
        )
        order_service.add_item(order, burger.pk)
        order.refresh_from_db()
        assert order.subtotal == Decimal("36.50")
        assert order.discount_amount == Decimal("2.65")

    def test_fixed_discount(self, order_service, scenario_order, manager):
        order, _, _ = scenario_order
        order = order_service.add_discount(
            order, "Coupon", OrderDiscount.DiscountType.FIXED, "5.00", "Mailer", manager
        )
        assert order.discount_amount == Decimal("5.00")
        # 21.50 taxable, 1.77375 tax
        assert order.total == Decimal("23.27")

    @pytest.mark.parametrize("value", ["0", "-5", "100.01"])
    def test_bad_percentages(self, order_service, scenario_order, manager, value):
        order, _, _ = scenario_order
        with pytest.raises(ValidationFailure):
            order_service.add_discount(
                order, "Bad", OrderDiscount.DiscountType.PERCENTAGE, value, "Oops", manager
            )
        assert not OrderDiscount.objects.exists()

    def test_discount_needs_approver(self, order_service, scenario_order):
        order, _, _ = scenario_order
        with pytest.raises(ValidationFailure, match="approver"):
            order_service.add_discount(
                order, "Staff", OrderDiscount.DiscountType.PERCENTAGE, "50", "Staff meal", None
            )

    def test_item_comp_defaults_to_line_total(self, order_service, scenario_order, manager):
        order, burger_line, _ = scenario_order
        order = order_service.add_comp(order, "Birthday", manager, item_id=burger_line.pk)
        assert order.comp_amount == Decimal("20.00")
        assert order.subtotal == Decimal("26.50")
        assert order.tax_amount == Decimal("0.54")
        assert order.total == Decimal("7.04")

    def test_order_level_comp(self, order_service, scenario_order, manager):
        order, _, _ = scenario_order
        order = order_service.add_comp(order, "Long wait", manager, amount="6.50")
        assert order.comp_amount == Decimal("6.50")
        assert OrderComp.objects.get().order_item is None

    def test_comps_cannot_drive_total_negative(self, order_service, scenario_order, manager):
        order, _, _ = scenario_order
        order = order_service.add_comp(order, "Apology", manager, amount="100.00")
        assert order.total == Decimal("0.00")

    def test_comp_on_void_item_rejected(self, order_service, scenario_order, manager):
        order, burger_line, _ = scenario_order
        order_service.void_item(burger_line, "Wrong", manager)
        with pytest.raises(InvalidState):
            order_service.add_comp(order, "Double dip", manager, item_id=burger_line.pk)

    def test_comp_amount_must_be_positive(self, order_service, scenario_order, manager):
        order, _, _ = scenario_order
        with pytest.raises(ValidationFailure):
            order_service.add_comp(order, "Zero", manager, amount="0")


@pytest.mark.django_db
class TestPaymentsAndClose:
    def test_close_boundary(self, order_service, scenario_order):
        order, _, _ = scenario_order
        order.refresh_from_db()
        # 26.50 + 2.19 tax
        assert order.total == Decimal("28.69")

        order_service.add_payment(order, Payment.PaymentMethod.CREDIT, Decimal("28.68"), card_last4="4242")
        with pytest.raises(InvalidState, match="not fully paid"):
            order_service.close_order(order)
        order.refresh_from_db()
        assert order.status != OrderStatus.CLOSED

        order_service.add_payment(order, Payment.PaymentMethod.CASH, Decimal("0.01"))
        order = order_service.close_order(order)
        assert order.status == OrderStatus.CLOSED
        assert order.closed_at is not None

    def test_tips_count_toward_paid(self, order_service, scenario_order):
        order, _, _ = scenario_order
        order_service.add_payment(order, Payment.PaymentMethod.CASH, Decimal("25.00"), tip_amount=Decimal("3.69"))
        order = order_service.close_order(order)
        assert order.status == OrderStatus.CLOSED
        assert order.tip_amount == Decimal("3.69")
        assert order.total == Decimal("28.69")

    def test_closed_order_rejects_mutations(self, order_service, scenario_order, burger):
        order, burger_line, _ = scenario_order
        order_service.add_payment(order, Payment.PaymentMethod.CASH, Decimal("28.69"))
        order_service.close_order(order)
        with pytest.raises(InvalidState):
            order_service.add_item(order, burger.pk)
        with pytest.raises(InvalidState):
            order_service.add_payment(order, Payment.PaymentMethod.CASH, Decimal("1.00"))
        with pytest.raises(InvalidState):
            order_service.close_order(order)

    def test_payment_validation(self, order_service, scenario_order):
        order, _, _ = scenario_order
        with pytest.raises(ValidationFailure):
            order_service.add_payment(order, "BITCOIN", Decimal("1.00"))
        with pytest.raises(ValidationFailure):
            order_service.add_payment(order, Payment.PaymentMethod.CASH, Decimal("-1.00"))
        with pytest.raises(ValidationFailure):
            order_service.add_payment(order, Payment.PaymentMethod.CASH, Decimal("0.00"))
        with pytest.raises(ValidationFailure):
            order_service.add_payment(
                order, Payment.PaymentMethod.CREDIT, Decimal("1.00"), card_last4="42"
            )
        assert not Payment.objects.exists()

    def test_payment_against_unknown_check(self, order_service, scenario_order):
        order, _, _ = scenario_order
        with pytest.raises(NotFound):
            order_service.add_payment(
                order,
                Payment.PaymentMethod.CASH,
                Decimal("5.00"),
                check_id="5b1f9f9e-8a43-4d7e-9c52-5f8f5c2a7d10",
            )

    def test_empty_order_can_close(self, order_service, order):
        order = order_service.close_order(order)
        assert order.status == OrderStatus.CLOSED


@pytest.mark.django_db
class TestTransferAndUpdate:
    def test_transfer_table_keeps_status(self, order_service, scenario_order, second_table):
        order, _, _ = scenario_order
        order_service.fire_order(order)
        order = order_service.transfer_table(order, second_table.pk)
        assert order.table == second_table
        assert order.status == OrderStatus.SENT

    def test_transfer_to_foreign_table(self, order_service, order, other_location):
        foreign = Table.objects.create(location=other_location, name="K1")
        with pytest.raises(ValidationFailure):
            order_service.transfer_table(order, foreign.pk)

    def test_transfer_to_inactive_table(self, order_service, order, second_table):
        second_table.is_active = False
        second_table.save()
        with pytest.raises(ValidationFailure, match="not in service"):
            order_service.transfer_table(order, second_table.pk)

    def test_update_guest_details(self, order_service, order):
        order = order_service.update_order(order, guest_count=4, notes="Anniversary")
        assert order.guest_count == 4
        assert order.notes == "Anniversary"

    def test_money_fields_are_not_updatable(self, order_service, order):
        with pytest.raises(ValidationFailure, match="subtotal"):
            order_service.update_order(order, subtotal=Decimal("1.00"))

    def test_open_orders(self, order_service, scenario_order, location, server):
        order, _, _ = scenario_order
        closed = order_service.create_order(location=location, server=server)
        order_service.close_order(closed)
        open_ids = [o.pk for o in order_service.get_open_orders(location)]
        assert order.pk in open_ids
        assert closed.pk not in open_ids

    def test_tables_with_live_orders(
        self, order_service, scenario_order, location, second_table, server
    ):
        order, _, _ = scenario_order
        bar = Table.objects.create(location=location, name="B1", section="Bar", seats=6)
        Table.objects.create(location=location, name="T9", section="Patio", is_active=False)
        finished = order_service.create_order(
            location=location,
            server=server,
            order_type=Order.OrderType.DINE_IN,
            table=second_table,
            guest_count=2,
        )
        order_service.close_order(finished)

        tables = list(order_service.get_tables(location))
        assert [t.name for t in tables] == ["B1", "T1", "T2"]
        by_name = {t.name: t for t in tables}
        assert by_name["B1"] == bar
        assert by_name["B1"].live_orders == []
        assert [o.pk for o in by_name["T1"].live_orders] == [order.pk]
        assert by_name["T1"].live_orders[0].server == server
        assert by_name["T2"].live_orders == []

    def test_get_order_not_found(self, order_service):
        with pytest.raises(NotFound):
            order_service.get_order("not-a-uuid")


@pytest.mark.django_db
class TestSubtotalInvariant:
    def test_holds_through_a_busy_service(self, order_service, scenario_order, manager, burger, cheese):
        order, burger_line, fries_line = scenario_order
        extra = order_service.add_item(order, burger.pk, modifier_ids=[cheese.pk], seat=2)
        assert_subtotal_matches_items(order)

        order_service.update_item(extra, quantity=2)
        assert_subtotal_matches_items(order)

        order_service.fire_order(order)
        order_service.void_item(fries_line, "Burnt", manager)
        assert_subtotal_matches_items(order)

        order_service.add_comp(order, "Sorry", manager, amount="2.00")
        assert_subtotal_matches_items(order)
        assert order.subtotal == Decimal("41.50")
