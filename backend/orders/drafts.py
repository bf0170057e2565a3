"""
Server-side draft of an item being configured on a terminal.

A ``DraftItem`` stages modifier selections for one menu item before it is
committed to an order. Several devices can share a draft (e.g. a handheld
and the bar terminal) without touching the order until ``is_valid``.
"""
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Dict, List, Optional

from core_backend.exceptions import ValidationFailure
from menu.services import group_selection_error
from .calculators import price_item


@dataclass
class DraftItem:
    menu_item: object
    quantity: int = 1
    seat: int = 1
    course: int = 1
    special_instructions: str = ""
    # modifier group id -> selected Modifier rows
    selections: Dict[int, List[object]] = field(default_factory=dict)

    def _groups(self):
        return list(self.menu_item.modifier_groups.all())

    def toggle(self, modifier) -> None:
        """Select ``modifier``, or unselect it if already chosen. Single-choice groups swap."""
        group = modifier.group
        if group.id not in {g.id for g in self._groups()}:
            raise ValidationFailure(
                f"Modifier '{modifier.name}' is not offered for '{self.menu_item.name}'."
            )
        chosen = self.selections.setdefault(group.id, [])
        if any(m.id == modifier.id for m in chosen):
            self.selections[group.id] = [m for m in chosen if m.id != modifier.id]
        elif group.effective_max == 1:
            self.selections[group.id] = [modifier]
        else:
            chosen.append(modifier)

    @property
    def modifiers(self) -> List[object]:
        return [m for chosen in self.selections.values() for m in chosen]

    @property
    def modifier_ids(self) -> List[int]:
        return [m.id for m in self.modifiers]

    def errors(self) -> List[str]:
        messages = []
        for group in self._groups():
            error = group_selection_error(group, len(self.selections.get(group.id, [])))
            if error:
                messages.append(error)
        return messages

    @property
    def is_valid(self) -> bool:
        return not self.errors()

    @property
    def line_total(self) -> Decimal:
        return price_item(self.menu_item.price, self.modifiers, self.quantity)

    def commit(self, order_service, order, user=None, check_id: Optional[object] = None):
        """Turn the draft into an order item through ``OrderService.add_item``."""
        errors = self.errors()
        if errors:
            raise ValidationFailure(errors[0], details={"modifiers": errors})
        return order_service.add_item(
            order,
            menu_item_id=self.menu_item.id,
            quantity=self.quantity,
            seat=self.seat,
            course=self.course,
            special_instructions=self.special_instructions,
            modifier_ids=self.modifier_ids,
            check_id=check_id,
            user=user,
        )
