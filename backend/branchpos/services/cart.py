# Overview: In-memory checkout cart with stock reservation across item and bundle lines.

"""
Cart

INVARIANT: a line's quantity never exceeds the item's current stock minus
what the other lines already reserve for that item. Item lines reserve one
unit per quantity; bundle lines reserve each component's quantity per unit.

Adds that would break the invariant are rejected as a no-op (False), never
clamped. Decrementing below one removes the line. Stock comes from the
latest inventory snapshot passed to refresh().
"""

from __future__ import annotations

import itertools
from dataclasses import dataclass
from typing import Iterable, Mapping, Optional

from .metrics import discount_amount


@dataclass
class CartLine:
    key: str
    name: str
    price_cents: int
    quantity: int
    item_id: Optional[int] = None
    bundle_id: Optional[int] = None
    # (inventory_item_id, units per line quantity)
    requirements: tuple = ()
    is_custom: bool = False

    @property
    def is_bundle(self) -> bool:
        return self.bundle_id is not None

    @property
    def line_total_cents(self) -> int:
        return self.price_cents * self.quantity


class Cart:
    def __init__(self, items: Iterable = ()):
        self.lines: dict[str, CartLine] = {}
        self.discount = None
        self._stock: dict[int, int] = {}
        self._categories: dict[int, Optional[int]] = {}
        self._custom_seq = itertools.count(1)
        self.refresh(items)

    def refresh(self, items: Iterable) -> None:
        """Take stock levels and categories from the latest inventory snapshot."""
        items = list(items)
        self._stock = {i.id: i.stock for i in items}
        self._categories = {i.id: i.category_id for i in items}

    # -- reservation ------------------------------------------------------

    def reserved(self, item_id: int, exclude_key: Optional[str] = None) -> int:
        total = 0
        for line in self.lines.values():
            if line.key == exclude_key:
                continue
            for req_item, per_unit in line.requirements:
                if req_item == item_id:
                    total += per_unit * line.quantity
        return total

    def available(self, item_id: int, exclude_key: Optional[str] = None) -> int:
        return max(self._stock.get(item_id, 0) - self.reserved(item_id, exclude_key), 0)

    def _fits(self, key: str, requirements: tuple, quantity: int) -> bool:
        needs: dict[int, int] = {}
        for item_id, per_unit in requirements:
            needs[item_id] = needs.get(item_id, 0) + per_unit * quantity
        return all(needed <= self.available(item_id, exclude_key=key) for item_id, needed in needs.items())

    # -- mutations --------------------------------------------------------

    def add_item(self, item, quantity: int = 1) -> bool:
        if quantity <= 0 or not getattr(item, "is_active", True):
            return False
        key = f"item:{item.id}"
        line = self.lines.get(key)
        requirements = ((item.id, 1),)
        new_quantity = (line.quantity if line else 0) + quantity
        if not self._fits(key, requirements, new_quantity):
            return False
        if line is None:
            self.lines[key] = CartLine(
                key=key,
                name=item.name,
                price_cents=item.price_cents,
                quantity=new_quantity,
                item_id=item.id,
                requirements=requirements,
            )
        else:
            line.quantity = new_quantity
        return True

    def add_bundle(self, bundle, quantity: int = 1) -> bool:
        """Add a fixed bundle; custom bundles go through add_custom_bundle."""
        if quantity <= 0 or bundle.is_custom or not bundle.components:
            return False
        key = f"bundle:{bundle.id}"
        line = self.lines.get(key)
        requirements = tuple((c.inventory_item_id, c.quantity) for c in bundle.components)
        new_quantity = (line.quantity if line else 0) + quantity
        if not self._fits(key, requirements, new_quantity):
            return False
        if line is None:
            self.lines[key] = CartLine(
                key=key,
                name=bundle.name,
                price_cents=bundle.price_cents,
                quantity=new_quantity,
                bundle_id=bundle.id,
                requirements=requirements,
            )
        else:
            line.quantity = new_quantity
        return True

    def add_custom_bundle(self, bundle, selections: Mapping[int, int]) -> bool:
        """
        Add one custom bundle made of `selections` {item_id: pieces}.

        The pieces must total between 1 and max_pieces and fit each item's
        remaining stock. Each custom selection is its own line.
        """
        if not bundle.is_custom:
            return False
        picked = tuple((item_id, qty) for item_id, qty in selections.items() if qty > 0)
        pieces = sum(qty for _, qty in picked)
        if pieces <= 0 or (bundle.max_pieces is not None and pieces > bundle.max_pieces):
            return False
        key = f"custom:{bundle.id}:{next(self._custom_seq)}"
        if not self._fits(key, picked, 1):
            return False
        self.lines[key] = CartLine(
            key=key,
            name=bundle.name,
            price_cents=bundle.price_cents,
            quantity=1,
            bundle_id=bundle.id,
            requirements=picked,
            is_custom=True,
        )
        return True

    def update_quantity(self, key: str, delta: int) -> bool:
        line = self.lines.get(key)
        if line is None:
            return False
        new_quantity = line.quantity + delta
        if new_quantity <= 0:
            del self.lines[key]
            return True
        if delta > 0 and not self._fits(key, line.requirements, new_quantity):
            return False
        line.quantity = new_quantity
        return True

    def remove(self, key: str) -> bool:
        return self.lines.pop(key, None) is not None

    def clear(self) -> None:
        self.lines.clear()
        self.discount = None

    def apply_discount(self, discount) -> int:
        """Attach (or with None, detach) a discount; returns the amount it takes off now."""
        self.discount = discount
        return self.discount_cents

    # -- totals -----------------------------------------------------------

    @property
    def is_empty(self) -> bool:
        return not self.lines

    @property
    def item_count(self) -> int:
        return sum(line.quantity for line in self.lines.values())

    @property
    def subtotal_cents(self) -> int:
        return sum(line.line_total_cents for line in self.lines.values())

    @property
    def discount_cents(self) -> int:
        return discount_amount(self.discount, self.subtotal_cents, self.category_ids())

    @property
    def total_cents(self) -> int:
        return self.subtotal_cents - self.discount_cents

    def category_ids(self) -> set[int]:
        ids = set()
        for line in self.lines.values():
            for item_id, _ in line.requirements:
                category_id = self._categories.get(item_id)
                if category_id is not None:
                    ids.add(category_id)
        return ids

    def to_order_lines(self) -> list[dict]:
        out = []
        for line in self.lines.values():
            if line.is_custom:
                out.append({
                    "bundle_id": line.bundle_id,
                    "quantity": line.quantity,
                    "components": [
                        {"inventory_item_id": item_id, "quantity": qty} for item_id, qty in line.requirements
                    ],
                })
            elif line.is_bundle:
                out.append({"bundle_id": line.bundle_id, "quantity": line.quantity})
            else:
                out.append({"item_id": line.item_id, "quantity": line.quantity})
        return out
