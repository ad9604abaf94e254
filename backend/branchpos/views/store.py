# Overview: Point-of-sale screen; sellable catalog, cart and checkout.

from __future__ import annotations

from typing import Mapping, Optional

from ..services.cart import Cart
from ..services.dispatch import ActionResult
from ..services.discount_service import normalize_code
from ..services.filtering import FilterSpec, apply_filter_sort
from ..services.metrics import bundle_availability_map
from ..services.realtime import CollectionRef
from .base import LiveView


class StoreView(LiveView):
    name = "store"

    def __init__(self, ctx, filter_spec=None, sort_spec=None):
        super().__init__(ctx, filter_spec, sort_spec)
        self.cart = Cart()
        self.items = []
        self.bundles = []
        self.availability: dict[int, int] = {}
        self.discount_notice: Optional[str] = None

    def sources(self):
        return {
            "inventory": CollectionRef("inventory", self.ctx.branch_id),
            "bundles": CollectionRef("bundles", self.ctx.branch_id),
            "categories": CollectionRef("categories", self.ctx.branch_id),
            "discounts": CollectionRef("discounts", self.ctx.branch_id),
        }

    def set_branch(self, branch_id: Optional[int]) -> None:
        # A cart never crosses branches
        if branch_id != self.ctx.branch_id:
            self.cart.clear()
        super().set_branch(branch_id)

    def recompute(self) -> None:
        items = self.records("inventory")
        self.cart.refresh(items)
        spec = self.filter_spec
        self.items = apply_filter_sort(
            items,
            FilterSpec(search=spec.search, search_fields=("name", "barcode"), match=spec.match),
            self.sort_spec,
        )
        bundles = self.records("bundles")
        self.availability = bundle_availability_map(bundles, items, self.ctx.custom_bundle_availability)
        self.bundles = apply_filter_sort(
            bundles, FilterSpec(search=spec.search, search_fields=("name",)), self.sort_spec
        )
        self._check_discount()

    def _check_discount(self) -> None:
        """Drop an applied discount once it is withdrawn or stops taking anything off."""
        applied = self.cart.discount
        if applied is None:
            return
        current = self._discount_by_code(applied.code)
        if current is None:
            self.discount_notice = f"Discount {applied.code} is no longer active"
        elif self.cart.apply_discount(current) == 0:
            self.discount_notice = f"Discount {applied.code} no longer applies to this cart"
        else:
            return
        self.cart.apply_discount(None)

    # -- lookups -----------------------------------------------------------

    def _find(self, source: str, record_id: int):
        return next((r for r in self.records(source) if r.id == record_id), None)

    def _discount_by_code(self, code: str):
        code = normalize_code(code)
        return next((d for d in self.records("discounts") if d.code == code and d.is_active), None)

    # -- cart intents ------------------------------------------------------

    def _after(self, ok: bool, error: str) -> ActionResult:
        self._recompute()
        return ActionResult.success(self.cart_state()) if ok else ActionResult.failure(error)

    def add_item(self, item_id: int, quantity: int = 1) -> ActionResult:
        item = self._find("inventory", item_id)
        if item is None:
            return ActionResult.failure("Item not available")
        ok = self.cart.add_item(item, quantity)
        return self._after(ok, f"Only {self.cart.available(item.id)} more {item.name} in stock")

    def add_bundle(self, bundle_id: int, quantity: int = 1) -> ActionResult:
        bundle = self._find("bundles", bundle_id)
        if bundle is None:
            return ActionResult.failure("Bundle not available")
        if bundle.is_custom:
            return ActionResult.failure("Pick the pieces for a custom bundle")
        return self._after(self.cart.add_bundle(bundle, quantity), f"Not enough stock for {bundle.name}")

    def add_custom_bundle(self, bundle_id: int, selections: Mapping[int, int]) -> ActionResult:
        bundle = self._find("bundles", bundle_id)
        if bundle is None or not bundle.is_custom:
            return ActionResult.failure("Custom bundle not available")
        ok = self.cart.add_custom_bundle(bundle, selections)
        return self._after(ok, f"Pick 1 to {bundle.max_pieces} pieces that are in stock")

    def update_quantity(self, key: str, delta: int) -> ActionResult:
        return self._after(self.cart.update_quantity(key, delta), "Not enough stock")

    def remove(self, key: str) -> ActionResult:
        return self._after(self.cart.remove(key), "Line not in cart")

    def apply_discount_code(self, code: Optional[str]) -> ActionResult:
        self.discount_notice = None
        if not code:
            self.cart.apply_discount(None)
            return self._after(True, "")
        discount = self._discount_by_code(code)
        if discount is None:
            return ActionResult.failure("Invalid or inactive discount code")
        if self.cart.apply_discount(discount) == 0:
            self.cart.apply_discount(None)
            return self._after(False, "Discount does not apply to this cart")
        return self._after(True, "")

    def checkout(self, order_type: str = "dine_in") -> ActionResult:
        result = self.dispatcher.place_order(self.cart, branch_id=self.ctx.branch_id, order_type=order_type)
        self._recompute()
        return result

    # -- state -------------------------------------------------------------

    def cart_state(self) -> dict:
        return {
            "lines": list(self.cart.lines.values()),
            "item_count": self.cart.item_count,
            "subtotal_cents": self.cart.subtotal_cents,
            "discount": self.cart.discount,
            "discount_cents": self.cart.discount_cents,
            "total_cents": self.cart.total_cents,
            "discount_notice": self.discount_notice,
        }

    def snapshot(self) -> dict:
        return {
            "branch_id": self.ctx.branch_id,
            "items": [
                {"item": i, "remaining": self.cart.available(i.id)} for i in self.items
            ],
            "bundles": [
                {"bundle": b, "availability": self.availability.get(b.id, 0)} for b in self.bundles
            ],
            "categories": self.records("categories"),
            "cart": self.cart_state(),
        }
