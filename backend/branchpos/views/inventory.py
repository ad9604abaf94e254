# Overview: Branch inventory screen; items, categories and bundles with derived availability.

from __future__ import annotations

from ..services.filtering import FilterSpec, apply_filter_sort
from ..services.metrics import bundle_availability_map
from ..services.realtime import CollectionRef
from .base import LiveView

LOW_STOCK_THRESHOLD = 5


class InventoryView(LiveView):
    """
    Filters: search (name/description/barcode), match on category_id and
    status ("active"/"inactive"). Inactive rows are subscribed too so
    managers can re-enable them.
    """
    name = "inventory"

    def __init__(self, ctx, filter_spec=None, sort_spec=None):
        super().__init__(ctx, filter_spec, sort_spec)
        self.items = []
        self.bundles = []
        self.availability: dict[int, int] = {}
        self.stats: dict = {}

    def sources(self):
        scope = (("include_inactive", True),)
        return {
            "inventory": CollectionRef("inventory", self.ctx.branch_id, scope),
            "categories": CollectionRef("categories", self.ctx.branch_id),
            "bundles": CollectionRef("bundles", self.ctx.branch_id, scope),
        }

    def recompute(self) -> None:
        spec = self.filter_spec
        if spec.search and spec.search_fields == FilterSpec().search_fields:
            spec = FilterSpec(
                search=spec.search,
                search_fields=("name", "description", "barcode"),
                match=spec.match,
            )
        all_items = self.records("inventory")
        active = [i for i in all_items if i.is_active]
        self.items = apply_filter_sort(all_items, spec, self.sort_spec)
        bundles = self.records("bundles")
        # Inactive components count as zero stock, as on the store screen
        self.availability = bundle_availability_map(bundles, active, self.ctx.custom_bundle_availability)
        self.bundles = apply_filter_sort(
            bundles,
            FilterSpec(search=spec.search, search_fields=("name", "description"),
                       match={"status": spec.match.get("status")}),
            self.sort_spec,
        )
        self.stats = {
            "total_items": len(active),
            "out_of_stock": sum(1 for i in active if i.stock == 0),
            "low_stock": sum(1 for i in active if 0 < i.stock <= LOW_STOCK_THRESHOLD),
            "inventory_value_cents": sum(i.price_cents * i.stock for i in active),
            "bundles": len(bundles),
        }

    def snapshot(self) -> dict:
        return {
            "branch_id": self.ctx.branch_id,
            "items": self.items,
            "categories": self.records("categories"),
            "bundles": [
                {"bundle": b, "availability": self.availability.get(b.id, 0)} for b in self.bundles
            ],
            "stats": self.stats,
        }
